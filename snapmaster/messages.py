import logging

from snapmaster.state import CaptureError, CaptureRequest, CaptureState, CaptureStatus, ErrorCode
from snapmaster.tv_interval import get_current_interval
from snapmaster.tv_load import has_loading_indicator
from snapmaster.tv_symbol import resolve_symbol
from snapmaster.tv_theme import detect_theme
from snapmaster.workflow import is_tradingview_chart

logger = logging.getLogger(__name__)

CAPTURE = "CAPTURE"
GET_PAGE_INFO = "GET_PAGE_INFO"
GET_THEME = "GET_THEME"


async def get_page_info(page) -> dict:
    return {
        "symbol": await resolve_symbol(page),
        "interval": await get_current_interval(page),
        "theme": (await detect_theme(page)).value,
        "isLoading": await has_loading_indicator(page),
        "url": page.url,
        "isTradingView": is_tradingview_chart(page.url),
    }


class MessageRouter:
    """Routes CAPTURE / GET_PAGE_INFO / GET_THEME to the page-side handlers."""

    def __init__(self, page, workflow):
        self.page = page
        self.workflow = workflow
        self._handlers = {
            CAPTURE: self._capture,
            GET_PAGE_INFO: self._page_info,
            GET_THEME: self._theme,
        }

    async def dispatch(self, message: dict) -> dict | None:
        kind = (message or {}).get("type")
        handler = self._handlers.get(kind)
        if handler is None:
            logger.warning("unknown message type: %r", kind)
            return None
        logger.debug("dispatch %s", kind)
        return await handler(message.get("payload") or {})

    async def _capture(self, payload: dict) -> dict:
        try:
            request = CaptureRequest.from_payload(payload)
        except (KeyError, TypeError, ValueError) as e:
            err = CaptureError(ErrorCode.UNKNOWN, f"invalid CAPTURE payload: {e}", self.workflow.locale)
            return CaptureState(CaptureStatus.ERROR, message=err.message, error=err.to_dict()).to_dict()
        state = await self.workflow.capture(request)
        return state.to_dict()

    async def _page_info(self, payload: dict) -> dict:
        return await get_page_info(self.page)

    async def _theme(self, payload: dict) -> dict:
        return {"theme": (await detect_theme(self.page)).value}
