"""Capture workflow: switch interval -> wait for load -> resolve symbol -> capture.

One ``CaptureWorkflow`` per page.  Its ``WorkflowContext`` is the only mutable
state shared between requests; the busy flag is checked and set with no
``await`` in between, so concurrent CAPTURE tasks on the same event loop
cannot both get past the guard.
"""

import inspect
import logging
from dataclasses import dataclass

from snapmaster.capture_service import CAPTURE_TAB
from snapmaster.config import LOAD_TIMEOUT_MS
from snapmaster.state import (
    CaptureError,
    CaptureRequest,
    CaptureState,
    CaptureStatus,
    ErrorCode,
    error_message,
    saved_message,
    status_message,
)
from snapmaster.tv_interval import SwitchOutcome, get_current_interval, switch_interval
from snapmaster.tv_load import wait_for_load
from snapmaster.tv_selectors import CHART_URL_MARKER
from snapmaster.tv_symbol import resolve_symbol

logger = logging.getLogger(__name__)

STATUS_UPDATE = "STATUS_UPDATE"


def is_tradingview_chart(url: str | None) -> bool:
    return CHART_URL_MARKER in (url or "")


@dataclass
class WorkflowContext:
    busy: bool = False
    request: CaptureRequest | None = None


class StatusBroadcaster:
    """Fire-and-forget STATUS_UPDATE fan-out; observer failures never propagate."""

    def __init__(self):
        self._observers = []

    def subscribe(self, observer):
        self._observers.append(observer)

    def unsubscribe(self, observer):
        if observer in self._observers:
            self._observers.remove(observer)

    async def broadcast(self, status: CaptureStatus, message: str, request: CaptureRequest | None):
        update = {
            "type": STATUS_UPDATE,
            "payload": {
                "status": CaptureStatus(status).value,
                "message": message,
                "request": request.to_dict() if request else None,
            },
        }
        logger.info("status: %s %s", update["payload"]["status"], message)
        for observer in list(self._observers):
            try:
                result = observer(update)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.debug("status observer failed: %s", e)


class CaptureWorkflow:
    def __init__(
        self,
        page,
        capture_service,
        broadcaster: StatusBroadcaster | None = None,
        load_timeout_ms: int = LOAD_TIMEOUT_MS,
        locale: str | None = None,
    ):
        self.page = page
        self.capture_service = capture_service
        self.broadcaster = broadcaster or StatusBroadcaster()
        self.load_timeout_ms = load_timeout_ms
        self.locale = locale
        self.context = WorkflowContext()

    @property
    def busy(self) -> bool:
        return self.context.busy

    async def capture(self, request: CaptureRequest) -> CaptureState:
        if self.context.busy:
            logger.warning("capture %s rejected: another capture is in progress", request.id)
            return await self._state(
                CaptureStatus.ERROR,
                error=CaptureError(ErrorCode.CAPTURE_IN_PROGRESS, locale=self.locale),
            )
        if not is_tradingview_chart(self.page.url):
            return await self._state(
                CaptureStatus.ERROR,
                error=CaptureError(ErrorCode.NOT_TRADINGVIEW, self.page.url, locale=self.locale),
            )

        self.context.busy = True
        self.context.request = request
        logger.info("capture %s started: interval=%s", request.id, request.interval)
        try:
            return await self._run(request)
        except CaptureError as e:
            logger.error("capture %s failed: %s (%s)", request.id, e.code.value, e.details)
            await self._transition(CaptureStatus.ERROR, e.message)
            return await self._state(CaptureStatus.ERROR, request=request, error=e)
        except Exception as e:
            logger.exception("capture %s crashed", request.id)
            err = CaptureError(ErrorCode.UNKNOWN, str(e), locale=self.locale)
            await self._transition(CaptureStatus.ERROR, err.message)
            return await self._state(CaptureStatus.ERROR, request=request, error=err)
        finally:
            self.context.busy = False
            self.context.request = None

    async def _run(self, request: CaptureRequest) -> CaptureState:
        # 1. 時間足切替
        await self._transition(CaptureStatus.SWITCHING)
        outcome = await switch_interval(self.page, request.interval)
        if not outcome:
            raise CaptureError(
                ErrorCode.INTERVAL_SWITCH_FAILED, f"interval={request.interval}", locale=self.locale
            )
        if outcome is SwitchOutcome.UNVERIFIED:
            logger.warning("interval switch to %s sent by keyboard, not verified", request.interval)

        # 2. 読み込み待ち（タイムアウトでも続行）
        await self._transition(CaptureStatus.LOADING)
        if not await wait_for_load(self.page, self.load_timeout_ms):
            logger.warning("chart load exceeded %sms, capturing anyway", self.load_timeout_ms)

        # 3. 銘柄
        symbol = await resolve_symbol(self.page)

        # 4. 撮影
        await self._transition(CaptureStatus.CAPTURING)
        result = await self._request_capture(symbol, request)
        if not result.get("success"):
            err = result.get("error") or {}
            raise CaptureError(
                ErrorCode.CAPTURE_FAILED,
                err.get("details") or err.get("message") or "",
                locale=self.locale,
            )

        filename = result.get("filename")
        await self._transition(CaptureStatus.COMPLETE, saved_message(filename, self.locale))
        return await self._state(
            CaptureStatus.COMPLETE, request=request, symbol=symbol, filename=filename
        )

    async def _request_capture(self, symbol: str, request: CaptureRequest) -> dict:
        message = {
            "type": CAPTURE_TAB,
            "payload": {
                "symbol": symbol,
                "interval": request.interval,
                "timestamp": request.timestamp,
            },
        }
        try:
            return await self.capture_service.handle(message) or {"success": False}
        except Exception as e:
            return {
                "success": False,
                "error": {
                    "code": ErrorCode.CAPTURE_FAILED.value,
                    "message": error_message(ErrorCode.CAPTURE_FAILED, self.locale),
                    "details": str(e),
                },
            }

    async def _transition(self, status: CaptureStatus, message: str | None = None):
        await self.broadcaster.broadcast(
            status, message or status_message(status, self.locale), self.context.request
        )

    async def _state(self, status, request=None, error: CaptureError | None = None, **fields) -> CaptureState:
        try:
            current = await get_current_interval(self.page)
        except Exception:
            current = None
        return CaptureState(
            status=status,
            message=error.message if error else status_message(status, self.locale),
            request=request,
            error=error.to_dict() if error else None,
            current_interval=current,
            **fields,
        )
