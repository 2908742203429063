import logging
import os
from datetime import datetime
from pathlib import Path

from snapmaster.annotate import load_png, stamp_footer, to_png_bytes
from snapmaster.config import OUTPUT_DIR, STAMP
from snapmaster.state import ErrorCode, error_message
from snapmaster.tv_symbol import FAILURE_SENTINEL, normalize_symbol

logger = logging.getLogger(__name__)

CAPTURE_TAB = "CAPTURE_TAB"


def sanitize_symbol(symbol) -> str:
    return normalize_symbol(symbol) or FAILURE_SENTINEL


def format_timestamp(dt: datetime) -> str:
    return dt.strftime("%Y%m%d_%H%M%S")


def generate_filename(symbol, interval: str, timestamp_ms: int) -> str:
    """'NASDAQ:AAPL', '4h', 1700000000000 -> 'AAPL_4h_20231114_221320.png'（ローカル時刻）"""
    dt = datetime.fromtimestamp(timestamp_ms / 1000)
    return f"{sanitize_symbol(symbol)}_{interval}_{format_timestamp(dt)}.png"


def unique_path(directory: Path, filename: str) -> Path:
    """同名ファイルがあれば 'name (1).png' のように連番を振る。"""
    path = directory / filename
    n = 1
    while path.exists():
        path = directory / f"{Path(filename).stem} ({n}){Path(filename).suffix}"
        n += 1
    return path


class CaptureService:
    """Takes the viewport screenshot and saves it under ``output_dir``."""

    def __init__(self, page, output_dir: str = OUTPUT_DIR, stamp: bool = STAMP, locale: str | None = None):
        self.page = page
        self.output_dir = Path(output_dir)
        self.stamp = stamp
        self.locale = locale
        self._download_id = 0

    async def handle(self, message: dict) -> dict:
        if message.get("type") != CAPTURE_TAB:
            return self._failure(f"unsupported message: {message.get('type')}")
        payload = message.get("payload") or {}
        try:
            return await self.capture_tab(
                payload["symbol"], payload["interval"], int(payload["timestamp"])
            )
        except Exception as e:
            logger.error("capture failed: %s", e)
            return self._failure(str(e))

    def _failure(self, details: str) -> dict:
        return {
            "success": False,
            "error": {
                "code": ErrorCode.CAPTURE_FAILED.value,
                "message": error_message(ErrorCode.CAPTURE_FAILED, self.locale),
                "details": details,
            },
        }

    async def capture_tab(self, symbol: str, interval: str, timestamp: int) -> dict:
        logger.info("capturing %s %s", symbol, interval)
        data = await self.page.screenshot(type="png")
        im = load_png(data)

        filename = generate_filename(symbol, interval, timestamp)
        if self.stamp:
            taken = datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")
            footer = f"{sanitize_symbol(symbol)}  {interval}  {taken}"
            data = to_png_bytes(stamp_footer(im, footer))

        os.makedirs(self.output_dir, exist_ok=True)
        path = unique_path(self.output_dir, filename)
        path.write_bytes(data)

        self._download_id += 1
        logger.info("saved %s (id=%s)", path, self._download_id)
        return {
            "success": True,
            "filename": path.name,
            "downloadId": self._download_id,
            "path": str(path.resolve()),
        }
