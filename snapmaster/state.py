import enum
from dataclasses import dataclass

from snapmaster.config import LOCALE


class CaptureStatus(str, enum.Enum):
    IDLE = "idle"
    SWITCHING = "switching"
    LOADING = "loading"
    CAPTURING = "capturing"
    COMPLETE = "complete"
    ERROR = "error"


class ErrorCode(str, enum.Enum):
    NOT_TRADINGVIEW = "NOT_TRADINGVIEW"
    CAPTURE_IN_PROGRESS = "CAPTURE_IN_PROGRESS"
    INTERVAL_SWITCH_FAILED = "INTERVAL_SWITCH_FAILED"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    UNKNOWN = "UNKNOWN"


STATUS_MESSAGES = {
    "en": {
        "idle": "Ready",
        "switching": "Switching interval...",
        "loading": "Waiting for chart to load...",
        "capturing": "Capturing...",
        "complete": "Done!",
        "error": "An error occurred",
    },
    "zh": {
        "idle": "准备就绪",
        "switching": "切换周期中...",
        "loading": "等待图表加载...",
        "capturing": "截图中...",
        "complete": "完成！",
        "error": "发生错误",
    },
}

SAVED_MESSAGES = {
    "en": "Saved: {filename}",
    "zh": "已保存: {filename}",
}

ERROR_MESSAGES = {
    "en": {
        "NOT_TRADINGVIEW": "Please navigate to a TradingView chart page",
        "CAPTURE_IN_PROGRESS": "A capture is already in progress, please wait",
        "INTERVAL_SWITCH_FAILED": "Failed to switch interval",
        "CAPTURE_FAILED": "Capture failed",
        "UNKNOWN": "An unknown error occurred",
    },
    "zh": {
        "NOT_TRADINGVIEW": "请导航到 TradingView 图表页面",
        "CAPTURE_IN_PROGRESS": "截图正在进行中，请稍候",
        "INTERVAL_SWITCH_FAILED": "切换时间周期失败",
        "CAPTURE_FAILED": "截图失败",
        "UNKNOWN": "发生未知错误",
    },
}


def _table(tables: dict, locale: str | None) -> dict:
    return tables.get(locale or LOCALE) or tables["en"]


def status_message(status: CaptureStatus, locale: str | None = None) -> str:
    return _table(STATUS_MESSAGES, locale).get(CaptureStatus(status).value, "")


def saved_message(filename: str, locale: str | None = None) -> str:
    return _table(SAVED_MESSAGES, locale).format(filename=filename)


def error_message(code: ErrorCode, locale: str | None = None) -> str:
    table = _table(ERROR_MESSAGES, locale)
    return table.get(ErrorCode(code).value, table["UNKNOWN"])


class CaptureError(Exception):
    """Workflow failure carrying a stable error code."""

    def __init__(self, code: ErrorCode, details: str = "", locale: str | None = None):
        self.code = ErrorCode(code)
        self.details = details
        super().__init__(error_message(self.code, locale))

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message, "details": self.details}


@dataclass(frozen=True)
class CaptureRequest:
    id: str
    interval: str
    timestamp: int

    @classmethod
    def from_payload(cls, payload: dict) -> "CaptureRequest":
        return cls(
            id=str(payload["id"]),
            interval=str(payload["interval"]),
            timestamp=int(payload["timestamp"]),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "interval": self.interval, "timestamp": self.timestamp}


@dataclass
class CaptureState:
    status: CaptureStatus
    message: str = ""
    request: CaptureRequest | None = None
    error: dict | None = None
    symbol: str | None = None
    current_interval: str | None = None
    filename: str | None = None

    def to_dict(self) -> dict:
        return {
            "status": CaptureStatus(self.status).value,
            "message": self.message,
            "request": self.request.to_dict() if self.request else None,
            "error": self.error,
            "symbol": self.symbol,
            "currentInterval": self.current_interval,
            "filename": self.filename,
        }
