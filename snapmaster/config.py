import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _viewport_env(name: str, default: str = "1600x900") -> dict:
    raw = os.getenv(name, default)
    try:
        w, h = raw.lower().split("x", 1)
        return {"width": int(w), "height": int(h)}
    except ValueError:
        w, h = default.split("x", 1)
        return {"width": int(w), "height": int(h)}


TV_STORAGE = os.getenv("TV_STORAGE", "storage_state.json")
TV_EMAIL = os.getenv("TV_EMAIL")
TV_PASSWORD = os.getenv("TV_PASSWORD")
CHART_URL = os.getenv("SNAPMASTER_CHART_URL", "https://www.tradingview.com/chart/")
OUTPUT_DIR = os.getenv("SNAPMASTER_OUTPUT_DIR", "screenshots")
HEADLESS = _bool_env("SNAPMASTER_HEADLESS", True)
LOAD_TIMEOUT_MS = _int_env("SNAPMASTER_LOAD_TIMEOUT_MS", 10000)
LOCALE = os.getenv("SNAPMASTER_LOCALE", "en")
STAMP = _bool_env("SNAPMASTER_STAMP", False)
LOG_LEVEL = os.getenv("SNAPMASTER_LOG_LEVEL", "INFO")
VIEWPORT = _viewport_env("SNAPMASTER_VIEWPORT")


def configure_logging(level: str | None = None):
    """stderr only: stdout carries the JSON transport."""
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
