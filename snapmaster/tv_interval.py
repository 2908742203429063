import enum
import logging
import re
from contextlib import suppress

from snapmaster import tv_selectors as sel
from snapmaster.dom import DOM_TIMEOUT_MS, click_matching_text, dom_click, first_present

logger = logging.getLogger(__name__)

INTERVALS = ("1m", "5m", "15m", "1h", "4h", "1D", "1W")

# TradingView のホットキー入力（数字 + Enter）
KEYBOARD_INPUT = {
    "1m": "1",
    "5m": "5",
    "15m": "15",
    "1h": "60",
    "4h": "240",
    "1D": "1D",
    "1W": "1W",
}

# 表記ゆれ -> 正規の時間足（英/中/日 UI）
_ALIASES = {
    "1m": ["1", "1m", "1min", "1 min", "1 minute", "1分", "1分钟", "1分足"],
    "5m": ["5", "5m", "5min", "5 min", "5 minutes", "5分", "5分钟", "5分足"],
    "15m": ["15", "15m", "15min", "15 min", "15 minutes", "15分", "15分钟", "15分足"],
    "1h": ["60", "1h", "60m", "1 hour", "1小时", "1時間", "1時間足"],
    "4h": ["240", "4h", "240m", "4 hours", "4小时", "4時間", "4時間足"],
    "1D": ["d", "1d", "1 day", "日", "1日", "日足"],
    "1W": ["w", "1w", "1 week", "周", "1周", "週", "1週", "週足"],
}
INTERVAL_LOOKUP = {alias: canon for canon, aliases in _ALIASES.items() for alias in aliases}

_URL_INTERVAL = re.compile(r"interval=(\w+)", re.ASCII)
_WS = re.compile(r"\s+")

DROPDOWN_SETTLE_MS = 200
KEY_DELAY_MS = 50
ENTER_DELAY_MS = 100


class SwitchOutcome(enum.Enum):
    ALREADY_ACTIVE = "already_active"
    CONFIRMED = "confirmed"
    # キーボード入力は結果を検証できない
    UNVERIFIED = "unverified"
    FAILED = "failed"

    def __bool__(self):
        return self is not SwitchOutcome.FAILED


def normalize_interval(text) -> str | None:
    if not text or not isinstance(text, str):
        return None
    key = _WS.sub(" ", text.strip().lower())
    return INTERVAL_LOOKUP.get(key)


def _matches(target: str):
    return lambda text: text == target or normalize_interval(text) == target


async def get_current_interval(page) -> str | None:
    for selector in sel.ACTIVE_INTERVAL:
        try:
            loc = page.locator(selector).first
            if not await loc.count():
                continue
            found = normalize_interval(await loc.text_content(timeout=DOM_TIMEOUT_MS))
        except Exception:
            continue
        if found:
            return found

    m = _URL_INTERVAL.search(page.url or "")
    if m:
        return normalize_interval(m.group(1))
    return None


async def _by_data_attribute(page, target):
    loc = page.locator(sel.INTERVAL_BY_DATA(target)).first
    if await loc.count():
        return await dom_click(loc)
    return False


async def _by_aria_label(page, target):
    loc = page.locator(sel.INTERVAL_BY_LABEL(target)).first
    if await loc.count():
        return await dom_click(loc)
    return False


async def _by_button_text(page, target):
    return bool(await click_matching_text(page.locator(sel.CLICKABLE), _matches(target)))


async def _by_dropdown(page, target):
    trigger = await first_present(page, [sel.INTERVAL_DROPDOWN])
    if trigger is None:
        return False
    await dom_click(trigger)
    await page.wait_for_timeout(DROPDOWN_SETTLE_MS)
    return bool(await click_matching_text(page.locator(sel.INTERVAL_MENU_ITEMS), _matches(target)))


SWITCH_STRATEGIES = (
    ("data_attribute", _by_data_attribute),
    ("aria_label", _by_aria_label),
    ("button_text", _by_button_text),
    ("dropdown", _by_dropdown),
)


async def switch_by_keyboard(page, target: str):
    """Type the hotkey sequence for ``target`` into the chart; the result is never verified."""
    with suppress(Exception):
        await page.locator("canvas").first.click(force=True, timeout=1500)
        await page.wait_for_timeout(ENTER_DELAY_MS)

    for ch in KEYBOARD_INPUT.get(target, target):
        # press = keydown/keypress/keyup
        await page.keyboard.press(ch)
        await page.wait_for_timeout(KEY_DELAY_MS)

    await page.wait_for_timeout(ENTER_DELAY_MS)
    await page.keyboard.press("Enter")


async def switch_interval(page, target: str) -> SwitchOutcome:
    if target not in INTERVALS:
        logger.error("unsupported interval: %r", target)
        return SwitchOutcome.FAILED

    current = await get_current_interval(page)
    if current == target:
        logger.info("interval already %s, skipping switch", target)
        return SwitchOutcome.ALREADY_ACTIVE

    for name, strategy in SWITCH_STRATEGIES:
        try:
            if await strategy(page, target):
                logger.info("interval switched to %s via %s", target, name)
                return SwitchOutcome.CONFIRMED
        except Exception as e:
            logger.debug("switch strategy %s raised: %s", name, e)

    logger.warning("falling back to keyboard input for interval %s", target)
    try:
        await switch_by_keyboard(page, target)
    except Exception as e:
        logger.error("keyboard interval switch failed: %s", e)
        return SwitchOutcome.FAILED
    return SwitchOutcome.UNVERIFIED
