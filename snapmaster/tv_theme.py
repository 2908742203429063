import enum
import logging
import re

from snapmaster.dom import DOM_TIMEOUT_MS
from snapmaster.tv_selectors import CHART_CONTAINER

logger = logging.getLogger(__name__)


class ThemeMode(str, enum.Enum):
    DARK = "dark"
    LIGHT = "light"


THEME_CLASS_PATTERNS = [
    re.compile(r"theme-(dark|light)", re.I),
    re.compile(r"(dark|light)-theme", re.I),
    re.compile(r"tv-theme-(dark|light)", re.I),
]
_RGB = re.compile(r"rgba?\((\d+),\s*(\d+),\s*(\d+)")

LUMA_THRESHOLD = 128
BACKGROUND_JS = "el => getComputedStyle(el).backgroundColor"


def luma(r: int, g: int, b: int) -> float:
    # 0.299R + 0.587G + 0.114B（整数演算で境界値のブレを防ぐ）
    return (r * 299 + g * 587 + b * 114) / 1000


def theme_from_classes(html_classes: str | None, body_classes: str | None) -> ThemeMode | None:
    for pattern in THEME_CLASS_PATTERNS:
        for classes in (html_classes, body_classes):
            for name in (classes or "").split():
                m = pattern.search(name)
                if m:
                    return ThemeMode(m.group(1).lower())
    return None


def theme_from_data_attr(*values) -> ThemeMode | None:
    for value in values:
        if value in ("dark", "light"):
            return ThemeMode(value)
    return None


def theme_from_color(css_color: str | None) -> ThemeMode:
    m = _RGB.search(css_color or "")
    if not m:
        return ThemeMode.DARK
    r, g, b = (int(x) for x in m.groups())
    return ThemeMode.DARK if luma(r, g, b) < LUMA_THRESHOLD else ThemeMode.LIGHT


async def _background_color(page) -> str | None:
    for selector in (CHART_CONTAINER, "body"):
        loc = page.locator(selector).first
        try:
            if await loc.count():
                return await loc.evaluate(BACKGROUND_JS, timeout=DOM_TIMEOUT_MS)
        except Exception as e:
            logger.debug("background lookup failed for %s: %s", selector, e)
    return None


async def _attr(loc, name: str) -> str | None:
    try:
        return await loc.get_attribute(name, timeout=DOM_TIMEOUT_MS)
    except Exception as e:
        logger.debug("attribute %s unavailable: %s", name, e)
        return None


async def detect_theme(page) -> ThemeMode:
    html = page.locator("html")
    body = page.locator("body")

    theme = theme_from_classes(
        await _attr(html, "class"), await _attr(body, "class")
    )
    if theme:
        logger.debug("theme from class list: %s", theme.value)
        return theme

    theme = theme_from_data_attr(
        await _attr(html, "data-theme"), await _attr(body, "data-theme")
    )
    if theme:
        logger.debug("theme from data-theme: %s", theme.value)
        return theme

    color = await _background_color(page)
    theme = theme_from_color(color)
    logger.debug("theme from background %r: %s", color, theme.value)
    return theme
