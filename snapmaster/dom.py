import logging
from contextlib import suppress

logger = logging.getLogger(__name__)

# element.click() をページ内で実行（オーバーレイの pointer intercept を回避）
CLICK_JS = "el => { el.click(); return true; }"

# count()/is_visible() の後に要素が消えても Playwright の既定 30s 待ちにしない
DOM_TIMEOUT_MS = 1000


async def dom_click(locator, timeout_ms: int = DOM_TIMEOUT_MS) -> bool:
    """Click by executing element.click() in page context."""
    return bool(await locator.evaluate(CLICK_JS, timeout=timeout_ms))


async def first_present(page, selectors: list[str]):
    """最初に DOM 上に存在するセレクタの locator を返す。"""
    for sel in selectors:
        with suppress(Exception):
            loc = page.locator(sel).first
            if await loc.count():
                return loc
    return None


async def any_visible(page, selectors: list[str]) -> bool:
    for sel in selectors:
        with suppress(Exception):
            if await page.locator(sel).first.is_visible():
                return True
    return False


async def click_matching_text(locator, matches) -> str | None:
    """locator 配下の要素テキストを走査し、matches(text) が真の最初の要素をクリック。"""
    texts = await locator.all_text_contents()
    for i, raw in enumerate(texts):
        text = (raw or "").strip()
        if not text or not matches(text):
            continue
        try:
            await dom_click(locator.nth(i))
            return text
        except Exception as e:
            logger.debug("click failed on %r: %s", text, e)
    return None
