import logging
import time
from contextlib import suppress

from snapmaster.config import LOAD_TIMEOUT_MS
from snapmaster.dom import any_visible
from snapmaster.tv_selectors import CHART_CANVAS, LOADING_INDICATORS
from snapmaster.waits import WaitOutcome, wait_for_dom

logger = logging.getLogger(__name__)

INDICATOR_CAP_MS = 5000
STABLE_MS = 1000
CANVAS_CAP_MS = 10000
POLL_MS = 100
CAPTURE_BUFFER_MS = 500

NO_LOADING_JS = """
(selectors) => !selectors.some((s) => {
  const el = document.querySelector(s);
  if (!el) return false;
  const style = getComputedStyle(el);
  return style.display !== 'none' && style.visibility !== 'hidden'
    && style.opacity !== '0' && el.offsetParent !== null;
})
"""

CANVAS_WATCH_JS = """
(selectors) => {
  let canvas = null;
  for (const s of selectors) { canvas = document.querySelector(s); if (canvas) break; }
  if (!canvas) return false;
  if (window.__snapmasterCanvasObserver) window.__snapmasterCanvasObserver.disconnect();
  window.__snapmasterCanvasChangedAt = Date.now();
  const observer = new MutationObserver(() => { window.__snapmasterCanvasChangedAt = Date.now(); });
  observer.observe(canvas, { attributes: true, attributeFilter: ['width', 'height', 'style'] });
  window.__snapmasterCanvasObserver = observer;
  return true;
}
"""
CANVAS_QUIET_JS = "() => Date.now() - (window.__snapmasterCanvasChangedAt || 0)"
CANVAS_UNWATCH_JS = """
() => {
  if (window.__snapmasterCanvasObserver) window.__snapmasterCanvasObserver.disconnect();
  delete window.__snapmasterCanvasObserver;
  delete window.__snapmasterCanvasChangedAt;
}
"""


async def has_loading_indicator(page) -> bool:
    return await any_visible(page, LOADING_INDICATORS)


async def wait_for_indicators_gone(page, cap_ms: int = INDICATOR_CAP_MS) -> WaitOutcome:
    if not await has_loading_indicator(page):
        return WaitOutcome.SATISFIED
    try:
        return await wait_for_dom(page, NO_LOADING_JS, LOADING_INDICATORS, timeout_ms=cap_ms)
    except Exception as e:
        # ナビゲーション等で context が消えた場合もフェーズ終了扱い
        logger.warning("loading indicator wait aborted: %s", e)
        return WaitOutcome.TIMED_OUT


async def wait_for_canvas_stable(
    page, stable_ms: int = STABLE_MS, cap_ms: int = CANVAS_CAP_MS, poll_ms: int = POLL_MS
) -> WaitOutcome:
    """width/height/style の変化が stable_ms 止まるまで待つ。canvas が無ければ即 SATISFIED。"""
    try:
        watching = await page.evaluate(CANVAS_WATCH_JS, CHART_CANVAS)
    except Exception as e:
        logger.warning("canvas watch failed, skipping stability wait: %s", e)
        return WaitOutcome.SATISFIED
    if not watching:
        logger.debug("no chart canvas found, skipping stability wait")
        return WaitOutcome.SATISFIED
    try:
        for _ in range(max(1, cap_ms // poll_ms)):
            quiet_ms = await page.evaluate(CANVAS_QUIET_JS)
            if quiet_ms >= stable_ms:
                return WaitOutcome.SATISFIED
            await page.wait_for_timeout(poll_ms)
        return WaitOutcome.TIMED_OUT
    except Exception as e:
        logger.warning("canvas stability check aborted: %s", e)
        return WaitOutcome.SATISFIED
    finally:
        with suppress(Exception):
            await page.evaluate(CANVAS_UNWATCH_JS)


async def wait_for_load(page, timeout_ms: int = LOAD_TIMEOUT_MS) -> bool:
    """Wait for the chart to settle.

    The return value only says whether the whole wait fit inside ``timeout_ms``;
    every phase always finishes, so callers treat ``False`` as a warning.
    """
    start = time.monotonic()

    # 1) ローディング表示が消えるまで
    if not await wait_for_indicators_gone(page):
        logger.warning("loading indicator still visible after %sms", INDICATOR_CAP_MS)

    # 2) canvas 安定（上限超過でも成功扱い）
    if not await wait_for_canvas_stable(page):
        logger.info("canvas kept changing for %sms, continuing", CANVAS_CAP_MS)

    # 3) 追加バッファ
    await page.wait_for_timeout(CAPTURE_BUFFER_MS)

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.info("chart load wait finished in %sms", elapsed_ms)
    return elapsed_ms < timeout_ms
