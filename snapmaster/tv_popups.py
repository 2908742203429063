import asyncio
import json
import logging
import time
from contextlib import suppress

from snapmaster.dom import DOM_TIMEOUT_MS, dom_click
from snapmaster.tv_selectors import DIALOGS, DISMISS_CONTROLS

logger = logging.getLogger(__name__)

BINDING = "__snapmasterDomMutated"
INITIAL_DELAY_MS = 1000
COOLDOWN_MS = 1500

# 英/中 + 記号（部分一致）
DISMISS_PATTERNS = [
    "ok", "确定", "好的",
    "close", "关闭",
    "dismiss",
    "cancel", "取消",
    "got it", "知道了",
    "accept", "接受",
    "agree", "同意",
    "continue", "继续",
    "skip", "跳过",
    "not now", "稍后",
    "x", "×",
]

OBSERVER_JS = """
(binding) => {
  if (window.__snapmasterPopupObserver) return false;
  const start = () => {
    const observer = new MutationObserver(() => {
      const notify = window[binding];
      if (typeof notify === 'function') notify().catch(() => {});
    });
    observer.observe(document.body || document.documentElement, { childList: true, subtree: true });
    window.__snapmasterPopupObserver = observer;
  };
  if (document.body) start();
  else document.addEventListener('DOMContentLoaded', start, { once: true });
  return true;
}
"""
DISCONNECT_JS = """
() => {
  if (window.__snapmasterPopupObserver) window.__snapmasterPopupObserver.disconnect();
  delete window.__snapmasterPopupObserver;
}
"""
# ダイアログごとの識別子（クールダウン用）
TAG_JS = """
el => {
  if (!el.dataset.snapmasterKey) {
    window.__snapmasterKeySeq = (window.__snapmasterKeySeq || 0) + 1;
    el.dataset.snapmasterKey = String(window.__snapmasterKeySeq);
  }
  return el.dataset.snapmasterKey;
}
"""


def match_dismiss_phrase(*labels, patterns=DISMISS_PATTERNS) -> str | None:
    lowered = [(label or "").strip().lower() for label in labels]
    for pattern in patterns:
        if any(pattern in label for label in lowered):
            return pattern
    return None


class PopupWatcher:
    """Dismisses dialogs/toasts as they appear, for as long as the page lives."""

    def __init__(
        self,
        page,
        cooldown_ms: int = COOLDOWN_MS,
        initial_delay_ms: int = INITIAL_DELAY_MS,
        clock=time.monotonic,
    ):
        self.page = page
        self.cooldown_ms = cooldown_ms
        self.initial_delay_ms = initial_delay_ms
        self._clock = clock
        self._recent: dict[str, float] = {}
        self._running = False
        self._scanning = False
        self._rescan = False
        self._initial_task: asyncio.Task | None = None
        self.dismissed = 0

    async def start(self):
        await self.page.expose_function(BINDING, self._on_mutation)
        # 遷移後も再設置されるよう init script でも仕込む
        await self.page.add_init_script(f"({OBSERVER_JS})({json.dumps(BINDING)})")
        with suppress(Exception):
            await self.page.evaluate(OBSERVER_JS, BINDING)
        self._running = True
        self._initial_task = asyncio.create_task(self._initial_scan())
        logger.info("popup watcher started")

    async def stop(self):
        self._running = False
        if self._initial_task and not self._initial_task.done():
            self._initial_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._initial_task
        with suppress(Exception):
            await self.page.evaluate(DISCONNECT_JS)

    async def _initial_scan(self):
        try:
            await self.page.wait_for_timeout(self.initial_delay_ms)
        except Exception as e:
            logger.debug("initial popup scan skipped: %s", e)
            return
        await self._on_mutation()

    async def _on_mutation(self):
        if not self._running:
            return
        # 走査中の通知は「もう一度」フラグにまとめる
        if self._scanning:
            self._rescan = True
            return
        self._scanning = True
        try:
            while True:
                self._rescan = False
                try:
                    await self.scan()
                except Exception as e:
                    logger.debug("popup scan failed: %s", e)
                if not (self._rescan and self._running):
                    break
        finally:
            self._scanning = False

    def _prune(self, now: float):
        for key in [k for k, expiry in self._recent.items() if expiry <= now]:
            del self._recent[key]

    async def scan(self) -> int:
        count = 0
        for selector in DIALOGS:
            dialog = self.page.locator(selector).first
            try:
                if not await dialog.is_visible():
                    continue
                if await self.dismiss(dialog):
                    count += 1
            except Exception as e:
                logger.debug("dialog %s skipped: %s", selector, e)
        return count

    async def dismiss(self, dialog) -> bool:
        key = await dialog.evaluate(TAG_JS, timeout=DOM_TIMEOUT_MS)
        now = self._clock()
        self._prune(now)
        if key in self._recent:
            logger.debug("dialog %s dismissed recently, skipping", key)
            return False
        # await を挟む前に予約（重なったバッチでの二重クリック防止）
        self._recent[key] = now + self.cooldown_ms / 1000

        controls = dialog.locator(DISMISS_CONTROLS)
        for i in range(await controls.count()):
            control = controls.nth(i)
            try:
                phrase = match_dismiss_phrase(
                    await control.text_content(timeout=DOM_TIMEOUT_MS),
                    await control.get_attribute("aria-label", timeout=DOM_TIMEOUT_MS),
                    await control.get_attribute("title", timeout=DOM_TIMEOUT_MS),
                )
                if phrase is None:
                    continue
                await dom_click(control)
            except Exception as e:
                logger.debug("dismiss control %s failed: %s", i, e)
                continue
            self.dismissed += 1
            logger.info("auto-dismissed dialog %s (%r)", key, phrase)
            return True

        self._recent.pop(key, None)
        return False
