import logging
import os

from playwright.async_api import async_playwright
from tenacity import retry, stop_after_attempt, wait_fixed

from snapmaster import config
from snapmaster.capture_service import CaptureService
from snapmaster.messages import MessageRouter
from snapmaster.tv_popups import PopupWatcher
from snapmaster.workflow import CaptureWorkflow, StatusBroadcaster

logger = logging.getLogger(__name__)


@retry(stop=stop_after_attempt(2), wait=wait_fixed(2))
async def ensure_chart_ready(page):
    # 1) DOM, 2) main canvas visible, 3) 軽い遅延
    await page.wait_for_load_state("domcontentloaded")
    await page.locator("canvas").first.wait_for(state="visible", timeout=20000)
    await page.wait_for_timeout(600)


class ChartSession:
    """Chromium + TradingView chart page with the watcher, workflow and router wired up.

    async with ChartSession() as s:
        state = await s.router.dispatch({"type": "CAPTURE", "payload": {...}})
    """

    def __init__(
        self,
        url: str = config.CHART_URL,
        headless: bool = config.HEADLESS,
        storage: str = config.TV_STORAGE,
        output_dir: str = config.OUTPUT_DIR,
        stamp: bool = config.STAMP,
        locale: str | None = None,
    ):
        self.url = url
        self.headless = headless
        self.storage = storage
        self.output_dir = output_dir
        self.stamp = stamp
        self.locale = locale
        self._pw = None
        self.browser = None
        self.page = None
        self.watcher = None
        self.broadcaster = StatusBroadcaster()
        self.workflow = None
        self.router = None

    async def __aenter__(self):
        self._pw = await async_playwright().start()
        # デバッグ快適化：ヘッドフル時はslow_mo追加
        options = {"headless": self.headless}
        if not self.headless:
            options["slow_mo"] = 150
        self.browser = await self._pw.chromium.launch(**options)
        context = await self.browser.new_context(
            storage_state=self.storage if os.path.exists(self.storage) else None,
            viewport=config.VIEWPORT,
        )
        self.page = await context.new_page()

        # ポップアップ監視は遷移前に仕込む（init script を効かせる）
        self.watcher = PopupWatcher(self.page)
        await self.watcher.start()

        logger.info("opening %s", self.url)
        await self.page.goto(self.url, wait_until="domcontentloaded", timeout=60000)
        try:
            await ensure_chart_ready(self.page)
        except Exception as e:
            logger.warning("chart canvas not ready, continuing: %s", e)

        capture_service = CaptureService(
            self.page, output_dir=self.output_dir, stamp=self.stamp, locale=self.locale
        )
        self.workflow = CaptureWorkflow(
            self.page, capture_service, self.broadcaster, locale=self.locale
        )
        self.router = MessageRouter(self.page, self.workflow)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        try:
            if self.watcher:
                await self.watcher.stop()
            if self.browser:
                await self.browser.close()
        finally:
            if self._pw:
                await self._pw.stop()
