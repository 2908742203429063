"""Log in to TradingView once and save the Playwright storage state.

  python -m snapmaster.login            # TV_EMAIL / TV_PASSWORD from .env, else manual login
  python -m snapmaster.login --manual   # always sign in by hand (2FA etc.)
"""

import asyncio
import argparse
import logging
import os

from playwright.async_api import async_playwright

from snapmaster import config

logger = logging.getLogger(__name__)

TV_URL = "https://www.tradingview.com/"


async def sign_in(page, email: str, password: str):
    # 画面右上のログイン → "Email" を選ぶ（UI変更に合わせて調整）
    await page.get_by_role("button", name="Log in").click()
    await page.get_by_role("button", name="Email").click()

    await page.get_by_placeholder("Email").fill(email)
    await page.get_by_placeholder("Password").fill(password)
    await page.get_by_role("button", name="Sign in").click()
    await page.wait_for_load_state("networkidle")


async def save_storage(ctx, path: str) -> str:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    await ctx.storage_state(path=path)
    logger.info("saved storage state to %s", path)
    return path


async def main(argv=None):
    ap = argparse.ArgumentParser(description="Save a logged-in TradingView storage state")
    ap.add_argument("--manual", action="store_true", help="sign in by hand in the opened window")
    ap.add_argument("--storage", default=config.TV_STORAGE)
    ns = ap.parse_args(argv)
    config.configure_logging()

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=False)  # ログインは常にヘッドフル
        ctx = await browser.new_context()
        page = await ctx.new_page()
        await page.goto(TV_URL, wait_until="domcontentloaded")

        if config.TV_EMAIL and config.TV_PASSWORD and not ns.manual:
            await sign_in(page, config.TV_EMAIL, config.TV_PASSWORD)
        else:
            # 2FA などは手動で
            await asyncio.to_thread(input, "Log in in the browser window, then press Enter here... ")

        await save_storage(ctx, ns.storage)
        await browser.close()


if __name__ == "__main__":
    asyncio.run(main())
