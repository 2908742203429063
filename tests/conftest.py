"""Shared fixtures: an in-memory stand-in for the Playwright Page surface the resolvers touch."""

import asyncio
from io import BytesIO

import pytest
from PIL import Image

from snapmaster.dom import CLICK_JS
from snapmaster.tv_popups import TAG_JS

TV_URL = "https://www.tradingview.com/chart/aBcD1234/?symbol=BINANCE%3ABTCUSDT"


def png_bytes(size=(400, 240), color=(19, 23, 34)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class FakeElement:
    def __init__(self, text="", attrs=None, visible=True, children=None, scripts=None, key=None, on_click=None):
        self.text = text
        self.attrs = attrs or {}
        self.visible = visible
        self.children = children or {}
        self.scripts = scripts or {}
        self.key = key
        self.on_click = on_click
        self.clicks = 0
        self.timeouts = []

    def click(self):
        self.clicks += 1
        if self.on_click:
            self.on_click()


class FakeLocator:
    def __init__(self, elements):
        self._elements = list(elements)

    def _one(self) -> FakeElement:
        if not self._elements:
            raise RuntimeError("no element matches locator")
        return self._elements[0]

    @property
    def first(self):
        return FakeLocator(self._elements[:1])

    def nth(self, i):
        return FakeLocator(self._elements[i:i + 1])

    def locator(self, selector):
        return FakeLocator(c for e in self._elements for c in e.children.get(selector, []))

    async def count(self):
        return len(self._elements)

    def _waiting(self, timeout) -> FakeElement:
        el = self._one()
        el.timeouts.append(timeout)
        return el

    async def text_content(self, timeout=None):
        return self._waiting(timeout).text

    async def all_text_contents(self):
        return [e.text for e in self._elements]

    async def get_attribute(self, name, timeout=None):
        if not self._elements:
            return None
        return self._waiting(timeout).attrs.get(name)

    async def is_visible(self):
        return bool(self._elements) and self._elements[0].visible

    async def click(self, **kwargs):
        self._one().click()

    async def evaluate(self, script, arg=None, timeout=None):
        el = self._waiting(timeout)
        if script == CLICK_JS:
            el.click()
            return True
        if script == TAG_JS:
            return el.key
        return el.scripts.get(script)


class FakeKeyboard:
    def __init__(self):
        self.pressed = []

    async def press(self, key):
        self.pressed.append(key)


class FakePage:
    def __init__(self, url=TV_URL, title=""):
        self.url = url
        self._title = title
        self.elements = {}
        self.keyboard = FakeKeyboard()
        self.waited = []
        self.evaluated = []
        self.exposed = {}
        self.init_scripts = []
        self.screenshot_bytes = png_bytes()
        self._scripts = {}

    def add(self, selector, *elements):
        self.elements.setdefault(selector, []).extend(elements)
        return elements[0] if len(elements) == 1 else elements

    def on_evaluate(self, script, result):
        """result は値、または arg を受け取る関数。"""
        self._scripts[script] = result

    async def title(self):
        return self._title

    def locator(self, selector):
        return FakeLocator(self.elements.get(selector, []))

    async def evaluate(self, script, arg=None):
        self.evaluated.append(script)
        result = self._scripts.get(script)
        return result(arg) if callable(result) else result

    async def wait_for_timeout(self, ms):
        self.waited.append(ms)
        await asyncio.sleep(0)

    async def screenshot(self, **kwargs):
        if isinstance(self.screenshot_bytes, Exception):
            raise self.screenshot_bytes
        return self.screenshot_bytes

    async def expose_function(self, name, fn):
        self.exposed[name] = fn

    async def add_init_script(self, script):
        self.init_scripts.append(script)


@pytest.fixture()
def page():
    return FakePage(title="BTCUSDT 43,120 ▲ +1.20% Unnamed")
