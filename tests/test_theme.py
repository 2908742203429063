import pytest

from snapmaster.dom import DOM_TIMEOUT_MS
from snapmaster.tv_selectors import CHART_CONTAINER
from snapmaster.tv_theme import (
    BACKGROUND_JS,
    ThemeMode,
    detect_theme,
    luma,
    theme_from_classes,
    theme_from_color,
)
from tests.conftest import FakeElement, FakePage


def test_luma_boundary():
    assert luma(127, 127, 127) == 127
    assert luma(128, 128, 128) == 128
    assert theme_from_color("rgb(127, 127, 127)") is ThemeMode.DARK
    assert theme_from_color("rgb(128, 128, 128)") is ThemeMode.LIGHT


@pytest.mark.parametrize(
    "color, expected",
    [
        ("rgb(19, 23, 34)", ThemeMode.DARK),
        ("rgba(255, 255, 255, 1)", ThemeMode.LIGHT),
        ("transparent", ThemeMode.DARK),
        (None, ThemeMode.DARK),
    ],
)
def test_theme_from_color(color, expected):
    assert theme_from_color(color) is expected


def test_theme_from_classes_order():
    assert theme_from_classes("foo theme-light", "theme-dark") is ThemeMode.LIGHT
    assert theme_from_classes("is-authenticated", "Dark-Theme") is ThemeMode.DARK
    assert theme_from_classes("", None) is None


async def test_detect_theme_prefers_class_list():
    page = FakePage()
    page.add("html", FakeElement(attrs={"class": "tv-theme-light", "data-theme": "dark"}))
    assert await detect_theme(page) is ThemeMode.LIGHT


async def test_detect_theme_data_attribute():
    page = FakePage()
    page.add("html", FakeElement(attrs={"class": "feature-x"}))
    page.add("body", FakeElement(attrs={"data-theme": "light"}))
    assert await detect_theme(page) is ThemeMode.LIGHT


async def test_detect_theme_ignores_unexpected_data_theme_and_reads_background():
    page = FakePage()
    page.add("html", FakeElement(attrs={"data-theme": "Dark"}))
    page.add(CHART_CONTAINER, FakeElement(scripts={BACKGROUND_JS: "rgb(255, 255, 255)"}))
    assert await detect_theme(page) is ThemeMode.LIGHT


async def test_detect_theme_defaults_to_dark():
    assert await detect_theme(FakePage()) is ThemeMode.DARK


async def test_detect_theme_bounds_attribute_reads():
    page = FakePage()
    html = page.add("html", FakeElement(attrs={"class": "feature-x"}))
    container = page.add(CHART_CONTAINER, FakeElement(scripts={BACKGROUND_JS: "rgb(0, 0, 0)"}))
    assert await detect_theme(page) is ThemeMode.DARK
    assert set(html.timeouts) == {DOM_TIMEOUT_MS}
    assert container.timeouts == [DOM_TIMEOUT_MS]


async def test_detect_theme_treats_failing_attribute_read_as_missing():
    class Detached:
        @property
        def first(self):
            return self

        async def count(self):
            return 0

        async def get_attribute(self, name, timeout=None):
            raise RuntimeError("Timeout 1000ms exceeded")

    page = FakePage()
    page.locator = lambda selector: Detached()
    assert await detect_theme(page) is ThemeMode.DARK
