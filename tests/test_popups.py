import asyncio

import pytest

from snapmaster.dom import DOM_TIMEOUT_MS
from snapmaster.tv_popups import (
    BINDING,
    DISCONNECT_JS,
    OBSERVER_JS,
    PopupWatcher,
    match_dismiss_phrase,
)
from snapmaster.tv_selectors import DISMISS_CONTROLS
from tests.conftest import FakeElement, FakePage


class Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def dialog_with(*controls, key="1", visible=True):
    return FakeElement(key=key, visible=visible, children={DISMISS_CONTROLS: list(controls)})


@pytest.mark.parametrize(
    "labels, expected",
    [
        (("Got it", None, None), "got it"),
        (("", "Close dialog", None), "close"),
        (("", None, "关闭"), "关闭"),
        (("×", None, None), "×"),
        (("Upgrade plan", "", ""), None),
    ],
)
def test_match_dismiss_phrase(labels, expected):
    assert match_dismiss_phrase(*labels) == expected


async def test_scan_clicks_first_matching_control():
    page = FakePage()
    upsell = FakeElement("Upgrade plan")
    got_it = FakeElement("Got it")
    page.add("[role='dialog']", dialog_with(upsell, got_it))

    watcher = PopupWatcher(page)
    assert await watcher.scan() == 1
    assert (upsell.clicks, got_it.clicks) == (0, 1)


async def test_hidden_dialog_is_ignored():
    page = FakePage()
    button = FakeElement("OK")
    page.add(".tv-toast", dialog_with(button, visible=False))

    assert await PopupWatcher(page).scan() == 0
    assert button.clicks == 0


async def test_cooldown_blocks_duplicate_dismissal():
    page = FakePage()
    clock = Clock()
    button = FakeElement("", attrs={"aria-label": "Dismiss"})
    page.add("[data-dialog-name]", dialog_with(button, key="7"))
    watcher = PopupWatcher(page, cooldown_ms=1500, clock=clock)

    await watcher.scan()
    await watcher.scan()
    assert button.clicks == 1

    clock.now += 2.0
    await watcher.scan()
    assert button.clicks == 2


async def test_dialog_without_match_is_not_held_in_cooldown():
    page = FakePage()
    clock = Clock()
    dialog = dialog_with(FakeElement("Learn"), key="3")
    page.add("[role='dialog']", dialog)
    watcher = PopupWatcher(page, clock=clock)

    assert await watcher.scan() == 0
    dialog.children[DISMISS_CONTROLS].append(FakeElement("Not now"))
    assert await watcher.scan() == 1


async def test_start_wires_mutation_binding_and_initial_scan():
    page = FakePage()
    button = FakeElement("Continue")
    page.add("[class*='modal']", dialog_with(button))
    watcher = PopupWatcher(page, initial_delay_ms=1000)

    await watcher.start()
    assert BINDING in page.exposed
    assert OBSERVER_JS.strip() in page.init_scripts[0]
    await watcher._initial_task
    assert page.waited == [1000]
    assert button.clicks == 1

    # 新しいダイアログ → mutation 通知
    other = FakeElement("确定")
    page.add("[role='dialog']", dialog_with(other, key="2"))
    await page.exposed[BINDING]()
    assert other.clicks == 1

    await watcher.stop()
    assert DISCONNECT_JS in page.evaluated
    await page.exposed[BINDING]()
    assert watcher.dismissed == 2


async def test_mutation_burst_coalesces_into_one_rescan():
    page = FakePage()
    watcher = PopupWatcher(page)
    await watcher.start()
    await watcher._initial_task

    calls = []
    gate = asyncio.Event()

    async def slow_scan():
        calls.append(len(calls))
        await gate.wait()
        return 0

    watcher.scan = slow_scan
    burst = [asyncio.create_task(page.exposed[BINDING]()) for _ in range(5)]
    for _ in range(3):
        await asyncio.sleep(0)
    assert len(calls) == 1

    gate.set()
    await asyncio.gather(*burst)
    assert len(calls) == 2

    await page.exposed[BINDING]()
    assert len(calls) == 3


async def test_initial_scan_failure_is_contained():
    page = FakePage()

    async def closed(ms):
        raise RuntimeError("Target page, context or browser has been closed")

    page.wait_for_timeout = closed
    watcher = PopupWatcher(page)
    await watcher.start()
    await watcher._initial_task
    assert watcher._initial_task.exception() is None
    await watcher.stop()


async def test_dismiss_reads_use_short_timeouts():
    page = FakePage()
    button = FakeElement("Got it")
    dialog = dialog_with(button)
    page.add("[role='dialog']", dialog)

    await PopupWatcher(page).scan()
    assert dialog.timeouts == [DOM_TIMEOUT_MS]
    assert button.timeouts and set(button.timeouts) == {DOM_TIMEOUT_MS}
