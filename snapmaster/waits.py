"""DOM mutation subscriptions for the load and popup watchers.

A predicate (JS source of ``(arg) => bool``) is wrapped in a MutationObserver
inside the page.  The promise always settles: either the predicate became true
or the timer expired.  Expiry is reported as an outcome, not an exception, so
callers can tell "settled" apart from "gave up".
"""

import enum
import logging

logger = logging.getLogger(__name__)

_SUBSCRIBE_TEMPLATE = """
(params) => new Promise((resolve) => {
  const check = %s;
  const target = document.body || document.documentElement;
  if (check(params.arg)) { resolve('satisfied'); return; }
  let timer = null;
  const observer = new MutationObserver(() => {
    if (check(params.arg)) {
      observer.disconnect();
      clearTimeout(timer);
      resolve('satisfied');
    }
  });
  observer.observe(target, params.options);
  timer = setTimeout(() => { observer.disconnect(); resolve('timed_out'); }, params.timeoutMs);
})
"""

SUBTREE_OPTIONS = {
    "childList": True,
    "subtree": True,
    "attributes": True,
    "attributeFilter": ["class", "style"],
}


class WaitOutcome(enum.Enum):
    SATISFIED = "satisfied"
    TIMED_OUT = "timed_out"

    def __bool__(self):
        return self is WaitOutcome.SATISFIED


def subscription_script(predicate_js: str) -> str:
    return _SUBSCRIBE_TEMPLATE % predicate_js.strip()


async def wait_for_dom(
    page, predicate_js: str, arg=None, timeout_ms: int = 5000, options: dict | None = None
) -> WaitOutcome:
    """Resolve once ``predicate_js`` holds, re-checked on every mutation batch."""
    params = {
        "arg": arg,
        "timeoutMs": timeout_ms,
        "options": options or SUBTREE_OPTIONS,
    }
    result = await page.evaluate(subscription_script(predicate_js), params)
    outcome = WaitOutcome(result)
    if outcome is WaitOutcome.TIMED_OUT:
        logger.debug("dom subscription timed out after %sms", timeout_ms)
    return outcome
