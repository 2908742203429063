import logging
import re
from urllib.parse import parse_qs, unquote, urlsplit

from snapmaster.tv_selectors import SYMBOL_LEGEND

logger = logging.getLogger(__name__)

UNRESOLVED = "unknown"
FAILURE_SENTINEL = "UNKNOWN"
MIN_LEN, MAX_LEN = 2, 20

_FLAGS = re.IGNORECASE | re.ASCII

# タイトル形式: "MBT1! 86,930 ▼ −1.15%" / "BTCUSDT — Chart" / "AAPL ..."
TITLE_PATTERNS = [
    re.compile(r"^([A-Z][A-Z0-9!.]{1,15})(?:\s+[\d,]+|\s+—|\s+▼|\s+▲)", _FLAGS),
    re.compile(r"^([A-Z][A-Z0-9!.]{1,15})\s+—", _FLAGS),
    re.compile(r"^([A-Z][A-Z0-9!.]{1,15})(?:\s|$)", _FLAGS),
]
# 先物 (MBT1!, CL1!) を汎用より先に
FUTURES_PATTERN = re.compile(r"\b([A-Z]{2,5}\d+!)", _FLAGS)
TICKER_PATTERN = re.compile(r"\b([A-Z][A-Z0-9]{1,14})\b", _FLAGS)

URL_SYMBOL_PARAMS = ("symbol", "tvwidgetsymbol")
FRAGMENT_PATTERN = re.compile(r"symbol=([^&]+)")

_LEADING_RUN = re.compile(r"^[A-Z0-9][A-Z0-9_/.\-!]*", _FLAGS)
_SEPARATORS = re.compile(r"[/.\-!]")
_RESIDUE = re.compile(r"[^A-Za-z0-9_]")


def normalize_symbol(raw) -> str | None:
    """'BINANCE:BTCUSDT' -> 'BTCUSDT', 'BTC/USDT' -> 'BTC_USDT', 'MBT1!' -> 'MBT1'."""
    if not raw or not isinstance(raw, str):
        return None
    cleaned = raw.split(":")[-1].strip()
    m = _LEADING_RUN.match(cleaned)
    if m:
        cleaned = m.group(0)
    cleaned = _SEPARATORS.sub("_", cleaned)
    cleaned = _RESIDUE.sub("", cleaned)
    cleaned = cleaned.strip("_").upper()
    return cleaned or None


def _accept(raw) -> str | None:
    cleaned = normalize_symbol(raw)
    if not cleaned or cleaned == FAILURE_SENTINEL:
        return None
    if not MIN_LEN <= len(cleaned) <= MAX_LEN:
        return None
    return cleaned


def symbol_from_title(title: str) -> str | None:
    for pattern in TITLE_PATTERNS:
        m = pattern.match(title or "")
        if m:
            found = _accept(m.group(1).strip())
            if found:
                return found
    return None


def symbol_from_legend(texts) -> str | None:
    for raw in texts:
        text = (raw or "").strip()
        if len(text) < 2 or len(text) > 30:
            continue
        for pattern in (FUTURES_PATTERN, TICKER_PATTERN):
            m = pattern.search(text)
            if m:
                found = _accept(m.group(1))
                if found:
                    return found
    return None


def symbol_from_query(url: str) -> str | None:
    params = parse_qs(urlsplit(url or "").query)
    for name in URL_SYMBOL_PARAMS:
        values = params.get(name)
        if values:
            return _accept(values[0])
    return None


def symbol_from_fragment(url: str) -> str | None:
    m = FRAGMENT_PATTERN.search(urlsplit(url or "").fragment)
    if m:
        return _accept(unquote(m.group(1)))
    return None


async def _title_strategy(page):
    return symbol_from_title(await page.title())


async def _legend_strategy(page):
    texts = await page.locator(", ".join(SYMBOL_LEGEND)).all_text_contents()
    return symbol_from_legend(texts)


async def _query_strategy(page):
    return symbol_from_query(page.url)


async def _fragment_strategy(page):
    return symbol_from_fragment(page.url)


SYMBOL_STRATEGIES = (
    ("page_title", _title_strategy),
    ("legend", _legend_strategy),
    ("url_query", _query_strategy),
    ("url_fragment", _fragment_strategy),
)


async def resolve_symbol(page, strategies=SYMBOL_STRATEGIES) -> str:
    """先頭から順に試し、最初に取れた銘柄を返す。全滅なら 'unknown'。"""
    for name, strategy in strategies:
        try:
            found = await strategy(page)
        except Exception as e:
            logger.debug("symbol strategy %s raised: %s", name, e)
            continue
        if found:
            logger.info("symbol resolved via %s: %s", name, found)
            return found
        logger.debug("symbol strategy %s: no match", name)
    logger.warning("all symbol strategies failed, url=%s", page.url)
    return UNRESOLVED
