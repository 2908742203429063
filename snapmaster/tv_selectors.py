from snapmaster.config import CHART_URL

# TradingViewのチャートページ判定
CHART_URL_MARKER = "tradingview.com/chart"

# ----- 銘柄（Legend） -----
SYMBOL_LEGEND = [
    "[data-name='legend-source-title']",
    "[class*='symbol']",
    "[class*='legend']",
]

# ----- 時間足 -----
# 優先順: data属性 > aria > class
ACTIVE_INTERVAL = [
    "[data-active='true'][data-name*='interval']",
    "button[aria-pressed='true'][class*='interval']",
    "button[class*='active'][class*='interval']",
    "[data-name='time-interval-menu'] [class*='active']",
]


def INTERVAL_BY_DATA(tf: str):
    return f"[data-name='{tf}'], [data-value='{tf}']"


def INTERVAL_BY_LABEL(tf: str):
    # i フラグで大文字小文字を無視、念のため大文字版も
    return f"[aria-label*='{tf}' i], [aria-label*='{tf.upper()}']"


CLICKABLE = "button, [role='button']"

INTERVAL_DROPDOWN = (
    "[data-name='time-interval-menu'], "
    "[aria-label*='时间周期'], "
    "[aria-label*='interval' i]"
)
INTERVAL_MENU_ITEMS = (
    "[role='menu'] button, "
    "[role='menuitem'], "
    "[role='listbox'] [role='option'], "
    "[class*='menu'] button"
)

# ----- 読み込み中インジケーター -----
LOADING_INDICATORS = [
    ".tv-spinner",
    "[class*='spinner']",
    "[class*='loading']",
    "[class*='loader']",
    "[data-loading='true']",
]

# チャート canvas（具体的な順）
CHART_CANVAS = [
    "canvas.chart-markup-table",
    "canvas[class*='chart']",
    "canvas",
]

# ----- テーマ -----
CHART_CONTAINER = ".chart-container, [class*='chart']"

# ----- ポップアップ / ダイアログ -----
DIALOGS = [
    "[data-dialog-name]",
    "[role='dialog']",
    "[class*='dialog']",
    "[class*='modal']",
    "[class*='popup']",
    "[class*='overlay']",
    ".tv-dialog",
    ".tv-toast",
    "#tv-toasts",
]
DISMISS_CONTROLS = (
    "button, [role='button'], a.close, .close-button, [class*='close']"
)

__all__ = [
    "CHART_URL",
    "CHART_URL_MARKER",
    "SYMBOL_LEGEND",
    "ACTIVE_INTERVAL",
    "INTERVAL_BY_DATA",
    "INTERVAL_BY_LABEL",
    "CLICKABLE",
    "INTERVAL_DROPDOWN",
    "INTERVAL_MENU_ITEMS",
    "LOADING_INDICATORS",
    "CHART_CANVAS",
    "CHART_CONTAINER",
    "DIALOGS",
    "DISMISS_CONTROLS",
]
