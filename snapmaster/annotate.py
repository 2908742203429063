from io import BytesIO

from PIL import Image, ImageDraw, ImageFont


def _font(size=14):
    try:
        return ImageFont.truetype("arial.ttf", size)
    except OSError:
        return ImageFont.load_default()


def _rounded_box(draw, xy, radius, fill):
    (x0, y0, x1, y1) = xy
    r = min(radius, int(min(x1 - x0, y1 - y0) / 2))
    draw.rounded_rectangle(xy, radius=r, fill=fill)


def load_png(data: bytes) -> Image.Image:
    """PNG バイト列を検証して読み込む（空/壊れた画像は例外）。"""
    im = Image.open(BytesIO(data))
    im.load()
    if im.width == 0 or im.height == 0:
        raise ValueError("screenshot is empty")
    return im


def stamp_footer(im: Image.Image, footer: str) -> Image.Image:
    """右下にフッタ（銘柄・時間足・時刻）を焼き込む。"""
    im = im.convert("RGBA")
    W, H = im.size
    draw = ImageDraw.Draw(im, "RGBA")
    font = _font(14)

    tw, th = draw.textlength(footer, font=font), 18
    if W < tw + 40 or H < th + 32:
        return im
    fx1, fy1 = W - int(tw) - 24, H - th - 16
    _rounded_box(draw, (fx1 - 10, fy1 - 6, W - 10, H - 10), 10, (0, 0, 0, 120))
    draw.text((fx1, fy1), footer, fill=(255, 255, 255, 200), font=font)
    return im


def to_png_bytes(im: Image.Image) -> bytes:
    buf = BytesIO()
    im.save(buf, format="PNG")
    return buf.getvalue()
