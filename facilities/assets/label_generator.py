"""
Printable barcode labels rendered locally
Uses PIL/Pillow and python-barcode (Code128)
"""
import base64
import io
import logging
from typing import Optional

import barcode
from barcode.writer import ImageWriter
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 30
MAX_LINE_LENGTH = 40


def _load_fonts():
    """Return (title, body, small) fonts, falling back to Pillow's default"""
    for bold_path, regular_path in (
        ('/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf', '/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf'),
        ('arialbd.ttf', 'arial.ttf'),
    ):
        try:
            return (
                ImageFont.truetype(bold_path, 16),
                ImageFont.truetype(regular_path, 13),
                ImageFont.truetype(regular_path, 11),
            )
        except (OSError, IOError):
            continue
    default = ImageFont.load_default()
    return default, default, default


def _truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + '...'
    return text


def _draw_centered(draw, y, text, font, width):
    bbox = draw.textbbox((0, 0), text, font=font)
    draw.text(((width - (bbox[2] - bbox[0])) // 2, y), text, fill='black', font=font)
    return bbox[3] - bbox[1]


def render_code128(value: str) -> Image.Image:
    """Render the bare Code128 symbol without its human-readable text"""
    code128 = barcode.get_barcode_class('code128')
    instance = code128(value, writer=ImageWriter())
    return instance.render({
        'write_text': False,
        'module_width': 0.3,
        'module_height': 18.0,
        'quiet_zone': 2.0,
        'font_size': 0,
        'text_distance': 0,
        'background': 'white',
        'foreground': 'black',
    })


def generate_label_image(
    title: str,
    barcode_value: str,
    subtitle: Optional[str] = None,
    footer: Optional[str] = None,
    width: int = 400,
    height: int = 220,
) -> str:
    """
    Build a label: title line, barcode, barcode text and an optional footer.

    Args:
        title: Asset or supply name (truncated to fit)
        barcode_value: Value encoded as Code128
        subtitle: Secondary line under the title (vendor, purchase date)
        footer: Bottom line (location, kitchen)

    Returns:
        Base64-encoded PNG image as a data URL string
    """
    title_font, body_font, small_font = _load_fonts()
    img = Image.new('RGB', (width, height), color='white')
    draw = ImageDraw.Draw(img)
    margin = 10

    y = 8
    y += _draw_centered(draw, y, _truncate(title, MAX_TITLE_LENGTH), title_font, width) + 6
    if subtitle:
        y += _draw_centered(draw, y, _truncate(subtitle, MAX_LINE_LENGTH), small_font, width) + 6

    footer_space = 22 if footer else 0
    available_height = height - y - footer_space - 24

    try:
        symbol = render_code128(barcode_value)
        symbol_width, symbol_height = symbol.size
        target_width = width - 2 * margin
        scale = target_width / symbol_width
        target_height = int(symbol_height * scale)
        if target_height > available_height:
            scale = available_height / symbol_height
            target_height = available_height
            target_width = int(symbol_width * scale)
        symbol = symbol.resize((target_width, target_height), Image.Resampling.BILINEAR)
        img.paste(symbol, ((width - target_width) // 2, y))
        y += target_height + 4
    except Exception as e:
        logger.error(f"Barcode rendering failed for '{barcode_value}': {str(e)}", exc_info=True)
        y += 10

    _draw_centered(draw, y, barcode_value, small_font, width)
    if footer:
        _draw_centered(draw, height - footer_space, _truncate(footer, MAX_LINE_LENGTH), body_font, width)

    buffer = io.BytesIO()
    img.save(buffer, format='PNG', optimize=False, compress_level=1)
    encoded = base64.b64encode(buffer.getvalue()).decode('utf-8')
    buffer.close()
    img.close()
    return f'data:image/png;base64,{encoded}'
