# hmi_agent/services/widgets.py
#
# One draw routine per widget type. Routines take (ctx, element, box) and only
# touch the pixels inside box; the caller decides where the box goes.

import math
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from PIL import ImageColor, ImageDraw, ImageFont

from hmi_agent.schemas import ColorScheme, Element
from hmi_agent.services.values import ValueSource

WIDGET_TYPES = (
    "control_button",
    "status_indicator",
    "data_table",
    "data_display",
    "value_input",
    "alarm_indicator",
    "gauge",
    "progress_bar",
    "text",
    "toggle",
    "navigation_button",
    "date_time_display",
    "battery_indicator",
    "header_title",
)

FONT_REGULAR = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"
FONT_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"
FONT_MONO = "/usr/share/fonts/truetype/dejavu/DejaVuSansMono-Bold.ttf"

STATUS_COLORS = {
    "ONLINE": "#27AE60", "READY": "#27AE60", "ACTIVE": "#27AE60",
    "STANDBY": "#F39C12", "WARNING": "#F39C12",
    "ALARM": "#E74C3C", "ERROR": "#E74C3C",
    "OFFLINE": "#95A5A6",
}

_PX = re.compile(r"(\d+(?:\.\d+)?)")


class Box(NamedTuple):
    x: int
    y: int
    w: int
    h: int

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h

    @property
    def center(self) -> Tuple[int, int]:
        return self.x + self.w // 2, self.y + self.h // 2


@lru_cache(maxsize=128)
def get_font(size: int, bold: bool = False, mono: bool = False):
    size = max(8, int(size))
    path = FONT_MONO if mono else FONT_BOLD if bold else FONT_REGULAR
    try:
        return ImageFont.truetype(path, size)
    except OSError:
        return ImageFont.load_default(size=size)


def to_rgb(value: Optional[str], default: str) -> Tuple[int, int, int]:
    """Parse a color the model may have written in any CSS-ish form."""
    for candidate in (value, default):
        if not candidate:
            continue
        try:
            return ImageColor.getrgb(str(candidate).strip())[:3]
        except ValueError:
            continue
    return (0, 0, 0)


def shade(rgb: Tuple[int, int, int], factor: float) -> Tuple[int, int, int]:
    return tuple(max(0, min(255, int(c * factor))) for c in rgb)


def blend(a: Tuple[int, int, int], b: Tuple[int, int, int], t: float) -> Tuple[int, int, int]:
    return tuple(int(a[i] + (b[i] - a[i]) * t) for i in range(3))


def readable_on(rgb: Tuple[int, int, int]) -> Tuple[int, int, int]:
    """Dark text on light fills, white text on dark ones."""
    return (44, 62, 80) if sum(rgb) >= 384 else (255, 255, 255)


@dataclass
class DrawContext:
    """Everything a widget routine needs besides its element and box."""

    draw: ImageDraw.ImageDraw
    theme: ColorScheme
    values: ValueSource
    timestamp: str = ""
    terms: List[str] = field(default_factory=list)
    operations: List[str] = field(default_factory=list)
    scale: float = 1.0
    calls: List[Tuple[str, str]] = field(default_factory=list)

    def font(self, size: float, bold: bool = False, mono: bool = False):
        return get_font(round(size * self.scale), bold, mono)

    def text_size(self, text: str, font) -> Tuple[int, int]:
        left, top, right, bottom = self.draw.textbbox((0, 0), text, font=font)
        return right - left, bottom - top

    def fit(self, text: str, font, max_width: int) -> str:
        if max_width <= 0:
            return ""
        if self.text_size(text, font)[0] <= max_width:
            return text
        while text and self.text_size(text + "...", font)[0] > max_width:
            text = text[:-1]
        return text + "..." if text else ""

    def text(self, xy: Tuple[float, float], text: str, font, fill, max_width: Optional[int] = None) -> None:
        if max_width is not None:
            text = self.fit(text, font, max_width)
        if text:
            self.draw.text((int(xy[0]), int(xy[1])), text, font=font, fill=fill)

    def centered(self, box: Box, text: str, font, fill, dy: int = 0) -> None:
        text = self.fit(text, font, box.w - 4)
        if not text:
            return
        left, top, right, bottom = self.draw.textbbox((0, 0), text, font=font)
        x = box.x + (box.w - (right - left)) / 2 - left
        y = box.y + (box.h - (bottom - top)) / 2 - top + dy
        self.draw.text((int(x), int(y)), text, font=font, fill=fill)


def style_color(element: Element, key: str, default: str) -> Tuple[int, int, int]:
    return to_rgb(element.style.get(key), default)


def style_font_size(element: Element, default: float) -> float:
    raw = element.style.get("fontSize")
    if isinstance(raw, (int, float)):
        return float(raw)
    match = _PX.search(str(raw or ""))
    return float(match.group(1)) if match else default


def led_color(label: str, theme: ColorScheme) -> str:
    name = (label or "").lower()
    if any(word in name for word in ("ready", "normal", "ok")):
        return theme.success
    if "warning" in name or "caution" in name:
        return theme.warning
    if any(word in name for word in ("alarm", "error", "fault")):
        return theme.accent
    if "active" in name or name.endswith(" on") or name == "on":
        return theme.primary
    return "#95A5A6"


def unit_for(label: str) -> str:
    name = (label or "").lower()
    if "temperature" in name:
        return "°C"
    if "pressure" in name:
        return "PSI"
    if "flow" in name:
        return "L/min"
    if "voltage" in name:
        return "V"
    if "current" in name:
        return "A"
    if "speed" in name or "rpm" in name:
        return "RPM"
    if "level" in name or "concentration" in name:
        return "%"
    return "UNIT"


# --------------------------------------------
# Widget routines
# --------------------------------------------
def draw_control_button(ctx: DrawContext, element: Element, box: Box) -> None:
    draw = ctx.draw
    fill = style_color(element, "backgroundColor", ctx.theme.primary)
    text_fill = style_color(element, "color", "#FFFFFF")
    draw.rectangle([box.x + 2, box.y + 2, box.right + 2, box.bottom + 2], fill=shade(fill, 0.45))
    darker = shade(fill, 0.75)
    for offset in range(max(1, box.h)):
        draw.line([box.x, box.y + offset, box.right, box.y + offset], fill=blend(fill, darker, offset / max(1, box.h)))
    draw.rectangle([box.x, box.y, box.right, box.bottom], outline=to_rgb(ctx.theme.button_border, "#3498DB"), width=2)
    ctx.centered(box, (element.label or "").upper(), ctx.font(style_font_size(element, 13), bold=True), text_fill)
    if box.w >= 60 and box.h >= 30:
        r = 4
        cx, cy = box.right - 9, box.y + 9
        draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=to_rgb(led_color(element.label, ctx.theme), "#95A5A6"))


def draw_navigation_button(ctx: DrawContext, element: Element, box: Box) -> None:
    fill = style_color(element, "backgroundColor", ctx.theme.primary)
    radius = max(2, min(10, box.h // 4))
    ctx.draw.rounded_rectangle([box.x, box.y, box.right, box.bottom], radius=radius, fill=fill,
                               outline=shade(fill, 0.7), width=2)
    ctx.centered(box, (element.label or "").upper(), ctx.font(12, bold=True), style_color(element, "color", "#FFFFFF"))


def draw_status_indicator(ctx: DrawContext, element: Element, box: Box) -> None:
    diameter = max(8, min(box.h - 4, int(20 * ctx.scale) + 4))
    cx = box.x + diameter // 2 + 2
    cy = box.y + box.h // 2
    fill = to_rgb(element.style.get("backgroundColor") or led_color(element.label, ctx.theme), ctx.theme.success)
    r = diameter // 2
    ctx.draw.ellipse([cx - r - 2, cy - r - 2, cx + r + 2, cy + r + 2], fill=shade(fill, 0.5))
    ctx.draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=fill)
    font = ctx.font(style_font_size(element, 12), bold=True)
    label_x = cx + r + 8
    text_h = ctx.text_size("Ag", font)[1]
    ctx.text((label_x, cy - text_h // 2 - 2), element.label or "STATUS", font,
             style_color(element, "color", ctx.theme.text), max_width=box.right - label_x)


def _cell_text(ctx: DrawContext, header: str, row: int) -> str:
    name = header.lower()
    terms = ctx.terms or []
    if any(word in name for word in ("component", "parameter", "equipment", "alarm", "username", "name")):
        if "username" in name or "user" in name:
            return f"operator{row + 1}"
        if "alarm" in name:
            base = terms[row % len(terms)].upper() if terms else "SYSTEM"
            return f"{base} FAULT"
        return terms[row].title() if row < len(terms) else f"Component {row + 1}"
    if "status" in name:
        return ctx.values.status()
    if "control" in name:
        ops = ctx.operations or []
        return ops[row % len(ops)].upper() if ops else "START"
    if "time" in name or "login" in name:
        return ctx.values.clock()
    if "priority" in name:
        return ctx.values.choice(["HIGH", "MEDIUM", "LOW"])
    if "result" in name:
        return ctx.values.choice(["PASS", "PASS", "FAIL"])
    if "trend" in name:
        return ctx.values.choice(["UP", "DOWN", "STEADY"])
    if "role" in name:
        return ctx.values.choice(["Operator", "Supervisor", "Engineer"])
    if "test" in name:
        return f"TEST {row + 1}"
    term = terms[row] if row < len(terms) else ""
    return ctx.values.system_value(term or header)


def draw_data_table(ctx: DrawContext, element: Element, box: Box) -> None:
    draw = ctx.draw
    headers = element.headers or ["Parameter", "Value", "Status"]
    rows = element.rows or 3
    max_rows = max(1, box.h // max(12, int(18 * ctx.scale)) - 1)
    rows = max(1, min(rows, max_rows))
    row_h = box.h / (rows + 1)
    col_w = box.w / len(headers)

    border = to_rgb(ctx.theme.table_border, "#BDC3C7")
    header_fill = style_color(element, "headerColor", ctx.theme.table_header)
    row_fill = style_color(element, "rowColor", ctx.theme.screen_background)
    text_fill = style_color(element, "textColor", "#2C3E50") if element.style.get("textColor") else readable_on(row_fill)
    header_text = readable_on(header_fill)

    draw.rectangle([box.x, box.y, box.right, box.bottom], fill=row_fill, outline=border, width=2)
    draw.rectangle([box.x, box.y, box.right, box.y + row_h], fill=header_fill)
    font_size = max(7, min(13, row_h * 0.5 / max(ctx.scale, 0.1)))
    header_font = ctx.font(font_size, bold=True)
    cell_font = ctx.font(font_size)

    for col, header in enumerate(headers):
        cell = Box(int(box.x + col * col_w), int(box.y), int(col_w), int(row_h))
        ctx.centered(cell, header.upper(), header_font, header_text)

    for row in range(rows):
        top = box.y + (row + 1) * row_h
        if row % 2:
            draw.rectangle([box.x + 1, top, box.right - 1, top + row_h], fill=shade(row_fill, 0.93))
        for col, header in enumerate(headers):
            cell = Box(int(box.x + col * col_w), int(top), int(col_w), int(row_h))
            value = _cell_text(ctx, header, row)
            if "status" in header.lower():
                r = max(3, min(12, int(row_h / 2) - 3))
                cx, cy = cell.x + r + 6, cell.y + cell.h // 2
                draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=to_rgb(STATUS_COLORS.get(value, "#3498DB"), "#3498DB"))
                ctx.text((cx + r + 4, cy - font_size * ctx.scale / 2 - 1), value, cell_font, text_fill,
                         max_width=cell.right - cx - r - 6)
            elif "control" in header.lower():
                inner = Box(cell.x + 4, cell.y + 2, max(1, cell.w - 8), max(1, cell.h - 4))
                draw.rectangle([inner.x, inner.y, inner.right, inner.bottom], fill=to_rgb(ctx.theme.primary, "#3498DB"))
                ctx.centered(inner, value, cell_font, (255, 255, 255))
            else:
                ctx.centered(cell, value, cell_font, text_fill)
        draw.line([box.x, top, box.right, top], fill=border, width=1)

    for col in range(1, len(headers)):
        x = box.x + col * col_w
        draw.line([x, box.y, x, box.bottom], fill=border, width=1)


def draw_data_display(ctx: DrawContext, element: Element, box: Box) -> None:
    draw = ctx.draw
    draw.rectangle([box.x, box.y, box.right, box.bottom], fill=(0, 0, 0), outline=to_rgb(ctx.theme.border, "#BDC3C7"), width=2)
    band_h = max(10, int(box.h * 0.3))
    draw.rectangle([box.x + 2, box.y + 2, box.right - 2, box.y + band_h], fill=(44, 62, 80))
    label_box = Box(box.x + 2, box.y + 2, box.w - 4, band_h - 2)
    ctx.centered(label_box, (element.label or "VALUE").upper(), ctx.font(max(7, band_h * 0.55 / max(ctx.scale, 0.1))), (236, 240, 241))

    value_box = Box(box.x + 4, box.y + band_h, box.w - 20, box.h - band_h)
    reading = f"{ctx.values.display_value(element.label)} {unit_for(element.label)}"
    value_size = max(8, min(18, (box.h - band_h) * 0.6 / max(ctx.scale, 0.1)))
    ctx.centered(value_box, reading, ctx.font(value_size, mono=True), style_color(element, "color", "#00FF00"))
    square = max(4, min(8, box.h // 6))
    draw.rectangle([box.right - square - 5, box.bottom - square - 5, box.right - 5, box.bottom - 5],
                   fill=to_rgb(ctx.theme.indicator, "#27AE60"))


def draw_value_input(ctx: DrawContext, element: Element, box: Box) -> None:
    draw = ctx.draw
    label_h = int(box.h * 0.4) if box.h >= 36 else 0
    label_font = ctx.font(max(7, min(12, box.h * 0.3 / max(ctx.scale, 0.1))), bold=True)
    if label_h:
        ctx.text((box.x, box.y), (element.label or "INPUT").upper(), label_font,
                 style_color(element, "labelColor", ctx.theme.header_subtext), max_width=box.w)
    field_box = Box(box.x, box.y + label_h, box.w, box.h - label_h)
    draw.rectangle([field_box.x, field_box.y, field_box.right, field_box.bottom],
                   fill=to_rgb(ctx.theme.input_fill, "#FFFFFF"), outline=to_rgb(ctx.theme.input_border, "#3498DB"), width=2)
    value = ctx.values.input_value(element.label)
    if not label_h:
        value = f"{element.label}: {value}" if element.label else value
    value_font = ctx.font(max(7, min(14, field_box.h * 0.55 / max(ctx.scale, 0.1))))
    text_w, text_h = ctx.text_size(value, value_font)
    ctx.text((field_box.x + 6, field_box.y + (field_box.h - text_h) / 2 - 2), value, value_font, (44, 62, 80),
             max_width=field_box.w - 14)
    cursor_x = min(field_box.right - 6, field_box.x + 8 + text_w)
    draw.line([cursor_x, field_box.y + 5, cursor_x, field_box.bottom - 5], fill=(44, 62, 80), width=1)


def draw_alarm_indicator(ctx: DrawContext, element: Element, box: Box) -> None:
    fill = style_color(element, "backgroundColor", ctx.theme.accent)
    ctx.draw.rectangle([box.x, box.y, box.right, box.bottom], fill=fill, outline=shade(fill, 0.6), width=3)
    size = max(6, min(box.h - 8, 18))
    tx, ty = box.x + 8, box.y + (box.h - size) // 2
    ctx.draw.polygon([(tx + size // 2, ty), (tx + size, ty + size), (tx, ty + size)], fill=(255, 255, 255))
    inner = Box(box.x + size + 12, box.y, box.w - size - 16, box.h)
    ctx.centered(inner, (element.label or "ALARM").upper(), ctx.font(style_font_size(element, 12), bold=True),
                 style_color(element, "color", "#FFFFFF"))


def draw_gauge(ctx: DrawContext, element: Element, box: Box) -> None:
    draw = ctx.draw
    label_font = ctx.font(max(7, min(11, box.h * 0.12 / max(ctx.scale, 0.1))), bold=True)
    label_h = ctx.text_size("Ag", label_font)[1] + 4
    radius = max(8, min(box.w, box.h - label_h) // 2 - 4)
    cx, cy = box.x + box.w // 2, box.y + label_h + (box.h - label_h) // 2

    accent = style_color(element, "color", ctx.theme.primary)
    draw.ellipse([cx - radius, cy - radius, cx + radius, cy + radius], fill=(250, 250, 250), outline=accent, width=3)

    tick_font = ctx.font(max(6, radius * 0.18 / max(ctx.scale, 0.1)))
    for tick in range(11):
        angle = math.radians(-135 + tick * 27)
        outer = (cx + radius * math.sin(angle), cy - radius * math.cos(angle))
        inner = (cx + radius * 0.82 * math.sin(angle), cy - radius * 0.82 * math.cos(angle))
        draw.line([inner, outer], fill=(44, 62, 80), width=2 if tick % 2 == 0 else 1)
        if tick % 2 == 0 and radius >= 30:
            lx = cx + radius * 0.62 * math.sin(angle)
            ly = cy - radius * 0.62 * math.cos(angle)
            label = str(tick * 10)
            w, h = ctx.text_size(label, tick_font)
            draw.text((lx - w / 2, ly - h / 2 - 1), label, font=tick_font, fill=(44, 62, 80))

    fraction = element.value / 100 if element.value is not None else ctx.values.fraction(0.2, 0.9)
    fraction = max(0.0, min(1.0, fraction))
    needle = math.radians(-135 + 270 * fraction)
    tip = (cx + radius * 0.75 * math.sin(needle), cy - radius * 0.75 * math.cos(needle))
    draw.line([(cx, cy), tip], fill=to_rgb(ctx.theme.accent, "#E74C3C"), width=3)
    hub = max(2, min(8, radius // 5))
    draw.ellipse([cx - hub, cy - hub, cx + hub, cy + hub], fill=(44, 62, 80))

    if radius >= 24:
        reading = f"{fraction * 100:.0f} {unit_for(element.label)}"
        w, h = ctx.text_size(reading, tick_font)
        draw.text((cx - w / 2, cy + radius * 0.35), reading, font=tick_font, fill=(44, 62, 80))
    ctx.centered(Box(box.x, box.y, box.w, label_h), element.label or "GAUGE", label_font,
                 style_color(element, "labelColor", ctx.theme.text))


def draw_progress_bar(ctx: DrawContext, element: Element, box: Box) -> None:
    draw = ctx.draw
    fraction = element.value / 100 if element.value is not None else ctx.values.fraction(0.2, 1.0)
    fraction = max(0.0, min(1.0, fraction))
    draw.rectangle([box.x, box.y, box.right, box.bottom], fill=(236, 240, 241), outline=to_rgb(ctx.theme.border, "#BDC3C7"), width=1)
    fill_w = int((box.w - 2) * fraction)
    if fill_w > 0:
        draw.rectangle([box.x + 1, box.y + 1, box.x + 1 + fill_w, box.bottom - 1],
                       fill=style_color(element, "color", ctx.theme.success))
    font = ctx.font(max(7, min(12, box.h * 0.55 / max(ctx.scale, 0.1))), bold=True)
    percent = f"{fraction * 100:.0f}%"
    if element.label and box.w >= 160:
        _, text_h = ctx.text_size("Ag", font)
        ctx.text((box.x + 6, box.y + (box.h - text_h) / 2 - 2), element.label, font, (44, 62, 80), max_width=box.w - 60)
        w, _ = ctx.text_size(percent, font)
        ctx.text((box.right - w - 6, box.y + (box.h - text_h) / 2 - 2), percent, font, (44, 62, 80))
    else:
        ctx.centered(box, percent, font, (44, 62, 80))


def draw_text(ctx: DrawContext, element: Element, box: Box) -> None:
    bold = str(element.style.get("fontWeight", "")).lower() == "bold"
    font = ctx.font(style_font_size(element, 16), bold=bold)
    _, text_h = ctx.text_size("Ag", font)
    ctx.text((box.x, box.y + (box.h - text_h) / 2 - 2), element.label, font,
             style_color(element, "color", ctx.theme.text), max_width=box.w)


def draw_header_title(ctx: DrawContext, element: Element, box: Box) -> None:
    font = ctx.font(style_font_size(element, 24), bold=True)
    _, text_h = ctx.text_size("Ag", font)
    ctx.text((box.x, box.y + (box.h - text_h) / 2 - 3), element.label, font,
             style_color(element, "color", ctx.theme.header_text), max_width=box.w)


def draw_toggle(ctx: DrawContext, element: Element, box: Box) -> None:
    draw = ctx.draw
    on = "off" not in (element.label or "").lower()
    track = to_rgb(ctx.theme.success if on else "#95A5A6", "#27AE60")
    radius = box.h // 2
    draw.rounded_rectangle([box.x, box.y, box.right, box.bottom], radius=radius, fill=track)
    knob_x = box.right - radius if on else box.x + radius
    draw.ellipse([knob_x - radius + 3, box.y + 3, knob_x + radius - 3, box.bottom - 3], fill=(255, 255, 255))
    text_box = Box(box.x + 4, box.y, box.w - box.h - 4, box.h) if on else Box(box.x + box.h, box.y, box.w - box.h - 4, box.h)
    ctx.centered(text_box, element.label or "ON/OFF", ctx.font(11, bold=True), (255, 255, 255))


def draw_date_time(ctx: DrawContext, element: Element, box: Box) -> None:
    ctx.centered(box, element.label or ctx.timestamp, ctx.font(style_font_size(element, 12), bold=True),
                 style_color(element, "color", ctx.theme.header_text))


def draw_battery(ctx: DrawContext, element: Element, box: Box) -> None:
    draw = ctx.draw
    body_h = max(8, min(box.h - 4, 18))
    body_w = body_h * 2
    top = box.y + (box.h - body_h) // 2
    draw.rectangle([box.x, top, box.x + body_w, top + body_h], outline=(236, 240, 241), width=2)
    draw.rectangle([box.x + body_w, top + body_h // 3, box.x + body_w + 3, top + 2 * body_h // 3], fill=(236, 240, 241))
    match = re.search(r"(\d+)\s*%", element.label or "")
    level = int(match.group(1)) / 100 if match else 0.85
    draw.rectangle([box.x + 3, top + 3, box.x + 3 + int((body_w - 6) * min(1.0, level)), top + body_h - 3],
                   fill=to_rgb(ctx.theme.success, "#27AE60"))
    label = element.label or f"BATT#1: {int(level * 100)}%"
    font = ctx.font(11, bold=True)
    _, text_h = ctx.text_size("Ag", font)
    ctx.text((box.x + body_w + 8, box.y + (box.h - text_h) / 2 - 2), label, font,
             style_color(element, "color", ctx.theme.header_text), max_width=box.w - body_w - 8)


WIDGETS: Dict[str, Callable[[DrawContext, Element, Box], None]] = {
    "control_button": draw_control_button,
    "status_indicator": draw_status_indicator,
    "data_table": draw_data_table,
    "data_display": draw_data_display,
    "value_input": draw_value_input,
    "alarm_indicator": draw_alarm_indicator,
    "gauge": draw_gauge,
    "progress_bar": draw_progress_bar,
    "text": draw_text,
    "toggle": draw_toggle,
    "navigation_button": draw_navigation_button,
    "date_time_display": draw_date_time,
    "battery_indicator": draw_battery,
    "header_title": draw_header_title,
}


def draw_element(ctx: DrawContext, element: Element, box: Box) -> None:
    """Draw one element; unknown types are drawn as buttons."""
    ctx.calls.append((element.type, element.label))
    routine = WIDGETS.get(element.type, draw_control_button)
    routine(ctx, element, box)
