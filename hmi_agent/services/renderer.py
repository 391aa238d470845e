# hmi_agent/services/renderer.py

import logging
import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw

from hmi_agent.schemas import (
    ColorScheme,
    Element,
    ScreenImage,
    ScreenSpecification,
    SystemOverview,
    Transition,
)
from hmi_agent.services.values import ValueSource
from hmi_agent.services.widgets import Box, DrawContext, blend, draw_element, to_rgb

logger = logging.getLogger(__name__)

SCREEN_WIDTH = 800
SCREEN_HEIGHT = 600
HEADER_MIN_Y = 10

# Workflow-driven combined layout
COMBINED_WIDTH = 2400
COMBINED_HEIGHT = 1800
COMBINED_COLUMNS = 3
CELL_WIDTH = 650
CELL_HEIGHT = 450
CELL_PADDING = 50
COMBINED_HEADER = 140
COMBINED_FOOTER = 80
TILE_HEADER = 60
TILE_FOOTER = 40

# Legacy comprehensive grid
LEGACY_CELL_WIDTH = 400
LEGACY_CELL_HEIGHT = 300
LEGACY_MARGIN = 20
LEGACY_HEADER = 80
LEGACY_PADDING = 40
LEGACY_TILE_HEADER = 40
LEGACY_MAX_ELEMENTS = 6


def _timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _element_box(element: Element, x0: float = 0, y0: float = 0, sx: float = 1.0, sy: float = 1.0) -> Box:
    p = element.position
    return Box(
        int(x0 + p.x * sx),
        int(y0 + p.y * sy),
        max(1, int(p.width * sx)),
        max(1, int(p.height * sy)),
    )


def _band_box(element: Element, low: int, high: int) -> Box:
    """Box for a header/footer element with its y pulled into [low, high - h]."""
    p = element.position
    height = max(1, min(int(p.height), high - low))
    y = min(max(int(p.y), low), high - height)
    return Box(int(p.x), y, max(1, int(p.width)), height)


def _has_title_element(spec: ScreenSpecification, title: str, header_height: int) -> bool:
    for element in spec.elements + spec.layout.header.elements:
        if element.label != title:
            continue
        if element.type == "header_title" or (element.type == "text" and element.position.y < header_height):
            return True
    return False


# --------------------------------------------
# Single screen
# --------------------------------------------
def render_screen(
    spec: ScreenSpecification,
    values: Optional[ValueSource] = None,
    calls: Optional[List[Tuple[str, str]]] = None,
    terms: Optional[List[str]] = None,
    operations: Optional[List[str]] = None,
) -> Image.Image:
    """
    Rasterize one specification onto an 800x600 canvas.

    Draw order is main elements, header elements, footer elements, then the
    header title. When `calls` is given, every widget routine appends its
    (type, label) to it in draw order.
    """
    scheme = spec.color_scheme
    layout = spec.layout
    header_h = layout.header.height
    footer_h = layout.footer.height
    footer_y = SCREEN_HEIGHT - footer_h

    img = Image.new("RGB", (SCREEN_WIDTH, SCREEN_HEIGHT), to_rgb(scheme.background, "#34495E"))
    draw = ImageDraw.Draw(img)
    ctx = DrawContext(
        draw=draw,
        theme=scheme,
        values=values or ValueSource(),
        timestamp=_timestamp(),
        terms=terms or [],
        operations=operations or [],
        calls=calls if calls is not None else [],
    )

    draw.rectangle([0, 0, SCREEN_WIDTH, header_h], fill=to_rgb(layout.header.background_color, scheme.header))
    draw.rectangle([0, footer_y, SCREEN_WIDTH, SCREEN_HEIGHT], fill=to_rgb(layout.footer.background_color, scheme.header))

    for element in spec.elements:
        draw_element(ctx, element, _element_box(element))
    for element in layout.header.elements:
        draw_element(ctx, element, _band_box(element, HEADER_MIN_Y, header_h))
    for element in layout.footer.elements:
        draw_element(ctx, element, _band_box(element, footer_y, SCREEN_HEIGHT))

    title = layout.header.title or spec.screen_title
    if title and not _has_title_element(spec, title, header_h):
        font = ctx.font(24, bold=True)
        _, text_h = ctx.text_size(title, font)
        ctx.text((20, (header_h - text_h) / 2 - 3), title, font,
                 to_rgb(layout.header.title_color, scheme.header_text), max_width=SCREEN_WIDTH - 40)

    logger.debug("Rendered %s with %d draw calls", spec.screen_title, len(ctx.calls))
    return img


# --------------------------------------------
# Combined workflow layout
# --------------------------------------------
def grid_rows(count: int, columns: int = COMBINED_COLUMNS) -> int:
    return max(1, math.ceil(count / columns))


def grid_cell(index: int, columns: int = COMBINED_COLUMNS) -> Tuple[int, int]:
    """(row, column) of the index-th screen."""
    return index // columns, index % columns


def combined_canvas_size(count: int) -> Tuple[int, int]:
    rows = grid_rows(count)
    needed = COMBINED_HEADER + CELL_PADDING + rows * (CELL_HEIGHT + CELL_PADDING) + COMBINED_FOOTER
    return COMBINED_WIDTH, max(COMBINED_HEIGHT, needed)


def combined_tile_box(index: int) -> Box:
    row, col = grid_cell(index)
    x = CELL_PADDING + col * (CELL_WIDTH + CELL_PADDING)
    y = COMBINED_HEADER + CELL_PADDING + row * (CELL_HEIGHT + CELL_PADDING)
    return Box(x, y, CELL_WIDTH, CELL_HEIGHT)


def _edge_point(box: Box, toward: Tuple[float, float]) -> Tuple[float, float]:
    """Where the ray from the box center toward a point leaves the box."""
    cx, cy = box.center
    dx, dy = toward[0] - cx, toward[1] - cy
    if dx == 0 and dy == 0:
        return cx, cy
    scale = min(
        (box.w / 2) / abs(dx) if dx else math.inf,
        (box.h / 2) / abs(dy) if dy else math.inf,
    )
    return cx + dx * scale, cy + dy * scale


def _draw_arrow(draw: ImageDraw.ImageDraw, start: Tuple[float, float], end: Tuple[float, float], color, width: int = 4) -> None:
    draw.line([start, end], fill=color, width=width)
    angle = math.atan2(end[1] - start[1], end[0] - start[0])
    head = 18
    left = (end[0] - head * math.cos(angle - math.pi / 7), end[1] - head * math.sin(angle - math.pi / 7))
    right = (end[0] - head * math.cos(angle + math.pi / 7), end[1] - head * math.sin(angle + math.pi / 7))
    draw.polygon([end, left, right], fill=color)


def _gradient(draw: ImageDraw.ImageDraw, box: Box, top: str, bottom: str) -> None:
    start, stop = to_rgb(top, "#34495E"), to_rgb(bottom, "#3498DB")
    for offset in range(box.h):
        draw.line([box.x, box.y + offset, box.right, box.y + offset], fill=blend(start, stop, offset / max(1, box.h)))


def _draw_screen_tile(ctx: DrawContext, tile: ScreenImage, box: Box) -> None:
    draw = ctx.draw
    theme = ctx.theme
    spec = tile.specification

    ctx.scale = 1.0
    ctx.text((box.x, box.y - 42), tile.screen_name, ctx.font(18, bold=True), to_rgb(theme.text, "#2C3E50"), max_width=box.w)
    ctx.text((box.x, box.y - 20), (tile.screen_purpose or "")[:80], ctx.font(12), to_rgb(theme.secondary, "#95A5A6"),
             max_width=box.w)

    draw.rectangle([box.x, box.y, box.right, box.bottom], fill=to_rgb(theme.screen_background, "#FFFFFF"))
    _gradient(draw, Box(box.x, box.y, box.w, TILE_HEADER), theme.screen_header_bg, theme.primary)
    ctx.centered(Box(box.x, box.y, box.w, TILE_HEADER), spec.screen_title.upper(), ctx.font(16, bold=True),
                 to_rgb(theme.screen_header_text, "#FFFFFF"))

    content = Box(box.x, box.y + TILE_HEADER, box.w, box.h - TILE_HEADER - TILE_FOOTER)
    sx = content.w / SCREEN_WIDTH
    sy = content.h / SCREEN_HEIGHT
    ctx.scale = min(sx, sy)
    for element in spec.elements:
        draw_element(ctx, element, _element_box(element, content.x, content.y, sx, sy))
    ctx.scale = 1.0

    footer = Box(box.x, box.bottom - TILE_FOOTER, box.w, TILE_FOOTER)
    draw.rectangle([footer.x, footer.y, footer.right, footer.bottom], fill=to_rgb(theme.header_background, "#2C3E50"))
    ctx.centered(footer, f"{len(spec.elements)} UI Elements | Industrial HMI Design", ctx.font(11),
                 to_rgb(theme.header_subtext, "#BDC3C7"))
    draw.rectangle([box.x, box.y, box.right, box.bottom], outline=to_rgb(theme.border, "#BDC3C7"), width=2)


def _draw_error_tile(ctx: DrawContext, tile: ScreenImage, box: Box) -> None:
    draw = ctx.draw
    accent = to_rgb(ctx.theme.accent, "#E74C3C")
    draw.rectangle([box.x, box.y, box.right, box.bottom], fill=to_rgb(ctx.theme.screen_background, "#FFFFFF"),
                   outline=accent, width=3)
    ctx.centered(Box(box.x, box.y, box.w, box.h // 2), "ERROR", ctx.font(28, bold=True), accent, dy=box.h // 6)
    ctx.centered(Box(box.x, box.y + box.h // 2, box.w, box.h // 4), tile.screen_name, ctx.font(16, bold=True),
                 to_rgb(ctx.theme.text, "#2C3E50"))
    if tile.error:
        ctx.centered(Box(box.x, box.y + 3 * box.h // 4 - 20, box.w, 40), tile.error[:90], ctx.font(11),
                     to_rgb(ctx.theme.secondary, "#95A5A6"))


def render_combined(
    tiles: Sequence[ScreenImage],
    transitions: Sequence[Transition],
    overview: SystemOverview,
    theme: ColorScheme,
    values: Optional[ValueSource] = None,
    calls: Optional[List[Tuple[str, str]]] = None,
) -> Image.Image:
    """
    Lay every screen out on a 3-column grid with a summary header and footer
    and an arrow per transition whose endpoints are both on the canvas.
    Tiles without a specification (or with an error) become error tiles.
    """
    width, height = combined_canvas_size(len(tiles))
    img = Image.new("RGB", (width, height), to_rgb(theme.canvas_background, "#F8F9FA"))
    draw = ImageDraw.Draw(img)
    generated_at = _timestamp()
    ctx = DrawContext(
        draw=draw,
        theme=theme,
        values=values or ValueSource(),
        timestamp=generated_at,
        calls=calls if calls is not None else [],
    )

    # header band
    draw.rectangle([0, 0, width, 100], fill=to_rgb(theme.header_background, "#2C3E50"))
    ctx.text((50, 20), f"{overview.system_name} - WORKFLOW-DRIVEN HMI LAYOUT".upper(), ctx.font(34, bold=True),
             to_rgb(theme.header_text, "#ECF0F1"), max_width=width - 100)
    ctx.text((50, 66), f"System Type: {overview.system_type} | Total Screens: {overview.total_screens}",
             ctx.font(18), to_rgb(theme.header_subtext, "#BDC3C7"), max_width=width - 100)
    draw.rectangle([0, 100, width, COMBINED_HEADER], fill=to_rgb(theme.primary, "#3498DB"))
    ctx.text((50, 110), f"Primary Function: {overview.primary_function or 'Industrial process control'} | "
                        f"Generated: {generated_at}", ctx.font(16), (255, 255, 255), max_width=width - 100)

    boxes: Dict[str, Box] = {}
    for index, tile in enumerate(tiles):
        box = combined_tile_box(index)
        boxes.setdefault(tile.screen_name, box)
        if tile.specification is None or tile.error:
            _draw_error_tile(ctx, tile, box)
            continue
        try:
            _draw_screen_tile(ctx, tile, box)
        except Exception as e:
            logger.exception("Tile for %s could not be drawn", tile.screen_name)
            _draw_error_tile(ctx, tile.model_copy(update={"error": str(e)}), box)

    arrow_color = to_rgb(theme.warning, "#F39C12")
    drawn = 0
    for transition in transitions:
        source = boxes.get(transition.from_screen)
        target = boxes.get(transition.to_screen)
        if source is None or target is None or source == target:
            continue
        start = _edge_point(source, target.center)
        end = _edge_point(target, source.center)
        _draw_arrow(draw, start, end, arrow_color)
        drawn += 1

    # footer band
    footer_y = height - COMBINED_FOOTER
    draw.rectangle([0, footer_y, width, height], fill=to_rgb(theme.header_background, "#2C3E50"))
    ctx.text((50, footer_y + 14), "Workflow-Driven HMI Design", ctx.font(20, bold=True),
             to_rgb(theme.header_text, "#ECF0F1"))
    ctx.text((50, footer_y + 46), f"{len(tiles)} Screens | {drawn} Transitions | System: {overview.system_type}",
             ctx.font(14), to_rgb(theme.header_subtext, "#BDC3C7"))
    stamp_font = ctx.font(14)
    stamp_w, _ = ctx.text_size(generated_at, stamp_font)
    ctx.text((width - 50 - stamp_w, footer_y + 46), generated_at, stamp_font, to_rgb(theme.header_subtext, "#BDC3C7"))

    logger.info("Combined layout: %d screens, %d arrows, %dx%d", len(tiles), drawn, width, height)
    return img


# --------------------------------------------
# Legacy comprehensive grid
# --------------------------------------------
def legacy_grid(count: int) -> Tuple[int, int]:
    """(columns, rows) for the square-ish legacy grid."""
    cols = max(1, math.ceil(math.sqrt(max(count, 1))))
    return cols, max(1, math.ceil(count / cols))


def render_comprehensive(
    specs: Sequence[ScreenSpecification],
    system_type: str,
    theme: ColorScheme,
    values: Optional[ValueSource] = None,
) -> Image.Image:
    cols, rows = legacy_grid(len(specs))
    width = cols * (LEGACY_CELL_WIDTH + LEGACY_MARGIN) + LEGACY_MARGIN
    height = LEGACY_HEADER + LEGACY_PADDING + rows * (LEGACY_CELL_HEIGHT + LEGACY_MARGIN) + LEGACY_MARGIN

    img = Image.new("RGB", (width, height), to_rgb(theme.canvas_background, "#F8F9FA"))
    draw = ImageDraw.Draw(img)
    ctx = DrawContext(draw=draw, theme=theme, values=values or ValueSource(), timestamp=_timestamp())

    draw.rectangle([0, 0, width, LEGACY_HEADER], fill=to_rgb(theme.header_background, "#2C3E50"))
    title = f"{system_type.replace('_', ' ')} - HMI SCREEN LAYOUT".upper()
    ctx.text((LEGACY_MARGIN, 14), title, ctx.font(22, bold=True), to_rgb(theme.header_text, "#ECF0F1"),
             max_width=width - 2 * LEGACY_MARGIN)
    ctx.text((LEGACY_MARGIN, 48), f"{len(specs)} Screens | Professional HMI Design", ctx.font(13),
             to_rgb(theme.header_subtext, "#BDC3C7"), max_width=width - 2 * LEGACY_MARGIN)

    sx = LEGACY_CELL_WIDTH / SCREEN_WIDTH
    sy = (LEGACY_CELL_HEIGHT - LEGACY_TILE_HEADER) / SCREEN_HEIGHT
    for index, spec in enumerate(specs):
        row, col = grid_cell(index, cols)
        box = Box(
            LEGACY_MARGIN + col * (LEGACY_CELL_WIDTH + LEGACY_MARGIN),
            LEGACY_HEADER + LEGACY_PADDING + row * (LEGACY_CELL_HEIGHT + LEGACY_MARGIN),
            LEGACY_CELL_WIDTH,
            LEGACY_CELL_HEIGHT,
        )
        draw.rectangle([box.x, box.y, box.right, box.bottom], fill=to_rgb(theme.screen_background, "#FFFFFF"))
        draw.rectangle([box.x, box.y, box.right, box.y + LEGACY_TILE_HEADER], fill=to_rgb(theme.primary, "#3498DB"))
        ctx.scale = 1.0
        ctx.centered(Box(box.x, box.y, box.w - 24, LEGACY_TILE_HEADER), spec.screen_title, ctx.font(14, bold=True),
                     (255, 255, 255))

        ctx.scale = min(sx, sy)
        for element in spec.elements[:LEGACY_MAX_ELEMENTS]:
            draw_element(ctx, element, _element_box(element, box.x, box.y + LEGACY_TILE_HEADER, sx, sy))

        draw.rectangle([box.x, box.y, box.right, box.bottom], outline=to_rgb(theme.primary, "#3498DB"), width=2)
        draw.rectangle([box.right - 20, box.y, box.right, box.y + 20], fill=to_rgb(theme.secondary, "#95A5A6"))

    logger.info("Comprehensive layout: %d screens on a %dx%d grid", len(specs), cols, rows)
    return img
