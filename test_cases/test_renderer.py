import pytest

from conftest import make_context, make_screens
from hmi_agent.schemas import Element, Position, ScreenImage, ScreenSpecification, SystemOverview, Transition
from hmi_agent.services.renderer import (
    COMBINED_HEIGHT,
    COMBINED_WIDTH,
    combined_tile_box,
    grid_cell,
    grid_rows,
    legacy_grid,
    render_combined,
    render_comprehensive,
    render_screen,
)
from hmi_agent.services.spec_generator import ScreenSpecGenerator
from hmi_agent.services.themes import select_theme
from hmi_agent.services.values import ValueSource
from hmi_agent.services.widgets import WIDGET_TYPES, WIDGETS

NAMES = ["Home Screen", "Manual Control Screen", "Alarm Screen", "Settings Screen"]


def _specs(names):
    generator = ScreenSpecGenerator(make_context(names))
    return [generator.generate(screen) for screen in make_screens(*names)]


def _tiles(names, failed=()):
    tiles = []
    for spec, screen in zip(_specs(names), make_screens(*names)):
        error = "boom" if screen.screen_name in failed else None
        tiles.append(ScreenImage(
            screen_name=screen.screen_name,
            screen_id=screen.screen_id,
            specification=None if error else spec,
            error=error,
        ))
    return tiles


def test_every_widget_type_has_a_routine() -> None:
    assert set(WIDGET_TYPES) == set(WIDGETS)


@pytest.mark.parametrize("name", NAMES)
def test_draw_log_matches_element_list(name: str) -> None:
    spec = _specs(NAMES)[NAMES.index(name)]
    calls = []

    image = render_screen(spec, ValueSource(7), calls=calls)

    assert image.size == (800, 600)
    expected = spec.elements + spec.layout.header.elements + spec.layout.footer.elements
    assert calls == [(e.type, e.label) for e in expected]


def test_unknown_widget_type_is_drawn() -> None:
    spec = ScreenSpecification(
        screen_title="Odd Screen",
        elements=[Element(type="sparkline", label="TREND", position=Position(x=50, y=150, width=200, height=60))],
    )
    calls = []
    render_screen(spec, ValueSource(1), calls=calls)
    assert calls == [("sparkline", "TREND")]


def test_every_widget_renders_in_a_small_box() -> None:
    elements = [
        Element(type=type_, label=type_.upper(), position=Position(x=10 + (i % 4) * 190, y=100 + (i // 4) * 90,
                                                                 width=180, height=80))
        for i, type_ in enumerate(WIDGET_TYPES)
    ]
    spec = ScreenSpecification(screen_title="All Widgets", elements=elements)
    calls = []
    render_screen(spec, ValueSource(3), calls=calls)
    assert [c[0] for c in calls] == list(WIDGET_TYPES)


def test_seven_screens_fill_three_rows() -> None:
    assert grid_rows(7) == 3
    assert [grid_cell(i) for i in range(7)] == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2), (2, 0)]
    last = combined_tile_box(6)
    assert (last.x, last.y) == (50, 140 + 50 + 2 * 500)


def test_combined_layout_with_error_tile() -> None:
    tiles = _tiles(NAMES, failed={"Alarm Screen"})
    transitions = [
        Transition(from_screen="Home Screen", to_screen="Alarm Screen"),
        Transition(from_screen="Home Screen", to_screen="Missing Screen"),
    ]
    overview = SystemOverview(system_name="Generator", system_type="generator_control", total_screens=4)

    calls = []
    image = render_combined(tiles, transitions, overview, select_theme("generator_control"), ValueSource(5), calls=calls)

    assert image.size == (COMBINED_WIDTH, COMBINED_HEIGHT)
    drawn = sum(len(t.specification.elements) for t in tiles if t.specification is not None)
    assert len(calls) == drawn


def test_combined_canvas_grows_past_three_rows() -> None:
    names = [f"Screen {i}" for i in range(10)]
    overview = SystemOverview(system_name="Plant", system_type="industrial_control", total_screens=10)
    image = render_combined(_tiles(names), [], overview, select_theme("industrial_control"), ValueSource(2))
    assert image.size[0] == COMBINED_WIDTH
    assert image.size[1] > COMBINED_HEIGHT


def test_comprehensive_grid_size() -> None:
    assert legacy_grid(5) == (3, 2)
    assert legacy_grid(0) == (1, 1)
    image = render_comprehensive(_specs(NAMES), "generator_control", select_theme("generator_control"), ValueSource(4))
    assert image.size == (2 * 420 + 20, 80 + 40 + 2 * 320 + 20)


def test_theme_selection() -> None:
    assert select_theme("water_treatment").canvas_background == "#F0F8FF"
    assert select_theme("potable water").canvas_background == "#F0F8FF"
    assert select_theme("gas_analyzer").primary == "#6A5ACD"
    assert select_theme("").canvas_background == "#F8F9FA"
