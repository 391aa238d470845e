import json

import pytest

from conftest import FakeLLM, make_context, make_screens
from hmi_agent.schemas import Element, Position, ScreenLayout
from hmi_agent.services.spec_generator import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    ScreenSpecGenerator,
    clamp_band_elements,
    clamp_element_positions,
    pad_elements,
)

SCREEN_NAMES = [
    "Home Screen",
    "Manual Control Screen",
    "Auto Mode Screen",
    "Test Screen",
    "Pumpback Screen",
    "Purging Screen",
    "Settings Screen",
    "Alarm Screen",
    "Time Tracking Screen",
    "User Management Screen",
    "Trend Overview",
]


def _assert_inside_canvas(spec) -> None:
    assert len(spec.elements) >= 6
    for element in spec.elements:
        p = element.position
        assert p.x >= 0 and p.y >= 0
        assert p.x + p.width <= CANVAS_WIDTH
        assert p.y + p.height <= CANVAS_HEIGHT


def _assert_band_rules(spec) -> None:
    header_height = spec.layout.header.height
    for element in spec.layout.header.elements:
        assert 10 <= element.position.y
        assert element.position.y + element.position.height <= header_height
    footer_y = CANVAS_HEIGHT - spec.layout.footer.height
    for element in spec.layout.footer.elements:
        assert footer_y <= element.position.y
        assert element.position.y + element.position.height <= CANVAS_HEIGHT


@pytest.mark.parametrize("name", SCREEN_NAMES)
def test_fallback_specs_are_complete_and_in_bounds(name: str) -> None:
    screen = make_screens(name)[0]
    spec = ScreenSpecGenerator(make_context(SCREEN_NAMES)).generate(screen)

    assert spec.source == "fallback"
    assert spec.screen_title == name
    _assert_inside_canvas(spec)
    _assert_band_rules(spec)
    assert any(e.type == "status_indicator" for e in spec.elements)
    assert any(e.type in ("header_title", "text") and e.position.y < 100 for e in spec.elements)


def test_alarm_screen_has_alarm_indicator() -> None:
    screen = make_screens("Alarm Screen")[0]
    spec = ScreenSpecGenerator(make_context(["Home Screen", "Alarm Screen"])).generate(screen)
    assert any(e.type == "alarm_indicator" for e in spec.elements)


def test_sparse_model_spec_is_repaired() -> None:
    raw = {
        "screenTitle": "Home Screen",
        "layout": {
            "header": {"title": "Home", "elements": [{"type": "battery_indicator", "label": "BATT", "position": {"x": 900, "y": 0, "width": 140, "height": 100}}]},
            "footer": {"elements": [{"type": "navigation_button", "label": "ALARMS", "position": {"x": 20, "y": 100, "width": 170, "height": 40}}]},
        },
        "elements": [
            {"type": "gauge", "label": "Oil Pressure", "position": {"x": 900, "y": -20, "width": 1000, "height": "80px"}},
            {"type": "control_button", "label": "START", "position": {"x": 50, "y": 590, "width": 10, "height": 5}},
        ],
    }
    llm = FakeLLM([json.dumps(raw)])
    screen = make_screens("Home Screen")[0]

    spec = ScreenSpecGenerator(make_context(["Home Screen", "Alarm Screen"]), llm).generate(screen)

    assert len(llm.calls) == 1
    assert spec.source == "model"
    _assert_inside_canvas(spec)
    _assert_band_rules(spec)
    gauge = next(e for e in spec.elements if e.type == "gauge" and e.label == "Oil Pressure")
    assert gauge.position.width == 400
    assert gauge.position.height == 80
    assert spec.navigation.to_screens == ["Alarm Screen"]


def test_unusable_model_output_falls_back() -> None:
    screen = make_screens("Settings Screen")[0]
    spec = ScreenSpecGenerator(make_context(["Settings Screen"]), FakeLLM(["no json here"])).generate(screen)
    assert spec.source == "fallback"
    _assert_inside_canvas(spec)


def test_padding_reaches_eight_elements() -> None:
    context = make_context(["Home Screen"])
    elements = [Element(type="text", label="Title"), Element(type="control_button", label="START")]
    padded = pad_elements(elements, context)
    assert len(padded) == 8
    assert [e.type for e in padded[2:5]] == ["control_button", "status_indicator", "data_display"]


def test_element_clamp_enforces_size_limits() -> None:
    element = Element(type="gauge", position=Position(x=-5, y=700, width=20, height=0))
    clamp_element_positions([element])
    assert element.position.x == 0
    assert element.position.width == 80
    assert element.position.height == 40
    assert element.position.y == CANVAS_HEIGHT - 40


def test_band_heights_are_bounded() -> None:
    layout = ScreenLayout()
    layout.header.height = 500
    layout.footer.height = 5
    layout.header.elements = [Element(type="text", position=Position(x=10, y=400, width=100, height=300))]
    clamp_band_elements(layout)
    assert layout.header.height == 150
    assert layout.footer.height == 40
    element = layout.header.elements[0]
    assert element.position.y >= 10
    assert element.position.y + element.position.height <= 150
