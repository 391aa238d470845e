# hmi_agent/services/spec_generator.py

import logging
import re
from typing import Any, Dict, List, Optional

from hmi_agent.schemas import (
    Element,
    Position,
    Screen,
    ScreenLayout,
    ScreenNavigation,
    ScreenSpecification,
)
from hmi_agent.services.content import DocumentContext, ScreenContent, extract_screen_content
from hmi_agent.services.llm import parse_json_response
from hmi_agent.services.prompts import SCREEN_SPEC_PROMPT, SCREEN_SPEC_SYSTEM_PROMPT, render_prompt
from hmi_agent.services.themes import merge_scheme, screen_scheme

logger = logging.getLogger(__name__)

CANVAS_WIDTH = 800
CANVAS_HEIGHT = 600
HEADER_HEIGHT = 80
FOOTER_HEIGHT = 60
HEADER_MIN_Y = 10

MIN_ELEMENTS = 6
PADDED_ELEMENTS = 8
MIN_WIDTH, MAX_WIDTH = 80, 400
MIN_HEIGHT = 30

PADDING_ROTATION = [
    "control_button", "status_indicator", "data_display", "value_input",
    "gauge", "progress_bar", "data_table", "alarm_indicator",
]
PADDING_SIZES = {"data_table": (300, 80), "gauge": (80, 80), "progress_bar": (200, 25)}
DEFAULT_LABELS = {
    "control_button": ["START", "STOP", "RESET", "CONFIRM"],
    "status_indicator": ["SYSTEM STATUS", "READY", "ACTIVE", "NORMAL"],
    "data_display": ["TEMPERATURE", "PRESSURE", "FLOW RATE", "LEVEL"],
    "value_input": ["SET POINT", "TARGET VALUE", "THRESHOLD", "LIMIT"],
    "gauge": ["PRESSURE GAUGE", "TEMPERATURE GAUGE", "FLOW GAUGE", "LEVEL GAUGE"],
    "progress_bar": ["OPERATION PROGRESS", "TEST PROGRESS", "STARTUP PROGRESS", "PROCESS PROGRESS"],
    "alarm_indicator": ["SYSTEM ALARM", "PRESSURE ALARM", "TEMPERATURE ALARM", "FLOW ALARM"],
}
LABEL_SUFFIXES = {
    "status_indicator": " STATUS",
    "gauge": " GAUGE",
    "progress_bar": " PROGRESS",
    "alarm_indicator": " ALARM",
}

TITLE_STYLE = {"fontSize": "24px", "color": "#ECF0F1", "fontWeight": "bold"}
SECTION_TITLE_STYLE = {"fontSize": "20px", "color": "#F39C12", "fontWeight": "bold"}

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


# --------------------------------------------
# Element helpers
# --------------------------------------------
def _number(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _NUMBER.search(value)
        if match:
            return float(match.group(0))
    return default


def _element(type_: str, label: str, x: float, y: float, width: float, height: float, **extra: Any) -> Element:
    style = extra.pop("style", {})
    return Element(
        type=type_,
        label=label,
        position=Position(x=x, y=y, width=width, height=height),
        style=dict(style),
        **extra,
    )


def coerce_element(raw: Any) -> Optional[Element]:
    """Best-effort conversion of one model-produced element; junk returns None."""
    if not isinstance(raw, dict):
        return None
    type_ = str(raw.get("type") or "control_button").strip().lower().replace(" ", "_").replace("-", "_")
    pos = raw.get("position") if isinstance(raw.get("position"), dict) else {}
    headers = raw.get("headers")
    return Element(
        type=type_,
        label=str(raw.get("label") or raw.get("text") or raw.get("name") or ""),
        position=Position(
            x=_number(pos.get("x", raw.get("x")), 0),
            y=_number(pos.get("y", raw.get("y")), 0),
            width=_number(pos.get("width", raw.get("width")), 0),
            height=_number(pos.get("height", raw.get("height")), 0),
        ),
        style=raw.get("style") if isinstance(raw.get("style"), dict) else {},
        headers=[str(h) for h in headers] if isinstance(headers, list) else None,
        rows=int(_number(raw.get("rows"), 0)) or None,
        value=_number(raw.get("value"), 0) if raw.get("value") is not None else None,
        purpose=str(raw["purpose"]) if raw.get("purpose") else None,
        user_action=str(raw["userAction"]) if raw.get("userAction") else None,
    )


def coerce_elements(raw: Any) -> List[Element]:
    if not isinstance(raw, list):
        return []
    return [element for element in (coerce_element(item) for item in raw) if element is not None]


# --------------------------------------------
# Navigation and defaults
# --------------------------------------------
def _is_home(name: str) -> bool:
    lower = name.lower()
    return "home" in lower or "main" in lower


def navigation_from(screen_name: str, screen_names: List[str]) -> List[str]:
    lower = screen_name.lower()
    if _is_home(screen_name):
        return ["System Startup"]
    if "alarm" in lower:
        return [name for name in screen_names if name != screen_name]
    return [name for name in screen_names if _is_home(name) and name != screen_name]


def navigation_to(screen_name: str, screen_names: List[str]) -> List[str]:
    lower = screen_name.lower()
    others = [name for name in screen_names if name != screen_name]
    if _is_home(screen_name):
        return others
    if "settings" in lower or "config" in lower:
        return [name for name in others if _is_home(name)]
    return [name for name in others if _is_home(name) or "alarm" in name.lower()]


def default_layout(screen: Screen) -> ScreenLayout:
    return ScreenLayout.model_validate({
        "header": {"title": screen.screen_name, "height": HEADER_HEIGHT, "backgroundColor": "#2C3E50", "titleColor": "#ECF0F1"},
        "mainArea": {"backgroundColor": "#34495E", "type": screen.screen_type or "control"},
        "footer": {"height": FOOTER_HEIGHT, "backgroundColor": "#2C3E50"},
    })


def default_recommendations(screen_name: str, system_type: str) -> List[str]:
    return [
        f"Add keyboard shortcuts for frequently used {screen_name} operations",
        f"Implement contextual help system for {system_type} operations",
        f"Consider adding trend displays for critical {system_type} parameters",
        "Add confirmation dialogs for critical actions",
        "Implement operation logging for audit trail",
    ]


def screen_requirements(screen_name: str, content: ScreenContent) -> str:
    name = screen_name.lower()
    operations = ", ".join(content.operations)
    equipment = ", ".join(content.equipment)
    if _is_home(screen_name):
        items = [
            "System overview with key status indicators",
            "Navigation buttons to all other screens",
            "System health monitoring displays",
            "Quick access to emergency functions",
            "Overall system status dashboard",
        ]
        kind = "the MAIN SCREEN"
    elif "manual" in name or "control" in name:
        items = [
            f"Control buttons for: {operations}",
            f"Real-time monitoring for: {equipment}",
            "Manual operation controls and overrides",
            "Safety interlocks and emergency stops",
            "Process parameter displays",
        ]
        kind = "a CONTROL SCREEN"
    elif "test" in name:
        items = [
            "Test sequence controls and progress indicators",
            f"Equipment status displays for: {equipment}",
            "Diagnostic data tables and results",
            "Test parameter input fields",
            "Pass/fail indicators and test reports",
        ]
        kind = "a TEST/DIAGNOSTIC SCREEN"
    elif "setting" in name:
        items = [
            "Parameter input fields for system configuration",
            "Calibration controls and adjustments",
            "Save/load configuration buttons",
            "User preference settings",
            "System parameter displays",
        ]
        kind = "a SETTINGS SCREEN"
    elif "alarm" in name:
        items = [
            "Active alarm list with priority levels",
            "Alarm acknowledgment controls",
            "Alarm history and event log",
            "Alarm filtering and search functions",
            "System fault indicators",
        ]
        kind = "an ALARM SCREEN"
    elif "user" in name:
        items = [
            "User login/logout interface",
            "Access level management controls",
            "User authentication fields",
            "Permission and role displays",
            "Security management functions",
        ]
        kind = "a USER MANAGEMENT SCREEN"
    else:
        items = [
            f"Specific controls for: {operations}",
            f"Monitoring displays for: {equipment}",
            "Relevant parameter inputs and displays",
            "Screen-specific functionality",
            "Context-appropriate navigation",
        ]
        kind = f"a SPECIALIZED SCREEN for {name}"
    return f"This is {kind} - include:\n" + "\n".join(f"- {item}" for item in items)


def build_spec_prompt(screen: Screen, content: ScreenContent, context: DocumentContext) -> str:
    others = [name for name in context.screen_names if name != screen.screen_name]
    return render_prompt(
        SCREEN_SPEC_PROMPT,
        SCREEN_NAME=screen.screen_name,
        SCREEN_PURPOSE=screen.screen_purpose or content.purpose,
        SCREEN_CONTENT=content.section or "(no dedicated section found)",
        EQUIPMENT=", ".join(content.equipment),
        OPERATIONS=", ".join(content.operations),
        PARAMETERS=", ".join(content.parameters),
        DOCUMENT_SAMPLE=context.document_sample[:500],
        SYSTEM_TYPE=context.system_type,
        SYSTEM_DESCRIPTION=context.system_description,
        COMPONENTS=", ".join(context.profile.components) or "not specified",
        OTHER_SCREENS=", ".join(others) or "none",
        SCREEN_REQUIREMENTS=screen_requirements(screen.screen_name, content),
        SCREEN_TYPE=screen.screen_type or "control",
    )


# --------------------------------------------
# Rule-based fallback
# --------------------------------------------
def _section_title(label: str, color: str = "#F39C12") -> Element:
    return _element("text", label, 50, 120, 400, 30, style=dict(SECTION_TITLE_STYLE, color=color))


def _button(label: str, x: float, y: float, width: float, height: float, color: str) -> Element:
    return _element("control_button", label, x, y, width, height,
                    style={"backgroundColor": color, "color": "#FFFFFF", "fontSize": "14px"})


def _button_rows(labels: List[str], width: float, height: float, step_x: float, step_y: float, color: str) -> List[Element]:
    buttons = []
    for index, label in enumerate(labels):
        x = 50 + (index % 3) * step_x
        y = 180 + (index // 3) * step_y
        buttons.append(_button(label.upper(), x, y, width, height, color))
    return buttons


def _table(label: str, headers: List[str], rows: int, x: float, y: float, width: float, height: float) -> Element:
    return _element("data_table", label, x, y, width, height, headers=headers, rows=rows,
                    style={"fontSize": "12px", "color": "#2C3E50"})


def _home_elements(content: ScreenContent, context: DocumentContext) -> List[Element]:
    system_label = context.system_type.replace("_", " ", 1).upper()
    others = [name for name in context.screen_names if not _is_home(name)]
    elements = [_element("text", f"{system_label} CONTROL SYSTEM", 50, 120, 500, 30, style=SECTION_TITLE_STYLE)]
    for index, name in enumerate(others[:6]):
        x = 50 + (index % 3) * 220
        y = 180 + (index // 3) * 80
        elements.append(_element("control_button", name.upper(), x, y, 200, 60,
                                 style={"backgroundColor": "#3498DB", "color": "#FFFFFF", "fontSize": "12px"}))
    elements.append(_table("System Overview", ["COMPONENT", "STATUS", "VALUE"], 6, 50, 350, 700, 150))
    return elements


def _control_elements(content: ScreenContent, context: DocumentContext) -> List[Element]:
    operations = content.operations[:6]
    elements = [_section_title("Manual Control Interface")]
    elements.extend(_button_rows(operations, 140, 50, 160, 70, "#27AE60"))
    display_y = 180 + ((len(operations) + 2) // 3) * 70 + 30
    for index, equipment in enumerate(content.equipment[:3]):
        elements.append(_element("data_display", equipment.upper(), 50 + index * 200, display_y, 180, 40,
                                 style={"fontSize": "14px", "color": "#2ECC71"}))
    elements.append(_element("gauge", "System Pressure", 600, 180, 100, 100, style={"color": "#3498DB"}))
    return elements


def _auto_elements(content: ScreenContent, context: DocumentContext) -> List[Element]:
    elements = [
        _section_title("Automatic Operation Mode"),
        _button("START AUTO", 50, 180, 180, 60, "#27AE60"),
        _button("STOP AUTO", 250, 180, 180, 60, "#E74C3C"),
        _element("progress_bar", "Auto Sequence Progress", 50, 270, 400, 30, style={"color": "#3498DB"}),
    ]
    for index, operation in enumerate(content.operations[:4]):
        elements.append(_element("status_indicator", f"AUTO {operation.upper()}",
                                 50 + (index % 2) * 300, 320 + (index // 2) * 50, 250, 30,
                                 style={"color": "#ECF0F1", "backgroundColor": "#27AE60"}))
    return elements


def _test_elements(content: ScreenContent, context: DocumentContext) -> List[Element]:
    return [
        _section_title("System Test & Diagnostics"),
        _button("START TEST", 500, 120, 120, 50, "#27AE60"),
        _button("STOP TEST", 640, 120, 120, 50, "#E74C3C"),
        _element("progress_bar", "Test Progress", 50, 180, 400, 25, style={"color": "#3498DB"}),
        _table("Test Results", ["COMPONENT", "TEST", "RESULT", "STATUS"], 8, 50, 230, 700, 200),
    ]


def _pump_elements(content: ScreenContent, context: DocumentContext) -> List[Element]:
    return [
        _section_title("Pump Control & Monitoring"),
        _button("START PUMP", 50, 180, 150, 60, "#27AE60"),
        _button("STOP PUMP", 220, 180, 150, 60, "#E74C3C"),
        _element("gauge", "Pump Pressure", 400, 160, 100, 100, style={"color": "#3498DB"}),
        _element("gauge", "Flow Rate", 520, 160, 100, 100, style={"color": "#2ECC71"}),
        _element("status_indicator", "PUMP STATUS", 650, 180, 120, 40,
                 style={"color": "#ECF0F1", "backgroundColor": "#27AE60"}),
    ]


def _purge_elements(content: ScreenContent, context: DocumentContext) -> List[Element]:
    return [
        _section_title("Purging Sequence Control"),
        _button("START PURGE", 50, 180, 150, 60, "#F39C12"),
        _button("STOP PURGE", 220, 180, 150, 60, "#E74C3C"),
        _element("progress_bar", "Purge Progress", 50, 270, 400, 30, style={"color": "#F39C12"}),
        _element("data_display", "Purge Time Remaining", 500, 180, 200, 40, style={"color": "#2ECC71"}),
        _element("status_indicator", "PURGE STATUS", 500, 240, 200, 40,
                 style={"color": "#ECF0F1", "backgroundColor": "#F39C12"}),
    ]


def _settings_elements(content: ScreenContent, context: DocumentContext) -> List[Element]:
    elements = [
        _section_title("System Configuration"),
        _button("SAVE CONFIG", 50, 180, 120, 50, "#27AE60"),
        _button("LOAD CONFIG", 190, 180, 120, 50, "#3498DB"),
        _button("RESET CONFIG", 330, 180, 120, 50, "#E74C3C"),
    ]
    for index, param in enumerate(content.parameters[:4]):
        elements.append(_element("value_input", param.upper(), 50 + (index % 2) * 300, 250 + (index // 2) * 60, 250, 40,
                                 style={"fontSize": "12px", "color": "#2C3E50"}))
    return elements


def _alarm_elements(content: ScreenContent, context: DocumentContext) -> List[Element]:
    return [
        _section_title("System Alarms & Faults", color="#E74C3C"),
        _button("ACK ALL", 500, 120, 100, 40, "#F39C12"),
        _button("CLEAR ALL", 620, 120, 100, 40, "#E74C3C"),
        _table("Active Alarms", ["ALARM", "PRIORITY", "TIME", "STATUS"], 10, 20, 180, 760, 280),
        _element("alarm_indicator", "ACTIVE ALARMS", 20, 480, 250, 40,
                 style={"backgroundColor": "#E74C3C", "color": "#FFFFFF"}),
    ]


def _tracking_elements(content: ScreenContent, context: DocumentContext) -> List[Element]:
    return [
        _section_title("System Performance Tracking"),
        _table("Performance Data", ["PARAMETER", "CURRENT", "AVERAGE", "TREND"], 12, 20, 180, 760, 300),
    ]


def _user_elements(content: ScreenContent, context: DocumentContext) -> List[Element]:
    return [
        _section_title("User Access Management"),
        _button("LOGIN", 50, 180, 100, 50, "#27AE60"),
        _button("LOGOUT", 170, 180, 100, 50, "#E74C3C"),
        _button("CHANGE PASSWORD", 290, 180, 150, 50, "#3498DB"),
        _table("User List", ["USERNAME", "ROLE", "STATUS", "LAST LOGIN"], 8, 50, 250, 700, 200),
    ]


def _generic_elements(content: ScreenContent, context: DocumentContext, screen: Screen) -> List[Element]:
    elements = [_element("text", f"{screen.screen_name} Interface", 50, 120, 400, 30,
                         style={"fontSize": "18px", "color": "#F39C12"})]
    elements.extend(_button_rows(content.operations[:6], 150, 50, 170, 70, "#3498DB"))
    elements.append(_table("System Data", ["COMPONENT", "STATUS", "VALUE", "CONTROL"], 8, 20, 300, 760, 200))
    return elements


# Checked in order; the first rule whose words appear in the screen name wins.
CATEGORY_RULES = [
    (("home", "main"), _home_elements),
    (("manual", "control"), _control_elements),
    (("auto", "automatic"), _auto_elements),
    (("test", "diagnostic"), _test_elements),
    (("pump", "pumpback"), _pump_elements),
    (("purge", "purging"), _purge_elements),
    (("settings", "config"), _settings_elements),
    (("alarm", "alert"), _alarm_elements),
    (("time", "tracking"), _tracking_elements),
    (("user", "management"), _user_elements),
]


def fallback_elements(screen: Screen, content: ScreenContent, context: DocumentContext) -> List[Element]:
    elements = [
        _element("header_title", screen.screen_name, 20, 25, 400, 30, style=TITLE_STYLE),
        _element("status_indicator", "SYSTEM READY", 600, 25, 140, 30,
                 style={"color": "#ECF0F1", "backgroundColor": "#27AE60"}),
    ]
    name = screen.screen_name.lower()
    for words, generator in CATEGORY_RULES:
        if any(word in name for word in words):
            elements.extend(generator(content, context))
            break
    else:
        elements.extend(_generic_elements(content, context, screen))
    return elements


def fallback_spec(screen: Screen, content: ScreenContent, context: DocumentContext) -> Dict[str, Any]:
    """Rule-based specification in the same shape the model is asked for."""
    layout = default_layout(screen)
    layout.header.elements = [
        _element("battery_indicator", "BATT#1: 85%", 440, 12, 140, 26),
        _element("date_time_display", "", 440, 44, 140, 26),
    ]
    others = [name for name in context.screen_names if name != screen.screen_name]
    layout.footer.elements = [
        _element("navigation_button", name.upper(), 20 + index * 190, 550, 170, 40,
                 style={"backgroundColor": "#3498DB", "color": "#FFFFFF"})
        for index, name in enumerate(others[:4])
    ]
    return {
        "screenTitle": screen.screen_name,
        "screenPurpose": content.purpose,
        "layout": layout.model_dump(by_alias=True),
        "colorScheme": screen_scheme(context.system_type).model_dump(by_alias=True),
        "elements": [e.model_dump(by_alias=True, exclude_none=True) for e in fallback_elements(screen, content, context)],
    }


# --------------------------------------------
# Repair pipeline
# --------------------------------------------
def padding_label(type_: str, index: int, terms: List[str]) -> str:
    if type_ == "data_table":
        return "SYSTEM DATA"
    if type_ == "value_input":
        return DEFAULT_LABELS[type_][index % 4]
    if len(terms) > index:
        term = terms[index]
        if type_ == "data_display":
            lower = term.lower()
            for word, label in (("temperature", "TEMPERATURE"), ("pressure", "PRESSURE"), ("flow", "FLOW RATE"), ("speed", "SPEED")):
                if word in lower:
                    return label
        return term.upper() + LABEL_SUFFIXES.get(type_, "")
    defaults = DEFAULT_LABELS.get(type_)
    return defaults[index % 4] if defaults else f"ELEMENT {index + 1}"


def pad_elements(elements: List[Element], context: DocumentContext) -> List[Element]:
    """Screens with fewer than six elements are padded up to eight."""
    if len(elements) >= MIN_ELEMENTS:
        return elements
    terms = context.profile.components + context.profile.operations + context.profile.controls
    padded = list(elements)
    for index in range(PADDED_ELEMENTS - len(elements)):
        type_ = PADDING_ROTATION[index % len(PADDING_ROTATION)]
        width, height = PADDING_SIZES.get(type_, (120, 40))
        color = "#3498DB" if type_ == "control_button" else "#E74C3C" if type_ == "alarm_indicator" else "#27AE60"
        readable = type_.replace("_", " ")
        padded.append(_element(
            type_, padding_label(type_, index, terms),
            50 + (index % 3) * 250, 200 + (index // 3) * 100, width, height,
            style={"backgroundColor": color, "color": "#FFFFFF", "fontSize": "14px"},
            purpose=f"Additional {readable} for system operation",
            user_action=f"Operator interacts with this {readable}",
        ))
    return padded


def clamp_element_positions(elements: List[Element]) -> List[Element]:
    """Force every main-area element inside the 800x600 canvas."""
    for element in elements:
        pos = element.position
        width = min(MAX_WIDTH, max(MIN_WIDTH, pos.width or 150))
        height = min(CANVAS_HEIGHT, max(MIN_HEIGHT, pos.height or 40))
        pos.width, pos.height = width, height
        pos.x = min(max(0, pos.x), CANVAS_WIDTH - width)
        pos.y = min(max(0, pos.y), CANVAS_HEIGHT - height)
    return elements


def _clamp_x(position: Position) -> None:
    position.width = min(CANVAS_WIDTH, max(20, position.width or 120))
    position.x = min(max(0, position.x), CANVAS_WIDTH - position.width)


def clamp_band_elements(layout: ScreenLayout) -> ScreenLayout:
    """Keep header elements in [10, header height] and footer ones in the footer band."""
    layout.header.height = int(min(150, max(40, layout.header.height)))
    layout.footer.height = int(min(150, max(40, layout.footer.height)))

    header_height = layout.header.height
    for element in layout.header.elements:
        pos = element.position
        _clamp_x(pos)
        pos.height = min(max(10, pos.height or 30), header_height - HEADER_MIN_Y)
        pos.y = min(max(HEADER_MIN_Y, pos.y), header_height - pos.height)

    footer_height = layout.footer.height
    footer_y = CANVAS_HEIGHT - footer_height
    for element in layout.footer.elements:
        pos = element.position
        _clamp_x(pos)
        pos.height = min(max(10, pos.height or 40), footer_height)
        pos.y = min(max(footer_y, pos.y), CANVAS_HEIGHT - pos.height)
    return layout


def ensure_essential_elements(elements: List[Element], screen: Screen) -> List[Element]:
    has_title = any(
        e.type == "header_title" or (e.type == "text" and e.position.y < 100) for e in elements
    )
    has_status = any(e.type == "status_indicator" for e in elements)
    result = list(elements)
    if not has_title:
        result.insert(0, _element("text", screen.screen_name, 20, 25, 400, 30, style=TITLE_STYLE,
                                  purpose="Screen title and identification",
                                  user_action="Visual reference for current screen"))
    if not has_status:
        result.append(_element("status_indicator", "SYSTEM READY", 600, 25, 140, 30,
                               style={"color": "#ECF0F1", "backgroundColor": "#27AE60"},
                               purpose="Overall system status indication",
                               user_action="Monitor system health at a glance"))
    return result


def _layout_from(raw: Any, screen: Screen) -> ScreenLayout:
    layout = default_layout(screen)
    if not isinstance(raw, dict):
        return layout
    header = raw.get("header") if isinstance(raw.get("header"), dict) else {}
    main_area = raw.get("mainArea") if isinstance(raw.get("mainArea"), dict) else {}
    footer = raw.get("footer") if isinstance(raw.get("footer"), dict) else {}

    layout.header.title = str(header.get("title") or screen.screen_name)
    layout.header.height = int(_number(header.get("height"), HEADER_HEIGHT))
    layout.header.background_color = str(header.get("backgroundColor") or layout.header.background_color)
    layout.header.title_color = str(header.get("titleColor") or layout.header.title_color)
    layout.header.elements = coerce_elements(header.get("elements"))
    layout.main_area.background_color = str(main_area.get("backgroundColor") or layout.main_area.background_color)
    layout.main_area.type = str(main_area.get("type") or layout.main_area.type)
    layout.footer.height = int(_number(footer.get("height"), FOOTER_HEIGHT))
    layout.footer.background_color = str(footer.get("backgroundColor") or layout.footer.background_color)
    layout.footer.elements = coerce_elements(footer.get("elements"))
    return layout


def fill_missing_fields(raw: Dict[str, Any], screen: Screen, context: DocumentContext) -> ScreenSpecification:
    name = screen.screen_name
    nav = raw.get("navigation") if isinstance(raw.get("navigation"), dict) else {}
    scheme = raw.get("colorScheme")
    recommendations = raw.get("recommendations")
    return ScreenSpecification(
        screen_title=str(raw.get("screenTitle") or name),
        screen_purpose=str(raw.get("screenPurpose") or f"Interface for {name.lower()} operations"),
        navigation=ScreenNavigation(
            from_screens=[str(s) for s in nav.get("from", [])] if isinstance(nav.get("from"), list) else navigation_from(name, context.screen_names),
            to_screens=[str(s) for s in nav.get("to", [])] if isinstance(nav.get("to"), list) else navigation_to(name, context.screen_names),
            breadcrumb=str(nav.get("breadcrumb") or f"Home > Operations > {name}"),
        ),
        layout=_layout_from(raw.get("layout"), screen),
        color_scheme=merge_scheme(scheme if isinstance(scheme, dict) else {}, context.system_type),
        elements=coerce_elements(raw.get("elements")),
        functional_description=str(raw.get("functionalDescription") or f"This screen provides {name.lower()} functionality for system operators."),
        recommendations=[str(r) for r in recommendations] if isinstance(recommendations, list) and recommendations else default_recommendations(name, context.system_type),
    )


def validate_and_repair(raw: Dict[str, Any], screen: Screen, context: DocumentContext, source: str = "model") -> ScreenSpecification:
    spec = fill_missing_fields(raw, screen, context)
    spec.elements = pad_elements(spec.elements, context)
    spec.elements = clamp_element_positions(spec.elements)
    spec.layout = clamp_band_elements(spec.layout)
    spec.elements = ensure_essential_elements(spec.elements, screen)
    spec.source = source
    return spec


# --------------------------------------------
# Generator
# --------------------------------------------
class ScreenSpecGenerator:
    """Produces one validated 800x600 specification per screen; never raises."""

    def __init__(self, context: DocumentContext, llm: Optional[Any] = None) -> None:
        self.context = context
        self.llm = llm

    def generate(self, screen: Screen) -> ScreenSpecification:
        content = extract_screen_content(screen, self.context)
        if self.llm is not None:
            try:
                return self._generate_with_model(screen, content)
            except Exception as e:
                logger.warning("Spec generation for %s failed (%s), using fallback", screen.screen_name, e)
        return self.fallback(screen, content)

    def fallback(self, screen: Screen, content: Optional[ScreenContent] = None) -> ScreenSpecification:
        content = content or extract_screen_content(screen, self.context)
        raw = fallback_spec(screen, content, self.context)
        return validate_and_repair(raw, screen, self.context, source="fallback")

    def _generate_with_model(self, screen: Screen, content: ScreenContent) -> ScreenSpecification:
        prompt = build_spec_prompt(screen, content, self.context)
        raw = self.llm.complete(prompt, system=SCREEN_SPEC_SYSTEM_PROMPT, temperature=0.4, max_tokens=4000)
        payload = parse_json_response(raw)
        spec = validate_and_repair(payload, screen, self.context, source="model")
        logger.info("Model spec for %s has %d elements", screen.screen_name, len(spec.elements))
        return spec
