# hmi_agent/services/workflow.py

import json
import logging
import re
from typing import Any, Dict, List, Optional

from hmi_agent.schemas import (
    NavigationFlow,
    Screen,
    ScreenAnalysis,
    SystemOverview,
    Transition,
    WorkflowDiagram,
)
from hmi_agent.services.content import DocumentContext, ScreenContent, extract_screen_content
from hmi_agent.services.llm import parse_json_response
from hmi_agent.services.prompts import WORKFLOW_PROMPT, WORKFLOW_SYSTEM_PROMPT, render_prompt

logger = logging.getLogger(__name__)

TEMPLATE_SCREEN_LIMIT = 3
TEMPLATE_WORKFLOW_TYPE = "Professional HMI Analysis (Expert Review)"
AI_WORKFLOW_TYPE = "AI-Assisted HMI Analysis (Expert Review)"
DEFAULT_TRIGGERS = ["User selection", "System event"]
TRANSITION_STRING = re.compile(r"^(.*?)\s*(?:->|→)\s*(.*?)$")

PURPOSE_PATTERNS = [
    "primary function",
    "system purpose",
    "main objective",
    "system design",
    "control system for",
    "monitoring system for",
    "operation of",
    "management of",
]

TECHNICAL_SPECIFICATIONS = {
    "hmiPlatform": "Industrial-grade HMI platform with real-time capabilities",
    "communicationProtocol": "Ethernet/IP, Modbus TCP, or OPC-UA based on system requirements",
    "updateRate": "Critical data: 100-250ms, Non-critical: 1-5 seconds",
    "historicalData": "Process data historian with minimum 1-year retention",
    "backupSystem": "Redundant HMI nodes with automatic failover capability",
    "cyberSecurity": "Role-based access, encrypted communications, audit logging",
    "regulatory": "21 CFR Part 11 compliance for regulated industries",
}

LAYOUT_GUIDELINES = {
    "buttonSpacing": "20px minimum between interactive elements",
    "gridLayout": "Use 50px grid system for consistent alignment",
    "navigation": "Reserve top 60px for navigation elements",
    "statusArea": "Bottom 40px for status information",
    "contentMargin": "50px margins on all sides for industrial displays",
}
BUTTON_SIZES = {
    "primaryButtons": "120x60px for main actions",
    "secondaryButtons": "100x40px for secondary functions",
    "navigationButtons": "80x40px for screen navigation",
    "inputFields": "150x40px for data entry",
    "statusDisplays": "100x30px for information display",
}
FONT_SPECS = {
    "buttonText": "16px Bold Arial for button labels",
    "processValues": "18px Bold Courier New for numeric displays",
    "statusText": "14px Regular Arial for status information",
    "alarmText": "16px Bold Arial for alarm messages",
    "headerText": "20px Bold Arial for screen titles",
    "inputText": "16px Regular Arial for input fields",
}
COLOR_CODES = {
    "primaryBlue": "#0066CC - Primary action buttons",
    "secondaryGray": "#808080 - Secondary functions",
    "successGreen": "#00AA00 - Success indicators",
    "warningYellow": "#FFAA00 - Warning indicators",
    "backgroundColor": "#2C3E50 - Main screen background",
    "textColor": "#FFFFFF - Primary text color",
}

ELEMENT_AREAS = {"left": (50, 200), "center": (400, 300), "right": (1200, 200)}


# --------------------------------------------
# Per-screen template text
# --------------------------------------------
def primary_function(context: DocumentContext) -> str:
    for phrase in PURPOSE_PATTERNS:
        match = re.search(phrase + r"[:\s]+([^.\n]{20,80})", context.document_text, re.IGNORECASE)
        if match:
            return match.group(1).strip()
    return f"{context.system_type.lower().replace('_', ' ', 1)} control and monitoring system"


def screen_purpose(screen: Screen, content: ScreenContent, system_type: str) -> str:
    purpose = f"{screen.screen_name} interface for {system_type} system operations"
    if content.equipment:
        purpose += " controlling " + " and ".join(content.equipment[:2])
    if content.operations:
        purpose += " with " + " and ".join(content.operations[:2]) + " capabilities"
    return purpose + ". Provides operator control, system monitoring, and status indication for safe and efficient operation."


def element_positions(count: int, area: str) -> List[tuple]:
    base_x, base_y = ELEMENT_AREAS.get(area, ELEMENT_AREAS["center"])
    return [(base_x + (i % 2) * 200, base_y + (i // 2) * 70) for i in range(count)]


def _equipment_elements(equipment: List[str]) -> List[str]:
    elements = []
    for item, (x, y) in zip(equipment, element_positions(len(equipment), "center")):
        lower = item.lower()
        if any(word in lower for word in ("button", "start", "stop")):
            kind, suffix = "Button", "control"
        elif any(word in lower for word in ("voltage", "current", "frequency")):
            kind, suffix = "Numeric Display", "reading"
        elif any(word in lower for word in ("temperature", "pressure", "rpm")):
            kind, suffix = "Gauge", "gauge"
        elif any(word in lower for word in ("indicator", "status", "lamp")):
            kind, suffix = "Status Indicator", "status"
        elif "switch" in lower or "selector" in lower:
            kind, suffix = "Switch", "selector"
        else:
            kind, suffix = "Data Display", "information"
        elements.append(f"{kind}: Center panel ({x}, {y}) - {item} {suffix}")
    return elements


def _operation_elements(operations: List[str]) -> List[str]:
    elements = []
    for operation, (x, y) in zip(operations, element_positions(len(operations), "left")):
        lower = operation.lower()
        if any(word in lower for word in ("start", "stop", "run")):
            kind, suffix = "Button", "control button"
        elif "emergency" in lower or "reset" in lower:
            kind, suffix = "Emergency Button", "emergency control"
        elif "manual" in lower or "auto" in lower:
            kind, suffix = "Mode Switch", "mode selector"
        elif "test" in lower or "calibrate" in lower:
            kind, suffix = "Test Button", "test control"
        elif "alarm" in lower or "acknowledge" in lower:
            kind, suffix = "Alarm Control", "alarm control"
        else:
            kind, suffix = "Button", "operation"
        elements.append(f"{kind}: Left panel ({x}, {y}) - {operation} {suffix}")
    return elements


def _parameter_elements(parameters: List[str]) -> List[str]:
    elements = []
    for param, (x, y) in zip(parameters, element_positions(len(parameters), "right")):
        lower = param.lower()
        if any(word in lower for word in ("voltage", "current", "frequency")):
            kind, suffix = "Numeric Display", "reading"
        elif "temperature" in lower or "pressure" in lower:
            kind, suffix = "Gauge", "gauge"
        elif "rpm" in lower or "speed" in lower:
            kind, suffix = "Speed Display", "monitor"
        elif any(word in lower for word in ("fuel", "oil", "coolant")):
            kind, suffix = "Level Indicator", "level"
        elif any(word in lower for word in ("hours", "counter", "timer")):
            kind, suffix = "Counter Display", "counter"
        elif any(word in lower for word in ("mode", "status", "state")):
            kind, suffix = "Status Display", "status"
        else:
            kind, suffix = "Data Display", "information"
        elements.append(f"{kind}: Right panel ({x}, {y}) - {param} {suffix}")
    return elements


def key_elements(screen: Screen, content: ScreenContent, system_type: str) -> List[str]:
    elements = [
        "Screen Change Button: Top-left (50, 20) - HOME screen navigation",
        "Screen Change Button: Top-right (1800, 20) - SETTINGS access",
        "Alarm Indicator: Top-right (1650, 20) - System alarm status lamp",
    ]
    elements.extend(_equipment_elements(content.equipment))
    elements.extend(_operation_elements(content.operations))
    elements.extend(_parameter_elements(content.parameters))
    elements.append(f"Device Status Display: Bottom-left (50, 800) - {system_type} system status")
    elements.append("Data Logging Viewer: Bottom-right (1400, 800) - Process data recording")
    return elements


def functionality(screen: Screen, context: DocumentContext) -> List[str]:
    system_type = context.system_type
    components = context.profile.components[:5]
    operations = context.profile.operations[:5]
    items = [f"{screen.screen_name} Operations: Primary control interface for {system_type} system operations"]
    if components:
        items.append(f"Component Control: Management and monitoring of {', '.join(components[:3])} with real-time feedback")
    if operations:
        items.append(f"Process Operations: {', '.join(operations[:3])} with automated sequences and manual override")
    items.append(f"System Monitoring: Real-time {system_type} parameter tracking with alarm integration and data logging")
    return items


def element_details(screen: Screen, system_type: str) -> Dict[str, Any]:
    tag_name = re.sub(r"\s+", "_", screen.screen_name).upper()
    prefix = system_type[:3].upper()
    return {
        "buttonCount": "8-15 functional buttons based on document requirements",
        "displayCount": "6-12 informational displays for system parameters",
        "controllerType": "Standard operator interface with real-time updates",
        "refreshRate": "500ms-2 seconds based on data criticality",
        "screenSize": "1920x1080 recommended minimum for industrial operator stations",
        "colorScheme": "ISA-101 compliant with customizable operator themes",
        "criticalElements": [
            "System status indicators",
            "Emergency controls",
            "Key process parameters",
            "Navigation elements",
        ],
        "hmiTags": [f"{prefix}_{tag_name}_{suffix}" for suffix in ("STATUS", "CONTROL", "ALARM", "DATA")],
        "layoutGuidelines": dict(LAYOUT_GUIDELINES),
        "buttonSizes": dict(BUTTON_SIZES),
        "fontSpecs": dict(FONT_SPECS),
        "colorCodes": dict(COLOR_CODES),
    }


def home_screen(screen_names: List[str]) -> str:
    return next((name for name in screen_names if "home" in name.lower()), "Home")


def previous_screen(screen_name: str, screen_names: List[str]) -> str:
    index = screen_names.index(screen_name) if screen_name in screen_names else -1
    return screen_names[index - 1] if index > 0 else home_screen(screen_names)


def next_screen(screen_name: str, screen_names: List[str]) -> str:
    index = screen_names.index(screen_name) if screen_name in screen_names else len(screen_names)
    return screen_names[index + 1] if index < len(screen_names) - 1 else home_screen(screen_names)


def navigation(screen_name: str, screen_names: List[str]) -> Dict[str, Any]:
    related = [
        name for name in screen_names
        if name != screen_name and any(word in name.lower() for word in ("control", "monitor", "config"))
    ]
    return {
        "previous": previous_screen(screen_name, screen_names),
        "next": next_screen(screen_name, screen_names),
        "related": related,
        "triggers": list(DEFAULT_TRIGGERS),
    }


def behavior(screen_name: str) -> str:
    name = screen_name.lower()
    if "control" in name or "manual" in name:
        return f"Interactive control interface with real-time feedback, operator confirmation dialogs, and safety interlocks for {screen_name} operations"
    if "alarm" in name:
        return "Dynamic alarm display with priority-based color coding, acknowledgment functionality, and real-time status updates"
    if "monitoring" in name or "dashboard" in name:
        return "Real-time monitoring dashboard with automatic refresh, trend displays, and parameter limits checking"
    if "settings" in name or "config" in name:
        return "Configuration interface with input validation, save/load functionality, and user access control"
    return "Responsive interface with real-time updates, user feedback mechanisms, and consistent navigation patterns"


def data_visualization(screen_name: str) -> str:
    name = screen_name.lower()
    if "control" in name or "manual" in name:
        return "Control panels with analog gauges, digital displays, status indicators, and real-time parameter monitoring"
    if "alarm" in name:
        return "Alarm tables with color-coded priorities, timestamps, severity indicators, and historical trend charts"
    if "monitoring" in name or "dashboard" in name:
        return "Real-time trend charts, bar graphs, status indicators, and tabular data displays with filtering options"
    if "settings" in name or "config" in name:
        return "Configuration forms, parameter entry fields, dropdown menus, and validation status indicators"
    return f"Mixed visualization including gauges, tables, charts, and status displays appropriate for {screen_name}"


def user_roles(screen_name: str) -> str:
    name = screen_name.lower()
    if "control" in name or "manual" in name:
        return "Operator (basic access), Supervisor (full control), Engineer (configuration), Maintenance (diagnostic access)"
    if "alarm" in name:
        return "Operator (view/acknowledge), Supervisor (reset/manage), Engineer (configure thresholds), Admin (system config)"
    if "settings" in name or "config" in name:
        return "Engineer (parameter config), Supervisor (operational settings), Admin (system configuration), Maintenance (calibration)"
    if "user" in name or "management" in name:
        return "Admin (full access), Supervisor (user management), IT Support (system maintenance)"
    return "All Users (navigation), Operator (status view), Supervisor (system control), Engineer (advanced features)"


def design_rationale(screen_name: str, system_type: str) -> str:
    return (
        f"{screen_name} screen designed for {system_type} operational requirements with focus on operator "
        "efficiency, system reliability, and safety compliance following industrial HMI standards."
    )


def implementation_notes(system_type: str) -> List[str]:
    return [
        "Implementation Priority: Start with core operational screens (Control, Alarm) then expand to diagnostic interfaces",
        f"Data Architecture: Implement centralized tag database with consistent naming conventions for {system_type} parameters",
        "Visual Design: Follow ISA-101 standards with high-contrast displays suitable for 24/7 industrial environments",
        "Security Implementation: Implement zero-trust architecture with role-based access and comprehensive audit trails",
        "Future Considerations: Design with mobile accessibility in mind for remote monitoring and maintenance support",
        "Validation Plan: Implement Factory Acceptance Testing (FAT) with comprehensive operator training and documentation",
    ]


def navigation_flow(screen_names: List[str]) -> NavigationFlow:
    """Linear layout: each screen leads to the next one in input order."""
    if not screen_names:
        return NavigationFlow(diagram="graph TD")

    lines = ["graph TD"] + [f"    S{index + 1}[{name}]" for index, name in enumerate(screen_names)]
    transitions = []
    for index, (current, following) in enumerate(zip(screen_names, screen_names[1:])):
        lines.append(f"    S{index + 1} --> S{index + 2}")
        transitions.append(
            Transition(
                from_screen=current,
                to_screen=following,
                trigger="Next button",
                description=f"Navigate from {current} to {following}",
            )
        )
    return NavigationFlow(diagram="\n".join(lines), transitions=transitions)


def template_screen_analysis(screen: Screen, index: int, context: DocumentContext, screen_names: List[str]) -> ScreenAnalysis:
    system_type = context.system_type
    content = extract_screen_content(screen, context)
    return ScreenAnalysis(
        screen_name=screen.screen_name,
        screen_number=index + 1,
        purpose=screen_purpose(screen, content, system_type),
        key_elements=key_elements(screen, content, system_type),
        functionality=functionality(screen, context),
        element_details=element_details(screen, system_type),
        navigation=navigation(screen.screen_name, screen_names),
        behavior=behavior(screen.screen_name),
        data_visualization=data_visualization(screen.screen_name),
        user_roles=user_roles(screen.screen_name),
        design_rationale=design_rationale(screen.screen_name, system_type),
    )


def _system_overview(screens: List[Screen], context: DocumentContext) -> SystemOverview:
    system_type = context.system_type
    return SystemOverview(
        system_name=f"{system_type} Control System",
        system_type=system_type,
        total_screens=len(screens),
        primary_function=primary_function(context),
        expert_review=(
            f"Based on 25+ years of PLC/HMI experience, this {system_type} system demonstrates proper "
            "architectural principles with logical screen separation and operator-centric design patterns."
        ),
    )


def template_workflow(screens: List[Screen], context: DocumentContext) -> WorkflowDiagram:
    names = [s.screen_name for s in screens]
    return WorkflowDiagram(
        workflow_type=TEMPLATE_WORKFLOW_TYPE,
        system_overview=_system_overview(screens, context),
        screen_analysis=[template_screen_analysis(s, i, context, names) for i, s in enumerate(screens)],
        navigation_flow=navigation_flow(names),
        technical_specifications=dict(TECHNICAL_SPECIFICATIONS),
        implementation_notes=implementation_notes(context.system_type),
    )


# --------------------------------------------
# Reconciliation of model output
# --------------------------------------------
def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return "; ".join(f"{k}: {_as_text(v)}" for k, v in value.items())
    if isinstance(value, list):
        return ", ".join(_as_text(v) for v in value)
    return str(value)


def _as_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        value = [value]
    return [json.dumps(item) if isinstance(item, (dict, list)) else str(item) for item in value]


def normalize_transitions(raw: Any, screen_names: List[str]) -> List[Transition]:
    """
    Turn loosely-typed transitions into objects. "A -> B" strings are split,
    unparsable entries are dropped, and so is any transition whose endpoints
    are not known screens.
    """
    known = set(screen_names)
    transitions: List[Transition] = []
    for entry in raw if isinstance(raw, list) else []:
        if isinstance(entry, str):
            match = TRANSITION_STRING.match(entry.strip())
            if not match:
                continue
            entry = {"from": match.group(1).strip(), "to": match.group(2).strip()}
        if not isinstance(entry, dict):
            continue
        source = str(entry.get("from") or "").strip()
        target = str(entry.get("to") or "").strip()
        if source not in known or target not in known:
            logger.debug("Dropping transition %r -> %r", source, target)
            continue
        transitions.append(
            Transition(
                from_screen=source,
                to_screen=target,
                trigger=_as_text(entry.get("trigger")) or "User selection",
                description=_as_text(entry.get("description")) or f"Navigate from {source} to {target}",
            )
        )
    return transitions


def _reconcile_entry(raw: Dict[str, Any], screen: Screen, index: int, context: DocumentContext, names: List[str]) -> ScreenAnalysis:
    template = template_screen_analysis(screen, index, context, names)

    nav = raw.get("navigation")
    if not isinstance(nav, dict):
        nav = template.navigation
    elif not nav.get("triggers"):
        nav = dict(nav, triggers=list(DEFAULT_TRIGGERS))

    details = raw.get("elementDetails")
    key_items = _as_text_list(raw.get("keyElements"))
    return ScreenAnalysis(
        screen_name=screen.screen_name,
        screen_number=index + 1,
        purpose=_as_text(raw.get("purpose")) or template.purpose,
        key_elements=key_items or template.key_elements,
        functionality=_as_text_list(raw.get("functionality")) or template.functionality,
        element_details=details if isinstance(details, dict) and details else template.element_details,
        navigation=nav,
        behavior=_as_text(raw.get("behavior")) or template.behavior,
        data_visualization=_as_text(raw.get("dataVisualization")) or template.data_visualization,
        user_roles=_as_text(raw.get("userRoles")) or template.user_roles,
        design_rationale=_as_text(raw.get("designRationale")) or template.design_rationale,
    )


def enhance_with_template_data(raw: Dict[str, Any], screens: List[Screen], context: DocumentContext) -> WorkflowDiagram:
    """Fill every gap in a model-produced workflow from the template generators."""
    names = [s.screen_name for s in screens]
    overview = _system_overview(screens, context)
    raw_overview = raw.get("systemOverview")
    if isinstance(raw_overview, dict):
        overview = SystemOverview(
            system_name=_as_text(raw_overview.get("systemName")) or overview.system_name,
            system_type=context.system_type,
            total_screens=len(screens),
            primary_function=_as_text(raw_overview.get("primaryFunction")) or overview.primary_function,
            expert_review=_as_text(raw_overview.get("expertReview")) or overview.expert_review,
        )

    by_name = {}
    raw_analysis = raw.get("screenAnalysis")
    for entry in raw_analysis if isinstance(raw_analysis, list) else []:
        if isinstance(entry, dict) and entry.get("screenName"):
            by_name.setdefault(str(entry["screenName"]).strip().lower(), entry)

    analysis = [
        _reconcile_entry(by_name.get(screen.screen_name.lower(), {}), screen, i, context, names)
        for i, screen in enumerate(screens)
    ]

    raw_flow = raw.get("navigationFlow")
    if isinstance(raw_flow, dict) and isinstance(raw_flow.get("screenTransitions", raw_flow.get("transitions")), list):
        flow = NavigationFlow(
            diagram=_as_text(raw_flow.get("mermaidDiagram") or raw_flow.get("diagram")),
            transitions=normalize_transitions(raw_flow.get("screenTransitions", raw_flow.get("transitions")), names),
        )
        if not flow.diagram:
            flow.diagram = navigation_flow(names).diagram
    else:
        flow = navigation_flow(names)

    specs = raw.get("technicalSpecifications")
    notes = raw.get("implementationNotes")
    return WorkflowDiagram(
        workflow_type=_as_text(raw.get("workflowType")) or AI_WORKFLOW_TYPE,
        system_overview=overview,
        screen_analysis=analysis,
        navigation_flow=flow,
        technical_specifications={k: _as_text(v) for k, v in specs.items()} if isinstance(specs, dict) and specs else dict(TECHNICAL_SPECIFICATIONS),
        implementation_notes=_as_text_list(notes) or implementation_notes(context.system_type),
    )


# --------------------------------------------
# Entry point
# --------------------------------------------
def compose_workflow(screens: List[Screen], context: DocumentContext, llm: Optional[Any] = None) -> WorkflowDiagram:
    """
    Build the navigation workflow. Small screen sets (or no model) use the
    template path; larger sets ask the model and fall back to the template
    on any failure. Either way the result is reconciled against the screens.
    """
    if len(screens) <= TEMPLATE_SCREEN_LIMIT or llm is None:
        logger.info("Composing template workflow for %d screens", len(screens))
        return template_workflow(screens, context)

    condensed = context.condensed()
    prompt = render_prompt(
        WORKFLOW_PROMPT,
        SYSTEM_TYPE=condensed["systemType"],
        SCREEN_NAMES=condensed["screenSummary"],
        COMPONENTS=condensed["components"] or "not specified",
        OPERATIONS=condensed["operations"] or "not specified",
        TOTAL_SCREENS=condensed["totalScreens"],
    )
    try:
        raw = llm.complete(prompt, system=WORKFLOW_SYSTEM_PROMPT, temperature=0.3, max_tokens=4000)
        payload = parse_json_response(raw)
        return enhance_with_template_data(payload, screens, context)
    except Exception as e:
        logger.warning("Workflow model path failed (%s), using template workflow", e)
        return template_workflow(screens, context)
