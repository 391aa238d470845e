# hmi_agent/services/content.py

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from hmi_agent.schemas import KeywordProfile, Screen

DOCUMENT_SAMPLE_CHARS = 2000
SECTION_WINDOW = 2000
FALLBACK_WINDOW = 500
MAX_MATCHES_PER_PATTERN = 5

CATEGORY_SECTION_PATTERNS = [
    re.compile(r"(main\s+dashboard|generator\s+control|maintenance\s+settings)[\s\S]{0,2000}", re.IGNORECASE),
    re.compile(r"3\.[1-3][\s\S]{0,2000}", re.IGNORECASE),
    re.compile(r"(MAIN\s+DASHBOARD|GENERATOR\s+CONTROL|MAINTENANCE\s+&\s+SETTINGS)[\s\S]{0,2000}"),
]
GENERIC_SECTION_PATTERNS = [
    re.compile(r"(screen|interface|display|control|monitor)[\s\S]{0,500}", re.IGNORECASE),
    re.compile(r"(required\s+elements|layout|color\s+scheme)[\s\S]{0,500}", re.IGNORECASE),
]

EQUIPMENT_PATTERNS = [
    re.compile(r"engine|generator|alternator|diesel|utility|transfer\s+switch", re.IGNORECASE),
    re.compile(r"battery|charger|voltage|current|frequency|power", re.IGNORECASE),
    re.compile(r"temperature|pressure|rpm|fuel|coolant|oil|air", re.IGNORECASE),
    re.compile(r"sensor|gauge|display|indicator|button|switch", re.IGNORECASE),
]
OPERATION_PATTERNS = [
    re.compile(r"start|stop|run|pause|emergency\s+stop|reset", re.IGNORECASE),
    re.compile(r"manual|auto|automatic|test|calibrate", re.IGNORECASE),
    re.compile(r"transfer|utility|generator|load\s+shed|paralleling", re.IGNORECASE),
    re.compile(r"settings|alarm|acknowledge|silence", re.IGNORECASE),
]
PARAMETER_PATTERNS = [
    re.compile(r"(\w+)\s*:\s*[\d.]+\s*(v|a|hz|psi|°f|°c|rpm|kw|%)", re.IGNORECASE),
    re.compile(r"(\w+)\s*=\s*[\d.]+\s*(v|a|hz|psi|°f|°c|rpm|kw|%)", re.IGNORECASE),
    re.compile(r"(voltage|current|frequency|pressure|temperature|rpm|fuel|oil|coolant|power)\s*[\d.]+", re.IGNORECASE),
    re.compile(r"(ac\s+voltage|ac\s+current|ac\s+frequency|engine\s+speed|oil\s+pressure|fuel\s+level)", re.IGNORECASE),
]

# Keyed on a substring of the lowercased screen name; first key that matches wins.
DEFAULT_EQUIPMENT: Dict[str, List[str]] = {
    "main": ["Generator", "Engine", "Alternator", "Transfer Switch", "Battery"],
    "dashboard": ["Generator", "Engine", "Alternator", "Transfer Switch", "Battery"],
    "control": ["Start Button", "Stop Button", "Emergency Stop", "Mode Selector", "Transfer Switch"],
    "generator": ["Generator", "Engine", "Alternator", "Voltage Regulator", "Governor"],
    "maintenance": ["Service Timer", "Oil Filter", "Air Filter", "Fuel Filter", "Battery"],
    "settings": ["Configuration", "Parameters", "Calibration", "User Settings", "System Settings"],
}
DEFAULT_OPERATIONS: Dict[str, List[str]] = {
    "main": ["Monitor", "Navigate", "View Status", "Quick Control", "Alarm Review"],
    "dashboard": ["Monitor", "Navigate", "View Status", "Quick Control", "Alarm Review"],
    "control": ["Start", "Stop", "Manual Operation", "Auto Operation", "Emergency Stop"],
    "generator": ["Start Generator", "Stop Generator", "Load Control", "Transfer Switch", "Paralleling"],
    "maintenance": ["Schedule Service", "Reset Timers", "View History", "Parts Status", "Service Reports"],
    "settings": ["Configure System", "Set Parameters", "Calibrate", "User Management", "Save Settings"],
}
DEFAULT_PARAMETERS: Dict[str, List[str]] = {
    "main": ["AC Voltage", "AC Current", "AC Frequency", "Engine RPM", "Oil Pressure"],
    "dashboard": ["AC Voltage", "AC Current", "AC Frequency", "Engine RPM", "Oil Pressure"],
    "control": ["Operating Mode", "Load Percentage", "Runtime Hours", "Start Counter", "Transfer Status"],
    "generator": ["Generator Voltage", "Generator Current", "Generator Frequency", "Power Output", "Load Bank"],
    "maintenance": ["Service Hours", "Oil Change Due", "Filter Status", "Battery Voltage", "Next Service"],
    "settings": ["Start Delay", "Transfer Time", "Alarm Delays", "User Access", "Network Settings"],
}


@dataclass
class DocumentContext:
    """Everything the per-screen generators need to know about the upload."""

    document_text: str
    profile: KeywordProfile
    screen_names: List[str] = field(default_factory=list)

    @property
    def system_type(self) -> str:
        return self.profile.primary_type

    @property
    def document_sample(self) -> str:
        return self.document_text[:DOCUMENT_SAMPLE_CHARS]

    def condensed(self) -> Dict[str, object]:
        """Compact summary sent to the model instead of the whole document."""
        return {
            "systemType": self.system_type,
            "components": ", ".join(self.profile.components[:5]),
            "operations": ", ".join(self.profile.operations[:5]),
            "screenSummary": ", ".join(self.screen_names)[:500],
            "totalScreens": len(self.screen_names),
            "documentSample": self.document_sample[:300],
        }

    @property
    def system_description(self) -> str:
        first_sentence = self.document_sample.split(".")[0].strip()
        if len(first_sentence) > 20:
            return first_sentence
        return f"{self.system_type.replace('_', ' ', 1)} control and monitoring system"


@dataclass
class ScreenContent:
    section: str
    equipment: List[str]
    operations: List[str]
    parameters: List[str]
    purpose: str


def _dedupe(items: List[str]) -> List[str]:
    seen = set()
    unique = []
    for item in items:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


def _collect(patterns: List[re.Pattern], text: str, limit: int = MAX_MATCHES_PER_PATTERN) -> List[str]:
    found: List[str] = []
    for pattern in patterns:
        found.extend(m.group(0) for m in list(pattern.finditer(text))[:limit])
    return _dedupe(found)


def _defaults_for(name_lower: str, table: Dict[str, List[str]], fallback: str) -> List[str]:
    for key, values in table.items():
        if key in name_lower:
            return list(values)
    return [fallback]


def extract_screen_section(screen_name: str, document_text: str) -> str:
    """Text windows around mentions of the screen, or generic UI windows."""
    windows: List[str] = []
    name_pattern = re.compile(r"\b" + re.escape(screen_name.lower()) + r"\b[\s\S]{0,2000}", re.IGNORECASE)
    for pattern in [name_pattern] + CATEGORY_SECTION_PATTERNS:
        windows.extend(m.group(0) for m in pattern.finditer(document_text))
    if windows:
        return "\n".join(windows)

    for pattern in GENERIC_SECTION_PATTERNS:
        windows.extend(m.group(0) for m in list(pattern.finditer(document_text))[:2])
    return "\n".join(windows)


def specific_screen_purpose(screen_name: str, system_type: Optional[str]) -> str:
    name = screen_name.lower()
    system_type = system_type or "system"
    if "home" in name or "main" in name:
        return f"Main overview and navigation interface for the {system_type} system"
    if "manual" in name or "control" in name:
        return f"Manual control interface for direct operator control of {system_type} operations"
    if "auto" in name:
        return f"Automatic operation mode control and monitoring for {system_type} system"
    if "test" in name:
        return f"System testing and diagnostic interface for {system_type} validation"
    if "pump" in name:
        return f"Pump control and monitoring interface for {system_type} pump operations"
    if "purge" in name or "purging" in name:
        return f"Purging sequence control and monitoring for {system_type} cleaning operations"
    if "setting" in name:
        return f"System configuration and parameter adjustment interface for {system_type}"
    if "alarm" in name:
        return f"Alarm monitoring and management interface for {system_type} fault handling"
    if "user" in name:
        return f"User access management and authentication interface for {system_type}"
    return f"Specialized {name} interface for {system_type} operations"


def extract_screen_content(screen: Screen, context: DocumentContext) -> ScreenContent:
    name_lower = screen.screen_name.lower()
    section = extract_screen_section(screen.screen_name, context.document_text)

    equipment = _collect(EQUIPMENT_PATTERNS, section)
    operations = _collect(OPERATION_PATTERNS, section)
    parameters = _collect(PARAMETER_PATTERNS, section)

    return ScreenContent(
        section=section[:1000],
        equipment=equipment or _defaults_for(name_lower, DEFAULT_EQUIPMENT, "Generator System Components"),
        operations=operations or _defaults_for(name_lower, DEFAULT_OPERATIONS, "System Control Operations"),
        parameters=parameters or _defaults_for(name_lower, DEFAULT_PARAMETERS, "System Parameters"),
        purpose=specific_screen_purpose(screen.screen_name, context.system_type),
    )
