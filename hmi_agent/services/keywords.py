# hmi_agent/services/keywords.py

import re
from typing import Dict, List

from hmi_agent.schemas import KeywordProfile

DEFAULT_SYSTEM_TYPE = "industrial_control"
MIN_SYSTEM_SCORE = 3

# Catalog order matters: ties keep the earlier category.
SYSTEM_PATTERNS: Dict[str, List[str]] = {
    "generator_control": ["generator", "standby", "backup", "power", "diesel", "engine", "alternator", "utility", "transfer", "switch"],
    "water_treatment": ["water", "treatment", "filtration", "purification", "clarification", "chlorination", "disinfection"],
    "gas_analyzer": ["gas", "analyzer", "sf6", "concentration", "ppm", "measurement", "spectrometer"],
    "motor_control": ["motor", "drive", "speed", "torque", "rpm", "inverter", "starter"],
    "pump_system": ["pump", "flow", "pressure", "suction", "discharge", "centrifugal", "impeller"],
    "cylinder_control": ["cylinder", "extend", "retract", "acting", "pneumatic", "hydraulic", "actuator"],
    "plc_system": ["plc", "logic", "controller", "input", "output", "ladder", "programming"],
    "hvac_system": ["hvac", "temperature", "heating", "cooling", "ventilation", "air", "conditioning"],
    "conveyor_system": ["conveyor", "belt", "transport", "material", "handling", "sorting"],
    "valve_control": ["valve", "open", "close", "position", "actuator", "flow", "control"],
    "power_generation": ["generator", "turbine", "power", "electrical", "grid", "transmission"],
    "chemical_processing": ["chemical", "reactor", "distillation", "separation", "catalyst", "process"],
    "oil_gas_processing": ["oil", "gas", "refinery", "crude", "petroleum", "hydrocarbon", "pipeline"],
    "manufacturing": ["manufacturing", "production", "assembly", "fabrication", "quality", "inspection"],
    "packaging": ["packaging", "labeling", "sealing", "filling", "wrapping", "bottling"],
    "food_beverage": ["food", "beverage", "pasteurization", "sterilization", "fermentation", "mixing"],
}

PRIMARY_KEYWORDS: Dict[str, List[str]] = {
    "generator_control": ["generator", "standby", "backup", "power", "diesel", "engine", "alternator"],
    "water_treatment": ["water", "treatment"],
    "gas_analyzer": ["gas", "analyzer"],
    "motor_control": ["motor", "control"],
    "pump_system": ["pump", "system"],
}

OPERATION_TERMS = [
    "start", "stop", "manual", "auto", "automatic", "test", "calibrate", "settings", "alarm",
    "reset", "transfer", "utility", "generator", "emergency", "override", "load", "shed", "paralleling",
]

COMPONENT_TERMS = [
    "sensor", "valve", "motor", "pump", "heater", "cooler", "display", "button", "indicator",
    "engine", "alternator", "generator", "battery", "charger", "voltage", "current", "frequency",
    "temperature", "pressure", "rpm", "fuel", "coolant", "oil", "air", "filter", "transfer", "switch",
]

CONTROL_TERMS = [
    "control", "monitor", "feedback", "status", "command", "setpoint", "parameter", "operating",
    "mode", "selector", "protection", "interlock", "safety", "emergency",
]


def score_system_types(text: str) -> Dict[str, int]:
    """Score every catalog category against the lowercased text."""
    text_lower = text.lower()
    scores: Dict[str, int] = {}
    for system, keywords in SYSTEM_PATTERNS.items():
        score = 0
        matched = 0
        for keyword in keywords:
            hits = len(re.findall(r"\b" + re.escape(keyword) + r"\b", text_lower))
            if hits:
                score += hits
                matched += 1
        if matched >= 2:
            score += matched * 2
        for primary in PRIMARY_KEYWORDS.get(system, []):
            if primary in text_lower:
                score += 5
        scores[system] = score
    return scores


def detect_system_type(text: str) -> str:
    scores = score_system_types(text)
    best_type = DEFAULT_SYSTEM_TYPE
    best_score = 0
    for system, score in scores.items():
        # strict comparison keeps the first category on ties
        if score > best_score:
            best_type, best_score = system, score
    if best_score >= MIN_SYSTEM_SCORE:
        return best_type
    return DEFAULT_SYSTEM_TYPE


def extract_keywords(text: str) -> KeywordProfile:
    text_lower = (text or "").lower()
    return KeywordProfile(
        system_type=[detect_system_type(text_lower)],
        components=[term for term in COMPONENT_TERMS if term in text_lower],
        operations=[term for term in OPERATION_TERMS if term in text_lower],
        controls=[term for term in CONTROL_TERMS if term in text_lower],
    )


def system_catalog() -> List[str]:
    return list(SYSTEM_PATTERNS) + [DEFAULT_SYSTEM_TYPE]
