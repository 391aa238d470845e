# hmi_agent/services/identifier.py

import json
import logging
import re
from typing import Any, Dict, List

from hmi_agent.errors import ScreenAnalysisError
from hmi_agent.schemas import Screen, ScreenIdentification, Section
from hmi_agent.services.llm import parse_json_response
from hmi_agent.services.prompts import SCREEN_IDENTIFICATION_PROMPT, render_prompt

logger = logging.getLogger(__name__)

SCREEN_KEYWORDS = [
    "screen", "display", "interface", "panel", "view", "window", "home", "main", "test",
    "pumpback", "purging", "settings", "alarm", "user", "configuration", "status", "control",
    "navigation", "menu", "hmi", "gui", "ui",
]
STRUCTURAL_HEADING_WORDS = ["screen", "display", "interface"]
STRUCTURAL_CONTENT_WORDS = ["button", "field", "status", "indicator"]
NUMBERED_SUBSECTION = re.compile(r"^\d+\.\d+")
HEADING_NUMBER = re.compile(r"^\d+(?:\.\d+)*\.?\s+")
SCREEN_WORD = re.compile(r"\b(" + "|".join(SCREEN_KEYWORDS) + r")\b", re.IGNORECASE)

MAX_SECTIONS_CHARS = 12000

# Ordered: the first match decides the type of a template-path screen.
SCREEN_TYPE_RULES = [
    (("alarm", "alert", "fault"), "alarm"),
    (("setting", "config", "user"), "configuration"),
    (("home", "main", "menu", "navigation"), "navigation"),
    (("monitor", "status", "tracking", "trend", "display", "view"), "monitoring"),
]


def _is_keyword_section(section: Section) -> bool:
    haystack = (section.heading + " " + " ".join(section.content)).lower()
    return any(keyword in haystack for keyword in SCREEN_KEYWORDS)


def _is_structural_section(section: Section) -> bool:
    heading = section.heading.lower()
    if any(word in heading for word in STRUCTURAL_HEADING_WORDS):
        return True
    if NUMBERED_SUBSECTION.match(section.heading):
        return True
    return any(
        word in line.lower() for line in section.content for word in STRUCTURAL_CONTENT_WORDS
    )


def filter_screen_sections(sections: List[Section]) -> List[Section]:
    """Keep screen-relevant sections, deduplicated by heading (first wins)."""
    keyword_hits = [s for s in sections if _is_keyword_section(s)]
    structural_hits = [s for s in sections if _is_structural_section(s)]

    seen = set()
    relevant: List[Section] = []
    for section in keyword_hits + structural_hits:
        if section.heading in seen:
            continue
        seen.add(section.heading)
        relevant.append(section)
    return relevant


def infer_screen_type(name: str) -> str:
    name_lower = name.lower()
    for words, screen_type in SCREEN_TYPE_RULES:
        if any(word in name_lower for word in words):
            return screen_type
    return "control"


def _unique_name(name: str, taken: set) -> str:
    candidate = name
    suffix = 2
    while candidate.lower() in taken:
        candidate = f"{name} ({suffix})"
        suffix += 1
    taken.add(candidate.lower())
    return candidate


def normalize_identification(payload: Dict[str, Any], source: str = "model") -> ScreenIdentification:
    """Validate a raw identification payload into unique, numbered screens."""
    raw_list = payload.get("screenList") or payload.get("screen_list") or payload.get("screens")
    if not isinstance(raw_list, list):
        raise ScreenAnalysisError("Identification response has no screen list.")

    taken: set = set()
    taken_ids: set = set()
    screens: List[Screen] = []
    for entry in raw_list:
        if isinstance(entry, str):
            entry = {"screenName": entry}
        if not isinstance(entry, dict):
            continue
        name = str(entry.get("screenName") or entry.get("name") or "").strip()
        if not name:
            continue
        index = len(screens) + 1
        screen_id = str(entry.get("screenId") or f"screen_{index}")
        if screen_id in taken_ids:
            screen_id = f"screen_{index}"
        taken_ids.add(screen_id)
        screens.append(
            Screen(
                screen_id=screen_id,
                screen_name=_unique_name(name, taken),
                screen_purpose=str(entry.get("screenPurpose") or entry.get("purpose") or ""),
                screen_type=str(entry.get("screenType") or infer_screen_type(name)),
            )
        )

    if not screens:
        raise ScreenAnalysisError("Identification response contained no screens.")

    return ScreenIdentification(
        total_screens=len(screens),
        screen_list=screens,
        reasoning=str(payload.get("reasoning") or ""),
        source=source,
    )


def identify_screens(sections: List[Section], document_text: str, llm) -> ScreenIdentification:
    """
    Ask the model which screens the document describes. Raises
    ScreenAnalysisError on any model or parsing failure; the caller decides
    whether to fall back to screens_from_sections.
    """
    relevant = filter_screen_sections(sections) or sections
    payload = [{"heading": s.heading, "content": s.content} for s in relevant]
    if not any(entry["content"] for entry in payload):
        payload = [{"heading": "Document Content", "content": document_text.splitlines()}]
    sections_json = json.dumps(payload, indent=2)[:MAX_SECTIONS_CHARS]
    prompt = render_prompt(SCREEN_IDENTIFICATION_PROMPT, SECTIONS_JSON=sections_json)

    try:
        raw = llm.complete(prompt, temperature=0.2, max_tokens=2000, max_retries=1)
        identification = normalize_identification(parse_json_response(raw))
    except ScreenAnalysisError:
        raise
    except Exception as e:
        raise ScreenAnalysisError(f"Screen identification failed: {e}") from e

    logger.info("Model identified %d screens", identification.total_screens)
    return identification


def screens_from_sections(sections: List[Section]) -> ScreenIdentification:
    """Template-only identification: screen-like headings become screens."""
    names = []
    for section in filter_screen_sections(sections):
        if section.synthetic:
            continue
        if SCREEN_WORD.search(section.heading):
            names.append(HEADING_NUMBER.sub("", section.heading).rstrip(":").strip())

    if not names:
        names = ["Main Screen"]

    payload = {
        "screenList": [{"screenName": name} for name in names],
        "reasoning": "Derived from document headings without model assistance.",
    }
    return normalize_identification(payload, source="template")
