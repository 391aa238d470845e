# hmi_agent/services/segmenter.py

import re
from typing import List

from hmi_agent.schemas import Section

INTRO_HEADING = "Document Content"

# Evaluated in order; the first match makes the line a heading.
HEADING_PATTERNS = [
    re.compile(r"^\d+\.\s"),
    re.compile(r"^\d+\.\d+\s"),
    re.compile(r"^[A-Z][A-Z\s]+$"),
    re.compile(r"Screen$", re.IGNORECASE),
    re.compile(r"Interface$", re.IGNORECASE),
    re.compile(r"Control$", re.IGNORECASE),
    re.compile(r"Mode$", re.IGNORECASE),
    re.compile(r"System$", re.IGNORECASE),
    re.compile(
        r"^(Manual|Auto|Automatic|Home|Main|Test|Pumpback|Purging|Settings|Alarm|User|"
        r"Configuration|Display|Control|Interface|Panel|View|Time|Tracking|Diagnostic)",
        re.IGNORECASE,
    ),
    re.compile(r"^\w+\s*(Screen|Display|Interface|Panel|View|Mode|System|Control|Management)", re.IGNORECASE),
    # trigger words that open equipment sections in cylinder-style documents
    re.compile(r"acting|cylinder|extend|retract|feedback|fault|timer|interlock", re.IGNORECASE),
]


def is_heading(line: str) -> bool:
    return any(pattern.search(line) for pattern in HEADING_PATTERNS)


def segment(text: str) -> List[Section]:
    """
    Split document text into heading-delimited sections. Blank lines are
    dropped and every line is stripped; lines before the first heading land
    in a synthetic "Document Content" section.
    """
    sections: List[Section] = []
    current = Section(heading=INTRO_HEADING, synthetic=True)

    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if is_heading(line):
            if current.content or not current.synthetic:
                sections.append(current)
            current = Section(heading=line)
        else:
            current.content.append(line)

    sections.append(current)
    return sections


def document_lines(sections: List[Section]) -> List[str]:
    lines: List[str] = []
    for section in sections:
        lines.extend(section.source_lines())
    return lines
