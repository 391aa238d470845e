from typing import List, Optional

import pytest

from hmi_agent.config import Settings
from hmi_agent.errors import LLMError
from hmi_agent.schemas import Screen
from hmi_agent.services.content import DocumentContext
from hmi_agent.services.keywords import extract_keywords

GENERATOR_FDS = """1. INTRODUCTION
This document describes the standby generator control panel for the hospital site.
The diesel engine drives an alternator. An automatic transfer switch moves the load
between the utility supply and the generator.

2. OPERATOR PAGES
2.1 Home Screen
Shows engine status, AC voltage 480 V, AC frequency 60 Hz and oil pressure 45 psi.
Buttons: START, STOP, EMERGENCY STOP.
2.2 Alarm Screen
Lists active alarms with priority and time. Operators acknowledge and reset alarms.
2.3 Settings Screen
Start delay, transfer time and alarm delays are configured here.
"""


class FakeLLM:
    """Scripted stand-in for GroqChatClient."""

    def __init__(self, responses: Optional[List[str]] = None, error: Optional[Exception] = None) -> None:
        self.responses = list(responses or [])
        self.error = error
        self.calls: List[str] = []

    def complete(self, prompt, system=None, temperature=0.2, max_tokens=3000, max_retries=2) -> str:
        self.calls.append(prompt)
        if self.error is not None:
            raise self.error
        if not self.responses:
            raise LLMError("No scripted response left")
        return self.responses.pop(0)


def make_screens(*names: str) -> List[Screen]:
    return [Screen(screen_id=f"screen_{i + 1}", screen_name=name) for i, name in enumerate(names)]


def make_context(names: List[str], text: str = GENERATOR_FDS) -> DocumentContext:
    return DocumentContext(document_text=text, profile=extract_keywords(text), screen_names=list(names))


@pytest.fixture
def fds_text() -> str:
    return GENERATOR_FDS


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        groq_api_key="test-key",
        output_dir=str(tmp_path / "outputs"),
        upload_dir=str(tmp_path / "uploads"),
        value_seed=42,
    )
