import json

import pytest

from conftest import FakeLLM
from hmi_agent.errors import LLMError, ScreenAnalysisError
from hmi_agent.schemas import Section
from hmi_agent.services.identifier import (
    filter_screen_sections,
    identify_screens,
    normalize_identification,
    screens_from_sections,
)
from hmi_agent.services.segmenter import segment


def test_fenced_response_with_chatter_is_recovered(fds_text: str) -> None:
    payload = {
        "totalScreens": 5,
        "screenList": [{"screenName": "Home Screen"}, {"screenName": "Alarm Screen", "screenType": "alarm"}],
        "reasoning": "named in section 2",
    }
    raw = "Sure! Here are the screens:\n```json\n" + json.dumps(payload) + "\n```\nLet me know if you need more."
    llm = FakeLLM([raw])

    result = identify_screens(segment(fds_text), fds_text, llm)

    assert len(llm.calls) == 1
    assert result.total_screens == 2
    assert [s.screen_name for s in result.screen_list] == ["Home Screen", "Alarm Screen"]
    assert [s.screen_id for s in result.screen_list] == ["screen_1", "screen_2"]
    assert result.screen_list[1].screen_type == "alarm"
    assert result.source == "model"


def test_model_failure_raises_analysis_error(fds_text: str) -> None:
    with pytest.raises(ScreenAnalysisError):
        identify_screens(segment(fds_text), fds_text, FakeLLM(error=LLMError("timeout")))


def test_transport_error_is_wrapped(fds_text: str) -> None:
    with pytest.raises(ScreenAnalysisError) as excinfo:
        identify_screens(segment(fds_text), fds_text, FakeLLM(error=RuntimeError("socket reset")))
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_unparsable_response_raises_analysis_error(fds_text: str) -> None:
    with pytest.raises(ScreenAnalysisError):
        identify_screens(segment(fds_text), fds_text, FakeLLM(["I could not find any screens."]))


def test_empty_screen_list_is_a_failure() -> None:
    with pytest.raises(ScreenAnalysisError):
        normalize_identification({"screenList": []})


def test_names_are_made_unique() -> None:
    result = normalize_identification({"screenList": ["Home Screen", " Home Screen ", {"screenName": "home screen"}]})
    assert [s.screen_name for s in result.screen_list] == ["Home Screen", "Home Screen (2)", "home screen (3)"]
    assert result.total_screens == 3


def test_filter_keeps_first_section_per_heading() -> None:
    sections = [
        Section(heading="Home Screen", content=["first"]),
        Section(heading="Purpose", content=["no relevant words here"]),
        Section(heading="Home Screen", content=["second"]),
        Section(heading="3.1 Pumps", content=["nothing"]),
    ]
    kept = filter_screen_sections(sections)
    assert [s.heading for s in kept] == ["Home Screen", "3.1 Pumps"]
    assert kept[0].content == ["first"]


def test_template_identification_uses_screen_headings(fds_text: str) -> None:
    result = screens_from_sections(segment(fds_text))
    names = [s.screen_name for s in result.screen_list]
    assert names == ["Home Screen", "Alarm Screen", "Settings Screen"]
    assert result.source == "template"
    assert result.screen_list[1].screen_type == "alarm"


def test_template_identification_defaults_to_main_screen() -> None:
    result = screens_from_sections(segment("nothing useful"))
    assert [s.screen_name for s in result.screen_list] == ["Main Screen"]
