import pytest

from hmi_agent.services.keywords import (
    DEFAULT_SYSTEM_TYPE,
    extract_keywords,
    score_system_types,
    system_catalog,
)


def test_generator_text_is_generator_control() -> None:
    text = "The generator has an engine, and a transfer switch moves load to the utility."
    assert extract_keywords(text).system_type == ["generator_control"]


@pytest.mark.parametrize(
    "text",
    [
        "",
        "hello world",
        "Water treatment plant with filtration and chlorination stages.",
        "SF6 gas analyzer measuring concentration in ppm.",
        "Conveyor belt sorting line with pumps, valves and motors.",
    ],
)
def test_system_type_is_single_catalog_entry(text: str) -> None:
    profile = extract_keywords(text)
    assert len(profile.system_type) == 1
    assert profile.system_type[0] in system_catalog()
    assert profile.primary_type


def test_weak_signal_falls_back_to_default() -> None:
    assert extract_keywords("a short note about nothing").system_type == [DEFAULT_SYSTEM_TYPE]


def test_extraction_is_idempotent(fds_text: str) -> None:
    assert extract_keywords(fds_text) == extract_keywords(fds_text)


def test_component_and_operation_terms_keep_catalog_order() -> None:
    profile = extract_keywords("Battery charger voltage; press START then STOP; select manual mode.")
    assert profile.components == ["battery", "charger", "voltage"]
    assert profile.operations == ["start", "stop", "manual"]
    assert "mode" in profile.controls


def test_scores_cover_every_category() -> None:
    scores = score_system_types("pump flow pressure")
    assert set(scores) == set(system_catalog()) - {DEFAULT_SYSTEM_TYPE}
    assert max(scores, key=scores.get) == "pump_system"
