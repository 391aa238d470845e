import json

from conftest import FakeLLM, make_context, make_screens
from hmi_agent.errors import LLMError
from hmi_agent.services import workflow as workflow_module
from hmi_agent.services.workflow import (
    compose_workflow,
    enhance_with_template_data,
    navigation,
    navigation_flow,
    normalize_transitions,
    template_workflow,
)

FOUR_SCREENS = ("Home Screen", "Manual Control Screen", "Alarm Screen", "Settings Screen")


def test_two_screens_use_template_without_model_call() -> None:
    screens = make_screens("Home Screen", "Settings Screen")
    llm = FakeLLM()

    workflow = compose_workflow(screens, make_context(["Home Screen", "Settings Screen"]), llm)

    assert llm.calls == []
    assert len(workflow.screen_analysis) == 2
    assert workflow.system_overview.total_screens == 2
    transitions = [(t.from_screen, t.to_screen) for t in workflow.navigation_flow.transitions]
    assert transitions == [("Home Screen", "Settings Screen")]
    assert workflow.navigation_flow.diagram.startswith("graph TD")


def test_model_workflow_drops_dangling_transitions() -> None:
    screens = make_screens(*FOUR_SCREENS)
    response = {
        "systemOverview": {"systemName": "Standby Generator HMI"},
        "screenAnalysis": [
            {"screenName": "Home Screen", "purpose": "Overview", "keyElements": [{"type": "gauge"}, "Start button"]},
            {"screenName": "Ghost Screen", "purpose": "Not in the document"},
        ],
        "navigationFlow": {
            "screenTransitions": [
                "Home Screen -> Alarm Screen",
                "Home Screen → Settings Screen",
                {"from": "Home Screen", "to": "Ghost Screen"},
                {"from": "Manual Control Screen", "to": "Home Screen", "trigger": "Back button"},
                "not a transition",
                42,
            ]
        },
    }
    llm = FakeLLM(["```json\n" + json.dumps(response) + "\n```"])

    workflow = compose_workflow(screens, make_context(list(FOUR_SCREENS)), llm)

    assert len(llm.calls) == 1
    assert workflow.system_overview.system_name == "Standby Generator HMI"
    assert workflow.system_overview.total_screens == 4
    assert [a.screen_name for a in workflow.screen_analysis] == list(FOUR_SCREENS)
    assert workflow.screen_analysis[0].key_elements == ['{"type": "gauge"}', "Start button"]
    assert all(a.purpose and a.behavior and a.user_roles for a in workflow.screen_analysis)

    pairs = [(t.from_screen, t.to_screen) for t in workflow.navigation_flow.transitions]
    assert pairs == [
        ("Home Screen", "Alarm Screen"),
        ("Home Screen", "Settings Screen"),
        ("Manual Control Screen", "Home Screen"),
    ]
    for t in workflow.navigation_flow.transitions:
        assert t.from_screen in FOUR_SCREENS and t.to_screen in FOUR_SCREENS
        assert t.trigger and t.description


def test_model_failure_falls_back_to_template() -> None:
    screens = make_screens(*FOUR_SCREENS)
    workflow = compose_workflow(screens, make_context(list(FOUR_SCREENS)), FakeLLM(error=LLMError("down")))
    assert len(workflow.screen_analysis) == 4
    assert len(workflow.navigation_flow.transitions) == 3


def test_unexpected_model_error_falls_back_to_template() -> None:
    screens = make_screens(*FOUR_SCREENS)
    workflow = compose_workflow(screens, make_context(list(FOUR_SCREENS)), FakeLLM(error=RuntimeError("socket reset")))
    assert workflow.workflow_type == template_workflow(screens, make_context(list(FOUR_SCREENS))).workflow_type
    assert len(workflow.screen_analysis) == 4


def test_reconciliation_error_falls_back_to_template(monkeypatch) -> None:
    def broken(payload, screens, context):
        raise KeyError("screenAnalysis")

    monkeypatch.setattr(workflow_module, "enhance_with_template_data", broken)
    screens = make_screens(*FOUR_SCREENS)
    workflow = compose_workflow(screens, make_context(list(FOUR_SCREENS)), FakeLLM(responses=['{"screenAnalysis": []}']))
    assert [a.screen_name for a in workflow.screen_analysis] == list(FOUR_SCREENS)


def test_transitions_chain_screens_in_input_order() -> None:
    flow = navigation_flow(["Alarm Screen", "Home Screen", "Settings Screen"])
    pairs = [(t.from_screen, t.to_screen) for t in flow.transitions]
    assert pairs == [("Alarm Screen", "Home Screen"), ("Home Screen", "Settings Screen")]
    assert "S1 --> S2" in flow.diagram
    assert "S2 --> S3" in flow.diagram


def test_screen_navigation_has_previous_and_next() -> None:
    names = list(FOUR_SCREENS)
    assert navigation("Manual Control Screen", names)["previous"] == "Home Screen"
    assert navigation("Manual Control Screen", names)["next"] == "Alarm Screen"
    assert navigation("Settings Screen", names)["next"] == "Home Screen"
    assert navigation("Home Screen", names)["related"] == ["Manual Control Screen"]


def test_normalize_transitions_fills_defaults() -> None:
    transitions = normalize_transitions(["A -> B"], ["A", "B"])
    assert transitions[0].trigger == "User selection"
    assert transitions[0].description == "Navigate from A to B"


def test_enhance_with_empty_payload_matches_screens() -> None:
    screens = make_screens(*FOUR_SCREENS)
    workflow = enhance_with_template_data({}, screens, make_context(list(FOUR_SCREENS)))
    assert [a.screen_number for a in workflow.screen_analysis] == [1, 2, 3, 4]
    names = set(FOUR_SCREENS)
    assert all(t.from_screen in names and t.to_screen in names for t in workflow.navigation_flow.transitions)
