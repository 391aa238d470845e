from types import SimpleNamespace

import pytest

from hmi_agent.errors import ConfigurationError, LLMError, ResponseParseError
from hmi_agent.services.llm import GroqChatClient, parse_json_response
from hmi_agent.services.prompts import SCREEN_SPEC_PROMPT, render_prompt


def _client_returning(content):
    client = GroqChatClient("test-key", model="test-model")
    seen = []

    def create(**kwargs):
        seen.append(kwargs)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    client._groq_client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, seen


def test_missing_key_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        GroqChatClient(None)


def test_complete_sends_system_and_user_messages() -> None:
    client, seen = _client_returning('  {"ok": true}  ')
    assert client.complete("hello", system="be terse", temperature=0.4, max_tokens=10) == '{"ok": true}'
    assert seen[0]["model"] == "test-model"
    assert seen[0]["messages"][0] == {"role": "system", "content": "be terse"}
    assert seen[0]["messages"][1] == {"role": "user", "content": "hello"}


def test_empty_completion_is_an_error() -> None:
    client, _ = _client_returning("")
    with pytest.raises(LLMError):
        client.complete("hello")


@pytest.mark.parametrize(
    "raw",
    [
        '{"a": 1}',
        'Here you go:\n```json\n{"a": 1}\n```',
        'prefix {"a": 1} suffix',
    ],
)
def test_json_is_recovered(raw: str) -> None:
    assert parse_json_response(raw) == {"a": 1}


@pytest.mark.parametrize("raw", ["", "no json", "[1, 2, 3]"])
def test_unrecoverable_json_raises(raw: str) -> None:
    with pytest.raises(ResponseParseError):
        parse_json_response(raw)


def test_render_prompt_fills_named_slots() -> None:
    prompt = render_prompt(SCREEN_SPEC_PROMPT, SCREEN_NAME="Alarm Screen", SYSTEM_TYPE="generator_control")
    assert "Alarm Screen" in prompt
    assert "{SCREEN_NAME}" not in prompt
