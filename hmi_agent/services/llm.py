# hmi_agent/services/llm.py

import json
import logging
import re
import time
from typing import Any, Dict, Optional

from groq import APIError, Groq, RateLimitError

from hmi_agent.config import DEFAULT_GROQ_MODEL, Settings
from hmi_agent.errors import ConfigurationError, LLMError, ResponseParseError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are an industrial HMI design assistant. Output only valid JSON."

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


class GroqChatClient:
    """
    Thin wrapper over Groq chat completions. Anything with a compatible
    ``complete`` method can stand in for it (the tests use a scripted fake).
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str] = None,
        timeout: float = 45.0,
    ) -> None:
        if not api_key:
            raise ConfigurationError("GROQ_API_KEY is missing.")
        self.model = model or DEFAULT_GROQ_MODEL
        self.timeout = timeout
        self._groq_client = Groq(api_key=api_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GroqChatClient":
        return cls(settings.groq_api_key, model=settings.groq_model, timeout=settings.llm_timeout)

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 3000,
        max_retries: int = 2,
    ) -> str:
        for attempt in range(max_retries):
            try:
                response = self._groq_client.chat.completions.create(
                    model=self.model,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=self.timeout,
                    messages=[
                        {"role": "system", "content": system or DEFAULT_SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                )
            except RateLimitError as e:
                if attempt < max_retries - 1:
                    wait_time = (attempt + 1) * 3
                    logger.warning("Groq rate limit hit, retrying in %ss", wait_time)
                    time.sleep(wait_time)
                    continue
                raise LLMError(f"Rate limit exceeded: {e}") from e
            except APIError as e:
                if attempt < max_retries - 1:
                    time.sleep(1)
                    continue
                raise LLMError(f"Groq request failed: {e}") from e

            content = (response.choices[0].message.content or "").strip()
            if not content:
                raise LLMError("Model returned an empty response.")
            return content

        raise LLMError("Model call was not attempted.")


def parse_json_response(raw: str) -> Dict[str, Any]:
    """
    Recover a JSON object from model text: the whole text first, then a
    fenced ```json block, then the slice from the first '{' to the last '}'.
    """
    cleaned = (raw or "").strip()
    if not cleaned:
        raise ResponseParseError("Empty model response.", raw)

    candidates = [cleaned]
    fenced = _FENCED_BLOCK.search(cleaned)
    if fenced:
        candidates.append(fenced.group(1).strip())
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start != -1 and end > start:
        candidates.append(cleaned[start:end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise ResponseParseError("No JSON object found in model response.", raw)
