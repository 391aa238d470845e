# hmi_agent/errors.py


class HMIAgentError(Exception):
    """Base class for every error raised by the HMI generator."""


class ConfigurationError(HMIAgentError):
    """Required configuration (credentials, directories) is missing or invalid."""


class LLMError(HMIAgentError):
    """The language model could not be reached or returned nothing usable."""


class ResponseParseError(LLMError):
    """No JSON object could be recovered from a model response."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class ScreenAnalysisError(HMIAgentError):
    """Screen identification failed; callers decide whether to use the template path."""


class SessionError(HMIAgentError):
    def __init__(self, message: str, session_id: str = "", busy: bool = False) -> None:
        super().__init__(message)
        self.session_id = session_id
        self.busy = busy
