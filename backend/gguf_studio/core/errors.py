"""Error kinds surfaced by the studio services.

Orchestrators catch these at the call site and turn them into banner text
or execution-record errors; they are not meant to reach the event loop.
"""


class StudioError(Exception):
    pass


class ConfigurationError(StudioError):
    """A required credential or setting is missing."""


class BackendError(StudioError):
    """The AI backend or the sandbox failed (network, API or timeout)."""


class ResponseParseError(StudioError):
    """Structured output from the AI backend did not match its schema."""


class ScriptTemplateError(StudioError, ValueError):
    """A value cannot be embedded safely into generated source text."""


class ChatBusyError(StudioError):
    """A send was attempted while a response is still streaming."""
