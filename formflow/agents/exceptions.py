class AgentError(Exception):
    """Raised when a stage agent cannot produce a result."""


class PromptLoadError(AgentError):
    """Raised when a bundled prompt template cannot be read."""
