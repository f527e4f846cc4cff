"""Error taxonomy for the production data agent."""
from __future__ import annotations


class AgentError(Exception):
    """Base class for errors raised inside the agent."""


class ConfigurationError(AgentError):
    """Raised at start-up when a connection string or credential is missing."""


class StoreError(AgentError):
    """Raised when the document store rejects or fails a request."""


class StoreConnectionError(StoreError):
    """Raised when the document store cannot be reached."""


class ComponentLookupError(AgentError):
    """Base class for component partition lookup failures."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(message)


class MalformedNameError(ComponentLookupError):
    """Raised when a component name cannot be used as a lookup key."""

    def __init__(self, name: str, reason: str):
        self.reason = reason
        super().__init__(name, f"Component name '{name}' is not valid: {reason}")


class PartitionNotFoundError(ComponentLookupError):
    """Raised when a well-formed component name has no partition."""

    def __init__(self, name: str):
        super().__init__(name, f"No inspection data found for component '{name}'")


class LLMError(AgentError):
    """Raised when the language model call fails."""


class CredentialError(LLMError):
    """Raised when the language model provider rejects the API key."""
