"""Custom exception classes."""


class RecipeKeeperException(Exception):
    """Base exception for the recipe keeper application."""

    pass


class ValidationError(RecipeKeeperException):
    """Raised when input validation fails."""

    pass


class RecipeNotFoundError(RecipeKeeperException):
    """Raised when a recipe id does not exist in the store."""

    pass


class ScrapingError(RecipeKeeperException):
    """Raised when fetching a recipe page fails."""

    pass


class LLMError(RecipeKeeperException):
    """Base class for chat-completion failures."""

    pass


class LLMUnavailableError(LLMError):
    """Raised when the local LLM server refuses the connection."""

    pass


class LLMConfigurationError(LLMError):
    """Raised when a provider is missing required configuration (e.g. API key)."""

    pass


class LLMRequestError(LLMError):
    """Raised on timeouts, transport errors and non-success responses."""

    pass


class LLMInvalidResponseError(LLMError):
    """Raised when the model reply is empty or not parsable."""

    pass


class PatchRejectedError(RecipeKeeperException):
    """Raised when an AI patch violates a structural invariant."""

    pass


class NoApplicableChangesError(RecipeKeeperException):
    """Raised when nothing in a patch survives the field allow-list."""

    pass
