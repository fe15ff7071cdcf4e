class IntelligenceError(Exception):
    """Raised when a document intelligence call fails."""


class IntelligenceNetworkError(IntelligenceError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""


class IntelligenceConfigurationError(IntelligenceError):
    """Raised when the AI provider cannot be used with the current configuration.

    Unlike other intelligence errors this one is fatal for a whole batch.
    """
