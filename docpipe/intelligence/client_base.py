from abc import ABC, abstractmethod

from docpipe.intelligence.models import DocumentContent


class BaseIntelligenceClient(ABC):
    """Contract for provider-specific document intelligence clients."""

    @abstractmethod
    async def analyze(
        self,
        *,
        content: DocumentContent,
        instruction: str,
        language: str,
    ) -> str:
        """Run one instruction against a document and return the raw model text.

        An empty model answer comes back as an empty string; callers parse it
        into their low-confidence defaults.

        Raises:
            IntelligenceNetworkError: on transient transport or API failures.
            IntelligenceConfigurationError: when credentials are missing or rejected.
            IntelligenceError: when the content cannot be sent to the model.
        """
