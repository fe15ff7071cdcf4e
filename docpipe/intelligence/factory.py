from typing import ClassVar

from docpipe.config.settings import Settings
from docpipe.intelligence.client_base import BaseIntelligenceClient
from docpipe.intelligence.example_client_adapter import ExampleClientAdapter
from docpipe.intelligence.exceptions import IntelligenceConfigurationError
from docpipe.intelligence.openai_client_adapter import OpenAIClientAdapter
from docpipe.pdf.factory import PdfExtractorFactory


class IntelligenceClientFactory:
    """Creates the configured document intelligence client."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "gemini": "https://generativelanguage.googleapis.com/v1beta/openai/",
        "ollama": "http://localhost:11434/v1",
    }

    # Providers that cannot be reached without an API key.
    HOSTED_PROVIDERS: ClassVar[frozenset[str]] = frozenset({
        "openai",
        "openrouter",
        "groq",
        "gemini",
    })

    @classmethod
    def create(cls, settings: Settings) -> BaseIntelligenceClient:
        """Create a configured client from application settings.

        Raises:
            ValueError: for an unknown provider or a missing compatible base URL.
            IntelligenceConfigurationError: when a hosted provider has no API key.
        """
        provider = settings.intelligence_provider.lower()
        if provider == "example":
            return ExampleClientAdapter()
        base_url = cls._resolve_base_url(provider, settings)
        api_key = cls._resolve_api_key(provider, settings)
        if not api_key and provider in cls.HOSTED_PROVIDERS:
            raise IntelligenceConfigurationError(
                f"API key for intelligence provider '{provider}' is not configured"
            )
        return OpenAIClientAdapter(
            api_key=api_key,
            model=cls._resolve_model_name(provider, settings),
            timeout_seconds=cls._resolve_timeout_seconds(provider, settings),
            pdf_extractor=PdfExtractorFactory.create(settings),
            base_url=base_url,
            temperature=cls._resolve_temperature(provider, settings),
            max_tokens=settings.intelligence_max_tokens,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.intelligence_openai_compatible_base_url or "").strip()
            if not url:
                raise ValueError(
                    "intelligence_openai_compatible_base_url is required for "
                    "intelligence_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown intelligence provider '{provider}'. Choose from: {supported}"
        )

    @classmethod
    def _resolve_api_key(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.intelligence_openai_api_key,
            "openai_compatible": settings.intelligence_openai_compatible_api_key,
            "openrouter": settings.intelligence_openrouter_api_key,
            "groq": settings.intelligence_groq_api_key,
            "gemini": settings.intelligence_gemini_api_key,
            "ollama": settings.intelligence_ollama_api_key,
        }
        return (key_map.get(provider) or "").strip()

    @classmethod
    def _resolve_model_name(cls, provider: str, settings: Settings) -> str:
        key_map = {
            "openai": settings.intelligence_openai_model_name,
            "openai_compatible": settings.intelligence_openai_compatible_model_name,
            "openrouter": settings.intelligence_openrouter_model_name,
            "groq": settings.intelligence_groq_model_name,
            "gemini": settings.intelligence_gemini_model_name,
            "ollama": settings.intelligence_ollama_model_name,
        }
        return key_map.get(provider, "") or ""

    @classmethod
    def _resolve_timeout_seconds(cls, provider: str, settings: Settings) -> int:
        key_map = {
            "openai": settings.intelligence_openai_timeout_seconds,
            "openai_compatible": settings.intelligence_openai_compatible_timeout_seconds,
            "openrouter": settings.intelligence_openrouter_timeout_seconds,
            "groq": settings.intelligence_groq_timeout_seconds,
            "gemini": settings.intelligence_gemini_timeout_seconds,
            "ollama": settings.intelligence_ollama_timeout_seconds,
        }
        return key_map.get(provider, 30) or 30

    @classmethod
    def _resolve_temperature(cls, provider: str, settings: Settings) -> float:
        if provider == "openai":
            return settings.intelligence_openai_temperature
        return 0.0
