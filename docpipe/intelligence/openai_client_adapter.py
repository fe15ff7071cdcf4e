import asyncio
import base64

import httpx
import openai

from docpipe.documents.media_types import VISION_MEDIA_TYPES
from docpipe.intelligence.client_base import BaseIntelligenceClient
from docpipe.intelligence.exceptions import (
    IntelligenceConfigurationError,
    IntelligenceError,
    IntelligenceNetworkError,
)
from docpipe.intelligence.models import DocumentContent
from docpipe.intelligence.prompt_loader import language_directive
from docpipe.logging.logger import Log
from docpipe.pdf.base import BasePdfExtractor
from docpipe.pdf.exceptions import PdfExtractionError

SYSTEM_PROMPT = (
    "You are a document analysis assistant. Follow the instruction exactly and "
    "base every answer on the supplied document only."
)

_MAX_TEXT_CHARS = 100_000


class OpenAIClientAdapter(BaseIntelligenceClient):
    """Document intelligence client built on the OpenAI-compatible chat API.

    Images go to the model as vision input; PDFs are converted to text first.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        pdf_extractor: BasePdfExtractor,
        base_url: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 4096,
    ) -> None:
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )
        self._model = model
        self._pdf_extractor = pdf_extractor
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def analyze(
        self,
        *,
        content: DocumentContent,
        instruction: str,
        language: str,
    ) -> str:
        user_content = await self._build_user_content(content, instruction, language)
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": user_content},
                ],
            )
        except openai.AuthenticationError as exc:
            raise IntelligenceConfigurationError(
                f"AI provider rejected credentials: {exc}"
            ) from exc
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise IntelligenceNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise IntelligenceNetworkError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            Log.warning(f"AI returned no choices for '{content.name}'")
            return ""
        text = response.choices[0].message.content
        if not text:
            Log.warning(f"AI returned an empty response for '{content.name}'")
        return text or ""

    async def _build_user_content(
        self,
        content: DocumentContent,
        instruction: str,
        language: str,
    ) -> str | list[dict[str, object]]:
        header = (
            f"File: {content.name}\n"
            f"Type: {content.media_type}\n\n"
            f"{instruction}\n\n{language_directive(language)}"
        )
        if content.is_image:
            if content.media_type not in VISION_MEDIA_TYPES:
                raise IntelligenceError(
                    f"Image type '{content.media_type}' is not accepted by the vision model"
                )
            encoded = base64.b64encode(content.data).decode("ascii")
            return [
                {"type": "text", "text": header},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{content.media_type};base64,{encoded}"},
                },
            ]
        if content.is_pdf:
            try:
                pdf = await asyncio.to_thread(self._pdf_extractor.extract, content.data)
            except PdfExtractionError as exc:
                raise IntelligenceError(f"Cannot read PDF '{content.name}': {exc}") from exc
            text = pdf.text or "[The PDF has no extractable text layer]"
            if pdf.truncated:
                text = f"[First {pdf.pages_read} of {pdf.page_count} pages]\n{text}"
        else:
            text = content.text()
        return f"{header}\n\nDocument Content:\n{text[:_MAX_TEXT_CHARS]}"
