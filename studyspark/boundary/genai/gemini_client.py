"""
Gemini model provider client.

Thin async wrapper over google-genai: upload a file to the Files API and
obtain an opaque handle (the file URI), then generate JSON output from that
handle plus a prompt. Responses are requested with the JSON mime type so the
text can be parsed directly.

Retries are not done here; callers wrap calls in core.retry.call_with_retry.

Dependencies: google.genai
System role: Generative model boundary
"""

import logging
from typing import Any

from google import genai
from google.genai import types

from studyspark.core.exceptions import ModelProviderError

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"
PDF_MIME_TYPE = "application/pdf"


class GeminiClient:
    """Async Gemini client for file-grounded JSON generation."""

    def __init__(
        self,
        api_key: str,
        model_id: str = "gemini-2.0-flash",
        temperature: float = 0.3,
        client: Any = None,
    ) -> None:
        """
        Initialize client.

        Args:
            api_key: Gemini API key
            model_id: Model used for generation
            temperature: Sampling temperature
            client: Pre-built genai.Client (tests)
        """
        self._client = client or genai.Client(api_key=api_key)
        self._model_id = model_id
        self._temperature = temperature

    @property
    def model_id(self) -> str:
        return self._model_id

    async def upload_file(self, path: str, mime_type: str = PDF_MIME_TYPE) -> str:
        """
        Upload a local file to the Files API.

        Args:
            path: Local file path
            mime_type: File MIME type

        Returns:
            str: File handle (URI) for later generate_json calls

        Raises:
            ModelProviderError: Upload returned no URI
        """
        uploaded = await self._client.aio.files.upload(
            file=path,
            config=types.UploadFileConfig(mime_type=mime_type),
        )
        if not getattr(uploaded, "uri", None):
            raise ModelProviderError("Model file upload returned no handle", {"path": path})

        logger.info(
            f"{__name__}:upload_file - Uploaded file",
            extra={"file_uri": uploaded.uri, "mime_type": mime_type},
        )
        return uploaded.uri

    async def generate_json(
        self,
        file_handle: str,
        prompt: str,
        mime_type: str = PDF_MIME_TYPE,
    ) -> str:
        """
        Generate JSON text from an uploaded file and a prompt.

        Args:
            file_handle: URI returned by upload_file
            prompt: Instruction text
            mime_type: MIME type of the referenced file

        Returns:
            str: Raw JSON text
        """
        contents = [
            types.Part.from_uri(file_uri=file_handle, mime_type=mime_type),
            prompt,
        ]
        return await self._generate(contents)

    async def _generate(self, contents: list) -> str:
        response = await self._client.aio.models.generate_content(
            model=self._model_id,
            contents=contents,
            config=types.GenerateContentConfig(
                response_mime_type=JSON_MIME_TYPE,
                temperature=self._temperature,
            ),
        )
        text = getattr(response, "text", None)
        if not text:
            raise ModelProviderError(
                "Model returned an empty response", {"model": self._model_id}
            )
        logger.debug(f"{__name__}:_generate - Response received, len={len(text)}")
        return text
