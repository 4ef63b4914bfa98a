"""
Google Gemini provider implementation.
Uses the google-genai SDK async client for image-to-image generation.
"""
import logging
from google import genai
from google.genai import types

from stylizer.ai.base import GeneratedImage, ImageProvider
from stylizer.config import settings
from stylizer.errors import TransformationFailed

logger = logging.getLogger(__name__)


class GeminiImageProvider(ImageProvider):
    """
    Gemini image model provider.

    Sends the prompt and the inline image in one user turn and asks for
    IMAGE + TEXT modalities; the first inline image part of the first
    candidate is the result.
    """

    name = "gemini"

    def __init__(self, api_key: str = None, model: str = None):
        """Initialize Gemini provider with API key from settings."""
        self.api_key = api_key or settings.google_api_key
        self.model = model or settings.gemini_image_model

        if self.api_key:
            self.client = genai.Client(api_key=self.api_key)
        else:
            self.client = None

    def is_configured(self) -> bool:
        """Check if Google API key is configured."""
        return bool(self.api_key)

    async def transform(self, image: bytes, mime_type: str, prompt: str) -> GeneratedImage:
        if not self.is_configured() or not self.client:
            raise TransformationFailed("Google API key not configured")

        # "image/jpg" is accepted from browsers but is not a registered type
        if mime_type == "image/jpg":
            mime_type = "image/jpeg"

        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=[
                types.Content(
                    role="user",
                    parts=[
                        types.Part.from_text(text=prompt),
                        types.Part.from_bytes(data=image, mime_type=mime_type),
                    ],
                )
            ],
            config=types.GenerateContentConfig(
                response_modalities=["IMAGE", "TEXT"],
            ),
        )

        generated = self._first_image(response)
        if generated is None:
            raise TransformationFailed("No image data returned from Gemini")

        logger.debug(f"Gemini returned {len(generated.data)} bytes ({generated.mime_type})")
        return generated

    @staticmethod
    def _first_image(response) -> GeneratedImage:
        candidates = getattr(response, "candidates", None) or []
        if not candidates or not candidates[0].content:
            return None
        for part in candidates[0].content.parts or []:
            inline_data = getattr(part, "inline_data", None)
            if inline_data and inline_data.data:
                return GeneratedImage(
                    data=inline_data.data,
                    mime_type=inline_data.mime_type or "image/png",
                )
        return None
