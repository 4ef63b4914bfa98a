"""
Image provider factory.
Returns the configured provider; used as a FastAPI dependency so tests can
override it.
"""
import logging
from functools import lru_cache

from stylizer.ai.base import ImageProvider
from stylizer.ai.gemini_provider import GeminiImageProvider

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_image_provider() -> ImageProvider:
    """
    Factory function to get the image generation provider.

    Returns:
        ImageProvider instance (Gemini)
    """
    provider = GeminiImageProvider()
    if not provider.is_configured():
        logger.warning("Gemini provider selected but GOOGLE_API_KEY not configured")
    else:
        logger.info(f"Using Gemini image provider ({provider.model})")
    return provider
