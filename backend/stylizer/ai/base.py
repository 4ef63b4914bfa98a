"""
Base class for image generation providers.
All providers must implement this interface so the transform endpoint can
use any of them without knowing which one.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GeneratedImage:
    """Image returned by a provider."""
    data: bytes
    mime_type: str = "image/png"


class ImageProvider(ABC):
    """
    Abstract base class for image generation providers.

    All providers must implement:
    - transform(): generate a new image from an input image and a prompt
    - is_configured(): report whether credentials are present
    """

    name = "unknown"

    @abstractmethod
    async def transform(self, image: bytes, mime_type: str, prompt: str) -> GeneratedImage:
        """
        Generate a stylized version of an image.

        Args:
            image: Raw bytes of the uploaded image
            mime_type: MIME type of the uploaded image
            prompt: Instruction passed verbatim to the model

        Returns:
            The generated image

        Raises:
            TransformationFailed: If the provider returns no image data
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """
        Check if provider is properly configured (API key present, etc.).

        Returns:
            True if provider can be used, False otherwise
        """
        pass
