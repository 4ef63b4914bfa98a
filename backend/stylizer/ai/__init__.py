"""
Image generation providers.
"""
from stylizer.ai.base import GeneratedImage, ImageProvider
from stylizer.ai.factory import get_image_provider

__all__ = ["GeneratedImage", "ImageProvider", "get_image_provider"]
