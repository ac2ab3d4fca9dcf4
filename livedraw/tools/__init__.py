"""Clients for the external image services."""
from .enhance_image_tool import Enhancer
from .inference_client import InferenceClient

__all__ = ["Enhancer", "InferenceClient"]
