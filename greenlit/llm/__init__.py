"""
Greenlit LLM Module

Provider clients, response coercion and the image search cache.
"""

from .api_clients import (
    APIError,
    APITimeoutError,
    TextResponse,
    ImageResult,
    GeminiClient,
    AzureOpenAIClient,
    UnsplashClient,
    create_text_client,
    create_image_client,
)
from .response_coercion import ParseFailure, coerce_json, check_shape
from .image_cache import ImageCache, ImageSearchService

__all__ = [
    'APIError',
    'APITimeoutError',
    'TextResponse',
    'ImageResult',
    'GeminiClient',
    'AzureOpenAIClient',
    'UnsplashClient',
    'create_text_client',
    'create_image_client',
    'ParseFailure',
    'coerce_json',
    'check_shape',
    'ImageCache',
    'ImageSearchService',
]
