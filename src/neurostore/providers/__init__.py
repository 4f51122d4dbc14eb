"""
Embedding and completion providers.

``create_embedder`` and ``create_completion`` pick the implementation named
in configuration. Call them once when the process starts.
"""

from neurostore.providers.base import CompletionProvider, EmbeddingProvider
from neurostore.providers.native import NativeCompletion, NativeEmbedder
from neurostore.utils.exceptions import ConfigurationError


def create_embedder(settings) -> EmbeddingProvider:
    """Build the embedder selected by ``EmbedderSettings.provider``."""
    if settings.provider == "native":
        return NativeEmbedder(dimensions=settings.dimensions or 256)
    if settings.provider == "litellm":
        from neurostore.providers.litellm_providers import LiteLLMEmbedder
        return LiteLLMEmbedder(
            model=settings.model,
            dimensions=settings.dimensions,
            api_key=settings.api_key,
            max_retries=settings.max_retries
        )
    if settings.provider == "sentence-transformers":
        from neurostore.providers.sentence_transformer import SentenceTransformerEmbedder
        return SentenceTransformerEmbedder(model=settings.model)
    raise ConfigurationError(f"Unknown embedder provider: {settings.provider}")


def create_completion(settings) -> CompletionProvider:
    """Build the completion provider selected by ``CompletionSettings.provider``."""
    if settings.provider == "native":
        return NativeCompletion()
    if settings.provider == "litellm":
        from neurostore.providers.litellm_providers import LiteLLMCompletion
        return LiteLLMCompletion(
            model=settings.model,
            temperature=settings.temperature,
            api_key=settings.api_key,
            timeout=settings.timeout,
            max_retries=settings.max_retries
        )
    raise ConfigurationError(f"Unknown completion provider: {settings.provider}")


__all__ = [
    'EmbeddingProvider',
    'CompletionProvider',
    'NativeCompletion',
    'NativeEmbedder',
    'create_embedder',
    'create_completion'
]
