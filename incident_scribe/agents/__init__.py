"""
Narrative extractors that produce proposed records.
"""

from .extractor import BaseExtractor, normalize_proposal
from .mock_extractor import MockExtractor

__all__ = ["BaseExtractor", "MockExtractor", "normalize_proposal", "get_extractor"]


def get_extractor() -> BaseExtractor:
    """Get the configured extractor implementation."""
    from ..core.config import get_extractor_provider, OLLAMA_MODEL, OLLAMA_HOST

    if get_extractor_provider() == "ollama":
        from .ollama_extractor import OllamaExtractor
        return OllamaExtractor(model_name=OLLAMA_MODEL, host=OLLAMA_HOST)

    return MockExtractor()
