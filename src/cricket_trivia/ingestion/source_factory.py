"""
Source Factory - Creates the search adapter from configuration.
"""
import logging

from cricket_trivia.core.errors import ConfigurationError
from cricket_trivia.ingestion.base import SearchAdapter
from cricket_trivia.ingestion.google_search import GoogleSearchAdapter
from cricket_trivia.services.config import SearchConfig

logger = logging.getLogger(__name__)


def create_search_adapter(search_config: SearchConfig) -> SearchAdapter:
    """
    Create a search adapter from configuration.

    Args:
        search_config: Configuration for the search backend

    Returns:
        Configured SearchAdapter instance

    Raises:
        ConfigurationError: If the provider is unknown
    """
    provider = search_config.provider.lower()

    if provider == "google":
        adapter = GoogleSearchAdapter(
            api_key=search_config.api_key,
            engine_id=search_config.engine_id,
            timeout=search_config.timeout,
            safe=search_config.safe,
        )
        if not adapter.configured:
            logger.warning("Google Custom Search credentials missing (GOOGLE_SEARCH_API_KEY / GOOGLE_SEARCH_CX)")
        return adapter

    raise ConfigurationError(f"Unknown search provider: {provider}")
