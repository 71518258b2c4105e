"""Query embeddings for the semantic explorer."""

import logging

from langchain_openai import OpenAIEmbeddings
from pydantic import SecretStr

from src.config import get_settings

logger = logging.getLogger(__name__)


class EmbeddingNotConfiguredError(ValueError):
    """Raised when the explorer is used without an OpenAI API key."""


def is_embedding_configured() -> bool:
    """Check whether an embedding credential is configured."""
    try:
        return bool(get_settings().openai_api_key)
    except Exception:
        return False


def get_embeddings() -> OpenAIEmbeddings:
    """Create an OpenAI embeddings instance using project settings.

    The model must match the one the memories were written with, otherwise
    search scores are meaningless.
    """
    settings = get_settings()
    if not settings.openai_api_key:
        raise EmbeddingNotConfiguredError(
            "Query Explorer requires an OpenAI API key. Set OPENAI_API_KEY in .env"
        )
    return OpenAIEmbeddings(
        api_key=SecretStr(settings.openai_api_key),
        model=settings.openai_embedding_model,
        base_url=settings.openai_base_url or None,
    )


async def embed_query(text: str) -> list[float]:
    """Embed a single query string."""
    embeddings = get_embeddings()
    logger.info("Embedding explorer query (%d chars)", len(text))
    return await embeddings.aembed_query(text)
