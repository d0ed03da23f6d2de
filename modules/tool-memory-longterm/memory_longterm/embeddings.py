"""OpenAI embedding generation wrapper."""

import logging
import os
from typing import Optional, Protocol, runtime_checkable

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


@runtime_checkable
class Embedder(Protocol):
    """Anything that can turn text into a fixed-length vector."""

    async def generate(self, content: str) -> list[float]: ...


class EmbeddingGenerator:
    """OpenAI embedding API wrapper for long-term memory.

    Uses text-embedding-3-small by default:
    - 1536 dimensions
    - Good quality for semantic search
    """

    MAX_CONTENT_LENGTH = 100_000

    def __init__(
        self, model: str = "text-embedding-3-small", api_key: Optional[str] = None
    ):
        self.model = model
        self.dimensions = 1536

        final_api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not final_api_key:
            raise ValueError(
                "OpenAI API key required. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.client = AsyncOpenAI(api_key=final_api_key)

    def _check_length(self, content: str) -> None:
        # 100k chars ~= 25k tokens; stops runaway inputs before the API call
        if len(content) > self.MAX_CONTENT_LENGTH:
            raise ValueError(
                f"Content too long: {len(content)} chars (max {self.MAX_CONTENT_LENGTH})"
            )

    async def generate(self, content: str) -> list[float]:
        """Generate embedding for single content.

        Args:
            content: Text to embed (max 100,000 chars)

        Returns:
            Vector of 1536 floats

        Raises:
            ValueError: If content exceeds size limit
            openai.OpenAIError: If API call fails
        """
        self._check_length(content)
        response = await self.client.embeddings.create(model=self.model, input=content)
        return response.data[0].embedding

    async def generate_batch(self, contents: list[str]) -> list[list[float]]:
        """Generate embeddings for batch of content.

        Raises:
            ValueError: If any content exceeds size limit
            openai.OpenAIError: If API call fails
        """
        for content in contents:
            self._check_length(content)
        logger.debug("Embedding batch of %d texts with %s", len(contents), self.model)
        response = await self.client.embeddings.create(model=self.model, input=contents)
        return [item.embedding for item in response.data]
