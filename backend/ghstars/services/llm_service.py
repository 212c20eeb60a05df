"""LLM service for Google Gemini integration."""

import asyncio
import logging

from google import genai
from google.genai import types

from ghstars.config import get_settings
from ghstars.models.repository import Repository

logger = logging.getLogger(__name__)
settings = get_settings()

SUMMARY_SYSTEM_PROMPT = (
    "You write short, factual summaries of GitHub repositories for a personal "
    "catalog of starred projects. Two or three sentences, no marketing language."
)

TAGS_SYSTEM_PROMPT = (
    "You assign topical tags to GitHub repositories. Reply with at most five "
    "lowercase tags separated by commas and nothing else."
)

MAX_TAGS = 5


def describe_repository(repo: Repository) -> str:
    """Plain-text profile of a repository used as prompt context."""
    lines = [f"Repository: {repo.full_name}"]
    if repo.description:
        lines.append(f"Description: {repo.description}")
    if repo.language:
        lines.append(f"Primary language: {repo.language}")
    if repo.topics:
        lines.append(f"Topics: {', '.join(repo.topics)}")
    if repo.license_name:
        lines.append(f"License: {repo.license_name}")
    lines.append(f"Stars: {repo.stargazers_count}")
    return "\n".join(lines)


class LLMService:
    """Service for Google Gemini LLM operations."""

    def __init__(self):
        self.client = genai.Client(api_key=settings.gemini_api_key)
        self.model = settings.gemini_model
        self.embedding_model = settings.gemini_embedding_model

    async def generate(
        self,
        prompt: str,
        max_tokens: int = 512,
        temperature: float = 0.3,
        system_prompt: str | None = None,
    ) -> str:
        """Generate text completion using Gemini.

        Args:
            prompt: User prompt
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0-1)
            system_prompt: Optional system prompt

        Returns:
            Generated text
        """
        try:
            config = types.GenerateContentConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
                system_instruction=system_prompt,
            )

            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=prompt,
                config=config,
            )
            return response.text or ""
        except Exception as e:
            logger.error(f"LLM generation failed: {e}")
            raise

    async def embed(self, text: str) -> tuple[list[float], int]:
        """Create an embedding vector for text.

        Returns:
            Tuple of (vector, dimension)
        """
        try:
            response = await asyncio.to_thread(
                self.client.models.embed_content,
                model=self.embedding_model,
                contents=text,
            )
            vector = list(response.embeddings[0].values)
            return vector, len(vector)
        except Exception as e:
            logger.error(f"Embedding creation failed: {e}")
            raise

    async def generate_summary(self, repo: Repository) -> str:
        """Summarize a repository from its catalog metadata."""
        return await self.generate(
            describe_repository(repo),
            max_tokens=256,
            system_prompt=SUMMARY_SYSTEM_PROMPT,
        )

    async def suggest_tags(self, repo: Repository) -> list[str]:
        """Ask for a handful of topical tags."""
        text = await self.generate(
            describe_repository(repo),
            max_tokens=64,
            temperature=0.0,
            system_prompt=TAGS_SYSTEM_PROMPT,
        )
        tags: list[str] = []
        for raw in text.replace("\n", ",").split(","):
            tag = raw.strip().strip("#").strip().lower()
            if tag and tag not in tags:
                tags.append(tag)
        return tags[:MAX_TAGS]
