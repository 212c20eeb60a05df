"""Tests for LLM service."""

import pytest
from unittest.mock import patch, MagicMock

from ghstars.models.repository import Repository


@pytest.fixture
def llm_service():
    """Create LLMService with mocked client."""
    with patch("ghstars.services.llm_service.settings") as mock_settings:
        mock_settings.gemini_api_key = "test-api-key"
        mock_settings.gemini_model = "gemini-pro"
        mock_settings.gemini_embedding_model = "embedding-001"

        with patch("ghstars.services.llm_service.genai") as mock_genai:
            mock_client = MagicMock()
            mock_genai.Client.return_value = mock_client

            from ghstars.services.llm_service import LLMService
            service = LLMService()
            service._mock_client = mock_client
            return service


@pytest.fixture
def repo():
    return Repository(
        id=1,
        owner_login="octo",
        name="cat",
        full_name="octo/cat",
        html_url="https://github.com/octo/cat",
        description="A command line cat",
        language="Rust",
        topics_json='["cli", "terminal"]',
        license_name="MIT License",
        stargazers_count=42,
    )


class TestLLMServiceGenerate:
    """Test LLM text generation."""

    @pytest.mark.asyncio
    async def test_generate_returns_text(self, llm_service):
        """generate returns generated text."""
        mock_response = MagicMock()
        mock_response.text = "This is the generated response."

        llm_service._mock_client.models.generate_content.return_value = mock_response

        result = await llm_service.generate("Test prompt")

        assert result == "This is the generated response."

    @pytest.mark.asyncio
    async def test_generate_handles_none_text(self, llm_service):
        """generate returns empty string if response text is None."""
        mock_response = MagicMock()
        mock_response.text = None

        llm_service._mock_client.models.generate_content.return_value = mock_response

        result = await llm_service.generate("Test prompt")

        assert result == ""

    @pytest.mark.asyncio
    async def test_generate_raises_on_error(self, llm_service):
        """generate raises exception on API error."""
        llm_service._mock_client.models.generate_content.side_effect = Exception("API Error")

        with pytest.raises(Exception) as exc:
            await llm_service.generate("Test prompt")

        assert "API Error" in str(exc.value)


class TestLLMServiceEmbed:
    """Test embedding creation."""

    @pytest.mark.asyncio
    async def test_embed_returns_vector_and_dimension(self, llm_service):
        """embed returns the vector and its length."""
        mock_response = MagicMock()
        mock_response.embeddings = [MagicMock(values=[0.1, 0.2, 0.3])]
        llm_service._mock_client.models.embed_content.return_value = mock_response

        vector, dim = await llm_service.embed("hello world")

        assert vector == [0.1, 0.2, 0.3]
        assert dim == 3
        call_kwargs = llm_service._mock_client.models.embed_content.call_args.kwargs
        assert call_kwargs["model"] == "embedding-001"
        assert call_kwargs["contents"] == "hello world"

    @pytest.mark.asyncio
    async def test_embed_raises_on_error(self, llm_service):
        llm_service._mock_client.models.embed_content.side_effect = Exception("quota")

        with pytest.raises(Exception):
            await llm_service.embed("hello")


class TestLLMServiceRepositoryPrompts:
    """Test summary and tag prompts."""

    @pytest.mark.asyncio
    async def test_generate_summary_uses_repository_profile(self, llm_service, repo):
        """The prompt describes the repository."""
        mock_response = MagicMock()
        mock_response.text = "A fast cat clone."
        llm_service._mock_client.models.generate_content.return_value = mock_response

        summary = await llm_service.generate_summary(repo)

        assert summary == "A fast cat clone."
        prompt = llm_service._mock_client.models.generate_content.call_args.kwargs["contents"]
        assert "octo/cat" in prompt
        assert "Rust" in prompt
        assert "cli, terminal" in prompt

    @pytest.mark.asyncio
    async def test_suggest_tags_parses_and_limits(self, llm_service, repo):
        """Tags are lowercased, de-duplicated and capped at five."""
        mock_response = MagicMock()
        mock_response.text = "CLI, #terminal, cli\nrust, text, unix, tools"
        llm_service._mock_client.models.generate_content.return_value = mock_response

        tags = await llm_service.suggest_tags(repo)

        assert tags == ["cli", "terminal", "rust", "text", "unix"]
