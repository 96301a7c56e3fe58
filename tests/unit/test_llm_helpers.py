"""
Unit tests for llm_helpers module and the oracle rate limiter.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from cost_estimator.utils.llm_helpers import (
    ClaudeOracle,
    OracleError,
    extract_json_from_markdown,
)
from cost_estimator.utils.rate_limiter import ModelRateLimiter


def patch_sdk(mocker, texts):
    """Patch the SDK client to stream one assistant message per text."""

    async def receive_response():
        for text in texts:
            yield SimpleNamespace(content=[SimpleNamespace(text=text)])

    client = MagicMock()
    client.query = AsyncMock()
    client.receive_response = receive_response

    client_cls = mocker.patch("claude_agent_sdk.ClaudeSDKClient")
    client_cls.return_value.__aenter__.return_value = client
    options_cls = mocker.patch("claude_agent_sdk.ClaudeAgentOptions")
    return client, options_cls


class TestExtractJsonFromMarkdown:
    """Test cases for fence stripping."""

    @pytest.mark.parametrize(
        "raw",
        ['```json\n{"a": 1}\n```', '```\n{"a": 1}\n```', '  {"a": 1}  '],
    )
    def test_strips_fences(self, raw):
        assert extract_json_from_markdown(raw) == '{"a": 1}'


class TestClaudeOracle:
    """Test cases for ClaudeOracle.ask."""

    @pytest.mark.asyncio
    async def test_collects_text_blocks(self, mocker):
        # Arrange
        client, _ = patch_sdk(mocker, ["Tuition is ", "60000 USD per year."])
        oracle = ClaudeOracle()

        # Act
        answer = await oracle.ask("What is the tuition?")

        # Assert
        assert answer == "Tuition is 60000 USD per year."
        client.query.assert_awaited_once_with("What is the tuition?")

    @pytest.mark.asyncio
    async def test_web_search_enables_tools(self, mocker):
        # Arrange
        _, options_cls = patch_sdk(mocker, ["ok"])
        oracle = ClaudeOracle(model="base-model", search_max_turns=4)

        # Act
        await oracle.ask("query", web_search=True, model="search-model")

        # Assert
        kwargs = options_cls.call_args.kwargs
        assert kwargs["allowed_tools"] == ["WebSearch", "WebFetch"]
        assert kwargs["max_turns"] == 4
        assert kwargs["model"] == "search-model"

    @pytest.mark.asyncio
    async def test_plain_call_disables_tools(self, mocker):
        # Arrange
        _, options_cls = patch_sdk(mocker, ["ok"])
        oracle = ClaudeOracle(model="base-model")

        # Act
        await oracle.ask("query")

        # Assert
        kwargs = options_cls.call_args.kwargs
        assert kwargs["allowed_tools"] == []
        assert kwargs["max_turns"] == 1
        assert kwargs["model"] == "base-model"

    @pytest.mark.asyncio
    async def test_empty_answer_raises(self, mocker):
        patch_sdk(mocker, ["   "])

        with pytest.raises(OracleError):
            await ClaudeOracle().ask("query")

    @pytest.mark.asyncio
    async def test_rate_limiter_acquired_per_model(self, mocker):
        # Arrange
        patch_sdk(mocker, ["ok"])
        limiter = ModelRateLimiter()
        acquire = mocker.spy(limiter, "acquire")
        oracle = ClaudeOracle(model="base-model", rate_limiter=limiter)

        # Act
        await oracle.ask("query")

        # Assert
        acquire.assert_called_once_with("base-model")


class TestModelRateLimiter:
    """Test cases for ModelRateLimiter."""

    @pytest.mark.asyncio
    async def test_separate_limiter_per_model(self):
        # Arrange
        limiter = ModelRateLimiter(default_rate=10, time_period=60)

        # Act
        await limiter.acquire("model-a")
        await limiter.acquire("model-b")
        await limiter.acquire(None)

        # Assert
        assert set(limiter.limiters) == {"model-a", "model-b", "default"}
