"""Tests for the policy-wrapped LLM client."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from langchain_core.messages import AIMessage

from food_scan_api.core.retry import RetryPolicy
from food_scan_api.services.llm import LLMClient, LLMErrorCategory, LLMProviderError, classify_llm_error
from food_scan_api.services.quota import QuotaLimit, QuotaPeriod, QuotaTracker


async def no_sleep(_delay: float) -> None:
    return None


def make_model(*results):
    """Chat model mock whose ainvoke yields the given results in order."""
    model = MagicMock()
    model.ainvoke = AsyncMock(
        side_effect=[r if isinstance(r, Exception) else AIMessage(content=r) for r in results]
    )
    return model


def make_client(model, quota: QuotaTracker | None = None, retries: int = 2) -> LLMClient:
    return LLMClient(
        lambda temperature, max_tokens: model,
        RetryPolicy(max_retries=retries, backoff_seconds=0, timeout_seconds=5),
        quota=quota,
        sleep=no_sleep,
    )


class TestLLMClientGenerate:
    """Tests for LLMClient.generate."""

    @pytest.mark.asyncio
    async def test_returns_stripped_text(self):
        model = make_model("  Chicken Burrito \n")

        assert await make_client(model).generate("Name this dish") == "Chicken Burrito"

    @pytest.mark.asyncio
    async def test_image_is_sent_as_data_url(self):
        """Test attached images become a base64 data URL part."""
        model = make_model("Coca-Cola")
        png = b"\x89PNG\r\n\x1a\n" + b"\x00" * 8

        await make_client(model).generate("What is this?", image=png)

        messages = model.ainvoke.call_args.args[0]
        parts = messages[0].content
        assert parts[0] == {"type": "text", "text": "What is this?"}
        assert parts[1]["image_url"]["url"].startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_factory_receives_generation_settings(self):
        model = make_model("ok")
        factory = MagicMock(return_value=model)
        client = LLMClient(factory, RetryPolicy(max_retries=0), sleep=no_sleep)

        await client.generate("hi", max_tokens=30, temperature=0.1)

        factory.assert_called_once_with(0.1, 30)

    @pytest.mark.asyncio
    async def test_quota_exhaustion_blocks_call(self):
        """Test the LLM quota gate fails fast without calling the model."""
        tracker = QuotaTracker({"llm": QuotaLimit(1, QuotaPeriod.MINUTE)})
        model = make_model("first", "second")
        client = make_client(model, quota=tracker)

        await client.generate("one")
        with pytest.raises(LLMProviderError) as exc_info:
            await client.generate("two")

        assert exc_info.value.category == LLMErrorCategory.QUOTA
        assert "reset_date" in exc_info.value.details
        assert model.ainvoke.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_key_is_auth_error(self):
        def factory(temperature, max_tokens):
            raise ValueError("OpenAI API key not configured.")

        client = LLMClient(factory, RetryPolicy(max_retries=2), sleep=no_sleep)

        with pytest.raises(LLMProviderError) as exc_info:
            await client.generate("hi")

        assert exc_info.value.category == LLMErrorCategory.AUTH
        assert exc_info.value.fatal

    @pytest.mark.asyncio
    async def test_rate_limit_is_not_retried(self):
        """Test provider 429s surface as QUOTA on the first attempt."""
        model = make_model(RuntimeError("429 Resource exhausted"), "never")

        with pytest.raises(LLMProviderError) as exc_info:
            await make_client(model).generate("hi")

        assert exc_info.value.category == LLMErrorCategory.QUOTA
        assert model.ainvoke.await_count == 1

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self):
        model = make_model(ConnectionError("connection reset"), "Pad Thai")

        assert await make_client(model).generate("hi") == "Pad Thai"
        assert model.ainvoke.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_output_is_invalid_response(self):
        model = make_model("   ")

        with pytest.raises(LLMProviderError) as exc_info:
            await make_client(model).generate("hi")

        assert exc_info.value.category == LLMErrorCategory.INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_list_content_is_flattened(self):
        model = MagicMock()
        model.ainvoke = AsyncMock(return_value=AIMessage(content=[{"type": "text", "text": "Ramen"}]))

        assert await make_client(model).generate("hi") == "Ramen"


class TestClassifyLLMError:
    """Tests for classify_llm_error."""

    @pytest.mark.parametrize(
        "exc,expected",
        [
            (RuntimeError("Invalid API key provided"), LLMErrorCategory.AUTH),
            (RuntimeError("You exceeded your current quota: insufficient_quota"), LLMErrorCategory.CREDITS),
            (RuntimeError("Rate limit reached for requests"), LLMErrorCategory.QUOTA),
            (httpx.ReadTimeout("read timed out"), LLMErrorCategory.TIMEOUT),
            (httpx.ConnectError("refused"), LLMErrorCategory.TRANSIENT),
            (RuntimeError("Service unavailable"), LLMErrorCategory.TRANSIENT),
            (RuntimeError("something odd"), LLMErrorCategory.UNKNOWN),
        ],
    )
    def test_categories(self, exc, expected):
        assert classify_llm_error(exc).category == expected

    def test_status_code_takes_precedence(self):
        exc = RuntimeError("boom")
        exc.status_code = 401

        error = classify_llm_error(exc)

        assert error.category == LLMErrorCategory.AUTH
        assert error.details["status_code"] == 401

    def test_existing_error_passes_through(self):
        error = LLMProviderError("x", category=LLMErrorCategory.TIMEOUT)

        assert classify_llm_error(error) is error
        assert error.retryable
