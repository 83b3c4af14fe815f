"""Tests for the cost model, provider factory and concrete providers."""

import pytest
from unittest.mock import patch, MagicMock

from providers import (
    PRICING,
    CompletionRequest,
    calculate_cost,
    get_provider,
    list_providers,
    provider_for_model,
    response_cost,
)
from providers.base import LLMResponse
from providers.anthropic_provider import JSON_INSTRUCTION, AnthropicProvider
from providers.litellm_provider import LiteLLMProvider
from providers.openai_provider import OpenAIProvider


class TestCalculateCost:
    """calculate_cost is total: unknown models cost nothing."""

    def test_gpt4o_prices_per_million(self):
        assert calculate_cost(1_000_000, 0, "gpt-4o") == pytest.approx(2.50)
        assert calculate_cost(0, 1_000_000, "gpt-4o") == pytest.approx(10.00)

    def test_mixed_usage(self):
        # 2000 prompt + 1000 completion on gpt-3.5-turbo
        expected = 2000 / 1_000_000 * 0.50 + 1000 / 1_000_000 * 1.50
        assert calculate_cost(2000, 1000, "gpt-3.5-turbo") == pytest.approx(expected)

    def test_unknown_model_is_free(self):
        assert calculate_cost(5000, 5000, "my-local-model") == 0.0
        assert calculate_cost(5000, 5000, None) == 0.0

    def test_litellm_prefix_is_stripped(self):
        assert calculate_cost(1000, 1000, "openai/gpt-4o") == calculate_cost(1000, 1000, "gpt-4o")

    def test_negative_tokens_clamped(self):
        assert calculate_cost(-10, -10, "gpt-4o") == 0.0

    def test_response_cost(self):
        response = LLMResponse(
            content="{}", prompt_tokens=1000, completion_tokens=500, model="gpt-4o", provider="openai"
        )
        assert response_cost(response) == pytest.approx(0.0075)
        assert response.total_tokens == 1500

    def test_every_priced_model_has_both_rates(self):
        for model, prices in PRICING.items():
            assert set(prices) == {"input", "output"}, model


class TestCompletionRequest:

    def test_messages_include_system_first(self):
        request = CompletionRequest(system_prompt="Sys", user_prompt="User")
        assert request.messages() == [
            {"role": "system", "content": "Sys"},
            {"role": "user", "content": "User"},
        ]

    def test_messages_without_system(self):
        request = CompletionRequest(system_prompt="Sys", user_prompt="User")
        assert request.messages(include_system=False) == [{"role": "user", "content": "User"}]


class TestGetProvider:
    """Provider factory resolution."""

    def test_explicit_names(self):
        assert isinstance(get_provider("openai"), OpenAIProvider)
        assert isinstance(get_provider("anthropic"), AnthropicProvider)
        assert isinstance(get_provider("litellm", "gpt-4o"), LiteLLMProvider)

    def test_aliases(self):
        assert isinstance(get_provider("claude"), AnthropicProvider)
        assert isinstance(get_provider("GPT"), OpenAIProvider)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            get_provider("carrier-pigeon")

    def test_detect_from_model(self):
        assert isinstance(get_provider(model="gpt-4o-mini"), OpenAIProvider)
        assert isinstance(get_provider(model="claude-sonnet"), AnthropicProvider)

    def test_slash_model_routes_to_litellm(self):
        provider = get_provider(model="mistral/mistral-large-latest")
        assert isinstance(provider, LiteLLMProvider)
        assert provider.default_model == "mistral/mistral-large-latest"

    def test_provider_for_model(self):
        assert provider_for_model("o1-preview") == "openai"
        assert provider_for_model("Haiku") == "anthropic"
        assert provider_for_model("anthropic/claude-sonnet-4-20250514") == "litellm"
        assert provider_for_model("llama3") is None

    def test_list_providers_skips_aliases(self):
        status = list_providers()
        assert set(status) == {"openai", "anthropic", "litellm"}
        assert status["litellm"] is True


class TestOpenAIProvider:
    """OpenAIProvider with a mocked client."""

    def _response(self):
        resp = MagicMock()
        resp.choices = [MagicMock()]
        resp.choices[0].message.content = '{"ok": true}'
        resp.usage = MagicMock(prompt_tokens=12, completion_tokens=7)
        return resp

    def test_complete_passes_json_mode_temperature_and_timeout(self):
        provider = OpenAIProvider(api_key="sk-test")
        client = MagicMock()
        client.chat.completions.create.return_value = self._response()
        provider._client = client

        result = provider.complete(CompletionRequest(
            system_prompt="Sys", user_prompt="User", model="gpt4o",
            temperature=0.3, json_response=True, timeout=5,
        ))

        kwargs = client.chat.completions.create.call_args[1]
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.3
        assert kwargs["timeout"] == 5
        assert kwargs["messages"][0] == {"role": "system", "content": "Sys"}
        assert result.content == '{"ok": true}'
        assert (result.prompt_tokens, result.completion_tokens) == (12, 7)
        assert result.provider == "openai"

    def test_plain_request_omits_optional_kwargs(self):
        provider = OpenAIProvider(api_key="sk-test")
        client = MagicMock()
        client.chat.completions.create.return_value = self._response()
        provider._client = client

        provider.complete(CompletionRequest(system_prompt="Sys", user_prompt="User"))

        kwargs = client.chat.completions.create.call_args[1]
        assert kwargs["model"] == "gpt-4o"
        assert "response_format" not in kwargs
        assert "temperature" not in kwargs
        assert "timeout" not in kwargs

    def test_availability_follows_key(self):
        with patch.dict("os.environ", {}, clear=True):
            assert OpenAIProvider().is_available() is False
        assert OpenAIProvider(api_key="sk-test").is_available() is True


class TestAnthropicProvider:
    """AnthropicProvider with a mocked client."""

    def _provider(self, *texts):
        provider = AnthropicProvider(api_key="sk-ant-test")
        client = MagicMock()
        response = MagicMock()
        response.content = [MagicMock(text=text) for text in texts]
        response.usage = MagicMock(input_tokens=20, output_tokens=10)
        client.messages.create.return_value = response
        provider._client = client
        return provider, client

    def test_json_mode_goes_through_system_prompt(self):
        provider, client = self._provider('{"tasks": []}')

        result = provider.complete(CompletionRequest(
            system_prompt="Sys", user_prompt="User", model="sonnet", json_response=True, timeout=30,
        ))

        kwargs = client.messages.create.call_args[1]
        assert kwargs["model"] == "claude-sonnet-4-20250514"
        assert kwargs["system"] == "Sys" + JSON_INSTRUCTION
        assert kwargs["messages"] == [{"role": "user", "content": "User"}]
        assert "response_format" not in kwargs
        assert kwargs["timeout"] == 30
        assert result.model == "claude-sonnet-4-20250514"
        assert (result.prompt_tokens, result.completion_tokens) == (20, 10)

    def test_text_blocks_are_joined(self):
        provider, client = self._provider('{"tasks": ', "[]}")

        result = provider.complete(CompletionRequest(system_prompt="Sys", user_prompt="User"))

        assert result.content == '{"tasks": []}'
        assert client.messages.create.call_args[1]["system"] == "Sys"


class TestLiteLLMProvider:
    """LiteLLMProvider with mocked litellm."""

    @pytest.fixture
    def mock_completion_response(self):
        resp = MagicMock()
        resp.choices = [MagicMock()]
        resp.choices[0].message.content = "Hello, world."
        resp.usage = MagicMock(prompt_tokens=10, completion_tokens=5)
        return resp

    def test_complete_returns_llm_response(self, mock_completion_response):
        with patch("litellm.completion", return_value=mock_completion_response):
            provider = LiteLLMProvider(default_model="gpt-4o-mini")
            result = provider.complete(CompletionRequest(
                system_prompt="You are helpful.", user_prompt="Hi", max_tokens=100,
            ))
        assert isinstance(result, LLMResponse)
        assert result.content == "Hello, world."
        assert result.prompt_tokens == 10
        assert result.completion_tokens == 5
        assert result.model == "gpt-4o-mini"
        assert result.provider == "litellm"

    def test_complete_passes_metadata_and_options(self, mock_completion_response):
        with patch("litellm.completion", return_value=mock_completion_response) as mock_completion:
            provider = LiteLLMProvider(default_model="gpt-4o", metadata={"feature": "effort_estimation"})
            provider.complete(CompletionRequest(
                system_prompt="Sys", user_prompt="User", temperature=0.2, json_response=True, timeout=10,
            ))
        call_kw = mock_completion.call_args[1]
        assert call_kw["metadata"] == {"feature": "effort_estimation"}
        assert call_kw["temperature"] == 0.2
        assert call_kw["response_format"] == {"type": "json_object"}
        assert call_kw["timeout"] == 10

    def test_request_metadata_is_merged(self, mock_completion_response):
        with patch("litellm.completion", return_value=mock_completion_response) as mock_completion:
            provider = LiteLLMProvider(default_model="gpt-4o", metadata={"feature": "effort_estimation"})
            provider.complete(CompletionRequest(
                system_prompt="Sys", user_prompt="User", metadata={"agent": "decomposer"},
            ))
        assert mock_completion.call_args[1]["metadata"] == {
            "feature": "effort_estimation",
            "agent": "decomposer",
        }

    def test_is_available(self):
        assert LiteLLMProvider(default_model="gpt-4o-mini").is_available() is True
        assert LiteLLMProvider(default_model="").is_available() is False
