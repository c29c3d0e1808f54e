"""Tests for trading_agents.llm.factory."""

import pytest

from trading_agents.core.config import LLMConfig
from trading_agents.core.exceptions import LLMError
from trading_agents.llm.factory import (
    CONNECTORS,
    available_models,
    connector_from_config,
    create_connector,
    default_model,
)


class TestCatalogue:
    @pytest.mark.parametrize(
        "provider,model",
        [
            ("openai", "gpt-3.5-turbo"),
            ("anthropic", "claude-3-haiku-20240307"),
            ("grok", "grok-1.5"),
            ("deepseek", "deepseek-chat"),
        ],
    )
    def test_default_model(self, provider, model):
        assert default_model(provider) == model
        assert model in available_models(provider)

    def test_all_providers_registered(self):
        assert {p.value for p in CONNECTORS} == {"openai", "anthropic", "grok", "deepseek"}

    def test_unknown_provider(self):
        with pytest.raises(LLMError, match="Unsupported LLM provider: cohere"):
            available_models("cohere")


class TestCreateConnector:
    def test_unknown_provider(self):
        with pytest.raises(LLMError, match="Unsupported LLM provider"):
            create_connector("cohere")

    def test_openai_from_mapping(self):
        pytest.importorskip("openai")
        c = create_connector("openai", {"api_key": "sk", "model": "gpt-4"})
        assert c.provider_name == "openai"
        assert c.model == "gpt-4"

    def test_anthropic_from_config(self):
        pytest.importorskip("anthropic")
        config = LLMConfig(provider="anthropic", api_key="k", temperature=0.1, max_tokens=99)
        c = connector_from_config(config)
        assert c.provider_name == "anthropic"
        assert c.model == "claude-3-haiku-20240307"
        assert c.default_options.temperature == 0.1
        assert c.default_options.max_tokens == 99

    def test_grok_from_config_with_model(self):
        pytest.importorskip("openai")
        c = create_connector("grok", LLMConfig(api_key="g", model="grok-1"))
        assert c.provider_name == "grok"
        assert c.model == "grok-1"
