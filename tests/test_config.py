import pytest
from pydantic import ValidationError

from aibridge.core.config import Settings
from aibridge.core.merge import deep_merge
from aibridge.models.enums import AIProvider
from aibridge.schemas.config import AIConfig, resolve_config


def test_deep_merge_keeps_sibling_defaults():
    base = {"generationConfig": {"temperature": 0.7, "maxOutputTokens": 100}, "model": "a"}
    merged = deep_merge(base, {"generationConfig": {"topK": 5}, "model": "b"})

    assert merged == {"generationConfig": {"temperature": 0.7, "maxOutputTokens": 100, "topK": 5}, "model": "b"}


def test_deep_merge_skips_none_and_does_not_mutate():
    base = {"a": {"b": 1}, "c": 2}
    override = {"a": {"d": 3}, "c": None}
    merged = deep_merge(base, override)

    assert merged == {"a": {"b": 1, "d": 3}, "c": 2}
    assert base == {"a": {"b": 1}, "c": 2}
    merged["a"]["b"] = 99
    assert base["a"]["b"] == 1


def test_deep_merge_replaces_non_mapping_values():
    assert deep_merge({"stop": ["a"]}, {"stop": ["b"]}) == {"stop": ["b"]}
    assert deep_merge({"x": {"y": 1}}, {"x": 5}) == {"x": 5}


def test_resolve_fills_defaults(settings):
    config = resolve_config(AIConfig(provider=AIProvider.OPENAI), settings)

    assert config.model == "gpt-4o"
    assert config.base_url == "https://api.openai.com/v1"
    assert config.max_tokens == 4096
    assert config.temperature == 0.7
    assert config.timeout == 60.0
    assert config.api_key is None


def test_resolve_uses_environment_key_only_when_unset():
    settings = Settings(_env_file=None, anthropic_api_key="sk-ant-from-env-12345")

    from_env = resolve_config(AIConfig(provider=AIProvider.CLAUDE), settings)
    explicit = resolve_config(AIConfig(provider=AIProvider.CLAUDE, api_key="sk-ant-explicit-999"), settings)
    blank = resolve_config(AIConfig(provider=AIProvider.CLAUDE, api_key=""), settings)

    assert from_env.api_key == "sk-ant-from-env-12345"
    assert explicit.api_key == "sk-ant-explicit-999"
    assert blank.api_key == ""


def test_resolve_caller_values_win(settings):
    config = resolve_config(
        AIConfig(
            provider=AIProvider.GEMINI,
            model="gemini-1.5-pro",
            max_tokens=256,
            temperature=0.0,
            extra_body={"generationConfig": {"topK": 3}},
        ),
        settings,
    )

    assert config.model == "gemini-1.5-pro"
    assert config.max_tokens == 256
    assert config.temperature == 0.0
    assert config.base_url == "https://generativelanguage.googleapis.com/v1beta"
    assert config.extra_body == {"generationConfig": {"topK": 3}}


def test_keyless_providers_have_no_base_url(settings):
    config = resolve_config(AIConfig(provider=AIProvider.LOCAL), settings)

    assert config.base_url is None
    assert config.model == "llama2"


def test_config_accepts_camel_case_aliases():
    config = AIConfig.model_validate(
        {"provider": "claude", "apiKey": "sk-ant-alias-12345", "maxTokens": 10, "baseUrl": "http://proxy/v1"}
    )

    assert config.provider is AIProvider.CLAUDE
    assert config.api_key == "sk-ant-alias-12345"
    assert config.max_tokens == 10
    assert config.base_url == "http://proxy/v1"


@pytest.mark.parametrize("field,value", [("temperature", 2.5), ("max_tokens", 0), ("timeout", -1)])
def test_config_rejects_out_of_range_values(field, value):
    with pytest.raises(ValidationError):
        AIConfig(provider=AIProvider.OPENAI, **{field: value})


def test_config_is_immutable():
    config = AIConfig(provider=AIProvider.OPENAI)
    with pytest.raises(ValidationError):
        config.model = "other"
