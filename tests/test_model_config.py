"""
Tests for model presets and provider configuration resolution.
"""

import pytest
from forum_translator.services.model_config import (
    CUSTOM_MODEL,
    PRESET_MODELS,
    ModelTier,
    MissingApiKeyError,
    MissingBaseUrlError,
    MissingModelNameError,
    UnknownModelError,
    list_models,
    list_providers,
    resolve,
)

KEYS = {'OPENAI_API_KEY': 'sk-o', 'XAI_API_KEY': 'xai-k', 'DEEPSEEK_API_KEY': 'ds-k'}


def custom_settings(**overrides):
    settings = {
        'TRANSLATION_CUSTOM_MODEL_NAME': 'llama-3-70b',
        'TRANSLATION_CUSTOM_BASE_URL': 'http://localhost:8080',
        'TRANSLATION_CUSTOM_API_KEY': 'local-key',
        'TRANSLATION_CUSTOM_MAX_TOKENS': 32000,
        'TRANSLATION_CUSTOM_MAX_OUTPUT_TOKENS': 4000,
        'TRANSLATION_CUSTOM_OUTPUT_TOKEN_PARAM': 'max_tokens',
    }
    settings.update(overrides)
    return settings


class TestResolvePreset:

    def test_openai_preset(self):
        config = resolve('gpt-4o', settings=KEYS)

        assert config.provider == 'openai'
        assert config.model == 'gpt-4o'
        assert config.base_url == 'https://api.openai.com'
        assert config.api_key == 'sk-o'
        assert config.max_output_tokens == 16_000
        assert not config.is_custom

    @pytest.mark.parametrize('key, provider, base_url', [
        ('grok-3', 'xai', 'https://api.x.ai'),
        ('deepseek-v3', 'deepseek', 'https://api.deepseek.com'),
    ])
    def test_provider_families(self, key, provider, base_url):
        config = resolve(key, settings=KEYS)
        assert config.provider == provider
        assert config.base_url == base_url

    def test_deepseek_model_name_differs_from_key(self):
        assert resolve('deepseek-r1', settings=KEYS).model == 'deepseek-reasoner'

    def test_reasoning_preset_parameters(self):
        config = resolve('gpt-5', settings=KEYS)
        assert config.output_token_param == 'max_completion_tokens'
        assert config.supports_temperature is False

    def test_unknown_model(self):
        with pytest.raises(UnknownModelError, match='Invalid preset model: gpt-99'):
            resolve('gpt-99', settings=KEYS)

    def test_missing_api_key(self):
        with pytest.raises(MissingApiKeyError, match='provider xai'):
            resolve('grok-4', settings={'OPENAI_API_KEY': 'sk-o', 'XAI_API_KEY': '  '})

    def test_api_key_hidden_from_repr(self):
        assert 'sk-o' not in repr(resolve('gpt-4o', settings=KEYS))

    def test_uses_app_config_by_default(self, app):
        with app.app_context():
            config = resolve()
        assert config.model == 'gpt-4o'
        assert config.api_key == 'sk-test-key'


class TestResolveCustom:

    def test_custom_model(self):
        config = resolve(CUSTOM_MODEL, settings=custom_settings())

        assert config.is_custom
        assert config.model == 'llama-3-70b'
        assert config.base_url == 'http://localhost:8080'
        assert config.max_output_tokens == 4000

    def test_missing_key(self):
        with pytest.raises(MissingApiKeyError):
            resolve(CUSTOM_MODEL, settings=custom_settings(TRANSLATION_CUSTOM_API_KEY=''))

    def test_missing_base_url(self):
        with pytest.raises(MissingBaseUrlError):
            resolve(CUSTOM_MODEL, settings=custom_settings(TRANSLATION_CUSTOM_BASE_URL=''))

    def test_missing_model_name(self):
        with pytest.raises(MissingModelNameError):
            resolve(CUSTOM_MODEL, settings=custom_settings(TRANSLATION_CUSTOM_MODEL_NAME=''))

    def test_custom_output_param(self):
        settings = custom_settings(TRANSLATION_CUSTOM_OUTPUT_TOKEN_PARAM='max_completion_tokens')
        assert resolve(CUSTOM_MODEL, settings=settings).output_token_param == 'max_completion_tokens'


class TestListing:

    def test_all_presets(self):
        assert {m['id'] for m in list_models()} == set(PRESET_MODELS)

    def test_filter_by_provider(self):
        models = list_models(provider='xai')
        assert models
        assert all(m['provider'] == 'xai' for m in models)

    def test_filter_by_tier(self):
        models = list_models(tier=ModelTier.REASONING)
        assert {'gpt-5', 'o4-mini', 'deepseek-r1'} <= {m['id'] for m in models}
        assert all(m['tier'] == ModelTier.REASONING for m in models)

    def test_providers(self):
        assert list_providers() == ['deepseek', 'openai', 'xai']
