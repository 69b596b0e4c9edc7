"""Translation model presets and provider credential lookup.

A selected model is either one of the PRESET_MODELS or the reserved
'custom' entry whose fields all come from configuration. resolve()
normalizes both into a ProviderConfig or raises a ModelConfigError
subclass naming what is missing.
"""

from dataclasses import dataclass, field
from flask import current_app

CUSTOM_MODEL = 'custom'
CUSTOM_PROVIDER = 'custom'


class ModelTier:
    FLAGSHIP = 'flagship'
    BALANCED = 'balanced'
    ECONOMY = 'economy'
    REASONING = 'reasoning'


PROVIDER_BASE_URLS = {
    'openai': 'https://api.openai.com',
    'xai': 'https://api.x.ai',
    'deepseek': 'https://api.deepseek.com',
}

# Config key holding each provider family's API key
PROVIDER_API_KEY_SETTINGS = {
    'openai': 'OPENAI_API_KEY',
    'xai': 'XAI_API_KEY',
    'deepseek': 'DEEPSEEK_API_KEY',
}


@dataclass(frozen=True)
class PresetModel:
    provider: str
    model_name: str
    max_tokens: int
    max_output_tokens: int | None
    tier: str
    output_token_param: str = 'max_tokens'
    supports_temperature: bool = True
    
    @property
    def base_url(self) -> str:
        return PROVIDER_BASE_URLS[self.provider]


@dataclass(frozen=True)
class CustomModel:
    model_name: str
    base_url: str
    api_key: str
    max_tokens: int | None
    max_output_tokens: int | None
    output_token_param: str = 'max_tokens'
    supports_temperature: bool = True
    provider: str = CUSTOM_PROVIDER


PRESET_MODELS = {
    'gpt-4o': PresetModel('openai', 'gpt-4o', 128_000, 16_000, ModelTier.FLAGSHIP),
    'gpt-4o-mini': PresetModel('openai', 'gpt-4o-mini', 128_000, 16_000, ModelTier.ECONOMY),
    'gpt-4.1': PresetModel('openai', 'gpt-4.1', 1_047_576, 32_768, ModelTier.FLAGSHIP),
    'gpt-4.1-mini': PresetModel('openai', 'gpt-4.1-mini', 1_047_576, 32_768, ModelTier.BALANCED),
    'gpt-4.1-nano': PresetModel('openai', 'gpt-4.1-nano', 1_047_576, 32_768, ModelTier.ECONOMY),
    'gpt-5': PresetModel(
        'openai', 'gpt-5', 400_000, 128_000, ModelTier.REASONING,
        output_token_param='max_completion_tokens', supports_temperature=False,
    ),
    'gpt-5-mini': PresetModel(
        'openai', 'gpt-5-mini', 400_000, 128_000, ModelTier.BALANCED,
        output_token_param='max_completion_tokens', supports_temperature=False,
    ),
    'o4-mini': PresetModel(
        'openai', 'o4-mini', 200_000, 100_000, ModelTier.REASONING,
        output_token_param='max_completion_tokens', supports_temperature=False,
    ),
    'grok-4': PresetModel('xai', 'grok-4', 256_000, 64_000, ModelTier.FLAGSHIP, supports_temperature=False),
    'grok-3': PresetModel('xai', 'grok-3', 131_072, 16_000, ModelTier.BALANCED),
    'grok-3-mini': PresetModel('xai', 'grok-3-mini', 131_072, 16_000, ModelTier.ECONOMY),
    'deepseek-v3': PresetModel('deepseek', 'deepseek-chat', 128_000, 8_000, ModelTier.ECONOMY),
    'deepseek-r1': PresetModel(
        'deepseek', 'deepseek-reasoner', 128_000, 64_000, ModelTier.REASONING,
        supports_temperature=False,
    ),
}


@dataclass
class ProviderConfig:
    """Everything needed to call a chat-completions endpoint once."""
    
    provider: str
    model: str
    base_url: str
    api_key: str = field(repr=False)
    max_tokens: int | None
    max_output_tokens: int | None
    output_token_param: str = 'max_tokens'
    supports_temperature: bool = True
    
    @property
    def is_custom(self) -> bool:
        return self.provider == CUSTOM_PROVIDER


class ModelConfigError(Exception):
    """Base class for configuration problems that stop a translation."""


class UnknownModelError(ModelConfigError):
    def __init__(self, model_key):
        super().__init__(f'Invalid preset model: {model_key}')
        self.model_key = model_key


class MissingApiKeyError(ModelConfigError):
    def __init__(self, provider):
        super().__init__(f'API key not configured for provider {provider}')
        self.provider = provider


class MissingBaseUrlError(ModelConfigError):
    def __init__(self, provider):
        super().__init__(f'Base URL not configured for provider {provider}')
        self.provider = provider


class MissingModelNameError(ModelConfigError):
    def __init__(self, provider):
        super().__init__(f'Model name not configured for provider {provider}')
        self.provider = provider


def get_model(model_key, settings=None):
    """Look up the PresetModel or build the CustomModel for a selection key."""
    settings = settings if settings is not None else current_app.config
    
    if model_key == CUSTOM_MODEL:
        return CustomModel(
            model_name=(settings.get('TRANSLATION_CUSTOM_MODEL_NAME') or '').strip(),
            base_url=(settings.get('TRANSLATION_CUSTOM_BASE_URL') or '').strip(),
            api_key=(settings.get('TRANSLATION_CUSTOM_API_KEY') or '').strip(),
            max_tokens=settings.get('TRANSLATION_CUSTOM_MAX_TOKENS') or None,
            max_output_tokens=settings.get('TRANSLATION_CUSTOM_MAX_OUTPUT_TOKENS') or None,
            output_token_param=settings.get('TRANSLATION_CUSTOM_OUTPUT_TOKEN_PARAM') or 'max_tokens',
        )
    
    return PRESET_MODELS.get(model_key)


def resolve(model_key=None, settings=None) -> ProviderConfig:
    """Resolve the selected model into a ProviderConfig.
    
    Raises:
        UnknownModelError: model_key is neither a preset nor 'custom'
        MissingApiKeyError, MissingBaseUrlError, MissingModelNameError
    """
    settings = settings if settings is not None else current_app.config
    if model_key is None:
        model_key = settings.get('TRANSLATION_PRESET_MODEL')
    
    model = get_model(model_key, settings)
    if model is None:
        raise UnknownModelError(model_key)
    
    if isinstance(model, CustomModel):
        api_key = model.api_key
    else:
        api_key = (settings.get(PROVIDER_API_KEY_SETTINGS[model.provider]) or '').strip()
    
    if not api_key:
        raise MissingApiKeyError(model.provider)
    if not model.base_url:
        raise MissingBaseUrlError(model.provider)
    if not model.model_name:
        raise MissingModelNameError(model.provider)
    
    return ProviderConfig(
        provider=model.provider,
        model=model.model_name,
        base_url=model.base_url,
        api_key=api_key,
        max_tokens=model.max_tokens,
        max_output_tokens=model.max_output_tokens,
        output_token_param=model.output_token_param,
        supports_temperature=model.supports_temperature,
    )


def list_models(provider=None, tier=None) -> list:
    """Preset models for the admin screen, optionally filtered."""
    models = []
    for key, preset in PRESET_MODELS.items():
        if provider and preset.provider != provider:
            continue
        if tier and preset.tier != tier:
            continue
        models.append({
            'id': key,
            'provider': preset.provider,
            'model_name': preset.model_name,
            'tier': preset.tier,
            'max_tokens': preset.max_tokens,
            'max_output_tokens': preset.max_output_tokens,
        })
    return models


def list_providers() -> list:
    return sorted(PROVIDER_BASE_URLS)
