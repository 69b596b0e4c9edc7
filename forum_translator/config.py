"""Configuration classes selected by name in create_app()."""

import os
import tempfile


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in ('true', '1', 'yes')


def _database_url():
    url = os.getenv('DATABASE_URL', 'sqlite:///forum_translator.db')
    # Handle Render's postgres:// vs postgresql:// issue
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url


class Config:
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    REDIS_URL = os.getenv('REDIS_URL')
    TESTING = False

    # Translation
    TRANSLATION_ENABLED = _env_bool('TRANSLATION_ENABLED', True)
    TRANSLATION_PRESET_MODEL = os.getenv('TRANSLATION_PRESET_MODEL', 'gpt-4o')
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
    XAI_API_KEY = os.getenv('XAI_API_KEY', '')
    DEEPSEEK_API_KEY = os.getenv('DEEPSEEK_API_KEY', '')

    # Used when TRANSLATION_PRESET_MODEL is 'custom'
    TRANSLATION_CUSTOM_MODEL_NAME = os.getenv('TRANSLATION_CUSTOM_MODEL_NAME', '')
    TRANSLATION_CUSTOM_BASE_URL = os.getenv('TRANSLATION_CUSTOM_BASE_URL', '')
    TRANSLATION_CUSTOM_API_KEY = os.getenv('TRANSLATION_CUSTOM_API_KEY', '')
    TRANSLATION_CUSTOM_MAX_TOKENS = int(os.getenv('TRANSLATION_CUSTOM_MAX_TOKENS', 32000))
    TRANSLATION_CUSTOM_MAX_OUTPUT_TOKENS = int(os.getenv('TRANSLATION_CUSTOM_MAX_OUTPUT_TOKENS', 4000))
    TRANSLATION_CUSTOM_OUTPUT_TOKEN_PARAM = os.getenv('TRANSLATION_CUSTOM_OUTPUT_TOKEN_PARAM', 'max_tokens')

    TRANSLATION_MAX_CONTENT_LENGTH = int(os.getenv('TRANSLATION_MAX_CONTENT_LENGTH', 10000))
    # Characters allowed per output token for preset models
    TRANSLATION_LENGTH_MULTIPLIER = int(os.getenv('TRANSLATION_LENGTH_MULTIPLIER', 3))
    TRANSLATION_RATE_LIMIT_PER_MINUTE = int(os.getenv('TRANSLATION_RATE_LIMIT_PER_MINUTE', 60))
    TRANSLATION_REQUEST_TIMEOUT_SECONDS = int(os.getenv('TRANSLATION_REQUEST_TIMEOUT_SECONDS', 30))
    TRANSLATION_TRANSLATE_TITLE = _env_bool('TRANSLATION_TRANSLATE_TITLE', True)
    TRANSLATION_AUTO_LANGUAGES = os.getenv('TRANSLATION_AUTO_LANGUAGES', '')
    TRANSLATION_USER_REQUESTS_PER_MINUTE = int(os.getenv('TRANSLATION_USER_REQUESTS_PER_MINUTE', 10))
    TRANSLATION_LOG_PATH = os.getenv('TRANSLATION_LOG_PATH', 'logs/translation.log')

    TRANSLATION_QUEUE_EAGER = _env_bool('TRANSLATION_QUEUE_EAGER', False)
    TRANSLATION_QUEUE_WORKERS = int(os.getenv('TRANSLATION_QUEUE_WORKERS', 4))


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    JWT_SECRET_KEY = 'test-secret-key-for-testing'
    OPENAI_API_KEY = 'sk-test-key'
    XAI_API_KEY = 'xai-test-key'
    DEEPSEEK_API_KEY = 'ds-test-key'
    TRANSLATION_PRESET_MODEL = 'gpt-4o'
    TRANSLATION_AUTO_LANGUAGES = ''
    TRANSLATION_QUEUE_EAGER = True
    TRANSLATION_LOG_PATH = os.path.join(tempfile.gettempdir(), 'forum_translator_test.log')


_CONFIGS = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}


def get_config(config_name):
    """Return the config class for a name, defaulting to development."""
    return _CONFIGS.get(config_name, DevelopmentConfig)
