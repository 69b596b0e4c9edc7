"""LLM translation client for forum posts.

Talks to any OpenAI-style chat-completions endpoint. Expected failures
(configuration, rate limits, HTTP errors, network errors, unparseable
replies) come back as a failed TranslationResult; only genuinely
unexpected exceptions escape.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from urllib.parse import urljoin
import requests
from flask import current_app

from forum_translator.services import translation_logger
from forum_translator.services.markup_protector import MarkupProtector, TOKEN_PREFIX, TOKEN_SUFFIX
from forum_translator.services.model_config import ModelConfigError, ProviderConfig, resolve
from forum_translator.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = '/v1/chat/completions'

TITLE_MAX_TOKENS = 128
DEFAULT_TEMPERATURE = 0.3
DEFAULT_CONFIDENCE = 0.95
MAX_LOGGED_BODY = 4000

# Replies carrying this key are treated as structured JSON
STRUCTURED_REPLY_MARKER = '"translated_content"'


class TranslationErrorKind:
    INPUT = 'input'
    CONFIGURATION = 'configuration'
    CONTENT_TOO_LONG = 'content_too_long'
    RATE_LIMITED = 'rate_limited'
    INVALID_API_KEY = 'invalid_api_key'
    PROVIDER_RATE_LIMITED = 'provider_rate_limited'
    BAD_REQUEST = 'bad_request'
    PROVIDER_UNAVAILABLE = 'provider_unavailable'
    API_ERROR = 'api_error'
    NETWORK_ERROR = 'network_error'
    INVALID_RESPONSE = 'invalid_response'
    EMPTY_RESPONSE = 'empty_response'
    PARSE_ERROR = 'parse_error'


@dataclass
class TranslationResult:
    translated_raw: str | None = None
    translated_title: str | None = None
    source_language: str = 'auto'
    ai_response: dict = field(default_factory=dict)
    error: str | None = None
    error_kind: str | None = None
    
    @property
    def success(self) -> bool:
        return self.error is None
    
    @classmethod
    def failure(cls, error, kind):
        return cls(error=error, error_kind=kind)


@dataclass
class CompletionReply:
    """Outcome of one chat-completions request."""
    
    text: str | None = None
    model: str | None = None
    tokens_used: int | None = None
    error: str | None = None
    error_kind: str | None = None


def build_prompt(text: str, target_language: str) -> str:
    return (
        f"Translate the following text to {target_language}.\n"
        f"Preserve all {TOKEN_PREFIX}...{TOKEN_SUFFIX} placeholders exactly as they appear.\n"
        f"If the content contains multiple languages, translate all of them to {target_language}.\n"
        f"If the text is already in {target_language}, return it unchanged.\n"
        f"Return ONLY the translated text, no explanations or wrapping.\n"
        f"\n"
        f"---\n"
        f"{text}"
    )


def build_title_prompt(title: str, target_language: str) -> str:
    return (
        f"Translate the following text to {target_language}.\n"
        f"Return ONLY the translated text, no quotes, no extra words.\n"
        f"\n"
        f"Text:\n"
        f"{title}"
    )


_PREAMBLE = re.compile(r'\Ahere\s+is\s+.*?:\s*\n', re.IGNORECASE)
_FENCE_WRAPPER = re.compile(r'\A```\w*\n(.*)\n```\Z', re.DOTALL)


def strip_llm_wrapper(text: str) -> str:
    """Drop a 'Here is the translation:' preamble and an enclosing code fence."""
    text = text.strip()
    text = _PREAMBLE.sub('', text, count=1)
    text = _FENCE_WRAPPER.sub(r'\1', text, count=1)
    return text.strip()


# ============ Structured (JSON) reply parsing ============

def _translation_fields(data):
    if isinstance(data, dict) and isinstance(data.get('translated_content'), str):
        return data
    return None


def _parse_direct_json(text):
    try:
        return _translation_fields(json.loads(text))
    except (json.JSONDecodeError, TypeError):
        return None


def _matching_brace(text, start):
    """Index of the brace closing the object opened at `start`, or -1."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == '{':
            depth += 1
        elif char == '}':
            depth -= 1
            if depth == 0:
                return i
    return -1


def _parse_embedded_json(text):
    """Find a JSON object inside surrounding prose."""
    start = text.find('{')
    while start != -1:
        end = _matching_brace(text, start)
        if end != -1:
            data = _parse_direct_json(text[start:end + 1])
            if data is not None:
                return data
        start = text.find('{', start + 1)
    return None


_INCOMPLETE_FIELD = r'"{name}"\s*:\s*"((?:[^"\\]|\\.)*)'


def _unescape_partial(value):
    # A cut-off reply can end in the middle of an escape sequence
    value = re.sub(r'\\u[0-9a-fA-F]{0,3}$', '', value)
    try:
        return json.loads(f'"{value}"')
    except json.JSONDecodeError:
        return value.replace('\\n', '\n').replace('\\"', '"')


def _extract_field(text, name):
    match = re.search(_INCOMPLETE_FIELD.format(name=name), text, re.DOTALL)
    if not match:
        return None
    return _unescape_partial(match.group(1))


def _parse_incomplete_json(text):
    """Recover fields from a truncated object, keeping partial values.
    
    Best effort: heavily mangled replies are expected to fail here.
    """
    content = _extract_field(text, 'translated_content')
    if content is None:
        return None
    return {
        'translated_content': content,
        'translated_title': _extract_field(text, 'translated_title'),
    }


STRUCTURED_PARSERS = (_parse_direct_json, _parse_embedded_json, _parse_incomplete_json)


def parse_structured_reply(text: str) -> dict | None:
    """Run the parsers in order and return the first result."""
    for parser in STRUCTURED_PARSERS:
        data = parser(text)
        if data is not None:
            return data
    return None


# ============ Client ============

class TranslationClient:
    """Translates text with one provider configuration."""
    
    def __init__(self, config: ProviderConfig, rate_limiter: RateLimiter, timeout=30,
                 max_content_length=10000, length_multiplier=3,
                 post_id=None, target_language=None):
        self.config = config
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.max_content_length = max_content_length
        self.length_multiplier = length_multiplier
        # Only used to tag log entries
        self.post_id = post_id
        self.target_language = target_language
    
    @classmethod
    def from_app_config(cls, config: ProviderConfig, post_id=None, target_language=None):
        settings = current_app.config
        return cls(
            config,
            rate_limiter=RateLimiter.for_provider_requests(),
            timeout=settings['TRANSLATION_REQUEST_TIMEOUT_SECONDS'],
            max_content_length=settings['TRANSLATION_MAX_CONTENT_LENGTH'],
            length_multiplier=settings['TRANSLATION_LENGTH_MULTIPLIER'],
            post_id=post_id,
            target_language=target_language,
        )
    
    def content_length_budget(self) -> int:
        """Longest source (body plus title) this provider is sent."""
        if self.config.is_custom or not self.config.max_output_tokens:
            return self.max_content_length
        return self.config.max_output_tokens * self.length_multiplier
    
    def translate(self, content: str, target_language: str, title: str = None) -> TranslationResult:
        content = content or ''
        total_length = len(content) + len(title or '')
        if total_length > self.content_length_budget():
            return TranslationResult.failure(
                'Content too long for translation', TranslationErrorKind.CONTENT_TOO_LONG
            )
        
        protected_text, tokens = MarkupProtector(content).protect()
        reply = self.request_completion(build_prompt(protected_text, target_language))
        if reply.error:
            return TranslationResult.failure(reply.error, reply.error_kind)
        
        translated_title = None
        source_language = 'auto'
        confidence = DEFAULT_CONFIDENCE
        
        if STRUCTURED_REPLY_MARKER in reply.text:
            data = parse_structured_reply(reply.text)
            if data is None:
                return TranslationResult.failure(
                    'Failed to parse JSON response', TranslationErrorKind.PARSE_ERROR
                )
            translated_text = data['translated_content'].strip()
            translated_title = (data.get('translated_title') or '').strip() or None
            if isinstance(data.get('source_language'), str) and data['source_language']:
                source_language = data['source_language'][:10]
            if isinstance(data.get('confidence'), (int, float)):
                confidence = data['confidence']
        else:
            translated_text = strip_llm_wrapper(reply.text)
        
        if not translated_text:
            return TranslationResult.failure('No translation in response', TranslationErrorKind.EMPTY_RESPONSE)
        
        translated_raw = MarkupProtector.restore(translated_text, tokens)
        
        if title and not translated_title:
            translated_title = self.translate_title(title, target_language)
        
        return TranslationResult(
            translated_raw=translated_raw,
            translated_title=translated_title,
            source_language=source_language,
            ai_response={
                'confidence': confidence,
                'translated_text': translated_raw,
                'provider_info': {
                    'model': reply.model or self.config.model,
                    'tokens_used': reply.tokens_used,
                    'provider': self.config.provider,
                },
            },
        )
    
    def translate_title(self, title: str, target_language: str) -> str | None:
        """Translate a topic title. Failures only cost the title."""
        try:
            reply = self.request_completion(
                build_title_prompt(title, target_language), max_tokens_override=TITLE_MAX_TOKENS
            )
            if reply.error:
                logger.warning(f"Title translation failed for post {self.post_id}: {reply.error}")
                return None
            return reply.text.strip() or None
        except Exception as e:
            logger.warning(f"Title translation failed for post {self.post_id}: {e}")
            return None
    
    def build_request_body(self, prompt: str, max_tokens_override=None) -> dict:
        max_tokens = self.config.max_output_tokens or self.config.max_tokens
        if max_tokens_override:
            max_tokens = min(max_tokens_override, max_tokens) if max_tokens else max_tokens_override
        
        body = {
            'model': self.config.model,
            'messages': [{'role': 'user', 'content': prompt}],
        }
        if max_tokens:
            body[self.config.output_token_param or 'max_tokens'] = max_tokens
        if self.config.supports_temperature:
            body['temperature'] = DEFAULT_TEMPERATURE
        return body
    
    def request_completion(self, prompt: str, max_tokens_override=None) -> CompletionReply:
        """POST one chat-completions request, gated by the rate limiter."""
        if not self.rate_limiter.admit():
            return CompletionReply(error='Rate limit exceeded', error_kind=TranslationErrorKind.RATE_LIMITED)
        
        url = urljoin(self.config.base_url, CHAT_COMPLETIONS_PATH)
        headers = {
            'Authorization': f'Bearer {self.config.api_key}',
            'Content-Type': 'application/json',
        }
        
        try:
            response = requests.post(
                url,
                json=self.build_request_body(prompt, max_tokens_override),
                headers=headers,
                timeout=(self.timeout, self.timeout),
            )
        except requests.RequestException as e:
            logger.error(f"Network error calling {self.config.provider}: {e}")
            self._log_error(e, 'network_error')
            return CompletionReply(error=f'Network error: {e}', error_kind=TranslationErrorKind.NETWORK_ERROR)
        
        self._log_provider_response(response)
        
        if response.ok:
            return self._parse_completion(response)
        return self._classify_error(response)
    
    def _parse_completion(self, response) -> CompletionReply:
        try:
            body = response.json()
        except ValueError:
            body = None
        
        choices = body.get('choices') if isinstance(body, dict) else None
        if not choices or not isinstance(choices, list):
            return CompletionReply(error='Invalid response format', error_kind=TranslationErrorKind.INVALID_RESPONSE)
        
        message = choices[0].get('message') if isinstance(choices[0], dict) else None
        text = message.get('content') if isinstance(message, dict) else None
        if not isinstance(text, str) or not text.strip():
            return CompletionReply(error='No translation in response', error_kind=TranslationErrorKind.EMPTY_RESPONSE)
        
        usage = body.get('usage') or {}
        return CompletionReply(
            text=text.strip(),
            model=body.get('model'),
            tokens_used=usage.get('total_tokens') if isinstance(usage, dict) else None,
        )
    
    @staticmethod
    def extract_error_message(response) -> str:
        try:
            parsed = response.json()
        except ValueError:
            parsed = None
        
        if isinstance(parsed, dict):
            error_field = parsed.get('error')
            nested = error_field.get('message') if isinstance(error_field, dict) else None
            plain = error_field if isinstance(error_field, str) else None
            return nested or parsed.get('message') or plain or 'Unknown API error'
        return response.text or 'Unknown API error'
    
    def _classify_error(self, response) -> CompletionReply:
        message = self.extract_error_message(response)
        self._log_error(message, 'provider_error')
        
        status = response.status_code
        if status == 401:
            return CompletionReply(error='Invalid API key', error_kind=TranslationErrorKind.INVALID_API_KEY)
        if status == 429:
            return CompletionReply(
                error='Rate limit exceeded. Please try again later.',
                error_kind=TranslationErrorKind.PROVIDER_RATE_LIMITED,
            )
        if status == 400:
            return CompletionReply(error=f'Bad request: {message}', error_kind=TranslationErrorKind.BAD_REQUEST)
        if 500 <= status <= 599:
            return CompletionReply(
                error='Translation service temporarily unavailable',
                error_kind=TranslationErrorKind.PROVIDER_UNAVAILABLE,
            )
        return CompletionReply(error=f'API error: {message}', error_kind=TranslationErrorKind.API_ERROR)
    
    def _log_provider_response(self, response):
        translation_logger.log_provider_response(
            post_id=self.post_id,
            target_language=self.target_language,
            status=response.status_code,
            body=(response.text or '')[:MAX_LOGGED_BODY],
            phase='post_chat_completions',
            provider=self.config.provider,
        )
    
    def _log_error(self, error, phase):
        translation_logger.log_translation_error(
            post_id=self.post_id,
            target_language=self.target_language,
            error=error,
            context={'phase': phase, 'provider': self.config.provider},
        )


# ============ Post translation ============

def prepare_title(post) -> str | None:
    """The topic title, when this post is the topic's first post."""
    if post.post_number != 1:
        return None
    if not current_app.config.get('TRANSLATION_TRANSLATE_TITLE'):
        return None
    topic = post.topic
    if topic is None or not topic.title:
        return None
    return topic.title


def translate_post(post, target_language) -> TranslationResult:
    """Translate a post's raw text (and title, for first posts)."""
    if post is None:
        return TranslationResult.failure('Post not found', TranslationErrorKind.INPUT)
    if not target_language:
        return TranslationResult.failure('Target language not specified', TranslationErrorKind.INPUT)
    
    try:
        config = resolve()
    except ModelConfigError as e:
        return TranslationResult.failure(str(e), TranslationErrorKind.CONFIGURATION)
    
    client = TranslationClient.from_app_config(config, post_id=post.id, target_language=target_language)
    return client.translate(post.raw, target_language, title=prepare_title(post))
