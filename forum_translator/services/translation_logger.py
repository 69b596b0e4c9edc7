"""Structured translation log: one JSON object per line.

Every translation event (start, success, failure, skip, raw provider
response) goes to a dedicated log file so translation runs can be
audited without digging through application logs.
"""

import json
import logging
import os
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

translation_log = logging.getLogger('forum_translator.translation_log')
translation_log.setLevel(logging.INFO)
translation_log.propagate = False

# Longest string value written to the log
MAX_VALUE_LENGTH = 4000


def configure_translation_log(path: str):
    """Point the translation log at a file, replacing any previous handler."""
    for handler in list(translation_log.handlers):
        translation_log.removeHandler(handler)
        handler.close()
    
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler = logging.FileHandler(path, encoding='utf-8')
    except OSError as e:
        logger.error(f"Cannot open translation log {path}: {e}")
        return
    
    handler.setFormatter(logging.Formatter('%(message)s'))
    translation_log.addHandler(handler)


def _truncate(value):
    if isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
        return value[:MAX_VALUE_LENGTH]
    if isinstance(value, dict):
        return {k: _truncate(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_truncate(v) for v in value]
    return value


def write_log(**entry):
    """Write one event. Never raises into the caller."""
    try:
        entry['timestamp'] = datetime.now(timezone.utc).isoformat()
        translation_log.info(json.dumps(_truncate(entry), default=str, ensure_ascii=False))
    except Exception as e:
        logger.error(f"Failed to write translation log: {e}")


def log_translation_start(post_id, target_language, content_length, force_update=False):
    write_log(
        event='translation_started',
        post_id=post_id,
        target_language=target_language,
        content_length=content_length,
        force_update=force_update,
        status='started',
    )


def log_translation_success(post_id, target_language, translation_id, ai_response,
                            processing_time, translated_length=0, force_update=False):
    provider_info = ai_response.get('provider_info') or {}
    tokens_used = provider_info.get('tokens_used')
    
    write_log(
        event='translation_completed',
        post_id=post_id,
        target_language=target_language,
        translation_id=translation_id,
        status='success',
        force_update=force_update,
        processing_time_ms=processing_time,
        ai_model=provider_info.get('model') or 'unknown',
        ai_usage={'tokens_used': tokens_used} if tokens_used else {},
        translated_length=translated_length,
    )


def log_translation_error(post_id, target_language, error, processing_time=0, context=None):
    """Log a failure. `error` may be an exception or a plain message."""
    if isinstance(error, BaseException):
        message = str(error)
        error_class = type(error).__name__
    else:
        message = str(error)
        error_class = 'TranslationError'
    
    write_log(
        event='translation_failed',
        post_id=post_id,
        target_language=target_language,
        status='error',
        error_message=message,
        error_class=error_class,
        processing_time_ms=processing_time,
        context=context or None,
    )


def log_translation_skipped(post_id, target_language, reason):
    write_log(
        event='translation_skipped',
        post_id=post_id,
        target_language=target_language,
        status='skipped',
        reason=reason,
    )


def log_provider_response(post_id, target_language, status, body, phase, provider=None):
    write_log(
        event='provider_response',
        post_id=post_id,
        target_language=target_language,
        status='received',
        status_code=status,
        provider=provider,
        phase=phase,
        body=body,
    )
