"""Translate one post into one language.

The job holds a per-(post, language) Redis lock for its whole run, skips
work when the post text is unchanged since the last successful
translation, and always leaves the record either completed or failed.
Nothing raised inside the job escapes to the worker.
"""

import hashlib
import logging
import time
from contextlib import contextmanager

from forum_translator import db
from forum_translator.models import Post, PostTranslation
from forum_translator.models.post_translation import is_valid_language_code
from forum_translator.services import translation_logger
from forum_translator.services.redis_client import acquire_lock, release_lock
from forum_translator.services.renderer import render, sanitize
from forum_translator.services.status_publisher import publish_translation_status
from forum_translator.services.translation import translate_post

logger = logging.getLogger(__name__)

LOCK_TTL = 300  # 5 minutes; bounds a crashed worker's hold on the pair


def lock_key(post_id, language) -> str:
    return f'forum_translator:translate:{post_id}:{language}'


def source_sha(raw: str) -> str:
    return hashlib.sha256((raw or '').encode('utf-8')).hexdigest()


@contextmanager
def translation_lock(post_id, language):
    """Yield True while we hold the lock for this pair, False if we don't."""
    key = lock_key(post_id, language)
    token = acquire_lock(key, LOCK_TTL)
    if token is None:
        yield False
        return
    try:
        yield True
    finally:
        release_lock(key, token)


def execute(post_id=None, target_language=None, force_update=False):
    if not post_id or not target_language:
        logger.warning(f'Translation job missing arguments: post_id={post_id} language={target_language}')
        translation_logger.log_translation_skipped(post_id, target_language, 'missing_arguments')
        return
    
    if not is_valid_language_code(target_language):
        translation_logger.log_translation_skipped(post_id, target_language, 'invalid_language')
        return
    
    with translation_lock(post_id, target_language) as acquired:
        if not acquired:
            translation_logger.log_translation_skipped(post_id, target_language, 'locked')
            return
        
        try:
            _translate(post_id, target_language, force_update)
        except Exception as e:
            _handle_unexpected_error(e, post_id, target_language)


def _find_post(post_id, target_language):
    post = Post.find(post_id)
    if post is None:
        translation_logger.log_translation_skipped(post_id, target_language, 'post_not_found')
        return None
    if post.is_deleted or post.hidden:
        translation_logger.log_translation_skipped(post_id, target_language, 'post_deleted_or_hidden')
        return None
    return post


def _ensure_translation_record(post, target_language):
    return PostTranslation.find_or_create_record(post.id, target_language)


def _translate(post_id, target_language, force_update):
    post = _find_post(post_id, target_language)
    if post is None:
        return
    
    sha = source_sha(post.raw)
    translation = _ensure_translation_record(post, target_language)
    
    if not force_update and translation.source_sha == sha and translation.is_completed:
        translation_logger.log_translation_skipped(post_id, target_language, 'source_unchanged')
        return
    
    translation.mark_translating()
    db.session.commit()
    
    start_time = time.monotonic()
    translation_logger.log_translation_start(
        post_id=post_id,
        target_language=target_language,
        content_length=len(post.raw or ''),
        force_update=force_update,
    )
    
    result = translate_post(post, target_language)
    processing_time = round((time.monotonic() - start_time) * 1000, 2)
    
    if result.success:
        _handle_success(result, post, target_language, sha, translation, processing_time, force_update)
    else:
        _handle_failure(result, post, target_language, translation, processing_time)


def _handle_success(result, post, target_language, sha, translation, processing_time, force_update):
    translated_content = sanitize(render(result.translated_raw))
    
    translation.mark_completed(
        translated_raw=result.translated_raw,
        translated_content=translated_content,
        translated_title=result.translated_title,
        source_language=result.source_language,
        source_sha=sha,
        ai_response=result.ai_response,
    )
    db.session.commit()
    
    translation_logger.log_translation_success(
        post_id=post.id,
        target_language=target_language,
        translation_id=translation.id,
        ai_response=result.ai_response,
        processing_time=processing_time,
        translated_length=len(result.translated_raw or ''),
        force_update=force_update,
    )
    logger.info(f'Translated post {post.id} to {target_language} in {processing_time}ms')
    
    publish_translation_status(post, target_language, 'completed', translation=translation, result=result)


def _handle_failure(result, post, target_language, translation, processing_time):
    translation.mark_failed(result.error, error_kind=result.error_kind)
    db.session.commit()
    
    translation_logger.log_translation_error(
        post_id=post.id,
        target_language=target_language,
        error=result.error,
        processing_time=processing_time,
        context={'phase': 'service_failure', 'error_kind': result.error_kind},
    )
    logger.error(f'Translation failed for post {post.id}: {result.error}')
    
    publish_translation_status(post, target_language, 'failed', error=result.error)


def _handle_unexpected_error(error, post_id, target_language):
    logger.exception(f'Unexpected error in translation job for post {post_id}: {error}')
    translation_logger.log_translation_error(
        post_id=post_id,
        target_language=target_language,
        error=error,
        context={'phase': 'unexpected_exception'},
    )
    
    try:
        db.session.rollback()
        translation = PostTranslation.find_translation(post_id, target_language)
        if translation is not None:
            translation.mark_failed(str(error), error_class=type(error).__name__)
            db.session.commit()
        
        post = Post.find(post_id)
        publish_translation_status(post, target_language, 'failed', error=str(error))
    except Exception as e:
        db.session.rollback()
        logger.error(f'Could not record failure for post {post_id} ({target_language}): {e}')
