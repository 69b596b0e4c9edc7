"""Automatic translation when posts are created or edited.

The forum calls these hooks after saving a post. Records are
pre-created in the 'translating' state so readers see progress right
away, then one job per language is queued.
"""

import logging
from flask import current_app
from forum_translator.models.post_translation import is_valid_language_code

logger = logging.getLogger(__name__)


def auto_translate_languages() -> list:
    """Configured auto-translate languages, skipping malformed codes."""
    configured = current_app.config.get('TRANSLATION_AUTO_LANGUAGES') or ''
    languages = []
    for language in configured.split(','):
        language = language.strip().lower()
        if not language:
            continue
        if not is_valid_language_code(language):
            logger.warning(f'Ignoring invalid auto-translate language: {language}')
            continue
        if language not in languages:
            languages.append(language)
    return languages


def _should_translate(post) -> bool:
    if not current_app.config.get('TRANSLATION_ENABLED'):
        return False
    return post is not None and bool((post.raw or '').strip())


def on_post_created(post) -> list:
    """Queue translations of a new post. Returns the languages queued."""
    if not _should_translate(post):
        return []
    
    languages = auto_translate_languages()
    if not languages:
        return []
    
    for language in languages:
        post.create_or_update_translation_record(language)
    post.enqueue_translation_jobs(languages)
    
    logger.info(f'Queued translation of new post {post.id} into {languages}')
    return languages


def on_post_edited(post) -> list:
    """Re-translate existing translations and add configured ones."""
    if not _should_translate(post):
        return []
    
    languages = []
    for language in post.available_translations() + auto_translate_languages():
        if language not in languages:
            languages.append(language)
    
    if not languages:
        return []
    
    for language in languages:
        post.create_or_update_translation_record(language)
    post.enqueue_translation_jobs(languages, force_update=True)
    
    logger.info(f'Queued re-translation of edited post {post.id} into {languages}')
    return languages
