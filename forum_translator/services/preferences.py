"""Reader language preferences and translated titles."""

from forum_translator.models import PostTranslation, TranslationStatus


def preferred_language_for(user):
    """The user's enabled preferred language, or None."""
    if user is None:
        return None
    
    preference = user.preferred_language
    if preference is None or not preference.enabled:
        return None
    return preference.language or None


def translated_title_for(post, language):
    """Completed translated title of a post, or None."""
    if post is None or not language:
        return None
    
    translation = PostTranslation.find_translation(post.id, language)
    if translation is None or not translation.is_completed or not translation.translated_title:
        return None
    return translation.translated_title


def translated_titles_for(posts, language) -> dict:
    """Completed translated titles keyed by post id, in one query."""
    post_ids = [post.id for post in posts if post is not None]
    if not post_ids or not language:
        return {}
    
    rows = PostTranslation.query.filter(
        PostTranslation.post_id.in_(post_ids),
        PostTranslation.language == language,
        PostTranslation.status == TranslationStatus.COMPLETED,
    ).all()
    return {row.post_id: row.translated_title for row in rows if row.translated_title}
