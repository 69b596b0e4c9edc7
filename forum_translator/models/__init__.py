"""Database models for the forum translator."""

from .user import User
from .content import Category, Topic, Post
from .post_translation import PostTranslation, TranslationStatus
from .user_preferred_language import UserPreferredLanguage

__all__ = [
    'User',
    'Category',
    'Topic',
    'Post',
    'PostTranslation',
    'TranslationStatus',
    'UserPreferredLanguage',
]
