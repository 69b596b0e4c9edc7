"""Shared utilities for the forum translator.

Reusable helpers shared across route files and socket handlers.
"""

from forum_translator.utils.auth import (
    decode_user_id,
    token_required_g,
    admin_required_g,
)
from forum_translator.utils.permissions import can_see_post

__all__ = [
    'decode_user_id',
    'token_required_g',
    'admin_required_g',
    'can_see_post',
]
