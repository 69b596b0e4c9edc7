"""Real-time translation status events over Socket.IO.

Events for restricted content only reach the users or groups allowed to
read it; everything else goes to the post's public channel room.
"""

import logging
from datetime import datetime
from forum_translator import socketio

logger = logging.getLogger(__name__)

STATUS_EVENT = 'post_translation'
PREFERENCE_PROMPT_EVENT = 'language_preference_prompt'


def channel_for(post_id) -> str:
    return f'/post-translations/{post_id}'


def user_room(user_id) -> str:
    return f'user_{user_id}'


def group_room(group_id) -> str:
    return f'group_{group_id}'


def audience_for(post) -> dict:
    """Who may receive events about this post.
    
    Returns {'user_ids': [...]} for private messages, {'group_ids': [...]}
    for read-restricted categories and {} for public content.
    """
    topic = post.topic
    if topic is None:
        return {}
    
    if topic.is_private_message:
        return {'user_ids': topic.get_allowed_user_ids()}
    if topic.category is not None and topic.category.read_restricted:
        return {'group_ids': topic.category.get_secure_group_ids()}
    return {}


def publish(channel: str, payload: dict, audience: dict = None):
    """Emit `payload` on `channel`, narrowed to `audience`. Never raises."""
    audience = audience or {}
    data = dict(payload, channel=channel)
    
    try:
        if 'user_ids' in audience:
            rooms = [user_room(uid) for uid in audience['user_ids']]
        elif 'group_ids' in audience:
            rooms = [group_room(gid) for gid in audience['group_ids']]
        else:
            rooms = [channel]
        
        for room in rooms:
            socketio.emit(STATUS_EVENT, data, to=room)
        
        logger.info(f'Published translation status to {channel} ({len(rooms)} room(s))')
    except Exception as e:
        logger.error(f'Publish translation status error on {channel}: {e}')


def publish_translation_status(post, language, status, translation=None, result=None, error=None):
    """Tell clients that a translation of `post` finished."""
    if post is None:
        return
    
    payload = {'post_id': post.id, 'language': language, 'status': status}
    
    if status == 'completed' and translation is not None:
        now = datetime.utcnow().isoformat() + 'Z'
        ai_response = result.ai_response if result is not None else {}
        payload['translation'] = {
            'language': language,
            'translated_raw': translation.translated_raw,
            'translated_content': translation.translated_content,
            'translated_title': translation.translated_title,
            'source_language': translation.source_language,
            'status': 'completed',
            'metadata': {
                'confidence': ai_response.get('confidence'),
                'provider_info': ai_response.get('provider_info'),
                'translated_at': now,
                'completed_at': now,
            },
        }
    
    if error:
        payload['error'] = error
    
    publish(channel_for(post.id), payload, audience_for(post))


def prompt_language_preference(user):
    """Ask a user without a language preference to pick one."""
    try:
        socketio.emit(
            PREFERENCE_PROMPT_EVENT,
            {'user_id': user.id, 'username': user.username},
            to=user_room(user.id),
        )
    except Exception as e:
        logger.error(f'Language preference prompt error for user {user.id}: {e}')
