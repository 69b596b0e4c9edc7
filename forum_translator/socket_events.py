"""WebSocket events for real-time translation status."""

from flask_socketio import emit, join_room, leave_room
from flask import request
import logging
from forum_translator import db
from forum_translator.models import User, Post
from forum_translator.services.status_publisher import (
    channel_for,
    user_room,
    group_room,
    prompt_language_preference,
)
from forum_translator.utils import decode_user_id, can_see_post

logger = logging.getLogger(__name__)


def _token_from(auth):
    if auth and isinstance(auth, dict) and auth.get('token'):
        return auth.get('token')
    return request.args.get('token')


def _load_user(token):
    user_id = decode_user_id(token)
    if not user_id:
        return None
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return None
    return user


def register_socket_events(socketio):
    """Register all Socket.IO event handlers."""
    
    @socketio.on('connect')
    def handle_connect(auth=None):
        """Join the user's personal and group rooms."""
        try:
            token = _token_from(auth)
            if not token:
                logger.warning('Socket connection without token')
                return False
            
            user = _load_user(token)
            if not user:
                logger.warning('Socket connection with invalid token')
                return False
            
            join_room(user_room(user.id))
            for group_id in user.get_group_ids():
                join_room(group_room(group_id))
            
            logger.info(f'User {user.id} connected: {request.sid}')
            emit('connected', {'user_id': user.id})
            
            if user.preferred_language is None:
                prompt_language_preference(user)
            
            return True
            
        except Exception as e:
            logger.error(f'Connect error: {e}')
            return False
    
    @socketio.on('subscribe_post_translations')
    def handle_subscribe(data):
        """Join the public status channel of a post."""
        try:
            data = data or {}
            post_id = data.get('post_id')
            token = data.get('token')
            
            if not token or not post_id:
                emit('error', {'message': 'Missing token or post_id'})
                return
            
            user = _load_user(token)
            if not user:
                emit('error', {'message': 'Invalid token'})
                return
            
            post = db.session.get(Post, post_id)
            if not post:
                emit('error', {'message': 'Post not found'})
                return
            
            if not can_see_post(user, post):
                emit('error', {'message': 'Access denied'})
                return
            
            join_room(channel_for(post.id))
            
            logger.info(f'User {user.id} subscribed to translations of post {post.id}')
            emit('subscribed_post_translations', {'post_id': post.id})
            
        except Exception as e:
            logger.error(f'Subscribe post translations error: {e}')
            emit('error', {'message': 'Failed to subscribe'})
    
    @socketio.on('unsubscribe_post_translations')
    def handle_unsubscribe(data):
        try:
            post_id = (data or {}).get('post_id')
            if not post_id:
                return
            
            leave_room(channel_for(post_id))
            
            logger.info(f'Client left translations of post {post_id}')
            emit('unsubscribed_post_translations', {'post_id': post_id})
            
        except Exception as e:
            logger.error(f'Unsubscribe post translations error: {e}')
