"""Post translation routes and reader language preferences."""

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy import func
from forum_translator import db
from forum_translator.models import Post, Topic, PostTranslation, TranslationStatus, UserPreferredLanguage
from forum_translator.models.post_translation import is_valid_language_code, utc_isoformat
from forum_translator.services.preferences import preferred_language_for, translated_title_for, translated_titles_for
from forum_translator.services.rate_limiter import RateLimiter
from forum_translator.utils import token_required_g, can_see_post

translations_bp = Blueprint('translations', __name__)


def _load_visible_post(post_id):
    """Return (post, None) or (None, error_response)."""
    post = db.session.get(Post, post_id)
    if not post:
        return None, (jsonify({'error': 'Post not found'}), 404)
    if not can_see_post(g.current_user, post):
        return None, (jsonify({'error': 'Access denied'}), 403)
    return post, None


def _parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in ('true', '1', 'yes')


@translations_bp.route('/posts/<int:post_id>/translations', methods=['GET'])
@token_required_g
def list_translations(post_id):
    """List a post's translations, newest first."""
    try:
        post, error = _load_visible_post(post_id)
        if error:
            return error
        
        translations = post.translations.order_by(PostTranslation.created_at.desc()).all()
        return jsonify({
            'post_id': post.id,
            'available_translations': [t.language for t in translations],
            'translations': [t.to_dict() for t in translations],
        }), 200
    except Exception as e:
        return jsonify({'error': str(e)}), 500


@translations_bp.route('/posts/<int:post_id>/translations/translation_status', methods=['GET'])
@token_required_g
def translation_status(post_id):
    """Languages still translating and languages available for a post."""
    try:
        post, error = _load_visible_post(post_id)
        if error:
            return error
        
        translations = post.translations.all()
        last_updated = db.session.query(func.max(PostTranslation.updated_at)).filter(
            PostTranslation.post_id == post.id
        ).scalar()
        
        return jsonify({
            'post_id': post.id,
            'pending_translations': [
                t.language for t in translations if t.status == TranslationStatus.TRANSLATING
            ],
            'failed_translations': [
                t.language for t in translations if t.status == TranslationStatus.FAILED
            ],
            'available_translations': [t.language for t in translations],
            'last_updated': utc_isoformat(last_updated),
        }), 200
    except Exception as e:
        return jsonify({'error': str(e)}), 500


@translations_bp.route('/posts/<int:post_id>/translations/<language>', methods=['GET'])
@token_required_g
def get_translation(post_id, language):
    try:
        post, error = _load_visible_post(post_id)
        if error:
            return error
        
        translation = post.get_translation(language)
        if not translation:
            return jsonify({'error': 'Translation not found'}), 404
        
        return jsonify(translation.to_dict()), 200
    except Exception as e:
        return jsonify({'error': str(e)}), 500


@translations_bp.route('/posts/<int:post_id>/translations', methods=['POST'])
@token_required_g
def create_translation(post_id):
    """Queue a translation. The work happens in the background.
    
    Body params:
        - target_language: language code such as 'es' or 'zh-cn'
        - force_update: re-translate even if the post is unchanged
    """
    try:
        post, error = _load_visible_post(post_id)
        if error:
            return error
        
        data = request.get_json() or {}
        target_language = (data.get('target_language') or '').strip()
        force_update = _parse_bool(data.get('force_update'))
        
        if not target_language:
            return jsonify({'error': 'Target language required'}), 400
        if not is_valid_language_code(target_language):
            return jsonify({'error': 'Invalid language code format'}), 400
        
        limiter = RateLimiter(
            current_app.config['TRANSLATION_USER_REQUESTS_PER_MINUTE'],
            key_prefix=f'translation_requests:user:{g.current_user.id}',
        )
        if not limiter.admit():
            return jsonify({'error': 'Too many translation requests. Please wait a minute.'}), 429
        
        post.find_or_create_translation_record(target_language)
        post.enqueue_translation_jobs([target_language], force_update=force_update)
        
        return jsonify({
            'message': 'Translation job enqueued',
            'post_id': post.id,
            'target_language': target_language,
            'force_update': force_update,
            'status': 'queued',
        }), 202
    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@translations_bp.route('/posts/<int:post_id>/translations/<language>', methods=['DELETE'])
@token_required_g
def delete_translation(post_id, language):
    try:
        post, error = _load_visible_post(post_id)
        if error:
            return error
        
        translation = post.get_translation(language)
        if not translation:
            return jsonify({'error': 'Translation not found'}), 404
        
        db.session.delete(translation)
        db.session.commit()
        
        return jsonify({'message': 'Translation deleted'}), 200
    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500


@translations_bp.route('/topics/translated-titles', methods=['GET'])
@token_required_g
def get_translated_titles():
    """Translated titles for a list of topics.
    
    Query params:
        - ids: comma separated topic ids
        - language: defaults to the reader's preferred language
    
    Topics without a completed translation, or that the reader cannot
    see, are left out.
    """
    try:
        topic_ids = []
        for value in (request.args.get('ids') or '').split(','):
            value = value.strip()
            if not value:
                continue
            if not value.isdigit():
                return jsonify({'error': 'Invalid topic id'}), 400
            topic_ids.append(int(value))
        
        language = request.args.get('language') or preferred_language_for(g.current_user)
        if language and not is_valid_language_code(language):
            return jsonify({'error': 'Invalid language code format'}), 400
        
        first_posts = []
        if topic_ids and language:
            first_posts = Post.query.filter(
                Post.topic_id.in_(topic_ids),
                Post.post_number == 1,
            ).all()
        visible = [post for post in first_posts if can_see_post(g.current_user, post)]
        titles = translated_titles_for(visible, language)
        
        return jsonify({
            'language': language,
            'translated_titles': {
                str(post.topic_id): titles[post.id] for post in visible if post.id in titles
            },
        }), 200
    except Exception as e:
        return jsonify({'error': str(e)}), 500


@translations_bp.route('/topics/<int:topic_id>/translated-title', methods=['GET'])
@token_required_g
def get_translated_title(topic_id):
    """Topic title in the reader's preferred language, if translated."""
    try:
        topic = db.session.get(Topic, topic_id)
        first_post = topic.first_post if topic else None
        if not first_post:
            return jsonify({'error': 'Topic not found'}), 404
        if not can_see_post(g.current_user, first_post):
            return jsonify({'error': 'Access denied'}), 403
        
        language = preferred_language_for(g.current_user)
        return jsonify({
            'topic_id': topic.id,
            'language': language,
            'translated_title': translated_title_for(first_post, language),
        }), 200
    except Exception as e:
        return jsonify({'error': str(e)}), 500


# ============ User language preference ============

@translations_bp.route('/user-preferred-language', methods=['GET'])
@token_required_g
def get_user_preferred_language():
    preference = g.current_user.preferred_language
    if preference:
        return jsonify(preference.to_dict()), 200
    
    # Default to enabled if no preference set
    return jsonify({'language': None, 'enabled': True}), 200


@translations_bp.route('/user-preferred-language', methods=['POST'])
@token_required_g
def set_user_preferred_language():
    """Body params: language (optional), enabled (optional)."""
    try:
        data = request.get_json() or {}
        language = data.get('language')
        enabled = data.get('enabled')
        
        if language and not is_valid_language_code(language):
            return jsonify({'error': 'Invalid language code format'}), 400

        preference = g.current_user.preferred_language
        if preference is None:
            preference = UserPreferredLanguage(user_id=g.current_user.id)
            db.session.add(preference)

        if language:
            preference.language = language
        
        if enabled is not None:
            preference.enabled = _parse_bool(enabled)
        
        db.session.commit()
        
        return jsonify({
            'success': True,
            'language': preference.language,
            'enabled': preference.enabled,
        }), 200
    except Exception as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 500
