"""Admin routes: translation statistics and model presets."""

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import func
from forum_translator import db
from forum_translator.models import PostTranslation
from forum_translator.services import model_config
from forum_translator.services.rate_limiter import RateLimiter, UNLIMITED
from forum_translator.utils import admin_required_g

admin_bp = Blueprint('translation_admin', __name__)

RECENT_LIMIT = 20


@admin_bp.route('/stats', methods=['GET'])
@admin_required_g
def get_stats():
    try:
        total = PostTranslation.query.count()
        
        language_rows = db.session.query(
            PostTranslation.language, func.count(PostTranslation.id)
        ).group_by(PostTranslation.language).all()
        
        status_rows = db.session.query(
            PostTranslation.status, func.count(PostTranslation.id)
        ).group_by(PostTranslation.status).all()
        
        recent = PostTranslation.query.order_by(
            PostTranslation.created_at.desc()
        ).limit(RECENT_LIMIT).all()
        
        return jsonify({
            'total_translations': total,
            'unique_languages': len(language_rows),
            'language_distribution': {language: count for language, count in language_rows},
            'status_distribution': {status: count for status, count in status_rows},
            'recent_translations': [
                {
                    'id': t.id,
                    'post_id': t.post_id,
                    'language': t.language,
                    'status': t.status,
                    'provider': t.translation_provider,
                    'created_at': t.to_dict()['created_at'],
                }
                for t in recent
            ],
        }), 200
    except Exception as e:
        return jsonify({'error': str(e)}), 500


@admin_bp.route('/models', methods=['GET'])
@admin_required_g
def get_models():
    """Preset models. Query params: provider, tier."""
    try:
        provider = request.args.get('provider')
        tier = request.args.get('tier')
        
        remaining = RateLimiter.for_provider_requests().remaining()
        
        return jsonify({
            'selected_model': current_app.config.get('TRANSLATION_PRESET_MODEL'),
            'providers': model_config.list_providers(),
            'models': model_config.list_models(provider=provider, tier=tier),
            'rate_limit_remaining': None if remaining == UNLIMITED else remaining,
        }), 200
    except Exception as e:
        return jsonify({'error': str(e)}), 500
