"""
Tests for the PostTranslation record and post helpers.
"""

from unittest.mock import patch

import pytest
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError

from conftest import make_post, make_topic
from forum_translator import db
from forum_translator.models import Post, PostTranslation, TranslationStatus

AI_RESPONSE = {
    'confidence': 0.9,
    'translated_text': 'Hola',
    'provider_info': {'model': 'grok-3', 'tokens_used': 10, 'provider': 'xai'},
}


def complete(translation, raw='Hola', content='<p>Hola</p>', title=None):
    translation.mark_completed(
        translated_raw=raw,
        translated_content=content,
        translated_title=title,
        source_language='en',
        source_sha='abc',
        ai_response=AI_RESPONSE,
    )
    db.session.commit()
    return translation


class TestPlaceholder:

    def test_create_placeholder(self, db_session, test_post):
        translation = test_post.create_or_update_translation_record('es')

        assert translation.id is not None
        assert translation.status == TranslationStatus.TRANSLATING
        assert translation.translated_content == ''
        assert translation.translated_title == ''
        assert translation.translation_provider == 'openai'
        assert 'translating_started_at' in translation.get_metadata()

    def test_second_call_reuses_row(self, db_session, test_post):
        first = PostTranslation.create_or_update_record(test_post.id, 'es')
        second = PostTranslation.create_or_update_record(test_post.id, 'es')

        assert first.id == second.id
        assert PostTranslation.query.filter_by(post_id=test_post.id).count() == 1

    def test_reset_clears_completed_content(self, db_session, test_post):
        translation = complete(PostTranslation.create_or_update_record(test_post.id, 'es'), title='Título')

        translation = PostTranslation.create_or_update_record(test_post.id, 'es')

        assert translation.is_translating
        assert translation.translated_content == ''
        assert translation.translated_title == ''
        assert translation.translation_provider == 'xai'

    def test_unique_per_post_and_language(self, db_session, test_post):
        db.session.add(PostTranslation(post_id=test_post.id, language='es'))
        db.session.commit()

        db.session.add(PostTranslation(post_id=test_post.id, language='es'))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()


class TestFindOrCreate:

    def test_creates_placeholder_when_missing(self, db_session, test_post):
        translation = test_post.find_or_create_translation_record('es')

        assert translation.id is not None
        assert translation.is_translating
        assert translation.translated_content == ''

    def test_leaves_existing_record_alone(self, db_session, test_post):
        existing = complete(PostTranslation.create_or_update_record(test_post.id, 'es'), title='Título')

        translation = test_post.find_or_create_translation_record('es')

        assert translation.id == existing.id
        assert translation.is_completed
        assert translation.translated_content == '<p>Hola</p>'
        assert translation.translated_title == 'Título'

    def test_lost_insert_race_returns_winner(self, db_session, test_post):
        winner = complete(PostTranslation.create_or_update_record(test_post.id, 'es'))
        winner_id = winner.id
        lookup = PostTranslation.find_translation
        calls = []

        def racing_lookup(post_id, language):
            calls.append(language)
            # The first lookup misses, as if the other insert had not landed yet
            return None if len(calls) == 1 else lookup(post_id, language)

        with patch.object(PostTranslation, 'find_translation', side_effect=racing_lookup):
            translation = PostTranslation.find_or_create_record(test_post.id, 'es')

        assert translation.id == winner_id
        assert translation.is_completed
        assert PostTranslation.query.filter_by(post_id=test_post.id).count() == 1

    @pytest.mark.parametrize('method', ['find_or_create_record', 'create_or_update_record'])
    def test_winner_deleted_before_refetch(self, db_session, test_post, method):
        db.session.expunge(PostTranslation.create_or_update_record(test_post.id, 'es'))
        post_id = test_post.id
        calls = []

        def racing_lookup(lookup_post_id, language):
            calls.append(language)
            if len(calls) == 2:
                db.session.execute(delete(PostTranslation).where(PostTranslation.post_id == post_id))
                db.session.commit()
            return None

        with patch.object(PostTranslation, 'find_translation', side_effect=racing_lookup):
            translation = getattr(PostTranslation, method)(post_id, 'es')

        assert translation.id is not None
        assert translation.is_translating
        assert PostTranslation.query.filter_by(post_id=post_id).count() == 1


class TestValidation:

    @pytest.mark.parametrize('language', ['EN', 'english', 'e', 'zh_CN', '', None])
    def test_rejects_bad_language(self, db_session, test_post, language):
        with pytest.raises(ValueError):
            PostTranslation(post_id=test_post.id, language=language)

    @pytest.mark.parametrize('language', ['en', 'zh-cn', 'pt-br'])
    def test_accepts_language(self, db_session, test_post, language):
        assert PostTranslation(post_id=test_post.id, language=language).language == language

    def test_rejects_bad_status(self, db_session, test_post):
        translation = PostTranslation(post_id=test_post.id, language='es')
        with pytest.raises(ValueError):
            translation.status = 'pending'

    def test_completed_requires_content(self, db_session, test_post):
        translation = PostTranslation.create_or_update_record(test_post.id, 'es')
        translation.status = TranslationStatus.COMPLETED

        with pytest.raises(ValueError):
            db.session.commit()
        db.session.rollback()


class TestStateTransitions:

    def test_mark_completed(self, db_session, test_post):
        translation = complete(PostTranslation.create_or_update_record(test_post.id, 'es'))

        assert translation.is_completed
        assert translation.translated_raw == 'Hola'
        assert translation.source_language == 'en'
        assert translation.source_sha == 'abc'
        assert translation.confidence == 0.9
        assert translation.provider_info['provider'] == 'xai'
        assert translation.translation_provider == 'xai'
        metadata = translation.get_metadata()
        assert metadata['translated_at'] == metadata['completed_at']

    def test_mark_failed_keeps_previous_fields(self, db_session, test_post):
        translation = complete(PostTranslation.create_or_update_record(test_post.id, 'es'))

        translation.mark_translating()
        translation.mark_failed('Invalid API key', error_kind='invalid_api_key')
        db.session.commit()

        assert translation.is_failed
        assert translation.translated_raw == 'Hola'
        assert translation.translated_content == '<p>Hola</p>'
        assert translation.error == 'Invalid API key'
        assert translation.to_dict()['error'] == 'Invalid API key'

    def test_completion_clears_error(self, db_session, test_post):
        translation = PostTranslation.create_or_update_record(test_post.id, 'es')
        translation.mark_failed('boom', error_class='RuntimeError')
        db.session.commit()

        complete(translation)

        metadata = translation.get_metadata()
        assert metadata['error'] is None
        assert metadata['error_class'] is None
        assert translation.to_dict()['error'] is None


class TestSanitizeOnWrite:

    def test_content_and_title_scrubbed(self, db_session, test_post):
        translation = complete(
            PostTranslation.create_or_update_record(test_post.id, 'es'),
            content='<p onclick="steal()">Hola</p><script>alert(1)</script>',
            title='<b>Título</b>',
        )

        assert '<script>' not in translation.translated_content
        assert 'onclick' not in translation.translated_content
        assert 'Hola' in translation.translated_content
        assert translation.translated_title == 'Título'

    def test_legacy_row_sanitized_on_read(self, db_session, test_post):
        translation = PostTranslation.create_or_update_record(test_post.id, 'es')
        # Written behind the ORM's back, as rows from older versions were
        db.session.execute(
            update(PostTranslation)
            .where(PostTranslation.id == translation.id)
            .values(translated_content='<p>Hola</p><img src="x" onerror="alert(1)">')
        )
        db.session.commit()

        data = translation.to_dict()
        assert 'onerror' not in data['translated_content']
        assert 'Hola' in data['translated_content']


class TestPostHelpers:

    def test_translation_lookups(self, db_session, test_post):
        PostTranslation.create_or_update_record(test_post.id, 'es')
        PostTranslation.create_or_update_record(test_post.id, 'fr')

        assert test_post.has_translation('es')
        assert not test_post.has_translation('de')
        assert sorted(test_post.available_translations()) == ['es', 'fr']
        assert test_post.get_translation('fr').language == 'fr'

    def test_find_topic_translation_uses_first_post(self, db_session, test_user):
        topic = make_topic(user=test_user)
        first = make_post(topic=topic, post_number=1)
        complete(PostTranslation.create_or_update_record(first.id, 'es'), title='Título')

        assert PostTranslation.find_topic_translation(topic.id, 'es') == 'Título'
        assert PostTranslation.find_topic_translation(topic.id, 'de') is None

    def test_deleting_post_removes_translations(self, db_session, test_post):
        PostTranslation.create_or_update_record(test_post.id, 'es')

        db.session.delete(test_post)
        db.session.commit()

        assert PostTranslation.query.count() == 0

    def test_trash(self, db_session, test_post):
        assert not test_post.is_deleted
        test_post.trash()
        db.session.commit()
        assert Post.find(test_post.id).is_deleted
