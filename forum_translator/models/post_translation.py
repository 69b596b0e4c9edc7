"""Post translation model: one row per (post, language) translation."""

import json
import re
from datetime import datetime
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import validates
from forum_translator import db
from forum_translator.services.renderer import sanitize, plain_text


# Two-letter code with optional region, e.g. 'es' or 'zh-cn'
LANGUAGE_CODE_PATTERN = re.compile(r'^[a-z]{2}(-[a-z]{2})?$')

DEFAULT_PROVIDER = 'openai'


def is_valid_language_code(language) -> bool:
    return bool(language) and isinstance(language, str) and bool(LANGUAGE_CODE_PATTERN.match(language))


def utc_isoformat(dt):
    """Convert datetime to ISO format with Z suffix to indicate UTC."""
    if dt is None:
        return None
    return dt.isoformat() + 'Z'


class TranslationStatus:
    TRANSLATING = 'translating'
    COMPLETED = 'completed'
    FAILED = 'failed'


class PostTranslation(db.Model):
    """Translation of a single post into a single language.
    
    Status moves translating -> completed | failed. A record goes back to
    translating whenever a new job run starts. Failed runs keep whatever
    translated fields a previous successful run left behind.
    """
    
    __tablename__ = 'post_translations'
    
    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('posts.id', ondelete='CASCADE'), nullable=False, index=True)
    language = db.Column(db.String(10), nullable=False, index=True)
    status = db.Column(db.String(20), default=TranslationStatus.TRANSLATING, nullable=False, index=True)
    
    translated_raw = db.Column(db.Text, nullable=True)  # markdown, as returned by the model
    translated_content = db.Column(db.Text, nullable=False, default='')  # rendered + sanitized HTML
    translated_title = db.Column(db.Text, nullable=True)
    source_language = db.Column(db.String(10), nullable=True)
    source_sha = db.Column(db.String(64), nullable=True)
    translation_provider = db.Column(db.String(50), nullable=True)
    
    # Confidence, provider info, error details and timestamps (JSON string)
    metadata_json = db.Column(db.Text, nullable=True)
    
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    __table_args__ = (
        db.UniqueConstraint('post_id', 'language', name='unique_post_translation'),
    )
    
    def __repr__(self):
        return f'<PostTranslation {self.id} post={self.post_id} {self.language}: {self.status}>'
    
    @validates('language')
    def validate_language(self, key, language):
        if not is_valid_language_code(language):
            raise ValueError(f'Invalid language code: {language!r}')
        return language
    
    @validates('status')
    def validate_status(self, key, status):
        if status not in (TranslationStatus.TRANSLATING, TranslationStatus.COMPLETED, TranslationStatus.FAILED):
            raise ValueError(f'Invalid translation status: {status!r}')
        return status
    
    # ============ Lookups ============
    
    @classmethod
    def find_translation(cls, post_id, language):
        return cls.query.filter_by(post_id=post_id, language=language).first()
    
    @classmethod
    def create_or_update_record(cls, post_id, language):
        """Create the record, or reset an existing one to the placeholder state.
        
        Two requests racing on a new (post, language) pair both try to
        insert; the loser hits the unique constraint and resets the row
        the winner created.
        """
        record = cls.find_translation(post_id, language)
        if record is None:
            return cls._insert_placeholder(post_id, language, reset_existing=True)

        record.reset_to_placeholder()
        db.session.commit()
        return record

    @classmethod
    def find_or_create_record(cls, post_id, language):
        """Return the existing record untouched, or create a placeholder."""
        record = cls.find_translation(post_id, language)
        if record is not None:
            return record
        return cls._insert_placeholder(post_id, language, reset_existing=False)

    @classmethod
    def _insert_placeholder(cls, post_id, language, reset_existing):
        record = cls(post_id=post_id, language=language)
        record.reset_to_placeholder()
        db.session.add(record)
        try:
            db.session.commit()
            return record
        except IntegrityError:
            db.session.rollback()

        record = cls.find_translation(post_id, language)
        if record is None:
            # The row that beat us was deleted again before we could read it
            record = cls(post_id=post_id, language=language)
            db.session.add(record)
        elif not reset_existing:
            return record

        record.reset_to_placeholder()
        db.session.commit()
        return record
    
    @classmethod
    def find_topic_translation(cls, topic_id, language):
        """Translated title of a topic, taken from its first post's translation."""
        from forum_translator.models.content import Post
        
        first_post = Post.query.filter_by(topic_id=topic_id, post_number=1).first()
        if not first_post:
            return None
        
        translation = cls.find_translation(first_post.id, language)
        return translation.translated_title if translation else None
    
    # ============ State ============
    
    @property
    def is_translating(self) -> bool:
        return self.status == TranslationStatus.TRANSLATING
    
    @property
    def is_completed(self) -> bool:
        return self.status == TranslationStatus.COMPLETED
    
    @property
    def is_failed(self) -> bool:
        return self.status == TranslationStatus.FAILED
    
    def reset_to_placeholder(self):
        self.status = TranslationStatus.TRANSLATING
        self.translated_content = ''
        self.translated_title = ''
        self.translation_provider = self.translation_provider or DEFAULT_PROVIDER
        self.merge_metadata(translating_started_at=utc_isoformat(datetime.utcnow()))
    
    def mark_translating(self):
        """Enter a new job run without touching previous translated fields."""
        self.status = TranslationStatus.TRANSLATING
        self.merge_metadata(translating_started_at=utc_isoformat(datetime.utcnow()))
    
    def mark_completed(self, translated_raw, translated_content, translated_title,
                       source_language, source_sha, ai_response: dict):
        now = utc_isoformat(datetime.utcnow())
        provider_info = ai_response.get('provider_info') or {}
        
        self.status = TranslationStatus.COMPLETED
        self.translated_raw = translated_raw
        self.translated_content = translated_content
        self.translated_title = translated_title
        self.source_language = source_language
        self.source_sha = source_sha
        if provider_info.get('provider'):
            self.translation_provider = provider_info['provider']
        self.merge_metadata(
            confidence=ai_response.get('confidence'),
            provider_info=provider_info,
            translated_at=now,
            completed_at=now,
            error=None,
            error_class=None,
            error_kind=None,
        )
    
    def mark_failed(self, error, **details):
        """Record a failed run. Translated fields from earlier runs are kept."""
        self.status = TranslationStatus.FAILED
        self.merge_metadata(error=error, failed_at=utc_isoformat(datetime.utcnow()), **details)
    
    # ============ Metadata ============
    
    def get_metadata(self) -> dict:
        if self.metadata_json:
            try:
                return json.loads(self.metadata_json)
            except (json.JSONDecodeError, TypeError):
                return {}
        return {}
    
    def merge_metadata(self, **values):
        data = self.get_metadata()
        data.update(values)
        self.metadata_json = json.dumps(data, default=str)
    
    @property
    def provider_info(self) -> dict:
        return self.get_metadata().get('provider_info') or {}
    
    @property
    def confidence(self) -> float:
        return self.get_metadata().get('confidence') or 0.0
    
    @property
    def error(self):
        return self.get_metadata().get('error')
    
    def to_dict(self):
        """Convert translation to dictionary."""
        content = self.translated_content
        if not self.translated_raw and content:
            # Rows written before translated_raw existed were never scrubbed
            content = sanitize(content)
        
        return {
            'id': self.id,
            'post_id': self.post_id,
            'language': self.language,
            'status': self.status,
            'translated_content': content,
            'translated_title': self.translated_title,
            'source_language': self.source_language,
            'translation_provider': self.translation_provider,
            'confidence': self.confidence,
            'provider_info': self.provider_info,
            'error': self.error if self.is_failed else None,
            'created_at': utc_isoformat(self.created_at),
            'updated_at': utc_isoformat(self.updated_at),
        }


@event.listens_for(PostTranslation, 'before_insert')
@event.listens_for(PostTranslation, 'before_update')
def _scrub_translation_fields(mapper, connection, target):
    """Sanitize on every write, whatever code path produced the values."""
    if target.translated_content:
        target.translated_content = sanitize(target.translated_content)
    if target.translated_title:
        target.translated_title = plain_text(target.translated_title)
    if target.status == TranslationStatus.COMPLETED and not target.translated_content:
        raise ValueError('Completed translation requires translated content')
