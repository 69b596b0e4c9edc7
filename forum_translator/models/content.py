"""Forum content models: categories, topics and posts.

The forum owns these tables; the translator only reads them and hangs
translations off posts.
"""

import json
from datetime import datetime
from forum_translator import db


def _load_ids(value) -> list:
    if value:
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            return []
    return []


class Category(db.Model):
    __tablename__ = 'categories'
    
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    read_restricted = db.Column(db.Boolean, default=False, nullable=False)
    secure_group_ids = db.Column(db.Text, nullable=True)  # JSON list
    
    def get_secure_group_ids(self) -> list:
        return _load_ids(self.secure_group_ids)
    
    def set_secure_group_ids(self, ids: list):
        self.secure_group_ids = json.dumps(list(ids)) if ids else None


class Topic(db.Model):
    __tablename__ = 'topics'
    
    ARCHETYPE_REGULAR = 'regular'
    ARCHETYPE_PRIVATE_MESSAGE = 'private_message'
    
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id'), nullable=True)
    archetype = db.Column(db.String(20), default=ARCHETYPE_REGULAR, nullable=False)
    allowed_user_ids = db.Column(db.Text, nullable=True)  # JSON list, private messages only
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    
    category = db.relationship('Category', backref=db.backref('topics', lazy='dynamic'))
    posts = db.relationship('Post', backref='topic', lazy='dynamic', order_by='Post.post_number')
    
    @property
    def is_private_message(self) -> bool:
        return self.archetype == self.ARCHETYPE_PRIVATE_MESSAGE
    
    def get_allowed_user_ids(self) -> list:
        return _load_ids(self.allowed_user_ids)
    
    def set_allowed_user_ids(self, ids: list):
        self.allowed_user_ids = json.dumps(list(ids)) if ids else None
    
    @property
    def first_post(self):
        return self.posts.filter_by(post_number=1).first()


class Post(db.Model):
    __tablename__ = 'posts'
    
    id = db.Column(db.Integer, primary_key=True)
    topic_id = db.Column(db.Integer, db.ForeignKey('topics.id'), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    post_number = db.Column(db.Integer, default=1, nullable=False)
    raw = db.Column(db.Text, nullable=False, default='')
    hidden = db.Column(db.Boolean, default=False, nullable=False)
    deleted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    translations = db.relationship(
        'PostTranslation',
        backref='post',
        lazy='dynamic',
        cascade='all, delete-orphan',
    )
    
    def __repr__(self):
        return f'<Post {self.id} in Topic {self.topic_id}>'
    
    @classmethod
    def find(cls, post_id):
        """Content store lookup used by the translation job."""
        return db.session.get(cls, post_id)
    
    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
    
    def trash(self):
        self.deleted_at = datetime.utcnow()
    
    # ============ Translation helpers ============
    
    def get_translation(self, language):
        return self.translations.filter_by(language=language).first()
    
    def has_translation(self, language) -> bool:
        return self.translations.filter_by(language=language).count() > 0
    
    def available_translations(self) -> list:
        return [t.language for t in self.translations]
    
    def create_or_update_translation_record(self, language):
        """Create or reset the placeholder record so clients see 'translating'."""
        from forum_translator.models.post_translation import PostTranslation
        return PostTranslation.create_or_update_record(self.id, language)
    
    def find_or_create_translation_record(self, language):
        """Existing record as is, or a new placeholder when there is none."""
        from forum_translator.models.post_translation import PostTranslation
        return PostTranslation.find_or_create_record(self.id, language)
    
    def enqueue_translation_jobs(self, languages, force_update=False):
        """Enqueue one translation job per language."""
        if not languages:
            return
        
        from forum_translator.jobs import translate_post
        from forum_translator.services.job_queue import get_job_queue
        
        queue = get_job_queue()
        for language in languages:
            queue.enqueue(
                translate_post.execute,
                post_id=self.id,
                target_language=language,
                force_update=force_update,
            )
