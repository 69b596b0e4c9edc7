"""A user's preferred reading language."""

from datetime import datetime
from forum_translator import db


class UserPreferredLanguage(db.Model):
    __tablename__ = 'user_preferred_languages'
    
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    language = db.Column(db.String(10), nullable=True, default='en', index=True)
    enabled = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    def to_dict(self):
        return {
            'language': self.language,
            'enabled': self.enabled,
        }
