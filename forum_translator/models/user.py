"""User model for forum members."""

import json
from datetime import datetime
from forum_translator import db


class User(db.Model):
    """Forum member. Only the fields translation features rely on."""
    
    __tablename__ = 'users'
    
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    group_ids = db.Column(db.Text, nullable=True)  # JSON list of group ids
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    preferred_language = db.relationship(
        'UserPreferredLanguage', backref='user', uselist=False, cascade='all, delete-orphan'
    )
    
    def get_group_ids(self) -> list:
        """Get the groups this user belongs to."""
        if self.group_ids:
            try:
                return json.loads(self.group_ids)
            except (json.JSONDecodeError, TypeError):
                return []
        return []
    
    def set_group_ids(self, ids: list):
        self.group_ids = json.dumps(list(ids)) if ids else None
    
    def to_dict(self):
        """Convert user to dictionary."""
        return {
            'id': self.id,
            'username': self.username,
            'is_admin': self.is_admin,
            'preferred_language': self.preferred_language.language if self.preferred_language else None,
            'created_at': self.created_at.isoformat(),
        }
    
    def __repr__(self):
        return f'<User {self.username}>'
