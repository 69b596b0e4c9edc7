"""
Pytest configuration and fixtures for testing the forum translator.
"""

import json
import os
import sys
import pytest
import fakeredis
import jwt
import requests
from faker import Faker

# Add the parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from forum_translator import create_app, db, socketio
from forum_translator.models import User, Category, Topic, Post
from forum_translator.services.redis_client import set_redis

fake = Faker()

TEST_SECRET = 'test-secret-key-for-testing'


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    os.environ['FLASK_ENV'] = 'testing'
    os.environ['JWT_SECRET_KEY'] = TEST_SECRET

    app = create_app('testing')

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client for each test function."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create a fresh database session for each test."""
    with app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        yield db.session
        db.session.rollback()


@pytest.fixture(autouse=True)
def redis_store():
    """In-memory Redis shared by locks and rate limiters."""
    store = fakeredis.FakeRedis(decode_responses=True)
    set_redis(store)
    yield store
    store.flushall()
    set_redis(None)


@pytest.fixture(autouse=True)
def emitted(monkeypatch):
    """Record Socket.IO emits as (event, data, room) tuples, then send them."""
    events = []
    original_emit = socketio.emit

    def recording_emit(event, *args, **kwargs):
        data = args[0] if args else kwargs.get('data')
        events.append((event, data, kwargs.get('to') or kwargs.get('room')))
        return original_emit(event, *args, **kwargs)

    monkeypatch.setattr(socketio, 'emit', recording_emit)
    return events


@pytest.fixture
def settings(app):
    """Temporarily override app config values."""
    original = {}

    def override(**values):
        for key, value in values.items():
            original.setdefault(key, app.config.get(key))
            app.config[key] = value

    yield override

    app.config.update(original)


# ============ Factories ============

def make_user(**overrides):
    data = {
        'username': fake.user_name() + fake.pystr(min_chars=4, max_chars=6),
        'email': fake.unique.email(),
    }
    group_ids = overrides.pop('group_ids', None)
    data.update(overrides)
    user = User(**data)
    if group_ids:
        user.set_group_ids(group_ids)
    db.session.add(user)
    db.session.commit()
    return user


def make_topic(user=None, category=None, private_to=None, title=None):
    topic = Topic(
        title=title if title is not None else fake.sentence(nb_words=5),
        user_id=user.id if user else None,
        category_id=category.id if category else None,
    )
    if private_to is not None:
        topic.archetype = Topic.ARCHETYPE_PRIVATE_MESSAGE
        topic.set_allowed_user_ids([u.id for u in private_to])
    db.session.add(topic)
    db.session.commit()
    return topic


def make_post(topic=None, user=None, raw=None, post_number=2):
    """Posts default to replies so no title translation is requested."""
    topic = topic or make_topic(user=user)
    post = Post(
        topic_id=topic.id,
        user_id=user.id if user else None,
        post_number=post_number,
        raw=raw if raw is not None else fake.paragraph(),
    )
    db.session.add(post)
    db.session.commit()
    return post


def make_restricted_category(group_ids):
    category = Category(name=fake.word(), read_restricted=True)
    category.set_secure_group_ids(group_ids)
    db.session.add(category)
    db.session.commit()
    return category


def auth_headers_for(user):
    token = jwt.encode({'user_id': user.id}, TEST_SECRET, algorithm='HS256')
    return {'Authorization': f'Bearer {token}'}


def provider_response(status=200, body=None, text=None):
    """A real requests.Response as the chat-completions endpoint would send it."""
    response = requests.Response()
    response.status_code = status
    if text is not None:
        response._content = text.encode('utf-8')
    else:
        response._content = json.dumps(body if body is not None else {}).encode('utf-8')
    response.encoding = 'utf-8'
    response.headers['Content-Type'] = 'application/json'
    return response


def completion(content, model='gpt-4o', total_tokens=42):
    return provider_response(200, {
        'model': model,
        'choices': [{'message': {'role': 'assistant', 'content': content}}],
        'usage': {'total_tokens': total_tokens},
    })


@pytest.fixture
def test_user(app, db_session):
    return make_user()


@pytest.fixture
def admin_user(app, db_session):
    return make_user(is_admin=True)


@pytest.fixture
def auth_headers(test_user):
    return auth_headers_for(test_user)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers_for(admin_user)


@pytest.fixture
def test_post(app, db_session, test_user):
    return make_post(user=test_user, raw='Hello **bold** world')
