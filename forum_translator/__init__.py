from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_socketio import SocketIO
from flask_cors import CORS
from flask_restx import Api
import logging
from dotenv import load_dotenv

load_dotenv()

db = SQLAlchemy()
socketio = SocketIO(cors_allowed_origins='*')

logger = logging.getLogger(__name__)


def create_app(config_name='development'):
    app = Flask(__name__)
    
    # Config
    from forum_translator.config import get_config
    app.config.from_object(get_config(config_name))
    
    # Initialize extensions
    db.init_app(app)
    socketio.init_app(app)
    CORS(app)
    
    # API docs
    Api(app, version='1.0', title='Forum Translator API', doc='/docs')
    
    # Structured translation log
    from forum_translator.services.translation_logger import configure_translation_log
    configure_translation_log(app.config['TRANSLATION_LOG_PATH'])
    
    # Background queue for translation jobs
    from forum_translator.services.job_queue import init_job_queue
    init_job_queue(app)
    
    # Create tables with error handling
    with app.app_context():
        from forum_translator import models  # noqa: F401
        try:
            db.create_all()
        except Exception as e:
            logger.warning(f"Could not create database tables: {e}")

    # Register routes
    from forum_translator.routes import register_routes
    register_routes(app)
    
    from forum_translator.socket_events import register_socket_events
    register_socket_events(socketio)
    
    # Health check
    @app.route('/health', methods=['GET'])
    def health():
        return {'status': 'ok'}, 200
    
    return app
