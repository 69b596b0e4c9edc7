import os
from forum_translator import create_app, socketio

config_name = os.getenv('FLASK_ENV', 'development')
app = create_app(config_name)

if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    
    # Debug reloader would start a second translation worker pool
    debug_mode = os.getenv('FLASK_DEBUG', 'False').lower() in ('true', '1', 'yes')
    
    # socketio.run so clients can subscribe to translation status events
    socketio.run(app, host='0.0.0.0', port=port, debug=debug_mode)
