"""
Production entrypoint for gunicorn with gevent workers.

Provider calls go out over HTTPS through requests, and translation jobs
run on worker threads. Both must see the gevent-patched socket, ssl and
threading modules, so patch_all() has to run before anything imports them.

    gunicorn -k gevent -w 1 patched_app:application
"""

from gevent import monkey
monkey.patch_all()

from forum_translator import create_app, socketio  # noqa: E402

# create_app() already wraps app.wsgi_app in the Socket.IO middleware, so
# status event polling and websocket upgrades are served by the same worker.
application = create_app()
app = application
