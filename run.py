"""Local development runner.

Applies pending migrations (never drops tables) and starts the Flask
development server. Production uses ``gunicorn wsgi:app``.
"""

import os

from flask_migrate import upgrade

from wsgi import app


if __name__ == '__main__':
    with app.app_context():
        upgrade()

    host = os.environ.get('HOST', '127.0.0.1')
    port = int(os.environ.get('PORT', 5000))
    app.run(host=host, port=port, debug=app.config.get('DEBUG', False))
