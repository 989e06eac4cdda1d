"""
WSGI entry point for the API process: `gunicorn wsgi:app`.

Analyzer jobs run in a separate process (`python worker.py`).
"""
import os

from app import create_app

app = create_app()

if __name__ == '__main__':
    # Flask dev server, local use only
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', 5000)), debug=os.getenv('FLASK_DEBUG') == '1')
