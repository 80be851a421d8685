"""
WSGI / Flask CLI entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi clone-templates <project_id>
    gunicorn wsgi:app
"""

from app import create_app

app = create_app()
