"""Local entry point for the Flask CLI.

Usage:
    FLASK_APP=run.py flask seed-account --name Acme --email ops@acme.test
    FLASK_APP=run.py flask import-archive export.zip --email ops@acme.test
    FLASK_APP=run.py flask db upgrade
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before anything else

from kanban import create_app  # noqa: E402

app = create_app()
