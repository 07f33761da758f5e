"""Shared test fixtures for the kanban importer test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite)
- db_session: clean database per test (tables created/dropped)
- upload_dir: local attachment storage redirected into tmp_path
- seed_data: an account with an importing user, plus a second account
- make_archive: builds ZIP exports in tmp_path
"""

import json
import zipfile

import pytest

from kanban import create_app
from kanban.extensions import db as _db
from kanban.models.account import Account
from kanban.models.user import User


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture(autouse=True)
def upload_dir(app, tmp_path, monkeypatch):
    """Point local attachment storage at a per-test directory."""
    path = tmp_path / "uploads"
    monkeypatch.setitem(app.config, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def cli_runner(app):
    return app.test_cli_runner()


@pytest.fixture
def seed_data(db_session):
    """Seed an account + importing user, and an unrelated second account.

    Returns a dict with the created objects and their IDs.
    """
    account = Account(name="Acme")
    other_account = Account(name="Globex")
    db_session.add_all([account, other_account])
    db_session.flush()

    user = User(
        email="ops@acme.test",
        full_name="Ops Person",
        account_id=account.id,
    )
    other_user = User(
        email="ops@globex.test",
        full_name="Globex Ops",
        account_id=other_account.id,
    )
    db_session.add_all([user, other_user])
    db_session.commit()

    return {
        "account": account,
        "account_id": account.id,
        "user": user,
        "user_id": user.id,
        "other_account": other_account,
        "other_account_id": other_account.id,
        "other_user": other_user,
        "other_user_id": other_user.id,
    }


def card_payload(**overrides):
    """A valid card JSON object; keyword arguments replace fields."""
    payload = {
        "board": "Sprint",
        "status": "Backlog",
        "title": "Write the release notes",
        "description": "<p>Cover the <strong>new</strong> importer.</p>",
        "created_at": "2024-01-02T09:30:00Z",
        "updated_at": "2024-01-05T16:45:00Z",
        "comments": [],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_archive(tmp_path):
    """Return a builder that writes a ZIP export and returns its path.

    cards maps card number (or a raw entry name) to a payload dict, or to
    a str/bytes written verbatim. files maps entry names to file contents.
    """

    def _make(cards, files=None, name="export.zip"):
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as zf:
            for number, payload in cards.items():
                entry = number if isinstance(number, str) else f"{number}.json"
                if isinstance(payload, dict):
                    payload = json.dumps(payload)
                zf.writestr(entry, payload)
            for entry, content in (files or {}).items():
                zf.writestr(entry, content)
        return str(path)

    return _make
