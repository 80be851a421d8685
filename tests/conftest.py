"""
Shared pytest fixtures for the Project Checklist test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - catalog: The app's TemplateCatalog, emptied per test
    - project: Pre-created Project entity
    - templates: Four canonical template items across the stages
"""

import pytest

from app import create_app
from app.models import db as _db
from app.models.project import Project
from app.models.template import CanonicalTemplateItem


# Four task instances across stages; 1.1 defines two delivery tasks.
TEMPLATE_ITEMS = [
    {"id": "1.1-identification", "code": "1.1", "stage": "identification",
     "text": "Identify the business need", "category": "factor"},
    {"id": "1.1-delivery", "code": "1.1", "stage": "delivery",
     "text": "Deliver against the business need", "category": "factor"},
    {"id": "1.1-delivery-2", "code": "1.1", "stage": "delivery",
     "text": "Track benefits during delivery", "category": "factor"},
    {"id": "2.3-closure", "code": "2.3", "stage": "closure",
     "text": "Capture lessons learned", "category": "heuristic"},
]


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        # Tables are recreated per test; cached template items would go stale.
        app.extensions["template_catalog"].invalidate()
        yield
        app.extensions["template_catalog"].invalidate()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def catalog(app):
    return app.extensions["template_catalog"]


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def project():
    """Create and return a test Project."""
    proj = Project(name="Test Project")
    _db.session.add(proj)
    _db.session.commit()
    return proj


@pytest.fixture()
def templates(catalog):
    """Insert the four canonical template items."""
    for item in TEMPLATE_ITEMS:
        _db.session.add(CanonicalTemplateItem(**item))
    _db.session.commit()
    catalog.invalidate()
    return TEMPLATE_ITEMS
