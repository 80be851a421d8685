"""
Canonical template catalog — TTL cache over ``canonical_template_items``.

The catalog is an object owned by the Flask application
(``app.extensions["template_catalog"]``), not a module-level global. Anything
that changes the template table calls ``invalidate()``; otherwise entries are
reloaded after ``ttl_seconds``.

Items are held as plain dicts so cached values never become detached ORM
instances between requests.

Usage:
    from app.services.template_catalog import get_catalog

    catalog = get_catalog()
    if catalog.contains("1.1-identification"):
        ...
"""

import logging
import threading
import time

from flask import current_app
from sqlalchemy import select

from app.models import db
from app.models.template import CanonicalTemplateItem

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


class TemplateCatalog:
    """Cached, read-only view of the canonical template items."""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._items: dict[str, dict] | None = None
        self._loaded_at: float | None = None

    def init_app(self, app):
        """Attach to ``app``; TTL comes from TEMPLATE_CACHE_TTL_SECONDS when set."""
        self.ttl_seconds = int(app.config.get("TEMPLATE_CACHE_TTL_SECONDS", self.ttl_seconds))
        app.extensions["template_catalog"] = self

    # ── Cache state ──────────────────────────────────────────────────────

    def _is_fresh(self) -> bool:
        if self._items is None or self._loaded_at is None:
            return False
        return (self._clock() - self._loaded_at) < self.ttl_seconds

    def _load(self) -> dict[str, dict]:
        rows = db.session.execute(
            select(CanonicalTemplateItem).order_by(CanonicalTemplateItem.id)
        ).scalars().all()
        items = {row.id: row.to_dict() for row in rows}
        logger.debug("Template catalog loaded: %d items", len(items))
        return items

    def _snapshot(self) -> dict[str, dict]:
        with self._lock:
            if not self._is_fresh():
                self._items = self._load()
                self._loaded_at = self._clock()
            return self._items

    def invalidate(self):
        """Drop cached items; the next read reloads from the database."""
        with self._lock:
            self._items = None
            self._loaded_at = None

    # ── Reads ────────────────────────────────────────────────────────────

    def items(self) -> list[dict]:
        """All template items, ordered by id."""
        return list(self._snapshot().values())

    def get(self, item_id: str) -> dict | None:
        return self._snapshot().get(item_id)

    def contains(self, item_id: str) -> bool:
        return item_id in self._snapshot()


def get_catalog() -> TemplateCatalog:
    """Return the catalog owned by the current Flask app."""
    return current_app.extensions["template_catalog"]
