"""
Startup diagnostics — runs once when the Flask app starts.

Checks the database and the template catalog, then logs a summary banner.
"""

import logging
import sys

from flask import Flask
from sqlalchemy.exc import SQLAlchemyError

from app.models import db

logger = logging.getLogger(__name__)


def run_startup_diagnostics(app: Flask):
    """Run diagnostic checks during app startup (inside app context)."""
    if app.config.get("TESTING"):
        return  # skip during tests for speed

    issues: list[str] = []

    with app.app_context():
        py = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"

        # ── Database connectivity ────────────────────────────────────
        db_status = "ok"
        db_uri = str(app.config.get("SQLALCHEMY_DATABASE_URI", ""))
        db_type = "PostgreSQL" if "postgresql" in db_uri else "SQLite" if "sqlite" in db_uri else "unknown"
        try:
            db.session.execute(db.text("SELECT 1"))
        except SQLAlchemyError as exc:
            db_status = "FAILED"
            issues.append(f"Database unreachable: {exc}")

        # ── Canonical templates ──────────────────────────────────────
        template_count = "?"
        if db_status == "ok":
            try:
                template_count = len(app.extensions["template_catalog"].items())
                if template_count == 0:
                    issues.append("No canonical template items — seeding will insert nothing")
            except SQLAlchemyError as exc:
                issues.append(f"Template catalog failed to load: {exc}")
            finally:
                db.session.rollback()

        banner = f"""
╔══════════════════════════════════════════════════════════════╗
║  Project Checklist — Startup Diagnostics                     ║
╠══════════════════════════════════════════════════════════════╣
║  Python      : {py:<46s}║
║  Debug       : {str(app.debug):<46s}║
║  Database    : {f'{db_type} ({db_status})':<46s}║
║  Templates   : {str(template_count):<46s}║
║  Cache TTL   : {str(app.config.get('TEMPLATE_CACHE_TTL_SECONDS')) + 's':<46s}║
╚══════════════════════════════════════════════════════════════╝"""
        logger.info(banner)

        if issues:
            logger.warning("Startup issues detected:")
            for issue in issues:
                logger.warning("  ⚠ %s", issue)
        else:
            logger.info("✅ All startup checks passed")
