# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from flask_sqlalchemy import SQLAlchemy
from contextlib import contextmanager

# Initialize SQLAlchemy
db = SQLAlchemy()

@contextmanager
def auto_commit(session=None):
    """Context manager for auto-committing database operations"""
    session = session if session is not None else db.session
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        raise e

def init_db(app):
    """Initialize database with Flask app"""
    db.init_app(app)

    with app.app_context():
        # Import models here to ensure they're registered
        from .models.profiles import Volunteer, Organization
        from .models.self_reported_hours import SelfReportedHours, ValidationRequest

        # Create all tables
        db.create_all()
