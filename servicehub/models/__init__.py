"""
ServiceHub data models.

All models share the single Flask-SQLAlchemy instance defined here:

    from servicehub.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
