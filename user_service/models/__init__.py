"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows about every table
before create_all() runs, and so other modules can import from
user_service.models directly.
"""

from user_service.models.user import UserModel  # noqa: F401
