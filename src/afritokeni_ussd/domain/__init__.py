"""Domain layer: enums, exceptions, state machines and session models.

Nothing in this package imports FastAPI or SQLAlchemy.
"""
