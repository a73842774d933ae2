"""
Domain layer - on-call definitions, schedule slices, and their table mappings.

models.py holds the immutable value types the scheduling engine works on;
entities.py holds the SQLAlchemy rows they are persisted as.
"""
