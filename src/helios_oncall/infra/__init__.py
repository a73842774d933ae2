"""
Infrastructure layer - database, logging, settings, and error types.

Nothing in here knows about rotations or time windows; the scheduling
layer depends on it, never the other way round.
"""
