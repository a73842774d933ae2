"""
Helios365 on-call scheduling.

Generates on-call schedule slices from reusable plans and team bindings,
persists them, and answers "who is on call right now".
"""

__version__ = "0.1.0"
