"""Declarative reconciliation of PocketBase collections."""

__version__ = "0.1.0"
