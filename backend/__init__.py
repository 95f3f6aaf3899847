"""Lifecast server: task sync, status aggregation and a public feed."""

__version__ = "0.1.0"
