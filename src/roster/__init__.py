"""Roster — multi-tenant HTTP front door with certificate-policy management."""

__version__ = "0.1.0"
