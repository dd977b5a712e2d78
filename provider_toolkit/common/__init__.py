"""Shared helpers used by every resource module."""
