# utils/__init__.py
"""Utility helpers for the activity generation pipeline."""

from .logging import setup_logging

__all__ = ["setup_logging"]
