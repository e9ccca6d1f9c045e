"""Command line interface for Page Scout."""

from .main import app

__all__ = ['app']
