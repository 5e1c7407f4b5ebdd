"""Flask API module for the lead scoring service."""

from .app import create_app, parse_query

__all__ = ['create_app', 'parse_query']
