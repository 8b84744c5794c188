"""
HTTP API for the German Contract Analyzer.
"""

from .main import app

__all__ = ["app"]
