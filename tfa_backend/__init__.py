"""
BACKEND PACKAGE

Flask app exposing the HOTP factor to a UI collaborator over JSON.
"""

from .app import create_app

__all__ = ['create_app']
