"""Diagnostic HTTP application for webcam-snapshot."""

from webcam_snapshot.web.app import create_app

__all__ = ["create_app"]
