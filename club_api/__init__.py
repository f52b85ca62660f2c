"""HTTP surface: the dues automation trigger and the workflow endpoints."""

from club_api.app import create_app

__all__ = ["create_app"]
