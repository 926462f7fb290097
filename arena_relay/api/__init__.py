"""
API Package for Arena Relay.
"""

from arena_relay.api.app import create_app

__all__ = ["create_app"]
