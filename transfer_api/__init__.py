"""HTTP surface and command-line entry point for the transfer approval engine."""

from transfer_api.app import create_app

__all__ = ["create_app"]
