"""kbgov command-line interface."""

from kbgov.cli.app import app

__all__ = ["app"]
