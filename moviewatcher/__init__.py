"""Installable entry point for the Movie Watcher service.

``python -m moviewatcher`` (or the ``movie-watcher`` script) serves
``app.main:app`` with uvicorn using the configured host and port.
"""

from __future__ import annotations

__version__ = "1.0.0"
