"""Student portal: accounts, course catalog and enrollment over a JSON API."""

from __future__ import annotations

from typing import Any

from .config import Settings, load_settings
from .storage import Storage


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the portal FastAPI application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Settings",
    "Storage",
    "create_app",
    "load_settings",
]
