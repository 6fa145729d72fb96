"""Process-wide state shared by every request handler."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .auth import SessionGate
from .catalog import CatalogService
from .config import Settings, load_settings
from .enrollment import EnrollmentService
from .identity import IdentityService
from .sessions import SessionManager
from .storage import Storage

logger = logging.getLogger("studentportal.application")


@dataclass(frozen=True)
class PortalState:
    """Everything a handler needs, built once at startup."""

    settings: Settings
    storage: Storage
    sessions: SessionManager
    gate: SessionGate
    catalog: CatalogService
    identity: IdentityService
    enrollment: EnrollmentService


def build_state(settings: Optional[Settings] = None, *, initialize: bool = True) -> PortalState:
    """Wire the services together and prepare the data directory.

    Raises :class:`~portal.errors.StorageError` when the stored collections
    cannot be read, so a corrupt data directory stops the service at startup.
    """

    resolved = settings or load_settings()
    storage = Storage(resolved.data_dir, seed_courses=resolved.seed_courses)
    if initialize:
        storage.initialize()
        logger.info("Using data directory %s", resolved.data_dir)

    sessions = SessionManager(ttl=resolved.session_ttl)
    return PortalState(
        settings=resolved,
        storage=storage,
        sessions=sessions,
        gate=SessionGate(storage, sessions),
        catalog=CatalogService(storage),
        identity=IdentityService(storage, sessions, remember_ttl=resolved.remember_ttl),
        enrollment=EnrollmentService(storage),
    )


__all__ = ["PortalState", "build_state"]
