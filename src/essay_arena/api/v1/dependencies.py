"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection

from essay_arena.core.settings import Settings, settings
from essay_arena.db.session import get_db
from essay_arena.realtime.notifier import NotificationDispatcher
from essay_arena.realtime.registry import SessionRegistry
from essay_arena.services.errors import GameError

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_settings() -> Settings:
    """Return the active settings; overridden in tests."""
    return settings


def get_registry(connection: HTTPConnection) -> SessionRegistry:
    """Return the process-wide session registry created at startup."""
    return connection.app.state.registry


def get_notifier(connection: HTTPConnection) -> NotificationDispatcher:
    """Return the dispatcher bound to the process-wide registry."""
    return connection.app.state.notifier


SettingsDep = Annotated[Settings, Depends(get_settings)]
RegistryDep = Annotated[SessionRegistry, Depends(get_registry)]
NotifierDep = Annotated[NotificationDispatcher, Depends(get_notifier)]


def http_error(exc: GameError) -> HTTPException:
    """Translate a domain rejection into the matching HTTP error."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)
