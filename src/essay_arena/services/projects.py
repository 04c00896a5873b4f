"""Lookups against the externally managed project table."""

from __future__ import annotations

from sqlalchemy.orm import Session

from essay_arena.core.identity import normalize_project_code
from essay_arena.core.settings import Settings, settings as default_settings
from essay_arena.models import Project
from essay_arena.services.errors import ProjectDisabled, ProjectNotFound

__all__ = ["get_project", "require_enabled_project", "get_project_cooldown_seconds"]


def get_project(db: Session, code: str) -> Project | None:
    """Return a project by code, normalizing the code first."""
    return db.get(Project, normalize_project_code(code))


def require_enabled_project(db: Session, code: str) -> Project:
    """Return the project or raise if it is missing or switched off."""
    project = get_project(db, code)
    if project is None:
        raise ProjectNotFound()
    if not project.enabled:
        raise ProjectDisabled()
    return project


def get_project_cooldown_seconds(
    db: Session, code: str, config: Settings | None = None
) -> int:
    """Return the review cooldown configured for a project.

    Falls back to the deployment default when the project is unknown or has
    no explicit cooldown.
    """
    config = config or default_settings
    project = get_project(db, code)
    if project is None or project.review_cooldown_seconds is None:
        return config.default_review_cooldown_seconds
    return max(0, int(project.review_cooldown_seconds))
