"""Create the schema and optionally seed a project for local runs."""

import argparse

from sqlalchemy.orm import Session

from essay_arena.core.identity import normalize_project_code
from essay_arena.db.session import SessionLocal, create_tables
from essay_arena.models import Project


def seed_project(
    db: Session, code: str, title: str = "", review_cooldown_seconds: int | None = None
) -> Project:
    """Insert or update a project row; project administration lives elsewhere."""
    project_code = normalize_project_code(code)
    project = db.get(Project, project_code)
    if project is None:
        project = Project(code=project_code, title=title, enabled=True)
        db.add(project)
    elif title:
        project.title = title
    project.review_cooldown_seconds = review_cooldown_seconds
    db.commit()
    return project


def init_db(project_code: str | None = None, cooldown: int | None = None) -> None:
    """Initialize the database by creating all tables."""
    create_tables()
    if project_code:
        with SessionLocal() as db:
            seed_project(db, project_code, review_cooldown_seconds=cooldown)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--project", help="project code to create or update")
    parser.add_argument("--cooldown", type=int, help="review cooldown in seconds")
    args = parser.parse_args()
    init_db(args.project, args.cooldown)
    print("Database initialized.")
