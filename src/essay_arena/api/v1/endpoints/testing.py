"""Seeding endpoints for end-to-end runs.

Every route answers 403 unless ``ENABLE_TEST_ROUTES`` is set.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import delete

from essay_arena.api.v1.dependencies import SessionDep, SettingsDep
from essay_arena.core.identity import normalize_project_code
from essay_arena.models import ATTACK_STATUS_PENDING, AttackOffer
from essay_arena.schemas.testing import ClearAttacksRequest, ResetTokensRequest
from essay_arena.services.player_state import PlayerStateStore

router = APIRouter(prefix="/test", tags=["testing"])


def _require_test_mode(settings: SettingsDep) -> None:
    if not settings.enable_test_routes:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Test routes disabled"
        )


@router.post("/reset-tokens")
async def reset_tokens(
    body: ResetTokensRequest, db: SessionDep, settings: SettingsDep
) -> dict[str, bool]:
    """Overwrite a player's balances and clear their review clock."""
    _require_test_mode(settings)
    store = PlayerStateStore(db, settings)
    store.set_tokens(
        normalize_project_code(body.project_code),
        body.user_name,
        review=body.review_tokens,
        attack=body.attack_tokens,
        shield=body.shield_tokens,
    )
    db.commit()
    return {"success": True}


@router.delete("/clear-attacks")
async def clear_attacks(
    body: ClearAttacksRequest, db: SessionDep, settings: SettingsDep
) -> dict[str, int]:
    """Delete every pending attack in a project."""
    _require_test_mode(settings)
    result = db.execute(
        delete(AttackOffer).where(
            AttackOffer.project_code == normalize_project_code(body.project_code),
            AttackOffer.status == ATTACK_STATUS_PENDING,
        )
    )
    db.commit()
    return {"deleted": result.rowcount or 0}


@router.get("/health")
async def test_health(settings: SettingsDep) -> dict[str, bool]:
    return {"testMode": settings.enable_test_routes}
