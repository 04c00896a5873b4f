"""Game endpoints: player state, review gate, presence and attacks."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from essay_arena.api.v1.dependencies import (
    NotifierDep,
    SessionDep,
    SettingsDep,
    http_error,
)
from essay_arena.core.identity import normalize_user_name
from essay_arena.db.time import utcnow
from essay_arena.models import PlayerState
from essay_arena.schemas.game import (
    ActivePlayerResponse,
    AttackRequest,
    AttackResponse,
    DefendRequest,
    DefendResponse,
    HeartbeatRequest,
    PlayerRequest,
    PlayerStateResponse,
    ReviewGateResponse,
    TokenBalances,
)
from essay_arena.services.attacks import AttackCoordinator
from essay_arena.services.cooldown import CooldownGate, CooldownStatus
from essay_arena.services.errors import GameError
from essay_arena.services.presence import list_active_players, touch_session
from essay_arena.services.projects import require_enabled_project

router = APIRouter(prefix="/game", tags=["game"])

UserNameQuery = Annotated[str, Query(alias="userName", min_length=1, max_length=100)]


def _require_project(db: SessionDep, code: str) -> str:
    try:
        return require_enabled_project(db, code).code
    except GameError as exc:
        raise http_error(exc) from exc


def _state_response(state: PlayerState, gate: CooldownStatus) -> PlayerStateResponse:
    return PlayerStateResponse(
        review_tokens=state.review_tokens,
        attack_tokens=state.attack_tokens,
        shield_tokens=state.shield_tokens,
        cooldown_remaining=gate.remaining_ms,
    )


def _load_player(
    db: SessionDep, settings: SettingsDep, code: str, user_name: str
) -> PlayerStateResponse:
    project_code = _require_project(db, code)
    if not normalize_user_name(user_name):
        raise http_error(GameError("userName is required"))
    now = utcnow()
    gate = CooldownGate(db, settings)
    state = gate.store.get_state(project_code, user_name)
    response = _state_response(state, gate.status_for(state, now))
    db.commit()
    return response


@router.post("/projects/{code}/player/init", response_model=PlayerStateResponse)
async def init_player(
    code: str, body: PlayerRequest, db: SessionDep, settings: SettingsDep
) -> PlayerStateResponse:
    """Create the player's state on first visit and return it."""
    return _load_player(db, settings, code, body.user_name)


@router.get("/projects/{code}/player", response_model=PlayerStateResponse)
async def get_player(
    code: str, user_name: UserNameQuery, db: SessionDep, settings: SettingsDep
) -> PlayerStateResponse:
    """Return balances and remaining cooldown for a player."""
    return _load_player(db, settings, code, user_name)


@router.get("/projects/{code}/review-gate", response_model=ReviewGateResponse)
async def get_review_gate(
    code: str, user_name: UserNameQuery, db: SessionDep, settings: SettingsDep
) -> ReviewGateResponse:
    """Report whether the player may submit a review right now."""
    project_code = _require_project(db, code)
    gate = CooldownGate(db, settings).can_review(project_code, user_name, utcnow())
    db.commit()
    return ReviewGateResponse(allowed=gate.allowed, remaining_ms=gate.remaining_ms)


@router.post("/projects/{code}/reviews", response_model=PlayerStateResponse)
async def record_review(
    code: str,
    body: PlayerRequest,
    db: SessionDep,
    settings: SettingsDep,
    notifier: NotifierDep,
) -> PlayerStateResponse:
    """Record an accepted review attempt against the cooldown and token budget.

    Invoking the review agents is the caller's job; this only commits the
    economy side of the submission.
    """
    project_code = _require_project(db, code)
    now = utcnow()
    gate = CooldownGate(db, settings)
    try:
        state = gate.record_review(project_code, body.user_name, now)
    except GameError as exc:
        raise http_error(exc) from exc

    response = _state_response(state, gate.status_for(state, now))
    await notifier.notify_token_update(
        project_code, state.user_name_norm, state.token_balances()
    )
    return response


@router.post("/projects/{code}/heartbeat")
async def heartbeat(code: str, body: HeartbeatRequest, db: SessionDep) -> dict[str, bool]:
    """Mark the player as present."""
    project_code = _require_project(db, code)
    if not normalize_user_name(body.user_name):
        raise http_error(GameError("userName is required"))
    touch_session(db, project_code, body.user_name, body.session_id, utcnow())
    return {"success": True}


@router.get("/projects/{code}/active-players", response_model=list[ActivePlayerResponse])
async def get_active_players(
    code: str, user_name: UserNameQuery, db: SessionDep, settings: SettingsDep
) -> list[ActivePlayerResponse]:
    """List recently active players the caller could attack."""
    project_code = _require_project(db, code)
    players = list_active_players(db, project_code, user_name, utcnow(), settings)
    return [
        ActivePlayerResponse(
            user_name=player.user_name,
            review_tokens=player.review_tokens,
            shield_tokens=player.shield_tokens,
            can_attack=player.can_attack,
        )
        for player in players
    ]


@router.post("/projects/{code}/attack", response_model=AttackResponse)
async def initiate_attack(
    code: str,
    body: AttackRequest,
    db: SessionDep,
    settings: SettingsDep,
    notifier: NotifierDep,
) -> AttackResponse:
    """Open a time-boxed attack against another player."""
    project_code = _require_project(db, code)
    coordinator = AttackCoordinator(db, notifier, settings)
    try:
        launch = await coordinator.initiate(project_code, body.attacker_name, body.target_name)
    except GameError as exc:
        raise http_error(exc) from exc

    return AttackResponse(
        attack_id=launch.attack_id,
        expires_in_ms=settings.attack_offer_window_seconds * 1000,
        delivered=launch.delivered,
        message="Attack initiated, waiting for target response...",
        tokens=TokenBalances.model_validate(launch.attacker_tokens),
    )


@router.post("/projects/{code}/defend", response_model=DefendResponse)
async def respond_to_attack(
    code: str,
    body: DefendRequest,
    db: SessionDep,
    settings: SettingsDep,
    notifier: NotifierDep,
) -> DefendResponse:
    """Block a pending attack with a shield, or let it land."""
    project_code = _require_project(db, code)
    coordinator = AttackCoordinator(db, notifier, settings)
    try:
        if body.use_shield:
            outcome = await coordinator.defend(project_code, body.user_name, body.attack_id)
        else:
            outcome = await coordinator.accept(project_code, body.user_name, body.attack_id)
    except GameError as exc:
        raise http_error(exc) from exc

    return DefendResponse(
        defended=body.use_shield,
        status=outcome.status,
        tokens=TokenBalances.model_validate(outcome.target_tokens),
    )
