"""Attack coordination between players.

An offer starts ``pending`` and ends in exactly one terminal status:

* ``defended``  - the target spent a shield inside the window,
* ``succeeded`` - the target accepted, or the window elapsed undefended,
* ``expired``   - the offer was still pending after the grace margin.

Every terminal transition is a compare-and-swap on ``status = 'pending'`` so a
defence racing the expiry sweep produces a single winner.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from essay_arena.core.identity import normalize_user_name, pair_key
from essay_arena.core.settings import Settings, settings as default_settings
from essay_arena.db.time import utcnow
from essay_arena.models import (
    ATTACK_STATUS_DEFENDED,
    ATTACK_STATUS_EXPIRED,
    ATTACK_STATUS_PENDING,
    ATTACK_STATUS_SUCCEEDED,
    AttackOffer,
    PlayerState,
)
from essay_arena.realtime.notifier import NotificationDispatcher
from essay_arena.services.errors import (
    AttackAlreadyPending,
    InsufficientTokens,
    InvalidTarget,
    NoAttackTokens,
    NoShieldTokens,
    NothingToSteal,
    OfferExpired,
    OfferNotFound,
    OfferNotPending,
)
from essay_arena.services.player_state import PlayerStateStore

logger = logging.getLogger(__name__)

__all__ = ["AttackLaunch", "AttackOutcome", "AttackCoordinator", "announce_outcome"]


@dataclass
class AttackLaunch:
    """Result of a successful :meth:`AttackCoordinator.initiate`."""

    attack_id: int
    expires_at: datetime
    attacker_tokens: dict[str, int]
    delivered: bool = False


@dataclass
class AttackOutcome:
    """A terminal transition and the balances it left behind."""

    attack_id: int
    project_code: str
    status: str
    attacker_norm: str
    target_norm: str
    attacker_tokens: dict[str, int] = field(default_factory=dict)
    target_tokens: dict[str, int] = field(default_factory=dict)

    @property
    def attack_landed(self) -> bool:
        return self.status == ATTACK_STATUS_SUCCEEDED

    def attacker_message(self) -> dict[str, Any]:
        if self.status == ATTACK_STATUS_DEFENDED:
            message = "Target used their shield! Attack blocked."
        elif self.status == ATTACK_STATUS_EXPIRED:
            message = "Attack expired before it could be resolved."
        else:
            message = "Attack succeeded! You gained a review token."
        return {
            "attackId": self.attack_id,
            "status": self.status,
            "success": self.attack_landed,
            "defended": self.status == ATTACK_STATUS_DEFENDED,
            "message": message,
        }

    def target_message(self) -> dict[str, Any]:
        if self.status == ATTACK_STATUS_SUCCEEDED:
            message = "You did not defend in time and lost a review token."
        elif self.status == ATTACK_STATUS_DEFENDED:
            message = "Your shield blocked the attack."
        else:
            message = "The attack against you expired."
        return {
            "attackId": self.attack_id,
            "status": self.status,
            "success": self.attack_landed,
            "defended": self.status == ATTACK_STATUS_DEFENDED,
            "role": "target",
            "message": message,
        }


class AttackCoordinator:
    """Creates and resolves attack offers.

    Database work runs on the caller's session and is committed per
    operation; notifications go out only after the commit.
    """

    def __init__(
        self,
        db: Session,
        notifier: NotificationDispatcher | None = None,
        config: Settings | None = None,
    ) -> None:
        self.db = db
        self.notifier = notifier
        self.settings = config or default_settings
        self.store = PlayerStateStore(db, self.settings)

    @property
    def offer_window(self) -> timedelta:
        return timedelta(seconds=self.settings.attack_offer_window_seconds)

    @property
    def expiry_grace(self) -> timedelta:
        return timedelta(seconds=self.settings.attack_expiry_grace_seconds)

    # --- queries ------------------------------------------------------------------
    def _pending_for_pair(self, project_code: str, key: str) -> AttackOffer | None:
        stmt = (
            select(AttackOffer)
            .where(
                AttackOffer.project_code == project_code,
                AttackOffer.pair_key == key,
                AttackOffer.status == ATTACK_STATUS_PENDING,
            )
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalars().first()

    def get_offer(self, project_code: str, offer_id: int) -> AttackOffer | None:
        stmt = (
            select(AttackOffer)
            .where(AttackOffer.id == offer_id, AttackOffer.project_code == project_code)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def pending_pairs_for(self, project_code: str, user_name_norm: str) -> set[str]:
        """Return the pair keys of every pending offer involving a player."""
        stmt = select(AttackOffer.pair_key).where(
            AttackOffer.project_code == project_code,
            AttackOffer.status == ATTACK_STATUS_PENDING,
            (AttackOffer.attacker_name_norm == user_name_norm)
            | (AttackOffer.target_name_norm == user_name_norm),
        )
        return set(self.db.execute(stmt).scalars())

    # --- transitions --------------------------------------------------------------
    def _transition(
        self, offer_id: int, new_status: str, now: datetime, *, shield_used: bool = False
    ) -> bool:
        stmt = (
            update(AttackOffer)
            .where(AttackOffer.id == offer_id, AttackOffer.status == ATTACK_STATUS_PENDING)
            .values(status=new_status, responded_at=now, shield_used=shield_used)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def _apply_reward(self, offer: AttackOffer) -> tuple[PlayerState, PlayerState]:
        target = self.store.take_review_tokens(
            offer.project_code, offer.target_name, self.settings.attack_steal_review_tokens
        )
        attacker = self.store.credit_review_tokens(
            offer.project_code, offer.attacker_name, self.settings.attack_reward_review_tokens
        )
        return attacker, target

    def _outcome(
        self, offer: AttackOffer, status: str, attacker: PlayerState, target: PlayerState
    ) -> AttackOutcome:
        return AttackOutcome(
            attack_id=offer.id,
            project_code=offer.project_code,
            status=status,
            attacker_norm=offer.attacker_name_norm,
            target_norm=offer.target_name_norm,
            attacker_tokens=attacker.token_balances(),
            target_tokens=target.token_balances(),
        )

    def _settle_elapsed(self, offer: AttackOffer, now: datetime) -> AttackOutcome | None:
        """Resolve an offer whose window has passed; commit on success.

        Returns ``None`` when another writer already resolved it.
        """
        if now >= offer.expires_at_utc + self.expiry_grace:
            new_status = ATTACK_STATUS_EXPIRED
        else:
            new_status = ATTACK_STATUS_SUCCEEDED

        try:
            if not self._transition(offer.id, new_status, now):
                self.db.rollback()
                return None
            if new_status == ATTACK_STATUS_SUCCEEDED:
                attacker, target = self._apply_reward(offer)
            else:
                attacker = self.store.get_state(offer.project_code, offer.attacker_name)
                target = self.store.get_state(offer.project_code, offer.target_name)
            outcome = self._outcome(offer, new_status, attacker, target)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Attack %s auto-resolved as %s", outcome.attack_id, new_status)
        return outcome

    # --- operations ---------------------------------------------------------------
    async def initiate(
        self,
        project_code: str,
        attacker_name: str,
        target_name: str,
        now: datetime | None = None,
    ) -> AttackLaunch:
        """Open an offer from ``attacker_name`` against ``target_name``.

        Raises:
            InvalidTarget: self-attack or unknown target.
            AttackAlreadyPending: a pending offer exists for this pair.
            NothingToSteal: the target has no review tokens.
            NoAttackTokens: the attacker has no attack token.
        """
        now = now or utcnow()
        attacker_norm = normalize_user_name(attacker_name)
        target_norm = normalize_user_name(target_name)
        if not attacker_norm or not target_norm or attacker_norm == target_norm:
            raise InvalidTarget()
        key = pair_key(attacker_norm, target_norm)

        existing = self._pending_for_pair(project_code, key)
        if existing is not None and existing.expires_at_utc <= now:
            outcome = self._settle_elapsed(existing, now)
            if outcome is not None:
                await self._announce(outcome)
            existing = self._pending_for_pair(project_code, key)
        if existing is not None:
            raise AttackAlreadyPending()

        try:
            target_state = self.store.find(project_code, target_name)
            if target_state is None:
                raise InvalidTarget("Unknown target player")
            steal = self.settings.attack_steal_review_tokens
            if steal and target_state.review_tokens < 1:
                raise NothingToSteal()

            try:
                attacker_state = self.store.adjust_tokens(project_code, attacker_name, attack=-1)
            except InsufficientTokens as exc:
                raise NoAttackTokens() from exc

            offer = AttackOffer(
                project_code=project_code,
                attacker_name=attacker_name.strip(),
                attacker_name_norm=attacker_norm,
                target_name=target_state.user_name,
                target_name_norm=target_norm,
                pair_key=key,
                status=ATTACK_STATUS_PENDING,
                shield_used=False,
                created_at=now,
                expires_at=now + self.offer_window,
            )
            try:
                with self.db.begin_nested():
                    self.db.add(offer)
            except IntegrityError as exc:
                raise AttackAlreadyPending() from exc

            launch = AttackLaunch(
                attack_id=offer.id,
                expires_at=now + self.offer_window,
                attacker_tokens=attacker_state.token_balances(),
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Attack %s opened by %s against %s in %s",
            launch.attack_id,
            attacker_norm,
            target_norm,
            project_code,
        )
        if self.notifier is not None:
            window_ms = int(self.offer_window.total_seconds() * 1000)
            launch.delivered = await self.notifier.notify_attack(
                project_code, target_norm, launch.attack_id, window_ms
            )
            if not launch.delivered:
                logger.info("Target %s not connected, attack will auto-resolve", target_norm)
            await self.notifier.notify_token_update(
                project_code, attacker_norm, launch.attacker_tokens
            )
        return launch

    def _load_for_response(
        self, project_code: str, target_name: str, offer_id: int
    ) -> AttackOffer:
        offer = self.get_offer(project_code, offer_id)
        if offer is None or offer.target_name_norm != normalize_user_name(target_name):
            raise OfferNotFound()
        if not offer.is_pending:
            raise OfferNotPending()
        return offer

    async def _reject_expired(self, offer: AttackOffer, now: datetime) -> None:
        if now < offer.expires_at_utc:
            return
        outcome = self._settle_elapsed(offer, now)
        if outcome is not None:
            await self._announce(outcome)
        raise OfferExpired()

    async def defend(
        self,
        project_code: str,
        target_name: str,
        offer_id: int,
        now: datetime | None = None,
    ) -> AttackOutcome:
        """Spend a shield to block a pending offer.

        The attacker's attack token is not refunded.

        Raises:
            OfferNotFound, OfferNotPending, OfferExpired, NoShieldTokens.
        """
        now = now or utcnow()
        offer = self._load_for_response(project_code, target_name, offer_id)
        await self._reject_expired(offer, now)

        try:
            try:
                target = self.store.adjust_tokens(project_code, offer.target_name, shield=-1)
            except InsufficientTokens as exc:
                raise NoShieldTokens() from exc
            if not self._transition(offer.id, ATTACK_STATUS_DEFENDED, now, shield_used=True):
                raise OfferNotPending()
            attacker = self.store.get_state(project_code, offer.attacker_name)
            outcome = self._outcome(offer, ATTACK_STATUS_DEFENDED, attacker, target)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Attack %s defended by %s", outcome.attack_id, outcome.target_norm)
        await self._announce(outcome)
        return outcome

    async def accept(
        self,
        project_code: str,
        target_name: str,
        offer_id: int,
        now: datetime | None = None,
    ) -> AttackOutcome:
        """Let a pending offer land without spending a shield."""
        now = now or utcnow()
        offer = self._load_for_response(project_code, target_name, offer_id)
        await self._reject_expired(offer, now)

        try:
            if not self._transition(offer.id, ATTACK_STATUS_SUCCEEDED, now):
                raise OfferNotPending()
            attacker, target = self._apply_reward(offer)
            outcome = self._outcome(offer, ATTACK_STATUS_SUCCEEDED, attacker, target)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Attack %s accepted by %s", outcome.attack_id, outcome.target_norm)
        await self._announce(outcome)
        return outcome

    def settle_due(self, now: datetime) -> list[AttackOutcome]:
        """Settle every pending offer whose window has elapsed, without notifying.

        Blocking; the background resolver runs it in a worker thread. Offers
        already resolved by a concurrent defence are skipped.
        """
        stmt = (
            select(AttackOffer)
            .where(
                AttackOffer.status == ATTACK_STATUS_PENDING,
                AttackOffer.expires_at <= now,
            )
            .order_by(AttackOffer.expires_at)
        )
        due = list(self.db.execute(stmt).scalars())
        outcomes: list[AttackOutcome] = []
        for offer in due:
            outcome = self._settle_elapsed(offer, now)
            if outcome is None:
                continue
            outcomes.append(outcome)
        return outcomes

    async def resolve_expired(self, now: datetime | None = None) -> list[AttackOutcome]:
        """Settle elapsed offers, then notify both parties of each outcome."""
        outcomes = self.settle_due(now or utcnow())
        for outcome in outcomes:
            await self._announce(outcome)
        return outcomes

    async def _announce(self, outcome: AttackOutcome) -> None:
        if self.notifier is not None:
            await announce_outcome(self.notifier, outcome)


async def announce_outcome(notifier: NotificationDispatcher, outcome: AttackOutcome) -> None:
    """Push a terminal transition to the attacker and, unless blocked, the target."""
    project_code = outcome.project_code
    await notifier.notify_attack_result(
        project_code, outcome.attacker_norm, outcome.attacker_message()
    )
    if outcome.status != ATTACK_STATUS_DEFENDED:
        await notifier.notify_attack_result(
            project_code, outcome.target_norm, outcome.target_message()
        )
    await notifier.notify_token_update(project_code, outcome.attacker_norm, outcome.attacker_tokens)
    await notifier.notify_token_update(project_code, outcome.target_norm, outcome.target_tokens)
