"""Trust ledger service for the EmuReady API."""

import json
import logging

from datetime import UTC
from datetime import datetime
from datetime import timedelta
from typing import Any
from uuid import UUID

from asyncpg import Connection
from redis.exceptions import RedisError

from emuready_api.config.settings import get_trust_settings
from emuready_api.config.trust import TrustSettings
from emuready_api.database.connection import get_db_transaction
from emuready_api.database.models.audit import AuditAction
from emuready_api.database.models.audit import AuditEntityType
from emuready_api.database.models.permission import PermissionKey
from emuready_api.database.models.trust import ADJUSTMENT_ACTIONS
from emuready_api.database.models.trust import VOTE_ACTIONS
from emuready_api.database.models.trust import TrustAction
from emuready_api.database.models.trust import TrustActionStats
from emuready_api.database.models.trust import TrustAdjustmentRequest
from emuready_api.database.models.trust import TrustLedgerEntry
from emuready_api.database.models.trust import TrustLedgerEntryCreate
from emuready_api.database.models.trust import TrustLevel
from emuready_api.database.models.trust import TrustProfile
from emuready_api.database.models.trust import get_action_weight
from emuready_api.database.models.trust import get_next_level
from emuready_api.database.models.trust import get_trust_level
from emuready_api.database.models.user import User
from emuready_api.database.repositories.trust_ledger import TrustLedgerRepository
from emuready_api.database.repositories.trust_ledger import (
    get_trust_ledger_repository,
)
from emuready_api.database.repositories.user import UserRepository
from emuready_api.database.repositories.user import get_user_repository
from emuready_api.services.audit_service import AuditService
from emuready_api.services.audit_service import get_audit_service
from emuready_api.services.errors import InternalError
from emuready_api.services.errors import InvalidTrustAdjustmentError
from emuready_api.services.errors import NotFoundError
from emuready_api.services.errors import store_errors_as_internal
from emuready_api.services.permission_service import PermissionService
from emuready_api.services.permission_service import get_permission_service
from emuready_api.workers.redis_connection import get_redis_client

logger = logging.getLogger(__name__)

_LEVEL_ORDER = tuple(TrustLevel)


def _level_rank(level: TrustLevel | str) -> int:
    return _LEVEL_ORDER.index(TrustLevel(level))


def _profile_generation_key(user_pk: UUID) -> str:
    return f"trust_profile_generation:{user_pk}"


def _profile_cache_key(user_pk: UUID, generation: int) -> str:
    return f"trust_profile:{user_pk}:{generation}"


def _fixed_weight(action: TrustAction) -> int:
    if action in ADJUSTMENT_ACTIONS:
        raise InvalidTrustAdjustmentError(
            f"{action.value} has no fixed weight; use a manual adjustment"
        )
    return get_action_weight(action)


def monthly_bonus_key(when: datetime) -> str:
    """Idempotency key of the monthly active bonus for ``when``'s month."""
    return f"monthly_active_bonus:{when:%Y-%m}"


class TrustService:
    """Appends to the trust ledger and derives scores and levels from it.

    The ledger is the only source of truth. Cached profiles are rebuilt from
    it and retired whenever a ledger write commits.
    """

    def __init__(
        self,
        ledger_repository: TrustLedgerRepository,
        user_repository: UserRepository,
        permission_service: PermissionService,
        audit_service: AuditService,
        settings: TrustSettings | None = None,
    ):
        self.ledger_repository = ledger_repository
        self.user_repository = user_repository
        self.permission_service = permission_service
        self.audit_service = audit_service
        self.settings = settings or get_trust_settings()

    async def _insert(
        self, entry: TrustLedgerEntryCreate, connection: Connection | None
    ) -> tuple[TrustLedgerEntry, bool]:
        """Insert an entry, returning it and whether it is new."""
        created = await self.ledger_repository.insert_entry(entry, connection)
        if created is not None:
            return created, True

        if entry.idempotency_key is not None:
            existing = await self.ledger_repository.get_by_idempotency_key(
                entry.user_pk, entry.idempotency_key, connection
            )
            if existing is not None:
                return existing, False

        raise InternalError("Failed to append trust ledger entry")

    async def log_action(
        self,
        user_pk: UUID,
        action: TrustAction,
        target_user_pk: UUID | None = None,
        metadata: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
        connection: Connection | None = None,
    ) -> TrustLedgerEntry:
        """Append one ledger row with the action's fixed weight.

        Pass the caller's ``connection`` so the row commits or rolls back
        with the event that caused it. A repeated ``idempotency_key`` for the
        same user returns the original row. Callers that pass a connection
        invalidate the profile cache themselves once they commit.
        """
        action = TrustAction(action)
        entry = TrustLedgerEntryCreate(
            user_pk=user_pk,
            action=action,
            weight=_fixed_weight(action),
            target_user_pk=target_user_pk,
            metadata=metadata or {},
            idempotency_key=idempotency_key,
        )

        ledger_entry, created = await self._insert(entry, connection)
        if created:
            logger.info(
                f"Trust action {action.value} ({entry.weight:+d}) logged for {user_pk}"
            )
        if connection is None:
            await self.invalidate_cache(user_pk)
        return ledger_entry

    async def reverse_action(
        self,
        user_pk: UUID,
        action: TrustAction,
        target_user_pk: UUID | None = None,
        metadata: dict[str, Any] | None = None,
        connection: Connection | None = None,
    ) -> TrustLedgerEntry:
        """Append a compensating row that cancels one earlier ``action``."""
        action = TrustAction(action)
        entry = TrustLedgerEntryCreate(
            user_pk=user_pk,
            action=action,
            weight=-_fixed_weight(action),
            target_user_pk=target_user_pk,
            metadata={**(metadata or {}), "reversal": True},
        )

        ledger_entry, _ = await self._insert(entry, connection)
        logger.info(f"Trust action {action.value} reversed for {user_pk}")
        if connection is None:
            await self.invalidate_cache(user_pk)
        return ledger_entry

    async def get_score(
        self, user_pk: UUID, connection: Connection | None = None
    ) -> int:
        """Current score: the sum of the user's ledger weights."""
        return await self.ledger_repository.get_score(user_pk, connection)

    @staticmethod
    def get_level(score: int) -> TrustLevel:
        return get_trust_level(score)

    async def get_profile(self, user_pk: UUID) -> TrustProfile:
        """Trust profile for a user, served from cache when possible.

        Profiles are cached under the user's current cache generation. A
        profile is stored under the generation read before it was built, so
        one built across an invalidation is never served.
        """
        generation = None
        cached_data = None
        try:
            redis_client = await get_redis_client()
            generation = int(
                await redis_client.get(_profile_generation_key(user_pk)) or 0
            )
            cached_data = await redis_client.get(
                _profile_cache_key(user_pk, generation)
            )
        except RedisError:
            logger.exception(f"Failed to read cached trust profile for {user_pk}")

        if cached_data:
            try:
                return TrustProfile.model_validate(json.loads(cached_data))
            except (json.JSONDecodeError, ValueError):
                logger.warning(f"Discarding unreadable trust profile cache for {user_pk}")

        profile = await self.build_profile(user_pk)
        if generation is None:
            return profile

        try:
            await redis_client.setex(
                _profile_cache_key(user_pk, generation),
                self.settings.profile_cache_ttl,
                json.dumps(profile.model_dump(mode="json")),
            )
        except RedisError:
            logger.exception(f"Failed to cache trust profile for {user_pk}")

        return profile

    async def build_profile(self, user_pk: UUID) -> TrustProfile:
        """Compute a trust profile straight from the ledger."""
        score = await self.ledger_repository.get_score(user_pk)
        entry_count = await self.ledger_repository.count_user_entries(user_pk)
        recent_entries = await self.ledger_repository.get_user_entries(
            user_pk, limit=self.settings.recent_entries_limit
        )

        next_level = get_next_level(score)
        return TrustProfile(
            user_pk=user_pk,
            score=score,
            level=get_trust_level(score),
            next_level=next_level[0] if next_level else None,
            points_to_next_level=next_level[1] - score if next_level else None,
            entry_count=entry_count,
            recent_entries=recent_entries,
        )

    async def invalidate_cache(self, *user_pks: UUID) -> None:
        """Retire cached profiles. Call after the ledger write has committed.

        Bumping the generation orphans every profile cached so far, including
        one still being built; orphans expire with the cache TTL.
        """
        if not user_pks:
            return
        try:
            redis_client = await get_redis_client()
            for user_pk in user_pks:
                await redis_client.incr(_profile_generation_key(user_pk))
        except RedisError:
            logger.exception(f"Failed to invalidate trust profile cache for {user_pks}")

    async def get_ledger(
        self, user_pk: UUID, limit: int = 50, offset: int = 0
    ) -> list[TrustLedgerEntry]:
        return await self.ledger_repository.get_user_entries(user_pk, limit, offset)

    async def get_action_stats(self, user_pk: UUID | None = None) -> TrustActionStats:
        return await self.ledger_repository.get_action_stats(user_pk)

    async def adjust_manually(
        self, actor: User, user_pk: UUID, request: TrustAdjustmentRequest
    ) -> TrustLedgerEntry:
        """Apply an administrator's adjustment to a user's score."""
        if request.adjustment == 0:
            raise InvalidTrustAdjustmentError("Adjustment cannot be zero")
        if actor.pk == user_pk:
            raise InvalidTrustAdjustmentError("You cannot adjust your own trust score")

        action = (
            TrustAction.ADMIN_ADJUSTMENT_POSITIVE
            if request.adjustment > 0
            else TrustAction.ADMIN_ADJUSTMENT_NEGATIVE
        )

        async with store_errors_as_internal("adjust trust score"):
            async with get_db_transaction() as connection:
                actor = await self.permission_service.load_actor(actor.pk, connection)
                await self.permission_service.require_permission(
                    actor, PermissionKey.MANAGE_TRUST_SYSTEM, connection
                )

                if not await self.user_repository.exists(user_pk, connection):
                    raise NotFoundError("User not found")

                score_before = await self.ledger_repository.get_score(
                    user_pk, connection
                )
                entry, _ = await self._insert(
                    TrustLedgerEntryCreate(
                        user_pk=user_pk,
                        action=action,
                        weight=request.adjustment,
                        target_user_pk=actor.pk,
                        metadata={"reason": request.reason, "adjusted_by": str(actor.pk)},
                    ),
                    connection,
                )

                await self.audit_service.record(
                    actor_pk=actor.pk,
                    action=AuditAction.TRUST_ADJUSTED,
                    entity_type=AuditEntityType.TRUST_LEDGER_ENTRY,
                    entity_pk=entry.pk,
                    target_user_pk=user_pk,
                    before={"score": score_before},
                    after={"score": score_before + request.adjustment},
                    context={"reason": request.reason},
                    connection=connection,
                )

        logger.info(
            f"Trust score of {user_pk} adjusted by {request.adjustment:+d} by {actor.pk}"
        )
        await self.invalidate_cache(user_pk)
        return entry

    async def check_action_rate(
        self, user_pk: UUID, action: TrustAction, now: datetime | None = None
    ) -> bool:
        """Whether the user may generate another ledger entry for ``action``."""
        now = now or datetime.now(UTC)

        daily_count = await self.ledger_repository.count_user_entries(
            user_pk, since=now - timedelta(days=1)
        )
        if daily_count >= self.settings.max_daily_actions:
            logger.warning(f"User {user_pk} hit the daily trust action limit")
            return False

        if TrustAction(action) in VOTE_ACTIONS:
            vote_count = await self.ledger_repository.count_user_entries(
                user_pk,
                since=now - timedelta(seconds=self.settings.vote_rate_window_seconds),
                actions=[vote.value for vote in VOTE_ACTIONS],
            )
            if vote_count >= self.settings.vote_rate_limit:
                logger.warning(f"User {user_pk} hit the vote rate limit")
                return False

        return True

    async def can_auto_approve(self, user_pk: UUID) -> bool:
        """Whether the user's submissions may skip manual approval."""
        score = await self.ledger_repository.get_score(user_pk)
        return _level_rank(get_trust_level(score)) >= _level_rank(
            self.settings.auto_approval_level
        )

    async def apply_monthly_active_bonus(self, now: datetime | None = None) -> int:
        """Credit every eligible user once for the current month.

        Returns how many users were credited by this run. Re-running within
        the same month credits nobody twice.
        """
        now = now or datetime.now(UTC)
        candidates = await self.user_repository.get_monthly_bonus_candidates(
            created_before=now - timedelta(days=self.settings.bonus_min_account_age_days),
            active_since=now - timedelta(days=self.settings.bonus_activity_window_days),
        )

        idempotency_key = monthly_bonus_key(now)
        credited = []
        for user_pk in candidates:
            _, created = await self._insert(
                TrustLedgerEntryCreate(
                    user_pk=user_pk,
                    action=TrustAction.MONTHLY_ACTIVE_BONUS,
                    weight=get_action_weight(TrustAction.MONTHLY_ACTIVE_BONUS),
                    metadata={"month": f"{now:%Y-%m}"},
                    idempotency_key=idempotency_key,
                ),
                None,
            )
            if created:
                credited.append(user_pk)

        await self.invalidate_cache(*credited)
        logger.info(
            f"Monthly active bonus {idempotency_key}: credited {len(credited)} "
            f"of {len(candidates)} eligible users"
        )
        return len(credited)


def get_trust_service() -> TrustService:
    """Get trust service instance."""
    return TrustService(
        ledger_repository=get_trust_ledger_repository(),
        user_repository=get_user_repository(),
        permission_service=get_permission_service(),
        audit_service=get_audit_service(),
    )
