"""
Write Coordination Layer

RESPONSIBILITY: Mediate user-initiated mutations against the remote store
ALLOWED INPUTS: Drafts, item ids, rating submissions, current identity
OUTPUTS: Result (new id / None on success, explicit Error on failure)

WHAT THIS LAYER MUST NOT DO:
============================
- Mutate local collection state (writes come back through the subscription)
- Send invalid input to the network (validation and self-rating checks are
  local and happen before any write is issued)
- Retry failed writes
- Re-check ownership on delete (the store authorizes that)

CHECK ORDER (every operation):
==============================
1. Caller is authenticated            -> UNAUTHENTICATED
2. Input is valid                     -> VALIDATION_FAILED / SELF_RATING_FORBIDDEN / ITEM_NOT_FOUND
3. Store write                        -> REMOTE_WRITE_FAILED
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union
import asyncio
import time

from ..config import RatingScaleConfig, SyncConfig, WriteConfig
from ..contracts.base import Error, ErrorKind, Result
from ..contracts.events import AuditEventType
from ..contracts.items import (
    AgeRating, CatalogItem, Category, DraftState, ItemDraft, Language, MediaKind, User
)
from ..contracts.ports import IdentityProvider, RemoteCollectionStore
from ..observability import ObservabilityEngine, resolve_observability
from ..ratings import RatingEventCodec, validate_rating_value
from ..temporal.clock import LogicalClock, resolve_clock


ItemLookup = Callable[[str], Optional[CatalogItem]]


def _coerce_enum(enum_type, value: Any):
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        return None


class WriteCoordinator:
    """
    Validating front door for every mutation.

    Items are looked up through `item_lookup` (normally CollectionSync.find),
    so the self-rating check runs against the last synced snapshot.
    """

    LAYER = 'writes'

    def __init__(
        self,
        store: RemoteCollectionStore,
        identity: IdentityProvider,
        item_lookup: ItemLookup,
        sync_config: Optional[SyncConfig] = None,
        write_config: Optional[WriteConfig] = None,
        scale: Optional[RatingScaleConfig] = None,
        clock: Optional[LogicalClock] = None,
        observability: Optional[ObservabilityEngine] = None
    ):
        self._store = store
        self._identity = identity
        self._item_lookup = item_lookup
        self._sync_config = sync_config or SyncConfig()
        self._write_config = write_config or WriteConfig()
        self._scale = scale or RatingScaleConfig()
        self._clock = resolve_clock(clock)
        self._codec = RatingEventCodec(self._scale, self._clock)
        self._observability = resolve_observability(observability)

    @property
    def codec(self) -> RatingEventCodec:
        return self._codec

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_item(self, draft: Union[ItemDraft, DraftState]) -> Result:
        """
        Validate and write a new item. Success carries the store-assigned id.

        When handed a DraftState, it is reset only after the write succeeds.
        """
        operation = "create_item"
        draft_state = draft if isinstance(draft, DraftState) else None
        current = draft_state.draft if draft_state else draft

        user = self._identity.current_user
        if user is None:
            return self._reject(operation, Error.create(
                ErrorKind.UNAUTHENTICATED,
                "sign in to add an item"
            ))

        now = self._clock.now()
        validated = self.validate_draft(current, current_year=now.year)
        if validated.is_failure:
            return self._reject(operation, validated.error)

        record = self._to_record(validated.value, user, int(now.timestamp() * 1000))
        result = await self._execute(
            operation,
            lambda: self._store.push(self._sync_config.collection_path, record)
        )
        if result.is_failure:
            return result

        if draft_state is not None:
            draft_state.reset()
        return result

    def validate_draft(self, draft: ItemDraft, current_year: Optional[int] = None) -> Result:
        """
        Pure draft validation.

        Success carries a dict of coerced field values; failure names every
        invalid field in the error context.
        """
        current_year = current_year or self._clock.now().year
        invalid: List[Tuple[str, str]] = []

        title = draft.title.strip() if isinstance(draft.title, str) else ""
        if not title:
            invalid.append(("title", "must be a non-empty string"))

        coerced: Dict[str, Any] = {'title': title}
        for name, enum_type in (
            ('media_kind', MediaKind),
            ('category', Category),
            ('language', Language),
            ('age_rating', AgeRating),
        ):
            value = _coerce_enum(enum_type, getattr(draft, name))
            if value is None:
                invalid.append((name, f"unknown value {getattr(draft, name)!r}"))
            coerced[name] = value

        year_error = validate_rating_value(
            draft.release_year,
            self._write_config.earliest_release_year,
            current_year,
            field_name="release_year"
        )
        if year_error:
            invalid.append(("release_year", year_error.message))
        coerced['release_year'] = draft.release_year

        rating_error = validate_rating_value(
            draft.base_rating,
            self._scale.base_min,
            self._scale.base_max,
            field_name="base_rating"
        )
        if rating_error:
            invalid.append(("base_rating", rating_error.message))
        coerced['base_rating'] = draft.base_rating

        if invalid:
            error = Error.create(
                ErrorKind.VALIDATION_FAILED,
                "invalid fields: " + ", ".join(name for name, _ in invalid)
            )
            for name, reason in invalid:
                error = error.with_context(name, reason)
            return Result.failure(error)

        return Result.success(coerced)

    @staticmethod
    def _to_record(fields: Dict[str, Any], user: User, timestamp: int) -> Dict[str, Any]:
        """Wire shape of a new item."""
        return {
            'title': fields['title'],
            'contentType': fields['media_kind'].value,
            'year': int(fields['release_year']),
            'rating': int(fields['base_rating']),
            'category': fields['category'].value,
            'language': fields['language'].value,
            'ageRating': fields['age_rating'].value,
            'timestamp': timestamp,
            'userId': user.id,
            'username': user.display_name,
        }

    # =========================================================================
    # DELETE
    # =========================================================================

    async def delete_item(self, item_id: str, requester_id: Optional[str]) -> Result:
        """Remove an item. Ownership is enforced by the store, not here."""
        operation = "delete_item"

        if self._authenticated(requester_id) is None:
            return self._reject(operation, Error.create(
                ErrorKind.UNAUTHENTICATED,
                "sign in to delete",
                item_id=item_id
            ))

        if not item_id:
            return self._reject(operation, Error.create(
                ErrorKind.VALIDATION_FAILED,
                "item id is required"
            ))

        return await self._execute(
            operation,
            lambda: self._store.remove(self._item_path(item_id)),
            item_id=item_id
        )

    # =========================================================================
    # RATE
    # =========================================================================

    async def submit_rating(self, item_id: str, rater_id: Optional[str], value: object) -> Result:
        """
        Append a rating event keyed by its timestamp.

        Repeated submissions layer under the rater's id; only the newest one
        counts toward the aggregate.
        """
        operation = "submit_rating"

        if self._authenticated(rater_id) is None:
            return self._reject(operation, Error.create(
                ErrorKind.UNAUTHENTICATED,
                "sign in to rate",
                item_id=item_id
            ))

        item = self._item_lookup(item_id)
        if item is None:
            return self._reject(operation, Error.create(
                ErrorKind.ITEM_NOT_FOUND,
                "item is not in the synced collection",
                item_id=item_id
            ))

        submitted = self._codec.submit(item, rater_id, value)
        if submitted.is_failure:
            return self._reject(operation, submitted.error)

        event = submitted.value
        result = await self._execute(
            operation,
            lambda: self._store.append(
                f"{self._item_path(item_id)}/ratings/{rater_id}",
                {event.key: event.to_record()}
            ),
            item_id=item_id
        )
        if result.is_failure:
            return result
        return Result.success(event)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _item_path(self, item_id: str) -> str:
        return f"{self._sync_config.collection_path}/{item_id}"

    def _authenticated(self, user_id: Optional[str]) -> Optional[User]:
        """The current user, provided user_id names them."""
        user = self._identity.current_user
        if user is None or not user_id or user.id != user_id:
            return None
        return user

    def _reject(self, operation: str, error: Error) -> Result:
        self._observability.collect_metric(
            "writes_rejected_total", 1,
            {'operation': operation, 'error_kind': error.kind.name}
        )
        self._observability.log_audit(
            self.LAYER, f"{operation}_rejected",
            event_type=AuditEventType.ERROR,
            entity_id=error.context_value("item_id"),
            error_kind=error.kind.name,
            message=error.message
        )
        return Result.failure(error)

    async def _execute(
        self,
        operation: str,
        write: Callable[[], Awaitable[Any]],
        item_id: Optional[str] = None
    ) -> Result:
        """Run one store write under the configured timeout. Never retries."""
        start_time = time.perf_counter()
        self._observability.collect_metric("writes_total", 1, {'operation': operation})

        try:
            value = await asyncio.wait_for(write(), timeout=self._write_config.timeout_seconds)
        except Exception as e:
            context = {'error_type': type(e).__name__, 'operation': operation}
            if item_id:
                context['item_id'] = item_id
            return self._reject(operation, Error.create(
                ErrorKind.REMOTE_WRITE_FAILED,
                str(e) or type(e).__name__,
                **context
            ))
        finally:
            self._observability.collect_metric(
                "write_latency_ms",
                (time.perf_counter() - start_time) * 1000,
                {'operation': operation}
            )

        self._observability.log_audit(
            self.LAYER, operation,
            event_type=AuditEventType.WRITE,
            entity_id=item_id or (value if isinstance(value, str) else None)
        )
        return Result.success(value)
