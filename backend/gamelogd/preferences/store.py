"""
Preference Store
================

One JSON document per user under ``preferences:{user_id}``, always written
whole. Reads migrate legacy liked/disliked documents and persist the
migrated form.

When the primary store is down and a fallback store is configured, writes
land in the fallback and the result is flagged ``degraded`` so the caller
can warn the user. The pending copy is replayed into the primary store on
the next read that reaches it.

A read during an outage is served from the pending copy only. Without one
the current document is unknown, so the read fails instead of returning
empty preferences that a later replay would write over the real record.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from gamelogd.db.kv_store import KeyValueStore
from gamelogd.preferences.errors import StoreUnavailableError, UpstreamError
from gamelogd.preferences.migration import is_legacy_record, migrate_legacy_record
from gamelogd.preferences.models import UserPreferences, dump_model, utcnow

logger = logging.getLogger(__name__)

KEY_PREFIX = "preferences:"
FALLBACK_WARNING = (
    "Your changes were saved temporarily because storage is unavailable. "
    "They will be synced when storage recovers."
)


@dataclass
class Snapshot:
    """
    Preferences as read, plus what the primary store held.

    Attributes:
        preferences: Decoded (and possibly migrated) preferences
        raw: Text in the primary store after the read, None if absent
        degraded: True if read from the fallback store
    """
    preferences: UserPreferences
    raw: Optional[str] = None
    degraded: bool = False


@dataclass
class WriteResult:
    """Outcome of a write. ``warning`` is set whenever ``degraded`` is."""
    preferences: UserPreferences
    degraded: bool = False
    warning: Optional[str] = None


def encode_preferences(preferences: UserPreferences) -> str:
    return json.dumps(dump_model(preferences))


class PreferenceStore:
    """Read/write of the per-user preference document."""

    def __init__(
        self,
        primary: KeyValueStore,
        fallback: Optional[KeyValueStore] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.primary = primary
        self.fallback = fallback
        self.clock = clock

        logger.info(
            f"PreferenceStore initialized: primary={primary.name}, "
            f"fallback={fallback.name if fallback else None}"
        )

    @staticmethod
    def key_for(user_id: str) -> str:
        return f"{KEY_PREFIX}{user_id}"

    def load(self, user_id: str) -> UserPreferences:
        """Missing documents load as empty preferences, never as an error."""
        return self.snapshot(user_id).preferences

    def snapshot(self, user_id: str) -> Snapshot:
        key = self.key_for(user_id)
        pending = self.fallback.get(key) if self.fallback else None

        try:
            raw = self.primary.get(key)
        except StoreUnavailableError:
            if pending is None:
                logger.error(f"Primary store unavailable and no fallback copy for user {user_id}")
                raise
            logger.warning(f"Primary store unavailable, reading fallback copy for user {user_id}")
            preferences, _ = self._decode(user_id, pending, self.fallback)
            return Snapshot(preferences=preferences, raw=None, degraded=True)

        if pending is not None:
            raw = self._replay_pending(user_id, key, pending, raw)

        preferences, raw = self._decode(user_id, raw, self.primary)
        return Snapshot(preferences=preferences, raw=raw)

    def save(self, user_id: str, preferences: UserPreferences) -> WriteResult:
        """Overwrite the whole document. Last writer wins."""
        key = self.key_for(user_id)
        text = encode_preferences(preferences)

        try:
            self.primary.set(key, text)
        except StoreUnavailableError:
            return self._save_to_fallback(user_id, key, text, preferences)

        if self.fallback is not None:
            self.fallback.delete(key)
        return WriteResult(preferences=preferences)

    def save_if_unchanged(
        self,
        user_id: str,
        preferences: UserPreferences,
        snapshot: Snapshot
    ) -> Optional[WriteResult]:
        """
        Write only if the primary document still equals ``snapshot.raw``.

        Returns:
            WriteResult, or None if another writer changed the document
        """
        if snapshot.degraded:
            return self.save(user_id, preferences)

        key = self.key_for(user_id)
        text = encode_preferences(preferences)

        try:
            written = self.primary.compare_and_set(key, snapshot.raw, text)
        except StoreUnavailableError:
            return self._save_to_fallback(user_id, key, text, preferences)

        if not written:
            logger.debug(f"Compare-and-swap lost for user {user_id}")
            return None
        return WriteResult(preferences=preferences)

    def delete(self, user_id: str) -> None:
        key = self.key_for(user_id)
        self.primary.delete(key)
        if self.fallback is not None:
            self.fallback.delete(key)

    def _save_to_fallback(
        self,
        user_id: str,
        key: str,
        text: str,
        preferences: UserPreferences
    ) -> WriteResult:
        if self.fallback is None:
            raise StoreUnavailableError("Could not save your preferences. Please try again.")
        self.fallback.set(key, text)
        logger.warning(f"Primary store unavailable, preferences for user {user_id} saved to fallback store")
        return WriteResult(preferences=preferences, degraded=True, warning=FALLBACK_WARNING)

    def _replay_pending(self, user_id: str, key: str, pending: str, raw: Optional[str]) -> Optional[str]:
        try:
            self.primary.set(key, pending)
        except StoreUnavailableError:
            logger.warning(f"Could not replay pending preferences for user {user_id}, keeping fallback copy")
            return raw
        self.fallback.delete(key)
        logger.info(f"Replayed pending preferences for user {user_id} into primary store")
        return pending

    def _decode(
        self,
        user_id: str,
        raw: Optional[str],
        persist_to: KeyValueStore
    ) -> tuple[UserPreferences, Optional[str]]:
        if raw is None:
            return UserPreferences(), None

        try:
            record = json.loads(raw)
            if not isinstance(record, dict):
                raise ValueError(f"expected an object, got {type(record).__name__}")

            if not is_legacy_record(record):
                return UserPreferences.model_validate(record), raw

            preferences = migrate_legacy_record(record, self.clock())
        except (ValueError, PydanticValidationError) as e:
            logger.error(f"Unreadable preferences for user {user_id}: {e}", exc_info=True)
            raise UpstreamError("Your saved preferences could not be read.") from e

        text = encode_preferences(preferences)
        persist_to.set(self.key_for(user_id), text)
        logger.info(f"Persisted migrated preferences for user {user_id}")
        return preferences, text
