"""
Note service - one free-text note per (user, game).

Stored under notes:{user_id}:{game_id}.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from gamelogd.db.kv_store import KeyValueStore
from gamelogd.preferences.errors import ForbiddenError, NotFoundError
from gamelogd.preferences.models import utcnow
from gamelogd.web.schemas.note import GameNote

logger = logging.getLogger(__name__)

NOTES_PREFIX = "notes:"


class NoteService:

    def __init__(self, kv: KeyValueStore, clock: Callable[[], datetime] = utcnow):
        self.kv = kv
        self.clock = clock

    @staticmethod
    def key_for(user_id: str, game_id: str) -> str:
        return f"{NOTES_PREFIX}{user_id}:{game_id}"

    def get_note(self, user_id: str, game_id: str) -> Optional[GameNote]:
        record = self.kv.get_json(self.key_for(user_id, game_id))
        return GameNote.model_validate(record) if record else None

    def create_note(self, user_id: str, game_id: str, text: str) -> GameNote:
        """Create (or overwrite) the user's note for a game."""
        now = self.clock()
        note = GameNote(
            id=f"{user_id}-{game_id}-{int(now.timestamp() * 1000)}",
            game_id=game_id,
            user_id=user_id,
            note=text,
            created_at=now,
            updated_at=now
        )
        self._save(note)
        logger.info(f"User {user_id} saved note {note.id}")
        return note

    def update_note(self, user_id: str, note_id: str, game_id: str, text: str) -> GameNote:
        """
        Raises:
            NotFoundError: no note for this game, or a different note id
            ForbiddenError: note belongs to another user
        """
        existing = self.get_note(user_id, game_id)
        if existing is None or existing.id != note_id:
            raise NotFoundError("Note not found")
        if existing.user_id != user_id:
            raise ForbiddenError("Unauthorized")

        updated = existing.model_copy(update={"note": text, "updated_at": self.clock()})
        self._save(updated)
        return updated

    def delete_notes_for_user(self, user_id: str) -> int:
        keys = self.kv.list_keys(f"{NOTES_PREFIX}{user_id}:")
        for key in keys:
            self.kv.delete(key)
        return len(keys)

    def _save(self, note: GameNote) -> None:
        self.kv.set_json(
            self.key_for(note.user_id, note.game_id),
            note.model_dump(mode="json", by_alias=True)
        )
