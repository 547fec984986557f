"""
Admin service - database stats, user listing and account deletion.
"""
import logging
from typing import List

from gamelogd.db.kv_store import KeyValueStore
from gamelogd.preferences.store import KEY_PREFIX as PREFERENCES_PREFIX
from gamelogd.preferences.store import PreferenceStore
from gamelogd.web.schemas.admin import DatabaseStatsResponse
from gamelogd.web.schemas.auth import UserResponse
from gamelogd.web.services.auth_service import USER_EMAIL_PREFIX, USER_PREFIX
from gamelogd.web.services.note_service import NOTES_PREFIX, NoteService

logger = logging.getLogger(__name__)


class AdminService:

    def __init__(self, kv: KeyValueStore, preference_store: PreferenceStore, note_service: NoteService):
        self.kv = kv
        self.preference_store = preference_store
        self.note_service = note_service

    def get_stats(self) -> DatabaseStatsResponse:
        return DatabaseStatsResponse(
            total_users=len(self.kv.list_keys(USER_PREFIX)),
            total_preferences=len(self.kv.list_keys(PREFERENCES_PREFIX)),
            total_notes=len(self.kv.list_keys(NOTES_PREFIX))
        )

    def list_users(self) -> List[UserResponse]:
        users = []
        for key in self.kv.list_keys(USER_PREFIX):
            record = self.kv.get_json(key)
            if record:
                users.append(UserResponse.model_validate(record))
        return users

    def delete_user(self, user_id: str) -> bool:
        """
        Delete a user with their email mapping, preferences and notes.

        Returns:
            False if the user does not exist
        """
        record = self.kv.get_json(f"{USER_PREFIX}{user_id}")
        if not record:
            return False

        self.kv.delete(f"{USER_PREFIX}{user_id}")
        self.kv.delete(f"{USER_EMAIL_PREFIX}{record.get('email', '')}")
        self.preference_store.delete(user_id)
        deleted_notes = self.note_service.delete_notes_for_user(user_id)

        logger.info(f"Deleted user {user_id} ({deleted_notes} notes)")
        return True
