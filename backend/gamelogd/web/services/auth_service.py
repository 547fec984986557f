"""
Authentication service - registration, login and token verification.

Users live in the key-value store:
- user:{id}            {id, email, username, createdAt, passwordHash}
- user_email:{email}   id
"""
import logging
import re
import uuid
from datetime import datetime
from typing import Callable, Optional

from gamelogd.config import Settings
from gamelogd.db.kv_store import KeyValueStore
from gamelogd.preferences.errors import AuthError, ConflictError, ValidationError
from gamelogd.preferences.models import UserPreferences, utcnow
from gamelogd.preferences.store import PreferenceStore
from gamelogd.web.schemas.auth import LoginRequest, RegisterRequest, UserResponse
from gamelogd.web.utils.jwt import create_access_token, decode_access_token
from gamelogd.web.utils.password import hash_password, verify_password

logger = logging.getLogger(__name__)

USER_PREFIX = "user:"
USER_EMAIL_PREFIX = "user_email:"

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
INVALID_CREDENTIALS = "Invalid email or password"


def validate_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def validate_password(password: str) -> Optional[str]:
    """Return the first rule the password breaks, or None if it is valid."""
    if len(password) < 8:
        return "Password must be at least 8 characters long"
    # bcrypt only hashes the first 72 bytes
    if len(password.encode("utf-8")) > 72:
        return "Password must be at most 72 bytes long"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[A-Z]", password):
        return "Password must contain at least one uppercase letter"
    if not re.search(r"\d", password):
        return "Password must contain at least one number"
    return None


class AuthService:
    """Service handling users and tokens."""

    def __init__(
        self,
        kv: KeyValueStore,
        preference_store: PreferenceStore,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow
    ):
        self.kv = kv
        self.preference_store = preference_store
        self.settings = settings
        self.clock = clock

    def register(self, register_data: RegisterRequest) -> tuple[UserResponse, str]:
        """
        Register a new user and start them with empty preferences.

        Returns:
            Tuple (user, access_token)

        Raises:
            ValidationError: invalid form
            ConflictError: email already registered
        """
        username = register_data.username.strip()
        email = register_data.email.strip().lower()
        password = register_data.password

        if not username or not email or not password or not register_data.confirm_password:
            raise ValidationError("All fields are required")
        if len(username) < 3:
            raise ValidationError("Username must be at least 3 characters long")
        if not validate_email(email):
            raise ValidationError("Invalid email format")
        password_error = validate_password(password)
        if password_error:
            raise ValidationError(password_error)
        if password != register_data.confirm_password:
            raise ValidationError("Passwords do not match")

        if self.kv.get(f"{USER_EMAIL_PREFIX}{email}") is not None:
            raise ConflictError("User with this email already exists")

        user = UserResponse(
            id=uuid.uuid4().hex[:12],
            email=email,
            username=username,
            created_at=self.clock()
        )
        record = user.model_dump(mode="json", by_alias=True)
        record["passwordHash"] = hash_password(password, rounds=self.settings.bcrypt_rounds)

        self.kv.set_json(f"{USER_PREFIX}{user.id}", record)
        self.kv.set(f"{USER_EMAIL_PREFIX}{email}", user.id)
        self.preference_store.save(user.id, UserPreferences())

        logger.info(f"Registered user {user.id} ({username})")
        return user, self.create_token(user.id)

    def login(self, login_data: LoginRequest) -> tuple[UserResponse, str]:
        """
        Raises:
            ValidationError: missing or malformed email/password
            AuthError: unknown email or wrong password
        """
        email = login_data.email.strip().lower()
        if not email or not login_data.password:
            raise ValidationError("Email and password are required")
        if not validate_email(email):
            raise ValidationError("Invalid email format")

        user_id = self.kv.get(f"{USER_EMAIL_PREFIX}{email}")
        record = self.kv.get_json(f"{USER_PREFIX}{user_id}") if user_id else None
        if not record or not verify_password(login_data.password, record.get("passwordHash", "")):
            raise AuthError(INVALID_CREDENTIALS)

        user = UserResponse.model_validate(record)
        logger.info(f"User {user.id} logged in")
        return user, self.create_token(user.id)

    def create_token(self, user_id: str) -> str:
        return create_access_token({"sub": user_id}, self.settings)

    def verify_token(self, token: str) -> str:
        """
        Returns:
            User id from a valid token

        Raises:
            AuthError: invalid or expired token
        """
        payload = decode_access_token(token, self.settings)
        user_id = payload.get("sub") if payload else None
        if not user_id:
            raise AuthError("Invalid token")
        return str(user_id)

    def find_user(self, user_id: str) -> Optional[UserResponse]:
        record = self.kv.get_json(f"{USER_PREFIX}{user_id}")
        if not record:
            return None
        return UserResponse.model_validate(record)
