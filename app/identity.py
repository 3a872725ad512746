"""
Identity provider backed by Firebase Authentication.

Account creation, password reset and verification links go through the
Firebase Admin SDK; email/password sign-in goes through the Identity Toolkit
REST API because the Admin SDK cannot check passwords. Local code can listen
for sign-in/sign-out through on_auth_state_changed.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import firebase_admin
import httpx
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from sqlalchemy.orm import Session

from .config import (
    FIREBASE_CREDENTIALS_PATH,
    FIREBASE_PROJECT_ID,
    FIREBASE_WEB_API_KEY,
    REQUEST_TIMEOUT_SECONDS,
)
from .database import commit
from .errors import AuthorizationError, StoreTimeoutError, ValidationError
from .models import User, UserRole

logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

LOGIN_ERRORS = {
    "EMAIL_NOT_FOUND": "Invalid email or password",
    "INVALID_PASSWORD": "Invalid email or password",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password",
    "USER_DISABLED": "This account has been disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many failed attempts. Please try again later.",
}


@dataclass
class UserHandle:
    uid: str
    email: str
    email_verified: bool = False
    display_name: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None


AuthListener = Callable[[str, Optional[UserHandle]], None]


def ensure_firebase_app():
    """Initialize Firebase Admin SDK (only once)"""
    try:
        return firebase_admin.get_app()
    except ValueError:
        if FIREBASE_CREDENTIALS_PATH:
            cred = credentials.Certificate(FIREBASE_CREDENTIALS_PATH)
            logger.info("Firebase Admin initialized with service account")
        else:
            cred = credentials.ApplicationDefault()
            logger.info("Firebase Admin initialized with default credentials")
        return firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})


class IdentityProvider:
    def __init__(self):
        self._listeners: list[AuthListener] = []

    # Auth state listeners

    def on_auth_state_changed(self, callback: AuthListener) -> Callable[[], None]:
        """Register a callback for sign-in/sign-out; returns the unsubscribe function"""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: str, handle: Optional[UserHandle]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, handle)
            except Exception as e:
                logger.error(f"❌ Auth listener failed on {event}: {e}")

    # Provider operations

    async def register(
        self, db: Session, email: str, password: str, full_name: Optional[str] = None
    ) -> UserHandle:
        """Create the Firebase account and its local profile, then send a verification link"""
        ensure_firebase_app()
        if len(password) < 6:
            raise ValidationError("Password must be at least 6 characters")

        try:
            record = firebase_auth.create_user(email=email, password=password, display_name=full_name)
        except firebase_auth.EmailAlreadyExistsError as e:
            raise ValidationError("An account with this email already exists") from e

        user = User(
            firebase_uid=record.uid,
            email=email,
            full_name=full_name,
            role=UserRole.CLIENT.value,
            email_verified=False,
            subscriptions=[],
        )
        db.add(user)
        commit(db)
        logger.info(f"🆕 Registered user {email} ({record.uid})")

        await self._send_verification_link(email, full_name or email)

        handle = UserHandle(uid=record.uid, email=email, display_name=full_name)
        self._emit("registered", handle)
        return handle

    async def login(self, email: str, password: str) -> UserHandle:
        if not FIREBASE_WEB_API_KEY:
            raise ValidationError("Password sign-in is not configured")

        try:
            async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    SIGN_IN_URL,
                    params={"key": FIREBASE_WEB_API_KEY},
                    json={"email": email, "password": password, "returnSecureToken": True},
                )
        except httpx.TimeoutException as e:
            raise StoreTimeoutError("Sign-in timed out") from e

        data = response.json()
        if response.status_code != 200:
            code = data.get("error", {}).get("message", "").split(" ")[0]
            logger.warning(f"⚠️ Sign-in failed for {email}: {code}")
            raise AuthorizationError(LOGIN_ERRORS.get(code, "Sign-in failed"))

        ensure_firebase_app()
        record = firebase_auth.get_user(data["localId"])
        handle = UserHandle(
            uid=record.uid,
            email=record.email,
            email_verified=record.email_verified,
            display_name=record.display_name,
            id_token=data.get("idToken"),
            refresh_token=data.get("refreshToken"),
        )
        self._emit("signed_in", handle)
        return handle

    def logout(self, uid: str) -> None:
        """Revoke refresh tokens so every session of the user ends"""
        ensure_firebase_app()
        firebase_auth.revoke_refresh_tokens(uid)
        logger.info(f"👋 Revoked sessions for {uid}")
        self._emit("signed_out", UserHandle(uid=uid, email=""))

    async def reset_password(self, email: str) -> None:
        """Email a reset link; unknown addresses are ignored to avoid account probing"""
        from .email_service import send_password_reset_email

        ensure_firebase_app()
        try:
            link = firebase_auth.generate_password_reset_link(email)
        except firebase_auth.UserNotFoundError:
            logger.info(f"ℹ️ Password reset requested for unknown email {email}")
            return
        await send_password_reset_email(email, link)

    async def resend_verification(self, user: User) -> None:
        if user.email_verified:
            raise ValidationError("Email address is already verified")
        await self._send_verification_link(user.email, user.display_name)

    def current_user(self, id_token: str) -> UserHandle:
        """
        Resolve an ID token into a handle carrying the verification status.

        Goes through the Admin SDK with check_revoked, so a session revoked in
        Firebase fails here at once. Per-request authentication in
        auth.verify_firebase_token checks signature and claims offline against
        Google's certs and does not see revocation; a revoked token keeps
        authenticating requests until it expires (one hour at most).

        Raises:
            AuthorizationError: If the token is invalid or revoked
        """
        ensure_firebase_app()
        try:
            claims = firebase_auth.verify_id_token(id_token, check_revoked=True)
        except (firebase_auth.InvalidIdTokenError, firebase_auth.RevokedIdTokenError) as e:
            raise AuthorizationError("Session is no longer valid") from e
        return UserHandle(
            uid=claims["uid"],
            email=claims.get("email", ""),
            email_verified=bool(claims.get("email_verified", False)),
            display_name=claims.get("name"),
        )

    async def _send_verification_link(self, email: str, name: str) -> None:
        from .email_service import send_email_verification_link

        try:
            link = firebase_auth.generate_email_verification_link(email)
            await send_email_verification_link(email, name, link)
        except Exception as e:
            # Account exists either way; the user can ask for another link
            logger.error(f"❌ Failed to send verification email to {email}: {e}")


identity_provider = IdentityProvider()


def get_identity_provider() -> IdentityProvider:
    return identity_provider
