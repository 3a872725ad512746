import base64
import json
import logging
import time

import httpx
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.x509 import load_pem_x509_certificate
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import FIREBASE_PROJECT_ID, REQUEST_TIMEOUT_SECONDS
from .database import get_db
from .models import User, UserRole

logger = logging.getLogger(__name__)

security = HTTPBearer()

GOOGLE_CERTS_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)

# Cache for Google's public keys
_cached_keys = None


def _b64decode(segment: str) -> bytes:
    padding_len = 4 - len(segment) % 4
    return base64.urlsafe_b64decode(segment + ("=" * padding_len if padding_len != 4 else ""))


async def get_google_public_keys(refresh: bool = False):
    """Fetch Google's public keys for Firebase token verification"""
    global _cached_keys
    if _cached_keys and not refresh:
        return _cached_keys

    try:
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as client:
            response = await client.get(GOOGLE_CERTS_URL)
            if response.status_code == 200:
                _cached_keys = response.json()
                logger.info(f"✅ Fetched {len(_cached_keys)} Google public keys")
                return _cached_keys
            logger.error(f"❌ Failed to fetch Google public keys: HTTP {response.status_code}")
    except httpx.TimeoutException:
        logger.error("❌ Timed out fetching Google public keys")
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching Google public keys: {str(e)}")
    return None


async def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token with full signature verification.
    Uses Google's public x509 certificates to check the RS256 signature, then
    validates audience, issuer and expiry claims.
    Revocation is not checked here; see IdentityProvider.current_user.
    """
    if not FIREBASE_PROJECT_ID:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Firebase not configured")

    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token format")
    header_b64, payload_b64, signature_b64 = parts

    try:
        header = json.loads(_b64decode(header_b64))
    except Exception as e:
        raise HTTPException(status_code=401, detail="Invalid token header") from e

    kid = header.get("kid")
    if header.get("alg") != "RS256" or not kid:
        raise HTTPException(status_code=401, detail="Invalid token algorithm")

    public_keys = await get_google_public_keys()
    if not public_keys or kid not in public_keys:
        # Keys rotate; refetch once before giving up
        public_keys = await get_google_public_keys(refresh=True)
        if not public_keys or kid not in public_keys:
            logger.error(f"❌ Key ID {kid} not found in public keys after retry")
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    cert = load_pem_x509_certificate(public_keys[kid].encode(), default_backend())
    try:
        cert.public_key().verify(
            _b64decode(signature_b64),
            f"{header_b64}.{payload_b64}".encode(),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except Exception as e:
        logger.error(f"❌ Token signature verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token signature") from e

    claims = json.loads(_b64decode(payload_b64))

    if claims.get("aud") != FIREBASE_PROJECT_ID:
        raise HTTPException(status_code=401, detail="Invalid token audience")
    if claims.get("iss") != f"https://securetoken.google.com/{FIREBASE_PROJECT_ID}":
        raise HTTPException(status_code=401, detail="Invalid token issuer")
    if claims.get("exp", 0) < time.time():
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        )
    if claims.get("iat", 0) > time.time() + 60:  # Allow 60 seconds clock skew
        raise HTTPException(status_code=401, detail="Invalid token")

    return claims


def resolve_user(db: Session, claims: dict) -> User:
    """Find or create the local user row for verified token claims"""
    firebase_uid = claims.get("sub") or claims.get("user_id") or claims.get("uid")
    if not firebase_uid:
        raise HTTPException(status_code=401, detail="Invalid token claims")

    email = claims.get("email") or ""
    email_verified = bool(claims.get("email_verified", False))

    user = db.query(User).filter(User.firebase_uid == firebase_uid).first()
    if user:
        if user.email_verified != email_verified:
            user.email_verified = email_verified
            db.commit()
        return user

    if email:
        existing_user = db.query(User).filter(User.email == email).first()
        if existing_user:
            # Same email signed in through another provider (e.g. Google after password)
            logger.info(f"🔄 Migrating user {email} to Firebase UID {firebase_uid}")
            existing_user.firebase_uid = firebase_uid
            existing_user.email_verified = email_verified
            db.commit()
            return existing_user

    logger.info(f"🆕 Creating new user: {email}")
    user = User(
        firebase_uid=firebase_uid,
        email=email,
        full_name=claims.get("name"),
        email_verified=email_verified,
        role=UserRole.CLIENT.value,
        subscriptions=[],
    )
    db.add(user)
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        if "unique" in str(e).lower() or "duplicate key" in str(e).lower():
            raise HTTPException(
                status_code=409,
                detail="This email is already registered. Please sign in with your existing account.",
            ) from e
        raise
    db.refresh(user)
    return user


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from Firebase token"""
    claims = await verify_firebase_token(credentials.credentials)
    user = resolve_user(db, claims)
    request.state.user_id = user.id
    return user


async def get_verified_user(user: User = Depends(get_current_user)) -> User:
    """Current user whose email address has been verified"""
    if not user.email_verified:
        raise HTTPException(
            status_code=403,
            detail="Please verify your email address to continue.",
            headers={"X-Email-Verification-Required": "true"},
        )
    return user


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    """Current user, required to hold the admin role"""
    if user.role != UserRole.ADMIN.value:
        logger.warning(f"⚠️ User {user.email} attempted an admin action")
        raise HTTPException(status_code=403, detail="Administrator access required")
    return user
