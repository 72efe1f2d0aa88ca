import logging
import uuid
from typing import Any, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from pricewatch.core.access import evaluate_access
from pricewatch.core.config import get_settings
from pricewatch.database import get_session
from pricewatch.models.user import User
from pricewatch.repositories.user_repo import UserRepository
from pricewatch.schemas.user import default_name_from_email, provisioning_role

settings = get_settings()
logger = logging.getLogger(__name__)

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support public (unauthenticated) access.
bearer_scheme = HTTPBearer(auto_error=False)

user_repo = UserRepository()


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from a Supabase JWT.

    Flow:
      1. If no Authorization header => public => return None.
      2. Decode JWT => extract 'sub' (auth user id), 'email', 'user_metadata'.
      3. Convert 'sub' to UUID to match User.id type.
      4. Find user profile in public.users.
      5. If missing, auto-provision a default profile.

    Provisioning keeps the self-service role picked at sign-up
    (user_metadata.role); otherwise the profile becomes a contributor.

    Raises:
        HTTPException(401): if token is malformed or missing required claims.
    """
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub/email",
        )

    # Supabase provides sub as a string; enforce UUID
    try:
        sub_uuid = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    user = user_repo.get_by_id(session, sub_uuid)

    if user is None:
        metadata = payload.get("user_metadata") or {}
        user = User(
            id=sub_uuid,
            email=email,
            name=(metadata.get("name") or "").strip() or default_name_from_email(email),
            role=provisioning_role(metadata.get("role")),
        )
        user = user_repo.create(session, user)
        logger.info("Provisioned profile %s with role %s", user.id, user.role)

    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication.

    Raises:
        HTTPException(401): if user is None.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def require_roles(*roles: str) -> Callable[..., User]:
    """
    Build a dependency that admits only the given roles.

    The access guard decides; a wrong role gets 403 whose detail carries
    the caller's own landing view so clients can redirect there.
    """
    allowed = frozenset(roles)

    def dependency(user: User = Depends(require_auth)) -> User:
        decision = evaluate_access(True, user, allowed)
        if not decision.allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "message": f"Requires role: {', '.join(sorted(allowed))}",
                    "redirect_to": decision.redirect_to,
                },
            )
        return user

    return dependency


require_admin = require_roles("admin")
require_auditor = require_roles("auditor")

# Anyone allowed to submit price observations
require_collector = require_roles("auditor", "contributor")
