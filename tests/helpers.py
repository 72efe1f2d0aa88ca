import os
import time

from jose import jwt

from pricewatch.models.user import User


def make_token(sub, email: str, metadata: dict | None = None, expires_in: int = 3600) -> str:
    """Sign a token shaped like a Supabase access token."""
    payload = {
        "sub": str(sub),
        "email": email,
        "exp": int(time.time()) + expires_in,
        "aud": "authenticated",
        "user_metadata": metadata or {},
    }
    return jwt.encode(payload, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def auth_headers(user: User) -> dict[str, str]:
    return bearer(make_token(user.id, user.email))
