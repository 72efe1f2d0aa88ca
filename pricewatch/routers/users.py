import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from pricewatch.core.auth import require_auth, require_admin
from pricewatch.database import get_session
from pricewatch.models.user import User
from pricewatch.repositories.user_repo import UserRepository
from pricewatch.schemas.user import StoredRole, UserRead, UserUpdate, UserRoleUpdate
from pricewatch.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

repo = UserRepository()
service = UserService(repo)


# -------- Self profile --------


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.

    The profile row is auto-created on first request (auth dependency),
    with the role picked at sign-up or "contributor".

    Auth:
      - Requires valid Supabase JWT.
    """
    return service.get_me(current_user)


@router.patch("/me", response_model=UserRead)
def update_me(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Update the authenticated user's profile (partial update).

    Only `name` is editable.
    """
    return service.update_me(session, current_user, payload)


# -------- Admin endpoints --------


@router.get("", response_model=list[UserRead])
def list_users(
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
    skip: int = 0,
    limit: int = 50,
    role: StoredRole | None = None,
    search: str | None = None,
):
    """
    Users of the admin's company plus unaffiliated ones.

    - role: only users with this role
    - search: name or email contains (case-insensitive)
    """
    return service.list_users(session, admin, skip, limit, role=role, search=search)


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Get a specific user by id (admin only).
    """
    return service.get_user(session, admin, user_id)


@router.patch("/{user_id}/role", response_model=UserRead)
def change_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Update a user's role (admin only).

    Allowed roles: admin, auditor, contributor.
    Public visitors are anonymous and don't have rows. An unaffiliated
    user joins the admin's company.
    """
    return service.update_role(session, admin, user_id, payload)
