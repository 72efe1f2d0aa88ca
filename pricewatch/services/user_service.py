import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from pricewatch.models.user import User
from pricewatch.repositories.user_repo import UserRepository
from pricewatch.schemas.user import UserUpdate, UserRoleUpdate

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - self-service profile edits (name only)
      - admin user management within the admin's company
      - role changes (the only way to become admin)

    Visibility:
      An admin sees the members of their company plus unaffiliated
      users (freshly registered collectors). Giving an unaffiliated user
      a role brings them into the admin's company.
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    # ----- Self profile -----

    def get_me(self, current_user: User) -> User:
        return current_user

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        """
        Partial update for profile edits.
        Role and company are managed by admins.
        """
        if payload.name is not None:
            current_user.name = payload.name

        return self.repo.update(session, current_user)

    # ----- Admin operations -----

    def list_users(
        self,
        session: Session,
        admin: User,
        skip: int,
        limit: int,
        role: str | None = None,
        search: str | None = None,
    ) -> list[User]:
        return self.repo.list(
            session,
            skip=skip,
            limit=limit,
            role=role,
            search=search,
            company_id=admin.company_id,
        )

    def get_user(self, session: Session, admin: User, user_id: uuid.UUID) -> User:
        """
        Get a user visible to `admin`.

        Raises:
            HTTPException(404): if missing or in another company.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user or user.company_id not in (None, admin.company_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        return user

    def update_role(
        self,
        session: Session,
        admin: User,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Change a user's role.

        Admins cannot demote themselves, so a company never loses its
        last admin by accident.
        """
        user = self.get_user(session, admin, user_id)
        if user.id == admin.id and payload.role != "admin":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Admins cannot change their own role",
            )

        if user.company_id is None:
            user.company_id = admin.company_id
        user.role = payload.role
        user = self.repo.update(session, user)
        logger.info("User %s is now %s (changed by %s)", user.id, user.role, admin.id)
        return user
