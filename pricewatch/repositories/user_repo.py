import uuid

from sqlmodel import Session, col, or_, select

from pricewatch.models.user import User


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    # ----- Basic CRUD -----

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Return a User by unique email, or None if not found."""
        stmt = select(User).where(User.email == email)
        return session.exec(stmt).first()

    def list_by_ids(self, session: Session, user_ids: set[uuid.UUID]) -> list[User]:
        if not user_ids:
            return []
        stmt = select(User).where(col(User.id).in_(user_ids))
        return list(session.exec(stmt).all())

    def list(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        role: str | None = None,
        search: str | None = None,
        company_id: uuid.UUID | None = None,
    ) -> list[User]:
        """
        Paginated user listing.

        Args:
            role: only users with this role
            search: case-insensitive match on name or email
            company_id: users of this company plus unaffiliated ones;
                None leaves only the unaffiliated ones
        """
        stmt = select(User).where(
            or_(User.company_id == company_id, col(User.company_id).is_(None))
        )
        if role:
            stmt = stmt.where(User.role == role)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    col(User.name).ilike(pattern),
                    col(User.email).ilike(pattern),
                )
            )
        stmt = stmt.order_by(User.name).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def create(self, session: Session, user: User) -> User:
        """Insert a new User and return the persisted row."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def update(self, session: Session, user: User) -> User:
        """Persist changes to an existing User."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
