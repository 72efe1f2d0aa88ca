from sqlmodel import SQLModel


class NavigationDecision(SQLModel):
    """
    Outcome of the access guard for a requested view.

    allowed=True means render `path`; otherwise follow `redirect_to`.
    """

    path: str
    allowed: bool
    redirect_to: str | None
    found: bool = True
