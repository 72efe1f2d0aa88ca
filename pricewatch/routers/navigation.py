from fastapi import APIRouter, Depends

from pricewatch.core.access import resolve_view
from pricewatch.core.auth import get_current_user
from pricewatch.models.user import User
from pricewatch.schemas.navigation import NavigationDecision

router = APIRouter(prefix="/navigation", tags=["Navigation"])


@router.get("/resolve", response_model=NavigationDecision)
def resolve_navigation(
    path: str,
    current_user: User | None = Depends(get_current_user),
):
    """
    Run the access guard for `path` with the caller's session.

    Works without a token: anonymous callers are sent to /login for
    protected views.
    """
    decision = resolve_view(path, current_user is not None, current_user)
    return NavigationDecision(
        path=path,
        allowed=decision.allowed,
        redirect_to=decision.redirect_to,
        found=decision.found,
    )
