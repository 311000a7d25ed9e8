"""Current user endpoint."""

from fastapi import APIRouter

from app.deps import CurrentUser
from app.schemas.preferences import MeResponse

router = APIRouter()


@router.get("", response_model=MeResponse)
async def get_me(user: CurrentUser) -> MeResponse:
    """Identity of the authenticated caller."""
    return MeResponse(id=user.id, email=user.email)
