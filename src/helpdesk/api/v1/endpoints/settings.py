"""Public configuration endpoints consumed by the ticket forms."""

from fastapi import APIRouter

from helpdesk.models.ticket import CATEGORIES
from helpdesk.schemas.ticket import CategoryListResponse, CategorySetting

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/categories", response_model=CategoryListResponse)
def list_categories() -> CategoryListResponse:
    """Return the ticket categories the public forms may submit."""
    return CategoryListResponse(
        categories=[
            CategorySetting(id=index, name=name, active=True)
            for index, name in enumerate(CATEGORIES, start=1)
        ]
    )
