from fastapi import APIRouter

from shiprepair_erp.api.deps import DbSession, CurrentPrincipal
from shiprepair_erp.schemas.service_item import EngineerListResponse, EngineerResponse
from shiprepair_erp.services import service_items

router = APIRouter()


@router.get("/engineers", response_model=EngineerListResponse)
async def list_engineers(db: DbSession, principal: CurrentPrincipal):
    """ENGINEER users available for service item assignment, by name."""
    engineers = await service_items.list_engineers(db)
    return EngineerListResponse(engineers=[EngineerResponse.model_validate(user) for user in engineers])
