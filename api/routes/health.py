from typing import Annotated

from fastapi import APIRouter, Depends

from api.dependencies import get_service_factory
from application.services import ServiceFactory

router = APIRouter(tags=['health'])


@router.get('/health', summary='Rate engine health')
async def health_check(
	factory: Annotated[ServiceFactory, Depends(get_service_factory)],
) -> dict:
	return factory.get_health_status()
