from fastapi import APIRouter, Depends, HTTPException, Query, status

from roadside.models import Provider, ProviderAvailabilityUpdate, ProviderCreate, ServiceRequest
from roadside.routers.errors import raise_dispatch_http_error
from roadside.services.core import DispatchCore, get_core
from roadside.services.errors import DispatchError
from roadside.services.matcher import DEFAULT_RADIUS_MILES

router = APIRouter(prefix="/mechanics", tags=["mechanics"])


@router.get("", response_model=list[Provider])
def list_mechanics(core: DispatchCore = Depends(get_core)):
    return core.store.list_providers()


@router.post("", response_model=Provider, status_code=status.HTTP_201_CREATED)
def create_mechanic(payload: ProviderCreate, core: DispatchCore = Depends(get_core)):
    try:
        return core.store.create_provider(payload)
    except DispatchError as exc:
        raise_dispatch_http_error(exc)


@router.get("/nearby", response_model=list[Provider])
def nearby_mechanics(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius: float = Query(default=DEFAULT_RADIUS_MILES, gt=0),
    core: DispatchCore = Depends(get_core),
):
    return core.matcher.find_nearby(latitude, longitude, radius)


@router.get("/{mechanic_id}", response_model=Provider)
def get_mechanic(mechanic_id: int, core: DispatchCore = Depends(get_core)):
    provider = core.store.get_provider(mechanic_id)
    if not provider:
        raise HTTPException(status_code=404, detail="Mechanic not found")
    return provider


@router.patch("/{mechanic_id}/availability", response_model=Provider)
def update_mechanic_availability(
    mechanic_id: int,
    payload: ProviderAvailabilityUpdate,
    core: DispatchCore = Depends(get_core),
):
    provider = core.store.update_provider(mechanic_id, availability=payload.availability)
    if not provider:
        raise HTTPException(status_code=404, detail="Mechanic not found")
    return provider


@router.get("/{mechanic_id}/requests", response_model=list[ServiceRequest])
def list_mechanic_requests(mechanic_id: int, core: DispatchCore = Depends(get_core)):
    if not core.store.get_provider(mechanic_id):
        raise HTTPException(status_code=404, detail="Mechanic not found")
    return core.store.list_requests_by_provider(mechanic_id)
