from fastapi import APIRouter, Depends, HTTPException, status

from roadside.models import RequestAssignment, RequestStatusUpdate, ServiceRequest, ServiceRequestCreate
from roadside.routers.errors import raise_dispatch_http_error
from roadside.services.core import DispatchCore, get_core
from roadside.services.errors import DispatchError

router = APIRouter(prefix="/service-requests", tags=["service-requests"])


@router.post("", response_model=ServiceRequest, status_code=status.HTTP_201_CREATED)
def submit_request(payload: ServiceRequestCreate, core: DispatchCore = Depends(get_core)):
    try:
        return core.engine.submit(payload)
    except DispatchError as exc:
        raise_dispatch_http_error(exc)


@router.get("/user/{user_id}", response_model=list[ServiceRequest])
def list_user_requests(user_id: int, core: DispatchCore = Depends(get_core)):
    return core.store.list_requests_by_user(user_id)


@router.get("/{request_id}", response_model=ServiceRequest)
def get_request(request_id: int, core: DispatchCore = Depends(get_core)):
    request = core.store.get_request(request_id)
    if not request:
        raise HTTPException(status_code=404, detail="Service request not found")
    return request


@router.patch("/{request_id}/status", response_model=ServiceRequest)
def update_request_status(
    request_id: int,
    payload: RequestStatusUpdate,
    core: DispatchCore = Depends(get_core),
):
    try:
        return core.lifecycle.transition(
            request_id,
            payload.status,
            mechanic_id=payload.mechanic_id,
            final_price=payload.final_price,
        )
    except DispatchError as exc:
        raise_dispatch_http_error(exc)


@router.post("/{request_id}/assign", response_model=ServiceRequest)
def assign_request(
    request_id: int,
    payload: RequestAssignment,
    core: DispatchCore = Depends(get_core),
):
    try:
        return core.engine.assign(request_id, payload.mechanic_id)
    except DispatchError as exc:
        raise_dispatch_http_error(exc)
