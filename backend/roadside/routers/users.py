from fastapi import APIRouter, Depends, HTTPException, status

from roadside.models import User, UserCreate, UserLocationUpdate, UserUpdate
from roadside.routers.errors import raise_dispatch_http_error
from roadside.services.core import DispatchCore, get_core
from roadside.services.errors import DispatchError

router = APIRouter(prefix="/user", tags=["users"])


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, core: DispatchCore = Depends(get_core)):
    try:
        return core.store.create_user(payload)
    except DispatchError as exc:
        raise_dispatch_http_error(exc)


@router.get("/{user_id}", response_model=User)
def get_user(user_id: int, core: DispatchCore = Depends(get_core)):
    user = core.store.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/{user_id}", response_model=User)
def update_user(user_id: int, payload: UserUpdate, core: DispatchCore = Depends(get_core)):
    try:
        user = core.store.update_user(user_id, **payload.model_dump(exclude_unset=True))
    except DispatchError as exc:
        raise_dispatch_http_error(exc)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/{user_id}/location", response_model=User)
def update_user_location(user_id: int, payload: UserLocationUpdate, core: DispatchCore = Depends(get_core)):
    user = core.store.update_user_location(
        user_id,
        latitude=payload.latitude,
        longitude=payload.longitude,
        address=payload.address,
    )
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
