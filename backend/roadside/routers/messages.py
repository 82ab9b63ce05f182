from fastapi import APIRouter, Depends, status

from roadside.models import Message, MessageCreate
from roadside.routers.errors import raise_dispatch_http_error
from roadside.services.core import DispatchCore, get_core
from roadside.services.errors import DispatchError
from roadside.services.messages import list_request_messages, post_message

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/request/{request_id}", response_model=list[Message])
def list_messages(request_id: int, core: DispatchCore = Depends(get_core)):
    try:
        return list_request_messages(core.store, request_id)
    except DispatchError as exc:
        raise_dispatch_http_error(exc)


@router.post("", response_model=Message, status_code=status.HTTP_201_CREATED)
def create_message(payload: MessageCreate, core: DispatchCore = Depends(get_core)):
    try:
        return post_message(core.store, payload)
    except DispatchError as exc:
        raise_dispatch_http_error(exc)
