from fastapi import APIRouter, Depends, status

from roadside.models import HistorySummary, ServiceHistory, ServiceHistoryCreate, ServiceHistoryReview
from roadside.routers.errors import raise_dispatch_http_error
from roadside.services.core import DispatchCore, get_core
from roadside.services.errors import DispatchError
from roadside.services.history import add_review, record_history, summarize_history

router = APIRouter(prefix="/service-history", tags=["service-history"])


@router.get("/user/{user_id}", response_model=list[ServiceHistory])
def list_user_history(user_id: int, core: DispatchCore = Depends(get_core)):
    return core.store.list_history_by_user(user_id)


@router.get("/user/{user_id}/summary", response_model=HistorySummary)
def user_history_summary(user_id: int, core: DispatchCore = Depends(get_core)):
    return summarize_history(core.store.list_history_by_user(user_id))


@router.post("", response_model=ServiceHistory, status_code=status.HTTP_201_CREATED)
def create_history_entry(payload: ServiceHistoryCreate, core: DispatchCore = Depends(get_core)):
    try:
        return record_history(core.store, payload)
    except DispatchError as exc:
        raise_dispatch_http_error(exc)


@router.post("/{history_id}/review", response_model=ServiceHistory)
def review_history_entry(
    history_id: int,
    payload: ServiceHistoryReview,
    core: DispatchCore = Depends(get_core),
):
    try:
        return add_review(core.store, history_id, rating=payload.rating, review=payload.review)
    except DispatchError as exc:
        raise_dispatch_http_error(exc)
