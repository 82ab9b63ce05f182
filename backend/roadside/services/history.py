from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from roadside.models import HistorySummary, ServiceHistory, ServiceHistoryCreate
from roadside.services.entity_store import EntityStore
from roadside.services.errors import DispatchConflictError, DispatchNotFoundError, DispatchValidationError


def summarize_history(entries: Iterable[ServiceHistory]) -> HistorySummary:
    rows = list(entries)
    total = sum((row.price for row in rows), Decimal("0.00"))
    ratings = [row.rating for row in rows if row.rating is not None]
    average: Optional[float] = sum(ratings) / len(ratings) if ratings else None
    return HistorySummary(count=len(rows), total_spent=total.quantize(Decimal("0.01")), average_rating=average)


def record_history(store: EntityStore, draft: ServiceHistoryCreate) -> ServiceHistory:
    if store.get_user(draft.user_id) is None:
        raise DispatchValidationError("User does not exist")
    if store.get_provider(draft.mechanic_id) is None:
        raise DispatchValidationError("Mechanic does not exist")
    return store.create_history(draft)


def add_review(store: EntityStore, history_id: int, rating: int, review: Optional[str] = None) -> ServiceHistory:
    """Attach a rating and review to a history entry. Only one review is accepted per entry."""

    def apply_review(entry: ServiceHistory) -> Dict[str, Any]:
        if entry.rating is not None or entry.review is not None:
            raise DispatchConflictError("Service history already reviewed")
        return {"rating": rating, "review": review}

    updated = store.modify_history(history_id, apply_review)
    if updated is None:
        raise DispatchNotFoundError("Service history not found")
    return updated
