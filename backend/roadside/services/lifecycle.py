import logging
from decimal import Decimal
from typing import Any, Dict, Optional, get_args

from pydantic import ValidationError

from roadside.models import RequestStatus, ServiceHistory, ServiceHistoryCreate, ServiceRequest
from roadside.services.entity_store import EntityStore
from roadside.services.errors import DispatchConflictError, DispatchNotFoundError, DispatchValidationError

logger = logging.getLogger(__name__)

REQUEST_STATUSES = frozenset(get_args(RequestStatus))
TERMINAL_STATUSES = frozenset({"completed", "cancelled"})
ALLOWED_TRANSITIONS: Dict[str, set[str]] = {
    "pending": {"assigned", "cancelled"},
    "assigned": {"in_progress", "cancelled"},
    "in_progress": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}
ASSIGNED_STATUSES = frozenset({"assigned", "in_progress", "completed"})
CENT = Decimal("0.01")


def _check_price(price: Decimal) -> None:
    if not price.is_finite() or price < 0:
        raise DispatchValidationError("Final price must be a non-negative amount")
    if price != price.quantize(CENT):
        raise DispatchValidationError("Final price must have at most 2 decimal places")


class RequestLifecycle:
    """Drives service-request status changes.

    The default mode accepts any status change except completing a request
    twice. ``strict=True`` enforces ``ALLOWED_TRANSITIONS`` and refuses to
    leave a terminal state.
    """

    def __init__(self, store: EntityStore, *, strict: bool = False, derive_history: bool = True) -> None:
        self._store = store
        self.strict = strict
        self.derive_history = derive_history

    def _check_transition(self, current: ServiceRequest, new_status: str, mechanic_id: Optional[int]) -> None:
        if new_status == "completed" and (current.status == "completed" or current.completed_at is not None):
            raise DispatchConflictError("Service request is already completed")
        if not self.strict:
            return
        if current.status in TERMINAL_STATUSES:
            raise DispatchConflictError(f"Service request is already {current.status}")
        if new_status not in ALLOWED_TRANSITIONS[current.status]:
            raise DispatchValidationError(f"Invalid status transition: {current.status} -> {new_status}")
        if new_status in ASSIGNED_STATUSES and mechanic_id is None and current.mechanic_id is None:
            raise DispatchValidationError("A mechanic is required for this status")

    def transition(
        self,
        request_id: int,
        new_status: str,
        mechanic_id: Optional[int] = None,
        final_price: Optional[Decimal] = None,
    ) -> ServiceRequest:
        if new_status not in REQUEST_STATUSES:
            raise DispatchValidationError(f"Invalid status: {new_status}")
        if mechanic_id is not None:
            if new_status != "assigned":
                raise DispatchValidationError("A mechanic can only be set when assigning a request")
            if self._store.get_provider(mechanic_id) is None:
                raise DispatchNotFoundError("Mechanic not found")
        if final_price is not None:
            if new_status != "completed":
                raise DispatchValidationError("A final price can only be set when completing a request")
            _check_price(final_price)
        previous: Dict[str, str] = {}

        def apply(current: ServiceRequest) -> Dict[str, Any]:
            self._check_transition(current, new_status, mechanic_id)
            previous["status"] = current.status
            changes: Dict[str, Any] = {"status": new_status}
            if new_status == "assigned" and mechanic_id is not None:
                changes["mechanic_id"] = mechanic_id
            if new_status == "completed":
                changes["completed_at"] = self._store.clock()
                if final_price is not None:
                    changes["final_price"] = final_price
            return changes

        updated = self._store.modify_request(request_id, apply)
        if updated is None:
            raise DispatchNotFoundError("Service request not found")
        logger.info("Request %s moved %s -> %s", updated.id, previous["status"], updated.status)

        if new_status == "completed" and self.derive_history:
            self._derive_history(updated)
        return updated

    def _derive_history(self, request: ServiceRequest) -> Optional[ServiceHistory]:
        price = request.final_price if request.final_price is not None else request.estimated_price
        if request.mechanic_id is None or price is None or request.completed_at is None:
            return None
        try:
            draft = ServiceHistoryCreate(
                user_id=request.user_id,
                mechanic_id=request.mechanic_id,
                service_type=request.service_type,
                description=request.description,
                price=price,
                completed_at=request.completed_at,
            )
        except ValidationError as exc:
            raise DispatchValidationError(f"Invalid history data: {exc.errors()[0]['msg']}") from exc
        entry = self._store.create_history(draft)
        logger.info("History %s recorded for completed request %s", entry.id, request.id)
        return entry
