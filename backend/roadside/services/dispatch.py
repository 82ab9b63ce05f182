import logging
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, Mapping, Union

from pydantic import ValidationError

from roadside.models import Provider, ServiceRequest, ServiceRequestCreate
from roadside.services.entity_store import EntityStore
from roadside.services.errors import DispatchConflictError, DispatchNotFoundError, DispatchValidationError
from roadside.services.lifecycle import TERMINAL_STATUSES
from roadside.services.matcher import DEFAULT_RADIUS_MILES, ProviderMatcher

logger = logging.getLogger(__name__)

SERVICE_PRICES: Dict[str, Decimal] = {
    "Battery Jump": Decimal("55.00"),
    "Towing": Decimal("95.00"),
    "Tire Change": Decimal("65.00"),
    "Lockout": Decimal("75.00"),
}
DEFAULT_SERVICE_PRICE = Decimal("65.00")


def estimate_price(service_type: str) -> Decimal:
    return SERVICE_PRICES.get(service_type, DEFAULT_SERVICE_PRICE)


class DispatchEngine:
    """Creates service requests and auto-assigns the first available nearby mechanic.

    Assignment never touches the mechanic record: availability stays under
    external control, so one mechanic can be matched to several requests.
    """

    def __init__(
        self,
        store: EntityStore,
        matcher: ProviderMatcher,
        radius_miles: float = DEFAULT_RADIUS_MILES,
    ) -> None:
        self._store = store
        self._matcher = matcher
        self._radius_miles = radius_miles

    def _validate(self, draft: Union[ServiceRequestCreate, Mapping[str, Any]]) -> ServiceRequestCreate:
        if not isinstance(draft, ServiceRequestCreate):
            try:
                draft = ServiceRequestCreate.model_validate(draft)
            except ValidationError as exc:
                error = exc.errors()[0]
                location = ".".join(str(part) for part in error["loc"])
                raise DispatchValidationError(f"Invalid request data: {location}: {error['msg']}") from exc
        if not draft.service_type.strip():
            raise DispatchValidationError("Service type is required")
        if not draft.user_address.strip():
            raise DispatchValidationError("Address is required")
        if self._store.get_user(draft.user_id) is None:
            raise DispatchValidationError("User does not exist")
        return draft

    def _assignment_changes(self, request: ServiceRequest, provider: Provider) -> Dict[str, Any]:
        return {
            "mechanic_id": provider.id,
            "status": "assigned",
            "estimated_arrival": request.created_at + timedelta(minutes=provider.response_time),
            "estimated_price": estimate_price(request.service_type),
        }

    def submit(self, draft: Union[ServiceRequestCreate, Mapping[str, Any]]) -> ServiceRequest:
        validated = self._validate(draft)
        request = self._store.create_request(validated)
        logger.info("Service request %s submitted by user %s (%s)", request.id, request.user_id, request.service_type)

        candidate = self._matcher.find_candidate(request.user_latitude, request.user_longitude, self._radius_miles)
        if candidate is None:
            logger.info("No available mechanic within %s miles for request %s; left pending", self._radius_miles, request.id)
            return request

        assigned = self._store.modify_request(request.id, lambda current: self._assignment_changes(current, candidate))
        if assigned is None:
            raise DispatchNotFoundError("Service request not found after create")
        logger.info("Request %s assigned to mechanic %s", assigned.id, candidate.id)
        return assigned

    def assign(self, request_id: int, mechanic_id: int) -> ServiceRequest:
        """Manually bind a chosen mechanic to a request, with the same price and ETA rules as auto-match."""
        provider = self._store.get_provider(mechanic_id)
        if provider is None:
            raise DispatchNotFoundError("Mechanic not found")

        def apply(current: ServiceRequest) -> Dict[str, Any]:
            if current.status in TERMINAL_STATUSES:
                raise DispatchConflictError(f"Service request is already {current.status}")
            return self._assignment_changes(current, provider)

        assigned = self._store.modify_request(request_id, apply)
        if assigned is None:
            raise DispatchNotFoundError("Service request not found")
        logger.info("Request %s manually assigned to mechanic %s", assigned.id, provider.id)
        return assigned
