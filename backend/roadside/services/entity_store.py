import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from roadside.models import (
    Message,
    MessageCreate,
    Provider,
    ProviderCreate,
    ServiceHistory,
    ServiceHistoryCreate,
    ServiceRequest,
    ServiceRequestCreate,
    User,
    UserCreate,
)
from roadside.services.errors import DispatchConflictError, DispatchValidationError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


DEMO_MECHANICS = [
    {
        "name": "Sarah Johnson",
        "business_name": "Sarah's Mobile Repair",
        "phone": "(555) 123-4567",
        "email": "sarah@mobilerepair.com",
        "latitude": 40.7589,
        "longitude": -73.9851,
        "address": "Manhattan, NY",
        "rating": 4.9,
        "review_count": 127,
        "services": ["Battery", "Towing", "Tire Service", "Lockout"],
        "availability": "available",
        "response_time": 12,
        "price_range": "$45-120",
        "is_24x7": False,
    },
    {
        "name": "Mike Rodriguez",
        "business_name": "QuickFix Auto",
        "phone": "(555) 234-5678",
        "email": "mike@quickfixauto.com",
        "latitude": 40.7505,
        "longitude": -73.9934,
        "address": "Manhattan, NY",
        "rating": 4.7,
        "review_count": 89,
        "services": ["All Services", "Emergency Repair", "Diagnostics"],
        "availability": "busy",
        "response_time": 25,
        "price_range": "$55-150",
        "is_24x7": True,
    },
    {
        "name": "David Chen",
        "business_name": "Roadside Heroes",
        "phone": "(555) 345-6789",
        "email": "david@roadsideheroes.com",
        "latitude": 40.7614,
        "longitude": -73.9776,
        "address": "Manhattan, NY",
        "rating": 4.8,
        "review_count": 156,
        "services": ["Towing", "Battery", "Fuel Delivery", "Tire Service"],
        "availability": "available",
        "response_time": 18,
        "price_range": "$40-100",
        "is_24x7": False,
    },
]

DEMO_USER = {
    "username": "john_doe",
    "name": "John Doe",
    "email": "john@example.com",
    "phone": "(555) 987-6543",
    "address": "123 Main Street, Manhattan, NY",
    "latitude": 40.7580,
    "longitude": -73.9855,
}

DEMO_HISTORY = [
    {
        "mechanic_index": 1,
        "service_type": "Battery Jump",
        "description": "Dead battery in parking garage",
        "price": Decimal("55.00"),
        "rating": 5,
        "review": "Quick and professional service",
        "completed_at": datetime(2024, 10, 15, 14, 30, tzinfo=timezone.utc),
    },
    {
        "mechanic_index": 1,
        "service_type": "Tire Replacement",
        "description": "Flat tire on highway",
        "price": Decimal("120.00"),
        "rating": 4,
        "review": "Good service, took a bit longer than expected",
        "completed_at": datetime(2024, 9, 28, 16, 45, tzinfo=timezone.utc),
    },
]


@dataclass
class EntityStore:
    """In-memory record repository for users, mechanics, requests, history and messages.

    Every public method holds the store lock for its whole duration, so a
    read-modify-write on any single record never interleaves with another.
    Ids are allocated per entity type, start at 1 and are never reused.
    """

    clock: Callable[[], datetime] = field(default=utcnow)

    def __post_init__(self) -> None:
        self._lock = RLock()
        self._users: Dict[int, User] = {}
        self._providers: Dict[int, Provider] = {}
        self._requests: Dict[int, ServiceRequest] = {}
        self._history: Dict[int, ServiceHistory] = {}
        self._messages: Dict[int, Message] = {}
        self._next_ids: Dict[str, int] = {
            "user": 1,
            "provider": 1,
            "request": 1,
            "history": 1,
            "message": 1,
        }

    def _allocate_id(self, kind: str) -> int:
        entity_id = self._next_ids[kind]
        self._next_ids[kind] = entity_id + 1
        return entity_id

    def _build(self, model: type[RecordT], values: Dict[str, Any]) -> RecordT:
        try:
            return model.model_validate(values)
        except ValidationError as exc:
            raise DispatchValidationError(f"Invalid {model.__name__} data: {exc.errors()[0]['msg']}") from exc

    def _update(self, table: Dict[int, RecordT], entity_id: int, changes: Dict[str, Any]) -> Optional[RecordT]:
        with self._lock:
            current = table.get(entity_id)
            if current is None:
                return None
            merged = {**current.model_dump(), **changes, "id": entity_id}
            if "updated_at" in type(current).model_fields:
                merged["updated_at"] = self.clock()
            updated = self._build(type(current), merged)
            table[entity_id] = updated
            return updated

    def _modify(
        self,
        table: Dict[int, RecordT],
        entity_id: int,
        mutator: Callable[[RecordT], Dict[str, Any]],
    ) -> Optional[RecordT]:
        with self._lock:
            current = table.get(entity_id)
            if current is None:
                return None
            return self._update(table, entity_id, mutator(current))

    def seed_demo_data(self) -> None:
        with self._lock:
            if self._providers or self._users:
                return
            mechanics = [
                self.create_provider(ProviderCreate(**row), rating=row["rating"], review_count=row["review_count"])
                for row in DEMO_MECHANICS
            ]
            user = self.create_user(UserCreate(**DEMO_USER))
            for row in DEMO_HISTORY:
                values = {key: value for key, value in row.items() if key != "mechanic_index"}
                self.create_history(
                    ServiceHistoryCreate(
                        user_id=user.id,
                        mechanic_id=mechanics[row["mechanic_index"]].id,
                        **values,
                    )
                )
        logger.info("Seeded demo data: %s mechanics, 1 user, %s history rows", len(mechanics), len(DEMO_HISTORY))

    # Users

    def create_user(self, draft: UserCreate) -> User:
        with self._lock:
            if self.get_user_by_username(draft.username) is not None:
                raise DispatchConflictError("Username already exists")
            user = self._build(User, {**draft.model_dump(), "id": self._allocate_id("user")})
            self._users[user.id] = user
            return user

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            return next((user for user in self._users.values() if user.username == username), None)

    def list_users(self) -> List[User]:
        with self._lock:
            return list(self._users.values())

    def update_user(self, user_id: int, **changes: Any) -> Optional[User]:
        return self._update(self._users, user_id, changes)

    def update_user_location(self, user_id: int, latitude: float, longitude: float, address: str) -> Optional[User]:
        return self._update(
            self._users,
            user_id,
            {"latitude": latitude, "longitude": longitude, "address": address},
        )

    # Providers

    def create_provider(self, draft: ProviderCreate, *, rating: float = 0.0, review_count: int = 0) -> Provider:
        with self._lock:
            provider = self._build(
                Provider,
                {
                    **draft.model_dump(),
                    "id": self._allocate_id("provider"),
                    "rating": rating,
                    "review_count": review_count,
                },
            )
            self._providers[provider.id] = provider
            return provider

    def get_provider(self, provider_id: int) -> Optional[Provider]:
        with self._lock:
            return self._providers.get(provider_id)

    def list_providers(self) -> List[Provider]:
        with self._lock:
            return list(self._providers.values())

    def update_provider(self, provider_id: int, **changes: Any) -> Optional[Provider]:
        return self._update(self._providers, provider_id, changes)

    # Service requests

    def create_request(self, draft: ServiceRequestCreate) -> ServiceRequest:
        with self._lock:
            now = self.clock()
            request = self._build(
                ServiceRequest,
                {
                    **draft.model_dump(),
                    "id": self._allocate_id("request"),
                    "mechanic_id": None,
                    "status": "pending",
                    "estimated_price": None,
                    "final_price": None,
                    "estimated_arrival": None,
                    "completed_at": None,
                    "created_at": now,
                    "updated_at": now,
                },
            )
            self._requests[request.id] = request
            return request

    def get_request(self, request_id: int) -> Optional[ServiceRequest]:
        with self._lock:
            return self._requests.get(request_id)

    def list_requests_by_user(self, user_id: int) -> List[ServiceRequest]:
        with self._lock:
            return [request for request in self._requests.values() if request.user_id == user_id]

    def list_requests_by_provider(self, mechanic_id: int) -> List[ServiceRequest]:
        with self._lock:
            return [request for request in self._requests.values() if request.mechanic_id == mechanic_id]

    def update_request(self, request_id: int, **changes: Any) -> Optional[ServiceRequest]:
        return self._update(self._requests, request_id, changes)

    def modify_request(
        self,
        request_id: int,
        mutator: Callable[[ServiceRequest], Dict[str, Any]],
    ) -> Optional[ServiceRequest]:
        """Apply ``mutator(current)`` and merge its result under the store lock.

        Any exception raised by the mutator propagates and leaves the record untouched.
        """
        return self._modify(self._requests, request_id, mutator)

    # Service history

    def create_history(self, draft: ServiceHistoryCreate) -> ServiceHistory:
        with self._lock:
            history = self._build(
                ServiceHistory,
                {
                    **draft.model_dump(),
                    "id": self._allocate_id("history"),
                    "created_at": self.clock(),
                },
            )
            self._history[history.id] = history
            return history

    def get_history(self, history_id: int) -> Optional[ServiceHistory]:
        with self._lock:
            return self._history.get(history_id)

    def list_history_by_user(self, user_id: int) -> List[ServiceHistory]:
        with self._lock:
            return [entry for entry in self._history.values() if entry.user_id == user_id]

    def update_history(self, history_id: int, **changes: Any) -> Optional[ServiceHistory]:
        return self._update(self._history, history_id, changes)

    def modify_history(
        self,
        history_id: int,
        mutator: Callable[[ServiceHistory], Dict[str, Any]],
    ) -> Optional[ServiceHistory]:
        return self._modify(self._history, history_id, mutator)

    # Messages

    def create_message(self, draft: MessageCreate) -> Message:
        with self._lock:
            message = self._build(
                Message,
                {
                    **draft.model_dump(),
                    "id": self._allocate_id("message"),
                    "created_at": self.clock(),
                },
            )
            self._messages[message.id] = message
            return message

    def list_messages_by_request(self, request_id: int) -> List[Message]:
        with self._lock:
            return [message for message in self._messages.values() if message.request_id == request_id]
