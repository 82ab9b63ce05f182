import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from roadside.models import ProviderCreate, UserCreate
from roadside.services.entity_store import EntityStore


class FakeClock:
    def __init__(self, start: datetime = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int) -> None:
        self.now = self.now + timedelta(minutes=minutes)


def make_provider(**overrides) -> ProviderCreate:
    values = {
        "name": "Sarah Johnson",
        "business_name": "Sarah's Mobile Repair",
        "phone": "(555) 123-4567",
        "email": "sarah@mobilerepair.com",
        "latitude": 40.7589,
        "longitude": -73.9851,
        "address": "Manhattan, NY",
        "services": ["Battery", "Towing"],
        "availability": "available",
        "response_time": 12,
        "price_range": "$45-120",
    }
    values.update(overrides)
    return ProviderCreate(**values)


def make_user(**overrides) -> UserCreate:
    values = {
        "username": "john_doe",
        "name": "John Doe",
        "email": "john@example.com",
        "phone": "(555) 987-6543",
        "address": "123 Main Street, Manhattan, NY",
        "latitude": 40.7580,
        "longitude": -73.9855,
    }
    values.update(overrides)
    return UserCreate(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> EntityStore:
    return EntityStore(clock=clock)
