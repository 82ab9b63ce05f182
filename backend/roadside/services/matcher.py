from typing import Iterable, List, Optional

from roadside.models import Provider
from roadside.services.entity_store import EntityStore
from roadside.services.geo import distance_miles

DEFAULT_RADIUS_MILES = 10.0


class ProviderMatcher:
    def __init__(self, store: EntityStore) -> None:
        self._store = store

    def find_nearby(self, latitude: float, longitude: float, radius_miles: float = DEFAULT_RADIUS_MILES) -> List[Provider]:
        # Insertion order, not distance order: the first available provider wins.
        return [
            provider
            for provider in self._store.list_providers()
            if distance_miles(latitude, longitude, provider.latitude, provider.longitude) <= radius_miles
        ]

    def select_candidate(self, providers: Iterable[Provider]) -> Optional[Provider]:
        return next((provider for provider in providers if provider.availability == "available"), None)

    def find_candidate(
        self,
        latitude: float,
        longitude: float,
        radius_miles: float = DEFAULT_RADIUS_MILES,
    ) -> Optional[Provider]:
        return self.select_candidate(self.find_nearby(latitude, longitude, radius_miles))
