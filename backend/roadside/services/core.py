from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from roadside.config import Settings, load_settings
from roadside.services.dispatch import DispatchEngine
from roadside.services.entity_store import EntityStore
from roadside.services.lifecycle import RequestLifecycle
from roadside.services.matcher import ProviderMatcher


@dataclass
class DispatchCore:
    store: EntityStore
    matcher: ProviderMatcher
    engine: DispatchEngine
    lifecycle: RequestLifecycle


def build_core(settings: Optional[Settings] = None, store: Optional[EntityStore] = None) -> DispatchCore:
    settings = settings or load_settings()
    if store is None:
        store = EntityStore()
        if settings.seed_demo_data:
            store.seed_demo_data()
    matcher = ProviderMatcher(store)
    return DispatchCore(
        store=store,
        matcher=matcher,
        engine=DispatchEngine(store, matcher, radius_miles=settings.match_radius_miles),
        lifecycle=RequestLifecycle(
            store,
            strict=settings.lifecycle_strict,
            derive_history=settings.derive_history_on_complete,
        ),
    )


def get_core(request: Request) -> DispatchCore:
    return request.app.state.core
