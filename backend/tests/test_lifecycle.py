import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from conftest import make_provider, make_user
from roadside.services.dispatch import DispatchEngine
from roadside.services.errors import DispatchConflictError, DispatchNotFoundError, DispatchValidationError
from roadside.services.lifecycle import RequestLifecycle
from roadside.services.matcher import ProviderMatcher


def _submit(store, *, available: bool = True):
    user = store.get_user_by_username("john_doe") or store.create_user(make_user())
    if not store.list_providers():
        store.create_provider(make_provider(availability="available" if available else "busy"))
    engine = DispatchEngine(store, ProviderMatcher(store))
    return engine.submit(
        {
            "user_id": user.id,
            "service_type": "Towing",
            "user_latitude": 40.7580,
            "user_longitude": -73.9855,
            "user_address": "123 Main Street",
        }
    )


def test_full_happy_path_refreshes_updated_at(store, clock):
    request = _submit(store)
    lifecycle = RequestLifecycle(store)

    clock.advance(3)
    started = lifecycle.transition(request.id, "in_progress")
    assert started.status == "in_progress"
    assert started.updated_at == clock.now
    assert started.mechanic_id == request.mechanic_id

    clock.advance(30)
    done = lifecycle.transition(request.id, "completed")
    assert done.status == "completed"
    assert done.completed_at == clock.now
    assert done.updated_at == clock.now


def test_second_completion_conflicts_and_keeps_completed_at(store, clock):
    request = _submit(store)
    lifecycle = RequestLifecycle(store)
    done = lifecycle.transition(request.id, "completed")

    clock.advance(10)
    with pytest.raises(DispatchConflictError):
        lifecycle.transition(request.id, "completed")

    assert store.get_request(request.id).completed_at == done.completed_at
    assert store.get_request(request.id).updated_at == done.updated_at


def test_unknown_request_is_not_found_and_nothing_changes(store):
    request = _submit(store)
    with pytest.raises(DispatchNotFoundError):
        RequestLifecycle(store).transition(999, "cancelled")
    assert store.get_request(request.id) == request


def test_unrecognized_status_is_rejected(store):
    request = _submit(store)
    with pytest.raises(DispatchValidationError):
        RequestLifecycle(store).transition(request.id, "teleported")
    assert store.get_request(request.id).status == "assigned"


def test_assigned_with_mechanic_overwrites_and_without_keeps(store):
    request = _submit(store)
    other = store.create_provider(make_provider(name="Backup"))
    lifecycle = RequestLifecycle(store)

    kept = lifecycle.transition(request.id, "assigned")
    assert kept.mechanic_id == request.mechanic_id

    moved = lifecycle.transition(request.id, "assigned", mechanic_id=other.id)
    assert moved.mechanic_id == other.id


def test_assigned_with_unknown_mechanic_is_not_found(store):
    request = _submit(store)
    with pytest.raises(DispatchNotFoundError):
        RequestLifecycle(store).transition(request.id, "assigned", mechanic_id=404)


def test_cancelled_request_keeps_its_mechanic(store):
    request = _submit(store)
    cancelled = RequestLifecycle(store).transition(request.id, "cancelled")
    assert cancelled.status == "cancelled"
    assert cancelled.mechanic_id == request.mechanic_id


def test_permissive_mode_accepts_non_adjacent_transitions(store):
    request = _submit(store, available=False)
    assert request.status == "pending"

    done = RequestLifecycle(store).transition(request.id, "completed")

    assert done.status == "completed"
    assert done.completed_at is not None


def test_strict_mode_enforces_adjacency(store):
    request = _submit(store, available=False)
    lifecycle = RequestLifecycle(store, strict=True)

    with pytest.raises(DispatchValidationError):
        lifecycle.transition(request.id, "completed")
    with pytest.raises(DispatchValidationError):
        lifecycle.transition(request.id, "assigned")

    provider = store.list_providers()[0]
    lifecycle.transition(request.id, "assigned", mechanic_id=provider.id)
    lifecycle.transition(request.id, "in_progress")
    lifecycle.transition(request.id, "completed")

    with pytest.raises(DispatchConflictError):
        lifecycle.transition(request.id, "cancelled")
    assert store.get_request(request.id).status == "completed"


def test_strict_mode_terminal_cancelled(store):
    request = _submit(store)
    lifecycle = RequestLifecycle(store, strict=True)
    lifecycle.transition(request.id, "cancelled")
    with pytest.raises(DispatchConflictError):
        lifecycle.transition(request.id, "in_progress")


def test_completion_derives_history_with_final_price(store):
    request = _submit(store)
    RequestLifecycle(store).transition(request.id, "completed", final_price=Decimal("80.00"))

    history = store.list_history_by_user(request.user_id)
    assert len(history) == 1
    assert history[0].price == Decimal("80.00")
    assert history[0].mechanic_id == request.mechanic_id
    assert history[0].service_type == "Towing"
    assert store.get_request(request.id).final_price == Decimal("80.00")


def test_completion_history_falls_back_to_estimate(store):
    request = _submit(store)
    RequestLifecycle(store).transition(request.id, "completed")
    assert [row.price for row in store.list_history_by_user(request.user_id)] == [Decimal("95.00")]


def test_completion_without_mechanic_records_no_history(store):
    request = _submit(store, available=False)
    RequestLifecycle(store).transition(request.id, "completed")
    assert store.list_history_by_user(request.user_id) == []


def test_history_derivation_can_be_disabled(store):
    request = _submit(store)
    RequestLifecycle(store, derive_history=False).transition(request.id, "completed")
    assert store.list_history_by_user(request.user_id) == []


@pytest.mark.parametrize("bad_price", [Decimal("-5.00"), Decimal("80.125"), Decimal("NaN")])
def test_invalid_final_price_is_rejected_before_completing(store, bad_price):
    request = _submit(store)
    lifecycle = RequestLifecycle(store)

    with pytest.raises(DispatchValidationError):
        lifecycle.transition(request.id, "completed", final_price=bad_price)

    stored = store.get_request(request.id)
    assert stored.status == "assigned"
    assert stored.completed_at is None
    assert stored.final_price is None
    assert store.list_history_by_user(request.user_id) == []

    done = lifecycle.transition(request.id, "completed", final_price=Decimal("80.10"))
    assert done.final_price == Decimal("80.10")
    assert [row.price for row in store.list_history_by_user(request.user_id)] == [Decimal("80.10")]


def test_stored_prices_must_be_non_negative_cents(store):
    request = _submit(store)
    with pytest.raises(DispatchValidationError):
        store.update_request(request.id, final_price=Decimal("-1.00"))
    with pytest.raises(DispatchValidationError):
        store.update_request(request.id, estimated_price=Decimal("9.999"))
    assert store.get_request(request.id) == request


def test_final_price_only_accepted_on_completion(store):
    request = _submit(store)
    with pytest.raises(DispatchValidationError):
        RequestLifecycle(store).transition(request.id, "in_progress", final_price=Decimal("10.00"))
    assert store.get_request(request.id).status == "assigned"


@pytest.mark.parametrize("new_status", ["in_progress", "completed", "cancelled", "pending"])
def test_mechanic_only_accepted_when_assigning(store, new_status):
    request = _submit(store)
    other = store.create_provider(make_provider(name="Backup"))

    with pytest.raises(DispatchValidationError):
        RequestLifecycle(store).transition(request.id, new_status, mechanic_id=other.id)

    stored = store.get_request(request.id)
    assert stored.status == "assigned"
    assert stored.mechanic_id == request.mechanic_id


def test_concurrent_completions_of_one_request_succeed_once(store):
    request = _submit(store)
    lifecycle = RequestLifecycle(store)
    attempts = 32
    start = threading.Barrier(attempts)

    def complete(_):
        start.wait()
        try:
            return lifecycle.transition(request.id, "completed")
        except DispatchConflictError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=attempts) as pool:
        outcomes = list(pool.map(complete, range(attempts)))

    successes = [row for row in outcomes if not isinstance(row, DispatchConflictError)]
    conflicts = [row for row in outcomes if isinstance(row, DispatchConflictError)]
    assert len(successes) == 1
    assert len(conflicts) == attempts - 1
    assert store.get_request(request.id).completed_at == successes[0].completed_at
    assert len(store.list_history_by_user(request.user_id)) == 1
