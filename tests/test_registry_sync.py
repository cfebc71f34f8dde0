from decimal import Decimal

import pytest

from subtracker.domain.exceptions import BestEffortFailure
from subtracker.services.registry_sync import RegistrySyncHook


@pytest.fixture
def owner(users, hasher):
    return users.create(name="Owner", email="owner@x.com", password_hash=hasher.hash("secret1"))


def _add(subscriptions, owner, name, price, cycle, description=""):
    return subscriptions.create(owner.id, name, price, "Streaming", cycle, "2024-01-01", "2024-02-01", description)


def test_resync_builds_summaries_and_total(synchronizer, subscriptions, owner):
    _add(subscriptions, owner, "Gym", "10.00", "Weekly", "FitCo")
    _add(subscriptions, owner, "Music", "30.00", "Quarterly")

    registry = synchronizer.resync(owner.id)

    assert registry.name == "Owner"
    assert registry.current_email == "owner@x.com"
    assert registry.total_monthly_spend == Decimal("53.30")
    assert [(s.name, s.provider, s.status) for s in registry.subscriptions] == [
        ("Gym", "FitCo", "active"),
        ("Music", "", "active"),
    ]
    assert len(registry.email_history) == 1
    entry = registry.email_history[0]
    assert (entry.email, entry.is_primary, entry.source) == ("owner@x.com", True, "signup")


def test_resync_is_idempotent_apart_from_last_updated(synchronizer, subscriptions, registry, owner, clock):
    _add(subscriptions, owner, "Gym", "10.00", "Weekly")
    first = synchronizer.resync(owner.id)
    clock.advance(minutes=5)
    second = synchronizer.resync(owner.id)

    stored = registry.get(owner.id)
    assert [s.to_dict() for s in first.subscriptions] == [s.to_dict() for s in stored.subscriptions]
    assert first.total_monthly_spend == stored.total_monthly_spend
    assert [e.to_dict() for e in first.email_history] == [e.to_dict() for e in stored.email_history]
    assert second.last_updated > first.last_updated


def test_resync_preserves_metadata_and_activity(synchronizer, registry, owner, clock):
    synchronizer.record_activity(owner.id)
    stored = registry.get(owner.id)
    stored.metadata = {"segment": "beta"}
    registry.save(stored)
    active_at = stored.last_active

    clock.advance(hours=1)
    rebuilt = synchronizer.resync(owner.id)

    assert rebuilt.metadata == {"segment": "beta"}
    assert rebuilt.last_active == active_at


def test_email_entries_follow_change_history(synchronizer, users, email_history, owner, clock):
    clock.advance(days=1)
    users.update_email(owner.id, "second@x.com")
    email_history.append(owner.id, "owner@x.com", "second@x.com", clock())
    clock.advance(days=1)
    users.update_email(owner.id, "third@x.com")
    email_history.append(owner.id, "second@x.com", "third@x.com", clock())

    registry = synchronizer.resync(owner.id)

    assert [(e.email, e.source, e.is_primary) for e in registry.email_history] == [
        ("owner@x.com", "signup", False),
        ("second@x.com", "change", False),
        ("third@x.com", "change", True),
    ]
    assert registry.current_email == "third@x.com"


def test_resync_for_missing_user_returns_none(synchronizer, registry):
    assert synchronizer.resync(999) is None
    assert registry.get(999) is None


def test_discard_removes_registry(synchronizer, registry, owner):
    synchronizer.resync(owner.id)
    assert synchronizer.discard(owner.id) is True
    assert registry.get(owner.id) is None
    assert synchronizer.discard(owner.id) is False


def test_registry_search_matches_historical_addresses(synchronizer, registry, users, email_history, owner, clock):
    users.update_email(owner.id, "new@x.com")
    email_history.append(owner.id, "owner@x.com", "new@x.com", clock())
    synchronizer.resync(owner.id)

    items, total = registry.search(email="OWNER@")
    assert total == 1
    assert items[0].current_email == "new@x.com"
    assert registry.search(min_spend=Decimal("1"))[1] == 0


class ExplodingSynchronizer:
    def resync(self, user_id):
        raise RuntimeError("registry store down")

    record_activity = resync
    discard = resync


def test_hook_swallows_failures(caplog):
    hook = RegistrySyncHook(ExplodingSynchronizer())

    hook.subscriptions_changed(1)
    hook.account_changed(1)
    hook.account_active(1)
    hook.account_deleted(1)

    assert sum("Registry sync failed" in record.getMessage() for record in caplog.records) == 4


def test_hook_failures_are_logged_as_best_effort(caplog):
    hook = RegistrySyncHook(ExplodingSynchronizer())

    hook.account_deleted(7)

    [record] = [record for record in caplog.records if hasattr(record, "failure")]
    assert isinstance(record.failure, BestEffortFailure)
    assert record.failure.details == {"event": "account_deleted", "user_id": 7}
    assert record.exc_info[0] is RuntimeError
