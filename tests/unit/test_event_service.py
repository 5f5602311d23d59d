"""
Tests for the event lifecycle: create, update, delete and their
interaction with duplicate detection, ownership and notifications.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from geo_events_api.app.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from geo_events_api.app.schemas.event import EventCreate, EventUpdate, GeoPoint
from geo_events_api.app.services.audit_service import AuditService
from geo_events_api.app.services.event_service import EventService
from geo_events_api.app.services.ownership import OwnershipGuard


class NeverDuplicate:
    """Detector that always misses, as if a concurrent writer won the race."""

    def find_duplicate(self, title, date, exclude_id=None):
        return None


class TestCreateEvent:
    """Tests for EventService.create."""

    @pytest.mark.asyncio
    async def test_create_sets_owner_and_id(self, event_service, alice, make_event):
        event = await event_service.create(alice, make_event())
        assert event.id
        assert event.owner_id == alice.id
        assert event.title == "Gig"
        assert event.date == datetime(2025, 6, 1, 19, 0, tzinfo=timezone.utc)
        assert event.location == GeoPoint(longitude=0.0, latitude=0.0)

    @pytest.mark.asyncio
    async def test_created_event_is_searchable(self, event_service, alice, make_event):
        event = await event_service.create(alice, make_event())
        results = await event_service.list_events({"near": (0.0, 0.0)})
        assert [found.id for found in results] == [event.id]

    @pytest.mark.asyncio
    async def test_missing_fields_listed(self, event_service, alice):
        with pytest.raises(ValidationError) as exc_info:
            await event_service.create(alice, EventCreate(title="Gig"))
        assert exc_info.value.fields == ["description", "date", "location", "category"]

    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, event_service, alice, make_event):
        with pytest.raises(ValidationError) as exc_info:
            await event_service.create(alice, make_event(title="   "))
        assert exc_info.value.fields == ["title"]

    @pytest.mark.asyncio
    async def test_duplicate_title_and_date(self, event_service, alice, bob, make_event):
        first = await event_service.create(alice, make_event())
        with pytest.raises(ConflictError) as exc_info:
            await event_service.create(bob, make_event(description="Another"))
        assert exc_info.value.existing_id == first.id
        assert len(event_service.search().all()) == 1

    @pytest.mark.asyncio
    async def test_duplicate_detected_across_time_zones(self, event_service, alice, make_event):
        await event_service.create(alice, make_event())
        paris = timezone(timedelta(hours=2))
        with pytest.raises(ConflictError):
            await event_service.create(alice, make_event(date=datetime(2025, 6, 1, 21, 0, tzinfo=paris)))

    @pytest.mark.asyncio
    async def test_same_title_other_date_allowed(self, event_service, alice, make_event):
        await event_service.create(alice, make_event())
        await event_service.create(alice, make_event(date=datetime(2025, 6, 2, 19, 0, tzinfo=timezone.utc)))
        assert len(event_service.search().all()) == 2

    @pytest.mark.asyncio
    async def test_storage_rejects_duplicate_when_precheck_misses(self, store, alice, bob, make_event):
        service = EventService(store, detector=NeverDuplicate())
        await service.create(alice, make_event())
        with pytest.raises(ConflictError):
            await service.create(bob, make_event())
        assert len(service.search().all()) == 1

    @pytest.mark.asyncio
    async def test_concurrent_creates_yield_one_event(self, store, alice, bob, make_event):
        service = EventService(store)
        results = await asyncio.gather(
            service.create(alice, make_event()),
            service.create(bob, make_event()),
            return_exceptions=True,
        )
        assert sum(isinstance(result, ConflictError) for result in results) == 1
        assert len(service.search().all()) == 1

    @pytest.mark.asyncio
    async def test_create_is_audited(self, event_service, alice, make_event):
        event = await event_service.create(alice, make_event())
        logs = await AuditService.list_logs(object_type="event")
        assert logs[0]["action"] == "create"
        assert logs[0]["object_id"] == event.id
        assert logs[0]["actor_id"] == alice.id


class TestUpdateEvent:
    """Tests for EventService.update."""

    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, event_service, alice, make_event):
        event = await event_service.create(alice, make_event())
        updated = await event_service.update(
            alice, event.id, EventUpdate(location=GeoPoint(longitude=2.35, latitude=48.85))
        )
        assert updated.location == GeoPoint(longitude=2.35, latitude=48.85)
        assert updated.title == event.title
        assert updated.description == event.description
        assert updated.category == event.category
        assert updated.date == event.date
        assert updated.owner_id == alice.id

    @pytest.mark.asyncio
    async def test_empty_values_leave_fields_unchanged(self, event_service, alice, make_event):
        event = await event_service.create(alice, make_event())
        updated = await event_service.update(alice, event.id, EventUpdate(title="", description=""))
        assert updated.title == "Gig"
        assert updated.description == "Live music"

    @pytest.mark.asyncio
    async def test_non_owner_forbidden(self, event_service, alice, bob, make_event):
        event = await event_service.create(alice, make_event())
        with pytest.raises(ForbiddenError):
            await event_service.update(bob, event.id, EventUpdate(title="Hijacked"))
        assert (await event_service.get(event.id)).title == "Gig"

    @pytest.mark.asyncio
    async def test_admin_bypass(self, event_service, alice, admin, make_event):
        event = await event_service.create(alice, make_event())
        updated = await event_service.update(admin, event.id, EventUpdate(category="jazz"))
        assert updated.category == "jazz"
        assert updated.owner_id == alice.id

    @pytest.mark.asyncio
    async def test_admin_bypass_disabled(self, store, alice, admin, make_event):
        service = EventService(store, guard=OwnershipGuard(admin_bypass=False))
        event = await service.create(alice, make_event())
        with pytest.raises(ForbiddenError):
            await service.update(admin, event.id, EventUpdate(category="jazz"))

    @pytest.mark.asyncio
    async def test_unknown_event(self, event_service, alice):
        with pytest.raises(NotFoundError):
            await event_service.update(alice, "missing", EventUpdate(title="Nope"))

    @pytest.mark.asyncio
    async def test_update_onto_existing_key_conflicts(self, event_service, alice, make_event):
        await event_service.create(alice, make_event())
        other = await event_service.create(alice, make_event(title="Other"))
        with pytest.raises(ConflictError):
            await event_service.update(alice, other.id, EventUpdate(title="Gig"))

    @pytest.mark.asyncio
    async def test_update_keeping_key_is_not_a_duplicate(self, event_service, alice, make_event):
        event = await event_service.create(alice, make_event())
        updated = await event_service.update(alice, event.id, EventUpdate(title="Gig", category="jazz"))
        assert updated.category == "jazz"

    @pytest.mark.asyncio
    async def test_update_notifies(self, event_service, notifier, alice, make_event):
        event = await event_service.create(alice, make_event())
        await event_service.update(alice, event.id, EventUpdate(description="Now acoustic"))
        await event_service.dispatcher.drain()
        subjects = [subject for _, subject, _ in notifier.sent]
        assert subjects == ["Event created", "Event updated"]


class TestDeleteEvent:
    """Tests for EventService.delete."""

    @pytest.mark.asyncio
    async def test_delete_then_not_found(self, event_service, alice, make_event):
        event = await event_service.create(alice, make_event())
        await event_service.delete(alice, event.id)
        with pytest.raises(NotFoundError):
            await event_service.get(event.id)
        with pytest.raises(NotFoundError):
            await event_service.delete(alice, event.id)

    @pytest.mark.asyncio
    async def test_non_owner_delete_forbidden(self, event_service, alice, bob, make_event):
        event = await event_service.create(alice, make_event())
        with pytest.raises(ForbiddenError):
            await event_service.delete(bob, event.id)
        assert (await event_service.get(event.id)).id == event.id

    @pytest.mark.asyncio
    async def test_deleted_key_can_be_reused(self, event_service, alice, make_event):
        event = await event_service.create(alice, make_event())
        await event_service.delete(alice, event.id)
        again = await event_service.create(alice, make_event())
        assert again.id != event.id


class TestScenarios:
    """End-to-end flows through the service layer."""

    @pytest.mark.asyncio
    async def test_gig_scenario(self, event_service, notifier, alice, bob, make_event):
        event = await event_service.create(alice, make_event())
        with pytest.raises(ConflictError):
            await event_service.create(bob, make_event())
        near = await event_service.list_events({"category": "music", "near": {"longitude": 0.00009, "latitude": 0}})
        assert [found.id for found in near] == [event.id]
        far = await event_service.list_events({"near": {"longitude": 1, "latitude": 0}})
        assert far == []

        # Rescheduling frees the original title and date.
        moved = await event_service.update(
            alice, event.id, EventUpdate(date=datetime(2025, 6, 2, 19, 0, tzinfo=timezone.utc))
        )
        assert moved.date == datetime(2025, 6, 2, 19, 0, tzinfo=timezone.utc)
        assert moved.title == "Gig"
        second = await event_service.create(bob, make_event())
        assert second.owner_id == bob.id
        assert {found.id for found in await event_service.list_events()} == {event.id, second.id}

        await event_service.dispatcher.drain()
        assert notifier.sent[0][0] == "alice@example.com"

    @pytest.mark.asyncio
    async def test_non_owner_delete_scenario(self, event_service, alice, bob, make_event):
        event = await event_service.create(alice, make_event())
        with pytest.raises(ForbiddenError):
            await event_service.delete(bob, event.id)
        await event_service.delete(alice, event.id)
        assert await event_service.list_events() == []


class TestNotificationIsolation:
    """A broken notifier never changes the outcome of an operation."""

    @pytest.mark.asyncio
    async def test_failing_notifier(self, failing_service, alice, make_event):
        event = await failing_service.create(alice, make_event())
        await failing_service.dispatcher.drain()
        assert (await failing_service.get(event.id)).title == "Gig"

    @pytest.mark.asyncio
    async def test_slow_notifier_does_not_block(self, slow_service, alice, make_event):
        event = await asyncio.wait_for(slow_service.create(alice, make_event()), timeout=1.0)
        assert event.id
        await slow_service.dispatcher.drain()

    @pytest.mark.asyncio
    async def test_without_dispatcher(self, store, alice, make_event):
        service = EventService(store)
        event = await service.create(alice, make_event())
        await service.delete(alice, event.id)
