import uuid
import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from pydantic import ValidationError

from ridequeue.exceptions import (
    AlreadyQueuedError,
    InvalidInputError,
    InvalidSetError,
    InvalidTransitionError,
    NotFoundError,
    PaymentNotConfirmedError,
)
from ridequeue.models.payment import PaymentMethod
from ridequeue.models.queue_entry import QueueEntryStatus
from ridequeue.schemas.queue_entry import SecondaryEntryState


async def _positions(uow_factory):
    async with uow_factory() as uow:
        entries = await uow.queue_entries.get_active_entries()
    return [(entry.id, entry.position) for entry in entries]


@pytest.mark.asyncio
async def test_admit_appends_to_end(make_queued_entries):
    entries = await make_queued_entries(3)

    assert [e.position for e in entries] == [1, 2, 3]
    assert all(e.status == QueueEntryStatus.WAITING for e in entries)


@pytest.mark.asyncio
async def test_admit_requires_confirmed_payment(uow_factory, engine, ledger, make_customer):
    customer = await make_customer()
    async with uow_factory() as uow:
        payment = await ledger.submit(uow, customer.id, Decimal("20.00"), PaymentMethod.CASH_IN_HAND)
        await uow.commit()

    async with uow_factory() as uow:
        with pytest.raises(PaymentNotConfirmedError) as exc_info:
            await engine.admit(uow, payment.id)

    assert exc_info.value.category == "InvalidTransition"


@pytest.mark.asyncio
async def test_admit_twice_is_rejected(uow_factory, engine, make_confirmed_payment):
    payment = await make_confirmed_payment()
    async with uow_factory() as uow:
        await engine.admit(uow, payment.id)
        await uow.commit()

    async with uow_factory() as uow:
        with pytest.raises(AlreadyQueuedError):
            await engine.admit(uow, payment.id)


@pytest.mark.asyncio
async def test_admit_unknown_payment(uow_factory, engine):
    async with uow_factory() as uow:
        with pytest.raises(NotFoundError):
            await engine.admit(uow, uuid.uuid4())


@pytest.mark.asyncio
async def test_admit_after_completion_continues_from_active_max(uow_factory, engine, make_queued_entries, make_confirmed_payment):
    entries = await make_queued_entries(2)
    async with uow_factory() as uow:
        await engine.start(uow, entries[0].id, "driver")
        await engine.complete(uow, entries[0].id, "driver")
        await uow.commit()

    payment = await make_confirmed_payment()
    async with uow_factory() as uow:
        entry = await engine.admit(uow, payment.id)
        await uow.commit()

    assert entry.position == 2


@pytest.mark.asyncio
async def test_start_and_complete_ride(uow_factory, engine, make_queued_entries):
    entries = await make_queued_entries(3)

    async with uow_factory() as uow:
        started = await engine.start(uow, entries[0].id, "driver-1")
        await uow.commit()
    assert started.status == QueueEntryStatus.IN_PROGRESS
    assert started.started_by == "driver-1"
    assert started.started_at is not None

    async with uow_factory() as uow:
        completed = await engine.complete(uow, entries[0].id, "driver-1")
        await uow.commit()
    assert completed.status == QueueEntryStatus.COMPLETED
    assert completed.completed_by == "driver-1"
    assert completed.completed_at is not None

    assert await _positions(uow_factory) == [(entries[1].id, 1), (entries[2].id, 2)]


@pytest.mark.asyncio
async def test_start_requires_waiting(uow_factory, engine, make_queued_entries):
    entries = await make_queued_entries(1)
    async with uow_factory() as uow:
        await engine.start(uow, entries[0].id, "driver")
        await uow.commit()

    async with uow_factory() as uow:
        with pytest.raises(InvalidTransitionError):
            await engine.start(uow, entries[0].id, "driver")


@pytest.mark.asyncio
async def test_complete_requires_in_progress(uow_factory, engine, make_queued_entries):
    entries = await make_queued_entries(1)

    async with uow_factory() as uow:
        with pytest.raises(InvalidTransitionError):
            await engine.complete(uow, entries[0].id, "driver")


@pytest.mark.asyncio
async def test_start_unknown_entry(uow_factory, engine):
    async with uow_factory() as uow:
        with pytest.raises(NotFoundError):
            await engine.start(uow, uuid.uuid4(), "driver")


@pytest.mark.asyncio
async def test_remove_cancels_and_recalculates(uow_factory, engine, make_queued_entries):
    entries = await make_queued_entries(3)

    async with uow_factory() as uow:
        removed = await engine.remove(uow, entries[1].id, "Left the line", "staff")
        await uow.commit()

    assert removed.status == QueueEntryStatus.CANCELLED
    assert removed.completed_by == "staff"
    assert removed.completed_at is not None
    assert removed.notes == "Removed from queue: Left the line"
    assert await _positions(uow_factory) == [(entries[0].id, 1), (entries[2].id, 2)]


@pytest.mark.asyncio
async def test_remove_in_progress_entry(uow_factory, engine, make_queued_entries):
    entries = await make_queued_entries(2)
    async with uow_factory() as uow:
        await engine.start(uow, entries[0].id, "driver")
        removed = await engine.remove(uow, entries[0].id, "Weather", "driver")
        await uow.commit()

    assert removed.status == QueueEntryStatus.CANCELLED
    assert await _positions(uow_factory) == [(entries[1].id, 1)]


@pytest.mark.asyncio
async def test_remove_requires_reason(uow_factory, engine, make_queued_entries):
    entries = await make_queued_entries(1)

    async with uow_factory() as uow:
        with pytest.raises(InvalidInputError):
            await engine.remove(uow, entries[0].id, "  ", "staff")


@pytest.mark.asyncio
async def test_remove_terminal_entry_is_rejected(uow_factory, engine, make_queued_entries):
    entries = await make_queued_entries(1)
    async with uow_factory() as uow:
        await engine.remove(uow, entries[0].id, "No show", "staff")
        await uow.commit()

    async with uow_factory() as uow:
        with pytest.raises(InvalidTransitionError):
            await engine.remove(uow, entries[0].id, "Again", "staff")


@pytest.mark.asyncio
async def test_reorder_assigns_positions_in_given_order(uow_factory, engine, make_queued_entries):
    a, b, c = await make_queued_entries(3)

    async with uow_factory() as uow:
        reordered = await engine.reorder(uow, [c.id, a.id, b.id], "staff")
        await uow.commit()

    assert [e.id for e in reordered] == [c.id, a.id, b.id]
    assert await _positions(uow_factory) == [(c.id, 1), (a.id, 2), (b.id, 3)]


@pytest.mark.asyncio
@pytest.mark.parametrize("case", ["missing", "extra", "duplicate"])
async def test_reorder_rejects_mismatched_sets(uow_factory, engine, make_queued_entries, case):
    a, b, c = await make_queued_entries(3)
    before = await _positions(uow_factory)

    ordered = {
        "missing": [c.id, a.id],
        "extra": [c.id, a.id, b.id, uuid.uuid4()],
        "duplicate": [c.id, a.id, a.id],
    }[case]

    async with uow_factory() as uow:
        with pytest.raises(InvalidSetError):
            await engine.reorder(uow, ordered, "staff")

    assert await _positions(uow_factory) == before


@pytest.mark.asyncio
async def test_reorder_rejects_completed_entry(uow_factory, engine, make_queued_entries):
    a, b = await make_queued_entries(2)
    async with uow_factory() as uow:
        await engine.start(uow, a.id, "driver")
        await engine.complete(uow, a.id, "driver")
        await uow.commit()

    async with uow_factory() as uow:
        with pytest.raises(InvalidSetError):
            await engine.reorder(uow, [a.id, b.id], "staff")


@pytest.mark.asyncio
async def test_reorder_empty_queue_with_empty_list(uow_factory, engine):
    async with uow_factory() as uow:
        assert await engine.reorder(uow, [], "staff") == []


@pytest.mark.asyncio
async def test_sync_overwrites_position_and_status(uow_factory, engine, make_queued_entries):
    a, b = await make_queued_entries(2)
    started = datetime.utcnow() - timedelta(minutes=3)

    async with uow_factory() as uow:
        synced = await engine.sync_from_secondary(uow, [
            SecondaryEntryState(id=a.id, position=2, status=QueueEntryStatus.WAITING),
            SecondaryEntryState(id=b.id, position=1, status=QueueEntryStatus.IN_PROGRESS, started_at=started),
        ])
        await uow.commit()

    assert len(synced) == 2
    async with uow_factory() as uow:
        stored_a = await uow.queue_entries.get_by_id(a.id)
        stored_b = await uow.queue_entries.get_by_id(b.id)
    assert stored_a.position == 2
    assert stored_b.position == 1
    assert stored_b.status == QueueEntryStatus.IN_PROGRESS
    assert stored_b.started_at == started


@pytest.mark.asyncio
async def test_sync_never_overwrites_recorded_timestamps(uow_factory, engine, make_queued_entries):
    (entry,) = await make_queued_entries(1)
    async with uow_factory() as uow:
        started = await engine.start(uow, entry.id, "driver")
        await uow.commit()
    local_started_at = started.started_at

    completed_remote = datetime.utcnow()
    async with uow_factory() as uow:
        await engine.sync_from_secondary(uow, [
            SecondaryEntryState(
                id=entry.id,
                position=1,
                status=QueueEntryStatus.COMPLETED,
                started_at=local_started_at - timedelta(hours=1),
                completed_at=completed_remote,
                completed_by="desktop",
            ),
        ])
        await uow.commit()

    async with uow_factory() as uow:
        stored = await uow.queue_entries.get_by_id(entry.id)
    assert stored.started_at == local_started_at
    assert stored.completed_at == completed_remote
    assert stored.completed_by == "desktop"
    assert stored.status == QueueEntryStatus.COMPLETED


@pytest.mark.asyncio
async def test_sync_skips_unknown_and_terminal_entries(uow_factory, engine, make_queued_entries):
    a, b = await make_queued_entries(2)
    async with uow_factory() as uow:
        await engine.remove(uow, a.id, "No show", "staff")
        await uow.commit()

    async with uow_factory() as uow:
        synced = await engine.sync_from_secondary(uow, [
            SecondaryEntryState(id=uuid.uuid4(), position=1, status=QueueEntryStatus.WAITING),
            SecondaryEntryState(id=a.id, position=1, status=QueueEntryStatus.WAITING),
        ])
        await uow.commit()

    assert synced == []
    async with uow_factory() as uow:
        stored = await uow.queue_entries.get_by_id(a.id)
    assert stored.status == QueueEntryStatus.CANCELLED


def test_sync_state_requires_positive_position():
    with pytest.raises(ValidationError):
        SecondaryEntryState(id=uuid.uuid4(), position=0, status=QueueEntryStatus.WAITING)


@pytest.mark.asyncio
async def test_sync_rejects_non_positive_positions(uow_factory, engine, make_queued_entries):
    a, b = await make_queued_entries(2)
    before = await _positions(uow_factory)

    async with uow_factory() as uow:
        with pytest.raises(InvalidInputError):
            await engine.sync_from_secondary(uow, [
                SecondaryEntryState(id=a.id, position=2, status=QueueEntryStatus.WAITING),
                SecondaryEntryState.model_construct(id=b.id, position=-4, status=QueueEntryStatus.WAITING),
            ])
        await uow.commit()

    assert await _positions(uow_factory) == before


@pytest.mark.asyncio
async def test_recalculate_closes_gaps_and_is_idempotent(uow_factory, engine, make_queued_entries):
    a, b, c = await make_queued_entries(3)
    async with uow_factory() as uow:
        await engine.sync_from_secondary(uow, [
            SecondaryEntryState(id=a.id, position=4, status=QueueEntryStatus.WAITING),
            SecondaryEntryState(id=b.id, position=7, status=QueueEntryStatus.WAITING),
            SecondaryEntryState(id=c.id, position=9, status=QueueEntryStatus.WAITING),
        ])
        await uow.commit()

    async with uow_factory() as uow:
        changed = await engine.recalculate(uow)
        await uow.commit()
    assert changed == 3
    assert await _positions(uow_factory) == [(a.id, 1), (b.id, 2), (c.id, 3)]

    async with uow_factory() as uow:
        assert await engine.recalculate(uow) == 0


@pytest.mark.asyncio
async def test_next_customer_is_lowest_waiting(uow_factory, engine, make_queued_entries):
    a, b, c = await make_queued_entries(3)
    async with uow_factory() as uow:
        await engine.start(uow, a.id, "driver")
        await uow.commit()

    async with uow_factory() as uow:
        entry, customer = await engine.next_customer(uow)
    assert entry.id == b.id
    assert customer.id == b.customer_id


@pytest.mark.asyncio
async def test_next_customer_empty_queue(uow_factory, engine):
    async with uow_factory() as uow:
        assert await engine.next_customer(uow) is None


@pytest.mark.asyncio
async def test_current_queue_recently_completed_window(uow_factory, engine, make_queued_entries):
    a, b, c = await make_queued_entries(3)
    async with uow_factory() as uow:
        await engine.start(uow, a.id, "driver")
        await engine.complete(uow, a.id, "driver")
        await engine.start(uow, b.id, "driver")
        old = await engine.complete(uow, b.id, "driver")
        old.completed_at = datetime.utcnow() - timedelta(hours=25)
        await uow.session.flush()
        await uow.commit()

    async with uow_factory() as uow:
        active_only = await engine.current_queue(uow)
        with_completed = await engine.current_queue(uow, include_recently_completed=True)
        length = await engine.queue_length(uow)

    assert [entry.id for entry, _ in active_only] == [c.id]
    assert {entry.id for entry, _ in with_completed} == {a.id, c.id}
    assert length == 1
