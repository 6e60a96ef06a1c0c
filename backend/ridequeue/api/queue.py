from fastapi import APIRouter, Depends, status
from typing import List, Optional
import uuid

from ridequeue.api.dependencies.services import get_ride_queue_service, unwrap
from ridequeue.schemas.queue_entry import (
    ActorRequest,
    DriverQueueSummary,
    ManualAdmitRequest,
    QueueEntrySchema,
    QueueEntryView,
    RemoveRequest,
    ReorderRequest,
    SecondaryEntryState,
)
from ridequeue.services.ride_queue import RideQueueService

router = APIRouter()


@router.get("/", response_model=List[QueueEntryView])
async def get_current_queue(
    include_completed: bool = False,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    """
    Active queue in position order, optionally with rides completed in the last day.
    """
    return unwrap(await service.current_queue(include_recently_completed=include_completed))


@router.get("/next", response_model=Optional[QueueEntryView])
async def get_next_customer(service: RideQueueService = Depends(get_ride_queue_service)):
    return unwrap(await service.next_customer())


@router.get("/driver", response_model=DriverQueueSummary)
async def get_driver_summary(service: RideQueueService = Depends(get_ride_queue_service)):
    return unwrap(await service.driver_summary())


@router.post("/manual", response_model=QueueEntrySchema, status_code=status.HTTP_201_CREATED)
async def manual_admit(
    request_in: ManualAdmitRequest,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    """
    Adds a customer to the queue without a payment, e.g. for comps or payment-system outages.
    """
    result = await service.manual_admit(
        request_in.reason,
        request_in.actor,
        customer_id=request_in.customer_id,
        new_customer=request_in.new_customer,
    )
    return unwrap(result)


@router.post("/{entry_id}/start", response_model=QueueEntrySchema)
async def start_ride(
    entry_id: uuid.UUID,
    request_in: ActorRequest,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    return unwrap(await service.start_ride(entry_id, request_in.actor))


@router.post("/{entry_id}/complete", response_model=QueueEntrySchema)
async def complete_ride(
    entry_id: uuid.UUID,
    request_in: ActorRequest,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    return unwrap(await service.complete_ride(entry_id, request_in.actor))


@router.post("/{entry_id}/remove", response_model=QueueEntrySchema)
async def remove_from_queue(
    entry_id: uuid.UUID,
    request_in: RemoveRequest,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    return unwrap(await service.remove_from_queue(entry_id, request_in.reason, request_in.actor))


@router.put("/order", response_model=List[QueueEntryView])
async def reorder_queue(
    request_in: ReorderRequest,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    """
    Sets the full queue order. The list must contain every active entry exactly once.
    """
    return unwrap(await service.reorder_queue(request_in.entry_ids, request_in.actor))


@router.post("/sync", response_model=List[QueueEntrySchema])
async def sync_from_secondary(
    entries: List[SecondaryEntryState],
    service: RideQueueService = Depends(get_ride_queue_service)
):
    """
    Applies the desktop console's queue state after it reconnects.
    """
    return unwrap(await service.sync_from_secondary(entries))


@router.post("/recalculate", response_model=dict)
async def recalculate_positions(service: RideQueueService = Depends(get_ride_queue_service)):
    changed = unwrap(await service.recalculate_positions())
    return {"changed": changed}
