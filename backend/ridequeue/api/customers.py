from fastapi import APIRouter, Depends, Query, status
from typing import List
import uuid

from ridequeue.api.dependencies.services import get_ride_queue_service, unwrap
from ridequeue.schemas.customer import CustomerCreate, CustomerSchema
from ridequeue.schemas.payment import PaymentSchema
from ridequeue.services.ride_queue import RideQueueService

router = APIRouter()


@router.post("/", response_model=CustomerSchema, status_code=status.HTTP_201_CREATED)
async def register_customer(
    customer_in: CustomerCreate,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    """
    Registers a walk-up customer.
    """
    result = await service.register_customer(customer_in.name, customer_in.email, customer_in.phone_number)
    return unwrap(result)


@router.get("/search", response_model=List[CustomerSchema])
async def search_customers(
    name: str = Query(..., min_length=1),
    service: RideQueueService = Depends(get_ride_queue_service)
):
    return unwrap(await service.search_customers(name))


@router.get("/{customer_id}", response_model=CustomerSchema)
async def get_customer(
    customer_id: uuid.UUID,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    return unwrap(await service.get_customer(customer_id))


@router.post("/{customer_id}/deactivate", response_model=CustomerSchema)
async def deactivate_customer(
    customer_id: uuid.UUID,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    return unwrap(await service.deactivate_customer(customer_id))


@router.get("/{customer_id}/payments", response_model=List[PaymentSchema])
async def get_payment_history(
    customer_id: uuid.UUID,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    """
    Payment history for a customer, newest first.
    """
    return unwrap(await service.payment_history(customer_id))


@router.get("/{customer_id}/has-pending", response_model=dict)
async def has_pending_payment(
    customer_id: uuid.UUID,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    pending = unwrap(await service.has_pending(customer_id))
    return {"customer_id": str(customer_id), "has_pending": pending}
