from fastapi import APIRouter, Depends, status
from typing import List
import uuid

from ridequeue.api.dependencies.services import get_ride_queue_service, unwrap
from ridequeue.schemas.payment import PaymentDecision, PaymentMethodSchema, PaymentSchema, PaymentSubmit
from ridequeue.services.ride_queue import RideQueueService

router = APIRouter()


@router.get("/methods", response_model=List[PaymentMethodSchema])
async def get_payment_methods(service: RideQueueService = Depends(get_ride_queue_service)):
    return unwrap(await service.payment_methods())


@router.post("/", response_model=PaymentSchema, status_code=status.HTTP_201_CREATED)
async def submit_payment(
    payment_in: PaymentSubmit,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    """
    Records a customer's payment claim for staff review.
    """
    result = await service.submit_payment(
        payment_in.customer_id,
        payment_in.amount,
        payment_in.payment_method,
        payment_in.external_transaction_id,
    )
    return unwrap(result)


@router.get("/pending", response_model=List[PaymentSchema])
async def get_pending_payments(service: RideQueueService = Depends(get_ride_queue_service)):
    """
    Payments awaiting a staff decision, oldest first.
    """
    return unwrap(await service.pending_payments())


@router.get("/{payment_id}", response_model=PaymentSchema)
async def get_payment(
    payment_id: uuid.UUID,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    return unwrap(await service.get_payment(payment_id))


@router.post("/{payment_id}/decision", response_model=PaymentSchema)
async def decide_payment(
    payment_id: uuid.UUID,
    decision: PaymentDecision,
    service: RideQueueService = Depends(get_ride_queue_service)
):
    """
    Confirms or denies a pending payment. Confirmation adds the customer to the queue.
    """
    result = await service.decide_payment(
        payment_id, decision.confirmed, decision.notes, decision.staff_username
    )
    return unwrap(result)
