"""
Payment ledger: submission, staff decisions and payment history.

A customer holds at most one pending payment at a time. The ledger never
touches the queue; a confirmed payment is handed back to the caller, which
decides whether to admit it.
"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from ridequeue.db.unit_of_work import UnitOfWork
from ridequeue.exceptions import (
    AlreadyDecidedError,
    DuplicatePendingError,
    InvalidInputError,
    MethodDisabledError,
    MissingReferenceError,
    NotFoundError,
    UnknownCustomerError,
)
from ridequeue.models.payment import Payment, PaymentMethod, PaymentStatus
from ridequeue.services.payment_configuration import PaymentConfigurationService

logger = logging.getLogger(__name__)

MAX_REFERENCE_LENGTH = 255
MAX_NOTES_LENGTH = 500


class PaymentLedgerService:
    def __init__(self, payment_configuration_service: Optional[PaymentConfigurationService] = None):
        self.payment_configuration_service = payment_configuration_service or PaymentConfigurationService()

    async def submit(
        self,
        uow: UnitOfWork,
        customer_id,
        amount: Decimal,
        method: PaymentMethod,
        external_ref: Optional[str] = None
    ) -> Payment:
        """
        Record a pending payment claim.

        The caller must hold the customer lock so the pending check and the
        insert are not interleaved with another submission for the same customer.
        """
        try:
            amount = Decimal(str(amount))
        except InvalidOperation as e:
            raise InvalidInputError(f"Payment amount {amount!r} is not a number.") from e
        if not amount.is_finite() or amount <= 0:
            raise InvalidInputError("Payment amount must be greater than zero.")
        if external_ref is not None and len(external_ref) > MAX_REFERENCE_LENGTH:
            raise InvalidInputError(
                f"External transaction ID cannot exceed {MAX_REFERENCE_LENGTH} characters."
            )

        reference = external_ref.strip() if external_ref and external_ref.strip() else None
        if method.requires_reference and reference is None:
            raise MissingReferenceError(
                f"External transaction ID is required for {method.value} payments."
            )

        customer = await uow.customers.get_by_id(customer_id)
        if customer is None or not customer.is_active:
            raise UnknownCustomerError(f"Customer with ID {customer_id} does not exist.")

        config = await self.payment_configuration_service.get(uow, method)
        if config is not None and not config.is_enabled:
            raise MethodDisabledError(f"Payment method {method.value} is currently disabled.")

        pending = await uow.payments.get_pending_for_customer(customer_id, for_update=True)
        if pending:
            raise DuplicatePendingError()

        if config is not None and amount < config.price_per_ride:
            logger.warning(
                f"Payment amount {amount} for customer {customer_id} is below the "
                f"configured price {config.price_per_ride} for {method.value}"
            )

        payment = await uow.payments.create(
            Payment(
                customer_id=customer_id,
                amount=amount,
                payment_method=method,
                status=PaymentStatus.PENDING,
                external_transaction_id=reference,
            )
        )
        logger.info(
            f"Business Event: Payment Submission - payment {payment.id} customer {customer_id} "
            f"method {method.value} amount {amount}"
        )
        return payment

    async def decide(
        self,
        uow: UnitOfWork,
        payment_id,
        confirmed: bool,
        notes: Optional[str],
        actor: str
    ) -> Payment:
        payment = await uow.payments.get_by_id(payment_id, for_update=True)
        if payment is None:
            raise NotFoundError(f"Payment with ID {payment_id} not found.")
        if payment.status != PaymentStatus.PENDING:
            raise AlreadyDecidedError(
                f"Payment {payment_id} is already {payment.status.value}; only pending payments can be decided."
            )
        if not actor or not actor.strip():
            raise InvalidInputError("Staff username is required to confirm or deny a payment.")

        trimmed_notes = notes.strip() if notes and notes.strip() else None
        if trimmed_notes and len(trimmed_notes) > MAX_NOTES_LENGTH:
            raise InvalidInputError(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters.")

        payment.status = PaymentStatus.CONFIRMED if confirmed else PaymentStatus.DENIED
        payment.confirmed_by = actor.strip()
        payment.notes = trimmed_notes
        payment.confirmed_at = datetime.utcnow()
        await uow.payments.update(payment)

        logger.info(
            f"Business Event: Payment {'Confirmation' if confirmed else 'Denial'} - "
            f"payment {payment.id} by {payment.confirmed_by}"
        )
        return payment

    async def record_manual(self, uow: UnitOfWork, customer_id, reason: str, actor: str) -> Payment:
        """
        Synthetic confirmed payment backing a manual queue admission.
        """
        now = datetime.utcnow()
        payment = await uow.payments.create(
            Payment(
                customer_id=customer_id,
                amount=Decimal("0.00"),
                payment_method=PaymentMethod.CASH_IN_HAND,
                status=PaymentStatus.CONFIRMED,
                confirmed_by=actor,
                confirmed_at=now,
                notes=f"Manual addition - {reason}"[:MAX_NOTES_LENGTH],
            )
        )
        logger.info(f"Business Event: Manual Payment - payment {payment.id} customer {customer_id} by {actor}")
        return payment

    async def get(self, uow: UnitOfWork, payment_id) -> Payment:
        payment = await uow.payments.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment with ID {payment_id} not found.")
        return payment

    async def has_pending(self, uow: UnitOfWork, customer_id) -> bool:
        return await uow.payments.has_pending_for_customer(customer_id)

    async def pending(self, uow: UnitOfWork) -> List[Payment]:
        return await uow.payments.get_all_pending()

    async def history(self, uow: UnitOfWork, customer_id) -> List[Payment]:
        return await uow.payments.get_history_for_customer(customer_id)
