"""
Coordinates the ledger and the queue engine so a payment decision and the
resulting queue admission commit or roll back together.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from ridequeue.db.unit_of_work import UnitOfWork
from ridequeue.exceptions import AdmissionFailedError, InvalidInputError, UnknownCustomerError
from ridequeue.models.customer import Customer
from ridequeue.models.payment import Payment
from ridequeue.models.queue_entry import QueueEntry
from ridequeue.schemas.customer import CustomerCreate
from ridequeue.services.customer_registry import CustomerRegistryService
from ridequeue.services.payment_ledger import PaymentLedgerService
from ridequeue.services.queue_engine import QueueOrderingEngine

logger = logging.getLogger(__name__)


@dataclass
class AdmissionOutcome:
    payment: Payment
    entry: Optional[QueueEntry] = None
    customer: Optional[Customer] = None


class QueueOrchestrator:
    def __init__(
        self,
        ledger: PaymentLedgerService,
        engine: QueueOrderingEngine,
        customer_registry: Optional[CustomerRegistryService] = None
    ):
        self.ledger = ledger
        self.engine = engine
        self.customer_registry = customer_registry or CustomerRegistryService()

    async def confirm_and_admit(
        self,
        uow: UnitOfWork,
        payment_id,
        confirmed: bool,
        notes: Optional[str],
        actor: str
    ) -> AdmissionOutcome:
        """
        Decide a payment and, when confirmed, admit the customer to the queue.

        The caller holds the payment lock and the queue lock. Decision errors
        propagate unchanged; any admission error rolls the decision back and
        surfaces as AdmissionFailedError.
        """
        payment = await self.ledger.decide(uow, payment_id, confirmed, notes, actor)

        entry = None
        if confirmed:
            try:
                entry = await self.engine.admit(uow, payment.id)
            except Exception as e:
                await uow.rollback()
                logger.error(f"Queue admission failed for payment {payment_id}; decision rolled back: {e}")
                raise AdmissionFailedError(
                    f"Queue admission failed for payment {payment_id}: {e}. The payment remains pending."
                ) from e

        await uow.commit()
        return AdmissionOutcome(payment=payment, entry=entry)

    async def manual_admit(
        self,
        uow: UnitOfWork,
        reason: str,
        actor: str,
        customer_id=None,
        new_customer: Optional[CustomerCreate] = None
    ) -> AdmissionOutcome:
        """
        Put a customer in the queue without a real payment.

        Either `customer_id` names an existing active customer or
        `new_customer` carries the details to register one.
        """
        if not reason or not reason.strip():
            raise InvalidInputError("A reason is required for a manual queue addition.")
        if not actor or not actor.strip():
            raise InvalidInputError("Staff username is required for a manual queue addition.")
        if customer_id is None and new_customer is None:
            raise InvalidInputError("Either an existing customer or new customer details are required.")

        try:
            if customer_id is not None:
                customer = await uow.customers.get_by_id(customer_id)
                if customer is None or not customer.is_active:
                    raise UnknownCustomerError(f"Customer with ID {customer_id} does not exist.")
            else:
                customer = await self.customer_registry.register(
                    uow, new_customer.name, new_customer.email, new_customer.phone_number
                )

            payment = await self.ledger.record_manual(uow, customer.id, reason.strip(), actor.strip())
            entry = await self.engine.admit(uow, payment.id)
            await uow.commit()
        except Exception:
            await uow.rollback()
            raise

        logger.info(
            f"Business Event: Manual Queue Addition - customer {customer.id} position {entry.position} by {actor}"
        )
        return AdmissionOutcome(payment=payment, entry=entry, customer=customer)
