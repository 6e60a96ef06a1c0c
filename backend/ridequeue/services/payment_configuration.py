"""
Read access to per-method payment configuration.

Editing prices and enabling/disabling methods belongs to an admin surface
outside this service; the core only asks "is this method enabled?" and
"what does a ride cost?". Defaults are seeded once on an empty table.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from ridequeue.db.unit_of_work import UnitOfWork
from ridequeue.models.payment import PaymentMethod
from ridequeue.models.payment_configuration import PaymentConfiguration

logger = logging.getLogger(__name__)

DEFAULT_PRICE_PER_RIDE = Decimal("20.00")

DEFAULT_CONFIGURATIONS = [
    {
        "payment_method": PaymentMethod.CASH_APP,
        "display_name": "CashApp",
        "payment_url": "https://cash.app/$DriftRide",
    },
    {
        "payment_method": PaymentMethod.PAYPAL,
        "display_name": "PayPal",
        "payment_url": "https://paypal.me/DriftRide/20",
    },
    {
        "payment_method": PaymentMethod.CASH_IN_HAND,
        "display_name": "Cash in Hand",
        "payment_url": None,
    },
]


class PaymentConfigurationService:

    async def get(self, uow: UnitOfWork, method: PaymentMethod) -> Optional[PaymentConfiguration]:
        return await uow.payment_configurations.get_by_method(method)

    async def list(self, uow: UnitOfWork) -> List[PaymentConfiguration]:
        return await uow.payment_configurations.get_all_ordered()

    async def is_enabled(self, uow: UnitOfWork, method: PaymentMethod) -> bool:
        """A method without configuration is treated as enabled."""
        config = await self.get(uow, method)
        return config is None or bool(config.is_enabled)

    async def seed_defaults(self, uow: UnitOfWork) -> int:
        """
        Insert the default configurations when none exist. Returns rows created.
        """
        existing = await uow.payment_configurations.get_all()
        if existing:
            return 0

        for data in DEFAULT_CONFIGURATIONS:
            await uow.payment_configurations.create(
                PaymentConfiguration(
                    **data,
                    is_enabled=True,
                    price_per_ride=DEFAULT_PRICE_PER_RIDE,
                    updated_by="System",
                )
            )
        logger.info(f"Seeded {len(DEFAULT_CONFIGURATIONS)} default payment configurations")
        return len(DEFAULT_CONFIGURATIONS)
