"""
Customer registration and lookup.

Customers are immutable once created apart from soft deactivation. Duplicate
names are allowed; callers tell them apart by created_at.
"""
import logging
import re
from datetime import datetime
from typing import List, Optional

from ridequeue.db.unit_of_work import UnitOfWork
from ridequeue.exceptions import InvalidInputError, NotFoundError
from ridequeue.models.customer import Customer

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 255
MAX_PHONE_LENGTH = 20

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_SEPARATORS_RE = re.compile(r"[\s\-\(\)\+\.]")


def validate_customer_data(name: Optional[str], email: Optional[str], phone_number: Optional[str] = None) -> List[str]:
    errors = []

    if not name or not name.strip():
        errors.append("Customer name is required")
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(f"Customer name cannot exceed {MAX_NAME_LENGTH} characters")

    if not email or not email.strip():
        errors.append("Customer email is required")
    elif len(email) > MAX_EMAIL_LENGTH:
        errors.append(f"Customer email cannot exceed {MAX_EMAIL_LENGTH} characters")
    elif not _EMAIL_RE.match(email.strip()):
        errors.append("Customer email format is invalid")

    if phone_number and phone_number.strip():
        if len(phone_number) > MAX_PHONE_LENGTH:
            errors.append(f"Phone number cannot exceed {MAX_PHONE_LENGTH} characters")
        else:
            digits = _PHONE_SEPARATORS_RE.sub("", phone_number)
            # 7-15 digits covers local and international numbers
            if not digits.isdigit() or not 7 <= len(digits) <= 15:
                errors.append("Phone number format is invalid")

    return errors


class CustomerRegistryService:

    async def register(
        self,
        uow: UnitOfWork,
        name: str,
        email: str,
        phone_number: Optional[str] = None
    ) -> Customer:
        errors = validate_customer_data(name, email, phone_number)
        if errors:
            logger.warning(f"Customer validation failed: {', '.join(errors)}")
            raise InvalidInputError(f"Customer data validation failed: {', '.join(errors)}")

        customer = await uow.customers.create(
            Customer(
                name=name.strip(),
                email=email.strip(),
                phone_number=phone_number.strip() if phone_number and phone_number.strip() else None,
                is_active=True,
            )
        )
        logger.info(f"Business Event: Customer Registration - {customer.id}")
        return customer

    async def get(self, uow: UnitOfWork, customer_id) -> Customer:
        customer = await uow.customers.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer with ID {customer_id} not found.")
        return customer

    async def deactivate(self, uow: UnitOfWork, customer_id) -> Customer:
        customer = await self.get(uow, customer_id)
        if customer.is_active:
            customer.is_active = False
            await uow.customers.update(customer)
            logger.info(f"Customer {customer_id} deactivated")
        return customer

    async def search_by_name(
        self,
        uow: UnitOfWork,
        name: str,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None
    ) -> List[Customer]:
        if not name or not name.strip():
            raise InvalidInputError("Search name is required")
        return await uow.customers.search_by_name(name.strip(), from_date, to_date)
