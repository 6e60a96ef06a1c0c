import uuid
import pytest

from ridequeue.exceptions import InvalidInputError, NotFoundError
from ridequeue.services.customer_registry import CustomerRegistryService, validate_customer_data


class TestValidateCustomerData:

    def test_valid_data(self):
        assert validate_customer_data("Jordan", "jordan@example.com", "(555) 123-4567") == []

    def test_phone_is_optional(self):
        assert validate_customer_data("Jordan", "jordan@example.com", None) == []
        assert validate_customer_data("Jordan", "jordan@example.com", "  ") == []

    def test_collects_every_error(self):
        errors = validate_customer_data("", "", "12")
        assert "Customer name is required" in errors
        assert "Customer email is required" in errors
        assert "Phone number format is invalid" in errors

    def test_name_too_long(self):
        errors = validate_customer_data("x" * 101, "a@example.com")
        assert errors == ["Customer name cannot exceed 100 characters"]

    @pytest.mark.parametrize("email", ["no-at-sign", "two@@example.com", "user@host", "a b@example.com"])
    def test_invalid_email(self, email):
        assert validate_customer_data("Jordan", email) == ["Customer email format is invalid"]

    @pytest.mark.parametrize("phone", ["+1 555.123.4567", "5551234", "123456789012345"])
    def test_valid_phone_formats(self, phone):
        assert validate_customer_data("Jordan", "jordan@example.com", phone) == []

    @pytest.mark.parametrize("phone", ["555-12", "555-CALL-NOW", "1234567890123456"])
    def test_invalid_phone_formats(self, phone):
        errors = validate_customer_data("Jordan", "jordan@example.com", phone)
        assert errors == ["Phone number format is invalid"]


class TestCustomerRegistryService:

    @pytest.mark.asyncio
    async def test_register_trims_fields(self, uow_factory):
        registry = CustomerRegistryService()
        async with uow_factory() as uow:
            customer = await registry.register(uow, "  Jordan  ", " jordan@example.com ", " 555-123-4567 ")
            await uow.commit()

        assert customer.name == "Jordan"
        assert customer.email == "jordan@example.com"
        assert customer.phone_number == "555-123-4567"
        assert customer.is_active is True
        assert customer.created_at is not None

    @pytest.mark.asyncio
    async def test_register_rejects_invalid_data(self, uow_factory):
        registry = CustomerRegistryService()
        async with uow_factory() as uow:
            with pytest.raises(InvalidInputError) as exc_info:
                await registry.register(uow, "", "bad")

        assert "Customer name is required" in exc_info.value.message
        assert "Customer email format is invalid" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_deactivate(self, uow_factory, make_customer):
        customer = await make_customer()
        registry = CustomerRegistryService()

        async with uow_factory() as uow:
            deactivated = await registry.deactivate(uow, customer.id)
            await uow.commit()
        assert deactivated.is_active is False

        async with uow_factory() as uow:
            again = await registry.deactivate(uow, customer.id)
        assert again.is_active is False

    @pytest.mark.asyncio
    async def test_get_unknown(self, uow_factory):
        async with uow_factory() as uow:
            with pytest.raises(NotFoundError):
                await CustomerRegistryService().get(uow, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_search_by_name_allows_duplicates(self, uow_factory, make_customer):
        first = await make_customer(name="Alex Kim")
        second = await make_customer(name="Alex Kim")
        await make_customer(name="Sam Lee")

        async with uow_factory() as uow:
            found = await CustomerRegistryService().search_by_name(uow, "alex")

        assert [c.id for c in found] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_search_requires_name(self, uow_factory):
        async with uow_factory() as uow:
            with pytest.raises(InvalidInputError):
                await CustomerRegistryService().search_by_name(uow, " ")
