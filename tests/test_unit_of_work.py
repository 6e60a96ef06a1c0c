import pytest

from ridequeue.models import Customer


@pytest.mark.asyncio
async def test_commit_persists(uow_factory):
    async with uow_factory() as uow:
        await uow.customers.create(Customer(name="Kept", email="kept@example.com"))
        await uow.commit()

    async with uow_factory() as uow:
        assert [c.name for c in await uow.customers.get_all()] == ["Kept"]


@pytest.mark.asyncio
async def test_leaving_without_commit_discards(uow_factory):
    async with uow_factory() as uow:
        await uow.customers.create(Customer(name="Dropped", email="dropped@example.com"))

    async with uow_factory() as uow:
        assert await uow.customers.get_all() == []


@pytest.mark.asyncio
async def test_exception_rolls_back(uow_factory):
    with pytest.raises(RuntimeError):
        async with uow_factory() as uow:
            await uow.customers.create(Customer(name="Dropped", email="dropped@example.com"))
            raise RuntimeError("fail mid-transaction")

    async with uow_factory() as uow:
        assert await uow.customers.get_all() == []


@pytest.mark.asyncio
async def test_explicit_rollback(uow_factory):
    async with uow_factory() as uow:
        await uow.customers.create(Customer(name="Dropped", email="dropped@example.com"))
        await uow.rollback()
        await uow.customers.create(Customer(name="Kept", email="kept@example.com"))
        await uow.commit()

    async with uow_factory() as uow:
        assert [c.name for c in await uow.customers.get_all()] == ["Kept"]


@pytest.mark.asyncio
async def test_rows_read_without_commit_stay_readable(uow_factory):
    async with uow_factory() as uow:
        await uow.customers.create(Customer(name="Reader", email="reader@example.com"))
        await uow.commit()

    async with uow_factory() as uow:
        (customer,) = await uow.customers.get_all()

    assert customer.name == "Reader"
    assert customer.email == "reader@example.com"
    assert customer.is_active is True
