import asyncio

import pytest

from clubconnect.domain.audit import service as audit
from clubconnect.domain.audit.models import AuditAction
from clubconnect.domain.errors import StorageUnavailable
from clubconnect.domain.identity.models import AccountStatus


@pytest.mark.asyncio
async def test_failed_transaction_rolls_back(seed, store):
    await seed("s1")
    with pytest.raises(RuntimeError):
        async with store.transaction() as uow:
            account = await uow.get_account("s1", for_update=True)
            account.status = AccountStatus.BLOCKED
            await uow.update_account(account)
            raise RuntimeError("boom")
    async with store.reader() as uow:
        assert (await uow.get_account("s1")).status is AccountStatus.ACTIVE


@pytest.mark.asyncio
async def test_returned_records_are_copies(seed, store):
    await seed("s1")
    async with store.reader() as uow:
        account = await uow.get_account("s1")
    account.status = AccountStatus.BLOCKED
    async with store.reader() as uow:
        assert (await uow.get_account("s1")).status is AccountStatus.ACTIVE


@pytest.mark.asyncio
async def test_audit_failure_does_not_abort_the_action(seed, store, clock, monkeypatch):
    await seed("s1")

    async with store.transaction() as uow:
        async def _broken(entry):
            raise RuntimeError("disk full")

        monkeypatch.setattr(uow, "insert_audit", _broken)
        account = await uow.get_account("s1", for_update=True)
        account.status = AccountStatus.SUSPENDED
        await uow.update_account(account)
        entry = await audit.record(
            uow, actor_id="admin", action=AuditAction.SUSPEND_USER, target_id="s1", tenant_id="club", at=clock()
        )
    assert entry is None
    async with store.reader() as uow:
        assert (await uow.get_account("s1")).status is AccountStatus.SUSPENDED
        assert await uow.list_audit() == []


@pytest.mark.asyncio
async def test_lock_timeout_surfaces_storage_unavailable():
    from clubconnect.domain.memory_store import InMemoryStore

    store = InMemoryStore(timeout_seconds=0.05)
    release = asyncio.Event()

    async def _hold():
        async with store.transaction():
            await release.wait()

    holder = asyncio.create_task(_hold())
    await asyncio.sleep(0.01)
    with pytest.raises(StorageUnavailable):
        async with store.reader():
            pass
    release.set()
    await holder
