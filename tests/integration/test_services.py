"""Service level tests for hooks, batch operations and storage failures."""

from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tenantfiles.core.exceptions import (
    BadArgumentError,
    EmptyFileListError,
    NullIdentifierError,
    ObjectNotFoundError,
    RemoteCallFailedError,
)
from tenantfiles.models.account import Account
from tenantfiles.models.contract import Contract
from tenantfiles.models.resume import Resume
from tenantfiles.services.account_service import AccountService
from tenantfiles.services.crud_tenant_service import CrudTenantService
from tenantfiles.services.contract_service import ContractService
from tenantfiles.services.file_storage import DMS_BACKEND, FileStorageBackend, LocalFileStorage
from tenantfiles.services.hooks import ServiceHooks
from tenantfiles.services.resume_service import ResumeService


class RecordingHooks(ServiceHooks):
    def __init__(self):
        self.events: list[str] = []

    async def before_create(self, tenant, entity):
        self.events.append("before_create")
        entity.description = "stamped"
        return entity

    async def after_create(self, tenant, entity):
        self.events.append("after_create")
        return entity

    async def before_delete(self, tenant, entity):
        self.events.append("before_delete")

    async def after_delete(self, tenant, entity):
        self.events.append("after_delete")


class BrokenStorage(LocalFileStorage):
    name = "broken"

    async def upload(self, **kwargs):
        raise RemoteCallFailedError("storage unavailable")


@pytest.mark.asyncio
async def test_hooks_run_around_create_and_delete(db: AsyncSession):
    hooks = RecordingHooks()
    service = CrudTenantService(db, Contract, hooks=hooks)

    contract = await service.create("acme", Contract(title="Lease"))
    await service.delete("acme", contract.id)

    assert contract.description == "stamped"
    assert hooks.events == ["before_create", "after_create", "before_delete", "after_delete"]


@pytest.mark.asyncio
async def test_custom_code_generator(db: AsyncSession):
    async def generator(tenant: str) -> str:
        return f"{tenant.upper()}-1"

    service = CrudTenantService(db, Contract, code_generator=generator)

    contract = await service.create("acme", Contract(title="Lease"))

    assert contract.code == "ACME-1"


@pytest.mark.asyncio
async def test_explicit_code_is_kept(db: AsyncSession):
    service = CrudTenantService(db, Contract)

    contract = await service.create("acme", Contract(title="Lease", code="LEGACY-7"))

    assert contract.code == "LEGACY-7"


@pytest.mark.asyncio
async def test_argument_validation(db: AsyncSession):
    service = AccountService(db)

    with pytest.raises(BadArgumentError):
        await service.count(" ")
    with pytest.raises(BadArgumentError):
        await service.create("acme", None)
    with pytest.raises(NullIdentifierError):
        await service.update("acme", Account(login="x", email="x@example.com"))


@pytest.mark.asyncio
async def test_save_or_update(db: AsyncSession):
    service = AccountService(db)

    created = await service.save_or_update("acme", Account(login="ana", email="ana@example.com"))
    changed = Account(first_name="Ana")
    changed.id = created.id
    updated = await service.save_or_update("acme", changed)

    assert updated is created
    assert updated.first_name == "Ana"
    assert await service.count("acme") == 1


@pytest.mark.asyncio
async def test_delete_batch_cancels_accounts(db: AsyncSession):
    service = AccountService(db)
    accounts = await service.create_batch(
        "acme",
        [Account(login=f"user{i}", email=f"user{i}@example.com") for i in range(2)],
    )

    await service.delete_batch("acme", [a.id for a in accounts])

    assert all(a.check_cancel for a in accounts)
    assert await service.exists_by_id("acme", accounts[0].id)


@pytest.mark.asyncio
async def test_get_by_id_raises_for_unknown(db: AsyncSession):
    with pytest.raises(ObjectNotFoundError):
        await AccountService(db).get_by_id("acme", uuid4())


@pytest.mark.asyncio
async def test_storage_failure_does_not_abort_linked_file(db: AsyncSession, make_upload):
    service = ResumeService(db, storage=BrokenStorage())
    resume = await service.create("acme", Resume(title="Ana"))

    linked_files = await service.upload_additional_file("acme", resume.id, make_upload("a.txt", b"abc"))

    assert len(linked_files) == 1
    assert linked_files[0].file_name == linked_files[0].code
    assert linked_files[0].crc32 is not None


@pytest.mark.asyncio
async def test_upload_requires_files(db: AsyncSession):
    service = ResumeService(db)
    resume = await service.create("acme", Resume(title="Ana"))

    with pytest.raises(EmptyFileListError):
        await service.upload_additional_files("acme", resume.id, [])


@pytest.mark.asyncio
async def test_super_tenant_defaults_entity_tenant(db: AsyncSession):
    service = CrudTenantService(db, Contract)

    contract = await service.create("SUPER", Contract(title="Shared"))

    assert contract.tenant == "super"


class CodeKeyedStorage(FileStorageBackend):
    """In-memory stand-in for the DMS: files are addressed by code only."""

    name = DMS_BACKEND

    def __init__(self):
        self.files: dict[str, bytes] = {}

    async def upload(self, *, tenant, entity_type, path, file_name, data, content_type=None, tags=None):
        code = f"DMS-{len(self.files) + 1}"
        self.files[code] = data
        return code

    async def download(self, *, tenant, path, file_name):
        assert path is None
        return self.files[file_name]

    async def delete(self, *, tenant, path, file_name):
        return self.files.pop(file_name, None) is not None


@pytest.mark.asyncio
async def test_storage_failure_keeps_created_entity_without_file(db: AsyncSession, make_upload):
    service = ContractService(db, storage=BrokenStorage())

    contract = await service.create_with_file("acme", Contract(title="Lease"), make_upload())

    assert contract.id is not None
    assert contract.code == "CTR000001"
    assert contract.original_file_name == "hello.txt"
    assert contract.file_name is None
    assert await service.exists_by_id("acme", contract.id)


@pytest.mark.asyncio
async def test_storage_failure_on_file_upload_keeps_entity(db: AsyncSession, make_upload):
    service = ContractService(db, storage=BrokenStorage())
    contract = await service.create("acme", Contract(title="Lease"))

    uploaded = await service.upload_file("acme", contract.id, make_upload("signed.pdf", b"%PDF"))

    assert uploaded.file_name is None
    assert uploaded.original_file_name == "signed.pdf"


@pytest.mark.asyncio
async def test_storage_failure_on_image_upload_keeps_entity(db: AsyncSession, make_upload):
    service = ResumeService(db, storage=BrokenStorage())
    resume = await service.create("acme", Resume(title="Ana"))

    updated = await service.upload_image("acme", resume.id, make_upload("me.png", b"\x89PNG", "image/png"))

    assert updated.id == resume.id
    assert updated.image_path is None


@pytest.mark.asyncio
async def test_code_keyed_storage_records_image_code(db: AsyncSession, make_upload):
    storage = CodeKeyedStorage()
    service = ResumeService(db, storage=storage)
    resume = await service.create("acme", Resume(title="Ana"))

    updated = await service.upload_image("acme", resume.id, make_upload("me.png", b"\x89PNG", "image/png"))
    _, data = await service.download_image("acme", resume.id)

    assert updated.image_path == "DMS-1"
    assert data == b"\x89PNG"
