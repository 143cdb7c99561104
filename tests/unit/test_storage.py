import pytest

from expatvault.vault.storage import ObjectNotFoundError, ObjectStorageClient


@pytest.fixture
def local_client(tmp_path):
    (tmp_path / "user-1").mkdir()
    (tmp_path / "user-1" / "lease.pdf").write_bytes(b"%PDF-lease")
    return ObjectStorageClient(backend="local", local_root=tmp_path)


@pytest.mark.asyncio
async def test_local_download(local_client):
    assert await local_client.download("user-1/lease.pdf") == b"%PDF-lease"


@pytest.mark.asyncio
async def test_local_missing_object(local_client):
    with pytest.raises(ObjectNotFoundError):
        await local_client.download("user-1/missing.pdf")


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["", "../outside.pdf", "user-1/../../etc/passwd"])
async def test_local_rejects_paths_outside_root(local_client, path):
    with pytest.raises(ObjectNotFoundError):
        await local_client.download(path)
