from unittest.mock import MagicMock

import pytest

from podcast_pipeline.common_exceptions import StorageError
from podcast_pipeline.storage import StorageManager, parse_gs_url


@pytest.mark.parametrize(
    "url, expected",
    [
        ("gs://bucket/path/to/file.mp3", ("bucket", "path/to/file.mp3")),
        ("gs://bucket/", None),
        ("gs://", None),
        ("https://storage.googleapis.com/bucket/file.mp3", None),
    ],
)
def test_parse_gs_url(url, expected):
    assert parse_gs_url(url) == expected


@pytest.mark.asyncio
async def test_local_put_and_get(tmp_path):
    manager = StorageManager(local_dir=str(tmp_path))
    assert not manager.is_cloud_storage_available

    url = await manager.put("podcast-episodes/e1.mp3", b"ID3episode")

    assert url == str((tmp_path / "podcast-episodes" / "e1.mp3").resolve())
    assert (tmp_path / "podcast-episodes" / "e1.mp3").read_bytes() == b"ID3episode"
    assert await manager.get("podcast-episodes/e1.mp3") == url


@pytest.mark.asyncio
async def test_local_get_missing_object(tmp_path):
    with pytest.raises(StorageError):
        await StorageManager(local_dir=str(tmp_path)).get("podcast-episodes/missing.mp3")


@pytest.mark.asyncio
@pytest.mark.parametrize("key", ["", "/", "../outside.mp3", "a/../../b.mp3"])
async def test_invalid_keys_are_rejected(tmp_path, key):
    with pytest.raises(StorageError):
        await StorageManager(local_dir=str(tmp_path)).put(key, b"x")


@pytest.mark.asyncio
async def test_cloud_put_makes_object_public():
    client = MagicMock()
    blob = client.bucket.return_value.blob.return_value
    blob.public_url = "https://storage.googleapis.com/audio/podcast-episodes/e1.mp3"
    manager = StorageManager(bucket_name="audio", client=client)

    url = await manager.put("podcast-episodes/e1.mp3", b"ID3", "audio/mpeg")

    client.bucket.assert_called_with("audio")
    blob.upload_from_string.assert_called_once_with(b"ID3", content_type="audio/mpeg")
    blob.make_public.assert_called_once()
    assert url == blob.public_url


@pytest.mark.asyncio
async def test_cloud_get_returns_signed_url():
    client = MagicMock()
    blob = client.bucket.return_value.blob.return_value
    blob.generate_signed_url.return_value = "https://signed.example/e1"
    manager = StorageManager(bucket_name="audio", client=client, signed_url_ttl_seconds=60)

    assert await manager.get("podcast-episodes/e1.mp3") == "https://signed.example/e1"
    assert blob.generate_signed_url.call_args.kwargs["version"] == "v4"


@pytest.mark.asyncio
async def test_cloud_upload_failure_is_a_storage_error():
    client = MagicMock()
    client.bucket.return_value.blob.return_value.upload_from_string.side_effect = RuntimeError("403 Forbidden")
    manager = StorageManager(bucket_name="audio", client=client)
    with pytest.raises(StorageError):
        await manager.put("podcast-episodes/e1.mp3", b"ID3")
