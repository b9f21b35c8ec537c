import pytest

from studyhub.services.storage_service import LocalBlobStorage, is_allowed_type
from studyhub.utils.exceptions import AttachmentRejectedError, InvalidArgumentError


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.mark.parametrize(
    "content_type, expected",
    [
        ("image/png", True),
        ("image/webp", True),
        ("application/pdf", True),
        ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", True),
        ("text/plain", True),
        ("application/x-msdownload", False),
        ("video/mp4", False),
    ],
)
def test_allowed_types(content_type, expected):
    assert is_allowed_type(content_type) is expected


async def test_image_is_written_under_a_generated_name(storage, tmp_path):
    blob = await storage.store(PNG_BYTES, "image/png", "diagram.png")

    assert blob.kind == "image"
    assert blob.original_filename == "diagram.png"
    assert blob.url.startswith("/uploads/chat/")
    assert blob.url.endswith(".png")
    stored_name = blob.url.rsplit("/", 1)[-1]
    assert stored_name != "diagram.png"
    assert (tmp_path / "uploads" / stored_name).read_bytes() == PNG_BYTES


async def test_documents_become_file_messages(storage):
    blob = await storage.store(b"%PDF-1.4 notes", "application/pdf", "notes.pdf")

    assert blob.kind == "file"
    assert blob.url.endswith(".pdf")


async def test_content_type_parameters_are_ignored(storage):
    blob = await storage.store(b"plain notes", "text/plain; charset=utf-8", "notes.txt")

    assert blob.kind == "file"


async def test_client_path_is_stripped_from_filename(storage):
    blob = await storage.store(PNG_BYTES, "image/png", "../../etc/diagram.png")

    assert blob.original_filename == "diagram.png"


async def test_rejects_disallowed_type(storage, tmp_path):
    with pytest.raises(AttachmentRejectedError, match="Invalid file type"):
        await storage.store(b"MZ...", "application/x-msdownload", "setup.exe")

    assert not (tmp_path / "uploads").exists()


async def test_rejects_oversized_content(storage):
    with pytest.raises(AttachmentRejectedError, match="File too large"):
        await storage.store(b"x" * (storage.max_bytes + 1), "text/plain", "big.txt")


async def test_rejects_empty_upload(storage):
    with pytest.raises(AttachmentRejectedError, match="No file uploaded"):
        await storage.store(b"", "image/png", "empty.png")


def test_rejections_are_invalid_arguments():
    assert issubclass(AttachmentRejectedError, InvalidArgumentError)
    assert AttachmentRejectedError("x").status_code == 400


async def test_size_limit_is_inclusive(tmp_path):
    storage = LocalBlobStorage(str(tmp_path), "/files/", max_bytes=4)

    blob = await storage.store(b"abcd", "text/plain", "four.txt")

    assert blob.url.startswith("/files/")
    assert "//" not in blob.url
