import pytest

from app.errors import FileUploadError
from app.utils.upload_validator import FileUpload, validate_upload


def _upload(data=b"\xff\xd8\xff\xe0jpegbytes", filename="dish.jpg", mime_type="image/jpeg", size=None):
    return FileUpload(data=data, filename=filename, mime_type=mime_type, size=len(data) if size is None else size)


def test_accepts_allowed_upload():
    assert validate_upload(_upload()) is None


@pytest.mark.parametrize("filename", ["dish.JPG", "dish.jpeg", "dish.png", "dish.webp", "dish.avif"])
def test_accepts_allowed_extensions_case_insensitively(filename):
    validate_upload(_upload(filename=filename))


def test_rejects_empty_buffer():
    with pytest.raises(FileUploadError, match="No file provided"):
        validate_upload(_upload(data=b""))


def test_rejects_missing_upload():
    with pytest.raises(FileUploadError):
        validate_upload(None)


def test_rejects_oversized_buffer():
    with pytest.raises(FileUploadError, match="exceeds maximum limit of 10MB"):
        validate_upload(_upload(data=b"x" * (10 * 1024 * 1024 + 1)))


def test_rejects_when_declared_size_exceeds_limit():
    with pytest.raises(FileUploadError, match="exceeds maximum limit"):
        validate_upload(_upload(size=11 * 1024 * 1024))


def test_custom_size_limit():
    with pytest.raises(FileUploadError):
        validate_upload(_upload(data=b"x" * 2048), max_size=1024)


@pytest.mark.parametrize("filename", ["menu.gif", "menu.svg", "menu", "menu.", "archive.jpg.zip"])
def test_rejects_disallowed_extensions(filename):
    with pytest.raises(FileUploadError, match="Invalid file format"):
        validate_upload(_upload(filename=filename))


@pytest.mark.parametrize("mime_type", ["image/gif", "application/pdf", "text/plain", ""])
def test_rejects_disallowed_mime_types(mime_type):
    with pytest.raises(FileUploadError, match="Invalid file type"):
        validate_upload(_upload(mime_type=mime_type))


def test_size_checked_before_extension():
    big = _upload(data=b"x" * (10 * 1024 * 1024 + 1), filename="menu.gif")
    with pytest.raises(FileUploadError, match="exceeds maximum limit"):
        validate_upload(big)


def test_rejection_maps_to_client_error():
    with pytest.raises(FileUploadError) as exc_info:
        validate_upload(_upload(filename="menu.gif"))
    assert exc_info.value.status_code == 400
