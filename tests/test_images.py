"""Unit tests for the S3 image pipeline."""

import pytest

from conftest import BUCKET, FakeS3, JPEG_BYTES, PNG_BYTES, WEBP_BYTES, b64
from ms_catalogo.errors import Err, ErrorKind, ImageError, Ok
from ms_catalogo.images import MAX_IMAGE_BYTES, PRESIGN_EXPIRES_SECONDS, ImageStore, StoredImage

NOW = 1760000000.5


@pytest.fixture
def store(s3):
    return ImageStore(s3, BUCKET, namespace="productos")


class TestIngest:
    def test_stores_png_with_detected_type(self, store, s3):
        result = store.ingest(b64(PNG_BYTES), "farmacia-1", "MED-1", now=NOW)

        assert isinstance(result, Ok)
        image = result.value
        assert image.path == "productos/farmacia-1/MED-1/1760000000500.png"
        assert image.public_url == f"https://{BUCKET}.s3.amazonaws.com/{image.path}"
        assert image.media_type == "image/png"
        assert image.size == len(PNG_BYTES)

        stored = s3.objects[(BUCKET, image.path)]
        assert stored["Body"] == PNG_BYTES
        assert stored["ContentType"] == "image/png"
        assert stored["ACL"] == "public-read"

    def test_data_uri_payload(self, store):
        result = store.ingest("data:image/png;base64," + b64(JPEG_BYTES), "t", "c", now=NOW)
        assert result.value.path.endswith(".jpg")
        assert result.value.media_type == "image/jpeg"

    def test_raw_bytes_payload(self, store):
        result = store.ingest(WEBP_BYTES, "t", "c", now=NOW)
        assert result.value.path.endswith(".webp")

    def test_repeated_uploads_get_distinct_paths(self, store):
        first = store.ingest(b64(PNG_BYTES), "t", "c", now=NOW)
        second = store.ingest(b64(PNG_BYTES), "t", "c", now=NOW + 0.002)
        assert first.value.path != second.value.path

    def test_unsupported_format(self, store, s3):
        result = store.ingest(b64(b"%PDF-1.4 whatever"), "t", "c")
        assert isinstance(result, Err)
        assert result.kind is ErrorKind.VALIDATION
        assert result.reason is ImageError.UNSUPPORTED_FORMAT
        assert s3.objects == {}

    def test_invalid_encoding(self, store):
        payload = b64(PNG_BYTES)[:16] + "***"
        result = store.ingest(payload, "t", "c")
        assert result.reason is ImageError.INVALID_ENCODING
        assert result.field == "image"

    @pytest.mark.parametrize("payload", [None, 123, "   "])
    def test_non_string_payload(self, store, payload):
        assert store.ingest(payload, "t", "c").reason is ImageError.INVALID_ENCODING

    def test_payload_over_limit(self, store, s3):
        data = PNG_BYTES + b"\x00" * (MAX_IMAGE_BYTES + 1 - len(PNG_BYTES))
        result = store.ingest(b64(data), "t", "c")
        assert result.kind is ErrorKind.VALIDATION
        assert result.reason is ImageError.PAYLOAD_TOO_LARGE
        assert s3.objects == {}

    def test_raw_bytes_over_limit(self, store):
        data = JPEG_BYTES + b"\x00" * MAX_IMAGE_BYTES
        assert store.ingest(data, "t", "c").reason is ImageError.PAYLOAD_TOO_LARGE

    def test_payload_at_limit_is_accepted(self, store):
        data = PNG_BYTES + b"\x00" * (MAX_IMAGE_BYTES - len(PNG_BYTES))
        assert isinstance(store.ingest(b64(data), "t", "c"), Ok)

    def test_storage_failure_is_reported(self, store, s3):
        s3.fail_puts = True
        result = store.ingest(b64(PNG_BYTES), "t", "c")
        assert result.kind is ErrorKind.STORAGE
        assert result.reason is ImageError.STORAGE_WRITE_FAILED


class TestPathFromUrl:
    @pytest.mark.parametrize(
        "url",
        [
            f"https://{BUCKET}.s3.amazonaws.com/productos/t/c/1.png",
            f"https://{BUCKET}.s3.us-east-1.amazonaws.com/productos/t/c/1.png",
            f"https://s3.us-east-1.amazonaws.com/{BUCKET}/productos/t/c/1.png",
            f"https://{BUCKET}/productos/t/c/1.png",
        ],
    )
    def test_known_forms(self, store, url):
        assert store.path_from_url(url) == "productos/t/c/1.png"

    def test_configured_base_url(self, s3):
        store = ImageStore(s3, BUCKET, public_base_url="https://cdn.example.com/img/")
        url = store.public_url("productos/t/c/1.png")
        assert url == "https://cdn.example.com/img/productos/t/c/1.png"
        assert store.path_from_url(url) == "productos/t/c/1.png"

    def test_quoted_key(self, store):
        url = store.public_url("productos/tienda uno/c/1.png")
        assert "%20" in url
        assert store.path_from_url(url) == "productos/tienda uno/c/1.png"

    @pytest.mark.parametrize(
        "url",
        [None, "", "not a url", "https://other-bucket.s3.amazonaws.com/productos/t/c/1.png",
         "https://s3.amazonaws.com/other-bucket/productos/t/c/1.png", "ftp://test-bucket/x"],
    )
    def test_foreign_urls(self, store, url):
        assert store.path_from_url(url) is None


class TestDelete:
    def test_deletes_owned_object(self, store, s3):
        image = store.ingest(b64(PNG_BYTES), "t", "c").value
        assert store.delete_by_url(image.public_url, "t", "c") is True
        assert s3.deleted == [image.path]

    def test_refuses_other_products_objects(self, store, s3):
        url = store.public_url("productos/t/OTRO/1.png")
        assert store.delete_by_url(url, "t", "c") is False
        assert s3.deleted == []

    def test_refuses_keys_outside_namespace(self, store, s3):
        assert store.delete_by_url(f"https://{BUCKET}/config/secrets.json") is False
        assert s3.deleted == []

    def test_failure_is_swallowed(self, store, s3):
        s3.fail_deletes = True
        url = store.public_url("productos/t/c/1.png")
        assert store.delete_by_url(url, "t", "c") is False

    def test_replace_skips_same_url(self, store, s3):
        url = store.public_url("productos/t/c/1.png")
        store.replace(url, url, "t", "c")
        assert s3.deleted == []

    def test_replace_deletes_previous(self, store, s3):
        old = store.public_url("productos/t/c/1.png")
        new = StoredImage("productos/t/c/2.png", store.public_url("productos/t/c/2.png"), "image/png", 1)
        store.replace(old, new, "t", "c")
        assert s3.deleted == ["productos/t/c/1.png"]

    def test_replace_without_previous(self, store, s3):
        store.replace(None, "anything", "t", "c")
        assert s3.deleted == []


class TestPresign:
    def test_presign_put(self, store):
        result = store.presign("t", "c", ".PNG", now=NOW)
        upload = result.value
        assert upload["key"] == "productos/t/c/1760000000500.png"
        assert upload["contentType"] == "image/png"
        assert upload["expiresIn"] == PRESIGN_EXPIRES_SECONDS == 600
        assert upload["publicUrl"] == store.public_url(upload["key"])
        assert "X-Amz-Expires=600" in upload["uploadUrl"]

    @pytest.mark.parametrize("extension", ["exe", "svg", "", None])
    def test_presign_rejects_extension(self, store, extension):
        result = store.presign("t", "c", extension)
        assert result.kind is ErrorKind.VALIDATION
        assert result.field == "extension"

    def test_presign_does_not_write(self, store, s3):
        store.presign("t", "c", "jpg")
        assert s3.objects == {}


def test_default_public_base_url():
    store = ImageStore(FakeS3(), "my-bucket")
    assert store.public_base_url == "https://my-bucket.s3.amazonaws.com"
