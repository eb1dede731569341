"""Product images on S3.

Images arrive as base64 strings (optionally ``data:`` URIs) or as raw bytes
from multipart uploads. Objects live under
``<namespace>/<tenant_id>/<codigo>/<epoch-ms>.<ext>`` and belong to exactly
one product; an image that gets replaced or whose product is deleted is
removed best-effort.
"""

from __future__ import annotations

import base64
import binascii
import time
from dataclasses import dataclass
from urllib.parse import quote, unquote, urlparse

from botocore.exceptions import BotoCoreError, ClientError

from ms_catalogo.errors import Err, ErrorKind, ImageError, Ok
from ms_catalogo.signatures import classify, strip_data_uri

MAX_IMAGE_BYTES = 5 * 1024 * 1024
PRESIGN_EXPIRES_SECONDS = 600

PRESIGN_EXTENSIONS = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


@dataclass(frozen=True)
class StoredImage:
    path: str
    public_url: str
    media_type: str
    size: int


def _invalid_image(reason, message):
    return Err(ErrorKind.VALIDATION, message, field="image", reason=reason)


class ImageStore:
    def __init__(self, s3, bucket, namespace="productos", public_base_url=None, max_bytes=MAX_IMAGE_BYTES):
        self.s3 = s3
        self.bucket = bucket
        self.namespace = namespace.strip("/")
        self.public_base_url = (public_base_url or f"https://{bucket}.s3.amazonaws.com").rstrip("/")
        self.max_bytes = max_bytes

    # ------------------------------------------------------------------
    # paths and urls
    # ------------------------------------------------------------------
    def object_path(self, tenant_id, codigo, extension, now=None):
        millis = int((now if now is not None else time.time()) * 1000)
        return f"{self.namespace}/{tenant_id}/{codigo}/{millis}.{extension}"

    def public_url(self, path):
        return f"{self.public_base_url}/{quote(path)}"

    def path_from_url(self, url):
        """Recover the object key from any public URL form this store hands out.

        Accepts the configured base URL, virtual-hosted S3 URLs
        (``https://<bucket>.s3[.<region>].amazonaws.com/<key>``), path-style
        URLs (``https://s3.<region>.amazonaws.com/<bucket>/<key>``) and
        ``https://<bucket>/<key>``. Returns ``None`` for anything else.
        """
        if not url or not isinstance(url, str):
            return None
        url = url.strip()
        if url.startswith(self.public_base_url + "/"):
            path = url[len(self.public_base_url) + 1:]
            return unquote(path.split("?", 1)[0]) or None

        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return None
        host = parsed.netloc.lower()
        path = unquote(parsed.path).lstrip("/")

        if host == self.bucket.lower() or host.startswith(self.bucket.lower() + ".s3"):
            return path or None
        if host.startswith("s3.") or host.startswith("s3-"):
            bucket, _, key = path.partition("/")
            if bucket == self.bucket:
                return key or None
        return None

    def owns(self, path, tenant_id=None, codigo=None):
        prefix = self.namespace + "/"
        if tenant_id is not None:
            prefix += f"{tenant_id}/"
            if codigo is not None:
                prefix += f"{codigo}/"
        return bool(path) and path.startswith(prefix) and ".." not in path.split("/")

    # ------------------------------------------------------------------
    # ingest
    # ------------------------------------------------------------------
    def decode(self, payload):
        """Classify and decode ``payload``; returns ``Ok((bytes, ImageFormat))``."""
        if isinstance(payload, (bytes, bytearray)):
            data = bytes(payload)
            image_format = classify(data)
            if image_format is None:
                return _invalid_image(ImageError.UNSUPPORTED_FORMAT, "Unsupported image format")
        else:
            if not isinstance(payload, str) or not payload.strip():
                return _invalid_image(ImageError.INVALID_ENCODING, "image must be a base64 string")
            text = strip_data_uri(payload)
            image_format = classify(text)
            if image_format is None:
                return _invalid_image(ImageError.UNSUPPORTED_FORMAT, "Unsupported image format")
            # el base64 ocupa ~4/3 del binario; corta antes de decodificar algo enorme
            if len(text) > (self.max_bytes + 2) // 3 * 4 + 1024:
                return _invalid_image(ImageError.PAYLOAD_TOO_LARGE, "image exceeds the 5 MiB limit")
            try:
                data = base64.b64decode("".join(text.split()), validate=True)
            except (binascii.Error, ValueError):
                return _invalid_image(ImageError.INVALID_ENCODING, "image is not valid base64")

        if len(data) > self.max_bytes:
            return _invalid_image(ImageError.PAYLOAD_TOO_LARGE, "image exceeds the 5 MiB limit")
        return Ok((data, image_format))

    def ingest(self, payload, tenant_id, codigo, now=None):
        """Validate ``payload`` and store it; returns ``Ok(StoredImage)`` or ``Err``."""
        result = self.decode(payload)
        if isinstance(result, Err):
            return result
        data, image_format = result.value

        path = self.object_path(tenant_id, codigo, image_format.extension, now)
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=image_format.media_type,
                ACL="public-read",
            )
        except (ClientError, BotoCoreError) as e:
            print(f"[images] Error subiendo {path} a {self.bucket}: {str(e)}")
            return Err(
                ErrorKind.STORAGE,
                "Image could not be stored",
                field="image",
                reason=ImageError.STORAGE_WRITE_FAILED,
            )

        print(f"[images] Imagen guardada s3://{self.bucket}/{path} ({len(data)} bytes)")
        return Ok(StoredImage(path, self.public_url(path), image_format.media_type, len(data)))

    # ------------------------------------------------------------------
    # cleanup
    # ------------------------------------------------------------------
    def delete_by_url(self, url, tenant_id=None, codigo=None):
        """Best-effort delete of the object behind ``url``; never raises."""
        path = self.path_from_url(url)
        if not path or not self.owns(path, tenant_id, codigo):
            if url:
                print(f"[images] WARN: {url} no pertenece al bucket de imágenes, no se elimina")
            return False
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=path)
        except (ClientError, BotoCoreError) as e:
            print(f"[images] WARN: no se pudo eliminar s3://{self.bucket}/{path}: {str(e)}")
            return False
        print(f"[images] Imagen eliminada s3://{self.bucket}/{path}")
        return True

    def replace(self, existing_url, new_image, tenant_id=None, codigo=None):
        """Drop the previous image once ``new_image`` is the product's image."""
        if not existing_url:
            return
        new_url = new_image.public_url if isinstance(new_image, StoredImage) else new_image
        if existing_url == new_url:
            return
        self.delete_by_url(existing_url, tenant_id, codigo)

    # ------------------------------------------------------------------
    # presigned uploads
    # ------------------------------------------------------------------
    def presign(self, tenant_id, codigo, extension, now=None):
        extension = extension.strip().lower().lstrip(".") if isinstance(extension, str) else ""
        media_type = PRESIGN_EXTENSIONS.get(extension)
        if media_type is None:
            return Err(
                ErrorKind.VALIDATION,
                f"extension must be one of: {', '.join(sorted(PRESIGN_EXTENSIONS))}",
                field="extension",
                reason=ImageError.UNSUPPORTED_FORMAT,
            )

        path = self.object_path(tenant_id, codigo, extension, now)
        try:
            upload_url = self.s3.generate_presigned_url(
                "put_object",
                Params={"Bucket": self.bucket, "Key": path, "ContentType": media_type},
                ExpiresIn=PRESIGN_EXPIRES_SECONDS,
            )
        except (ClientError, BotoCoreError) as e:
            print(f"[images] Error firmando URL para {path}: {str(e)}")
            return Err(ErrorKind.STORAGE, "Upload URL could not be created", field="extension")

        return Ok({
            "uploadUrl": upload_url,
            "publicUrl": self.public_url(path),
            "key": path,
            "contentType": media_type,
            "expiresIn": PRESIGN_EXPIRES_SECONDS,
        })
