# PresignProductImage.py (URL firmada para subir directo a S3)
from ms_catalogo.common import PRESIGN_PATH, authorize, load_product, product_code, read_body, run
from ms_catalogo.errors import Err, ErrorKind, Ok
from ms_catalogo.utils import response


def requested_extension(event, body):
    """Ok(extensión) desde ``extension`` o un ``contentType`` image/*; Ok(None) si no viene."""
    params = event.get("queryStringParameters") or {}
    for field in ("extension", "contentType"):
        value = body.get(field) or params.get(field)
        if value and not isinstance(value, str):
            return Err(ErrorKind.VALIDATION, f"{field} must be a string", field=field)

    extension = body.get("extension") or params.get("extension")
    if extension:
        return Ok(extension)
    content_type = body.get("contentType") or params.get("contentType") or ""
    if content_type.lower().startswith("image/"):
        return Ok(content_type.split("/", 1)[1])
    return Ok(None)


def handle(event, deps):
    caller = authorize(event, deps)
    if isinstance(caller, Err):
        return caller
    tenant_id = caller.value.tenant_id

    codigo = product_code(event, deps, PRESIGN_PATH)
    if isinstance(codigo, Err):
        return codigo
    codigo = codigo.value

    body = read_body(event)
    if isinstance(body, Err):
        return body
    extension = requested_extension(event, body.value)
    if isinstance(extension, Err):
        return extension
    if not extension.value:
        return Err(ErrorKind.VALIDATION, "Campo requerido: extension", field="extension")

    # Igual que Get: un producto dado de baja no acepta imágenes nuevas,
    # solo Update puede reactivarlo
    existing = load_product(deps, tenant_id, codigo, visible_only=True)
    if isinstance(existing, Err):
        return existing

    upload = deps.images.presign(tenant_id, codigo, extension.value)
    if isinstance(upload, Err):
        return upload
    return response(200, upload.value)


def lambda_handler(event, context, deps=None):
    return run("PresignProductImage", event, deps, handle)
