# UploadProductImage.py (subida directa de imagen, base64 o multipart)
from ms_catalogo.common import IMAGE_PATH, authorize, load_product, product_code, read_body, run
from ms_catalogo.errors import Err, ErrorKind
from ms_catalogo.products import IMAGE_FIELD
from ms_catalogo.update_plan import now_iso
from ms_catalogo.utils import response

# nombres de campo que usan los formularios para el archivo
FILE_FIELDS = (IMAGE_FIELD, "file", "archivo")


def handle(event, deps):
    caller = authorize(event, deps)
    if isinstance(caller, Err):
        return caller
    tenant_id = caller.value.tenant_id

    codigo = product_code(event, deps, IMAGE_PATH)
    if isinstance(codigo, Err):
        return codigo
    codigo = codigo.value

    body = read_body(event)
    if isinstance(body, Err):
        return body
    payload = next((body.value[f] for f in FILE_FIELDS if body.value.get(f)), None)
    if not payload:
        return Err(ErrorKind.VALIDATION, "Campo requerido: image", field="image")

    # Un producto dado de baja no recibe imágenes; solo Update puede reactivarlo
    existing = load_product(deps, tenant_id, codigo, visible_only=True)
    if isinstance(existing, Err):
        return existing
    existing = existing.value

    image = deps.images.ingest(payload, tenant_id, codigo)
    if isinstance(image, Err):
        return image
    image = image.value

    try:
        product = deps.products.update(tenant_id, codigo, [
            ("updated_at", now_iso()),
            ("image_url", image.public_url),
        ])
    except Exception:
        deps.images.delete_by_url(image.public_url, tenant_id, codigo)
        raise

    deps.images.replace(existing.get("image_url"), image, tenant_id, codigo)

    return response(200, {
        "message": "Imagen actualizada exitosamente",
        "imageUrl": image.public_url,
        "product": product
    })


def lambda_handler(event, context, deps=None):
    return run("UploadProductImage", event, deps, handle)
