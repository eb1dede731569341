# CreateProduct.py (JSON o multipart, imagen opcional)
from ms_catalogo.common import authorize, read_body, run
from ms_catalogo.errors import Err
from ms_catalogo.products import IMAGE_FIELD, generate_code, new_product
from ms_catalogo.update_plan import now_iso
from ms_catalogo.utils import response


def handle(event, deps):
    # -------- 1) token obligatorio ----------
    caller = authorize(event, deps)
    if isinstance(caller, Err):
        return caller
    tenant_id = caller.value.tenant_id

    body = read_body(event)
    if isinstance(body, Err):
        return body
    body = body.value

    # -------- 2) validar antes de escribir nada ----------
    codigo = generate_code(deps.config.code_prefix)
    now = now_iso()
    product = new_product(tenant_id, codigo, body, now)
    if isinstance(product, Err):
        return product
    product = product.value

    image_payload = body.get(IMAGE_FIELD)
    if image_payload:
        image = deps.images.ingest(image_payload, tenant_id, codigo)
        if isinstance(image, Err):
            return image
        product["image_url"] = image.value.public_url

    # -------- 3) guardar (código nuevo, sin verificar existencia) ----------
    try:
        deps.products.put(product)
    except Exception:
        if image_payload:
            deps.images.delete_by_url(product["image_url"], tenant_id, codigo)
        raise

    print(f"[CreateProduct] Producto {tenant_id}/{codigo} creado")
    return response(201, {
        "message": "Producto creado exitosamente",
        "product": product
    })


def lambda_handler(event, context, deps=None):
    return run("CreateProduct", event, deps, handle)
