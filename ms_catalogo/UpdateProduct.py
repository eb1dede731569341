# UpdateProduct.py (actualización parcial + reemplazo de imagen)
from ms_catalogo.common import authorize, load_product, product_code, read_body, run
from ms_catalogo.errors import Err
from ms_catalogo.products import IMAGE_FIELD, PRODUCT_FIELDS
from ms_catalogo.update_plan import build_update_plan
from ms_catalogo.utils import response


def handle(event, deps):
    # -------- 1) token + código ----------
    caller = authorize(event, deps)
    if isinstance(caller, Err):
        return caller
    tenant_id = caller.value.tenant_id

    codigo = product_code(event, deps)
    if isinstance(codigo, Err):
        return codigo
    codigo = codigo.value

    body = read_body(event)
    if isinstance(body, Err):
        return body
    body = body.value

    # -------- 2) el producto tiene que existir ----------
    # también los dados de baja: active=true es la única forma de reactivarlos
    existing = load_product(deps, tenant_id, codigo)
    if isinstance(existing, Err):
        return existing
    existing = existing.value

    # -------- 3) plan de actualización (valida todo antes de escribir) ----------
    plan = build_update_plan(PRODUCT_FIELDS, body)
    if isinstance(plan, Err):
        return plan
    assignments = plan.value

    new_image = None
    if body.get(IMAGE_FIELD):
        new_image = deps.images.ingest(body[IMAGE_FIELD], tenant_id, codigo)
        if isinstance(new_image, Err):
            return new_image
        new_image = new_image.value
        assignments = [(f, v) for f, v in assignments if f != "image_url"]
        assignments.append(("image_url", new_image.public_url))

    # -------- 4) update ----------
    try:
        updated = deps.products.update(tenant_id, codigo, assignments)
    except Exception:
        if new_image:
            deps.images.delete_by_url(new_image.public_url, tenant_id, codigo)
        raise

    # -------- 5) limpiar la imagen anterior (best-effort) ----------
    new_url = dict(assignments).get("image_url", existing.get("image_url"))
    deps.images.replace(existing.get("image_url"), new_url, tenant_id, codigo)

    return response(200, {
        "message": "Producto actualizado exitosamente",
        "product": updated
    })


def lambda_handler(event, context, deps=None):
    return run("UpdateProduct", event, deps, handle)
