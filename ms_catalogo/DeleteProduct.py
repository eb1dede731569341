# DeleteProduct.py (eliminación lógica o física según DELETE_POLICY)
from ms_catalogo.common import authorize, load_product, product_code, run
from ms_catalogo.errors import Err
from ms_catalogo.update_plan import now_iso
from ms_catalogo.utils import response


def handle(event, deps):
    caller = authorize(event, deps)
    if isinstance(caller, Err):
        return caller
    tenant_id = caller.value.tenant_id

    codigo = product_code(event, deps)
    if isinstance(codigo, Err):
        return codigo
    codigo = codigo.value

    # -------- verificar que exista (y que no esté ya dado de baja) ----------
    existing = load_product(deps, tenant_id, codigo, visible_only=deps.config.soft_delete)
    if isinstance(existing, Err):
        return existing
    existing = existing.value

    # -------- imagen: best-effort, no bloquea el borrado ----------
    if existing.get("image_url"):
        deps.images.delete_by_url(existing["image_url"], tenant_id, codigo)

    if deps.config.soft_delete:
        product = deps.products.update(tenant_id, codigo, [
            ("updated_at", now_iso()),
            ("active", False),
            ("image_url", None),
        ])
    else:
        product = deps.products.delete(tenant_id, codigo) or existing

    print(f"[DeleteProduct] Producto {tenant_id}/{codigo} eliminado ({deps.config.delete_policy})")
    return response(200, {
        "message": "Producto eliminado exitosamente",
        "product": product
    })


def lambda_handler(event, context, deps=None):
    return run("DeleteProduct", event, deps, handle)
