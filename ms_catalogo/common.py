"""Steps shared by every catalog handler.

Each handler module defines ``handle(event, deps)`` returning either a
response dict or an ``Err``; ``run`` adds the preflight answer, the default
dependencies, error mapping and the catch-all 500.
"""

from ms_catalogo.auth import authenticate
from ms_catalogo.config import get_deps
from ms_catalogo.errors import Err, ErrorKind, Ok, error_response, internal_error
from ms_catalogo.products import is_visible, normalize_fields
from ms_catalogo.request_fields import extract, inspected_fields
from ms_catalogo.utils import BodyError, is_preflight, parse_body, response

PRODUCT_PATH = "/productos/{codigo}"
IMAGE_PATH = "/productos/{codigo}/imagen"
PRESIGN_PATH = "/productos/{codigo}/imagen/presign"


def authorize(event, deps):
    return authenticate(event, deps.verifier)


def product_code(event, deps, template=PRODUCT_PATH):
    codigo = extract(event, "codigo", template)
    if not codigo:
        detail = inspected_fields(event) if deps.config.debug else None
        return Err(ErrorKind.VALIDATION, "Código de producto requerido", field="codigo", detail=detail)
    return Ok(codigo)


def load_product(deps, tenant_id, codigo, visible_only=False):
    item = deps.products.get(tenant_id, codigo)
    if not item or (visible_only and not is_visible(item)):
        return Err(ErrorKind.NOT_FOUND, "Producto no encontrado")
    return Ok(item)


def read_body(event):
    try:
        return Ok(normalize_fields(parse_body(event)))
    except BodyError as e:
        return Err(ErrorKind.VALIDATION, str(e), field="body")


def run(tag, event, deps, handle):
    if is_preflight(event):
        return response(200, {})

    try:
        deps = deps or get_deps()
        print(f"[{tag}] {event.get('httpMethod') or event.get('routeKey')} {event.get('path') or event.get('rawPath')}")
        result = handle(event, deps)
    except Exception as e:
        print(f"[{tag}] Error: {type(e).__name__}: {str(e)}")
        return internal_error()

    if isinstance(result, Err):
        print(f"[{tag}] {result.kind.name}: {result.message}")
        return error_response(result, debug=deps.config.debug)
    return result
