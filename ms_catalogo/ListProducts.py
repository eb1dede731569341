# ListProducts.py (paginado con cursor opaco, PK tenant_id + codigo)
from ms_catalogo.common import authorize, run
from ms_catalogo.cursor import InvalidCursor, decode_cursor, encode_cursor
from ms_catalogo.errors import Err, ErrorKind
from ms_catalogo.utils import response

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def parse_limit(params):
    raw = params.get("limit")
    if raw is None or str(raw).strip() == "":
        return DEFAULT_LIMIT
    try:
        limit = int(str(raw).strip())
    except ValueError:
        return None
    if limit <= 0:
        return None
    return min(limit, MAX_LIMIT)


def handle(event, deps):
    # -------- token obligatorio ----------
    caller = authorize(event, deps)
    if isinstance(caller, Err):
        return caller
    tenant_id = caller.value.tenant_id

    params = event.get("queryStringParameters") or {}
    limit = parse_limit(params)
    if limit is None:
        return Err(ErrorKind.VALIDATION, "limit must be a positive integer", field="limit")

    start_key = None
    token = params.get("lastKey") or params.get("cursor")
    if token:
        try:
            start_key = decode_cursor(token)
        except InvalidCursor:
            return Err(ErrorKind.VALIDATION, "lastKey inválido", field="lastKey")
        # la partición siempre sale del token, nunca del cursor
        if start_key.get("tenant_id") != tenant_id:
            return Err(ErrorKind.VALIDATION, "lastKey inválido", field="lastKey")

    items, last_key = deps.products.query(
        tenant_id,
        limit,
        start_key=start_key,
        active_only=True,
    )

    return response(200, {
        "products": items,
        "count": len(items),
        "nextKey": encode_cursor(last_key) if last_key else None,
        "hasMore": bool(last_key),
    })


def lambda_handler(event, context, deps=None):
    return run("ListProducts", event, deps, handle)
