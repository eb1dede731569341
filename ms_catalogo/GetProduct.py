from ms_catalogo.common import authorize, load_product, product_code, run
from ms_catalogo.errors import Err
from ms_catalogo.utils import response


def handle(event, deps):
    caller = authorize(event, deps)
    if isinstance(caller, Err):
        return caller

    codigo = product_code(event, deps)
    if isinstance(codigo, Err):
        return codigo

    # inactivo == inexistente para quien lee
    product = load_product(deps, caller.value.tenant_id, codigo.value, visible_only=True)
    if isinstance(product, Err):
        return product
    return response(200, {"product": product.value})


def lambda_handler(event, context, deps=None):
    return run("GetProduct", event, deps, handle)
