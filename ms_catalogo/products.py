"""Product model: updatable fields, legacy aliases, codes and the item built on create."""

from __future__ import annotations

import random
import string
import time
from typing import Any, Mapping

from ms_catalogo.errors import Err, ErrorKind, Ok
from ms_catalogo.update_plan import Rule, coerce_fields

# Campos actualizables, en el orden en que se validan
PRODUCT_FIELDS = [
    ("name", Rule.NON_EMPTY_STRING),
    ("description", Rule.NON_EMPTY_STRING),
    ("category", Rule.IDENTITY),
    ("manufacturer", Rule.IDENTITY),
    ("price", Rule.POSITIVE_NUMBER),
    ("stock", Rule.NON_NEGATIVE_INT),
    ("active_ingredient", Rule.IDENTITY),
    ("concentration", Rule.IDENTITY),
    ("dosage_form", Rule.IDENTITY),
    ("presentation", Rule.IDENTITY),
    ("sanitary_registration", Rule.IDENTITY),
    ("requires_prescription", Rule.BOOLEAN),
    ("expiration_date", Rule.IDENTITY),
    ("contraindications", Rule.IDENTITY),
    ("indications", Rule.IDENTITY),
    ("image_url", Rule.IDENTITY),
    ("active", Rule.BOOLEAN),
]

REQUIRED_FIELDS = ["name", "price", "description"]

# Nombres que todavía mandan los clientes antiguos
FIELD_ALIASES = {
    "nombre": "name",
    "descripcion": "description",
    "categoria": "category",
    "laboratorio": "manufacturer",
    "precio": "price",
    "principio_activo": "active_ingredient",
    "concentracion": "concentration",
    "forma_farmaceutica": "dosage_form",
    "presentacion": "presentation",
    "registro_sanitario": "sanitary_registration",
    "requiere_receta": "requires_prescription",
    "fecha_vencimiento": "expiration_date",
    "contraindicaciones": "contraindications",
    "indicaciones": "indications",
    "imagen_url": "image_url",
    "imagen": "image",
    "activo": "active",
}

IMAGE_FIELD = "image"

CODE_ALPHABET = string.digits + string.ascii_lowercase


def normalize_fields(body: Mapping[str, Any]) -> dict:
    """Map legacy field names onto the canonical ones; canonical names win."""
    normalized = {}
    for key, value in body.items():
        canonical = FIELD_ALIASES.get(key, key)
        if canonical != key and canonical in body:
            continue
        normalized[canonical] = value
    return normalized


def _base36(number: int) -> str:
    digits = []
    while True:
        number, rem = divmod(number, 36)
        digits.append(CODE_ALPHABET[rem])
        if not number:
            break
    return "".join(reversed(digits))


def generate_code(prefix: str = "MED") -> str:
    # tiempo + sufijo aleatorio, sin verificar existencia previa
    timestamp = _base36(int(time.time() * 1000))
    suffix = "".join(random.choices(CODE_ALPHABET, k=6))
    return f"{prefix}-{timestamp}-{suffix}".upper()


def missing_required(body: Mapping[str, Any]) -> str | None:
    for field in REQUIRED_FIELDS:
        value = body.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            return field
    return None


def new_product(tenant_id: str, codigo: str, body: Mapping[str, Any], now: str):
    """
    Valida el body de creación y arma el item completo.

    Devuelve Ok(item) o Err(VALIDATION) con el primer campo inválido.
    """
    field = missing_required(body)
    if field:
        return Err(ErrorKind.VALIDATION, f"Campo requerido: {field}", field=field)

    result = coerce_fields(PRODUCT_FIELDS, body)
    if isinstance(result, Err):
        return result

    item = {"tenant_id": tenant_id, "codigo": codigo}
    item.update(result.value)
    item.setdefault("stock", 0)
    item.setdefault("requires_prescription", False)
    item["image_url"] = item.get("image_url") or None
    item["active"] = True
    item["created_at"] = now
    item["updated_at"] = now
    return Ok(item)


def is_visible(item: Mapping[str, Any] | None) -> bool:
    return bool(item) and item.get("active", True) is not False
