"""Opaque pagination cursors for DynamoDB queries.

A cursor is the ``LastEvaluatedKey`` of a query, serialized with DynamoDB's
own typed JSON (``{"S": ...}``, ``{"N": ...}``, ``{"B": ...}``) and wrapped
in url-safe base64. The typed form keeps ``Decimal`` and binary key values
intact, and nothing assumes which attributes make up the key, so the same
codec works for the table and for a GSI.
"""

from __future__ import annotations

import base64
import binascii
import json
from urllib.parse import unquote

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()

KEY_TYPES = {"S", "N", "B"}


class InvalidCursor(ValueError):
    """Raised when a client supplied cursor cannot be decoded."""


def _to_json_value(typed: dict) -> dict:
    (type_name, value), = typed.items()
    if type_name not in KEY_TYPES:
        raise TypeError(f"unsupported key attribute type {type_name}")
    if type_name == "B":
        value = base64.b64encode(bytes(value)).decode("ascii")
    return {type_name: value}


def _from_json_value(typed) -> dict:
    if not isinstance(typed, dict) or len(typed) != 1:
        raise InvalidCursor("malformed key attribute")
    (type_name, value), = typed.items()
    if type_name not in KEY_TYPES or not isinstance(value, str):
        raise InvalidCursor("malformed key attribute")
    if type_name == "B":
        try:
            value = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidCursor("malformed binary key attribute") from e
    return {type_name: value}


def encode_cursor(key: dict) -> str:
    """Encode a DynamoDB key (``LastEvaluatedKey``) into an opaque string."""
    payload = {name: _to_json_value(_serializer.serialize(value)) for name, value in key.items()}
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> dict:
    """Decode a cursor produced by :func:`encode_cursor`.

    Raises :class:`InvalidCursor` for anything that is not a well formed
    cursor.
    """
    if not isinstance(token, str) or not token.strip():
        raise InvalidCursor("empty cursor")
    token = unquote(token.strip()).rstrip("=")
    padded = token + "=" * (-len(token) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, UnicodeError, RecursionError) as e:
        raise InvalidCursor("cursor is not valid") from e

    if not isinstance(payload, dict) or not payload:
        raise InvalidCursor("cursor is not valid")

    key = {}
    for name, typed in payload.items():
        try:
            key[name] = _deserializer.deserialize(_from_json_value(typed))
        except InvalidCursor:
            raise
        except (TypeError, ValueError, ArithmeticError) as e:
            raise InvalidCursor("cursor is not valid") from e
    return {name: bytes(value) if isinstance(value, Binary) else value for name, value in key.items()}
