import base64
import json
from decimal import Decimal
from email import policy
from email.parser import BytesParser

# ---------------------------
# Utils: limpieza de Decimals
# ---------------------------
def clean_decimals(obj):
    if isinstance(obj, list):
        return [clean_decimals(i) for i in obj]
    if isinstance(obj, dict):
        return {k: clean_decimals(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        # si es número entero, devuelve int; si no, float
        return int(obj) if obj % 1 == 0 else float(obj)
    return obj


# ---------------------------
# Utils: respuestas API Gateway
# ---------------------------
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": (
        "Content-Type,X-Amz-Date,Authorization,X-Api-Key,"
        "X-Amz-Security-Token"
    ),
    "Access-Control-Allow-Methods": "OPTIONS,GET,POST,PUT,DELETE"
}


def response(status, body):
    body = clean_decimals(body)
    return {
        "statusCode": status,
        "headers": dict(CORS_HEADERS),
        "body": json.dumps(body, default=str)
    }


def is_preflight(event):
    method = event.get("httpMethod") or (
        ((event.get("requestContext") or {}).get("http") or {}).get("method")
    )
    return (method or "").upper() == "OPTIONS"


def header(event, name):
    """Case-insensitive header lookup (API Gateway v1 keeps the client's casing)."""
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


# ---------------------------
# Utils: parseo del body
# ---------------------------
class BodyError(ValueError):
    """Raised when the request body cannot be parsed."""


def raw_body(event):
    body = event.get("body")
    if body is None:
        return b""
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body)
        except (ValueError, TypeError) as e:
            raise BodyError("Body is not valid base64") from e
    if isinstance(body, bytes):
        return body
    return body.encode("utf-8")


def parse_body(event):
    """
    Devuelve el body como dict.

    Soporta JSON (floats como Decimal, igual que CreateOrder) y
    multipart/form-data; en multipart los archivos se devuelven en base64
    bajo el nombre del campo para que sigan el mismo camino que una imagen
    enviada en JSON.
    """
    content_type = header(event, "content-type") or ""
    data = raw_body(event)

    if content_type.lower().startswith("multipart/form-data"):
        return parse_multipart(data, content_type)

    if not data.strip():
        return {}
    try:
        body = json.loads(data, parse_float=Decimal)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BodyError("Invalid JSON body") from e
    if not isinstance(body, dict):
        raise BodyError("JSON body must be an object")
    return body


def parse_multipart(data, content_type):
    envelope = b"Content-Type: " + content_type.encode("latin-1") + b"\r\n\r\n" + data
    message = BytesParser(policy=policy.HTTP).parsebytes(envelope)
    if not message.is_multipart():
        raise BodyError("Malformed multipart body")

    fields = {}
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if not name:
            continue
        payload = part.get_payload(decode=True) or b""
        if part.get_filename():
            fields[name] = base64.b64encode(payload).decode("ascii")
        else:
            charset = part.get_content_charset() or "utf-8"
            fields[name] = payload.decode(charset, errors="replace")
    return fields
