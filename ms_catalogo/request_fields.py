"""Resolve a route parameter from API Gateway events of varying shape.

REST API (v1) events, HTTP API (v2) events and test consoles do not agree
on where the path parameters end up, so each place is tried in turn by a
small strategy function. The first non-empty value wins.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Callable, Optional
from urllib.parse import unquote

PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\+?\}")


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = unquote(str(value)).strip()
    if not value or PLACEHOLDER.fullmatch(value):
        return None
    return value


@lru_cache(maxsize=64)
def template_regex(template: str):
    """Compile ``/productos/{codigo}/imagen`` into a regex with named groups."""
    pattern = ""
    position = 0
    for match in PLACEHOLDER.finditer(template):
        pattern += re.escape(template[position : match.start()])
        pattern += f"(?P<{match.group(1)}>[^/]+)"
        position = match.end()
    pattern += re.escape(template[position:].rstrip("/"))
    return re.compile(pattern + r"/?$")


def _match(text, name, template) -> Optional[str]:
    if not template or not isinstance(text, str):
        return None
    # routeKey viene como "GET /productos/{codigo}"
    text = text.split(" ", 1)[-1].split("?", 1)[0]
    match = template_regex(template).search(text)
    if not match or name not in match.groupdict():
        return None
    return _clean(match.group(name))


def from_path_parameters(event: dict, name: str, template: str | None = None) -> Optional[str]:
    return _clean((event.get("pathParameters") or {}).get(name))


def from_path_parameters_any_case(event: dict, name: str, template: str | None = None) -> Optional[str]:
    wanted = name.lower()
    for key, value in (event.get("pathParameters") or {}).items():
        if key.lower() == wanted:
            return _clean(value)
    return None


def from_query_string(event: dict, name: str, template: str | None = None) -> Optional[str]:
    return _clean((event.get("queryStringParameters") or {}).get(name))


def from_resource_path(event: dict, name: str, template: str | None = None) -> Optional[str]:
    return _match(event.get("path"), name, template)


def from_raw_path(event: dict, name: str, template: str | None = None) -> Optional[str]:
    context = event.get("requestContext") or {}
    candidates = (
        event.get("rawPath"),
        (context.get("http") or {}).get("path"),
        context.get("path"),
    )
    for candidate in candidates:
        value = _match(candidate, name, template)
        if value:
            return value
    return None


def from_resource_template(event: dict, name: str, template: str | None = None) -> Optional[str]:
    context = event.get("requestContext") or {}
    candidates = (
        event.get("resource"),
        context.get("resourcePath"),
        event.get("routeKey"),
        context.get("routeKey"),
    )
    for candidate in candidates:
        value = _match(candidate, name, template)
        if value:
            return value
    return None


Strategy = Callable[..., Optional[str]]

STRATEGIES: list[Strategy] = [
    from_path_parameters,
    from_path_parameters_any_case,
    from_query_string,
    from_resource_path,
    from_raw_path,
    from_resource_template,
]


def extract(event: dict, name: str, template: str | None = None) -> Optional[str]:
    """Return the value of route parameter ``name`` or ``None``."""
    for strategy in STRATEGIES:
        value = strategy(event, name, template)
        if value:
            return value
    return None


def inspected_fields(event: dict) -> dict:
    """Raw fields looked at by :func:`extract`, for non-production error bodies."""
    context = event.get("requestContext") or {}
    return {
        "pathParameters": event.get("pathParameters"),
        "queryStringParameters": event.get("queryStringParameters"),
        "path": event.get("path"),
        "rawPath": event.get("rawPath"),
        "resource": event.get("resource"),
        "routeKey": event.get("routeKey"),
        "requestContext.resourcePath": context.get("resourcePath"),
        "requestContext.path": context.get("path"),
    }
