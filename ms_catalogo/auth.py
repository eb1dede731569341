"""Bearer token verification.

Tokens are HS256 JWTs signed with the shared ``JWT_SECRET``; the tenant
comes from the verified claims and never from the request body.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

from ms_catalogo.errors import Err, ErrorKind, Ok, TokenError
from ms_catalogo.utils import header

FALLBACK_TENANT_CLAIM = "custom:tenant_id"


@dataclass(frozen=True)
class Caller:
    tenant_id: str
    claims: dict


def bearer_token(event) -> str | None:
    value = header(event, "authorization")
    if not value or not isinstance(value, str):
        return None
    scheme, _, token = value.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class TokenVerifier:
    def __init__(
        self,
        secret: str | None,
        algorithms: Sequence[str] = ("HS256",),
        tenant_claim: str = "tenant_id",
    ):
        self.secret = secret
        self.algorithms = list(algorithms)
        self.tenant_claim = tenant_claim

    def verify(self, token: str):
        """Return ``Ok(claims)`` or ``Err(AUTH)`` with a :class:`TokenError` reason."""
        if not self.secret:
            return Err(ErrorKind.AUTH, "Token verification is not configured", reason=TokenError.INVALID)
        try:
            claims = jwt.decode(token, self.secret, algorithms=self.algorithms)
        except ExpiredSignatureError:
            return Err(ErrorKind.AUTH, "Token expirado", reason=TokenError.EXPIRED)
        except JWTClaimsError:
            return Err(ErrorKind.AUTH, "Token inválido", reason=TokenError.INVALID)
        except JWTError:
            return Err(ErrorKind.AUTH, "Token inválido", reason=TokenError.MALFORMED)
        return Ok(claims)

    def tenant_of(self, claims: dict[str, Any]) -> str | None:
        tenant_id = claims.get(self.tenant_claim) or claims.get(FALLBACK_TENANT_CLAIM)
        if tenant_id is None:
            return None
        tenant_id = str(tenant_id).strip()
        return tenant_id or None


def authenticate(event, verifier: TokenVerifier):
    """Verify the request's bearer token and return ``Ok(Caller)``."""
    token = bearer_token(event)
    if not token:
        return Err(ErrorKind.AUTH, "Token requerido", reason=TokenError.MISSING)

    result = verifier.verify(token)
    if isinstance(result, Err):
        return result

    tenant_id = verifier.tenant_of(result.value)
    if not tenant_id:
        return Err(ErrorKind.AUTH, "Token sin tenant_id", reason=TokenError.INVALID)
    return Ok(Caller(tenant_id=tenant_id, claims=result.value))
