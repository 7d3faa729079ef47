"""Admin bearer tokens.

A token is `<claims>.<mac>`, both parts unpadded urlsafe base64. The claims
are a JSON object carrying `role`, `sub` and an absolute `exp`; the mac is
HMAC-SHA256 of the encoded claims under `SECRET_KEY`.
"""
# surveydesk/core/security.py
import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Optional

from fastapi import HTTPException, Request, status

ADMIN_ROLE = "admin"


class TokenSigner:
    def __init__(self, secret: str):
        self._key = secret.encode()

    def _mac(self, body: str) -> str:
        digest = hmac.new(self._key, body.encode("ascii"), hashlib.sha256).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

    def dumps(self, claims: dict, ttl_sec: int) -> str:
        claims = {**claims, "exp": int(time.time()) + int(ttl_sec)}
        packed = json.dumps(claims, separators=(",", ":"), sort_keys=True).encode()
        body = base64.urlsafe_b64encode(packed).decode("ascii").rstrip("=")
        return f"{body}.{self._mac(body)}"

    def loads(self, token: str) -> Optional[dict]:
        """Return the claims of a genuine, unexpired token, else None."""
        body, sep, mac = token.partition(".")
        if not sep or not body.isascii() or not mac.isascii():
            return None
        if not hmac.compare_digest(mac, self._mac(body)):
            return None
        try:
            claims = json.loads(base64.urlsafe_b64decode(body + "=" * (-len(body) % 4)))
        except (binascii.Error, ValueError):
            return None
        if not isinstance(claims, dict):
            return None
        exp = claims.get("exp")
        if not isinstance(exp, int) or exp < time.time():
            return None
        return claims


def sign_token(payload: dict, secret: str, ttl_sec: int) -> str:
    return TokenSigner(secret).dumps(payload, ttl_sec)


def verify_token(token: str, secret: str) -> Optional[dict]:
    return TokenSigner(secret).loads(token)


def issue_admin_token(secret: str, ttl_sec: int, subject: str = "admin") -> str:
    return sign_token({"role": ADMIN_ROLE, "sub": subject}, secret, ttl_sec)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_admin(request: Request) -> dict:
    """FastAPI dependency: accept only `Authorization: Bearer <admin token>`."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Bearer token required")

    claims = verify_token(token, request.app.state.settings.SECRET_KEY)
    if claims is None or claims.get("role") != ADMIN_ROLE:
        raise _unauthorized("Unauthorized admin")
    return claims
