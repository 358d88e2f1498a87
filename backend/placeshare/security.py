"""
Bearer-token authorization for mutating place operations.

Tokens are JWT-shaped strings (``header.payload.signature``, each part
base64url encoded) signed with HMAC-SHA256 using ``settings.secret_key``.
The payload carries ``sub`` (the user id) and ``exp`` (UNIX expiry).
``TokenAuthorizer.authorize`` turns a credential into a caller identity or
raises ``UnauthorizedError``; ``get_current_user_id`` exposes that as a
FastAPI dependency.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from placeshare.config import settings
from placeshare.exceptions import UnauthorizedError


def _b64_url_encode(data: bytes) -> str:
    """Base64-url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64-url encoded string, adding padding if necessary."""
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


class TokenAuthorizer:
    """
    Issues and verifies signed bearer tokens.

    Parameters
    ----------
    secret_key : str, optional
        Signing secret. Defaults to ``settings.secret_key``.
    """

    def __init__(self, secret_key: Optional[str] = None):
        self.secret_key = secret_key or settings.secret_key

    def create_token(self, user_id: str, expires_in: Optional[int] = None) -> str:
        """Return a token for ``user_id`` valid for ``expires_in`` seconds."""
        exp_seconds = expires_in if expires_in is not None else settings.access_token_expire_minutes * 60
        payload = {"sub": user_id, "exp": int(time.time()) + exp_seconds}
        header = {"alg": "HS256", "typ": "JWT"}
        header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
        payload_b64 = _b64_url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        signature_b64 = _b64_url_encode(_sign(signing_input, self.secret_key))
        return f"{header_b64}.{payload_b64}.{signature_b64}"

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Verify the signature and expiry of ``token`` and return its payload.

        Raises
        ------
        UnauthorizedError
            Malformed token, bad signature, or expired.
        """
        parts = token.split(".")
        if len(parts) != 3:
            raise UnauthorizedError(context={"reason": "malformed"})
        header_b64, payload_b64, signature_b64 = parts
        signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
        try:
            actual_sig = _b64_url_decode(signature_b64)
            payload = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
        except (binascii.Error, ValueError) as e:
            raise UnauthorizedError(context={"reason": "malformed"}) from e

        # Constant-time comparison
        if not hmac.compare_digest(_sign(signing_input, self.secret_key), actual_sig):
            raise UnauthorizedError(context={"reason": "bad_signature"})
        if not isinstance(payload, dict):
            raise UnauthorizedError(context={"reason": "malformed"})
        exp = payload.get("exp")
        if not isinstance(exp, int) or exp < int(time.time()):
            raise UnauthorizedError(context={"reason": "expired"})
        return payload

    def authorize(self, credential: Optional[str]) -> str:
        """
        Resolve a bearer credential to the caller's user id.

        Raises
        ------
        UnauthorizedError
            No credential, or one that does not verify or names no subject.
        """
        if not credential:
            raise UnauthorizedError(context={"reason": "missing"})
        subject = self.decode(credential).get("sub")
        if not isinstance(subject, str) or not subject:
            raise UnauthorizedError(context={"reason": "no_subject"})
        return subject


authorizer = TokenAuthorizer()

bearer_scheme = HTTPBearer(auto_error=False)


def get_authorizer() -> TokenAuthorizer:
    return authorizer


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    token_authorizer: TokenAuthorizer = Depends(get_authorizer),
) -> str:
    """Dependency yielding the authenticated caller's user id."""
    return token_authorizer.authorize(credentials.credentials if credentials else None)
