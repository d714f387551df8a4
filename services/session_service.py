"""
Bearer session tokens.

HS256 JWTs signed with the process-wide secret from JWTSettings. Tokens carry
the account id in ``sub`` and expire after 30 days. There is no revocation
list: a token stays valid until it expires or the secret changes.
"""

from __future__ import annotations

from datetime import timedelta

import jwt

from config import JWTSettings
from errors import UnauthorizedError
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)

_ALGORITHM = "HS256"


class SessionTokenService:
    def __init__(self, settings: JWTSettings) -> None:
        if not settings.jwt_secret:
            raise RuntimeError("JWT_SECRET must be set to issue session tokens")
        self._secret = settings.jwt_secret
        self._issuer = settings.jwt_issuer
        self._audience = settings.jwt_audience
        self.ttl_seconds = settings.session_token_ttl_seconds

    def issue(self, account_id: str) -> str:
        now = utcnow()
        claims = {
            "iss": self._issuer,
            "aud": self._audience,
            "sub": str(account_id),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.ttl_seconds)).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> str:
        """Return the account id inside *token*.

        Raises:
            UnauthorizedError: bad signature, malformed, expired, or wrong
                issuer/audience.
        """
        if not token:
            raise UnauthorizedError("Not authorized, no token")
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            log.info("session_token_rejected", reason="expired")
            raise UnauthorizedError("Session expired, please log in again")
        except jwt.InvalidTokenError as e:
            log.warning(
                "session_token_rejected", reason="invalid", error_type=type(e).__name__
            )
            raise UnauthorizedError()
        return claims["sub"]
