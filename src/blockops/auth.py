"""
Bearer credential verification and issuance (HS256 JWTs via PyJWT).
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from collections.abc import Mapping
from typing import Any, Protocol

import jwt

from .config import AuthConfig, load_env
from .config.settings import Settings

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Mapping[str, Any] | None:
        """Return the token's claims, or None when it is not acceptable."""
        ...


def extract_bearer_token(authorization: str | None) -> str | None:
    authz = authorization or ""
    if not authz.lower().startswith("bearer "):
        return None
    token = authz.split(" ", 1)[1].strip()
    return token if token else None


class JwtTokenService:
    """Verifies and issues signed tokens carrying an ``email`` claim."""

    def __init__(self, secret: str, *, algorithm: str = "HS256", ttl_days: int = 365) -> None:
        if not secret:
            raise ValueError("JWT secret cannot be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl_seconds = ttl_days * SECONDS_PER_DAY

    @classmethod
    def from_config(cls, config: AuthConfig) -> JwtTokenService | None:
        if not config.jwt_secret:
            return None
        return cls(config.jwt_secret, algorithm=config.algorithm, ttl_days=config.token_ttl_days)

    async def verify(self, token: str) -> dict[str, Any] | None:
        return self.decode(token)

    def decode(self, token: str) -> dict[str, Any] | None:
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as exc:
            logger.debug("Token rejected: %s", exc)
            return None
        return claims if isinstance(claims, dict) else None

    def issue(self, email: str, *, ttl_seconds: int | None = None, now: int | None = None) -> str:
        issued_at = int(now if now is not None else time.time())
        expires_at = issued_at + (ttl_seconds if ttl_seconds is not None else self._ttl_seconds)
        return jwt.encode({"email": email, "iat": issued_at, "exp": expires_at}, self._secret, algorithm=self._algorithm)


def main(argv: list[str] | None = None) -> int:
    """Mint a token for an email address using the configured secret."""
    parser = argparse.ArgumentParser(prog="blockops-token", description="Issue a blockops access token.")
    parser.add_argument("email", help="email claim to embed in the token")
    parser.add_argument("--secret", help="signing secret (defaults to BLOCKOPS_JWT_SECRET)")
    parser.add_argument("--days", type=int, help="validity in days (defaults to BLOCKOPS_JWT_TTL_DAYS or 365)")
    args = parser.parse_args(argv)

    load_env()
    try:
        config = Settings.from_env().auth
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2
    secret = args.secret or config.jwt_secret
    if not secret:
        print("No signing secret: pass --secret or set BLOCKOPS_JWT_SECRET", file=sys.stderr)
        return 1
    if "@" not in args.email:
        print(f"Not an email address: {args.email}", file=sys.stderr)
        return 1

    service = JwtTokenService(secret, algorithm=config.algorithm, ttl_days=args.days or config.token_ttl_days)
    print(service.issue(args.email))
    return 0


if __name__ == "__main__":
    sys.exit(main())
