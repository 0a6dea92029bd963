from __future__ import annotations

import secrets

from fastapi import Header

from domain.errors import AuthError


class BearerTokenAuth:
    """
    FastAPI dependency checking ``Authorization: Bearer <token>``.

    With no configured token every request passes.
    """

    def __init__(self, token: str | None) -> None:
        self._token = token or None

    @property
    def enabled(self) -> bool:
        return self._token is not None

    async def __call__(self, authorization: str | None = Header(default=None)) -> None:
        if self._token is None:
            return
        if authorization is None:
            raise AuthError(401, "Missing Authorization header")
        scheme, _, credentials = authorization.partition(" ")
        if scheme != "Bearer" or not secrets.compare_digest(
            credentials.strip().encode("utf-8"), self._token.encode("utf-8")
        ):
            raise AuthError(403, "Invalid or missing token")
