from __future__ import annotations

import jwt

from sewcraft.application.dto.auth import AccessTokenPayload
from sewcraft.application.ports.token_port import TokenPort


ACCESS_TOKEN_AUDIENCE = "authenticated"


class JwtTokenService(TokenPort):
    """Verifies access tokens issued by the hosted identity service."""

    def __init__(self, *, jwt_secret: str, audience: str = ACCESS_TOKEN_AUDIENCE):
        self._jwt_secret = jwt_secret
        self._audience = audience

    def decode_access_token(self, *, token: str) -> AccessTokenPayload:
        try:
            payload = jwt.decode(
                token,
                self._jwt_secret,
                algorithms=["HS256"],
                audience=self._audience,
            )
        except jwt.PyJWTError as exc:
            raise ValueError("Invalid or expired token.") from exc

        user_id = payload.get("sub")
        if not user_id or not isinstance(user_id, str):
            raise ValueError("Invalid token subject.")

        email = payload.get("email")
        return AccessTokenPayload(user_id=user_id, email=email if isinstance(email, str) else None)
