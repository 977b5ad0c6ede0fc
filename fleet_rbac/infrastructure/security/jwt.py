"""JWT verification (and issuance for tooling/tests) carrying the identity context.

Claims: sub (user id), tenant_id, agency_id, user_type. Tokens are issued
by the identity service in production; create_access_token exists for
scripts and tests sharing the same secret.
"""

from datetime import timedelta
from typing import Any, cast

from jose import JWTError, jwt

from fleet_rbac.core.config import get_settings
from fleet_rbac.domain.enums import UserType
from fleet_rbac.domain.exceptions import AuthenticationException
from fleet_rbac.domain.value_objects.identity import IdentityContext
from fleet_rbac.shared.utils.datetime import utc_now


def create_access_token(
    context: IdentityContext,
    expires_delta: timedelta | None = None,
) -> str:
    """Encode an identity context as a signed JWT.

    Args:
        context: Identity to encode.
        expires_delta: Optional TTL; else settings.access_token_expire_minutes.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    expire = utc_now() + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict[str, Any] = {
        "sub": context.user_id,
        "tenant_id": context.tenant_id,
        "agency_id": context.agency_id,
        "user_type": context.user_type.value,
        "exp": expire,
    }
    encoded = jwt.encode(
        claims,
        settings.secret_key.get_secret_value(),
        algorithm=settings.algorithm,
    )
    return cast(str, encoded)


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode a JWT. Enforces exp and sub.

    Raises:
        AuthenticationException: Token invalid, expired or missing claims.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise AuthenticationException(f"Invalid token: {e!s}") from e
    return payload


def identity_from_token(token: str) -> IdentityContext:
    """Decode a bearer token into an IdentityContext."""
    payload = verify_token(token)
    try:
        user_type = UserType(payload.get("user_type") or UserType.STAFF.value)
    except ValueError:
        raise AuthenticationException("Token carries an unknown user_type") from None
    return IdentityContext(
        user_id=payload["sub"],
        tenant_id=payload.get("tenant_id"),
        agency_id=payload.get("agency_id"),
        user_type=user_type,
    )
