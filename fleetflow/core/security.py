"""
Credentials: bcrypt password hashes, the identity provider's JWT bearer
tokens, password-reset tokens, and invitation tokens.

Bearer tokens carry sub (account id), iat, exp, typ="access" and ver, the
account's token_version when the token was minted. Bumping the version
(sign-out, password reset) revokes every token issued before it.
Reset tokens are the same shape with typ="reset", a shorter lifetime and
a random jti. Anything else (wrong signature, expired, another typ, no
sub) decodes to None.
"""
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from fleetflow.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_TYPE = "access"
RESET_TOKEN_TYPE = "reset"
INVITE_TOKEN_BYTES = 32  # 256 bits, ~43 url-safe chars


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _encode(account_id: str, typ: str, version: int, lifetime: timedelta, **extra) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": account_id,
        "typ": typ,
        "ver": version,
        "iat": issued,
        "exp": issued + lifetime,
        **extra,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(
    account_id: str, version: int = 0, lifetime: timedelta | None = None
) -> str:
    lifetime = lifetime or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(account_id, TOKEN_TYPE, version, lifetime)


def create_reset_token(
    account_id: str, version: int = 0, lifetime: timedelta | None = None
) -> str:
    lifetime = lifetime or timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    return _encode(
        account_id, RESET_TOKEN_TYPE, version, lifetime, jti=secrets.token_urlsafe(16)
    )


def decode_token(token: str, typ: str = TOKEN_TYPE) -> dict | None:
    """Claims of a valid, unexpired token of the given type, or None."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if claims.get("typ") != typ or not claims.get("sub"):
        return None
    return claims


def generate_invite_token() -> str:
    return secrets.token_urlsafe(INVITE_TOKEN_BYTES)
