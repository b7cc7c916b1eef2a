# taskboard/core/security.py

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Optional, Protocol

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from loguru import logger

from taskboard.core.config import settings
from taskboard.core.errors import Unauthenticated


@dataclass(frozen=True)
class Identity:
    """The caller of a request: a concrete user or the anonymous caller."""

    id: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.id is not None


ANONYMOUS = Identity()


class AuthMode(str, Enum):
    MANDATORY = "mandatory"
    OPTIONAL = "optional"


class InvalidCredentials(Exception):
    """Raised by a CredentialVerifier when it rejects a credential."""


class CredentialVerifier(Protocol):
    async def verify(self, credential: str) -> Identity:
        ...


class JWTCredentialVerifier:
    """Verifies bearer tokens signed with the shared secret."""

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.algorithm = algorithm

    async def verify(self, credential: str) -> Identity:
        try:
            payload = jwt.decode(
                credential,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_aud": False},
            )
        except ExpiredSignatureError as e:
            raise InvalidCredentials("Token has expired") from e
        except JWTError as e:
            raise InvalidCredentials(f"Invalid token: {e}") from e

        subject = payload.get("sub")
        if not subject:
            raise InvalidCredentials("Token has no 'sub' claim")
        return Identity(
            id=str(subject),
            username=payload.get("username"),
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
        )


class IdentityResolver:
    """
    Turns an optional credential into a caller identity.

    MANDATORY: a missing or rejected credential raises Unauthenticated.
    OPTIONAL: a missing credential (None) resolves to ANONYMOUS; a credential
    that is present but empty or rejected still raises Unauthenticated.
    """

    def __init__(self, verifier: CredentialVerifier):
        self.verifier = verifier

    async def resolve(self, credential: Optional[str], mode: AuthMode) -> Identity:
        log = logger.bind(service="IdentityResolver", mode=mode.value)
        if credential is None:
            if mode is AuthMode.MANDATORY:
                log.debug("No credential presented for a mandatory-auth operation.")
                raise Unauthenticated("Not authenticated")
            return ANONYMOUS
        if not credential.strip():
            log.warning("Empty credential presented.")
            raise Unauthenticated("Could not validate credentials")

        try:
            identity = await self.verifier.verify(credential)
        except InvalidCredentials as e:
            log.warning(f"Credential rejected: {e}")
            raise Unauthenticated(str(e)) from e

        log.debug(f"Caller resolved: {identity.id}")
        return identity


def create_access_token(claims: Dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Signs a token for `claims`. Requires a 'sub' claim (the caller id)."""
    if not claims.get("sub"):
        raise ValueError("Missing 'sub' claim in token data for JWT creation")

    to_encode = claims.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": now, "nbf": now})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# --- FastAPI dependencies ---

class BearerCredentialScheme(OAuth2PasswordBearer):
    """
    Extracts the bearer token from the Authorization header.

    A missing header yields None, which the resolver reads as "no credential".
    A header that is present but not `Bearer <token>` (another scheme, a bare
    token, an empty token) is rejected here, never passed on as absent.
    """

    def __init__(self, tokenUrl: str):
        super().__init__(tokenUrl=tokenUrl, auto_error=False)

    async def __call__(self, request: Request) -> Optional[str]:
        authorization = request.headers.get("Authorization")
        if authorization is None:
            return None
        scheme, _, token = authorization.strip().partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            logger.bind(service="BearerCredentialScheme").warning("Malformed Authorization header rejected.")
            raise Unauthenticated("Malformed Authorization header; expected 'Bearer <token>'")
        return token


oauth2_scheme = BearerCredentialScheme(tokenUrl="/auth/login")


def get_identity_resolver() -> IdentityResolver:
    return IdentityResolver(JWTCredentialVerifier(settings.SECRET_KEY, settings.ALGORITHM))


async def get_current_identity(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)],
) -> Identity:
    return await resolver.resolve(token, AuthMode.MANDATORY)


async def get_optional_identity(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)],
) -> Identity:
    return await resolver.resolve(token, AuthMode.OPTIONAL)


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
OptionalIdentity = Annotated[Identity, Depends(get_optional_identity)]
