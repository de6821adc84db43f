"""
Identity resolution - bearer JWT to caller credential and permissions
"""
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from fastapi import Request
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from .config import settings
from .errors import AuthenticationError, PermissionDeniedError

WILDCARD_PERMISSION = "*"
ACCESS_TOKEN_COOKIE = "access_token"


class Credential(BaseModel):
    """Acting account/user for authorization and auditing"""
    idAccount: int
    idUser: int
    permissions: List[str] = []

    def as_params(self) -> dict:
        return {"idAccount": self.idAccount, "idUser": self.idUser}

    def has_permission(self, securable: str, permission: str) -> bool:
        granted = set(self.permissions)
        return (
            WILDCARD_PERMISSION in granted
            or f"{securable}:{WILDCARD_PERMISSION}" in granted
            or f"{securable}:{permission}" in granted
        )


def create_access_token(
    id_account: int,
    id_user: int,
    permissions: Iterable[str] = (),
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed access token for an account/user"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {
        "sub": str(id_user),
        "account": id_account,
        "permissions": list(permissions),
        "exp": expire,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Credential:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")

    try:
        return Credential(
            idAccount=payload.get("account"),
            idUser=payload.get("sub"),
            permissions=payload.get("permissions") or [],
        )
    except ValidationError:
        raise AuthenticationError("Token is missing account or user claims")


def extract_bearer_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header"""
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return None


def extract_token(request: Request) -> Optional[str]:
    """Bearer token, falling back to the session cookie set for the web pages"""
    if request.headers.get("Authorization"):
        return extract_bearer_token(request)
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


def resolve_credential(request: Request) -> Credential:
    """Credential for the JSON API, which only accepts the Authorization header"""
    token = extract_bearer_token(request)
    if not token:
        raise AuthenticationError()
    return decode_access_token(token)


def authorize(credential: Credential, rules: Iterable) -> None:
    """Raise unless every (securable, permission) rule is granted"""
    for rule in rules:
        if not credential.has_permission(rule.securable, rule.permission):
            raise PermissionDeniedError(
                f"Missing permission {rule.permission} on {rule.securable}"
            )
