from dataclasses import dataclass
from typing import Annotated, Optional
import uuid
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from dairy_billing.database import get_db
from dairy_billing.core.security import verify_access_token


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer()

ROLE_ADMIN = "admin"
ROLE_CUSTOMER = "customer"


@dataclass(frozen=True)
class Caller:
    """Authenticated caller, taken from the token claims."""
    subject: str
    role: str
    customer_id: Optional[uuid.UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def can_access_customer(self, customer_id: uuid.UUID) -> bool:
        return self.is_admin or self.customer_id == customer_id


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Caller:
    """
    Dependency to get the current authenticated caller.

    Tokens are issued by the authentication service; only the signature,
    the token type and the role claims are checked here.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    claims = verify_access_token(credentials.credentials)
    if claims is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise credentials_exception

    role = claims.get("role")
    if role not in (ROLE_ADMIN, ROLE_CUSTOMER):
        logger.warning(f"Unknown role in token: {role}")
        raise credentials_exception

    customer_id = None
    if role == ROLE_CUSTOMER:
        try:
            customer_id = uuid.UUID(str(claims.get("customer_id")))
        except ValueError:
            logger.warning(f"Invalid customer_id in token for subject {claims['sub']}")
            raise credentials_exception

    return Caller(subject=str(claims["sub"]), role=role, customer_id=customer_id)


async def require_admin(
    caller: Annotated[Caller, Depends(get_current_user)],
) -> Caller:
    """
    Dependency requiring the admin role.

    Usage:
        @router.post("/generate")
        async def generate(caller: AdminUser):
            ...
    """
    if not caller.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Permission denied. Admin role required"
        )
    return caller


def ensure_customer_access(caller: Caller, customer_id: uuid.UUID) -> None:
    """Customers may only see their own bills, statement and reconciliation."""
    if not caller.can_access_customer(customer_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Permission denied for this customer"
        )


# Type aliases for cleaner endpoint signatures
CurrentUser = Annotated[Caller, Depends(get_current_user)]
AdminUser = Annotated[Caller, Depends(require_admin)]
DB = Annotated[AsyncSession, Depends(get_db)]
