from typing import Annotated, Callable

from fastapi import Depends
from sqlmodel import Session

from managertc.core.database import get_session
from managertc.core.exceptions import ForbiddenError
from managertc.core.rbac import authorize
from managertc.core.security import TokenData, get_current_user

SessionDep = Annotated[Session, Depends(get_session)]
CurrentUserDep = Annotated[TokenData, Depends(get_current_user)]


def get_company_id(current_user: CurrentUserDep) -> str:
    """The caller's tenant; every tenant-scoped route resolves through it."""
    if not current_user.company_id:
        raise ForbiddenError("Company ID not found in user metadata")
    return current_user.company_id


CompanyIdDep = Annotated[str, Depends(get_company_id)]


def require_capability(capability: str) -> Callable[..., TokenData]:
    """
    Dependency factory: resolve the caller and reject them unless their role
    carries ``capability``.
    """

    def checker(current_user: CurrentUserDep) -> TokenData:
        authorize(current_user.role, capability)
        return current_user

    return checker
