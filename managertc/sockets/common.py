"""
Shared pipeline for socket event handlers.

Every handler goes through the same steps: rate-limit gate, tenant
validation against the identity saved at connect time, capability check,
then the handler body. Failures become ``{done: false, error}`` on
``<event>-response`` (or the client's acknowledgement callback).
"""

from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from managertc.core.cache import hit_rate_window
from managertc.core.config import settings
from managertc.core.exceptions import ForbiddenError, ServiceError, ValidationError
from managertc.core.logging import get_logger
from managertc.core.rbac import ensure_same_tenant, has_capability
from managertc.core.rooms import company_room
from managertc.core.tenancy import COMPANY_ID_PATTERN

logger = get_logger(__name__)

RATE_LIMIT_ERROR = "Rate limit exceeded. Please try again later."
INTERNAL_ERROR = "Internal server error"


@dataclass
class SocketContext:
    """Identity of the socket a handler is serving."""

    sid: str
    company_id: Optional[str]
    user_id: Optional[str]
    role: str
    snapshot: dict = field(default_factory=dict)

    @property
    def room(self) -> str:
        return company_room(self.company_id)


def session_from_identity(user) -> dict:
    """The socket session saved at connect from a decoded token."""
    return {
        "companyId": user.company_id,
        "userMetadata": user.user_metadata(),
        "user": {"sub": user.sub},
        "role": user.role,
        "snapshot": user.snapshot(),
    }


def check_rate_limit(sid: str, session: dict) -> bool:
    if settings.is_development:
        return True
    user_id = (session.get("user") or {}).get("sub") or sid
    return hit_rate_window(
        f"socket_rate:{user_id}",
        settings.SOCKET_RATE_LIMIT,
        settings.SOCKET_RATE_WINDOW_SECONDS,
    )


def validate_access(sid: str, session: dict) -> SocketContext:
    """
    Check the socket's company id against the identity it connected with.

    Raises:
        ValidationError: company id missing or malformed
        ForbiddenError: company id differs from the user metadata
    """
    company_id = session.get("companyId")
    user_id = (session.get("user") or {}).get("sub")
    if not company_id:
        logger.error(f"Company ID not found in user metadata for user {user_id}")
        raise ValidationError("Company ID not found in user metadata")
    if not COMPANY_ID_PATTERN.match(str(company_id)):
        logger.error(f"Invalid company ID format: {company_id}")
        raise ValidationError("Invalid company ID format")
    ensure_same_tenant((session.get("userMetadata") or {}).get("companyId"), company_id)
    return _context(sid, session)


def _first_error(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if not location:
        return first.get("msg", "Invalid data")
    return f"Invalid {location}: {first.get('msg')}"


def _context(sid: str, session: dict) -> SocketContext:
    return SocketContext(
        sid=sid,
        company_id=session.get("companyId"),
        user_id=(session.get("user") or {}).get("sub"),
        role=session.get("role") or "guest",
        snapshot=session.get("snapshot") or {},
    )


def socket_handler(
    server,
    event: str,
    *,
    capability: Optional[str] = None,
    denied_message: str = "Insufficient permissions",
    tenant: bool = True,
    ack: bool = False,
    accepts_id: bool = False,
) -> Callable:
    """
    Register ``func(ctx, data)`` for ``event`` on ``server``.

    ``data`` reaches the handler as a dict (``{}`` when omitted); any other
    payload is refused, except a bare string or integer id when ``accepts_id``
    is set. The returned dict is emitted as ``<event>-response`` to the
    sender, or handed back to the client's callback when ``ack`` is set.
    """

    def decorator(func: Callable[[SocketContext, Any], Awaitable[dict]]):
        @wraps(func)
        async def handler(sid, data=None):
            session = await server.get_session(sid)
            try:
                if not check_rate_limit(sid, session):
                    logger.warning(f"Rate limit hit on {event} by {sid}")
                    result = {"done": False, "error": RATE_LIMIT_ERROR}
                else:
                    ctx = validate_access(sid, session) if tenant else _context(sid, session)
                    if capability and not has_capability(ctx.role, capability):
                        logger.warning(f"Role '{ctx.role}' denied {event}")
                        raise ForbiddenError(denied_message)
                    payload = {} if data is None else data
                    if not isinstance(payload, dict) and not (
                        accepts_id and isinstance(payload, (str, int))
                    ):
                        raise ValidationError("Invalid payload")
                    result = await func(ctx, payload)
            except ServiceError as e:
                logger.warning(f"{event} failed: {e.message}")
                result = {"done": False, "error": e.message}
            except PydanticValidationError as e:
                logger.warning(f"{event} rejected payload: {e.errors()}")
                result = {"done": False, "error": _first_error(e)}
            except Exception as e:
                logger.error(f"Unexpected error in {event}: {e}", exc_info=True)
                result = {"done": False, "error": INTERNAL_ERROR}

            if ack:
                return result
            await server.emit(f"{event}-response", result, to=sid)

        server.on(event, handler)
        return func

    return decorator
