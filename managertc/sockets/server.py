"""
Socket.IO server.

Connections authenticate with ``auth.token``; the decoded identity is kept
in the socket session and the socket joins its company room.
"""

import jwt
import socketio

from managertc.core.config import settings
from managertc.core.logging import get_logger
from managertc.core.rooms import company_room
from managertc.core.security import decode_token
from managertc.sockets.common import session_from_identity
from managertc.sockets.invoices import register_invoice_handlers
from managertc.sockets.jobs import register_job_handlers
from managertc.sockets.kanban import register_kanban_handlers
from managertc.sockets.notes import register_note_handlers
from managertc.sockets.performance_reviews import register_performance_review_handlers

logger = get_logger(__name__)


async def authenticate(server, sid: str, auth) -> dict:
    token = (auth or {}).get("token")
    if not token:
        logger.warning(f"Socket {sid} connected without a token")
        raise socketio.exceptions.ConnectionRefusedError("Authentication token required")
    try:
        user = decode_token(token)
    except (jwt.PyJWTError, KeyError) as e:
        logger.warning(f"Socket {sid} token rejected: {e}")
        raise socketio.exceptions.ConnectionRefusedError("Invalid authentication token")

    session = session_from_identity(user)
    await server.save_session(sid, session)
    if user.company_id:
        await server.enter_room(sid, company_room(user.company_id))
    logger.info(f"Socket {sid} connected as {user.sub} ({user.role}) for {user.company_id}")
    return session


def register_handlers(server) -> None:
    register_job_handlers(server)
    register_invoice_handlers(server)
    register_note_handlers(server)
    register_performance_review_handlers(server)
    register_kanban_handlers(server)


def create_socket_server() -> socketio.AsyncServer:
    server = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=settings.cors_origins_list,
        logger=settings.DEBUG,
    )

    @server.event
    async def connect(sid, environ, auth=None):
        await authenticate(server, sid, auth)

    @server.event
    async def disconnect(sid, reason=None):
        logger.info(f"Socket {sid} disconnected")

    register_handlers(server)
    return server


sio = create_socket_server()
