"""Socket handlers for performance reviews (``performanceReview:*`` events)."""

from managertc.core.database import session_scope
from managertc.core.rbac import (
    DELETE_PERFORMANCE_REVIEWS,
    MANAGE_PERFORMANCE_REVIEWS,
    VIEW_PERFORMANCE_REVIEWS,
)
from managertc.models import (
    PerformanceReviewCreate,
    PerformanceReviewFilters,
    PerformanceReviewUpdate,
    ok,
)
from managertc.services import performance_reviews as review_service
from managertc.sockets.common import SocketContext, socket_handler

WRITERS_ONLY = "Unauthorized: Admins or Managers only"
ADMINS_ONLY = "Unauthorized: Admins only"


def register_performance_review_handlers(server) -> None:
    @socket_handler(
        server,
        "performanceReview:create",
        capability=MANAGE_PERFORMANCE_REVIEWS,
        denied_message=WRITERS_ONLY,
    )
    async def create_review(ctx: SocketContext, data):
        payload = PerformanceReviewCreate.model_validate(data)
        with session_scope() as session:
            review = review_service.create(session, ctx.company_id, payload)

        result = ok(review)
        await server.emit(
            "performanceReview:performance-review-created", result, room=ctx.room
        )
        return result

    @socket_handler(server, "performanceReview:getAll", capability=VIEW_PERFORMANCE_REVIEWS)
    async def get_reviews(ctx: SocketContext, data):
        filters = PerformanceReviewFilters.model_validate(data)
        with session_scope() as session:
            return ok(review_service.list_reviews(session, ctx.company_id, filters))

    @socket_handler(
        server,
        "performanceReview:getById",
        capability=VIEW_PERFORMANCE_REVIEWS,
        accepts_id=True,
    )
    async def get_review(ctx: SocketContext, data):
        review_id = data.get("performanceReviewId") if isinstance(data, dict) else data
        with session_scope() as session:
            return ok(review_service.get(session, ctx.company_id, review_id))

    @socket_handler(
        server,
        "performanceReview:update",
        capability=MANAGE_PERFORMANCE_REVIEWS,
        denied_message=WRITERS_ONLY,
    )
    async def update_review(ctx: SocketContext, data):
        payload = PerformanceReviewUpdate.model_validate(data.get("update") or {})
        with session_scope() as session:
            review = review_service.update(
                session, ctx.company_id, data.get("performanceReviewId"), payload
            )

        result = ok(review)
        await server.emit(
            "performanceReview:performance-review-updated", result, room=ctx.room
        )
        return result

    @socket_handler(
        server,
        "performanceReview:delete",
        capability=DELETE_PERFORMANCE_REVIEWS,
        denied_message=ADMINS_ONLY,
    )
    async def delete_review(ctx: SocketContext, data):
        with session_scope() as session:
            review = review_service.delete(
                session, ctx.company_id, data.get("performanceReviewId")
            )

        result = ok(review)
        await server.emit(
            "performanceReview:performance-review-deleted", result, room=ctx.room
        )
        return result
