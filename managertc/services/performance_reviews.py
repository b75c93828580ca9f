"""
Performance reviews: the yearly appraisal form of one employee.

The form is free-form JSON from the client. Every section is rebuilt here
from a fixed shape, so stored documents only ever hold known keys with
trimmed strings, clamped scores and ISO dates.
"""

from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func
from sqlmodel import Session

from managertc.core.exceptions import NotFoundError, ValidationError
from managertc.core.logging import get_logger
from managertc.core.tenancy import TenantCollections, normalize_id, resolve
from managertc.models.common import to_naive_utc, utcnow
from managertc.models.performance_review import (
    CANCELLED,
    PerformanceReview,
    PerformanceReviewCreate,
    PerformanceReviewFilters,
    PerformanceReviewUpdate,
    ReviewStatus,
)

logger = get_logger(__name__)

STATUSES = [s.value for s in ReviewStatus]

_datetime = TypeAdapter(datetime)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _number(value: Any, upper: Optional[float] = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    value = max(0, value)
    return min(upper, value) if upper is not None else value


def _yes_no(value: Any) -> str:
    return value if value in ("Yes", "No") else "No"


def _parse_date(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return to_naive_utc(_datetime.validate_python(value))
    except PydanticValidationError:
        return None


def _date_text(value: Any) -> Optional[str]:
    parsed = _parse_date(value)
    return parsed.isoformat() if parsed else None


def _obj(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _each(items: Any, shape: Callable[[dict], dict]) -> list[dict]:
    if not isinstance(items, list):
        return []
    return [shape(_obj(item)) for item in items]


def _score(raw: Any) -> dict:
    raw = _obj(raw)
    return {
        "percentage": _number(raw.get("percentage"), 100),
        "points": _number(raw.get("points")),
    }


def _excellence(label: str, indicator: str) -> Callable[[dict], dict]:
    def shape(item: dict) -> dict:
        return {
            label: _text(item.get(label)),
            indicator: _text(item.get(indicator)),
            "weightage": _number(item.get("weightage"), 100),
            "selfScore": _score(item.get("selfScore")),
            "reportingOfficerScore": _score(item.get("reportingOfficerScore")),
        }

    return shape


def _comments(item: dict) -> dict:
    return {
        key: _text(item.get(key))
        for key in ("selfComment", "reportingOfficerComment", "hodComment")
    }


def _strengths(item: dict) -> dict:
    return {
        "strengths": _text(item.get("strengths")),
        "areasForImprovement": _text(item.get("areasForImprovement")),
    }


def _goal(item: dict) -> dict:
    return {
        "goalAchievedLastYear": _text(item.get("goalAchievedLastYear")),
        "goalSetForCurrentYear": _text(item.get("goalSetForCurrentYear")),
    }


def _answer(raw: Any) -> dict:
    raw = _obj(raw)
    return {"yesNo": _yes_no(raw.get("yesNo")), "details": _text(raw.get("details"))}


def _personal_update(item: dict) -> dict:
    return {
        "category": _text(item.get("category")),
        "lastYear": _answer(item.get("lastYear")),
        "currentYear": _answer(item.get("currentYear")),
    }


def _general_comment(item: dict) -> dict:
    return {key: _text(item.get(key)) for key in ("self", "reportingOfficer", "hod")}


def _ro_entry(item: dict) -> dict:
    return {"category": _text(item.get("category")), **_answer(item)}


def _hrd_entry(item: dict) -> dict:
    return {
        "parameter": _text(item.get("parameter")),
        "availablePoints": _number(item.get("availablePoints")),
        "pointsScored": _number(item.get("pointsScored")),
        "reportingOfficerComment": _text(item.get("reportingOfficerComment")),
    }


def _signature(raw: Any) -> dict:
    raw = _obj(raw)
    return {
        "name": _text(raw.get("name")),
        "signature": _text(raw.get("signature")),
        "date": _date_text(raw.get("date")),
    }


def _employee_info(raw: Any) -> dict:
    raw = _obj(raw)
    officer = _obj(raw.get("reportingOfficer"))
    return {
        "name": _text(raw.get("name")),
        "empId": _text(raw.get("empId")),
        "department": _text(raw.get("department")),
        "designation": _text(raw.get("designation")),
        "qualification": _text(raw.get("qualification")),
        "dateOfJoin": _date_text(raw.get("dateOfJoin")),
        "dateOfConfirmation": _date_text(raw.get("dateOfConfirmation")),
        "previousExperience": _text(raw.get("previousExperience")),
        "reportingOfficer": {
            "name": _text(officer.get("name")),
            "designation": _text(officer.get("designation")),
        },
    }


SECTION_SHAPES: dict[str, Callable[[Any], Any]] = {
    "professional_excellence": lambda v: _each(
        v, _excellence("keyResultArea", "keyPerformanceIndicator")
    ),
    "personal_excellence": lambda v: _each(v, _excellence("personalAttribute", "keyIndicator")),
    "special_initiatives": lambda v: _each(v, _comments),
    "role_alterations": lambda v: _each(v, _comments),
    "strengths_and_improvements": lambda v: {
        who: _each(_obj(v).get(who), _strengths) for who in ("self", "reportingOfficer", "hod")
    },
    "personal_goals": lambda v: _each(v, _goal),
    "personal_updates": lambda v: _each(v, _personal_update),
    "professional_goals": lambda v: {
        when: _each(_obj(v).get(when), _comments)
        for when in ("achievedLastYear", "forthcomingYear")
    },
    "training_requirements": lambda v: _each(v, _comments),
    "general_comments": lambda v: _each(v, _general_comment),
    "ro_use_only": lambda v: _each(v, _ro_entry),
    "hrd_use_only": lambda v: _each(v, _hrd_entry),
    "signatures": lambda v: {
        who: _signature(_obj(v).get(who)) for who in ("employee", "reportingOfficer", "hod", "hrd")
    },
}


def _apply_employee_info(review: PerformanceReview, raw: Any) -> None:
    info = _employee_info(raw)
    review.employee_info = info
    review.department = info["department"]
    review.designation = info["designation"]


def _check_status(status: str) -> str:
    if status not in STATUSES:
        raise ValidationError("Invalid status")
    return status


def _require(collections: TenantCollections, review_id: Any) -> PerformanceReview:
    review_id = normalize_id(review_id, "performance review ID")
    review = collections.performance_reviews.find_one(
        PerformanceReview.id == review_id,
        PerformanceReview.is_deleted == False,  # noqa: E712
    )
    if not review:
        raise NotFoundError("Performance review not found")
    return review


def create(session: Session, company_id: str, payload: PerformanceReviewCreate) -> dict:
    collections = resolve(session, company_id)

    review = PerformanceReview(company_id=company_id, employee_id=_text(payload.employee_id))
    _apply_employee_info(review, payload.employee_info)
    for column, shape in SECTION_SHAPES.items():
        setattr(review, column, shape(getattr(payload, column)))
    period = _obj(payload.review_period)
    now = utcnow()
    review.review_start = _parse_date(period.get("startDate")) or now
    review.review_end = _parse_date(period.get("endDate")) or now

    info = review.employee_info
    if not review.employee_id:
        raise ValidationError("Employee ID is required")
    if not info["name"]:
        raise ValidationError("Employee name is required")
    if not info["empId"]:
        raise ValidationError("Employee ID is required")
    if not info["department"]:
        raise ValidationError("Department is required")
    if not info["designation"]:
        raise ValidationError("Designation is required")
    review.status = _check_status(payload.status or ReviewStatus.DRAFT.value)

    collections.performance_reviews.add(review)
    session.commit()
    session.refresh(review)

    logger.info(f"Performance review {review.id} created for employee {review.employee_id}")
    return review.to_public()


def list_reviews(
    session: Session, company_id: str, filters: Optional[PerformanceReviewFilters] = None
) -> list[dict]:
    """Live reviews newest first; department and designation match as substrings."""
    collections = resolve(session, company_id)
    filters = filters or PerformanceReviewFilters()

    where = [PerformanceReview.is_deleted == False]  # noqa: E712
    if filters.status:
        wanted = filters.status if isinstance(filters.status, list) else [filters.status]
        wanted = [s for s in wanted if s in STATUSES]
        # A lone unknown status is ignored, a list keeps only known ones
        if isinstance(filters.status, list):
            where.append(PerformanceReview.status.in_(wanted))
        elif wanted:
            where.append(PerformanceReview.status == wanted[0])
    if filters.employee_id:
        where.append(PerformanceReview.employee_id == filters.employee_id)
    if filters.department:
        where.append(
            func.lower(PerformanceReview.department).contains(
                filters.department.strip().lower(), autoescape=True
            )
        )
    if filters.designation:
        where.append(
            func.lower(PerformanceReview.designation).contains(
                filters.designation.strip().lower(), autoescape=True
            )
        )
    if filters.start_date:
        where.append(PerformanceReview.created_at >= to_naive_utc(filters.start_date))
    if filters.end_date:
        where.append(PerformanceReview.created_at <= to_naive_utc(filters.end_date))

    reviews = collections.performance_reviews.find(
        *where, order_by=PerformanceReview.created_at.desc()
    )
    return [r.to_public() for r in reviews]


def get(session: Session, company_id: str, review_id: Any) -> dict:
    return _require(resolve(session, company_id), review_id).to_public()


def update(
    session: Session, company_id: str, review_id: Any, payload: PerformanceReviewUpdate
) -> dict:
    collections = resolve(session, company_id)
    review = _require(collections, review_id)
    sent = payload.model_fields_set

    if "status" in sent:
        review.status = _check_status(payload.status)
    if "employee_id" in sent and _text(payload.employee_id):
        review.employee_id = _text(payload.employee_id)
    if "employee_info" in sent:
        _apply_employee_info(review, payload.employee_info)
    for column, shape in SECTION_SHAPES.items():
        if column in sent:
            setattr(review, column, shape(getattr(payload, column)))
    if "review_period" in sent:
        period = _obj(payload.review_period)
        review.review_start = _parse_date(period.get("startDate")) or review.review_start
        review.review_end = _parse_date(period.get("endDate")) or review.review_end
    review.updated_at = utcnow()

    session.add(review)
    session.commit()
    session.refresh(review)

    logger.info(f"Performance review {review.id} updated: {sorted(sent)}")
    return review.to_public()


def delete(session: Session, company_id: str, review_id: Any) -> dict:
    """Soft delete: the review is cancelled and hidden from reads."""
    collections = resolve(session, company_id)
    review = _require(collections, review_id)

    now = utcnow()
    review.status = CANCELLED
    review.is_deleted = True
    review.deleted_at = now
    review.updated_at = now
    session.add(review)
    session.commit()
    session.refresh(review)

    logger.info(f"Performance review {review.id} cancelled")
    return review.to_public()
