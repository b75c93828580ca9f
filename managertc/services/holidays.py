from typing import Optional

from sqlalchemy import func
from sqlmodel import Session

from managertc.core.exceptions import ConflictError, NotFoundError, ValidationError
from managertc.core.logging import get_logger
from managertc.core.tenancy import TenantCollections, normalize_id, resolve
from managertc.models.common import utcnow
from managertc.models.holiday import (
    DEFAULT_HOLIDAY_TYPES,
    Holiday,
    HolidayCreate,
    HolidayType,
    HolidayTypeCreate,
    HolidayTypeUpdate,
    normalize_holiday_type_status,
)

logger = get_logger(__name__)


# =============================================================================
# Holiday Types
# =============================================================================


def _type_name(raw: Optional[str]) -> str:
    if raw is None:
        raise ValidationError("Holiday type name is required")
    name = raw.strip()
    if not name:
        raise ValidationError("Holiday type name cannot be empty")
    return name


def _type_exists(
    collections: TenantCollections, name: str, exclude_id: Optional[int] = None
) -> bool:
    where = [func.lower(HolidayType.name) == name.lower()]
    if exclude_id is not None:
        where.append(HolidayType.id != exclude_id)
    return collections.holiday_types.count(*where) > 0


def list_types(session: Session, company_id: str) -> list[dict]:
    collections = resolve(session, company_id)
    types = collections.holiday_types.find(order_by=HolidayType.name)
    return [t.to_public() for t in types]


def create_type(
    session: Session, company_id: str, actor_id: Optional[str], payload: HolidayTypeCreate
) -> dict:
    collections = resolve(session, company_id)
    name = _type_name(payload.name)

    if _type_exists(collections, name):
        raise ConflictError("This holiday type already exists")

    holiday_type = HolidayType(
        company_id=company_id,
        name=name,
        status=normalize_holiday_type_status(payload.status),
        created_by=actor_id,
    )
    collections.holiday_types.add(holiday_type)
    session.commit()
    session.refresh(holiday_type)

    logger.info(f"Holiday type created: {holiday_type.id} - {holiday_type.name}")
    return holiday_type.to_public()


def update_type(
    session: Session, company_id: str, actor_id: Optional[str], payload: HolidayTypeUpdate
) -> dict:
    collections = resolve(session, company_id)

    if payload.type_id in (None, ""):
        raise ValidationError("Holiday type ID not found")
    type_id = normalize_id(payload.type_id, "holiday type ID")
    name = _type_name(payload.name)

    holiday_type = collections.holiday_types.get(type_id)
    if not holiday_type:
        raise NotFoundError("Holiday type not found")

    if _type_exists(collections, name, exclude_id=type_id):
        raise ConflictError("This holiday type already exists")

    holiday_type.name = name
    holiday_type.status = normalize_holiday_type_status(payload.status)
    holiday_type.updated_by = actor_id
    holiday_type.updated_at = utcnow()
    session.add(holiday_type)
    session.commit()
    session.refresh(holiday_type)

    logger.info(f"Holiday type {type_id} updated")
    return holiday_type.to_public()


def delete_type(session: Session, company_id: str, type_id) -> dict:
    collections = resolve(session, company_id)
    type_id = normalize_id(type_id, "holiday type ID")

    in_use = collections.holidays.count(Holiday.holiday_type_id == type_id)
    if in_use > 0:
        raise ConflictError(
            f"Cannot delete this holiday type. It is currently used by {in_use} "
            f"holiday(s). Please reassign or delete those holidays first."
        )

    if collections.holiday_types.delete(HolidayType.id == type_id) == 0:
        raise NotFoundError("Holiday type not found")
    session.commit()

    logger.info(f"Holiday type {type_id} deleted")
    return {"_id": type_id}


def initialize_default_types(
    session: Session, company_id: str, actor_id: Optional[str] = None
) -> list[dict]:
    """Seed the default types for a company that has none; otherwise no-op."""
    collections = resolve(session, company_id)

    existing = collections.holiday_types.count()
    if existing > 0:
        logger.info(
            f"Holiday types already exist for {company_id} ({existing} types found)"
        )
        return []

    created = []
    for name in DEFAULT_HOLIDAY_TYPES:
        holiday_type = HolidayType(company_id=company_id, name=name, created_by=actor_id)
        collections.holiday_types.add(holiday_type)
        created.append(holiday_type)
    session.commit()

    logger.info(f"Initialized {len(created)} default holiday types for {company_id}")
    return [t.to_public() for t in created]


# =============================================================================
# Holidays
# =============================================================================


def create_holiday(
    session: Session, company_id: str, actor_id: Optional[str], payload: HolidayCreate
) -> dict:
    collections = resolve(session, company_id)

    title = (payload.title or "").strip()
    if not title or payload.holiday_date is None or payload.holiday_type_id in (None, ""):
        raise ValidationError("Holiday title, date and type are required")

    type_id = normalize_id(payload.holiday_type_id, "holiday type ID")
    holiday_type = collections.holiday_types.get(type_id)
    if not holiday_type:
        raise NotFoundError("Selected holiday type does not exist")

    if collections.holidays.count(Holiday.holiday_date == payload.holiday_date) > 0:
        raise ConflictError("A holiday already exists on this date")

    holiday = Holiday(
        company_id=company_id,
        title=title,
        holiday_date=payload.holiday_date,
        holiday_type_id=type_id,
        description=payload.description or "",
        status=normalize_holiday_type_status(payload.status),
        created_by=actor_id,
    )
    collections.holidays.add(holiday)
    session.commit()
    session.refresh(holiday)

    logger.info(f"Holiday created: {holiday.id} - {holiday.title}")
    result = holiday.to_public()
    result["holidayTypeName"] = holiday_type.name
    return result


def list_holidays(session: Session, company_id: str) -> list[dict]:
    collections = resolve(session, company_id)
    names = {t.id: t.name for t in collections.holiday_types.find()}
    holidays = collections.holidays.find(order_by=Holiday.holiday_date)

    result = []
    for holiday in holidays:
        item = holiday.to_public()
        item["holidayTypeName"] = names.get(holiday.holiday_type_id, "Unknown")
        result.append(item)
    return result


def delete_holiday(session: Session, company_id: str, holiday_id) -> dict:
    collections = resolve(session, company_id)
    holiday_id = normalize_id(holiday_id, "holiday ID")

    if collections.holidays.delete(Holiday.id == holiday_id) == 0:
        raise NotFoundError("Holiday not found")
    session.commit()

    logger.info(f"Holiday {holiday_id} deleted")
    return {"_id": holiday_id}
