"""
manageRTC Core Module.

Exports core utilities and configurations.
"""

from managertc.core.cache import (
    RedisClient,
    clear_cache_pattern,
    clear_tenant_cache,
    delete_from_cache,
    get_cache_key,
    get_from_cache,
    set_to_cache,
)
from managertc.core.config import settings
from managertc.core.events import (
    EventEnvelope,
    EventMetadata,
    EventType,
    create_event,
)
from managertc.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from managertc.core.kafka import KafkaProducer, publish_event
from managertc.core.rbac import (
    authorize,
    can_update_employee,
    can_view_employee,
    ensure_same_tenant,
    filter_employee_data,
    get_allowed_fields_for_update,
    get_highest_role,
    has_capability,
)
from managertc.core.rooms import company_room
from managertc.core.tenancy import TenantCollections, normalize_id, resolve
from managertc.core.topics import KafkaTopics

__all__ = [
    # Config
    "settings",
    # Cache
    "RedisClient",
    "get_cache_key",
    "get_from_cache",
    "set_to_cache",
    "delete_from_cache",
    "clear_cache_pattern",
    "clear_tenant_cache",
    # Kafka
    "KafkaProducer",
    "KafkaTopics",
    "publish_event",
    # Events
    "EventType",
    "EventMetadata",
    "EventEnvelope",
    "create_event",
    # Errors
    "ServiceError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "ForbiddenError",
    # RBAC
    "get_highest_role",
    "has_capability",
    "authorize",
    "ensure_same_tenant",
    "can_view_employee",
    "can_update_employee",
    "get_allowed_fields_for_update",
    "filter_employee_data",
    # Tenancy
    "TenantCollections",
    "resolve",
    "normalize_id",
    "company_room",
]
