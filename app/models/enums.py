"""Enums for impact reporting - these define the valid values for statuses and lifecycle actions."""
from enum import Enum


class ImpactStatus(str, Enum):
    """The four statuses an ImpactUpdate can be in. No other statuses are allowed."""
    DRAFT = "draft"
    PUBLISHED = "published"
    VERIFIED = "verified"
    FLAGGED = "flagged"


class ImpactAction(str, Enum):
    """Lifecycle actions that can be requested against an ImpactUpdate."""
    EDIT = "edit"
    DELETE = "delete"
    PUBLISH = "publish"
    VERIFY = "verify"
    FLAG = "flag"
    MARK_FINAL = "mark_final"


class MetricType(str, Enum):
    PEOPLE_HELPED = "people_helped"
    ITEMS_DELIVERED = "items_delivered"
    SERVICES_PROVIDED = "services_provided"
    VOLUNTEER_HOURS = "volunteer_hours"
    MEALS_SERVED = "meals_served"
    SUPPLIES_PURCHASED = "supplies_purchased"
    FUNDS_DISTRIBUTED = "funds_distributed"
    CUSTOM = "custom"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class OrganisationType(str, Enum):
    """Kinds of organisation an impact area can apply to."""
    CLUB = "club"
    SCHOOL = "school"
    CHARITY = "charity"
    CAUSE = "cause"


class ImpactProgress(str, Enum):
    """Impact reporting progress of an event or campaign."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


class EventStatus(str, Enum):
    DRAFT = "draft"
    LIVE = "live"
    ENDED = "ended"


class UserRole(str, Enum):
    """Roles relevant to impact management. Only hosts and admins may manage impact."""
    HOST = "host"
    ADMIN = "admin"
    MEMBER = "member"
