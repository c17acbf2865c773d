"""Domain model entities for tramita.

These are pure data classes representing business concepts, independent of
database schema. Services never mutate them; every change produces a new
instance through ``dataclasses.replace`` and is only visible once the store
has confirmed the write.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


UNIT_SEPARATOR = " | "


def split_units(current_unit: Optional[str]) -> list[str]:
    """Destinations encoded in a case's current unit label."""
    if not current_unit:
        return []
    return [u.strip() for u in current_unit.split(UNIT_SEPARATOR) if u.strip()]


class AmendmentType(str, Enum):
    """Funding source of a case."""

    IMPOSITIVA = "Emenda Impositiva"
    GOIAS_CRESCIMENTO = "Goiás em Crescimento"
    RECURSO_PROPRIO = "Recurso Próprio"
    TRANSFERENCIA_ESPECIAL = "Transferência Especial"


class Priority(str, Enum):
    """Priority of a transition."""

    NORMAL = "NORMAL"
    URGENT = "URGENTE"
    VERY_URGENT = "URGENTISSIMO"


class Urgency(str, Enum):
    """SLA classification of a movement."""

    ON_TIME = "ON_TIME"
    CRITICAL = "CRITICAL"
    OVERDUE = "OVERDUE"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


_URGENCY_RANK = {Urgency.ON_TIME: 0, Urgency.CRITICAL: 1, Urgency.OVERDUE: 2}


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    MOVE = "MOVE"
    SECURITY = "SECURITY"
    LOGIN = "LOGIN"
    ERROR = "ERROR"


class AuditSeverity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    CRITICAL = "CRITICAL"


class Role(str, Enum):
    """Access profile of an actor."""

    ADMIN = "ADMIN"
    OPERATOR = "OPERATOR"
    AUDITOR = "AUDITOR"
    VIEWER = "VIEWER"


class GroupBy(str, Enum):
    """Grouping key for top-N dashboard rankings."""

    TYPE = "type"
    AUTHOR = "author"
    MUNICIPALITY = "municipality"


@dataclass(frozen=True)
class Actor:
    """User on whose behalf an operation runs."""

    id: str
    name: str
    tenant_id: str
    role: Role = Role.OPERATOR


@dataclass(frozen=True)
class Movement:
    """One stay of a case in a unit."""

    id: Optional[int]
    case_id: Optional[int]
    from_unit: Optional[str]
    to_unit: str
    date_in: datetime
    date_out: Optional[datetime]
    deadline: datetime
    days_spent: int = 0
    handled_by: str = ""
    remarks: Optional[str] = None
    analysis_type: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.date_out is None


@dataclass(frozen=True)
class Case:
    """Budget-amendment process tracked through the workflow."""

    id: Optional[int]
    tenant_id: str
    sei_number: str
    type: AmendmentType
    value: Decimal
    municipality: str
    object: str
    status: str
    author_name: Optional[str] = None
    current_unit: str = ""
    movements: tuple[Movement, ...] = ()
    year: Optional[int] = None
    code: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def last_movement(self) -> Optional[Movement]:
        """The current movement: the last one in append order."""
        if not self.movements:
            return None
        return self.movements[-1]

    @property
    def current_units(self) -> list[str]:
        return split_units(self.current_unit)


@dataclass(frozen=True)
class UnitConfig:
    """Receiving unit with its SLA."""

    id: Optional[int]
    tenant_id: str
    name: str
    default_sla_days: int
    analysis_type: Optional[str] = None


@dataclass(frozen=True)
class StatusDef:
    """Workflow status."""

    id: Optional[int]
    tenant_id: str
    name: str
    color: str = "#0d457a"
    is_final: bool = False
    position: int = 0


@dataclass(frozen=True)
class AuditEntry:
    """Immutable audit trail record."""

    id: Optional[int]
    tenant_id: str
    actor_id: str
    actor_name: str
    action: AuditAction
    details: str
    severity: AuditSeverity
    timestamp: datetime
    target_resource: Optional[str] = None


@dataclass(frozen=True)
class User:
    id: Optional[int]
    tenant_id: str
    name: str
    email: str
    role: Role
    department: Optional[str] = None
    lgpd_accepted: bool = False


@dataclass(frozen=True)
class CaseDraft:
    """Input for case registration."""

    sei_number: str
    value: Optional[Decimal]
    municipality: str
    object: str
    type: AmendmentType = AmendmentType.IMPOSITIVA
    author_name: Optional[str] = None
    status: Optional[str] = None
    year: Optional[int] = None
    code: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class MovementEdit:
    """One row of a retroactive history edit.

    ``id`` is None for rows added during the edit.
    """

    to_unit: str
    date_in: Optional[datetime]
    date_out: Optional[datetime] = None
    id: Optional[int] = None
    from_unit: Optional[str] = None
    deadline: Optional[datetime] = None
    handled_by: Optional[str] = None
    remarks: Optional[str] = None
    analysis_type: Optional[str] = None

    @classmethod
    def from_movement(cls, movement: Movement) -> "MovementEdit":
        return cls(
            id=movement.id,
            to_unit=movement.to_unit,
            date_in=movement.date_in,
            date_out=movement.date_out,
            from_unit=movement.from_unit,
            deadline=movement.deadline,
            handled_by=movement.handled_by,
            remarks=movement.remarks,
            analysis_type=movement.analysis_type,
        )


@dataclass(frozen=True)
class UrgencyResult:
    """Outcome of classifying one deadline.

    ``days_remaining`` is signed: negative when overdue.
    """

    urgency: Urgency
    delay_days: int
    days_remaining: int


@dataclass(frozen=True)
class WorklistEntry:
    case_id: int
    sei_number: str
    unit: str
    deadline: datetime
    result: UrgencyResult

    @property
    def urgency(self) -> Urgency:
        return self.result.urgency


@dataclass(frozen=True)
class Worklist:
    """Worklist entries, one per movement, and counts of cases per category."""

    entries: tuple[WorklistEntry, ...]
    overdue_count: int
    critical_count: int
    on_time_count: int
    awaiting_count: int


@dataclass(frozen=True)
class TypeTotal:
    type: AmendmentType
    value: Decimal
    count: int
    percentage: float


@dataclass(frozen=True)
class StatusCount:
    status: str
    count: int
    color: Optional[str] = None


@dataclass(frozen=True)
class GroupTotal:
    key: str
    value: Decimal
    count: int


@dataclass(frozen=True)
class UnitLoad:
    unit: str
    count: int


@dataclass(frozen=True)
class CalendarDay:
    day: date
    severity: Urgency
    case_ids: tuple[int, ...]


@dataclass(frozen=True)
class DashboardReport:
    """Everything the dashboard renders, derived from one snapshot."""

    generated_at: datetime
    total_value: Decimal
    total_count: int
    type_totals: tuple[TypeTotal, ...]
    status_counts: tuple[StatusCount, ...]
    top_groups: tuple[GroupTotal, ...]
    worklist: Worklist
    unit_loads: tuple[UnitLoad, ...] = field(default_factory=tuple)
