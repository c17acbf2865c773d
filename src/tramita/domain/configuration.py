"""Workflow configuration: receiving units and statuses."""

import logging
from datetime import datetime, UTC
from typing import Callable, Iterable, Optional

from tramita.database.base import Database
from tramita.domain.audit import PRIVILEGED_ROLES, build_audit, require_role
from tramita.domain.entities import (
    Actor,
    AuditAction,
    AuditSeverity,
    StatusDef,
    UnitConfig,
)
from tramita.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    status_not_found,
    unit_not_found,
)
from tramita.domain.lock import COMMITMENT_LIQUIDATION_LABEL, is_terminal_status

logger = logging.getLogger(__name__)

# Default statuses: (name, color, is_final)
DEFAULT_STATUSES = [
    ("ANÁLISE DA DOCUMENTAÇÃO", "#64748b", False),
    ("EM TRAMITAÇÃO TÉCNICA", "#0d457a", False),
    ("EM DILIGÊNCIA", "#f59e0b", False),
    ("AGUARDANDO PARECER JURÍDICO", "#8b5cf6", False),
    (COMMITMENT_LIQUIDATION_LABEL, "#0ea5e9", False),
    ("LIQUIDADO / PAGO", "#10b981", True),
    ("ARQUIVADO / REJEITADO", "#ef4444", True),
]

# Default units: (name, default_sla_days, analysis_type)
DEFAULT_UNITS = [
    ("GESA - Protocolo Central", 2, "ANÁLISE DA DOCUMENTAÇÃO"),
    ("SUBIPEI - Gabinete", 3, "EM TRAMITAÇÃO TÉCNICA"),
    ("SUINFRA - Engenharia", 10, "EM TRAMITAÇÃO TÉCNICA"),
    ("SUTIS - Tecnologia", 7, "EM TRAMITAÇÃO TÉCNICA"),
    ("Gerência de Convênios", 5, "EM DILIGÊNCIA"),
    ("Procuradoria Setorial", 15, "AGUARDANDO PARECER JURÍDICO"),
    ("Gerência de Orçamento", 3, "EM TRAMITAÇÃO TÉCNICA"),
    ("Gerência de Finanças", 4, "EM TRAMITAÇÃO TÉCNICA"),
]


class WorkflowConfig:
    """Units and statuses of one tenant, keyed by id and resolved by name.

    Built from a single store read so one operation sees a consistent
    configuration.
    """

    def __init__(self, units: Iterable[UnitConfig], statuses: Iterable[StatusDef]):
        self.units: dict[int, UnitConfig] = {u.id: u for u in units}
        ordered = sorted(statuses, key=lambda s: (s.position, s.id or 0))
        self.statuses: dict[int, StatusDef] = {s.id: s for s in ordered}
        self._unit_index = {u.name: u.id for u in self.units.values()}
        self._status_index = {s.name: s.id for s in self.statuses.values()}

    @classmethod
    def load(cls, db: Database, tenant_id: str) -> "WorkflowConfig":
        return cls(db.list_units(tenant_id), db.list_statuses(tenant_id))

    @property
    def status_defs(self) -> list[StatusDef]:
        return list(self.statuses.values())

    @property
    def default_status(self) -> Optional[str]:
        """First configured status, assigned to newly registered cases."""
        for status in self.statuses.values():
            return status.name
        return None

    def unit(self, name: str) -> Optional[UnitConfig]:
        unit_id = self._unit_index.get(name)
        return self.units.get(unit_id) if unit_id is not None else None

    def require_unit(self, name: str) -> UnitConfig:
        unit = self.unit(name)
        if unit is None:
            raise NotFoundError(unit_not_found(name))
        return unit

    def status(self, name: str) -> Optional[StatusDef]:
        status_id = self._status_index.get(name)
        return self.statuses.get(status_id) if status_id is not None else None

    def is_known_status(self, name: str) -> bool:
        return name == COMMITMENT_LIQUIDATION_LABEL or name in self._status_index

    def require_status(self, name: str) -> str:
        if not self.is_known_status(name):
            raise ValidationError(status_not_found(name), field="status")
        return name

    def suggested_status(self, analysis_type: Optional[str]) -> Optional[str]:
        """Status named by a unit's analysis type, when it is configured."""
        if analysis_type and self.is_known_status(analysis_type):
            return analysis_type
        return None

    def is_terminal(self, name: Optional[str]) -> bool:
        return is_terminal_status(name, self.statuses.values())


class ConfigurationService:
    """Service for managing units and statuses."""

    def __init__(self, db: Database, actor: Actor, clock: Optional[Callable[[], datetime]] = None):
        """Initialize configuration service.

        Args:
            db: Database instance
            actor: User performing the operations
            clock: Optional callable returning the current time
        """
        self.db = db
        self.actor = actor
        self.clock = clock or (lambda: datetime.now(UTC))

    def workflow(self) -> WorkflowConfig:
        return WorkflowConfig.load(self.db, self.actor.tenant_id)

    def create_unit(self, name: str, default_sla_days: int, analysis_type: Optional[str] = None) -> UnitConfig:
        """Create a receiving unit.

        Args:
            name: Unit name, unique within the tenant and immutable afterwards
            default_sla_days: Positive number of calendar days
            analysis_type: Optional label used to suggest the next status

        Returns:
            Persisted unit

        Raises:
            ValidationError: If the name is empty or the SLA is not positive
            ConflictError: If a unit with the same name exists
        """
        require_role(self.actor, PRIVILEGED_ROLES, "configure units")
        name = (name or "").strip()
        if not name:
            raise ValidationError("Unit name is required", field="name")
        _validate_sla(default_sla_days)
        if self.get_unit_by_name(name) is not None:
            raise ConflictError(f"Unit '{name}' already exists")

        audit = build_audit(
            self.actor,
            AuditAction.UPDATE,
            AuditSeverity.INFO,
            f"Unit '{name}' created with SLA {default_sla_days} days",
            self.clock(),
            target_resource=name,
        )
        unit = self.db.create_unit(
            UnitConfig(
                id=None,
                tenant_id=self.actor.tenant_id,
                name=name,
                default_sla_days=default_sla_days,
                analysis_type=analysis_type,
            ),
            audit=audit,
        )
        logger.info("Created unit %s (SLA %d days)", unit.name, unit.default_sla_days)
        return unit

    def update_unit(
        self,
        unit_id: int,
        default_sla_days: Optional[int] = None,
        analysis_type: Optional[str] = None,
    ) -> UnitConfig:
        """Update the SLA or analysis type of a unit. Names never change."""
        require_role(self.actor, PRIVILEGED_ROLES, "configure units")
        unit = self.db.get_unit(self.actor.tenant_id, unit_id)
        if unit is None:
            raise NotFoundError(f"Unit {unit_id} not found")

        changes = {}
        if default_sla_days is not None:
            _validate_sla(default_sla_days)
            changes["default_sla_days"] = default_sla_days
        if analysis_type is not None:
            changes["analysis_type"] = analysis_type
        if not changes:
            return unit

        updated = UnitConfig(
            id=unit.id,
            tenant_id=unit.tenant_id,
            name=unit.name,
            default_sla_days=changes.get("default_sla_days", unit.default_sla_days),
            analysis_type=changes.get("analysis_type", unit.analysis_type),
        )
        audit = build_audit(
            self.actor,
            AuditAction.UPDATE,
            AuditSeverity.INFO,
            f"Unit '{unit.name}' updated: {', '.join(f'{k}={v}' for k, v in changes.items())}",
            self.clock(),
            target_resource=unit.name,
        )
        return self.db.update_unit(updated, audit=audit)

    def list_units(self) -> list[UnitConfig]:
        return self.db.list_units(self.actor.tenant_id)

    def get_unit_by_name(self, name: str) -> Optional[UnitConfig]:
        for unit in self.db.list_units(self.actor.tenant_id):
            if unit.name == name:
                return unit
        return None

    def create_status(self, name: str, color: str = "#0d457a", is_final: bool = False) -> StatusDef:
        """Create a workflow status at the end of the configured order.

        Raises:
            ValidationError: If the name is empty
            ConflictError: If a status with the same name exists
        """
        require_role(self.actor, PRIVILEGED_ROLES, "configure statuses")
        name = (name or "").strip()
        if not name:
            raise ValidationError("Status name is required", field="name")
        existing = self.db.list_statuses(self.actor.tenant_id)
        if any(s.name == name for s in existing):
            raise ConflictError(f"Status '{name}' already exists")

        position = max((s.position for s in existing), default=-1) + 1
        audit = build_audit(
            self.actor,
            AuditAction.UPDATE,
            AuditSeverity.INFO,
            f"Status '{name}' created{' (final)' if is_final else ''}",
            self.clock(),
            target_resource=name,
        )
        status = self.db.create_status(
            StatusDef(
                id=None,
                tenant_id=self.actor.tenant_id,
                name=name,
                color=color,
                is_final=is_final,
                position=position,
            ),
            audit=audit,
        )
        logger.info("Created status %s", status.name)
        return status

    def update_status(
        self, status_id: int, color: Optional[str] = None, is_final: Optional[bool] = None
    ) -> StatusDef:
        """Update presentation color or the final flag of a status."""
        require_role(self.actor, PRIVILEGED_ROLES, "configure statuses")
        current = next((s for s in self.db.list_statuses(self.actor.tenant_id) if s.id == status_id), None)
        if current is None:
            raise NotFoundError(f"Status {status_id} not found")

        updated = StatusDef(
            id=current.id,
            tenant_id=current.tenant_id,
            name=current.name,
            color=color if color is not None else current.color,
            is_final=is_final if is_final is not None else current.is_final,
            position=current.position,
        )
        audit = build_audit(
            self.actor,
            AuditAction.UPDATE,
            AuditSeverity.WARN if updated.is_final != current.is_final else AuditSeverity.INFO,
            f"Status '{current.name}' updated (final={updated.is_final})",
            self.clock(),
            target_resource=current.name,
        )
        return self.db.update_status(updated, audit=audit)

    def list_statuses(self) -> list[StatusDef]:
        return self.db.list_statuses(self.actor.tenant_id)

    def get_status_by_name(self, name: str) -> Optional[StatusDef]:
        return self.workflow().status(name)

    def load_defaults(self) -> tuple[int, int]:
        """Create the default units and statuses that are missing.

        Returns:
            Tuple of (units created, statuses created)
        """
        workflow = self.workflow()
        statuses_created = 0
        for name, color, is_final in DEFAULT_STATUSES:
            if workflow.status(name) is None:
                self.create_status(name, color=color, is_final=is_final)
                statuses_created += 1

        units_created = 0
        for name, sla_days, analysis_type in DEFAULT_UNITS:
            if workflow.unit(name) is None:
                self.create_unit(name, sla_days, analysis_type)
                units_created += 1

        return units_created, statuses_created


def _validate_sla(default_sla_days: int) -> None:
    if not isinstance(default_sla_days, int) or isinstance(default_sla_days, bool) or default_sla_days <= 0:
        raise ValidationError(
            f"SLA days must be a positive integer, got {default_sla_days!r}", field="default_sla_days"
        )
