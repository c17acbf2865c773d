"""Abstract case store interface."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from tramita.domain.entities import (
    AuditEntry,
    Case,
    StatusDef,
    UnitConfig,
    User,
)
from tramita.database.events import Subscription

ChangeCallback = Callable[[object], None]


class Database(ABC):
    """Abstract store for tramita.

    Every read is scoped by tenant. Writes that carry an ``audit`` entry
    commit the entity and the audit record together or not at all.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Case operations
    @abstractmethod
    def list_cases(self, tenant_id: str) -> list[Case]:
        """List all cases of a tenant, newest first."""
        pass

    @abstractmethod
    def get_case(self, tenant_id: str, case_id: int) -> Optional[Case]:
        """Get case by ID."""
        pass

    @abstractmethod
    def get_case_by_sei(self, tenant_id: str, sei_number: str) -> Optional[Case]:
        """Get case by SEI number."""
        pass

    @abstractmethod
    def upsert_case(self, case: Case, audit: Optional[AuditEntry] = None) -> Case:
        """Insert a case (id None) or replace a stored one, movements included.

        Returns the case as persisted.
        """
        pass

    @abstractmethod
    def delete_case(self, tenant_id: str, case_id: int, audit: Optional[AuditEntry] = None) -> None:
        """Delete a case and its movements."""
        pass

    # Unit operations
    @abstractmethod
    def create_unit(self, unit: UnitConfig, audit: Optional[AuditEntry] = None) -> UnitConfig:
        """Create a unit. Returns the persisted unit."""
        pass

    @abstractmethod
    def get_unit(self, tenant_id: str, unit_id: int) -> Optional[UnitConfig]:
        """Get unit by ID."""
        pass

    @abstractmethod
    def list_units(self, tenant_id: str) -> list[UnitConfig]:
        """List units of a tenant ordered by name."""
        pass

    @abstractmethod
    def update_unit(self, unit: UnitConfig, audit: Optional[AuditEntry] = None) -> UnitConfig:
        """Update the SLA and analysis type of a unit."""
        pass

    # Status operations
    @abstractmethod
    def create_status(self, status: StatusDef, audit: Optional[AuditEntry] = None) -> StatusDef:
        """Create a status. Returns the persisted status."""
        pass

    @abstractmethod
    def list_statuses(self, tenant_id: str) -> list[StatusDef]:
        """List statuses of a tenant in configuration order."""
        pass

    @abstractmethod
    def update_status(self, status: StatusDef, audit: Optional[AuditEntry] = None) -> StatusDef:
        """Update a status."""
        pass

    # User operations
    @abstractmethod
    def create_user(self, user: User) -> User:
        """Create a user. Returns the persisted user."""
        pass

    @abstractmethod
    def list_users(self, tenant_id: str) -> list[User]:
        """List users of a tenant."""
        pass

    # Audit operations
    @abstractmethod
    def append_audit(self, entry: AuditEntry) -> AuditEntry:
        """Append an audit entry. Entries are never updated or deleted."""
        pass

    @abstractmethod
    def list_audit(self, tenant_id: str, limit: int = 200) -> list[AuditEntry]:
        """List the most recent audit entries of a tenant."""
        pass

    # Change notification
    @abstractmethod
    def subscribe(
        self,
        tenant_id: str,
        on_insert: Optional[ChangeCallback] = None,
        on_update: Optional[ChangeCallback] = None,
        on_delete: Optional[ChangeCallback] = None,
        entity: str = "case",
    ) -> Subscription:
        """Subscribe to committed changes of ``entity`` ("case" or "audit")."""
        pass
