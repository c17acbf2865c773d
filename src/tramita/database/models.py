"""SQLAlchemy models for tramita database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Numeric,
    Boolean,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Case(Base):
    """Case model."""

    __tablename__ = "cases"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    sei_number = Column(String, nullable=False)
    code = Column(String, nullable=True)
    year = Column(Integer, nullable=True)
    type = Column(String, nullable=False)
    value = Column(Numeric(15, 2), nullable=False)
    municipality = Column(String, nullable=False)
    object = Column(Text, nullable=False)
    author_name = Column(String, nullable=True)
    status = Column(String, nullable=False)
    current_unit = Column(String, nullable=False, default="")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("tenant_id", "sei_number", name="uq_tenant_sei_number"),)

    # Relationships
    movements = relationship(
        "Movement",
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="Movement.position",
    )


class Movement(Base):
    """Movement model. Rows belong to their case and keep append order in ``position``."""

    __tablename__ = "movements"

    id = Column(Integer, primary_key=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False)
    position = Column(Integer, nullable=False)
    from_unit = Column(String, nullable=True)
    to_unit = Column(String, nullable=False)
    date_in = Column(DateTime(timezone=True), nullable=False)
    date_out = Column(DateTime(timezone=True), nullable=True)
    deadline = Column(DateTime(timezone=True), nullable=False)
    days_spent = Column(Integer, default=0, nullable=False)
    handled_by = Column(String, nullable=False, default="")
    remarks = Column(Text, nullable=True)
    analysis_type = Column(String, nullable=True)

    # Relationships
    case = relationship("Case", back_populates="movements")


class Unit(Base):
    """Receiving unit configuration model."""

    __tablename__ = "units"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    default_sla_days = Column(Integer, nullable=False)
    analysis_type = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_tenant_unit_name"),)


class Status(Base):
    """Workflow status model."""

    __tablename__ = "statuses"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False, default="#0d457a")
    is_final = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_tenant_status_name"),)


class User(Base):
    """User model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    role = Column(String, nullable=False)
    department = Column(String, nullable=True)
    lgpd_accepted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)


class AuditEntry(Base):
    """Append-only audit trail model."""

    __tablename__ = "audit_entries"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    actor_id = Column(String, nullable=False)
    actor_name = Column(String, nullable=False)
    action = Column(String, nullable=False)
    severity = Column(String, nullable=False)
    target_resource = Column(String, nullable=True)
    details = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)


def create_session_factory(database_url: str, create_schema: bool = True) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory.

    With ``create_schema=False`` the tables are left as found, which lets
    callers detect an unprovisioned or outdated schema.
    """
    engine = create_engine(database_url, echo=False)
    if create_schema:
        Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
