"""SQLAlchemy ORM models for projects, installments, transactions and team members"""

import uuid
from sqlalchemy import Column, BigInteger, Boolean, DateTime, Date, Integer, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Project(Base):
    """Billable engagement; aggregation root for its installments and transactions"""

    __tablename__ = "project"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    title = Column(Text, nullable=False)
    total_budget_cents = Column(BigInteger, nullable=False)
    payment_type = Column(Text, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    installments = relationship(
        "PaymentInstallment",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="PaymentInstallment.installment_number",
    )
    transactions = relationship("PaymentTransaction", back_populates="project", cascade="all, delete-orphan")
    team_assignments = relationship("ProjectTeamMember", back_populates="project", cascade="all, delete-orphan")


class PaymentInstallment(Base):
    """Scheduled partial payment obligation; is_paid is a cache recomputed from the ledger"""

    __tablename__ = "payment_installment"
    __table_args__ = (UniqueConstraint("project_id", "installment_number", name="uq_project_installment_number"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    installment_number = Column(Integer, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    is_paid = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    project = relationship("Project", back_populates="installments")
    # Referencing transactions block deletion at the database level
    transactions = relationship("PaymentTransaction", back_populates="installment", passive_deletes="all")


class PaymentTransaction(Base):
    """Externally confirmed payment against a project, optionally earmarked to one installment"""

    __tablename__ = "payment_transaction"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    # No ON DELETE action: a referenced installment cannot be removed
    installment_id = Column(Uuid(as_uuid=True), ForeignKey("payment_installment.id"), nullable=True, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)
    notes = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    project = relationship("Project", back_populates="transactions")
    installment = relationship("PaymentInstallment", back_populates="transactions")


class TeamMember(Base):
    """Person who can be assigned to projects"""

    __tablename__ = "team_member"
    __table_args__ = (UniqueConstraint("owner_id", "email", name="uq_team_member_owner_email"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    role = Column(Text, nullable=True)
    hourly_rate_cents = Column(BigInteger, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    assignments = relationship("ProjectTeamMember", back_populates="team_member", cascade="all, delete-orphan")


class ProjectTeamMember(Base):
    """Project <-> team member association"""

    __tablename__ = "project_team_member"
    __table_args__ = (UniqueConstraint("project_id", "team_member_id", name="uq_project_team_member"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid(as_uuid=True), ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    team_member_id = Column(
        Uuid(as_uuid=True), ForeignKey("team_member.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role_in_project = Column(Text, nullable=True)
    assigned_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    project = relationship("Project", back_populates="team_assignments")
    team_member = relationship("TeamMember", back_populates="assignments")
