from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, DateTime, Boolean, Float, Index, func
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


class Tenant(Base):
    """
    A customer account (brand group). Everything else is partitioned by tenant_id.
    """
    __tablename__ = 'tenants'

    id = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=False)
    brand = Column(String(100))

    # Logo, colors, contact
    branding = Column(JSONB, server_default='{}')

    # Inbound channel id that maps to this tenant
    webhook_origin = Column(String(100), unique=True, index=True)

    # {enabled, days_without_fill, email_notifications}
    alert_settings = Column(JSONB, server_default='{}')

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    stores = relationship("Store", back_populates="tenant")


class Store(Base):
    __tablename__ = 'stores'

    id = Column(String(50), primary_key=True)
    tenant_id = Column(String(50), ForeignKey('tenants.id'), index=True, nullable=False)
    code = Column(String(50))
    name = Column(String(255), nullable=False)
    address = Column(String(255))
    district = Column(String(100))
    zone = Column(String(50))
    brand_id = Column(String(50))
    brand_name = Column(String(100))

    lat = Column(Float)
    lng = Column(Float)
    # Alternative location shape {lat, lng} from older imports
    coordinates = Column(JSONB, nullable=True)

    tenant = relationship("Tenant", back_populates="stores")
    vacancies = relationship("Vacancy", back_populates="store")


class Vacancy(Base):
    __tablename__ = 'vacancies'

    id = Column(String(50), primary_key=True)
    tenant_id = Column(String(50), ForeignKey('tenants.id'), index=True, nullable=False)
    store_id = Column(String(50), ForeignKey('stores.id'), index=True, nullable=False)

    position = Column(String(100), nullable=False)
    shift_type = Column(String(20), default='mixed')   # rotating, closing, mixed
    modality = Column(String(50), default='Part Time')
    available_slots = Column(Integer, default=0)
    status = Column(String(20), default='active')      # active, inactive
    required_profile = Column(Text)
    max_salary = Column(Integer)

    store = relationship("Store", back_populates="vacancies")


class Candidate(Base):
    """
    Candidate profile. The id is the phone number, unique per tenant.
    """
    __tablename__ = 'candidates'

    tenant_id = Column(String(50), ForeignKey('tenants.id'), primary_key=True)
    id = Column(String(50), primary_key=True)

    name = Column(String(255))
    national_id = Column(String(20))
    email = Column(String(255))
    age = Column(Integer)
    phone = Column(String(50))
    status = Column(String(50), default='in_process', index=True)
    origin = Column(String(50), default='whatsapp_bot')

    # Snapshots taken from the chat
    selected_store = Column(JSONB, nullable=True)
    selected_vacancy = Column(JSONB, nullable=True)

    # {store_id, vacancy_id, date_time, address, calendar_link, status, confirmed, ...}
    interview = Column(JSONB, nullable=True)

    # Append-only list of application snapshots for the dashboard
    applications = Column(JSONB, server_default='[]')

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Conversation(Base):
    """
    Chat state per phone number.
    """
    __tablename__ = 'conversations'

    phone = Column(String(50), primary_key=True)
    tenant_id = Column(String(50), index=True, nullable=False)
    origin_id = Column(String(100))

    state = Column(String(50), default='initial')

    # Everything extracted from the chat (see CandidateData)
    candidate_data = Column(JSONB, server_default='{}')

    # Message history for the LLM
    messages = Column(JSONB, server_default='[]')

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
    reset_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class Requisition(Base):
    """Staffing request tracked by the unfilled-position alerts."""
    __tablename__ = 'requisitions'

    id = Column(String(50), primary_key=True)
    tenant_id = Column(String(50), ForeignKey('tenants.id'), index=True, nullable=False)
    number = Column(String(50))
    position = Column(String(100))
    store_name = Column(String(255))
    brand_id = Column(String(50))
    brand_name = Column(String(100))

    status = Column(String(20), default='active')
    approval_status = Column(String(20), default='pending')

    recruitment_started_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    alert_unfilled = Column(Boolean, default=False)
    alert_unfilled_at = Column(DateTime(timezone=True), nullable=True)
    alert_days_threshold = Column(Integer, nullable=True)

    __table_args__ = (
        Index('ix_requisitions_open', 'tenant_id', 'status', 'approval_status'),
    )


class RecruiterAssignment(Base):
    __tablename__ = 'recruiter_assignments'

    id = Column(Integer, primary_key=True)
    tenant_id = Column(String(50), ForeignKey('tenants.id'), index=True, nullable=False)
    email = Column(String(255), nullable=False)
    display_name = Column(String(255))
    role = Column(String(20), default='recruiter')
    is_active = Column(Boolean, default=True)

    # Brand ids this recruiter covers
    brand_ids = Column(JSONB, server_default='[]')


class ApiUser(Base):
    """Dashboard / API users. Authenticated by bearer token."""
    __tablename__ = 'api_users'

    id = Column(Integer, primary_key=True)
    token = Column(String(128), unique=True, index=True, nullable=False)
    email = Column(String(255), nullable=False)
    tenant_id = Column(String(50), ForeignKey('tenants.id'), nullable=False)
    role = Column(String(20), default='viewer')  # viewer, recruiter, admin
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
