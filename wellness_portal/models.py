import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate an opaque record id"""
    return str(uuid.uuid4())


# Appointment statuses
APPOINTMENT_STATUSES = ("scheduled", "confirmed", "completed", "cancelled", "no-show", "rescheduled")

# Client record statuses
CLIENT_STATUSES = ("active", "inactive", "pending-verification", "suspended")

# Account roles, least to most privileged
USER_ROLES = ("client", "staff", "admin", "super-admin")
STAFF_ROLES = ("staff", "admin")


class User(Base):
    """Authenticated account mirrored from the auth provider"""

    __tablename__ = "users"

    id = Column(String(128), primary_key=True)  # auth provider uid
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    role = Column(String(20), nullable=False, default="client", index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    centre_ids = Column(JSON, default=list, nullable=False)
    phone = Column(String(50), nullable=True)
    position = Column(String(100), nullable=True)
    department = Column(String(100), nullable=True)
    specializations = Column(JSON, default=list, nullable=False)
    qualifications = Column(JSON, default=list, nullable=False)
    bio = Column(Text, nullable=True)
    photo_key = Column(String(500), nullable=True)  # R2 key, not URL
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def full_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email


class Client(Base):
    """Client record, possibly created by staff before the client has an account"""

    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=generate_id)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), index=True, nullable=False)  # stored lower-cased
    mobile = Column(String(50), nullable=False, default="")
    gender = Column(String(30), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    id_number = Column(String(50), nullable=True)
    passport = Column(String(50), nullable=True)
    country = Column(String(100), nullable=True)
    address1 = Column(String(255), nullable=True)
    address2 = Column(String(255), nullable=True)
    suburb = Column(String(100), nullable=True)
    city_town = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    preferred_method_of_contact = Column(String(30), nullable=True)
    marital_status = Column(String(30), nullable=True)
    employment_status = Column(String(50), nullable=True)
    # Medical information
    current_medication = Column(Text, nullable=True)
    chronic_conditions = Column(Text, nullable=True)
    current_treatments = Column(Text, nullable=True)
    allergies = Column(Text, nullable=True)
    reason_for_transformation = Column(Text, nullable=True)
    how_did_you_hear = Column(String(100), nullable=True)
    my_nearest_treatment_centre = Column(String(255), nullable=True)
    referrer_name = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(30), nullable=False, default="active", index=True)
    # Account linkage (set once by the signup linker)
    account_id = Column(String(128), nullable=True, index=True)
    linked_at = Column(DateTime(timezone=True), nullable=True)
    user_account_created = Column(Boolean, default=False, nullable=False)
    added_time = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ClientProfile(Base):
    """Self-service profile document of a client account"""

    __tablename__ = "client_profiles"

    id = Column(String(128), primary_key=True)  # same as users.id
    email = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    role = Column(String(20), nullable=False, default="client")
    client_record_id = Column(String(36), nullable=True)
    mobile = Column(String(50), nullable=True)
    gender = Column(String(30), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    id_number = Column(String(50), nullable=True)
    passport = Column(String(50), nullable=True)
    country = Column(String(100), nullable=True)
    address = Column(JSON, default=dict, nullable=False)  # street, suburb, city, province, postalCode
    medical_info = Column(JSON, default=dict, nullable=False)
    preferred_method_of_contact = Column(String(30), nullable=True)
    marital_status = Column(String(30), nullable=True)
    employment_status = Column(String(50), nullable=True)
    preferred_treatment_centre = Column(String(255), nullable=True)
    reason_for_transformation = Column(Text, nullable=True)
    how_did_you_hear = Column(String(100), nullable=True)
    referrer_name = Column(String(255), nullable=True)
    goals = Column(JSON, default=list, nullable=False)
    health_metrics = Column(JSON, default=list, nullable=False)
    preferences = Column(JSON, default=dict, nullable=False)
    terms_accepted = Column(Boolean, default=False, nullable=False)
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    onboarding_completed_at = Column(DateTime(timezone=True), nullable=True)
    imported_from_client_record = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Service(Base):
    """Bookable offering"""

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=False, default="treatment")
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Integer, nullable=False, default=0)  # cents
    required_qualifications = Column(JSON, default=list, nullable=False)
    equipment_required = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Mirror of Centre.services; only written through CatalogueRepository.set_service_centres
    available_at_centres = Column(JSON, default=list, nullable=False)
    preparation_instructions = Column(Text, nullable=True)
    follow_up_required = Column(Boolean, default=False, nullable=False)
    max_concurrent_bookings = Column(Integer, default=1, nullable=False)
    # Booking rules
    advance_booking_days = Column(Integer, default=90, nullable=False)
    cancellation_hours = Column(Integer, default=24, nullable=False)
    requires_approval = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Centre(Base):
    """Physical treatment centre"""

    __tablename__ = "centres"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    street = Column(String(255), nullable=True)
    suburb = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    timezone = Column(String(64), nullable=True)
    operating_hours = Column(JSON, default=dict, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Mirror of Service.available_at_centres
    services = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Appointment(Base):
    """One scheduled service occurrence, with denormalized display names"""

    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_id = Column(String(128), nullable=False, index=True)
    client_name = Column(String(255), nullable=False, default="")
    client_email = Column(String(255), nullable=True)
    staff_id = Column(String(128), nullable=False, index=True)
    staff_name = Column(String(255), nullable=False, default="")
    centre_id = Column(String(36), nullable=False, index=True)
    centre_name = Column(String(255), nullable=False, default="")
    service_id = Column(String(36), nullable=False)
    service_name = Column(String(255), nullable=False, default="")
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Integer, nullable=False, default=0)  # cents
    status = Column(String(20), nullable=False, default="scheduled", index=True)
    notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    reschedule_history = Column(JSON, default=list, nullable=False)
    payment_status = Column(String(20), nullable=False, default="pending")
    created_by = Column(String(128), nullable=True)
    last_modified_by = Column(String(128), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
