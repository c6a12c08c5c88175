# recruitbot/core/schemas.py
import datetime
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional
from pydantic import BaseModel, Field

from recruitbot.core.states import (
    ActionType, CandidateStatus, ConversationState, InterviewStatus, ShiftType
)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


# --- Geography / stores ---

class Coordinates(BaseModel):
    lat: float
    lng: float


class Vacancy(BaseModel):
    id: str
    store_id: str
    position: str
    shift_type: ShiftType = ShiftType.MIXED
    modality: str = "Part Time"
    available_slots: int = 0
    status: str = "active"
    required_profile: Optional[str] = None
    max_salary: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.status == "active" and self.available_slots > 0


class Store(BaseModel):
    id: str
    tenant_id: str
    code: Optional[str] = None
    name: str
    address: Optional[str] = None
    district: Optional[str] = None
    zone: Optional[str] = None
    brand_id: Optional[str] = None
    brand_name: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    coordinates: Optional[Coordinates] = None


class StoreMatch(BaseModel):
    """Ranked matching result. Never persisted as-is."""
    store: Store
    vacancies: List[Vacancy]
    total_slots: int
    distance_km: float

    def to_option(self) -> "StoreOption":
        return StoreOption(
            store_id=self.store.id,
            name=self.store.name,
            address=self.store.address,
            district=self.store.district,
            brand_id=self.store.brand_id,
            brand_name=self.store.brand_name,
            distance_km=self.distance_km,
            vacancies=[
                VacancyOption(
                    vacancy_id=v.id,
                    position=v.position,
                    shift_type=v.shift_type,
                    modality=v.modality,
                    available_slots=v.available_slots,
                    max_salary=v.max_salary,
                    required_profile=v.required_profile,
                )
                for v in self.vacancies
            ],
        )


class VacancyOption(BaseModel):
    vacancy_id: str
    position: str
    shift_type: ShiftType = ShiftType.MIXED
    modality: Optional[str] = None
    available_slots: int = 0
    max_salary: Optional[int] = None
    required_profile: Optional[str] = None


class StoreOption(BaseModel):
    """Store summary shown to the candidate and kept in the conversation."""
    store_id: str
    name: str
    address: Optional[str] = None
    district: Optional[str] = None
    brand_id: Optional[str] = None
    brand_name: Optional[str] = None
    distance_km: Optional[float] = None
    vacancies: List[VacancyOption] = Field(default_factory=list)


class TimeSlot(BaseModel):
    start: datetime.datetime
    end: datetime.datetime
    display: str


# --- Conversation ---

class CandidateData(BaseModel):
    """
    Fields collected from the candidate during the chat.
    Use merge() to add values: filled fields are never overwritten,
    except the ones listed in OVERWRITABLE.
    """
    terms_accepted: Optional[bool] = None
    name: Optional[str] = None
    birth_date: Optional[str] = None
    age: Optional[int] = None
    national_id: Optional[str] = None
    email: Optional[str] = None
    rotating_shifts: Optional[bool] = None
    closing_shifts_available: Optional[bool] = None
    salary_expectation: Optional[int] = None
    position_max_salary: Optional[int] = None
    district: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    store_selection: Optional[int] = None
    vacancy_selection: Optional[int] = None
    slot_selection: Optional[int] = None
    store_options: List[StoreOption] = Field(default_factory=list)
    selected_store: Optional[StoreOption] = None
    selected_vacancy: Optional[VacancyOption] = None
    offered_slots: List[TimeSlot] = Field(default_factory=list)
    rejection_reason: Optional[str] = None

    # Re-asked every turn in their own state, or recomputed by the engine
    OVERWRITABLE: ClassVar[FrozenSet[str]] = frozenset({
        "store_selection", "vacancy_selection", "slot_selection",
        "store_options", "selected_store", "selected_vacancy", "offered_slots",
        "position_max_salary", "rejection_reason",
    })

    def merge(self, updates: Dict[str, Any]) -> "CandidateData":
        accepted = {}
        for key, value in updates.items():
            if key not in type(self).model_fields:
                raise ValueError(f"Unknown candidate field: {key}")
            if value is None:
                continue
            if key in self.OVERWRITABLE or getattr(self, key) is None:
                accepted[key] = value
        if not accepted:
            return self
        return type(self).model_validate({**self.model_dump(), **accepted})

    @property
    def coordinates(self) -> Optional[Coordinates]:
        if self.latitude is not None and self.longitude is not None:
            return Coordinates(lat=self.latitude, lng=self.longitude)
        return None

    @property
    def declared_availability(self) -> Optional[ShiftType]:
        if self.rotating_shifts and self.closing_shifts_available:
            return ShiftType.MIXED
        if self.rotating_shifts:
            return ShiftType.ROTATING
        if self.closing_shifts_available:
            return ShiftType.CLOSING
        return None

    def missing_basic_fields(self) -> List[str]:
        return [f for f in ("name", "birth_date", "national_id", "email") if getattr(self, f) is None]


class Message(BaseModel):
    role: str
    content: str
    timestamp: datetime.datetime = Field(default_factory=utcnow)


class Conversation(BaseModel):
    phone: str
    tenant_id: str
    origin_id: Optional[str] = None
    state: ConversationState = ConversationState.INITIAL
    candidate_data: CandidateData = Field(default_factory=CandidateData)
    messages: List[Message] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime.datetime = Field(default_factory=utcnow)
    updated_at: datetime.datetime = Field(default_factory=utcnow)
    reset_at: Optional[datetime.datetime] = None
    completed_at: Optional[datetime.datetime] = None

    def add_message(self, role: str, content: str):
        self.messages.append(Message(role=role, content=content))
        self.updated_at = utcnow()

    def history(self, limit: int = 20) -> List[Dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.messages[-limit:]]


class Action(BaseModel):
    type: ActionType
    reason: Optional[str] = None
    category: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class Transition(BaseModel):
    new_state: ConversationState
    actions: List[Action] = Field(default_factory=list)


class ProcessResult(BaseModel):
    response: str
    new_state: ConversationState
    actions: List[Action] = Field(default_factory=list)


# --- Candidates / interviews ---

class Interview(BaseModel):
    store_id: Optional[str] = None
    vacancy_id: Optional[str] = None
    date_time: datetime.datetime
    address: Optional[str] = None
    calendar_event_id: Optional[str] = None
    calendar_link: Optional[str] = None
    status: InterviewStatus = InterviewStatus.SCHEDULED
    confirmed: bool = False
    scheduled_at: datetime.datetime = Field(default_factory=utcnow)
    confirmed_at: Optional[datetime.datetime] = None
    rescheduled: bool = False
    rescheduled_at: Optional[datetime.datetime] = None


class Application(BaseModel):
    id: str
    store_id: Optional[str] = None
    store_name: Optional[str] = None
    brand_id: Optional[str] = None
    brand_name: Optional[str] = None
    position: Optional[str] = None
    modality: Optional[str] = None
    shift: Optional[str] = None
    status: str = "interview_scheduled"
    applied_at: datetime.datetime = Field(default_factory=utcnow)
    source: str = "bot_whatsapp"


class Candidate(BaseModel):
    id: str
    tenant_id: str
    name: Optional[str] = None
    national_id: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    phone: Optional[str] = None
    status: CandidateStatus = CandidateStatus.IN_PROCESS
    origin: str = "whatsapp_bot"
    selected_store: Optional[StoreOption] = None
    selected_vacancy: Optional[VacancyOption] = None
    interview: Optional[Interview] = None
    applications: List[Application] = Field(default_factory=list)
    created_at: datetime.datetime = Field(default_factory=utcnow)
    updated_at: datetime.datetime = Field(default_factory=utcnow)


class InterviewRequest(BaseModel):
    store_id: Optional[str] = None
    vacancy_id: Optional[str] = None
    date_time: datetime.datetime
    address: Optional[str] = None
    store_name: Optional[str] = None


class ScheduledInterview(BaseModel):
    candidate_id: str
    date_time: datetime.datetime
    address: Optional[str] = None
    status: InterviewStatus
    calendar_link: Optional[str] = None


# --- Tenants / alerts ---

class AlertSettings(BaseModel):
    enabled: bool = True
    days_without_fill: int = 7
    email_notifications: bool = True


class Tenant(BaseModel):
    id: str
    name: str
    brand: Optional[str] = None
    branding: Dict[str, Any] = Field(default_factory=dict)  # logo, colors, contact
    webhook_origin: Optional[str] = None
    is_active: bool = True
    alert_settings: AlertSettings = Field(default_factory=AlertSettings)


class Requisition(BaseModel):
    id: str
    tenant_id: str
    number: Optional[str] = None
    position: Optional[str] = None
    store_name: Optional[str] = None
    brand_id: Optional[str] = None
    brand_name: Optional[str] = None
    status: str = "active"
    approval_status: str = "approved"
    recruitment_started_at: Optional[datetime.datetime] = None
    approved_at: Optional[datetime.datetime] = None
    created_at: Optional[datetime.datetime] = None
    alert_unfilled: bool = False
    alert_unfilled_at: Optional[datetime.datetime] = None
    alert_days_threshold: Optional[int] = None

    @property
    def started_at(self) -> Optional[datetime.datetime]:
        return self.recruitment_started_at or self.approved_at or self.created_at


class UnfilledRequisition(BaseModel):
    requisition: Requisition
    days_open: int


class AlertCheckSummary(BaseModel):
    success: bool = True
    tenant_id: str
    alert_days: int
    total_active: int
    unfilled: int
    message: str


class RecruiterAssignment(BaseModel):
    tenant_id: str
    email: str
    display_name: Optional[str] = None
    role: str = "recruiter"
    is_active: bool = True
    brand_ids: List[str] = Field(default_factory=list)


class ApiUser(BaseModel):
    id: int
    email: str
    tenant_id: str
    role: str = "viewer"
    is_active: bool = True


# --- HTTP payloads ---

class ChatRequest(BaseModel):
    phone: Optional[str] = None
    message: Optional[str] = None
    origin_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ChatResponse(BaseModel):
    success: bool = True
    phone: str
    response: str
    state: ConversationState
    tenant_id: str


class RescheduleRequest(BaseModel):
    date_time: datetime.datetime
