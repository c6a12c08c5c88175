import datetime
from typing import Dict, List, Optional

import pytest

from recruitbot.core.config import RemindersConfig
from recruitbot.core.container import Container
from recruitbot.core.schemas import (
    ApiUser, Candidate, Conversation, RecruiterAssignment, Requisition, Store, Tenant, Vacancy
)
from recruitbot.core.states import ShiftType
from recruitbot.services.calendar import MockCalendar


# --- In-memory repositories ---

class FakeConversationRepo:
    def __init__(self):
        self.items: Dict[str, Conversation] = {}
        self.fail_on_save = False

    async def get(self, phone: str) -> Optional[Conversation]:
        conv = self.items.get(phone)
        return conv.model_copy(deep=True) if conv else None

    async def save(self, conversation: Conversation):
        if self.fail_on_save:
            raise RuntimeError("database unavailable")
        self.items[conversation.phone] = conversation.model_copy(deep=True)


class FakeStoreRepo:
    def __init__(self, stores: List[Store], vacancies: List[Vacancy]):
        self.stores = stores
        self.vacancies = vacancies

    async def list_stores(self, tenant_id: str) -> List[Store]:
        return [s for s in self.stores if s.tenant_id == tenant_id]

    async def list_vacancies(self, tenant_id: str, store_id: Optional[str] = None) -> List[Vacancy]:
        store_ids = {s.id for s in self.stores if s.tenant_id == tenant_id}
        return [
            v for v in self.vacancies
            if v.store_id in store_ids and (store_id is None or v.store_id == store_id)
        ]

    async def list_open_vacancies(self, tenant_id: str, store_id: str) -> List[Vacancy]:
        return [v for v in await self.list_vacancies(tenant_id, store_id) if v.is_open]


class FakeCandidateRepo:
    def __init__(self):
        self.items: Dict[tuple, Candidate] = {}

    async def get(self, tenant_id: str, candidate_id: str) -> Optional[Candidate]:
        candidate = self.items.get((tenant_id, candidate_id))
        return candidate.model_copy(deep=True) if candidate else None

    async def save(self, candidate: Candidate):
        self.items[(candidate.tenant_id, candidate.id)] = candidate.model_copy(deep=True)

    async def list_by_tenant(self, tenant_id: str, statuses=None, limit=None) -> List[Candidate]:
        result = [
            c.model_copy(deep=True) for (tid, _), c in self.items.items()
            if tid == tenant_id and (statuses is None or c.status in statuses)
        ]
        return result[:limit] if limit else result


class FakeTenantRepo:
    def __init__(self, tenants: List[Tenant]):
        self.items = {t.id: t for t in tenants}
        self.origin_lookups = 0

    async def get(self, tenant_id: str) -> Optional[Tenant]:
        tenant = self.items.get(tenant_id)
        return tenant.model_copy(deep=True) if tenant else None

    async def find_by_origin(self, origin_id: str) -> Optional[Tenant]:
        self.origin_lookups += 1
        for tenant in self.items.values():
            if tenant.webhook_origin == origin_id and tenant.is_active:
                return tenant.model_copy(deep=True)
        return None

    async def list_all(self, active_only: bool = True) -> List[Tenant]:
        return [t.model_copy(deep=True) for t in self.items.values() if t.is_active or not active_only]

    async def save(self, tenant: Tenant):
        self.items[tenant.id] = tenant.model_copy(deep=True)


class FakeRequisitionRepo:
    def __init__(self, requisitions: List[Requisition] = None, recruiters: List[RecruiterAssignment] = None):
        self.requisitions = list(requisitions or [])
        self.recruiters = list(recruiters or [])
        self.marked: List[tuple] = []

    async def list_active_approved(self, tenant_id: Optional[str] = None) -> List[Requisition]:
        return [
            r for r in self.requisitions
            if r.status == "active" and r.approval_status == "approved"
            and (tenant_id is None or r.tenant_id == tenant_id)
        ]

    async def mark_unfilled(self, tenant_id: str, requisition_id: str, days_threshold: int,
                            at: datetime.datetime):
        self.marked.append((tenant_id, requisition_id, days_threshold))
        for r in self.requisitions:
            if r.id == requisition_id:
                r.alert_unfilled = True
                r.alert_unfilled_at = at
                r.alert_days_threshold = days_threshold

    async def list_recruiters(self, tenant_id: str) -> List[RecruiterAssignment]:
        return [r for r in self.recruiters if r.tenant_id == tenant_id]


class FakeUserRepo:
    def __init__(self, users: Dict[str, ApiUser]):
        self.users = users

    async def get_by_token(self, token: str) -> Optional[ApiUser]:
        return self.users.get(token)


# --- Collaborators ---

class FakeTextGenerator:
    def __init__(self):
        self.calls = []
        self.error: Optional[Exception] = None

    async def generate(self, system_prompt, history, user_message, state=None) -> str:
        self.calls.append({"prompt": system_prompt, "history": history, "message": user_message, "state": state})
        if self.error:
            raise self.error
        return f"reply:{state.value}"

    async def aclose(self):
        pass


class FakeConnector:
    def __init__(self):
        self.sent = []
        self.fail_for = set()
        self.closed = False

    async def send_message(self, phone: str, text: str):
        if phone in self.fail_for:
            raise RuntimeError(f"cannot reach {phone}")
        self.sent.append((phone, text))
        return {"to": phone}

    async def close(self):
        self.closed = True


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail_for = set()

    async def send(self, to: str, subject: str, html: str):
        if to in self.fail_for:
            raise RuntimeError("smtp down")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return {"id": f"mail_{len(self.sent)}"}

    async def close(self):
        pass


# --- Data ---

MIRAFLORES = (-12.1111, -77.0316)


def make_stores() -> List[Store]:
    return [
        # ~0.3 km from the Miraflores centre
        Store(id="s-mira", tenant_id="ngr", name="Bembos Larco", address="Av. Larco 101",
              district="Miraflores", brand_id="bembos", brand_name="Bembos",
              lat=-12.1130, lng=-77.0290),
        # No explicit coordinates, located through its district
        Store(id="s-isidro", tenant_id="ngr", name="Popeyes San Isidro", address="Av. Camino Real 200",
              district="San Isidro", brand_id="popeyes", brand_name="Popeyes"),
        # Far away in Lima Norte
        Store(id="s-olivos", tenant_id="ngr", name="Bembos Los Olivos", address="Av. Universitaria 300",
              district="Los Olivos", brand_id="bembos", brand_name="Bembos"),
        Store(id="s-other", tenant_id="other", name="Other Tenant Store", district="Miraflores"),
    ]


def make_vacancies() -> List[Vacancy]:
    return [
        Vacancy(id="v-mira-1", store_id="s-mira", position="Cajero", shift_type=ShiftType.MIXED,
                available_slots=2, max_salary=1300, required_profile="Atención al cliente"),
        Vacancy(id="v-mira-2", store_id="s-mira", position="Cocinero", shift_type=ShiftType.CLOSING,
                available_slots=1, max_salary=1400),
        Vacancy(id="v-isidro-1", store_id="s-isidro", position="Repartidor", shift_type=ShiftType.ROTATING,
                available_slots=5),
        Vacancy(id="v-olivos-1", store_id="s-olivos", position="Cajero", available_slots=4),
        Vacancy(id="v-other-1", store_id="s-other", position="Cajero", available_slots=9),
    ]


@pytest.fixture
def tenants():
    return [
        Tenant(id="ngr", name="NGR", brand="ngr", webhook_origin="ngr-origin"),
        Tenant(id="other", name="Other", brand="other", webhook_origin="other-origin"),
    ]


@pytest.fixture
def tenant_repo(tenants):
    return FakeTenantRepo(tenants)


@pytest.fixture
def store_repo():
    return FakeStoreRepo(make_stores(), make_vacancies())


@pytest.fixture
def candidate_repo():
    return FakeCandidateRepo()


@pytest.fixture
def conversation_repo():
    return FakeConversationRepo()


@pytest.fixture
def text_generator():
    return FakeTextGenerator()


@pytest.fixture
def calendar():
    return MockCalendar()


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def users():
    return {
        "viewer-token": ApiUser(id=1, email="viewer@ngr.pe", tenant_id="ngr", role="viewer"),
        "recruiter-token": ApiUser(id=2, email="recruiter@ngr.pe", tenant_id="ngr", role="recruiter"),
        "admin-token": ApiUser(id=3, email="admin@ngr.pe", tenant_id="ngr", role="admin"),
        "other-admin-token": ApiUser(id=4, email="admin@other.pe", tenant_id="other", role="admin"),
        "inactive-token": ApiUser(id=5, email="gone@ngr.pe", tenant_id="ngr", role="admin", is_active=False),
    }


@pytest.fixture
def container(conversation_repo, candidate_repo, store_repo, tenant_repo, users,
              text_generator, calendar, connector, mailer):
    c = Container(
        conversations=conversation_repo,
        candidates=candidate_repo,
        stores=store_repo,
        tenants=tenant_repo,
        requisitions=FakeRequisitionRepo(),
        users=FakeUserRepo(users),
        text_generator=text_generator,
        calendar=calendar,
        connector=connector,
        mailer=mailer,
    )
    c.reminders.config = RemindersConfig(pause_seconds=0)
    return c
