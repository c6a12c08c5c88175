# recruitbot/db/repositories.py
"""
Storage access for the core. Every repository takes an async session factory
and maps SQLAlchemy rows to the pydantic models of recruitbot.core.schemas,
so nothing outside this module sees ORM objects.
"""
import logging
import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, update

from recruitbot.core import schemas
from recruitbot.db import models

logger = logging.getLogger(__name__)


def _json(model) -> Optional[dict]:
    return model.model_dump(mode="json") if model is not None else None


# --- Conversations ---

class ConversationRepository:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    @staticmethod
    def _to_schema(row: models.Conversation) -> schemas.Conversation:
        return schemas.Conversation(
            phone=row.phone,
            tenant_id=row.tenant_id,
            origin_id=row.origin_id,
            state=row.state,
            candidate_data=row.candidate_data or {},
            messages=row.messages or [],
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
            reset_at=row.reset_at,
            completed_at=row.completed_at,
        )

    async def get(self, phone: str) -> Optional[schemas.Conversation]:
        async with self.session_factory() as db:
            row = await db.get(models.Conversation, phone)
            return self._to_schema(row) if row else None

    async def save(self, conversation: schemas.Conversation):
        data = conversation.model_dump(mode="json")
        async with self.session_factory() as db:
            await db.merge(models.Conversation(
                phone=conversation.phone,
                tenant_id=conversation.tenant_id,
                origin_id=conversation.origin_id,
                state=conversation.state.value,
                candidate_data=data["candidate_data"],
                messages=data["messages"],
                is_active=conversation.is_active,
                created_at=conversation.created_at,
                updated_at=conversation.updated_at,
                reset_at=conversation.reset_at,
                completed_at=conversation.completed_at,
            ))
            await db.commit()


# --- Stores / vacancies ---

class StoreRepository:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    @staticmethod
    def _store(row: models.Store) -> schemas.Store:
        return schemas.Store(
            id=row.id, tenant_id=row.tenant_id, code=row.code, name=row.name,
            address=row.address, district=row.district, zone=row.zone,
            brand_id=row.brand_id, brand_name=row.brand_name,
            lat=row.lat, lng=row.lng, coordinates=row.coordinates,
        )

    @staticmethod
    def _vacancy(row: models.Vacancy) -> schemas.Vacancy:
        return schemas.Vacancy(
            id=row.id, store_id=row.store_id, position=row.position,
            shift_type=row.shift_type, modality=row.modality,
            available_slots=row.available_slots or 0, status=row.status,
            required_profile=row.required_profile, max_salary=row.max_salary,
        )

    async def list_stores(self, tenant_id: str) -> List[schemas.Store]:
        async with self.session_factory() as db:
            result = await db.execute(select(models.Store).filter_by(tenant_id=tenant_id).order_by(models.Store.id))
            return [self._store(r) for r in result.scalars().all()]

    async def list_vacancies(self, tenant_id: str, store_id: Optional[str] = None) -> List[schemas.Vacancy]:
        stmt = select(models.Vacancy).filter_by(tenant_id=tenant_id)
        if store_id:
            stmt = stmt.filter_by(store_id=store_id)
        async with self.session_factory() as db:
            result = await db.execute(stmt.order_by(models.Vacancy.id))
            return [self._vacancy(r) for r in result.scalars().all()]

    async def list_open_vacancies(self, tenant_id: str, store_id: str) -> List[schemas.Vacancy]:
        stmt = (
            select(models.Vacancy)
            .filter_by(tenant_id=tenant_id, store_id=store_id, status="active")
            .where(models.Vacancy.available_slots > 0)
            .order_by(models.Vacancy.id)
        )
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return [self._vacancy(r) for r in result.scalars().all()]


# --- Candidates ---

class CandidateRepository:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    @staticmethod
    def _to_schema(row: models.Candidate) -> schemas.Candidate:
        return schemas.Candidate(
            id=row.id, tenant_id=row.tenant_id, name=row.name, national_id=row.national_id,
            email=row.email, age=row.age, phone=row.phone, status=row.status, origin=row.origin,
            selected_store=row.selected_store, selected_vacancy=row.selected_vacancy,
            interview=row.interview, applications=row.applications or [],
            created_at=row.created_at, updated_at=row.updated_at,
        )

    async def get(self, tenant_id: str, candidate_id: str) -> Optional[schemas.Candidate]:
        async with self.session_factory() as db:
            row = await db.get(models.Candidate, (tenant_id, candidate_id))
            return self._to_schema(row) if row else None

    async def save(self, candidate: schemas.Candidate):
        async with self.session_factory() as db:
            await db.merge(models.Candidate(
                tenant_id=candidate.tenant_id,
                id=candidate.id,
                name=candidate.name,
                national_id=candidate.national_id,
                email=candidate.email,
                age=candidate.age,
                phone=candidate.phone,
                status=candidate.status.value,
                origin=candidate.origin,
                selected_store=_json(candidate.selected_store),
                selected_vacancy=_json(candidate.selected_vacancy),
                interview=_json(candidate.interview),
                applications=[a.model_dump(mode="json") for a in candidate.applications],
                created_at=candidate.created_at,
                updated_at=candidate.updated_at,
            ))
            await db.commit()

    async def list_by_tenant(self, tenant_id: str, statuses: Optional[Iterable] = None,
                             limit: Optional[int] = None) -> List[schemas.Candidate]:
        stmt = select(models.Candidate).filter_by(tenant_id=tenant_id)
        if statuses:
            stmt = stmt.where(models.Candidate.status.in_([getattr(s, "value", s) for s in statuses]))
        stmt = stmt.order_by(models.Candidate.updated_at.desc())
        if limit:
            stmt = stmt.limit(limit)
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return [self._to_schema(r) for r in result.scalars().all()]


# --- Tenants ---

class TenantRepository:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    @staticmethod
    def _to_schema(row: models.Tenant) -> schemas.Tenant:
        return schemas.Tenant(
            id=row.id, name=row.name, brand=row.brand, branding=row.branding or {},
            webhook_origin=row.webhook_origin, is_active=row.is_active,
            alert_settings=row.alert_settings or {},
        )

    async def get(self, tenant_id: str) -> Optional[schemas.Tenant]:
        async with self.session_factory() as db:
            row = await db.get(models.Tenant, tenant_id)
            return self._to_schema(row) if row else None

    async def find_by_origin(self, origin_id: str) -> Optional[schemas.Tenant]:
        async with self.session_factory() as db:
            row = await db.scalar(select(models.Tenant).filter_by(webhook_origin=origin_id).limit(1))
            return self._to_schema(row) if row else None

    async def list_all(self, active_only: bool = True) -> List[schemas.Tenant]:
        stmt = select(models.Tenant).order_by(models.Tenant.id)
        if active_only:
            stmt = stmt.filter_by(is_active=True)
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return [self._to_schema(r) for r in result.scalars().all()]

    async def save(self, tenant: schemas.Tenant):
        async with self.session_factory() as db:
            await db.merge(models.Tenant(
                id=tenant.id,
                name=tenant.name,
                brand=tenant.brand,
                branding=tenant.branding,
                webhook_origin=tenant.webhook_origin,
                is_active=tenant.is_active,
                alert_settings=tenant.alert_settings.model_dump(mode="json"),
            ))
            await db.commit()


# --- Requisitions / recruiters ---

class RequisitionRepository:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    @staticmethod
    def _to_schema(row: models.Requisition) -> schemas.Requisition:
        return schemas.Requisition(
            id=row.id, tenant_id=row.tenant_id, number=row.number, position=row.position,
            store_name=row.store_name, brand_id=row.brand_id, brand_name=row.brand_name,
            status=row.status, approval_status=row.approval_status,
            recruitment_started_at=row.recruitment_started_at, approved_at=row.approved_at,
            created_at=row.created_at, alert_unfilled=bool(row.alert_unfilled),
            alert_unfilled_at=row.alert_unfilled_at, alert_days_threshold=row.alert_days_threshold,
        )

    async def list_active_approved(self, tenant_id: Optional[str] = None) -> List[schemas.Requisition]:
        stmt = select(models.Requisition).filter_by(status="active", approval_status="approved")
        if tenant_id:
            stmt = stmt.filter_by(tenant_id=tenant_id)
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return [self._to_schema(r) for r in result.scalars().all()]

    async def mark_unfilled(self, tenant_id: str, requisition_id: str, days_threshold: int,
                            at: datetime.datetime):
        async with self.session_factory() as db:
            await db.execute(
                update(models.Requisition)
                .where(models.Requisition.tenant_id == tenant_id, models.Requisition.id == requisition_id)
                .values(alert_unfilled=True, alert_unfilled_at=at, alert_days_threshold=days_threshold)
            )
            await db.commit()

    async def list_recruiters(self, tenant_id: str) -> List[schemas.RecruiterAssignment]:
        stmt = select(models.RecruiterAssignment).filter_by(tenant_id=tenant_id, role="recruiter", is_active=True)
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return [
                schemas.RecruiterAssignment(
                    tenant_id=r.tenant_id, email=r.email, display_name=r.display_name,
                    role=r.role, is_active=r.is_active, brand_ids=r.brand_ids or [],
                )
                for r in result.scalars().all()
            ]


# --- API users ---

class UserRepository:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def get_by_token(self, token: str) -> Optional[schemas.ApiUser]:
        async with self.session_factory() as db:
            row = await db.scalar(select(models.ApiUser).filter_by(token=token))
            if row is None:
                return None
            return schemas.ApiUser(
                id=row.id, email=row.email, tenant_id=row.tenant_id, role=row.role, is_active=row.is_active,
            )
