# recruitbot/api/routes.py
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from recruitbot.api.deps import get_container, get_current_user, require_role
from recruitbot.core.container import Container
from recruitbot.core.exceptions import ConversationNotFound, ForbiddenError, ValidationError
from recruitbot.core.schemas import (
    AlertCheckSummary, AlertSettings, ApiUser, Candidate, ChatRequest, ChatResponse, Conversation,
    Coordinates, RescheduleRequest, ScheduledInterview, Store, Tenant, Vacancy
)
from recruitbot.core.states import CandidateStatus
from recruitbot.services.validator import validate_candidate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# --- Chat (called by the WhatsApp gateway, no user token) ---

@router.post("/chat", response_model=ChatResponse)
async def chat(payload: ChatRequest, container: Container = Depends(get_container)):
    if not payload.phone or not payload.message or not payload.origin_id:
        raise ValidationError("Missing required fields: phone, message, origin_id")

    tenant_id = await container.tenant_resolver.resolve(payload.origin_id)

    coordinates = None
    if payload.latitude is not None and payload.longitude is not None:
        coordinates = Coordinates(lat=payload.latitude, lng=payload.longitude)

    result = await container.engine.process_message(
        payload.phone, payload.message, payload.origin_id, tenant_id, coordinates=coordinates
    )
    return ChatResponse(
        phone=payload.phone,
        response=result.response,
        state=result.new_state,
        tenant_id=tenant_id,
    )


# --- Tenant configuration ---

@router.get("/tenant/config", response_model=Tenant)
async def get_tenant_config(user: ApiUser = Depends(get_current_user),
                            container: Container = Depends(get_container)):
    return await container.tenant_service.get_config(user.tenant_id)


@router.put("/tenant/config", response_model=Tenant)
async def update_tenant_config(updates: Dict[str, Any] = Body(...),
                               user: ApiUser = Depends(require_role("admin")),
                               container: Container = Depends(get_container)):
    logger.info(f"🛠️ {user.email} updating config of {user.tenant_id}")
    return await container.tenant_service.update_config(user.tenant_id, updates)


@router.get("/tenant/alerts", response_model=AlertSettings)
async def get_alert_settings(user: ApiUser = Depends(get_current_user),
                             container: Container = Depends(get_container)):
    return await container.tenant_service.get_alert_settings(user.tenant_id)


@router.put("/tenant/alerts", response_model=AlertSettings)
async def update_alert_settings(updates: Dict[str, Any] = Body(...),
                                user: ApiUser = Depends(require_role("admin")),
                                container: Container = Depends(get_container)):
    return await container.tenant_service.update_alert_settings(user.tenant_id, updates)


# --- Read models ---

@router.get("/stores", response_model=List[Store])
async def list_stores(user: ApiUser = Depends(get_current_user),
                      container: Container = Depends(get_container)):
    return await container.stores.list_stores(user.tenant_id)


@router.get("/vacancies", response_model=List[Vacancy])
async def list_vacancies(store_id: Optional[str] = None,
                         user: ApiUser = Depends(get_current_user),
                         container: Container = Depends(get_container)):
    return await container.stores.list_vacancies(user.tenant_id, store_id)


@router.get("/candidates", response_model=List[Candidate])
async def list_candidates(status: Optional[CandidateStatus] = None,
                          limit: int = Query(50, ge=1, le=500),
                          user: ApiUser = Depends(get_current_user),
                          container: Container = Depends(get_container)):
    statuses = [status] if status else None
    return await container.candidates.list_by_tenant(user.tenant_id, statuses=statuses, limit=limit)


@router.post("/candidates", response_model=Candidate, status_code=201)
async def create_candidate(payload: Dict[str, Any] = Body(...),
                           user: ApiUser = Depends(require_role("recruiter")),
                           container: Container = Depends(get_container)):
    """Recruiter-entered candidate. Every field problem is reported in one 400."""
    result = validate_candidate(payload, user.tenant_id)
    if not result.valid:
        raise ValidationError("Candidate data is invalid", errors=result.errors)

    data = result.data
    if await container.candidates.get(user.tenant_id, data["phone"]):
        raise ValidationError(f"Candidate already exists: {data['phone']}")

    candidate = Candidate(
        id=data["phone"],
        tenant_id=user.tenant_id,
        name=data["name"],
        national_id=data["national_id"],
        age=data["age"],
        phone=data["phone"],
        email=payload.get("email"),
        origin="api",
    )
    await container.candidates.save(candidate)
    logger.info(f"👤 {user.email} created candidate {candidate.id} in {user.tenant_id}")
    return candidate


@router.get("/conversations/{phone}", response_model=Conversation)
async def get_conversation(phone: str,
                           user: ApiUser = Depends(get_current_user),
                           container: Container = Depends(get_container)):
    conversation = await container.conversations.get(phone)
    if conversation is None:
        raise ConversationNotFound(f"Conversation not found: {phone}")
    if conversation.tenant_id != user.tenant_id:
        raise ForbiddenError("Conversation belongs to another tenant")
    return conversation


# --- Interviews ---

@router.post("/candidates/{candidate_id}/interview/confirm", response_model=ScheduledInterview)
async def confirm_interview(candidate_id: str,
                            user: ApiUser = Depends(require_role("recruiter")),
                            container: Container = Depends(get_container)):
    return await container.scheduler.confirm_interview(user.tenant_id, candidate_id)


@router.put("/candidates/{candidate_id}/interview", response_model=ScheduledInterview)
async def reschedule_interview(candidate_id: str, payload: RescheduleRequest,
                               user: ApiUser = Depends(require_role("recruiter")),
                               container: Container = Depends(get_container)):
    logger.info(f"📅 {user.email} rescheduling interview of {candidate_id} to {payload.date_time}")
    return await container.scheduler.reschedule_interview(user.tenant_id, candidate_id, payload.date_time)


# --- Alerts ---

@router.post("/alerts/unfilled/check", response_model=AlertCheckSummary)
async def check_unfilled(tenant_id: Optional[str] = None,
                         user: ApiUser = Depends(require_role("admin")),
                         container: Container = Depends(get_container)):
    target = tenant_id or user.tenant_id
    if target != user.tenant_id:
        raise ForbiddenError("Cannot check alerts of another tenant")
    return await container.alerts.trigger_check(target)
