# recruitbot/core/engine.py
import logging
from typing import Any, Dict, List, Optional, Tuple

from recruitbot.core.config import settings
from recruitbot.core.exceptions import CandidateNotFound, ValidationError
from recruitbot.core.extractor import extract_data
from recruitbot.core.prompts import get_system_prompt
from recruitbot.core.schemas import (
    Action, Candidate, CandidateData, Conversation, Coordinates, InterviewRequest, ProcessResult, utcnow
)
from recruitbot.core.states import (
    ActionType, CandidateStatus, ConversationState as S, ShiftType, TERMINAL_STATES
)
from recruitbot.core.transitions import determine_next_state
from recruitbot.services.geolocation import mentions_district

logger = logging.getLogger(__name__)

APOLOGY = "Disculpa, tuve un problema técnico. ¿Podrías repetir tu mensaje?"

# Heavy or internal fields kept out of the prompt
PROMPT_EXCLUDE = {"store_options", "offered_slots", "selected_store", "selected_vacancy", "latitude", "longitude"}


def _pick(options: List[Any], selection: Optional[int]) -> Optional[Any]:
    """1-based pick from a list shown to the candidate."""
    if selection is None or not 1 <= selection <= len(options):
        return None
    return options[selection - 1]


class ActionRunner:
    """Runs the side effects of a transition. One failing action never blocks the others."""

    def __init__(self, candidate_repo, scheduler):
        self.candidate_repo = candidate_repo
        self.scheduler = scheduler
        self.handlers = {
            ActionType.REJECTED: self._rejected,
            ActionType.FIND_STORES: self._find_stores,
            ActionType.SCHEDULE_INTERVIEW: self._schedule_interview,
            ActionType.CONFIRM_INTERVIEW: self._confirm_interview,
            ActionType.CANCEL_INTERVIEW: self._cancel_interview,
            ActionType.COMPLETE_CONVERSATION: self._complete_conversation,
        }

    async def execute(self, actions: List[Action], conversation: Conversation) -> List[Tuple[ActionType, bool]]:
        outcomes = []
        for action in actions:
            try:
                await self.handlers[action.type](action, conversation)
                outcomes.append((action.type, True))
            except Exception as e:
                logger.error(
                    f"❌ Action {action.type.value} failed for {conversation.phone}: {type(e).__name__}: {e}",
                    exc_info=True,
                )
                outcomes.append((action.type, False))
        return outcomes

    async def _rejected(self, action: Action, conversation: Conversation):
        logger.info(f"🚫 Candidate {conversation.phone} rejected: {action.reason} {action.details or ''}")

    async def _find_stores(self, action: Action, conversation: Conversation):
        count = len(conversation.candidate_data.store_options)
        logger.info(f"🏪 {count} stores offered to {conversation.phone} ({conversation.candidate_data.district})")

    async def create_candidate(self, conversation: Conversation) -> Candidate:
        data = conversation.candidate_data
        candidate = Candidate(
            id=conversation.phone,
            tenant_id=conversation.tenant_id,
            name=data.name,
            national_id=data.national_id,
            email=data.email,
            age=data.age,
            phone=conversation.phone,
            status=CandidateStatus.IN_PROCESS,
            selected_store=data.selected_store,
            selected_vacancy=data.selected_vacancy,
        )
        await self.candidate_repo.save(candidate)
        logger.info(f"👤 Candidate created: {candidate.id} ({candidate.tenant_id})")
        return candidate

    @staticmethod
    def build_interview_request(data: CandidateData) -> InterviewRequest:
        slot = _pick(data.offered_slots, data.slot_selection)
        if slot is None:
            if not data.offered_slots:
                raise ValidationError("No interview slots were offered")
            slot = data.offered_slots[0]
        store = data.selected_store
        vacancy = data.selected_vacancy
        return InterviewRequest(
            store_id=store.store_id if store else None,
            vacancy_id=vacancy.vacancy_id if vacancy else None,
            date_time=slot.start,
            address=store.address if store else None,
            store_name=store.name if store else None,
        )

    async def _schedule_interview(self, action: Action, conversation: Conversation):
        request = self.build_interview_request(conversation.candidate_data)
        try:
            await self.scheduler.schedule_interview(conversation.tenant_id, conversation.phone, request)
        except CandidateNotFound:
            logger.info(f"👤 Candidate {conversation.phone} not found, creating it and retrying once")
            await self.create_candidate(conversation)
            await self.scheduler.schedule_interview(conversation.tenant_id, conversation.phone, request)

    async def _confirm_interview(self, action: Action, conversation: Conversation):
        await self.scheduler.confirm_interview(conversation.tenant_id, conversation.phone)

    async def _cancel_interview(self, action: Action, conversation: Conversation):
        logger.info(f"🔁 Candidate {conversation.phone} asked to reschedule or cancel the interview")

    async def _complete_conversation(self, action: Action, conversation: Conversation):
        logger.info(f"🏁 Conversation completed for {conversation.phone}")


class ConversationEngine:
    """
    Handles one inbound message end to end:
    load conversation -> extract -> build context -> reply -> transition -> persist -> actions.
    """

    def __init__(self, conversation_repo, candidate_repo, store_matcher, scheduler, text_generator,
                 default_max_salary: Optional[int] = None, salary_tolerance: Optional[float] = None,
                 history_limit: Optional[int] = None):
        self.conversation_repo = conversation_repo
        self.store_matcher = store_matcher
        self.scheduler = scheduler
        self.text_generator = text_generator
        self.actions = ActionRunner(candidate_repo, scheduler)
        self.default_max_salary = default_max_salary or settings.salary.default_max_salary
        self.salary_tolerance = salary_tolerance if salary_tolerance is not None else settings.salary.tolerance
        self.history_limit = history_limit or settings.bot.history_limit

    async def process_message(self, phone: str, message: str, origin_id: str, tenant_id: str,
                              coordinates: Optional[Coordinates] = None) -> ProcessResult:
        logger.info(f"📥 Processing message from {phone} ({tenant_id}): \"{message}\"")
        try:
            return await self._process(phone, message, origin_id, tenant_id, coordinates)
        except Exception as e:
            logger.error(f"❌ Error processing message from {phone}: {type(e).__name__}: {e}", exc_info=True)
            await self._mark_error(phone)
            return ProcessResult(response=APOLOGY, new_state=S.INITIAL, actions=[])

    async def _mark_error(self, phone: str):
        try:
            conversation = await self.conversation_repo.get(phone)
            if conversation is not None:
                conversation.state = S.ERROR
                conversation.updated_at = utcnow()
                await self.conversation_repo.save(conversation)
        except Exception as e:
            logger.error(f"❌ Could not mark conversation {phone} as errored: {e}")

    async def _load(self, phone: str, origin_id: str, tenant_id: str) -> Conversation:
        conversation = await self.conversation_repo.get(phone)
        if conversation is None:
            logger.info(f"🆕 New conversation for {phone} ({tenant_id})")
            return Conversation(phone=phone, tenant_id=tenant_id, origin_id=origin_id)

        if conversation.tenant_id != tenant_id:
            logger.warning(f"🔄 {phone} moved from tenant {conversation.tenant_id} to {tenant_id}, resetting conversation")
            conversation = Conversation(
                phone=phone,
                tenant_id=tenant_id,
                origin_id=origin_id,
                created_at=conversation.created_at,
                reset_at=utcnow(),
            )
        return conversation

    async def _process(self, phone: str, message: str, origin_id: str, tenant_id: str,
                       coordinates: Optional[Coordinates]) -> ProcessResult:
        conversation = await self._load(phone, origin_id, tenant_id)
        conversation.add_message("user", message)
        state = conversation.state
        data = conversation.candidate_data

        if coordinates is not None:
            data = data.merge({"latitude": coordinates.lat, "longitude": coordinates.lng})

        extracted = extract_data(message, data, state)
        if extracted:
            logger.info(f"📊 Extracted data: {extracted}")
            data = data.merge(extracted)

        data, context = await self.build_context(state, data, message, tenant_id)

        system_prompt = get_system_prompt(state, context)
        reply = await self.text_generator.generate(
            system_prompt, conversation.history(self.history_limit), message, state
        )

        transition = determine_next_state(
            state, data, message,
            default_max_salary=self.default_max_salary,
            salary_tolerance=self.salary_tolerance,
        )
        for action in transition.actions:
            if action.type == ActionType.REJECTED:
                data = data.merge({"rejection_reason": action.reason})

        conversation.candidate_data = data
        conversation.state = transition.new_state
        conversation.add_message("assistant", reply)
        if transition.new_state in TERMINAL_STATES:
            conversation.is_active = False
            conversation.completed_at = utcnow()
        await self.conversation_repo.save(conversation)

        if transition.new_state != state:
            logger.info(f"➡️ {phone}: {state.value} → {transition.new_state.value}")

        await self.actions.execute(transition.actions, conversation)

        logger.info(f"✅ Generated response for {phone} ({tenant_id})")
        return ProcessResult(response=reply, new_state=transition.new_state, actions=transition.actions)

    # --- Context ---

    async def _match_stores(self, data: CandidateData, tenant_id: str) -> CandidateData:
        matches = await self.store_matcher.find_matching_stores(
            tenant_id,
            district=data.district,
            coordinates=data.coordinates,
            availability=data.declared_availability or ShiftType.MIXED,
        )
        return data.merge({"store_options": [m.to_option() for m in matches]})

    async def _offer_slots(self, data: CandidateData) -> CandidateData:
        slots = await self.scheduler.generate_time_slots()
        return data.merge({"offered_slots": slots[: settings.interviews.max_offered_slots]})

    async def build_context(self, state: S, data: CandidateData, message: str,
                            tenant_id: str) -> Tuple[CandidateData, Dict[str, Any]]:
        """
        Prompt context for `state`. Also refreshes the derived fields of `data`
        (store options, selections, offered slots), so it returns both.
        """
        context: Dict[str, Any] = {}

        if state == S.BASIC_DATA:
            context["missing_data"] = data.missing_basic_fields()

        elif state == S.HARD_FILTERS:
            context["current_filter"] = "turnos" if data.rotating_shifts is None else "cierres"

        elif state == S.SALARY_EXPECTATION:
            context["max_salary"] = data.position_max_salary or self.default_max_salary

        elif state == S.LOCATION_INPUT:
            if data.district or data.coordinates:
                data = await self._match_stores(data, tenant_id)

        elif state == S.STORE_LIST:
            # No stores nearby: a message naming a known district replaces the old one
            if not data.store_options and mentions_district(message):
                data = data.model_copy(update={"district": message.strip()})
                data = await self._match_stores(data, tenant_id)
            store = _pick(data.store_options, data.store_selection)
            if store is None:
                data = data.model_copy(update={"store_selection": None})
            else:
                data = data.merge({"selected_store": store})
                context["vacancies"] = [v.model_dump(mode="json") for v in store.vacancies]

        elif state == S.VACANCY_SELECTION:
            store = data.selected_store
            vacancies = store.vacancies if store else []
            vacancy = _pick(vacancies, data.vacancy_selection) or (vacancies[0] if vacancies else None)
            if vacancy is not None:
                data = data.merge({"selected_vacancy": vacancy, "position_max_salary": vacancy.max_salary})
                context["job_profile"] = vacancy.required_profile
            context["vacancies"] = [v.model_dump(mode="json") for v in vacancies]

        elif state == S.SCREENING:
            data = await self._offer_slots(data)
            if data.selected_vacancy:
                context["job_profile"] = data.selected_vacancy.required_profile

        elif state == S.INTERVIEW_SLOT:
            if not data.offered_slots:
                data = await self._offer_slots(data)
            slot = _pick(data.offered_slots, data.slot_selection) or (
                data.offered_slots[0] if data.offered_slots else None
            )
            if slot is not None:
                context["interview_details"] = {
                    "fecha": slot.display,
                    "direccion": data.selected_store.address if data.selected_store else None,
                    "tienda": data.selected_store.name if data.selected_store else None,
                    "puesto": data.selected_vacancy.position if data.selected_vacancy else None,
                }

        if data.store_options:
            context["stores"] = [
                {
                    "numero": i,
                    "nombre": s.name,
                    "direccion": s.address,
                    "marca": s.brand_name,
                    "distancia_km": s.distance_km,
                    "vacantes": [f"{v.position} ({v.available_slots} cupos)" for v in s.vacancies],
                }
                for i, s in enumerate(data.store_options, start=1)
            ]
        if data.selected_store:
            context["selected_store"] = {"nombre": data.selected_store.name, "direccion": data.selected_store.address}
        if data.selected_vacancy:
            context["selected_vacancy"] = data.selected_vacancy.model_dump(mode="json")
        if data.offered_slots:
            context["time_slots"] = [f"{i}. {s.display}" for i, s in enumerate(data.offered_slots, start=1)]

        context["candidate_data"] = data.model_dump(mode="json", exclude=PROMPT_EXCLUDE, exclude_none=True)
        return data, context
