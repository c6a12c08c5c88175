# recruitbot/services/interviews.py
import uuid
import logging
import datetime
from typing import List, Optional, Union
from zoneinfo import ZoneInfo

from recruitbot.core.config import settings, InterviewsConfig
from recruitbot.core.exceptions import CandidateNotFound, ValidationError
from recruitbot.core.schemas import (
    Application, Candidate, Interview, InterviewRequest, ScheduledInterview, TimeSlot, utcnow
)
from recruitbot.core.states import CandidateStatus, InterviewStatus
from recruitbot.services.calendar import event_time

logger = logging.getLogger(__name__)

DAY_NAMES = ["Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado", "Domingo"]
MONTH_NAMES = ["Ene", "Feb", "Mar", "Abr", "May", "Jun", "Jul", "Ago", "Sep", "Oct", "Nov", "Dic"]

REMINDABLE_STATUSES = [CandidateStatus.INTERVIEW_SCHEDULED, CandidateStatus.INTERVIEW_CONFIRMED]


def format_slot_display(moment: datetime.datetime) -> str:
    """'Lunes 2 Jun - 9:00 AM'"""
    ampm = "PM" if moment.hour >= 12 else "AM"
    hour = moment.hour - 12 if moment.hour > 12 else moment.hour
    return f"{DAY_NAMES[moment.weekday()]} {moment.day} {MONTH_NAMES[moment.month - 1]} - {hour}:{moment.minute:02d} {ampm}"


class InterviewScheduler:
    def __init__(self, candidate_repo, tenant_repo, calendar, config: Optional[InterviewsConfig] = None):
        self.candidate_repo = candidate_repo
        self.tenant_repo = tenant_repo
        self.calendar = calendar
        self.config = config or settings.interviews
        self.tz = ZoneInfo(self.config.timezone)

    def _local_date(self, start: Union[datetime.date, datetime.datetime, None]) -> datetime.date:
        if start is None:
            return datetime.datetime.now(self.tz).date()
        if isinstance(start, datetime.datetime):
            if start.tzinfo is not None:
                start = start.astimezone(self.tz)
            return start.date()
        return start

    def _aware(self, moment: datetime.datetime) -> datetime.datetime:
        return moment if moment.tzinfo is not None else moment.replace(tzinfo=self.tz)

    # --- Slots ---

    async def generate_time_slots(self, start: Union[datetime.date, datetime.datetime, None] = None,
                                  days_ahead: Optional[int] = None) -> List[TimeSlot]:
        """
        Business-hour slots from the day after `start` up to `days_ahead` days later.

        Sundays are skipped and slots overlapping a busy calendar event are removed.
        """
        if days_ahead is None:
            days_ahead = self.config.days_ahead
        base = self._local_date(start)
        length = datetime.timedelta(minutes=self.config.slot_minutes)

        slots: List[TimeSlot] = []
        for offset in range(1, days_ahead + 1):
            day = base + datetime.timedelta(days=offset)
            if day.weekday() == 6:
                continue
            for hour in self.config.hours:
                slot_start = datetime.datetime.combine(day, datetime.time(hour), tzinfo=self.tz)
                slots.append(TimeSlot(start=slot_start, end=slot_start + length, display=format_slot_display(slot_start)))

        if not slots:
            return []

        time_min = datetime.datetime.combine(base + datetime.timedelta(days=1), datetime.time(0), tzinfo=self.tz)
        time_max = datetime.datetime.combine(base + datetime.timedelta(days=days_ahead + 1), datetime.time(0), tzinfo=self.tz)
        events = await self.calendar.list_events(self.config.calendar_id, time_min, time_max)

        busy = [(event_time(e, "start"), event_time(e, "end")) for e in events]
        available = [
            slot for slot in slots
            if not any(slot.start < busy_end and slot.end > busy_start for busy_start, busy_end in busy)
        ]
        logger.info(f"🗓️ Generated {len(available)} free slots ({len(slots) - len(available)} busy) over {days_ahead} days")
        return available

    # --- Interview lifecycle ---

    async def _get_candidate(self, tenant_id: str, candidate_id: str) -> Candidate:
        candidate = await self.candidate_repo.get(tenant_id, candidate_id)
        if candidate is None:
            raise CandidateNotFound(tenant_id, candidate_id)
        return candidate

    async def schedule_interview(self, tenant_id: str, candidate_id: str,
                                 request: InterviewRequest) -> ScheduledInterview:
        logger.info(f"📅 Scheduling interview for {candidate_id} ({tenant_id}) at {request.date_time}")
        candidate = await self._get_candidate(tenant_id, candidate_id)

        store = candidate.selected_store
        vacancy = candidate.selected_vacancy
        if store is None:
            logger.warning(f"⚠️ No store selection found for candidate {candidate_id}, using request data")

        start = self._aware(request.date_time)
        end = start + datetime.timedelta(minutes=self.config.slot_minutes)
        event = await self.calendar.create_event(self.config.calendar_id, {
            "summary": f"Entrevista: {candidate.name or 'Candidato'} - {vacancy.position if vacancy else 'Puesto'}",
            "description": (
                f"Candidato: {candidate.name}\nDNI: {candidate.national_id}\n"
                f"Teléfono: {candidate.id}\nTienda: {request.store_name or request.store_id}"
            ),
            "start": {"dateTime": start.isoformat()},
            "end": {"dateTime": end.isoformat()},
            "attendees": [{"email": candidate.email}] if candidate.email else [],
        })

        now = utcnow()
        candidate.interview = Interview(
            store_id=request.store_id,
            vacancy_id=request.vacancy_id,
            date_time=start,
            address=request.address,
            calendar_event_id=event.get("id"),
            calendar_link=event.get("htmlLink"),
            status=InterviewStatus.SCHEDULED,
            confirmed=False,
            scheduled_at=now,
        )
        candidate.status = CandidateStatus.INTERVIEW_SCHEDULED
        candidate.applications.append(Application(
            id=f"app_{uuid.uuid4().hex[:12]}",
            store_id=store.store_id if store else request.store_id,
            store_name=store.name if store else request.store_name,
            brand_id=store.brand_id if store else None,
            brand_name=store.brand_name if store else None,
            position=vacancy.position if vacancy else None,
            modality=vacancy.modality if vacancy else None,
            shift=vacancy.shift_type.value if vacancy else None,
            status=CandidateStatus.INTERVIEW_SCHEDULED.value,
            applied_at=now,
        ))
        candidate.updated_at = now
        await self.candidate_repo.save(candidate)

        logger.info(f"✅ Interview scheduled for {candidate_id}: {event.get('htmlLink')}")
        return ScheduledInterview(
            candidate_id=candidate_id,
            date_time=start,
            address=request.address,
            status=InterviewStatus.SCHEDULED,
            calendar_link=event.get("htmlLink"),
        )

    async def confirm_interview(self, tenant_id: str, candidate_id: str) -> ScheduledInterview:
        candidate = await self._get_candidate(tenant_id, candidate_id)
        if candidate.interview is None:
            raise ValidationError(f"Candidate {candidate_id} has no interview to confirm")

        now = utcnow()
        candidate.interview.confirmed = True
        candidate.interview.confirmed_at = now
        candidate.interview.status = InterviewStatus.CONFIRMED
        candidate.status = CandidateStatus.INTERVIEW_CONFIRMED
        candidate.updated_at = now
        await self.candidate_repo.save(candidate)

        logger.info(f"✅ Interview confirmed for candidate {candidate_id} ({tenant_id})")
        return self._summary(candidate)

    async def reschedule_interview(self, tenant_id: str, candidate_id: str,
                                   new_datetime: datetime.datetime) -> ScheduledInterview:
        candidate = await self._get_candidate(tenant_id, candidate_id)
        if candidate.interview is None:
            raise ValidationError(f"Candidate {candidate_id} has no interview to reschedule")

        now = utcnow()
        candidate.interview.date_time = self._aware(new_datetime)
        candidate.interview.rescheduled = True
        candidate.interview.rescheduled_at = now
        candidate.interview.confirmed = False
        candidate.interview.status = InterviewStatus.RESCHEDULED
        candidate.status = CandidateStatus.INTERVIEW_SCHEDULED
        candidate.updated_at = now
        await self.candidate_repo.save(candidate)

        logger.info(f"🔁 Interview rescheduled for candidate {candidate_id} to {new_datetime}")
        return self._summary(candidate)

    @staticmethod
    def _summary(candidate: Candidate) -> ScheduledInterview:
        return ScheduledInterview(
            candidate_id=candidate.id,
            date_time=candidate.interview.date_time,
            address=candidate.interview.address,
            status=candidate.interview.status,
            calendar_link=candidate.interview.calendar_link,
        )

    # --- Reminders ---

    async def get_candidates_for_tomorrow_reminder(self, tenant_id: Optional[str] = None,
                                                   now: Optional[datetime.datetime] = None) -> List[Candidate]:
        """Candidates with a scheduled or confirmed interview during tomorrow (local time)."""
        now = now or datetime.datetime.now(self.tz)
        tomorrow = self._local_date(now) + datetime.timedelta(days=1)
        window_start = datetime.datetime.combine(tomorrow, datetime.time(0), tzinfo=self.tz)
        window_end = window_start + datetime.timedelta(days=1)

        if tenant_id:
            tenant_ids = [tenant_id]
        else:
            tenant_ids = [t.id for t in await self.tenant_repo.list_all()]

        result: List[Candidate] = []
        for tid in tenant_ids:
            for candidate in await self.candidate_repo.list_by_tenant(tid, statuses=REMINDABLE_STATUSES):
                interview = candidate.interview
                if interview and window_start <= self._aware(interview.date_time) < window_end:
                    result.append(candidate)

        logger.info(f"📋 Found {len(result)} interviews scheduled for tomorrow")
        return result
