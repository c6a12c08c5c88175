# recruitbot/services/reminders.py
import asyncio
import logging
import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo
from pydantic import BaseModel, Field

from recruitbot.core.config import settings, RemindersConfig
from recruitbot.core.schemas import Candidate, Conversation
from recruitbot.core.states import ConversationState

logger = logging.getLogger(__name__)


class ReminderResult(BaseModel):
    phone: str
    tenant_id: str
    success: bool
    error: Optional[str] = None


class ReminderSummary(BaseModel):
    sent: int = 0
    failed: int = 0
    results: List[ReminderResult] = Field(default_factory=list)


def build_reminder_text(candidate: Candidate, tz: ZoneInfo) -> str:
    when = candidate.interview.date_time.astimezone(tz)
    return (
        f"¡Hola {candidate.name or ''}! 👋\n\n"
        "Este es un recordatorio de tu entrevista programada para mañana:\n\n"
        f"📅 Fecha: {when.strftime('%d/%m/%Y')}\n"
        f"⏰ Hora: {when.strftime('%H:%M')}\n"
        f"📍 Dirección: {candidate.interview.address or 'Por confirmar'}\n\n"
        'Por favor, confirma tu asistencia respondiendo "SÍ".\n'
        'Si necesitas reprogramar, responde "REPROGRAMAR".\n\n'
        f"¡Te esperamos!\n{settings.bot.company}"
    )


class ConfirmationReminderJob:
    """Day-before reminders: message the candidate and wait for SÍ / REPROGRAMAR in the chat."""

    def __init__(self, scheduler, conversation_repo, connector, config: Optional[RemindersConfig] = None):
        self.scheduler = scheduler
        self.conversation_repo = conversation_repo
        self.connector = connector
        self.config = config or settings.reminders
        self.tz = ZoneInfo(settings.interviews.timezone)

    async def _send_one(self, candidate: Candidate) -> ReminderResult:
        phone = candidate.phone or candidate.id
        text = build_reminder_text(candidate, self.tz)
        logger.info(f"📧 Sending reminder to {phone} ({candidate.tenant_id})")

        await self.connector.send_message(phone, text)

        conversation = await self.conversation_repo.get(phone)
        if conversation is None:
            conversation = Conversation(phone=phone, tenant_id=candidate.tenant_id)
        conversation.state = ConversationState.CONFIRMATION_PENDING
        conversation.is_active = True
        conversation.completed_at = None
        conversation.add_message("assistant", text)
        await self.conversation_repo.save(conversation)

        return ReminderResult(phone=phone, tenant_id=candidate.tenant_id, success=True)

    async def run(self, tenant_id: Optional[str] = None,
                  now: Optional[datetime.datetime] = None) -> ReminderSummary:
        logger.info("🔔 Starting confirmation reminder job...")
        candidates = await self.scheduler.get_candidates_for_tomorrow_reminder(tenant_id, now=now)

        summary = ReminderSummary()
        if not candidates:
            logger.info("✅ No interviews scheduled for tomorrow")
            return summary

        for candidate in candidates:
            try:
                result = await self._send_one(candidate)
            except Exception as e:
                logger.error(f"❌ Error sending reminder to {candidate.phone or candidate.id}: {e}", exc_info=True)
                result = ReminderResult(
                    phone=candidate.phone or candidate.id, tenant_id=candidate.tenant_id,
                    success=False, error=str(e),
                )
            summary.results.append(result)
            if self.config.pause_seconds:
                await asyncio.sleep(self.config.pause_seconds)

        summary.sent = sum(1 for r in summary.results if r.success)
        summary.failed = len(summary.results) - summary.sent
        logger.info(f"✅ Confirmation job completed: {summary.sent} sent, {summary.failed} failed")
        return summary
