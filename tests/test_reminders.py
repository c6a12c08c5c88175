import datetime
from zoneinfo import ZoneInfo

from recruitbot.core.config import RemindersConfig
from recruitbot.core.schemas import Candidate, Conversation, Interview
from recruitbot.core.states import CandidateStatus, ConversationState as S
from recruitbot.services.reminders import ConfirmationReminderJob, build_reminder_text

LIMA = ZoneInfo("America/Lima")
NOW = datetime.datetime(2026, 6, 5, 8, tzinfo=LIMA)
TOMORROW_10 = datetime.datetime(2026, 6, 6, 10, tzinfo=LIMA)


def _scheduled(phone: str, tenant_id: str = "ngr") -> Candidate:
    return Candidate(
        id=phone, tenant_id=tenant_id, name="Juan Perez", phone=phone,
        status=CandidateStatus.INTERVIEW_SCHEDULED,
        interview=Interview(date_time=TOMORROW_10, address="Av. Larco 101"),
    )


def _job(container):
    return ConfirmationReminderJob(
        container.scheduler, container.conversations, container.connector, RemindersConfig(pause_seconds=0)
    )


def test_reminder_text():
    text = build_reminder_text(_scheduled("987654321"), LIMA)
    assert "06/06/2026" in text
    assert "10:00" in text
    assert "Av. Larco 101" in text
    assert "REPROGRAMAR" in text


async def test_run_sends_and_moves_conversation(container, candidate_repo, conversation_repo, connector):
    await candidate_repo.save(_scheduled("987654321"))
    await conversation_repo.save(Conversation(
        phone="987654321", tenant_id="ngr", state=S.COMPLETED, is_active=False,
        completed_at=datetime.datetime(2026, 6, 1, tzinfo=datetime.timezone.utc),
    ))

    summary = await _job(container).run(now=NOW)

    assert (summary.sent, summary.failed) == (1, 0)
    assert connector.sent[0][0] == "987654321"
    conv = await conversation_repo.get("987654321")
    assert conv.state == S.CONFIRMATION_PENDING
    assert conv.is_active is True
    assert conv.completed_at is None
    assert conv.messages[-1].role == "assistant"


async def test_run_creates_missing_conversation(container, candidate_repo, conversation_repo):
    await candidate_repo.save(_scheduled("911111111", tenant_id="other"))

    await _job(container).run(now=NOW)

    conv = await conversation_repo.get("911111111")
    assert conv.tenant_id == "other"
    assert conv.state == S.CONFIRMATION_PENDING


async def test_run_continues_after_a_failure(container, candidate_repo, connector):
    await candidate_repo.save(_scheduled("911111111"))
    await candidate_repo.save(_scheduled("922222222"))
    connector.fail_for.add("911111111")

    summary = await _job(container).run("ngr", now=NOW)

    assert (summary.sent, summary.failed) == (1, 1)
    failed = next(r for r in summary.results if not r.success)
    assert failed.phone == "911111111"
    assert "cannot reach" in failed.error


async def test_run_with_nothing_to_send(container, connector):
    summary = await _job(container).run(now=NOW)
    assert summary.sent == 0
    assert connector.sent == []


async def test_confirmation_reply_after_reminder(container, candidate_repo, conversation_repo):
    await candidate_repo.save(_scheduled("987654321"))
    await _job(container).run(now=NOW)

    result = await container.engine.process_message("987654321", "Sí, confirmo", "test-whatsapp", "ngr")

    assert result.new_state == S.COMPLETED
    candidate = await candidate_repo.get("ngr", "987654321")
    assert candidate.status == CandidateStatus.INTERVIEW_CONFIRMED
    assert candidate.interview.confirmed is True
