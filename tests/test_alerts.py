import datetime

import pytest

from recruitbot.core.config import AlertsConfig
from recruitbot.core.exceptions import TenantNotFound
from recruitbot.core.schemas import AlertSettings, RecruiterAssignment, Requisition
from recruitbot.services.alerts import UnfilledRequisitionAlerts, find_unfilled, render_alert_email

from tests.conftest import FakeRequisitionRepo

NOW = datetime.datetime(2026, 6, 15, 8, tzinfo=datetime.timezone.utc)


def _rq(rq_id, days_ago, tenant_id="ngr", brand_id="bembos", **kwargs):
    return Requisition(
        id=rq_id, tenant_id=tenant_id, number=f"RQ-{rq_id}", position="Cajero", store_name="Larco",
        brand_id=brand_id, brand_name=brand_id.title(),
        recruitment_started_at=NOW - datetime.timedelta(days=days_ago), **kwargs,
    )


def test_find_unfilled_uses_start_fallbacks():
    requisitions = [
        _rq("a", 8),
        _rq("b", 3),
        Requisition(id="c", tenant_id="ngr", approved_at=NOW - datetime.timedelta(days=7)),
        Requisition(id="d", tenant_id="ngr", created_at=(NOW - datetime.timedelta(days=30)).replace(tzinfo=None)),
        Requisition(id="e", tenant_id="ngr"),
    ]
    unfilled = find_unfilled(requisitions, 7, NOW)
    assert [(u.requisition.id, u.days_open) for u in unfilled] == [("a", 8), ("c", 7), ("d", 30)]


def test_render_alert_email_escapes():
    rq = Requisition(id="x", tenant_id="ngr", number="RQ-1", position="<script>")
    body = render_alert_email("Ana", "Bembos", find_unfilled([rq.model_copy(update={"created_at": NOW})], 0, NOW),
                              7, "https://example.test")
    assert "&lt;script&gt;" in body
    assert "Ana" in body


@pytest.fixture
def requisitions():
    return FakeRequisitionRepo(
        requisitions=[
            _rq("1", 10),
            _rq("2", 9, brand_id="popeyes"),
            _rq("3", 2),
            _rq("4", 12, alert_unfilled=True),
            _rq("5", 20, status="filled"),
            _rq("6", 20, approval_status="pending"),
            _rq("7", 20, tenant_id="other"),
        ],
        recruiters=[
            RecruiterAssignment(tenant_id="ngr", email="ana@ngr.pe", display_name="Ana", brand_ids=["bembos"]),
            RecruiterAssignment(tenant_id="ngr", email="luis@ngr.pe", brand_ids=["bembos", "popeyes"]),
            RecruiterAssignment(tenant_id="ngr", email="old@ngr.pe", brand_ids=["bembos"], is_active=False),
        ],
    )


async def test_check_tenant_marks_and_emails_by_brand(tenant_repo, requisitions, mailer):
    alerts = UnfilledRequisitionAlerts(tenant_repo, requisitions, mailer, AlertsConfig())
    tenant = await tenant_repo.get("ngr")

    count = await alerts.check_tenant(tenant, NOW)

    assert count == 3
    # Already flagged requisitions are not marked again
    assert [m[1] for m in requisitions.marked] == ["1", "2"]
    assert all(m[2] == 7 for m in requisitions.marked)

    recipients = sorted((m["to"], "Popeyes" in m["subject"]) for m in mailer.sent)
    assert recipients == [("ana@ngr.pe", False), ("luis@ngr.pe", False), ("luis@ngr.pe", True)]
    bembos_mail = next(m for m in mailer.sent if m["to"] == "ana@ngr.pe")
    assert "2 posición(es)" in bembos_mail["subject"]


async def test_check_tenant_disabled(tenant_repo, requisitions, mailer):
    tenant = await tenant_repo.get("ngr")
    tenant.alert_settings = AlertSettings(enabled=False)
    alerts = UnfilledRequisitionAlerts(tenant_repo, requisitions, mailer, AlertsConfig())

    assert await alerts.check_tenant(tenant, NOW) == 0
    assert requisitions.marked == []
    assert mailer.sent == []


async def test_check_tenant_without_email(tenant_repo, requisitions, mailer):
    tenant = await tenant_repo.get("ngr")
    tenant.alert_settings = AlertSettings(email_notifications=False, days_without_fill=1)
    alerts = UnfilledRequisitionAlerts(tenant_repo, requisitions, mailer, AlertsConfig())

    assert await alerts.check_tenant(tenant, NOW) == 4
    assert mailer.sent == []


async def test_mail_failure_does_not_stop_others(tenant_repo, requisitions, mailer):
    mailer.fail_for.add("ana@ngr.pe")
    alerts = UnfilledRequisitionAlerts(tenant_repo, requisitions, mailer, AlertsConfig())

    assert await alerts.check_tenant(await tenant_repo.get("ngr"), NOW) == 3
    assert {m["to"] for m in mailer.sent} == {"luis@ngr.pe"}


async def test_run_daily_covers_all_tenants(tenant_repo, requisitions, mailer):
    alerts = UnfilledRequisitionAlerts(tenant_repo, requisitions, mailer, AlertsConfig())
    assert await alerts.run_daily(NOW) == {"ngr": 3, "other": 1}


async def test_trigger_check_only_counts(tenant_repo, requisitions, mailer):
    alerts = UnfilledRequisitionAlerts(tenant_repo, requisitions, mailer, AlertsConfig())

    summary = await alerts.trigger_check("ngr", NOW)
    assert (summary.tenant_id, summary.alert_days, summary.total_active, summary.unfilled) == ("ngr", 7, 4, 3)
    assert requisitions.marked == []
    assert mailer.sent == []

    everything = await alerts.trigger_check(now=NOW)
    assert (everything.tenant_id, everything.total_active, everything.unfilled) == ("all", 5, 4)


async def test_trigger_check_unknown_tenant(tenant_repo, requisitions, mailer):
    alerts = UnfilledRequisitionAlerts(tenant_repo, requisitions, mailer, AlertsConfig())
    with pytest.raises(TenantNotFound):
        await alerts.trigger_check("ghost", NOW)
