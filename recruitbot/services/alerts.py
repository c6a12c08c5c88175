# recruitbot/services/alerts.py
import html
import logging
import datetime
from collections import OrderedDict
from typing import Dict, List, Optional

from recruitbot.core.config import settings, AlertsConfig
from recruitbot.core.exceptions import TenantNotFound
from recruitbot.core.schemas import (
    AlertCheckSummary, RecruiterAssignment, Requisition, Tenant, UnfilledRequisition, utcnow
)

logger = logging.getLogger(__name__)


def find_unfilled(requisitions: List[Requisition], days: int,
                  now: datetime.datetime) -> List[UnfilledRequisition]:
    """Requisitions whose recruitment started `days` or more days before `now`."""
    threshold = now - datetime.timedelta(days=days)
    unfilled = []
    for rq in requisitions:
        started = rq.started_at
        if started is None:
            continue
        if started.tzinfo is None:
            started = started.replace(tzinfo=datetime.timezone.utc)
        if started <= threshold:
            unfilled.append(UnfilledRequisition(requisition=rq, days_open=(now - started).days))
    return unfilled


def render_alert_email(recruiter_name: Optional[str], brand_name: str,
                       items: List[UnfilledRequisition], days: int, dashboard_url: str) -> str:
    rows = "".join(
        "<tr>"
        f"<td>{html.escape(item.requisition.number or 'N/A')}</td>"
        f"<td>{html.escape(item.requisition.position or '')}</td>"
        f"<td>{html.escape(item.requisition.store_name or '')}</td>"
        f"<td><strong>{item.days_open} días</strong></td>"
        "</tr>"
        for item in items
    )
    return (
        f"<p>Hola <strong>{html.escape(recruiter_name or 'Recruiter')}</strong>,</p>"
        f"<p>Las siguientes posiciones de <strong>{html.escape(brand_name)}</strong> llevan más de "
        f"<strong>{days} días sin cubrirse</strong>:</p>"
        "<table><thead><tr><th>RQ</th><th>Posición</th><th>Tienda</th><th>Días</th></tr></thead>"
        f"<tbody>{rows}</tbody></table>"
        f'<p><a href="{dashboard_url}">Ver Dashboard de Reclutamiento</a></p>'
    )


class UnfilledRequisitionAlerts:
    """Daily check of approved requisitions that stay open too long, with e-mails per brand."""

    def __init__(self, tenant_repo, requisition_repo, mailer, config: Optional[AlertsConfig] = None):
        self.tenant_repo = tenant_repo
        self.requisition_repo = requisition_repo
        self.mailer = mailer
        self.config = config or settings.alerts

    async def run_daily(self, now: Optional[datetime.datetime] = None) -> Dict[str, int]:
        """Checks every tenant. Returns unfilled counts per tenant."""
        now = now or utcnow()
        logger.info("🔔 [ALERT] Starting daily unfilled requisition check...")

        results: Dict[str, int] = {}
        for tenant in await self.tenant_repo.list_all():
            try:
                results[tenant.id] = await self.check_tenant(tenant, now)
            except Exception as e:
                logger.error(f"❌ [ALERT] Check failed for tenant {tenant.id}: {e}", exc_info=True)
        return results

    async def check_tenant(self, tenant: Tenant, now: datetime.datetime) -> int:
        alert_settings = tenant.alert_settings
        if not alert_settings.enabled:
            logger.info(f"[ALERT] Alerts disabled for tenant: {tenant.id}")
            return 0

        days = alert_settings.days_without_fill or self.config.default_days_without_fill
        requisitions = await self.requisition_repo.list_active_approved(tenant.id)
        unfilled = find_unfilled(requisitions, days, now)
        logger.info(f"[ALERT] {tenant.id}: {len(requisitions)} active, {len(unfilled)} open for {days}+ days")

        for item in unfilled:
            if not item.requisition.alert_unfilled:
                await self.requisition_repo.mark_unfilled(tenant.id, item.requisition.id, days, now)

        if alert_settings.email_notifications and unfilled:
            recruiters = await self.requisition_repo.list_recruiters(tenant.id)
            await self._notify(tenant, unfilled, recruiters, days)

        return len(unfilled)

    async def _notify(self, tenant: Tenant, unfilled: List[UnfilledRequisition],
                      recruiters: List[RecruiterAssignment], days: int):
        by_brand: "OrderedDict[str, List[UnfilledRequisition]]" = OrderedDict()
        for item in unfilled:
            by_brand.setdefault(item.requisition.brand_id, []).append(item)

        for brand_id, items in by_brand.items():
            brand_name = items[0].requisition.brand_name or brand_id or tenant.name
            assigned = [r for r in recruiters if r.is_active and brand_id in r.brand_ids]
            for recruiter in assigned:
                subject = (
                    f"🚨 ALERTA: {len(items)} posición(es) sin cubrir por más de {days} días - {brand_name}"
                )
                body = render_alert_email(recruiter.display_name, brand_name, items, days, self.config.dashboard_url)
                try:
                    await self.mailer.send(recruiter.email, subject, body)
                except Exception as e:
                    logger.error(f"❌ Failed to send alert e-mail to {recruiter.email}: {e}")

    async def trigger_check(self, tenant_id: Optional[str] = None,
                            now: Optional[datetime.datetime] = None) -> AlertCheckSummary:
        """Counts without marking or e-mailing."""
        now = now or utcnow()
        days = self.config.default_days_without_fill
        if tenant_id:
            tenant = await self.tenant_repo.get(tenant_id)
            if tenant is None:
                raise TenantNotFound(f"Tenant not found: {tenant_id}")
            days = tenant.alert_settings.days_without_fill or days

        requisitions = await self.requisition_repo.list_active_approved(tenant_id)
        unfilled = find_unfilled(requisitions, days, now)
        return AlertCheckSummary(
            tenant_id=tenant_id or "all",
            alert_days=days,
            total_active=len(requisitions),
            unfilled=len(unfilled),
            message=f"Found {len(unfilled)} requisitions with {days}+ days unfilled",
        )
