# recruitbot/core/container.py
import logging
from typing import Optional

from recruitbot.core.engine import ConversationEngine
from recruitbot.services.alerts import UnfilledRequisitionAlerts
from recruitbot.services.interviews import InterviewScheduler
from recruitbot.services.reminders import ConfirmationReminderJob
from recruitbot.services.store_matcher import StoreMatcher
from recruitbot.services.tenants import OriginCache, TenantResolver, TenantService

logger = logging.getLogger(__name__)


class Container:
    """
    Wires repositories and collaborators into the services.
    The HTTP app and the scheduler each hold one instance.
    """

    def __init__(self, conversations, candidates, stores, tenants, requisitions, users,
                 text_generator, calendar, connector, mailer, origin_cache: Optional[OriginCache] = None):
        self.conversations = conversations
        self.candidates = candidates
        self.stores = stores
        self.tenants = tenants
        self.requisitions = requisitions
        self.users = users
        self.text_generator = text_generator
        self.calendar = calendar
        self.connector = connector
        self.mailer = mailer

        self.origin_cache = origin_cache or OriginCache()
        self.tenant_resolver = TenantResolver(tenants, self.origin_cache)
        self.tenant_service = TenantService(tenants, self.origin_cache)
        self.store_matcher = StoreMatcher(stores)
        self.scheduler = InterviewScheduler(candidates, tenants, calendar)
        self.engine = ConversationEngine(conversations, candidates, self.store_matcher, self.scheduler, text_generator)
        self.alerts = UnfilledRequisitionAlerts(tenants, requisitions, mailer)
        self.reminders = ConfirmationReminderJob(self.scheduler, conversations, connector)

    @classmethod
    def from_database(cls, session_factory=None) -> "Container":
        from recruitbot.connectors import get_connector
        from recruitbot.db import repositories as repos
        from recruitbot.db.session import AsyncSessionLocal
        from recruitbot.services.calendar import MockCalendar
        from recruitbot.services.llm import build_text_generator
        from recruitbot.services.mailer import Mailer

        factory = session_factory or AsyncSessionLocal
        return cls(
            conversations=repos.ConversationRepository(factory),
            candidates=repos.CandidateRepository(factory),
            stores=repos.StoreRepository(factory),
            tenants=repos.TenantRepository(factory),
            requisitions=repos.RequisitionRepository(factory),
            users=repos.UserRepository(factory),
            text_generator=build_text_generator(),
            calendar=MockCalendar.with_default_busy_block(),
            connector=get_connector("whatsapp"),
            mailer=Mailer(),
        )

    async def close(self):
        await self.text_generator.aclose()
        await self.connector.close()
        await self.mailer.close()
        logger.info("🔒 Container resources closed")
