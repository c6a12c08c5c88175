# recruitbot/services/tenants.py
import logging
from typing import Any, Dict, List, Optional

from recruitbot.core.config import settings
from recruitbot.core.exceptions import TenantNotFound, ValidationError
from recruitbot.core.schemas import AlertSettings, Tenant

logger = logging.getLogger(__name__)

PROTECTED_FIELDS = {"id", "tenant_id", "webhook_origin", "created_at", "createdAt", "alert_settings"}
EDITABLE_FIELDS = {"name", "brand", "branding", "is_active"}


class OriginCache:
    """Process-wide origin -> tenant map. Shared by reference, cleared on tenant updates."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, origin_id: str) -> Optional[str]:
        return self._data.get(origin_id)

    def set(self, origin_id: str, tenant_id: str):
        self._data[origin_id] = tenant_id

    def clear(self):
        self._data.clear()
        logger.info("🗑️ Origin cache cleared")

    def __len__(self):
        return len(self._data)


class TenantResolver:
    def __init__(self, tenant_repo, cache: OriginCache, fallback_map: Optional[Dict[str, str]] = None):
        self.tenant_repo = tenant_repo
        self.cache = cache
        self.fallback_map = fallback_map if fallback_map is not None else settings.tenants.fallback_origins

    async def resolve(self, origin_id: str) -> str:
        cached = self.cache.get(origin_id)
        if cached:
            return cached

        if origin_id in self.fallback_map:
            tenant_id = self.fallback_map[origin_id]
            self.cache.set(origin_id, tenant_id)
            logger.info(f"📍 Fallback mapping: {origin_id} → {tenant_id}")
            return tenant_id

        tenant = await self.tenant_repo.find_by_origin(origin_id)
        if tenant is None:
            logger.error(f"❌ No tenant found for origin_id: {origin_id}")
            raise TenantNotFound(f"No tenant found for origin_id: {origin_id}")

        self.cache.set(origin_id, tenant.id)
        logger.info(f"📍 Mapped origin {origin_id} → tenant {tenant.id}")
        return tenant.id


class TenantService:
    """Branding and alert settings of a tenant."""

    def __init__(self, tenant_repo, cache: OriginCache):
        self.tenant_repo = tenant_repo
        self.cache = cache

    async def _get(self, tenant_id: str) -> Tenant:
        tenant = await self.tenant_repo.get(tenant_id)
        if tenant is None:
            raise TenantNotFound(f"Tenant not found: {tenant_id}")
        return tenant

    async def get_config(self, tenant_id: str) -> Tenant:
        return await self._get(tenant_id)

    async def list_active(self) -> List[Tenant]:
        return await self.tenant_repo.list_all()

    async def update_config(self, tenant_id: str, updates: Dict[str, Any]) -> Tenant:
        tenant = await self._get(tenant_id)

        clean = {k: v for k, v in updates.items() if k not in PROTECTED_FIELDS}
        unknown = set(clean) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown tenant fields: {', '.join(sorted(unknown))}")

        updated = Tenant.model_validate({**tenant.model_dump(), **clean})
        await self.tenant_repo.save(updated)
        self.cache.clear()

        logger.info(f"✅ Tenant config updated: {tenant_id} ({', '.join(sorted(clean)) or 'no changes'})")
        return updated

    async def get_alert_settings(self, tenant_id: str) -> AlertSettings:
        tenant = await self._get(tenant_id)
        return tenant.alert_settings

    async def update_alert_settings(self, tenant_id: str, updates: Dict[str, Any]) -> AlertSettings:
        tenant = await self._get(tenant_id)

        current = tenant.alert_settings.model_dump()
        allowed = {k: v for k, v in updates.items() if k in current and v is not None}
        alert_settings = AlertSettings.model_validate({**current, **allowed})
        if alert_settings.days_without_fill < 1:
            raise ValidationError("days_without_fill must be at least 1")

        tenant.alert_settings = alert_settings
        await self.tenant_repo.save(tenant)
        logger.info(f"🔔 Alert settings updated for {tenant_id}: {alert_settings.model_dump()}")
        return alert_settings
