import hmac
import logging
import secrets
from typing import Optional

from courseflow.core.cache import CacheBackend
from courseflow.utils.events import EventBus, event_bus

logger = logging.getLogger(__name__)

OTP_REQUESTED_EVENT = "password_reset_otp_requested"


class OTPService:
    """Password-reset codes kept in an expiring key-value store."""

    def __init__(self, cache_backend: CacheBackend, ttl_seconds: int, bus: Optional[EventBus] = None):
        if ttl_seconds <= 0:
            raise ValueError("OTP ttl must be positive")
        self.cache = cache_backend
        self.ttl_seconds = ttl_seconds
        self.bus = bus or event_bus

    @staticmethod
    def generate_code() -> str:
        return f"{secrets.randbelow(10 ** 6):06d}"

    @staticmethod
    def _key(email: str) -> str:
        return f"password_reset_otp:{email.strip().lower()}"

    async def issue(self, email: str) -> str:
        code = self.generate_code()
        await self.cache.set(self._key(email), code, ttl=self.ttl_seconds)
        await self.bus.publish(OTP_REQUESTED_EVENT, {
            "email": email,
            "code": code,
            "expires_in_minutes": max(1, self.ttl_seconds // 60),
        })
        logger.info(f"Password reset code issued for {email}")
        return code

    async def verify(self, email: str, code: str) -> bool:
        stored = await self.cache.get(self._key(email))
        if stored is None:
            return False
        return hmac.compare_digest(str(stored), code)

    async def clear(self, email: str) -> bool:
        return await self.cache.delete(self._key(email))
