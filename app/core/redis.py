import json
from typing import Optional

import redis.asyncio as redis
from app.core.config import settings

class RedisClient:
    def __init__(self):
        self.redis = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)

    async def set_token(self, token: str, value: str, expire: int):
        await self.redis.set(f"token:{token}", value, ex=expire)

    async def get_token(self, token: str) -> str | None:
        return await self.redis.get(f"token:{token}")

    async def delete_token(self, token: str):
        await self.redis.delete(f"token:{token}")

    async def set_verification(self, token: str, phone: str, purpose: str, expire: int):
        value = json.dumps({"phone": phone, "purpose": purpose})
        await self.redis.set(f"otp-verified:{token}", value, ex=expire)

    async def consume_verification(self, token: str) -> Optional[dict]:
        # GETDEL keeps the token single-use
        value = await self.redis.getdel(f"otp-verified:{token}")
        if value is None:
            return None
        return json.loads(value)

    async def close(self):
        await self.redis.close()

redis_client = RedisClient()

async def get_redis() -> RedisClient:
    return redis_client
