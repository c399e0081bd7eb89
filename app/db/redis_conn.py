from redis import asyncio as aioredis

from app.core.config import settings

# from_url does not connect until the first command is sent
redis_client: aioredis.Redis = aioredis.from_url(
    settings.REDIS_URL, encoding="utf-8", decode_responses=True
)
