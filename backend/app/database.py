from motor.motor_asyncio import AsyncIOMotorClient
from app.config import MONGO_URI, MONGO_DB, MONGO_TIMEOUT_MS


def connect(uri=MONGO_URI, db_name=MONGO_DB, timeout_ms=MONGO_TIMEOUT_MS):
    # an unreachable server fails writes within timeout_ms instead of pymongo's 30s default
    client = AsyncIOMotorClient(
        uri,
        serverSelectionTimeoutMS=timeout_ms,
        connectTimeoutMS=timeout_ms,
    )
    return client, client[db_name]
