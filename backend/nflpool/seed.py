import logging

import nflpool.database as _db
from nflpool.config import settings
from nflpool.services.auth_service import hash_password
from nflpool.utils import utcnow

logger = logging.getLogger("nflpool.seed")


async def ensure_startup_admin() -> str | None:
    """Create or promote the configured pool administrator.

    Runs only when both SEED_ADMIN_EMAIL and SEED_ADMIN_PASSWORD are set.
    Re-running refreshes the password hash and the admin flag; profile
    fields of an existing account are left alone.
    """
    email = settings.SEED_ADMIN_EMAIL.strip().lower()
    if not email or not settings.SEED_ADMIN_PASSWORD:
        logger.debug("No seed admin configured, skipping")
        return None

    now = utcnow()
    result = await _db.db.users.update_one(
        {"email": email},
        {
            "$set": {
                "is_admin": True,
                "hashed_password": hash_password(settings.SEED_ADMIN_PASSWORD),
                "updated_at": now,
            },
            "$setOnInsert": {
                "display_name": email.split("@")[0],
                "is_banned": False,
                "is_deleted": False,
                "created_at": now,
            },
        },
        upsert=True,
    )
    if result.upserted_id is not None:
        logger.info("Seed admin created: %s", result.upserted_id)
        return str(result.upserted_id)

    user = await _db.db.users.find_one({"email": email}, {"_id": 1})
    logger.info("Seed admin refreshed: %s", user["_id"])
    return str(user["_id"])
