"""
Seed data for a fresh database.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.plans import DEFAULT_PLANS
from infrastructure.config.settings import settings
from infrastructure.database.models import SubscriptionPlan

logger = logging.getLogger(__name__)


async def seed_default_plans(db: AsyncSession) -> int:
    """Insert any default plan whose code is missing. Returns the number added."""
    result = await db.execute(select(SubscriptionPlan.code))
    existing = set(result.scalars().all())

    added = 0
    for plan in DEFAULT_PLANS:
        if plan["code"] in existing:
            continue
        db.add(SubscriptionPlan(**plan, currency=settings.default_currency, is_active=True))
        added += 1

    if added:
        await db.commit()
        logger.info("Seeded %d subscription plans", added)
    return added
