"""
Read-only access to area capacity configuration.
"""

from dataclasses import asdict, dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cowork_booking.models.space import Area, Space
from cowork_booking.services.cache_service import get_cached_area_config, set_cached_area_config


@dataclass(frozen=True)
class AreaConfig:
    area_id: str
    area_name: str
    space_id: str
    space_name: str
    partner_id: Optional[str]
    is_published: bool
    max_capacity: Optional[int]
    automatic_booking_enabled: bool
    request_approval_at_capacity: bool


async def get_area_config(db: AsyncSession, area_id: str) -> Optional[AreaConfig]:
    cached = await get_cached_area_config(area_id)
    if cached:
        return AreaConfig(**cached)

    result = await db.execute(
        select(Area, Space).join(Space, Area.space_id == Space.id).where(Area.id == area_id)
    )
    row = result.first()
    if row is None:
        return None

    area, space = row
    config = AreaConfig(
        area_id=area.id,
        area_name=area.name,
        space_id=space.id,
        space_name=space.name,
        partner_id=space.partner_id,
        is_published=bool(space.is_published),
        max_capacity=area.max_capacity,
        automatic_booking_enabled=bool(area.automatic_booking_enabled),
        request_approval_at_capacity=bool(area.request_approval_at_capacity),
    )
    await set_cached_area_config(area_id, asdict(config))
    return config
