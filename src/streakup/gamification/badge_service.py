"""Badge catalog management and users' earned/showcase badges."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from streakup.db.models import BadgeDefinition, User, UserBadge
from streakup.exceptions import BadgeConditionError, NotFoundError, RepresentativeBadgeError
from streakup.gamification.badge_rules import (
    BADGE_CATEGORIES,
    BADGE_RARITIES,
    MAX_REPRESENTATIVE_BADGES,
    validate_condition,
)

logger = structlog.get_logger()

_UPDATABLE_FIELDS = (
    "name",
    "description",
    "icon_url",
    "category",
    "rarity",
    "condition_type",
    "threshold",
    "category_target",
    "condition_description",
    "sort_order",
)


def _check_labels(category: str, rarity: str) -> None:
    if category not in BADGE_CATEGORIES:
        msg = f"Unknown badge category: {category!r}"
        raise BadgeConditionError(msg)
    if rarity not in BADGE_RARITIES:
        msg = f"Unknown badge rarity: {rarity!r}"
        raise BadgeConditionError(msg)


async def get_badge_by_slug(db: AsyncSession, slug: str) -> BadgeDefinition:
    """Fetch a badge definition by slug.

    Raises:
        NotFoundError: If no badge has this slug.
    """
    result = await db.execute(select(BadgeDefinition).where(BadgeDefinition.slug == slug))
    badge = result.scalar_one_or_none()
    if badge is None:
        msg = f"Badge {slug!r} not found"
        raise NotFoundError(msg)
    return badge


async def list_badges(db: AsyncSession) -> list[BadgeDefinition]:
    """The full catalog in evaluation order."""
    result = await db.execute(
        select(BadgeDefinition).order_by(BadgeDefinition.sort_order, BadgeDefinition.id)
    )
    return list(result.scalars().all())


async def get_badges_by_ids(db: AsyncSession, badge_ids: Sequence[int]) -> tuple[list[BadgeDefinition], list[int]]:
    """Fetch several badges at once. Returns (found badges, ids that matched nothing)."""
    if not badge_ids:
        return [], []
    result = await db.execute(
        select(BadgeDefinition)
        .where(BadgeDefinition.id.in_(badge_ids))
        .order_by(BadgeDefinition.sort_order, BadgeDefinition.id)
    )
    badges = list(result.scalars().all())
    found = {b.id for b in badges}
    return badges, [i for i in badge_ids if i not in found]


async def create_badge(
    db: AsyncSession,
    *,
    slug: str,
    name: str,
    description: str,
    condition_type: str,
    threshold: int,
    category_target: str | None = None,
    condition_description: str = "",
    icon_url: str = "",
    category: str = "achievement",
    rarity: str = "common",
    sort_order: int = 0,
) -> BadgeDefinition:
    """Add a badge to the catalog.

    Raises:
        BadgeConditionError: Invalid condition, category or rarity, or the
            slug/name is already used.
    """
    validate_condition(condition_type, threshold, category_target)
    _check_labels(category, rarity)

    badge = BadgeDefinition(
        slug=slug,
        name=name,
        description=description,
        icon_url=icon_url,
        category=category,
        rarity=rarity,
        condition_type=condition_type,
        threshold=threshold,
        category_target=category_target if condition_type == "category_completions" else None,
        condition_description=condition_description,
        sort_order=sort_order,
    )
    db.add(badge)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        msg = "Badge slug or name already exists"
        raise BadgeConditionError(msg) from None

    logger.info("badge_created", slug=slug, condition_type=condition_type, threshold=threshold)
    return badge


async def update_badge(db: AsyncSession, slug: str, changes: dict[str, Any]) -> BadgeDefinition:
    """Apply partial changes to a catalog entry. Already-earned badges are kept.

    Raises:
        NotFoundError: If the badge does not exist.
        BadgeConditionError: If the resulting condition or labels are invalid.
    """
    badge = await get_badge_by_slug(db, slug)
    merged = {field: getattr(badge, field) for field in _UPDATABLE_FIELDS}
    merged.update({k: v for k, v in changes.items() if k in _UPDATABLE_FIELDS})

    validate_condition(merged["condition_type"], merged["threshold"], merged["category_target"])
    _check_labels(merged["category"], merged["rarity"])
    if merged["condition_type"] != "category_completions":
        merged["category_target"] = None

    for field, value in merged.items():
        setattr(badge, field, value)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        msg = "Badge name already exists"
        raise BadgeConditionError(msg) from None

    logger.info("badge_updated", slug=slug, fields=sorted(changes))
    return badge


async def delete_badge(db: AsyncSession, slug: str) -> None:
    """Remove a badge from the catalog; users' copies go with it (FK cascade).

    Raises:
        NotFoundError: If the badge does not exist.
    """
    badge = await get_badge_by_slug(db, slug)
    await db.delete(badge)
    await db.commit()
    logger.info("badge_deleted", slug=slug)


async def get_user_badges(db: AsyncSession, user_id: int) -> dict[str, list[UserBadge]]:
    """A user's earned badges, plus the showcase sorted by slot.

    Raises:
        NotFoundError: If the user does not exist.
    """
    if await db.get(User, user_id) is None:
        msg = f"User {user_id} not found"
        raise NotFoundError(msg)

    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.earned_at, UserBadge.id)
    )
    earned = list(result.scalars().unique().all())
    representative = sorted(
        (ub for ub in earned if ub.representative_order is not None),
        key=lambda ub: ub.representative_order,
    )
    return {"earned": earned, "representative": representative}


async def set_representative_badges(
    db: AsyncSession,
    user_id: int,
    selections: Sequence[tuple[int, int]],
) -> list[UserBadge]:
    """Replace a user's showcase with (badge_id, order) pairs.

    Up to four badges, orders unique within 1..4, and every badge must be
    earned already. Badges left out lose their slot but stay earned.

    Raises:
        RepresentativeBadgeError: If the selection breaks one of those rules.
    """
    if len(selections) > MAX_REPRESENTATIVE_BADGES:
        msg = f"Maximum {MAX_REPRESENTATIVE_BADGES} representative badges allowed"
        raise RepresentativeBadgeError(msg)

    orders = [order for _, order in selections]
    if len(set(orders)) != len(orders) or any(o < 1 or o > MAX_REPRESENTATIVE_BADGES for o in orders):
        msg = f"Orders must be unique and between 1-{MAX_REPRESENTATIVE_BADGES}"
        raise RepresentativeBadgeError(msg)

    badge_ids = [badge_id for badge_id, _ in selections]
    if len(set(badge_ids)) != len(badge_ids):
        msg = "A badge can only take one representative slot"
        raise RepresentativeBadgeError(msg)

    result = await db.execute(select(UserBadge).where(UserBadge.user_id == user_id))
    held = {ub.badge_id: ub for ub in result.scalars().unique().all()}
    missing = [badge_id for badge_id in badge_ids if badge_id not in held]
    if missing:
        msg = f"Badges not earned: {', '.join(str(b) for b in missing)}"
        raise RepresentativeBadgeError(msg)

    # Clear every slot first so reassigned orders never collide mid-update.
    for ub in held.values():
        ub.representative_order = None
    await db.flush()
    for badge_id, order in selections:
        held[badge_id].representative_order = order
    await db.commit()

    logger.info("representative_badges_updated", user_id=user_id, badges=badge_ids)
    return sorted((held[b] for b in badge_ids), key=lambda ub: ub.representative_order)
