"""Menu health scoring independent from the database layer.

The score blends six sub-scores, each in [0, 100]:

- photos (25%): items with an image
- descriptions (20%): items with an English description
- translations (15%): items with both an Arabic name and description
- tags (10%): items carrying at least one dietary/promotional tag
- structure (15%): category count and overcrowded categories
- performance (15%): visible items viewed at least once in the window

Issues are emitted in a fixed rule order and never filtered by score.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from menuboard.config.settings import MENU_HEALTH_WINDOW_DAYS
from menuboard.schemas import (
    CategoryMetric,
    ItemViewRow,
    MenuCategoryRow,
    MenuHealthBreakdown,
    MenuHealthIssue,
    MenuHealthMetrics,
    MenuHealthScore,
    MenuHealthSummary,
    MenuItemRow,
)

if TYPE_CHECKING:
    from menuboard.services.menu_health_dao import SupabaseMenuHealthDAO

logger = logging.getLogger(__name__)
RowModel = TypeVar("RowModel", bound=BaseModel)

TAG_FIELDS = (
    "is_new",
    "is_popular",
    "is_spicy",
    "is_vegetarian",
    "is_vegan",
    "is_gluten_free",
)

SCORE_WEIGHTS: Dict[str, float] = {
    "photos": 0.25,
    "descriptions": 0.20,
    "translations": 0.15,
    "tags": 0.10,
    "structure": 0.15,
    "performance": 0.15,
}

OVERLOADED_CATEGORY_SIZE = 20
SINGLE_CATEGORY_PENALTY = 40
OVERLOADED_CATEGORY_PENALTY = 10
MAX_OVERLOADED_PENALTY = 40

# Sub-scores used when the menu has no items at all.
EMPTY_MENU_SCORES: Dict[str, float] = {
    "photos": 0,
    "descriptions": 100,
    "translations": 100,
    "tags": 50,
}

SCORE_LABELS = (
    (85, "Excellent"),
    (70, "Good"),
    (50, "Needs work"),
)
LOWEST_SCORE_LABEL = "Poor"


@dataclass
class MenuMetrics:
    """Counts extracted from a single snapshot of items, categories and views."""

    total_items: int
    items_with_image: int
    items_with_description_en: int
    items_with_description_ar: int
    items_with_any_tag: int
    categories: List[CategoryMetric]
    visible_items: int
    zero_view_visible_item_ids: List[str]
    view_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def items_with_no_tag(self) -> int:
        return self.total_items - self.items_with_any_tag

    @property
    def overloaded_categories(self) -> List[CategoryMetric]:
        return [category for category in self.categories if category.item_count > OVERLOADED_CATEGORY_SIZE]

    def to_schema(self) -> MenuHealthMetrics:
        return MenuHealthMetrics(
            total_items=self.total_items,
            items_with_image=self.items_with_image,
            items_with_description_en=self.items_with_description_en,
            items_with_description_ar=self.items_with_description_ar,
            items_with_any_tag=self.items_with_any_tag,
            items_with_no_tag=self.items_with_no_tag,
            categories=[category.model_copy() for category in self.categories],
        )


def clamp_score(value: float) -> int:
    """Round half up and clamp to the [0, 100] range."""

    return min(100, max(0, math.floor(value + 0.5)))


def validate_rows(rows: Optional[Iterable[Any]], model: Type[RowModel], *, label: str) -> List[RowModel]:
    """Keep the rows matching ``model``; malformed rows are dropped and counted."""

    valid: List[RowModel] = []
    dropped = 0
    for row in rows or []:
        if not isinstance(row, dict):
            dropped += 1
            continue
        try:
            valid.append(model.model_validate(row))
        except ValidationError:
            dropped += 1
    if dropped:
        logger.warning(
            "Dropped malformed rows",
            extra={"rows": label, "dropped": dropped, "kept": len(valid)},
        )
    return valid


def _has_text(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def extract_menu_metrics(
    items: List[MenuItemRow],
    categories: List[MenuCategoryRow],
    views: List[ItemViewRow],
) -> MenuMetrics:
    """Aggregate the counts every sub-score and issue is derived from."""

    category_counts: Dict[str, int] = {category.id: 0 for category in categories}
    for item in items:
        if item.category_id and item.category_id in category_counts:
            category_counts[item.category_id] += 1

    roster = [
        CategoryMetric(id=category.id, name_en=category.name_en, item_count=category_counts[category.id])
        for category in categories
    ]

    view_counts: Dict[str, int] = {}
    for view in views:
        if not view.item_id:
            continue
        view_counts[view.item_id] = view_counts.get(view.item_id, 0) + 1

    visible = [item for item in items if item.is_visible is not False]
    visible_ids = list(dict.fromkeys(item.id for item in visible))
    zero_view_ids = [item_id for item_id in visible_ids if view_counts.get(item_id, 0) == 0]

    return MenuMetrics(
        total_items=len(items),
        items_with_image=sum(1 for item in items if item.image_url),
        items_with_description_en=sum(1 for item in items if _has_text(item.description_en)),
        items_with_description_ar=sum(
            1 for item in items if _has_text(item.name_ar) and _has_text(item.description_ar)
        ),
        items_with_any_tag=sum(1 for item in items if any(getattr(item, tag) for tag in TAG_FIELDS)),
        categories=roster,
        visible_items=len(visible),
        zero_view_visible_item_ids=zero_view_ids,
        view_counts=view_counts,
    )


def _coverage(count: int, total: int, empty_default: float) -> float:
    if not total:
        return empty_default
    return count / total * 100


def compute_structure_score(metrics: MenuMetrics) -> int:
    score = 100
    if len(metrics.categories) <= 1:
        score -= SINGLE_CATEGORY_PENALTY
    score -= min(MAX_OVERLOADED_PENALTY, len(metrics.overloaded_categories) * OVERLOADED_CATEGORY_PENALTY)
    return max(0, score)


def compute_performance_score(metrics: MenuMetrics) -> float:
    if not metrics.visible_items:
        return 100
    return 100 - len(metrics.zero_view_visible_item_ids) / metrics.visible_items * 100


def compute_breakdown(metrics: MenuMetrics) -> MenuHealthBreakdown:
    total = metrics.total_items
    return MenuHealthBreakdown(
        photos=clamp_score(_coverage(metrics.items_with_image, total, EMPTY_MENU_SCORES["photos"])),
        descriptions=clamp_score(
            _coverage(metrics.items_with_description_en, total, EMPTY_MENU_SCORES["descriptions"])
        ),
        translations=clamp_score(
            _coverage(metrics.items_with_description_ar, total, EMPTY_MENU_SCORES["translations"])
        ),
        tags=clamp_score(_coverage(metrics.items_with_any_tag, total, EMPTY_MENU_SCORES["tags"])),
        structure=clamp_score(compute_structure_score(metrics)),
        performance=clamp_score(compute_performance_score(metrics)),
    )


def compute_composite_score(breakdown: MenuHealthBreakdown) -> int:
    values = breakdown.model_dump()
    return clamp_score(sum(values[key] * weight for key, weight in SCORE_WEIGHTS.items()))


def derive_issues(metrics: MenuMetrics, *, window_days: int = MENU_HEALTH_WINDOW_DAYS) -> List[MenuHealthIssue]:
    """Return the issues whose rule fired, in rule order."""

    issues: List[MenuHealthIssue] = []

    missing_images = metrics.total_items - metrics.items_with_image
    if missing_images > 0:
        issues.append(
            MenuHealthIssue(
                id="missing_images",
                severity="high",
                title="Items missing photos",
                description=f"{missing_images} items don't have images. Menus with photos convert better.",
                affected_count=missing_images,
                hint="Add appetizing photos for your top-selling items first.",
            )
        )

    missing_descriptions = metrics.total_items - metrics.items_with_description_en
    if missing_descriptions > 0:
        issues.append(
            MenuHealthIssue(
                id="missing_descriptions",
                severity="medium",
                title="Add short descriptions",
                description=f"{missing_descriptions} items have no description.",
                affected_count=missing_descriptions,
                hint="A single sentence can help customers decide faster.",
            )
        )

    missing_translations = metrics.total_items - metrics.items_with_description_ar
    if missing_translations > 0:
        issues.append(
            MenuHealthIssue(
                id="missing_translations",
                severity="medium",
                title="Arabic translations missing",
                description=f"{missing_translations} items are missing Arabic name or description.",
                affected_count=missing_translations,
                hint="Translate your best sellers to reach Arabic-speaking guests.",
            )
        )

    if metrics.items_with_no_tag > 0:
        issues.append(
            MenuHealthIssue(
                id="missing_tags",
                severity="low",
                title="Highlight special traits",
                description=(
                    f"{metrics.items_with_no_tag} items don't have any tags (New, Popular, Vegan, etc.)."
                ),
                affected_count=metrics.items_with_no_tag,
                hint="Use tags to highlight features or dietary options.",
            )
        )

    overloaded = metrics.overloaded_categories
    single_category = len(metrics.categories) <= 1
    if overloaded or single_category:
        if single_category:
            description = (
                "There is only one visible category; consider splitting items into clearer sections."
            )
        else:
            names = ", ".join(f"{category.name_en or 'Category'} ({category.item_count})" for category in overloaded)
            description = f"Consider splitting these categories: {names}."
        issues.append(
            MenuHealthIssue(
                id="overloaded_categories",
                severity="high" if len(overloaded) > 1 else "medium",
                title="Some categories look overcrowded",
                description=description,
                affected_count=len(overloaded) or len(metrics.categories),
                hint="Break up long lists into smaller groups or spotlight best-sellers.",
            )
        )

    zero_views = len(metrics.zero_view_visible_item_ids)
    if zero_views > 0:
        issues.append(
            MenuHealthIssue(
                id="low_engagement_items",
                severity="low",
                title="Items with no recent views",
                description=f"{zero_views} visible items had 0 views in the last {window_days} days.",
                affected_count=zero_views,
                hint="Review pricing, naming, or consider promoting/removing these dishes.",
            )
        )

    return issues


def build_menu_health(
    item_rows: Optional[Iterable[Any]],
    category_rows: Optional[Iterable[Any]],
    view_rows: Optional[Iterable[Any]],
    *,
    window_days: int = MENU_HEALTH_WINDOW_DAYS,
) -> MenuHealthScore:
    """Score one snapshot of raw rows."""

    items = validate_rows(item_rows, MenuItemRow, label="items")
    categories = validate_rows(category_rows, MenuCategoryRow, label="categories")
    views = validate_rows(view_rows, ItemViewRow, label="item_views")

    metrics = extract_menu_metrics(items, categories, views)
    breakdown = compute_breakdown(metrics)
    return MenuHealthScore(
        score=compute_composite_score(breakdown),
        breakdown=breakdown,
        metrics=metrics.to_schema(),
        issues=derive_issues(metrics, window_days=window_days),
    )


async def calculate_menu_health(
    dao: "SupabaseMenuHealthDAO",
    *,
    window_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> MenuHealthScore:
    """Fetch items, categories and recent item views concurrently, then score them."""

    resolved_window = MENU_HEALTH_WINDOW_DAYS if window_days is None else window_days
    if resolved_window <= 0:
        raise ValueError("window_days must be positive")
    since = (now or datetime.now(timezone.utc)) - timedelta(days=resolved_window)

    start = time.monotonic()
    item_rows, category_rows, view_rows = await asyncio.gather(
        dao.fetch_items(),
        dao.fetch_categories(),
        dao.fetch_item_view_events(since),
    )
    logger.debug(
        "Menu health rows fetched",
        extra={
            "restaurant_id": dao.restaurant_id,
            "items": len(item_rows),
            "categories": len(category_rows),
            "item_views": len(view_rows),
            "duration_ms": round((time.monotonic() - start) * 1000, 2),
        },
    )
    return build_menu_health(item_rows, category_rows, view_rows, window_days=resolved_window)


def score_label(score: int) -> str:
    for threshold, label in SCORE_LABELS:
        if score >= threshold:
            return label
    return LOWEST_SCORE_LABEL


def coverage_percentages(metrics: MenuHealthMetrics) -> Dict[str, int]:
    """Share of items covered by each content metric, as whole percents."""

    total = max(metrics.total_items, 1)
    return {
        "photos": clamp_score(metrics.items_with_image / total * 100),
        "descriptions": clamp_score(metrics.items_with_description_en / total * 100),
        "translations": clamp_score(metrics.items_with_description_ar / total * 100),
        "tags": clamp_score(metrics.items_with_any_tag / total * 100),
    }


def summarize_menu_health(health: MenuHealthScore) -> MenuHealthSummary:
    return MenuHealthSummary(
        score=health.score,
        label=score_label(health.score),
        top_issue=health.issues[0] if health.issues else None,
    )


__all__ = [
    "MenuMetrics",
    "SCORE_WEIGHTS",
    "TAG_FIELDS",
    "build_menu_health",
    "calculate_menu_health",
    "clamp_score",
    "compute_breakdown",
    "compute_composite_score",
    "coverage_percentages",
    "derive_issues",
    "extract_menu_metrics",
    "score_label",
    "summarize_menu_health",
    "validate_rows",
]
