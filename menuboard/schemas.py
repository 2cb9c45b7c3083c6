from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

IssueSeverity = Literal["low", "medium", "high"]
AnalyticsEventType = Literal["menu_view", "category_view", "item_view"]


# Rows as returned by PostgREST. Nullable columns are required keys so a
# projection that lost a column is rejected instead of read as empty.


class MenuItemRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    category_id: Optional[str]
    name_en: Optional[str]
    name_ar: Optional[str]
    description_en: Optional[str]
    description_ar: Optional[str]
    image_url: Optional[str]
    is_visible: Optional[bool]
    is_new: Optional[bool] = None
    is_popular: Optional[bool] = None
    is_spicy: Optional[bool] = None
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    is_gluten_free: Optional[bool] = None


class MenuCategoryRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name_en: Optional[str]


class ItemViewRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    item_id: Optional[str]


class MenuHealthIssue(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    severity: IssueSeverity
    title: str
    description: str
    affected_count: Optional[int] = Field(default=None, alias="affectedCount")
    hint: Optional[str] = None


class MenuHealthBreakdown(BaseModel):
    photos: int = Field(ge=0, le=100)
    descriptions: int = Field(ge=0, le=100)
    translations: int = Field(ge=0, le=100)
    tags: int = Field(ge=0, le=100)
    structure: int = Field(ge=0, le=100)
    performance: int = Field(ge=0, le=100)


class CategoryMetric(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name_en: Optional[str] = None
    item_count: int = Field(alias="itemCount")


class MenuHealthMetrics(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_items: int = Field(alias="totalItems")
    items_with_image: int = Field(alias="itemsWithImage")
    items_with_description_en: int = Field(alias="itemsWithDescriptionEn")
    items_with_description_ar: int = Field(alias="itemsWithDescriptionAr")
    items_with_any_tag: int = Field(alias="itemsWithAnyTag")
    items_with_no_tag: int = Field(alias="itemsWithNoTag")
    categories: List[CategoryMetric] = Field(default_factory=list)


class MenuHealthScore(BaseModel):
    score: int = Field(ge=0, le=100)
    breakdown: MenuHealthBreakdown
    metrics: MenuHealthMetrics
    issues: List[MenuHealthIssue] = Field(default_factory=list)


class MenuHealthReport(MenuHealthScore):
    restaurant_id: str
    restaurant_name: str
    label: str
    window_days: int
    coverage: Dict[str, int] = Field(default_factory=dict, description="Share of items per metric, in percent")


class MenuHealthSummary(BaseModel):
    score: int
    label: str
    top_issue: Optional[MenuHealthIssue] = None


class AnalyticsEventPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    restaurant_id: UUID = Field(alias="restaurantId")
    branch_id: UUID = Field(alias="branchId")
    event_type: AnalyticsEventType = Field(alias="eventType")
    category_id: Optional[UUID] = Field(default=None, alias="categoryId")
    item_id: Optional[UUID] = Field(default=None, alias="itemId")
    device_type: Optional[str] = Field(default=None, alias="deviceType", max_length=32)
    language: Optional[str] = Field(default=None, max_length=8)
    session_id: Optional[str] = Field(default=None, alias="sessionId", max_length=128)


class AnalyticsEventResponse(BaseModel):
    success: bool = True
