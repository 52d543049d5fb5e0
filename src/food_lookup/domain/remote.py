"""Fixed result shapes returned by the remote food database adapter."""

from pydantic import BaseModel, Field

from food_lookup.domain.foods import FoodRecordUpdate

SCHEMA_VERSION = 1


class RemoteMeasure(BaseModel):
    """Unit/weight conversion option for a food."""

    uri: str | None = None
    label: str | None = None
    weight: float | None = None
    qualified: list[dict[str, object]] = Field(default_factory=list)


class RemoteFoodItem(BaseModel):
    """Single food returned by a remote search."""

    schema_version: int = SCHEMA_VERSION
    food_id: str = Field(min_length=1)
    label: str
    known_as: str | None = None
    category: str | None = None
    category_label: str | None = None
    brand: str | None = None
    food_contents_label: str | None = None
    image: str | None = None
    barcode_id: str | None = None
    nutrients: dict[str, float] = Field(default_factory=dict)
    measures: list[RemoteMeasure] = Field(default_factory=list)
    serving_sizes: list[dict[str, object]] = Field(default_factory=list)
    health_labels: list[str] = Field(default_factory=list)
    diet_labels: list[str] = Field(default_factory=list)

    def to_update(self) -> FoodRecordUpdate:
        """Convert to the incoming fields of a food record upsert."""
        return FoodRecordUpdate(
            display_name=self.label,
            alternate_names=self.known_as,
            category=self.category,
            category_label=self.category_label,
            brand=self.brand,
            food_contents_label=self.food_contents_label,
            image_url=self.image,
            barcode_id=self.barcode_id,
            nutrients=dict(self.nutrients),
            measures=[measure.model_dump() for measure in self.measures],
            serving_sizes=list(self.serving_sizes),
            health_labels=list(self.health_labels),
            diet_labels=list(self.diet_labels),
        )


class RemoteFoodDetail(BaseModel):
    """Full nutrition detail for one food at the reference quantity."""

    schema_version: int = SCHEMA_VERSION
    food_id: str = Field(min_length=1)
    label: str | None = None
    nutrients: dict[str, float] = Field(default_factory=dict)
    health_labels: list[str] = Field(default_factory=list)
    diet_labels: list[str] = Field(default_factory=list)
    raw: dict[str, object] = Field(default_factory=dict)

    def to_update(self) -> FoodRecordUpdate:
        """Convert to the incoming fields of a food record upsert."""
        return FoodRecordUpdate(
            display_name=self.label,
            nutrients=dict(self.nutrients),
            health_labels=list(self.health_labels),
            diet_labels=list(self.diet_labels),
            full_detail=dict(self.raw),
        )
