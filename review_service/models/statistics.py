from datetime import datetime, UTC
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

RATING_KEYS = ("1", "2", "3", "4", "5")


def zeroed_distribution() -> Dict[str, int]:
    return {key: 0 for key in RATING_KEYS}


def zeroed_percentages() -> Dict[str, float]:
    return {key: 0.0 for key in RATING_KEYS}


def utc_now():
    return datetime.now(UTC)


class RatingStatistics(BaseModel):
    """
    Pre-calculated rating summary for one product.

    A stored record means a recompute has completed at least once. Absence means
    "never computed", not "no reviews".
    """

    product_id: str
    average_rating: float = 0.0
    rating_count: int = 0
    rating_distribution: Dict[str, int] = Field(default_factory=zeroed_distribution)
    percentage_distribution: Dict[str, float] = Field(default_factory=zeroed_percentages)
    last_calculated_at: datetime = Field(default_factory=utc_now)

    def to_document(self) -> Dict[str, Any]:
        document = self.model_dump(exclude={"product_id"})
        document["_id"] = self.product_id
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "RatingStatistics":
        data = dict(document)
        data["product_id"] = data.pop("_id", None) or data.get("product_id")
        distribution = zeroed_distribution()
        distribution.update({str(k): int(v) for k, v in (data.get("rating_distribution") or {}).items()})
        percentages = zeroed_percentages()
        percentages.update({str(k): float(v) for k, v in (data.get("percentage_distribution") or {}).items()})
        data["rating_distribution"] = distribution
        data["percentage_distribution"] = percentages
        return cls.model_validate(data)

    def to_summary(self) -> Dict[str, Any]:
        return {
            "average": self.average_rating,
            "count": self.rating_count,
            "distribution": dict(self.rating_distribution),
            "percentage_distribution": dict(self.percentage_distribution),
        }


def zeroed_summary(product_id: Optional[str] = None) -> Dict[str, Any]:
    """Summary returned to readers when no statistics record exists."""
    summary: Dict[str, Any] = {}
    if product_id is not None:
        summary["product_id"] = product_id
    summary.update({
        "average": 0,
        "count": 0,
        "distribution": zeroed_distribution(),
        "percentage_distribution": zeroed_percentages(),
    })
    return summary
