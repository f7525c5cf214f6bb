import json
import uuid
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from review_service.validators.review_validators import ReviewValidatorMixin


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


class PublicationStatus(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"


class ReviewLanguage(str, Enum):
    EN = "en"
    AR = "ar"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class MediaItem(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    type: MediaType
    path: str
    url: str


class Review(ReviewValidatorMixin, BaseModel):
    """
    A single product rating and review.

    Persisted in the ``ratings_and_reviews`` collection with ``_id`` = review_id.
    Everything except review_id and created_at may change after insert.
    """

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)

    review_id: str
    user_id: str
    product_id: str
    rating: int
    original_language: ReviewLanguage
    review_en: Optional[str] = None
    review_ar: Optional[str] = None
    country: str
    created_at: str = Field(default_factory=utc_now_iso)
    publication_status: PublicationStatus = PublicationStatus.PENDING
    media: List[MediaItem] = Field(default_factory=list)

    @field_validator('media', mode='before')
    @classmethod
    def decode_media(cls, v):
        # Older records keep media as a JSON-encoded string
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return json.loads(v) or []
        return v

    @property
    def is_published(self) -> bool:
        return self.publication_status == PublicationStatus.PUBLISHED.value

    def text_for(self, language: str) -> Optional[str]:
        return getattr(self, f"review_{language}", None)

    def to_document(self) -> Dict[str, Any]:
        document = self.model_dump(exclude={"review_id"})
        document["_id"] = self.review_id
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Review":
        data = dict(document)
        data["review_id"] = data.pop("_id", None) or data.get("review_id")
        return cls.model_validate(data)


def new_review(
    user_id: str,
    product_id: str,
    rating: int,
    original_language: str,
    country: str,
    review_en: Optional[str] = None,
    review_ar: Optional[str] = None,
    review_id: Optional[str] = None,
    created_at: Optional[str] = None,
    publication_status: Optional[str] = None,
    media: Optional[List[Dict[str, Any]]] = None,
) -> Review:
    """
    Build a review with the insert-time defaults: a fresh UUID, created_at = now,
    status pending and no media.
    """
    return Review(
        review_id=review_id or str(uuid.uuid4()),
        user_id=user_id,
        product_id=product_id,
        rating=rating,
        original_language=original_language,
        review_en=review_en,
        review_ar=review_ar,
        country=country,
        created_at=created_at or utc_now_iso(),
        publication_status=publication_status or PublicationStatus.PENDING,
        media=media or [],
    )


def review_resource(review: Review) -> Dict[str, Any]:
    """Public JSON shape of a review."""
    return {
        "id": review.review_id,
        "user_id": review.user_id,
        "product_id": review.product_id,
        "rating": review.rating,
        "original_language": review.original_language,
        "review_en": review.review_en,
        "review_ar": review.review_ar,
        "country": review.country,
        "created_at": review.created_at,
        "media": [item.model_dump() for item in review.media],
        "publication_status": review.publication_status,
    }
