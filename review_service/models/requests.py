from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from review_service.models.review import PublicationStatus, ReviewLanguage
from review_service.validators.review_validators import ReviewValidatorMixin, check_review_text_length


class CreateReviewRequest(ReviewValidatorMixin, BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    user_id: str
    product_id: str
    rating: int
    original_language: ReviewLanguage
    review_en: Optional[str] = None
    review_ar: Optional[str] = None
    country: str

    @field_validator('review_en', 'review_ar')
    @classmethod
    def review_text_valid(cls, v):
        return check_review_text_length(v)


class UpdatePublicationStatusRequest(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    publication_status: PublicationStatus


class BulkRatingsRequest(BaseModel):
    product_ids: List[str] = Field(..., min_length=1)

    @field_validator('product_ids')
    @classmethod
    def product_ids_valid(cls, v):
        for product_id in v:
            if not isinstance(product_id, str) or not product_id.strip():
                raise ValueError('Each product id must be a non-empty string')
        return v
