import os
from typing import Iterable, Optional

from pydantic import field_validator, model_validator

SUPPORTED_LANGUAGES = ("en", "ar")
REVIEW_TEXT_MAX_LENGTH = 1000


class ReviewValidatorMixin:
    @field_validator('user_id', 'product_id', check_fields=False)
    @classmethod
    def identifier_required(cls, v):
        if not v or not v.strip():
            raise ValueError('Identifier is required and cannot be blank')
        if len(v) > 255:
            raise ValueError('Identifier may not be longer than 255 characters')
        return v

    @field_validator('rating', check_fields=False)
    @classmethod
    def rating_valid(cls, v):
        if v is not None and (v < 1 or v > 5):
            raise ValueError('Rating must be between 1 and 5')
        return v

    @field_validator('country', check_fields=False)
    @classmethod
    def country_valid(cls, v):
        if v is None or len(v) != 2 or not v.isalpha():
            raise ValueError('Country must be a 2-letter ISO-3166 code')
        return v.upper()

    @model_validator(mode='after')
    def original_text_present(self):
        language = getattr(self, 'original_language', None)
        if language is None:
            return self
        language = getattr(language, 'value', language)
        text = getattr(self, f'review_{language}', None)
        if not text or not text.strip():
            raise ValueError(f'review_{language} is required when original_language is {language}')
        return self


def media_extension(filename: Optional[str]) -> str:
    return os.path.splitext(filename or "")[1].lstrip(".").lower()


def validate_media_file(
    filename: Optional[str],
    size: Optional[int],
    allowed_extensions: Iterable[str],
    max_bytes: int,
) -> Optional[str]:
    """
    Check an uploaded media file against the accepted types and size.

    Returns:
        An error message, or None when the file is acceptable
    """
    extension = media_extension(filename)
    if extension not in set(allowed_extensions):
        return f"Media file '{filename}' must be one of: {', '.join(allowed_extensions)}"
    if size is not None and size > max_bytes:
        return f"Media file '{filename}' may not be greater than {max_bytes // 1024} kilobytes"
    return None


def check_review_text_length(v: Optional[str]) -> Optional[str]:
    """Submitted text only; stored translations may run longer than the original."""
    if v is not None and len(v) > REVIEW_TEXT_MAX_LENGTH:
        raise ValueError(f'Review text can be up to {REVIEW_TEXT_MAX_LENGTH} characters')
    return v
