"""
Machine translation of review text through the Google Cloud Translation API.
"""

from typing import List, Optional, Tuple

import httpx

from review_service.core.errors import ConfigurationError, ExternalServiceError, ReviewServiceError
from review_service.core.logger import logger
from review_service.models.review import Review
from review_service.validators.review_validators import SUPPORTED_LANGUAGES


class TranslationService:
    def __init__(
        self,
        review_repository,
        api_key: Optional[str],
        endpoint: Optional[str],
        timeout: float = 10.0,
    ):
        self.review_repository = review_repository
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout

    async def translate(self, text: str, source_language: str, target_language: str) -> str:
        """
        Translate ``text`` with a single provider call.

        Raises:
            ConfigurationError: API key or endpoint not configured
            ExternalServiceError: the provider failed or answered unexpectedly
        """
        if not self.api_key:
            raise ConfigurationError("Google Translate API key is not configured")
        if not self.endpoint:
            raise ConfigurationError("Google Translate API endpoint is not configured")

        params = {
            "key": self.api_key,
            "q": text,
            "source": source_language,
            "target": target_language,
            "format": "text",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.endpoint, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(
                "Translation API error",
                error=e,
                metadata={"source": source_language, "target": target_language},
            )
            raise ExternalServiceError(
                "Translation API request failed",
                details={"reason": str(e)},
            )
        except ValueError as e:
            raise ExternalServiceError("Translation API returned invalid JSON", details={"reason": str(e)})

        try:
            return data["data"]["translations"][0]["translatedText"]
        except (KeyError, IndexError, TypeError):
            raise ExternalServiceError(
                "Translation API response has no translation",
                details={"response": data},
            )

    def missing_languages(self, review: Review, target_language: Optional[str] = None) -> List[str]:
        targets = [target_language] if target_language else list(SUPPORTED_LANGUAGES)
        return [
            language for language in targets
            if language != review.original_language and not review.text_for(language)
        ]

    async def translate_review(self, review: Review, target_language: Optional[str] = None) -> Tuple[Review, bool]:
        """
        Fill in missing translations of a review and save it.

        Languages that already hold text are never sent to the provider, so a
        repeated call for the same language does no external work.

        Returns:
            The review and whether anything was translated
        """
        targets = self.missing_languages(review, target_language)
        if not targets:
            return review, False

        source_text = review.text_for(review.original_language)
        if not source_text:
            logger.warning(
                "Empty source content for review",
                metadata={"reviewId": review.review_id, "language": review.original_language},
            )
            return review, False

        changed = False
        for language in targets:
            translated = await self.translate(source_text, review.original_language, language)
            if not translated:
                continue
            try:
                setattr(review, f"review_{language}", translated)
            except ValueError as e:
                raise ExternalServiceError(
                    f"Translation to {language} was rejected",
                    details={"reviewId": review.review_id, "reason": str(e)},
                )
            changed = True

        if changed:
            await self.review_repository.put(review)
            logger.info(
                "Review translated",
                metadata={"reviewId": review.review_id, "languages": targets},
            )
        return review, changed

    async def batch_translate(self, limit: int = 100, status: Optional[str] = None) -> Tuple[int, int]:
        """
        Translate up to ``limit`` reviews that are missing a language.

        Returns:
            (translated, errors)
        """
        reviews = await self.review_repository.find_needing_translation(limit=limit, status=status)
        translated = errors = 0
        for review in reviews:
            try:
                _, changed = await self.translate_review(review)
                if changed:
                    translated += 1
            except ReviewServiceError as e:
                logger.error(
                    "Error translating review",
                    error=e,
                    metadata={"reviewId": review.review_id},
                )
                errors += 1
        return translated, errors
