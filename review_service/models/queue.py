from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class QueueJob(BaseModel):
    """A job claimed from (or parked in) the MongoDB job queue."""

    id: str
    queue: str
    job: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    attempts: int = 0
    max_attempts: int = 1
    backoff: List[int] = Field(default_factory=list)
    unique_key: Optional[str] = None
    available_at: Optional[datetime] = None
    reserved_until: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "QueueJob":
        data = dict(document)
        data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)

    def backoff_for_attempt(self) -> int:
        """Delay in seconds before the next try, after ``attempts`` tries so far"""
        if not self.backoff:
            return 0
        index = min(max(self.attempts - 1, 0), len(self.backoff) - 1)
        return self.backoff[index]

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts


class FailedJob(BaseModel):
    id: str
    queue: str
    job: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    attempts: int = 0
    max_attempts: int = 1
    backoff: List[int] = Field(default_factory=list)
    unique_key: Optional[str] = None
    exception: Optional[str] = None
    failed_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "FailedJob":
        data = dict(document)
        data["id"] = str(data.pop("_id"))
        return cls.model_validate(data)
