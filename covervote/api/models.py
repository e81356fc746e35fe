"""API request and response models."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoginRequest(BaseModel):
    """Identify a reviewer by free-text name."""

    name: Optional[str] = None


class LoginResponse(BaseModel):
    user: str


class VoteRequest(BaseModel):
    """A single vote on an original/candidate pair."""

    original_index: Optional[str] = Field(
        default=None, description="Store id of the original, as returned by /api/pair"
    )
    candidate_index: Optional[int] = Field(
        default=None, description="Position of the candidate within the original"
    )
    is_cover: Optional[bool] = None
    candidate_id: Optional[str] = Field(
        default=None, description="Candidate id; takes precedence over candidate_index"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "original_index": "6f1c2b9e0d3a4c5b8e7f6a5b4c3d2e1f",
                "candidate_index": 0,
                "is_cover": True,
            }
        }
    )

    @field_validator("original_index", "candidate_id", mode="before")
    @classmethod
    def coerce_str(cls, v):
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v


class SuccessResponse(BaseModel):
    success: bool = True


class SyncRequest(BaseModel):
    """A batch of scraped songs."""

    songs: Any = None


class SyncResponse(BaseModel):
    success: bool
    message: str
    errors: Optional[List[Dict[str, Any]]] = None


class HealthResponse(BaseModel):
    """System health."""

    status: str
    version: str
    checks: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class APIError(BaseModel):
    """Standardized error response."""

    error: str
