"""Data models for the cover validation engine."""

from typing import Any, Dict, List, Optional, Set, Tuple
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator


OTHERS_BUCKET = "others"
DEFAULT_QUOTA = 3


def _coerce_identifier(value: Any) -> Any:
    """Scrapers hand over numeric ids as often as string ids."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value)) if float(value).is_integer() else str(value)
    return value


class Reviewer(BaseModel):
    """A human reviewer. Managed outside the engine."""

    name: str


class Candidate(BaseModel):
    """A scraped track proposed as a cover of an original."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: Optional[str] = None
    uploader: Optional[str] = None
    url: Optional[str] = None
    is_cover_votes: int = 0
    is_not_cover_votes: int = 0
    is_cover: Optional[bool] = Field(default=None, alias="isCover")
    vote_timestamp: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return _coerce_identifier(v)

    @field_validator("is_cover_votes", "is_not_cover_votes", mode="before")
    @classmethod
    def default_counter(cls, v):
        return 0 if v is None else v

    @property
    def is_undecided(self) -> bool:
        return self.is_cover is None

    @property
    def total_votes(self) -> int:
        return (self.is_cover_votes or 0) + (self.is_not_cover_votes or 0)

    def to_document(self) -> Dict[str, Any]:
        """Serialize using the wire field names, leaving out unset values."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Original(BaseModel):
    """A source song awaiting cover identification."""

    model_config = ConfigDict(populate_by_name=True)

    record_id: Optional[str] = Field(default=None, alias="_id")
    original_id: str
    original_title: Optional[str] = None
    song_number: Optional[int] = None
    assigned_user: Optional[str] = None
    candidate_covers: List[Candidate] = Field(default_factory=list)

    @field_validator("original_id", mode="before")
    @classmethod
    def coerce_original_id(cls, v):
        return _coerce_identifier(v)

    @field_validator("candidate_covers", mode="before")
    @classmethod
    def default_candidates(cls, v):
        return [] if v is None else v

    def confirmed_covers(self) -> List[Candidate]:
        """Candidates currently tallied as covers."""
        return [c for c in self.candidate_covers if c.is_cover is True]

    @property
    def confirmed_count(self) -> int:
        return len(self.confirmed_covers())

    def candidate_ids(self) -> Set[str]:
        return {c.id for c in self.candidate_covers}

    def find_candidate(self, candidate_id: str) -> Optional[Tuple[int, Candidate]]:
        """Locate a candidate by its own id."""
        for index, candidate in enumerate(self.candidate_covers):
            if candidate.id == candidate_id:
                return index, candidate
        return None

    def to_document(self) -> Dict[str, Any]:
        """Serialize for storage and for the wire."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CandidateRecord(BaseModel):
    """A candidate as delivered by the scraper.

    Only the scraped fields are accepted; vote state always starts empty.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    title: Optional[str] = None
    uploader: Optional[str] = None
    url: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return _coerce_identifier(v)

    def to_candidate(self) -> Candidate:
        return Candidate(id=self.id, title=self.title, uploader=self.uploader, url=self.url)


class SongRecord(BaseModel):
    """One entry of a scraped sync batch."""

    model_config = ConfigDict(extra="ignore")

    original_id: str = Field(..., min_length=1)
    original_title: Optional[str] = None
    candidate_covers: List[CandidateRecord] = Field(default_factory=list)

    @field_validator("original_id", mode="before")
    @classmethod
    def coerce_original_id(cls, v):
        return _coerce_identifier(v)

    @field_validator("candidate_covers", mode="before")
    @classmethod
    def default_candidates(cls, v):
        return [] if v is None else v

    def unique_candidates(self) -> List[Candidate]:
        """Candidates in batch order, keeping the first of any repeated id."""
        seen: Set[str] = set()
        candidates = []
        for record in self.candidate_covers:
            if record.id in seen:
                continue
            seen.add(record.id)
            candidates.append(record.to_candidate())
        return candidates


class Pair(BaseModel):
    """An original/candidate pair surfaced for review."""

    record_id: str
    original_id: str
    original_title: Optional[str] = None
    song_number: Optional[int] = None
    candidate: Candidate
    candidate_index: int


class LastPair(BaseModel):
    """The most recently voted pair in a reviewer's scope."""

    original_title: Optional[str] = None
    original_id: str
    candidate_title: Optional[str] = None
    candidate_id: str
    is_cover: Optional[bool] = None
    vote_timestamp: datetime


class CorpusStats(BaseModel):
    """Summary statistics over a set of originals."""

    total_originals: int = 0
    originals_with_at_least_1_cover: int = 0
    originals_with_3_covers: int = 0
    originals_fully_rejected: int = 0
    originals_pending: int = 0
    total_covers_found: int = 0
    total_votes: int = 0


class ReviewerStats(CorpusStats):
    """Corpus statistics scoped to one reviewer bucket."""

    songs_assigned: int = 0
    last_voted: Optional[datetime] = None
    last_pair: Optional[LastPair] = None


class VotedPair(BaseModel):
    """A candidate that has received at least one vote."""

    user: Optional[str] = None
    original_title: Optional[str] = None
    candidate_title: Optional[str] = None
    candidate_id: str
    is_cover: Optional[bool] = None
    votes_yes: int = 0
    votes_no: int = 0


class StoreConfig(BaseModel):
    """Persistence backend configuration."""

    backend: str = "memory"  # "memory" or "sqlite"
    db_path: str = "covervote.db"


class ReviewConfig(BaseModel):
    """Rules governing pair selection and reviewer matching."""

    quota: int = Field(default=DEFAULT_QUOTA, ge=1)
    match_threshold: int = Field(default=2, ge=0)
    fallback_bucket: str = OTHERS_BUCKET
    reviewers: List[str] = Field(default_factory=list)


class APIConfig(BaseModel):
    """HTTP transport configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_credentials: bool = False
    max_body_mb: int = 50


class LoggingConfig(BaseModel):
    """Logging configuration."""

    format: str = "json"
    level: str = "INFO"
    file: Optional[str] = None


class Config(BaseModel):
    """Complete configuration model."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
