"""Reviewer-facing endpoints under /api."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
import structlog

from ..engine import Engine
from ..errors import ValidationError
from .models import (
    LoginRequest,
    LoginResponse,
    SuccessResponse,
    SyncRequest,
    SyncResponse,
    VoteRequest,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api")

ALL_VALIDATED = "All pairs validated for this user!"


def get_engine(request: Request) -> Engine:
    """The engine attached to the running application."""
    return request.app.state.engine


@router.post("/login", response_model=LoginResponse, tags=["Reviewers"], summary="Identify a reviewer")
def login(body: LoginRequest, engine: Engine = Depends(get_engine)):
    """Resolve a typed name to a reviewer bucket. Identification only."""
    if not body.name:
        raise ValidationError("Name required", field_name="name")

    user = engine.identity.match(body.name)
    logger.info("login", typed_name=body.name, user=user)
    return LoginResponse(user=user)


@router.get("/pair", tags=["Review"], summary="Next pair to validate")
def get_pair(
    user: Optional[str] = Query(None, description="Reviewer bucket from /api/login"),
    engine: Engine = Depends(get_engine),
) -> Dict[str, Any]:
    """Return the next undecided original/candidate pair for a reviewer."""
    if not user:
        raise ValidationError("User required", field_name="user")

    pair = engine.pairs.next_pair(user)
    if pair is None:
        return {"message": ALL_VALIDATED}

    return {
        "original_id": pair.original_id,
        "original_title": pair.original_title,
        "song_number": pair.song_number,
        "candidate": pair.candidate.to_document(),
        "original_index": pair.record_id,
        "candidate_index": pair.candidate_index,
    }


@router.post("/vote", response_model=SuccessResponse, tags=["Review"], summary="Vote on a pair")
def vote(body: VoteRequest, engine: Engine = Depends(get_engine)):
    """Record whether a candidate is a cover of its original."""
    if body.is_cover is None:
        raise ValidationError("is_cover required", field_name="is_cover")

    engine.votes.cast_vote(
        record_id=body.original_index,
        candidate_index=body.candidate_index,
        is_cover=body.is_cover,
        candidate_id=body.candidate_id,
    )
    return SuccessResponse(success=True)


@router.get("/votes", tags=["Reports"], summary="All decided pairs")
def list_votes(engine: Engine = Depends(get_engine)) -> List[Dict[str, Any]]:
    return [pair.model_dump(mode="json") for pair in engine.reports.voted_pairs()]


@router.get("/final-list", tags=["Reports"], summary="Originals with their confirmed covers")
def final_list(engine: Engine = Depends(get_engine)) -> List[Dict[str, Any]]:
    """Built on demand from the current tallies."""
    return [original.to_document() for original in engine.reports.final_list()]


@router.get("/validated-covers", tags=["Reports"], summary="Full dump of all originals")
def validated_covers(engine: Engine = Depends(get_engine)) -> List[Dict[str, Any]]:
    return [original.to_document() for original in engine.reports.all_originals()]


@router.post("/sync", response_model=SyncResponse, response_model_exclude_none=True,
             tags=["Ingestion"], summary="Merge a scraped batch")
def sync(body: SyncRequest, engine: Engine = Depends(get_engine)):
    """Insert new originals and append novel candidates to known ones."""
    result = engine.sync.sync(body.songs)
    logger.info("sync", **{k: v for k, v in result.to_dict().items() if k not in ("errors", "message")})

    return SyncResponse(
        success=result.success,
        message=result.message,
        errors=result.errors or None,
    )


@router.get("/analytics/global", tags=["Analytics"], summary="Corpus statistics")
def global_analytics(engine: Engine = Depends(get_engine)) -> Dict[str, Any]:
    return engine.analytics.global_stats().model_dump(mode="json")


@router.get("/analytics/user/{name}", tags=["Analytics"], summary="Statistics for one reviewer")
def user_analytics(name: str, engine: Engine = Depends(get_engine)) -> Dict[str, Any]:
    """Statistics over the originals assigned to ``name``, plus its latest vote."""
    return engine.analytics.reviewer_stats(name).model_dump(mode="json")
