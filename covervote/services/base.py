"""Base service class for engine operations."""

from typing import Optional
import logging

from ..models import ReviewConfig
from ..repositories.base import ReviewerRepository, SongRepository


class BaseService:
    """Shared wiring for services that read and write the stores."""

    def __init__(
        self,
        songs: Optional[SongRepository] = None,
        reviewers: Optional[ReviewerRepository] = None,
        config: Optional[ReviewConfig] = None,
    ):
        """Initialize service.

        Args:
            songs: Song repository
            reviewers: Reviewer repository
            config: Review rules (quota, match threshold, fallback bucket)
        """
        self.songs = songs
        self.reviewers = reviewers
        self.config = config or ReviewConfig()
        self.logger = logging.getLogger(self.__class__.__name__)

    def log_operation(self, operation: str, **details) -> None:
        """Log a service operation.

        Args:
            operation: Operation name
            **details: Operation details
        """
        self.logger.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **details}
        )
