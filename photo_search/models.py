"""
Typed records passed through the photo search pipeline.

Candidates come in from a corpus provider, descriptors live only for the
duration of one search, and match results go back out to the caller.
Nothing here is persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import numpy as np


class ReportCategory(str, Enum):
    """Kinds of report that can carry a photo. Display only, never scored."""

    PERSON = "person"
    DEVICE = "device"
    VEHICLE = "vehicle"
    HOUSEHOLD_ITEM = "household_item"
    PERSONAL_BELONGING = "personal_belonging"
    HACKED_ACCOUNT = "hacked_account"


class ErrorKind(str, Enum):
    """Reasons a search produced no usable result list."""

    FETCH = "fetch"
    DECODE = "decode"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class CandidateImage:
    """A stored report photo eligible to be matched against a query.

    Attributes:
        id: Report identifier, used to join a match back to its report.
        category: Report kind, used for display only.
        image_location: Fetchable URI or path of the photo.
        metadata: Free-form display fields (location, dates, status, ...).
    """

    id: str
    category: ReportCategory
    image_location: str
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "category", ReportCategory(self.category))


@dataclass(frozen=True)
class QueryImage:
    """The user-supplied search image, given as raw bytes or a location."""

    image_location: Optional[str] = None
    data: Optional[bytes] = None

    def __post_init__(self):
        if (self.image_location is None) == (self.data is None):
            raise ValueError("QueryImage needs exactly one of image_location or data")


@dataclass(frozen=True)
class ImageDescriptor:
    """Pixel grid and luminance histogram derived from one image.

    grid is a (GRID_SIZE, GRID_SIZE, 3) uint8 RGB array and histogram a
    256-bin float64 array summing to 1.
    """

    grid: np.ndarray = field(compare=False)
    histogram: np.ndarray = field(compare=False)


@dataclass(frozen=True)
class MatchResult:
    """A candidate paired with its similarity to the query, in [0, 1]."""

    candidate: CandidateImage
    similarity: float


@dataclass
class SearchOutcome:
    """Result of one search request.

    A search either succeeds with a (possibly empty) match list, or fails
    with an error kind and a user-facing message. An empty corpus is a
    success with an advisory message, not an error.
    """

    matches: List[MatchResult] = field(default_factory=list)
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    candidates_searched: int = 0
    candidates_failed: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None
