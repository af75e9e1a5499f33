"""
photo_search: reverse image search over stolen/missing item report photos.

Scores a query image against every stored report photo using a luminance
histogram correlation and a mean RGB color distance over 100x100 grids,
then returns the best matches above a similarity floor.

Modules:
    engine         PhotoSearchEngine and search_by_similar_image
    corpus         Candidate providers (in-memory, Supabase)
    fetching       Image retrieval by URL, data URI or path
    preprocessing  Decoding and resampling to the comparison grid
    histograms     Luminance histograms and correlation
    scoring        Similarity scoring and ranking
    presentation   Display summaries for results
    models         Typed records
    errors         FetchError / DecodeError
"""

from .corpus import CorpusProvider, StaticCorpus, SupabaseCorpus
from .engine import PhotoSearchEngine, search_by_similar_image
from .errors import DecodeError, FetchError, PhotoSearchError
from .models import (
    CandidateImage, ErrorKind, MatchResult, QueryImage, ReportCategory, SearchOutcome,
)

__version__ = "1.0.0"

__all__ = [
    "CandidateImage",
    "CorpusProvider",
    "DecodeError",
    "ErrorKind",
    "FetchError",
    "MatchResult",
    "PhotoSearchEngine",
    "PhotoSearchError",
    "QueryImage",
    "ReportCategory",
    "SearchOutcome",
    "StaticCorpus",
    "SupabaseCorpus",
    "search_by_similar_image",
]
