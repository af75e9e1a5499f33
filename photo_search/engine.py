"""
Photo search engine.

Runs the reverse image search pipeline for one query:
    1. Decode the query image into a pixel grid and luminance histogram
    2. List every report with a photo from the corpus provider
    3. Fetch and decode candidate photos concurrently
    4. Score each candidate (histogram correlation + color distance)
    5. Drop candidates at or below the floor, sort, keep the top results

Only a bad query image fails the search. A candidate that cannot be
fetched, decoded, or does not finish before the search deadline is
logged and scored 0, so one broken record never hides good matches.

Starting a new search on the same engine supersedes any search still in
flight: the older call stops dispatching work and returns a CANCELLED
outcome instead of results.
"""

import os
import time
import logging
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Dict, Iterable, List, Optional, Union

import requests

from .corpus import CorpusProvider
from .errors import DecodeError, FetchError, PhotoSearchError
from .fetching import fetch_image_bytes
from .histograms import extract_descriptor
from .models import (
    CandidateImage, ErrorKind, ImageDescriptor, MatchResult, QueryImage,
    ReportCategory, SearchOutcome,
)
from .preprocessing import decode_to_grid
from .scoring import compute_similarity, rank_results

logger = logging.getLogger(__name__)

# Overall deadline for candidate fetch + decode (seconds)
SEARCH_TIMEOUT = float(os.environ.get("PHOTO_SEARCH_SEARCH_TIMEOUT", "60"))
MAX_WORKERS = int(os.environ.get("PHOTO_SEARCH_MAX_WORKERS", "8"))

INVALID_QUERY_MESSAGE = "Please select a valid image"
EMPTY_CORPUS_MESSAGE = "No reports with images found"
NO_MATCHES_MESSAGE = "No visually similar reports found"
CANCELLED_MESSAGE = "Search was superseded by a newer query"

# How often a waiting search checks whether it has been superseded
_POLL_INTERVAL = 0.05


class PhotoSearchEngine:
    """
    Reverse image search over report photos.

    Descriptors are recomputed on every search; nothing is cached between
    queries.
    """

    def __init__(self,
                 corpus: CorpusProvider,
                 fetch_timeout: float = None,
                 search_timeout: float = None,
                 max_workers: int = None,
                 weights: Dict[str, float] = None,
                 floor: float = None,
                 max_results: int = None,
                 session: Optional[requests.Session] = None):
        """
        Args:
            corpus: Provider of candidate images.
            fetch_timeout: Per-image network timeout. Defaults to FETCH_TIMEOUT.
            search_timeout: Deadline for all candidate fetches together.
            max_workers: Concurrent candidate fetch/decode tasks.
            weights: Override for scoring.DEFAULT_WEIGHTS.
            floor: Override for scoring.SIMILARITY_FLOOR.
            max_results: Override for scoring.MAX_RESULTS.
            session: Optional requests session shared by image fetches.
        """
        self.corpus = corpus
        self.fetch_timeout = fetch_timeout
        self.search_timeout = SEARCH_TIMEOUT if search_timeout is None else search_timeout
        self.max_workers = max_workers or MAX_WORKERS
        self.weights = weights
        self.floor = floor
        self.max_results = max_results
        self.session = session

        self._lock = threading.Lock()
        self._generation = 0

    def cancel(self):
        """Abandon whatever search is currently running."""
        with self._lock:
            self._generation += 1

    def _begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def search(self,
               query: Union[QueryImage, bytes, str],
               categories: Optional[Iterable[ReportCategory]] = None) -> SearchOutcome:
        """
        Find report photos that look like the query image.

        Args:
            query: QueryImage, raw image bytes, or an image location.
            categories: Optional subset of report categories to search.

        Returns:
            SearchOutcome. On success, matches holds at most max_results
            MatchResults sorted by similarity. error is FETCH or DECODE
            when the query image is unusable, CANCELLED when a newer
            search started before this one finished.
        """
        generation = self._begin()
        query = _as_query(query)

        try:
            query_descriptor = self._describe_query(query)
        except FetchError as e:
            logger.error(f"Query image could not be fetched: {e}")
            return SearchOutcome(error=ErrorKind.FETCH, message=INVALID_QUERY_MESSAGE)
        except DecodeError as e:
            logger.error(f"Query image could not be decoded: {e}")
            return SearchOutcome(error=ErrorKind.DECODE, message=INVALID_QUERY_MESSAGE)

        candidates = self.corpus.list_candidates_with_images(categories)
        if not candidates:
            logger.info("No candidates to search")
            return SearchOutcome(message=EMPTY_CORPUS_MESSAGE)

        if not self._is_current(generation):
            return _cancelled()

        descriptors = self._describe_candidates(candidates, generation)
        if not self._is_current(generation):
            logger.info("Search superseded, discarding partial results")
            return _cancelled()

        scored = self._score(query_descriptor, candidates, descriptors)
        matches = rank_results(scored, floor=self.floor, max_results=self.max_results)
        failed = sum(1 for d in descriptors if d is None)

        if not self._is_current(generation):
            return _cancelled()

        logger.info(
            f"Search complete: {len(candidates)} candidates ({failed} failed) → "
            f"{len(matches)} results"
        )

        return SearchOutcome(
            matches=matches,
            message=None if matches else NO_MATCHES_MESSAGE,
            candidates_searched=len(candidates),
            candidates_failed=failed,
        )

    def _describe_query(self, query: QueryImage) -> ImageDescriptor:
        data = query.data
        if data is None:
            data = fetch_image_bytes(query.image_location, timeout=self.fetch_timeout,
                                     session=self.session)
        return extract_descriptor(decode_to_grid(data))

    def _describe_candidate(self, candidate: CandidateImage, generation: int
                            ) -> Optional[ImageDescriptor]:
        if not self._is_current(generation):
            return None
        data = fetch_image_bytes(candidate.image_location, timeout=self.fetch_timeout,
                                 session=self.session)
        # Each task decodes into its own freshly allocated grid
        return extract_descriptor(decode_to_grid(data))

    def _describe_candidates(self,
                             candidates: List[CandidateImage],
                             generation: int) -> List[Optional[ImageDescriptor]]:
        """
        Fetch and decode all candidates concurrently.

        Returns a list aligned with candidates; None marks a candidate that
        failed, timed out, or was skipped because the search was superseded.
        """
        descriptors: List[Optional[ImageDescriptor]] = [None] * len(candidates)
        executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                      thread_name_prefix="photo-search")
        try:
            future_map = {
                executor.submit(self._describe_candidate, candidate, generation): i
                for i, candidate in enumerate(candidates)
            }

            deadline = time.monotonic() + self.search_timeout
            pending = set(future_map)
            while pending and self._is_current(generation):
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                done, pending = wait(pending, timeout=min(remaining, _POLL_INTERVAL),
                                     return_when=FIRST_COMPLETED)
                for future in done:
                    i = future_map[future]
                    descriptors[i] = _collect(future, candidates[i])

            for future in pending:
                future.cancel()
                if self._is_current(generation):
                    logger.warning(
                        f"Candidate {candidates[future_map[future]].id} did not finish "
                        f"within {self.search_timeout}s, scoring 0"
                    )
        finally:
            # Never block on hung fetches; abandoned threads finish on their own
            executor.shutdown(wait=False, cancel_futures=True)

        return descriptors

    def _score(self,
               query: ImageDescriptor,
               candidates: List[CandidateImage],
               descriptors: List[Optional[ImageDescriptor]]) -> List[MatchResult]:
        # Failed candidates score 0 and fall below any non-negative floor
        return [
            MatchResult(
                candidate=candidate,
                similarity=0.0 if descriptor is None
                else compute_similarity(query, descriptor, self.weights),
            )
            for candidate, descriptor in zip(candidates, descriptors)
        ]


def _as_query(query) -> QueryImage:
    if isinstance(query, QueryImage):
        return query
    if isinstance(query, (bytes, bytearray, memoryview)):
        return QueryImage(data=bytes(query))
    if isinstance(query, str):
        return QueryImage(image_location=query)
    raise TypeError(f"Unsupported query type: {type(query).__name__}")


def _collect(future, candidate: CandidateImage) -> Optional[ImageDescriptor]:
    try:
        return future.result()
    except PhotoSearchError as e:
        logger.warning(f"Skipping candidate {candidate.id} ({candidate.category.value}): {e}")
    except Exception as e:
        logger.warning(f"Unexpected error on candidate {candidate.id}, scoring 0: {e}")
    return None


def _cancelled() -> SearchOutcome:
    return SearchOutcome(error=ErrorKind.CANCELLED, message=CANCELLED_MESSAGE)


def search_by_similar_image(query_image: Union[QueryImage, bytes, str],
                            corpus: CorpusProvider,
                            categories: Optional[Iterable[ReportCategory]] = None,
                            **engine_options) -> SearchOutcome:
    """One-shot search with a throwaway engine."""
    return PhotoSearchEngine(corpus, **engine_options).search(query_image, categories)
