"""
Corpus providers: where candidate report photos come from.

The engine only needs the complete list of reports that have a photo.
Two providers are included:
    StaticCorpus    in-memory list, for tests and batch jobs
    SupabaseCorpus  reads the report tables through the PostgREST API

A provider never returns a record without an image location. An empty
result is a normal outcome, not an error.
"""

import os
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

import requests

from .models import CandidateImage, ReportCategory

logger = logging.getLogger(__name__)

# Report table and selected columns per category
REPORT_TABLES = {
    ReportCategory.PERSON: (
        "persons",
        "id,name,age,gender,location,date_missing,status,image_url,report_date,visible",
    ),
    ReportCategory.DEVICE: (
        "devices",
        "id,type,brand,model,color,imei,location,status,image_url,report_date,visible",
    ),
    ReportCategory.VEHICLE: (
        "vehicles",
        "id,type,brand,model,year,color,chassis,location,status,image_url,report_date,visible",
    ),
    ReportCategory.HOUSEHOLD_ITEM: (
        "household_items",
        "id,type,brand,model,year,color,imei,location,status,image_url,report_date,visible",
    ),
    ReportCategory.PERSONAL_BELONGING: (
        "personal_belongings",
        "id,type,brand,model,year,color,imei,location,status,image_url,report_date,visible",
    ),
    ReportCategory.HACKED_ACCOUNT: (
        "hacked_accounts",
        "id,account_type,account_identifier,date_compromised,status,image_url,report_date,visible",
    ),
}

IMAGE_COLUMN = "image_url"


class CorpusProvider(ABC):
    """Source of candidate images for a photo search."""

    @abstractmethod
    def list_candidates_with_images(self,
                                    categories: Optional[Iterable[ReportCategory]] = None
                                    ) -> List[CandidateImage]:
        """Return every candidate with an image, optionally limited to some categories."""


class StaticCorpus(CorpusProvider):
    """Serves a fixed list of candidates."""

    def __init__(self, candidates: Iterable[CandidateImage]):
        self.candidates = list(candidates)

    def list_candidates_with_images(self, categories=None) -> List[CandidateImage]:
        wanted = set(categories) if categories is not None else None
        return [
            c for c in self.candidates
            if c.image_location and (wanted is None or c.category in wanted)
        ]


class SupabaseCorpus(CorpusProvider):
    """
    Reads report rows that have a photo from a Supabase project.

    Each category maps to one table (see REPORT_TABLES). Tables are read
    page by page until exhausted. A table that fails to load is logged and
    skipped so the remaining categories can still be searched.

    Args:
        base_url: Project URL, e.g. https://xyz.supabase.co
        api_key: Anon or service-role key.
        request_timeout: HTTP timeout per page request (seconds).
        page_size: Rows requested per page.
        session: Optional requests session.
    """

    def __init__(self,
                 base_url: str,
                 api_key: str,
                 request_timeout: float = 15,
                 page_size: int = 1000,
                 session: Optional[requests.Session] = None):
        if not base_url or not api_key:
            raise ValueError("SupabaseCorpus needs both base_url and api_key")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.request_timeout = request_timeout
        self.page_size = page_size
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        })

    @classmethod
    def from_env(cls, **kwargs) -> "SupabaseCorpus":
        """Build a provider from SUPABASE_URL and SUPABASE_ANON_KEY."""
        return cls(
            base_url=os.environ.get("SUPABASE_URL", ""),
            api_key=os.environ.get("SUPABASE_ANON_KEY", ""),
            **kwargs,
        )

    def list_candidates_with_images(self, categories=None) -> List[CandidateImage]:
        selected = list(categories) if categories is not None else list(REPORT_TABLES)
        candidates = []

        for category in selected:
            table, columns = REPORT_TABLES[ReportCategory(category)]
            try:
                rows = self._fetch_table(table, columns)
            except requests.exceptions.RequestException as e:
                logger.warning(f"Failed to load {table}: {e}")
                continue
            except ValueError as e:
                logger.warning(f"Invalid response for {table}: {e}")
                continue

            table_candidates = [
                c for c in (row_to_candidate(row, ReportCategory(category)) for row in rows)
                if c is not None
            ]
            logger.debug(f"{table}: {len(table_candidates)} reports with images")
            candidates.extend(table_candidates)

        logger.info(f"Found {len(candidates)} reports with images")
        return candidates

    def _fetch_table(self, table: str, columns: str) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/rest/v1/{table}"
        rows = []
        offset = 0

        while True:
            params = {
                "select": columns,
                IMAGE_COLUMN: "not.is.null",
                "order": "id",
                "limit": self.page_size,
                "offset": offset,
            }
            resp = self.session.get(url, params=params, timeout=self.request_timeout)
            resp.raise_for_status()

            page = resp.json()
            if not isinstance(page, list):
                raise ValueError(f"expected a list of rows, got {type(page).__name__}")

            rows.extend(page)
            if len(page) < self.page_size:
                return rows
            offset += self.page_size


def row_to_candidate(row: Dict[str, Any], category: ReportCategory) -> Optional[CandidateImage]:
    """Map a report row to a CandidateImage, or None if it has no photo."""
    location = row.get(IMAGE_COLUMN)
    if not location or row.get("id") is None:
        return None
    metadata = {k: v for k, v in row.items() if k not in ("id", IMAGE_COLUMN)}
    return CandidateImage(
        id=str(row["id"]),
        category=category,
        image_location=location,
        metadata=metadata,
    )
