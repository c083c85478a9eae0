# petdegree/record_store_api.py

from __future__ import annotations

import os
from typing import Iterable, List, Optional

import requests

from .models import AnimalRecord, RegistrationChange

# -------------------------------
# Defaults (env overridable)
# -------------------------------

DEFAULT_TABLE = "pets"
DEFAULT_PAGE_SIZE = 1000
DEFAULT_TIMEOUT = 20

ENV_API_URL = "PETDEGREE_API_URL"
ENV_API_KEY = "PETDEGREE_API_KEY"

RECORD_COLUMNS = (
    "id",
    "name",
    "type",
    "gender",
    "birthday",
    "father_id",
    "mother_id",
    "breed",
    "color",
    "health_certified",
    "registration_number",
)


def default_api_url() -> Optional[str]:
    return os.environ.get(ENV_API_URL) or None


def default_api_key() -> Optional[str]:
    return os.environ.get(ENV_API_KEY) or None


# -------------------------------
# HTTP Client Builder
# -------------------------------

def build_client(api_key: Optional[str] = None) -> requests.Session:
    """
    Build and return a configured HTTP session for the record store's
    REST endpoint (PostgREST style: /rest/v1/<table>).
    """
    session = requests.Session()
    session.headers.update({
        "User-Agent": "petdegree/1.0",
        "Accept": "application/json",
    })
    if api_key:
        session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
        })
    return session


def _table_url(base_url: str, table: str) -> str:
    return f"{base_url.rstrip('/')}/rest/v1/{table}"


# -------------------------------
# Bulk read
# -------------------------------

def fetch_all_records(
    session: requests.Session,
    base_url: str,
    *,
    table: str = DEFAULT_TABLE,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> List[AnimalRecord]:
    """
    Read the whole animal table, page by page.

    Stops at the first short page. Rows without an id are skipped; any
    non-list page is an error.
    """
    url = _table_url(base_url, table)
    print("[record_store_api] Fetching animal records:")
    print(f"  GET {url}")

    records: List[AnimalRecord] = []
    offset = 0

    while True:
        params = {
            "select": ",".join(RECORD_COLUMNS),
            "order": "id.asc",
            "limit": page_size,
            "offset": offset,
        }
        resp = session.get(url, params=params, timeout=DEFAULT_TIMEOUT)
        resp.raise_for_status()
        rows = resp.json()

        if not isinstance(rows, list):
            raise RuntimeError(
                f"Unexpected records response structure: expected list, got {type(rows)}"
            )

        skipped = 0
        for row in rows:
            if not isinstance(row, dict) or row.get("id") in (None, ""):
                skipped += 1
                continue
            records.append(AnimalRecord.from_dict(row))

        if skipped:
            print(f"[record_store_api] WARNING: skipped {skipped} rows without id (offset={offset})")

        if len(rows) < page_size:
            break
        offset += page_size

    print(f"[record_store_api] Received {len(records)} animal records")
    return records


# -------------------------------
# Diff-apply of registration codes
# -------------------------------

def apply_registration_changes(
    session: requests.Session,
    base_url: str,
    changes: Iterable[RegistrationChange],
    *,
    table: str = DEFAULT_TABLE,
) -> int:
    """
    PATCH registration_number for each change (None clears it).

    Returns the number of rows written. The first HTTP error aborts the run.
    """
    url = _table_url(base_url, table)
    written = 0

    for change in changes:
        resp = session.patch(
            url,
            params={"id": f"eq.{change.animal_id}"},
            json={"registration_number": change.new_code},
            timeout=DEFAULT_TIMEOUT,
        )
        resp.raise_for_status()
        written += 1

    print(f"[record_store_api] Applied {written} registration changes")
    return written
