"""
fetch_details.py

Retrieve one raw BacDive strain record from `/fetch/<BacDive-ID>`.

Nothing here raises for a bad ID, an unknown ID or a failed request; the
outcome is reported as a FetchResult and the caller decides what to do.
"""

import copy
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from bacdive_session import BacdiveError, BacdiveSession

INVALID_IDS = ("", "0")


class FetchStatus(enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    ERROR = "error"


@dataclass(frozen=True)
class FetchResult:
    status: FetchStatus
    identifier: Optional[str]
    record: Optional[dict] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.OK


def normalize_id(identifier) -> Optional[str]:
    """'42', 42 and ' 42 ' all become '42'; None, '' and '0' become None."""
    if identifier is None or isinstance(identifier, bool):
        return None
    s = str(identifier).strip()
    if s in INVALID_IDS:
        return None
    return s


def fetch_details_for_id(session: BacdiveSession, identifier) -> FetchResult:
    bd_id = normalize_id(identifier)
    if bd_id is None:
        logging.error(f"Skipping invalid ID: {identifier!r}")
        return FetchResult(FetchStatus.INVALID, None, error=f"invalid ID {identifier!r}")

    url = session.fetch_url(bd_id)
    logging.debug(f"Fetching details for ID: {bd_id} from {url}")
    try:
        js = session.get_json(url)
    except BacdiveError as e:
        logging.error(f"Error fetching details for ID {bd_id}: {e}")
        return FetchResult(FetchStatus.ERROR, bd_id, error=str(e))

    results = js.get("results") if isinstance(js, dict) else None
    detail = results.get(bd_id) if isinstance(results, dict) else None
    if not isinstance(detail, dict):
        logging.warning(f"No details found for ID {bd_id}")
        return FetchResult(FetchStatus.NOT_FOUND, bd_id)

    # upstream leaves BacDive-ID out of some records
    detail = copy.deepcopy(detail)
    general = detail.get("General")
    if not isinstance(general, dict):
        general = detail["General"] = {}
    general["BacDive-ID"] = bd_id

    logging.debug(f"Successfully fetched ID: {bd_id}")
    return FetchResult(FetchStatus.OK, bd_id, record=detail)
