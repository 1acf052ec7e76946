#!/usr/bin/env python3
"""
serve_bacteria.py

Read-only HTTP API over details_transformed_final.json. The whole dataset is
loaded into memory once at startup.

- GET /api/bacteria?page=&limit=   paginated listing (defaults 1 / 100)
- GET /api/bacteria/{id}           one strain by BacDive-ID, 404 if unknown
- GET /api/search?genus=&species=  case-insensitive substring match, at most 100 hits
- GET /api/stats                   record / genus / species counts
- /api-docs                        interactive OpenAPI docs

Usage:
    python serve_bacteria.py --data details_transformed_final.json --port 3000
"""

import argparse
import json
import logging
import os
from typing import Dict, List, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 100
SEARCH_CAP = 100


def load_dataset(path: str) -> List[dict]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array of records, got {type(data).__name__}")
    return data


def _positive_int(v, default: int) -> int:
    # lenient like a query string should be: junk, zero and negatives fall back
    try:
        n = int(v)
    except (TypeError, ValueError):
        return default
    return n if n > 0 else default


def _taxon(record: dict, key: str) -> Optional[str]:
    tax = record.get("taxonomy")
    if not isinstance(tax, dict):
        return None
    return tax.get(key)


def _distinct_key(value):
    # lists/dicts are unhashable; compare them by their JSON form
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return value


def _contains(value, needle: str) -> bool:
    return isinstance(value, str) and needle.lower() in value.lower()


class BacteriaIndex:
    """In-memory view of the dataset; never modifies the records it is given."""

    def __init__(self, records: List[dict]):
        self.records = list(records)
        self.by_id: Dict[str, dict] = {}
        for r in self.records:
            bd_id = r.get("identifier")
            if bd_id is not None:
                self.by_id.setdefault(str(bd_id), r)

    def __len__(self):
        return len(self.records)

    def paginate(self, page=DEFAULT_PAGE, limit=DEFAULT_LIMIT) -> dict:
        page = _positive_int(page, DEFAULT_PAGE)
        limit = _positive_int(limit, DEFAULT_LIMIT)
        start = (page - 1) * limit
        return {
            "total": len(self.records),
            "page": page,
            "limit": limit,
            "data": self.records[start:start + limit],
        }

    def get(self, identifier) -> Optional[dict]:
        return self.by_id.get(str(identifier))

    def search(self, genus: Optional[str] = None, species: Optional[str] = None) -> dict:
        results = self.records
        if genus:
            results = [r for r in results if _contains(_taxon(r, "genus"), genus)]
        if species:
            results = [r for r in results if _contains(_taxon(r, "species"), species)]
        return {"total": len(results), "data": results[:SEARCH_CAP]}

    def stats(self) -> dict:
        # a missing genus/species counts as one distinct value of its own
        return {
            "totalRecords": len(self.records),
            "uniqueGenera": len({_distinct_key(_taxon(r, "genus")) for r in self.records}),
            "uniqueSpecies": len({_distinct_key(_taxon(r, "species")) for r in self.records}),
        }


def create_app(index: BacteriaIndex) -> FastAPI:
    app = FastAPI(
        title="Bacterial Taxonomy API",
        description="REST API for querying BacDive strain taxonomy and physiology",
        version="1.0.0",
        docs_url="/api-docs",
    )

    @app.get("/api/bacteria")
    def list_bacteria(page: Optional[str] = None, limit: Optional[str] = None):
        """Paginated list of strains."""
        return index.paginate(page, limit)

    @app.get("/api/bacteria/{bacdive_id}")
    def get_bacteria(bacdive_id: str):
        """One strain by BacDive-ID."""
        record = index.get(bacdive_id)
        if record is None:
            return JSONResponse(status_code=404, content={"error": "Bacteria not found"})
        return record

    @app.get("/api/search")
    def search(genus: Optional[str] = None, species: Optional[str] = None):
        """Search strains by genus and/or species."""
        return index.search(genus=genus, species=species)

    @app.get("/api/stats")
    def stats():
        """Dataset statistics."""
        return index.stats()

    return app


def app_from_file(path: str) -> FastAPI:
    logging.info(f"Loading data into memory from {path}...")
    index = BacteriaIndex(load_dataset(path))
    logging.info(f"Total records loaded: {len(index)}")
    return create_app(index)


# -------------------------
# CLI
# -------------------------

def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Serve the normalized BacDive dataset over HTTP")
    ap.add_argument("--data", type=str, default="details_transformed_final.json",
                    help="Final dataset written by get_bacdive.py")
    ap.add_argument("--host", type=str, default="127.0.0.1")
    ap.add_argument("--port", type=int, default=int(os.getenv("PORT", "3000")))
    ap.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format="%(levelname)s: %(message)s")
    app = app_from_file(args.data)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
