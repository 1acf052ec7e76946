#!/usr/bin/env python3
"""
get_taxon_ids.py

Collect every BacDive-ID listed under one or more genera by walking the
paginated taxon endpoint (`/taxon/<genus>?page=<n>`) until no `next` page is
advertised.

Usage:
    python get_taxon_ids.py --genus Bacillus --genus Halomonas --out genus_ids.json
"""

import argparse
import json
import logging
import time
from typing import Dict, Iterable, List

from bacdive_session import BacdiveError, BacdiveSession, start_session


def fetch_ids_for_genus(session: BacdiveSession, genus: str, delay: float = 0.1) -> List[str]:
    """
    Best-effort: a failing page stops the walk and the IDs gathered so far are
    returned. Callers must treat the result as possibly incomplete.
    """
    url = session.taxon_url(genus)
    ids, seen = [], set()
    page = 0
    logging.info(f"Fetching IDs for genus: {genus}")

    try:
        while True:
            page += 1
            logging.info(f"Fetching page {page} from: {url}?page={page}")
            js = session.get_json(url, params={"page": page})

            if not isinstance(js, dict):
                raise BacdiveError(f"malformed page: expected an object, got {type(js).__name__}")
            results = js.get("results") or {}
            if not isinstance(results, dict):
                raise BacdiveError(f"malformed page: results is {type(results).__name__}")
            new_ids = [str(k) for k in results]
            logging.info(f"Retrieved {len(new_ids)} IDs on page {page}. Total expected: {js.get('count')}")
            for i in new_ids:
                if i not in seen:
                    seen.add(i)
                    ids.append(i)

            if not js.get("next"):
                break
            time.sleep(delay)
    except BacdiveError as e:
        logging.error(f"Error fetching IDs for genus {genus} (page {page}): {e}")

    logging.info(f"Total pages fetched for {genus}: {page}")
    logging.info(f"Total IDs collected for {genus}: {len(ids)}")
    return ids


def fetch_ids_for_genera(session: BacdiveSession, genera: Iterable[str], delay: float = 0.1) -> Dict[str, List[str]]:
    """Genus -> IDs. A failing genus keeps its partial list and does not stop the others."""
    index = {}
    for genus in genera:
        genus = genus.strip()
        if not genus or genus in index:
            continue
        try:
            index[genus] = fetch_ids_for_genus(session, genus, delay=delay)
        except Exception as e:
            logging.error(f"Unexpected error listing genus {genus}: {e}")
            index[genus] = []
    return index


def merge_genus_ids(index: Dict[str, List[str]]) -> List[str]:
    """Union of all genera's IDs, first-seen order."""
    out, seen = [], set()
    for ids in index.values():
        for i in ids:
            if i not in seen:
                seen.add(i)
                out.append(i)
    return out


# -------------------------
# CLI
# -------------------------

def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="List BacDive-IDs per genus from the BacDive taxon endpoint")
    ap.add_argument("--genus", action="append", required=True,
                    help="Genus name; repeat the flag for several genera")
    ap.add_argument("--out", type=str, default="genus_ids.json",
                    help="JSON file for the genus -> IDs mapping")
    ap.add_argument("--delay", type=float, default=0.1, help="Seconds to wait between pages")
    ap.add_argument("--tries", type=int, default=3, help="Attempts per request on transient errors")
    ap.add_argument("--info-file", type=str, default=None,
                    help="Read the session cookie from this file instead of SESSION_COOKIE")
    ap.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format="%(levelname)s: %(message)s")

    session = start_session(info_file=args.info_file, tries=args.tries)
    try:
        index = fetch_ids_for_genera(session, args.genus, delay=args.delay)
    finally:
        session.close()

    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(index, f, ensure_ascii=False, indent=2)
    logging.info(f"Wrote {len(merge_genus_ids(index))} IDs for {len(index)} genera to {args.out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
