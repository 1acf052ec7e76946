#!/usr/bin/env python3
"""
get_bacdive.py

Crawl BacDive strain records one BacDive-ID at a time, normalize them and
write them to JSON:

- details_transformed_<id>.json   checkpoint after every --interval IDs
- details_transformed_final.json  the complete dataset, always written last

Each ID is fetched, transformed and appended strictly in order. An ID that
is invalid, unknown, fails to download or fails to transform is logged and
skipped; nothing short of a missing session cookie stops the run. After a
crash, the newest checkpoint holds everything up to its ID and the rest of
the range can be crawled again with --start.

Usage:
    SESSION_COOKIE=... python get_bacdive.py --start 1 --end 27000 --out-dir data
    SESSION_COOKIE=... python get_bacdive.py --genus Bacillus --genus Halomonas
"""

import argparse
import json
import logging
import os
import tempfile
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from bacdive_session import BacdiveSession, start_session
from fetch_details import FetchStatus, fetch_details_for_id
from get_taxon_ids import fetch_ids_for_genera, merge_genus_ids
from transform_details import transform_details

CHECKPOINT_TEMPLATE = "details_transformed_{}.json"
FINAL_NAME = "details_transformed_final.json"


@dataclass
class CrawlSummary:
    processed: int = 0
    written: int = 0
    skipped: Counter = field(default_factory=Counter)
    checkpoints: List[str] = field(default_factory=list)
    final_path: Optional[str] = None


# -------------------------
# Persistence (JSON)
# -------------------------

def write_snapshot(path: str, records) -> str:
    """Write a JSON array atomically: readers see the old file or the new one, never half of one."""
    snapshot = list(records)
    out_dir = os.path.dirname(os.path.abspath(path))
    os.makedirs(out_dir, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".details_", suffix=".json.tmp", dir=out_dir)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, ensure_ascii=False, indent=2)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
    return path


def checkpoint_path(out_dir: str, identifier) -> str:
    return os.path.join(out_dir, CHECKPOINT_TEMPLATE.format(identifier))


def prune_checkpoints(paths: Iterable[str]) -> int:
    n = 0
    for p in paths:
        try:
            os.remove(p)
            n += 1
        except FileNotFoundError:
            continue
    logging.info(f"Removed {n} checkpoint files")
    return n


# -------------------------
# Driver
# -------------------------

def process_id(session: BacdiveSession, identifier) -> Tuple[Optional[dict], Optional[str]]:
    """Fetch + transform one ID. Returns (record, None) or (None, reason); failures are already logged."""
    fetched = fetch_details_for_id(session, identifier)
    if fetched.status is not FetchStatus.OK:
        return None, fetched.status.value
    transformed = transform_details(fetched.record)
    if not transformed.ok:
        logging.error(f"Failed to transform ID {fetched.identifier}: {transformed.error}")
        return None, "transform_failed"
    return transformed.record, None


def crawl_ids(
    session: BacdiveSession,
    identifiers: Iterable,
    out_dir: str = ".",
    interval: int = 1000,
    delay: float = 0.005,
) -> CrawlSummary:
    """
    The accumulator lives in this frame only. Checkpoints are taken after
    every `interval`-th processed ID, named after that ID; the final file is
    written unconditionally.
    """
    if interval < 1:
        raise ValueError("interval must be >= 1")

    records: List[dict] = []
    seen = set()
    summary = CrawlSummary()

    for identifier in identifiers:
        summary.processed += 1
        try:
            record, reason = process_id(session, identifier)
            if record is not None and record["identifier"] in seen:
                logging.warning(f"Duplicate BacDive-ID {record['identifier']}; keeping the first one")
                record, reason = None, "duplicate"
            if record is None:
                summary.skipped[reason] += 1
            else:
                seen.add(record["identifier"])
                records.append(record)
        except Exception as e:
            logging.error(f"Failed processing ID {identifier}: {e}")
            summary.skipped["exception"] += 1

        if summary.processed % interval == 0:
            # a lost checkpoint only costs a recovery point; the final write below stays fatal
            try:
                path = write_snapshot(checkpoint_path(out_dir, identifier), records)
            except OSError as e:
                logging.error(f"Checkpoint save at ID {identifier} failed: {e}")
            else:
                summary.checkpoints.append(path)
                logging.info(f"Checkpoint save at ID {identifier}. Found {len(records)} valid entries so far.")

        time.sleep(delay)

    summary.written = len(records)
    summary.final_path = write_snapshot(os.path.join(out_dir, FINAL_NAME), records)
    logging.info(f"Process completed. Total valid entries: {summary.written} "
                 f"(processed {summary.processed}, skipped {dict(summary.skipped)})")
    return summary


def crawl_range(session: BacdiveSession, start: int, end: int, **kwargs) -> CrawlSummary:
    """Inclusive, ascending [start, end]."""
    if end < start:
        raise ValueError(f"end ({end}) must not be smaller than start ({start})")
    logging.info(f"Starting fetch for IDs {start} to {end}")
    return crawl_ids(session, range(start, end + 1), **kwargs)


def _id_sort_key(identifier: str):
    # numeric IDs ascending, anything else after them
    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier)


def crawl_genera(session: BacdiveSession, genera: Iterable[str], page_delay: float = 0.1, **kwargs) -> CrawlSummary:
    index: Dict[str, List[str]] = fetch_ids_for_genera(session, genera, delay=page_delay)
    for genus, ids in index.items():
        logging.info(f"{genus}: {len(ids)} IDs")
    ids = sorted(merge_genus_ids(index), key=_id_sort_key)
    logging.info(f"Starting fetch for {len(ids)} IDs from {len(index)} genera")
    return crawl_ids(session, ids, **kwargs)


# -------------------------
# CLI
# -------------------------

def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Crawl and normalize BacDive strain records into JSON")
    ap.add_argument("--start", type=int, default=1, help="First BacDive-ID of the range (inclusive)")
    ap.add_argument("--end", type=int, default=27000, help="Last BacDive-ID of the range (inclusive)")
    ap.add_argument("--genus", action="append", default=None,
                    help="Crawl the IDs listed under this genus instead of a range; repeatable")
    ap.add_argument("--out-dir", type=str, default=".", help="Directory for checkpoint and final files")
    ap.add_argument("--interval", type=int, default=1000, help="Write a checkpoint every N IDs")
    ap.add_argument("--delay", type=float, default=0.005, help="Seconds to wait between IDs")
    ap.add_argument("--page-delay", type=float, default=0.1, help="Seconds to wait between taxon pages")
    ap.add_argument("--tries", type=int, default=3, help="Attempts per request on transient errors")
    ap.add_argument("--timeout", type=float, default=30, help="Per-request timeout in seconds")
    ap.add_argument("--prune-checkpoints", action="store_true",
                    help="Delete checkpoint files once the final file is written")
    ap.add_argument("--info-file", type=str, default=None,
                    help="Read the session cookie from this file instead of SESSION_COOKIE")
    ap.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format="%(levelname)s: %(message)s")

    session = start_session(info_file=args.info_file, tries=args.tries, timeout=args.timeout)
    opts = dict(out_dir=args.out_dir, interval=args.interval, delay=args.delay)
    try:
        if args.genus:
            summary = crawl_genera(session, args.genus, page_delay=args.page_delay, **opts)
        else:
            summary = crawl_range(session, args.start, args.end, **opts)
    finally:
        session.close()

    if args.prune_checkpoints:
        prune_checkpoints(summary.checkpoints)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
