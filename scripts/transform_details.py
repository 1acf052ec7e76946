"""
transform_details.py

Map a raw BacDive record (sectioned schema: "General", "Name and taxonomic
classification", ...) onto the flat record we persist and serve.

FIELD_MAP below is the whole mapping. Each entry is
(destination path, source path, default); a missing section or key at any
depth gives the default instead of raising.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Optional

ID_PATH = ("General", "BacDive-ID")

GENERAL = "General"
NAMES = "Name and taxonomic classification"
CULTURE = "Culture and growth conditions"
PHYSIOLOGY = "Physiology and metabolism"
SAFETY = "Safety information"
SEQUENCE = "Sequence information"
LINKS = "External links"

LIST = "list"

FIELD_MAP = (
    (("general", "description"), (GENERAL, "description"), None),
    (("general", "DSM_Number"), (GENERAL, "DSM-Number"), None),
    (("general", "NCBI_tax_id"), (GENERAL, "NCBI tax id", "NCBI tax id"), None),
    (("general", "keywords"), (GENERAL, "keywords"), LIST),

    (("taxonomy", "genus"), (NAMES, "genus"), None),
    (("taxonomy", "species"), (NAMES, "species"), None),
    (("taxonomy", "strain_designation"), (NAMES, "strain designation"), None),
    (("taxonomy", "type_strain"), (NAMES, "type strain"), None),
    (("taxonomy", "full_scientific_name"), (NAMES, "full scientific name"), None),
    (("LPSN",), (NAMES, "LPSN"), None),

    (("culture_conditions", "medium"), (CULTURE, "culture medium"), None),
    (("culture_conditions", "temperatures"), (CULTURE, "culture temp"), None),

    (("physiology_and_metabolism", "compound_production"), (PHYSIOLOGY, "compound production"), None),
    (("physiology_and_metabolism", "enzymes"), (PHYSIOLOGY, "enzymes"), None),

    (("biosafety", "level"), (SAFETY, "risk assessment", "biosafety level"), None),
    (("biosafety", "comment"), (SAFETY, "risk assessment", "biosafety level comment"), None),

    (("sequence_information",), (SEQUENCE, "GC content"), None),

    (("external_links", "culture_collections"), (LINKS, "culture collection no."), None),
    (("external_links", "literature"), (LINKS, "literature"), None),
)


@dataclass(frozen=True)
class TransformResult:
    record: Optional[dict]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def _get(d, *path, default=None):
    """Safe nested get: _get(x, 'A','B','C') -> x['A']['B']['C'] or default."""
    cur = d
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return default if cur is None else cur


def _as_list(x):
    if x is None:
        return []
    if isinstance(x, list):
        return list(x)
    return [x]


def _put(out: dict, path, value):
    cur = out
    for k in path[:-1]:
        cur = cur.setdefault(k, {})
    cur[path[-1]] = value


def _extract_bacdive_id(raw) -> Optional[str]:
    v = _get(raw, *ID_PATH)
    if v is None or isinstance(v, (dict, list)):
        return None
    v = str(v).strip()
    return v or None


def transform_details(raw: dict) -> TransformResult:
    """
    Pure function of `raw`: the input is never modified and the same input
    always gives an equal record. Only a missing key or an explicit null
    falls back to the default, so `"type strain": false` is kept as False.
    """
    if not isinstance(raw, dict):
        logging.error(f"Cannot transform {type(raw).__name__}: expected a mapping")
        return TransformResult(None, "record is not a mapping")

    bd_id = _extract_bacdive_id(raw)
    if bd_id is None:
        logging.error("BacDive-ID not found in data")
        return TransformResult(None, "missing BacDive-ID")

    logging.debug(f"Transforming data for BacDive-ID: {bd_id}")
    out = {"identifier": bd_id}
    for dest, src, default in FIELD_MAP:
        if default == LIST:
            value = _as_list(_get(raw, *src))
        else:
            value = _get(raw, *src, default=default)
        _put(out, dest, copy.deepcopy(value))
    return TransformResult(out)
