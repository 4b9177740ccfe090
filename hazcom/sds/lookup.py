"""
Shared SDS lookup cache.

Before searching the web for a safety data sheet, check whether any earlier
lookup already found one. Match cascade:

  1. Exact product name
  2. Case-insensitive product name
  3. Partial match on the first three words, preferring a manufacturer match

A hit only links an SDS to a chemical when it is confident and has a URL.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, MutableMapping, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hazcom.database.crud import create_sds_record
from hazcom.database.models import SDSRecord

logger = logging.getLogger(__name__)

PARTIAL_MATCH_WORDS = 3
PARTIAL_MATCH_LIMIT = 5
DEFAULT_SOURCE = "Shared SDS database"


@dataclass
class SDSLookupHit:
    """A cached SDS record and the cascade step that found it."""
    record: Dict[str, Any]
    method: str

    @property
    def sds_url(self) -> Optional[str]:
        return self.record.get("sds_url")

    @property
    def confidence(self) -> float:
        return float(self.record.get("confidence") or 0.0)


def _search_term(product_name: str) -> str:
    """First words of the name with LIKE wildcards removed."""
    words = re.sub(r"[%_]", "", product_name).split()
    return " ".join(words[:PARTIAL_MATCH_WORDS])


def lookup_sds(session: Session,
               product_name: str,
               manufacturer: Optional[str] = None) -> Optional[SDSLookupHit]:
    """
    Find a cached SDS for a product.

    Args:
        session: Database session
        product_name: Product name to look up
        manufacturer: Manufacturer used to break ties among partial matches

    Returns:
        SDSLookupHit or None if nothing is cached
    """
    if not product_name or not product_name.strip():
        return None
    product_name = product_name.strip()

    exact = session.execute(
        select(SDSRecord).where(SDSRecord.product_name == product_name).order_by(SDSRecord.id).limit(1)
    ).scalar_one_or_none()
    if exact:
        logger.debug(f"SDS cache exact hit for '{product_name}'")
        return SDSLookupHit(exact.to_dict(), "exact")

    insensitive = session.execute(
        select(SDSRecord)
        .where(func.lower(SDSRecord.product_name) == product_name.lower())
        .order_by(SDSRecord.id)
        .limit(1)
    ).scalar_one_or_none()
    if insensitive:
        logger.debug(f"SDS cache case-insensitive hit for '{product_name}'")
        return SDSLookupHit(insensitive.to_dict(), "case_insensitive")

    term = _search_term(product_name)
    if not term:
        return None

    partial = session.execute(
        select(SDSRecord)
        .where(SDSRecord.product_name.ilike(f"%{term}%"))
        .order_by(SDSRecord.id)
        .limit(PARTIAL_MATCH_LIMIT)
    ).scalars().all()
    if not partial:
        logger.debug(f"SDS cache miss for '{product_name}'")
        return None

    chosen = _prefer_manufacturer(partial, manufacturer)
    logger.debug(f"SDS cache partial hit for '{product_name}': '{chosen.product_name}'")
    return SDSLookupHit(chosen.to_dict(), "partial")


def _prefer_manufacturer(candidates: Iterable[SDSRecord], manufacturer: Optional[str]) -> SDSRecord:
    candidates = list(candidates)
    if manufacturer and manufacturer.strip():
        wanted = manufacturer.strip().lower()
        for record in candidates:
            if record.manufacturer and wanted in record.manufacturer.lower():
                return record
    return candidates[0]


def cache_sds(session: Session,
              product_name: str,
              confidence: float,
              manufacturer: Optional[str] = None,
              sds_url: Optional[str] = None,
              sds_source: Optional[str] = None,
              **fields) -> SDSRecord:
    """
    Store a found SDS so later lookups can reuse it.

    Args:
        session: Database session
        product_name: Product the sheet belongs to
        confidence: Lookup confidence (0.0-1.0)
        manufacturer: Manufacturer name
        sds_url: Location of the sheet
        sds_source: Where the sheet was found
        **fields: Hazard summary columns (signal_word, pictogram_codes, ...)

    Returns:
        Created SDSRecord
    """
    record = create_sds_record(
        session,
        product_name=product_name.strip(),
        confidence=confidence,
        manufacturer=manufacturer,
        sds_url=sds_url,
        sds_source=sds_source,
        **fields,
    )
    logger.info(f"Cached SDS for '{record.product_name}' (confidence={confidence})")
    return record


def apply_sds_lookup(record: MutableMapping[str, Any],
                     hit: Optional[SDSLookupHit],
                     min_confidence: float = 0.5) -> MutableMapping[str, Any]:
    """
    Link a lookup hit into a canonical chemical record.

    A hit is linked only when its confidence exceeds min_confidence and it
    carries a URL; otherwise the record keeps no SDS and is marked missing.
    The manufacturer's SDS portal is passed along either way.

    Args:
        record: Canonical chemical record (modified in place)
        hit: Lookup result or None
        min_confidence: Exclusive lower bound for linking

    Returns:
        The same record
    """
    if hit is None:
        record["sds_lookup_result"] = None
        if not record.get("sds_url"):
            record["sds_status"] = "missing"
        return record

    portal = hit.record.get("manufacturer_sds_portal")
    record["sds_lookup_result"] = {
        "sds_url": hit.sds_url,
        "sds_source": hit.record.get("sds_source") or DEFAULT_SOURCE,
        "manufacturer_sds_portal": portal,
        "confidence": hit.confidence,
        "method": hit.method,
    }
    if portal:
        record["manufacturer_sds_portal"] = portal

    if hit.sds_url and hit.confidence > min_confidence:
        record["sds_url"] = hit.sds_url
        record["sds_uploaded"] = True
        record["sds_status"] = "current"
        logger.info(f"Linked SDS for '{record.get('product_name')}': {hit.sds_url}")
    elif not record.get("sds_url"):
        record["sds_status"] = "missing"

    return record
