"""SDS lookup cache: find, store and link previously located safety data sheets."""

from hazcom.sds.lookup import (
    SDSLookupHit,
    lookup_sds,
    cache_sds,
    apply_sds_lookup,
)

__all__ = [
    "SDSLookupHit",
    "lookup_sds",
    "cache_sds",
    "apply_sds_lookup",
]
