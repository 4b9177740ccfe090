"""
Field-level merge of extracted label data over a catalog entry.

The catalog entry is the trusted baseline (curated hazard text, PPE and
first-aid guidance). The extraction only knows what is visible on this label,
so it overrides the baseline field by field and only where it actually
populated a value. Nested blocks (first_aid, ppe_required,
physical_properties, precautionary_statements, nfpa_diamond) merge exactly
one level deep; the schema has no deeper nesting.
"""

import copy
from typing import Any, Dict, Mapping, Optional


def is_populated(value: Any) -> bool:
    """
    Check whether an extracted value should override the baseline.

    None, empty lists and whitespace-only strings count as "not extracted".
    False, 0 and empty mappings are real values.
    """
    if value is None:
        return False
    if isinstance(value, list) and len(value) == 0:
        return False
    if isinstance(value, str) and value.strip() == "":
        return False
    return True


def merge_canonical(reference_entry: Optional[Mapping[str, Any]],
                    extracted: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Merge an extraction over a reference catalog entry.

    Args:
        reference_entry: Matched catalog entry, or None when nothing matched
        extracted: Raw extraction fields (any subset, any may be empty)

    Returns:
        New canonical record; when reference_entry is None this is a copy of
        the extraction with nothing filled in
    """
    extracted = extracted or {}

    if reference_entry is None:
        return copy.deepcopy(dict(extracted))

    merged: Dict[str, Any] = copy.deepcopy(dict(reference_entry))

    for key, value in extracted.items():
        if not is_populated(value):
            continue

        baseline = merged.get(key)
        if isinstance(value, Mapping) and isinstance(baseline, Mapping):
            block = dict(baseline)
            for sub_key, sub_value in value.items():
                if is_populated(sub_value):
                    block[sub_key] = copy.deepcopy(sub_value)
            merged[key] = block
        else:
            merged[key] = copy.deepcopy(value)

    return merged
