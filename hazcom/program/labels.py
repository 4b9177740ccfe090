"""
GHS secondary-container label content.

Assembles what goes on a workplace label (product identifier, signal word,
pictograms, hazard and precautionary statements, supplier) from a chemical
record. Smaller label stocks carry fewer statements; the remainder is
summarized as an overflow count pointing at the SDS. Page layout and
printing are left to the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from hazcom.compliance.records import record_value

logger = logging.getLogger(__name__)

GHS_PICTOGRAM_NAMES = {
    'GHS01': 'Explosive',
    'GHS02': 'Flammable',
    'GHS03': 'Oxidizer',
    'GHS04': 'Gas Under Pressure',
    'GHS05': 'Corrosive',
    'GHS06': 'Acute Toxicity',
    'GHS07': 'Irritant / Harmful',
    'GHS08': 'Health Hazard',
    'GHS09': 'Environmental Hazard',
}

# size -> (max hazard statements, max precautionary statements)
LABEL_SIZES = {
    '4x3': (5, 4),
    '2x1.5': (3, 2),
    '1x1': (0, 0),
}
DEFAULT_LABEL_SIZE = '4x3'

PRECAUTIONARY_ORDER = ('prevention', 'response', 'storage', 'disposal')


@dataclass
class GHSLabel:
    """Content of one printed label."""
    product_name: str
    size: str
    manufacturer: Optional[str] = None
    signal_word: Optional[str] = None
    pictogram_codes: List[str] = field(default_factory=list)
    hazard_statements: List[str] = field(default_factory=list)
    hazard_overflow: int = 0
    precautionary_statements: List[str] = field(default_factory=list)
    precautionary_overflow: int = 0
    sds_url: Optional[str] = None

    @property
    def pictogram_names(self) -> List[str]:
        return [GHS_PICTOGRAM_NAMES.get(code, code) for code in self.pictogram_codes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_name': self.product_name,
            'size': self.size,
            'manufacturer': self.manufacturer,
            'signal_word': self.signal_word,
            'pictogram_codes': list(self.pictogram_codes),
            'pictogram_names': self.pictogram_names,
            'hazard_statements': list(self.hazard_statements),
            'hazard_overflow': self.hazard_overflow,
            'precautionary_statements': list(self.precautionary_statements),
            'precautionary_overflow': self.precautionary_overflow,
            'sds_url': self.sds_url,
        }


def statement_text(statement: Any) -> str:
    """Render a {code, text} statement (or a bare string) as one line."""
    if isinstance(statement, dict):
        code = (statement.get('code') or '').strip()
        text = (statement.get('text') or '').strip()
        return f"{code} {text}".strip()
    return str(statement).strip() if statement is not None else ''


def _statements(values: Optional[Iterable[Any]]) -> List[str]:
    return [text for text in (statement_text(v) for v in values or []) if text]


def _precautionary(block: Any) -> List[str]:
    if isinstance(block, dict):
        lines: List[str] = []
        for group in PRECAUTIONARY_ORDER:
            lines += _statements(block.get(group))
        return lines
    return _statements(block)


def build_label(chemical: Any, size: str = DEFAULT_LABEL_SIZE) -> GHSLabel:
    """
    Build label content for a chemical record.

    Args:
        chemical: Chemical record (mapping or ORM object)
        size: Label stock, one of LABEL_SIZES

    Returns:
        GHSLabel

    Raises:
        ValueError: Unknown label size
    """
    if size not in LABEL_SIZES:
        raise ValueError(f"Unknown label size '{size}'. Expected one of {sorted(LABEL_SIZES)}")

    product_name = record_value(chemical, 'product_name') or ''
    label = GHSLabel(
        product_name=product_name,
        size=size,
        sds_url=record_value(chemical, 'sds_url'),
    )

    # 1x1 stock only fits the identifier and the SDS link
    if size == '1x1':
        return label

    max_hazards, max_precautions = LABEL_SIZES[size]
    hazards = _statements(record_value(chemical, 'hazard_statements'))
    precautions = _precautionary(record_value(chemical, 'precautionary_statements'))

    label.manufacturer = record_value(chemical, 'manufacturer')
    label.signal_word = record_value(chemical, 'signal_word')
    label.pictogram_codes = list(record_value(chemical, 'pictogram_codes') or [])
    label.hazard_statements = hazards[:max_hazards]
    label.hazard_overflow = max(0, len(hazards) - max_hazards)
    label.precautionary_statements = precautions[:max_precautions]
    label.precautionary_overflow = max(0, len(precautions) - max_precautions)
    return label


def labels_needed(chemicals: Iterable[Any]) -> List[Any]:
    """Chemicals whose containers still need a label."""
    return [c for c in chemicals if record_value(c, 'labeled') is not True]


def build_batch_labels(chemicals: Iterable[Any], size: str = DEFAULT_LABEL_SIZE) -> List[GHSLabel]:
    """Build labels for every unlabeled chemical, in inventory order."""
    labels = [build_label(chemical, size) for chemical in labels_needed(chemicals)]
    logger.info(f"Prepared {len(labels)} {size} labels")
    return labels
