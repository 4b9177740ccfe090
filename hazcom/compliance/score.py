"""
Weighted HazCom compliance score.

Four pillars, each a percentage, combined with fixed weights that sum to 100:

  SDS currency            30   chemicals with sds_status == "current"
  Training currency       30   employees whose derived status is current/due-soon
  Container labels        25   chemicals with labeled == True
  Chemical documentation  15   chemicals with identity, first aid, PPE and storage

An empty collection makes its pillars 100% (nothing tracked, nothing missing).
Action items are absolute deficiency counts; improvements estimate the score
gain of resolving each deficiency category by re-running the weighted formula.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from hazcom.compliance.records import record_name, record_value
from hazcom.compliance.training import (
    STATUS_IN_PROGRESS,
    STATUS_NOT_STARTED,
    STATUS_OVERDUE,
    TrainingStatusInfo,
    derive_training_status,
)
from hazcom.matching.merge import is_populated
from hazcom.utils.config_manager import ConfigManager, get_config

logger = logging.getLogger(__name__)

PILLAR_LABELS = {
    'sds': 'SDS Coverage',
    'labels': 'Container Labels',
    'documentation': 'Chemical Documentation',
    'training': 'Employee Training',
}

# Status label and display color per band, highest band first
STATUS_BANDS = (
    ('inspection_ready', 'Inspection Ready', 'green'),
    ('getting_close', 'Getting Close', 'amber'),
    ('needs_work', 'Needs Work', 'red'),
)
LOWEST_STATUS = ('At Risk', 'red')


@dataclass
class PillarScore:
    """One pillar of the compliance score."""
    label: str
    weight: float
    current: int
    total: int
    percent: float

    @property
    def pct(self) -> int:
        return round_half_up(self.percent)

    @property
    def points(self) -> float:
        """Weighted contribution to the overall score."""
        return self.percent * self.weight / 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'weight': self.weight,
            'current': self.current,
            'total': self.total,
            'pct': self.pct,
        }


@dataclass
class Improvement:
    """A deficiency category and the score gain of resolving it."""
    text: str
    points: int
    category: str
    pillar: str
    count: int
    items: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'text': self.text,
            'points': self.points,
            'category': self.category,
            'pillar': self.pillar,
            'count': self.count,
            'items': list(self.items),
        }


@dataclass
class ComplianceResult:
    """Overall compliance score with breakdown, action items and suggestions."""
    overall: int
    breakdown: Dict[str, PillarScore]
    action_item_count: int
    improvements: List[Improvement]
    status: str
    status_color: str
    # (employee name, status) per roster entry, in input order; names may repeat
    training: List[Tuple[str, TrainingStatusInfo]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'overall': self.overall,
            'breakdown': {name: pillar.to_dict() for name, pillar in self.breakdown.items()},
            'action_item_count': self.action_item_count,
            'improvements': [improvement.to_dict() for improvement in self.improvements],
            'status': self.status,
            'status_color': self.status_color,
        }


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 rounding up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def is_fully_documented(chemical: Any) -> bool:
    """
    Check whether a chemical carries the documentation an inspector expects.

    Requires product name and manufacturer, at least one first-aid route,
    at least one PPE entry and storage requirements. Hazard statements are
    not required because non-hazardous products legitimately have none.
    """
    for name in ('product_name', 'manufacturer', 'storage_requirements'):
        if not _has_text(record_value(chemical, name)):
            return False

    for block_name in ('first_aid', 'ppe_required'):
        block = record_value(chemical, block_name)
        if not isinstance(block, Mapping):
            return False
        if not any(is_populated(value) for value in block.values()):
            return False

    return True


def resolve_status(overall: int, bands: Mapping[str, float]) -> Tuple[str, str]:
    """Map an overall score onto its (status label, color) band."""
    for key, label, color in STATUS_BANDS:
        if overall >= bands[key]:
            return label, color
    return LOWEST_STATUS


def calculate_compliance_score(chemicals: Optional[Iterable[Any]],
                               employees: Optional[Iterable[Any]],
                               config: Optional[ConfigManager] = None,
                               now: Optional[datetime] = None) -> ComplianceResult:
    """
    Compute the weighted compliance score for a site.

    Args:
        chemicals: Chemical records (mappings or ORM objects)
        employees: Employee records (mappings or ORM objects)
        config: ConfigManager supplying weights and bands (shared default if None)
        now: Reference instant for training status (current UTC time if None)

    Returns:
        ComplianceResult
    """
    config = config or get_config()
    weights = config.get_weights()
    bands = config.get_compliance_param('status_bands')
    max_improvements = config.get_compliance_param('max_improvements')
    status_kwargs = {
        'module_count': config.get_training_param('module_count'),
        'refresher_days': config.get_training_param('refresher_days'),
        'due_soon_days': config.get_training_param('due_soon_days'),
    }

    chems = list(chemicals or [])
    emps = list(employees or [])

    # ── Deficiencies per category ──
    missing_sds = []
    expired_sds = []
    unlabeled = []
    undocumented = []
    for chemical in chems:
        sds_status = record_value(chemical, 'sds_status')
        if sds_status == 'expired':
            expired_sds.append(chemical)
        elif sds_status != 'current':
            missing_sds.append(chemical)
        if record_value(chemical, 'labeled') is not True:
            unlabeled.append(chemical)
        if not is_fully_documented(chemical):
            undocumented.append(chemical)

    training: List[Tuple[str, TrainingStatusInfo]] = []
    untrained: Dict[str, List[Any]] = {
        STATUS_NOT_STARTED: [],
        STATUS_IN_PROGRESS: [],
        STATUS_OVERDUE: [],
    }
    for employee in emps:
        info = derive_training_status(employee, now=now, **status_kwargs)
        training.append((record_name(employee), info))
        if not info.is_trained:
            untrained[info.status].append(employee)

    untrained_count = sum(len(group) for group in untrained.values())

    # ── Pillars ──
    breakdown = {
        'sds': _pillar('sds', weights, len(chems) - len(missing_sds) - len(expired_sds), len(chems)),
        'labels': _pillar('labels', weights, len(chems) - len(unlabeled), len(chems)),
        'documentation': _pillar('documentation', weights, len(chems) - len(undocumented), len(chems)),
        'training': _pillar('training', weights, len(emps) - untrained_count, len(emps)),
    }

    raw_overall = sum(pillar.points for pillar in breakdown.values())
    overall = round_half_up(raw_overall)

    # ── Improvements (simulate resolving each category) ──
    categories = [
        ('missing_sds', 'sds', missing_sds, 'product_name',
         'Find SDS for {name}', 'Find SDS for {count} chemicals'),
        ('expired_sds', 'sds', expired_sds, 'product_name',
         'Update expired SDS for {name}', 'Update expired SDS for {count} chemicals'),
        ('not_started', 'training', untrained[STATUS_NOT_STARTED], 'name',
         'Complete training for {name} (new hire)', 'Start training for {count} new hires'),
        ('in_progress', 'training', untrained[STATUS_IN_PROGRESS], 'name',
         'Finish training for {name}', 'Finish training for {count} employees'),
        ('overdue_training', 'training', untrained[STATUS_OVERDUE], 'name',
         'Refresh training for {name} (annual overdue)', 'Refresh annual training for {count} employees'),
        ('unlabeled', 'labels', unlabeled, 'product_name',
         'Print label for {name}', 'Print labels for {count} chemicals'),
        ('undocumented', 'documentation', undocumented, 'product_name',
         'Complete safety data for {name}', 'Complete safety data for {count} chemicals'),
    ]

    improvements: List[Improvement] = []
    for category, pillar_name, records, name_field, single_text, plural_text in categories:
        if not records:
            continue
        pillar = breakdown[pillar_name]
        resolved = _pillar(pillar_name, weights, pillar.current + len(records), pillar.total)
        gain = resolved.points - pillar.points
        names = [record_name(record, name_field) for record in records]
        if len(records) == 1:
            text = single_text.format(name=names[0])
        else:
            text = plural_text.format(count=len(records))
        improvements.append(Improvement(
            text=text,
            points=round_half_up(gain),
            category=category,
            pillar=pillar_name,
            count=len(records),
            items=names,
        ))

    # Stable sort keeps category order for equal gains
    improvements.sort(key=lambda improvement: improvement.points, reverse=True)

    action_item_count = (
        len(missing_sds)
        + len(expired_sds)
        + len(unlabeled)
        + len(undocumented)
        + untrained_count
    )

    status, status_color = resolve_status(overall, bands)

    logger.debug(
        f"Compliance score {overall} ({status}) for {len(chems)} chemicals, "
        f"{len(emps)} employees, {action_item_count} action items"
    )

    return ComplianceResult(
        overall=overall,
        breakdown=breakdown,
        action_item_count=action_item_count,
        improvements=improvements[:max_improvements],
        status=status,
        status_color=status_color,
        training=training,
    )


def _pillar(name: str, weights: Mapping[str, float], current: int, total: int) -> PillarScore:
    percent = (current / total) * 100 if total > 0 else 100.0
    return PillarScore(
        label=PILLAR_LABELS[name],
        weight=weights[name],
        current=current,
        total=total,
        percent=percent,
    )


def _has_text(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ''
