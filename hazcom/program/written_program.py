"""
Written HazCom program generator.

Renders the site's written Hazard Communication Program (29 CFR 1910.1200(e))
as Markdown from the current inventory, roster and compliance score. Training
status in the roster always comes from the derived status, never from the
stored column.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional

from hazcom.compliance.records import record_value, utc_now
from hazcom.compliance.score import ComplianceResult, calculate_compliance_score
from hazcom.compliance.training import TRAINING_MODULES, derive_training_status
from hazcom.utils.config_manager import ConfigManager

logger = logging.getLogger(__name__)

SDS_STATUS_LABELS = {
    'current': 'Current',
    'expired': 'Expired',
    'missing': 'MISSING',
}


@dataclass
class SiteInfo:
    """Company details printed in the program header."""
    name: str
    coordinator: str
    coordinator_title: str = "Owner / Manager"
    phone: str = ""
    email: str = ""
    address: str = ""
    nearest_hospital: str = ""


def _cell(value: Any) -> str:
    """Markdown table cell text."""
    if value is None or value == '':
        return '-'
    return str(value).replace('|', '/').replace('\n', ' ')


def _section(number: int, title: str, body: List[str]) -> List[str]:
    return [f"## Section {number}: {title}", ""] + body + [""]


def _inventory_section(site: SiteInfo, chemicals: List[Any]) -> List[str]:
    current = sum(1 for c in chemicals if record_value(c, 'sds_status') == 'current')
    missing = sum(1 for c in chemicals if record_value(c, 'sds_status') not in ('current', 'expired'))

    summary = (
        f"A complete inventory of hazardous chemicals present at {site.name} is maintained "
        f"electronically. The current inventory includes **{len(chemicals)}** products, "
        f"of which **{current}** have a current SDS on file"
    )
    if missing:
        summary += f" and **{missing}** {'is' if missing == 1 else 'are'} missing SDS documentation"
    lines = [summary + ".", ""]

    if not chemicals:
        lines.append("No chemicals are currently tracked.")
        return lines

    lines += [
        "| # | Product Name | Manufacturer | Storage Location | Signal Word | SDS Status |",
        "|---|---|---|---|---|---|",
    ]
    for i, chemical in enumerate(chemicals, start=1):
        status = record_value(chemical, 'sds_status')
        lines.append(
            f"| {i} | {_cell(record_value(chemical, 'product_name'))} "
            f"| {_cell(record_value(chemical, 'manufacturer'))} "
            f"| {_cell(record_value(chemical, 'location'))} "
            f"| {_cell(record_value(chemical, 'signal_word') or 'None')} "
            f"| {SDS_STATUS_LABELS.get(status, 'MISSING')} |"
        )
    return lines


def _training_section(employees: List[Any], now: Optional[datetime]) -> List[str]:
    lines = [
        "All employees who may be exposed to hazardous chemicals receive training in accordance "
        "with 29 CFR 1910.1200(h). Training is provided:",
        "",
        "- **Initial assignment:** HazCom orientation and SDS/label reading before working with chemicals",
        "- **New chemical hazards:** whenever a new hazard is introduced into the work area",
        "- **Annual refresher:** all modules reviewed every 12 months",
        "",
        "### Training Modules",
        "",
    ]
    lines += [f"{i}. {title}" for i, (_, title) in enumerate(TRAINING_MODULES, start=1)]
    lines += ["", "### Employee Training Roster", ""]

    if not employees:
        lines.append("No employees are currently on the roster.")
        return lines

    lines += [
        "| Employee | Role | Modules | Last Training | Status |",
        "|---|---|---|---|---|",
    ]
    for employee in employees:
        info = derive_training_status(employee, now=now)
        last_training = record_value(employee, 'last_training')
        if hasattr(last_training, 'isoformat'):
            last_training = last_training.isoformat()
        lines.append(
            f"| {_cell(record_value(employee, 'name'))} "
            f"| {_cell(record_value(employee, 'role'))} "
            f"| {info.completed_count}/{info.completed_count + info.remaining_count} "
            f"| {_cell(last_training)} "
            f"| {info.status_label} |"
        )
    return lines


def _compliance_section(score: ComplianceResult) -> List[str]:
    lines = [
        f"Overall compliance score: **{score.overall}%** ({score.status}).",
        f"Open action items: **{score.action_item_count}**.",
        "",
        "| Area | Weight | Compliant | Score |",
        "|---|---|---|---|",
    ]
    for pillar in score.breakdown.values():
        lines.append(
            f"| {pillar.label} | {pillar.weight:g} | {pillar.current}/{pillar.total} | {pillar.pct}% |"
        )
    if score.improvements:
        lines += ["", "Highest-impact next steps:", ""]
        lines += [f"- {imp.text} (+{imp.points} points)" for imp in score.improvements]
    return lines


def generate_written_program(site: SiteInfo,
                             chemicals: Iterable[Any],
                             employees: Iterable[Any],
                             score: Optional[ComplianceResult] = None,
                             config: Optional[ConfigManager] = None,
                             now: Optional[datetime] = None) -> str:
    """
    Render the written HazCom program.

    Args:
        site: Company header details
        chemicals: Chemical records (mappings or ORM objects)
        employees: Employee records (mappings or ORM objects)
        score: Precomputed compliance score (computed if None)
        config: ConfigManager for scoring (shared default if None)
        now: Reference instant for training status and the print date

    Returns:
        Markdown document
    """
    chemicals = list(chemicals or [])
    employees = list(employees or [])
    if score is None:
        score = calculate_compliance_score(chemicals, employees, config=config, now=now)
    printed = (now or utc_now()).strftime('%B %d, %Y')

    lines = [
        f"# Written Hazard Communication Program: {site.name}",
        "",
        f"Printed: {printed}",
        "",
    ]

    lines += _section(1, "Purpose and Scope", [
        f"This Written Hazard Communication Program has been established for **{site.name}** "
        "in compliance with OSHA's Hazard Communication Standard, 29 CFR 1910.1200. It ensures "
        "that all employees are informed about the hazardous chemicals present in their "
        "workplace and the measures they can take to protect themselves.",
        "",
        "This program applies to **all employees** who may be exposed to hazardous chemicals "
        "during normal work operations or in foreseeable emergencies.",
    ])

    contact = [f"- **Name:** {site.coordinator}", f"- **Title:** {site.coordinator_title}"]
    if site.phone:
        contact.append(f"- **Phone:** {site.phone}")
    if site.email:
        contact.append(f"- **Email:** {site.email}")
    if site.address:
        contact.append(f"- **Location:** {site.address}")
    lines += _section(2, "Responsible Person", [
        "The Hazard Communication Program Coordinator implements and maintains this program, "
        "including labeling, the chemical inventory, the SDS library and employee training.",
        "",
    ] + contact)

    lines += _section(3, "Chemical Inventory", _inventory_section(site, chemicals))

    lines += _section(4, "Safety Data Sheet (SDS) Access", [
        "Safety Data Sheets for all hazardous chemicals are accessible to all employees at all "
        "times during their work shift. No supervisor permission is required to access any SDS.",
    ])

    lines += _section(5, "Labeling System", [
        f"All containers of hazardous chemicals at {site.name} are labeled in accordance with "
        "29 CFR 1910.1200(f). Manufacturer labels on shipped containers are never removed or "
        "defaced. Secondary containers receive a GHS label with product identifier, signal word, "
        "hazard statements, pictograms and precautionary statements.",
        "",
        "Portable containers for the immediate use of the employee who performs the transfer are "
        "exempt per 29 CFR 1910.1200(f)(8).",
    ])

    lines += _section(6, "Employee Training", _training_section(employees, now))
    lines += _section(7, "Compliance Summary", _compliance_section(score))

    logger.info(
        f"Generated written program for {site.name}: {len(chemicals)} chemicals, "
        f"{len(employees)} employees, score {score.overall}"
    )
    return "\n".join(lines).rstrip() + "\n"
