"""
Contractor safety packet.

Outside contractors working in the shop must be told which hazardous
chemicals they may meet, how containers are labeled, where SDSs are and
what to do in an emergency (29 CFR 1910.1200(e)(2)). A packet covers the
work areas the contractor will be in and is built from the chemicals stored
at those locations.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from hazcom.compliance.records import record_value, to_naive_datetime, utc_now
from hazcom.matching.merge import is_populated
from hazcom.program.labels import GHS_PICTOGRAM_NAMES, statement_text
from hazcom.program.written_program import SiteInfo, _cell, _section

logger = logging.getLogger(__name__)

POISON_CONTROL = "1-800-222-1222"
EMERGENCY_SERVICES = "911"
DEFAULT_HOSPITAL = "Nearest Emergency Room: 911"
MINIMUM_PPE = "Safety glasses, nitrile gloves at minimum; check the SDS for specific requirements"

PPE_SLOTS = ('eyes', 'hands', 'respiratory', 'body')
FIRST_AID_ROUTES = ('eyes', 'skin', 'inhalation', 'ingestion')

DateLike = Union[date, datetime, str]


@dataclass
class PacketChemical:
    """One chemical present in the contractor's work area."""
    product_name: str
    manufacturer: Optional[str]
    location: str
    signal_word: Optional[str]
    pictogram_codes: List[str]
    hazard_statements: List[str]
    first_aid: Dict[str, str]
    ppe_required: Dict[str, str]
    sds_available: bool

    @property
    def hazard_classes(self) -> List[str]:
        return [GHS_PICTOGRAM_NAMES.get(code, code) for code in self.pictogram_codes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_name': self.product_name,
            'manufacturer': self.manufacturer,
            'location': self.location,
            'signal_word': self.signal_word,
            'pictogram_codes': list(self.pictogram_codes),
            'hazard_classes': self.hazard_classes,
            'hazard_statements': list(self.hazard_statements),
            'first_aid': dict(self.first_aid),
            'ppe_required': dict(self.ppe_required),
            'sds_available': self.sds_available,
        }


@dataclass
class ContractorPacket:
    """Safety information handed to a contractor for one job."""
    company: str
    contact: str
    locations: List[str]
    start_date: date
    end_date: date
    generated_date: date
    chemicals: List[PacketChemical]
    ppe_by_location: Dict[str, List[str]]
    emergency_contacts: List[Tuple[str, str]]
    email: str = ""
    acknowledged: bool = False
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None

    @property
    def pictogram_codes(self) -> List[str]:
        """Distinct pictograms across the work area, in first-seen order."""
        seen: List[str] = []
        for chemical in self.chemicals:
            for code in chemical.pictogram_codes:
                if code not in seen:
                    seen.append(code)
        return seen

    def acknowledge(self, signed_name: str, now: Optional[datetime] = None) -> None:
        """Record the contractor's typed signature."""
        if not signed_name or not signed_name.strip():
            raise ValueError("Acknowledgment requires the signer's name")
        self.acknowledged = True
        self.acknowledged_by = signed_name.strip()
        self.acknowledged_at = to_naive_datetime(now) if now is not None else utc_now()
        logger.info(f"Contractor packet for {self.company} acknowledged by {self.acknowledged_by}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'company': self.company,
            'contact': self.contact,
            'email': self.email,
            'locations': list(self.locations),
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'generated_date': self.generated_date.isoformat(),
            'chemicals': [chemical.to_dict() for chemical in self.chemicals],
            'pictogram_codes': self.pictogram_codes,
            'ppe_by_location': {loc: list(items) for loc, items in self.ppe_by_location.items()},
            'emergency_contacts': [list(contact) for contact in self.emergency_contacts],
            'acknowledged': self.acknowledged,
            'acknowledged_by': self.acknowledged_by,
            'acknowledged_at': self.acknowledged_at.isoformat() if self.acknowledged_at else None,
        }


def _as_date(value: DateLike, name: str) -> date:
    parsed = to_naive_datetime(value)
    if parsed is None:
        raise ValueError(f"Invalid {name}: {value!r}")
    return parsed.date()


def _populated_block(block: Any, keys: Sequence[str]) -> Dict[str, str]:
    if not isinstance(block, dict):
        return {}
    return {key: block[key] for key in keys if is_populated(block.get(key))}


def _packet_chemical(chemical: Any) -> PacketChemical:
    return PacketChemical(
        product_name=record_value(chemical, 'product_name') or '',
        manufacturer=record_value(chemical, 'manufacturer'),
        location=record_value(chemical, 'location'),
        signal_word=record_value(chemical, 'signal_word'),
        pictogram_codes=list(record_value(chemical, 'pictogram_codes') or []),
        hazard_statements=[
            text for text in (statement_text(s) for s in record_value(chemical, 'hazard_statements') or [])
            if text
        ],
        first_aid=_populated_block(record_value(chemical, 'first_aid'), FIRST_AID_ROUTES),
        ppe_required=_populated_block(record_value(chemical, 'ppe_required'), PPE_SLOTS),
        sds_available=bool(record_value(chemical, 'sds_url')) or bool(record_value(chemical, 'sds_uploaded')),
    )


def _ppe_for_location(chemicals: List[PacketChemical], location: str) -> List[str]:
    """Union of the PPE every chemical at a location calls for, slot by slot."""
    items: List[str] = []
    for slot in PPE_SLOTS:
        for chemical in chemicals:
            if chemical.location != location:
                continue
            value = chemical.ppe_required.get(slot)
            if value and value not in items:
                items.append(value)
    return items or [MINIMUM_PPE]


def build_contractor_packet(site: SiteInfo,
                            company: str,
                            contact: str,
                            locations: Iterable[str],
                            start_date: DateLike,
                            end_date: DateLike,
                            chemicals: Iterable[Any],
                            email: str = "",
                            now: Optional[datetime] = None) -> ContractorPacket:
    """
    Assemble the safety packet for a contractor job.

    Args:
        site: Shop details (responsible person, phone, nearest hospital)
        company: Contractor company name
        contact: Contractor contact person
        locations: Work areas the contractor will enter
        start_date: First day on site
        end_date: Last day on site
        chemicals: Site inventory (mappings or ORM objects)
        email: Contractor email
        now: Generation instant (current UTC time if None)

    Returns:
        ContractorPacket

    Raises:
        ValueError: Missing company, contact or work areas, or dates out of order
    """
    company = (company or '').strip()
    contact = (contact or '').strip()
    selected: List[str] = []
    for location in locations or []:
        if location and location not in selected:
            selected.append(location)

    if not company or not contact:
        raise ValueError("Contractor company and contact are required")
    if not selected:
        raise ValueError("At least one work area must be selected")

    start = _as_date(start_date, 'start_date')
    end = _as_date(end_date, 'end_date')
    if end < start:
        raise ValueError(f"end_date {end} is before start_date {start}")

    in_area = [
        _packet_chemical(chemical) for chemical in chemicals or []
        if record_value(chemical, 'location') in selected
    ]

    responsible = site.coordinator + (f", {site.phone}" if site.phone else "")
    emergency_contacts = [
        ("Responsible Person", responsible),
        ("Fire / Police / EMS", EMERGENCY_SERVICES),
        ("Poison Control", POISON_CONTROL),
        ("Nearest Hospital", site.nearest_hospital or DEFAULT_HOSPITAL),
    ]

    generated = to_naive_datetime(now) if now is not None else utc_now()
    packet = ContractorPacket(
        company=company,
        contact=contact,
        email=(email or '').strip(),
        locations=selected,
        start_date=start,
        end_date=end,
        generated_date=generated.date(),
        chemicals=in_area,
        ppe_by_location={location: _ppe_for_location(in_area, location) for location in selected},
        emergency_contacts=emergency_contacts,
    )

    logger.info(
        f"Contractor packet for {company}: {len(in_area)} chemicals across {len(selected)} work areas"
    )
    missing_sds = [c.product_name for c in in_area if not c.sds_available]
    if missing_sds:
        logger.warning(f"Contractor packet for {company} lists chemicals without an SDS: {missing_sds}")

    return packet


def render_contractor_packet(packet: ContractorPacket, site: SiteInfo) -> str:
    """Render a packet as Markdown."""
    lines = [
        f"# Contractor Safety Information: {site.name}",
        "",
    ]
    if site.address:
        lines += [site.address, ""]
    lines += [
        f"- **Contractor:** {packet.company}",
        f"- **Contact:** {packet.contact}" + (f" ({packet.email})" if packet.email else ""),
        f"- **Work dates:** {packet.start_date.isoformat()} to {packet.end_date.isoformat()}",
        f"- **Work areas:** {', '.join(packet.locations)}",
        f"- **Generated:** {packet.generated_date.isoformat()}",
        "",
    ]

    pictograms = [f"{code} ({GHS_PICTOGRAM_NAMES.get(code, code)})" for code in packet.pictogram_codes]
    lines += _section(1, "Labeling System Used On-Site", [
        f"{site.name} uses the Globally Harmonized System (GHS) for all chemical labeling. "
        "Secondary containers carry the product identifier, signal word, GHS pictograms, "
        "hazard and precautionary statements, and the manufacturer's contact information.",
        "",
        "Pictograms present in your work area: " + (', '.join(pictograms) if pictograms else "none"),
    ])

    if packet.chemicals:
        chemical_lines = [
            "| Product | Manufacturer | Location | Signal Word | Hazards | SDS on File |",
            "|---|---|---|---|---|---|",
        ]
        for chemical in packet.chemicals:
            chemical_lines.append(
                f"| {_cell(chemical.product_name)} | {_cell(chemical.manufacturer)} "
                f"| {_cell(chemical.location)} | {_cell(chemical.signal_word or 'None')} "
                f"| {_cell(', '.join(chemical.hazard_classes))} "
                f"| {'Yes' if chemical.sds_available else 'NO'} |"
            )
    else:
        chemical_lines = ["No hazardous chemicals are stored in the selected work areas."]
    lines += _section(2, "Chemicals Present in Work Area", chemical_lines)

    lines += _section(3, "SDS Access", [
        "Safety Data Sheets for all chemicals on site are available on request from the "
        f"responsible person ({site.coordinator}) and through the shop's SDS library.",
    ])

    precautions = ["Required PPE by work area:", ""]
    for location, items in packet.ppe_by_location.items():
        precautions.append(f"- **{location}:** {'; '.join(items)}")
    first_aid = [c for c in packet.chemicals if c.first_aid]
    if first_aid:
        precautions += ["", "First aid:", ""]
        for chemical in first_aid:
            routes = '; '.join(f"{route}: {text}" for route, text in chemical.first_aid.items())
            precautions.append(f"- **{chemical.product_name}:** {routes}")
    lines += _section(4, "Precautionary Measures", precautions)

    lines += _section(5, "Emergency Contacts", [
        f"- **{label}:** {value}" for label, value in packet.emergency_contacts
    ])

    lines += [
        "## Acknowledgment of Receipt",
        "",
        "I acknowledge that I have received and reviewed the chemical safety information for "
        f"work at {site.name}. I understand the hazards present in the work area, how to access "
        "Safety Data Sheets, and the emergency procedures.",
        "",
    ]
    if packet.acknowledged:
        lines.append(
            f"Signed: {packet.acknowledged_by} on {packet.acknowledged_at.strftime('%B %d, %Y')}"
        )
    else:
        lines.append(f"Signature ({packet.contact}): ____________________")

    return "\n".join(lines) + "\n"
