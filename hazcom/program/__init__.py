"""Written HazCom program, GHS label content and contractor safety packets."""

from hazcom.program.written_program import SiteInfo, generate_written_program
from hazcom.program.labels import (
    GHS_PICTOGRAM_NAMES,
    GHSLabel,
    build_batch_labels,
    build_label,
    labels_needed,
)
from hazcom.program.contractor_packet import (
    ContractorPacket,
    PacketChemical,
    build_contractor_packet,
    render_contractor_packet,
)

__all__ = [
    "SiteInfo",
    "generate_written_program",
    "GHS_PICTOGRAM_NAMES",
    "GHSLabel",
    "build_batch_labels",
    "build_label",
    "labels_needed",
    "ContractorPacket",
    "PacketChemical",
    "build_contractor_packet",
    "render_contractor_packet",
]
