"""
SQLAlchemy ORM models for the HazCom compliance database.

This module defines the database schema including:
- Chemicals (site inventory with GHS hazard and safety content)
- Employees (training roster)
- SDS records (shared cache of previously located safety data sheets)

Nested label content (first aid, PPE, statements, NFPA) is stored in JSON
columns; each block is at most one level deep.
"""

from datetime import datetime, date
from typing import Any, Dict, List, Optional
import enum
from sqlalchemy import (
    String,
    Integer,
    Float,
    DateTime,
    Date,
    Text,
    JSON,
    Boolean,
    Index,
    CheckConstraint,
    Enum,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from hazcom.compliance.records import utc_now


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class SDSStatus(enum.Enum):
    """Enum for safety data sheet currency."""
    CURRENT = "current"
    MISSING = "missing"
    EXPIRED = "expired"


class AddedMethod(enum.Enum):
    """Enum for how a chemical entered the inventory."""
    SCAN = "scan"
    MANUAL = "manual"
    IMPORT = "import"


class LegacyTrainingStatus(enum.Enum):
    """Enum for the stored (legacy) employee status column."""
    CURRENT = "current"
    OVERDUE = "overdue"
    PENDING = "pending"


def _empty_first_aid() -> Dict[str, Optional[str]]:
    return {"eyes": None, "skin": None, "inhalation": None, "ingestion": None}


def _empty_ppe() -> Dict[str, Optional[str]]:
    return {"eyes": None, "hands": None, "respiratory": None, "body": None}


def _empty_physical_properties() -> Dict[str, Optional[str]]:
    return {
        "appearance": None,
        "odor": None,
        "flash_point": None,
        "ph": None,
        "boiling_point": None,
        "vapor_pressure": None,
    }


def _empty_precautionary() -> Dict[str, list]:
    return {"prevention": [], "response": [], "storage": [], "disposal": []}


class Chemical(Base):
    """
    One hazardous product tracked at a site.

    Identity for matching purposes is the product name, not the id.
    """
    __tablename__ = "chemicals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity
    product_name: Mapped[str] = mapped_column(String(500), nullable=False)
    manufacturer: Mapped[str] = mapped_column(String(300), nullable=False, default="")

    # Hazard classification
    signal_word: Mapped[Optional[str]] = mapped_column(
        String(10),
        nullable=True,
        comment="DANGER, WARNING or NULL"
    )
    pictogram_codes: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    hazard_statements: Mapped[List[Dict[str, str]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered array of {code, text}"
    )
    precautionary_statements: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=_empty_precautionary,
        comment="{prevention, response, storage, disposal} arrays of {code, text}"
    )

    # Safety content
    first_aid: Mapped[Dict[str, Optional[str]]] = mapped_column(JSON, nullable=False, default=_empty_first_aid)
    ppe_required: Mapped[Dict[str, Optional[str]]] = mapped_column(JSON, nullable=False, default=_empty_ppe)
    physical_properties: Mapped[Dict[str, Optional[str]]] = mapped_column(
        JSON, nullable=False, default=_empty_physical_properties
    )
    storage_requirements: Mapped[str] = mapped_column(Text, nullable=False, default="")
    incompatible_materials: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    cas_numbers: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    un_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    nfpa_diamond: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        comment="{health, fire, reactivity, special}"
    )

    # Inventory
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="", index=True)
    container_type: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    container_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    labeled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    label_printed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # SDS
    sds_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sds_uploaded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sds_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    sds_status: Mapped[SDSStatus] = mapped_column(
        Enum(SDSStatus), nullable=False, default=SDSStatus.MISSING, index=True
    )

    # Provenance
    added_date: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    added_by: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    added_method: Mapped[AddedMethod] = mapped_column(
        Enum(AddedMethod), nullable=False, default=AddedMethod.MANUAL
    )
    scan_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )

    __table_args__ = (
        Index("ix_chemicals_product_name", "product_name"),
        CheckConstraint("container_count >= 0", name="ck_chemical_container_count"),
        CheckConstraint(
            "scan_confidence IS NULL OR (scan_confidence >= 0.0 AND scan_confidence <= 1.0)",
            name="ck_chemical_scan_confidence_range"
        ),
        CheckConstraint("length(product_name) > 0", name="ck_chemical_name_nonempty"),
    )

    @property
    def has_sds(self) -> bool:
        return bool(self.sds_url) or bool(self.sds_uploaded)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict view consumed by the compliance engine and reports."""
        return {
            "id": self.id,
            "product_name": self.product_name,
            "manufacturer": self.manufacturer,
            "signal_word": self.signal_word,
            "pictogram_codes": list(self.pictogram_codes or []),
            "hazard_statements": list(self.hazard_statements or []),
            "precautionary_statements": dict(self.precautionary_statements or {}),
            "first_aid": dict(self.first_aid or {}),
            "ppe_required": dict(self.ppe_required or {}),
            "physical_properties": dict(self.physical_properties or {}),
            "storage_requirements": self.storage_requirements,
            "incompatible_materials": list(self.incompatible_materials or []),
            "cas_numbers": list(self.cas_numbers or []),
            "un_number": self.un_number,
            "nfpa_diamond": dict(self.nfpa_diamond) if self.nfpa_diamond else None,
            "location": self.location,
            "container_type": self.container_type,
            "container_count": self.container_count,
            "labeled": self.labeled,
            "label_printed_date": self.label_printed_date.isoformat() if self.label_printed_date else None,
            "sds_url": self.sds_url,
            "sds_uploaded": self.sds_uploaded,
            "sds_date": self.sds_date.isoformat() if self.sds_date else None,
            "sds_status": self.sds_status.value if self.sds_status else None,
            "added_date": self.added_date.isoformat() if self.added_date else None,
            "added_by": self.added_by,
            "added_method": self.added_method.value if self.added_method else None,
            "scan_confidence": self.scan_confidence,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    def __repr__(self) -> str:
        return f"<Chemical(id={self.id}, name='{self.product_name}', sds='{self.sds_status}')>"


class Employee(Base):
    """
    Worker subject to HazCom training.

    `status` is a legacy cached column; read paths use the derived status.
    """
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    # Training state
    initial_training: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_training: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[LegacyTrainingStatus] = mapped_column(
        Enum(LegacyTrainingStatus), nullable=False, default=LegacyTrainingStatus.PENDING
    )
    completed_modules: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    pending_modules: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint("length(name) > 0", name="ck_employee_name_nonempty"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "initial_training": self.initial_training.isoformat() if self.initial_training else None,
            "last_training": self.last_training.isoformat() if self.last_training else None,
            "status": self.status.value if self.status else None,
            "completed_modules": list(self.completed_modules or []),
            "pending_modules": list(self.pending_modules or []),
        }

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, name='{self.name}')>"


class SDSRecord(Base):
    """
    Shared cache of safety data sheets found by earlier lookups.

    Populated whenever an SDS search succeeds so the next site asking for
    the same product gets an immediate answer.
    """
    __tablename__ = "sds_database"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    product_name: Mapped[str] = mapped_column(String(500), nullable=False)
    manufacturer: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    sds_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sds_source: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        comment="Where the sheet was found (manufacturer site, distributor, upload)"
    )
    manufacturer_sds_portal: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Hazard summary copied from the sheet
    signal_word: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    pictogram_codes: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    hazard_statements: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    cas_numbers: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    un_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    ghs_categories: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    industry_tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    lookup_date: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint("confidence >= 0.0 AND confidence <= 1.0", name="ck_sds_confidence_range"),
        Index("ix_sds_database_product_name", "product_name"),
        Index("ix_sds_database_manufacturer", "manufacturer"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product_name": self.product_name,
            "manufacturer": self.manufacturer,
            "sds_url": self.sds_url,
            "sds_source": self.sds_source,
            "manufacturer_sds_portal": self.manufacturer_sds_portal,
            "signal_word": self.signal_word,
            "pictogram_codes": list(self.pictogram_codes or []),
            "hazard_statements": list(self.hazard_statements or []),
            "cas_numbers": list(self.cas_numbers or []),
            "un_number": self.un_number,
            "ghs_categories": list(self.ghs_categories or []),
            "industry_tags": list(self.industry_tags or []),
            "confidence": self.confidence,
        }

    def __repr__(self) -> str:
        return f"<SDSRecord(id={self.id}, name='{self.product_name}', confidence={self.confidence})>"
