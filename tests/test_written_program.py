"""
Test suite for the written HazCom program generator.
"""

import pytest

from hazcom.compliance import calculate_compliance_score
from hazcom.program import SiteInfo, generate_written_program

from conftest import FIXED_NOW, make_chemical, make_employee


@pytest.fixture
def site():
    return SiteInfo(
        name="Rodriguez Auto Body",
        coordinator="Mike Rodriguez",
        phone="555-0142",
        address="12 Industrial Way",
    )


@pytest.fixture
def site_records():
    chemicals = [
        make_chemical("Acetone Technical Grade", location="Paint Booth", signal_word="DANGER"),
        make_chemical("Brake Cleaner", sds_status="missing", sds_url=None, signal_word=None, labeled=False),
    ]
    employees = [
        make_employee("Maria Lopez", days_since_training=100),
        make_employee("Sam New", modules=0, days_since_training=None, status="current"),
        make_employee("Jo Halfway", modules=4),
    ]
    return chemicals, employees


class TestWrittenProgram:
    """Test the rendered Markdown document."""

    def test_sections_present(self, site, site_records, config):
        document = generate_written_program(site, *site_records, config=config, now=FIXED_NOW)

        assert document.startswith("# Written Hazard Communication Program: Rodriguez Auto Body\n")
        assert "Printed: March 15, 2026" in document
        for number, title in enumerate([
            "Purpose and Scope",
            "Responsible Person",
            "Chemical Inventory",
            "Safety Data Sheet (SDS) Access",
            "Labeling System",
            "Employee Training",
            "Compliance Summary",
        ], start=1):
            assert f"## Section {number}: {title}" in document
        assert document.endswith("\n")

    def test_coordinator_contact(self, site, site_records, config):
        document = generate_written_program(site, *site_records, config=config, now=FIXED_NOW)

        assert "- **Name:** Mike Rodriguez" in document
        assert "- **Title:** Owner / Manager" in document
        assert "- **Phone:** 555-0142" in document
        assert "- **Location:** 12 Industrial Way" in document
        assert "**Email:**" not in document

    def test_inventory_table(self, site, site_records, config):
        document = generate_written_program(site, *site_records, config=config, now=FIXED_NOW)

        assert "includes **2** products, of which **1** have a current SDS on file" in document
        assert "**1** is missing SDS documentation" in document
        assert (
            "| 1 | Acetone Technical Grade | Acme Chemical Co. | Paint Booth | DANGER | Current |"
            in document
        )
        assert "| 2 | Brake Cleaner | Acme Chemical Co. | Main Shop | None | MISSING |" in document

    def test_roster_uses_derived_status(self, site, site_records, config):
        document = generate_written_program(site, *site_records, config=config, now=FIXED_NOW)

        assert "| Maria Lopez | Technician | 7/7 |" in document
        assert "| Up to date |" in document
        assert "| Sam New | Technician | 0/7 | - | Not started: new hire needs orientation |" in document
        assert "In progress: 4 of 7 modules complete" in document

    def test_training_modules_listed(self, site, config):
        document = generate_written_program(site, [], [], config=config, now=FIXED_NOW)

        assert "1. Your Right to Know" in document
        assert "7. Your Shop's HazCom Program" in document

    def test_compliance_summary(self, site, site_records, config):
        chemicals, employees = site_records
        score = calculate_compliance_score(chemicals, employees, config=config, now=FIXED_NOW)
        document = generate_written_program(site, chemicals, employees, score=score, now=FIXED_NOW)

        assert f"Overall compliance score: **{score.overall}%** ({score.status})." in document
        assert f"Open action items: **{score.action_item_count}**." in document
        assert "| SDS Coverage | 30 | 1/2 | 50% |" in document
        assert f"- {score.improvements[0].text} (+{score.improvements[0].points} points)" in document

    def test_empty_site(self, site, config):
        document = generate_written_program(site, [], [], config=config, now=FIXED_NOW)

        assert "No chemicals are currently tracked." in document
        assert "No employees are currently on the roster." in document
        assert "Overall compliance score: **100%** (Inspection Ready)." in document

    def test_table_cells_escaped(self, site, config):
        chemicals = [make_chemical("Degreaser | Heavy", location="Bay 2\nShelf A")]
        document = generate_written_program(site, chemicals, [], config=config, now=FIXED_NOW)
        assert "| 1 | Degreaser / Heavy | Acme Chemical Co. | Bay 2 Shelf A |" in document
