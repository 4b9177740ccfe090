"""
Test suite for compliance derivation.

Covers the training lifecycle (module canonicalization, refresher clock,
legacy status drift) and the weighted compliance score with its action
items, improvements and status bands.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from hazcom.compliance import (
    LEGACY_STATUS,
    MODULE_IDS,
    calculate_compliance_score,
    canonicalize_modules,
    check_status_drift,
    derive_training_status,
    is_fully_documented,
    pending_modules,
    round_half_up,
)
from hazcom.compliance.records import utc_now
from hazcom.compliance.score import resolve_status
from hazcom.database import crud
from hazcom.utils.config_manager import ConfigManager

from conftest import FIXED_NOW, make_chemical, make_employee


BANDS = ConfigManager.DEFAULT_CONFIG['compliance']['status_bands']


# ============================================================================
# MODULE CANONICALIZATION
# ============================================================================

class TestModuleCanonicalization:
    """Test mapping of legacy module identifiers onto curriculum slots."""

    def test_canonical_ids_pass_through(self):
        assert canonicalize_modules(MODULE_IDS) == set(MODULE_IDS)

    def test_synonym_and_canonical_count_once(self):
        assert canonicalize_modules(["m1", "hazcom-overview", "right-to-know"]) == {"m1"}

    def test_unknown_and_non_string_ignored(self):
        assert canonicalize_modules(["m9", "forklift", None, 3, "PPE"]) == {"m5"}

    def test_none(self):
        assert canonicalize_modules(None) == set()

    def test_pending_modules_in_curriculum_order(self):
        employee = {'completed_modules': ["m1", "ppe", "m7"]}
        assert pending_modules(employee) == ["m2", "m3", "m4", "m6"]


# ============================================================================
# TRAINING STATUS
# ============================================================================

class TestTrainingStatus:
    """Test derivation of the training lifecycle status."""

    def test_not_started(self):
        info = derive_training_status(make_employee(modules=0, days_since_training=None), now=FIXED_NOW)

        assert info.status == "not-started"
        assert info.completed_count == 0
        assert info.remaining_count == 7
        assert info.days_until_due is None
        assert info.status_label == "Not started: new hire needs orientation"
        assert not info.is_trained

    def test_in_progress(self):
        info = derive_training_status(make_employee(modules=3), now=FIXED_NOW)

        assert info.status == "in-progress"
        assert info.completed_count == 3
        assert info.remaining_count == 4
        assert info.days_until_due is None
        assert info.status_label == "In progress: 3 of 7 modules complete"

    def test_synonyms_do_not_double_count(self):
        employee = make_employee(
            completed_modules=["m1", "hazcom-overview", "m2", "m3", "m4", "m5", "m6"],
        )
        info = derive_training_status(employee, now=FIXED_NOW)

        assert info.status == "in-progress"
        assert info.completed_count == 6
        assert info.remaining_count == 1

    def test_legacy_identifiers_complete_curriculum(self):
        employee = make_employee(completed_modules=[
            "hazcom-overview", "ghs-system", "label-reading", "sds-reading",
            "ppe", "emergency-response", "site-program",
        ])
        assert derive_training_status(employee, now=FIXED_NOW).status == "current"

    def test_current(self):
        info = derive_training_status(make_employee(days_since_training=300), now=FIXED_NOW)

        assert info.status == "current"
        assert info.days_until_due == 65
        assert info.status_label == "Up to date"
        assert info.is_trained

    def test_due_soon_at_thirty_days(self):
        info = derive_training_status(make_employee(days_since_training=335), now=FIXED_NOW)

        assert info.status == "due-soon"
        assert info.days_until_due == 30
        assert info.status_label == "Due soon: refresher due in 30 days"
        assert info.is_trained

    def test_current_at_thirty_one_days(self):
        info = derive_training_status(make_employee(days_since_training=334), now=FIXED_NOW)
        assert info.status == "current"
        assert info.days_until_due == 31

    def test_overdue_on_anniversary(self):
        info = derive_training_status(make_employee(days_since_training=365), now=FIXED_NOW)

        assert info.status == "overdue"
        assert info.days_until_due == 0
        assert info.status_label == "Overdue: annual refresher lapsed today"
        assert not info.is_trained

    def test_overdue_past_anniversary(self):
        info = derive_training_status(make_employee(days_since_training=400), now=FIXED_NOW)

        assert info.status == "overdue"
        assert info.days_until_due == -35
        assert info.status_label == "Overdue: annual refresher 35 days past due"

    def test_partial_day_rounds_up(self):
        # Anniversary falls at midnight, 12 hours before FIXED_NOW
        employee = make_employee(last_training="2025-03-15")
        info = derive_training_status(employee, now=FIXED_NOW)

        assert info.status == "overdue"
        assert info.days_until_due == 0
        assert "0 days" not in info.status_label

        employee = make_employee(last_training=date(2025, 3, 20))
        info = derive_training_status(employee, now=FIXED_NOW)
        assert info.status == "due-soon"
        assert info.days_until_due == 5

    def test_all_modules_without_date_is_overdue(self):
        info = derive_training_status(make_employee(days_since_training=None), now=FIXED_NOW)

        assert info.status == "overdue"
        assert info.days_until_due is None
        assert info.status_label == "Overdue: annual refresher date unknown"

    def test_unparseable_date_treated_as_missing(self):
        info = derive_training_status(make_employee(last_training="last spring"), now=FIXED_NOW)
        assert info.status == "overdue"
        assert info.days_until_due is None

    def test_timezone_aware_inputs(self):
        employee = make_employee(last_training="2025-06-01T08:00:00Z")
        info = derive_training_status(employee, now=FIXED_NOW.replace(tzinfo=timezone.utc))
        assert info.status == "current"

    def test_custom_windows(self):
        employee = make_employee(days_since_training=100)
        info = derive_training_status(employee, now=FIXED_NOW, refresher_days=120, due_soon_days=30)
        assert info.status == "due-soon"
        assert info.days_until_due == 20

    def test_attribute_style_record(self):
        employee = SimpleNamespace(
            name="Dana Lee",
            completed_modules=list(MODULE_IDS),
            last_training=(FIXED_NOW - timedelta(days=10)).date(),
        )
        assert derive_training_status(employee, now=FIXED_NOW).status == "current"

    def test_to_dict(self):
        data = derive_training_status(make_employee(modules=2), now=FIXED_NOW).to_dict()
        assert data == {
            'status': 'in-progress',
            'completed_count': 2,
            'remaining_count': 5,
            'days_until_due': None,
            'status_label': 'In progress: 2 of 7 modules complete',
        }


class TestStatusDrift:
    """Test comparison of the stored legacy status with the derived one."""

    @pytest.mark.parametrize("derived, stored", [
        ("current", "current"),
        ("due-soon", "current"),
        ("overdue", "overdue"),
        ("in-progress", "pending"),
        ("not-started", "pending"),
    ])
    def test_legacy_projection(self, derived, stored):
        assert LEGACY_STATUS[derived] == stored

    def test_stale_current_status_diverges(self, caplog):
        employee = make_employee(name="New Hire", modules=0, days_since_training=None, status="current")

        with caplog.at_level(logging.WARNING, logger="hazcom.compliance.training"):
            drift = check_status_drift(employee, now=FIXED_NOW)

        assert drift.diverged
        assert drift.derived_status == "not-started"
        assert drift.expected_stored_status == "pending"
        assert "New Hire" in caplog.text

    def test_due_soon_stored_as_current_is_consistent(self):
        employee = make_employee(days_since_training=340, status="current")
        drift = check_status_drift(employee, now=FIXED_NOW)
        assert drift.derived_status == "due-soon"
        assert not drift.diverged

    def test_overdue_employee_stored_current(self):
        drift = check_status_drift(make_employee(days_since_training=500, status="current"), now=FIXED_NOW)
        assert drift.diverged
        assert drift.expected_stored_status == "overdue"


# ============================================================================
# DOCUMENTATION
# ============================================================================

class TestDocumentation:
    """Test the fully-documented predicate."""

    def test_complete_record(self):
        assert is_fully_documented(make_chemical())

    @pytest.mark.parametrize("field_name, value", [
        ('manufacturer', ''),
        ('manufacturer', None),
        ('storage_requirements', '   '),
        ('first_aid', {'eyes': None, 'skin': '', 'inhalation': None, 'ingestion': None}),
        ('ppe_required', {}),
        ('ppe_required', None),
        ('first_aid', 'Flush with water'),
    ])
    def test_missing_content(self, field_name, value):
        assert not is_fully_documented(make_chemical(**{field_name: value}))

    def test_hazard_statements_not_required(self):
        assert is_fully_documented(make_chemical(hazard_statements=[], signal_word=None))

    def test_attribute_style_record(self):
        chemical = SimpleNamespace(**make_chemical())
        assert is_fully_documented(chemical)


# ============================================================================
# COMPLIANCE SCORE
# ============================================================================

class TestRounding:

    @pytest.mark.parametrize("value, expected", [
        (0.5, 1),
        (2.5, 3),
        (56.5, 57),
        (57.49, 57),
        (99.5, 100),
        (100.0, 100),
    ])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestStatusBands:

    @pytest.mark.parametrize("overall, label, color", [
        (100, "Inspection Ready", "green"),
        (90, "Inspection Ready", "green"),
        (89, "Getting Close", "amber"),
        (70, "Getting Close", "amber"),
        (69, "Needs Work", "red"),
        (50, "Needs Work", "red"),
        (49, "At Risk", "red"),
        (0, "At Risk", "red"),
    ])
    def test_bands(self, overall, label, color):
        assert resolve_status(overall, BANDS) == (label, color)


class TestComplianceScore:
    """Test the weighted four-pillar compliance score."""

    def test_empty_site_is_fully_compliant(self, config):
        result = calculate_compliance_score([], [], config=config, now=FIXED_NOW)

        assert result.overall == 100
        assert result.action_item_count == 0
        assert result.improvements == []
        assert result.status == "Inspection Ready"
        assert result.status_color == "green"
        for pillar in result.breakdown.values():
            assert pillar.pct == 100
            assert pillar.total == 0

    def test_none_collections(self, config):
        assert calculate_compliance_score(None, None, config=config, now=FIXED_NOW).overall == 100

    def test_fully_compliant_site(self, config):
        result = calculate_compliance_score(
            [make_chemical("Acetone"), make_chemical("Bleach")],
            [make_employee("Ana"), make_employee("Ben", days_since_training=340)],
            config=config,
            now=FIXED_NOW,
        )
        assert result.overall == 100
        assert result.action_item_count == 0
        assert result.improvements == []

    def test_mixed_site(self, config):
        chemicals = [
            make_chemical("Acetone"),
            make_chemical("Brake Cleaner", sds_status="missing", sds_url=None, labeled=False),
        ]
        employees = [
            make_employee("Ana"),
            make_employee("New Hire", modules=0, days_since_training=None),
        ]
        result = calculate_compliance_score(chemicals, employees, config=config, now=FIXED_NOW)

        # 15 (sds) + 12.5 (labels) + 15 (documentation) + 15 (training) = 57.5
        assert result.overall == 58
        assert result.status == "Needs Work"
        assert result.status_color == "red"
        assert result.action_item_count == 3

        breakdown = result.breakdown
        assert (breakdown['sds'].current, breakdown['sds'].total, breakdown['sds'].pct) == (1, 2, 50)
        assert breakdown['labels'].pct == 50
        assert breakdown['documentation'].pct == 100
        assert breakdown['training'].pct == 50
        assert breakdown['sds'].label == "SDS Coverage"

        assert [(imp.category, imp.points) for imp in result.improvements] == [
            ('missing_sds', 15),
            ('not_started', 15),
            ('unlabeled', 13),
        ]
        assert result.improvements[0].text == "Find SDS for Brake Cleaner"
        assert result.improvements[1].text == "Complete training for New Hire (new hire)"
        assert result.improvements[2].text == "Print label for Brake Cleaner"

    def test_expired_sds_counts_against_coverage(self, config):
        chemicals = [make_chemical("Acetone", sds_status="expired")]
        result = calculate_compliance_score(chemicals, [], config=config, now=FIXED_NOW)

        assert result.breakdown['sds'].pct == 0
        assert result.overall == 70
        assert result.action_item_count == 1
        assert result.improvements[0].category == 'expired_sds'
        assert result.improvements[0].text == "Update expired SDS for Acetone"
        assert result.improvements[0].points == 30

    def test_unknown_sds_status_counts_as_missing(self, config):
        result = calculate_compliance_score(
            [make_chemical("Acetone", sds_status="pending-review")], [], config=config, now=FIXED_NOW,
        )
        assert result.improvements[0].category == 'missing_sds'

    def test_plural_improvement_text(self, config):
        chemicals = [
            make_chemical("Acetone", labeled=False),
            make_chemical("Bleach", labeled=False),
            make_chemical("Degreaser"),
        ]
        result = calculate_compliance_score(chemicals, [], config=config, now=FIXED_NOW)

        improvement = result.improvements[0]
        assert improvement.text == "Print labels for 2 chemicals"
        assert improvement.count == 2
        assert improvement.items == ["Acetone", "Bleach"]
        # 25 * 2/3
        assert improvement.points == 17

    def test_improvements_capped_and_sorted(self, config):
        chemicals = [
            make_chemical("Acetone", sds_status="missing", sds_url=None, labeled=False, manufacturer=""),
        ]
        employees = [
            make_employee("Ana", modules=2),
            make_employee("Ben", days_since_training=500),
        ]
        result = calculate_compliance_score(chemicals, employees, config=config, now=FIXED_NOW)

        assert len(result.improvements) == 3
        points = [imp.points for imp in result.improvements]
        assert points == sorted(points, reverse=True)
        assert [imp.category for imp in result.improvements] == ['missing_sds', 'unlabeled', 'in_progress']
        assert result.action_item_count == 5

    def test_due_soon_counts_as_trained(self, config):
        employees = [make_employee("Ana", days_since_training=350)]
        result = calculate_compliance_score([], employees, config=config, now=FIXED_NOW)

        assert result.breakdown['training'].pct == 100
        assert [(name, info.status) for name, info in result.training] == [("Ana", "due-soon")]

    def test_stored_status_is_ignored(self, config):
        employees = [make_employee("New Hire", modules=0, days_since_training=None, status="current")]
        result = calculate_compliance_score([], employees, config=config, now=FIXED_NOW)

        assert result.breakdown['training'].pct == 0
        assert result.overall == 70

    def test_custom_weights(self, config):
        config.update_weights({'sds': 25, 'training': 25, 'labels': 25, 'documentation': 25})
        chemicals = [make_chemical("Acetone", labeled=False)]
        result = calculate_compliance_score(chemicals, [], config=config, now=FIXED_NOW)
        assert result.overall == 75

    def test_to_dict(self, config):
        data = calculate_compliance_score(
            [make_chemical("Acetone", labeled=False)], [], config=config, now=FIXED_NOW,
        ).to_dict()

        assert data['overall'] == 75
        assert data['status'] == "Getting Close"
        assert data['breakdown']['labels'] == {
            'label': 'Container Labels', 'weight': 25, 'current': 0, 'total': 1, 'pct': 0,
        }
        assert data['improvements'][0]['text'] == "Print label for Acetone"

    def test_employees_sharing_a_name_keep_their_own_status(self, config):
        employees = [
            make_employee("Pat Smith"),
            make_employee("Pat Smith", modules=3),
            make_employee("", modules=0, days_since_training=None),
            make_employee(None, days_since_training=500),
        ]
        result = calculate_compliance_score([], employees, config=config, now=FIXED_NOW)

        assert [(name, info.status) for name, info in result.training] == [
            ("Pat Smith", "current"),
            ("Pat Smith", "in-progress"),
            ("(unnamed)", "not-started"),
            ("(unnamed)", "overdue"),
        ]
        assert result.breakdown['training'].current == 1
        assert result.breakdown['training'].total == 4


# ============================================================================
# ORM RECORDS
# ============================================================================

class TestScoringStoredRecords:
    """Test that ORM rows score exactly like their dict form."""

    def test_current_chemical_row(self, test_db_session, config):
        chemical = crud.create_chemical(test_db_session, **make_chemical("Acetone"))

        from_row = calculate_compliance_score([chemical], [], config=config, now=FIXED_NOW)
        from_dict = calculate_compliance_score([chemical.to_dict()], [], config=config, now=FIXED_NOW)

        assert from_row.breakdown['sds'].pct == 100
        assert from_row.overall == from_dict.overall == 100
        assert from_row.action_item_count == 0
        assert from_row.improvements == []

    def test_expired_and_missing_rows(self, test_db_session, config):
        chemicals = [
            crud.create_chemical(test_db_session, **make_chemical("Acetone", sds_status="expired")),
            crud.create_chemical(test_db_session, **make_chemical("Bleach", sds_status="current", sds_url=None)),
        ]
        result = calculate_compliance_score(chemicals, [], config=config, now=FIXED_NOW)

        assert result.breakdown['sds'].current == 0
        assert {imp.category: imp.items for imp in result.improvements if imp.pillar == 'sds'} == {
            'missing_sds': ["Bleach"],
            'expired_sds': ["Acetone"],
        }

    def test_employee_row_status_and_drift(self, test_db_session, config):
        employee = crud.create_employee(
            test_db_session, **make_employee("New Hire", modules=0, days_since_training=None, status="pending"),
        )

        result = calculate_compliance_score([], [employee], config=config, now=FIXED_NOW)
        assert result.training[0][1].status == "not-started"

        drift = check_status_drift(employee, now=FIXED_NOW)
        assert drift.stored_status == "pending"
        assert not drift.diverged

    def test_stored_timestamps_are_naive_utc(self, test_db_session):
        before = utc_now()
        chemical = crud.create_chemical(test_db_session, **make_chemical("Acetone"))
        after = utc_now()

        assert before.tzinfo is None
        assert abs(before - datetime.now(timezone.utc).replace(tzinfo=None)) < timedelta(seconds=5)
        assert chemical.added_date.tzinfo is None
        assert before <= chemical.added_date <= after
        assert before <= chemical.last_updated <= after
