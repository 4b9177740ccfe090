"""
Test suite for GHS label content.
"""

import pytest

from hazcom.program import GHS_PICTOGRAM_NAMES, build_batch_labels, build_label, labels_needed

from conftest import make_chemical


@pytest.fixture
def brakleen(sample_catalog):
    chemical = dict(sample_catalog[0])
    chemical.update(sds_url="https://example.com/sds/brakleen.pdf", labeled=False)
    return chemical


class TestBuildLabel:
    """Test label content per label stock."""

    def test_full_size_label(self, brakleen):
        label = build_label(brakleen)

        assert label.size == '4x3'
        assert label.product_name == "CRC Brakleen Brake Parts Cleaner"
        assert label.manufacturer == "CRC Industries"
        assert label.signal_word == "DANGER"
        assert label.pictogram_names == ["Flammable", "Irritant / Harmful", "Health Hazard"]
        assert label.hazard_statements[0] == "H222 Extremely flammable aerosol"
        assert len(label.hazard_statements) == 5
        assert label.hazard_overflow == 0
        # prevention statements come first, then response, storage, disposal
        assert label.precautionary_statements[0].startswith("P210 Keep away from heat")
        assert len(label.precautionary_statements) == 4
        assert label.precautionary_overflow == 7
        assert label.sds_url == "https://example.com/sds/brakleen.pdf"

    def test_mini_label_truncates(self, brakleen):
        label = build_label(brakleen, size='2x1.5')

        assert len(label.hazard_statements) == 3
        assert label.hazard_overflow == 2
        assert len(label.precautionary_statements) == 2
        assert label.precautionary_overflow == 9

    def test_square_label_is_identifier_only(self, brakleen):
        label = build_label(brakleen, size='1x1')

        assert label.product_name == "CRC Brakleen Brake Parts Cleaner"
        assert label.sds_url == "https://example.com/sds/brakleen.pdf"
        assert label.signal_word is None
        assert label.hazard_statements == []
        assert label.pictogram_codes == []

    def test_unknown_size(self, brakleen):
        with pytest.raises(ValueError):
            build_label(brakleen, size='8x10')

    def test_plain_string_statements(self):
        chemical = make_chemical(
            "Degreaser",
            hazard_statements=["Causes skin irritation", "", None],
            precautionary_statements=["Wear gloves."],
        )
        label = build_label(chemical)

        assert label.hazard_statements == ["Causes skin irritation"]
        assert label.precautionary_statements == ["Wear gloves."]

    def test_unknown_pictogram_code_kept(self):
        label = build_label(make_chemical(pictogram_codes=["GHS05", "GHS10"]))
        assert label.pictogram_names == [GHS_PICTOGRAM_NAMES["GHS05"], "GHS10"]

    def test_to_dict(self, brakleen):
        data = build_label(brakleen, size='2x1.5').to_dict()
        assert data['size'] == '2x1.5'
        assert data['pictogram_names'][0] == "Flammable"
        assert data['hazard_overflow'] == 2


class TestBatchLabels:

    def test_only_unlabeled_chemicals(self, brakleen):
        chemicals = [
            make_chemical("Acetone"),
            brakleen,
            make_chemical("Bleach", labeled=None),
        ]
        assert [c['product_name'] for c in labels_needed(chemicals)] == [
            "CRC Brakleen Brake Parts Cleaner",
            "Bleach",
        ]

        labels = build_batch_labels(chemicals)
        assert [label.product_name for label in labels] == ["CRC Brakleen Brake Parts Cleaner", "Bleach"]
        assert all(label.size == '4x3' for label in labels)

    def test_nothing_to_print(self):
        assert build_batch_labels([make_chemical("Acetone")]) == []
