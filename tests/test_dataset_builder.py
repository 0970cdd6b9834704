"""Tests for dicom_query.core.dataset_builder module."""

from __future__ import annotations

import pytest

from dicom_query.core.dataset_builder import (
    PLACEHOLDER_ATTRIBUTES,
    QueryDatasetBuilder,
    QueryLevel,
)


@pytest.fixture
def builder() -> QueryDatasetBuilder:
    builder = QueryDatasetBuilder()
    builder.reset()
    return builder


class TestReset:
    """Tests for QueryDatasetBuilder.reset."""

    def test_inserts_empty_placeholders(self, builder: QueryDatasetBuilder) -> None:
        """Test that every return key is present and empty."""
        ds = builder.dataset

        assert set(ds.dir()) == set(PLACEHOLDER_ATTRIBUTES)
        for keyword in PLACEHOLDER_ATTRIBUTES:
            assert ds[keyword].value in ("", None)

    def test_clears_previous_state(self, builder: QueryDatasetBuilder) -> None:
        """Test that reset removes filters, level and link values."""
        builder.set_level(QueryLevel.SERIES)
        builder.apply_filter_values({"PatientID": "*12*"})
        builder.set_link_value("1.2.3")
        builder.dataset.OperatorsName = "extra"

        builder.reset()

        assert builder.level is None
        assert "QueryRetrieveLevel" not in builder.dataset
        assert "OperatorsName" not in builder.dataset
        assert builder.dataset.PatientID == ""
        assert builder.dataset.StudyInstanceUID == ""


class TestLevelsAndFilters:
    """Tests for set_level, apply_filter_values and set_link_value."""

    def test_set_level(self, builder: QueryDatasetBuilder) -> None:
        """Test that the level attribute holds the DICOM level string."""
        builder.set_level(QueryLevel.STUDY)
        assert builder.dataset.QueryRetrieveLevel == "STUDY"

        builder.set_level("SERIES")
        assert builder.dataset.QueryRetrieveLevel == "SERIES"
        assert builder.level is QueryLevel.SERIES

    def test_invalid_level(self, builder: QueryDatasetBuilder) -> None:
        """Test that unknown levels are rejected."""
        with pytest.raises(ValueError):
            builder.set_level("IMAGE")

    def test_filters_overwrite_placeholders(self, builder: QueryDatasetBuilder) -> None:
        """Test that filter values replace empty placeholders."""
        builder.set_level(QueryLevel.STUDY)
        builder.apply_filter_values({"PatientName": "*abc*", "ModalitiesInStudy": "CT\\MR"})

        assert str(builder.dataset.PatientName) == "*abc*"
        assert list(builder.dataset.ModalitiesInStudy) == ["CT", "MR"]
        assert builder.dataset.StudyDescription == ""

    def test_link_requires_series_level(self, builder: QueryDatasetBuilder) -> None:
        """Test that the link value cannot be set at the STUDY level."""
        builder.set_level(QueryLevel.STUDY)

        with pytest.raises(ValueError):
            builder.set_link_value("1.2.3")

    def test_link_value_is_overwritten(self, builder: QueryDatasetBuilder) -> None:
        """Test that each link value replaces the previous one."""
        builder.set_level(QueryLevel.STUDY)
        builder.apply_filter_values({"PatientID": "*12*"})
        builder.set_level(QueryLevel.SERIES)

        builder.set_link_value("1.2.3")
        builder.set_link_value("1.2.4")

        assert builder.dataset.StudyInstanceUID == "1.2.4"
        assert builder.dataset.PatientID == "*12*"


class TestSnapshot:
    """Tests for QueryDatasetBuilder.snapshot."""

    def test_snapshot_is_independent(self, builder: QueryDatasetBuilder) -> None:
        """Test that later mutations do not change an earlier snapshot."""
        builder.set_level(QueryLevel.SERIES)
        builder.set_link_value("1.2.3")
        snapshot = builder.snapshot()

        builder.set_link_value("1.2.4")

        assert snapshot.StudyInstanceUID == "1.2.3"
        assert snapshot is not builder.dataset
