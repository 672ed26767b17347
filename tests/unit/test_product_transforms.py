"""
Unit tests for the product dimension: key split, referential filter and
validity intervals.
"""

from datetime import date
from decimal import Decimal

import pytest

from dwh_etl.core.models import CrmProductRow, ErpCategoryRow
from dwh_etl.observability import metrics
from dwh_etl.transform.products import (
    split_product_key,
    transform_product_categories,
    transform_products,
    validity_end_dates,
)

CATEGORIES = frozenset({"CO_RF", "BI_RB"})


def product(key, start, prd_id=1, **fields) -> CrmProductRow:
    return CrmProductRow(prd_id=prd_id, prd_key=key, prd_start_dt=start, **fields)


@pytest.mark.unit
class TestProductKeySplit:
    """Tests for fixed-width composite key slicing"""

    @pytest.mark.parametrize("composite,expected", [
        ("CO-RF-FR-R92B-58", ("CO_RF", "FR-R92B-58")),
        ("BI-RB-BK-R93R-62", ("BI_RB", "BK-R93R-62")),
        ("AC-HE-HL-U509", ("AC_HE", "HL-U509")),
        ("CO-RF", ("CO_RF", "")),
        ("CO", ("CO", "")),
    ])
    def test_split(self, composite, expected):
        assert split_product_key(composite) == expected


@pytest.mark.unit
class TestValidityEndDates:
    """Tests for end-date derivation over sorted start dates"""

    def test_each_revision_ends_day_before_next(self):
        starts = [date(2011, 7, 1), date(2012, 7, 1), date(2013, 7, 1)]

        assert validity_end_dates(starts) == [date(2012, 6, 30), date(2013, 6, 30), None]

    def test_single_revision_is_open(self):
        assert validity_end_dates([date(2011, 7, 1)]) == [None]

    def test_empty(self):
        assert validity_end_dates([]) == []

    def test_same_day_revisions(self):
        starts = [date(2011, 7, 1), date(2011, 7, 1)]

        assert validity_end_dates(starts) == [date(2011, 6, 30), None]


@pytest.mark.unit
class TestTransformProducts:
    """Tests for the product dimension transform"""

    def test_history_is_contiguous(self):
        rows = [
            product("CO-RF-FR-R92B-58", date(2013, 7, 1), prd_id=3),
            product("CO-RF-FR-R92B-58", date(2011, 7, 1), prd_id=1),
            product("CO-RF-FR-R92B-58", date(2012, 7, 1), prd_id=2),
        ]

        result = transform_products(rows, CATEGORIES)

        assert [r.product_id for r in result] == [1, 2, 3]
        assert [r.end_date for r in result] == [date(2012, 6, 30), date(2013, 6, 30), None]
        assert all(r.category_id == "CO_RF" for r in result)
        assert all(r.product_key == "FR-R92B-58" for r in result)

    def test_staged_end_date_is_ignored(self):
        rows = [product("CO-RF-FR-R92B-58", date(2011, 7, 1), prd_end_dt=date(2011, 1, 1))]

        assert transform_products(rows, CATEGORIES)[0].end_date is None

    def test_output_ordered_by_product_key(self):
        rows = [
            product("CO-RF-ZZ-1", date(2011, 7, 1)),
            product("BI-RB-AA-1", date(2011, 7, 1)),
        ]

        result = transform_products(rows, CATEGORIES)

        assert [r.product_key for r in result] == ["AA-1", "ZZ-1"]

    def test_equal_start_dates_keep_ingestion_order(self):
        rows = [
            product("CO-RF-FR-1", date(2011, 7, 1), prd_id=10),
            product("CO-RF-FR-1", date(2011, 7, 1), prd_id=11),
        ]

        result = transform_products(rows, CATEGORIES)

        assert [r.product_id for r in result] == [10, 11]
        assert result[0].end_date == date(2011, 6, 30)
        assert result[1].end_date is None

    def test_referential_filter_drops_unknown_categories(self):
        rows = [
            product("CO-RF-FR-1", date(2011, 7, 1)),
            product("XX-YY-FR-2", date(2011, 7, 1)),
        ]

        result = transform_products(rows, CATEGORIES)

        assert [r.product_key for r in result] == ["FR-1"]

    def test_filter_applies_before_history(self):
        """A dropped revision does not cut short the retained one"""
        rows = [
            product("CO-RF-FR-1", date(2011, 7, 1)),
            product("XX-YY-FR-1", date(2012, 7, 1)),
        ]

        result = transform_products(rows, CATEGORIES)

        assert len(result) == 1
        assert result[0].end_date is None

    def test_empty_filter_result_is_not_an_error(self):
        rows = [product("XX-YY-FR-1", date(2011, 7, 1))]

        assert transform_products(rows, CATEGORIES) == []
        assert transform_products(rows, frozenset()) == []

    def test_keyless_rows_dropped(self):
        rows = [product(None, date(2011, 7, 1)), product("  ", date(2011, 7, 1))]

        assert transform_products(rows, CATEGORIES) == []

    def test_cost_and_line_normalized(self):
        rows = [
            product("CO-RF-FR-1", date(2011, 7, 1), prd_nm=" Frame ", prd_cost=None, prd_line="r "),
            product("CO-RF-FR-2", date(2011, 7, 1), prd_cost=Decimal("12.50"), prd_line="S"),
        ]

        result = transform_products(rows, CATEGORIES)

        assert result[0].product_name == "Frame"
        assert result[0].product_cost == Decimal(0)
        assert result[0].product_line == "Road"
        assert result[1].product_cost == Decimal("12.50")
        assert result[1].product_line == "Other sales"

    def test_missing_product_segment_dropped(self):
        rows = [product("CO-RF-FR-1", date(2011, 7, 1)), product("CO-RF", date(2011, 7, 1), prd_id=2)]

        result = transform_products(rows, CATEGORIES)

        assert [r.product_id for r in result] == [1]

    def test_missing_start_date_dropped_without_breaking_history(self):
        rows = [
            product("CO-RF-FR-1", date(2011, 7, 1), prd_id=1),
            product("CO-RF-FR-1", None, prd_id=2),
            product("CO-RF-FR-1", date(2012, 7, 1), prd_id=3),
        ]

        result = transform_products(rows, CATEGORIES)

        assert [(r.product_id, r.start_date, r.end_date) for r in result] == [
            (1, date(2011, 7, 1), date(2012, 6, 30)),
            (3, date(2012, 7, 1), None),
        ]

    def test_unplaceable_rows_counted(self):
        before = metrics.REGISTRY.get_sample_value(
            "dwh_rows_dropped_total", {"entity": "product_info", "reason": "unplaceable"}
        ) or 0.0

        transform_products([product("CO-RF-FR-1", None), product("CO-RF", date(2011, 7, 1))], CATEGORIES)

        assert metrics.REGISTRY.get_sample_value(
            "dwh_rows_dropped_total", {"entity": "product_info", "reason": "unplaceable"}
        ) == before + 2

    def test_filtered_row_without_start_date_is_dropped(self):
        rows = [product("XX-YY-FR-1", None)]

        assert transform_products(rows, CATEGORIES) == []


@pytest.mark.unit
class TestProductCategories:
    """Tests for the maintenance reference copy"""

    def test_rows_copied_unchanged(self):
        rows = [
            ErpCategoryRow(id="AC_BR", cat="Accessories", subcat="Bike Racks", maintenance="Yes"),
            ErpCategoryRow(id="CO_RF", cat=" Components", subcat=None, maintenance="No"),
        ]

        result = transform_product_categories(rows)

        assert [r.as_row() for r in result] == [
            ("AC_BR", "Accessories", "Bike Racks", "Yes"),
            ("CO_RF", " Components", None, "No"),
        ]
