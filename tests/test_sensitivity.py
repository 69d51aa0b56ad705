"""
Test suite for the WACC x terminal growth sensitivity grid
"""

import pandas as pd
import pytest

from dcf_builder.analyze.deterministic import per_share_value, value_enterprise
from dcf_builder.analyze.sensitivity import (
    FAILED_CELL,
    SensitivityTable,
    axis_values,
    build_sensitivity_table,
)
from dcf_builder.data_pipeline.models import CompanyProfile, TerminalValueInputs, ValueRange
from dcf_builder.utils.exceptions import MalformedInputError


class TestAxisValues:
    """Test axis generation"""

    def test_max_included_despite_float_error(self):
        """Test 0.01..0.04 by 0.005 yields seven values ending at max"""
        values = axis_values(ValueRange(0.01, 0.04, 0.005))

        assert values == [0.01, 0.015, 0.02, 0.025, 0.03, 0.035, 0.04]

    def test_unreachable_max_excluded(self):
        """Test max is dropped when it is not a whole number of steps from min"""
        assert axis_values(ValueRange(0.05, 0.07, 0.015)) == [0.05, 0.065]

    def test_single_point_range(self):
        """Test min == max produces one value regardless of step"""
        assert axis_values(ValueRange(0.08, 0.08, 0.0)) == [0.08]

    def test_halves_round_up(self):
        """Test exact halves round away from zero rather than to even"""
        assert axis_values(ValueRange(0.0125, 0.0225, 0.005)) == [0.013, 0.018, 0.023]

    def test_values_are_rounded(self):
        """Test axis values are rounded to three decimals"""
        values = axis_values(ValueRange(0.0765 - 0.02, 0.0765 + 0.02, 0.005))

        assert all(v == round(v, 3) for v in values)

    @pytest.mark.parametrize("bounds", [
        (0.05, 0.04, 0.01),
        (0.01, 0.05, 0.0),
        (0.01, 0.05, -0.01),
        (0.01, float("inf"), 0.01),
    ])
    def test_malformed_ranges(self, bounds):
        """Test inverted, non-stepping or non-finite ranges are rejected"""
        with pytest.raises(MalformedInputError):
            ValueRange(*bounds)


class TestSensitivityTable:
    """Test grid construction"""

    def test_grid_dimensions(self, company, assumptions, wacc_inputs, terminal_inputs):
        """Test matrix shape matches the two axes"""
        table = build_sensitivity_table(
            company, assumptions, wacc_inputs, terminal_inputs,
            wacc_range=ValueRange(0.06, 0.10, 0.01),
            growth_range=ValueRange(0.01, 0.04, 0.005),
        )

        assert table.wacc_values == (0.06, 0.07, 0.08, 0.09, 0.10)
        assert len(table.growth_values) == 7
        assert len(table.matrix) == 5
        assert all(len(row) == 7 for row in table.matrix)

    def test_cells_match_direct_valuation(self, company, assumptions, wacc_inputs, terminal_inputs):
        """Test each cell re-values at the axis WACC, not a recomputed one"""
        table = build_sensitivity_table(
            company, assumptions, wacc_inputs, terminal_inputs,
            wacc_range=ValueRange(0.09, 0.09, 0.0),
            growth_range=ValueRange(0.02, 0.02, 0.0),
        )
        valuation = value_enterprise(company.base_year, assumptions, 0.09, TerminalValueInputs.perpetuity(0.02))

        assert table.price_at(0, 0) == round(per_share_value(valuation.enterprise_value, company), 2)

    def test_prices_rounded_to_cents(self, company, assumptions, wacc_inputs, terminal_inputs):
        """Test every cell carries at most two decimals"""
        table = build_sensitivity_table(company, assumptions, wacc_inputs, terminal_inputs)

        for row in table.matrix:
            for price in row:
                assert price == round(price, 2)

    def test_default_axes(self, company, assumptions, wacc_inputs, terminal_inputs):
        """Test defaults centre WACC on the computed rate and span 1%-4% growth"""
        table = build_sensitivity_table(company, assumptions, wacc_inputs, terminal_inputs)

        assert table.wacc_values[0] == pytest.approx(0.0565, abs=1e-3)
        assert table.wacc_values[-1] == pytest.approx(0.0965, abs=1e-3)
        assert table.growth_values[0] == 0.01
        assert table.growth_values[-1] == 0.04

    def test_divergent_cells_are_zero(self, company, assumptions, wacc_inputs, terminal_inputs):
        """Test cells with growth at or above WACC degrade to zero instead of failing"""
        table = build_sensitivity_table(
            company, assumptions, wacc_inputs, terminal_inputs,
            wacc_range=ValueRange(0.02, 0.04, 0.01),
            growth_range=ValueRange(0.01, 0.04, 0.01),
        )

        for i, wacc in enumerate(table.wacc_values):
            for j, growth in enumerate(table.growth_values):
                if growth >= wacc:
                    assert table.price_at(i, j) == FAILED_CELL
                else:
                    assert table.price_at(i, j) != FAILED_CELL

    def test_exit_multiple_rows_are_constant(self, company, assumptions, wacc_inputs):
        """Test growth axis has no effect under the exit-multiple method"""
        table = build_sensitivity_table(company, assumptions, wacc_inputs, TerminalValueInputs.multiple(10.0))

        for row in table.matrix:
            assert len(set(row)) == 1
        assert table.matrix[0][0] > table.matrix[-1][0]

    def test_price_falls_as_wacc_rises(self, company, assumptions, wacc_inputs, terminal_inputs):
        """Test each growth column decreases down the WACC axis"""
        table = build_sensitivity_table(
            company, assumptions, wacc_inputs, terminal_inputs,
            wacc_range=ValueRange(0.06, 0.10, 0.01),
            growth_range=ValueRange(0.01, 0.03, 0.01),
        )

        for j in range(len(table.growth_values)):
            column = [row[j] for row in table.matrix]
            assert column == sorted(column, reverse=True)

    def test_missing_shares_raises(self, company, assumptions, wacc_inputs, terminal_inputs):
        """Test structural company errors are not masked as failed cells"""
        no_shares = CompanyProfile(**{**company.__dict__, "shares_outstanding": 0})

        with pytest.raises(MalformedInputError):
            build_sensitivity_table(no_shares, assumptions, wacc_inputs, terminal_inputs)

    def test_frame_view(self, company, assumptions, wacc_inputs, terminal_inputs):
        """Test DataFrame view is indexed by WACC with growth columns"""
        table = build_sensitivity_table(
            company, assumptions, wacc_inputs, terminal_inputs,
            wacc_range=ValueRange(0.07, 0.09, 0.01),
            growth_range=ValueRange(0.02, 0.03, 0.01),
        )
        frame = table.to_frame()

        assert isinstance(frame, pd.DataFrame)
        assert frame.shape == (3, 2)
        assert frame.loc[0.08, 0.03] == table.price_at(1, 1)

    def test_rejects_ragged_matrix(self):
        """Test table construction checks matrix dimensions"""
        with pytest.raises(ValueError):
            SensitivityTable(wacc_values=(0.08, 0.09), growth_values=(0.02,), matrix=((1.0,),))
