"""Tests for anchor table parsing and generation."""

import numpy as np
import pytest

from blaze_pose.core.anchors import (
    AnchorTable,
    FormatError,
    NUM_POSE_ANCHORS,
    SsdAnchorOptions,
    format_anchors,
    generate_anchors,
    load_anchors,
    load_anchors_file,
)


def _csv(rows):
    return "\n".join(f"{x},{y}" for x, y in rows)


ROWS = [(0.1, 0.2), (0.5, 0.5), (0.75, 0.125), (0.0, 1.0)]


class TestLoadAnchors:

    def test_exact_row_count_parses(self):
        table = load_anchors(_csv(ROWS), len(ROWS))
        assert len(table) == len(ROWS)
        for i, (x, y) in enumerate(ROWS):
            assert table[i] == (float(np.float32(x)), float(np.float32(y)))

    def test_too_few_rows_fails(self):
        with pytest.raises(FormatError):
            load_anchors(_csv(ROWS[:-1]), len(ROWS))

    def test_too_many_rows_fails(self):
        with pytest.raises(FormatError):
            load_anchors(_csv(ROWS + [(0.3, 0.3)]), len(ROWS))

    def test_format_error_is_value_error(self):
        assert issubclass(FormatError, ValueError)

    def test_extra_columns_and_blank_lines_ignored(self):
        text = "0.1,0.2,1.0,1.0\n\n0.3,0.4,1.0,1.0\n"
        table = load_anchors(text, 2)
        assert table[1] == pytest.approx((0.3, 0.4))

    def test_single_column_row_fails(self):
        with pytest.raises(FormatError, match="Line 2"):
            load_anchors("0.1,0.2\n0.3\n", 2)

    def test_non_numeric_value_fails(self):
        with pytest.raises(FormatError):
            load_anchors("0.1,abc\n", 1)

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "anchors.csv"
        path.write_text(_csv(ROWS))
        table = load_anchors_file(path, len(ROWS))
        assert table[2] == pytest.approx((0.75, 0.125))


class TestAnchorTable:

    def test_out_of_range_index(self):
        table = load_anchors(_csv(ROWS), len(ROWS))
        with pytest.raises(IndexError):
            table[len(ROWS)]
        with pytest.raises(IndexError):
            table[-1]

    def test_table_is_read_only(self):
        table = load_anchors(_csv(ROWS), len(ROWS))
        with pytest.raises(ValueError):
            table.as_array()[0, 0] = 9.0

    def test_rejects_wrong_shape(self):
        with pytest.raises(FormatError):
            AnchorTable(np.zeros((4, 3)))

    def test_iteration_yields_rows(self):
        table = load_anchors(_csv(ROWS), len(ROWS))
        assert [pytest.approx(r) for r in ROWS] == list(table)


class TestGenerateAnchors:

    def test_pose_detector_anchor_count(self):
        assert len(generate_anchors()) == NUM_POSE_ANCHORS == 2254

    def test_first_anchors_share_first_cell(self):
        table = generate_anchors()
        # Two anchors per location on the stride-8 layer (28x28 grid)
        assert table[0] == pytest.approx((0.5 / 28, 0.5 / 28))
        assert table[1] == table[0]
        assert table[2] == pytest.approx((1.5 / 28, 0.5 / 28))

    def test_merged_stride_32_layers(self):
        table = generate_anchors()
        # Last block: 7x7 grid, 3 merged layers * 2 anchors = 6 per location
        last = table[len(table) - 1]
        assert last == pytest.approx((6.5 / 7, 6.5 / 7))
        first_of_block = 28 * 28 * 2 + 14 * 14 * 2
        for i in range(first_of_block, first_of_block + 6):
            assert table[i] == pytest.approx((0.5 / 7, 0.5 / 7))

    def test_all_centers_normalized(self):
        arr = generate_anchors().as_array()
        assert arr.min() > 0.0
        assert arr.max() < 1.0

    def test_custom_options(self):
        table = generate_anchors(SsdAnchorOptions(input_size=64, strides=(16, 32), anchors_per_layer=1))
        assert len(table) == 4 * 4 + 2 * 2

    def test_formatted_table_reloads(self):
        table = generate_anchors()
        reloaded = load_anchors(format_anchors(table), NUM_POSE_ANCHORS)
        np.testing.assert_allclose(reloaded.as_array(), table.as_array(), atol=1e-6)
