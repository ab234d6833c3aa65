"""Tests for pixel quadrangle scan conversion."""

import math

import pytest


def _square(lo, hi):
    return [(lo, lo), (hi, lo), (hi, hi), (lo, hi)]


class TestNormalizeCorners:
    """Tests for corner snapping and ordering."""

    def test_bottom_and_top_vertices(self):
        """Test that vertex 1 ends up lowest and vertex 3 highest."""
        from behr_regrid.quadrangle import normalize_corners

        quad = normalize_corners([(3, 6), (5, 4), (3, 1), (1, 4)], 1, 10, 1, 10)

        assert quad.y1 == 1
        assert quad.y3 == 6
        assert quad.y1 <= quad.y2 <= quad.y3
        assert quad.y1 <= quad.y4 <= quad.y3

    def test_side_vertices_ordered_by_x(self):
        """Test that vertex 4 is never right of vertex 2."""
        from behr_regrid.quadrangle import normalize_corners

        quad = normalize_corners([(3, 1), (1, 4), (3, 6), (5, 4)], 1, 10, 1, 10)

        assert quad.x4 <= quad.x2
        assert (quad.x2, quad.y2) == (5, 4)
        assert (quad.x4, quad.y4) == (1, 4)

    def test_corners_are_rounded(self):
        """Test that corners snap half away from zero."""
        from behr_regrid.quadrangle import normalize_corners

        quad = normalize_corners([(1.4, 1.5), (4.5, 1.2), (4.6, 4.4), (1.2, 4.5)], 1, 10, 1, 10)

        assert (quad.x1, quad.y1) == (5, 1)
        assert quad.y3 == 5

    def test_corners_are_clamped(self):
        """Test that corners outside the bounds are clamped."""
        from behr_regrid.quadrangle import normalize_corners

        quad = normalize_corners(_square(-5, 20), 1, 5, 1, 5)

        for v in (quad.x1, quad.x2, quad.x3, quad.x4):
            assert 1 <= v <= 5
        for v in (quad.y1, quad.y2, quad.y3, quad.y4):
            assert 1 <= v <= 5

    def test_wrong_number_of_corners(self):
        """Test that anything but 4 corners is rejected."""
        from behr_regrid.quadrangle import normalize_corners

        with pytest.raises(ValueError, match="4 corners"):
            normalize_corners([(1, 1), (2, 2), (3, 3)], 1, 5, 1, 5)

    def test_corner_not_a_pair(self):
        """Test that a corner must have exactly two coordinates."""
        from behr_regrid.quadrangle import normalize_corners

        with pytest.raises(ValueError, match="pair"):
            normalize_corners([(1, 1), (2, 2), (3, 3, 3), (4, 4)], 1, 5, 1, 5)


class TestOrientation:
    """Tests for orientation classification."""

    def test_square_is_standard(self):
        """Test an ordinary square."""
        from behr_regrid.quadrangle import Orientation, classify_orientation, normalize_corners

        quad = normalize_corners(_square(1, 6), 1, 10, 1, 10)

        assert classify_orientation(quad) is Orientation.STANDARD

    def test_both_sides_right_is_fallback(self):
        """Test a quadrangle with both side vertices right of the diagonal."""
        from behr_regrid.quadrangle import Orientation, Quad, classify_orientation

        quad = Quad(1, 1, 8, 3, 1, 9, 5, 6)

        assert classify_orientation(quad) is Orientation.FALLBACK

    def test_horizontal_diagonal_is_fallback(self):
        """Test that a flat quadrangle does not count as standard."""
        from behr_regrid.quadrangle import Orientation, Quad, classify_orientation

        quad = Quad(1, 2, 5, 2, 3, 2, 2, 2)

        assert classify_orientation(quad) is Orientation.FALLBACK


class TestRowsAndColumns:
    """Tests for row and column ranges."""

    def test_row_range_excludes_bottom(self):
        """Test rows start one above vertex 1 and end at vertex 3."""
        from behr_regrid.quadrangle import normalize_corners, row_range

        quad = normalize_corners(_square(1, 6), 1, 10, 1, 10)

        assert list(row_range(quad, 10)) == [2, 3, 4, 5, 6]

    def test_row_range_limited_to_grid(self):
        """Test rows never go past maxy."""
        from behr_regrid.quadrangle import Quad, row_range

        quad = Quad(1, 3, 4, 3, 4, 12, 1, 12)

        assert list(row_range(quad, 5)) == [4, 5]

    def test_row_bounds_pull_right_in(self):
        """Test the right bound is one column left of the edge."""
        from behr_regrid.quadrangle import normalize_corners, row_bounds

        quad = normalize_corners(_square(1, 6), 1, 10, 1, 10)

        assert row_bounds(quad, 3) == (1.0, 5.0)

    def test_column_range(self):
        """Test columns run from one right of left up to right."""
        from behr_regrid.quadrangle import column_range

        assert list(column_range(1, 5, 10)) == [2, 3, 4, 5]

    def test_column_range_rejects_non_positive_left(self):
        """Test that a row whose left bound is not positive is dropped."""
        from behr_regrid.quadrangle import column_range

        assert list(column_range(0, 5, 10)) == []
        assert list(column_range(-3, 5, 10)) == []

    def test_column_range_nan(self):
        """Test that undefined bounds give no columns."""
        from behr_regrid.quadrangle import column_range

        assert list(column_range(float("nan"), 5, 10)) == []
        assert list(column_range(2, float("nan"), 10)) == []

    def test_column_range_clamped(self):
        """Test that the right bound is clamped to maxx."""
        from behr_regrid.quadrangle import column_range

        assert list(column_range(2, 40, 5)) == [3, 4, 5]


class TestRasterize:
    """Tests for the full rasterization."""

    def test_small_diamond_covers_single_cell(self):
        """Test the 3x3 grid pixel that covers only cell (2, 2)."""
        from behr_regrid.quadrangle import rasterize_quadrangle

        cells = list(rasterize_quadrangle([(2, 1), (3, 2), (2, 3), (1, 2)], 1, 3, 1, 3))

        assert cells == [(2, 2)]

    def test_square_cells(self):
        """Test every cell of a 5x5 square footprint, top row excluded."""
        from behr_regrid.quadrangle import rasterize_quadrangle

        cells = set(rasterize_quadrangle(_square(1, 6), 1, 10, 1, 10))

        expected = {(x, y) for x in range(2, 6) for y in range(2, 6)}
        assert cells == expected

    def test_flat_top_row_dropped(self):
        """Test that a row whose bounding edge is horizontal is not gridded."""
        from behr_regrid.quadrangle import Quad, row_bounds

        quad = Quad(1, 1, 6, 1, 6, 6, 1, 6)
        left, right = row_bounds(quad, 6)

        assert math.isnan(left)
        assert right == 5

    def test_rotated_footprint_loses_top_row(self):
        """Test a tilted pixel whose top corners round onto the same row."""
        from behr_regrid.quadrangle import rasterize_quadrangle

        corners = [(17.86, 12.77), (17.44, 19.93), (11.76, 19.60), (12.18, 12.43)]
        cells = list(rasterize_quadrangle(corners, 1, 30, 1, 30))

        assert cells
        assert all(y != 20 for _, y in cells)
        assert sorted(x for x, y in cells if y == 19) == [13, 14, 15, 16]

    @pytest.mark.parametrize("corners, bounds, rows", [
        (
            [(2, 1), (3, 2), (2, 3), (1, 2)],
            (1, 3, 1, 3),
            {2: [2]},
        ),
        (
            [(1, 1), (6, 1), (6, 6), (1, 6)],
            (1, 10, 1, 10),
            {2: [2, 3, 4, 5], 3: [2, 3, 4, 5], 4: [2, 3, 4, 5], 5: [2, 3, 4, 5]},
        ),
        (
            [(4, 1), (7, 4), (4, 7), (1, 4)],
            (1, 10, 1, 10),
            {2: [4], 3: [3, 4, 5], 4: [2, 3, 4, 5, 6], 5: [3, 4, 5], 6: [4]},
        ),
        (
            [(1, 1), (8, 3), (1, 9), (5, 6)],
            (1, 10, 1, 10),
            {
                2: [2, 3, 4],
                3: [2, 3, 4, 5, 6, 7],
                4: [2, 3, 4, 5, 6],
                5: [2, 3, 4, 5],
                6: [2, 3, 4],
                7: [2, 3],
            },
        ),
        (
            [(17.86, 12.77), (17.44, 19.93), (11.76, 19.60), (12.18, 12.43)],
            (1, 30, 1, 30),
            {
                13: [13, 14, 15, 16, 17],
                14: [13, 14, 15, 16, 17],
                15: [13, 14, 15, 16, 17],
                16: [13, 14, 15, 16, 17],
                17: [13, 14, 15, 16],
                18: [13, 14, 15, 16],
                19: [13, 14, 15, 16],
            },
        ),
    ])
    def test_hand_traced_cells(self, corners, bounds, rows):
        """Test rasterized cells against hand-traced rows."""
        from behr_regrid.quadrangle import rasterize_quadrangle

        cells = list(rasterize_quadrangle(corners, *bounds))

        expected = [(x, y) for y in sorted(rows) for x in rows[y]]
        assert cells == expected

    def test_corner_order_does_not_matter(self):
        """Test that the same square in a different corner order gives the same cells."""
        from behr_regrid.quadrangle import rasterize_quadrangle

        a = set(rasterize_quadrangle([(1, 1), (6, 1), (6, 6), (1, 6)], 1, 10, 1, 10))
        b = set(rasterize_quadrangle([(6, 6), (1, 6), (1, 1), (6, 1)], 1, 10, 1, 10))

        assert a == b

    def test_column_one_never_covered(self):
        """Test that cells with x == 1 are never produced."""
        from behr_regrid.quadrangle import rasterize_quadrangle

        cells = list(rasterize_quadrangle(_square(-3, 8), 1, 8, 1, 8))

        assert cells
        assert all(x >= 2 for x, _ in cells)

    def test_fallback_quadrangle(self):
        """Test a quadrangle that takes the fallback branch."""
        from behr_regrid.quadrangle import rasterize_quadrangle

        cells = set(rasterize_quadrangle([(1, 1), (8, 3), (1, 9), (5, 6)], 1, 10, 1, 10))

        expected = set()
        for y, right in [(2, 4), (3, 7), (4, 6), (5, 5), (6, 4), (7, 3)]:
            expected |= {(x, y) for x in range(2, right + 1)}
        assert cells == expected

    def test_clamped_to_bounds(self):
        """Test that a pixel larger than the grid stays inside it."""
        from behr_regrid.quadrangle import rasterize_quadrangle

        cells = list(rasterize_quadrangle(_square(-5, 20), 1, 5, 1, 5))

        assert cells
        for x, y in cells:
            assert 1 <= x <= 5
            assert 1 <= y <= 5

    def test_pixel_outside_grid(self):
        """Test that a pixel entirely off the grid does not raise."""
        from behr_regrid.quadrangle import rasterize_quadrangle

        cells = list(rasterize_quadrangle(_square(20, 30), 1, 5, 1, 5))

        assert cells == []

    @pytest.mark.parametrize("corners", [
        [(2, 2), (2, 2), (2, 2), (2, 2)],
        [(1, 2), (5, 2), (3, 2), (4, 2)],
        [(2, 1), (2, 5), (2, 3), (2, 4)],
        [(1, 1), (3, 3), (5, 5), (7, 7)],
    ])
    def test_degenerate_quadrangles(self, corners):
        """Test that collapsed or collinear corners yield nothing and never raise."""
        from behr_regrid.quadrangle import rasterize_quadrangle

        assert list(rasterize_quadrangle(corners, 1, 10, 1, 10)) == []

    def test_nan_corner_yields_nothing(self):
        """Test that a pixel with a missing corner is skipped."""
        from behr_regrid.quadrangle import rasterize_quadrangle

        corners = [(1, 1), (6, 1), (math.nan, 6), (1, 6)]

        assert list(rasterize_quadrangle(corners, 1, 10, 1, 10)) == []
