"""
Tests for periodic identification of boundary dofs.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from watfNURBS.discretization.extension import NURBSExtension
from watfNURBS.errors import NURBSTopologyError


def _with_periodic(text, master, slave):
    section = "periodic\n%d %s\n%d %s\n\n" % (
        len(master), " ".join(map(str, master)), len(slave), " ".join(map(str, slave)))
    for keyword in ("unitweights", "weights"):
        if keyword in text:
            return text.replace(keyword, section + keyword, 1)
    raise ValueError("no weights section")


class TestPeriodicLine:
    """Two quadratic line patches closed into a ring."""

    def test_dof_map(self, line_two_patch):
        ext = NURBSExtension.from_string(_with_periodic(line_two_patch, [1], [2]))
        assert ext.n_dof == 6
        assert_array_equal(ext.d_to_d, [1, 0, 1, 2, 3, 4, 5])
        assert ext.dof_map(2) == ext.dof_map(0)
        assert_array_equal(ext.bel_dof.row(0), ext.bel_dof.row(1))

    def test_weights_given_before_identification(self, line_two_patch):
        text = line_two_patch.replace("weights\n1\n1\n1\n1\n1\n1\n1",
                                      "weights\n1\n2\n3\n4\n5\n6\n7")
        ext = NURBSExtension.from_string(_with_periodic(text, [1], [2]))
        assert len(ext.weights) == 6
        assert_allclose(ext.weights[[0, 2, 3, 4, 5]], [2, 4, 5, 6, 7])

    def test_write_read(self, line_two_patch):
        ext = NURBSExtension.from_string(_with_periodic(line_two_patch, [1], [2]))
        text = ext.to_text()
        assert "periodic" in text
        other = NURBSExtension.from_string(text)
        assert other.master == [1]
        assert other.slave == [2]
        assert other.n_dof == 6
        assert_array_equal(other.el_dof.indices, ext.el_dof.indices)


class TestPeriodicSquare:
    """Two patches identified along their outer vertical edges."""

    def test_dof_count(self, square_two_patch):
        ext = NURBSExtension.from_string(_with_periodic(square_two_patch, [4], [2]))
        assert ext.n_dof == 16
        assert ext.n_elements == 12

    def test_identified_columns(self, square_two_patch):
        ext = NURBSExtension.from_string(_with_periodic(square_two_patch, [4], [2]))
        p0 = ext.get_patch_dofs(0)
        p1 = ext.get_patch_dofs(1)
        assert_array_equal(p0[0::3], p1[2::3])

    def test_connect_after_construction(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        ext.connect_boundaries([4], [2])
        assert ext.n_dof == 16
        assert ext._n_unmerged_dof == 20
        assert len(ext.weights) == ext.n_dof

    def test_connect_after_construction_keeps_weights(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        # weight per column and row, equal on the columns being identified
        columns = ([0.0, 10.0, 30.0], [30.0, 20.0, 0.0])
        weights = np.zeros(ext.n_dof)
        for p in range(2):
            for n, dof in enumerate(ext.get_patch_dofs(p)):
                weights[dof] = columns[p][n % 3] + n // 3 + 1
        ext.weights = weights
        before = [ext.weights[row] for row in ext.el_dof]

        ext.connect_boundaries([4], [2])
        assert len(ext.weights) == ext.n_dof == 16
        for e, row in enumerate(ext.el_dof):
            assert_allclose(ext.weights[row], before[e])

        other = NURBSExtension.from_string(ext.to_text())
        assert other.n_dof == 16
        assert_allclose(other.weights, ext.weights)

    def test_list_size_mismatch(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        with pytest.raises(NURBSTopologyError):
            ext.connect_boundaries([4], [])

    def test_unknown_attribute(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        with pytest.raises(NURBSTopologyError):
            ext.connect_boundaries([4], [9])

    def test_different_patch_counts(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        with pytest.raises(NURBSTopologyError):
            ext.connect_boundaries([4], [1])

    def test_incompatible_knot_vectors(self, square_single_patch):
        text = square_single_patch.replace("1 5 0 0 0.25 0.5 0.75 1 1\n\nunitweights",
                                           "1 4 0 0 1 2 3 3\n\nunitweights")
        with pytest.raises(NURBSTopologyError):
            NURBSExtension.from_string(_with_periodic(text, [1], [2]))


class TestPeriodicCube:
    """Front and back faces of a quadratic cube identified."""

    def test_dof_count(self, cube_single_patch):
        ext = NURBSExtension.from_string(_with_periodic(cube_single_patch, [2], [4]))
        assert ext.n_dof == 48
        assert all(len(row) == 27 for row in ext.el_dof)

    def test_faces_share_dofs(self, cube_single_patch):
        ext = NURBSExtension.from_string(_with_periodic(cube_single_patch, [2], [4]))
        grid = ext.get_patch_dofs(0).reshape(4, 4, 4)
        assert set(grid[:, 0, :].ravel()) == set(grid[:, 3, :].ravel())
        assert len(set(grid.ravel())) == 48

    def test_raised_order_keeps_identification(self, cube_single_patch):
        parent = NURBSExtension.from_string(_with_periodic(cube_single_patch, [2], [4]))
        ext = NURBSExtension.from_parent(parent, 3)
        # 5 x 5 x 5 control points, one layer of 25 identified
        assert ext.n_dof == 100
