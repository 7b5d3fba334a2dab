"""
Unit tests for the per-patch local-to-global index map.
"""

import pytest
import numpy as np
from numpy.testing import assert_array_equal

from watfNURBS.discretization.extension import NURBSExtension
from watfNURBS.discretization.patch_map import NURBSPatchMap, or_1d, or_2d


class TestOrientationHelpers:
    """Tests for the 1D and 2D orientation index helpers."""

    def test_or_1d(self):
        assert or_1d(0, 4, 1) == 0
        assert or_1d(0, 4, -1) == 3
        assert or_1d(3, 4, -1) == 0

    def test_or_2d_identity(self):
        assert or_2d(1, 2, 3, 4, 0) == 7

    def test_or_2d_is_permutation(self):
        N1, N2 = 3, 2
        for o in range(8):
            values = sorted(or_2d(n1, n2, N1, N2, o) for n1 in range(N1) for n2 in range(N2))
            assert values == list(range(N1 * N2))

    def test_or_2d_invalid(self):
        with pytest.raises(ValueError):
            or_2d(0, 0, 2, 2, 8)


class TestPatchMap2D:
    """Tests on a single linear patch with 4 x 4 elements."""

    def test_dof_map_corners_and_edges(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        p2g = NURBSPatchMap(ext)
        kvs = p2g.set_patch_dof_map(0)

        assert [kv.n_basis for kv in kvs] == [5, 5]
        assert (p2g.nx, p2g.ny) == (4, 4)
        assert p2g(0, 0) == 0
        assert p2g(4, 0) == 1
        assert p2g(4, 4) == 2
        assert p2g(0, 4) == 3
        assert p2g(1, 0) == 4
        assert p2g(0, 1) == 13
        assert p2g(1, 1) == 16

    def test_top_edge_numbered_from_lower_vertex(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        p2g = NURBSPatchMap(ext)
        p2g.set_patch_dof_map(0)
        # edge 3-2 is numbered starting at vertex 2
        assert p2g(3, 4) == 10
        assert p2g(1, 4) == 12

    def test_patch_indices(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        p2g = NURBSPatchMap(ext)
        p2g.set_patch_dof_map(0)
        idx = p2g.patch_indices((5, 5))
        assert len(idx) == 25
        assert_array_equal(idx[:5], [0, 4, 5, 6, 1])
        assert_array_equal(np.sort(idx), np.arange(25))

    def test_vertex_map(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        p2g = NURBSPatchMap(ext)
        p2g.set_patch_vertex_map(0)
        assert (p2g.nx, p2g.ny) == (4, 4)
        assert p2g(4, 4) == 2
        assert p2g(1, 1) == 16

    def test_boundary_map(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        p2g = NURBSPatchMap(ext)
        kvs, okv = p2g.set_bdr_patch_dof_map(2)

        assert len(kvs) == 1
        assert okv == (1,)
        assert p2g(0) == 3
        assert p2g(1) == 12
        assert p2g(4) == 2

    def test_shared_edge(self, square_two_patch):
        """Both patches see the same dofs on their common edge."""
        ext = NURBSExtension.from_string(square_two_patch)
        p2g = NURBSPatchMap(ext)
        p2g.set_patch_dof_map(0)
        left = [p2g(2, j) for j in range(4)]
        p2g.set_patch_dof_map(1)
        right = [p2g(0, j) for j in range(4)]
        assert left == right


class TestPatchMap1D:
    """Tests on two quadratic line patches."""

    def test_dof_map(self, line_two_patch):
        ext = NURBSExtension.from_string(line_two_patch)
        p2g = NURBSPatchMap(ext)
        p2g.set_patch_dof_map(1)
        assert_array_equal(p2g.patch_indices((4,)), [1, 5, 6, 2])

    def test_boundary_map(self, line_two_patch):
        ext = NURBSExtension.from_string(line_two_patch)
        p2g = NURBSPatchMap(ext)
        kvs, okv = p2g.set_bdr_patch_dof_map(1)
        assert kvs == ()
        assert okv == ()
        assert p2g(0) == 2


class TestPatchMap3D:
    """Tests on a single quadratic hexahedral patch."""

    def test_corners(self, cube_single_patch):
        ext = NURBSExtension.from_string(cube_single_patch)
        p2g = NURBSPatchMap(ext)
        p2g.set_patch_dof_map(0)
        assert p2g(0, 0, 0) == 0
        assert p2g(3, 0, 0) == 1
        assert p2g(3, 3, 3) == 6
        assert p2g(0, 0, 3) == 4

    def test_interior(self, cube_single_patch):
        ext = NURBSExtension.from_string(cube_single_patch)
        p2g = NURBSPatchMap(ext)
        p2g.set_patch_dof_map(0)
        # 8 vertices, 12 edges with 2 and 6 faces with 4 interior dofs
        assert p2g(1, 1, 1) == 56
        assert p2g(2, 2, 2) == 63

    def test_patch_indices_complete(self, cube_single_patch):
        ext = NURBSExtension.from_string(cube_single_patch)
        p2g = NURBSPatchMap(ext)
        p2g.set_patch_dof_map(0)
        idx = p2g.patch_indices((4, 4, 4))
        assert_array_equal(np.sort(idx), np.arange(64))
