"""
Tests for the multi-patch NURBS extension: numbering, tables, text format,
patch round trip and refinement.
"""

import io
import logging

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from watfNURBS.discretization.element import NURBSElementData
from watfNURBS.discretization.extension import NURBSExtension
from watfNURBS.errors import NURBSConfigurationError, NURBSTopologyError
from watfNURBS.geometry.primitives import make_patch_rectangle
from watfNURBS.io.text import TokenStream
from watfNURBS.topology.patch_topology import PatchTopology



def _rectangle_extension(p=2, n_elem_xi=2, n_elem_eta=3):
    """Single patch extension built from a patch instead of knot vectors."""
    edges = [[0, 1], [1, 2], [3, 2], [0, 3]]
    topo = PatchTopology(2, [[0, 1, 2, 3]], edges, 4, edges, bdr_attributes=[1, 2, 3, 4])
    patch = make_patch_rectangle(p=p, n_elem_xi=n_elem_xi, n_elem_eta=n_elem_eta)
    return NURBSExtension(topo, [0, 1, -1, 1], patches=[patch])


class TestSinglePatch:
    """Numbering of one linear patch with 4 x 4 elements."""

    def test_sizes(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)

        assert ext.dimension == 2
        assert ext.n_patches == 1
        assert ext.n_bdr_patches == 4
        assert ext.n_knot_vectors == 2
        assert ext.order == 1
        assert ext.n_elements == ext.n_global_elements == 16
        assert ext.n_bdr_elements == ext.n_global_bdr_elements == 16
        assert ext.n_vertices == ext.n_global_vertices == 25
        assert ext.n_dof == ext.n_total_dof == 25
        assert_allclose(ext.weights, np.ones(25))

    def test_element_dofs(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        assert len(ext.el_dof) == 16
        assert_array_equal(ext.get_element_dofs(0), [0, 4, 13, 16])
        assert_array_equal(ext.get_element_dofs(1), [4, 5, 16, 17])
        assert_array_equal(ext.get_element_ijk(1), [1, 0])
        assert_array_equal(ext.get_patch_elements(0), np.arange(16))

    def test_boundary_rows_within_elements(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        element_sets = [set(row) for row in ext.el_dof]
        for row in ext.bel_dof:
            assert len(row) == 2
            assert any(set(row) <= s for s in element_sets)

    def test_boundary_patch_elements(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        for b in range(4):
            assert len(ext.get_patch_bdr_elements(b)) == 4

    def test_element_topology(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        verts, attrs = ext.get_element_topology()
        assert verts.shape == (16, 4)
        assert_array_equal(verts[0], [0, 4, 16, 13])
        assert_array_equal(attrs, np.ones(16))

        bverts, battrs = ext.get_bdr_element_topology()
        assert bverts.shape == (16, 2)
        assert_array_equal(np.bincount(battrs), [0, 4, 4, 4, 4])

    def test_local_to_global(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        assert_array_equal(ext.get_vertex_local_to_global(), np.arange(25))
        assert_array_equal(ext.get_element_local_to_global(), np.arange(16))

    def test_patch_dofs(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        dofs = ext.get_patch_dofs(0)
        assert_array_equal(np.sort(dofs), np.arange(25))

    def test_knot_vector_access(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        assert ext.knot_ind(2) == 0
        kv, okv = ext.knot_vec_oriented(2, -1)
        assert kv is ext.knot_vectors[0]
        assert okv == 1
        assert len(ext.get_patch_knot_vectors(0)) == 2
        assert len(ext.get_bdr_patch_knot_vectors(0)) == 1
        assert ext.check_kv_direction(0) == [1, 1]
        assert ext.consistent_kv_sets()

    def test_check_bdr_patches(self, square_single_patch):
        NURBSExtension.from_string(square_single_patch).check_bdr_patches()

        text = square_single_patch.replace("3 1 3 2", "3 1 2 3")
        ext = NURBSExtension.from_string(text)
        with pytest.raises(NURBSTopologyError):
            ext.check_bdr_patches()

    def test_inconsistent_edge_to_knot(self, square_single_patch):
        text = square_single_patch.replace("0 3 2", "1 3 2")
        with pytest.raises(NURBSTopologyError):
            NURBSExtension.from_string(text)

    def test_missing_weights(self, square_single_patch):
        text = square_single_patch.replace("unitweights", "")
        with pytest.raises(NURBSTopologyError):
            NURBSExtension.from_string(text)

    def test_invalid_section(self, square_single_patch):
        text = square_single_patch.replace("knotvectors", "splines")
        with pytest.raises(NURBSTopologyError):
            NURBSExtension.from_string(text)


class TestTwoPatches:
    """Numbering of two patches sharing an edge."""

    def test_sizes(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        assert ext.n_elements == 12
        assert ext.n_bdr_elements == 14
        assert ext.n_vertices == 20
        assert ext.n_dof == 20
        assert_array_equal(ext.edge_to_knot, [0, 1, 0, 1, 2, 1, 2])
        assert_array_equal(ext.el_to_patch, [0] * 6 + [1] * 6)

    def test_shared_dofs(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        p0 = ext.get_patch_dofs(0)
        p1 = ext.get_patch_dofs(1)
        assert_array_equal(p0[2::3], p1[0::3])
        assert len(np.union1d(p0, p1)) == 20

    def test_variable_order(self, square_two_patch):
        text = square_two_patch.replace("1 3 0 0 0.5 1 1\n\n", "2 4 0 0 0 0.5 1 1 1\n\n")
        ext = NURBSExtension.from_string(text)
        assert ext.orders == [1, 1, 2]
        assert ext.order == -1

    def test_mesh_elements(self, square_two_patch):
        text = square_two_patch.replace(
            "unitweights", "mesh_elements\n6\n0\n1\n2\n3\n4\n5\n\nunitweights")
        ext = NURBSExtension.from_string(text)

        assert ext.n_global_elements == 12
        assert ext.n_elements == 6
        assert ext.n_bdr_elements == 0
        assert ext.n_vertices == 12
        assert ext.n_dof == 12
        assert_array_equal(ext.get_element_local_to_global(), np.arange(6))

        other = NURBSExtension.from_string(ext.to_text())
        assert other.n_elements == 6
        assert_array_equal(other.el_dof.indices, ext.el_dof.indices)

    def test_write_read(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        ext.weights = np.linspace(1.0, 2.0, ext.n_dof)
        other = NURBSExtension.from_string(ext.to_text(comments="# copy"))

        assert_array_equal(other.edge_to_knot, ext.edge_to_knot)
        assert_array_equal(other.el_dof.indices, ext.el_dof.indices)
        assert_array_equal(other.bel_dof.indices, ext.bel_dof.indices)
        assert_allclose(other.weights, ext.weights)
        for a, b in zip(other.knot_vectors, ext.knot_vectors):
            assert a == b

    def test_save_and_load(self, square_two_patch, tmp_path):
        ext = NURBSExtension.from_string(square_two_patch)
        filename = str(tmp_path / "mesh.txt")
        ext.save(filename)
        other = NURBSExtension.from_file(filename)
        assert other.n_dof == ext.n_dof

    def test_copy(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        other = ext.copy()
        assert other.owns_topology
        assert other.patch_topology is not ext.patch_topology
        other.weights[0] = 5.0
        assert ext.weights[0] == 1.0


class TestThreeDimensional:
    """Numbering of one quadratic hexahedral patch."""

    def test_sizes(self, cube_single_patch):
        ext = NURBSExtension.from_string(cube_single_patch)
        assert ext.n_elements == 8
        assert ext.n_bdr_elements == 24
        assert ext.n_dof == 64
        assert ext.n_vertices == 27
        assert all(len(row) == 27 for row in ext.el_dof)
        assert all(len(row) == 9 for row in ext.bel_dof)

    def test_boundary_faces(self, cube_single_patch):
        ext = NURBSExtension.from_string(cube_single_patch)
        grid = ext.get_patch_dofs(0).reshape(4, 4, 4)  # [k, j, i]
        expected = [grid[0], grid[:, 0, :], grid[:, :, 3],
                    grid[:, 3, :], grid[:, :, 0], grid[3]]
        for b, face in enumerate(expected):
            dofs = set()
            for be in ext.get_patch_bdr_elements(b):
                dofs.update(ext.get_bdr_element_dofs(be))
            assert dofs == set(face.ravel())


class TestOneDimensional:
    """Numbering of two quadratic line patches."""

    def test_numbering(self, line_two_patch):
        ext = NURBSExtension.from_string(line_two_patch)
        assert ext.n_vertices == 5
        assert ext.n_dof == 7
        assert ext.n_bdr_elements == 2
        assert_array_equal([list(r) for r in ext.el_dof],
                           [[0, 3, 4], [3, 4, 1], [1, 5, 6], [5, 6, 2]])
        assert_array_equal([list(r) for r in ext.bel_dof], [[0], [2]])

    def test_load_be_ignored(self, line_two_patch):
        ext = NURBSExtension.from_string(line_two_patch)
        be = NURBSElementData()
        ext.load_be(0, be)
        assert be.get_element() == -1


class TestFromParent:
    """Degree raised copies of an extension."""

    def test_raise_order(self, square_single_patch):
        parent = NURBSExtension.from_string(square_single_patch)
        ext = NURBSExtension.from_parent(parent, 2)

        assert ext.order == 2
        assert ext.n_elements == 16
        assert ext.n_dof == 36
        assert all(len(row) == 9 for row in ext.el_dof)
        assert ext.patch_topology is parent.patch_topology
        assert not ext.owns_topology
        assert parent.owns_topology

    def test_orders_per_knot_vector(self, square_single_patch):
        parent = NURBSExtension.from_string(square_single_patch)
        ext = NURBSExtension.from_parent(parent, [2, 1])
        assert ext.orders == [2, 1]
        assert ext.n_dof == 30

    def test_wrong_order_count(self, square_single_patch):
        parent = NURBSExtension.from_string(square_single_patch)
        with pytest.raises(NURBSConfigurationError):
            NURBSExtension.from_parent(parent, [2, 2, 2])

    def test_keeps_active_elements(self, square_two_patch):
        text = square_two_patch.replace(
            "unitweights", "mesh_elements\n6\n6\n7\n8\n9\n10\n11\n\nunitweights")
        parent = NURBSExtension.from_string(text)
        ext = NURBSExtension.from_parent(parent, 2)
        assert ext.n_elements == 6
        assert_array_equal(ext.get_element_local_to_global(), np.arange(6, 12))


class TestElementLoading:
    """Loading elements into NURBS finite element data."""

    def test_load_fe(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        fe = NURBSElementData()
        ext.load_fe(5, fe)

        assert fe.get_element() == 5
        assert fe.get_patch() == 0
        assert fe.ijk == tuple(ext.get_element_ijk(5))
        assert len(fe.knot_vectors) == 2
        assert fe.n_dof == 4
        assert_allclose(np.sum(fe.calc_shape([0.3, 0.6])), 1.0)

    def test_load_be(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        be = NURBSElementData()
        ext.load_be(3, be)
        assert be.get_element() == 3
        assert len(be.knot_vectors) == 1
        assert be.ijk == tuple(ext.bel_to_ijk[3])
        assert len(be.weights) == 2

    def test_wrong_element_type(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        with pytest.raises(TypeError):
            ext.load_fe(0, object())
        with pytest.raises(TypeError):
            ext.load_be(0, object())


class TestPatchRoundTrip:
    """Conversion between dof coordinates and patches."""

    def test_coordinates_survive(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        rng = np.random.default_rng(0)
        coords = rng.random((ext.n_dof, 2))
        ext.weights = 1.0 + rng.random(ext.n_dof)
        weights = ext.weights.copy()

        ext.convert_to_patches(coords)
        assert ext.have_patches
        assert ext.patches[0].ncp == (3, 4)

        back = ext.set_coords_from_patches()
        assert not ext.have_patches
        assert_allclose(back, coords)
        assert_allclose(ext.weights, weights)

    def test_wrong_coordinate_count(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        with pytest.raises(NURBSTopologyError):
            ext.convert_to_patches(np.zeros((3, 2)))

    def test_patches_section(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        ext.convert_to_patches(np.zeros((ext.n_dof, 2)))
        text = ext.to_text()
        assert "patches" in text
        assert "weights" not in text

        other = NURBSExtension.from_string(text)
        assert other.have_patches
        assert other.n_dof == ext.n_dof

    def test_refinement_requires_patches(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        with pytest.raises(NURBSTopologyError):
            ext.uniform_refinement()
        with pytest.raises(NURBSTopologyError):
            ext.set_coords_from_patches()


class TestRefinement:
    """Refinement of an extension built from patches."""

    def test_from_patches(self):
        ext = _rectangle_extension()
        assert ext.have_patches
        assert ext.n_dof == 20
        assert [kv.n_basis for kv in ext.knot_vectors] == [4, 5]

    def test_uniform_refinement(self):
        ext = _rectangle_extension()
        ext.uniform_refinement()
        ext.set_knots_from_patches()
        assert ext.n_elements == 24
        assert ext.n_dof == 48

        coords = ext.set_coords_from_patches()
        assert coords.shape == (48, 2)
        assert coords.min() >= -1e-12
        assert coords.max() <= 1.0 + 1e-12

    def test_degree_elevate(self):
        ext = _rectangle_extension()
        ext.degree_elevate(1)
        ext.set_knots_from_patches()
        assert ext.order == 3
        assert ext.n_dof == 6 * 8

    def test_degree_elevate_cap(self):
        ext = _rectangle_extension()
        ext.degree_elevate(3, degree=3)
        assert ext.patches[0].degrees == (3, 3)

    def test_knot_insert(self):
        ext = _rectangle_extension()
        ext.knot_insert([[0.25], [0.5]])
        ext.set_knots_from_patches()
        assert ext.n_dof == 5 * 6

    def test_knot_insert_count(self):
        ext = _rectangle_extension()
        with pytest.raises(NURBSConfigurationError):
            ext.knot_insert([[0.25]])


class TestSolutionIO:
    """Reading and writing dof values patch by patch."""

    def test_print_and_load(self, square_two_patch):
        ext = NURBSExtension.from_string(square_two_patch)
        values = np.arange(ext.n_dof, dtype=float)
        out = io.StringIO()
        ext.print_solution(values, out)

        loaded = ext.load_solution(TokenStream(out.getvalue()))
        assert loaded.shape == (ext.n_dof, 1)
        assert_allclose(loaded[:, 0], values)

    def test_vector_values(self, square_single_patch):
        ext = NURBSExtension.from_string(square_single_patch)
        values = np.arange(2 * ext.n_dof, dtype=float).reshape(-1, 2)
        out = io.StringIO()
        ext.print_solution(values, out)
        assert_allclose(ext.load_solution(TokenStream(out.getvalue()), vdim=2), values)


class TestCharacteristics:

    def test_print_characteristics(self, square_single_patch, caplog):
        ext = NURBSExtension.from_string(square_single_patch)
        out = io.StringIO()
        with caplog.at_level(logging.INFO, logger="watfNURBS"):
            text = ext.print_characteristics(out)

        assert out.getvalue() == text
        assert "NumOfActiveDofs     = 25" in text
        assert "1 5 0 0 0.25 0.5 0.75 1 1" in text
        assert "NumOfElements       = 16" in caplog.text
