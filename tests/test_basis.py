"""
Unit tests for the B-spline basis kernels.
"""

import pytest
import numpy as np
from numpy.testing import assert_array_almost_equal, assert_almost_equal

from watfNURBS.discretization.basis import eval_basis, eval_basis_first_der, eval_basis_ders
from watfNURBS.discretization.knot_vector import make_open_knot_vector


class TestEvalBasis:
    """Tests for the non-zero basis functions on one span."""

    def test_partition_of_unity(self):
        """Test that basis functions sum to 1 on every span."""
        kv = make_open_knot_vector(n_basis=6, degree=3)
        for u in np.linspace(0.0, 1.0, 17):
            s = kv.find_span(u)
            N = eval_basis(kv.knots, kv.degree, s, u)
            assert_almost_equal(np.sum(N), 1.0, decimal=14)
            assert np.all(N >= -1e-14)

    def test_bernstein_values(self):
        """Single element quadratic basis is the Bernstein basis."""
        knots = np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0])
        N = eval_basis(knots, 2, 2, 0.5)
        assert_array_almost_equal(N, [0.25, 0.5, 0.25])

    def test_hat_functions(self):
        """Linear basis functions are hat functions."""
        knots = np.array([0.0, 0.0, 0.5, 1.0, 1.0])
        N = eval_basis(knots, 1, 1, 0.25)
        assert_array_almost_equal(N, [0.5, 0.5])

    def test_degree_zero(self):
        """Degree 0 gives the characteristic function of the span."""
        knots = np.array([0.0, 0.5, 1.0])
        assert_array_almost_equal(eval_basis(knots, 0, 1, 0.7), [1.0])


class TestBasisDerivatives:
    """Tests for first and higher derivatives."""

    def test_first_derivative_bernstein(self):
        """Test known derivatives of the quadratic Bernstein basis at 0.5."""
        knots = np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0])
        dN = eval_basis_first_der(knots, 2, 2, 0.5)
        assert_array_almost_equal(dN, [-1.0, 0.0, 1.0])

    def test_ders_match_first_derivative(self):
        """The general kernel agrees with the first derivative kernel."""
        kv = make_open_knot_vector(n_basis=7, degree=3)
        for u in [0.1, 0.37, 0.5, 0.81]:
            s = kv.find_span(u)
            ders = eval_basis_ders(kv.knots, 3, s, u, 2)
            assert_array_almost_equal(ders[0], eval_basis(kv.knots, 3, s, u))
            assert_array_almost_equal(ders[1], eval_basis_first_der(kv.knots, 3, s, u))
            assert_almost_equal(np.sum(ders[1]), 0.0, decimal=12)
            assert_almost_equal(np.sum(ders[2]), 0.0, decimal=10)

    def test_first_derivative_finite_difference(self, loose_tolerance):
        """Derivatives agree with central differences inside a span."""
        kv = make_open_knot_vector(n_basis=6, degree=2)
        u, h = 0.4, 1e-6
        s = kv.find_span(u)
        fd = (eval_basis(kv.knots, 2, s, u + h) - eval_basis(kv.knots, 2, s, u - h)) / (2 * h)
        assert np.allclose(eval_basis_first_der(kv.knots, 2, s, u), fd,
                           atol=1e3 * loose_tolerance)

    def test_second_derivative_bernstein(self):
        """Second derivatives of the quadratic Bernstein basis are constant."""
        knots = np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0])
        ders = eval_basis_ders(knots, 2, 2, 0.3, 2)
        assert_array_almost_equal(ders[2], [2.0, -4.0, 2.0])

    def test_derivatives_above_degree_vanish(self):
        """Derivative orders above the degree are zero rows."""
        knots = np.array([0.0, 0.0, 0.5, 1.0, 1.0])
        ders = eval_basis_ders(knots, 1, 1, 0.25, 3)
        assert ders.shape == (4, 2)
        assert_array_almost_equal(ders[2:], np.zeros((2, 2)))
