"""
Knot vector for multi-patch NURBS.

A knot vector is a non-decreasing sequence of real numbers that defines
the parametric domain and basis function support for B-splines/NURBS.

Mathematical background:
- A knot vector of degree p with n control points holds n+p+1 knots
- Knot spans are indexed by i in [0, n-p) and cover [u_{p+i}, u_{p+i+1}]
- A span of non-zero length is an element; repeated interior knots
  produce empty spans that are skipped when elements are counted
- Basis evaluation works in element-local coordinates xi in [0, 1];
  a negative span index -1-i evaluates span i from its far end (xi -> 1-xi)

Structural operations (degree elevation, refinement) return new knot
vectors; the original is never modified in place.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple, Optional, Sequence, TextIO

import numpy as np

from ..errors import NURBSConfigurationError, NURBSTopologyError
from ..io.config import NURBSConfig, default_config
from ..io.text import TokenStream, format_values
from .basis import eval_basis, eval_basis_first_der, eval_basis_ders

logger = logging.getLogger(__name__)


@dataclass
class KnotVector:
    """
    Represents a univariate knot vector.

    Attributes:
        knots: The knot values (non-decreasing sequence)
        degree: Polynomial degree p

    Properties computed:
        n_basis: Number of basis functions (control points)
        n_elements: Number of non-zero measure knot spans
        n_knot_spans: Number of knot spans including empty ones
        elements: List of (start, end) parametric coordinates for each element
    """
    knots: np.ndarray
    degree: int

    def __post_init__(self):
        self.knots = np.array(self.knots, dtype=np.float64)
        self.degree = int(self.degree)
        self._validate()
        self._compute_elements()

    def _validate(self):
        """Validate knot vector properties."""
        if self.degree < 0:
            raise NURBSConfigurationError(f"Degree must be non-negative, got {self.degree}")
        if self.knots.ndim != 1:
            raise ValueError("Knot vector must be one-dimensional.")
        if len(self.knots) < 2 * (self.degree + 1):
            raise ValueError(
                f"Knot vector too short for degree {self.degree}. "
                f"Need at least {2 * (self.degree + 1)} knots, got {len(self.knots)}."
            )
        if not np.all(np.diff(self.knots) >= 0):
            raise ValueError("Knot vector must be non-decreasing.")

    def _compute_elements(self):
        """
        Compute the element spans.

        Only spans in the interior range [p, n) count; a span is an element
        when its two knots differ.
        """
        p = self.degree
        spans = [i for i in range(p, self.n_basis)
                 if self.knots[i] != self.knots[i + 1]]
        self._element_spans = np.array(spans, dtype=int)
        self._elements = [(self.knots[i], self.knots[i + 1]) for i in spans]

    # -------------------------------------------------------------------------
    # Construction helpers
    # -------------------------------------------------------------------------

    @classmethod
    def from_stream(cls, stream: TokenStream) -> 'KnotVector':
        """
        Read a knot vector written as "<degree> <ncp> <knots...>".
        """
        degree = stream.next_int()
        ncp = stream.next_int()
        if degree < 0 or ncp <= degree:
            raise NURBSTopologyError(
                f"Invalid knot vector header: degree={degree}, ncp={ncp}"
            )
        knots = stream.next_floats(ncp + degree + 1)
        return cls(knots, degree)

    def to_text(self) -> str:
        """Single-line text form "<degree> <ncp> <knots...>"."""
        return f"{self.degree} {self.n_basis} {format_values(self.knots)}"

    def write(self, out: TextIO) -> None:
        out.write(self.to_text() + "\n")

    def copy(self) -> 'KnotVector':
        return KnotVector(self.knots.copy(), self.degree)

    def __eq__(self, other) -> bool:
        if not isinstance(other, KnotVector):
            return NotImplemented
        return (self.degree == other.degree
                and len(self.knots) == len(other.knots)
                and bool(np.all(self.knots == other.knots)))

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def n_basis(self) -> int:
        """Number of basis functions (control points)."""
        return len(self.knots) - self.degree - 1

    @property
    def n_elements(self) -> int:
        """Number of non-zero measure knot spans (elements)."""
        return len(self._elements)

    @property
    def n_knot_spans(self) -> int:
        """Number of knot spans, empty ones included."""
        return self.n_basis - self.degree

    @property
    def elements(self) -> List[Tuple[float, float]]:
        """List of element intervals as (u_start, u_end) tuples."""
        return self._elements.copy()

    @property
    def element_spans(self) -> np.ndarray:
        """Span indices (in [0, n_knot_spans)) of the elements."""
        return self._element_spans - self.degree

    @property
    def unique_knots(self) -> np.ndarray:
        return np.unique(self.knots)

    @property
    def domain(self) -> Tuple[float, float]:
        """Parametric domain (first knot, last knot)."""
        return (self.knots[0], self.knots[-1])

    def is_element(self, i: int) -> bool:
        """True if knot span i has non-zero length."""
        if i < 0 or i >= self.n_knot_spans:
            return False
        p = self.degree
        return self.knots[p + i] != self.knots[p + i + 1]

    def get_knot_location(self, xi: float, ni: int) -> float:
        """Map local coordinate xi in [0, 1] onto [knots[ni], knots[ni+1]]."""
        return (self.knots[ni + 1] - self.knots[ni]) * xi + self.knots[ni]

    def greville_abscissae(self) -> np.ndarray:
        """
        Greville abscissae: averages of p consecutive knots,
        xi_i = (u_{i+1} + ... + u_{i+p}) / p.
        """
        p = self.degree
        if p == 0:
            return 0.5 * (self.knots[:-1] + self.knots[1:])
        return np.array([np.sum(self.knots[i + 1:i + p + 1]) / p
                         for i in range(self.n_basis)])

    # -------------------------------------------------------------------------
    # Span search
    # -------------------------------------------------------------------------

    def find_span(self, u: float) -> int:
        """
        Find the knot span index containing parameter value u.

        For u in [u_s, u_{s+1}), returns s. The last span is closed:
        u equal to the last knot returns n-1.

        Parameters:
            u: Parameter value

        Returns:
            Span index s in [p, n-1]
        """
        n = self.n_basis
        p = self.degree

        if u >= self.knots[n]:
            return n - 1
        if u <= self.knots[p]:
            return p

        low = p
        high = n
        mid = (low + high) // 2

        while u < self.knots[mid] or u >= self.knots[mid + 1]:
            if u < self.knots[mid]:
                high = mid
            else:
                low = mid
            mid = (low + high) // 2

        return mid

    def find_knot_span(self, u: float) -> int:
        """Span index relative to the first interior span, in [0, n_knot_spans)."""
        return self.find_span(u) - self.degree

    # -------------------------------------------------------------------------
    # Basis evaluation
    # -------------------------------------------------------------------------

    def _check_degree(self, config: Optional[NURBSConfig]):
        max_degree = (config or default_config()).max_degree
        if self.degree > max_degree:
            raise NURBSConfigurationError(
                f"Degree {self.degree} exceeds the supported maximum {max_degree}"
            )

    def _local_to_span(self, i: int, xi: float) -> Tuple[int, float]:
        """Knot index and parameter value for a signed span index."""
        ip = i + self.degree if i >= 0 else -1 - i + self.degree
        if ip < self.degree or ip >= self.n_basis:
            raise IndexError(f"Knot span {i} outside [0, {self.n_knot_spans})")
        u = self.get_knot_location(xi if i >= 0 else 1.0 - xi, ip)
        return ip, u

    def _span_scale(self, i: int, ip: int) -> float:
        """d u / d xi, negative when the span is traversed backwards."""
        h = self.knots[ip + 1] - self.knots[ip]
        return h if i >= 0 else -h

    def calc_shape(self, i: int, xi: float,
                   config: Optional[NURBSConfig] = None) -> np.ndarray:
        """
        Evaluate the p+1 non-zero basis functions on knot span i.

        Parameters:
            i: Knot span index; -1-i evaluates span i with xi -> 1-xi
            xi: Local coordinate in [0, 1]

        Returns:
            Array of shape (p+1,)
        """
        self._check_degree(config)
        ip, u = self._local_to_span(i, xi)
        return eval_basis(self.knots, self.degree, ip, u)

    def calc_dshape(self, i: int, xi: float,
                    config: Optional[NURBSConfig] = None) -> np.ndarray:
        """
        First derivatives of the non-zero basis functions with respect to
        the local coordinate xi.
        """
        self._check_degree(config)
        ip, u = self._local_to_span(i, xi)
        return eval_basis_first_der(self.knots, self.degree, ip, u) * self._span_scale(i, ip)

    def calc_d2shape(self, i: int, xi: float,
                     config: Optional[NURBSConfig] = None) -> np.ndarray:
        return self.calc_dnshape(2, i, xi, config)

    def calc_dnshape(self, n: int, i: int, xi: float,
                     config: Optional[NURBSConfig] = None) -> np.ndarray:
        """
        n-th derivatives of the non-zero basis functions with respect to xi.

        Parameters:
            n: Derivative order (n >= 1)
            i: Signed knot span index
            xi: Local coordinate in [0, 1]
        """
        if n < 1:
            raise NURBSConfigurationError(f"Derivative order must be positive, got {n}")
        self._check_degree(config)
        ip, u = self._local_to_span(i, xi)
        ders = eval_basis_ders(self.knots, self.degree, ip, u, n)
        return ders[n] * self._span_scale(i, ip) ** n

    # -------------------------------------------------------------------------
    # Structural operations
    # -------------------------------------------------------------------------

    def flip(self) -> 'KnotVector':
        """
        Return the knot vector reflected about the midpoint of its domain.

        Interior knots knots[p+1 : n] are reversed and mirrored; the end
        knots stay in place.
        """
        apb = self.knots[0] + self.knots[-1]
        p, n = self.degree, self.n_basis
        knots = self.knots.copy()
        knots[p + 1:n] = apb - self.knots[p + 1:n][::-1]
        return KnotVector(knots, p)

    def uniform_refinement(self) -> np.ndarray:
        """Midpoints of all non-zero knot spans, one new knot per element."""
        k = self.knots
        mask = k[:-1] != k[1:]
        return 0.5 * (k[:-1][mask] + k[1:][mask])

    def degree_elevate(self, t: int) -> 'KnotVector':
        """
        Knot vector of the degree-elevated spline space of the same geometry.

        Every distinct knot gains multiplicity t, so the continuity across
        interior knots is unchanged and n' = n + n_elements * t.

        Parameters:
            t: Degree increase (t >= 0)
        """
        if t < 0:
            raise NURBSConfigurationError(
                f"Degree elevation by {t}: the degree can only be raised"
            )
        if t == 0:
            return self.copy()
        unique = np.unique(self.knots)
        knots = np.sort(np.concatenate([self.knots, np.repeat(unique, t)]))
        return KnotVector(knots, self.degree + t)

    def k_elevate(self, t: int) -> 'KnotVector':
        """
        Raise the degree keeping interior knots and their multiplicities.

        The end knots are repeated degree+t+1 times and n' = n + t. The
        resulting space is smoother than the one of degree_elevate and
        describes the same parametric domain.
        """
        if t < 0:
            raise NURBSConfigurationError(
                f"Degree elevation by {t}: the degree can only be raised"
            )
        p = self.degree + t
        interior = self.knots[self.degree + 1:self.n_basis]
        knots = np.concatenate([np.full(p + 1, self.knots[0]), interior,
                                np.full(p + 1, self.knots[-1])])
        return KnotVector(knots, p)

    def insert_knots(self, new_knots: Sequence[float]) -> 'KnotVector':
        """Knot vector with new_knots merged in (no control point update)."""
        if len(new_knots) == 0:
            return self.copy()
        knots = np.sort(np.concatenate([self.knots, np.asarray(new_knots, dtype=np.float64)]))
        return KnotVector(knots, self.degree)

    def difference(self, other: 'KnotVector',
                   config: Optional[NURBSConfig] = None) -> np.ndarray:
        """
        Knots present in the finer of two knot vectors but not in the coarser.

        Both knot vectors must have the same degree and one must refine the
        other. Knots are matched in order within the configured tolerance.

        Returns:
            Sorted array of the knots to insert into the coarser vector
        """
        if self.degree != other.degree:
            raise NURBSTopologyError(
                "Can not compare knot vectors with different degrees "
                f"({self.degree} and {other.degree})"
            )
        if len(other.knots) < len(self.knots):
            return other.difference(self, config)

        tol = (config or default_config()).knot_tolerance
        coarse = self.knots
        diff = []
        i = 0
        for u in other.knots:
            if i < len(coarse) and abs(coarse[i] - u) < tol:
                i += 1
            else:
                diff.append(u)
        if i != len(coarse):
            raise NURBSTopologyError("Knot vectors are not nested")
        return np.array(diff, dtype=np.float64)

    # -------------------------------------------------------------------------
    # Interpolation
    # -------------------------------------------------------------------------

    def find_maxima(self, config: Optional[NURBSConfig] = None
                    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Locate the maximum of every basis function.

        For each control point the maximum is searched on every element in
        its support by interval shrinking. The search stops when the value
        no longer increases, the interval is narrower than the configured
        tolerance, or the iteration cap is hit.

        Returns:
            (spans, xi, u): span index, local coordinate and parameter value
            of the maximum of each basis function
        """
        config = config or default_config()
        p = self.degree
        n = self.n_basis
        maxima = np.zeros(n)
        spans = np.zeros(n, dtype=int)
        xi = np.zeros(n)
        u = np.zeros(n)

        for j in range(n):
            for d in range(p + 1):
                i = j - d
                if not self.is_element(i):
                    continue

                arg1 = 1e-16
                max1 = self.calc_shape(i, arg1, config)[d]
                arg2 = 1.0 - 1e-16
                max2 = self.calc_shape(i, arg2, config)[d]
                arg = 0.5 * (arg1 + arg2)
                value = self.calc_shape(i, arg, config)[d]

                iterations = 0
                while value > max1 or value > max2:
                    if iterations >= config.maxima_max_iterations:
                        logger.warning(
                            "Basis maximum search for control point %d stopped "
                            "after %d iterations", j, iterations
                        )
                        break
                    if arg2 - arg1 < config.maxima_tolerance:
                        break
                    if max1 < max2:
                        max1, arg1 = value, arg
                    else:
                        max2, arg2 = value, arg
                    arg = 0.5 * (arg1 + arg2)
                    value = self.calc_shape(i, arg, config)[d]
                    iterations += 1

                if value > maxima[j]:
                    maxima[j] = value
                    spans[j] = i
                    xi[j] = arg
                    u[j] = self.get_knot_location(arg, i + p)

        return spans, xi, u

    def collocation_matrix(self, config: Optional[NURBSConfig] = None
                           ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Collocation matrix at the basis function maxima.

        Returns:
            (A, u) with A[i, j] = N_j(u_i)
        """
        p = self.degree
        n = self.n_basis
        spans, xi, u = self.find_maxima(config)
        A = np.zeros((n, n))
        for i in range(n):
            shape = self.calc_shape(spans[i], xi[i], config)
            A[i, spans[i]:spans[i] + p + 1] = shape
        return A, u

    def find_interpolant(self, data: np.ndarray,
                         config: Optional[NURBSConfig] = None) -> np.ndarray:
        """
        Control values whose spline interpolates data at the basis maxima.

        Piegl & Tiller, "The NURBS Book", Algorithm A9.1.

        Parameters:
            data: Values at the collocation points, shape (n,) or (n, m)

        Returns:
            Control values with the same shape as data
        """
        data = np.asarray(data, dtype=np.float64)
        if data.shape[0] != self.n_basis:
            raise ValueError(
                f"Expected {self.n_basis} data values, got {data.shape[0]}"
            )
        A, _ = self.collocation_matrix(config)
        return np.linalg.solve(A, data)


def make_open_knot_vector(n_basis: int, degree: int,
                          domain: Tuple[float, float] = (0.0, 1.0)) -> KnotVector:
    """
    Create an open (clamped) uniform knot vector.

    Parameters:
        n_basis: Number of basis functions desired
        degree: Polynomial degree p
        domain: Parametric domain (start, end)

    Returns:
        KnotVector with uniform internal knots
    """
    p = degree
    n_internal = n_basis - p - 1

    if n_internal < 0:
        raise ValueError(
            f"Cannot create knot vector: n_basis={n_basis} too small for degree={degree}"
        )

    a, b = domain
    internal = np.linspace(a, b, n_internal + 2)[1:-1]
    knots = np.concatenate([[a] * (p + 1), internal, [b] * (p + 1)])

    return KnotVector(knots, degree)
