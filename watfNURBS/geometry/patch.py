"""
Tensor-product NURBS patch in homogeneous coordinates.

A patch of parametric dimension 1, 2 or 3 is a tensor product of knot
vectors together with a net of control points. Control points are stored
in homogeneous form: the cartesian coordinates multiplied by the weight,
followed by the weight itself, so a patch in R^d carries Dim = d+1 values
per control point.

    C(u) = sum_i N_i(u) * (w_i P_i)  /  sum_i N_i(u) * w_i

Storage:
- data has shape (n_0, n_1, ..., Dim) so data[i, j] is control point (i, j)
- the text format lists control points with index i fastest, then j, then k

Directional algorithms (knot insertion, degree elevation) work on a
SliceView: the control net seen as a matrix whose rows run along one
tensor direction and whose columns hold everything else.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, TextIO, Union

import numpy as np

from ..discretization.knot_vector import KnotVector
from ..discretization.basis import eval_basis
from ..errors import NURBSConfigurationError, NURBSTopologyError
from ..io.text import TokenStream, format_values

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SliceView:
    """
    Control net of a patch seen along one tensor direction.

    Attributes:
        direction: Tensor direction of the rows
        rows: Array of shape (extent, ...) sharing memory with the patch
    """
    direction: int
    rows: np.ndarray

    @property
    def extent(self) -> int:
        """Number of control points along the direction."""
        return self.rows.shape[0]

    @property
    def slice_length(self) -> int:
        """Number of values in one row (all other directions times Dim)."""
        return int(np.prod(self.rows.shape[1:]))

    def matrix(self) -> np.ndarray:
        """Rows flattened to shape (extent, slice_length)."""
        return self.rows.reshape(self.extent, self.slice_length)


class NURBSPatch:
    """
    Tensor-product NURBS patch owning its knot vectors and control net.

    Attributes:
        knot_vectors: One KnotVector per parametric direction (1 to 3)
        dim: Values per control point (physical dimension + 1)
        data: Homogeneous control points, shape (n_0, ..., n_{d-1}, dim)
    """

    def __init__(self, knot_vectors: Sequence[KnotVector], dim: int,
                 control_points: Optional[np.ndarray] = None):
        """
        Initialize a patch.

        Parameters:
            knot_vectors: Knot vectors, deep-copied into the patch
            dim: Homogeneous dimension (physical dimension + 1)
            control_points: Homogeneous control points, either shaped
                (n_0, ..., dim) or flat (N, dim) with index i fastest.
                Defaults to zeros.
        """
        if not 1 <= len(knot_vectors) <= 3:
            raise NURBSConfigurationError(
                f"A patch has 1 to 3 knot vectors, got {len(knot_vectors)}"
            )
        if dim < 2:
            raise NURBSConfigurationError(f"Homogeneous dimension must be >= 2, got {dim}")

        self._kv: List[KnotVector] = [kv.copy() for kv in knot_vectors]
        self._dim = int(dim)

        shape = self.ncp + (self._dim,)
        if control_points is None:
            self._data = np.zeros(shape)
        else:
            cp = np.asarray(control_points, dtype=np.float64)
            if cp.shape == shape:
                self._data = cp.copy()
            elif cp.ndim == 2 and cp.shape == (self.n_control_points, self._dim):
                self._data = _from_lexicographic(cp, self.ncp)
            else:
                raise ValueError(
                    f"Control points of shape {cp.shape} do not match patch shape {shape}"
                )

    @classmethod
    def from_cartesian(cls, knot_vectors: Sequence[KnotVector],
                       points: np.ndarray,
                       weights: Optional[np.ndarray] = None) -> 'NURBSPatch':
        """
        Build a patch from cartesian control points and weights.

        Parameters:
            knot_vectors: Knot vectors per direction
            points: Cartesian points, shape (n_0, ..., d) or (N, d) with i fastest
            weights: Weights with matching leading shape, defaults to 1.0
        """
        points = np.asarray(points, dtype=np.float64)
        if weights is None:
            weights = np.ones(points.shape[:-1])
        weights = np.asarray(weights, dtype=np.float64)
        if np.any(weights <= 0):
            raise ValueError("All weights must be positive")
        homogeneous = np.concatenate([points * weights[..., None], weights[..., None]], axis=-1)
        return cls(knot_vectors, points.shape[-1] + 1, homogeneous)

    # -------------------------------------------------------------------------
    # Text I/O
    # -------------------------------------------------------------------------

    @classmethod
    def from_stream(cls, stream: TokenStream) -> 'NURBSPatch':
        """
        Read a patch block:

            knotvectors
            <n>
            <kv> ...
            dimension
            <d>
            controlpoints | controlpoints_homogeneous | controlpoints_cartesian
            <(d+1) values per control point> ...

        Cartesian control points are multiplied by their weight.
        """
        stream.expect("knotvectors")
        n_kv = stream.next_int()
        if not 1 <= n_kv <= 3:
            raise NURBSTopologyError(f"A patch has 1 to 3 knot vectors, got {n_kv}")
        kvs = [KnotVector.from_stream(stream) for _ in range(n_kv)]

        stream.expect("dimension")
        d = stream.next_int()
        if d < 1:
            raise NURBSTopologyError(f"Invalid patch dimension {d}")

        section = stream.next()
        n_cp = int(np.prod([kv.n_basis for kv in kvs]))
        values = stream.next_floats(n_cp * (d + 1)).reshape(n_cp, d + 1)
        if section == "controlpoints_cartesian":
            values[:, :d] *= values[:, d:]
        elif section not in ("controlpoints", "controlpoints_homogeneous"):
            raise NURBSTopologyError(f"Unknown control point section '{section}'")
        return cls(kvs, d + 1, values)

    def write(self, out: TextIO) -> None:
        """Write the patch block with homogeneous control points."""
        out.write(f"knotvectors\n{len(self._kv)}\n")
        for kv in self._kv:
            kv.write(out)
        out.write(f"\ndimension\n{self._dim - 1}\n\ncontrolpoints\n")
        for row in self.control_points_lexicographic():
            out.write(format_values(row) + "\n")

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def knot_vectors(self) -> Tuple[KnotVector, ...]:
        return tuple(self._kv)

    def kv(self, direction: int) -> KnotVector:
        self._check_direction(direction)
        return self._kv[direction]

    @property
    def n_dirs(self) -> int:
        """Number of parametric directions."""
        return len(self._kv)

    @property
    def dim(self) -> int:
        """Homogeneous dimension (physical dimension + 1)."""
        return self._dim

    @property
    def ncp(self) -> Tuple[int, ...]:
        """Number of control points per direction."""
        return tuple(kv.n_basis for kv in self._kv)

    @property
    def n_control_points(self) -> int:
        return int(np.prod(self.ncp))

    @property
    def degrees(self) -> Tuple[int, ...]:
        return tuple(kv.degree for kv in self._kv)

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def weights(self) -> np.ndarray:
        return self._data[..., -1].copy()

    @property
    def cartesian(self) -> np.ndarray:
        """Cartesian control points, shape (n_0, ..., dim-1)."""
        return self._data[..., :-1] / self._data[..., -1:]

    def control_points_lexicographic(self) -> np.ndarray:
        """Homogeneous control points as (N, dim), index i fastest."""
        return _to_lexicographic(self._data)

    def copy(self) -> 'NURBSPatch':
        return NURBSPatch(self._kv, self._dim, self._data)

    def _check_direction(self, direction: int):
        if direction < 0 or direction >= len(self._kv):
            raise NURBSConfigurationError(
                f"Incorrect direction {direction} for a patch with {len(self._kv)} directions"
            )

    def _replace(self, direction: int, kv: KnotVector, rows: np.ndarray):
        """
        Swap in a new knot vector and control net for one direction.

        rows has shape (kv.n_basis, slice_length) in SliceView order.
        """
        rest = tuple(int(s) for k, s in enumerate(self._data.shape) if k != direction)
        new_rows = rows.reshape((kv.n_basis,) + rest)
        new_kv = list(self._kv)
        new_kv[direction] = kv
        self._data = np.ascontiguousarray(np.moveaxis(new_rows, 0, direction))
        self._kv = new_kv

    # -------------------------------------------------------------------------
    # Directional views
    # -------------------------------------------------------------------------

    def slice_view(self, direction: int) -> SliceView:
        """
        View of the control net with rows along one direction.

        The view shares memory with the patch; writing into view.rows
        modifies the control points.
        """
        self._check_direction(direction)
        return SliceView(direction, np.moveaxis(self._data, direction, 0))

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate_homogeneous(self, u: Sequence[float]) -> np.ndarray:
        """Homogeneous point at parameter values u (one per direction)."""
        if len(u) != self.n_dirs:
            raise ValueError(f"Expected {self.n_dirs} parameter values, got {len(u)}")
        block = self._data
        for d in reversed(range(self.n_dirs)):
            kv = self._kv[d]
            span = kv.find_span(u[d])
            N = eval_basis(kv.knots, kv.degree, span, u[d])
            local = np.take(block, np.arange(span - kv.degree, span + 1), axis=d)
            block = np.tensordot(N, np.moveaxis(local, d, 0), axes=(0, 0))
        return block

    def evaluate(self, u: Sequence[float]) -> np.ndarray:
        """Cartesian point at parameter values u (one per direction)."""
        h = self.evaluate_homogeneous(u)
        return h[:-1] / h[-1]

    # -------------------------------------------------------------------------
    # Refinement
    # -------------------------------------------------------------------------

    def knot_insert(self, direction: int,
                    knots: Union[Sequence[float], np.ndarray, KnotVector]) -> None:
        """
        Insert knots in one direction (Boehm / Oslo refinement).

        Parameters:
            direction: Tensor direction
            knots: New knot values, or a target KnotVector. A target with a
                higher degree first elevates the patch; a lower degree is
                an error. The knots missing from the patch are then inserted.
        """
        self._check_direction(direction)
        if isinstance(knots, KnotVector):
            self._knot_insert_kv(direction, knots)
            return

        new_knots = np.sort(np.asarray(knots, dtype=np.float64))
        if new_knots.size == 0:
            return

        kv = self._kv[direction]
        lo, hi = kv.domain
        if new_knots[0] < lo or new_knots[-1] > hi:
            raise NURBSConfigurationError(
                f"Knots to insert must lie in [{lo}, {hi}]"
            )
        view = self.slice_view(direction)
        new_kv, rows = _refine_rows(kv, view.matrix(), new_knots)
        self._replace(direction, new_kv, rows)
        logger.debug("Inserted %d knots in direction %d", new_knots.size, direction)

    def _knot_insert_kv(self, direction: int, target: KnotVector) -> None:
        t = target.degree - self._kv[direction].degree
        if t < 0:
            raise NURBSConfigurationError(
                f"Target knot vector degree {target.degree} is lower than "
                f"the patch degree {self._kv[direction].degree}"
            )
        if t > 0:
            self.degree_elevate(direction, t)
        if len(target.knots) < len(self._kv[direction].knots):
            raise NURBSTopologyError(
                "Target knot vector is coarser than the patch knot vector"
            )
        diff = self._kv[direction].difference(target)
        if diff.size > 0:
            self.knot_insert(direction, diff)

    def knot_insert_all(self, knots: Sequence[Union[Sequence[float], KnotVector]]) -> None:
        """Insert knots (or match target knot vectors) in every direction."""
        if len(knots) != self.n_dirs:
            raise NURBSConfigurationError(
                f"Expected {self.n_dirs} knot sets, got {len(knots)}"
            )
        for direction, k in enumerate(knots):
            self.knot_insert(direction, k)

    def uniform_refinement(self) -> None:
        """Split every element in half in all directions."""
        for direction in range(self.n_dirs):
            self.knot_insert(direction, self._kv[direction].uniform_refinement())

    def degree_elevate(self, direction: int, t: int) -> None:
        """
        Raise the degree in one direction (or all with direction=-1) by t.

        The geometry is unchanged; every distinct knot gains multiplicity t.
        """
        if direction == -1:
            for d in range(self.n_dirs):
                self.degree_elevate(d, t)
            return
        self._check_direction(direction)
        if t < 0:
            raise NURBSConfigurationError(f"Degree elevation by {t}: the degree can only be raised")
        if t == 0:
            return
        kv = self._kv[direction]
        new_kv, rows = _elevate_rows(kv, self.slice_view(direction).matrix(), t)
        self._replace(direction, new_kv, rows)
        logger.debug("Elevated direction %d from degree %d to %d",
                     direction, kv.degree, new_kv.degree)

    def make_uniform_degree(self, degree: int = -1) -> int:
        """
        Elevate all directions to a common degree.

        Parameters:
            degree: Target degree, -1 for the current maximum

        Returns:
            The common degree
        """
        max_degree = max([degree] + [kv.degree for kv in self._kv]) if degree == -1 else degree
        for direction, kv in enumerate(self._kv):
            if max_degree > kv.degree:
                self.degree_elevate(direction, max_degree - kv.degree)
        return max_degree

    # -------------------------------------------------------------------------
    # Orientation
    # -------------------------------------------------------------------------

    def flip_direction(self, direction: int) -> None:
        """Reverse the parametrization in one direction."""
        self._check_direction(direction)
        self._data = np.ascontiguousarray(np.flip(self._data, axis=direction))
        self._kv[direction] = self._kv[direction].flip()

    def swap_directions(self, dir1: int, dir2: int) -> None:
        """Exchange two parametric directions."""
        self._check_direction(dir1)
        self._check_direction(dir2)
        self._data = np.ascontiguousarray(np.swapaxes(self._data, dir1, dir2))
        self._kv[dir1], self._kv[dir2] = self._kv[dir2], self._kv[dir1]

    # -------------------------------------------------------------------------
    # Rigid transforms
    # -------------------------------------------------------------------------

    @staticmethod
    def get_2d_rotation_matrix(angle: float) -> np.ndarray:
        s, c = math.sin(angle), math.cos(angle)
        return np.array([[c, -s], [s, c]])

    @staticmethod
    def get_3d_rotation_matrix(axis: Sequence[float], angle: float,
                               r: float = 1.0) -> np.ndarray:
        """
        Rotation about an axis (Rodrigues), with the cosine and sine terms
        scaled by r.

        Angles of exactly +-pi/2 and pi use exact cosine/sine values.

        Parameters:
            axis: Rotation axis, need not be normalized
            angle: Rotation angle in radians
            r: Scale of the in-plane part
        """
        n = np.asarray(axis, dtype=np.float64)
        l2 = float(n @ n)
        if l2 == 0.0:
            raise NURBSConfigurationError("Rotation axis must be non-zero")
        l = math.sqrt(l2)

        if abs(angle) == math.pi / 2:
            s, c, c1 = r * math.copysign(1.0, angle), 0.0, -1.0
        elif abs(angle) == math.pi:
            s, c = 0.0, -r
            c1 = c - 1.0
        else:
            s, c = r * math.sin(angle), r * math.cos(angle)
            c1 = c - 1.0

        n0, n1, n2 = n
        return np.array([
            [(n0 * n0 + (n1 * n1 + n2 * n2) * c) / l2,
             -(n0 * n1 * c1) / l2 - (n2 * s) / l,
             -(n0 * n2 * c1) / l2 + (n1 * s) / l],
            [-(n0 * n1 * c1) / l2 + (n2 * s) / l,
             (n1 * n1 + (n0 * n0 + n2 * n2) * c) / l2,
             -(n1 * n2 * c1) / l2 - (n0 * s) / l],
            [-(n0 * n2 * c1) / l2 - (n1 * s) / l,
             -(n1 * n2 * c1) / l2 + (n0 * s) / l,
             (n2 * n2 + (n0 * n0 + n1 * n1) * c) / l2],
        ])

    def rotate_2d(self, angle: float) -> None:
        if self._dim != 3:
            raise NURBSConfigurationError("rotate_2d requires a patch in 2D")
        T = self.get_2d_rotation_matrix(angle)
        self._data[..., :2] = self._data[..., :2] @ T.T

    def rotate_3d(self, axis: Sequence[float], angle: float) -> None:
        if self._dim != 4:
            raise NURBSConfigurationError("rotate_3d requires a patch in 3D")
        T = self.get_3d_rotation_matrix(axis, angle)
        self._data[..., :3] = self._data[..., :3] @ T.T

    def rotate(self, angle: float, axis: Optional[Sequence[float]] = None) -> None:
        """Rotate the control points; 3D patches need an axis."""
        if self._dim == 3:
            self.rotate_2d(angle)
        else:
            if axis is None:
                raise NURBSConfigurationError("Specify an axis for a 3D rotation")
            self.rotate_3d(axis, angle)


# -----------------------------------------------------------------------------
# Layout helpers
# -----------------------------------------------------------------------------

def _to_lexicographic(data: np.ndarray) -> np.ndarray:
    """(n_0, ..., dim) -> (N, dim) with index 0 fastest."""
    nd = data.ndim - 1
    perm = tuple(reversed(range(nd))) + (nd,)
    return np.transpose(data, perm).reshape(-1, data.shape[-1])


def _from_lexicographic(values: np.ndarray, ncp: Tuple[int, ...]) -> np.ndarray:
    """(N, dim) with index 0 fastest -> (n_0, ..., dim)."""
    nd = len(ncp)
    perm = tuple(reversed(range(nd))) + (nd,)
    shaped = values.reshape(tuple(reversed(ncp)) + (values.shape[-1],))
    return np.ascontiguousarray(np.transpose(shaped, perm))


# -----------------------------------------------------------------------------
# Directional algorithms on (n, size) row matrices
# -----------------------------------------------------------------------------

def _refine_rows(kv: KnotVector, P: np.ndarray,
                 X: np.ndarray) -> Tuple[KnotVector, np.ndarray]:
    """
    Insert the sorted knots X into kv and update the control rows P.

    Piegl & Tiller, "The NURBS Book", Algorithm A5.4.
    """
    p = kv.degree
    n = kv.n_basis - 1
    U = kv.knots
    m = n + p + 1
    r = len(X) - 1

    a = kv.find_span(X[0])
    b = kv.find_span(X[r]) + 1

    Q = np.zeros((n + r + 2, P.shape[1]))
    Ubar = np.zeros(m + r + 2)

    Q[:a - p + 1] = P[:a - p + 1]
    Q[b + r:n + r + 2] = P[b - 1:n + 1]
    Ubar[:a + 1] = U[:a + 1]
    Ubar[b + p + r + 1:m + r + 2] = U[b + p:m + 1]

    i = b + p - 1
    k = b + p + r
    for j in range(r, -1, -1):
        while X[j] <= U[i] and i > a:
            Q[k - p - 1] = P[i - p - 1]
            Ubar[k] = U[i]
            k -= 1
            i -= 1
        Q[k - p - 1] = Q[k - p]
        for l in range(1, p + 1):
            ind = k - p + l
            alfa = Ubar[k + l] - X[j]
            if abs(alfa) == 0.0:
                Q[ind - 1] = Q[ind]
            else:
                alfa = alfa / (Ubar[k + l] - U[i - p + l])
                Q[ind - 1] = alfa * Q[ind - 1] + (1.0 - alfa) * Q[ind]
        Ubar[k] = X[j]
        k -= 1

    return KnotVector(Ubar, p), Q


def _elevate_rows(kv: KnotVector, P: np.ndarray,
                  t: int) -> Tuple[KnotVector, np.ndarray]:
    """
    Raise the degree of kv by t and update the control rows P.

    Piegl & Tiller, "The NURBS Book", Algorithm A5.9: the curve is split
    into Bezier segments, each segment is elevated, and the superfluous
    knots are removed again.
    """
    p = kv.degree
    n = kv.n_basis - 1
    U = kv.knots
    m = n + p + 1
    ph = p + t
    ph2 = ph // 2
    size = P.shape[1]

    new_n = kv.n_basis + kv.n_elements * t
    Q = np.zeros((new_n, size))
    Uh = np.zeros(new_n + ph + 1)

    bezalfs = np.zeros((ph + 1, p + 1))
    bpts = np.zeros((p + 1, size))
    ebpts = np.zeros((ph + 1, size))
    nextbpts = np.zeros((max(p - 1, 0), size))
    alphas = np.zeros(max(p - 1, 0))

    # Degree elevation coefficients of a single Bezier segment
    bezalfs[0, 0] = 1.0
    bezalfs[ph, p] = 1.0
    for i in range(1, ph2 + 1):
        inv = 1.0 / math.comb(ph, i)
        for j in range(max(0, i - t), min(p, i) + 1):
            bezalfs[i, j] = inv * math.comb(p, j) * math.comb(t, i - j)
    for i in range(ph2 + 1, ph):
        for j in range(max(0, i - t), min(p, i) + 1):
            bezalfs[i, j] = bezalfs[ph - i, p - j]

    mh = ph
    kind = ph + 1
    r = -1
    a = p
    b = p + 1
    cind = 1
    ua = U[0]
    Q[0] = P[0]
    Uh[:ph + 1] = ua
    bpts[:] = P[:p + 1]

    while b < m:
        i = b
        while b < m and U[b] == U[b + 1]:
            b += 1
        mul = b - i + 1
        mh += mul + t
        ub = U[b]
        oldr = r
        r = p - mul
        lbz = (oldr + 2) // 2 if oldr > 0 else 1
        rbz = ph - (r + 1) // 2 if r > 0 else ph

        # Insert ub r times to extract the Bezier segment
        if r > 0:
            numer = ub - ua
            for k in range(p, mul, -1):
                alphas[k - mul - 1] = numer / (U[a + k] - ua)
            for j in range(1, r + 1):
                save = r - j
                s = mul + j
                for k in range(p, s - 1, -1):
                    bpts[k] = alphas[k - s] * bpts[k] + (1.0 - alphas[k - s]) * bpts[k - 1]
                nextbpts[save] = bpts[p]

        # Elevate the Bezier segment
        for i in range(lbz, ph + 1):
            ebpts[i] = 0.0
            for j in range(max(0, i - t), min(p, i) + 1):
                ebpts[i] += bezalfs[i, j] * bpts[j]

        # Remove ua oldr times
        if oldr > 1:
            first = kind - 2
            last = kind
            den = ub - ua
            bet = (ub - Uh[kind - 1]) / den
            for tr in range(1, oldr):
                i = first
                j = last
                kj = j - kind + 1
                while j - i > tr:
                    if i < cind:
                        alf = (ub - Uh[i]) / (ua - Uh[i])
                        Q[i] = alf * Q[i] + (1.0 - alf) * Q[i - 1]
                    if j >= lbz:
                        if j - tr <= kind - ph + oldr:
                            gam = (ub - Uh[j - tr]) / den
                            ebpts[kj] = gam * ebpts[kj] + (1.0 - gam) * ebpts[kj + 1]
                        else:
                            ebpts[kj] = bet * ebpts[kj] + (1.0 - bet) * ebpts[kj + 1]
                    i += 1
                    j -= 1
                    kj -= 1
                first -= 1
                last += 1

        if a != p:
            for _ in range(ph - oldr):
                Uh[kind] = ua
                kind += 1

        for j in range(lbz, rbz + 1):
            Q[cind] = ebpts[j]
            cind += 1

        if b < m:
            rr = max(r, 0)
            bpts[:rr] = nextbpts[:rr]
            bpts[rr:p + 1] = P[b - p + rr:b + 1]
            a = b
            b += 1
            ua = ub
        else:
            Uh[kind:kind + ph + 1] = ub

    if cind != new_n:
        raise NURBSTopologyError(
            f"Degree elevation produced {cind} control points, expected {new_n}")
    return KnotVector(Uh, ph), Q
