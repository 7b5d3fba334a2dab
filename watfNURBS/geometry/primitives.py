"""
Patch construction: lofting, revolution and simple factory geometries.

- interpolate: linear loft between two compatible patches (adds one direction)
- revolve_3d: sweep a patch about an axis with exact circular arcs
- make_patch_*: straight-sided lines, rectangles, boxes and a quarter
  annulus used as building blocks for multi-patch meshes
"""

import math
from typing import Sequence, Tuple

import numpy as np

from .patch import NURBSPatch
from ..discretization.knot_vector import KnotVector, make_open_knot_vector
from ..errors import NURBSTopologyError


def interpolate(p1: NURBSPatch, p2: NURBSPatch) -> NURBSPatch:
    """
    Loft between two patches with a linear knot vector in a new direction.

    Both patches are first refined (and degree-elevated) to common knot
    vectors; they are modified in place.

    Parameters:
        p1: Patch at the start of the new direction
        p2: Patch at the end of the new direction

    Returns:
        Patch with one more parametric direction than the inputs
    """
    if p1.n_dirs != p2.n_dirs or p1.dim != p2.dim:
        raise NURBSTopologyError(
            "Patches to interpolate must have the same number of directions "
            f"and dimension ({p1.n_dirs}/{p1.dim} vs {p2.n_dirs}/{p2.dim})"
        )
    if p1.n_dirs == 3:
        raise NURBSTopologyError("Cannot interpolate between 3D patches")

    for d in range(p1.n_dirs):
        if p1.kv(d).degree < p2.kv(d).degree:
            p1.knot_insert(d, p2.kv(d))
            p2.knot_insert(d, p1.kv(d))
        else:
            p2.knot_insert(d, p1.kv(d))
            p1.knot_insert(d, p2.kv(d))

    linear = KnotVector([0.0, 0.0, 1.0, 1.0], 1)
    data = np.stack([p1.data, p2.data], axis=p1.n_dirs)
    return NURBSPatch(list(p1.knot_vectors) + [linear], p1.dim, data)


def revolve_3d(patch: NURBSPatch, axis: Sequence[float], angle: float,
               times: int) -> NURBSPatch:
    """
    Revolve a patch about an axis through the origin.

    Each of the `times` segments sweeps `angle` radians with a quadratic
    rational arc: the middle control point uses the half-angle rotation
    scaled by 1/cos(angle/2) and carries weight w*cos(angle/2).

    Parameters:
        patch: Patch in 3D (dim == 4) with 1 or 2 directions
        axis: Axis of revolution
        angle: Angle per segment (|angle| < pi)
        times: Number of segments

    Returns:
        Patch with one more direction, degree 2 in the new direction
    """
    if patch.dim != 4:
        raise NURBSTopologyError("revolve_3d requires a patch in 3D")
    if patch.n_dirs == 3:
        raise NURBSTopologyError("Cannot revolve a 3D patch")
    if times < 1:
        raise NURBSTopologyError(f"Number of segments must be positive, got {times}")

    knots = [0.0, 0.0, 0.0]
    for i in range(1, times):
        knots += [float(i), float(i)]
    knots += [float(times)] * 3
    lkv = KnotVector(knots, 2)

    T = NURBSPatch.get_3d_rotation_matrix(axis, angle, 1.0)
    c = math.cos(angle / 2)
    T2 = c * NURBSPatch.get_3d_rotation_matrix(axis, angle / 2, 1.0 / c)

    layers = [patch.data.copy()]
    u = patch.data
    for _ in range(times):
        middle = np.empty_like(u)
        middle[..., :3] = u[..., :3] @ T2.T
        middle[..., 3] = c * u[..., 3]
        nxt = np.empty_like(u)
        nxt[..., :3] = u[..., :3] @ T.T
        nxt[..., 3] = u[..., 3]
        layers += [middle, nxt]
        u = nxt

    data = np.stack(layers, axis=patch.n_dirs)
    return NURBSPatch(list(patch.knot_vectors) + [lkv], 4, data)


# -----------------------------------------------------------------------------
# Factory geometries
# -----------------------------------------------------------------------------

def make_patch_line(start: Sequence[float], end: Sequence[float],
                    p: int = 1, n_elem: int = 1) -> NURBSPatch:
    """Straight segment as a 1D patch with uniform open knots."""
    kv = make_open_knot_vector(n_elem + p, p)
    start = np.asarray(start, dtype=np.float64)
    end = np.asarray(end, dtype=np.float64)
    g = kv.greville_abscissae()
    points = start[None, :] + g[:, None] * (end - start)[None, :]
    return NURBSPatch.from_cartesian([kv], points)


def make_patch_rectangle(x_range: Tuple[float, float] = (0.0, 1.0),
                         y_range: Tuple[float, float] = (0.0, 1.0),
                         p: int = 1, n_elem_xi: int = 1,
                         n_elem_eta: int = 1) -> NURBSPatch:
    """
    Axis-aligned rectangle as a 2D patch.

    Control points sit at the Greville abscissae so the parametrization
    is affine.
    """
    kv_xi = make_open_knot_vector(n_elem_xi + p, p)
    kv_eta = make_open_knot_vector(n_elem_eta + p, p)
    gx = x_range[0] + (x_range[1] - x_range[0]) * kv_xi.greville_abscissae()
    gy = y_range[0] + (y_range[1] - y_range[0]) * kv_eta.greville_abscissae()
    X, Y = np.meshgrid(gx, gy, indexing="ij")
    return NURBSPatch.from_cartesian([kv_xi, kv_eta], np.stack([X, Y], axis=-1))


def make_patch_box(x_range: Tuple[float, float] = (0.0, 1.0),
                   y_range: Tuple[float, float] = (0.0, 1.0),
                   z_range: Tuple[float, float] = (0.0, 1.0),
                   p: int = 1, n_elem: Tuple[int, int, int] = (1, 1, 1)) -> NURBSPatch:
    """Axis-aligned box as a 3D patch."""
    kvs = [make_open_knot_vector(n + p, p) for n in n_elem]
    ranges = (x_range, y_range, z_range)
    g = [r[0] + (r[1] - r[0]) * kv.greville_abscissae() for r, kv in zip(ranges, kvs)]
    X, Y, Z = np.meshgrid(*g, indexing="ij")
    return NURBSPatch.from_cartesian(kvs, np.stack([X, Y, Z], axis=-1))


def make_patch_quarter_annulus(inner_radius: float = 0.5,
                               outer_radius: float = 1.0) -> NURBSPatch:
    """
    Quarter annulus in the first quadrant.

    Direction 0 is radial (linear), direction 1 is angular (quadratic arc
    from the x-axis to the y-axis).
    """
    kv_r = KnotVector([0.0, 0.0, 1.0, 1.0], 1)
    kv_t = KnotVector([0.0, 0.0, 0.0, 1.0, 1.0, 1.0], 2)
    w = 1.0 / math.sqrt(2.0)
    points = np.zeros((2, 3, 2))
    weights = np.ones((2, 3))
    for i, radius in enumerate((inner_radius, outer_radius)):
        points[i, 0] = (radius, 0.0)
        points[i, 1] = (radius, radius)
        points[i, 2] = (0.0, radius)
        weights[i, 1] = w
    return NURBSPatch.from_cartesian([kv_r, kv_t], points, weights)
