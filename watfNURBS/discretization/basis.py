"""
B-spline basis function kernels.

The i-th B-spline basis function of degree p is defined recursively:

    N_{i,0}(u) = 1 if u_i <= u < u_{i+1}, else 0

    N_{i,p}(u) = (u - u_i)/(u_{i+p} - u_i) * N_{i,p-1}(u)
               + (u_{i+p+1} - u)/(u_{i+p+1} - u_{i+1}) * N_{i+1,p-1}(u)

Only the p+1 functions N_{s-p}, ..., N_s are non-zero on the knot span
[u_s, u_{s+1}), so every kernel here works on a span index s and returns
those p+1 values.

The kernels operate on raw knot arrays. KnotVector maps element-local
coordinates to knot values and scales derivatives accordingly.
"""

import numpy as np


def eval_basis(knots: np.ndarray, degree: int, span: int, u: float) -> np.ndarray:
    """
    Evaluate the non-zero basis functions on a knot span.

    Piegl & Tiller, "The NURBS Book", Algorithm A2.2.

    Parameters:
        knots: Knot values
        degree: Polynomial degree p
        span: Knot span index s with knots[s] <= u <= knots[s+1]
        u: Parameter value

    Returns:
        Array of shape (p+1,) holding N_{s-p,p}(u) ... N_{s,p}(u)
    """
    p = degree
    N = np.zeros(p + 1)
    N[0] = 1.0

    left = np.zeros(p + 1)
    right = np.zeros(p + 1)

    for j in range(1, p + 1):
        left[j] = u - knots[span + 1 - j]
        right[j] = knots[span + j] - u

        saved = 0.0
        for r in range(j):
            temp = N[r] / (right[r + 1] + left[j - r])
            N[r] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        N[j] = saved

    return N


def _ndu_table(knots: np.ndarray, degree: int, span: int, u: float) -> np.ndarray:
    """
    Triangular table of basis values (lower part) and knot differences
    (upper part) used by the derivative algorithms.
    """
    p = degree
    ndu = np.zeros((p + 1, p + 1))
    ndu[0, 0] = 1.0

    left = np.zeros(p + 1)
    right = np.zeros(p + 1)

    for j in range(1, p + 1):
        left[j] = u - knots[span + 1 - j]
        right[j] = knots[span + j] - u

        saved = 0.0
        for r in range(j):
            ndu[j, r] = right[r + 1] + left[j - r]
            temp = ndu[r, j - 1] / ndu[j, r]
            ndu[r, j] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        ndu[j, j] = saved

    return ndu


def eval_basis_first_der(knots: np.ndarray, degree: int, span: int, u: float) -> np.ndarray:
    """
    First derivatives dN/du of the non-zero basis functions on a span.

    Returns:
        Array of shape (p+1,)
    """
    p = degree
    ders = np.zeros(p + 1)
    if p == 0:
        return ders

    ndu = _ndu_table(knots, p, span, u)
    pk = p - 1
    for r in range(p + 1):
        d = 0.0
        if r >= 1:
            d = ndu[r - 1, pk] / ndu[p, r - 1]
        if r <= pk:
            d -= ndu[r, pk] / ndu[p, r]
        ders[r] = d * p

    return ders


def eval_basis_ders(knots: np.ndarray, degree: int, span: int, u: float,
                    n_ders: int) -> np.ndarray:
    """
    Evaluate basis functions and their derivatives up to order n_ders.

    Piegl & Tiller, "The NURBS Book", Algorithm A2.3. Derivatives above the
    polynomial degree vanish identically and are returned as zero rows.

    Parameters:
        knots: Knot values
        degree: Polynomial degree p
        span: Knot span index
        u: Parameter value
        n_ders: Highest derivative order

    Returns:
        Array of shape (n_ders+1, p+1) where result[k, j] is the k-th
        derivative of N_{span-p+j, p} with respect to u
    """
    p = degree
    ders = np.zeros((n_ders + 1, p + 1))
    ndu = _ndu_table(knots, p, span, u)

    ders[0, :] = ndu[:, p]

    n = min(n_ders, p)
    a = np.zeros((2, p + 1))

    for r in range(p + 1):
        s1, s2 = 0, 1
        a[0, 0] = 1.0

        for k in range(1, n + 1):
            d = 0.0
            rk = r - k
            pk = p - k

            if r >= k:
                a[s2, 0] = a[s1, 0] / ndu[pk + 1, rk]
                d = a[s2, 0] * ndu[rk, pk]

            j1 = 1 if rk >= -1 else -rk
            j2 = k - 1 if r - 1 <= pk else p - r

            for j in range(j1, j2 + 1):
                a[s2, j] = (a[s1, j] - a[s1, j - 1]) / ndu[pk + 1, rk + j]
                d += a[s2, j] * ndu[rk + j, pk]

            if r <= pk:
                a[s2, k] = -a[s1, k - 1] / ndu[pk + 1, r]
                d += a[s2, k] * ndu[r, pk]

            ders[k, r] = d
            s1, s2 = s2, s1

    # Multiply by p!/(p-k)!
    factor = p
    for k in range(1, n + 1):
        ders[k, :] *= factor
        factor *= (p - k)

    return ders
