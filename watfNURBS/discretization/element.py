"""
NURBS element data consumed by finite element assembly.

Assembly code hands an element object to NURBSExtension.load_fe (or
load_be for boundary elements). Any object with the HasPatchIJK
capability can be loaded: the extension sets the element's knot span
indices (i, j, k) within its patch, the patch knot vectors and the
weights of the element's control points.

NURBSElementData is the reference implementation. It also evaluates the
rational basis of the loaded element:

    R_a(xi) = w_a N_a(xi) / sum_b w_b N_b(xi)

with N_a the tensor product of the 1D B-spline functions of each direction.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable

import numpy as np

from .knot_vector import KnotVector


@runtime_checkable
class HasPatchIJK(Protocol):
    """Capability of a finite element that can be loaded from a patch."""

    def get_element(self) -> int:
        """Index of the element currently loaded, -1 if none."""
        ...

    def get_patch(self) -> int:
        ...

    def set_ijk(self, ijk: Sequence[int]) -> None:
        ...

    def set_patch(self, patch: int, knot_vectors: Sequence[KnotVector]) -> None:
        ...

    def set_weights(self, weights: np.ndarray) -> None:
        ...

    def set_element(self, element: int) -> None:
        ...


@dataclass
class NURBSElementData:
    """
    Loadable NURBS element.

    Attributes:
        element: Loaded element index (-1 before the first load)
        patch: Patch of the loaded element (-1 before the first load)
        ijk: Knot span index per direction; a negative entry -1-i marks a
            boundary element whose knot vector runs against it
        knot_vectors: Knot vectors of the patch
        weights: Weights of the element control points, i fastest
    """
    element: int = -1
    patch: int = -1
    ijk: Tuple[int, ...] = ()
    knot_vectors: Tuple[KnotVector, ...] = ()
    weights: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def get_element(self) -> int:
        return self.element

    def get_patch(self) -> int:
        return self.patch

    def set_ijk(self, ijk: Sequence[int]) -> None:
        self.ijk = tuple(int(i) for i in ijk)

    def set_patch(self, patch: int, knot_vectors: Sequence[KnotVector]) -> None:
        self.patch = patch
        self.knot_vectors = tuple(knot_vectors)

    def set_weights(self, weights: np.ndarray) -> None:
        self.weights = np.array(weights, dtype=np.float64)

    def set_element(self, element: int) -> None:
        self.element = element

    @property
    def degrees(self) -> Tuple[int, ...]:
        return tuple(kv.degree for kv in self.knot_vectors)

    @property
    def n_dof(self) -> int:
        """Number of control points per element."""
        return int(np.prod([p + 1 for p in self.degrees])) if self.knot_vectors else 0

    def calc_shape(self, xi: Sequence[float]) -> np.ndarray:
        """
        Rational basis functions of the loaded element at local point xi.

        Parameters:
            xi: Local coordinates in [0, 1]^d

        Returns:
            Array of shape (n_dof,), i fastest
        """
        if self.element < 0:
            raise ValueError("No element loaded")
        shape = np.ones(1)
        # Kronecker product with the last direction outermost keeps i fastest
        for kv, i, x in zip(self.knot_vectors, self.ijk, xi):
            shape = np.kron(kv.calc_shape(i, x), shape)
        shape = shape * self.weights
        return shape / np.sum(shape)
