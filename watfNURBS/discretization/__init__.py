"""
Discretization module for NURBS meshes.

Provides:
- KnotVector: Knot vector with basis evaluation, refinement and elevation
- B-spline basis kernels
- Table: Compressed connectivity tables
- NURBSElementData: Element loaded from a patch
"""

from .knot_vector import KnotVector, make_open_knot_vector
from .basis import eval_basis, eval_basis_first_der, eval_basis_ders
from .table import Table
from .element import NURBSElementData, HasPatchIJK

# The extension depends on geometry and topology; import it directly:
# from watfNURBS.discretization.extension import NURBSExtension
