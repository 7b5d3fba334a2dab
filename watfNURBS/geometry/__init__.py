"""
Geometry module for NURBS patches.
"""

from .patch import NURBSPatch
from .primitives import (
    interpolate,
    revolve_3d,
    make_patch_line,
    make_patch_rectangle,
    make_patch_box,
    make_patch_quarter_annulus,
)
