"""
Coarse patch topology of multi-patch meshes.
"""

from .patch_topology import PatchTopology, quad_orientation
