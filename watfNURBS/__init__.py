"""
watfNURBS - multi-patch NURBS geometry and dof management

Knot vectors and tensor-product NURBS patches, combined with a coarse
patch topology into a global finite element numbering of vertices and
degrees of freedom, with periodic boundaries and rank partitioning.

Key modules:
- discretization: Knot vectors, B-spline basis, dof numbering (NURBSExtension)
- geometry: NURBS patches and patch constructors
- topology: Coarse patch topology (patches, edges, faces, boundary)
- io: Text format tokenizer and configuration

Quick start:
    from watfNURBS import NURBSExtension

    ext = NURBSExtension.from_file("square.mesh")
    ext.print_characteristics()

    # refine through the patch representation
    ext.convert_to_patches(coords)
    ext.uniform_refinement()
    ext.set_knots_from_patches()
    coords = ext.set_coords_from_patches()
"""

import logging

__version__ = "0.1.0"
__author__ = "Wataru Fukuda"

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Core imports for convenience
from .errors import NURBSError, NURBSTopologyError, NURBSConfigurationError
from .io.config import NURBSConfig, load_config, default_config
from .discretization.knot_vector import KnotVector, make_open_knot_vector
from .geometry.patch import NURBSPatch
from .topology.patch_topology import PatchTopology
from .discretization.extension import NURBSExtension
from .discretization.parallel import ParNURBSExtension, GroupTopology
from .discretization.element import NURBSElementData, HasPatchIJK
