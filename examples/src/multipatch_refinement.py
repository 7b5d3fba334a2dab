#!/usr/bin/env python3
"""
Example: refinement and partitioning of a two-patch NURBS mesh.

This example demonstrates the dof management pipeline:
1. Build two rectangular patches sharing an edge
2. Create the multi-patch extension from the patches
3. Refine (uniform knot insertion and degree elevation)
4. Write the refined mesh in the NURBS text format
5. Split the elements over two ranks and report the shared dofs

Geometry:
      3 ---- 4 ---- 5
      |  p0  |  p1  |
      0 ---- 1 ---- 2

Usage:
    ./examples/src/multipatch_refinement.py --refine 2 --elevate 1
"""

import logging
import sys
from pathlib import Path

import numpy as np

# Add project root to path (two levels up from examples/src/)
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from watfNURBS.discretization.extension import NURBSExtension
from watfNURBS.discretization.parallel import ParNURBSExtension
from watfNURBS.geometry.primitives import make_patch_rectangle
from watfNURBS.topology.patch_topology import PatchTopology


def make_two_patch_extension(degree: int = 2) -> NURBSExtension:
    """Extension of [0,2] x [0,1] built from two unit square patches."""
    elements = [[0, 1, 4, 3], [1, 2, 5, 4]]
    boundary = [[0, 1], [1, 2], [2, 5], [4, 5], [3, 4], [0, 3]]
    edges = [[0, 1], [1, 4], [3, 4], [0, 3], [1, 2], [2, 5], [4, 5]]
    topo = PatchTopology(2, elements, boundary, 6, edges,
                         bdr_attributes=[1, 1, 2, 3, 3, 4])
    patches = [
        make_patch_rectangle((0.0, 1.0), (0.0, 1.0), p=degree, n_elem_xi=1, n_elem_eta=1),
        make_patch_rectangle((1.0, 2.0), (0.0, 1.0), p=degree, n_elem_xi=1, n_elem_eta=1),
    ]
    return NURBSExtension(topo, [0, 1, 0, 1, 2, 1, 2], patches=patches)


def run(degree: int = 2,
        n_refine: int = 2,
        elevate: int = 0,
        write_mesh: bool = True,
        verbose: bool = True):
    """
    Run the refinement example.

    Parameters:
        degree: Polynomial degree of the initial patches
        n_refine: Number of uniform refinements
        elevate: Degree elevation applied after refinement
        write_mesh: Whether to write the refined mesh file
        verbose: Print progress information

    Returns:
        Dictionary with the serial extension and the two rank pieces
    """
    if verbose:
        print("=" * 60)
        print("Multi-patch NURBS refinement")
        print("=" * 60)

    # ==========================================================================
    # 1. Build the extension from patches
    # ==========================================================================
    ext = make_two_patch_extension(degree)
    if verbose:
        print(f"Initial DOFs: {ext.n_dof}, elements: {ext.n_elements}")

    # ==========================================================================
    # 2. Refine the patches and rebuild the numbering
    # ==========================================================================
    for _ in range(n_refine):
        ext.uniform_refinement()
    if elevate > 0:
        ext.degree_elevate(elevate)
    ext.set_knots_from_patches()
    coords = ext.set_coords_from_patches()

    if verbose:
        print(f"Refined DOFs: {ext.n_dof}, elements: {ext.n_elements}")
        print(f"  x range: [{coords[:, 0].min():.3f}, {coords[:, 0].max():.3f}]")
        print()
        ext.print_characteristics(sys.stdout)

    # ==========================================================================
    # 3. Write the mesh
    # ==========================================================================
    if write_mesh:
        output_file = Path(__file__).parent / "two_patch_refined.mesh"
        ext.save(str(output_file), comments="# refined two-patch rectangle")
        if verbose:
            print(f"Mesh written to {output_file}")
            print()

    # ==========================================================================
    # 4. Partition: patch 0 on rank 0, patch 1 on rank 1
    # ==========================================================================
    partitioning = ext.el_to_patch.copy()
    pieces = []
    for rank in range(2):
        bdr_flags = np.array([partitioning[_bdr_owner(ext, b)] == rank
                              for b in range(ext.n_global_bdr_elements)])
        pieces.append(ParNURBSExtension(ext.copy(), partitioning, bdr_flags, rank))

    if verbose:
        for piece in pieces:
            shared = np.count_nonzero(piece.ldof_group > 0)
            print(f"Rank {piece.my_rank}: {piece.n_elements} elements, "
                  f"{piece.n_dof} dofs, {shared} shared")
        print("=" * 60)

    return {'extension': ext, 'pieces': pieces, 'coords': coords}


def _bdr_owner(ext: NURBSExtension, be: int) -> int:
    """Global element owning boundary element be."""
    bdr_dofs = set(ext.get_bdr_element_dofs(be))
    for e, row in enumerate(ext.el_dof):
        if bdr_dofs <= set(row):
            return e
    raise ValueError(f"Boundary element {be} has no element")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Multi-patch NURBS refinement example")
    parser.add_argument("--degree", "-p", type=int, default=2,
                        help="Initial polynomial degree (default: 2)")
    parser.add_argument("--refine", "-r", type=int, default=2,
                        help="Number of uniform refinements (default: 2)")
    parser.add_argument("--elevate", "-e", type=int, default=0,
                        help="Degree elevation after refinement (default: 0)")
    parser.add_argument("--no-write", action="store_true",
                        help="Skip writing the mesh file")
    parser.add_argument("--debug", action="store_true",
                        help="Log the numbering steps")

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    run(degree=args.degree, n_refine=args.refine, elevate=args.elevate,
        write_mesh=not args.no_write)
