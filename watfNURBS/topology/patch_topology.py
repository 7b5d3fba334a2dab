"""
Coarse patch topology for multi-patch NURBS meshes.

The coarse mesh has one element per patch and one boundary element per
boundary patch. Its vertices are patch corners, its edges are the patch
boundary curves (each carrying a knot vector) and, in 3D, its faces are
the patch boundary surfaces.

Local numbering follows the usual lexicographic reference elements:

    Quadrilateral           Hexahedron (bottom k=0, top k=1)
        3 ---- 2                7 ---- 6        3 ---- 2
        |      |                |      |        |      |
        0 ---- 1                4 ---- 5        0 ---- 1

Edge orientation is +1 when the local edge runs from the lower to the
higher global vertex index. Face orientation is the quadrilateral
orientation code (0..7) of an element face relative to the stored face.
"""

import logging
from typing import Dict, List, Optional, Sequence, TextIO, Tuple

import numpy as np

from ..errors import NURBSTopologyError
from ..io.text import MESH_HEADER, TokenStream

logger = logging.getLogger(__name__)

# Geometry codes used in the text format
GEOMETRY_POINT = 0
GEOMETRY_SEGMENT = 1
GEOMETRY_SQUARE = 3
GEOMETRY_CUBE = 5

ELEMENT_GEOMETRY = {1: GEOMETRY_SEGMENT, 2: GEOMETRY_SQUARE, 3: GEOMETRY_CUBE}
BOUNDARY_GEOMETRY = {1: GEOMETRY_POINT, 2: GEOMETRY_SEGMENT, 3: GEOMETRY_SQUARE}
GEOMETRY_NVERTICES = {GEOMETRY_POINT: 1, GEOMETRY_SEGMENT: 2,
                      GEOMETRY_SQUARE: 4, GEOMETRY_CUBE: 8}

QUAD_EDGES = ((0, 1), (1, 2), (2, 3), (3, 0))

HEX_EDGES = ((0, 1), (1, 2), (3, 2), (0, 3),
             (4, 5), (5, 6), (7, 6), (4, 7),
             (0, 4), (1, 5), (2, 6), (3, 7))

HEX_FACES = ((3, 2, 1, 0), (0, 1, 5, 4), (1, 2, 6, 5),
             (2, 3, 7, 6), (3, 0, 4, 7), (4, 5, 6, 7))


def quad_orientation(base: Sequence[int], test: Sequence[int]) -> int:
    """
    Orientation code of quadrilateral `test` relative to `base`.

    The code is 2*i when test[i] == base[0] and the two run in the same
    direction, 2*i+1 when they run in opposite directions.
    """
    for i in range(4):
        if test[i] == base[0]:
            break
    else:
        raise NURBSTopologyError(f"Quadrilaterals {list(base)} and {list(test)} do not match")
    if test[(i + 1) % 4] == base[1]:
        return 2 * i
    return 2 * i + 1


def _edge_key(v0: int, v1: int) -> Tuple[int, int]:
    return (v0, v1) if v0 < v1 else (v1, v0)


def _face_key(verts: Sequence[int]) -> Tuple[int, ...]:
    return tuple(sorted(int(v) for v in verts))


class PatchTopology:
    """
    Coarse mesh whose elements are patches.

    Attributes:
        dimension: Parametric dimension (1, 2 or 3)
        n_vertices: Number of patch corner vertices
        elements: Patch corner vertices, shape (n_patches, 2**dimension)
        boundary: Boundary patch vertices, shape (n_bdr_patches, 2**(dimension-1))
        attributes: Patch attributes
        bdr_attributes: Boundary patch attributes
        edge_vertices: Edge end points in the order they were given, shape (n_edges, 2)

    In 1D there is one edge per patch (edge i is patch i).
    """

    def __init__(self, dimension: int,
                 elements: Sequence[Sequence[int]],
                 boundary: Sequence[Sequence[int]],
                 n_vertices: Optional[int] = None,
                 edges: Optional[Sequence[Sequence[int]]] = None,
                 attributes: Optional[Sequence[int]] = None,
                 bdr_attributes: Optional[Sequence[int]] = None):
        if dimension not in (1, 2, 3):
            raise NURBSTopologyError(f"Unsupported patch dimension {dimension}")
        self.dimension = dimension

        nv_el = 2 ** dimension
        nv_be = 2 ** (dimension - 1)
        self.elements = np.asarray(elements, dtype=int).reshape(-1, nv_el)
        self.boundary = np.asarray(boundary, dtype=int).reshape(-1, nv_be)

        if n_vertices is None:
            n_vertices = int(self.elements.max()) + 1 if self.elements.size else 0
        self.n_vertices = int(n_vertices)
        if self.elements.size and (self.elements.min() < 0 or self.elements.max() >= self.n_vertices):
            raise NURBSTopologyError("Patch vertex index out of range")

        self.attributes = (np.ones(self.n_elements, dtype=int) if attributes is None
                           else np.asarray(attributes, dtype=int))
        self.bdr_attributes = (np.ones(self.n_bdr_elements, dtype=int) if bdr_attributes is None
                               else np.asarray(bdr_attributes, dtype=int))
        if len(self.attributes) != self.n_elements or len(self.bdr_attributes) != self.n_bdr_elements:
            raise NURBSTopologyError("Attribute count does not match element count")

        self._build_edges(edges)
        self._build_faces()
        self._build_boundary()

        logger.debug("Patch topology: dim=%d, %d vertices, %d edges, %d faces, "
                     "%d patches, %d boundary patches", self.dimension,
                     self.n_vertices, self.n_edges, self.n_faces,
                     self.n_elements, self.n_bdr_elements)

    # -------------------------------------------------------------------------
    # Construction of derived tables
    # -------------------------------------------------------------------------

    def _local_edges(self) -> Tuple[Tuple[int, int], ...]:
        if self.dimension == 1:
            return ((0, 1),)
        if self.dimension == 2:
            return QUAD_EDGES
        return HEX_EDGES

    def _build_edges(self, edges):
        local = self._local_edges()

        if edges is None:
            # Number edges in order of first appearance
            edge_list: List[Tuple[int, int]] = []
            index: Dict[Tuple[int, int], int] = {}
            for verts in self.elements:
                for a, b in local:
                    key = _edge_key(verts[a], verts[b])
                    if key not in index or self.dimension == 1:
                        index[key] = len(edge_list)
                        edge_list.append((int(verts[a]), int(verts[b])))
            self.edge_vertices = np.array(edge_list, dtype=int).reshape(-1, 2)
        else:
            self.edge_vertices = np.asarray(edges, dtype=int).reshape(-1, 2)

        if self.dimension == 1:
            if len(self.edge_vertices) != self.n_elements:
                raise NURBSTopologyError(
                    f"1D topology needs one edge per patch, got {len(self.edge_vertices)} "
                    f"edges for {self.n_elements} patches"
                )
            self._edge_index = {}
            self.element_edges = np.arange(self.n_elements, dtype=int).reshape(-1, 1)
            self.element_edge_orientations = np.where(
                self.elements[:, 0] < self.elements[:, 1], 1, -1).reshape(-1, 1)
            return

        self._edge_index = {}
        for e, (v0, v1) in enumerate(self.edge_vertices):
            key = _edge_key(v0, v1)
            if key in self._edge_index:
                raise NURBSTopologyError(f"Edge {v0}-{v1} is listed twice")
            self._edge_index[key] = e

        self.element_edges = np.zeros((self.n_elements, len(local)), dtype=int)
        self.element_edge_orientations = np.zeros_like(self.element_edges)
        for p, verts in enumerate(self.elements):
            for i, (a, b) in enumerate(local):
                self.element_edges[p, i] = self._find_edge(verts[a], verts[b])
                self.element_edge_orientations[p, i] = 1 if verts[a] < verts[b] else -1

    def _find_edge(self, v0: int, v1: int) -> int:
        try:
            return self._edge_index[_edge_key(v0, v1)]
        except KeyError:
            raise NURBSTopologyError(f"Edge {v0}-{v1} is missing from the edge list") from None

    def _build_faces(self):
        self._face_index: Dict[Tuple[int, ...], int] = {}
        if self.dimension != 3:
            self.face_vertices = np.zeros((0, 4), dtype=int)
            self.element_faces = np.zeros((self.n_elements, 0), dtype=int)
            self.element_face_orientations = np.zeros((self.n_elements, 0), dtype=int)
            return

        face_list = []
        self.element_faces = np.zeros((self.n_elements, 6), dtype=int)
        self.element_face_orientations = np.zeros((self.n_elements, 6), dtype=int)
        for p, verts in enumerate(self.elements):
            for i, local in enumerate(HEX_FACES):
                fv = [int(verts[j]) for j in local]
                key = _face_key(fv)
                f = self._face_index.get(key)
                if f is None:
                    f = len(face_list)
                    self._face_index[key] = f
                    face_list.append(fv)
                self.element_faces[p, i] = f
                self.element_face_orientations[p, i] = quad_orientation(face_list[f], fv)
        self.face_vertices = np.array(face_list, dtype=int).reshape(-1, 4)

        self.face_edges = np.zeros((self.n_faces, 4), dtype=int)
        self.face_edge_orientations = np.zeros((self.n_faces, 4), dtype=int)
        for f, fv in enumerate(self.face_vertices):
            for i, (a, b) in enumerate(QUAD_EDGES):
                self.face_edges[f, i] = self._find_edge(fv[a], fv[b])
                self.face_edge_orientations[f, i] = 1 if fv[a] < fv[b] else -1

    def _build_boundary(self):
        nb = self.n_bdr_elements
        if self.dimension == 1:
            self.bdr_element_edges = np.zeros((nb, 0), dtype=int)
            self.bdr_element_edge_orientations = np.zeros((nb, 0), dtype=int)
            self.bdr_element_faces = np.zeros(0, dtype=int)
            self.bdr_face_orientations = np.zeros(0, dtype=int)
            return

        local = ((0, 1),) if self.dimension == 2 else QUAD_EDGES
        self.bdr_element_edges = np.zeros((nb, len(local)), dtype=int)
        self.bdr_element_edge_orientations = np.zeros_like(self.bdr_element_edges)
        for b, verts in enumerate(self.boundary):
            for i, (a, c) in enumerate(local):
                self.bdr_element_edges[b, i] = self._find_edge(verts[a], verts[c])
                self.bdr_element_edge_orientations[b, i] = 1 if verts[a] < verts[c] else -1

        self.bdr_element_faces = np.zeros(nb if self.dimension == 3 else 0, dtype=int)
        self.bdr_face_orientations = np.zeros_like(self.bdr_element_faces)
        if self.dimension == 3:
            for b, verts in enumerate(self.boundary):
                f = self._face_index.get(_face_key(verts))
                if f is None:
                    raise NURBSTopologyError(
                        f"Boundary patch {b} {list(verts)} is not a face of any patch")
                self.bdr_element_faces[b] = f
                self.bdr_face_orientations[b] = quad_orientation(self.face_vertices[f], verts)

    # -------------------------------------------------------------------------
    # Sizes
    # -------------------------------------------------------------------------

    @property
    def n_elements(self) -> int:
        """Number of patches."""
        return len(self.elements)

    @property
    def n_bdr_elements(self) -> int:
        """Number of boundary patches."""
        return len(self.boundary)

    @property
    def n_edges(self) -> int:
        return len(self.edge_vertices)

    @property
    def n_faces(self) -> int:
        return len(self.face_vertices)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_element_vertices(self, p: int) -> np.ndarray:
        return self.elements[p]

    def get_bdr_element_vertices(self, b: int) -> np.ndarray:
        return self.boundary[b]

    def get_element_edges(self, p: int) -> Tuple[np.ndarray, np.ndarray]:
        """Edges of patch `p` and their orientations."""
        return self.element_edges[p], self.element_edge_orientations[p]

    def get_element_faces(self, p: int) -> Tuple[np.ndarray, np.ndarray]:
        """Faces of patch `p` (3D) and their orientation codes."""
        return self.element_faces[p], self.element_face_orientations[p]

    def get_bdr_element_edges(self, b: int) -> Tuple[np.ndarray, np.ndarray]:
        return self.bdr_element_edges[b], self.bdr_element_edge_orientations[b]

    def get_bdr_element_face(self, b: int) -> Tuple[int, int]:
        """Face of boundary patch `b` (3D) and its orientation code."""
        return int(self.bdr_element_faces[b]), int(self.bdr_face_orientations[b])

    def get_face_edges(self, f: int) -> Tuple[np.ndarray, np.ndarray]:
        return self.face_edges[f], self.face_edge_orientations[f]

    def get_edge_vertices(self, e: int) -> np.ndarray:
        return self.edge_vertices[e]

    def get_attribute(self, p: int) -> int:
        return int(self.attributes[p])

    def get_bdr_attribute(self, b: int) -> int:
        return int(self.bdr_attributes[b])

    def copy(self) -> 'PatchTopology':
        return PatchTopology(self.dimension, self.elements.copy(), self.boundary.copy(),
                             self.n_vertices, self.edge_vertices.copy(),
                             self.attributes.copy(), self.bdr_attributes.copy())

    # -------------------------------------------------------------------------
    # Text format
    # -------------------------------------------------------------------------

    @classmethod
    def from_stream(cls, stream: TokenStream) -> Tuple['PatchTopology', np.ndarray]:
        """
        Read the topology sections of a NURBS mesh file.

        Returns:
            (topology, edge_to_knot) where edge_to_knot[e] is the knot
            vector index of edge e, encoded as -1-index when the file lists
            the edge from the higher to the lower vertex index
        """
        stream.expect("dimension")
        dim = stream.next_int()
        if dim not in ELEMENT_GEOMETRY:
            raise NURBSTopologyError(f"Unsupported dimension {dim}")

        stream.expect("elements")
        elements, attributes = cls._read_entities(stream, ELEMENT_GEOMETRY[dim], "element")

        stream.expect("boundary")
        boundary, bdr_attributes = cls._read_entities(stream, BOUNDARY_GEOMETRY[dim], "boundary")

        edges = None
        edge_to_knot = None
        if stream.accept("edges"):
            n_edges = stream.next_int()
            edges = np.zeros((n_edges, 2), dtype=int)
            edge_to_knot = np.zeros(n_edges, dtype=int)
            for e in range(n_edges):
                knot = stream.next_int()
                v0, v1 = stream.next_int(), stream.next_int()
                edges[e] = (v0, v1)
                edge_to_knot[e] = -1 - knot if v0 > v1 else knot
        elif dim > 1:
            raise NURBSTopologyError("Missing 'edges' section")
        else:
            edges = elements.copy()
            edge_to_knot = np.arange(len(elements), dtype=int)

        stream.expect("vertices")
        n_vertices = stream.next_int()

        topo = cls(dim, elements, boundary, n_vertices, edges, attributes, bdr_attributes)
        return topo, edge_to_knot

    @staticmethod
    def _read_entities(stream: TokenStream, geometry: int, what: str):
        n = stream.next_int()
        if n < 0:
            raise NURBSTopologyError(f"Negative {what} count {n}")
        nv = GEOMETRY_NVERTICES[geometry]
        verts = np.zeros((n, nv), dtype=int)
        attrs = np.zeros(n, dtype=int)
        for i in range(n):
            attrs[i] = stream.next_int()
            geom = stream.next_int()
            if geom != geometry:
                raise NURBSTopologyError(
                    f"{what} {i}: expected geometry type {geometry}, got {geom}")
            verts[i] = stream.next_ints(nv)
        return verts, attrs

    def write(self, out: TextIO, edge_to_knot: Sequence[int], comments: str = "") -> None:
        """Write the topology sections, with `edge_to_knot` in the edge section."""
        out.write(MESH_HEADER + "\n")
        if comments:
            out.write(comments.rstrip("\n") + "\n")
        out.write("\ndimension\n%d\n" % self.dimension)

        geom = ELEMENT_GEOMETRY[self.dimension]
        out.write("\nelements\n%d\n" % self.n_elements)
        for attr, verts in zip(self.attributes, self.elements):
            out.write("%d %d %s\n" % (attr, geom, " ".join(str(v) for v in verts)))

        geom = BOUNDARY_GEOMETRY[self.dimension]
        out.write("\nboundary\n%d\n" % self.n_bdr_elements)
        for attr, verts in zip(self.bdr_attributes, self.boundary):
            out.write("%d %d %s\n" % (attr, geom, " ".join(str(v) for v in verts)))

        out.write("\nedges\n%d\n" % self.n_edges)
        for e, (v0, v1) in enumerate(self.edge_vertices):
            k = edge_to_knot[e]
            if k < 0:
                k = -1 - k
            out.write("%d %d %d\n" % (k, v0, v1))

        out.write("\nvertices\n%d\n" % self.n_vertices)
