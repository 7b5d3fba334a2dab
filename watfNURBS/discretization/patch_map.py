"""
Local-to-global index map of a single patch or boundary patch.

A patch with I interior positions per direction is indexed by i in
[0, I+1]: i = 0 and i = I+1 are the corners (shared vertices), the
positions in between belong to the edge, face or patch interior that
owns them. Each interior range was given a global offset by
NURBSExtension.generate_offsets; the map adds the local position, read
in the orientation of the owning entity.

The same map serves two numberings:
- vertex map: I = number of elements - 1 (mesh vertices)
- dof map: I = number of control points - 2 (basis functions)
"""

from typing import List, Optional, Tuple, TYPE_CHECKING

import numpy as np

from .knot_vector import KnotVector

if TYPE_CHECKING:
    from .extension import NURBSExtension


def or_1d(n: int, N: int, orientation: int) -> int:
    """Position n of N read forwards (orientation >= 0) or backwards."""
    return n if orientation >= 0 else N - 1 - n


def or_2d(n1: int, n2: int, N1: int, N2: int, orientation: int) -> int:
    """
    Position (n1, n2) of an N1 x N2 quadrilateral interior, stored in the
    lexicographic order of a face seen with orientation code `orientation`.
    """
    if orientation == 0:
        return n1 + n2 * N1
    if orientation == 1:
        return n2 + n1 * N2
    if orientation == 2:
        return n2 + (N1 - 1 - n1) * N2
    if orientation == 3:
        return (N1 - 1 - n1) + n2 * N1
    if orientation == 4:
        return (N1 - 1 - n1) + (N2 - 1 - n2) * N1
    if orientation == 5:
        return (N2 - 1 - n2) + (N1 - 1 - n1) * N2
    if orientation == 6:
        return (N2 - 1 - n2) + n1 * N2
    if orientation == 7:
        return n1 + (N2 - 1 - n2) * N1
    raise ValueError(f"Invalid quadrilateral orientation {orientation}")


def _f(n: int, N: int) -> int:
    # 0: lower corner, 1: interior, 2: upper corner
    if n < 0:
        return 0
    if n >= N:
        return 2
    return 1


class NURBSPatchMap:
    """
    Index map for one patch at a time.

    The map borrows its extension and must not outlive it. Call one of the
    set_* methods before every query on a different patch.
    """

    def __init__(self, ext: 'NURBSExtension'):
        self._ext = ext
        self.I = self.J = self.K = 0
        self.p_offset = 0
        self.opatch = 0
        self.verts: List[int] = []
        self.edges: List[int] = []
        self.oedge: List[int] = []
        self.faces: List[int] = []
        self.oface: List[int] = []

    @property
    def nx(self) -> int:
        return self.I + 1

    @property
    def ny(self) -> int:
        return self.J + 1

    @property
    def nz(self) -> int:
        return self.K + 1

    # -------------------------------------------------------------------------
    # Set-up
    # -------------------------------------------------------------------------

    def _patch_knot_vectors(self, p: int) -> Tuple[KnotVector, ...]:
        ext = self._ext
        topo = ext.patch_topology
        self.verts = [int(v) for v in topo.get_element_vertices(p)]
        if ext.dimension >= 2:
            edges, oedge = topo.get_element_edges(p)
            self.edges = [int(e) for e in edges]
            self.oedge = [int(o) for o in oedge]
        if ext.dimension == 3:
            faces, oface = topo.get_element_faces(p)
            self.faces = [int(f) for f in faces]
            self.oface = [int(o) for o in oface]
        self.opatch = 0
        return ext.get_patch_knot_vectors(p)

    def _bdr_patch_knot_vectors(self, b: int) -> Tuple[Tuple[KnotVector, ...], Tuple[int, ...]]:
        ext = self._ext
        topo = ext.patch_topology
        self.verts = [int(v) for v in topo.get_bdr_element_vertices(b)]
        kvs: List[KnotVector] = []
        okv: List[int] = []
        if ext.dimension >= 2:
            edges, oedge = topo.get_bdr_element_edges(b)
            self.edges = [int(e) for e in edges]
            self.oedge = [int(o) for o in oedge]
            for d in range(ext.dimension - 1):
                kv, o = ext.knot_vec_oriented(self.edges[d], self.oedge[d])
                kvs.append(kv)
                okv.append(o)
        if ext.dimension == 2:
            self.opatch = self.oedge[0]
        elif ext.dimension == 3:
            f, of = topo.get_bdr_element_face(b)
            self.faces = [f]
            self.opatch = of
        return tuple(kvs), tuple(okv)

    def set_patch_vertex_map(self, p: int) -> Tuple[KnotVector, ...]:
        """Map patch p to global mesh vertices; returns its knot vectors."""
        kvs = self._patch_knot_vectors(p)
        self._apply_offsets(kvs, mesh=True)
        self.p_offset = int(self._ext.p_mesh_offsets[p])
        return kvs

    def set_patch_dof_map(self, p: int) -> Tuple[KnotVector, ...]:
        """Map patch p to global dofs; returns its knot vectors."""
        kvs = self._patch_knot_vectors(p)
        self._apply_offsets(kvs, mesh=False)
        self.p_offset = int(self._ext.p_space_offsets[p])
        return kvs

    def set_bdr_patch_vertex_map(self, b: int) -> Tuple[Tuple[KnotVector, ...], Tuple[int, ...]]:
        """
        Map boundary patch b to global mesh vertices.

        Returns:
            (knot_vectors, okv) where okv[d] is +1 when knot vector d runs
            along the boundary element and -1 when it runs against it
        """
        kvs, okv = self._bdr_patch_knot_vectors(b)
        self._apply_bdr_offsets(kvs, mesh=True)
        return kvs, okv

    def set_bdr_patch_dof_map(self, b: int) -> Tuple[Tuple[KnotVector, ...], Tuple[int, ...]]:
        """Map boundary patch b to global dofs; see set_bdr_patch_vertex_map."""
        kvs, okv = self._bdr_patch_knot_vectors(b)
        self._apply_bdr_offsets(kvs, mesh=False)
        return kvs, okv

    def _extent(self, kv: KnotVector, mesh: bool) -> int:
        return kv.n_elements - 1 if mesh else kv.n_basis - 2

    def _apply_offsets(self, kvs, mesh: bool):
        ext = self._ext
        v_off = ext.v_mesh_offsets if mesh else ext.v_space_offsets
        e_off = ext.e_mesh_offsets if mesh else ext.e_space_offsets
        f_off = ext.f_mesh_offsets if mesh else ext.f_space_offsets

        self.I = self._extent(kvs[0], mesh)
        self.verts = [int(v_off[v]) for v in self.verts]
        if ext.dimension >= 2:
            self.J = self._extent(kvs[1], mesh)
            self.edges = [int(e_off[e]) for e in self.edges]
        if ext.dimension == 3:
            self.K = self._extent(kvs[2], mesh)
            self.faces = [int(f_off[f]) for f in self.faces]

    def _apply_bdr_offsets(self, kvs, mesh: bool):
        ext = self._ext
        v_off = ext.v_mesh_offsets if mesh else ext.v_space_offsets
        e_off = ext.e_mesh_offsets if mesh else ext.e_space_offsets
        f_off = ext.f_mesh_offsets if mesh else ext.f_space_offsets

        self.verts = [int(v_off[v]) for v in self.verts]
        if ext.dimension == 1:
            self.I = 0
        elif ext.dimension == 2:
            self.I = self._extent(kvs[0], mesh)
            self.p_offset = int(e_off[self.edges[0]])
        else:
            self.I = self._extent(kvs[0], mesh)
            self.J = self._extent(kvs[1], mesh)
            self.edges = [int(e_off[e]) for e in self.edges]
            self.p_offset = int(f_off[self.faces[0]])

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def __getitem__(self, i: int) -> int:
        return self(i)

    def __call__(self, i: int, j: Optional[int] = None, k: Optional[int] = None) -> int:
        if j is None:
            return self._map_1d(i)
        if k is None:
            return self._map_2d(i, j)
        return self._map_3d(i, j, k)

    def _map_1d(self, i: int) -> int:
        i1 = i - 1
        c = _f(i1, self.I)
        if c == 0:
            return self.verts[0]
        if c == 1:
            return self.p_offset + or_1d(i1, self.I, self.opatch)
        return self.verts[1]

    def _map_2d(self, i: int, j: int) -> int:
        I, J = self.I, self.J
        i1, j1 = i - 1, j - 1
        v, e, oe = self.verts, self.edges, self.oedge
        c = 3 * _f(j1, J) + _f(i1, I)
        if c == 0:
            return v[0]
        if c == 1:
            return e[0] + or_1d(i1, I, oe[0])
        if c == 2:
            return v[1]
        if c == 3:
            return e[3] + or_1d(j1, J, -oe[3])
        if c == 4:
            return self.p_offset + or_2d(i1, j1, I, J, self.opatch)
        if c == 5:
            return e[1] + or_1d(j1, J, oe[1])
        if c == 6:
            return v[3]
        if c == 7:
            return e[2] + or_1d(i1, I, -oe[2])
        return v[2]

    def _map_3d(self, i: int, j: int, k: int) -> int:
        I, J, K = self.I, self.J, self.K
        i1, j1, k1 = i - 1, j - 1, k - 1
        v, e, oe = self.verts, self.edges, self.oedge
        f, of = self.faces, self.oface
        c = 3 * (3 * _f(k1, K) + _f(j1, J)) + _f(i1, I)

        # bottom layer (k = 0)
        if c == 0:
            return v[0]
        if c == 1:
            return e[0] + or_1d(i1, I, oe[0])
        if c == 2:
            return v[1]
        if c == 3:
            return e[3] + or_1d(j1, J, oe[3])
        if c == 4:
            return f[0] + or_2d(i1, J - 1 - j1, I, J, of[0])
        if c == 5:
            return e[1] + or_1d(j1, J, oe[1])
        if c == 6:
            return v[3]
        if c == 7:
            return e[2] + or_1d(i1, I, oe[2])
        if c == 8:
            return v[2]

        # middle layer
        if c == 9:
            return e[8] + or_1d(k1, K, oe[8])
        if c == 10:
            return f[1] + or_2d(i1, k1, I, K, of[1])
        if c == 11:
            return e[9] + or_1d(k1, K, oe[9])
        if c == 12:
            return f[4] + or_2d(J - 1 - j1, k1, J, K, of[4])
        if c == 13:
            return self.p_offset + I * (J * k1 + j1) + i1
        if c == 14:
            return f[2] + or_2d(j1, k1, J, K, of[2])
        if c == 15:
            return e[11] + or_1d(k1, K, oe[11])
        if c == 16:
            return f[3] + or_2d(I - 1 - i1, k1, I, K, of[3])
        if c == 17:
            return e[10] + or_1d(k1, K, oe[10])

        # top layer (k = K+1)
        if c == 18:
            return v[4]
        if c == 19:
            return e[4] + or_1d(i1, I, oe[4])
        if c == 20:
            return v[5]
        if c == 21:
            return e[7] + or_1d(j1, J, oe[7])
        if c == 22:
            return f[5] + or_2d(i1, j1, I, J, of[5])
        if c == 23:
            return e[5] + or_1d(j1, J, oe[5])
        if c == 24:
            return v[7]
        if c == 25:
            return e[6] + or_1d(i1, I, oe[6])
        return v[6]

    def patch_indices(self, ncp: Tuple[int, ...]) -> np.ndarray:
        """
        Global indices of a full tensor grid of positions, i fastest.

        Parameters:
            ncp: Number of positions per direction
        """
        if len(ncp) == 1:
            return np.array([self(i) for i in range(ncp[0])], dtype=int)
        if len(ncp) == 2:
            return np.array([self(i, j) for j in range(ncp[1]) for i in range(ncp[0])],
                            dtype=int)
        return np.array([self(i, j, k) for k in range(ncp[2]) for j in range(ncp[1])
                         for i in range(ncp[0])], dtype=int)
