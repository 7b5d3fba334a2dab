"""
Multi-patch NURBS extension: global numbering of vertices and dofs.

NURBSExtension combines a coarse PatchTopology with the knot vectors of
its edges. Every topological entity owns a contiguous range of global
indices, assigned in the order vertices -> edges -> faces -> patch
interiors, once for mesh vertices and once for dofs (control points).
From these offsets it derives:

- the element -> dof and boundary element -> dof tables
- the active subsets (elements, boundary elements, vertices, dofs)
- the periodic identification of dofs on paired boundaries
- the conversion between flat dof vectors and per-patch control nets

Knot vectors are kept in two views:
- unique: one per knot vector index of the edges, oriented along the
  edge as written in the input (first to second vertex)
- comprehensive: one per (patch, direction), oriented along the patch

Build pipeline (re-run after any global change):

    create_comprehensive_kv -> set_orders_from_knot_vectors ->
    generate_offsets -> count elements/boundary elements ->
    generate_active_vertices -> init dof map -> element dof table ->
    active boundary elements -> boundary element dof table ->
    connect_boundaries
"""

import copy
import io
import itertools
import logging
from typing import Iterator, List, Optional, Sequence, TextIO, Tuple, Union

import numpy as np

from .element import HasPatchIJK
from .knot_vector import KnotVector
from .patch_map import NURBSPatchMap
from .table import Table
from ..errors import NURBSConfigurationError, NURBSTopologyError
from ..geometry.patch import NURBSPatch
from ..io.text import TokenStream, format_values
from ..topology.patch_topology import PatchTopology

logger = logging.getLogger(__name__)

# Order reported when the knot vectors do not share one degree
VARIABLE_ORDER = -1

# Patch edges whose knot vectors define directions 0, 1 (and 2)
KV_EDGES = {2: (0, 1), 3: (0, 3, 8)}

# Corner offsets of an element, in reference vertex order
CORNERS = {
    0: ((),),
    1: ((0,), (1,)),
    2: ((0, 0), (1, 0), (1, 1), (0, 1)),
    3: ((0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0),
        (0, 0, 1), (1, 0, 1), (1, 1, 1), (0, 1, 1)),
}

KnotSet = Union[KnotVector, Sequence[float], np.ndarray]


def tensor_range(extents: Sequence[int]) -> Iterator[Tuple[int, ...]]:
    """All index tuples of a tensor grid, first index fastest."""
    for idx in itertools.product(*[range(n) for n in reversed(extents)]):
        yield idx[::-1]


def element_spans(kvs: Sequence[KnotVector]) -> Iterator[Tuple[int, ...]]:
    """Knot span tuples of all elements of a tensor product, first index fastest."""
    spans = [[i for i in range(kv.n_knot_spans) if kv.is_element(i)] for kv in kvs]
    for idx in itertools.product(*reversed(spans)):
        yield idx[::-1]


def _oriented_index(s: int, o: int, ok: int, n: int) -> int:
    return s + o if ok >= 0 else n - s - o


class NURBSExtension:
    """
    Global vertex and dof numbering of a multi-patch NURBS mesh.

    Attributes:
        patch_topology: Coarse mesh of patches
        edge_to_knot: Knot vector index per edge, -1-index when the edge
            was given from the higher to the lower vertex
        knot_vectors: Unique knot vectors
        knot_vectors_compr: Comprehensive knot vectors, dimension*p + d
        patches: Patch control nets while they are being edited
        weights: Weight of every active dof
        master, slave: Boundary attributes of periodic boundary pairs
        el_dof, bel_dof: Element and boundary element dof tables
    """

    def __init__(self, patch_topology: PatchTopology,
                 edge_to_knot: Optional[Sequence[int]] = None,
                 knot_vectors: Optional[Sequence[KnotVector]] = None,
                 patches: Optional[Sequence[NURBSPatch]] = None,
                 active_elements: Optional[Sequence[int]] = None,
                 master: Sequence[int] = (),
                 slave: Sequence[int] = (),
                 weights: Optional[np.ndarray] = None):
        """
        Build the extension from a topology and either unique knot vectors
        or one patch per topology element.

        Parameters:
            patch_topology: Coarse topology, owned by the new extension
            edge_to_knot: Signed knot vector index per edge; defaults to
                one knot vector per edge (per patch in 1D)
            knot_vectors: Unique knot vectors
            patches: Patches with control points; the unique knot vectors
                are taken from them
            active_elements: Global ids of the active elements (all if None)
            master, slave: Periodic boundary attribute pairs
            weights: Weight per dof, defaults to 1.0
        """
        self._reset()
        self.patch_topology = patch_topology
        self._own_topo = True
        if edge_to_knot is None:
            n = patch_topology.n_elements if patch_topology.dimension == 1 else patch_topology.n_edges
            edge_to_knot = np.arange(n)
        self.edge_to_knot = np.array(edge_to_knot, dtype=int)

        self.check_patches()

        if patches is not None:
            self._load_patches(patches)
        elif knot_vectors is not None:
            self.knot_vectors = [kv.copy() for kv in knot_vectors]
        else:
            raise NURBSConfigurationError("Either knot vectors or patches are required")

        if self.knot_vectors and max(self.knot_ind(e) for e in range(len(self.edge_to_knot))) \
                >= len(self.knot_vectors):
            raise NURBSTopologyError("Edge refers to a knot vector that does not exist")

        self.create_comprehensive_kv()
        self.set_orders_from_knot_vectors()
        self.generate_offsets()
        self.count_elements()
        self.count_bdr_elements()

        self.active_elem = np.ones(self.n_global_elements, dtype=bool)
        if active_elements is not None:
            self.active_elem[:] = False
            self.active_elem[np.asarray(active_elements, dtype=int)] = True
        self.n_elements = int(self.active_elem.sum())

        self.generate_active_vertices()
        self._init_dof_map()
        self.generate_element_dof_table()
        self.generate_active_bdr_elems()
        self.generate_bdr_element_dof_table()

        self.master = [int(m) for m in master]
        self.slave = [int(s) for s in slave]
        self.connect_boundaries()

        if self.patches:
            _, self.weights = self._gather_from_patches()
        elif weights is None:
            self.weights = np.ones(self.n_dof)
        else:
            self.weights = self._collapse_weights(weights)

        logger.debug("NURBS extension built: %d patches, %d elements, %d dofs",
                     self.n_patches, self.n_elements, self.n_dof)

    def _reset(self):
        self.patch_topology: Optional[PatchTopology] = None
        self._own_topo = False
        self.edge_to_knot = np.zeros(0, dtype=int)

        self.knot_vectors: List[KnotVector] = []
        self.knot_vectors_compr: List[KnotVector] = []
        self.patches: List[NURBSPatch] = []
        self.orders: List[int] = []
        self.order = VARIABLE_ORDER

        self.n_global_vertices = 0
        self.n_global_elements = 0
        self.n_global_bdr_elements = 0
        self.n_total_dof = 0
        self._n_offset_dofs = 0

        self.n_vertices = 0
        self.n_elements = 0
        self.n_bdr_elements = 0
        self.n_dof = 0

        self.active_vert = np.zeros(0, dtype=int)
        self.active_elem = np.zeros(0, dtype=bool)
        self.active_bdr_elem = np.zeros(0, dtype=bool)
        self.active_dof = np.zeros(0, dtype=int)

        self.v_mesh_offsets = np.zeros(0, dtype=int)
        self.e_mesh_offsets = np.zeros(0, dtype=int)
        self.f_mesh_offsets = np.zeros(0, dtype=int)
        self.p_mesh_offsets = np.zeros(0, dtype=int)
        self.v_space_offsets = np.zeros(0, dtype=int)
        self.e_space_offsets = np.zeros(0, dtype=int)
        self.f_space_offsets = np.zeros(0, dtype=int)
        self.p_space_offsets = np.zeros(0, dtype=int)

        self.weights = np.zeros(0)
        self.d_to_d: Optional[np.ndarray] = None
        self._merge_map: Optional[np.ndarray] = None
        self.master: List[int] = []
        self.slave: List[int] = []

        self.el_dof: Optional[Table] = None
        self.bel_dof: Optional[Table] = None
        self.el_to_patch = np.zeros(0, dtype=int)
        self.bel_to_patch = np.zeros(0, dtype=int)
        self.el_to_ijk = np.zeros((0, 0), dtype=int)
        self.bel_to_ijk = np.zeros((0, 0), dtype=int)
        self.patch_to_el: List[np.ndarray] = []
        self.patch_to_bel: List[np.ndarray] = []

    # -------------------------------------------------------------------------
    # Alternative constructors
    # -------------------------------------------------------------------------

    @classmethod
    def from_stream(cls, stream: TokenStream) -> 'NURBSExtension':
        """
        Read a NURBS mesh:

            <topology sections>
            knotvectors <n> <kv>...  |  patches <patch>...
            [mesh_elements <n> <ids>...]
            [periodic <n> <attrs>... <n> <attrs>...]
            weights <values>...  |  unitweights  |  autoweights
        """
        topo, edge_to_knot = PatchTopology.from_stream(stream)

        ident = stream.next()
        knot_vectors = None
        patches = None
        if ident == "knotvectors":
            n_kv = stream.next_int()
            knot_vectors = [KnotVector.from_stream(stream) for _ in range(n_kv)]
        elif ident == "patches":
            patches = [NURBSPatch.from_stream(stream) for _ in range(topo.n_elements)]
        else:
            raise NURBSTopologyError(f"Invalid section '{ident}'")

        active = None
        if patches is None and stream.accept("mesh_elements"):
            active = stream.next_ints(stream.next_int())

        master: Sequence[int] = ()
        slave: Sequence[int] = ()
        if stream.accept("periodic"):
            master = stream.next_ints(stream.next_int())
            slave = stream.next_ints(stream.next_int())

        ext = cls(topo, edge_to_knot, knot_vectors, patches,
                  active_elements=active, master=master, slave=slave)

        if patches is None:
            if stream.accept("weights"):
                ext.weights = ext._collapse_weights(stream.next_floats(ext._n_unmerged_dof))
            elif not (stream.accept("unitweights") or stream.accept("autoweights")):
                raise NURBSTopologyError(
                    f"Expected a weights section, got '{stream.peek()}'")
        return ext

    @classmethod
    def from_string(cls, text: str) -> 'NURBSExtension':
        return cls.from_stream(TokenStream(text))

    @classmethod
    def from_file(cls, filename: str) -> 'NURBSExtension':
        logger.debug("Reading NURBS mesh from %s", filename)
        return cls.from_stream(TokenStream.from_file(filename))

    @classmethod
    def from_parent(cls, parent: 'NURBSExtension',
                    new_order: Union[int, Sequence[int]]) -> 'NURBSExtension':
        """
        Extension of the same mesh with raised knot vector degrees.

        Interior knots are kept, so the elements and active subsets of the
        parent carry over. The topology is shared with the parent, which
        keeps ownership.

        Parameters:
            parent: Extension to derive from
            new_order: Degree for all knot vectors, or one per unique knot vector
        """
        ext = cls.__new__(cls)
        ext._reset()
        ext.patch_topology = parent.patch_topology
        ext._own_topo = False
        ext.edge_to_knot = parent.edge_to_knot.copy()

        if isinstance(new_order, (int, np.integer)):
            new_orders = [int(new_order)] * parent.n_knot_vectors
        else:
            new_orders = [int(o) for o in new_order]
            if len(new_orders) != parent.n_knot_vectors:
                raise NURBSConfigurationError(
                    f"Expected {parent.n_knot_vectors} orders, got {len(new_orders)}"
                )
        ext.knot_vectors = [kv.k_elevate(o - kv.degree) if o > kv.degree else kv.copy()
                            for kv, o in zip(parent.knot_vectors, new_orders)]
        ext.create_comprehensive_kv()

        ext.n_global_elements = parent.n_global_elements
        ext.n_global_bdr_elements = parent.n_global_bdr_elements
        ext.set_orders_from_knot_vectors()
        ext.generate_offsets()

        ext.n_vertices = parent.n_vertices
        ext.n_elements = parent.n_elements
        ext.n_bdr_elements = parent.n_bdr_elements
        ext.active_vert = parent.active_vert.copy()
        ext.active_elem = parent.active_elem.copy()
        ext.active_bdr_elem = parent.active_bdr_elem.copy()
        ext._init_dof_map()

        ext.generate_element_dof_table()
        ext.generate_bdr_element_dof_table()

        ext.master = list(parent.master)
        ext.slave = list(parent.slave)
        ext.connect_boundaries()
        ext.weights = np.ones(ext.n_dof)
        return ext

    @classmethod
    def merge(cls, pieces: Sequence['NURBSExtension']) -> 'NURBSExtension':
        """
        Serial extension assembled from local pieces of a partitioned mesh.

        The pieces must share one topology, owned by the first piece;
        ownership moves to the merged extension. Each piece contributes
        the weights of its active elements.
        """
        if not pieces:
            raise NURBSConfigurationError("No pieces to merge")
        parent = pieces[0]

        ext = cls.__new__(cls)
        ext._reset()
        ext.acquire_topology(parent)
        ext.edge_to_knot = parent.edge_to_knot.copy()
        ext.knot_vectors = [kv.copy() for kv in parent.knot_vectors]
        ext.create_comprehensive_kv()
        ext.set_orders_from_knot_vectors()

        ext.generate_offsets()
        ext.count_elements()
        ext.count_bdr_elements()

        # the pieces partition all elements
        ext.active_elem = np.ones(ext.n_global_elements, dtype=bool)
        ext.n_elements = ext.n_global_elements

        ext.generate_active_vertices()
        ext._init_dof_map()
        ext.generate_element_dof_table()
        ext.generate_active_bdr_elems()
        ext.generate_bdr_element_dof_table()

        ext.weights = np.zeros(ext.n_dof)
        ext.merge_weights(pieces)
        return ext

    def copy(self) -> 'NURBSExtension':
        """Deep copy owning its own copy of the topology."""
        other = copy.deepcopy(self)
        other._own_topo = True
        return other

    # -------------------------------------------------------------------------
    # Topology ownership
    # -------------------------------------------------------------------------

    @property
    def owns_topology(self) -> bool:
        return self._own_topo

    def acquire_topology(self, source: 'NURBSExtension') -> None:
        """Take over the topology of `source`, which must currently own it."""
        if not source._own_topo:
            raise NURBSTopologyError("Source extension does not own the patch topology")
        self.patch_topology = source.patch_topology
        self._own_topo = True
        source._own_topo = False

    # -------------------------------------------------------------------------
    # Sizes and knot vector access
    # -------------------------------------------------------------------------

    @property
    def dimension(self) -> int:
        return self.patch_topology.dimension

    @property
    def n_patches(self) -> int:
        return self.patch_topology.n_elements

    @property
    def n_bdr_patches(self) -> int:
        return self.patch_topology.n_bdr_elements

    @property
    def n_knot_vectors(self) -> int:
        return len(self.knot_vectors)

    @property
    def have_patches(self) -> bool:
        return len(self.patches) > 0

    @property
    def _n_unmerged_dof(self) -> int:
        """Number of active dofs before periodic identification."""
        return len(self._merge_map) if self._merge_map is not None else self.n_dof

    def knot_ind(self, edge: int) -> int:
        k = int(self.edge_to_knot[edge])
        return k if k >= 0 else -1 - k

    def knot_vec(self, edge: int) -> KnotVector:
        """Unique knot vector of an edge (of a patch in 1D)."""
        return self.knot_vectors[self.knot_ind(edge)]

    def knot_vec_oriented(self, edge: int, oedge: int) -> Tuple[KnotVector, int]:
        """
        Unique knot vector of an edge and its orientation relative to an
        element edge with orientation `oedge`.
        """
        okv = oedge if self.edge_to_knot[edge] >= 0 else -oedge
        return self.knot_vec(edge), int(okv)

    def get_knot_vector(self, i: int) -> KnotVector:
        return self.knot_vectors[i]

    def get_patch_knot_vectors(self, p: int) -> Tuple[KnotVector, ...]:
        """Comprehensive knot vectors of patch p, oriented along the patch."""
        dim = self.dimension
        return tuple(self.knot_vectors_compr[dim * p:dim * (p + 1)])

    def get_bdr_patch_knot_vectors(self, b: int) -> Tuple[KnotVector, ...]:
        if self.dimension == 1:
            return ()
        edges, _ = self.patch_topology.get_bdr_element_edges(b)
        return tuple(self.knot_vec(int(e)) for e in edges[:self.dimension - 1])

    def _patch_kv_edges(self, p: int) -> List[int]:
        """Edge carrying the knot vector of each direction of patch p."""
        if self.dimension == 1:
            return [p]
        edges, _ = self.patch_topology.get_element_edges(p)
        return [int(edges[e]) for e in KV_EDGES[self.dimension]]

    # -------------------------------------------------------------------------
    # Consistency checks
    # -------------------------------------------------------------------------

    def _signed_edge_knots(self, edges, oedge) -> List[int]:
        signed = []
        for e, o in zip(edges, oedge):
            k = int(self.edge_to_knot[e])
            signed.append(-1 - k if o < 0 else k)
        return signed

    def check_patches(self) -> None:
        """
        Verify that opposite edges of every patch carry the same knot
        vector in the same direction.
        """
        dim = self.dimension
        if dim == 1:
            return
        for p in range(self.n_patches):
            k = self._signed_edge_knots(*self.patch_topology.get_element_edges(p))
            if dim == 2:
                ok = k[0] == -1 - k[2] and k[1] == -1 - k[3]
            else:
                ok = (k[0] == k[2] == k[4] == k[6]
                      and k[1] == k[3] == k[5] == k[7]
                      and k[8] == k[9] == k[10] == k[11])
            if not ok:
                raise NURBSTopologyError(f"Patch {p}: inconsistent edge-to-knot mapping")

    def check_bdr_patches(self) -> None:
        """Verify that boundary patches run along their knot vectors."""
        dim = self.dimension
        if dim == 1:
            return
        for b in range(self.n_bdr_patches):
            k = self._signed_edge_knots(*self.patch_topology.get_bdr_element_edges(b))
            if k[0] < 0 or (dim == 3 and k[1] < 0):
                raise NURBSTopologyError(f"Boundary patch {b}: bad orientation")

    def check_kv_direction(self, p: int) -> List[int]:
        """
        Direction of the unique knot vectors relative to patch p.

        Returns:
            One entry per direction: 1 when the edge runs along the patch
            direction, -1 when it runs against it
        """
        topo = self.patch_topology
        pv = topo.get_element_vertices(p)
        dim = self.dimension
        kvdir = [0] * dim

        if dim == 1:
            ev = topo.get_edge_vertices(p)
            if ev[0] == pv[0] and ev[1] == pv[1]:
                kvdir[0] = 1
            elif ev[0] == pv[1] and ev[1] == pv[0]:
                kvdir[0] = -1
        else:
            pairs = [(pv[0], pv[1]), (pv[1], pv[2])]
            if dim == 3:
                pairs.append((pv[0], pv[4]))
            edges, _ = topo.get_element_edges(p)
            for e in edges:
                ev = topo.get_edge_vertices(int(e))
                for d, (a, b) in enumerate(pairs):
                    if ev[0] == a and ev[1] == b:
                        kvdir[d] = 1
                    elif ev[0] == b and ev[1] == a:
                        kvdir[d] = -1

        if 0 in kvdir:
            raise NURBSTopologyError(f"Patch {p}: could not find the direction of a knot vector")
        return kvdir

    # -------------------------------------------------------------------------
    # Knot vector views
    # -------------------------------------------------------------------------

    def _load_patches(self, patches: Sequence[NURBSPatch]):
        if len(patches) != self.n_patches:
            raise NURBSTopologyError(
                f"Expected {self.n_patches} patches, got {len(patches)}")
        dim = self.dimension
        n_kv = max(self.knot_ind(e) for e in range(len(self.edge_to_knot))) + 1
        kvs: List[Optional[KnotVector]] = [None] * n_kv
        for p, patch in enumerate(patches):
            if patch.n_dirs != dim:
                raise NURBSTopologyError(
                    f"Patch {p} has {patch.n_dirs} directions, expected {dim}")
            kvdir = self.check_kv_direction(p)
            for d, e in enumerate(self._patch_kv_edges(p)):
                k = self.knot_ind(e)
                if kvs[k] is None:
                    kv = patch.kv(d)
                    kvs[k] = kv.flip() if kvdir[d] == -1 else kv.copy()
        missing = [k for k, kv in enumerate(kvs) if kv is None]
        if missing:
            raise NURBSTopologyError(f"Knot vectors {missing} are not used by any patch")
        self.knot_vectors = kvs
        self.patches = [patch.copy() for patch in patches]

    def create_comprehensive_kv(self) -> None:
        """Derive the per-patch knot vectors from the unique ones."""
        self.knot_vectors_compr = []
        for p in range(self.n_patches):
            kvdir = self.check_kv_direction(p)
            for d, e in enumerate(self._patch_kv_edges(p)):
                kv = self.knot_vec(e)
                self.knot_vectors_compr.append(kv.flip() if kvdir[d] == -1 else kv.copy())
        if not self.consistent_kv_sets():
            raise NURBSTopologyError("Mismatch in knot vectors")

    def update_unique_kv(self) -> None:
        """Copy changed comprehensive knot vectors back to the unique set."""
        dim = self.dimension
        for p in range(self.n_patches):
            kvdir = self.check_kv_direction(p)
            for d, e in enumerate(self._patch_kv_edges(p)):
                comp = self.knot_vectors_compr[dim * p + d]
                oriented = comp.flip() if kvdir[d] == -1 else comp.copy()
                unique = self.knot_vec(e)
                if unique.degree != oriented.degree or len(unique.knots) != len(oriented.knots) \
                        or not np.array_equal(unique.knots, oriented.knots):
                    self.knot_vectors[self.knot_ind(e)] = oriented
        if not self.consistent_kv_sets():
            raise NURBSTopologyError("Mismatch in knot vectors")

    def consistent_kv_sets(self) -> bool:
        """True if every comprehensive knot vector matches its unique one."""
        dim = self.dimension
        for p in range(self.n_patches):
            kvdir = self.check_kv_direction(p)
            for d, e in enumerate(self._patch_kv_edges(p)):
                comp = self.knot_vectors_compr[dim * p + d]
                unique = self.knot_vec(e)
                if unique.degree != comp.degree:
                    logger.debug("Degree of knot vector %d of patch %d does not agree "
                                 "with unique knot vector %d", d, p, self.knot_ind(e))
                    return False
                oriented = comp.flip() if kvdir[d] == -1 else comp
                try:
                    diff = unique.difference(oriented)
                except NURBSTopologyError:
                    return False
                if diff.size > 0:
                    logger.debug("Knot vector %d of patch %d does not agree with "
                                 "unique knot vector %d", d, p, self.knot_ind(e))
                    return False
        return True

    def set_orders_from_knot_vectors(self) -> None:
        self.orders = [kv.degree for kv in self.knot_vectors]
        if self.orders and all(o == self.orders[0] for o in self.orders):
            self.order = self.orders[0]
        else:
            self.order = VARIABLE_ORDER

    # -------------------------------------------------------------------------
    # Global numbering
    # -------------------------------------------------------------------------

    def generate_offsets(self) -> None:
        """
        Assign global index ranges to vertices, edges, faces and patches.

        Mesh offsets count element vertices (elements - 1 per edge), space
        offsets count control points (n_basis - 2 per edge).
        """
        topo = self.patch_topology
        dim = self.dimension
        nv = topo.n_vertices
        ne = topo.n_edges if dim > 1 else 0
        nf = topo.n_faces
        n_p = topo.n_elements

        self.v_mesh_offsets = np.arange(nv, dtype=int)
        self.v_space_offsets = np.arange(nv, dtype=int)
        mesh = space = nv

        self.e_mesh_offsets = np.zeros(ne, dtype=int)
        self.e_space_offsets = np.zeros(ne, dtype=int)
        for e in range(ne):
            self.e_mesh_offsets[e] = mesh
            self.e_space_offsets[e] = space
            kv = self.knot_vec(e)
            mesh += kv.n_elements - 1
            space += kv.n_basis - 2

        self.f_mesh_offsets = np.zeros(nf, dtype=int)
        self.f_space_offsets = np.zeros(nf, dtype=int)
        for f in range(nf):
            self.f_mesh_offsets[f] = mesh
            self.f_space_offsets[f] = space
            edges, _ = topo.get_face_edges(f)
            kv0, kv1 = self.knot_vec(int(edges[0])), self.knot_vec(int(edges[1]))
            mesh += (kv0.n_elements - 1) * (kv1.n_elements - 1)
            space += (kv0.n_basis - 2) * (kv1.n_basis - 2)

        self.p_mesh_offsets = np.zeros(n_p, dtype=int)
        self.p_space_offsets = np.zeros(n_p, dtype=int)
        for p in range(n_p):
            self.p_mesh_offsets[p] = mesh
            self.p_space_offsets[p] = space
            kvs = [self.knot_vec(e) for e in self._patch_kv_edges(p)]
            if dim == 1:
                kvs = list(self.get_patch_knot_vectors(p))
            mesh += int(np.prod([kv.n_elements - 1 for kv in kvs]))
            space += int(np.prod([kv.n_basis - 2 for kv in kvs]))

        self.n_global_vertices = mesh
        self.n_total_dof = space
        self._n_offset_dofs = space
        logger.debug("Offsets: %d mesh vertices, %d dofs", mesh, space)

    def count_elements(self) -> None:
        self.n_global_elements = sum(
            int(np.prod([kv.n_elements for kv in self.get_patch_knot_vectors(p)]))
            for p in range(self.n_patches)
        )

    def count_bdr_elements(self) -> None:
        self.n_global_bdr_elements = sum(
            int(np.prod([kv.n_elements for kv in self.get_bdr_patch_knot_vectors(b)]))
            for b in range(self.n_bdr_patches)
        )

    def generate_active_vertices(self) -> None:
        """Mark the vertices of active elements and number them."""
        dim = self.dimension
        p2g = NURBSPatchMap(self)
        used = np.zeros(self.n_global_vertices, dtype=bool)
        g_el = 0
        for p in range(self.n_patches):
            p2g.set_patch_vertex_map(p)
            extents = (p2g.nx, p2g.ny, p2g.nz)[:dim]
            for idx in tensor_range(extents):
                if self.active_elem[g_el]:
                    for c in CORNERS[dim]:
                        used[p2g(*[i + o for i, o in zip(idx, c)])] = True
                g_el += 1

        self.active_vert = np.full(self.n_global_vertices, -1, dtype=int)
        self.n_vertices = int(used.sum())
        self.active_vert[used] = np.arange(self.n_vertices)

    def generate_active_bdr_elems(self) -> None:
        """All boundary elements are active for a complete mesh, none otherwise."""
        full = self.n_elements == self.n_global_elements
        self.active_bdr_elem = np.full(self.n_global_bdr_elements, full, dtype=bool)
        self.n_bdr_elements = self.n_global_bdr_elements if full else 0

    def _init_dof_map(self) -> None:
        self.d_to_d = None
        self._merge_map = None
        self.n_total_dof = self._n_offset_dofs

    def dof_map(self, i: int) -> int:
        """Dof index after periodic identification."""
        return int(self.d_to_d[i]) if self.d_to_d is not None else int(i)

    def _dof_map_array(self, indices: np.ndarray) -> np.ndarray:
        return self.d_to_d[indices] if self.d_to_d is not None else np.asarray(indices)

    def _element_dof_rows(self, active: Optional[np.ndarray]):
        """
        Dof stencils of the elements in patch order.

        Yields (global element, patch, span tuple, dofs) for every element
        with active[global element] set (all elements if active is None).
        """
        p2g = NURBSPatchMap(self)
        g_el = 0
        for p in range(self.n_patches):
            kvs = p2g.set_patch_dof_map(p)
            stencil = list(tensor_range([kv.degree + 1 for kv in kvs]))
            for ijk in element_spans(kvs):
                if active is None or active[g_el]:
                    dofs = [self.dof_map(p2g(*[s + o for s, o in zip(ijk, off)]))
                            for off in stencil]
                    yield g_el, p, ijk, dofs
                g_el += 1

    def generate_element_dof_table(self) -> None:
        """Element dof table of the active elements, with active dofs numbered from 0."""
        rows, el_to_patch, el_to_ijk = [], [], []
        for _, p, ijk, dofs in self._element_dof_rows(self.active_elem):
            rows.append(dofs)
            el_to_patch.append(p)
            el_to_ijk.append(ijk)
        table = Table.from_rows(rows)

        used = np.zeros(self.n_total_dof, dtype=bool)
        used[table.indices] = True
        self.active_dof = np.cumsum(used) * used
        self.n_dof = int(used.sum())

        self.el_dof = table.remap(self.active_dof - 1)
        self.el_to_patch = np.array(el_to_patch, dtype=int)
        self.el_to_ijk = np.array(el_to_ijk, dtype=int).reshape(-1, self.dimension)
        self.patch_to_el = [np.flatnonzero(self.el_to_patch == p) for p in range(self.n_patches)]

    def generate_bdr_element_dof_table(self) -> None:
        """Boundary element dof table, stencils ordered along the boundary element."""
        dim = self.dimension
        p2g = NURBSPatchMap(self)
        rows, bel_to_patch, bel_to_ijk = [], [], []
        g_be = 0
        for b in range(self.n_bdr_patches):
            kvs, okv = p2g.set_bdr_patch_dof_map(b)
            if dim == 1:
                if self.active_bdr_elem[g_be]:
                    rows.append([self.dof_map(p2g(0))])
                    bel_to_patch.append(b)
                    bel_to_ijk.append((0,))
                g_be += 1
                continue

            n = (p2g.nx, p2g.ny)[:dim - 1]
            stencil = list(tensor_range([kv.degree + 1 for kv in kvs]))
            for ij in element_spans(kvs):
                if self.active_bdr_elem[g_be]:
                    rows.append([
                        self.dof_map(p2g(*[_oriented_index(s, o, ok, nn)
                                           for s, o, ok, nn in zip(ij, off, okv, n)]))
                        for off in stencil
                    ])
                    bel_to_patch.append(b)
                    bel_to_ijk.append(tuple(s if ok >= 0 else -1 - s for s, ok in zip(ij, okv)))
                g_be += 1

        self.bel_dof = Table.from_rows(rows).remap(self.active_dof - 1)
        self.bel_to_patch = np.array(bel_to_patch, dtype=int)
        self.bel_to_ijk = np.array(bel_to_ijk, dtype=int).reshape(-1, max(dim - 1, 1))
        self.patch_to_bel = [np.flatnonzero(self.bel_to_patch == b)
                             for b in range(self.n_bdr_patches)]

    # -------------------------------------------------------------------------
    # Periodic boundaries
    # -------------------------------------------------------------------------

    def connect_boundaries(self, master: Optional[Sequence[int]] = None,
                           slave: Optional[Sequence[int]] = None) -> None:
        """
        Identify the dofs of periodic boundary pairs.

        Each boundary patch with attribute master[i] is paired, in order,
        with the boundary patches carrying slave[i]; their dofs are matched
        position by position along the knot vectors. Identified dofs share
        the number of their representative, and the remaining dofs are
        renumbered contiguously.
        """
        if master is not None or slave is not None:
            self.master = [int(m) for m in (master if master is not None else ())]
            self.slave = [int(s) for s in (slave if slave is not None else ())]
        if len(self.master) != len(self.slave):
            raise NURBSTopologyError("Periodic boundary lists are not of equal size")
        if not self.master:
            return

        parent = np.arange(self._n_offset_dofs)

        def find(i: int) -> int:
            root = i
            while parent[root] != root:
                root = parent[root]
            while parent[i] != root:
                parent[i], i = root, parent[i]
            return root

        for m, s in zip(self.master, self.slave):
            for b0, b1 in self._boundary_pairs(m, s):
                for d0, d1 in self._matching_boundary_dofs(b0, b1):
                    r0, r1 = find(d0), find(d1)
                    if r0 != r1:
                        parent[r0] = r1

        roots = np.array([find(i) for i in range(self._n_offset_dofs)], dtype=int)
        _, self.d_to_d = np.unique(roots, return_inverse=True)
        self.n_total_dof = int(self.d_to_d.max()) + 1 if len(self.d_to_d) else 0

        old_el_dof = self.el_dof
        old_bel_dof = self.bel_dof
        old_n_dof = self.n_dof
        self.generate_element_dof_table()
        self.generate_bdr_element_dof_table()

        self._merge_map = np.zeros(old_n_dof, dtype=int)
        self._merge_map[old_el_dof.indices] = self.el_dof.indices

        # weights already set on this numbering follow the merge
        if len(self.weights) == old_n_dof and old_n_dof > 0:
            weights = np.zeros(self.n_dof)
            weights[self.bel_dof.indices] = self.weights[old_bel_dof.indices]
            weights[self.el_dof.indices] = self.weights[old_el_dof.indices]
            self.weights = weights
        logger.debug("Periodic boundaries: %d -> %d dofs", old_n_dof, self.n_dof)

    def _boundary_pairs(self, master: int, slave: int) -> List[Tuple[int, int]]:
        topo = self.patch_topology
        b0 = [b for b in range(self.n_bdr_patches) if topo.get_bdr_attribute(b) == master]
        b1 = [b for b in range(self.n_bdr_patches) if topo.get_bdr_attribute(b) == slave]
        if not b0:
            raise NURBSTopologyError(f"Boundary attribute {master} not found")
        if not b1:
            raise NURBSTopologyError(f"Boundary attribute {slave} not found")
        if len(b0) != len(b1):
            raise NURBSTopologyError(
                f"Boundary attributes {master} and {slave} have different patch counts")
        return list(zip(b0, b1))

    def _matching_boundary_dofs(self, b0: int, b1: int) -> Iterator[Tuple[int, int]]:
        p2g0 = NURBSPatchMap(self)
        p2g1 = NURBSPatchMap(self)
        kv0, okv0 = p2g0.set_bdr_patch_dof_map(b0)
        kv1, okv1 = p2g1.set_bdr_patch_dof_map(b1)

        if self.dimension == 1:
            yield p2g0(0), p2g1(0)
            return

        n = (p2g0.nx, p2g0.ny)[:self.dimension - 1]
        if n != (p2g1.nx, p2g1.ny)[:self.dimension - 1] or any(
                a.n_knot_spans != b.n_knot_spans or a.degree != b.degree
                for a, b in zip(kv0, kv1)):
            raise NURBSTopologyError(
                f"Boundary patches {b0} and {b1} are not compatible")

        stencil = list(tensor_range([kv.degree + 1 for kv in kv0]))
        for ij in element_spans(kv0):
            if not all(kv.is_element(s) for kv, s in zip(kv1, ij)):
                raise NURBSTopologyError(
                    f"Elements of boundary patches {b0} and {b1} do not match")
            for off in stencil:
                i0 = [_oriented_index(s, o, ok, nn) for s, o, ok, nn in zip(ij, off, okv0, n)]
                i1 = [_oriented_index(s, o, ok, nn) for s, o, ok, nn in zip(ij, off, okv1, n)]
                yield p2g0(*i0), p2g1(*i1)

    def _collapse_weights(self, weights) -> np.ndarray:
        """Weights per active dof, accepting values given before periodic identification."""
        weights = np.asarray(weights, dtype=np.float64)
        if len(weights) == self.n_dof:
            return weights.copy()
        if self._merge_map is not None and len(weights) == len(self._merge_map):
            merged = np.zeros(self.n_dof)
            merged[self._merge_map] = weights
            return merged
        raise NURBSTopologyError(
            f"Expected {self.n_dof} weights, got {len(weights)}")

    # -------------------------------------------------------------------------
    # Merging partitioned pieces
    # -------------------------------------------------------------------------

    def merge_weights(self, pieces: Sequence['NURBSExtension']) -> None:
        for lext in pieces:
            for lel, gel in enumerate(lext.get_element_local_to_global()):
                self.weights[self.el_dof.row(gel)] = lext.weights[lext.el_dof.row(lel)]

    def merge_grid_functions(self, pieces: Sequence['NURBSExtension'],
                             values: Sequence[np.ndarray]) -> np.ndarray:
        """
        Combine per-piece dof values into one array over the merged dofs.

        Parameters:
            pieces: Local extensions the values live on
            values: One array per piece, shape (n_dof_local, ...)
        """
        first = np.asarray(values[0])
        merged = np.zeros((self.n_dof,) + first.shape[1:])
        for lext, lvals in zip(pieces, values):
            lvals = np.asarray(lvals)
            for lel, gel in enumerate(lext.get_element_local_to_global()):
                merged[self.el_dof.row(gel)] = lvals[lext.el_dof.row(lel)]
        return merged

    # -------------------------------------------------------------------------
    # Element and patch queries
    # -------------------------------------------------------------------------

    def get_element_dofs(self, i: int) -> np.ndarray:
        return self.el_dof.row(i)

    def get_bdr_element_dofs(self, i: int) -> np.ndarray:
        return self.bel_dof.row(i)

    def get_element_ijk(self, i: int) -> np.ndarray:
        """Knot span index per direction of active element i."""
        return self.el_to_ijk[i]

    def get_patch_elements(self, p: int) -> np.ndarray:
        return self.patch_to_el[p]

    def get_patch_bdr_elements(self, b: int) -> np.ndarray:
        return self.patch_to_bel[b]

    def _patch_dof_indices(self, p2g: NURBSPatchMap, kvs: Sequence[KnotVector]) -> np.ndarray:
        raw = p2g.patch_indices(tuple(kv.n_basis for kv in kvs))
        return self.active_dof[self._dof_map_array(raw)] - 1

    def get_patch_dofs(self, p: int) -> np.ndarray:
        """Active dof of every control point of patch p, index i fastest."""
        p2g = NURBSPatchMap(self)
        kvs = p2g.set_patch_dof_map(p)
        return self._patch_dof_indices(p2g, kvs)

    def get_vertex_local_to_global(self) -> np.ndarray:
        lvert_vert = np.zeros(self.n_vertices, dtype=int)
        used = self.active_vert >= 0
        lvert_vert[self.active_vert[used]] = np.flatnonzero(used)
        return lvert_vert

    def get_element_local_to_global(self) -> np.ndarray:
        return np.flatnonzero(self.active_elem)

    def get_element_topology(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Vertices of the active elements of the refined mesh.

        Returns:
            (vertices, attributes): active vertex ids, shape (n_elements, 2**dim),
            and the attribute of the patch of each element
        """
        dim = self.dimension
        p2g = NURBSPatchMap(self)
        verts, attrs = [], []
        g_el = 0
        for p in range(self.n_patches):
            p2g.set_patch_vertex_map(p)
            attr = self.patch_topology.get_attribute(p)
            for idx in tensor_range((p2g.nx, p2g.ny, p2g.nz)[:dim]):
                if self.active_elem[g_el]:
                    verts.append([self.active_vert[p2g(*[i + o for i, o in zip(idx, c)])]
                                  for c in CORNERS[dim]])
                    attrs.append(attr)
                g_el += 1
        return (np.array(verts, dtype=int).reshape(-1, 2 ** dim),
                np.array(attrs, dtype=int))

    def get_bdr_element_topology(self) -> Tuple[np.ndarray, np.ndarray]:
        """Vertices and attributes of the active boundary elements."""
        dim = self.dimension
        p2g = NURBSPatchMap(self)
        verts, attrs = [], []
        g_be = 0
        for b in range(self.n_bdr_patches):
            _, okv = p2g.set_bdr_patch_vertex_map(b)
            attr = self.patch_topology.get_bdr_attribute(b)
            if dim == 1:
                if self.active_bdr_elem[g_be]:
                    verts.append([self.active_vert[p2g(0)]])
                    attrs.append(attr)
                g_be += 1
                continue
            n = (p2g.nx, p2g.ny)[:dim - 1]
            for idx in tensor_range(n):
                if self.active_bdr_elem[g_be]:
                    idx_ = [i if ok >= 0 else nn - 1 - i for i, ok, nn in zip(idx, okv, n)]
                    verts.append([self.active_vert[p2g(*[i + o for i, o in zip(idx_, c)])]
                                  for c in CORNERS[dim - 1]])
                    attrs.append(attr)
                g_be += 1
        return (np.array(verts, dtype=int).reshape(-1, 2 ** (dim - 1)),
                np.array(attrs, dtype=int))

    # -------------------------------------------------------------------------
    # Finite element loading
    # -------------------------------------------------------------------------

    def load_fe(self, i: int, fe: HasPatchIJK) -> None:
        """Load active element i into a NURBS finite element."""
        if not isinstance(fe, HasPatchIJK):
            raise TypeError(f"{type(fe).__name__} can not be loaded from a NURBS patch")
        if fe.get_element() == i:
            return
        fe.set_ijk(self.el_to_ijk[i])
        p = int(self.el_to_patch[i])
        if p != fe.get_patch():
            fe.set_patch(p, self.get_patch_knot_vectors(p))
        fe.set_weights(self.weights[self.el_dof.row(i)])
        fe.set_element(i)

    def load_be(self, i: int, be: HasPatchIJK) -> None:
        """Load active boundary element i into a NURBS finite element."""
        if self.dimension == 1:
            return
        if not isinstance(be, HasPatchIJK):
            raise TypeError(f"{type(be).__name__} can not be loaded from a NURBS patch")
        if be.get_element() == i:
            return
        be.set_ijk(self.bel_to_ijk[i])
        b = int(self.bel_to_patch[i])
        if b != be.get_patch():
            be.set_patch(b, self.get_bdr_patch_knot_vectors(b))
        be.set_weights(self.weights[self.bel_dof.row(i)])
        be.set_element(i)

    # -------------------------------------------------------------------------
    # Patch round trip
    # -------------------------------------------------------------------------

    def convert_to_patches(self, coords: np.ndarray) -> None:
        """
        Build one patch per topology element from dof coordinates.

        Parameters:
            coords: Cartesian coordinates per active dof, shape (n_dof, vdim)
        """
        if self.patches:
            return
        coords = np.asarray(coords, dtype=np.float64)
        if coords.ndim == 1:
            coords = coords[:, None]
        if coords.shape[0] != self.n_dof:
            raise NURBSTopologyError(
                f"Expected coordinates for {self.n_dof} dofs, got {coords.shape[0]}")
        vdim = coords.shape[1]

        p2g = NURBSPatchMap(self)
        for p in range(self.n_patches):
            kvs = p2g.set_patch_dof_map(p)
            idx = self._patch_dof_indices(p2g, kvs)
            w = self.weights[idx]
            values = np.concatenate([coords[idx] * w[:, None], w[:, None]], axis=1)
            self.patches.append(NURBSPatch(kvs, vdim + 1, values))

    def _gather_from_patches(self) -> Tuple[np.ndarray, np.ndarray]:
        vdim = self.patches[0].dim - 1
        coords = np.zeros((self.n_dof, vdim))
        weights = np.zeros(self.n_dof)
        p2g = NURBSPatchMap(self)
        for p, patch in enumerate(self.patches):
            kvs = p2g.set_patch_dof_map(p)
            if patch.ncp != tuple(kv.n_basis for kv in kvs) or patch.dim != vdim + 1:
                raise NURBSTopologyError(f"Patch {p} does not match its knot vectors")
            idx = self._patch_dof_indices(p2g, kvs)
            cp = patch.control_points_lexicographic()
            coords[idx] = cp[:, :-1] / cp[:, -1:]
            weights[idx] = cp[:, -1]
        return coords, weights

    def set_coords_from_patches(self) -> np.ndarray:
        """
        Dof coordinates and weights from the patches; the patches are dropped.

        Returns:
            Cartesian coordinates per active dof, shape (n_dof, vdim)
        """
        if not self.patches:
            raise NURBSTopologyError("No patches available")
        coords, self.weights = self._gather_from_patches()
        self.patches = []
        return coords

    def set_knots_from_patches(self) -> None:
        """Adopt the knot vectors of the (refined) patches and rebuild all tables."""
        if not self.patches:
            raise NURBSTopologyError("No patches available")
        dim = self.dimension
        for p, patch in enumerate(self.patches):
            for d in range(dim):
                self.knot_vectors_compr[dim * p + d] = patch.kv(d).copy()

        self.update_unique_kv()
        self.set_orders_from_knot_vectors()
        self.generate_offsets()
        self.count_elements()
        self.count_bdr_elements()

        self.active_elem = np.ones(self.n_global_elements, dtype=bool)
        self.n_elements = self.n_global_elements

        self.generate_active_vertices()
        self._init_dof_map()
        self.generate_element_dof_table()
        self.generate_active_bdr_elems()
        self.generate_bdr_element_dof_table()
        self.connect_boundaries()

    def _require_patches(self):
        if not self.patches:
            raise NURBSTopologyError("No patches available; call convert_to_patches first")

    def uniform_refinement(self) -> None:
        """Split every element of every patch in half."""
        self._require_patches()
        for patch in self.patches:
            patch.uniform_refinement()

    def degree_elevate(self, rel_degree: int, degree: int = 16) -> None:
        """Raise every patch direction by rel_degree, capped at degree."""
        self._require_patches()
        for patch in self.patches:
            for d in range(patch.n_dirs):
                old = patch.kv(d).degree
                new = min(old + rel_degree, degree)
                if new > old:
                    patch.degree_elevate(d, new - old)

    def knot_insert(self, kvs: Sequence[KnotSet]) -> None:
        """
        Insert knots into the patches.

        Parameters:
            kvs: One entry per unique knot vector: either a target
                KnotVector or the knot values to insert, both given in the
                orientation of the unique knot vector
        """
        self._require_patches()
        if len(kvs) != self.n_knot_vectors:
            raise NURBSConfigurationError(
                f"Expected {self.n_knot_vectors} knot sets, got {len(kvs)}")
        dim = self.dimension
        for p, patch in enumerate(self.patches):
            kvdir = self.check_kv_direction(p)
            pkv: List[KnotSet] = []
            for d, e in enumerate(self._patch_kv_edges(p)):
                k = kvs[self.knot_ind(e)]
                if kvdir[d] == -1:
                    if isinstance(k, KnotVector):
                        k = k.flip()
                    else:
                        compr = self.knot_vectors_compr[dim * p + d]
                        apb = compr.knots[0] + compr.knots[-1]
                        k = apb - np.asarray(k, dtype=np.float64)[::-1]
                pkv.append(k)
            patch.knot_insert_all(pkv)

    # -------------------------------------------------------------------------
    # Text output and solutions
    # -------------------------------------------------------------------------

    def write(self, out: TextIO, comments: str = "") -> None:
        """Write the mesh in the format read by from_stream."""
        self.patch_topology.write(out, self.edge_to_knot, comments)
        if not self.patches:
            out.write("\nknotvectors\n%d\n" % self.n_knot_vectors)
            for kv in self.knot_vectors:
                kv.write(out)

            if self.n_elements < self.n_global_elements:
                out.write("\nmesh_elements\n%d\n" % self.n_elements)
                for e in self.get_element_local_to_global():
                    out.write("%d\n" % e)
        else:
            out.write("\npatches\n")
            for p, patch in enumerate(self.patches):
                out.write("\n# patch %d\n\n" % p)
                patch.write(out)

        if self.master:
            out.write("\nperiodic\n")
            out.write("%d %s\n" % (len(self.master), " ".join(str(m) for m in self.master)))
            out.write("%d %s\n" % (len(self.slave), " ".join(str(s) for s in self.slave)))

        if not self.patches:
            # weights are listed before periodic identification
            weights = self.weights
            if self._merge_map is not None:
                weights = self.weights[self._merge_map]
            out.write("\nweights\n")
            for w in weights:
                out.write(format_values([w]) + "\n")

    def to_text(self, comments: str = "") -> str:
        out = io.StringIO()
        self.write(out, comments)
        return out.getvalue()

    def save(self, filename: str, comments: str = "") -> None:
        with open(filename, "w") as f:
            self.write(f, comments)

    def load_solution(self, stream: TokenStream, vdim: int = 1) -> np.ndarray:
        """
        Read dof values given patch by patch, control points i fastest.

        Returns:
            Array of shape (n_dof, vdim)
        """
        values = np.zeros((self.n_dof, vdim))
        p2g = NURBSPatchMap(self)
        for p in range(self.n_patches):
            kvs = p2g.set_patch_dof_map(p)
            for l in self._patch_dof_indices(p2g, kvs):
                values[l] = stream.next_floats(vdim)
        return values

    def print_solution(self, values: np.ndarray, out: TextIO) -> None:
        """Write dof values patch by patch (inverse of load_solution)."""
        values = np.asarray(values, dtype=np.float64)
        if values.ndim == 1:
            values = values[:, None]
        p2g = NURBSPatchMap(self)
        for p in range(self.n_patches):
            out.write("\n# patch %d\n\n" % p)
            kvs = p2g.set_patch_dof_map(p)
            for l in self._patch_dof_indices(p2g, kvs):
                out.write(format_values(values[l]) + "\n")

    def print_characteristics(self, out: Optional[TextIO] = None) -> str:
        """Summary of entity counts, logged at INFO level and optionally written."""
        lines = [
            "NURBS Mesh entity sizes:",
            f"Dimension           = {self.dimension}",
            f"Unique Orders       = {' '.join(str(o) for o in sorted(set(self.orders)))}",
            f"NumOfKnotVectors    = {self.n_knot_vectors}",
            f"NumOfPatches        = {self.n_patches}",
            f"NumOfBdrPatches     = {self.n_bdr_patches}",
            f"NumOfVertices       = {self.n_global_vertices}",
            f"NumOfElements       = {self.n_global_elements}",
            f"NumOfBdrElements    = {self.n_global_bdr_elements}",
            f"NumOfDofs           = {self.n_total_dof}",
            f"NumOfActiveVertices = {self.n_vertices}",
            f"NumOfActiveElems    = {self.n_elements}",
            f"NumOfActiveBdrElems = {self.n_bdr_elements}",
            f"NumOfActiveDofs     = {self.n_dof}",
        ]
        lines += [f" {i + 1}) {kv.to_text()}" for i, kv in enumerate(self.knot_vectors)]
        text = "\n".join(lines) + "\n"
        logger.info("%s", text)
        if out is not None:
            out.write(text)
        return text
