"""
Partitioned NURBS extension.

Every rank holds a ParNURBSExtension in which only the elements assigned
to it are active. Dofs on the interface between ranks are shared; the
GroupTopology records, for every distinct set of ranks sharing a dof, one
group id. The groups are derived from the global partitioning array
alone, so all ranks can build them without communicating.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .extension import NURBSExtension
from .table import Table
from ..errors import NURBSConfigurationError, NURBSTopologyError

logger = logging.getLogger(__name__)


class GroupTopology:
    """
    Registry of rank groups.

    Group 0 is always the local rank alone. A group is stored as the
    sorted tuple of its ranks; inserting an existing group returns its id.
    """

    def __init__(self, my_rank: int):
        self.my_rank = int(my_rank)
        self._groups: List[Tuple[int, ...]] = []
        self._ids: Dict[Tuple[int, ...], int] = {}
        self.insert([self.my_rank])

    def insert(self, ranks: Sequence[int]) -> int:
        group = tuple(sorted(set(int(r) for r in ranks)))
        if group not in self._ids:
            self._ids[group] = len(self._groups)
            self._groups.append(group)
        return self._ids[group]

    @property
    def n_groups(self) -> int:
        return len(self._groups)

    def get_group(self, g: int) -> Tuple[int, ...]:
        return self._groups[g]

    def group_size(self, g: int) -> int:
        return len(self._groups[g])

    def group_master_rank(self, g: int) -> int:
        """Lowest rank of group g; it owns the dofs of the group."""
        return self._groups[g][0]

    def is_group_master(self, g: int) -> bool:
        return self.group_master_rank(g) == self.my_rank


class ParNURBSExtension(NURBSExtension):
    """
    Local extension of one rank of a partitioned NURBS mesh.

    Attributes:
        partitioning: Owning rank of every global element (None when the
            extension was built from a local parent)
        gtopo: Rank groups of the shared dofs
        ldof_group: Group id of every active dof
    """

    def __init__(self, parent: NURBSExtension, partitioning: Sequence[int],
                 active_bdr_elements: Sequence[bool], my_rank: int):
        """
        Local extension of rank my_rank, built from a serial extension.

        The serial parent must have all of its elements active and must own
        the topology; ownership moves to the new extension.

        Parameters:
            parent: Global serial extension
            partitioning: Owning rank per global element
            active_bdr_elements: Active flag per global boundary element
            my_rank: Rank of this process
        """
        if parent.n_elements < parent.n_global_elements:
            raise NURBSConfigurationError("All elements of the parent must be active")
        self._reset()
        self.gtopo = GroupTopology(my_rank)
        self.ldof_group = np.zeros(0, dtype=int)

        self.acquire_topology(parent)
        self.edge_to_knot = parent.edge_to_knot.copy()
        self.knot_vectors = [kv.copy() for kv in parent.knot_vectors]
        self.create_comprehensive_kv()
        self.set_orders_from_knot_vectors()

        self.generate_offsets()
        self.count_elements()
        self.count_bdr_elements()

        partitioning = np.array(partitioning, dtype=int)
        if len(partitioning) != self.n_global_elements:
            raise NURBSConfigurationError(
                f"Expected a partitioning of {self.n_global_elements} elements, "
                f"got {len(partitioning)}")
        self.partitioning: Optional[np.ndarray] = partitioning
        self.set_active(partitioning, active_bdr_elements)

        self.generate_active_vertices()
        self._init_dof_map()
        self.generate_element_dof_table()
        self.generate_bdr_element_dof_table()
        self.master = list(parent.master)
        self.slave = list(parent.slave)
        self.connect_boundaries()

        self.build_groups(partitioning, parent.el_dof)
        self.weights = self._local_weights(parent.el_dof, parent.weights)
        logger.debug("Rank %d: %d of %d elements, %d dofs, %d groups", self.my_rank,
                     self.n_elements, self.n_global_elements, self.n_dof,
                     self.gtopo.n_groups)

    @classmethod
    def from_local(cls, parent: NURBSExtension,
                   par_parent: 'ParNURBSExtension') -> 'ParNURBSExtension':
        """
        Partitioned extension taking over all data of `parent`.

        `parent` is typically derived from the local extension of
        `par_parent` (for instance with a raised degree) and is left empty.
        If it is a global extension instead, the elements are restricted to
        the partition of `par_parent`.
        """
        if parent.have_patches:
            raise NURBSConfigurationError("Parent extension still holds patches")
        if par_parent.partitioning is None:
            raise NURBSConfigurationError("Parallel parent has no partitioning")

        ext = cls.__new__(cls)
        ext.__dict__.update(parent.__dict__)
        parent._reset()
        ext.gtopo = GroupTopology(par_parent.my_rank)
        ext.ldof_group = np.zeros(0, dtype=int)
        ext.partitioning = None

        global_weights = None
        if ext.n_elements != par_parent.n_elements:
            if ext.n_elements != ext.n_global_elements:
                raise NURBSTopologyError("Parent is neither local nor global")
            global_weights = ext.weights
            ext.weights = np.zeros(0)
            ext.set_active(par_parent.partitioning, par_parent.active_bdr_elem)
            ext.generate_active_vertices()
            ext._init_dof_map()
            ext.generate_element_dof_table()
            ext.generate_bdr_element_dof_table()
            ext.connect_boundaries()

        glob_el_dof = ext.get_global_element_dof_table()
        ext.build_groups(par_parent.partitioning, glob_el_dof)
        if global_weights is not None:
            ext.weights = ext._local_weights(glob_el_dof, global_weights)
        return ext

    @property
    def my_rank(self) -> int:
        return self.gtopo.my_rank

    def set_active(self, partitioning: Sequence[int], active_bdr_elements: Sequence[bool]) -> None:
        """Activate the elements owned by this rank and the given boundary elements."""
        self.active_elem = np.asarray(partitioning, dtype=int) == self.my_rank
        self.n_elements = int(self.active_elem.sum())

        active_bel = np.array(active_bdr_elements, dtype=bool)
        if len(active_bel) != self.n_global_bdr_elements:
            raise NURBSConfigurationError(
                f"Expected {self.n_global_bdr_elements} boundary element flags, "
                f"got {len(active_bel)}")
        self.active_bdr_elem = active_bel
        self.n_bdr_elements = int(active_bel.sum())

    def get_global_element_dof_table(self) -> Table:
        """Dof table of all global elements in the global dof numbering."""
        return Table.from_rows(dofs for _, _, _, dofs in self._element_dof_rows(None))

    def build_groups(self, partitioning: Sequence[int], elem_dof: Table) -> None:
        """
        Group id of every active dof from the ranks of the elements sharing it.

        Parameters:
            partitioning: Owning rank per global element
            elem_dof: Global element -> global dof table
        """
        partitioning = np.asarray(partitioning, dtype=int)
        dof_elem = elem_dof.transpose(self.n_total_dof)
        dof_rank = dof_elem.remap(partitioning)

        self.ldof_group = np.zeros(self.n_dof, dtype=int)
        for d in np.flatnonzero(self.active_dof):
            self.ldof_group[self.active_dof[d] - 1] = self.gtopo.insert(dof_rank.row(d))

    def _local_weights(self, glob_el_dof: Table, glob_weights: np.ndarray) -> np.ndarray:
        # local elements follow the global element order
        weights = np.zeros(self.n_dof)
        for lel, gel in enumerate(self.get_element_local_to_global()):
            weights[self.el_dof.row(lel)] = glob_weights[glob_el_dof.row(gel)]
        return weights
