"""
Row-compressed connectivity tables (element -> dofs, dof -> elements).

A Table stores, for every row, an ordered list of column indices. Row
order is significant: element dof rows follow the tensor-product stencil
of the element and must not be sorted.
"""

from typing import Iterable, Iterator, Optional, Sequence

import numpy as np
from scipy import sparse


class Table:
    """
    Connectivity table in compressed row form.

    Attributes:
        offsets: Row start positions, shape (n_rows + 1,)
        indices: Column indices of all rows concatenated
    """

    def __init__(self, offsets: np.ndarray, indices: np.ndarray):
        self.offsets = np.asarray(offsets, dtype=int)
        self.indices = np.asarray(indices, dtype=int)
        if self.offsets[0] != 0 or self.offsets[-1] != len(self.indices):
            raise ValueError("Table offsets do not match the number of connections")

    @classmethod
    def from_rows(cls, rows: Iterable[Sequence[int]]) -> 'Table':
        """Build a table from a sequence of rows."""
        rows = [np.asarray(r, dtype=int) for r in rows]
        offsets = np.zeros(len(rows) + 1, dtype=int)
        offsets[1:] = np.cumsum([len(r) for r in rows])
        indices = np.concatenate(rows) if rows else np.zeros(0, dtype=int)
        return cls(offsets, indices)

    @property
    def n_rows(self) -> int:
        return len(self.offsets) - 1

    @property
    def n_connections(self) -> int:
        return len(self.indices)

    @property
    def width(self) -> int:
        """One more than the largest column index (0 for an empty table)."""
        return int(self.indices.max()) + 1 if self.n_connections else 0

    def row(self, i: int) -> np.ndarray:
        return self.indices[self.offsets[i]:self.offsets[i + 1]]

    def row_size(self, i: int) -> int:
        return int(self.offsets[i + 1] - self.offsets[i])

    def __len__(self) -> int:
        return self.n_rows

    def __iter__(self) -> Iterator[np.ndarray]:
        for i in range(self.n_rows):
            yield self.row(i)

    def copy(self) -> 'Table':
        return Table(self.offsets.copy(), self.indices.copy())

    def remap(self, mapping: np.ndarray) -> 'Table':
        """Table with every column index c replaced by mapping[c]."""
        return Table(self.offsets.copy(), np.asarray(mapping, dtype=int)[self.indices])

    def to_sparse(self, n_cols: Optional[int] = None) -> sparse.csr_matrix:
        """
        Incidence matrix with one stored entry per connection.

        Repeated columns within a row are kept as separate entries.
        """
        if n_cols is None:
            n_cols = self.width
        data = np.ones(self.n_connections, dtype=np.int64)
        return sparse.csr_matrix((data, self.indices.copy(), self.offsets.copy()),
                                 shape=(self.n_rows, n_cols))

    def transpose(self, n_cols: Optional[int] = None) -> 'Table':
        """
        Transposed table; row c lists the rows containing column c, in
        increasing order.

        Parameters:
            n_cols: Number of rows of the result (defaults to width)
        """
        t = self.to_sparse(n_cols).transpose().tocsr()
        return Table(t.indptr, t.indices)
