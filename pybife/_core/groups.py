"""
Group index for contiguous panel data.

Every group-wise reduction in the fitting algorithms goes through this
index, so the individual dummy matrix is never formed.
"""

import numpy as np
import pandas as pd
from dataclasses import dataclass

from ..exceptions import DegenerateGroup


@dataclass(frozen=True, eq=False)
class GroupIndex:
    """
    Partition of rows into contiguous groups.

    Attributes
    ----------
    keys : ndarray, shape (G,)
        Group label, in order of appearance
    starts : ndarray, shape (G,)
        First row of each group
    sizes : ndarray, shape (G,)
        Number of rows per group
    codes : ndarray, shape (n,)
        Group position of each row
    """
    keys: np.ndarray
    starts: np.ndarray
    sizes: np.ndarray
    codes: np.ndarray

    @classmethod
    def from_ids(cls, ids) -> "GroupIndex":
        """
        Build the index from an id vector with contiguous groups.

        Raises
        ------
        ValueError
            If ids is empty or a group's rows are not contiguous
        """
        ids = np.asarray(ids)
        if ids.ndim != 1:
            raise ValueError("id must be 1-dimensional")
        n = len(ids)
        if n == 0:
            raise ValueError("id is empty")

        change = np.empty(n, dtype=bool)
        change[0] = True
        change[1:] = ids[1:] != ids[:-1]
        starts = np.flatnonzero(change)
        keys = ids[starts]

        if len(pd.unique(keys)) != len(keys):
            raise ValueError(
                "Rows must be grouped contiguously by id (sort by id first)"
            )

        sizes = np.diff(np.append(starts, n))
        codes = np.repeat(np.arange(len(starts)), sizes)

        for arr in (keys, starts, sizes, codes):
            arr.flags.writeable = False

        return cls(keys=keys, starts=starts, sizes=sizes, codes=codes)

    @property
    def n_groups(self) -> int:
        return len(self.starts)

    @property
    def n_obs(self) -> int:
        return len(self.codes)

    def sum(self, values: np.ndarray) -> np.ndarray:
        """Group sums of a vector (G,) or of each matrix column (G, k)."""
        return np.add.reduceat(values, self.starts, axis=0)

    def expand(self, per_group: np.ndarray) -> np.ndarray:
        """Broadcast per-group values back to rows."""
        return per_group[self.codes]

    def weighted_mean(self, values, w, backend=None):
        """Weighted group means Σ w·v / Σ w, shape (G,) or (G, k)."""
        reduce = self.sum if backend is None else (
            lambda v: backend.group_sums(v, self)
        )
        if values.ndim == 1:
            return reduce(w * values) / reduce(w)
        return reduce(w[:, np.newaxis] * values) / reduce(w)[:, np.newaxis]

    def demean(self, values, w, backend=None):
        """Remove weighted group means from a vector or matrix."""
        return values - self.expand(self.weighted_mean(values, w, backend))

    def require_min_size(self, min_size: int = 2) -> None:
        """
        Raise if any group is smaller than min_size.

        Raises
        ------
        DegenerateGroup
        """
        small = self.sizes < min_size
        if np.any(small):
            bad = self.keys[small]
            raise DegenerateGroup(
                f"{len(bad)} group(s) with fewer than {min_size} observations, "
                f"e.g. id {bad[0]!r}"
            )


__all__ = ["GroupIndex"]
