"""
Sample preparation for fixed effects binary choice models.

Turns user input (column names in a DataFrame, or arrays) into the
cleaned, id-sorted sample the fitting algorithms expect.
"""

import numpy as np
import pandas as pd
from typing import Optional, Union, List
from dataclasses import dataclass

from .exceptions import DegenerateGroup, DimensionMismatch


@dataclass(frozen=True, eq=False)
class PanelData:
    """Cleaned sample plus bookkeeping of what was dropped."""
    y: np.ndarray           # 0/1 response, retained rows
    X: np.ndarray           # Regressors, retained rows
    ids: np.ndarray         # Individual identifier, retained rows
    names: List[str]        # Regressor names
    y_name: str
    nobs: int               # Rows after dropping missing values
    events: int             # y == 1 among those rows
    drop_NA: int            # Rows with missing values
    drop_pc: int            # Rows of perfectly classified individuals
    drop_pc_groups: int     # Perfectly classified individuals

    @property
    def sample_info(self) -> dict:
        return {
            'nobs': self.nobs,
            'events': self.events,
            'drop_NA': self.drop_NA,
            'drop_pc': self.drop_pc,
            'drop_pc_groups': self.drop_pc_groups,
            'names': self.names,
        }


def _column(value, data, what):
    if isinstance(value, str):
        if data is None:
            raise ValueError(f"Must provide data when {what} is a string")
        return data[value].to_numpy(), value
    return np.asarray(value), None


def _regressors(X, data):
    if isinstance(X, str):
        X = [X]
    if isinstance(X, list) and all(isinstance(x, str) for x in X):
        if data is None:
            raise ValueError("Must provide data when X is list of strings")
        return data[X].reset_index(drop=True), list(X)
    if isinstance(X, pd.DataFrame):
        return X.reset_index(drop=True), [str(c) for c in X.columns]
    X = np.asarray(X)
    if X.ndim == 1:
        X = X[:, np.newaxis]
    names = [f'x{i}' for i in range(X.shape[1])]
    return pd.DataFrame(X, columns=names), names


def encode_response(y) -> np.ndarray:
    """
    Code a binary response as 0/1.

    Numeric 0/1 (or boolean) responses are kept; any other response with
    two distinct values maps the larger one to 1.
    """
    y = pd.Series(y)
    levels = pd.unique(y)
    if len(levels) > 2:
        raise ValueError(
            f"Response must be binary, found {len(levels)} distinct values"
        )
    try:
        levels = np.sort(levels)
    except TypeError:
        raise ValueError(
            f"Response levels {levels.tolist()} cannot be ordered; "
            f"code the binary response as 0/1"
        ) from None
    if y.dtype == bool or set(levels.tolist()) <= {0, 1}:
        return y.to_numpy(dtype=np.float64)
    return (y == levels[-1]).to_numpy(dtype=np.float64)


def prepare_panel(
    y: Union[str, np.ndarray],
    X: Union[str, List[str], np.ndarray, pd.DataFrame],
    id: Union[str, np.ndarray],
    data: Optional[pd.DataFrame] = None,
) -> PanelData:
    """
    Build the estimation sample.

    1. drop rows with a missing response, regressor or id;
    2. sort rows by id (stable, so the within-id order is kept);
    3. code the response 0/1;
    4. drop individuals whose response never varies.

    Parameters
    ----------
    y : str or array
        Response (column name in data, or values)
    X : str, list of str, DataFrame or array
        Regressors (no constant)
    id : str or array
        Individual identifier
    data : DataFrame, optional
        Dataset containing the named columns

    Returns
    -------
    PanelData

    Raises
    ------
    DimensionMismatch
        If y, X and id differ in length
    DegenerateGroup
        If no individual has a varying response
    """
    y_values, y_name = _column(y, data, "y")
    id_values, _ = _column(id, data, "id")
    X_frame, names = _regressors(X, data)

    if not (len(y_values) == len(X_frame) == len(id_values)):
        raise DimensionMismatch(
            f"y, X and id must have the same length "
            f"(got {len(y_values)}, {len(X_frame)}, {len(id_values)})"
        )

    frame = X_frame.copy()
    frame.columns = names
    frame['__y__'] = y_values
    frame['__id__'] = id_values

    complete = ~frame.isna().any(axis=1)
    drop_NA = int((~complete).sum())
    frame = frame.loc[complete].sort_values('__id__', kind='mergesort')

    y01 = encode_response(frame['__y__'])
    frame['__y__'] = y01
    nobs = len(frame)
    events = int(y01.sum())

    mean_y = frame.groupby('__id__', sort=False)['__y__'].transform('mean')
    varying = ((mean_y > 0.0) & (mean_y < 1.0)).to_numpy()
    drop_pc = int((~varying).sum())
    drop_pc_groups = int(frame.loc[~varying, '__id__'].nunique())
    frame = frame.loc[varying]

    if len(frame) == 0:
        raise DegenerateGroup(
            "No individual with a varying response; nothing to estimate"
        )

    return PanelData(
        y=frame['__y__'].to_numpy(dtype=np.float64),
        X=frame[names].to_numpy(dtype=np.float64),
        ids=frame['__id__'].to_numpy(),
        names=names,
        y_name=y_name or 'y',
        nobs=nobs,
        events=events,
        drop_NA=drop_NA,
        drop_pc=drop_pc,
        drop_pc_groups=drop_pc_groups,
    )


__all__ = ["PanelData", "encode_response", "prepare_panel"]
