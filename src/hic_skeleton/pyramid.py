"""Percentile ("pyramid") binning of pole values.

Each pole offset is binned independently over every window of a
chromosome. A scheme is the list of cumulative upper percentiles of each
class, the default ``20, 40, 50, 60, 70, 75, 80, 85, 90, 95, 100`` gives 11
classes: two of 20%, three of 10% and six of 5%. Boundaries are found with
linear interpolation between order statistics. Classes are closed-open, a
value equal to a boundary belongs to the class above it and the largest
value of a column is always in the last class.
"""
from logging import getLogger
from typing import Sequence

import numpy as np

from .config import CLASS_DTYPE, PERCENTILE_METHOD, PYRAMID_PERCENTILES
from .model import PoleTable


logger = getLogger(__name__)


def pyramid_edges(values: np.ndarray, percentiles: Sequence[float] = PYRAMID_PERCENTILES) -> np.ndarray:
    """Interior class boundaries, shape (num_classes - 1, num_columns)"""
    interior = np.asarray(percentiles[:-1], dtype=float)
    return np.percentile(values, interior, axis=0, method=PERCENTILE_METHOD).reshape(len(interior), values.shape[1])


def assign_classes(values: np.ndarray, edges: np.ndarray) -> np.ndarray:
    classes = np.empty(values.shape, dtype=CLASS_DTYPE)
    for col in range(values.shape[1]):
        classes[:, col] = np.searchsorted(edges[:, col], values[:, col], side="right")
    return classes


def pyramid_bin(table: PoleTable, percentiles: Sequence[float] = PYRAMID_PERCENTILES) -> PoleTable:
    if len(table) == 0:
        raise ValueError("Can't bin an empty pole table")
    if len(percentiles) > np.iinfo(CLASS_DTYPE).max + 1:
        raise ValueError(f"{len(percentiles)} classes don't fit in {CLASS_DTYPE}")
    edges = pyramid_edges(table.values, percentiles)
    classes = assign_classes(table.values, edges)
    logger.debug(f"Binned {len(table)} poles into {len(percentiles)} classes")
    return table.with_values(classes)
