"""Fill zero pole values with the median of their spatial neighborhood.

Poles of neighbouring windows are stacked into a matrix with one row per
window (genomic order) and one column per pole offset (sorted by offset).
A zero at ``(row, col)`` is replaced by the median of the ``k x k`` block
centred on it. Where the block runs off the edge of the matrix the missing
cells are taken to be the median of the nearest column over all windows, so
every block holds exactly ``k * k`` values.
"""
from logging import getLogger

import numpy as np

from .config import DEFAULT_IMPUTE_K, VALUE_DTYPE
from .model import PoleTable


logger = getLogger(__name__)

# zero cells imputed per batch, bounds the size of the gathered neighborhoods
IMPUTE_BATCH_SIZE = 100_000


def pad_with_column_medians(values: np.ndarray, width: int) -> np.ndarray:
    num_rows, num_cols = values.shape
    column_medians = np.median(values, axis=0)
    clamped = np.clip(np.arange(-width, num_cols + width), 0, num_cols - 1)
    padded = np.tile(column_medians[clamped], (num_rows + 2 * width, 1))
    padded[width : width + num_rows, width : width + num_cols] = values
    return padded


def median_fill(values: np.ndarray, k: int = DEFAULT_IMPUTE_K) -> np.ndarray:
    if k < 1 or k % 2 == 0:
        raise ValueError(f"The neighborhood width must be a positive odd number, got {k}")
    half = k // 2
    result = values.astype(VALUE_DTYPE, copy=True)
    rows, cols = np.nonzero(values == 0)
    if len(rows) == 0:
        return result
    padded = pad_with_column_medians(result, half)
    steps = np.arange(-half, half + 1)
    for batch in range(0, len(rows), IMPUTE_BATCH_SIZE):
        r = rows[batch : batch + IMPUTE_BATCH_SIZE]
        c = cols[batch : batch + IMPUTE_BATCH_SIZE]
        block_rows = (r + half)[:, None, None] + steps[None, :, None]
        block_cols = (c + half)[:, None, None] + steps[None, None, :]
        blocks = padded[block_rows, block_cols].reshape(len(r), -1)
        result[r, c] = np.median(blocks, axis=1)
    return result


def impute_zeros(table: PoleTable, k: int = DEFAULT_IMPUTE_K) -> PoleTable:
    order = np.argsort(table.offsets, kind="stable")
    filled = median_fill(table.values[:, order], k=k)
    values = np.empty_like(filled)
    values[:, order] = filled
    logger.debug(
        f"Imputed {np.count_nonzero(table.values == 0)} zero values in {len(table)} poles, "
        f"{np.count_nonzero(values == 0)} remain zero"
    )
    return table.with_values(values)
