"""Extract the zig-zag pole of each window.

The pole of a window centred on bin ``c`` is the row of the contact matrix
through ``c``, read outwards from the diagonal one bin at a time, alternating
between the downstream and upstream side: ``c``, ``c+1``, ``c-1``, ``c+2``...
"""
from logging import getLogger

import numpy as np
import pandas as pd

from .config import GENOMIC_OFFSET_DTYPE
from .errors import DegenerateVectorError
from .matrix import MatrixStore
from .model import PoleTable, SkeletonParams


logger = getLogger(__name__)


def zigzag_offsets(prediction_bins: int) -> np.ndarray:
    """Signed bin distances of each pole position: 0, +1, -1, +2, -2, ..."""
    idx = np.arange(prediction_bins)
    magnitude = (idx + 1) // 2
    sign = np.where(idx % 2 == 1, 1, -1)
    return (magnitude * sign).astype(GENOMIC_OFFSET_DTYPE)


def extract_poles(matrix: MatrixStore, windows: pd.DataFrame, params: SkeletonParams) -> PoleTable:
    offsets = zigzag_offsets(params.prediction_bins)
    centers = windows["start"].to_numpy(dtype="int64") + params.window_size // 2
    partners = centers[:, None] + offsets[None, :].astype("int64") * params.bin_size
    values = matrix.lookup(centers[:, None], partners)
    logger.debug(
        f"Extracted {len(windows)} poles on {matrix.chrom}, {np.count_nonzero(values)} of {values.size} values non-zero"
    )
    return PoleTable(windows, values, offsets, params.bin_size)


def drop_empty_poles(table: PoleTable) -> PoleTable:
    """Remove windows whose pole has a median of zero"""
    keep = np.median(table.values, axis=1) != 0
    if not keep.any():
        raise DegenerateVectorError(f"All {len(table)} windows have a pole median of zero")
    logger.debug(f"Keeping {keep.sum()} of {len(table)} windows with a non-zero pole median")
    return table.select(keep)
