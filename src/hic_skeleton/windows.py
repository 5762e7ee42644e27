from logging import getLogger
from typing import Callable, Iterable, Optional, Tuple

import pandas as pd

from .errors import EmptyWindowSetError
from .matrix import MatrixStore
from .model import SkeletonParams, Window


logger = getLogger(__name__)

Tiler = Callable[[str, int, int, int, int], Iterable[Tuple[str, int, int]]]


def bedtools_tiler(chrom: str, start: int, end: int, window_size: int, step: int):
    """Tile [start, end) with `bedtools makewindows`, the last window may be truncated"""
    import pybedtools

    region = pybedtools.BedTool(f"{chrom}\t{start}\t{end}\n", from_string=True)
    tiles = pybedtools.BedTool().window_maker(b=region, w=window_size, s=step)
    return [(iv.chrom, iv.start, iv.end) for iv in tiles]


def make_windows(
    chrom: str, start: int, end: int, window_size: int, step: int, tiler: Optional[Tiler] = None
) -> pd.DataFrame:
    """Tile a region with windows and keep only those exactly window_size wide"""
    if tiler is None:
        tiler = bedtools_tiler
    if end - start < window_size:
        raise EmptyWindowSetError(f"{chrom}:{start}-{end} is shorter than a single {window_size}bp window")
    tiles = pd.DataFrame(list(tiler(chrom, start, end, window_size, step)), columns=["chrom", "start", "end"])
    full_width = (tiles["end"] - tiles["start"]) == window_size
    logger.debug(f"Tiled {chrom}:{start}-{end} into {len(tiles)} windows, dropping {(~full_width).sum()} partial")
    windows = tiles[full_width]
    if windows.empty:
        raise EmptyWindowSetError(f"No full-width {window_size}bp windows on {chrom}:{start}-{end}")
    return windows.sort_values("start").reset_index(drop=True).astype(Window.pandas_dtype())


def window_template(
    matrix: MatrixStore, chrom_end: Optional[int], params: SkeletonParams, tiler: Optional[Tiler] = None
) -> pd.DataFrame:
    """The windows of a chromosome, offset by half a bin so each centre is a bin start"""
    if matrix.start_pos is None:
        raise EmptyWindowSetError(f"No interactions on {matrix.chrom} to place windows on")
    start = matrix.start_pos - params.bin_size // 2
    if start < 0:
        start += -(start // params.step) * params.step
    if chrom_end is None:
        chrom_end = matrix.end_pos
        logger.debug(f"No size for {matrix.chrom}, tiling up to the last matrix bin at {chrom_end}")
    return make_windows(matrix.chrom, start, chrom_end, params.window_size, params.step, tiler=tiler)
