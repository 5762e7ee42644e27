import os
from contextlib import contextmanager
from logging import getLogger
from pathlib import Path
from typing import Dict, Iterable

import numpy as np
import pandas as pd

from .config import IMPUTED_POLES_SUFFIX, PQ_ENGINE, PQ_VERSION, RAW_POLES_SUFFIX, SKELETON_SUFFIX, SUMMARY_FILENAME
from .errors import FormatError
from .model import PoleTable


logger = getLogger(__name__)


def read_chromsizes(path: Path) -> Dict[str, int]:
    """Read a whitespace-separated table of chromosome names and lengths"""
    try:
        df = pd.read_csv(path, sep=r"\s+", header=None, usecols=[0, 1], names=["chrom", "size"], dtype=str)
    except pd.errors.EmptyDataError:
        raise FormatError(f"Chromosome sizes file is empty: {path}")
    except (pd.errors.ParserError, ValueError) as exc:
        raise FormatError(f"Malformed chromosome sizes file {path}: {exc}") from exc
    sizes = pd.to_numeric(df["size"], errors="coerce")
    bad = ~np.isfinite(sizes) | (sizes <= 0) | (sizes != np.floor(sizes))
    if bad.any():
        row = df.index[bad][0]
        raise FormatError(f"Invalid size for {df['chrom'][row]} in {path}: {df['size'][row]}")
    return dict(zip(df["chrom"], sizes.astype("int64").tolist()))


def output_paths(output_dir: Path, chrom: str) -> Dict[str, Path]:
    output_dir = Path(output_dir)
    return {
        "skeletons": output_dir / f"{chrom}{SKELETON_SUFFIX}",
        "raw_poles": output_dir / f"{chrom}{RAW_POLES_SUFFIX}",
        "imputed_poles": output_dir / f"{chrom}{IMPUTED_POLES_SUFFIX}",
    }


def check_output_paths(output_dir: Path, chroms: Iterable[str]):
    exists = []
    summary_path = Path(output_dir) / SUMMARY_FILENAME
    if summary_path.exists():
        exists.append(summary_path)
    for chrom in chroms:
        for key, path in output_paths(output_dir, chrom).items():
            if path.exists():
                exists.append(path)
    if exists:
        for path in exists:
            logger.error(f"Output file already exists: {path}")
        raise IOError("Please remove output files before continuing")


def _unlink_if_exists(paths: Iterable[Path]):
    for path in paths:
        if path.exists():
            path.unlink()


@contextmanager
def atomic_outputs(paths: Dict[str, Path]):
    """Yield a temporary path for each output, moved into place together only if the block succeeds.

    If the block raises, or a file can't be moved into place, none of the
    outputs are left behind.
    """
    paths = {key: Path(path) for key, path in paths.items()}
    tmp_paths = {key: path.with_name(f".{path.name}.tmp") for key, path in paths.items()}
    try:
        yield tmp_paths
    except BaseException:
        _unlink_if_exists(tmp_paths.values())
        raise
    moved = []
    try:
        for key, path in paths.items():
            os.replace(tmp_paths[key], path)
            moved.append(path)
    except OSError:
        _unlink_if_exists(moved)
        _unlink_if_exists(tmp_paths.values())
        raise


@contextmanager
def atomic_output(path: Path):
    """Yield a temporary path that is moved to path only if the block succeeds"""
    with atomic_outputs({"output": path}) as tmp_paths:
        yield tmp_paths["output"]


def write_skeletons(table: PoleTable, path: Path):
    df = table.windows.assign(classes=[",".join(str(c) for c in row) for row in table.values.tolist()])
    df.to_csv(path, sep="\t", header=False, index=False)
    logger.debug(f"Wrote {len(df)} skeletons to {path}")


def write_pole_table(table: PoleTable, path: Path):
    table.to_dataframe().to_parquet(path, engine=PQ_ENGINE, index=False, version=PQ_VERSION)
    logger.debug(f"Wrote {len(table)} poles to {path}")


def write_windows_bed(windows: pd.DataFrame, path: Path):
    windows[["chrom", "start", "end"]].to_csv(path, sep="\t", header=False, index=False)
