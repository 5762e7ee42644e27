from logging import getLogger
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

import dask.bag as db
import pandas as pd

from .config import SUMMARY_FILENAME
from .errors import DegenerateVectorError, SkeletonError
from .impute import impute_zeros
from .io import atomic_output, atomic_outputs, output_paths, write_pole_table, write_skeletons
from .matrix import MatrixStore, load
from .model import ChromosomeResult, MatrixSource, PoleTable, ResultStatus, SkeletonParams, SkeletonRecord
from .poles import drop_empty_poles, extract_poles
from .pyramid import pyramid_bin
from .windows import Tiler, window_template


logger = getLogger(__name__)


class SkeletonRun(NamedTuple):
    raw: PoleTable
    kept: PoleTable
    imputed: PoleTable
    skeletons: PoleTable

    def records(self) -> List[SkeletonRecord]:
        return list(self.skeletons.to_records())


def build_skeletons(
    matrix: MatrixStore, chrom_end: Optional[int], params: SkeletonParams, tiler: Optional[Tiler] = None
) -> SkeletonRun:
    if len(matrix) == 0:
        raise DegenerateVectorError(f"No interactions found on {matrix.chrom}")
    windows = window_template(matrix, chrom_end, params, tiler=tiler)
    matrix = matrix.trim(params.max_range)
    raw = extract_poles(matrix, windows, params)
    kept = drop_empty_poles(raw)
    imputed = impute_zeros(kept, k=params.k)
    skeletons = pyramid_bin(imputed, params.percentiles)
    return SkeletonRun(raw, kept, imputed, skeletons)


def process_chromosome(
    source: MatrixSource,
    chrom: str,
    chrom_end: Optional[int],
    params: SkeletonParams,
    output_dir: Path,
    tiler: Optional[Tiler] = None,
    intermediate: bool = False,
) -> ChromosomeResult:
    paths = output_paths(output_dir, chrom)
    logger.info(f"Building skeletons for {chrom}")
    try:
        matrix = load(source, chrom, params.bin_size)
        run = build_skeletons(matrix, chrom_end, params, tiler=tiler)
        targets = {"skeletons": paths["skeletons"]}
        if intermediate:
            targets.update(raw_poles=paths["raw_poles"], imputed_poles=paths["imputed_poles"])
        with atomic_outputs(targets) as tmp_paths:
            if intermediate:
                write_pole_table(run.raw, tmp_paths["raw_poles"])
                write_pole_table(run.imputed, tmp_paths["imputed_poles"])
            write_skeletons(run.skeletons, tmp_paths["skeletons"])
    except DegenerateVectorError as exc:
        logger.warning(f"No usable windows on {chrom}: {exc}")
        return ChromosomeResult(chrom=chrom, status=ResultStatus.degenerate, message=str(exc))
    except (SkeletonError, OSError) as exc:
        logger.exception(f"Error building skeletons for {chrom}")
        return ChromosomeResult(chrom=chrom, status=ResultStatus.failed, message=str(exc))
    logger.info(f"Wrote {len(run.skeletons)} of {len(run.raw)} windows on {chrom} to {paths['skeletons']}")
    return ChromosomeResult(
        chrom=chrom,
        status=ResultStatus.ok,
        num_windows=len(run.raw),
        num_skeletons=len(run.skeletons),
        output=str(paths["skeletons"]),
    )


def run_batch(
    source: MatrixSource,
    chromsizes: Dict[str, int],
    params: SkeletonParams,
    output_dir: Path,
    chroms: Optional[List[str]] = None,
    tiler: Optional[Tiler] = None,
    intermediate: bool = False,
) -> pd.DataFrame:
    """Build skeletons for each chromosome independently under the current dask scheduler.

    Chromosomes without a usable window or with unreadable input are
    reported in the summary table rather than stopping the batch.
    """
    output_dir = Path(output_dir)
    if chroms is None:
        chroms = list(chromsizes.keys())
    if not chroms:
        raise ValueError("No chromosomes to process")
    tasks = [(source, chrom, chromsizes.get(chrom), params, output_dir, tiler, intermediate) for chrom in chroms]
    results = db.from_sequence(tasks, npartitions=len(tasks)).starmap(process_chromosome).compute()

    summary = ChromosomeResult.to_dataframe(results)
    summary_path = output_dir / SUMMARY_FILENAME
    with atomic_output(summary_path) as tmp_path:
        summary.to_csv(tmp_path, index=False)
    logger.info("Chromosome status counts:\n{}".format(summary["status"].value_counts().to_string()))
    logger.debug(f"Wrote summary to {summary_path}")
    return summary
