import logging
from pathlib import Path

import click
from pydantic import ValidationError

from .cli_utils import FormatDependentOption, NaturalOrderGroup, genomic_size, percentile_list
from .config import (
    CHROM_PLACEHOLDER,
    DEFAULT_BIN_SIZE,
    DEFAULT_IMPUTE_K,
    DEFAULT_STEP,
    DEFAULT_WINDOW_SIZE,
    PYRAMID_PERCENTILES,
    SUMMARY_FILENAME,
)
from .dask import ExecContext, SchedulerType
from .model import MatrixFormat, MatrixSource, SkeletonParams
from .settings import setup_logging


logger = setup_logging()


def _matrix_options(f):
    options = [
        click.argument("matrix_format", type=click.Choice([_.value for _ in MatrixFormat])),
        click.argument("matrix", type=str),
        click.option(
            "--bed",
            cls=FormatDependentOption,
            matrix_formats=[MatrixFormat.hicpro.value],
            type=click.Path(exists=True),
            help="The HiC-Pro bed file mapping bin ids to coordinates ",
        ),
        click.option(
            "--origin",
            type=int,
            default=0,
            show_default=True,
            help="The coordinate of the first bin boundary, bin starts must be a multiple of the bin size from here",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _geometry_options(f):
    options = [
        click.option(
            "--bin-size",
            default=str(DEFAULT_BIN_SIZE),
            callback=genomic_size,
            show_default=True,
            help="The matrix resolution, eg. 5000 or 5k",
        ),
        click.option(
            "--window-size",
            default=str(DEFAULT_WINDOW_SIZE),
            callback=genomic_size,
            show_default=True,
            help="The width of each window, an odd multiple of the bin size",
        ),
        click.option(
            "--step",
            default=str(DEFAULT_STEP),
            callback=genomic_size,
            show_default=True,
            help="The distance between consecutive window starts",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _skeleton_options(f):
    options = [
        click.option(
            "--impute-k",
            type=int,
            default=DEFAULT_IMPUTE_K,
            show_default=True,
            help="The width of the neighborhood used to impute zero values",
        ),
        click.option(
            "--percentiles",
            default=",".join(str(_) for _ in PYRAMID_PERCENTILES),
            callback=percentile_list,
            show_default=True,
            help="Comma-separated cumulative upper percentile of each class",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return _geometry_options(f)


def _make_params(
    bin_size, window_size, step, impute_k=DEFAULT_IMPUTE_K, percentiles=PYRAMID_PERCENTILES
) -> SkeletonParams:
    try:
        return SkeletonParams(
            bin_size=bin_size, window_size=window_size, step=step, k=impute_k, percentiles=percentiles
        )
    except ValidationError as exc:
        raise click.UsageError(f"Invalid skeleton parameters:\n{exc}")


@click.group(cls=NaturalOrderGroup)
@click.option("-v", "--verbosity", count=True, help="Increase level of logging information, eg. -vvv")
@click.option("--quiet", is_flag=True, default=False, help="Turn off all logging", show_default=True)
@click.option(
    "--dask-scheduler",
    type=click.Choice([_.value for _ in SchedulerType]),
    default=SchedulerType.default.value,
    show_default=True,
    help="The dask scheduler used to process chromosomes in parallel",
)
@click.option("--dask-num-workers", type=int, default=None, help="Number of dask workers")
@click.option(
    "--dask-threads-per-worker", type=int, default=1, help="Number of threads per worker (local_cluster only)"
)
@click.option(
    "--dask-disable-dashboard", is_flag=True, default=False, help="Disable the dask dashboard (local_cluster only)"
)
@click.pass_context
def cli(ctx, verbosity, quiet, dask_scheduler, dask_num_workers, dask_threads_per_worker, dask_disable_dashboard):
    """Hi-C skeleton tools

    Turn sparse Hi-C contact matrices into discretized per-window interaction
    skeletons for training sequence-to-interaction models.
    """
    if quiet:
        logger.setLevel(logging.CRITICAL)
    elif verbosity > 0:
        LOG_LEVELS = [logging.CRITICAL, logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG]
        offset = 2
        idx = min(len(LOG_LEVELS) - 1, offset + verbosity)
        logger.setLevel(LOG_LEVELS[idx])
    else:
        logger.setLevel(logging.INFO)
    logger.debug("Logger set up")

    scheduler = SchedulerType(dask_scheduler)
    scheduler_kwds = {}
    if dask_num_workers:
        scheduler_kwds["n_workers"] = dask_num_workers
    if scheduler is SchedulerType.local_cluster:
        scheduler_kwds["threads_per_worker"] = dask_threads_per_worker
        if dask_disable_dashboard:
            scheduler_kwds["dashboard_address"] = None
    ctx.meta["exec_context"] = ExecContext(scheduler, scheduler_kwds)


@cli.command(short_help="Build interaction skeletons for each chromosome")
@_matrix_options
@click.argument("chromsizes", type=click.Path(exists=True))
@click.argument("output_dir", type=click.Path(file_okay=False))
@_skeleton_options
@click.option(
    "--chrom",
    "chroms",
    multiple=True,
    help="Only process this chromosome, can be used more than once [default: every chromosome in CHROMSIZES]",
)
@click.option(
    "--intermediate", is_flag=True, default=False, help="Also write the raw and imputed poles as parquet tables"
)
@click.pass_context
def extract(
    ctx,
    matrix_format,
    matrix,
    bed,
    origin,
    chromsizes,
    output_dir,
    bin_size,
    window_size,
    step,
    impute_k,
    percentiles,
    chroms,
    intermediate,
):
    """Build interaction skeletons from a sparse Hi-C matrix.

    MATRIX_FORMAT sets how MATRIX is read:

    \b
        ---------------------------------------------------------------------
        | format  | MATRIX                     | columns                     |
        ---------------------------------------------------------------------
        | hicpro  | genome-wide matrix         | bin_id1 bin_id2 value       |
        |         | (requires --bed)           |                             |
        | coords  | per-chromosome path with   | start1 start2 value         |
        |         | a {chrom} placeholder      |                             |
        =====================================================================

    Each chromosome in CHROMSIZES is processed independently. This tool
    creates the following files in OUTPUT_DIR:

    \b
        <chrom>.skeleton.tsv - chrom, start, end and the comma-separated
                               classes of every retained window
        skeleton_summary.csv - The outcome for each chromosome
        <chrom>.raw.parquet, <chrom>.imputed.parquet - The poles before
                               binning (only with --intermediate)

    """
    from .io import check_output_paths, read_chromsizes
    from .pipeline import run_batch

    params = _make_params(bin_size, window_size, step, impute_k, percentiles)
    source = MatrixSource(format=matrix_format, matrix=matrix, bed=bed, origin=origin)
    sizes = read_chromsizes(chromsizes)
    chroms = list(chroms) if chroms else list(sizes.keys())
    if source.format == MatrixFormat.coords and not source.is_templated and len(chroms) > 1:
        raise click.UsageError(
            f"MATRIX needs a {CHROM_PLACEHOLDER} placeholder to read coords matrices for {len(chroms)} chromosomes"
        )
    unknown = [c for c in chroms if c not in sizes]
    if unknown:
        logger.warning(f"No size found for {', '.join(unknown)}, windows will stop at the last matrix bin")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    check_output_paths(output_dir, chroms)

    logger.info(
        f"Building skeletons for {len(chroms)} chromosomes: bin_size={params.bin_size} "
        f"window_size={params.window_size} step={params.step} prediction_bins={params.prediction_bins}"
    )
    with ctx.meta["exec_context"]:
        summary = run_batch(source, sizes, params, output_dir, chroms=chroms, intermediate=intermediate)

    num_failed = int((summary["status"] == "failed").sum())
    logger.info(f"Wrote {int(summary['num_skeletons'].sum())} skeletons to {output_dir}")
    if num_failed:
        raise click.ClickException(
            f"{num_failed} chromosome(s) failed, see {output_dir / SUMMARY_FILENAME} for details"
        )


@cli.command("windows", short_help="Write the window template of a chromosome")
@_matrix_options
@click.argument("chromsizes", type=click.Path(exists=True))
@click.argument("chrom")
@click.argument("output_bed", type=click.Path(exists=False))
@_geometry_options
def windows_bed(matrix_format, matrix, bed, origin, chromsizes, chrom, output_bed, bin_size, window_size, step):
    """Write the full-width windows placed on CHROM as a bed file.

    Windows start half a bin before the first matrix bin so that every window
    centre falls on a bin start.
    """
    from .io import atomic_output, read_chromsizes, write_windows_bed
    from .matrix import load
    from .windows import window_template

    params = _make_params(bin_size, window_size, step)
    source = MatrixSource(format=matrix_format, matrix=matrix, bed=bed, origin=origin)
    sizes = read_chromsizes(chromsizes)
    store = load(source, chrom, params.bin_size)
    windows = window_template(store, sizes.get(chrom), params)
    with atomic_output(output_bed) as tmp_path:
        write_windows_bed(windows, tmp_path)
    logger.info(f"Wrote {len(windows)} windows on {chrom} to {output_bed}")
