import pytest

from hic_skeleton.model import SkeletonParams

E2E_CHROM = "chrT"
E2E_CHROM_SIZE = 3_000_000
E2E_BIN_SIZE = 5_000
E2E_WINDOW_SIZE = 1_005_000
E2E_STEP = 500_000
# centres of the windows placed on chrT, the last 1Mb window would run past the end of the chromosome
E2E_CENTERS = (1_000_000, 1_500_000, 2_000_000)
# pole offsets of the first window left empty so they have to be imputed
E2E_GAPS = (3, -7)


def simple_tiler(chrom, start, end, window_size, step):
    """Tile like `bedtools makewindows -w -s`, keeping the truncated trailing windows"""
    return [(chrom, s, min(s + window_size, end)) for s in range(start, end, step)]


@pytest.fixture(scope="session")
def tiler():
    return simple_tiler


@pytest.fixture
def small_params():
    return SkeletonParams(bin_size=10, window_size=50, step=10, k=3)


def _write_rows(path, rows):
    path.write_text("".join("\t".join(str(v) for v in row) + "\n" for row in rows))
    return path


def e2e_pixels():
    """Two densely covered windows with a sparsely covered one between them.

    The first window's pole holds 1 + (|d| % 5) at every bin offset d apart
    from E2E_GAPS, the third window's pole is 10.0 everywhere.
    """
    first, _, third = E2E_CENTERS
    pixels = {(0, 0): 1.0}
    for d in range(-100, 101):
        if d not in E2E_GAPS:
            pixels[(first, first + d * E2E_BIN_SIZE)] = 1.0 + abs(d) % 5
        pixels[(third, third + d * E2E_BIN_SIZE)] = 10.0
    return pixels


@pytest.fixture(scope="session")
def e2e_dir(tmp_path_factory):
    data_dir = tmp_path_factory.mktemp("e2e")
    rows = [(pos1, pos2, value) for (pos1, pos2), value in sorted(e2e_pixels().items())]
    _write_rows(data_dir / f"{E2E_CHROM}.tsv", rows)
    _write_rows(data_dir / "genome.chromsizes", [(E2E_CHROM, E2E_CHROM_SIZE), ("chrEmpty", 2_000_000)])
    # chrEmpty has a matrix with no interactions at all
    (data_dir / "chrEmpty.tsv").write_text("")
    return data_dir


@pytest.fixture(scope="session")
def e2e_params():
    return SkeletonParams(bin_size=E2E_BIN_SIZE, window_size=E2E_WINDOW_SIZE, step=E2E_STEP)


@pytest.fixture(scope="session")
def hicpro_files(tmp_path_factory):
    """A two chromosome HiC-Pro matrix at 10bp resolution"""
    data_dir = tmp_path_factory.mktemp("hicpro")
    bed = [("chr1", s, s + 10, idx + 1) for idx, s in enumerate(range(0, 100, 10))]
    bed += [("chr2", s, s + 10, idx + 11) for idx, s in enumerate(range(0, 50, 10))]
    matrix = [
        (1, 1, 5.0),
        (1, 2, 3.0),
        (3, 2, 1.5),
        (2, 12, 7.0),  # trans
        (11, 12, 2.0),
        (10, 10, 0.5),
    ]
    return {
        "matrix": _write_rows(data_dir / "sample_10.matrix", matrix),
        "bed": _write_rows(data_dir / "sample_10_abs.bed", bed),
        "dir": data_dir,
    }


@pytest.fixture(scope="session")
def e2e_layout():
    """What the e2e inputs were built from, to check results against"""
    return {
        "chrom": E2E_CHROM,
        "chrom_size": E2E_CHROM_SIZE,
        "centers": E2E_CENTERS,
        "gaps": E2E_GAPS,
        "pixels": e2e_pixels(),
    }
