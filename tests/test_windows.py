import shutil

import pandas as pd
import pytest

from hic_skeleton.errors import EmptyWindowSetError
from hic_skeleton.matrix import MatrixStore
from hic_skeleton.windows import bedtools_tiler, make_windows, window_template


def _store(pixels, bin_size=10):
    return MatrixStore.from_dataframe("chr1", bin_size, pd.DataFrame(pixels, columns=["pos1", "pos2", "value"]))


@pytest.mark.parametrize(
    "start,end,window_size,step,expected",
    [
        (0, 100, 50, 25, [(0, 50), (25, 75), (50, 100)]),
        (0, 110, 50, 25, [(0, 50), (25, 75), (50, 100)]),
        (5, 60, 50, 10, [(5, 55)]),
        (0, 50, 50, 50, [(0, 50)]),
    ],
)
def test_make_windows_keeps_full_width(tiler, start, end, window_size, step, expected):
    windows = make_windows("chr1", start, end, window_size, step, tiler=tiler)
    assert list(zip(windows.start, windows.end)) == expected
    assert ((windows.end - windows.start) == window_size).all()
    assert (windows.chrom == "chr1").all()


@pytest.mark.parametrize("start,end", [(0, 40), (10, 10)])
def test_make_windows_too_short(tiler, start, end):
    with pytest.raises(EmptyWindowSetError):
        make_windows("chr1", start, end, 50, 10, tiler=tiler)


def test_make_windows_validates_tiler_output():
    def truncating_tiler(chrom, start, end, window_size, step):
        return [(chrom, start, start + window_size - 1)]

    with pytest.raises(EmptyWindowSetError):
        make_windows("chr1", 0, 100, 50, 10, tiler=truncating_tiler)


def test_window_template_centres_on_bins(tiler, small_params):
    store = _store([(20, 20, 1.0), (20, 60, 1.0)])
    windows = window_template(store, 100, small_params, tiler=tiler)
    # first window starts half a bin before the first matrix bin
    assert windows.start.iloc[0] == 15
    centers = windows.start + small_params.window_size // 2
    assert (centers % small_params.bin_size == 0).all()
    assert windows.end.max() <= 100


def test_window_template_clips_negative_start(tiler, e2e_params):
    store = _store([(0, 0, 1.0)], bin_size=e2e_params.bin_size)
    windows = window_template(store, 3_000_000, e2e_params, tiler=tiler)
    assert windows.start.tolist() == [497_500, 997_500, 1_497_500]
    assert (windows.start + e2e_params.window_size // 2).tolist() == [1_000_000, 1_500_000, 2_000_000]


def test_window_template_defaults_to_matrix_end(tiler, small_params):
    store = _store([(20, 20, 1.0), (20, 90, 1.0)])
    windows = window_template(store, None, small_params, tiler=tiler)
    assert windows.end.max() <= store.end_pos
    assert windows.start.tolist() == [15, 25, 35, 45]


def test_window_template_empty_matrix(tiler, small_params):
    with pytest.raises(EmptyWindowSetError):
        window_template(_store([]), 100, small_params, tiler=tiler)


@pytest.mark.skipif(shutil.which("bedtools") is None, reason="bedtools is not installed")
def test_bedtools_tiler_matches_filter():
    tiles = bedtools_tiler("chr1", 5, 110, 50, 25)
    assert tiles[0] == ("chr1", 5, 55)
    windows = make_windows("chr1", 5, 110, 50, 25, tiler=bedtools_tiler)
    assert list(zip(windows.start, windows.end)) == [(5, 55), (30, 80), (55, 105)]
