import numpy as np
import pandas as pd
import pytest

from hic_skeleton.errors import DegenerateVectorError
from hic_skeleton.matrix import MatrixStore
from hic_skeleton.model import PoleTable
from hic_skeleton.poles import drop_empty_poles, extract_poles, zigzag_offsets


def _windows(starts, width=50, chrom="chr1"):
    return pd.DataFrame({"chrom": chrom, "start": starts, "end": [s + width for s in starts]})


@pytest.mark.parametrize(
    "prediction_bins,expected",
    [(1, [0]), (3, [0, 1, -1]), (5, [0, 1, -1, 2, -2]), (6, [0, 1, -1, 2, -2, 3])],
)
def test_zigzag_offsets(prediction_bins, expected):
    assert zigzag_offsets(prediction_bins).tolist() == expected


def test_zigzag_offsets_cover_window():
    offsets = zigzag_offsets(201)
    assert sorted(offsets.tolist()) == list(range(-100, 101))
    assert np.abs(offsets).tolist() == sorted(np.abs(offsets).tolist())


def test_extract_poles(small_params):
    pixels = pd.DataFrame(
        [(40, 40, 1.0), (40, 50, 2.0), (30, 40, 3.0), (40, 60, 4.0), (20, 40, 5.0), (50, 50, 6.0), (40, 90, 9.0)],
        columns=["pos1", "pos2", "value"],
    )
    store = MatrixStore.from_dataframe("chr1", 10, pixels)
    table = extract_poles(store, _windows([15, 25]), small_params)
    assert table.offsets.tolist() == [0, 1, -1, 2, -2]
    # window centred on 40 reads 40, 50, 30, 60, 20
    assert table.values[0].tolist() == [1.0, 2.0, 3.0, 4.0, 5.0]
    # window centred on 50 reads 50, 60, 40, 70, 30
    assert table.values[1].tolist() == [6.0, 0.0, 2.0, 0.0, 0.0]
    assert table.centers.tolist() == [40, 50]


def test_extract_poles_past_matrix_edge(small_params):
    store = MatrixStore.from_dataframe("chr1", 10, pd.DataFrame([(0, 0, 1.0)], columns=["pos1", "pos2", "value"]))
    table = extract_poles(store, _windows([0]), small_params)
    # the window is centred on 25 rather than a bin start, so nothing matches
    assert table.values.shape == (1, 5)
    assert not table.values.any()


def _table(values):
    values = np.asarray(values, dtype=float)
    starts = [10 * i for i in range(values.shape[0])]
    return PoleTable(_windows(starts), values, zigzag_offsets(values.shape[1]), 10)


def test_drop_empty_poles():
    table = _table([[1, 1, 0, 0, 0], [1, 1, 1, 0, 0], [0, 0, 0, 0, 0], [2, 0, 3, 0, 4]])
    kept = drop_empty_poles(table)
    assert kept.windows["start"].tolist() == [10, 30]
    assert kept.values.tolist() == [[1, 1, 1, 0, 0], [2, 0, 3, 0, 4]]


def test_drop_empty_poles_keeps_order():
    table = _table([[3, 3, 3], [1, 1, 1], [2, 2, 2]])
    assert drop_empty_poles(table).windows["start"].tolist() == [0, 10, 20]


def test_drop_empty_poles_degenerate():
    with pytest.raises(DegenerateVectorError):
        drop_empty_poles(_table([[0, 0, 1], [0, 0, 0]]))
