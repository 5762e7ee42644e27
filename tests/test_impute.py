import numpy as np
import pandas as pd
import pytest

from hic_skeleton import impute
from hic_skeleton.impute import impute_zeros, median_fill, pad_with_column_medians
from hic_skeleton.model import PoleTable
from hic_skeleton.poles import zigzag_offsets


def _reference_fill(values, k):
    half = k // 2
    num_rows, num_cols = values.shape
    column_medians = np.median(values, axis=0)
    res = values.astype(float)
    for row, col in zip(*np.nonzero(values == 0)):
        block = []
        for r in range(row - half, row + half + 1):
            for c in range(col - half, col + half + 1):
                if 0 <= r < num_rows and 0 <= c < num_cols:
                    block.append(values[r, c])
                else:
                    block.append(column_medians[min(max(c, 0), num_cols - 1)])
        res[row, col] = np.median(block)
    return res


def test_neighborhood_median():
    values = np.array([[1, 2, 3], [4, 0, 6], [7, 8, 9]], dtype=float)
    res = median_fill(values, k=3)
    assert res[1, 1] == 4.0
    assert values[1, 1] == 0


def test_positive_values_untouched():
    rng = np.random.default_rng(42)
    values = rng.integers(0, 4, size=(20, 15)).astype(float)
    res = median_fill(values, k=5)
    positive = values > 0
    assert (res[positive] == values[positive]).all()


def test_edges_padded_with_column_medians():
    values = np.array([[0, 1], [3, 1], [5, 1]], dtype=float)
    padded = pad_with_column_medians(values, 1)
    assert padded.shape == (5, 4)
    assert padded[0].tolist() == [3, 3, 1, 1]
    assert padded[1].tolist() == [3, 0, 1, 1]
    assert median_fill(values, k=3)[0, 0] == 3.0


@pytest.mark.parametrize("k", [1, 3, 5])
@pytest.mark.parametrize("batch_size", [7, 100_000])
def test_matches_reference(monkeypatch, k, batch_size):
    monkeypatch.setattr(impute, "IMPUTE_BATCH_SIZE", batch_size)
    rng = np.random.default_rng(k)
    values = rng.integers(0, 5, size=(12, 9)).astype(float)
    assert np.array_equal(median_fill(values, k=k), _reference_fill(values, k))


def test_uses_original_values():
    # with sequential updates the second zero would see the first one filled
    values = np.array([[0, 0, 0, 0], [0, 0, 9, 9], [9, 9, 9, 9], [9, 9, 9, 9]], dtype=float)
    assert np.array_equal(median_fill(values, k=3), _reference_fill(values, 3))


@pytest.mark.parametrize("k", [0, 2, 4, -1])
def test_invalid_neighborhood(k):
    with pytest.raises(ValueError):
        median_fill(np.ones((3, 3)), k=k)


def test_impute_zeros_sorts_columns_by_offset():
    windows = pd.DataFrame({"chrom": ["chr1"], "start": [0], "end": [30]})
    # columns are offsets 0, +1, -1: the zero lies between 2 and 8 once sorted
    table = PoleTable(windows, np.array([[0.0, 8.0, 2.0]]), zigzag_offsets(3), 10)
    res = impute_zeros(table, k=3)
    assert res.values.tolist() == [[2.0, 8.0, 2.0]]
    assert res.offsets.tolist() == [0, 1, -1]
    assert table.values.tolist() == [[0.0, 8.0, 2.0]]
