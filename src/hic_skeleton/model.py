import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import (
    CHROM_PLACEHOLDER,
    CLASS_DTYPE,
    COUNT_DTYPE,
    DEFAULT_BIN_SIZE,
    DEFAULT_IMPUTE_K,
    DEFAULT_STEP,
    DEFAULT_WINDOW_SIZE,
    GENOMIC_COORD_DTYPE,
    GENOMIC_OFFSET_DTYPE,
    PYRAMID_PERCENTILES,
    VALUE_DTYPE,
)

logger = logging.getLogger(__name__)


class _BaseModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    @classmethod
    def pandas_dtype(cls, overrides=None):
        res = {}
        overrides = overrides if overrides is not None else {}
        schema = cls.model_json_schema()
        for column, col_schema in schema["properties"].items():
            if column in overrides:
                res[column] = overrides[column]
                continue
            if "dtype" not in col_schema and "$ref" in col_schema:
                def_key = col_schema["$ref"].rsplit("/", 1)[-1]
                col_schema = schema["$defs"][def_key]
            if "dtype" in col_schema:
                dtype = col_schema["dtype"]
            else:
                assert "enum" in col_schema
                dtype = pd.CategoricalDtype(col_schema["enum"], ordered=True)
            res[column] = dtype
        return res

    def to_tuple(self):
        return tuple(_[1] for _ in self)

    @classmethod
    def to_dataframe(cls, data: List, overrides: Optional[Dict] = None):
        columns = list(cls.model_fields.keys())
        dtype = cls.pandas_dtype(overrides=overrides)
        df = pd.DataFrame([a.to_tuple() for a in data], columns=columns).astype(dtype)
        return df


def _dtype(dtype: str, description: str) -> Dict:
    return dict(description=description, json_schema_extra=dict(dtype=dtype))


class Interaction(_BaseModel):
    """A single non-zero cell of a chromosome contact matrix"""

    pos1: int = Field(..., ge=0, **_dtype(GENOMIC_COORD_DTYPE, "Left-most coordinate of the first bin"))
    pos2: int = Field(..., ge=0, **_dtype(GENOMIC_COORD_DTYPE, "Left-most coordinate of the second bin"))
    value: float = Field(..., ge=0, **_dtype(VALUE_DTYPE, "Interaction frequency, raw or normalized"))


class Window(_BaseModel):
    """A fixed-width genomic window"""

    chrom: str = Field(..., min_length=1, **_dtype("category", "The chromosome/contig the window lies on"))
    start: int = Field(..., ge=0, **_dtype(GENOMIC_COORD_DTYPE, "The zero-based start of the window"))
    end: int = Field(..., ge=0, **_dtype(GENOMIC_COORD_DTYPE, "The end of the window"))


class InteractionVector(Window):
    """The pole of interaction values extracted for a window"""

    values: List[float] = Field(..., **_dtype("object", "One interaction value per pole offset"))


class SkeletonRecord(Window):
    """The discretized pole of a window, one ordinal class per pole offset"""

    classes: List[int] = Field(..., **_dtype("object", "One pyramid class per pole offset"))

    def to_tsv(self) -> str:
        return "{}\t{}\t{}\t{}".format(self.chrom, self.start, self.end, ",".join(str(c) for c in self.classes))


class MatrixFormat(str, Enum):
    hicpro = "hicpro"
    coords = "coords"


class MatrixSource(_BaseModel):
    """Where to read a sparse contact matrix from and how to interpret it.

    For the ``coords`` format the matrix path is a template, ``{chrom}`` is
    replaced by the chromosome name to find the per-chromosome file.
    """

    format: MatrixFormat
    matrix: str = Field(..., min_length=1)
    bed: Optional[Path] = None
    origin: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _check_bed(self):
        if self.format == MatrixFormat.hicpro and self.bed is None:
            raise ValueError("A bin coordinate table is required for HiC-Pro matrices")
        return self

    def matrix_path(self, chrom: str) -> Path:
        return Path(self.matrix.replace(CHROM_PLACEHOLDER, chrom))

    @property
    def is_templated(self) -> bool:
        return CHROM_PLACEHOLDER in self.matrix


class SkeletonParams(_BaseModel):
    bin_size: int = Field(DEFAULT_BIN_SIZE, gt=0)
    window_size: int = Field(DEFAULT_WINDOW_SIZE, gt=0)
    step: int = Field(DEFAULT_STEP, gt=0)
    k: int = Field(DEFAULT_IMPUTE_K, gt=0)
    percentiles: Tuple[float, ...] = PYRAMID_PERCENTILES

    @model_validator(mode="after")
    def _check_geometry(self):
        if self.window_size % self.bin_size:
            raise ValueError(f"window_size {self.window_size} is not a multiple of bin_size {self.bin_size}")
        if self.prediction_bins % 2 == 0:
            raise ValueError(
                f"window_size {self.window_size} spans an even number of bins, the pole can't be centred on a bin"
            )
        if self.step % self.bin_size:
            raise ValueError(f"step {self.step} is not a multiple of bin_size {self.bin_size}")
        if self.k % 2 == 0:
            raise ValueError(f"The imputation neighborhood must have an odd width, got {self.k}")
        percentiles = np.asarray(self.percentiles, dtype=float)
        if len(percentiles) == 0 or percentiles[-1] != 100:
            raise ValueError(f"Percentile scheme must end at 100: {self.percentiles}")
        if percentiles[0] <= 0 or np.any(np.diff(percentiles) <= 0):
            raise ValueError(f"Percentile scheme must be strictly increasing in (0, 100]: {self.percentiles}")
        max_classes = np.iinfo(CLASS_DTYPE).max + 1
        if len(percentiles) > max_classes:
            raise ValueError(f"At most {max_classes} classes can be stored as {CLASS_DTYPE}, got {len(percentiles)}")
        return self

    @property
    def prediction_bins(self) -> int:
        return self.window_size // self.bin_size

    @property
    def max_range(self) -> int:
        return self.window_size + self.bin_size

    @property
    def num_classes(self) -> int:
        return len(self.percentiles)


class ResultStatus(str, Enum):
    ok = "ok"
    degenerate = "degenerate"
    failed = "failed"


class ChromosomeResult(_BaseModel):
    """The outcome of building skeletons for one chromosome"""

    chrom: str = Field(..., min_length=1, **_dtype("str", "The chromosome/contig"))
    status: ResultStatus = Field(..., **_dtype("category", "ok, degenerate (no usable windows) or failed"))
    num_windows: int = Field(0, ge=0, **_dtype(COUNT_DTYPE, "Number of full-width windows in the template"))
    num_skeletons: int = Field(0, ge=0, **_dtype(COUNT_DTYPE, "Number of windows written to the output"))
    output: Optional[str] = Field(None, **_dtype("object", "Path of the skeleton file"))
    message: str = Field("", **_dtype("str", "Error or warning message"))


class PoleTable(object):
    """Windows in genomic order, each paired with one value per pole offset.

    ``values[i, j]`` is the value of window ``i`` at the signed bin distance
    ``offsets[j]`` from the window centre.
    """

    def __init__(self, windows: pd.DataFrame, values: np.ndarray, offsets: np.ndarray, bin_size: int):
        values = np.asarray(values)
        offsets = np.asarray(offsets, dtype=GENOMIC_OFFSET_DTYPE)
        if values.ndim != 2 or values.shape != (len(windows), len(offsets)):
            raise ValueError(
                f"Values of shape {values.shape} don't match {len(windows)} windows x {len(offsets)} offsets"
            )
        self.windows = windows[["chrom", "start", "end"]].reset_index(drop=True)
        self.values = values
        self.offsets = offsets
        self.bin_size = int(bin_size)

    def __len__(self):
        return len(self.windows)

    def __repr__(self):
        return f"<PoleTable {len(self)} windows x {self.prediction_bins} offsets>"

    @property
    def prediction_bins(self) -> int:
        return len(self.offsets)

    @property
    def centers(self) -> np.ndarray:
        starts = self.windows["start"].to_numpy(dtype="int64")
        ends = self.windows["end"].to_numpy(dtype="int64")
        return starts + (ends - starts) // 2

    def select(self, mask: np.ndarray) -> "PoleTable":
        return PoleTable(self.windows[mask], self.values[mask], self.offsets, self.bin_size)

    def with_values(self, values: np.ndarray) -> "PoleTable":
        return PoleTable(self.windows, values, self.offsets, self.bin_size)

    def column_labels(self) -> List[str]:
        return [f"d{o:+d}" for o in self.offsets]

    def to_dataframe(self) -> pd.DataFrame:
        values = pd.DataFrame(self.values, columns=self.column_labels())
        return pd.concat([self.windows, values], axis=1)

    def to_records(self) -> Iterator[Union[InteractionVector, SkeletonRecord]]:
        is_classes = np.issubdtype(self.values.dtype, np.integer)
        for (chrom, start, end), row in zip(self.windows.itertuples(index=False), self.values.tolist()):
            if is_classes:
                yield SkeletonRecord(chrom=str(chrom), start=int(start), end=int(end), classes=row)
            else:
                yield InteractionVector(chrom=str(chrom), start=int(start), end=int(end), values=row)
