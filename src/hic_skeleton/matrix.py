from logging import getLogger
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from .config import MATRIX_CHUNKSIZE, VALUE_DTYPE
from .errors import FormatError, MissingCoordinateError
from .model import Interaction, MatrixFormat, MatrixSource


logger = getLogger(__name__)

MAX_COORD = np.iinfo("uint32").max

MATRIX_COLUMNS = [("bin1", "int"), ("bin2", "int"), ("value", "float")]
COORD_COLUMNS = [("pos1", "int"), ("pos2", "int"), ("value", "float")]
BED_COLUMNS = [("chrom", "str"), ("start", "int"), ("end", "int"), ("bin_id", "int")]


def _pack_keys(pos1: np.ndarray, pos2: np.ndarray) -> np.ndarray:
    return (pos1.astype("int64") << 32) | pos2.astype("int64")


class MatrixStore(object):
    """The non-zero cells of one chromosome's contact matrix.

    Cells are stored once per unordered pair of bins (``pos1 <= pos2``) and
    indexed by coordinate pair, so lookups are symmetric.
    """

    def __init__(self, chrom: str, bin_size: int, pixels: pd.DataFrame):
        self.chrom = chrom
        self.bin_size = int(bin_size)
        self.pixels = pixels.reset_index(drop=True)
        self._index = pd.Index(_pack_keys(self.pixels["pos1"].to_numpy(), self.pixels["pos2"].to_numpy()))
        self._values = self.pixels["value"].to_numpy(dtype=VALUE_DTYPE)

    @classmethod
    def from_dataframe(cls, chrom: str, bin_size: int, df: pd.DataFrame) -> "MatrixStore":
        """Create a store from a table with pos1, pos2, value columns.

        Both orientations of a pair are folded onto the upper triangle, a
        pair listed in both orientations (or repeated) is the same cell and
        must have the same value every time.
        """
        pos1 = df["pos1"].to_numpy(dtype="int64")
        pos2 = df["pos2"].to_numpy(dtype="int64")
        if len(df) and (min(pos1.min(), pos2.min()) < 0 or max(pos1.max(), pos2.max()) > MAX_COORD):
            raise FormatError(f"Coordinates on {chrom} are outside the range [0, {MAX_COORD}]")
        pixels = pd.DataFrame(
            {"pos1": np.minimum(pos1, pos2), "pos2": np.maximum(pos1, pos2), "value": df["value"].to_numpy()}
        ).drop_duplicates()
        conflicting = pixels.duplicated(["pos1", "pos2"], keep=False)
        if conflicting.any():
            first = pixels[conflicting].iloc[0]
            values = pixels.loc[
                (pixels["pos1"] == first["pos1"]) & (pixels["pos2"] == first["pos2"]), "value"
            ].tolist()
            raise FormatError(
                f"Cell ({int(first['pos1'])}, {int(first['pos2'])}) on {chrom} is listed with different values: {values}"
            )
        pixels = pixels.sort_values(["pos1", "pos2"]).reset_index(drop=True).astype(Interaction.pandas_dtype())
        return cls(chrom, bin_size, pixels)

    def __len__(self):
        return len(self.pixels)

    def __repr__(self):
        return f"<MatrixStore {self.chrom} bin_size={self.bin_size} interactions={len(self)}>"

    @property
    def start_pos(self) -> Optional[int]:
        """The left-most coordinate covered by an interaction"""
        if len(self) == 0:
            return None
        return int(self.pixels["pos1"].min())

    @property
    def end_pos(self) -> Optional[int]:
        """The end of the right-most bin covered by an interaction"""
        if len(self) == 0:
            return None
        return int(self.pixels["pos2"].max()) + self.bin_size

    def trim(self, max_range: int) -> "MatrixStore":
        distance = self.pixels["pos2"].astype("int64") - self.pixels["pos1"].astype("int64")
        keep = (distance <= max_range).to_numpy()
        logger.debug(f"Trimming {(~keep).sum()} of {len(self)} interactions further apart than {max_range} on {self.chrom}")
        return MatrixStore(self.chrom, self.bin_size, self.pixels[keep])

    def lookup(self, pos_a, pos_b) -> np.ndarray:
        """The values at each pair of coordinates, 0 where there is no interaction"""
        pos_a, pos_b = np.broadcast_arrays(np.asarray(pos_a, dtype="int64"), np.asarray(pos_b, dtype="int64"))
        lo = np.minimum(pos_a, pos_b).ravel()
        hi = np.maximum(pos_a, pos_b).ravel()
        res = np.zeros(lo.shape, dtype=VALUE_DTYPE)
        valid = (lo >= 0) & (hi <= MAX_COORD)
        idx = self._index.get_indexer(_pack_keys(lo[valid], hi[valid]))
        found = np.zeros(valid.sum(), dtype=VALUE_DTYPE)
        found[idx >= 0] = self._values[idx[idx >= 0]]
        res[valid] = found
        return res.reshape(pos_a.shape)

    def value(self, pos_a: int, pos_b: int) -> float:
        return float(self.lookup([pos_a], [pos_b])[0])


def _read_chunks(path: Path, chunksize: Optional[int] = None):
    try:
        reader = pd.read_csv(path, sep="\t", header=None, dtype=str, chunksize=chunksize)
        if chunksize is None:
            yield reader
            return
        for chunk in reader:
            yield chunk
    except pd.errors.EmptyDataError:
        return
    except UnicodeDecodeError as exc:
        raise FormatError(f"Can't decode {path} as text: {exc}") from exc
    except ValueError as exc:
        raise FormatError(f"Malformed table {path}: {exc}") from exc


def _parse_columns(df: pd.DataFrame, columns: List[Tuple[str, str]], path: Path) -> pd.DataFrame:
    if df.shape[1] != len(columns):
        raise FormatError(f"Expected {len(columns)} columns in {path}, found {df.shape[1]}")
    res = {}
    for col, (name, kind) in zip(df.columns, columns):
        raw = df[col]
        if raw.isna().any():
            row = raw.index[raw.isna()][0]
            raise FormatError(f"Missing {name} in {path} at row {row}")
        if kind == "str":
            res[name] = raw.str.strip()
            continue
        try:
            values = pd.to_numeric(raw, errors="raise")
        except (ValueError, TypeError) as exc:
            raise FormatError(f"Non-numeric {name} in {path}: {exc}") from exc
        values = values.astype("float64")
        if not np.isfinite(values).all():
            row = values.index[~np.isfinite(values)][0]
            raise FormatError(f"Non-finite {name} in {path} at row {row}: {raw[row]}")
        if kind == "int":
            fractional = values != np.floor(values)
            if fractional.any():
                row = values.index[fractional][0]
                raise FormatError(f"Non-integer {name} in {path} at row {row}: {raw[row]}")
            values = values.astype("int64")
        res[name] = values
    return pd.DataFrame(res, index=df.index)


def _check_values(df: pd.DataFrame, path: Path):
    negative = df["value"] < 0
    if negative.any():
        row = df.index[negative][0]
        raise FormatError(f"Negative interaction value in {path} at row {row}: {df['value'][row]}")


def _check_alignment(positions: pd.Series, origin: int, bin_size: int, path: Path, what: str):
    misaligned = ((positions - origin) % bin_size != 0) | (positions < origin)
    if misaligned.any():
        row = positions.index[misaligned][0]
        raise FormatError(
            f"{what} {positions[row]} in {path} (row {row}) is not a bin boundary "
            f"(bin_size={bin_size}, origin={origin})"
        )


def read_bin_coordinates(bed_path: Path) -> pd.DataFrame:
    """Read a HiC-Pro style bed with chrom, start, end, bin_id columns"""
    bed = pd.concat([_parse_columns(chunk, BED_COLUMNS, bed_path) for chunk in _read_chunks(bed_path)])
    duplicated = bed["bin_id"].duplicated()
    if duplicated.any():
        raise FormatError(f"Bin id {bed['bin_id'][duplicated].iloc[0]} appears more than once in {bed_path}")
    return bed.reset_index(drop=True)


def load_hicpro(matrix_path: Path, bed_path: Path, chrom: str, bin_size: int, origin: int = 0) -> MatrixStore:
    """Load the intra-chromosomal interactions of chrom from a HiC-Pro matrix.

    Bin ids are translated to the start coordinate of the bin through the
    bed file. Pairs with either bin on another chromosome are skipped.
    """
    matrix_path, bed_path = Path(matrix_path), Path(bed_path)
    bed = read_bin_coordinates(bed_path)
    chrom_bins = bed[bed["chrom"] == chrom]
    _check_alignment(chrom_bins["start"], origin, bin_size, bed_path, "Bin start")
    all_ids = pd.Index(bed["bin_id"])
    bin_starts = pd.Series(chrom_bins["start"].to_numpy(), index=chrom_bins["bin_id"].to_numpy())

    parts = []
    num_rows = 0
    for chunk in _read_chunks(matrix_path, chunksize=MATRIX_CHUNKSIZE):
        df = _parse_columns(chunk, MATRIX_COLUMNS, matrix_path)
        _check_values(df, matrix_path)
        num_rows += len(df)
        for col in ("bin1", "bin2"):
            missing = ~df[col].isin(all_ids)
            if missing.any():
                raise MissingCoordinateError(
                    f"Bin id {df[col][missing].iloc[0]} from {matrix_path} has no entry in {bed_path}"
                )
        is_cis = df["bin1"].isin(bin_starts.index) & df["bin2"].isin(bin_starts.index)
        df = df[is_cis]
        parts.append(
            pd.DataFrame(
                {
                    "pos1": bin_starts.loc[df["bin1"]].to_numpy(),
                    "pos2": bin_starts.loc[df["bin2"]].to_numpy(),
                    "value": df["value"].to_numpy(),
                }
            )
        )
    pixels = pd.concat(parts) if parts else pd.DataFrame({"pos1": [], "pos2": [], "value": []})
    logger.debug(f"Kept {len(pixels)} of {num_rows} interactions in {matrix_path} for {chrom}")
    return MatrixStore.from_dataframe(chrom, bin_size, pixels)


def load_coords(matrix_path: Path, chrom: str, bin_size: int, origin: int = 0) -> MatrixStore:
    """Load a per-chromosome matrix given as coordinate pairs of bin starts"""
    matrix_path = Path(matrix_path)
    parts = []
    for chunk in _read_chunks(matrix_path, chunksize=MATRIX_CHUNKSIZE):
        df = _parse_columns(chunk, COORD_COLUMNS, matrix_path)
        _check_values(df, matrix_path)
        for col in ("pos1", "pos2"):
            _check_alignment(df[col], origin, bin_size, matrix_path, "Coordinate")
        parts.append(df)
    pixels = pd.concat(parts) if parts else pd.DataFrame({"pos1": [], "pos2": [], "value": []})
    return MatrixStore.from_dataframe(chrom, bin_size, pixels)


def load(source: MatrixSource, chrom: str, bin_size: int) -> MatrixStore:
    if source.format == MatrixFormat.hicpro:
        store = load_hicpro(source.matrix_path(chrom), source.bed, chrom, bin_size, origin=source.origin)
    elif source.format == MatrixFormat.coords:
        store = load_coords(source.matrix_path(chrom), chrom, bin_size, origin=source.origin)
    else:
        raise ValueError(source.format)
    logger.info(f"Loaded {len(store)} interactions for {chrom} from {source.matrix_path(chrom)}")
    return store
