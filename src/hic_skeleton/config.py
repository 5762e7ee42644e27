# int8 	Byte (-128 to 127)
# int64 	Integer (-9223372036854775808 to 9223372036854775807)
# uint32 	Unsigned integer (0 to 4294967295)
GENOMIC_COORD_DTYPE = "uint32"  # should be fine as long as individual chromosomes are less than 4Gb
GENOMIC_OFFSET_DTYPE = "int32"
VALUE_DTYPE = "float64"
CLASS_DTYPE = "int8"
COUNT_DTYPE = "uint32"

DEFAULT_BIN_SIZE = 5_000
DEFAULT_WINDOW_SIZE = 1_005_000  # 201 bins, odd so the pole is centred on a bin
DEFAULT_STEP = 50_000
DEFAULT_IMPUTE_K = 5

# cumulative upper bounds of each class, in percent
PYRAMID_PERCENTILES = (20, 40, 50, 60, 70, 75, 80, 85, 90, 95, 100)
PERCENTILE_METHOD = "linear"

# rows read per chunk when scanning a genome-wide HiC-Pro matrix
MATRIX_CHUNKSIZE = 1_000_000

CHROM_PLACEHOLDER = "{chrom}"
SKELETON_SUFFIX = ".skeleton.tsv"
RAW_POLES_SUFFIX = ".raw.parquet"
IMPUTED_POLES_SUFFIX = ".imputed.parquet"
SUMMARY_FILENAME = "skeleton_summary.csv"

PQ_ENGINE = "pyarrow"
PQ_VERSION = "2.6"
