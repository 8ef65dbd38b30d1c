from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
RAW_DIR = DATA_DIR / "raw"
FISH_EXPORTS_DIR = RAW_DIR / "fish"
PROCESSED_DIR = DATA_DIR / "processed"

OUTPUTS_DIR = PROJECT_ROOT / "outputs"
FIGURES_DIR = OUTPUTS_DIR / "figures"
METRICS_DIR = OUTPUTS_DIR / "metrics"
TABLES_DIR = OUTPUTS_DIR / "tables"
MODELS_DIR = OUTPUTS_DIR / "models"
LOGS_DIR = OUTPUTS_DIR / "logs"
SPLITS_DIR = OUTPUTS_DIR / "splits"

FISH_INFO_FILE = RAW_DIR / "fishInfo_20220912.csv"

MASTER_UNFILTERED_FILE = PROCESSED_DIR / "processed_AllFishCombined_unfiltered.parquet"
ANALYSIS_FILE = PROCESSED_DIR / "processed_AnalysisData.parquet"
MODELING_FILE = PROCESSED_DIR / "modeling_table.parquet"

# Dataset and experiment identifiers (used in outputs/ metadata)
DATASET_VERSION = "fishtrack_wbfr_v1"
EXPERIMENT_NAMESPACE = "species_stack_v1"

# Echoview export file names, one set per fish directory.
FREQ_BANDS_KHZ = [70, 120, 200]
FREQ_REQUIRED_BAND_KHZ = 70
FREQ_RESPONSE_FILE = "FreqResponse{band}.csv"
FREQ_RESPONSE_UNCOMP_FILE = "FreqResponse{band}_uncompTS.csv"
TARGETS_FILE = "ExportedFishTracks (targets).csv"
REGIONS_FILE = "ExportedFishTracks (regions).csv"

# Wideband frequency-response export layout (0-based line numbers).
FREQ_PING_INDEX_ROW = 1
FREQ_REGION_NAME_ROW = 7
FREQ_DATA_START_ROW = 8
FREQ_TRAILING_COLS = ["Variable_Index", "Variable_Name"]

# Band overlap trimming: 90 kHz is duplicated in the 120 kHz export and
# some fish duplicate 160-173 kHz between the 120 and 200 kHz exports.
FREQ_BAND_LIMITS_KHZ = {
    70: (None, 89.5),
    120: (None, None),
    200: (173.0, None),
}

TARGET_COLUMNS = [
    "Region_name",
    "FishTrack",
    "Ping_time",
    "Target_range",
    "Angle_minor_axis",
    "Angle_major_axis",
    "Distance_minor_axis",
    "Distance_major_axis",
    "StandDev_Angles_Minor_Axis",
    "StandDev_Angles_Major_Axis",
    "Target_true_depth",
]
REGION_COLUMNS = ["Region_name", "Ping_S", "Ping_E", "Num_targets", "TS_mean"]
REGION_MEAN_BLOCK = ("Target_range_mean", "Region_top_altitude_mean")

# Pings whose beam compensation moves TS by more than this at any frequency are rejected.
TS_COMPENSATION_MAX_DB = 6.0

SPECIES_NAMES = {
    "LT": "Lake Trout",
    "SMB": "Smallmouth Bass",
    "LWF": "Lake Whitefish",
}
MODEL_SPECIES = ["LT", "SMB"]
SPECIES_TARGET_CODES = {"LT": 0, "SMB": 1}

TARGET_COL = "y_smb"
GROUP_COL = "fishNum"
SPECIES_COL = "species"
TRACK_COL = "FishTrack"

GEOMETRY_COLS = [
    "Target_range",
    "Target_true_depth",
    "Angle_minor_axis",
    "Angle_major_axis",
    "StandDev_Angles_Minor_Axis",
    "StandDev_Angles_Major_Axis",
    "aspectAngle",
]
FEATURE_SETS = ["frequency", "full"]

# Frozen validation protocol
TEST_SIZE = 0.2
CV_FOLDS = 5
RANDOM_SEEDS = [2026, 2027, 2028]
POSITIVE_LABEL = 1
DECISION_THRESHOLD = 0.5
MODEL_NAMES = ["enet", "rf", "hgb", "mlp", "stack"]

# EDA defaults
MAX_FEATURE_MISSING_RATE = 0.2
OUTLIER_Z_THRESHOLD = 3.0
PCA_COMPONENTS = 10
TOP_CORRELATED_PAIRS = 25
