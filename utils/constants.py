# utils/constants.py

# --- Top-Level Result Directories ---
# Sequentially numbered for proper sorting with clear, self-explanatory names

CONFIG_DIR = "01_RunConfiguration"              # Run config, metadata, seeds
DATA_VALIDATION_DIR = "02_DataValidation"       # Validated data, column stats
EXPLORATION_DIR = "03_ExploratoryAnalysis"      # Class balance, correlations
MASTER_SPLITS_DIR = "04_TrainTestSplit"         # Single stratified train/test split
TUNING_DIR = "05_HyperparameterTuning"          # Per-family fold metrics and summaries
COMPARISON_DIR = "06_ModelComparison"           # Best configuration per family
FINAL_EVALUATION_DIR = "07_FinalTestEvaluation"  # Refit on full train, scored on test

# Canonical list used when building the base results structure (in order).
TOP_LEVEL_RESULT_DIRS = [
    CONFIG_DIR,
    DATA_VALIDATION_DIR,
    EXPLORATION_DIR,
    MASTER_SPLITS_DIR,
    TUNING_DIR,
    COMPARISON_DIR,
    FINAL_EVALUATION_DIR,
]

# --- File Names ---
CONFIG_USED_FILE = "config_used.json"
CONFIG_HASH_FILE = "config_hash.txt"
RUN_METADATA_FILE = "run_metadata.json"
FINAL_METRICS_FILE = "final_metrics.json"
TEST_PREDICTIONS_FILE = "test_predictions.parquet"
MODEL_COMPARISON_FILE = "model_comparison.parquet"

# --- Model Families ---
DECISION_TREE = "decision_tree"
BAGGED_TREES = "bagged_trees"
RANDOM_FOREST = "random_forest"
BOOSTED_TREES = "boosted_trees"
MAJORITY_CLASS = "majority_class"

# --- Tuning ---
DEFAULT_METRICS = ["accuracy", "roc_auc"]
MAXIMIZE = "maximize"
MINIMIZE = "minimize"
GRID_MODE_RANDOM = "random"
GRID_MODE_EXHAUSTIVE = "exhaustive"
DEFAULT_GRID_RETRIES = 10

TASK_STATUS_SUCCESS = "success"
TASK_STATUS_FAILED = "failed"

# Seed offsets for reproducibility (non-overlapping per component)
SEED_OFFSETS = {
    'split': 0,
    'cv': 1000,
    'grid': 2000,
    'model': 3000,
}

# --- Recipe ---
UNKNOWN_CATEGORY = "unknown"
DEFAULT_CORRELATION_THRESHOLD = 0.9
