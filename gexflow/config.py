"""GEXFLOW configuration loaded from environment variables."""
import logging
import os
import sys
from typing import List, Optional
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

# ============================================================================
# Pricing Model
# ============================================================================

RISK_FREE_RATE = float(os.getenv('RISK_FREE_RATE', '0.043'))
DIVIDEND_YIELD = float(os.getenv('DIVIDEND_YIELD', '0.006'))

IV_CLAMP_MIN = float(os.getenv('IV_CLAMP_MIN', '0.0001'))
IV_CLAMP_MAX = float(os.getenv('IV_CLAMP_MAX', '5.0'))
# Reported IVs below this are treated as missing and inverted from last price
IV_REPORTED_MIN = float(os.getenv('IV_REPORTED_MIN', '0.001'))
# Floor applied to sigma when evaluating gamma; equal to IV_CLAMP_MIN by default
GREEK_SIGMA_FLOOR = float(os.getenv('GREEK_SIGMA_FLOOR', str(IV_CLAMP_MIN)))

IV_SOLVER_INITIAL = 0.20
IV_SOLVER_MAX_ITERATIONS = int(os.getenv('IV_SOLVER_MAX_ITERATIONS', '20'))
IV_SOLVER_PRECISION = float(os.getenv('IV_SOLVER_PRECISION', '0.0001'))
IV_SOLVER_BUMP = 0.001

# Smallest time-to-expiration (years) handed to the pricing model
TIME_EPSILON = 1e-6

# ============================================================================
# Exposure
# ============================================================================

CONTRACT_MULTIPLIER = 100
VOLUME_OI_PROXY = 0.1
STRIKE_WINDOW = float(os.getenv('STRIKE_WINDOW', '0.10'))

GAMMA_FLIP_SCAN_RANGE = float(os.getenv('GAMMA_FLIP_SCAN_RANGE', '0.10'))
GAMMA_FLIP_MAX_ITERATIONS = 15
GAMMA_FLIP_TOLERANCE = 0.1
VOLATILITY_TRIGGER_RATIO = float(os.getenv('VOLATILITY_TRIGGER_RATIO', '0.985'))

CALL_WALL_FALLBACK = 1.02
PUT_WALL_FALLBACK = 0.98

# ============================================================================
# Probability & Expected Move
# ============================================================================

PROBABILITY_MIN_NEUTRAL = 15.0
PROBABILITY_DIRECTION_CAP = float(os.getenv('PROBABILITY_DIRECTION_CAP', '80'))
ENERGY_EPSILON = 1e-4

EXPECTED_MOVE_FRACTION = float(os.getenv('EXPECTED_MOVE_FRACTION', '0.4'))
HIGH_CONFIDENCE_MOVE_FRACTION = 0.25
ATM_MONEYNESS = 0.05
FALLBACK_IV = 0.25

SENTIMENT_BIAS_WEIGHT = 0.3
GAMMA_BIAS_WEIGHT = 0.2
MAX_COMBINED_BIAS = 0.35

# ============================================================================
# Scenario Scoring
# ============================================================================

SCENARIO_MAX_SNAPSHOTS = 5
SCENARIO_TOP_N = 3
SCENARIO_BASE_PROBABILITY = 55.0
SCENARIO_SENTIMENT_WEIGHT = 0.4
SCENARIO_EXPOSURE_STEP = 5.0
SCENARIO_SKEW_WEIGHT = 0.2
SCENARIO_DURATION_PENALTY = 2.0
SCENARIO_PROBABILITY_MIN = 35
SCENARIO_PROBABILITY_MAX = int(os.getenv('SCENARIO_PROBABILITY_MAX', '92'))
SCENARIO_HIGH_CONVICTION = 70
SCENARIO_TARGET_HAIRCUT = 0.995

# ============================================================================
# Beta
# ============================================================================

BETA_MIN_OBSERVATIONS = int(os.getenv('BETA_MIN_OBSERVATIONS', '10'))
BETA_DEFAULT = 1.0
BETA_LOOKBACK_MONTHS = int(os.getenv('BETA_LOOKBACK_MONTHS', '3'))
BETA_LOOKBACK_MIN_MONTHS = 1
BETA_LOOKBACK_MAX_MONTHS = 24

# ============================================================================
# Pipeline Configuration
# ============================================================================

MARKET_TIMEZONE = os.getenv('MARKET_TIMEZONE', 'America/New_York')
MARKET_CLOSE_HOUR = 16
EXPIRATION_WINDOW_DAYS = int(os.getenv('EXPIRATION_WINDOW_DAYS', '10'))
MIN_EXPIRATIONS = int(os.getenv('MIN_EXPIRATIONS', '5'))
PIPELINE_MAX_WORKERS = int(os.getenv('PIPELINE_MAX_WORKERS', '4'))

# ============================================================================
# Logging Configuration
# ============================================================================

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
LOG_FILE = os.getenv('LOG_FILE', '')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'detailed')

LOG_FORMATS = {
    'simple': '%(levelname)s: %(message)s',
    'detailed': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    'json': '{"ts": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "msg": "%(message)s"}',
}

# Chatty third-party loggers capped at WARNING
QUIET_LOGGERS = ('uvicorn.access', 'httpx')


# ============================================================================
# Validation
# ============================================================================

def validate_config() -> None:
    """Validate configuration values."""
    errors = []

    if not (0 < IV_CLAMP_MIN < IV_CLAMP_MAX):
        errors.append("IV_CLAMP_MIN must be positive and below IV_CLAMP_MAX")

    if GREEK_SIGMA_FLOOR < 0:
        errors.append("GREEK_SIGMA_FLOOR must be non-negative")

    if IV_SOLVER_MAX_ITERATIONS < 1:
        errors.append("IV_SOLVER_MAX_ITERATIONS must be at least 1")

    if not (0 < STRIKE_WINDOW < 1):
        errors.append("STRIKE_WINDOW must be between 0 and 1")

    if not (0 < GAMMA_FLIP_SCAN_RANGE < 1):
        errors.append("GAMMA_FLIP_SCAN_RANGE must be between 0 and 1")

    if not (50 <= PROBABILITY_DIRECTION_CAP <= 100):
        errors.append("PROBABILITY_DIRECTION_CAP must be between 50 and 100")

    if EXPECTED_MOVE_FRACTION <= 0:
        errors.append("EXPECTED_MOVE_FRACTION must be positive")

    if not (SCENARIO_PROBABILITY_MIN < SCENARIO_PROBABILITY_MAX <= 100):
        errors.append("SCENARIO_PROBABILITY_MAX must be above the minimum and at most 100")

    if BETA_MIN_OBSERVATIONS < 2:
        errors.append("BETA_MIN_OBSERVATIONS must be at least 2")

    if not (BETA_LOOKBACK_MIN_MONTHS <= BETA_LOOKBACK_MONTHS <= BETA_LOOKBACK_MAX_MONTHS):
        errors.append("BETA_LOOKBACK_MONTHS must be between 1 and 24")

    if EXPIRATION_WINDOW_DAYS < 1 or MIN_EXPIRATIONS < 1:
        errors.append("EXPIRATION_WINDOW_DAYS and MIN_EXPIRATIONS must be positive")

    if PIPELINE_MAX_WORKERS < 1:
        errors.append("PIPELINE_MAX_WORKERS must be at least 1")

    if LOG_FORMAT not in LOG_FORMATS:
        errors.append(f"LOG_FORMAT must be one of {sorted(LOG_FORMATS)}")

    if errors:
        raise ValueError("Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors))


# ============================================================================
# Logging Setup
# ============================================================================

def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Route gexflow logs to stdout (and LOG_FILE when set).

    ``level`` and ``log_file`` override LOG_LEVEL and LOG_FILE; calling it
    again replaces the previous handlers.
    """
    level_name = (level or LOG_LEVEL).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    formatter = logging.Formatter(LOG_FORMATS.get(LOG_FORMAT, LOG_FORMATS['detailed']))
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    target = log_file if log_file is not None else LOG_FILE
    if target:
        handlers.append(logging.FileHandler(target))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)
    logging.getLogger('gexflow').setLevel(numeric_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


# Validate config on import
validate_config()
