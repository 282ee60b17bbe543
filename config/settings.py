"""
StockScratch - Engine Configuration & Logging

Environment-driven settings for the scratch-ticket engine and its tools.
Values come from the process environment (or a local .env file) and are
read once at import.

    SCRATCH_LOG_LEVEL   Log level for the "stockscratch" logger tree (WARNING)
    SCRATCH_MC_ROUNDS   Default tickets per type for Monte Carlo runs (20000)
    SCRATCH_MC_SEED     Base seed string for Monte Carlo runs ("stockscratch")
"""

import logging
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent.parent

LOGGER_NAME = "stockscratch"


class ScratchConfig:

    # --- Logging ---
    LOG_LEVEL = os.getenv("SCRATCH_LOG_LEVEL", "WARNING").upper()
    LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    LOG_DATEFMT = "%H:%M:%S"

    # --- Monte Carlo ---
    MC_ROUNDS = int(os.getenv("SCRATCH_MC_ROUNDS", "20000"))
    MC_SEED = os.getenv("SCRATCH_MC_SEED", "stockscratch")

    # --- Payout constants ---
    # Not environment-tunable: a prize must re-derive identically everywhere.
    BONUS_RATE = "1.25"
    LEGACY_UNITS_PER_MATCH = 15

    @classmethod
    def as_dict(cls) -> dict:
        return {
            "log_level": cls.LOG_LEVEL,
            "mc_rounds": cls.MC_ROUNDS,
            "mc_seed": cls.MC_SEED,
            "bonus_rate": cls.BONUS_RATE,
            "legacy_units_per_match": cls.LEGACY_UNITS_PER_MATCH,
        }


def configure_logging(level: str = None) -> logging.Logger:
    """Attach a stream handler to the package logger (idempotent)."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        _h = logging.StreamHandler()
        _h.setFormatter(logging.Formatter(ScratchConfig.LOG_FORMAT,
                                          datefmt=ScratchConfig.LOG_DATEFMT))
        logger.addHandler(_h)
    logger.setLevel((level or ScratchConfig.LOG_LEVEL).upper())
    return logger
