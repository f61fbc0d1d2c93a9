"""Configuration management using environment variables."""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE")

# Reporting defaults
DEFAULT_QUARTER = os.getenv("QBR_DEFAULT_QUARTER", "Q4 2024")

# Flat MDF allocation used when a tier does not define its own budget
DEFAULT_MDF_ALLOCATION = float(os.getenv("QBR_DEFAULT_MDF_ALLOCATION", "25000"))

# Quarterly target for partners whose tier is not in the table (non-strict mode only)
FALLBACK_REVENUE_TARGET = float(os.getenv("QBR_FALLBACK_REVENUE_TARGET", "300000"))

# Optional JSON file overriding the partner tier table
TIER_CONFIG_FILE = os.getenv("QBR_TIER_CONFIG_FILE")

# Use each tier's marketing fund budget (Strategic 50k / Select 25k / Registered 10k)
# as its MDF allocation instead of the flat default
USE_TIERED_MDF = os.getenv("QBR_USE_TIERED_MDF", "false").lower() in ("1", "true", "yes")
