"""
Configuration constants, error kinds and logging for the invoice extractor.
"""

import logging
import os
from enum import Enum
from typing import Final

from dotenv import load_dotenv

# Values in a local .env file are loaded into the process environment
# before any of the settings below are read.
load_dotenv()

# ============================================================================
# Directories & Artifacts
# ============================================================================

INPUT_DIR_NAME: Final[str] = os.getenv("INVOICE_INPUT_DIR", "invoices")
OUTPUT_DIR_NAME: Final[str] = os.getenv("INVOICE_OUTPUT_DIR", "outputs")

PDF_EXTENSION: Final[str] = ".pdf"
ARTIFACT_SUFFIX: Final[str] = "_data.json"
USAGE_SUMMARY_FILENAME: Final[str] = "token_usage_summary.json"

# ============================================================================
# Completion Service
# ============================================================================

API_KEY_ENV_VAR: Final[str] = "OPENAI_API_KEY"
API_KEY_PLACEHOLDER: Final[str] = "your_api_key_here"

OPENAI_MODEL: Final[str] = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TEMPERATURE: Final[float] = float(os.getenv("OPENAI_TEMPERATURE", "0"))

# Upper bound on document text sent in a single request. The service enforces
# its own token ceiling; anything above this is rejected locally.
MAX_INPUT_CHARS: Final[int] = int(os.getenv("MAX_INPUT_CHARS", "100000"))

# Length of the document excerpt kept in error records
RAW_TEXT_SAMPLE_CHARS: Final[int] = 500


class ConfigurationError(RuntimeError):
    """Raised when the completion service credential is missing or a placeholder."""


def get_api_key() -> str:
    """
    Return the configured completion service API key.

    Raises:
        ConfigurationError: If the key is unset, blank or still the placeholder
    """
    api_key = (os.getenv(API_KEY_ENV_VAR) or "").strip()
    if not api_key or api_key == API_KEY_PLACEHOLDER:
        raise ConfigurationError(
            f"{API_KEY_ENV_VAR} is not configured. Set it in the environment or the .env file."
        )
    return api_key


# ============================================================================
# Error Kinds
# ============================================================================

class ErrorKind(str, Enum):
    """Categories of per-document extraction failures."""
    EMPTY_INPUT = "empty_input"
    INPUT_TOO_LONG = "input_too_long"
    INVALID_RESPONSE = "invalid_response"
    TRANSPORT_ERROR = "transport_error"
    PARSE_ERROR = "parse_error"


# ============================================================================
# Logging Configuration
# ============================================================================

LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO")

def setup_logging() -> logging.Logger:
    """Configure and return the application logger."""
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("invoice_extract")


logger = setup_logging()
