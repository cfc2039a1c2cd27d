"""
Election Source Configuration

Single configuration surface for the election research pipeline. Values are
read from the environment (and a local .env file) once at import time so the
pipeline, the CLI and the seed readers share the same policy constants.
"""

import os
from typing import List

from dotenv import load_dotenv

from errors import ConfigurationError

load_dotenv()


class ElectionSourceConfig:
    """Environment-backed settings used across the runtime."""

    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    OPENAI_ORGANIZATION = os.getenv("OPENAI_ORGANIZATION")
    GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")

    # Generation policy. Research calls are web-grounded; the consolidation
    # call runs on a cheaper model with no tools.
    RESEARCH_MODEL = os.getenv("ES_RESEARCH_MODEL", "gpt-4.1")
    TRANSFORM_MODEL = os.getenv("ES_TRANSFORM_MODEL", "gpt-4.1-mini")
    MODEL_TEMPERATURE = float(os.getenv("ES_MODEL_TEMPERATURE", "0"))
    MODEL_TOP_P = float(os.getenv("ES_MODEL_TOP_P", "0.95"))
    MAX_OUTPUT_TOKENS = int(os.getenv("ES_MAX_OUTPUT_TOKENS", "25000"))
    HTTP_TIMEOUT_SECONDS = int(os.getenv("ES_HTTP_TIMEOUT", "300"))
    GROUNDING_TOOL = {"type": "web_search_preview"}

    # Rate-limit policy (seconds)
    POSITION_DELAY_SECONDS = float(os.getenv("ES_POSITION_DELAY", "30"))
    POST_RESEARCH_DELAY_SECONDS = float(os.getenv("ES_POST_RESEARCH_DELAY", "30"))
    SEED_DELAY_SECONDS = float(os.getenv("ES_SEED_DELAY", "15"))

    # Retry budget for gateway calls
    RETRY_MAX_ATTEMPTS = int(os.getenv("ES_RETRY_ATTEMPTS", "3"))
    RETRY_BASE_DELAY_SECONDS = float(os.getenv("ES_RETRY_BASE_DELAY", "1"))
    RETRY_MAX_DELAY_SECONDS = float(os.getenv("ES_RETRY_MAX_DELAY", "60"))

    RESPONSE_PREVIEW_CHARS = 200

    # 0 means no limit
    ELECTION_LIMIT = int(os.getenv("ELECTION_LIMIT", "0"))

    OUTPUT_DIR = os.getenv("ES_OUTPUT_DIR", "election_runs")
    CSV_FILE_PATH = os.getenv("CSV_FILE_PATH", "")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    CIVIC_API_URL = os.getenv(
        "ES_CIVIC_API_URL", "https://www.googleapis.com/civicinfo/v2/elections"
    )
    CIVIC_TEST_ELECTION_ID = "2000"
    CIVIC_TEST_ELECTION_NAME = "VIP Test Election"

    @classmethod
    def missing_keys(cls, require_civic: bool = False) -> List[str]:
        required = [("OPENAI_API_KEY", cls.OPENAI_API_KEY)]
        if require_civic:
            required.append(("GOOGLE_API_KEY", cls.GOOGLE_API_KEY))
        return [key for key, value in required if not value]

    @classmethod
    def validate(cls, require_civic: bool = False) -> None:
        missing = cls.missing_keys(require_civic=require_civic)
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Set them in your environment or .env file."
            )
