"""Application settings loaded from the environment."""

import os
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()


class ConfigurationError(ValueError):
    """Raised at startup when a required setting is missing."""


class GeminiSettings(BaseModel):
    """Connection settings for the Gemini vision API."""

    api_key: str = Field(..., min_length=1, description="Gemini API key (GeminiApi:ApiKey)")
    endpoint: str = Field(..., min_length=1, description="generateContent URL (GeminiApi:Endpoint)")
    timeout_seconds: float = Field(default=60.0, gt=0, description="Timeout for one extraction call")


class MongoSettings(BaseModel):
    """Connection settings for the bills document store."""

    url: str = Field(default="mongodb://localhost:27017")
    database: str = Field(default="catering")
    bills_collection: str = Field(default="ScannedBills")
    timeout_seconds: float = Field(default=10.0, gt=0)


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_gemini_settings() -> GeminiSettings:
    """
    Read the Gemini settings from the environment.

    Raises:
        ConfigurationError: If GEMINI_API_KEY or GEMINI_API_ENDPOINT is missing.
    """
    api_key = _env("GEMINI_API_KEY")
    endpoint = _env("GEMINI_API_ENDPOINT")

    if not api_key or not endpoint:
        raise ConfigurationError("GEMINI_API_KEY and GEMINI_API_ENDPOINT must be set in .env file")

    timeout = _env("GEMINI_TIMEOUT_SECONDS")
    if timeout is None:
        return GeminiSettings(api_key=api_key, endpoint=endpoint)
    return GeminiSettings(api_key=api_key, endpoint=endpoint, timeout_seconds=float(timeout))


def load_mongo_settings() -> MongoSettings:
    """Read the MongoDB settings from the environment, falling back to defaults."""
    values = {
        "url": _env("MONGODB_URL"),
        "database": _env("MONGODB_DATABASE"),
        "bills_collection": _env("MONGODB_BILLS_COLLECTION"),
        "timeout_seconds": _env("MONGODB_TIMEOUT_SECONDS"),
    }
    return MongoSettings(**{key: value for key, value in values.items() if value is not None})
