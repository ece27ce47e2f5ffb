"""Runtime settings for the CMS data packages.

Values come from ``CMS_API_*`` environment variables, optionally loaded from
the ``.env`` file that sits next to the ``packages`` directory.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

here = Path(__file__).parent.parent

load_dotenv(dotenv_path=here / ".env")


class CMSApiSettings(BaseSettings):
    """Connection and tuning settings for the data.cms.gov dataset API."""

    model_config = SettingsConfigDict(
        env_prefix="CMS_API_",
        extra="ignore",
    )

    base_url: str = "https://data.cms.gov/data-api/v1/dataset"
    default_year: str = "2023"
    request_timeout: float = Field(default=30.0, gt=0)
    cache_ttl_seconds: float = Field(default=30 * 60, gt=0)

    # Upper bounds on the enrichment fan-out are enforced by the enricher itself
    lookup_concurrency: int = Field(default=5, ge=1, le=10)
    lookup_timeout: Optional[float] = Field(default=None, gt=0)

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> CMSApiSettings:
    return CMSApiSettings()
