"""Exceptions shared by the CMS data packages."""

from typing import Optional


class CMSDataError(Exception):
    """Base class for every error raised by the CMS data layer."""


class InvalidIndication(CMSDataError, LookupError):
    """Raised when an indication id is not present in the catalog."""

    def __init__(self, indication_id: str):
        self.indication_id = indication_id
        super().__init__(f"Indication not found: {indication_id}")


class UnknownDataset(CMSDataError, ValueError):
    """Raised when no dataset UUID is registered for a dataset/year pair."""

    def __init__(self, dataset: str, year: str):
        self.dataset = dataset
        self.year = year
        super().__init__(f"No UUID found for {dataset} year {year}")


class UpstreamError(CMSDataError):
    """The data.cms.gov API could not be reached or refused the request."""


class UpstreamHttpError(UpstreamError):
    """Non-2xx response from the dataset API."""

    def __init__(self, status: int, body: str = "", url: Optional[str] = None):
        self.status = status
        self.body = body
        self.url = url
        super().__init__(f"CMS API error: {status} - {body}")


class UpstreamConnectionError(UpstreamError):
    """Transport level failure (DNS, connection reset, timeout)."""
