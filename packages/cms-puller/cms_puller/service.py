"""Caller-facing search operations over the CMS Medicare datasets."""

import asyncio
import logging
from functools import lru_cache
from typing import Dict, List, Optional, Sequence

from cms_common.config import CMSApiSettings, get_settings
from cms_common.datasets import DATA_SOURCES, get_base_url, get_citation
from cms_common.models import CodeMapping, PrescriberRecord, ServiceRecord
from cms_puller.cms_api_client import CMSApiClient
from cms_puller.indication_search import IndicationEnricher
from cms_puller.responses import (
    GeographySearchResponse,
    IndicationSearchResponse,
    PrescriberSearchResponse,
    ProviderProfile,
    ProviderSearchResponse,
    ServiceSearchResponse,
)
from cms_puller.search_params import (
    GeographySearchParams,
    PrescriberSearchParams,
    ProviderSearchParams,
    ServiceSearchParams,
)
from cms_puller.transforms import (
    transform_geography_record,
    transform_prescriber_record,
    transform_provider_record,
    transform_service_record,
)

logger = logging.getLogger(__name__)

# Columns requested from the by-provider-and-service dataset
SERVICE_COLUMNS = [
    "Rndrng_NPI",
    "Rndrng_Prvdr_Last_Org_Name",
    "Rndrng_Prvdr_First_Name",
    "Rndrng_Prvdr_MI",
    "Rndrng_Prvdr_Crdntls",
    "Rndrng_Prvdr_Type",
    "Rndrng_Prvdr_City",
    "Rndrng_Prvdr_State_Abrvtn",
    "Rndrng_Prvdr_Zip5",
    "HCPCS_Cd",
    "HCPCS_Desc",
    "HCPCS_Drug_Ind",
    "Place_Of_Srvc",
    "Tot_Benes",
    "Tot_Srvcs",
    "Avg_Sbmtd_Chrg",
    "Avg_Mdcr_Alowd_Amt",
    "Avg_Mdcr_Pymt_Amt",
]

PROFILE_SERVICE_LIMIT = 200
PROFILE_TOP_N = 10


def _top_by_services(services: List[ServiceRecord], limit: int = PROFILE_TOP_N) -> List[ServiceRecord]:
    return sorted(services, key=lambda s: s.services or 0, reverse=True)[:limit]


class CMSDataService:
    """
    Search the Part B / Part D datasets and rank physicians by indication.

    One instance is meant to live for the whole process so that every search
    shares the same response cache.
    """

    # At most this many Part D lookups per batch
    MAX_PRESCRIBER_LOOKUPS = 20

    def __init__(self, client: Optional[CMSApiClient] = None, settings: Optional[CMSApiSettings] = None):
        self.settings = settings or get_settings()
        self.client = client or CMSApiClient(settings=self.settings)

    async def __aenter__(self) -> "CMSDataService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.close()

    def _year(self, year: Optional[str]) -> str:
        return str(year or self.settings.default_year)

    def _base_url(self, dataset: str, year: str) -> str:
        return get_base_url(dataset, year, api_root=self.settings.base_url)

    async def search_providers(self, params: Optional[ProviderSearchParams] = None) -> ProviderSearchResponse:
        params = params or ProviderSearchParams()
        year = self._year(params.year)
        fetched = await self.client.fetch_paginated(
            self._base_url("BY_PROVIDER", year), params.to_filters(), params.fetch_options()
        )
        records = [transform_provider_record(row) for row in fetched.results]
        return ProviderSearchResponse(
            records=records,
            total_returned=len(records),
            page_count=fetched.page_count,
            has_more=fetched.has_more,
            data_year=year,
        )

    async def search_provider_services(self, params: Optional[ServiceSearchParams] = None) -> ServiceSearchResponse:
        params = params or ServiceSearchParams()
        year = self._year(params.year)
        fetched = await self.client.fetch_paginated(
            self._base_url("BY_PROVIDER_AND_SERVICE", year),
            params.to_filters(),
            params.fetch_options(columns=SERVICE_COLUMNS),
        )
        records = [transform_service_record(row) for row in fetched.results]
        return ServiceSearchResponse(
            records=records,
            total_returned=len(records),
            page_count=fetched.page_count,
            has_more=fetched.has_more,
            data_year=year,
        )

    async def search_geography(self, params: Optional[GeographySearchParams] = None) -> GeographySearchResponse:
        params = params or GeographySearchParams()
        year = self._year(params.year)
        fetched = await self.client.fetch_paginated(
            self._base_url("BY_GEOGRAPHY_AND_SERVICE", year), params.to_filters(), params.fetch_options()
        )
        records = [transform_geography_record(row) for row in fetched.results]
        return GeographySearchResponse(
            records=records,
            total_returned=len(records),
            page_count=fetched.page_count,
            has_more=fetched.has_more,
            data_year=year,
        )

    async def search_by_indication(
        self, indication_id: str, params: Optional[ProviderSearchParams] = None
    ) -> IndicationSearchResponse:
        return await IndicationEnricher(self).search_by_indication(indication_id, params)

    async def search_by_code_mapping(
        self, mapping: CodeMapping, params: Optional[ProviderSearchParams] = None
    ) -> IndicationSearchResponse:
        return await IndicationEnricher(self).enrich(mapping.to_code_set(), params)

    async def get_provider_profile(self, npi: str, year: Optional[str] = None) -> Optional[ProviderProfile]:
        """Provider record plus its top procedures and drugs, or None for an unknown NPI."""
        year = self._year(year)
        providers = await self.search_providers(ProviderSearchParams(npi=npi, year=year, max_total_results=1))
        if not providers.records:
            logger.info("No provider found for NPI %s in %s data", npi, year)
            return None

        services = await self.search_provider_services(
            ServiceSearchParams(
                npi=npi,
                year=year,
                fetch_all_pages=True,
                max_total_results=PROFILE_SERVICE_LIMIT,
            )
        )
        procedures = [s for s in services.records if not s.is_drug]
        drugs = [s for s in services.records if s.is_drug]

        return ProviderProfile(
            provider=providers.records[0],
            total_services_listed=len(services.records),
            procedure_count=len(procedures),
            drug_count=len(drugs),
            top_procedures=_top_by_services(procedures),
            top_drugs=_top_by_services(drugs),
            data_year=year,
            data_source=get_citation("PART_B_PROVIDER", year),
        )

    async def search_prescribers(self, params: Optional[PrescriberSearchParams] = None) -> PrescriberSearchResponse:
        params = params or PrescriberSearchParams()
        year = self._year(params.year)
        fetched = await self.client.fetch_paginated(
            self._base_url("PART_D_BY_PROVIDER", year), params.to_filters(), params.fetch_options()
        )
        records = [transform_prescriber_record(row) for row in fetched.results]
        records = [r for r in records if (r.total_claims or 0) >= params.min_claims]
        return PrescriberSearchResponse(
            records=records,
            total_returned=len(records),
            page_count=fetched.page_count,
            has_more=fetched.has_more,
            data_year=year,
        )

    async def get_prescriber(self, npi: str, year: Optional[str] = None) -> Optional[PrescriberRecord]:
        response = await self.search_prescribers(
            PrescriberSearchParams(npi=npi, year=year, page_size=1, max_total_results=1, min_claims=0)
        )
        return response.records[0] if response.records else None

    async def get_prescribers_for_npis(
        self, npis: Sequence[str], year: Optional[str] = None
    ) -> Dict[str, PrescriberRecord]:
        """
        Part D summary for each of the first MAX_PRESCRIBER_LOOKUPS distinct NPIs.

        NPIs without a Part D row are left out. A failing lookup is logged and
        skipped without affecting the others.

        Raises:
            UnknownDataset: if there is no Part D dataset for the year
        """
        year = self._year(year)
        self._base_url("PART_D_BY_PROVIDER", year)
        npis = list(dict.fromkeys(npis))[: self.MAX_PRESCRIBER_LOOKUPS]
        semaphore = asyncio.Semaphore(self.settings.lookup_concurrency)

        async def lookup(npi: str):
            async with semaphore:
                return await self.get_prescriber(npi, year=year)

        outcomes = await asyncio.gather(*(lookup(npi) for npi in npis), return_exceptions=True)

        prescribers: Dict[str, PrescriberRecord] = {}
        for npi, outcome in zip(npis, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Could not fetch Part D data for NPI %s: %r", npi, outcome)
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            if outcome is not None:
                prescribers[npi] = outcome
        return prescribers

    @staticmethod
    def data_source_limitations(source: str = "PART_B_PROVIDER") -> List[str]:
        return list(DATA_SOURCES[source]["limitations"])


@lru_cache()
def get_default_service() -> CMSDataService:
    """Process-wide service, so all callers share one response cache."""
    return CMSDataService()
