"""
Rank physicians for a clinical indication.

Providers are searched by the indication's specialties and comorbidity
thresholds, then the first few are enriched with their service volume for the
indication's procedure and drug codes and ranked by a weighted score.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple

from cms_common.config import CMSApiSettings
from cms_common.datasets import get_citation
from cms_common.exceptions import InvalidIndication
from cms_common.indications import get_indication_by_id
from cms_common.models import EnrichedPhysicianRecord, IndicationCodeSet, ProviderRecord
from cms_puller.responses import IndicationSearchResponse
from cms_puller.search_params import ProviderSearchParams, ServiceSearchParams

if TYPE_CHECKING:
    from cms_puller.service import CMSDataService

logger = logging.getLogger(__name__)

IndicationLookup = Callable[[str], Optional[IndicationCodeSet]]

LIMITATIONS = [
    "Medicare Fee-for-Service data only - does not include Medicare Advantage or private insurance",
    "Volume is approximated from procedure/drug codes as proxies for the indication",
    "Counts <11 are suppressed by CMS for privacy protection",
]


@dataclass
class ServiceVolume:
    services: float = 0
    beneficiaries: float = 0
    codes: List[str] = field(default_factory=list)


def relevance_score(indication_services: float, indication_beneficiaries: float, total_beneficiaries: Optional[float]) -> float:
    return indication_services * 10 + indication_beneficiaries + (total_beneficiaries or 0) / 10


def rank_physicians(records: Sequence[EnrichedPhysicianRecord]) -> List[EnrichedPhysicianRecord]:
    """Highest score first; ties keep their provider search order."""
    return sorted(records, key=lambda r: r.relevance_score, reverse=True)


class IndicationEnricher:
    # At most this many per-NPI service lookups per request
    MAX_SERVICE_LOOKUPS = 10
    SERVICE_LOOKUP_LIMIT = 100

    def __init__(
        self,
        service: "CMSDataService",
        catalog: IndicationLookup = get_indication_by_id,
        settings: Optional[CMSApiSettings] = None,
    ):
        self.service = service
        self.catalog = catalog
        self.settings = settings or service.settings

    async def search_by_indication(
        self, indication_id: str, params: Optional[ProviderSearchParams] = None
    ) -> IndicationSearchResponse:
        indication = self.catalog(indication_id)
        if indication is None:
            raise InvalidIndication(indication_id)
        return await self.enrich(indication, params)

    def provider_params(self, indication: IndicationCodeSet, params: Optional[ProviderSearchParams]) -> ProviderSearchParams:
        params = params or ProviderSearchParams()
        return params.model_copy(
            update={
                "provider_types": list(indication.specialties) or params.provider_types,
                "comorbidity_minimums": {**params.comorbidity_minimums, **indication.comorbidity_filters},
            }
        )

    async def enrich(
        self, indication: IndicationCodeSet, params: Optional[ProviderSearchParams] = None
    ) -> IndicationSearchResponse:
        search_params = self.provider_params(indication, params)
        providers = await self.service.search_providers(search_params)

        codes = indication.relevant_codes
        npis = list(dict.fromkeys(p.npi for p in providers.records if p.npi))
        lookup_npis = npis[: self.MAX_SERVICE_LOOKUPS]

        volumes: Dict[str, ServiceVolume] = {}
        failed: List[str] = []
        if codes and lookup_npis:
            volumes, failed = await self.lookup_service_volumes(lookup_npis, codes, providers.data_year)

        enriched = [self._enrich_record(p, indication, volumes.get(p.npi)) for p in providers.records]
        ranked = rank_physicians(enriched)

        limitations = list(LIMITATIONS)
        if len(npis) > len(lookup_npis):
            limitations.append(
                f"Indication volume was looked up for the first {len(lookup_npis)} providers only; "
                "the rest show zero indication volume"
            )
        if failed:
            limitations.append(
                f"Service data could not be retrieved for {len(failed)} provider(s); they show zero indication volume"
            )

        return IndicationSearchResponse(
            indication=indication,
            records=ranked,
            total_returned=len(ranked),
            page_count=providers.page_count,
            has_more=providers.has_more,
            data_year=providers.data_year,
            data_source=get_citation("PART_B_PROVIDER", providers.data_year),
            limitations=limitations,
            failed_lookups=failed,
        )

    async def lookup_service_volumes(
        self, npis: Sequence[str], codes: Sequence[str], year: str
    ) -> Tuple[Dict[str, ServiceVolume], List[str]]:
        """
        Look up indication service volume for each NPI.

        Each lookup runs as its own task; a failing lookup is logged and
        reported back in the failed list without affecting the others.
        """
        npis = list(npis)[: self.MAX_SERVICE_LOOKUPS]
        semaphore = asyncio.Semaphore(min(self.settings.lookup_concurrency, self.MAX_SERVICE_LOOKUPS))
        timeout = self.settings.lookup_timeout

        async def lookup(npi: str):
            async with semaphore:
                search = self.service.search_provider_services(
                    ServiceSearchParams(
                        npi=npi,
                        hcpcs_codes=list(codes),
                        year=year,
                        max_total_results=self.SERVICE_LOOKUP_LIMIT,
                    )
                )
                if timeout:
                    return await asyncio.wait_for(search, timeout)
                return await search

        outcomes = await asyncio.gather(*(lookup(npi) for npi in npis), return_exceptions=True)

        volumes: Dict[str, ServiceVolume] = {}
        failed: List[str] = []
        for npi, outcome in zip(npis, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Could not fetch services for NPI %s: %r", npi, outcome)
                failed.append(npi)
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            volumes[npi] = ServiceVolume(
                services=sum(s.services or 0 for s in outcome.records),
                beneficiaries=sum(s.beneficiaries or 0 for s in outcome.records),
                codes=list(dict.fromkeys(s.hcpcs_code for s in outcome.records if s.hcpcs_code)),
            )
        return volumes, failed

    @staticmethod
    def _enrich_record(
        provider: ProviderRecord, indication: IndicationCodeSet, volume: Optional[ServiceVolume]
    ) -> EnrichedPhysicianRecord:
        volume = volume or ServiceVolume()
        return EnrichedPhysicianRecord(
            **provider.model_dump(),
            indication_id=indication.id,
            indication_name=indication.name,
            indication_services=volume.services,
            indication_beneficiaries=volume.beneficiaries,
            relevant_codes=volume.codes,
            relevance_score=relevance_score(volume.services, volume.beneficiaries, provider.total_beneficiaries),
        )
