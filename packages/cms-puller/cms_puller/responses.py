"""Response envelopes returned by the caller-facing search operations."""

from typing import List

from pydantic import BaseModel, Field

from cms_common.models import (
    EnrichedPhysicianRecord,
    GeographyRecord,
    IndicationCodeSet,
    PrescriberRecord,
    ProviderRecord,
    ServiceRecord,
)


class SearchResponse(BaseModel):
    total_returned: int = 0
    page_count: int = 0
    has_more: bool = False
    data_year: str


class ProviderSearchResponse(SearchResponse):
    records: List[ProviderRecord] = Field(default_factory=list)


class ServiceSearchResponse(SearchResponse):
    records: List[ServiceRecord] = Field(default_factory=list)


class GeographySearchResponse(SearchResponse):
    records: List[GeographyRecord] = Field(default_factory=list)


class PrescriberSearchResponse(SearchResponse):
    records: List[PrescriberRecord] = Field(default_factory=list)


class IndicationSearchResponse(SearchResponse):
    indication: IndicationCodeSet
    records: List[EnrichedPhysicianRecord] = Field(default_factory=list)
    data_source: str = ""
    limitations: List[str] = Field(default_factory=list)
    failed_lookups: List[str] = Field(
        default_factory=list,
        description="NPIs whose service lookup failed and therefore show zero indication volume",
    )

    @property
    def physicians(self) -> List[EnrichedPhysicianRecord]:
        return self.records


class ProviderProfile(BaseModel):
    provider: ProviderRecord
    total_services_listed: int = 0
    procedure_count: int = 0
    drug_count: int = 0
    top_procedures: List[ServiceRecord] = Field(default_factory=list)
    top_drugs: List[ServiceRecord] = Field(default_factory=list)
    data_year: str
    data_source: str

