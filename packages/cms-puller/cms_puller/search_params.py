"""Typed search parameters for each dataset and their filter translation."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from cms_common.datasets import CHRONIC_CONDITION_FIELDS
from cms_puller.filters import FetchOptions, Filter, FilterOperator as Op

logger = logging.getLogger(__name__)


def _upper(values: Optional[List[str]]) -> Optional[List[str]]:
    return [v.upper() for v in values] if values else None


def _upper_one(value: Optional[str]) -> Optional[str]:
    return value.upper() if value else None


class SearchParams(BaseModel, ABC):
    """Paging and sort options shared by every dataset search."""

    year: Optional[str] = None
    sort_by: Optional[str] = "Tot_Benes"
    sort_descending: bool = True
    page_size: int = Field(default=100, ge=1)
    offset: int = Field(default=0, ge=0)
    fetch_all_pages: bool = False
    max_total_results: int = Field(default=500, ge=1)

    def fetch_options(self, columns: Optional[List[str]] = None) -> FetchOptions:
        return FetchOptions(
            sort_by=self.sort_by,
            sort_descending=self.sort_descending,
            page_size=self.page_size,
            offset=self.offset,
            columns=columns or [],
            fetch_all_pages=self.fetch_all_pages,
            max_total_results=self.max_total_results,
        )

    @abstractmethod
    def to_filters(self) -> List[Filter]:
        """Dataset filters for the populated fields."""


class ProviderSearchParams(SearchParams):
    npi: Optional[str] = None
    provider_name: Optional[str] = None
    provider_first_name: Optional[str] = None
    credentials: Optional[str] = None
    entity_type: Optional[str] = None

    state: Optional[str] = None
    states: Optional[List[str]] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None

    provider_type: Optional[str] = None
    provider_types: Optional[List[str]] = None

    min_beneficiaries: Optional[float] = None
    min_services: Optional[float] = None
    min_total_payment: Optional[float] = None
    min_avg_age: Optional[float] = None
    max_avg_age: Optional[float] = None
    min_risk_score: Optional[float] = None
    max_risk_score: Optional[float] = None

    min_diabetes_pct: Optional[float] = None
    max_diabetes_pct: Optional[float] = None
    min_heart_disease_pct: Optional[float] = None
    min_ckd_pct: Optional[float] = None
    max_ckd_pct: Optional[float] = None
    min_depression_pct: Optional[float] = None
    min_dementia_pct: Optional[float] = None
    comorbidity_minimums: Dict[str, float] = Field(
        default_factory=dict,
        description="Minimum chronic condition prevalence keyed by condition name (see CHRONIC_CONDITION_FIELDS)",
    )

    def to_filters(self) -> List[Filter]:
        cc = CHRONIC_CONDITION_FIELDS
        filters = [
            Filter("Rndrng_NPI", Op.EQ, self.npi),
            Filter("Rndrng_Prvdr_Last_Org_Name", Op.CONTAINS, _upper_one(self.provider_name)),
            Filter("Rndrng_Prvdr_First_Name", Op.CONTAINS, _upper_one(self.provider_first_name)),
            Filter("Rndrng_Prvdr_Crdntls", Op.EQ, self.credentials),
            Filter("Rndrng_Prvdr_Ent_Cd", Op.EQ, self.entity_type),
            Filter("Rndrng_Prvdr_State_Abrvtn", Op.EQ, _upper_one(self.state)),
            Filter("Rndrng_Prvdr_State_Abrvtn", Op.IN, _upper(self.states)),
            Filter("Rndrng_Prvdr_City", Op.CONTAINS, _upper_one(self.city)),
            Filter("Rndrng_Prvdr_Zip5", Op.EQ, self.zip_code),
            Filter("Rndrng_Prvdr_Type", Op.CONTAINS, self.provider_type),
            Filter("Rndrng_Prvdr_Type", Op.IN, self.provider_types),
            Filter("Tot_Benes", Op.GTE, self.min_beneficiaries),
            Filter("Tot_Srvcs", Op.GTE, self.min_services),
            Filter("Tot_Mdcr_Pymt_Amt", Op.GTE, self.min_total_payment),
            Filter("Bene_Avg_Age", Op.GTE, self.min_avg_age),
            Filter("Bene_Avg_Age", Op.LTE, self.max_avg_age),
            Filter("Bene_Avg_Risk_Scre", Op.GTE, self.min_risk_score),
            Filter("Bene_Avg_Risk_Scre", Op.LTE, self.max_risk_score),
            Filter(cc["diabetes"], Op.GTE, self.min_diabetes_pct),
            Filter(cc["heart_disease"], Op.GTE, self.min_heart_disease_pct),
            Filter(cc["ckd"], Op.GTE, self.min_ckd_pct),
            Filter(cc["ckd"], Op.LTE, self.max_ckd_pct),
            Filter(cc["diabetes"], Op.LTE, self.max_diabetes_pct),
            Filter(cc["depression"], Op.GTE, self.min_depression_pct),
            Filter(cc["dementia"], Op.GTE, self.min_dementia_pct),
        ]
        for condition, threshold in sorted(self.comorbidity_minimums.items()):
            column = cc.get(condition)
            if column is None:
                logger.warning("Unknown chronic condition %r, comorbidity filter ignored", condition)
                continue
            filters.append(Filter(column, Op.GTE, threshold))
        return [f for f in filters if not f.is_empty()]


class ServiceSearchParams(SearchParams):
    npi: Optional[str] = None
    provider_name: Optional[str] = None
    provider_first_name: Optional[str] = None
    entity_type: Optional[str] = None

    state: Optional[str] = None
    states: Optional[List[str]] = None
    city: Optional[str] = None

    provider_type: Optional[str] = None
    provider_types: Optional[List[str]] = None

    hcpcs_code: Optional[str] = None
    hcpcs_codes: Optional[List[str]] = None
    hcpcs_description: Optional[str] = None
    is_drug: Optional[bool] = None
    place_of_service: Optional[str] = None

    min_beneficiaries: Optional[float] = None
    min_services: Optional[float] = None

    def to_filters(self) -> List[Filter]:
        filters = [
            Filter("Rndrng_NPI", Op.EQ, self.npi),
            Filter("Rndrng_Prvdr_Last_Org_Name", Op.CONTAINS, _upper_one(self.provider_name)),
            Filter("Rndrng_Prvdr_First_Name", Op.CONTAINS, _upper_one(self.provider_first_name)),
            Filter("Rndrng_Prvdr_Ent_Cd", Op.EQ, self.entity_type),
            Filter("Rndrng_Prvdr_State_Abrvtn", Op.EQ, _upper_one(self.state)),
            Filter("Rndrng_Prvdr_State_Abrvtn", Op.IN, _upper(self.states)),
            Filter("Rndrng_Prvdr_City", Op.CONTAINS, _upper_one(self.city)),
            Filter("Rndrng_Prvdr_Type", Op.CONTAINS, self.provider_type),
            Filter("Rndrng_Prvdr_Type", Op.IN, self.provider_types),
            Filter("HCPCS_Cd", Op.EQ, _upper_one(self.hcpcs_code)),
            Filter("HCPCS_Cd", Op.IN, _upper(self.hcpcs_codes)),
            Filter("HCPCS_Desc", Op.CONTAINS, self.hcpcs_description.lower() if self.hcpcs_description else None),
            Filter("HCPCS_Drug_Ind", Op.EQ, None if self.is_drug is None else ("Y" if self.is_drug else "N")),
            Filter("Place_Of_Srvc", Op.EQ, self.place_of_service),
            Filter("Tot_Benes", Op.GTE, self.min_beneficiaries),
            Filter("Tot_Srvcs", Op.GTE, self.min_services),
        ]
        return [f for f in filters if not f.is_empty()]


class GeographySearchParams(SearchParams):
    geography_level: Optional[str] = None
    state: Optional[str] = None
    states: Optional[List[str]] = None
    hcpcs_code: Optional[str] = None
    hcpcs_codes: Optional[List[str]] = None
    min_providers: Optional[float] = None
    min_beneficiaries: Optional[float] = None

    def to_filters(self) -> List[Filter]:
        filters = [
            Filter("Rndrng_Prvdr_Geo_Lvl", Op.EQ, self.geography_level),
            Filter("Rndrng_Prvdr_Geo_Desc", Op.EQ, _upper_one(self.state)),
            Filter("Rndrng_Prvdr_Geo_Desc", Op.IN, _upper(self.states)),
            Filter("HCPCS_Cd", Op.EQ, _upper_one(self.hcpcs_code)),
            Filter("HCPCS_Cd", Op.IN, _upper(self.hcpcs_codes)),
            Filter("Tot_Rndrng_Prvdrs", Op.GTE, self.min_providers),
            Filter("Tot_Benes", Op.GTE, self.min_beneficiaries),
        ]
        return [f for f in filters if not f.is_empty()]


class PrescriberSearchParams(SearchParams):
    sort_by: Optional[str] = "Tot_Clms"
    npi: Optional[str] = None
    state: Optional[str] = None
    specialty: Optional[str] = None
    min_claims: int = 11
    max_total_results: int = Field(default=100, ge=1)

    def to_filters(self) -> List[Filter]:
        filters = [
            Filter("Prscrbr_NPI", Op.EQ, self.npi),
            Filter("Prscrbr_State_Abrvtn", Op.EQ, _upper_one(self.state)),
            Filter("Prscrbr_Type", Op.EQ, self.specialty),
        ]
        return [f for f in filters if not f.is_empty()]
