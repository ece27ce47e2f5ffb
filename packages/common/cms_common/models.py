"""Shared Pydantic models."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UtilizationTotals(BaseModel):
    """Beneficiary, service and payment totals for one provider."""

    model_config = ConfigDict(frozen=True)

    hcpcs_codes: Optional[int] = None
    beneficiaries: Optional[float] = None
    services: Optional[float] = None
    charges: Optional[float] = None
    payment: Optional[float] = None


class BeneficiaryDemographics(BaseModel):
    model_config = ConfigDict(frozen=True)

    avg_age: Optional[float] = None
    age_under_65: Optional[int] = None
    age_65_to_74: Optional[int] = None
    age_75_to_84: Optional[int] = None
    age_over_84: Optional[int] = None
    female: Optional[int] = None
    male: Optional[int] = None
    dual_eligible: Optional[int] = None
    non_dual_eligible: Optional[int] = None


class ProviderRecord(BaseModel):
    """
    A rendering provider from the Part B by-provider dataset.

    Numeric fields are ``None`` when the source suppressed or omitted them,
    which keeps suppressed counts distinct from a real zero.
    """

    model_config = ConfigDict(frozen=True)

    npi: Optional[str] = Field(None, description="10-digit National Provider Identifier")
    name: str = "Unknown"
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    middle_initial: Optional[str] = None
    credentials: Optional[str] = None
    gender: Optional[str] = None
    entity_type: Optional[str] = None
    specialty: Optional[str] = None

    street: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    ruca_description: Optional[str] = None

    medicare_participating: bool = False

    totals: UtilizationTotals = Field(default_factory=UtilizationTotals)
    drug_totals: UtilizationTotals = Field(default_factory=UtilizationTotals)
    medical_totals: UtilizationTotals = Field(default_factory=UtilizationTotals)
    demographics: BeneficiaryDemographics = Field(default_factory=BeneficiaryDemographics)

    risk_score: Optional[float] = None
    chronic_conditions: Dict[str, Optional[float]] = Field(default_factory=dict)

    @property
    def total_beneficiaries(self) -> Optional[float]:
        return self.totals.beneficiaries


class ServiceRecord(BaseModel):
    """One (provider, HCPCS code) row from the by-provider-and-service dataset."""

    model_config = ConfigDict(frozen=True)

    npi: Optional[str] = None
    name: str = "Unknown"
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    credentials: Optional[str] = None
    specialty: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None

    hcpcs_code: Optional[str] = None
    hcpcs_description: Optional[str] = None
    is_drug: bool = False
    place_of_service: Optional[str] = None

    beneficiaries: Optional[float] = None
    services: Optional[float] = None
    avg_charge: Optional[float] = None
    avg_allowed: Optional[float] = None
    avg_payment: Optional[float] = None


class GeographyRecord(BaseModel):
    """Service aggregate keyed by geography level, geography and HCPCS code."""

    model_config = ConfigDict(frozen=True)

    geography_level: Optional[str] = None
    geography: Optional[str] = None
    geography_code: Optional[str] = None
    hcpcs_code: Optional[str] = None
    hcpcs_description: Optional[str] = None
    is_drug: bool = False
    place_of_service: Optional[str] = None

    providers: Optional[float] = None
    beneficiaries: Optional[float] = None
    services: Optional[float] = None
    avg_charge: Optional[float] = None
    avg_allowed: Optional[float] = None
    avg_payment: Optional[float] = None


class PrescriberRecord(BaseModel):
    """A Part D prescriber summary row."""

    model_config = ConfigDict(frozen=True)

    npi: Optional[str] = None
    name: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    credentials: Optional[str] = None
    specialty: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None

    total_claims: Optional[int] = None
    total_beneficiaries: Optional[int] = None
    total_drug_cost: Optional[float] = None
    total_30_day_fills: Optional[float] = None
    total_day_supply: Optional[int] = None
    brand_claims: Optional[int] = None
    generic_claims: Optional[int] = None

    opioid_claims: Optional[int] = None
    opioid_beneficiaries: Optional[int] = None
    long_acting_opioid_claims: Optional[int] = None
    opioid_prescribing_rate: Optional[float] = None
    antibiotic_claims: Optional[int] = None
    antipsychotic_elderly_beneficiaries: Optional[int] = None

    avg_age: Optional[float] = None
    avg_risk_score: Optional[float] = None

    @property
    def brand_pct(self) -> Optional[float]:
        if not self.total_claims or self.brand_claims is None:
            return None
        return self.brand_claims / self.total_claims * 100


class IndicationCodeSet(BaseModel):
    """A clinical indication expressed as billing codes and target specialties."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    short_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    icd10: List[str] = Field(default_factory=list)
    cpt: List[str] = Field(default_factory=list)
    hcpcs: List[str] = Field(default_factory=list)
    part_d_drugs: List[str] = Field(default_factory=list)
    drug_classes: List[str] = Field(default_factory=list)
    specialties: List[str] = Field(default_factory=list)
    comorbidity_filters: Dict[str, float] = Field(
        default_factory=dict,
        description="Minimum chronic condition prevalence (percent) keyed by condition name",
    )
    notes: Optional[str] = None

    @property
    def relevant_codes(self) -> List[str]:
        """CPT and HCPCS codes, de-duplicated in catalog order."""
        return list(dict.fromkeys([*self.cpt, *self.hcpcs]))


class CodeMapping(BaseModel):
    """Result handed over by the code-mapping agent for a free-text query."""

    label: str = Field("Custom query", description="Human readable name for the mapped query")
    codes: List[str] = Field(default_factory=list)
    specialties: List[str] = Field(default_factory=list)
    comorbidity_filters: Dict[str, float] = Field(default_factory=dict)

    def to_code_set(self) -> IndicationCodeSet:
        return IndicationCodeSet(
            id="custom",
            name=self.label,
            hcpcs=[code.upper() for code in self.codes],
            specialties=self.specialties,
            comorbidity_filters=self.comorbidity_filters,
        )


class EnrichedPhysicianRecord(ProviderRecord):
    """A provider with indication-specific volume layered on top."""

    indication_id: Optional[str] = None
    indication_name: Optional[str] = None
    indication_services: float = 0
    indication_beneficiaries: float = 0
    relevant_codes: List[str] = Field(default_factory=list)
    relevance_score: float = 0
