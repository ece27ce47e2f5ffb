"""
Map raw dataset rows onto the canonical record models.

Column names come back either as ``Rndrng_NPI`` or ``rndrng_npi`` depending
on the dataset release, so every read goes through ``first_present`` with
both spellings.
"""

import math
from typing import Any, Dict, Iterable, Optional

from cms_common.datasets import CHRONIC_CONDITION_FIELDS
from cms_common.models import (
    BeneficiaryDemographics,
    GeographyRecord,
    PrescriberRecord,
    ProviderRecord,
    ServiceRecord,
    UtilizationTotals,
)

RawRow = Dict[str, Any]

PLACE_OF_SERVICE = {"F": "Facility", "O": "Office"}
ENTITY_TYPES = {"I": "Individual", "O": "Organization"}


def _candidates(name: str) -> tuple:
    return (name, name.lower())


def first_present(row: RawRow, keys: Iterable[str], default: Any = None) -> Any:
    """Return the value of the first key present with a non-empty value."""
    for key in keys:
        value = row.get(key)
        if value is not None and value != "":
            return value
    return default


def field(row: RawRow, *names: str) -> Any:
    """Read a column under each of ``names``, in both casings."""
    keys = [key for name in names for key in _candidates(name)]
    return first_present(row, keys)


def text(row: RawRow, *names: str) -> Optional[str]:
    value = field(row, *names)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def to_float(value: Any) -> Optional[float]:
    """Parse a numeric cell; None when absent, unparseable or not finite (NaN, inf)."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            number = float(str(value).replace(",", "").strip())
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def to_int(value: Any) -> Optional[int]:
    number = to_float(value)
    return int(number) if number is not None else None


def format_provider_name(last_name: Optional[str], first_name: Optional[str], middle_initial: Optional[str]) -> str:
    if not last_name:
        return "Unknown"
    if not first_name:
        return last_name
    mi = f" {middle_initial}." if middle_initial else ""
    return f"{last_name}, {first_name}{mi}"


def _flag(row: RawRow, name: str) -> bool:
    return (text(row, name) or "").upper() == "Y"


def _place_of_service(row: RawRow) -> Optional[str]:
    code = (text(row, "Place_Of_Srvc") or "").upper()
    return PLACE_OF_SERVICE.get(code)


def _totals(row: RawRow, prefix: str = "") -> UtilizationTotals:
    return UtilizationTotals(
        hcpcs_codes=to_int(field(row, f"{prefix}Tot_HCPCS_Cds")),
        beneficiaries=to_float(field(row, f"{prefix}Tot_Benes")),
        services=to_float(field(row, f"{prefix}Tot_Srvcs")),
        charges=to_float(field(row, f"{prefix}Tot_Sbmtd_Chrg", f"{prefix}Sbmtd_Chrg")),
        payment=to_float(field(row, f"{prefix}Tot_Mdcr_Pymt_Amt", f"{prefix}Mdcr_Pymt_Amt")),
    )


def transform_provider_record(row: RawRow) -> ProviderRecord:
    last_name = text(row, "Rndrng_Prvdr_Last_Org_Name")
    first_name = text(row, "Rndrng_Prvdr_First_Name")
    middle_initial = text(row, "Rndrng_Prvdr_MI")
    entity_code = (text(row, "Rndrng_Prvdr_Ent_Cd") or "").upper()

    return ProviderRecord(
        npi=text(row, "Rndrng_NPI"),
        name=format_provider_name(last_name, first_name, middle_initial),
        last_name=last_name,
        first_name=first_name,
        middle_initial=middle_initial,
        credentials=text(row, "Rndrng_Prvdr_Crdntls"),
        gender=text(row, "Rndrng_Prvdr_Gndr"),
        entity_type=ENTITY_TYPES.get(entity_code),
        specialty=text(row, "Rndrng_Prvdr_Type"),
        street=text(row, "Rndrng_Prvdr_St1"),
        street2=text(row, "Rndrng_Prvdr_St2"),
        city=text(row, "Rndrng_Prvdr_City"),
        state=text(row, "Rndrng_Prvdr_State_Abrvtn"),
        zip=text(row, "Rndrng_Prvdr_Zip5"),
        country=text(row, "Rndrng_Prvdr_Cntry") or "US",
        ruca_description=text(row, "Rndrng_Prvdr_RUCA_Desc"),
        medicare_participating=_flag(row, "Rndrng_Prvdr_Mdcr_Prtcptg_Ind"),
        totals=_totals(row),
        drug_totals=_totals(row, "Drug_"),
        medical_totals=_totals(row, "Med_"),
        demographics=BeneficiaryDemographics(
            avg_age=to_float(field(row, "Bene_Avg_Age")),
            age_under_65=to_int(field(row, "Bene_Age_LT_65_Cnt")),
            age_65_to_74=to_int(field(row, "Bene_Age_65_74_Cnt")),
            age_75_to_84=to_int(field(row, "Bene_Age_75_84_Cnt")),
            age_over_84=to_int(field(row, "Bene_Age_GT_84_Cnt")),
            female=to_int(field(row, "Bene_Feml_Cnt")),
            male=to_int(field(row, "Bene_Male_Cnt")),
            dual_eligible=to_int(field(row, "Bene_Dual_Cnt")),
            non_dual_eligible=to_int(field(row, "Bene_Ndual_Cnt")),
        ),
        risk_score=to_float(field(row, "Bene_Avg_Risk_Scre")),
        chronic_conditions={
            condition: to_float(field(row, column))
            for condition, column in CHRONIC_CONDITION_FIELDS.items()
        },
    )


def transform_service_record(row: RawRow) -> ServiceRecord:
    last_name = text(row, "Rndrng_Prvdr_Last_Org_Name")
    first_name = text(row, "Rndrng_Prvdr_First_Name")
    hcpcs_code = text(row, "HCPCS_Cd")

    return ServiceRecord(
        npi=text(row, "Rndrng_NPI"),
        name=format_provider_name(last_name, first_name, text(row, "Rndrng_Prvdr_MI")),
        last_name=last_name,
        first_name=first_name,
        credentials=text(row, "Rndrng_Prvdr_Crdntls"),
        specialty=text(row, "Rndrng_Prvdr_Type"),
        city=text(row, "Rndrng_Prvdr_City"),
        state=text(row, "Rndrng_Prvdr_State_Abrvtn"),
        zip=text(row, "Rndrng_Prvdr_Zip5"),
        hcpcs_code=hcpcs_code.upper() if hcpcs_code else None,
        hcpcs_description=text(row, "HCPCS_Desc"),
        is_drug=_flag(row, "HCPCS_Drug_Ind"),
        place_of_service=_place_of_service(row),
        # Older releases use Bene_Cnt / Srvc_Cnt
        beneficiaries=to_float(field(row, "Tot_Benes", "Bene_Cnt")),
        services=to_float(field(row, "Tot_Srvcs", "Srvc_Cnt")),
        avg_charge=to_float(field(row, "Avg_Sbmtd_Chrg")),
        avg_allowed=to_float(field(row, "Avg_Mdcr_Alowd_Amt")),
        avg_payment=to_float(field(row, "Avg_Mdcr_Pymt_Amt")),
    )


def transform_geography_record(row: RawRow) -> GeographyRecord:
    hcpcs_code = text(row, "HCPCS_Cd")
    return GeographyRecord(
        geography_level=text(row, "Rndrng_Prvdr_Geo_Lvl"),
        geography=text(row, "Rndrng_Prvdr_Geo_Desc"),
        geography_code=text(row, "Rndrng_Prvdr_Geo_Cd"),
        hcpcs_code=hcpcs_code.upper() if hcpcs_code else None,
        hcpcs_description=text(row, "HCPCS_Desc"),
        is_drug=_flag(row, "HCPCS_Drug_Ind"),
        place_of_service=_place_of_service(row),
        providers=to_float(field(row, "Tot_Rndrng_Prvdrs")),
        beneficiaries=to_float(field(row, "Tot_Benes")),
        services=to_float(field(row, "Tot_Srvcs")),
        avg_charge=to_float(field(row, "Avg_Sbmtd_Chrg")),
        avg_allowed=to_float(field(row, "Avg_Mdcr_Alowd_Amt")),
        avg_payment=to_float(field(row, "Avg_Mdcr_Pymt_Amt")),
    )


def transform_prescriber_record(row: RawRow) -> PrescriberRecord:
    first_name = text(row, "Prscrbr_First_Name")
    last_name = text(row, "Prscrbr_Last_Org_Name", "Prscrbr_Last_Name")

    return PrescriberRecord(
        npi=text(row, "Prscrbr_NPI"),
        name=" ".join(part for part in (first_name, last_name) if part),
        first_name=first_name,
        last_name=last_name,
        credentials=text(row, "Prscrbr_Crdntls"),
        specialty=text(row, "Prscrbr_Type"),
        city=text(row, "Prscrbr_City"),
        state=text(row, "Prscrbr_State_Abrvtn"),
        zip=text(row, "Prscrbr_Zip5"),
        total_claims=to_int(field(row, "Tot_Clms")),
        total_beneficiaries=to_int(field(row, "Tot_Benes")),
        total_drug_cost=to_float(field(row, "Tot_Drug_Cst")),
        total_30_day_fills=to_float(field(row, "Tot_30day_Fills")),
        total_day_supply=to_int(field(row, "Tot_Day_Suply")),
        brand_claims=to_int(field(row, "Brnd_Tot_Clms")),
        generic_claims=to_int(field(row, "Gnrc_Tot_Clms")),
        opioid_claims=to_int(field(row, "Opioid_Tot_Clms")),
        opioid_beneficiaries=to_int(field(row, "Opioid_Tot_Benes")),
        long_acting_opioid_claims=to_int(field(row, "LA_Opioid_Tot_Clms", "Opioid_LA_Tot_Clms")),
        opioid_prescribing_rate=to_float(field(row, "Opioid_Prscrbr_Rate")),
        antibiotic_claims=to_int(field(row, "Antbtc_Tot_Clms")),
        antipsychotic_elderly_beneficiaries=to_int(field(row, "Antpsyct_GE65_Tot_Benes")),
        avg_age=to_float(field(row, "Bene_Avg_Age")),
        avg_risk_score=to_float(field(row, "Bene_Avg_Risk_Scre")),
    )
