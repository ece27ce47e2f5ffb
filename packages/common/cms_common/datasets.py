"""Dataset registry and field dictionary for the CMS Medicare public-use files."""

from typing import Dict, List, Optional

from cms_common.config import get_settings
from cms_common.exceptions import UnknownDataset

SCHEMA_VERSION = "2.0.0"

# Dataset UUIDs by year, from catalog.data.gov
DATASET_UUIDS: Dict[str, Dict[str, str]] = {
    # Part B, one row per provider (demographics, chronic conditions)
    "BY_PROVIDER": {
        "2023": "8889d81e-2ee7-448f-8713-f071038289b5",
        "2022": "21555c17-ec1b-4e74-b2c6-925c6cbb3147",
        "2021": "44e0a489-666c-4ea4-a1a2-360b6cdc19db",
    },
    # Part B, one row per provider and HCPCS code
    "BY_PROVIDER_AND_SERVICE": {
        "2023": "92396110-2aed-4d63-a6a2-5d6207d46a29",
        "2022": "e650987d-01b7-4f09-b75e-b0b075afbf98",
        "2021": "31dc2c47-f297-4948-bfb4-075e1bec3a02",
    },
    # Part D prescribers, one row per provider
    "PART_D_BY_PROVIDER": {
        "2023": "14d8e8a9-7e9b-4370-a044-bf97c46b4b44",
        "2022": "bed99012-c527-4d9d-92ea-67ec2510abea",
        "2021": "3f7ab9ce-6fb6-4e6b-9af3-b681f2d3a95e",
    },
    # Geography aggregate, currently served from the provider dataset
    "BY_GEOGRAPHY_AND_SERVICE": {
        "2023": "8889d81e-2ee7-448f-8713-f071038289b5",
        "2022": "21555c17-ec1b-4e74-b2c6-925c6cbb3147",
        "2021": "44e0a489-666c-4ea4-a1a2-360b6cdc19db",
    },
}

DATA_SOURCES: Dict[str, dict] = {
    "PART_B_PROVIDER": {
        "name": "Medicare Physician & Other Practitioners - By Provider",
        "publisher": "CMS",
        "url": "https://data.cms.gov/provider-summary-by-type-of-service/medicare-physician-other-practitioners",
        "limitations": [
            "Medicare Fee-for-Service only (excludes Medicare Advantage)",
            "Counts <11 suppressed for privacy",
            "Does not represent physician's entire practice",
            "Annual data with ~18 month lag",
        ],
        "citation": "CMS Medicare Physician & Other Practitioners PUF {year}",
    },
    "PART_B_SERVICE": {
        "name": "Medicare Physician & Other Practitioners - By Provider and Service",
        "publisher": "CMS",
        "url": "https://data.cms.gov/provider-summary-by-type-of-service/medicare-physician-other-practitioners",
        "limitations": [
            "Medicare Fee-for-Service only",
            "No diagnosis (ICD-10) codes - procedure only",
            "Services with <11 beneficiaries excluded",
        ],
        "citation": "CMS Medicare Physician & Other Practitioners by Service PUF {year}",
    },
    "PART_D_PRESCRIBER": {
        "name": "Medicare Part D Prescribers - By Provider",
        "publisher": "CMS",
        "url": "https://data.cms.gov/provider-summary-by-type-of-service/medicare-part-d-prescribers",
        "limitations": [
            "Part D enrolled beneficiaries only",
            "Excludes hospital/infusion drugs (Part B drugs)",
            "No indication for drug use",
            "Claims <11 suppressed",
        ],
        "citation": "CMS Medicare Part D Prescriber PUF {year}",
    },
}

# Chronic condition prevalence columns in the BY_PROVIDER dataset
CHRONIC_CONDITION_FIELDS: Dict[str, str] = {
    "diabetes": "Bene_CC_PH_Diabetes_V2_Pct",
    "hypertension": "Bene_CC_PH_Hypertension_V2_Pct",
    "heart_disease": "Bene_CC_PH_IschemicHeart_V2_Pct",
    "heart_failure": "Bene_CC_PH_HF_NonIHD_V2_Pct",
    "ckd": "Bene_CC_PH_CKD_V2_Pct",
    "copd": "Bene_CC_PH_COPD_V2_Pct",
    "cancer": "Bene_CC_PH_Cancer6_V2_Pct",
    "depression": "Bene_CC_BH_Depress_V1_Pct",
    "dementia": "Bene_CC_BH_Alz_NonAlzdem_V2_Pct",
    "anxiety": "Bene_CC_BH_Anxiety_V1_Pct",
    "stroke": "Bene_CC_PH_Stroke_V2_Pct",
    "atrial_fib": "Bene_CC_PH_Afib_V2_Pct",
    "osteoporosis": "Bene_CC_PH_Osteoporosis_V2_Pct",
    "arthritis": "Bene_CC_PH_Arthritis_V2_Pct",
    "asthma": "Bene_CC_PH_Asthma_V2_Pct",
}


def get_available_years() -> List[str]:
    return ["2023", "2022", "2021"]


def get_base_url(dataset: str, year: str = "2023", api_root: Optional[str] = None) -> str:
    """
    Resolve the data endpoint for a dataset and data year.

    Raises:
        UnknownDataset: if no UUID is registered for the pair
    """
    uuid = DATASET_UUIDS.get(dataset, {}).get(str(year))
    if not uuid:
        raise UnknownDataset(dataset, str(year))
    root = (api_root or get_settings().base_url).rstrip("/")
    return f"{root}/{uuid}/data"


def get_citation(source: str, year: str) -> str:
    return DATA_SOURCES[source]["citation"].format(year=year)
