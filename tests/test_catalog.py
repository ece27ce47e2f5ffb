"""
Tests for the shared catalog: indications, dataset registry and settings
"""

import pytest
from pydantic import ValidationError

from cms_common.config import CMSApiSettings
from cms_common.datasets import (
    CHRONIC_CONDITION_FIELDS,
    DATASET_UUIDS,
    get_available_years,
    get_base_url,
    get_citation,
)
from cms_common.exceptions import CMSDataError, UnknownDataset
from cms_common.indications import (
    INDICATION_CODE_SETS,
    get_all_indications,
    get_indication_by_id,
    get_indications_by_category,
)
from cms_common.models import CodeMapping, IndicationCodeSet


class TestIndications:
    def test_catalog_ids(self):
        assert set(INDICATION_CODE_SETS) == {
            "igan",
            "pmn",
            "ckd",
            "lupus_nephritis",
            "fsgs",
            "diabetic_nephropathy",
        }

    def test_lookup_is_case_insensitive(self):
        assert get_indication_by_id("IgAN").id == "igan"

    def test_unknown_id(self):
        assert get_indication_by_id("not_a_disease") is None

    def test_by_category(self):
        nephrology = get_indications_by_category("Nephrology")
        assert {ind.id for ind in nephrology} <= set(INDICATION_CODE_SETS)
        assert get_indications_by_category("Dermatology") == []

    def test_comorbidity_filters_use_known_conditions(self):
        for ind in get_all_indications():
            assert set(ind.comorbidity_filters) <= set(CHRONIC_CONDITION_FIELDS), ind.id

    def test_every_indication_has_codes_and_specialties(self):
        for ind in get_all_indications():
            assert ind.relevant_codes, ind.id
            assert ind.specialties, ind.id

    def test_relevant_codes_dedupes_in_order(self):
        ind = IndicationCodeSet(id="x", name="X", cpt=["50200", "36147"], hcpcs=["J9312", "50200"])
        assert ind.relevant_codes == ["50200", "36147", "J9312"]

    def test_code_mapping_to_code_set(self):
        code_set = CodeMapping(codes=["j9312", "50200"], specialties=["Rheumatology"]).to_code_set()

        assert code_set.id == "custom"
        assert code_set.name == "Custom query"
        assert code_set.relevant_codes == ["J9312", "50200"]
        assert code_set.specialties == ["Rheumatology"]


class TestDatasets:
    def test_base_url(self):
        url = get_base_url("BY_PROVIDER", "2023", api_root="https://data.cms.gov/data-api/v1/dataset/")
        assert url == f"https://data.cms.gov/data-api/v1/dataset/{DATASET_UUIDS['BY_PROVIDER']['2023']}/data"

    @pytest.mark.parametrize("dataset, year", [("BY_PROVIDER", "1999"), ("NO_SUCH_DATASET", "2023")])
    def test_unknown_dataset(self, dataset, year):
        with pytest.raises(UnknownDataset) as exc_info:
            get_base_url(dataset, year, api_root="https://x")
        assert isinstance(exc_info.value, CMSDataError)
        assert exc_info.value.dataset == dataset

    def test_every_dataset_covers_available_years(self):
        for dataset, years in DATASET_UUIDS.items():
            assert set(get_available_years()) <= set(years), dataset

    def test_citation(self):
        assert get_citation("PART_D_PRESCRIBER", "2022") == "CMS Medicare Part D Prescriber PUF 2022"


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("CMS_API_BASE_URL", "CMS_API_DEFAULT_YEAR", "CMS_API_LOOKUP_CONCURRENCY"):
            monkeypatch.delenv(name, raising=False)

        settings = CMSApiSettings()

        assert settings.base_url == "https://data.cms.gov/data-api/v1/dataset"
        assert settings.default_year == "2023"
        assert settings.cache_ttl_seconds == 1800
        assert settings.lookup_concurrency == 5

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CMS_API_DEFAULT_YEAR", "2022")
        monkeypatch.setenv("CMS_API_LOOKUP_TIMEOUT", "2.5")

        settings = CMSApiSettings()

        assert settings.default_year == "2022"
        assert settings.lookup_timeout == 2.5

    def test_concurrency_bounded(self):
        with pytest.raises(ValidationError):
            CMSApiSettings(lookup_concurrency=11)
