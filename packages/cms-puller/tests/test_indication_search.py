"""Tests for indication-based physician ranking"""

import asyncio

import pytest

from cms_common.datasets import DATASET_UUIDS
from cms_common.exceptions import InvalidIndication
from cms_common.models import CodeMapping, EnrichedPhysicianRecord, ServiceRecord
from cms_puller.indication_search import (
    LIMITATIONS,
    IndicationEnricher,
    rank_physicians,
    relevance_score,
)
from cms_puller.responses import ServiceSearchResponse
from cms_puller.search_params import ProviderSearchParams
from conftest import FakeResponse, provider_row, query_params, service_row

PROVIDER_UUID = DATASET_UUIDS["BY_PROVIDER"]["2023"]
SERVICE_UUID = DATASET_UUIDS["BY_PROVIDER_AND_SERVICE"]["2023"]


def npi(i: int) -> str:
    return str(1000000000 + i)


def router(providers, services=None):
    """Answer provider searches with ``providers`` and service lookups per NPI."""
    services = services or {}

    def handler(url):
        if SERVICE_UUID in url:
            return services.get(query_params(url)["filter[0][value]"], [])
        return providers

    return handler


def service_calls(session):
    return [url for url in session.calls if SERVICE_UUID in url]


def url_filters(url):
    """Decode the positional filter params of a URL into (path, operator, value) tuples."""
    params = query_params(url)
    found = []
    i = 0
    while f"filter[{i}][path]" in params:
        value = params.get(f"filter[{i}][value]")
        if value is None:
            value = []
            j = 0
            while f"filter[{i}][value][{j}]" in params:
                value.append(params[f"filter[{i}][value][{j}]"])
                j += 1
        found.append((params[f"filter[{i}][path]"], params[f"filter[{i}][operator]"], value))
        i += 1
    return found


class TestRelevanceScore:
    def test_weights(self):
        assert relevance_score(6, 10, 50) == 75
        assert relevance_score(0, 0, 100) == 10

    def test_missing_total_counts_as_zero(self):
        assert relevance_score(1, 2, None) == 12

    def test_rank_is_stable_for_ties(self):
        records = [EnrichedPhysicianRecord(npi=npi(i), relevance_score=5) for i in range(4)]
        assert [r.npi for r in rank_physicians(records)] == [npi(i) for i in range(4)]


class TestSearchByIndication:
    """Test suite for CMSDataService.search_by_indication"""

    @pytest.mark.asyncio
    async def test_unknown_indication_makes_no_requests(self, make_service):
        service, session = make_service(router([]))

        with pytest.raises(InvalidIndication) as exc_info:
            await service.search_by_indication("not_a_disease")

        assert exc_info.value.indication_id == "not_a_disease"
        assert session.calls == []

    @pytest.mark.asyncio
    async def test_indication_id_is_case_insensitive(self, make_service):
        service, session = make_service(router([]))
        result = await service.search_by_indication("IGAN")
        assert result.indication.id == "igan"

    @pytest.mark.asyncio
    async def test_specialties_and_comorbidities_reach_provider_query(self, make_service):
        service, session = make_service(router([]))

        await service.search_by_indication("igan", ProviderSearchParams(state="ca"))

        filters = url_filters(session.calls[0])
        assert PROVIDER_UUID in session.calls[0]
        assert ("Rndrng_Prvdr_State_Abrvtn", "=", "CA") in filters
        assert ("Rndrng_Prvdr_Type", "IN", ["Nephrology", "Internal Medicine"]) in filters
        assert ("Bene_CC_PH_CKD_V2_Pct", ">=", "10") in filters

    @pytest.mark.asyncio
    async def test_service_lookups_capped_at_ten(self, make_service):
        """200 providers still trigger exactly 10 service lookups"""
        providers = [provider_row(npi(i)) for i in range(200)]
        service, session = make_service(router(providers))

        result = await service.search_by_indication(
            "igan", ProviderSearchParams(page_size=200, max_total_results=500)
        )

        calls = service_calls(session)
        assert len(calls) == 10
        assert {query_params(u)["filter[0][value]"] for u in calls} == {npi(i) for i in range(10)}
        assert result.total_returned == 200
        assert len(result.physicians) == 200
        assert any("first 10 providers" in note for note in result.limitations)

    @pytest.mark.asyncio
    async def test_lookup_queries_indication_codes(self, make_service):
        service, session = make_service(router([provider_row(npi(1))]))

        result = await service.search_by_indication("igan")

        (call,) = service_calls(session)
        codes = dict((path, value) for path, op, value in url_filters(call))["HCPCS_Cd"]
        assert codes == result.indication.relevant_codes
        assert "J9312" in codes and "50200" in codes

    @pytest.mark.asyncio
    async def test_partial_lookup_failure(self, make_service):
        """Three failing lookups out of ten degrade to zero volume without failing the search"""
        npis = [npi(i) for i in range(10)]
        services = {n: [service_row(n, "50200", services="5", benes="3")] for n in npis[3:]}
        services.update({n: FakeResponse(status=500, body="boom") for n in npis[:3]})
        service, session = make_service(router([provider_row(n) for n in npis], services))

        result = await service.search_by_indication("igan")

        assert result.total_returned == 10
        assert sorted(result.failed_lookups) == npis[:3]
        volumes = {p.npi: p.indication_services for p in result.physicians}
        assert [volumes[n] for n in npis[3:]] == [5] * 7
        assert [volumes[n] for n in npis[:3]] == [0] * 3
        assert any("could not be retrieved for 3" in note for note in result.limitations)

    @pytest.mark.asyncio
    async def test_ranking(self, make_service):
        """Indication volume outweighs overall beneficiary count"""
        a, b = npi(1), npi(2)
        providers = [provider_row(a, benes="100"), provider_row(b, benes="50")]
        services = {b: [service_row(b, "50200", services="6", benes="10")]}
        service, session = make_service(router(providers, services))

        result = await service.search_by_indication("igan")

        assert [p.npi for p in result.physicians] == [b, a]
        assert result.physicians[0].relevance_score == pytest.approx(75)
        assert result.physicians[1].relevance_score == pytest.approx(10)
        assert result.physicians[0].indication_beneficiaries == 10
        assert result.physicians[0].relevant_codes == ["50200"]
        assert result.physicians[0].indication_id == "igan"
        assert result.physicians[0].indication_name == "IgA Nephropathy"

    @pytest.mark.asyncio
    async def test_non_finite_cell_still_ranks(self, make_service):
        """A NaN beneficiary count scores as zero instead of breaking the sort"""
        providers = [
            provider_row(npi(1), benes="10", Tot_HCPCS_Cds="NaN"),
            provider_row(npi(2), benes="NaN"),
            provider_row(npi(3), benes="50"),
        ]
        service, session = make_service(router(providers))

        result = await service.search_by_indication("igan")

        assert [p.npi for p in result.physicians] == [npi(3), npi(1), npi(2)]
        assert [p.relevance_score for p in result.physicians] == [5, 1, 0]

    @pytest.mark.asyncio
    async def test_ties_keep_provider_order(self, make_service):
        providers = [provider_row(npi(i), benes="100") for i in (3, 1, 2)]
        service, session = make_service(router(providers))

        result = await service.search_by_indication("igan")

        assert [p.npi for p in result.physicians] == [npi(3), npi(1), npi(2)]

    @pytest.mark.asyncio
    async def test_duplicate_npis_looked_up_once(self, make_service):
        providers = [provider_row(npi(1)), provider_row(npi(1)), provider_row(npi(2))]
        service, session = make_service(router(providers))

        result = await service.search_by_indication("igan")

        assert len(service_calls(session)) == 2
        assert result.total_returned == 3

    @pytest.mark.asyncio
    async def test_response_metadata(self, make_service):
        service, session = make_service(router([provider_row(npi(1))]))

        result = await service.search_by_indication("ckd")

        assert result.data_year == "2023"
        assert result.data_source == "CMS Medicare Physician & Other Practitioners PUF 2023"
        assert result.limitations == LIMITATIONS
        assert result.failed_lookups == []

    @pytest.mark.asyncio
    async def test_no_providers_means_no_lookups(self, make_service):
        service, session = make_service(router([]))

        result = await service.search_by_indication("igan")

        assert result.physicians == []
        assert service_calls(session) == []


class TestSearchByCodeMapping:
    @pytest.mark.asyncio
    async def test_custom_codes(self, make_service):
        providers = [provider_row(npi(1))]
        services = {npi(1): [service_row(npi(1), "J9312", services="4", benes="2")]}
        service, session = make_service(router(providers, services))
        mapping = CodeMapping(label="Rituximab users", codes=["j9312"], specialties=["Rheumatology"])

        result = await service.search_by_code_mapping(mapping)

        assert result.indication.id == "custom"
        assert result.indication.name == "Rituximab users"
        assert ("Rndrng_Prvdr_Type", "IN", ["Rheumatology"]) in url_filters(session.calls[0])
        (call,) = service_calls(session)
        assert ("HCPCS_Cd", "IN", ["J9312"]) in url_filters(call)
        assert result.physicians[0].indication_services == 4

    @pytest.mark.asyncio
    async def test_no_codes_skips_lookups(self, make_service):
        service, session = make_service(router([provider_row(npi(1))]))

        result = await service.search_by_code_mapping(CodeMapping(specialties=["Nephrology"]))

        assert service_calls(session) == []
        assert result.physicians[0].indication_services == 0
        assert result.physicians[0].relevance_score == pytest.approx(10)


class TestLookupServiceVolumes:
    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, make_service, settings):
        service, session = make_service(router([]))
        in_flight = 0
        peak = 0

        async def fake_search(params):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return ServiceSearchResponse(data_year="2023")

        service.search_provider_services = fake_search
        enricher = IndicationEnricher(service, settings=settings.model_copy(update={"lookup_concurrency": 2}))

        volumes, failed = await enricher.lookup_service_volumes([npi(i) for i in range(8)], ["50200"], "2023")

        assert peak == 2
        assert failed == []
        assert len(volumes) == 8

    @pytest.mark.asyncio
    async def test_slow_lookup_times_out_as_failure(self, make_service, settings):
        service, session = make_service(router([]))
        slow = npi(1)

        async def fake_search(params):
            if params.npi == slow:
                await asyncio.sleep(1)
            return ServiceSearchResponse(
                data_year="2023",
                records=[ServiceRecord(npi=params.npi, hcpcs_code="50200", services=3, beneficiaries=1)],
            )

        service.search_provider_services = fake_search
        enricher = IndicationEnricher(service, settings=settings.model_copy(update={"lookup_timeout": 0.05}))

        volumes, failed = await enricher.lookup_service_volumes([npi(0), slow], ["50200"], "2023")

        assert failed == [slow]
        assert volumes[npi(0)].services == 3
        assert slow not in volumes
