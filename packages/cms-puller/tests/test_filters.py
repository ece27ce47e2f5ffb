"""Tests for the filter URL builder"""

import pytest
from pydantic import ValidationError

from cms_puller.filters import FetchOptions, Filter, FilterOperator, build_filter_url, filter_params
from conftest import query_params

BASE = "https://data.cms.gov/data-api/v1/dataset/abc/data"


class TestBuildFilterUrl:
    """Test suite for build_filter_url"""

    def test_positional_filter_syntax(self):
        """Each filter becomes path/operator/value params indexed by position"""
        url = build_filter_url(
            BASE,
            [
                Filter("Rndrng_Prvdr_State_Abrvtn", FilterOperator.EQ, "CA"),
                Filter("Tot_Benes", FilterOperator.GTE, 50),
            ],
        )
        params = query_params(url)

        assert url.startswith(BASE + "?")
        assert params["filter[0][path]"] == "Rndrng_Prvdr_State_Abrvtn"
        assert params["filter[0][operator]"] == "="
        assert params["filter[0][value]"] == "CA"
        assert params["filter[1][path]"] == "Tot_Benes"
        assert params["filter[1][operator]"] == ">="
        assert params["filter[1][value]"] == "50"

    def test_list_values_expand_to_indexed_values(self):
        """IN filters expand their values into indexed sub-parameters"""
        url = build_filter_url(BASE, [Filter("HCPCS_Cd", FilterOperator.IN, ["50200", "J9312"])])
        params = query_params(url)

        assert params["filter[0][operator]"] == "IN"
        assert params["filter[0][value][0]"] == "50200"
        assert params["filter[0][value][1]"] == "J9312"
        assert "filter[0][value]" not in params

    @pytest.mark.parametrize("empty", [None, "", []])
    def test_empty_filters_are_dropped(self, empty):
        """Filters without a value never reach the URL and do not consume an index"""
        url = build_filter_url(
            BASE,
            [
                Filter("Rndrng_NPI", FilterOperator.EQ, empty),
                Filter("Rndrng_Prvdr_City", FilterOperator.CONTAINS, "AUSTIN"),
            ],
        )
        params = query_params(url)

        assert "Rndrng_NPI" not in url
        assert params["filter[0][path]"] == "Rndrng_Prvdr_City"
        assert "filter[1][path]" not in params

    def test_zero_is_not_empty(self):
        """A literal zero is a real threshold"""
        params = filter_params([Filter("Tot_Benes", FilterOperator.GTE, 0)])
        assert ("filter[0][value]", "0") in params

    def test_sort_descending_prefix(self):
        """Descending sort is expressed with a leading minus"""
        desc = query_params(build_filter_url(BASE, [], FetchOptions(sort_by="Tot_Benes")))
        asc = query_params(build_filter_url(BASE, [], FetchOptions(sort_by="Tot_Benes", sort_descending=False)))

        assert desc["sort"] == "-Tot_Benes"
        assert asc["sort"] == "Tot_Benes"

    def test_no_sort_param_without_sort_field(self):
        assert "sort" not in query_params(build_filter_url(BASE, [], FetchOptions()))

    def test_columns_joined(self):
        """Column projection is a single comma-joined parameter"""
        params = query_params(build_filter_url(BASE, [], FetchOptions(columns=["Rndrng_NPI", "HCPCS_Cd"])))
        assert params["column"] == "Rndrng_NPI,HCPCS_Cd"

    def test_columns_omitted_by_default(self):
        assert "column" not in query_params(build_filter_url(BASE, []))

    def test_size_and_offset_defaults(self):
        """Page size and offset are always present"""
        params = query_params(build_filter_url(BASE, []))
        assert params["size"] == "100"
        assert params["offset"] == "0"

    def test_deterministic(self):
        """Identical inputs produce byte-identical URLs"""
        filters = [
            Filter("Rndrng_Prvdr_Type", FilterOperator.IN, ["Nephrology", "Internal Medicine"]),
            Filter("Bene_CC_PH_CKD_V2_Pct", FilterOperator.GTE, 10),
        ]
        options = FetchOptions(sort_by="Tot_Benes", page_size=50, offset=100, columns=["Rndrng_NPI"])

        urls = {build_filter_url(BASE, list(filters), options.model_copy()) for _ in range(5)}
        assert len(urls) == 1

    def test_base_url_with_existing_query(self):
        url = build_filter_url(BASE + "?keyword=x", [])
        assert url.startswith(BASE + "?keyword=x&")

    def test_string_operator_accepted(self):
        params = filter_params([Filter("Tot_Benes", "<=", 5)])
        assert ("filter[0][operator]", "<=") in params


class TestFetchOptions:
    def test_rejects_zero_page_size(self):
        with pytest.raises(ValidationError):
            FetchOptions(page_size=0)

    def test_rejects_negative_offset(self):
        with pytest.raises(ValidationError):
            FetchOptions(offset=-1)
