"""Shared fixtures: a fake aiohttp session standing in for data.cms.gov."""

import json
from typing import Any, Callable, List
from urllib.parse import parse_qsl, urlsplit

import pytest

from cms_common.config import CMSApiSettings
from cms_puller.cache import ResponseCache
from cms_puller.cms_api_client import CMSApiClient
from cms_puller.service import CMSDataService


class FakeResponse:
    def __init__(self, payload: Any = None, status: int = 200, body: str = None):
        self.status = status
        self._payload = payload
        self._body = body if body is not None else json.dumps(payload)

    async def json(self, content_type=None):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records requested URLs and answers them with ``handler(url)``."""

    def __init__(self, handler: Callable[[str], Any]):
        self.handler = handler
        self.calls: List[str] = []
        self.headers: List[dict] = []
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self.calls.append(url)
        self.headers.append(headers or {})
        result = self.handler(url)
        if isinstance(result, BaseException):
            raise result
        if isinstance(result, FakeResponse):
            return result
        return FakeResponse(result)

    async def close(self):
        self.closed = True


def query_params(url: str) -> dict:
    return dict(parse_qsl(urlsplit(url).query))


def provider_row(npi: str, benes: Any = "100", **extra) -> dict:
    row = {
        "Rndrng_NPI": npi,
        "Rndrng_Prvdr_Last_Org_Name": f"DOE{npi[-2:]}",
        "Rndrng_Prvdr_First_Name": "JANE",
        "Rndrng_Prvdr_MI": "Q",
        "Rndrng_Prvdr_Crdntls": "M.D.",
        "Rndrng_Prvdr_Ent_Cd": "I",
        "Rndrng_Prvdr_Type": "Nephrology",
        "Rndrng_Prvdr_City": "AUSTIN",
        "Rndrng_Prvdr_State_Abrvtn": "TX",
        "Rndrng_Prvdr_Zip5": "78701",
        "Tot_Benes": benes,
        "Tot_Srvcs": "1000",
    }
    row.update(extra)
    return row


def service_row(npi: str, code: str, services: Any = "20", benes: Any = "12") -> dict:
    return {
        "Rndrng_NPI": npi,
        "Rndrng_Prvdr_Last_Org_Name": "DOE",
        "Rndrng_Prvdr_First_Name": "JANE",
        "HCPCS_Cd": code,
        "HCPCS_Desc": "Renal biopsy",
        "HCPCS_Drug_Ind": "N",
        "Place_Of_Srvc": "F",
        "Tot_Benes": benes,
        "Tot_Srvcs": services,
        "Avg_Sbmtd_Chrg": "512.5",
        "Avg_Mdcr_Alowd_Amt": "200",
        "Avg_Mdcr_Pymt_Amt": "150.25",
    }


@pytest.fixture
def settings():
    return CMSApiSettings(base_url="https://data.example.test/data-api/v1/dataset", default_year="2023")


@pytest.fixture
def make_client(settings):
    def _make(handler: Callable[[str], Any], cache: ResponseCache = None):
        session = FakeSession(handler)
        if cache is None:
            cache = ResponseCache()
        client = CMSApiClient(session=session, cache=cache, settings=settings)
        return client, session

    return _make


@pytest.fixture
def make_service(make_client, settings):
    def _make(handler: Callable[[str], Any]):
        client, session = make_client(handler)
        return CMSDataService(client=client, settings=settings), session

    return _make
