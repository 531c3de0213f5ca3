"""
Tests for the primary page fetch
"""
import asyncio

import aiohttp
import pytest

from conftest import FakeResponse
from models import ScanMode
from network_probe import DEEP_TIMEOUT_SECONDS, FAST_TIMEOUT_SECONDS, NetworkProbe

URL = "https://example.com/"


class TestNetworkProbe:
    """Tests for NetworkProbe.probe"""

    @pytest.mark.asyncio
    async def test_successful_fetch(self, fake_http):
        fake_http.add("GET", URL, FakeResponse(
            status=200, body="<html></html>", headers={"Content-Type": "text/html"}
        ))
        probe = NetworkProbe(fake_http.factory)

        page = await probe.probe(URL, ScanMode.FAST)

        assert page.network.status_code == 200
        assert page.network.url == URL
        assert page.network.error_message is None
        assert page.network.redirect_count == 0
        assert page.network.response_time_ms >= 0
        assert page.network.checked_at.tzinfo is not None
        assert page.html == "<html></html>"
        assert page.headers == (("Content-Type", "text/html"),)

    @pytest.mark.asyncio
    async def test_error_status_is_not_an_exception(self, fake_http):
        fake_http.add("GET", URL, FakeResponse(status=503, body="down"))
        page = await NetworkProbe(fake_http.factory).probe(URL)

        assert page.network.status_code == 503
        assert page.network.error_message is None

    @pytest.mark.asyncio
    async def test_redirect_is_counted(self, fake_http):
        fake_http.add("GET", URL, FakeResponse(status=200, url="https://www.example.com/"))
        page = await NetworkProbe(fake_http.factory).probe(URL)

        assert page.network.redirect_count == 1

    @pytest.mark.asyncio
    async def test_transport_failure_reports_status_zero(self, fake_http):
        fake_http.add("GET", URL, aiohttp.ClientConnectionError("Name or service not known"))
        page = await NetworkProbe(fake_http.factory).probe(URL)

        assert page.network.status_code == 0
        assert page.network.error_message == "Name or service not known"
        assert page.html == ""
        assert page.headers == ()

    @pytest.mark.asyncio
    async def test_timeout_uses_exception_type_name(self, fake_http):
        fake_http.add("GET", URL, asyncio.TimeoutError())
        page = await NetworkProbe(fake_http.factory).probe(URL)

        assert page.network.status_code == 0
        assert page.network.error_message == "TimeoutError"

    @pytest.mark.asyncio
    async def test_timeout_depends_on_mode(self, fake_http):
        probe = NetworkProbe(fake_http.factory)

        await probe.probe(URL, ScanMode.FAST)
        await probe.probe(URL, ScanMode.DEEP)

        assert fake_http.timeouts == [FAST_TIMEOUT_SECONDS, DEEP_TIMEOUT_SECONDS]
