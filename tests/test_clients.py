"""Tests for the advisory, GitHub and bundlephobia clients."""

import json

import httpx
import pytest
import respx

from npm_registry.core.clients import advisories, bundlephobia, github

ADVISORY_URL = f"https://registry.npmjs.org{advisories.ADVISORIES_PATH}"


class TestFetchBulkAdvisories:
    """Tests for fetch_bulk_advisories."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_advisories_keyed_by_id(self):
        route = respx.post(ADVISORY_URL).mock(
            return_value=httpx.Response(200, json={"minimist": {"1179": {"id": 1179, "severity": "critical"}}})
        )

        result = await advisories.fetch_bulk_advisories("minimist", "1.2.0")

        assert result == [{"id": 1179, "severity": "critical"}]
        assert json.loads(route.calls.last.request.content) == {"minimist": ["1.2.0"]}

    @pytest.mark.asyncio
    @respx.mock
    async def test_advisories_as_list(self):
        respx.post(ADVISORY_URL).mock(
            return_value=httpx.Response(200, json={"lodash": [{"id": 1, "severity": "high"}, "junk"]})
        )
        assert await advisories.fetch_bulk_advisories("lodash", "4.17.0") == [{"id": 1, "severity": "high"}]

    @pytest.mark.asyncio
    @respx.mock
    async def test_empty_answer(self):
        respx.post(ADVISORY_URL).mock(return_value=httpx.Response(200, json={}))
        assert await advisories.fetch_bulk_advisories("lodash", "4.17.21") == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_success_means_no_data(self):
        respx.post(ADVISORY_URL).mock(return_value=httpx.Response(503))
        assert await advisories.fetch_bulk_advisories("lodash", "4.17.21") == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_failure_propagates(self):
        respx.post(ADVISORY_URL).mock(side_effect=httpx.ConnectError("unreachable"))
        with pytest.raises(httpx.ConnectError):
            await advisories.fetch_bulk_advisories("lodash", "4.17.21")


class TestGitHub:
    """Tests for repository URL parsing and metrics."""

    @pytest.mark.parametrize(
        "url",
        [
            "git+https://github.com/expressjs/express.git",
            "git://github.com/expressjs/express.git",
            "git@github.com:expressjs/express.git",
            "ssh://git@github.com/expressjs/express.git",
            "https://github.com/expressjs/express",
            "https://github.com/expressjs/express#readme",
        ],
    )
    def test_parse_github_repo(self, url):
        assert github.parse_github_repo(url) == ("expressjs", "express")

    @pytest.mark.parametrize("url", [None, "", "https://gitlab.com/acme/tool.git"])
    def test_non_github_urls(self, url):
        assert github.parse_github_repo(url) is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_repo_metrics(self):
        respx.get(f"{github.API_BASE}/repos/acme/demo").mock(
            return_value=httpx.Response(200, json={
                "stargazers_count": 1234,
                "forks_count": 56,
                "watchers_count": 1234,
                "open_issues_count": 7,
                "pushed_at": "2026-09-30T12:00:00Z",
                "archived": False,
                "has_issues": True,
                "default_branch": "main",
            })
        )

        metrics = await github.fetch_repo_metrics("acme", "demo")

        assert metrics.stars == 1234
        assert metrics.forks == 56
        assert metrics.open_issues == 7
        assert metrics.default_branch == "main"

    @pytest.mark.asyncio
    @respx.mock
    async def test_token_sent_when_configured(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")
        route = respx.get(f"{github.API_BASE}/repos/acme/demo").mock(return_value=httpx.Response(200, json={}))

        await github.fetch_repo_metrics("acme", "demo")

        assert route.calls.last.request.headers["authorization"] == "Bearer ghp_test"

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limited_raises(self):
        respx.get(f"{github.API_BASE}/repos/acme/demo").mock(return_value=httpx.Response(403))
        with pytest.raises(httpx.HTTPStatusError):
            await github.fetch_repo_metrics("acme", "demo")


class TestBundlephobia:
    """Tests for fetch_bundle_size."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_bundle_size(self):
        route = respx.get(f"{bundlephobia.API_BASE}/size").mock(
            return_value=httpx.Response(200, json={"name": "lodash", "size": 70000, "gzip": 25000})
        )

        result = await bundlephobia.fetch_bundle_size("lodash", "4.17.21")

        assert result == {"size": 70000, "gzip": 25000}
        assert route.calls.last.request.url.params["package"] == "lodash@4.17.21"

    @pytest.mark.asyncio
    @respx.mock
    async def test_unknown_package(self):
        respx.get(f"{bundlephobia.API_BASE}/size").mock(
            return_value=httpx.Response(404, json={"error": {"code": "PackageNotFoundError"}})
        )
        assert await bundlephobia.fetch_bundle_size("nope", "1.0.0") is None
