"""Tests for configuration, models and the error taxonomy."""

import pytest
from pydantic import ValidationError

from npm_registry.core.config import DEFAULT_REGISTRY_URL, RegistryConfig
from npm_registry.core.errors import (
    NetworkError,
    PackageNotFoundError,
    RateLimitedError,
    RegistryError,
    RequestTimeoutError,
)
from npm_registry.core.models import (
    CompatibilityParams,
    NpxCommandParams,
    PackageVersion,
    Packument,
    SearchPackagesParams,
)


class TestRegistryConfig:
    """Tests for RegistryConfig defaults and environment overrides."""

    def test_defaults(self):
        config = RegistryConfig()
        assert config.registry_url == DEFAULT_REGISTRY_URL
        assert config.timeout == 10.0
        assert config.max_retries == 3
        assert config.cache_max_size == 500
        assert config.cache_ttl == 300.0
        assert config.max_concurrent == 10

    def test_from_env(self):
        config = RegistryConfig.from_env({
            "NPM_REGISTRY_URL": "https://mirror.example.com",
            "NPM_REGISTRY_TIMEOUT": "2.5",
            "NPM_REGISTRY_MAX_RETRIES": "0",
            "NPM_CACHE_MAX_SIZE": "50",
            "NPM_MAX_CONCURRENT": "4",
        })
        assert config.registry_url == "https://mirror.example.com"
        assert config.timeout == 2.5
        assert config.max_retries == 0
        assert config.cache_max_size == 50
        assert config.max_concurrent == 4

    def test_from_env_ignores_empty_values(self):
        assert RegistryConfig.from_env({"NPM_CACHE_TTL": ""}).cache_ttl == 300.0

    @pytest.mark.parametrize(
        "field,value",
        [("max_retries", -1), ("cache_max_size", 0), ("max_concurrent", 0), ("timeout", 0)],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            RegistryConfig(**{field: value})


class TestErrors:
    """Tests for the error taxonomy."""

    def test_all_errors_share_a_base(self):
        for exc in (PackageNotFoundError("x"), RateLimitedError(), RequestTimeoutError(), NetworkError("boom")):
            assert isinstance(exc, RegistryError)

    def test_retryable_kinds(self):
        assert RateLimitedError.retryable
        assert RequestTimeoutError.retryable
        assert NetworkError.retryable
        assert not PackageNotFoundError.retryable

    def test_to_dict(self):
        exc = PackageNotFoundError("left-pad@9.9.9", url="https://registry.npmjs.org/left-pad/9.9.9")
        assert exc.to_dict() == {
            "code": "not_found",
            "message": "Package not found: left-pad@9.9.9",
            "url": "https://registry.npmjs.org/left-pad/9.9.9",
            "status_code": 404,
        }

    def test_timeout_message(self):
        assert str(RequestTimeoutError(timeout=10.0)) == "Request timeout after 10s"


class TestModels:
    """Tests for registry documents and tool parameters."""

    def test_packument_keeps_unknown_fields(self):
        packument = Packument.model_validate({"name": "x", "dist-tags": {"latest": "1.0.0"}, "users": {"alice": True}})
        assert packument.latest == "1.0.0"
        assert packument.model_extra["users"] == {"alice": True}

    def test_packument_coerces_shorthand_fields(self):
        packument = Packument.model_validate({
            "name": "x",
            "author": "Jane Doe <jane@example.com> (https://jane.dev)",
            "repository": "github:jane/x",
            "keywords": "a, b",
        })
        assert packument.author.name == "Jane Doe"
        assert packument.author.email == "jane@example.com"
        assert packument.author.url == "https://jane.dev"
        assert packument.repository.url == "github:jane/x"
        assert packument.keywords == ["a", "b"]

    def test_list_repository_takes_first_entry(self):
        version = PackageVersion.model_validate({
            "repository": [
                {"type": "git", "url": "git://github.com/acme/old.git"},
                {"type": "svn", "url": "svn://example.com/old"},
            ]
        })
        assert version.repository.url == "git://github.com/acme/old.git"
        assert PackageVersion.model_validate({"repository": []}).repository is None

    def test_non_string_homepage(self):
        assert PackageVersion.model_validate({"homepage": ["https://a.example", "https://b.example"]}).homepage == "https://a.example"
        assert PackageVersion.model_validate({"homepage": {"url": "https://a.example"}}).homepage is None

    def test_dependency_entries_without_a_range_are_dropped(self):
        version = PackageVersion.model_validate({"dependencies": {"x": None, "y": "^1.0.0", "z": 2}})
        assert version.dependencies == {"y": "^1.0.0"}

    def test_list_author_takes_first_person(self):
        version = PackageVersion.model_validate({"author": ["Ann <ann@example.com>", "Bob"]})
        assert version.author.name == "Ann"
        assert version.author.email == "ann@example.com"

    def test_unusable_people_are_skipped(self):
        version = PackageVersion.model_validate({
            "author": 42,
            "maintainers": [None, {"name": "alice", "email": None}, "bob"],
        })
        assert version.author is None
        assert [m.name for m in version.maintainers] == ["alice", "bob"]

    def test_resolve_version(self):
        packument = Packument.model_validate({"name": "x", "dist-tags": {"latest": "2.0.0"}})
        assert packument.resolve_version("1.0.0") == "1.0.0"
        assert packument.resolve_version(None) == "2.0.0"
        assert Packument(name="x").resolve_version() == "latest"

    def test_params_accept_camel_case(self):
        params = CompatibilityParams.model_validate({"packageName": "demo", "existingDependencies": {"react": "^18.0.0"}})
        assert params.package_name == "demo"
        assert params.existing_dependencies == {"react": "^18.0.0"}
        assert params.version is None

    def test_params_reject_unknown_fields(self):
        with pytest.raises(ValidationError):
            NpxCommandParams.model_validate({"command": "cowsay", "shell": True})

    def test_npx_defaults(self):
        params = NpxCommandParams.model_validate({"command": "cowsay"})
        assert params.args == []
        assert params.timeout == 30000

    @pytest.mark.parametrize("payload", [{"query": ""}, {"query": "x", "limit": 0}, {"query": "x", "limit": 51}])
    def test_search_params_validation(self, payload):
        with pytest.raises(ValidationError):
            SearchPackagesParams.model_validate(payload)

    def test_npx_timeout_bounds(self):
        with pytest.raises(ValidationError):
            NpxCommandParams.model_validate({"command": "cowsay", "timeout": 500})
