"""Tests for npm-flavoured semver parsing, ordering and ranges."""

import pytest

from npm_registry.core import semver


class TestParse:
    """Tests for parse, valid and coerce."""

    def test_parse_full_version(self):
        v = semver.parse("v1.2.3-beta.4+build.5")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)
        assert v.prerelease == ("beta", 4)
        assert str(v) == "1.2.3-beta.4"

    @pytest.mark.parametrize("text", ["", "1.2", "latest", "1.2.3.4", "a.b.c"])
    def test_invalid_versions(self, text):
        assert semver.parse(text) is None
        assert semver.valid(text) is None

    @pytest.mark.parametrize(
        "text,expected",
        [("^18.2.0", "18.2.0"), ("~4", "4.0.0"), (">=1.2", "1.2.0"), ("v2", "2.0.0")],
    )
    def test_coerce(self, text, expected):
        assert str(semver.coerce(text)) == expected

    def test_coerce_without_digits(self):
        assert semver.coerce("latest") is None


class TestOrdering:
    """Tests for compare, sorting and diff."""

    def test_release_ranks_above_prerelease(self):
        assert semver.gt("1.0.0", "1.0.0-rc.1")
        assert semver.gt("1.0.0-rc.2", "1.0.0-rc.1")
        assert semver.gt("1.0.0-beta", "1.0.0-alpha.9")
        assert semver.gt("1.0.0-alpha.1", "1.0.0-alpha")

    def test_numeric_identifiers_compare_numerically(self):
        assert semver.gt("1.10.0", "1.9.0")
        assert semver.gt("1.0.0-rc.10", "1.0.0-rc.9")

    def test_compare_rejects_invalid(self):
        with pytest.raises(ValueError):
            semver.compare("1.0", "1.0.0")

    def test_sort_desc_drops_invalid(self):
        versions = ["1.0.0", "2.0.0-beta.1", "garbage", "1.10.0", "2.0.0"]
        assert semver.sort_desc(versions) == ["2.0.0", "2.0.0-beta.1", "1.10.0", "1.0.0"]

    def test_sort_desc_loose_keeps_invalid_last(self):
        assert semver.sort_desc_loose(["1.0.0", "zeta", "alpha", "2.0.0"]) == ["2.0.0", "1.0.0", "zeta", "alpha"]

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("1.0.0", "2.0.0", "major"),
            ("1.2.0", "1.3.0", "minor"),
            ("1.2.3", "1.2.4", "patch"),
            ("2.0.0", "1.0.0", "major"),
            ("1.0.0", "2.0.0-rc.1", "premajor"),
            ("1.0.0-rc.1", "1.0.0-rc.2", "prerelease"),
            ("1.0.0-rc.1", "1.0.0", "major"),
            ("1.1.0-rc.1", "1.1.0", "minor"),
            ("1.1.1-rc.1", "1.1.1", "patch"),
            ("1.2.3", "1.2.3", None),
        ],
    )
    def test_diff(self, a, b, expected):
        assert semver.diff(a, b) == expected


class TestRanges:
    """Tests for satisfies and valid_range."""

    @pytest.mark.parametrize(
        "version,spec",
        [
            ("18.2.0", "^18.0.0"),
            ("0.2.5", "^0.2.3"),
            ("0.0.3", "^0.0.3"),
            ("1.2.9", "~1.2.3"),
            ("1.9.0", "~1"),
            ("1.5.0", "1.x"),
            ("1.5.0", "1"),
            ("3.0.0", "*"),
            ("3.0.0", ""),
            ("1.2.3", "1.2.3"),
            ("1.2.3", "=1.2.3"),
            ("2.0.0", ">=1.0.0 <3.0.0"),
            ("2.0.0", ">= 1.0.0"),
            ("17.0.2", "^16.0.0 || ^17.0.0"),
            ("1.5.0", "1.0.0 - 2.0.0"),
            ("2.9.9", "1 - 2"),
            ("1.0.0-beta.2", ">=1.0.0-beta.1"),
            ("2.0.0", ">1"),
        ],
    )
    def test_satisfied(self, version, spec):
        assert semver.satisfies(version, spec)

    @pytest.mark.parametrize(
        "version,spec",
        [
            ("19.0.0", "^18.0.0"),
            ("0.3.0", "^0.2.3"),
            ("0.0.4", "^0.0.3"),
            ("1.3.0", "~1.2.3"),
            ("3.0.0", ">=1.0.0 <3.0.0"),
            ("15.0.0", "^16.0.0 || ^17.0.0"),
            ("2.0.1", "1.0.0 - 2.0.0"),
            ("1.9.9", ">1"),
            ("1.3.0", "<=1.2"),
        ],
    )
    def test_not_satisfied(self, version, spec):
        assert not semver.satisfies(version, spec)

    def test_prerelease_needs_matching_tuple(self):
        """Prereleases only match sets that mention a prerelease of the same version."""
        assert not semver.satisfies("2.0.0-rc.1", "^1.0.0 || >=1.5.0")
        assert semver.satisfies("1.2.3-rc.2", ">=1.2.3-rc.1 <2.0.0")
        assert not semver.satisfies("1.2.4-rc.1", ">=1.2.3-rc.1 <2.0.0")

    def test_invalid_version_never_satisfies(self):
        assert not semver.satisfies("not-a-version", "*")

    def test_valid_range(self):
        assert semver.valid_range("^1.0.0 || 2.x")
        assert not semver.valid_range("^banana")
