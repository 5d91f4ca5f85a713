"""Package analysis tools.

Each tool validates its parameters, reads what it needs through a
``RegistryClient`` and returns a JSON-ready dict. Registry failures become
``{"success": False, "error": ...}``; advisory, GitHub, bundlephobia and
download-count lookups are best-effort and only degrade the report.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import httpx

from . import capabilities, semver
from .clients import advisories, bundlephobia, github
from .clients.registry import RegistryClient
from .errors import PackageNotFoundError, RegistryError
from .models import (
    ComparePackagesParams,
    CompareVersionsParams,
    CompatibilityParams,
    DownloadPeriod,
    DownloadStats,
    GitHubMetrics,
    NpxCommandParams,
    PackageParams,
    Packument,
    PackageVersion,
    Person,
    QualityParams,
    SearchPackagesParams,
)
from .scoring import (
    bundle_impact,
    comparison_score,
    compute_quality_scores,
    count_severities,
    days_since,
    format_bytes,
    quality_assessment,
    relative_popularity,
    security_score,
    size_recommendations,
    treeshaking_analysis,
    update_status,
)

logger = logging.getLogger(__name__)

BEST_EFFORT_ERRORS = (httpx.HTTPError, ValueError)

_NPX_PACKAGE_RE = re.compile(r"^(@?[^@\s]+)(?:@(\S+))?$")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _failure(exc: Exception, **context: Any) -> dict:
    logger.info("Analysis failed: %s", exc)
    return {"success": False, "error": str(exc), **context}


def _person_name(person: Optional[Person]) -> Optional[str]:
    return person.name if person and person.name else None


def _person_dict(person: Optional[Person]) -> Optional[dict]:
    return person.model_dump(exclude_none=True) if person else None


def _version_not_found(packument: Packument, version: str) -> dict:
    return {
        "success": False,
        "error": f"Version {version} not found for package {packument.name}",
        "available_versions": semver.sort_desc_loose(packument.versions)[:10],
    }


async def _weekly_stats(client: RegistryClient, package_name: str) -> Optional[DownloadStats]:
    """Last-week download stats, or None when the statistics host has nothing."""
    try:
        return await client.get_download_stats(package_name, DownloadPeriod.LAST_WEEK)
    except RegistryError as exc:
        logger.debug("Download stats unavailable for %s: %s", package_name, exc)
        return None


# ─── Tool 1: Search ──────────────────────────────────────────────────────────


async def search_packages(params: Mapping[str, Any], client: RegistryClient) -> dict:
    """Search the registry and format results with percentage scores."""
    validated = SearchPackagesParams.model_validate(params)

    try:
        results = await client.search_packages(validated.query, limit=validated.limit)
    except RegistryError as exc:
        return _failure(exc, query=validated.query)

    if not results.objects:
        return {
            "success": True,
            "query": validated.query,
            "packages": [],
            "total": 0,
            "summary": f'No packages found matching "{validated.query}"',
        }

    packages = []
    for obj in results.objects:
        pkg = obj.package
        packages.append({
            "name": pkg.name,
            "version": pkg.version,
            "description": pkg.description or "No description available",
            "author": _person_name(pkg.author) or _person_name(pkg.publisher),
            "keywords": pkg.keywords,
            "links": {
                "npm": pkg.links.npm,
                "homepage": pkg.links.homepage,
                "repository": pkg.links.repository,
            },
            "score": {
                "final": round(obj.score.final * 100),
                "quality": round(obj.score.detail.quality * 100),
                "popularity": round(obj.score.detail.popularity * 100),
                "maintenance": round(obj.score.detail.maintenance * 100),
            },
            "published_at": pkg.date,
        })

    # sorted() is stable, so equal scores keep registry order
    packages = sorted(packages, key=lambda p: p["score"]["final"], reverse=True)

    return {
        "success": True,
        "query": validated.query,
        "packages": packages,
        "total": results.total,
        "returned": len(packages),
        "summary": f"Found {results.total} packages. Showing top {len(packages)}.",
    }


# ─── Tool 2: Package details ─────────────────────────────────────────────────


async def get_package_details(params: Mapping[str, Any], client: RegistryClient) -> dict:
    """Metadata, versions, dependencies, dist info and weekly downloads for one version."""
    validated = PackageParams.model_validate(params)
    context = {"package_name": validated.package_name, "version": validated.version}

    try:
        packument = await client.get_package(validated.package_name)
    except RegistryError as exc:
        return _failure(exc, **context)

    target = packument.resolve_version(validated.version)
    data = packument.versions.get(target)
    if data is None:
        return _version_not_found(packument, target)

    weekly = await _weekly_stats(client, validated.package_name)

    all_versions = semver.sort_desc(packument.versions)
    recent = [{"version": v, "published_at": packument.published_at(v)} for v in all_versions[:5]]
    deprecated_versions = [
        {"version": v, "message": d.deprecation_message if d.deprecated is not True else "Deprecated"}
        for v, d in packument.versions.items()
        if d.deprecation_message
    ]

    repository = data.repository or packument.repository
    unpacked = data.dist.unpacked_size
    if weekly is not None:
        stats = {
            "weekly_downloads": f"{weekly.downloads:,}",
            "period": f"{weekly.start} to {weekly.end}",
        }
    else:
        stats = {"weekly_downloads": "Not available", "period": "N/A"}

    return {
        "success": True,
        "package": {
            "name": packument.name,
            "version": data.version,
            "description": data.description or packument.description,
            "is_latest": target == packument.latest,
            "deprecated": data.deprecation_message,
        },
        "metadata": {
            "license": data.license or packument.license or "Unknown",
            "author": _person_dict(data.author or packument.author),
            "maintainers": [m.model_dump(exclude_none=True) for m in (data.maintainers or packument.maintainers)],
            "keywords": data.keywords or packument.keywords,
            "homepage": data.homepage or packument.homepage,
            "repository": repository.model_dump(exclude_none=True) if repository else None,
            "bugs": data.bugs or packument.bugs,
        },
        "versions": {
            "latest": packument.latest,
            "tags": packument.dist_tags,
            "total": len(all_versions),
            "recent": recent,
            "deprecated_versions": deprecated_versions,
        },
        "dependencies": {
            "dependencies": data.dependencies,
            "dev_dependencies": data.dev_dependencies,
            "peer_dependencies": data.peer_dependencies,
            "optional_dependencies": data.optional_dependencies,
        },
        "dist": {
            "tarball": data.dist.tarball,
            "shasum": data.dist.shasum,
            "integrity": data.dist.integrity,
            "file_count": data.dist.file_count,
            "unpacked_size": f"{unpacked / 1024:.2f} KB" if unpacked else "Unknown",
        },
        "timestamps": {
            "created": packument.time.get("created"),
            "modified": packument.time.get("modified"),
            "version_published": packument.published_at(target),
        },
        "stats": stats,
        "summary": f"{packument.name}@{data.version}: {len(all_versions)} versions, {stats['weekly_downloads']} weekly downloads",
    }


# ─── Tool 3: Security audit ──────────────────────────────────────────────────


def _dependency_counts(data: PackageVersion) -> dict:
    return {
        "total": len({**data.dependencies, **data.dev_dependencies}),
        "direct": len(data.dependencies),
        "dev": len(data.dev_dependencies),
    }


def _safe_version(packument: Packument, vulnerable_ranges: list[str]) -> Optional[str]:
    """Newest stable version outside every advisory's vulnerable range."""
    for version in semver.sort_desc(packument.versions):
        if semver.parse(version).prerelease:
            continue
        if not any(r and semver.satisfies(version, r) for r in vulnerable_ranges):
            return version
    return None


async def audit_security(params: Mapping[str, Any], client: RegistryClient) -> dict:
    """Known advisories for one version, severity counts and a 0-100 security score."""
    validated = PackageParams.model_validate(params)

    try:
        packument = await client.get_package(validated.package_name)
    except RegistryError as exc:
        return _failure(exc, package_name=validated.package_name)

    target = packument.resolve_version(validated.version)
    data = packument.versions.get(target)
    if data is None:
        return _version_not_found(packument, target)

    try:
        advisory_list = await advisories.fetch_bulk_advisories(
            validated.package_name, target, registry_url=client.registry_url,
        )
    except BEST_EFFORT_ERRORS as exc:
        logger.warning("Advisory lookup failed for %s@%s: %s", validated.package_name, target, exc)
        return {
            "success": True,
            "package": validated.package_name,
            "version": target,
            "security": {
                "has_vulnerabilities": False,
                "total_vulnerabilities": 0,
                "severity": count_severities([]).model_dump(),
                "score": 100,
            },
            "vulnerabilities": [],
            "dependencies": _dependency_counts(data),
            "recommendations": [
                "⚠️ Unable to fetch vulnerability data from npm registry.",
                "Package information retrieved successfully.",
            ],
            "note": "Vulnerability check unavailable. Package metadata only.",
            "audited_at": _now_iso(),
            "summary": f"{validated.package_name}@{target}: vulnerability data unavailable",
        }

    counts = count_severities(advisory_list)
    vulnerabilities = [
        {
            "id": adv.get("id"),
            "title": adv.get("title"),
            "severity": adv.get("severity"),
            "vulnerable_versions": adv.get("vulnerable_versions"),
            "patched_versions": adv.get("patched_versions"),
            "recommendation": adv.get("recommendation"),
            "cves": adv.get("cves") or [],
            "cvss": adv.get("cvss"),
        }
        for adv in advisory_list
    ]
    has_vulnerabilities = bool(vulnerabilities)

    recommendations = []
    if has_vulnerabilities:
        if counts.critical:
            recommendations.append("🚨 Critical vulnerabilities found! Update immediately.")
        if counts.high:
            recommendations.append("⚠️ High severity vulnerabilities require attention.")
        safe = _safe_version(packument, [v["vulnerable_versions"] or "" for v in vulnerabilities])
        if safe and safe != target:
            recommendations.append(f"Consider upgrading to {safe}")
    else:
        recommendations.append("✅ No known vulnerabilities found for this version.")

    score = security_score(counts)
    return {
        "success": True,
        "package": validated.package_name,
        "version": target,
        "security": {
            "has_vulnerabilities": has_vulnerabilities,
            "total_vulnerabilities": len(vulnerabilities),
            "severity": counts.model_dump(),
            "score": score,
        },
        "vulnerabilities": vulnerabilities,
        "dependencies": _dependency_counts(data),
        "recommendations": recommendations,
        "audited_at": _now_iso(),
        "summary": f"{validated.package_name}@{target}: {len(vulnerabilities)} known vulnerabilities, security score {score}/100",
    }


# ─── Tool 4: Compatibility ───────────────────────────────────────────────────


async def check_compatibility(params: Mapping[str, Any], client: RegistryClient) -> dict:
    """Check a version's peer dependencies against already-installed ones."""
    validated = CompatibilityParams.model_validate(params)

    try:
        packument = await client.get_package(validated.package_name)
    except RegistryError as exc:
        return _failure(exc, package_name=validated.package_name)

    target = packument.resolve_version(validated.version)
    data = packument.versions.get(target)
    if data is None:
        return _version_not_found(packument, target)

    compatible, conflicts, missing = [], [], []
    for peer, required in data.peer_dependencies.items():
        existing = validated.existing_dependencies.get(peer)
        if not existing:
            missing.append({"package": peer, "required": required})
            continue

        installed = semver.coerce(existing)
        if installed is None or not semver.valid_range(required):
            conflicts.append({
                "package": peer,
                "required": required,
                "existing": existing,
                "compatible": False,
                "reason": "Unable to validate version compatibility",
            })
        elif semver.satisfies(installed, required):
            compatible.append({"package": peer, "required": required, "existing": existing})
        else:
            conflicts.append({
                "package": peer,
                "required": required,
                "existing": existing,
                "compatible": False,
                "reason": f"Existing version {existing} does not satisfy required range {required}",
            })

    issues = []
    if conflicts:
        issues.append(f"{len(conflicts)} peer dependency conflict(s) detected")
    if missing:
        issues.append(f"{len(missing)} required peer dependency(ies) not installed")
    is_compatible = not issues

    actions = []
    if conflicts:
        actions.append("Update conflicting dependencies to compatible versions")
    if missing:
        actions.append(
            "Install missing peer dependencies: "
            + ", ".join(f"{m['package']}@{m['required']}" for m in missing)
        )

    if is_compatible:
        recommendation = "Package is compatible with existing dependencies. Safe to install."
    else:
        recommendation = f"Compatibility issues detected. {'. '.join(issues)}."

    return {
        "success": True,
        "package": validated.package_name,
        "version": target,
        "compatible": is_compatible,
        "analysis": {
            "peer_dependencies": {
                "total": len(data.peer_dependencies),
                "compatible": len(compatible),
                "conflicts": len(conflicts),
                "missing": len(missing),
            },
            "details": {"compatible": compatible, "conflicts": conflicts, "missing": missing},
        },
        "recommendation": recommendation,
        "suggested_actions": actions,
        "summary": recommendation,
    }


# ─── Tool 5: Version comparison ──────────────────────────────────────────────

CHANGE_RECOMMENDATIONS = {
    "major": "Major version change detected. Review changelog and test thoroughly.",
    "minor": "Minor version change. New features added, should be backward compatible.",
    "patch": "Patch version change. Bug fixes only, safe to upgrade.",
}


def _dependency_diff(before: dict[str, str], after: dict[str, str]) -> dict:
    added = {k: v for k, v in after.items() if k not in before}
    removed = {k: v for k, v in before.items() if k not in after}
    changed = {
        k: {"from": before[k], "to": v}
        for k, v in after.items()
        if k in before and before[k] != v
    }
    return {
        "added": len(added),
        "removed": len(removed),
        "changed": len(changed),
        "details": {"added": added, "removed": removed, "changed": changed},
    }


async def compare_versions(params: Mapping[str, Any], client: RegistryClient) -> dict:
    """Semver change type plus dependency and peer dependency changes between two versions."""
    validated = CompareVersionsParams.model_validate(params)

    try:
        packument = await client.get_package(validated.package_name)
    except RegistryError as exc:
        return _failure(exc, package_name=validated.package_name)

    from_data = packument.versions.get(validated.from_version)
    to_data = packument.versions.get(validated.to_version)
    for version, data in ((validated.from_version, from_data), (validated.to_version, to_data)):
        if data is None:
            return _version_not_found(packument, version)

    try:
        change = semver.diff(validated.from_version, validated.to_version)
        is_upgrade = semver.gt(validated.to_version, validated.from_version)
    except ValueError as exc:
        return _failure(exc, package_name=validated.package_name)

    peers = {}
    before, after = from_data.peer_dependencies, to_data.peer_dependencies
    for peer in sorted(set(before) | set(after)):
        if before.get(peer) != after.get(peer):
            peers[peer] = {"from": before.get(peer), "to": after.get(peer)}

    if change is None:
        direction = "same"
    else:
        direction = "upgrade" if is_upgrade else "downgrade"
    recommendation = CHANGE_RECOMMENDATIONS.get(change, "Version comparison complete.")

    return {
        "success": True,
        "package": validated.package_name,
        "comparison": {
            "from": validated.from_version,
            "to": validated.to_version,
            "type": direction,
            "change_type": change or "none",
            "is_breaking": change == "major",
            "published_dates": {
                "from": packument.published_at(validated.from_version),
                "to": packument.published_at(validated.to_version),
            },
        },
        "dependency_changes": _dependency_diff(from_data.dependencies, to_data.dependencies),
        "peer_dependency_changes": {"total": len(peers), "details": peers},
        "recommendation": recommendation,
        "summary": f"{validated.package_name} {validated.from_version} -> {validated.to_version}: {change or 'no'} change ({direction})",
    }


# ─── Tool 6: Quality ─────────────────────────────────────────────────────────


async def _github_metrics(repository_url: Optional[str]) -> tuple[Optional[str], Optional[GitHubMetrics]]:
    repo = github.parse_github_repo(repository_url)
    if repo is None:
        return None, None
    owner, name = repo
    url = f"https://github.com/{owner}/{name}"
    try:
        return url, await github.fetch_repo_metrics(owner, name)
    except BEST_EFFORT_ERRORS as exc:
        logger.warning("GitHub metrics unavailable for %s/%s: %s", owner, name, exc)
        return url, None


async def analyze_quality(
    params: Mapping[str, Any],
    client: RegistryClient,
    now: Optional[datetime] = None,
) -> dict:
    """Popularity, maintenance and community scores for the latest release."""
    validated = QualityParams.model_validate(params)

    try:
        packument = await client.get_package(validated.package_name)
    except RegistryError as exc:
        return _failure(exc, package_name=validated.package_name)

    weekly = monthly = 0
    try:
        weekly = (await client.get_download_stats(validated.package_name, DownloadPeriod.LAST_WEEK)).downloads
        monthly = (await client.get_download_stats(validated.package_name, DownloadPeriod.LAST_MONTH)).downloads
    except RegistryError as exc:
        logger.debug("Download stats unavailable for %s: %s", validated.package_name, exc)

    repo_url, metrics = await _github_metrics(packument.repository.url if packument.repository else None)

    last_published = packument.time.get("modified")
    age = days_since(last_published, now)
    scores = compute_quality_scores(age, weekly, metrics)

    github_report = None
    if metrics is not None:
        github_report = {
            "url": repo_url,
            "stars": f"{metrics.stars:,}",
            "forks": f"{metrics.forks:,}",
            "open_issues": f"{metrics.open_issues:,}",
            "last_push": metrics.last_push,
            "is_archived": metrics.is_archived,
        }

    return {
        "success": True,
        "package": validated.package_name,
        "version": packument.latest,
        "scores": scores.model_dump(),
        "metrics": {
            "downloads": {"weekly": f"{weekly:,}", "monthly": f"{monthly:,}"},
            "versions": {
                "total": len(packument.versions),
                "latest": packument.latest,
                "first_published": packument.time.get("created"),
                "last_published": last_published,
                "days_since_last_publish": round(age) if age is not None else None,
            },
            "github": github_report,
            "maintainers": len(packument.maintainers),
            "license": packument.license or "Unknown",
        },
        "assessment": quality_assessment(scores.overall, age, weekly, metrics),
        "summary": f"{validated.package_name}: overall quality {scores.overall}/100",
    }


# ─── Tool 7: npx command ─────────────────────────────────────────────────────


async def analyze_npx_command(
    params: Mapping[str, Any],
    client: RegistryClient,
    now: Optional[datetime] = None,
) -> dict:
    """Inspect the package behind an npx command. Nothing is ever executed."""
    validated = NpxCommandParams.model_validate(params)

    match = _NPX_PACKAGE_RE.match(validated.command.strip())
    if not match:
        return {"success": False, "error": "Invalid package format. Use: package or package@version"}
    package_name, requested = match.group(1), match.group(2)

    try:
        packument = await client.get_package(package_name)
    except PackageNotFoundError:
        return {"success": False, "error": f"Package '{package_name}' not found in npm registry"}
    except RegistryError as exc:
        return _failure(exc, package_name=package_name)

    target = packument.resolve_version(requested)
    data = packument.versions.get(target)
    if data is None:
        return _version_not_found(packument, target)

    size_kb = (data.dist.unpacked_size or 0) / 1024
    age = days_since(packument.published_at(target) or packument.time.get("modified"), now) or 0.0
    dep_count = len(data.dependencies)

    warnings = []
    if size_kb > 10_000:
        warnings.append(f"⚠️ Large package size: {size_kb:.0f} KB unpacked")
    if age > 365:
        warnings.append(f"📅 Package version is {round(age / 365)} year(s) old")
    if dep_count > 50:
        warnings.append(f"📦 Large dependency tree: {dep_count} dependencies")

    recommendations = [
        "🔒 Always review package contents before executing",
        "📝 Check package reputation and maintainer trust",
    ]
    if dep_count:
        recommendations.append(f"⚠️ Package has {dep_count} dependencies - review them as well")

    safe_command = " ".join(
        [f"npx {package_name}@{requested or packument.latest or target}", *validated.args]
    ).strip()
    author = _person_name(data.author) or _person_name(packument.author) or "Unknown"
    repository = data.repository or packument.repository

    return {
        "success": True,
        "analysis": {
            "package": package_name,
            "version": target,
            "command": safe_command,
            "is_latest": target == packument.latest,
        },
        "validation": {
            "package_exists": True,
            "version_exists": True,
            "has_executable": bool(data.bin) or data.main is not None,
            "size_kb": round(size_kb),
            "dependency_count": dep_count,
            "published_days_ago": round(age),
        },
        "metadata": {
            "description": data.description or "No description available",
            "license": data.license or packument.license or "Unknown",
            "author": author,
            "repository": repository.url if repository else None,
            "homepage": data.homepage or packument.homepage,
        },
        "warnings": warnings or ["✅ No significant warnings"],
        "recommendations": recommendations,
        "safe_command": safe_command,
        "note": "Command analyzed but not executed. Execute manually after review.",
        "summary": f"{safe_command}: {len(warnings)} warning(s)",
    }


# ─── Tool 8: Bundle size ─────────────────────────────────────────────────────


async def analyze_bundle_size(params: Mapping[str, Any], client: RegistryClient) -> dict:
    """Estimated bundle impact, tree-shaking support and size advice for one version."""
    validated = PackageParams.model_validate(params)

    try:
        packument = await client.get_package(validated.package_name)
    except RegistryError as exc:
        return _failure(exc, package_name=validated.package_name)

    target = packument.resolve_version(validated.version)
    data = packument.versions.get(target)
    if data is None:
        return _version_not_found(packument, target)

    unpacked = data.dist.unpacked_size or 0
    try:
        bundle_data = await bundlephobia.fetch_bundle_size(validated.package_name, target)
    except BEST_EFFORT_ERRORS as exc:
        logger.warning("Bundlephobia lookup failed for %s@%s: %s", validated.package_name, target, exc)
        bundle_data = None

    impact = bundle_impact(unpacked, bundle_data)
    return {
        "success": True,
        "package": {"name": validated.package_name, "version": target},
        "sizes": {
            "unpacked": format_bytes(unpacked),
            "minified": format_bytes(bundle_data["size"]) if bundle_data else "Unknown",
            "gzip": format_bytes(bundle_data["gzip"]) if bundle_data else "Unknown",
        },
        "impact": impact.model_dump(),
        "dependencies": {"count": len(data.dependencies), "list": list(data.dependencies)},
        "treeshaking": treeshaking_analysis(data).model_dump(),
        "recommendations": size_recommendations(unpacked, bundle_data, data),
        "summary": f"{validated.package_name}@{target}: {impact.level} bundle impact",
    }


# ─── Tool 9: Capabilities ────────────────────────────────────────────────────


async def analyze_capabilities(params: Mapping[str, Any], client: RegistryClient) -> dict:
    """Module format, TypeScript, platform, exports, build tool and engine support."""
    validated = PackageParams.model_validate(params)

    try:
        packument = await client.get_package(validated.package_name)
    except RegistryError as exc:
        return _failure(exc, package_name=validated.package_name, version=validated.version)

    target = packument.resolve_version(validated.version)
    data = packument.versions.get(target)
    if data is None:
        return _version_not_found(packument, target)

    modules = capabilities.module_system(data)
    typescript = capabilities.typescript_support(data)
    platform = capabilities.platform_support(data)
    exports = capabilities.exports_report(data)

    return {
        "success": True,
        "package": {"name": validated.package_name, "version": target},
        "module_system": modules.model_dump(),
        "typescript": typescript.model_dump(),
        "platform": platform.model_dump(),
        "exports": exports.model_dump(),
        "build_tools": capabilities.build_tools(data).model_dump(),
        "engines": capabilities.engine_requirements(data).model_dump(),
        "summary": capabilities.capabilities_summary(modules, typescript, platform, exports),
    }


# ─── Tool 10: Package comparison ─────────────────────────────────────────────


@dataclass
class _Candidate:
    name: str
    error: Optional[str] = None
    version: Optional[str] = None
    data: Optional[PackageVersion] = None
    downloads: int = 0
    days_since_update: Optional[float] = None
    last_update: Optional[str] = None


async def _load_candidate(client: RegistryClient, name: str, now: Optional[datetime]) -> _Candidate:
    try:
        packument = await client.get_package(name)
    except RegistryError as exc:
        return _Candidate(name=name, error=str(exc))

    latest = packument.latest
    data = packument.versions.get(latest) if latest else None
    if data is None:
        return _Candidate(name=name, error=f"No latest version published for {name}")

    weekly = await _weekly_stats(client, name)
    modified = packument.time.get("modified")
    return _Candidate(
        name=name,
        version=latest,
        data=data,
        downloads=weekly.downloads if weekly else 0,
        days_since_update=days_since(modified, now),
        last_update=modified[:10] if isinstance(modified, str) else None,
    )


def _compare_module_system(data: PackageVersion) -> dict:
    report = capabilities.module_system(data)
    esm = report.esm
    commonjs = report.commonjs or not esm
    dual = esm and commonjs
    if dual:
        summary = "Dual (ESM + CJS)"
    else:
        summary = "ESM only" if esm else "CJS only"
    return {"esm": esm, "commonjs": commonjs, "dual": dual, "summary": summary}


def _compare_typescript(data: PackageVersion) -> dict:
    location = data.types or data.typings
    return {"has_types": bool(location), "location": location or None, "needs_types": not location}


def _compare_platform(data: PackageVersion) -> dict:
    platform = capabilities.platform_support(data)
    return {
        "node": platform.node,
        "browser": platform.browser,
        "platforms": capabilities.platform_names(platform),
    }


async def compare_packages(
    params: Mapping[str, Any],
    client: RegistryClient,
    now: Optional[datetime] = None,
) -> dict:
    """Side-by-side comparison of two to five packages at their latest release."""
    validated = ComparePackagesParams.model_validate(params)

    candidates = await asyncio.gather(
        *(_load_candidate(client, name, now) for name in validated.packages)
    )
    loaded = [c for c in candidates if c.error is None]
    top_downloads = max((c.downloads for c in loaded), default=0)

    sections: dict[str, dict] = {
        "module_system": {},
        "typescript": {},
        "platform": {},
        "popularity": {},
        "maintenance": {},
        "size": {},
    }
    overview = []
    for candidate in candidates:
        if candidate.error is not None:
            overview.append({"name": candidate.name, "error": candidate.error})
            for section in sections.values():
                section[candidate.name] = {"error": candidate.error}
            continue

        data = candidate.data
        share = candidate.downloads / top_downloads * 100 if top_downloads else 0
        size = data.dist.unpacked_size or 0
        overview.append({
            "name": candidate.name,
            "version": candidate.version,
            "description": data.description or "No description",
            "license": data.license or "Unknown",
            "weekly_downloads": f"{candidate.downloads:,}",
        })
        sections["module_system"][candidate.name] = _compare_module_system(data)
        sections["typescript"][candidate.name] = _compare_typescript(data)
        sections["platform"][candidate.name] = _compare_platform(data)
        sections["popularity"][candidate.name] = {
            "weekly_downloads": f"{candidate.downloads:,}",
            "popularity_score": round(share),
            "relative": relative_popularity(share),
        }
        days = candidate.days_since_update
        sections["maintenance"][candidate.name] = {
            "last_update": candidate.last_update,
            "days_since": int(days) if days is not None else None,
            "status": update_status(days),
        }
        sections["size"][candidate.name] = {
            "unpacked_size": f"{size / 1024:.2f} KB" if size else "Unknown",
            "bytes": size,
        }

    if not loaded:
        recommendation = {"message": "No valid packages to compare"}
        summary = recommendation["message"]
    else:
        ranked = []
        for candidate in loaded:
            score, reasons = comparison_score(candidate.data, candidate.downloads, candidate.days_since_update)
            ranked.append({"package": candidate.name, "score": score, "reasons": reasons})
        ranked.sort(key=lambda r: r["score"], reverse=True)
        winner = ranked[0]
        summary = f"{winner['package']} scores highest"
        if winner["reasons"]:
            summary += f" with {', '.join(winner['reasons'])}"
        recommendation = {"winner": winner["package"], "scores": ranked, "summary": summary}

    return {
        "success": True,
        "packages": validated.packages,
        "comparison": {"overview": overview, **sections},
        "recommendation": recommendation,
        "summary": summary,
    }
