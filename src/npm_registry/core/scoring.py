"""Package scoring — security, quality and bundle-size heuristics.

Deterministic arithmetic over fields the registry (and GitHub/bundlephobia,
when reachable) already report. No network access here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from .models import (
    BundleImpact,
    GitHubMetrics,
    PackageVersion,
    QualityScores,
    SeverityCounts,
    TreeshakingAnalysis,
)

SEVERITY_WEIGHTS = {"critical": 40, "high": 20, "moderate": 10, "low": 5}

# (exclusive lower bound on weekly downloads, score), highest first
POPULARITY_TIERS = [
    (1_000_000, 100),
    (500_000, 90),
    (100_000, 80),
    (50_000, 70),
    (10_000, 60),
    (5_000, 50),
    (1_000, 40),
    (100, 30),
    (10, 20),
]

# (exclusive lower bound on days since last publish, score), oldest first
MAINTENANCE_TIERS = [
    (365, 20),
    (180, 50),
    (90, 70),
    (30, 85),
]

# (exclusive upper bound on gzip bytes, level, rating)
BUNDLE_IMPACT_TIERS = [
    (10_000, "Minimal", "✅ Excellent"),
    (50_000, "Low", "✅ Good"),
    (100_000, "Moderate", "⚠️ Medium"),
    (500_000, "High", "⚠️ Large"),
]

GZIP_ESTIMATE_RATIO = 0.3


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_since(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """Fractional days between an ISO timestamp and ``now`` (UTC)."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    now = now or datetime.now(timezone.utc)
    return (now - parsed).total_seconds() / 86400


# ─── Security ────────────────────────────────────────────────────────────────


def count_severities(advisories: Iterable[dict]) -> SeverityCounts:
    counts = SeverityCounts()
    for advisory in advisories:
        severity = str(advisory.get("severity") or "").lower()
        if severity in SeverityCounts.model_fields:
            setattr(counts, severity, getattr(counts, severity) + 1)
    return counts


def security_score(counts: SeverityCounts) -> int:
    """100 minus weighted severity counts, floored at 0."""
    penalty = sum(getattr(counts, name) * weight for name, weight in SEVERITY_WEIGHTS.items())
    return max(0, 100 - penalty)


# ─── Quality ─────────────────────────────────────────────────────────────────


def maintenance_score(days_since_publish: Optional[float]) -> int:
    if days_since_publish is None:
        return MAINTENANCE_TIERS[0][1]
    for threshold, score in MAINTENANCE_TIERS:
        if days_since_publish > threshold:
            return score
    return 100


def popularity_score(weekly_downloads: int) -> int:
    for threshold, score in POPULARITY_TIERS:
        if weekly_downloads > threshold:
            return score
    return 10


def community_score(github: Optional[GitHubMetrics]) -> float:
    """Stars, forks and archive status; 50 when no repository data is available."""
    if github is None:
        return 50.0
    stars = min(github.stars / 10_000 * 100, 100)
    forks = min(github.forks / 1_000 * 100, 100)
    active = 0 if github.is_archived else 100
    return stars * 0.5 + forks * 0.3 + active * 0.2


def overall_quality_score(popularity: float, maintenance: float, community: float) -> int:
    return round(popularity * 0.4 + maintenance * 0.4 + community * 0.2)


def compute_quality_scores(
    days_since_publish: Optional[float],
    weekly_downloads: int,
    github: Optional[GitHubMetrics],
) -> QualityScores:
    popularity = popularity_score(weekly_downloads)
    maintenance = maintenance_score(days_since_publish)
    community = community_score(github)
    return QualityScores(
        overall=overall_quality_score(popularity, maintenance, community),
        popularity=popularity,
        maintenance=maintenance,
        community=round(community),
    )


def quality_assessment(
    overall: int,
    days_since_publish: Optional[float],
    weekly_downloads: int,
    github: Optional[GitHubMetrics],
) -> list[str]:
    assessment = []

    if overall >= 80:
        assessment.append("✅ High quality package with strong community support.")
    elif overall >= 60:
        assessment.append("✓ Good quality package, suitable for production use.")
    elif overall >= 40:
        assessment.append("⚠️ Moderate quality. Review carefully before using.")
    else:
        assessment.append("❌ Low quality or unmaintained. Consider alternatives.")

    if days_since_publish is not None:
        if days_since_publish > 365:
            assessment.append("📅 Not actively maintained (1+ year since last update).")
        elif days_since_publish > 180:
            assessment.append("📅 Infrequently updated (6+ months since last update).")
        elif days_since_publish < 30:
            assessment.append("🔄 Actively maintained with recent updates.")

    if weekly_downloads > 100_000:
        assessment.append("📈 Very popular with high weekly downloads.")
    elif weekly_downloads > 10_000:
        assessment.append("📊 Popular package with good adoption.")
    elif weekly_downloads < 100:
        assessment.append("📉 Low download numbers. Verify if suitable for your needs.")

    if github is None:
        assessment.append("ℹ️ No GitHub repository found or accessible.")
    elif github.is_archived:
        assessment.append("🗄️ Repository is archived. Package is no longer maintained.")
    elif github.stars > 10_000:
        assessment.append("⭐ Strong community support on GitHub.")

    return assessment


# ─── Bundle size ─────────────────────────────────────────────────────────────


def format_bytes(num_bytes: float) -> str:
    if num_bytes <= 0:
        return "0 B"
    value = float(num_bytes)
    for unit in ("B", "KB"):
        if value < 1024:
            return f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} MB"


def estimated_gzip_bytes(unpacked_size: int, bundle_data: Optional[dict]) -> float:
    """Bundlephobia's gzip size, else 30% of the unpacked size."""
    if bundle_data and bundle_data.get("gzip"):
        return bundle_data["gzip"]
    return unpacked_size * GZIP_ESTIMATE_RATIO


def bundle_impact(unpacked_size: int, bundle_data: Optional[dict]) -> BundleImpact:
    gzip_bytes = estimated_gzip_bytes(unpacked_size, bundle_data)
    level, rating = "Very High", "❌ Very Large"
    for threshold, tier_level, tier_rating in BUNDLE_IMPACT_TIERS:
        if gzip_bytes < threshold:
            level, rating = tier_level, tier_rating
            break
    return BundleImpact(
        level=level,
        rating=rating,
        gzip_bytes=gzip_bytes,
        description=f"This package will add approximately {format_bytes(gzip_bytes)} to your bundle (gzipped)",
    )


def _has_esm(version: PackageVersion) -> bool:
    return version.type == "module" or bool(version.module) or bool(version.exports)


def treeshaking_analysis(version: PackageVersion) -> TreeshakingAnalysis:
    has_esm = _has_esm(version)
    has_side_effects = version.side_effects is not False
    if has_esm and not has_side_effects:
        description = "✅ Supports tree-shaking (ESM + no side effects)"
    elif has_esm:
        description = "⚠️ ESM but may have side effects"
    else:
        description = "❌ CommonJS - no tree-shaking"
    return TreeshakingAnalysis(
        supported=has_esm and not has_side_effects,
        has_esm=has_esm,
        has_side_effects=has_side_effects,
        description=description,
    )


def size_recommendations(
    unpacked_size: int,
    bundle_data: Optional[dict],
    version: PackageVersion,
) -> list[str]:
    recommendations = []
    gzip_bytes = estimated_gzip_bytes(unpacked_size, bundle_data)

    if gzip_bytes > 100_000:
        recommendations.append("⚠️ Large bundle size - consider alternatives or code splitting")
    if gzip_bytes > 500_000:
        recommendations.append("❌ Very large! This will significantly impact load time")

    if not (version.type == "module" or version.module):
        recommendations.append("💡 Package uses CommonJS - look for ESM version for better tree-shaking")
    if version.side_effects is not False:
        recommendations.append("💡 Package may have side effects - tree-shaking might be limited")

    dep_count = len(version.dependencies)
    if dep_count > 10:
        recommendations.append(f"⚠️ Has {dep_count} dependencies - increases bundle size")

    if version.exports:
        recommendations.append("✅ Uses exports field - import only what you need")

    if gzip_bytes > 50_000:
        recommendations.append("💡 Consider lighter alternatives or lodash-style per-method imports")

    if not recommendations:
        recommendations.append("✅ Bundle size is reasonable")
    return recommendations


# ─── Package comparison ──────────────────────────────────────────────────────

# (exclusive upper bound on days since last update, status)
UPDATE_STATUS_TIERS = [
    (30, "Recently updated"),
    (90, "Active"),
    (365, "Maintained"),
]

# (exclusive lower bound on share of the top package's downloads, label)
RELATIVE_POPULARITY_TIERS = [
    (75, "Very popular"),
    (50, "Popular"),
    (25, "Moderate"),
]


def update_status(days_since_update: Optional[float]) -> str:
    if days_since_update is None:
        return "Unknown"
    for threshold, status in UPDATE_STATUS_TIERS:
        if days_since_update < threshold:
            return status
    return "Stale"


def relative_popularity(share: float) -> str:
    for threshold, label in RELATIVE_POPULARITY_TIERS:
        if share > threshold:
            return label
    return "Less popular"


def comparison_score(
    version: PackageVersion,
    weekly_downloads: int,
    days_since_update: Optional[float],
) -> tuple[int, list[str]]:
    """Points for modern modules, types, popularity, freshness and small size."""
    score, reasons = 0, []
    if version.type == "module" or version.exports:
        score += 10
        reasons.append("Modern ESM support")
    if version.types or version.typings:
        score += 10
        reasons.append("TypeScript support")

    if weekly_downloads > 100_000:
        score += 20
        reasons.append("Popular")
    elif weekly_downloads > 10_000:
        score += 10

    if days_since_update is not None and days_since_update < 30:
        score += 15
        reasons.append("Recently updated")
    elif days_since_update is not None and days_since_update < 90:
        score += 10

    size = version.dist.unpacked_size or 0
    if 0 < size < 100_000:
        score += 5
        reasons.append("Small size")
    return score, reasons
