"""Pydantic data models — registry documents, tool parameters and scores.

Registry documents keep unknown fields (``extra="allow"``) so nothing the
registry sends is lost on the way to the analysis tools.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

_PERSON_RE = re.compile(r"^\s*([^<(]*?)\s*(?:<([^>]*)>)?\s*(?:\(([^)]*)\))?\s*$")


class RegistryModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class DownloadPeriod(str, Enum):
    """Periods accepted by the download statistics endpoint."""

    LAST_DAY = "last-day"
    LAST_WEEK = "last-week"
    LAST_MONTH = "last-month"


class Person(RegistryModel):
    """Author, maintainer or publisher."""

    name: str = ""
    email: Optional[str] = None
    url: Optional[str] = None
    username: Optional[str] = None

    @classmethod
    def coerce(cls, value: Any) -> Any:
        """npm allows the ``"Name <email> (url)"`` shorthand for people.

        Old documents also carry lists of people or null fields; the first
        usable entry wins and anything unusable becomes None.
        """
        if isinstance(value, list):
            for item in value:
                person = cls.coerce(item)
                if person is not None:
                    return person
            return None
        if isinstance(value, str):
            match = _PERSON_RE.match(value)
            if match:
                return {"name": match.group(1), "email": match.group(2), "url": match.group(3)}
            return {"name": value}
        if isinstance(value, dict):
            return _string_values(value)
        return None


class Repository(RegistryModel):
    type: str = "git"
    url: str = ""
    directory: Optional[str] = None


class Dist(RegistryModel):
    tarball: str = ""
    shasum: str = ""
    integrity: Optional[str] = None
    file_count: Optional[int] = Field(None, alias="fileCount")
    unpacked_size: Optional[int] = Field(None, alias="unpackedSize")


def _string_values(value: dict) -> dict:
    return {k: v for k, v in value.items() if isinstance(v, str)}


def _first_string(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return next((v for v in value if isinstance(v, str)), None)
    return None


def _coerce_people(value: Any) -> list:
    items = value if isinstance(value, list) else [value]
    people = [Person.coerce(v) for v in items]
    return [p for p in people if p is not None]


def _coerce_repository(value: Any) -> Any:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, str):
        return {"type": "git", "url": value}
    if isinstance(value, dict):
        return _string_values(value)
    return None


def _coerce_keywords(value: Any) -> Any:
    if isinstance(value, str):
        return [k.strip() for k in value.split(",") if k.strip()]
    if isinstance(value, list):
        return [k for k in value if isinstance(k, str)]
    return []


def _coerce_string_map(value: Any) -> dict:
    return _string_values(value) if isinstance(value, dict) else {}


PersonField = Annotated[Optional[Person], BeforeValidator(Person.coerce)]
PeopleField = Annotated[list[Person], BeforeValidator(_coerce_people)]
RepositoryField = Annotated[Optional[Repository], BeforeValidator(_coerce_repository)]
KeywordsField = Annotated[list[str], BeforeValidator(_coerce_keywords)]
LooseStr = Annotated[Optional[str], BeforeValidator(_first_string)]
StringMap = Annotated[dict[str, str], BeforeValidator(_coerce_string_map)]


class PackageVersion(RegistryModel):
    """Metadata for one published version (a packument version entry)."""

    name: str = ""
    version: str = ""
    description: LooseStr = None
    main: Optional[Any] = None
    type: LooseStr = None
    module: Optional[Any] = None
    exports: Optional[Any] = None
    side_effects: Optional[Any] = Field(None, alias="sideEffects")
    types: Optional[Any] = None
    typings: Optional[Any] = None
    bin: Optional[Any] = None
    browser: Optional[Any] = None
    browserslist: Optional[Any] = None
    scripts: StringMap = Field(default_factory=dict)
    dependencies: StringMap = Field(default_factory=dict)
    dev_dependencies: StringMap = Field(default_factory=dict, alias="devDependencies")
    peer_dependencies: StringMap = Field(default_factory=dict, alias="peerDependencies")
    optional_dependencies: StringMap = Field(default_factory=dict, alias="optionalDependencies")
    dist: Dist = Field(default_factory=Dist)
    author: PersonField = None
    contributors: PeopleField = Field(default_factory=list)
    maintainers: PeopleField = Field(default_factory=list)
    license: Optional[Any] = None
    repository: RepositoryField = None
    homepage: LooseStr = None
    bugs: Optional[Any] = None
    keywords: KeywordsField = Field(default_factory=list)
    engines: Optional[Any] = None
    deprecated: Optional[Union[str, bool]] = None

    @property
    def deprecation_message(self) -> Optional[str]:
        if self.deprecated is None or self.deprecated is False:
            return None
        if self.deprecated is True:
            return "This version is deprecated."
        return str(self.deprecated)


class Packument(RegistryModel):
    """Full metadata document for a package: every version, tag and timestamp."""

    name: str
    description: LooseStr = None
    dist_tags: StringMap = Field(default_factory=dict, alias="dist-tags")
    versions: dict[str, PackageVersion] = Field(default_factory=dict)
    time: dict[str, Any] = Field(default_factory=dict)
    maintainers: PeopleField = Field(default_factory=list)
    author: PersonField = None
    repository: RepositoryField = None
    homepage: LooseStr = None
    bugs: Optional[Any] = None
    license: Optional[Any] = None
    readme: LooseStr = None
    readme_filename: LooseStr = Field(None, alias="readmeFilename")
    keywords: KeywordsField = Field(default_factory=list)

    @property
    def latest(self) -> Optional[str]:
        return self.dist_tags.get("latest")

    def resolve_version(self, version: Optional[str] = None) -> str:
        """Requested version, else the ``latest`` dist-tag, else ``"latest"``."""
        return version or self.latest or "latest"

    def published_at(self, version: str) -> Optional[str]:
        value = self.time.get(version)
        return value if isinstance(value, str) else None


class SearchLinks(RegistryModel):
    npm: Optional[str] = None
    homepage: LooseStr = None
    repository: Optional[str] = None
    bugs: Optional[str] = None


class SearchPackage(RegistryModel):
    name: str
    scope: Optional[str] = None
    version: str = ""
    description: LooseStr = None
    keywords: KeywordsField = Field(default_factory=list)
    date: Optional[str] = None
    links: SearchLinks = Field(default_factory=SearchLinks)
    author: PersonField = None
    publisher: PersonField = None
    maintainers: PeopleField = Field(default_factory=list)


class SearchScoreDetail(RegistryModel):
    quality: float = 0.0
    popularity: float = 0.0
    maintenance: float = 0.0


class SearchScore(RegistryModel):
    final: float = 0.0
    detail: SearchScoreDetail = Field(default_factory=SearchScoreDetail)


class SearchObject(RegistryModel):
    package: SearchPackage
    score: SearchScore = Field(default_factory=SearchScore)
    search_score: float = Field(0.0, alias="searchScore")


class SearchResponse(RegistryModel):
    """Ranked search results in registry order, plus the total match count."""

    objects: list[SearchObject] = Field(default_factory=list)
    total: int = 0
    time: Optional[str] = None


class DownloadStats(RegistryModel):
    downloads: int = 0
    start: Optional[str] = None
    end: Optional[str] = None
    package: str = ""


class CacheStats(BaseModel):
    size: int
    max_size: int


# ─── Tool parameters ─────────────────────────────────────────────────────────


class ToolParams(BaseModel):
    """Tool input. Accepts both snake_case and the camelCase names MCP clients send."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class SearchPackagesParams(ToolParams):
    query: str = Field(min_length=1)
    limit: int = Field(10, ge=1, le=50)


class PackageParams(ToolParams):
    package_name: str = Field(min_length=1)
    version: Optional[str] = None


class QualityParams(ToolParams):
    package_name: str = Field(min_length=1)


class CompatibilityParams(ToolParams):
    package_name: str = Field(min_length=1)
    version: Optional[str] = None
    existing_dependencies: dict[str, str]


class CompareVersionsParams(ToolParams):
    package_name: str = Field(min_length=1)
    from_version: str = Field(min_length=1)
    to_version: str = Field(min_length=1)


class NpxCommandParams(ToolParams):
    command: str = Field(min_length=1)
    args: list[str] = Field(default_factory=list)
    timeout: int = Field(30000, ge=1000, le=60000)


class ComparePackagesParams(ToolParams):
    packages: list[Annotated[str, Field(min_length=1)]] = Field(min_length=2, max_length=5)


# ─── Scores ──────────────────────────────────────────────────────────────────


class SeverityCounts(BaseModel):
    critical: int = 0
    high: int = 0
    moderate: int = 0
    low: int = 0
    info: int = 0


class GitHubMetrics(BaseModel):
    """Repository health as reported by the GitHub API."""

    stars: int = 0
    forks: int = 0
    watchers: int = 0
    open_issues: int = 0
    last_push: Optional[str] = None
    is_archived: bool = False
    has_issues: bool = True
    default_branch: Optional[str] = None


class QualityScores(BaseModel):
    overall: int = Field(ge=0, le=100)
    popularity: int = Field(ge=0, le=100)
    maintenance: int = Field(ge=0, le=100)
    community: int = Field(ge=0, le=100)


class BundleImpact(BaseModel):
    level: str
    rating: str
    gzip_bytes: float
    description: str


class TreeshakingAnalysis(BaseModel):
    supported: bool
    has_esm: bool
    has_side_effects: bool
    description: str


# ─── Capabilities ────────────────────────────────────────────────────────────


class ModuleSystemReport(BaseModel):
    esm: bool = False
    commonjs: bool = False
    umd: bool = False
    dual_package: bool = False
    details: list[str] = Field(default_factory=list)


class TypeScriptSupport(BaseModel):
    has_types: bool = False
    types_location: Optional[str] = None
    is_typescript_package: bool = False
    details: list[str] = Field(default_factory=list)


class PlatformSupport(BaseModel):
    node: bool = False
    browser: bool = False
    deno: bool = False
    bun: bool = False
    react: bool = False
    react_native: bool = False
    details: list[str] = Field(default_factory=list)


class ExportsReport(BaseModel):
    has_exports: bool = False
    conditional_exports: bool = False
    subpath_exports: bool = False
    exports: Optional[Any] = None
    details: list[str] = Field(default_factory=list)


class BuildToolsReport(BaseModel):
    tools: list[str] = Field(default_factory=list)
    details: str = ""


class EngineRequirements(BaseModel):
    node: Optional[str] = None
    npm: Optional[str] = None
    yarn: Optional[str] = None
    pnpm: Optional[str] = None
    details: list[str] = Field(default_factory=list)
