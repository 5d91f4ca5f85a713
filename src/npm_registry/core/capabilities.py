"""Package capability detection — module format, TypeScript, platforms, exports.

Reads only the fields of a published version document. Each detector
returns a pydantic model with the booleans and human-readable details
lines the capabilities and package comparison tools report.
"""

from __future__ import annotations

from typing import Any, Iterable

from .models import (
    BuildToolsReport,
    EngineRequirements,
    ExportsReport,
    ModuleSystemReport,
    PackageVersion,
    PlatformSupport,
    TypeScriptSupport,
)

# devDependency name -> tool label, in report order
BUILD_TOOLS = [
    ("webpack", "Webpack"),
    ("rollup", "Rollup"),
    ("vite", "Vite"),
    ("esbuild", "esbuild"),
    ("tsup", "tsup"),
    ("typescript", "TypeScript compiler"),
    ("@babel/core", "Babel"),
    ("babel", "Babel"),
    ("@swc/core", "SWC"),
    ("swc", "SWC"),
]

ENGINE_LABELS = {"node": "Node.js", "npm": "npm", "yarn": "Yarn", "pnpm": "pnpm"}


def export_conditions(exports: Any) -> set[str]:
    """Every condition and subpath key found anywhere in an ``exports`` value."""
    keys: set[str] = set()
    if isinstance(exports, dict):
        for key, value in exports.items():
            keys.add(key)
            keys |= export_conditions(value)
    elif isinstance(exports, list):
        for item in exports:
            keys |= export_conditions(item)
    return keys


def _export_targets(exports: Any) -> Iterable[str]:
    if isinstance(exports, str):
        yield exports
    elif isinstance(exports, dict):
        for value in exports.values():
            yield from _export_targets(value)
    elif isinstance(exports, list):
        for item in exports:
            yield from _export_targets(item)


def _has_keyword(data: PackageVersion, keyword: str) -> bool:
    return keyword in data.keywords


def module_system(data: PackageVersion) -> ModuleSystemReport:
    """ESM, CommonJS, UMD and dual-package support."""
    esm = commonjs = umd = dual = False
    details = []

    if data.type == "module":
        esm = True
        details.append('Package type: "module" (native ESM)')

    if data.exports:
        esm = True
        details.append('Has "exports" field (conditional exports)')
        conditions = export_conditions(data.exports)
        if "import" in conditions and "require" in conditions:
            dual = commonjs = True
            details.append("Dual package: ESM + CommonJS support")
        elif "import" in conditions:
            details.append("ESM-only via exports.import")
        elif "require" in conditions:
            commonjs = True
            details.append("CommonJS via exports.require")

    if data.module:
        esm = True
        details.append(f"ESM entry: {data.module}")

    if isinstance(data.main, str) and data.main:
        if data.main.endswith(".mjs"):
            esm = True
            details.append(f"Main file: {data.main} (ESM)")
        elif data.main.endswith(".cjs"):
            commonjs = True
            details.append(f"Main file: {data.main} (CommonJS)")
        else:
            commonjs = True
            details.append(f"Main file: {data.main} (likely CommonJS)")

    if data.browser or _has_keyword(data, "umd"):
        umd = True
        details.append("UMD support detected")

    if not esm and data.dist.tarball:
        details.append("Check tarball for .mjs files for ESM support")

    return ModuleSystemReport(esm=esm, commonjs=commonjs, umd=umd, dual_package=dual, details=details)


def typescript_support(data: PackageVersion) -> TypeScriptSupport:
    """Bundled type definitions, @types packages and TypeScript builds."""
    has_types = is_typescript = False
    location = None
    details = []

    declared = data.types or data.typings
    if isinstance(declared, str) and declared:
        has_types = True
        location = declared
        details.append(f"Type definitions: {location}")

    types_package = f"@types/{data.name}"
    if types_package in data.dev_dependencies or types_package in data.dependencies:
        details.append("Uses @types/ package for types")

    if data.name.startswith("@types/"):
        has_types = is_typescript = True
        details.append("This is a TypeScript definition package")

    if data.exports:
        in_conditions = "types" in export_conditions(data.exports)
        if in_conditions or any(t.endswith(".d.ts") for t in _export_targets(data.exports)):
            has_types = True
            details.append("Type definitions in exports field")

    if "typescript" in data.dev_dependencies:
        is_typescript = True
        details.append("Built with TypeScript")

    if not has_types and not is_typescript:
        details.append(f"May need @types/{data.name} for TypeScript support")

    return TypeScriptSupport(
        has_types=has_types,
        types_location=location,
        is_typescript_package=is_typescript,
        details=details,
    )


def platform_support(data: PackageVersion) -> PlatformSupport:
    """Runtimes and frameworks the version declares or implies."""
    report = PlatformSupport()
    engines = data.engines if isinstance(data.engines, dict) else {}

    if engines.get("node") or data.main:
        report.node = True
        if engines.get("node"):
            report.details.append(f"Node.js: {engines['node']}")
        else:
            report.details.append("Node.js: Supported (has main entry)")

    if data.browser or data.browserslist:
        report.browser = True
        if isinstance(data.browser, str):
            report.details.append(f"Browser entry: {data.browser}")
        else:
            report.details.append("Browser support via browser field")

    if data.exports and "browser" in export_conditions(data.exports):
        report.browser = True
        report.details.append("Browser support in exports")

    if _has_keyword(data, "deno") or (data.model_extra or {}).get("deno"):
        report.deno = True
        report.details.append("Deno support")

    if _has_keyword(data, "bun"):
        report.bun = True
        report.details.append("Bun support")

    if "react" in data.peer_dependencies or "react" in data.dependencies or _has_keyword(data, "react"):
        report.react = True
        report.details.append("React component/library")

    if "react-native" in data.peer_dependencies or _has_keyword(data, "react-native"):
        report.react_native = True
        report.details.append("React Native support")

    return report


def exports_report(data: PackageVersion) -> ExportsReport:
    if not data.exports:
        return ExportsReport(details=["No exports field (uses main/module)"])

    report = ExportsReport(has_exports=True, exports=data.exports)
    conditions = export_conditions(data.exports)
    if conditions & {"import", "require", "types"}:
        report.conditional_exports = True
        report.details.append("Conditional exports (import/require/types)")

    if isinstance(data.exports, dict):
        subpaths = [k for k in data.exports if k.startswith("./")]
        if subpaths:
            report.subpath_exports = True
            report.details.append("Subpath exports available")
            report.details.append(f"Subpaths: {', '.join(subpaths)}")
    return report


def build_tools(data: PackageVersion) -> BuildToolsReport:
    tools: list[str] = []
    for dependency, label in BUILD_TOOLS:
        if dependency in data.dev_dependencies and label not in tools:
            tools.append(label)
    details = f"Built with: {', '.join(tools)}" if tools else "Build tools not detected"
    return BuildToolsReport(tools=tools, details=details)


def engine_requirements(data: PackageVersion) -> EngineRequirements:
    if not isinstance(data.engines, dict) or not data.engines:
        return EngineRequirements(details=["No engine requirements specified"])

    report = EngineRequirements()
    for engine, label in ENGINE_LABELS.items():
        required = data.engines.get(engine)
        if isinstance(required, str) and required:
            setattr(report, engine, required)
            report.details.append(f"{label}: {required}")
    return report


def platform_names(platform: PlatformSupport) -> list[str]:
    flags = [
        (platform.node, "Node.js"),
        (platform.browser, "Browser"),
        (platform.deno, "Deno"),
        (platform.bun, "Bun"),
    ]
    return [name for enabled, name in flags if enabled]


def capabilities_summary(
    modules: ModuleSystemReport,
    typescript: TypeScriptSupport,
    platform: PlatformSupport,
    exports: ExportsReport,
) -> str:
    lines = []
    if modules.dual_package:
        lines.append("✅ Dual Package: ESM + CommonJS")
    elif modules.esm:
        lines.append("✅ ESM (ES Modules)")
    elif modules.commonjs:
        lines.append("✅ CommonJS")

    if typescript.has_types:
        lines.append("✅ TypeScript definitions included")
    else:
        lines.append("⚠️ No TypeScript definitions (may need @types package)")

    platforms = platform_names(platform)
    if platforms:
        lines.append(f"✅ Platforms: {', '.join(platforms)}")

    if exports.has_exports:
        lines.append("✅ Modern package (uses exports field)")
    return "\n".join(lines)
