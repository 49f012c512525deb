"""
Discovery Engine

Inspects a project to build an AppProfile:
- Frameworks and UI libraries from package.json plus marker files
- Selector conventions (which test attribute, which naming style)
- Authentication hints (cached discovery artifact first, then a file scan)

Every detector returns an empty/default result on a missing manifest or
source tree. An empty project is an ordinary input.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import ValidationError

from .models import (
    AppProfile,
    AuthHints,
    FrameworkSignal,
    RuntimeStatus,
    SelectorSignals,
    UILibrarySignal,
    utc_now,
)
from .storage import load_document, save_document

logger = logging.getLogger(__name__)

PROFILE_FILENAME = "discovered-profile.json"
REDACTED = "[REDACTED]"

# Scan limits
MAX_SCAN_DEPTH = 20
MAX_FILES_TO_SCAN = 5000
MAX_SAMPLE_SELECTORS = 50
KEPT_SAMPLE_SELECTORS = 10

SELECTOR_SCAN_EXTENSIONS = (".tsx", ".jsx", ".vue", ".html", ".ts", ".js")
COMPONENT_EXTENSIONS = (".tsx", ".jsx", ".vue", ".ts", ".js")

# Confidence increments
PACKAGE_CONFIDENCE_BOOST = 0.3
FILE_CONFIDENCE_BOOST = 0.2
UI_PACKAGE_CONFIDENCE_BOOST = 0.25
UI_ENTERPRISE_BOOST = 0.15

DEFAULT_PRIMARY_ATTRIBUTE = "data-testid"


# ==================== Detection Tables ====================

FRAMEWORK_PATTERNS: Dict[str, Dict] = {
    "react": {
        "packages": ["react", "react-dom"],
        "files": ["src/App.tsx", "src/App.jsx", "src/index.tsx", "src/index.jsx"],
        "base_confidence": 0.95,
    },
    "angular": {
        "packages": ["@angular/core", "@angular/common"],
        "files": ["angular.json", "src/app/app.module.ts", "src/app/app.component.ts"],
        "base_confidence": 0.95,
    },
    "vue": {
        "packages": ["vue"],
        "files": ["src/App.vue", "src/main.ts", "vue.config.js", "vite.config.ts"],
        "base_confidence": 0.90,
    },
    "nextjs": {
        "packages": ["next"],
        "files": ["next.config.js", "next.config.mjs", "next.config.ts", "src/app/page.tsx", "pages/_app.tsx"],
        "base_confidence": 0.95,
    },
    "svelte": {
        "packages": ["svelte"],
        "files": ["svelte.config.js", "src/App.svelte"],
        "base_confidence": 0.90,
    },
}

UI_LIBRARY_PATTERNS: Dict[str, Dict] = {
    "mui": {
        "packages": ["@mui/material", "@mui/core", "@emotion/react", "@emotion/styled"],
        "enterprise_packages": ["@mui/x-data-grid-pro", "@mui/x-data-grid-premium"],
        "base_confidence": 0.85,
    },
    "antd": {
        "packages": ["antd", "@ant-design/icons"],
        "enterprise_packages": ["@ant-design/pro-components", "@ant-design/pro-layout"],
        "base_confidence": 0.85,
    },
    "chakra": {
        "packages": ["@chakra-ui/react", "@chakra-ui/core"],
        "enterprise_packages": [],
        "base_confidence": 0.85,
    },
    "ag-grid": {
        "packages": ["ag-grid-community", "ag-grid-react", "ag-grid-angular", "ag-grid-vue"],
        "enterprise_packages": ["ag-grid-enterprise", "@ag-grid-enterprise/core"],
        "base_confidence": 0.90,
    },
    "tailwind": {
        "packages": ["tailwindcss"],
        "enterprise_packages": [],
        "base_confidence": 0.80,
    },
    "bootstrap": {
        "packages": ["bootstrap", "react-bootstrap", "ng-bootstrap", "bootstrap-vue"],
        "enterprise_packages": [],
        "base_confidence": 0.80,
    },
}

# Candidate selector attributes; order breaks coverage ties
SELECTOR_ATTRIBUTES = ["data-testid", "data-cy", "data-test", "data-test-id", "aria-label", "role"]
SELECTOR_PATTERNS: Dict[str, re.Pattern] = {
    attr: re.compile(rf"""{re.escape(attr)}=['"]([^'"]+)['"]""") for attr in SELECTOR_ATTRIBUTES
}

AUTH_FILE_PATTERN = re.compile(r"auth|login|signin|oauth|sso", re.IGNORECASE)
# Checked in order; first family with a hit wins
AUTH_CODE_PATTERNS: List[Tuple[str, List[re.Pattern]]] = [
    ("oidc", [re.compile(p, re.IGNORECASE) for p in (r"oidc", r"openid", r"id_token", r"authorization_code")]),
    ("oauth", [re.compile(p, re.IGNORECASE) for p in (r"oauth", r"access_token", r"refresh_token")]),
    ("form", [re.compile(p, re.IGNORECASE) for p in (r"login.*form", r"username.*password", r"signin")]),
    ("sso", [re.compile(p, re.IGNORECASE) for p in (r"sso", r"saml", r"federation")]),
]
LOGIN_ROUTE_PATTERN = re.compile(r"""['"](/login|/signin|/auth)['"]""", re.IGNORECASE)


@dataclass
class DiscoveryResult:
    """Outcome of a discovery run"""
    success: bool
    profile: Optional[AppProfile]
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


# ==================== Manifest ====================

def _read_dependencies(project_root: Path) -> Dict[str, str]:
    """dependencies + devDependencies from package.json, {} when unusable."""
    manifest_path = Path(project_root) / "package.json"
    if not manifest_path.is_file():
        return {}
    try:
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"[DISCOVERY] Unreadable package.json at {manifest_path}: {e}")
        return {}
    if not isinstance(manifest, dict):
        return {}

    deps: Dict[str, str] = {}
    for section in ("dependencies", "devDependencies"):
        values = manifest.get(section)
        if isinstance(values, dict):
            deps.update({str(k): str(v) for k, v in values.items() if v})
    return deps


def detect_frameworks(project_root) -> List[FrameworkSignal]:
    """Detect frameworks, strongest first."""
    root = Path(project_root)
    if not (root / "package.json").is_file():
        return []
    deps = _read_dependencies(root)

    signals = []
    for name, table in FRAMEWORK_PATTERNS.items():
        evidence = []
        confidence = 0.0

        for pkg in table["packages"]:
            if pkg in deps:
                evidence.append(f"package.json:{pkg}@{deps[pkg]}")
                confidence += PACKAGE_CONFIDENCE_BOOST

        for marker in table["files"]:
            if (root / marker).exists():
                evidence.append(f"file:{marker}")
                confidence += FILE_CONFIDENCE_BOOST

        if not evidence:
            continue

        primary = table["packages"][0]
        version = re.sub(r"[\^~>=<]", "", deps[primary], count=1) if primary in deps else None
        signals.append(FrameworkSignal(
            name=name,
            version=version,
            confidence=round(min(confidence, table["base_confidence"]), 2),
            evidence=evidence,
        ))

    signals.sort(key=lambda s: s.confidence, reverse=True)
    return signals


def detect_ui_libraries(project_root) -> List[UILibrarySignal]:
    """Detect UI component libraries, strongest first."""
    deps = _read_dependencies(Path(project_root))

    signals = []
    for name, table in UI_LIBRARY_PATTERNS.items():
        evidence = []
        confidence = 0.0
        has_enterprise = False

        for pkg in table["packages"]:
            if pkg in deps:
                evidence.append(f"package.json:{pkg}")
                confidence += UI_PACKAGE_CONFIDENCE_BOOST

        for pkg in table["enterprise_packages"]:
            if pkg in deps:
                evidence.append(f"package.json:{pkg} (enterprise)")
                confidence += UI_ENTERPRISE_BOOST
                has_enterprise = True

        if evidence:
            signals.append(UILibrarySignal(
                name=name,
                confidence=round(min(confidence, table["base_confidence"]), 2),
                evidence=evidence,
                has_enterprise=has_enterprise,
            ))

    signals.sort(key=lambda s: s.confidence, reverse=True)
    return signals


# ==================== Selector Signals ====================

def _walk_source_files(directory: Path, extensions: Tuple[str, ...],
                       max_depth: int = MAX_SCAN_DEPTH, max_files: Optional[int] = None):
    """Yield files under directory, skipping node_modules, dot-dirs and symlinks."""
    count = 0
    stack = [(directory, 0)]
    while stack:
        current, depth = stack.pop(0)
        if depth > max_depth:
            continue
        try:
            entries = sorted(os.scandir(current), key=lambda e: e.name)
        except OSError:
            continue
        for entry in entries:
            if entry.is_symlink():
                continue
            if entry.is_dir():
                if entry.name != "node_modules" and not entry.name.startswith("."):
                    stack.append((Path(entry.path), depth + 1))
            elif entry.is_file() and entry.name.endswith(extensions):
                count += 1
                if max_files is not None and count > max_files:
                    return
                yield Path(entry.path)


def detect_naming_convention(samples: List[str]) -> str:
    """Majority vote over sampled selector values."""
    if not samples:
        return "kebab-case"

    kebab = sum(1 for s in samples if "-" in s)
    camel = sum(1 for s in samples if re.search(r"[a-z][A-Z]", s))
    snake = sum(1 for s in samples if "_" in s)

    top = max(kebab, camel, snake)
    if top == 0:
        return "kebab-case"
    winners = [name for name, count in (("kebab-case", kebab), ("camelCase", camel), ("snake_case", snake))
               if count == top]
    return winners[0] if len(winners) == 1 else "mixed"


def analyze_selector_signals(project_root) -> SelectorSignals:
    """Count test-attribute usage in src/ and pick the dominant one."""
    counts = {attr: 0 for attr in SELECTOR_ATTRIBUTES}
    samples: List[str] = []
    total_components = 0

    src_dir = Path(project_root) / "src"
    if src_dir.is_dir():
        for path in _walk_source_files(src_dir, SELECTOR_SCAN_EXTENSIONS, max_files=MAX_FILES_TO_SCAN):
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.debug(f"[DISCOVERY] Skipping unreadable {path}: {e}")
                continue
            for attr, pattern in SELECTOR_PATTERNS.items():
                for match in pattern.finditer(content):
                    counts[attr] += 1
                    if len(samples) < MAX_SAMPLE_SELECTORS:
                        samples.append(match.group(1))

        total_components = sum(1 for _ in _walk_source_files(src_dir, COMPONENT_EXTENSIONS))

    total = sum(counts.values())
    coverage = {attr: (count / total if total else 0.0) for attr, count in counts.items()}

    primary = DEFAULT_PRIMARY_ATTRIBUTE
    if total:
        # max() keeps the first attribute in table order on ties
        primary = max(SELECTOR_ATTRIBUTES, key=lambda attr: counts[attr])

    return SelectorSignals(
        primary_attribute=primary,
        naming_convention=detect_naming_convention(samples),
        coverage=coverage,
        total_components_analyzed=total_components,
        sample_selectors=samples[:KEPT_SAMPLE_SELECTORS],
    )


# ==================== Auth Hints ====================

def _cached_auth_hints(project_root: Path) -> Optional[AuthHints]:
    discovery_path = project_root / ".artk" / "discovery.json"
    if not discovery_path.is_file():
        return None
    try:
        data = json.loads(discovery_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"[DISCOVERY] Ignoring unreadable {discovery_path}: {e}")
        return None
    if not isinstance(data, dict) or not isinstance(data.get("auth"), dict):
        return None

    auth = data["auth"]
    try:
        return AuthHints(
            detected=True,
            type=auth.get("type"),
            login_route=auth.get("loginRoute"),
            selectors=auth.get("selectors") or {},
            bypass_available=auth.get("bypassAvailable"),
            bypass_method=auth.get("bypassMethod"),
        )
    except ValidationError as e:
        logger.warning(f"[DISCOVERY] Invalid auth block in {discovery_path}: {e}")
        return None


def extract_auth_hints(project_root) -> AuthHints:
    """Auth hints from .artk/discovery.json, else from auth-looking source files."""
    root = Path(project_root)
    cached = _cached_auth_hints(root)
    if cached is not None:
        return cached

    hints = AuthHints()
    src_dir = root / "src"
    if not src_dir.is_dir():
        return hints

    for path in _walk_source_files(src_dir, ("",)):
        if not AUTH_FILE_PATTERN.search(path.name):
            continue
        hints.detected = True
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue

        if hints.type is None:
            for auth_type, patterns in AUTH_CODE_PATTERNS:
                if any(p.search(content) for p in patterns):
                    hints.type = auth_type
                    break

        if hints.login_route is None:
            route = LOGIN_ROUTE_PATTERN.search(content)
            if route:
                hints.login_route = route.group(1)

    return hints


# ==================== Orchestration ====================

def run_discovery(project_root) -> DiscoveryResult:
    """Run every detector and assemble the AppProfile."""
    root = Path(project_root)
    if not root.exists():
        return DiscoveryResult(
            success=False,
            profile=None,
            errors=[f"Project root does not exist: {project_root}"],
        )

    errors: List[str] = []
    warnings: List[str] = []
    frameworks: List[FrameworkSignal] = []
    ui_libraries: List[UILibrarySignal] = []

    try:
        frameworks = detect_frameworks(root)
        if not frameworks:
            warnings.append("No frameworks detected")
    except Exception as e:
        errors.append(f"Framework detection failed: {e}")

    try:
        ui_libraries = detect_ui_libraries(root)
    except Exception as e:
        warnings.append(f"UI library detection failed: {e}")

    try:
        selector_signals = analyze_selector_signals(root)
    except Exception as e:
        warnings.append(f"Selector analysis failed: {e}")
        selector_signals = SelectorSignals()

    try:
        auth = extract_auth_hints(root)
    except Exception as e:
        warnings.append(f"Auth hint extraction failed: {e}")
        auth = AuthHints()

    profile = AppProfile(
        version="1.0",
        generated_at=utc_now(),
        project_root=str(project_root),
        frameworks=frameworks,
        ui_libraries=ui_libraries,
        selector_signals=selector_signals,
        auth=auth,
        runtime=RuntimeStatus(),
    )

    logger.info(
        f"[DISCOVERY] {root}: frameworks={[f.name for f in frameworks]} "
        f"ui={[u.name for u in ui_libraries]} primary={selector_signals.primary_attribute}"
    )
    return DiscoveryResult(success=not errors, profile=profile, errors=errors, warnings=warnings)


def save_discovered_profile(profile: AppProfile, output_dir) -> Path:
    """Write discovered-profile.json with the project path and auth selectors redacted."""
    redacted = profile.model_copy(deep=True)
    redacted.project_root = Path(profile.project_root).name
    redacted.auth.selectors = {key: REDACTED for key in profile.auth.selectors}
    return save_document(Path(output_dir) / PROFILE_FILENAME, redacted)


def load_discovered_profile(llkb_dir) -> Optional[AppProfile]:
    return load_document(Path(llkb_dir) / PROFILE_FILENAME, AppProfile)
