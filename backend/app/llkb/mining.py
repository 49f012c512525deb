"""
Source Miners

Lightweight text scanners that turn a project's source files into
structured UI elements: entities, routes, forms, tables and modals.

Each miner is a plain function sharing one signature:

    miner(files: List[ScannedFile], project_root: Path) -> List[element]

`MINERS` is the registry; adding a miner means adding one function.
`mine_elements` scans the source tree once and runs every registered
miner over the shared file list. Miners never raise on missing
directories, unreadable files or zero matches; they return empty lists.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from .pluralization import pluralize, singularize

logger = logging.getLogger(__name__)

# Scan limits
MAX_SCAN_DEPTH = 15
MAX_FILES_TO_SCAN = 3000
MAX_FILE_SIZE_BYTES = 5 * 1024 * 1024
MAX_REGEX_ITERATIONS = 10000

SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".vue", ".svelte")
SKIPPED_DIRECTORIES = {"node_modules", "dist", "build"}

# Directories scanned by mine_elements, in order
SOURCE_DIRECTORIES = [
    "src", "app",
    "components", "lib",
    "pages", "views",
    "models", "entities", "types",
    "routes",
    "forms", "schemas", "validation",
    "tables", "grids",
    "modals", "dialogs",
    "features", "modules", "services", "utils", "helpers", "api",
    "stores", "hooks", "contexts", "providers", "layouts", "shared", "common",
]

# Directories each standalone miner looks at
ENTITY_DIRECTORIES = ["src", "app", "lib", "pages", "components", "models", "entities", "types"]
ROUTE_DIRECTORIES = ["src", "app", "pages", "routes", "views"]
FORM_DIRECTORIES = ["src", "app", "components", "forms", "schemas", "validation"]
TABLE_DIRECTORIES = ["src", "app", "components", "tables", "grids", "views"]
MODAL_DIRECTORIES = ["src", "app", "components", "modals", "dialogs"]


# ==================== Element Types ====================

@dataclass
class ScannedFile:
    """A source file read once and shared by all miners"""
    path: Path
    content: str


@dataclass
class DiscoveredEntity:
    name: str
    singular: str
    plural: str
    source: Optional[str] = None
    endpoint: Optional[str] = None
    selectors: Dict[str, str] = field(default_factory=dict)


@dataclass
class DiscoveredRoute:
    path: str
    name: str
    params: List[str] = field(default_factory=list)
    component: Optional[str] = None


@dataclass
class FormField:
    name: str
    type: str = "text"
    label: Optional[str] = None
    selector: Optional[str] = None
    required: bool = False


@dataclass
class DiscoveredForm:
    id: str
    name: str
    fields: List[FormField] = field(default_factory=list)
    submit_selector: Optional[str] = None
    schema: Optional[str] = None


@dataclass
class DiscoveredTable:
    id: str
    name: str
    columns: List[str] = field(default_factory=list)
    selectors: Dict[str, str] = field(default_factory=dict)  # table, row, cell, header


@dataclass
class DiscoveredModal:
    id: str
    name: str
    trigger_selector: Optional[str] = None
    close_selector: Optional[str] = None
    confirm_selector: Optional[str] = None


@dataclass
class DiscoveredElements:
    entities: List[DiscoveredEntity] = field(default_factory=list)
    routes: List[DiscoveredRoute] = field(default_factory=list)
    forms: List[DiscoveredForm] = field(default_factory=list)
    tables: List[DiscoveredTable] = field(default_factory=list)
    modals: List[DiscoveredModal] = field(default_factory=list)


@dataclass
class MiningResult:
    elements: DiscoveredElements
    stats: Dict[str, int]
    duration_ms: int = 0


# ==================== Shared Scanner ====================

def _within_root(root: Path, candidate: Path) -> bool:
    try:
        candidate.resolve().relative_to(root)
    except ValueError:
        return False
    return True


def _scan_directory(directory: Path, files: List[ScannedFile], seen: set,
                    max_depth: int, max_files: int, depth: int = 0):
    if depth > max_depth or len(files) >= max_files:
        return
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError:
        return

    for entry in entries:
        if len(files) >= max_files:
            return
        if entry.is_symlink():
            continue
        if entry.is_dir():
            if entry.name.startswith(".") or entry.name in SKIPPED_DIRECTORIES:
                continue
            _scan_directory(entry, files, seen, max_depth, max_files, depth + 1)
        elif entry.is_file() and entry.name.endswith(SOURCE_EXTENSIONS):
            key = str(entry.resolve())
            if key in seen:
                continue
            seen.add(key)
            try:
                if entry.stat().st_size > MAX_FILE_SIZE_BYTES:
                    logger.debug(f"[MINING] Skipping oversized file {entry}")
                    continue
                content = entry.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.debug(f"[MINING] Skipping unreadable file {entry}: {e}")
                continue
            files.append(ScannedFile(path=entry, content=content))


def scan_source_files(project_root, directories: Sequence[str] = SOURCE_DIRECTORIES,
                      max_depth: int = MAX_SCAN_DEPTH,
                      max_files: int = MAX_FILES_TO_SCAN) -> List[ScannedFile]:
    """Read source files under the given top-level directories once."""
    root = Path(project_root).resolve()
    files: List[ScannedFile] = []
    seen: set = set()

    for name in directories:
        directory = root / name
        if not _within_root(root, directory):
            continue
        if directory.is_symlink() or not directory.is_dir():
            continue
        _scan_directory(directory, files, seen, max_depth, max_files)

    return files


def iter_matches(pattern: re.Pattern, text: str) -> Iterator[re.Match]:
    """finditer with a hard cap on match count."""
    for count, match in enumerate(pattern.finditer(text)):
        if count >= MAX_REGEX_ITERATIONS:
            return
        yield match


def field_name_to_label(name: str) -> str:
    """userName / user_name / user-name -> 'User Name'."""
    spaced = re.sub(r"([A-Z])", r" \1", name)
    spaced = re.sub(r"[_-]", " ", spaced)
    return " ".join(word[:1].upper() + word[1:].lower() for word in spaced.split())


# ==================== Entities ====================

ENTITY_PATTERNS: Dict[str, re.Pattern] = {
    "typeInterface": re.compile(r"(?:export\s+)?(?:interface|type)\s+(\w+)(?:\s+extends|\s*[={<])"),
    "className": re.compile(r"(?:export\s+)?class\s+(\w+)(?:\s+extends|\s+implements|\s*\{)"),
    "prismaModel": re.compile(r"model\s+(\w+)\s*\{"),
    "typeormEntity": re.compile(r"""@Entity\s*\(\s*['"]?(\w+)?['"]?\s*\)"""),
    "apiFetch": re.compile(
        r"""(?:fetch|axios\.(?:get|post|put|delete|patch))\s*\(\s*[`'"]/?(?:api/)?(\w+)""",
        re.IGNORECASE,
    ),
    "restResource": re.compile(r"""/api/(\w+)(?:/|['"`])""", re.IGNORECASE),
    "graphqlType": re.compile(r"type\s+(\w+)\s*(?:@|\{|implements)"),
    "mongooseSchema": re.compile(r"new\s+(?:mongoose\.)?Schema\s*<?\s*(\w+)?"),
    "mongooseModel": re.compile(r"""mongoose\.model\s*[<(]\s*['"]?(\w+)"""),
    "sequelizeModel": re.compile(r"""sequelize\.define\s*\(\s*['"](\w+)"""),
    "mikroEntity": re.compile(r"""@Entity\s*\(\s*\{\s*(?:tableName|collection)\s*:\s*['"](\w+)"""),
}

# Extractors whose captures are URL segments (plural resource names)
API_ENTITY_PATTERNS = {"apiFetch", "restResource"}

ENTITY_EXCLUSIONS = frozenset({
    # utility types
    "props", "state", "context", "config", "options", "params", "args",
    "request", "response", "result", "error", "data", "payload",
    # react
    "component", "element", "node", "children", "ref", "handler",
    "event", "callback", "dispatch", "action", "reducer", "store",
    # architectural suffixes
    "service", "controller", "repository", "factory", "builder",
    "helper", "util", "utils", "hook", "provider", "consumer",
    # language and generic types
    "string", "number", "boolean", "object", "array", "function",
    "any", "unknown", "void", "null", "undefined", "never",
    "partial", "required", "readonly", "pick", "omit", "record",
    "promise", "async", "await", "import", "export", "default",
})

_ENTITY_SUFFIX = re.compile(r"(?:Model|Entity|Schema|Type|Interface|DTO|Input|Output)$", re.IGNORECASE)
_UTILITY_NAME = re.compile(
    r"(?:Props|State|Context|Config|Options|Params|Args|Handler|Callback|Service|Controller|Repository)$",
    re.IGNORECASE,
)


@dataclass
class _EntityAccumulator:
    name: str
    sources: List[str] = field(default_factory=list)
    endpoints: List[str] = field(default_factory=list)

    def add(self, source: Optional[str] = None, endpoint: Optional[str] = None):
        if source and source not in self.sources:
            self.sources.append(source)
        if endpoint and endpoint not in self.endpoints:
            self.endpoints.append(endpoint)


def _collect_entities(content: str, source: str, found: Dict[str, _EntityAccumulator]):
    for pattern_name, pattern in ENTITY_PATTERNS.items():
        is_api = pattern_name in API_ENTITY_PATTERNS
        for match in iter_matches(pattern, content):
            raw_name = match.group(1)
            if not raw_name:
                continue

            name = _ENTITY_SUFFIX.sub("", raw_name).lower()
            if is_api:
                name = singularize(name)

            if name in ENTITY_EXCLUSIONS or len(name) < 3:
                continue
            if _UTILITY_NAME.search(raw_name):
                continue

            entry = found.setdefault(name, _EntityAccumulator(name=name))
            entry.add(source=source, endpoint=f"/api/{pluralize(name)}" if is_api else None)


def _collect_prisma_entities(project_root: Path, found: Dict[str, _EntityAccumulator]):
    schema_path = project_root / "prisma" / "schema.prisma"
    if not schema_path.is_file():
        return
    try:
        content = schema_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug(f"[MINING] Cannot read {schema_path}: {e}")
        return

    for match in iter_matches(ENTITY_PATTERNS["prismaModel"], content):
        name = match.group(1).lower()
        if name in ENTITY_EXCLUSIONS or len(name) < 3:
            continue
        if name in found:
            found[name].add(source=str(schema_path))
        else:
            found[name] = _EntityAccumulator(name=name, sources=[str(schema_path)],
                                             endpoints=[f"/api/{name}"])


def extract_entities(files: List[ScannedFile], project_root: Path) -> List[DiscoveredEntity]:
    found: Dict[str, _EntityAccumulator] = {}
    for scanned in files:
        _collect_entities(scanned.content, str(scanned.path), found)
    _collect_prisma_entities(Path(project_root), found)

    entities = []
    for entry in found.values():
        singular = singularize(entry.name)
        entities.append(DiscoveredEntity(
            name=entry.name,
            singular=singular,
            plural=pluralize(singular),
            source=entry.sources[0] if entry.sources else None,
            endpoint=entry.endpoints[0] if entry.endpoints else None,
        ))
    return entities


# ==================== Routes ====================

ROUTE_PATTERNS: List[re.Pattern] = [
    # React Router <Route path="...">
    re.compile(r"""<Route\s+[^>]*path\s*=\s*[{'"]([\w/:.-]+)['"}\s]""", re.IGNORECASE),
    # route objects { path: '/users', element: ... }
    re.compile(r"""path:\s*['"]([^'"]+)['"]"""),
    re.compile(r"""\{\s*path:\s*['"]([^'"]+)['"][^}]*(?:element|component)"""),
    re.compile(r"""\{\s*path:\s*['"]([^'"]+)['"]"""),
    # Angular / Vue router
    re.compile(r"""path:\s*['"]([^'"]+)['"],?\s*(?:component|loadComponent|children)"""),
    re.compile(r"""path:\s*['"]([^'"]+)['"],?\s*(?:name|component|components)"""),
    # Express / Fastify
    re.compile(r"""(?:app|router)\.(?:get|post|put|delete|patch|all)\s*\(\s*['"]([^'"]+)['"]""", re.IGNORECASE),
    # NestJS decorators
    re.compile(r"""@(?:Get|Post|Put|Delete|Patch|All)\s*\(\s*['"]?([^'")\s]*)""", re.IGNORECASE),
]

_ROUTE_PARAM = re.compile(r":(\w+)")
PAGE_EXTENSIONS = (".tsx", ".ts", ".jsx", ".js")


def path_to_name(route_path: str) -> str:
    """'/user-settings/:id' -> 'User Settings'."""
    segments = [s for s in route_path.split("/") if s and not s.startswith(":")]
    if not segments:
        return "Home"
    return " ".join(word[:1].upper() + word[1:] for word in segments[-1].split("-"))


def extract_route_params(route_path: str) -> List[str]:
    return [m.group(1) for m in iter_matches(_ROUTE_PARAM, route_path)]


def _make_route(route_path: str, component: str) -> DiscoveredRoute:
    return DiscoveredRoute(
        path=route_path,
        name=path_to_name(route_path),
        params=extract_route_params(route_path),
        component=component,
    )


def _collect_routes(content: str, source: str, found: Dict[str, DiscoveredRoute]):
    for pattern in ROUTE_PATTERNS:
        for match in iter_matches(pattern, content):
            raw = match.group(1)
            if not raw or raw in ("*", "**"):
                continue
            route_path = raw if raw.startswith("/") else f"/{raw}"
            if route_path.startswith("/api/"):
                continue
            if route_path not in found:
                found[route_path] = _make_route(route_path, source)


def _dynamic_segment(name: str) -> str:
    if name.startswith("[") and name.endswith("]"):
        return f":{name[1:-1]}"
    return name


def _collect_next_pages(directory: Path, found: Dict[str, DiscoveredRoute], base: str = ""):
    """Next.js pages/ router; file routes override pattern matches."""
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError:
        return
    for entry in entries:
        if entry.is_symlink():
            continue
        if entry.is_dir():
            if not entry.name.startswith(("_", ".")):
                _collect_next_pages(entry, found, f"{base}/{_dynamic_segment(entry.name)}")
        elif entry.suffix in PAGE_EXTENSIONS and not entry.stem.startswith("_"):
            if entry.stem == "index":
                route_path = base or "/"
            else:
                route_path = f"{base}/{_dynamic_segment(entry.stem)}"
            found[route_path] = _make_route(route_path, str(entry))


def _collect_next_app_routes(directory: Path, found: Dict[str, DiscoveredRoute], base: str = ""):
    """Next.js app/ router; (group) folders add no path segment."""
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError:
        return
    for entry in entries:
        if entry.is_symlink():
            continue
        if entry.is_dir():
            if entry.name.startswith(("_", ".")):
                continue
            if entry.name.startswith("(") and entry.name.endswith(")"):
                _collect_next_app_routes(entry, found, base)
            else:
                _collect_next_app_routes(entry, found, f"{base}/{_dynamic_segment(entry.name)}")
        elif entry.stem == "page" and entry.suffix in PAGE_EXTENSIONS:
            route_path = base or "/"
            found[route_path] = _make_route(route_path, str(entry))


def extract_routes(files: List[ScannedFile], project_root: Path) -> List[DiscoveredRoute]:
    root = Path(project_root).resolve()
    found: Dict[str, DiscoveredRoute] = {}
    for scanned in files:
        _collect_routes(scanned.content, str(scanned.path), found)

    pages_dir = root / "pages"
    if pages_dir.is_dir() and not pages_dir.is_symlink():
        _collect_next_pages(pages_dir, found)
    app_dir = root / "app"
    if app_dir.is_dir() and not app_dir.is_symlink():
        _collect_next_app_routes(app_dir, found)

    return list(found.values())


# ==================== Forms ====================

ZOD_SCHEMA = re.compile(r"z\.object\s*\(\s*\{([\s\S]{0,2000}?)\}\s*\)")
ZOD_FIELD = re.compile(r"(\w+)\s*:\s*z\.(\w+)(?:\([^)]*\))?(?:\.\w+(?:\([^)]*\))?){0,5}")
YUP_SCHEMA = re.compile(r"(?:yup|Yup)\.object\s*\(\s*\{([\s\S]{0,2000}?)\}\s*\)")
YUP_FIELD = re.compile(r"(\w+)\s*:\s*(?:yup|Yup)\.(\w+)(?:\([^)]*\))?(?:\.\w+(?:\([^)]*\))?){0,5}")
RHF_REGISTER = re.compile(r"""register\s*\(\s*['"](\w+)['"]""")
HTML_INPUT_NAME_FIRST = re.compile(
    r"""<input[^>]+name\s*=\s*['"](\w+)['"](?:[^>]*?type\s*=\s*['"](\w+)['"])?""", re.IGNORECASE
)
HTML_INPUT_TYPE_FIRST = re.compile(
    r"""<input[^>]+type\s*=\s*['"](\w+)['"][^>]+name\s*=\s*['"](\w+)['"]""", re.IGNORECASE
)

ZOD_TYPE_MAP = {
    "string": "text",
    "email": "email",
    "number": "number",
    "boolean": "checkbox",
    "date": "date",
    "enum": "select",
    "password": "password",
}
YUP_TYPE_MAP = {
    "string": "text",
    "email": "email",
    "number": "number",
    "boolean": "checkbox",
    "date": "date",
    "mixed": "text",
}

_FORM_SUFFIX = re.compile(r"(?:Form|Schema|Validation)$", re.IGNORECASE)


def _fields_from_content(content: str) -> List[FormField]:
    fields: Dict[str, FormField] = {}

    def add(name: str, field_type: str):
        if name not in fields:
            fields[name] = FormField(name=name, type=field_type, label=field_name_to_label(name))

    zod = ZOD_SCHEMA.search(content)
    if zod:
        for match in iter_matches(ZOD_FIELD, zod.group(1)):
            add(match.group(1), ZOD_TYPE_MAP.get(match.group(2).lower(), "text"))

    yup = YUP_SCHEMA.search(content)
    if yup:
        for match in iter_matches(YUP_FIELD, yup.group(1)):
            add(match.group(1), YUP_TYPE_MAP.get(match.group(2).lower(), "text"))

    for match in iter_matches(RHF_REGISTER, content):
        add(match.group(1), "text")

    # group order is reversed here: (type, name)
    for match in iter_matches(HTML_INPUT_TYPE_FIRST, content):
        add(match.group(2), match.group(1) or "text")

    for match in iter_matches(HTML_INPUT_NAME_FIRST, content):
        add(match.group(1), match.group(2) or "text")

    return list(fields.values())


def extract_forms(files: List[ScannedFile], project_root: Path) -> List[DiscoveredForm]:
    found: Dict[str, DiscoveredForm] = {}
    for scanned in files:
        fields = _fields_from_content(scanned.content)
        if not fields:
            continue
        base_name = _FORM_SUFFIX.sub("", scanned.path.stem)
        form_id = base_name.lower()
        if form_id not in found:
            found[form_id] = DiscoveredForm(
                id=form_id,
                name=field_name_to_label(base_name),
                fields=fields,
                schema=str(scanned.path),
            )
    return list(found.values())


# ==================== Tables ====================

TABLE_MARKER = re.compile(r"(?:AgGridReact|DataGrid|useReactTable|Table)", re.IGNORECASE)
HTML_TABLE_MARKER = re.compile(r"<table", re.IGNORECASE)
COLUMN_DEFS = re.compile(r"columnDefs\s*[:=]\s*\[([^\]]+)\]", re.DOTALL)
COLUMNS_ARRAY = re.compile(r"columns\s*[:=]\s*\[([^\]]+)\]", re.DOTALL)
COLUMN_FIELD = re.compile(r"""field:\s*['"](\w+)['"]""")
TANSTACK_ACCESSOR = re.compile(r"""accessorKey:\s*['"](\w+)['"]""")
ANTD_DATA_INDEX = re.compile(r"""dataIndex:\s*['"](\w+)['"]""")
HTML_TH = re.compile(r"<th[^>]*>([^<]+)</th>", re.IGNORECASE)

_TABLE_SUFFIX = re.compile(r"(?:Table|Grid|List|DataGrid)$", re.IGNORECASE)


def _columns_from_content(content: str) -> List[str]:
    columns: List[str] = []

    def add(column: str):
        if column and column not in columns:
            columns.append(column)

    definitions = COLUMN_DEFS.search(content) or COLUMNS_ARRAY.search(content)
    if definitions:
        for match in iter_matches(COLUMN_FIELD, definitions.group(1)):
            add(match.group(1))

    for pattern in (TANSTACK_ACCESSOR, ANTD_DATA_INDEX):
        for match in iter_matches(pattern, content):
            add(match.group(1))

    for match in iter_matches(HTML_TH, content):
        add(match.group(1).strip())

    return columns


def extract_tables(files: List[ScannedFile], project_root: Path) -> List[DiscoveredTable]:
    found: Dict[str, DiscoveredTable] = {}
    for scanned in files:
        content = scanned.content
        if not TABLE_MARKER.search(content) and not HTML_TABLE_MARKER.search(content):
            continue
        columns = _columns_from_content(content)
        if not columns:
            continue
        base_name = _TABLE_SUFFIX.sub("", scanned.path.stem)
        table_id = base_name.lower()
        if table_id not in found:
            found[table_id] = DiscoveredTable(
                id=table_id,
                name=field_name_to_label(base_name) or "Data Table",
                columns=columns,
            )
    return list(found.values())


# ==================== Modals ====================

MODAL_MARKERS: List[re.Pattern] = [
    re.compile(r"<Dialog[^>]*(?:open|onClose)[^>]*>", re.IGNORECASE),  # MUI
    re.compile(r"<Dialog\.Root", re.IGNORECASE),  # Radix
    re.compile(r"<Modal[^>]*(?:isOpen|onRequestClose)[^>]*>", re.IGNORECASE),  # react-modal
    re.compile(r"<Modal[^>]*(?:isOpen|onClose)[^>]*>", re.IGNORECASE),  # Chakra
    re.compile(r"<Modal[^>]*(?:open|visible|onCancel)[^>]*>", re.IGNORECASE),  # antd
    re.compile(r"""(?:Modal|Dialog|Popup|Overlay)\s*(?:name|id|title)\s*=\s*['"](\w+)['"]""", re.IGNORECASE),
    re.compile(r"""(?:open|show|toggle)(?:Modal|Dialog)\s*\(\s*['"]?(\w+)""", re.IGNORECASE),
]

# Title sources, checked in order
MODAL_TITLE_PATTERNS: List[re.Pattern] = [
    re.compile(r"<DialogTitle[^>]*>([^<]+)</DialogTitle>", re.IGNORECASE),
    re.compile(r"<ModalHeader[^>]*>([^<]+)</ModalHeader>", re.IGNORECASE),
    re.compile(r"""title\s*=\s*[{'"]([\w\s]+)['"}]""", re.IGNORECASE),
]

_MODAL_SUFFIX = re.compile(r"(?:Modal|Dialog|Popup)$", re.IGNORECASE)


def _modal_title(content: str) -> Optional[str]:
    for pattern in MODAL_TITLE_PATTERNS:
        match = pattern.search(content)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def extract_modals(files: List[ScannedFile], project_root: Path) -> List[DiscoveredModal]:
    found: Dict[str, DiscoveredModal] = {}
    for scanned in files:
        content = scanned.content
        if not any(marker.search(content) for marker in MODAL_MARKERS):
            continue
        base_name = _MODAL_SUFFIX.sub("", scanned.path.stem)
        modal_id = base_name.lower()
        if not modal_id or modal_id in found:
            continue
        found[modal_id] = DiscoveredModal(
            id=modal_id,
            name=_modal_title(content) or field_name_to_label(base_name) or "Modal",
        )
    return list(found.values())


# ==================== Registry ====================

Miner = Callable[[List[ScannedFile], Path], list]

MINERS: Dict[str, Miner] = {
    "entities": extract_entities,
    "routes": extract_routes,
    "forms": extract_forms,
    "tables": extract_tables,
    "modals": extract_modals,
}


def _run_standalone(miner: Miner, project_root, directories: Sequence[str],
                    max_depth: int, max_files: int) -> list:
    files = scan_source_files(project_root, directories, max_depth=max_depth, max_files=max_files)
    return miner(files, Path(project_root).resolve())


def mine_entities(project_root, max_depth: int = MAX_SCAN_DEPTH,
                  max_files: int = MAX_FILES_TO_SCAN) -> List[DiscoveredEntity]:
    return _run_standalone(extract_entities, project_root, ENTITY_DIRECTORIES, max_depth, max_files)


def mine_routes(project_root, max_depth: int = MAX_SCAN_DEPTH,
                max_files: int = MAX_FILES_TO_SCAN) -> List[DiscoveredRoute]:
    return _run_standalone(extract_routes, project_root, ROUTE_DIRECTORIES, max_depth, max_files)


def mine_forms(project_root, max_depth: int = MAX_SCAN_DEPTH,
               max_files: int = MAX_FILES_TO_SCAN) -> List[DiscoveredForm]:
    return _run_standalone(extract_forms, project_root, FORM_DIRECTORIES, max_depth, max_files)


def mine_tables(project_root, max_depth: int = MAX_SCAN_DEPTH,
                max_files: int = MAX_FILES_TO_SCAN) -> List[DiscoveredTable]:
    return _run_standalone(extract_tables, project_root, TABLE_DIRECTORIES, max_depth, max_files)


def mine_modals(project_root, max_depth: int = MAX_SCAN_DEPTH,
                max_files: int = MAX_FILES_TO_SCAN) -> List[DiscoveredModal]:
    return _run_standalone(extract_modals, project_root, MODAL_DIRECTORIES, max_depth, max_files)


def mine_elements(project_root, max_depth: int = MAX_SCAN_DEPTH,
                  max_files: int = MAX_FILES_TO_SCAN) -> MiningResult:
    """Scan the source tree once and run every registered miner."""
    start = time.monotonic()
    root = Path(project_root).resolve()
    files = scan_source_files(root, SOURCE_DIRECTORIES, max_depth=max_depth, max_files=max_files)

    mined: Dict[str, list] = {}
    for kind, miner in MINERS.items():
        try:
            mined[kind] = miner(files, root)
        except Exception as e:
            logger.warning(f"[MINING] {kind} miner failed on {root}: {e}")
            mined[kind] = []

    elements = DiscoveredElements(**mined)
    stats = {
        "entitiesFound": len(elements.entities),
        "routesFound": len(elements.routes),
        "formsFound": len(elements.forms),
        "tablesFound": len(elements.tables),
        "modalsFound": len(elements.modals),
        "totalElements": sum(len(v) for v in mined.values()),
        "filesScanned": len(files),
    }
    duration_ms = int((time.monotonic() - start) * 1000)
    logger.info(f"[MINING] {root}: {stats['totalElements']} elements from {len(files)} files in {duration_ms}ms")
    return MiningResult(elements=elements, stats=stats, duration_ms=duration_ms)
