"""
Knowledge Base Storage

Whole-document JSON persistence for the knowledge base directory.

Saves are full overwrites written through a temp file and renamed into
place, so a crash mid-write leaves the previous document intact. Loads
validate the document against its pydantic model and return None for a
missing, empty, unparseable or wrongly shaped file.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .models import AnalyticsSnapshot, ComponentsFile, LessonsFile, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

LESSONS_FILENAME = "lessons.json"
COMPONENTS_FILENAME = "components.json"
ANALYTICS_FILENAME = "analytics.json"
CONFIG_FILENAME = "config.yml"
HISTORY_DIRNAME = "history"


def save_json_atomic(path, data: Any) -> Path:
    """Write JSON to path via a sibling temp file and rename."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return path


def load_json(path) -> Optional[Any]:
    """Parsed JSON, or None when the file is missing, empty or invalid."""
    path = Path(path)
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"[STORAGE] Cannot read {path}: {e}")
        return None
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"[STORAGE] Invalid JSON in {path}: {e}")
        return None


def save_document(path, document: BaseModel) -> Path:
    return save_json_atomic(path, document.model_dump(mode="json", by_alias=True))


def load_document(path, model: Type[T]) -> Optional[T]:
    """Load and validate a document; None when unavailable."""
    data = load_json(path)
    if data is None:
        return None
    if not isinstance(data, dict):
        logger.warning(f"[STORAGE] {path} is not a JSON object")
        return None
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"[STORAGE] {path} does not match {model.__name__}: {e.error_count()} error(s)")
        return None


class KnowledgeStore:
    """
    File layout of one knowledge-base directory

    Every call re-reads from disk; nothing is cached between operations.
    """

    def __init__(self, root):
        self.root = Path(root)

    @property
    def lessons_path(self) -> Path:
        return self.root / LESSONS_FILENAME

    @property
    def components_path(self) -> Path:
        return self.root / COMPONENTS_FILENAME

    @property
    def analytics_path(self) -> Path:
        return self.root / ANALYTICS_FILENAME

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILENAME

    @property
    def history_dir(self) -> Path:
        return self.root / HISTORY_DIRNAME

    # Lessons

    def load_lessons(self) -> Optional[LessonsFile]:
        return load_document(self.lessons_path, LessonsFile)

    def save_lessons(self, lessons: LessonsFile) -> Path:
        lessons.last_updated = utc_now()
        return save_document(self.lessons_path, lessons)

    # Components

    def load_components(self) -> Optional[ComponentsFile]:
        return load_document(self.components_path, ComponentsFile)

    def save_components(self, components: ComponentsFile) -> Path:
        components.last_updated = utc_now()
        return save_document(self.components_path, components)

    # Analytics

    def load_analytics(self) -> Optional[AnalyticsSnapshot]:
        return load_document(self.analytics_path, AnalyticsSnapshot)

    def save_analytics(self, analytics: AnalyticsSnapshot) -> Path:
        analytics.last_updated = utc_now()
        return save_document(self.analytics_path, analytics)
