"""
Pytest configuration and shared fixtures for LLKB tests.
"""

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict

import pytest

# Add backend app to path
sys.path.insert(0, str(Path(__file__).parent.parent / "app"))


def write_file(root: Path, relative: str, content: str) -> Path:
    """Write a file under root, creating parent directories."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def days_ago(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


# ==================== Sample Project Fixture ====================

PACKAGE_JSON = {
    "name": "sample-app",
    "dependencies": {
        "react": "^18.2.0",
        "react-dom": "^18.2.0",
        "@mui/material": "^5.14.0",
        "@emotion/react": "^11.11.0",
    },
}

APP_TSX = """\
import { BrowserRouter, Routes, Route } from 'react-router-dom';
import { useTranslation } from 'react-i18next';
import UserTable from './components/UserTable';

export default function App() {
  const { t } = useTranslation();

  const loadUsers = () => fetch('/api/users').then((r) => r.json());

  const onCreate = () => {
    analytics.track('User Created', { plan: 'pro', source: 'header' });
  };

  return (
    <BrowserRouter>
      <h1 data-testid="app-title">{t('users.title', { defaultValue: 'Users' })}</h1>
      <button data-testid="save-button" onClick={onCreate}>{t('common:save')}</button>
      {isFeatureEnabled('newDashboard') && <span data-testid="new-dashboard" />}
      <Routes>
        <Route path="/users" element={<UserTable />} />
        <Route path="/users/:id" element={<UserTable />} />
        <Route path="/settings" element={<div />} />
      </Routes>
    </BrowserRouter>
  );
}
"""

USER_TABLE_TSX = """\
import { DataGrid } from '@mui/x-data-grid';

const columns = [
  { field: 'name', headerName: 'Name' },
  { field: 'email', headerName: 'Email' },
];

export default function UserTable({ rows }) {
  return <DataGrid data-testid="user-table" rows={rows} columns={columns} />;
}
"""

DELETE_USER_DIALOG_TSX = """\
import { Dialog, DialogTitle, DialogActions, Button } from '@mui/material';

export default function DeleteUserDialog({ open, onClose }) {
  return (
    <Dialog open={open} onClose={onClose}>
      <DialogTitle>Delete User</DialogTitle>
      <DialogActions>
        <Button data-testid="confirm-delete" onClick={onClose}>Delete</Button>
      </DialogActions>
    </Dialog>
  );
}
"""

PROFILE_FORM_TSX = """\
import { z } from 'zod';

const profileSchema = z.object({
  displayName: z.string().min(1),
  email: z.string().email(),
});

export default function ProfileForm() {
  return <form data-testid="profile-form" />;
}
"""

USER_TYPES_TS = """\
export interface User {
  id: string;
  name: string;
  email: string;
}
"""


@pytest.fixture
def sample_project(tmp_path) -> Path:
    """A small React + MUI project with one of each minable element."""
    root = tmp_path / "sample-app"
    write_json(root / "package.json", PACKAGE_JSON)
    write_file(root, "src/App.tsx", APP_TSX)
    write_file(root, "src/components/UserTable.tsx", USER_TABLE_TSX)
    write_file(root, "src/components/DeleteUserDialog.tsx", DELETE_USER_DIALOG_TSX)
    write_file(root, "src/components/ProfileForm.tsx", PROFILE_FORM_TSX)
    write_file(root, "src/types/user.ts", USER_TYPES_TS)
    write_json(root / "public" / "locales" / "en" / "common.json", {"save": "Save"})
    # never scanned
    write_file(root, "node_modules/react/index.js", "export interface Ignored {}")
    return root


# ==================== Knowledge Base Fixture ====================

def make_lesson(lesson_id: str, **overrides) -> Dict[str, Any]:
    lesson = {
        "id": lesson_id,
        "title": f"Lesson {lesson_id}",
        "pattern": "",
        "trigger": "",
        "category": "selector",
        "severity": "medium",
        "scope": "app-specific",
        "journeyIds": [],
        "metrics": {
            "occurrences": 5,
            "successRate": 0.8,
            "confidence": 0.6,
            "firstSeen": days_ago(60),
            "lastSuccess": days_ago(2),
            "confidenceHistory": [],
        },
        "validation": {"humanReviewed": False},
        "tags": [],
    }
    metrics = overrides.pop("metrics", None)
    lesson.update(overrides)
    if metrics:
        lesson["metrics"].update(metrics)
    return lesson


def make_component(component_id: str, **overrides) -> Dict[str, Any]:
    component = {
        "id": component_id,
        "name": f"component{component_id}",
        "description": "",
        "category": "selector",
        "scope": "app-specific",
        "filePath": f"src/components/{component_id}.ts",
        "metrics": {"totalUses": 5, "successRate": 0.9, "lastUsed": days_ago(1)},
        "source": {"extractedAt": days_ago(10)},
        "journeyIds": [],
    }
    metrics = overrides.pop("metrics", None)
    source = overrides.pop("source", None)
    component.update(overrides)
    if metrics:
        component["metrics"].update(metrics)
    if source:
        component["source"].update(source)
    return component


@pytest.fixture
def llkb_root(tmp_path) -> Path:
    """A knowledge base seeded with lessons and components."""
    root = tmp_path / ".artk" / "llkb"
    root.mkdir(parents=True)

    write_json(root / "lessons.json", {
        "version": "1.0.0",
        "lastUpdated": days_ago(1),
        "lessons": [
            make_lesson(
                "L001",
                title="Wait for grid rows",
                pattern="[data-testid='user-grid'] .ag-row",
                trigger="Grid rows load asynchronously",
                category="timing",
                metrics={"occurrences": 8, "successRate": 0.9, "confidence": 0.7},
            ),
            make_lesson(
                "L002",
                title="Use role for save button",
                pattern="getByRole('button', { name: 'Save' })",
                trigger="click save button",
                metrics={"occurrences": 2, "successRate": 0.5, "confidence": 0.3},
            ),
            make_lesson("L003", title="Old archived lesson", archived=True),
        ],
        "archived": [],
        "globalRules": [],
        "appQuirks": [],
    })

    write_json(root / "components.json", {
        "version": "1.0.0",
        "lastUpdated": days_ago(1),
        "components": [
            make_component("C001", name="waitForGrid", category="timing", scope="framework:ag-grid"),
            make_component(
                "C002",
                name="openUserMenu",
                category="navigation",
                metrics={"totalUses": 0, "successRate": 0.0},
                source={"extractedAt": days_ago(45)},
            ),
            make_component("C003", name="retiredHelper", archived=True),
        ],
        "componentsByCategory": {},
        "componentsByScope": {},
    })

    (root / "config.yml").write_text("version: 1\n", encoding="utf-8")
    (root / "history").mkdir()
    return root
