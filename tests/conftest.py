"""
Pytest configuration and fixtures shared by the part-render tests.
"""

import json
import shutil
import tempfile
from pathlib import Path

import pytest

from part_render.core.code_scanner import CodeScanner
from part_render.core.component_detector import ComponentDetector
from part_render.core.config import PartRenderConfig


BUTTON_SOURCE = """import React from 'react';

interface ButtonProps {
  /** Text shown on the button */
  label: string;
  onClick?: () => void;
}

export function Button({ label, onClick }: ButtonProps): JSX.Element {
  return <button onClick={onClick}>{label}</button>;
}
"""

CARD_SOURCE = """import React from 'react';

type CardProps = { title: string; children?: React.ReactNode };

const Card: React.FC<CardProps> = ({ title, children }) => (
  <div className="card">
    <h2>{title}</h2>
    {children}
  </div>
);

export default Card;
"""

FORMAT_SOURCE = """export function formatDate(value: Date): string {
  return value.toISOString();
}

export const API_URL = '/api';
"""

TSCONFIG = """{
  // editor settings
  "compilerOptions": {
    "jsx": "react-jsx",
    "baseUrl": ".",
    "paths": {
      "@/*": ["src/*"],
    },
  },
}
"""


def _write(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def write_file():
    """Helper writing `content` to `root/relative`, creating parent directories."""
    return _write


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp_path = Path(tempfile.mkdtemp()).resolve()
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def sample_project(temp_dir):
    """A small React project with two components, a utility module and one installed package."""
    _write(temp_dir, "package.json", json.dumps({
        "name": "sample-app",
        "dependencies": {"react": "^18.2.0", "state-lib": "1.0.0"},
        "devDependencies": {"typescript": "^5.0.0"},
    }))
    _write(temp_dir, "tsconfig.json", TSCONFIG)
    _write(temp_dir, "src/components/Button.tsx", BUTTON_SOURCE)
    _write(temp_dir, "src/components/Card.tsx", CARD_SOURCE)
    _write(temp_dir, "src/utils/format.ts", FORMAT_SOURCE)
    _write(temp_dir, "node_modules/state-lib/package.json", json.dumps({"name": "state-lib", "main": "index.js"}))
    _write(temp_dir, "node_modules/state-lib/index.js", "export function useState() {}\n")
    _write(temp_dir, "node_modules/react/package.json", json.dumps({"name": "react", "main": "index.js"}))
    _write(temp_dir, "node_modules/react/index.js", "module.exports = {};\n")
    return temp_dir


@pytest.fixture
def sample_config(sample_project):
    return PartRenderConfig(project_root=str(sample_project))


@pytest.fixture
def sample_context(sample_project):
    return CodeScanner(sample_project).scan_project()


@pytest.fixture
def sample_catalog(sample_context):
    return ComponentDetector().build(sample_context)
