"""
Project scanner producing the corpus snapshot (`CodeContext`).
"""

import logging
import os
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import DEFAULT_IGNORED_PATTERNS, DEFAULT_SOURCE_EXTENSIONS
from .models import CodeContext, FileKind, ProjectFile
from .utils import get_gitignore_patterns, is_path_ignored, matches_any_pattern, read_json_file

logger = logging.getLogger("part_render.scanner")


class CodeScanner:
    """Reads source files, package dependencies and tsconfig from a project root."""

    def __init__(
        self,
        project_root,
        ignored_patterns: Optional[Sequence[str]] = None,
        source_extensions: Optional[Sequence[str]] = None,
    ):
        self.project_root = Path(project_root).resolve()
        self.ignored_patterns = list(DEFAULT_IGNORED_PATTERNS if ignored_patterns is None else ignored_patterns)
        self.source_extensions = tuple(
            ext.lower() for ext in (DEFAULT_SOURCE_EXTENSIONS if source_extensions is None else source_extensions)
        )

    def scan_project(self) -> CodeContext:
        start_time = time.time()
        context = CodeContext(
            project_files=self.scan_project_files(),
            dependencies=self.load_dependencies(),
            ts_config=self.load_ts_config(),
        )
        logger.info(
            f"Scanned {len(context.project_files)} files and {len(context.dependencies)} dependencies "
            f"in {time.time() - start_time:.2f}s"
        )
        return context

    def _is_ignored(self, relative: str) -> bool:
        return any(is_path_ignored(relative, pattern) for pattern in self.ignored_patterns)

    def iter_source_paths(self) -> List[Path]:
        gitignore_patterns = get_gitignore_patterns(self.project_root)
        found: List[Path] = []
        for directory, dirnames, filenames in os.walk(self.project_root):
            current = Path(directory)
            kept = []
            for name in sorted(dirnames):
                path = current / name
                relative = path.relative_to(self.project_root).as_posix()
                if self._is_ignored(relative) or matches_any_pattern(path, gitignore_patterns):
                    continue
                kept.append(name)
            dirnames[:] = kept

            for name in sorted(filenames):
                if not name.lower().endswith(self.source_extensions):
                    continue
                path = current / name
                relative = path.relative_to(self.project_root).as_posix()
                if self._is_ignored(relative) or matches_any_pattern(path, gitignore_patterns):
                    continue
                found.append(path)
        return found

    def scan_project_files(self) -> List[ProjectFile]:
        files: List[ProjectFile] = []
        for path in self.iter_source_paths():
            relative = path.relative_to(self.project_root).as_posix()
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Failed to read file {path}: {e}")
                continue
            files.append(ProjectFile(path=relative, content=content, kind=FileKind.from_path(relative)))
        logger.debug(f"Found {len(files)} source files under {self.project_root}")
        return files

    def load_dependencies(self) -> Dict[str, str]:
        manifest = read_json_file(self.project_root / "package.json")
        if not isinstance(manifest, dict):
            logger.warning("Could not load package.json dependencies")
            return {}
        dependencies: Dict[str, str] = {}
        for key in ("dependencies", "devDependencies"):
            section = manifest.get(key)
            if isinstance(section, dict):
                dependencies.update({str(name): str(version) for name, version in section.items()})
        return dependencies

    def load_ts_config(self) -> Optional[dict]:
        config = read_json_file(self.project_root / "tsconfig.json")
        if config is None:
            logger.debug("No tsconfig.json found")
            return None
        if not isinstance(config, dict):
            logger.warning("tsconfig.json is not a JSON object; ignoring it")
            return None
        return config
