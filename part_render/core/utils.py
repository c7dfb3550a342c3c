"""
Utility functions shared across the part-render core.
"""

import fnmatch
import json
import logging
import posixpath
import re
from pathlib import Path
from typing import Any, List, Optional, Tuple

SOURCE_SUFFIXES = (".tsx", ".ts", ".jsx", ".js", ".mjs", ".cjs")

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


# --- JSON with comments (tsconfig.json) ---

def strip_json_comments(text: str) -> str:
    """Remove // and /* */ comments that are not inside string literals."""
    out: List[str] = []
    i, length = 0, len(text)
    in_string = False
    while i < length:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = length if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def loads_jsonc(text: str) -> Any:
    """Parse JSON that may contain comments and trailing commas."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        cleaned = _TRAILING_COMMA.sub(r"\1", strip_json_comments(text))
        return json.loads(cleaned)


def read_json_file(path: Path) -> Optional[Any]:
    if not path.is_file():
        return None
    try:
        return loads_jsonc(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logging.getLogger("part_render.scanner").warning(f"Could not read {path}: {e}")
        return None


# --- Gitignore Pattern Matching ---

def get_gitignore_patterns(directory: Path) -> List[Tuple[str, Path]]:
    """
    Collect .gitignore patterns from the directory and its parents, also returning the directory
    where the .gitignore file was found.
    """
    patterns_with_dirs: List[Tuple[str, Path]] = []
    current_dir = directory
    while current_dir != current_dir.parent:
        gitignore_path = current_dir / ".gitignore"
        if gitignore_path.is_file():
            with open(gitignore_path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith(("#", "!")):
                        patterns_with_dirs.append((line, current_dir))
        current_dir = current_dir.parent
    return patterns_with_dirs


def is_path_ignored(relative_path: str, pattern: str) -> bool:
    """
    Match a POSIX path (relative to the directory that declared `pattern`) against a
    gitignore-style pattern.

    Directory patterns (`build/`) match any path below that directory; patterns without a
    slash match any single path segment; anchored patterns (`/dist`) only match from the root.
    """
    pattern = pattern.strip().replace("\\", "/")
    if not pattern or relative_path.startswith("../"):
        return False

    anchored = pattern.startswith("/")
    pattern = pattern.strip("/")
    if not pattern:
        return False
    parts = relative_path.split("/")

    if anchored or "/" in pattern:
        if fnmatch.fnmatch(relative_path, pattern):
            return True
        # A directory pattern also covers everything below it
        depth = pattern.count("/") + 1
        return len(parts) > depth and fnmatch.fnmatch("/".join(parts[:depth]), pattern)

    return any(fnmatch.fnmatch(part, pattern) for part in parts)


def matches_any_pattern(file_path: Path, patterns: List[Tuple[str, Path]]) -> bool:
    for pattern, base_dir in patterns:
        try:
            relative = file_path.relative_to(base_dir).as_posix()
        except ValueError:
            continue
        if is_path_ignored(relative, pattern):
            return True
    return False


# --- Module specifiers ---

def strip_source_suffix(path: str) -> str:
    for suffix in (".d.ts",) + SOURCE_SUFFIXES:
        if path.endswith(suffix):
            return path[: -len(suffix)]
    return path


def relative_module_specifier(target_path: str, from_dir: str = "") -> str:
    """
    Build an import specifier for a project file as seen from `from_dir`.

    Both paths are project-relative POSIX paths. The source extension and a trailing
    `/index` are dropped. The result is `.` or starts with `./` or `../`.
    """
    module = strip_source_suffix(target_path)
    if module.endswith("/index"):
        module = module[: -len("/index")]
    relative = posixpath.relpath(module, from_dir or ".")
    if relative == ".":
        return "."
    if not relative.startswith("."):
        relative = f"./{relative}"
    return relative


def split_package_specifier(specifier: str) -> Tuple[str, str]:
    """Split `@scope/pkg/sub/path` into (`@scope/pkg`, `sub/path`)."""
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) >= 2:
        return "/".join(parts[:2]), "/".join(parts[2:])
    return parts[0], "/".join(parts[1:])
