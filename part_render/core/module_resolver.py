"""
Module specifier resolution.

Maps an import specifier to a file on disk. A tsconfig-driven pass (path aliases,
baseUrl, TypeScript extensions) runs first when the project has a tsconfig; Node-style
resolution from the requesting file's directory is the fallback. A miss is not an
error: the caller passes the specifier through to the bundler unresolved.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .utils import read_json_file, split_package_specifier

logger = logging.getLogger("part_render.resolver")

TS_EXTENSIONS = (".ts", ".tsx", ".d.ts", ".js", ".jsx", ".mjs", ".cjs")
NODE_EXTENSIONS = (".js", ".json", ".node")
EXPORT_CONDITIONS = ("require", "node", "default", "import")
_JS_TO_TS = {".js": (".ts", ".tsx"), ".jsx": (".tsx",), ".mjs": (".mts",), ".cjs": (".cts",)}
_MAX_EXTENDS_DEPTH = 5


class ModuleResolver:
    """Resolves module specifiers, memoizing results for the lifetime of the instance.

    The cache is a plain dict owned by this object; concurrent callers sharing one
    resolver must serialize their calls.
    """

    def __init__(self, project_root, ts_config: Optional[Dict[str, Any]] = None):
        self.project_root = Path(project_root).resolve()
        self._cache: Dict[str, Optional[str]] = {}
        self.compiler_options = self._load_compiler_options(ts_config)

    @property
    def uses_tsconfig(self) -> bool:
        return self.compiler_options is not None

    def resolve(self, module: str, from_file: Optional[str] = None) -> Optional[str]:
        cache_key = f"{module}:{from_file or 'root'}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        from_dir = self._from_directory(from_file)
        resolved = None
        if self.compiler_options is not None:
            resolved = self._resolve_typescript(module, from_dir)
        if resolved is None:
            resolved = self._resolve_node(module, from_dir)
        if resolved is None:
            logger.debug(f"Failed to resolve module: {module} (from {from_file or 'root'})")

        self._cache[cache_key] = resolved
        return resolved

    def clear_cache(self) -> None:
        self._cache.clear()

    # --- tsconfig ---

    def _load_compiler_options(self, ts_config: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        config = ts_config
        if config is None:
            config = read_json_file(self.project_root / "tsconfig.json")
        if not isinstance(config, dict):
            return None
        return self._collect_options(config, self.project_root, 0)

    def _collect_options(self, config: Dict[str, Any], config_dir: Path, depth: int) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        extends = config.get("extends")
        if isinstance(extends, str) and extends.startswith(".") and depth < _MAX_EXTENDS_DEPTH:
            parent_path = (config_dir / extends).resolve()
            if parent_path.suffix != ".json":
                parent_path = parent_path.with_name(parent_path.name + ".json")
            parent = read_json_file(parent_path)
            if isinstance(parent, dict):
                options.update(self._collect_options(parent, parent_path.parent, depth + 1))
            else:
                logger.debug(f"tsconfig extends target not found: {parent_path}")

        own = dict(config.get("compilerOptions") or {})
        if isinstance(own.get("baseUrl"), str):
            own["baseUrl"] = str((config_dir / own["baseUrl"]).resolve())
        if "paths" in own:
            own["_pathsBase"] = str(config_dir)
        options.update(own)
        return options

    def _resolve_typescript(self, module: str, from_dir: Path) -> Optional[str]:
        options = self.compiler_options or {}
        if module.startswith((".", "/")):
            return self._probe_file(self._absolute_target(module, from_dir), TS_EXTENSIONS)

        paths = options.get("paths")
        if isinstance(paths, dict) and paths:
            base = Path(options.get("baseUrl") or options.get("_pathsBase") or self.project_root)
            for target in self._match_paths(module, paths):
                found = self._probe_file(base / target, TS_EXTENSIONS)
                if found:
                    return found

        base_url = options.get("baseUrl")
        if base_url:
            found = self._probe_file(Path(base_url) / module, TS_EXTENSIONS)
            if found:
                return found

        return self._resolve_package(module, from_dir, prefer_types=True)

    @staticmethod
    def _match_paths(module: str, paths: Dict[str, Any]) -> List[str]:
        """Candidate targets for the `paths` pattern with the longest matching prefix."""
        best: Optional[Tuple[List[str], str]] = None
        best_length = -1
        for pattern, targets in paths.items():
            if not isinstance(targets, list):
                continue
            if "*" not in pattern:
                if pattern == module:
                    return [str(t) for t in targets]
                continue
            prefix, suffix = pattern.split("*", 1)
            if (
                module.startswith(prefix)
                and module.endswith(suffix)
                and len(module) >= len(prefix) + len(suffix)
                and len(prefix) > best_length
            ):
                best = (targets, module[len(prefix):len(module) - len(suffix)])
                best_length = len(prefix)
        if best is None:
            return []
        targets, star = best
        return [str(target).replace("*", star) for target in targets]

    # --- Node-style ---

    def _resolve_node(self, module: str, from_dir: Path) -> Optional[str]:
        if module.startswith((".", "/")):
            return self._probe_file(self._absolute_target(module, from_dir), NODE_EXTENSIONS)
        return self._resolve_package(module, from_dir, prefer_types=False)

    def _resolve_package(self, module: str, from_dir: Path, prefer_types: bool) -> Optional[str]:
        package_name, subpath = split_package_specifier(module)
        if not package_name or package_name.startswith("node:"):
            return None

        for directory in [from_dir, *from_dir.parents]:
            modules_dir = directory / "node_modules"
            if not modules_dir.is_dir():
                continue
            package_dir = modules_dir / package_name
            if package_dir.is_dir():
                found = self._resolve_in_package(package_dir, subpath, prefer_types)
                if found:
                    return found
            if prefer_types and not package_name.startswith("@types/"):
                types_dir = modules_dir / "@types" / package_name.lstrip("@").replace("/", "__")
                if types_dir.is_dir():
                    found = self._resolve_in_package(types_dir, subpath, prefer_types)
                    if found:
                        return found
        return None

    def _resolve_in_package(self, package_dir: Path, subpath: str, prefer_types: bool) -> Optional[str]:
        manifest = read_json_file(package_dir / "package.json")
        if not isinstance(manifest, dict):
            manifest = {}
        extensions = TS_EXTENSIONS if prefer_types else NODE_EXTENSIONS

        if not subpath:
            if prefer_types:
                for key in ("types", "typings"):
                    entry = manifest.get(key)
                    if isinstance(entry, str):
                        found = self._probe_file(package_dir / entry, extensions)
                        if found:
                            return found
            exported = self._exports_target(manifest.get("exports"), ".")
            if exported:
                found = self._probe_file(package_dir / exported, extensions)
                if found:
                    return found
            main = manifest.get("main")
            if isinstance(main, str):
                found = self._probe_file(package_dir / main, extensions)
                if found:
                    return found
            return self._probe_file(package_dir / "index", extensions)

        exported = self._exports_target(manifest.get("exports"), f"./{subpath}")
        if exported:
            found = self._probe_file(package_dir / exported, extensions)
            if found:
                return found
        return self._probe_file(package_dir / subpath, extensions)

    @classmethod
    def _exports_target(cls, exports: Any, key: str) -> Optional[str]:
        if exports is None:
            return None
        if isinstance(exports, str):
            return exports if key == "." else None
        if isinstance(exports, dict):
            if not any(str(k).startswith(".") for k in exports):
                # Conditions object for the package root
                return cls._pick_condition(exports) if key == "." else None
            return cls._pick_condition(exports.get(key))
        return None

    @classmethod
    def _pick_condition(cls, entry: Any) -> Optional[str]:
        if isinstance(entry, str):
            return entry
        if isinstance(entry, list):
            for item in entry:
                picked = cls._pick_condition(item)
                if picked:
                    return picked
        if isinstance(entry, dict):
            for condition in EXPORT_CONDITIONS:
                if condition in entry:
                    picked = cls._pick_condition(entry[condition])
                    if picked:
                        return picked
        return None

    # --- filesystem probing ---

    def _from_directory(self, from_file: Optional[str]) -> Path:
        if not from_file:
            return self.project_root
        path = Path(from_file)
        if not path.is_absolute():
            path = self.project_root / path
        return path.parent

    @staticmethod
    def _absolute_target(module: str, from_dir: Path) -> Path:
        if module.startswith("/"):
            return Path(module)
        return from_dir / module

    @staticmethod
    def _probe_file(target: Path, extensions: Tuple[str, ...]) -> Optional[str]:
        if target.is_file():
            return str(target.resolve())
        if target.name:
            for ext in extensions:
                candidate = target.with_name(target.name + ext)
                if candidate.is_file():
                    return str(candidate.resolve())
            # ESM-style `./button.js` written against a `button.ts` source
            if extensions is TS_EXTENSIONS:
                for ext in _JS_TO_TS.get(target.suffix, ()):
                    candidate = target.with_suffix(ext)
                    if candidate.is_file():
                        return str(candidate.resolve())
        if target.is_dir():
            for ext in extensions:
                candidate = target / f"index{ext}"
                if candidate.is_file():
                    return str(candidate.resolve())
        return None
