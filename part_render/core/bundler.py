"""
Transpile/bundle step applied to an assembled unit.
"""

import logging
import re
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import PartRenderConfig
from .errors import BundleError

logger = logging.getLogger("part_render.compiler")


@dataclass
class BundleOutput:
    code: str
    warnings: List[str] = field(default_factory=list)


class Bundler(ABC):
    """Turns an assembled source unit into runnable output."""

    @abstractmethod
    def build(self, source: str, resolution_map: Dict[str, str], resolve_dir: str) -> BundleOutput:
        """
        Args:
            source: The assembled unit.
            resolution_map: specifier -> absolute path; these must win over any other resolution.
            resolve_dir: Directory relative imports are resolved against.

        Raises:
            BundleError: if the unit cannot be built.
        """


class PassthroughBundler(Bundler):
    """Returns the assembled source untouched."""

    def build(self, source: str, resolution_map: Dict[str, str], resolve_dir: str) -> BundleOutput:
        return BundleOutput(code=source)


def rewrite_specifiers(source: str, resolution_map: Dict[str, str]) -> str:
    """Replace `from '<specifier>'` / `import '<specifier>'` with the mapped path."""
    if not resolution_map:
        return source

    def replace(match: "re.Match[str]") -> str:
        target = resolution_map.get(match.group(3))
        if target is None:
            return match.group(0)
        return f"{match.group(1)}{match.group(2)}{target}{match.group(2)}"

    return re.sub(r"(\bfrom\s*|\bimport\s*)(['\"])([^'\"\n]+)\2", replace, source)


class EsbuildBundler(Bundler):
    """Runs the `esbuild` executable on stdin."""

    def __init__(
        self,
        executable: str = "esbuild",
        output_format: str = "esm",
        bundle: bool = False,
        external_modules: Optional[List[str]] = None,
        timeout: float = 30.0,
        jsx_import_source: str = "react",
    ):
        self.executable = executable
        self.output_format = output_format
        self.bundle = bundle
        self.external_modules = list(external_modules or [])
        self.timeout = timeout
        self.jsx_import_source = jsx_import_source

    def command(self) -> List[str]:
        args = [
            self.executable,
            "--loader=tsx",
            f"--format={self.output_format}",
            "--platform=browser",
            "--jsx=automatic",
            f"--jsx-import-source={self.jsx_import_source}",
            "--define:process.env.NODE_ENV=\"development\"",
            "--log-level=warning",
        ]
        if self.bundle:
            args.append("--bundle")
            args.extend(f"--external:{module}" for module in self.external_modules)
        return args

    def build(self, source: str, resolution_map: Dict[str, str], resolve_dir: str) -> BundleOutput:
        if self.bundle:
            source = rewrite_specifiers(source, resolution_map)
        try:
            completed = subprocess.run(
                self.command(),
                input=source,
                capture_output=True,
                text=True,
                cwd=resolve_dir,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise BundleError(f"esbuild executable not found: {self.executable}") from e
        except subprocess.TimeoutExpired as e:
            raise BundleError(f"esbuild timed out after {self.timeout}s") from e

        warnings = _diagnostics(completed.stderr, "[WARNING]")
        if completed.returncode != 0:
            errors = _diagnostics(completed.stderr, "[ERROR]")
            message = "\n".join(errors) or completed.stderr.strip() or f"esbuild exited with {completed.returncode}"
            raise BundleError(message, warnings=warnings)
        logger.debug(f"esbuild produced {len(completed.stdout)} characters with {len(warnings)} warnings")
        return BundleOutput(code=completed.stdout, warnings=warnings)


def _diagnostics(stderr: str, marker: str) -> List[str]:
    lines = []
    for line in (stderr or "").splitlines():
        if marker in line:
            lines.append(line.split(marker, 1)[1].strip())
    return lines


def create_bundler(config: PartRenderConfig) -> Bundler:
    config.validate_bundler()
    if config.bundler == "esbuild":
        return EsbuildBundler(
            executable=config.esbuild_path,
            output_format=config.esbuild_format,
            bundle=config.esbuild_bundle,
            external_modules=config.external_modules,
            timeout=config.bundle_timeout,
            jsx_import_source=config.runtime_module,
        )
    return PassthroughBundler()
