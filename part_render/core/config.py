import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

# Default configuration values
DEFAULT_CONFIG_PATH = "partrender.config.yaml"
DEFAULT_PROJECT_ROOT = "."
DEFAULT_IGNORED_PATTERNS = ["node_modules", "dist", "build", "coverage", ".git", ".next", "out"]
DEFAULT_SOURCE_EXTENSIONS = [".ts", ".tsx", ".js", ".jsx"]
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_RUNTIME_MODULE = "react"
DEFAULT_RUNTIME_IMPORT = "React"
DEFAULT_BUNDLER = "none"
DEFAULT_ESBUILD_PATH = "esbuild"
DEFAULT_ESBUILD_FORMAT = "esm"
DEFAULT_BUNDLE_TIMEOUT = 30.0
DEFAULT_WATCH_DEBOUNCE_SECONDS = 0.5

# LLM completion defaults
DEFAULT_LLM_BASE_URL = "http://localhost:11434/v1"
DEFAULT_LLM_MODEL = "codellama"
DEFAULT_LLM_API_KEY_ENV_VAR = "OPENAI_API_KEY"
DEFAULT_LLM_MAX_TOKENS = 1024
DEFAULT_LLM_TEMPERATURE = 0.2
DEFAULT_LLM_CONFIDENCE_THRESHOLD = 0.7

SUPPORTED_BUNDLERS = ("none", "esbuild")


class PartRenderConfig(BaseModel):
    """
    Central configuration model for part-render.
    """
    project_root: str = Field(default=DEFAULT_PROJECT_ROOT)
    ignored_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_IGNORED_PATTERNS))
    source_extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_SOURCE_EXTENSIONS))
    log_level: str = Field(default=DEFAULT_LOG_LEVEL)

    # Assembly
    runtime_module: str = Field(default=DEFAULT_RUNTIME_MODULE)
    runtime_import: str = Field(default=DEFAULT_RUNTIME_IMPORT)
    # identifier -> list of {"module": str, "default": bool, "name": str}
    import_mappings: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)
    wrap_component: bool = True
    mock_props: Dict[str, Any] = Field(default_factory=dict)

    # Bundling
    bundler: str = Field(default=DEFAULT_BUNDLER)
    esbuild_path: str = Field(default=DEFAULT_ESBUILD_PATH)
    esbuild_format: str = Field(default=DEFAULT_ESBUILD_FORMAT)
    esbuild_bundle: bool = False
    external_modules: List[str] = Field(default_factory=list)
    bundle_timeout: float = Field(default=DEFAULT_BUNDLE_TIMEOUT)

    # Catalog refresh on file changes (MCP server)
    watch_enabled: bool = False
    watch_debounce_seconds: float = Field(default=DEFAULT_WATCH_DEBOUNCE_SECONDS)

    # AI-assisted completion
    enable_ai: bool = False
    llm_config: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        extra = "allow"

    def resolved_root(self) -> Path:
        return Path(self.project_root).resolve()

    def llm_settings(self) -> Dict[str, Any]:
        settings = {
            "base_url": DEFAULT_LLM_BASE_URL,
            "model": DEFAULT_LLM_MODEL,
            "api_key_env_var": DEFAULT_LLM_API_KEY_ENV_VAR,
            "max_tokens": DEFAULT_LLM_MAX_TOKENS,
            "temperature": DEFAULT_LLM_TEMPERATURE,
            "confidence_threshold": DEFAULT_LLM_CONFIDENCE_THRESHOLD,
        }
        settings.update(self.llm_config or {})
        return settings

    def validate_bundler(self) -> None:
        if self.bundler not in SUPPORTED_BUNDLERS:
            raise ValueError(f"Unsupported bundler '{self.bundler}', expected one of {', '.join(SUPPORTED_BUNDLERS)}")


def load_config(
    config_path: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None
) -> PartRenderConfig:
    """
    Load configuration from file and overrides.

    Priority:
    1. CLI Arguments (if provided and not None)
    2. Config File (if provided or found at default path)
    3. Default Values

    Args:
        config_path: Path to the YAML config file. If None, tries 'partrender.config.yaml'.
        cli_args: Dictionary of CLI arguments to override config values.

    Returns:
        PartRenderConfig: The resolved configuration object.
    """
    config_data: Dict[str, Any] = {}

    target_path = config_path if config_path else DEFAULT_CONFIG_PATH
    path_obj = Path(target_path)

    if path_obj.exists() and path_obj.is_file():
        try:
            with open(path_obj, 'r', encoding='utf-8') as f:
                file_data = yaml.safe_load(f)
                if file_data:
                    config_data.update(file_data)
            logging.info(f"Loaded configuration from {target_path}")
        except (OSError, yaml.YAMLError) as e:
            logging.warning(f"Failed to load config file {target_path}: {e}")
    elif config_path:
        logging.warning(f"Config file not found at explicit path: {config_path}")
    else:
        logging.debug(f"No config file found at {DEFAULT_CONFIG_PATH}, using defaults.")

    if cli_args:
        for key, value in cli_args.items():
            if value is not None:
                config_data[key] = value

    config = PartRenderConfig(**config_data)
    config.validate_bundler()
    return config
