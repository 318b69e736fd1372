"""
Configuration module for depchunk.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from depchunk.core.errors import ConfigError

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None

SUPPORTED_TOKENIZERS = ("estimate", "tiktoken")


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section) or {}
    value = section_defaults.get(key, fallback)
    # Lists are shared through the cache, hand out copies
    if isinstance(value, list):
        return list(value)
    return value


@dataclass
class ChunkingConfig:
    """Configuration for chunk extraction."""

    chunk_size: int = field(default_factory=lambda: _get_default("chunking", "chunk_size", 512))
    include_nested: bool = field(
        default_factory=lambda: _get_default("chunking", "include_nested", True)
    )
    merge_small_chunks: bool = field(
        default_factory=lambda: _get_default("chunking", "merge_small_chunks", True)
    )
    min_chunk_size: int = field(
        default_factory=lambda: _get_default("chunking", "min_chunk_size", 50)
    )
    include_content: bool = field(
        default_factory=lambda: _get_default("chunking", "include_content", False)
    )
    tokenizer: str = field(
        default_factory=lambda: _get_default("chunking", "tokenizer", "estimate")
    )
    include: list[str] = field(
        default_factory=lambda: _get_default(
            "chunking",
            "include",
            ["**/*.ts", "**/*.tsx", "**/*.js", "**/*.jsx", "**/*.vue"],
        )
    )
    exclude: list[str] = field(
        default_factory=lambda: _get_default(
            "chunking",
            "exclude",
            ["**/node_modules/**", "**/dist/**", "**/build/**"],
        )
    )


@dataclass
class CacheConfig:
    """Configuration for the parsed-tree cache and parser pool."""

    parser_pool_size: int = field(
        default_factory=lambda: _get_default("cache", "parser_pool_size", 5)
    )
    ast_cache_ttl: float = field(
        default_factory=lambda: _get_default("cache", "ast_cache_ttl", 300.0)
    )
    ast_cache_max_size: int = field(
        default_factory=lambda: _get_default("cache", "ast_cache_max_size", 1000)
    )


@dataclass
class ExtractionConfig:
    """Configuration for extract-with-dependencies."""

    max_gap_lines: int = field(
        default_factory=lambda: _get_default("extraction", "max_gap_lines", 20)
    )
    max_dependency_files: int = field(
        default_factory=lambda: _get_default("extraction", "max_dependency_files", 500)
    )
    max_discovery_rounds: int = field(
        default_factory=lambda: _get_default("extraction", "max_discovery_rounds", 50)
    )
    module_extensions: list[str] = field(
        default_factory=lambda: _get_default(
            "extraction",
            "module_extensions",
            [".ts", ".tsx", ".js", ".jsx", ".vue", ".py", ""],
        )
    )


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""

    host: str = field(default_factory=lambda: _get_default("server", "host", "127.0.0.1"))
    port: int = field(default_factory=lambda: _get_default("server", "port", 8000))


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "INFO"))
    format: str = field(
        default_factory=lambda: _get_default(
            "logging", "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )


@dataclass
class DepchunkConfig:
    """Main configuration class for depchunk."""

    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "DepchunkConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            DepchunkConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ConfigError: If the file format is unsupported
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            raise ConfigError(f"Unsupported config file format: {path.suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "DepchunkConfig":
        """Create DepchunkConfig from a dictionary."""
        config = cls()
        sections = {
            "chunking": ChunkingConfig,
            "cache": CacheConfig,
            "extraction": ExtractionConfig,
            "server": ServerConfig,
            "logging": LoggingConfig,
        }

        for name, section_cls in sections.items():
            if name in data:
                try:
                    setattr(config, name, section_cls(**(data[name] or {})))
                except TypeError as e:
                    raise ConfigError(f"Invalid '{name}' section: {e}") from e

        return config

    def validate(self) -> "DepchunkConfig":
        """
        Check value ranges.

        Raises:
            ConfigError: If a value is out of range
        """
        if self.chunking.chunk_size <= 0:
            raise ConfigError("chunking.chunk_size must be positive")
        if self.chunking.min_chunk_size < 0:
            raise ConfigError("chunking.min_chunk_size must not be negative")
        if self.chunking.tokenizer not in SUPPORTED_TOKENIZERS:
            raise ConfigError(
                f"chunking.tokenizer must be one of {', '.join(SUPPORTED_TOKENIZERS)}"
            )
        if self.cache.parser_pool_size < 0:
            raise ConfigError("cache.parser_pool_size must not be negative")
        if self.cache.ast_cache_max_size <= 0:
            raise ConfigError("cache.ast_cache_max_size must be positive")
        if self.cache.ast_cache_ttl < 0:
            raise ConfigError("cache.ast_cache_ttl must not be negative")
        if self.extraction.max_dependency_files <= 0:
            raise ConfigError("extraction.max_dependency_files must be positive")
        return self

    def apply_env_overrides(self) -> "DepchunkConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: DEPCHUNK_<SECTION>_<KEY>
        Examples:
            - DEPCHUNK_CHUNKING_CHUNK_SIZE
            - DEPCHUNK_CHUNKING_INCLUDE_CONTENT
            - DEPCHUNK_CACHE_AST_CACHE_TTL
            - DEPCHUNK_SERVER_PORT
            - DEPCHUNK_LOGGING_LEVEL

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Chunking config
            "DEPCHUNK_CHUNKING_CHUNK_SIZE": ("chunking", "chunk_size", int),
            "DEPCHUNK_CHUNKING_INCLUDE_NESTED": ("chunking", "include_nested", _parse_bool),
            "DEPCHUNK_CHUNKING_MERGE_SMALL_CHUNKS": (
                "chunking",
                "merge_small_chunks",
                _parse_bool,
            ),
            "DEPCHUNK_CHUNKING_MIN_CHUNK_SIZE": ("chunking", "min_chunk_size", int),
            "DEPCHUNK_CHUNKING_INCLUDE_CONTENT": ("chunking", "include_content", _parse_bool),
            "DEPCHUNK_CHUNKING_TOKENIZER": ("chunking", "tokenizer", str),
            "DEPCHUNK_CHUNKING_INCLUDE": ("chunking", "include", _parse_list),
            "DEPCHUNK_CHUNKING_EXCLUDE": ("chunking", "exclude", _parse_list),
            # Cache config
            "DEPCHUNK_CACHE_PARSER_POOL_SIZE": ("cache", "parser_pool_size", int),
            "DEPCHUNK_CACHE_AST_CACHE_TTL": ("cache", "ast_cache_ttl", float),
            "DEPCHUNK_CACHE_AST_CACHE_MAX_SIZE": ("cache", "ast_cache_max_size", int),
            # Extraction config
            "DEPCHUNK_EXTRACTION_MAX_GAP_LINES": ("extraction", "max_gap_lines", int),
            "DEPCHUNK_EXTRACTION_MAX_DEPENDENCY_FILES": (
                "extraction",
                "max_dependency_files",
                int,
            ),
            "DEPCHUNK_EXTRACTION_MAX_DISCOVERY_ROUNDS": (
                "extraction",
                "max_discovery_rounds",
                int,
            ),
            # Server config
            "DEPCHUNK_SERVER_HOST": ("server", "host", str),
            "DEPCHUNK_SERVER_PORT": ("server", "port", int),
            # Logging config
            "DEPCHUNK_LOGGING_LEVEL": ("logging", "level", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                section_obj = getattr(self, section)
                setattr(section_obj, key, converter(value))

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Save configuration to a file.

        Args:
            path: Path to save the configuration (.yaml, .yml, or .json)

        Raises:
            ConfigError: If the file format is unsupported
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            content = self.to_yaml()
        elif path.suffix == ".json":
            content = self.to_json()
        else:
            raise ConfigError(f"Unsupported config file format: {path.suffix}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def _parse_list(value: str) -> list[str]:
    """Parse a comma-separated string to a list."""
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(
    config_path: Optional[Path | str] = None, apply_env: bool = True
) -> DepchunkConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        Validated DepchunkConfig instance
    """
    if config_path:
        config = DepchunkConfig.from_file(config_path)
    else:
        config = DepchunkConfig()

    if apply_env:
        config.apply_env_overrides()

    return config.validate()


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger for the CLI and HTTP entry points."""
    level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.format)
