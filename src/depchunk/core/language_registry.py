"""
Language registry for mapping file extensions to languages and front-ends.
"""

import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

# Default path to the languages configuration file
_DEFAULT_LANGUAGES_CONFIG = Path(__file__).parent / "languages.yaml"

# Files with an unrecognised extension are read as TypeScript
DEFAULT_LANGUAGE = "typescript"

# Front-end kinds
TYPESCRIPT_FRONT_END = "typescript"
VUE_FRONT_END = "vue"
TREESITTER_FRONT_END = "treesitter"

_FRONT_END_BY_LANGUAGE = {
    "typescript": TYPESCRIPT_FRONT_END,
    "javascript": TYPESCRIPT_FRONT_END,
    "vue": VUE_FRONT_END,
}


class LanguageRegistry:
    """
    Extensible registry for mapping file extensions to languages.

    Example:
        >>> registry = LanguageRegistry()
        >>> registry.register("elixir", [".ex", ".exs"])
        >>> registry.detect(".ex")
        'elixir'
    """

    def __init__(self, load_defaults: bool = True, default_language: str = DEFAULT_LANGUAGE):
        """
        Initialize the language registry.

        Args:
            load_defaults: If True, load default language mappings from languages.yaml.
            default_language: Language reported for unregistered extensions.
        """
        self._extension_to_language: dict[str, str] = {}
        self._language_to_extensions: dict[str, set[str]] = {}
        self._default_language = default_language

        if load_defaults:
            self._load_from_yaml(_DEFAULT_LANGUAGES_CONFIG)

    @classmethod
    def from_yaml(cls, config_path: Path | str) -> "LanguageRegistry":
        """
        Create a LanguageRegistry from a YAML configuration file.

        Raises:
            ValueError: If the config file format is invalid
        """
        registry = cls(load_defaults=False)
        registry._load_from_yaml(Path(config_path))
        return registry

    def _load_from_yaml(self, config_path: Path) -> None:
        """
        Load language mappings from a YAML file.

        Expected format:
            language_name:
              - .ext1
              - .ext2
        """
        if not config_path.exists():
            logger.warning(f"Languages config not found: {config_path}, using empty registry")
            return

        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse languages config: {e}")
            raise ValueError(f"Invalid YAML in languages config: {e}") from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ValueError(f"Invalid languages config format: expected dict, got {type(data)}")

        for language, extensions in data.items():
            if not isinstance(extensions, list):
                logger.warning(
                    f"Invalid extensions for {language}: expected list, got {type(extensions)}"
                )
                continue
            self.register(str(language), [str(ext) for ext in extensions])

    def register(self, language: str, extensions: list[str]) -> "LanguageRegistry":
        """Register a language with its file extensions (including the dot)."""
        for ext in extensions:
            ext_lower = ext.lower()
            self._extension_to_language[ext_lower] = language
            self._language_to_extensions.setdefault(language, set()).add(ext_lower)
        return self

    def unregister(self, language: str) -> "LanguageRegistry":
        """Remove a language and all its extensions from the registry."""
        for ext in self._language_to_extensions.pop(language, set()):
            self._extension_to_language.pop(ext, None)
        return self

    def detect(self, extension: str) -> str:
        """Detect language from a file extension, falling back to the default language."""
        return self._extension_to_language.get(extension.lower(), self._default_language)

    def detect_from_path(self, file_path: Path | str) -> str:
        """Detect language from a file path."""
        return self.detect(Path(file_path).suffix)

    def get_extensions(self, language: str) -> set[str]:
        """Get all registered extensions for a language."""
        return self._language_to_extensions.get(language, set()).copy()

    def get_all_languages(self) -> set[str]:
        """Get all registered language identifiers."""
        return set(self._language_to_extensions.keys())

    def is_supported(self, extension: str) -> bool:
        """Check if an extension is registered."""
        return extension.lower() in self._extension_to_language


def front_end_for(language: str) -> str:
    """
    Pick the front-end kind for a language.

    TypeScript and JavaScript share the TypeScript front-end, Vue single-file
    components get the Vue reader and everything else goes to the generic
    tree-sitter backend.
    """
    return _FRONT_END_BY_LANGUAGE.get(language, TREESITTER_FRONT_END)


# Global default registry instance
_default_registry = LanguageRegistry()


def get_default_registry() -> LanguageRegistry:
    """Get the global default language registry."""
    return _default_registry


def detect_language(file_path: Path | str) -> str:
    """Detect the language of a file using the default registry."""
    return _default_registry.detect_from_path(file_path)
