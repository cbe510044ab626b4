"""
Configuration loading for the image filter server.

Two file formats describe the same configuration:

- INI (settings.ini): an [image_filter] section with one filter directive
  per line, written the way a person would type them, and a [server]
  section for the host.
- JSON: the structured form, with filter parameters as objects keyed by
  "<position>_<name>" and an explicit filter_order list.
"""

import json
import shlex
from configparser import ConfigParser, Error as ConfigParserError
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from ..core import (
    ConfigurationError,
    DEFAULT_JPEG_QUALITY,
    EncodingOptions,
    HandlerSettings,
    PngCompression,
    ServerSettings,
    ValidationEngine,
)
from ..processing import (
    FilterRegistry,
    ProcessingPipeline,
    build_from_positional,
    build_from_structured,
    create_registry,
)

# Section and keys
SECTION = "image_filter"
SERVER_SECTION = "server"
KEY_ROOT = "root"
KEY_JPEG_QUALITY = "jpeg_quality"
KEY_PNG_COMPRESSION = "png_compression"
KEY_MAX_CONCURRENT = "max_concurrent"
KEY_EXPOSE_ERRORS = "expose_filter_errors"
KEY_REQUEST_TIMEOUT = "request_timeout"
KEY_FILTER_BUNDLE = "filter_bundle"
KEY_FILTERS = "filters"
KEY_FILTER_ORDER = "filter_order"

DEFAULT_BUNDLE = "all"

_BOOLEANS = {
    "1": True, "yes": True, "true": True, "on": True,
    "0": False, "no": False, "false": False, "off": False,
}


@dataclass
class AppConfig:
    """Everything needed to start serving."""
    pipeline: ProcessingPipeline
    handler: HandlerSettings = field(default_factory=HandlerSettings)
    server: ServerSettings = field(default_factory=ServerSettings)


def load_config(path: Union[str, Path], registry: Optional[FilterRegistry] = None) -> AppConfig:
    """
    Load a configuration file; the format is chosen by extension (.json or INI).

    When no registry is given, one is created from the file's filter_bundle.

    Raises:
        ConfigurationError: if the file is missing, malformed or invalid
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot read configuration '{path}': {e}") from e

    if path.suffix.lower() == ".json":
        return PipelineSerializer.loads(text, registry)
    return IniConfigLoader.loads(text, registry)


# ============================================================================
# VALUE PARSING
# ============================================================================

def _parse_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from None


def _parse_float(key: str, value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from None


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text not in _BOOLEANS:
        raise ConfigurationError(f"{key} must be a boolean, got {value!r}")
    return _BOOLEANS[text]


def _parse_png_compression(value: Any) -> PngCompression:
    try:
        return PngCompression.parse(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(str(e)) from None


def _build_settings(options: Mapping[str, Any]) -> HandlerSettings:
    settings = HandlerSettings(
        root=str(options.get(KEY_ROOT) or "."),
        max_concurrent=_parse_int(KEY_MAX_CONCURRENT, options.get(KEY_MAX_CONCURRENT, 0)),
        expose_filter_errors=_parse_bool(KEY_EXPOSE_ERRORS, options.get(KEY_EXPOSE_ERRORS, False)),
        request_timeout=_parse_float(KEY_REQUEST_TIMEOUT, options.get(KEY_REQUEST_TIMEOUT)),
    )
    issues = ValidationEngine.validate_handler(settings)
    ValidationEngine.raise_for_issues(issues, "handler configuration")
    return settings


def _build_encoding(options: Mapping[str, Any]) -> EncodingOptions:
    return EncodingOptions(
        jpeg_quality=_parse_int(KEY_JPEG_QUALITY, options.get(KEY_JPEG_QUALITY, DEFAULT_JPEG_QUALITY)),
        png_compression=_parse_png_compression(options.get(KEY_PNG_COMPRESSION, 0)),
    )


def _build_server(options: Mapping[str, Any]) -> ServerSettings:
    defaults = ServerSettings()
    return ServerSettings(
        host=str(options.get("host") or defaults.host),
        port=_parse_int("port", options.get("port", defaults.port)),
        log_level=str(options.get("log_level") or defaults.log_level).upper(),
    )


def _registry_for(options: Mapping[str, Any], registry: Optional[FilterRegistry]) -> FilterRegistry:
    if registry is not None:
        return registry
    try:
        return create_registry(str(options.get(KEY_FILTER_BUNDLE) or DEFAULT_BUNDLE))
    except ValueError as e:
        raise ConfigurationError(str(e)) from None


# ============================================================================
# INI
# ============================================================================

class IniConfigLoader:
    """Reads the INI configuration format."""

    @staticmethod
    def loads(text: str, registry: Optional[FilterRegistry] = None) -> AppConfig:
        config = ConfigParser(interpolation=None)
        try:
            config.read_string(text)
        except ConfigParserError as e:
            raise ConfigurationError(f"malformed configuration: {e}") from None

        if not config.has_section(SECTION):
            raise ConfigurationError(f"missing [{SECTION}] section")
        options = dict(config.items(SECTION))
        server = dict(config.items(SERVER_SECTION)) if config.has_section(SERVER_SECTION) else {}

        directives = IniConfigLoader.parse_directives(options.get(KEY_FILTERS, ""))
        pipeline = build_from_positional(
            _registry_for(options, registry),
            directives,
            _build_encoding(options),
        )
        return AppConfig(
            pipeline=pipeline,
            handler=_build_settings(options),
            server=_build_server(server),
        )

    @staticmethod
    def parse_directives(text: str) -> List[List[str]]:
        """Split a multi-line filters value into [name, arg, ...] lists."""
        directives = []
        for number, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                directives.append(shlex.split(line, comments=True))
            except ValueError as e:
                raise ConfigurationError(f"filters line {number}: {e}") from None
        return [d for d in directives if d]


# ============================================================================
# JSON
# ============================================================================

class PipelineSerializer:
    """
    Serializes and deserializes the structured (JSON) configuration.

    Unknown top-level keys are ignored so files written by newer versions
    still load.
    """

    FORMAT_VERSION = "1.0"

    @staticmethod
    def serialize(config: AppConfig) -> Dict[str, Any]:
        """Convert an AppConfig to a serializable dictionary."""
        data = {"format_version": PipelineSerializer.FORMAT_VERSION}
        data.update(config.pipeline.to_dict())
        data.update({
            KEY_ROOT: config.handler.root,
            KEY_MAX_CONCURRENT: config.handler.max_concurrent,
            KEY_EXPOSE_ERRORS: config.handler.expose_filter_errors,
            "server": {
                "host": config.server.host,
                "port": config.server.port,
                "log_level": config.server.log_level,
            },
        })
        if config.handler.request_timeout is not None:
            data[KEY_REQUEST_TIMEOUT] = config.handler.request_timeout
        return data

    @staticmethod
    def deserialize(data: Mapping[str, Any], registry: Optional[FilterRegistry] = None) -> AppConfig:
        """Convert a dictionary back to an AppConfig."""
        if not isinstance(data, Mapping):
            raise ConfigurationError("configuration must be a JSON object")

        filters = data.get(KEY_FILTERS) or {}
        filter_order = data.get(KEY_FILTER_ORDER) or []
        if not isinstance(filters, Mapping):
            raise ConfigurationError(f"{KEY_FILTERS} must be an object")
        if not isinstance(filter_order, list) or not all(isinstance(k, str) for k in filter_order):
            raise ConfigurationError(f"{KEY_FILTER_ORDER} must be a list of filter keys")

        pipeline = build_from_structured(
            _registry_for(data, registry),
            filters,
            filter_order,
            _build_encoding(data),
        )
        server = data.get("server") or {}
        if not isinstance(server, Mapping):
            raise ConfigurationError("server must be an object")
        return AppConfig(
            pipeline=pipeline,
            handler=_build_settings(data),
            server=_build_server(server),
        )

    @staticmethod
    def dumps(config: AppConfig) -> str:
        return json.dumps(PipelineSerializer.serialize(config), indent=2)

    @staticmethod
    def loads(text: str, registry: Optional[FilterRegistry] = None) -> AppConfig:
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ConfigurationError(f"malformed configuration: {e}") from None
        return PipelineSerializer.deserialize(data, registry)

    @staticmethod
    def save(config: AppConfig, path: Union[str, Path]) -> None:
        """Write config to path as JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(PipelineSerializer.dumps(config), encoding="utf-8")
