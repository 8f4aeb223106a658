from .registry import (
    DEFAULT_PLATFORMS,
    PlatformRegistry,
    RegistryError,
    load_registry,
)
from .resolver import (
    extract_original_path,
    is_hostname_key,
    platform_prefix,
    resolve_platform_key,
)
from .transform import PlatformFamily, strip_platform_prefix, transform_path

__all__ = [
    "DEFAULT_PLATFORMS",
    "PlatformRegistry",
    "RegistryError",
    "load_registry",
    "extract_original_path",
    "is_hostname_key",
    "platform_prefix",
    "resolve_platform_key",
    "PlatformFamily",
    "strip_platform_prefix",
    "transform_path",
]
