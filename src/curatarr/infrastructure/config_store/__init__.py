from .yaml_store import (
    YamlConfigStore,
    load_delay_profiles_file,
    load_formats_file,
    load_profiles_file,
)

__all__ = [
    "YamlConfigStore",
    "load_delay_profiles_file",
    "load_formats_file",
    "load_profiles_file",
]
