from hostwatch.core.config.io import DEFAULT_CONFIG_PATH, ReadResult, load_config, read_json_file, save_config
from hostwatch.core.config.models import AgentConfig, AlertsConfig, SinkConfig, SourceConfig

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "AgentConfig",
    "AlertsConfig",
    "ReadResult",
    "SinkConfig",
    "SourceConfig",
    "load_config",
    "read_json_file",
    "save_config",
]
