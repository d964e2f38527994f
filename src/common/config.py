"""Configuration management for the metastore authorization engine.

Handles loading and validation of YAML configuration files. The
configuration names the server the catalog belongs to, the admin
groups, where the policy document lives and how strict partition
alteration is.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

DEFAULT_SERVER_NAME = "server1"

# Scopes accepted for general (non-location) partition alteration
ALTER_PARTITION_SCOPES = ("server", "database")


@dataclass
class AuthorizationConfig:
    """Configuration for policy evaluation."""

    server_name: str = DEFAULT_SERVER_NAME
    admin_groups: List[str] = field(default_factory=list)
    policy_file: Optional[str] = None
    default_filesystem: Optional[str] = None
    alter_partition_scope: str = "server"


@dataclass
class CatalogConfig:
    """Configuration for the reference catalog store."""

    database_url: str = "sqlite://"
    warehouse_dir: str = "/user/hive/warehouse"
    echo: bool = False


@dataclass
class LoggingConfig:
    """Configuration for engine logging."""

    level: str = "INFO"
    log_dir: str = "/var/log/metastore-authz"
    file_logging: bool = False
    console_logging: bool = True


@dataclass
class MetastoreAuthzConfig:
    """Top-level configuration for the engine."""

    authorization: AuthorizationConfig = field(default_factory=AuthorizationConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def parse_authorization_config(authz_dict: Dict[str, Any]) -> AuthorizationConfig:
    """Parse the authorization section.

    Args:
        authz_dict: Authorization configuration dictionary

    Returns:
        AuthorizationConfig instance

    Raises:
        ValueError: If the section holds an unusable value
    """
    admin_groups = authz_dict.get("admin_groups", [])
    if isinstance(admin_groups, str):
        admin_groups = [g.strip() for g in admin_groups.split(",") if g.strip()]
    if not isinstance(admin_groups, list):
        raise ValueError(
            f"admin_groups must be a list or comma separated string, "
            f"got {type(admin_groups).__name__}"
        )

    scope = str(authz_dict.get("alter_partition_scope", "server")).lower()
    if scope not in ALTER_PARTITION_SCOPES:
        raise ValueError(
            f"Invalid alter_partition_scope: {scope}. "
            f"Must be one of: {', '.join(ALTER_PARTITION_SCOPES)}"
        )

    server_name = authz_dict.get("server_name", DEFAULT_SERVER_NAME)
    if not server_name:
        raise ValueError("server_name must not be empty")

    return AuthorizationConfig(
        server_name=str(server_name),
        admin_groups=[str(g) for g in admin_groups],
        policy_file=authz_dict.get("policy_file"),
        default_filesystem=authz_dict.get("default_filesystem"),
        alter_partition_scope=scope,
    )


def parse_catalog_config(catalog_dict: Dict[str, Any]) -> CatalogConfig:
    """Parse the catalog section."""
    return CatalogConfig(
        database_url=catalog_dict.get("database_url", "sqlite://"),
        warehouse_dir=catalog_dict.get("warehouse_dir", "/user/hive/warehouse"),
        echo=bool(catalog_dict.get("echo", False)),
    )


def parse_logging_config(logging_dict: Dict[str, Any]) -> LoggingConfig:
    """Parse the logging section."""
    return LoggingConfig(
        level=logging_dict.get("level", "INFO"),
        log_dir=logging_dict.get("log_dir", "/var/log/metastore-authz"),
        file_logging=bool(logging_dict.get("file_logging", False)),
        console_logging=bool(logging_dict.get("console_logging", True)),
    )


def parse_config(config_dict: Dict[str, Any]) -> MetastoreAuthzConfig:
    """Parse the full configuration dictionary.

    Args:
        config_dict: Full configuration dictionary

    Returns:
        MetastoreAuthzConfig instance
    """
    authorization = AuthorizationConfig()
    if "authorization" in config_dict:
        authorization = parse_authorization_config(config_dict["authorization"] or {})

    catalog = CatalogConfig()
    if "catalog" in config_dict:
        catalog = parse_catalog_config(config_dict["catalog"] or {})

    logging_config = LoggingConfig()
    if "logging" in config_dict:
        logging_config = parse_logging_config(config_dict["logging"] or {})

    return MetastoreAuthzConfig(
        authorization=authorization,
        catalog=catalog,
        logging=logging_config,
    )


def load_config(config_path: str = "/etc/metastore-authz/config.yaml") -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration.

    Args:
        obj: Configuration object (dict, list, str, etc.)

    Returns:
        Configuration with expanded environment variables
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_typed_config(
    config_path: str = "/etc/metastore-authz/config.yaml",
) -> MetastoreAuthzConfig:
    """Load and parse configuration into typed dataclass.

    Args:
        config_path: Path to configuration file

    Returns:
        MetastoreAuthzConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_dict = load_config(config_path)
    return parse_config(config_dict)
