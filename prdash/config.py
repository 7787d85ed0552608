"""
Configuration management for the pull request dashboard.

Handles locating and loading the YAML file that lists the accounts to
query, e.g.:

    accounts:
      - pat: <personal access token>
        org_url: https://dev.azure.com/contoso
        project_name: Backend
        repo_name: api        # optional
    demo_mode: false          # optional
"""

import logging
import os
from typing import Dict, List

import yaml

from .models import AccountConfig

# Default config file name (inside the user configuration directory)
DEFAULT_CONFIG_FILE = 'pr-dash.yml'

REQUIRED_ACCOUNT_KEYS = ('pat', 'org_url', 'project_name')


class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


def config_dir() -> str:
    """Return the per-user configuration directory."""
    if os.name == 'nt' and os.environ.get('APPDATA'):
        return os.environ['APPDATA']
    return os.environ.get('XDG_CONFIG_HOME') or os.path.join(os.path.expanduser('~'), '.config')


class Config:
    """Represents the complete configuration for the dashboard."""

    def __init__(self, accounts: List[AccountConfig] = None, demo_mode: bool = False):
        """
        Initialize the configuration.

        Args:
            accounts: The configured accounts, in display order
            demo_mode: Whether to show canned data instead of querying a server
        """
        self.accounts: List[AccountConfig] = list(accounts or [])
        self.demo_mode = demo_mode

    @staticmethod
    def config_path() -> str:
        """The fully qualified configuration file path.

        The PR_DASH_CONFIG environment variable overrides the default location.
        """
        return os.environ.get('PR_DASH_CONFIG') or os.path.join(config_dir(), DEFAULT_CONFIG_FILE)

    @classmethod
    def validate_config_exists(cls) -> None:
        """Raise ConfigError if the configuration file does not exist."""
        path = cls.config_path()
        if not os.path.exists(path):
            raise ConfigError(f"Configuration does not exist: {path}")

    @classmethod
    def from_config_file(cls) -> 'Config':
        """Load the configuration from the default location."""
        path = cls.config_path()
        logging.info(f"Loading configuration from: {path}")
        return cls.from_file(path)

    @classmethod
    def from_file(cls, file_path: str) -> 'Config':
        """Load the configuration from a YAML file.

        Args:
            file_path: Path to the configuration file

        Returns:
            The loaded configuration

        Raises:
            ConfigError: If the file cannot be read or is invalid
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return cls.from_string(f.read())
        except IOError as e:
            raise ConfigError(f"Could not read configuration from {file_path}: {e}") from e

    @classmethod
    def from_string(cls, yaml_payload: str) -> 'Config':
        """Load the configuration from a string with YAML contents.

        Raises:
            ConfigError: If the YAML is invalid or required keys are missing
        """
        try:
            root = yaml.safe_load(yaml_payload)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML configuration: {e}") from e

        if not isinstance(root, dict):
            raise ConfigError("Configuration must be a mapping with an 'accounts' list")

        demo_mode = bool(root.get('demo_mode', False))
        account_nodes = root.get('accounts')

        if account_nodes is None and demo_mode:
            account_nodes = []
        if not isinstance(account_nodes, list):
            raise ConfigError("Configuration requires an 'accounts' list")

        accounts = [_parse_account(node, index) for index, node in enumerate(account_nodes)]
        logging.info(f"Loaded configuration with {len(accounts)} account(s)")
        return cls(accounts, demo_mode=demo_mode)


def _parse_account(node: Dict, index: int) -> AccountConfig:
    if not isinstance(node, dict):
        raise ConfigError(f"Account #{index + 1} must be a mapping")

    missing = [key for key in REQUIRED_ACCOUNT_KEYS if not node.get(key)]
    if missing:
        raise ConfigError(f"Account #{index + 1} is missing: {', '.join(missing)}")

    org_url = str(node['org_url']).strip()
    if not org_url.startswith(('http://', 'https://')):
        raise ConfigError(f"Account #{index + 1} has an invalid org_url: {org_url}")

    return AccountConfig(
        organization_url=org_url,
        personal_access_token=str(node['pat']),
        project=str(node['project_name']),
        repo_name=str(node['repo_name']) if node.get('repo_name') else None,
    )
