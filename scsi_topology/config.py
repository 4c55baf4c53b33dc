"""Configuration management for SCSI topology"""

import os
import logging
from typing import Any, Dict, Optional
import yaml


DEFAULT_CONFIG_FILE = "/etc/scsi_topology.conf"

# Tool locations by RHEL major release
TOOL_PATHS = {
    "rhel7": {
        "lspci": "/usr/sbin/lspci",
        "scsi_id": "/usr/lib/udev/scsi_id",
        "dmsetup": "/usr/sbin/dmsetup",
    },
    "rhel6": {
        "lspci": "/sbin/lspci",
        "scsi_id": "/sbin/scsi_id",
        "dmsetup": "/sbin/dmsetup",
    },
}

DEFAULTS: Dict[str, Any] = {
    "sysfs_root": "/sys",
    "storage_pattern": "SCSI|scsi|storage",
    "workers": 8,
    "asm": {
        "rules_file": "/etc/udev/rules.d/99-oracle-asm.rules",
        "grid_user": "grid",
    },
    "oui": {
        "file": "/unix/tools/lib/oui.txt",
        "url": "https://standards-oui.ieee.org/oui/oui.txt",
        "timeout": 60,
    },
}


class ConfigManager:
    """Manages loading and accessing configuration from YAML file"""

    def __init__(self, config_file: str = DEFAULT_CONFIG_FILE, logger: Optional[logging.Logger] = None):
        """Initialize configuration manager

        Args:
            config_file: Path to configuration file
            logger: Logger instance
        """
        self.config_file = os.path.expanduser(config_file)
        self.logger = logger or logging.getLogger(__name__)

        self.tools: Dict[str, str] = {}
        self.settings: Dict[str, Any] = {
            key: dict(value) if isinstance(value, dict) else value
            for key, value in DEFAULTS.items()
        }

        self.load()

    def load(self) -> None:
        """Load configuration from YAML file

        Configuration file structure:
        ```yaml
        tools:                  # Override tool locations
          lspci: /usr/sbin/lspci
          scsi_id: /usr/lib/udev/scsi_id
          dmsetup: /usr/sbin/dmsetup
        sysfs_root: /sys
        storage_pattern: "SCSI|scsi|storage"
        workers: 8              # Parallel device record builders
        asm:
          rules_file: /etc/udev/rules.d/99-oracle-asm.rules
          grid_user: grid       # User running kfod
        oui:
          file: /unix/tools/lib/oui.txt
          url: https://standards-oui.ieee.org/oui/oui.txt
          timeout: 60
        ```
        """
        if not os.path.exists(self.config_file):
            self.logger.debug(f"Configuration file {self.config_file} not found. Using default settings.")
            return

        try:
            self.logger.debug(f"Loading user configuration from {self.config_file}")

            with open(self.config_file, 'r') as f:
                config = yaml.safe_load(f)

            if not config or not isinstance(config, dict):
                self.logger.warning(f"Configuration file {self.config_file} is empty or invalid")
                return

            if 'tools' in config:
                self._load_tools(config['tools'])

            for key, default in DEFAULTS.items():
                if key not in config:
                    continue
                if isinstance(default, dict):
                    if isinstance(config[key], dict):
                        self.settings[key].update(config[key])
                    else:
                        self.logger.warning(f"Ignoring '{key}': expected a mapping")
                else:
                    self.settings[key] = config[key]

        except yaml.YAMLError as e:
            self.logger.error(f"Error parsing YAML in configuration file: {e}")
        except IOError as e:
            self.logger.error(f"Error reading configuration file: {e}")

    def _load_tools(self, tools_data: Dict[str, str]) -> None:
        """Load tool path overrides

        Args:
            tools_data: Mapping of tool name to absolute path
        """
        if not isinstance(tools_data, dict):
            self.logger.warning("Ignoring 'tools': expected a mapping")
            return

        for name, path in tools_data.items():
            self.tools[name] = str(path)
            self.logger.debug(f"Using configured path for {name}: {path}")

    def tool_path(self, name: str, rhel_major: int = 7) -> str:
        """Get the expected location of a system utility

        Configured paths win over the per-release defaults.
        """
        if name in self.tools:
            return self.tools[name]
        release = "rhel7" if rhel_major >= 7 else "rhel6"
        return TOOL_PATHS[release].get(name, name)

    @property
    def sysfs_root(self) -> str:
        return self.settings["sysfs_root"]

    @property
    def storage_pattern(self) -> str:
        return self.settings["storage_pattern"]

    @property
    def workers(self) -> int:
        try:
            return max(1, int(self.settings["workers"]))
        except (TypeError, ValueError):
            self.logger.warning(f"Invalid workers setting: {self.settings['workers']}")
            return 1

    @property
    def asm_rules_file(self) -> str:
        return self.settings["asm"]["rules_file"]

    @property
    def grid_user(self) -> str:
        return self.settings["asm"]["grid_user"]

    @property
    def oui_file(self) -> str:
        return os.path.expanduser(self.settings["oui"]["file"])

    @property
    def oui_url(self) -> str:
        return self.settings["oui"]["url"]

    @property
    def oui_timeout(self) -> int:
        return int(self.settings["oui"]["timeout"])
