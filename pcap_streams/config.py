"""Configuration management for pcap-streams."""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from pathlib import Path
import os

import yaml

from .constants import DEFAULT_TIMEOUT_MS
from .capture.engine import CaptureParameters
from .errors import ValidationError


@dataclass
class CaptureConfig:
    """Live capture configuration."""
    interface: str = ""
    output: str = ""
    max_packets: int = 0  # must be set before capturing
    promiscuous: bool = False
    timeout_ms: int = DEFAULT_TIMEOUT_MS


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    rich_tracebacks: bool = True


@dataclass
class PcapStreamsConfig:
    """Main configuration container."""
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PcapStreamsConfig":
        """Create config from dictionary."""
        config = cls()

        if "capture" in data:
            cap = data["capture"] or {}
            config.capture = CaptureConfig(
                interface=cap.get("interface", ""),
                output=cap.get("output", ""),
                max_packets=cap.get("max_packets", 0),
                promiscuous=cap.get("promiscuous", False),
                timeout_ms=cap.get("timeout_ms", DEFAULT_TIMEOUT_MS),
            )

        if "logging" in data:
            log = data["logging"] or {}
            config.logging = LoggingConfig(
                level=str(log.get("level", "INFO")).upper(),
                rich_tracebacks=log.get("rich_tracebacks", True),
            )

        return config

    @classmethod
    def from_yaml(cls, path: str) -> "PcapStreamsConfig":
        """Load config from YAML file."""
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        if data is not None and not isinstance(data, dict):
            raise ValidationError(f"Config file '{path}' must contain a mapping")
        return cls.from_dict(data or {})

    @classmethod
    def load(cls, path: Optional[str] = None) -> "PcapStreamsConfig":
        """Load config from file or use defaults."""
        if path and not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        # Search paths
        search_paths = [
            path,
            "config.yaml",
            "config.yml",
            os.path.expanduser("~/.config/pcap-streams/config.yaml"),
            "/etc/pcap-streams/config.yaml",
        ]

        for config_path in search_paths:
            if config_path and os.path.exists(config_path):
                return cls.from_yaml(config_path)

        # Return defaults
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "capture": {
                "interface": self.capture.interface,
                "output": self.capture.output,
                "max_packets": self.capture.max_packets,
                "promiscuous": self.capture.promiscuous,
                "timeout_ms": self.capture.timeout_ms,
            },
            "logging": {
                "level": self.logging.level,
                "rich_tracebacks": self.logging.rich_tracebacks,
            },
        }

    def save_yaml(self, path: str) -> None:
        """Save config to YAML file."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False)

    def to_parameters(self, **overrides) -> CaptureParameters:
        """
        Build CaptureParameters from the capture section.

        Keyword overrides (interface, output, max_packets, promiscuous,
        timeout_ms) replace the configured value when not None.
        """
        values = {
            "interface": self.capture.interface,
            "output": self.capture.output,
            "max_packets": self.capture.max_packets,
            "promiscuous": self.capture.promiscuous,
            "timeout_ms": self.capture.timeout_ms,
        }
        for key, value in overrides.items():
            if key not in values:
                raise TypeError(f"Unknown capture option: {key}")
            if value is not None:
                values[key] = value

        return CaptureParameters(
            interface_name=values["interface"],
            output_filename=values["output"],
            max_packets=values["max_packets"],
            promiscuous=values["promiscuous"],
            timeout_ms=values["timeout_ms"],
        )
