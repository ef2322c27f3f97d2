"""Configuration system for pidscope."""

import os
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

PROC_DIR_ENV = "PIDSCOPE_PROC_DIR"


@dataclass
class ReportConfig:
    """Report layout configuration."""

    bar_width: int = 50  # Characters in a region visualization bar
    banner_width: int = 75  # Width of section banners
    page_size: int = 4096  # Bytes per page for page count conversions
    affinity_cpus: int = 8  # CPUs shown in the affinity column
    interface_capacity: int = 8  # Max distinct interfaces tallied per report


@dataclass
class ProviderConfig:
    """Snapshot provider configuration."""

    proc_root: str = "/proc"


@dataclass
class LoggingConfig:
    """Diagnostic logging configuration."""

    level: str = "warning"
    json: bool = False


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


def _load_section(cls: type, data: dict) -> object:
    """Build a config section from TOML data, keeping defaults for missing keys."""
    defaults = cls()
    values = {}
    for f in fields(cls):
        value = data.get(f.name, getattr(defaults, f.name))
        # tomlkit items wrap plain values
        values[f.name] = value.unwrap() if hasattr(value, "unwrap") else value
    return cls(**values)


@dataclass
class Config:
    """Main configuration container."""

    report: ReportConfig = field(default_factory=ReportConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "pidscope"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def proc_root(self) -> Path:
        """Procfs root, overridable through the environment."""
        return Path(os.environ.get(PROC_DIR_ENV) or self.provider.proc_root)

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("report", "provider", "logging"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values."""
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            report=_load_section(ReportConfig, data.get("report", {})),
            provider=_load_section(ProviderConfig, data.get("provider", {})),
            logging=_load_section(LoggingConfig, data.get("logging", {})),
        )
