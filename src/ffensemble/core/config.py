"""Shared behaviour of configuration dataclasses.

Every model configuration declares a ``kind`` so that nested, polymorphic
configurations (meta-learners, end-models, composite members) round-trip
through plain dictionaries and JSON files.
"""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, ClassVar, TypeVar

from .exceptions import ConfigurationError

ConfigT = TypeVar("ConfigT", bound="BaseConfig")

_CONFIG_KINDS: dict[str, type[BaseConfig]] = {}


def _encode(value: Any) -> Any:
    if isinstance(value, BaseConfig):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


class BaseConfig:
    """Base class of dataclass configurations with JSON persistence."""

    kind: ClassVar[str] = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.kind:
            _CONFIG_KINDS[cls.kind] = cls

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        Raises:
            ConfigurationError: If any configuration values are invalid.
        """
        self._validate()

    def _validate(self) -> None:
        pass

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        d: dict[str, Any] = {"kind": self.kind} if self.kind else {}
        for f in fields(self):  # type: ignore[arg-type]
            d[f.name] = _encode(getattr(self, f.name))
        return d

    @classmethod
    def _strip_kind(cls, d: dict[str, Any]) -> dict[str, Any]:
        d = dict(d)
        kind = d.pop("kind", cls.kind)
        if kind != cls.kind:
            raise ConfigurationError(f"Expected kind '{cls.kind}', got '{kind}'")
        return d

    @classmethod
    def from_dict(cls: type[ConfigT], d: dict[str, Any]) -> ConfigT:
        """Create config from dictionary."""
        return cls(**cls._strip_kind(d))

    def save(self, path: str | Path) -> None:
        """Save config to JSON file."""
        filepath = Path(path)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls: type[ConfigT], path: str | Path) -> ConfigT:
        """Load config from JSON file."""
        with open(path) as f:
            d = json.load(f)
        return cls.from_dict(d)

    def with_updates(self: ConfigT, **kwargs: Any) -> ConfigT:
        """Return a new config with updated values.

        Raises:
            ConfigurationError: If updated values are invalid.
        """
        d = {f.name: getattr(self, f.name) for f in fields(self)}  # type: ignore[arg-type]
        d.update(kwargs)
        return type(self)(**d)


def config_from_dict(d: dict[str, Any]) -> BaseConfig:
    """Create a model configuration of the kind named in ``d["kind"]``.

    Raises:
        ConfigurationError: If the kind is missing or unknown.
    """
    kind = d.get("kind")
    if kind not in _CONFIG_KINDS:
        raise ConfigurationError(
            f"Unknown configuration kind '{kind}'. Available kinds: {sorted(_CONFIG_KINDS)}"
        )
    return _CONFIG_KINDS[kind].from_dict(d)
