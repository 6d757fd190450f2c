"""Server endpoint identity and launch configuration.

The launch configuration is computed by a pure function of the endpoint and
the host's launch mode, so both variants can be built up front and compared
without touching the filesystem or the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping


class LaunchMode(Enum):
    """How the host itself was launched."""

    NORMAL = "normal"
    DIAGNOSTIC = "diagnostic"


def _frozen(mapping: Mapping[str, str] | None = None) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ServerEndpoint:
    """The external server process to run.

    Attributes:
        executable: Absolute path of the server binary.
        diagnostic_env: Environment overlay applied only in diagnostic mode.
        cwd: Working directory for the process (None inherits the host's).
    """

    executable: Path
    diagnostic_env: Mapping[str, str] = field(default_factory=_frozen)
    cwd: Path | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "diagnostic_env", _frozen(self.diagnostic_env))


@dataclass(frozen=True)
class LaunchConfig:
    """Everything needed to create the server process once."""

    executable: Path
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=_frozen)
    cwd: Path | None = None
    mode: LaunchMode = LaunchMode.NORMAL

    def __post_init__(self) -> None:
        object.__setattr__(self, "env", _frozen(self.env))

    @property
    def command(self) -> list[str]:
        return [str(self.executable), *self.args]


@dataclass(frozen=True)
class LaunchConfigs:
    """The run/debug pair sharing one executable."""

    normal: LaunchConfig
    diagnostic: LaunchConfig

    def select(self, mode: LaunchMode) -> LaunchConfig:
        return self.diagnostic if mode is LaunchMode.DIAGNOSTIC else self.normal


def resolve_endpoint(
    install_root: str | Path,
    relative_path: str | Path,
    diagnostic_env: Mapping[str, str] | None = None,
) -> ServerEndpoint:
    """Resolve the server executable at a fixed location under ``install_root``.

    No search path lookup happens here; a missing binary is reported later by
    spawn as ``NOT_FOUND``.
    """
    root = Path(install_root)
    executable = Path(relative_path)
    if not executable.is_absolute():
        executable = root / executable
    return ServerEndpoint(
        executable=Path(_normalize(executable)),
        diagnostic_env=diagnostic_env or {},
        cwd=root,
    )


def _normalize(path: Path) -> str:
    # Collapse ".." without resolving symlinks; the binary may not exist yet
    return os.path.normpath(os.path.abspath(path))


def build_launch_config(endpoint: ServerEndpoint, mode: LaunchMode) -> LaunchConfig:
    """Build the launch configuration for ``mode``.

    The server is invoked without arguments. Only ``DIAGNOSTIC`` applies the
    endpoint's environment overlay.
    """
    env = endpoint.diagnostic_env if mode is LaunchMode.DIAGNOSTIC else {}
    return LaunchConfig(
        executable=endpoint.executable,
        env=env,
        cwd=endpoint.cwd,
        mode=mode,
    )


def build_launch_configs(endpoint: ServerEndpoint) -> LaunchConfigs:
    """Build both alternatives; the host's launch mode picks one later."""
    return LaunchConfigs(
        normal=build_launch_config(endpoint, LaunchMode.NORMAL),
        diagnostic=build_launch_config(endpoint, LaunchMode.DIAGNOSTIC),
    )
