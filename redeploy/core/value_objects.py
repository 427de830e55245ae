"""Domain primitives for the target installation, artifact and process matching."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from .types import ArtifactConfig, InstallationConfig


def _resolve(root: Path, path: Path) -> Path:
    path = Path(path)
    return path if path.is_absolute() else root / path


@dataclass(frozen=True)
class ServerInstallation:
    """On-disk layout of the target application server."""

    root: Path
    start_script: Path
    stop_script: Path
    content_dir: Path
    log_file: Path

    @classmethod
    def from_config(cls, config: InstallationConfig) -> "ServerInstallation":
        root = Path(config.root)
        return cls(
            root=root,
            start_script=_resolve(root, config.start_script),
            stop_script=_resolve(root, config.stop_script),
            content_dir=_resolve(root, config.deploy_dir or Path("webapps")),
            log_file=_resolve(root, config.log_file or Path("logs/catalina.out")),
        )

    @property
    def scripts(self) -> tuple[Path, Path]:
        return (self.stop_script, self.start_script)

    def __str__(self) -> str:
        return str(self.root)


@dataclass(frozen=True)
class DeploymentArtifact:
    """Validated deployable unit. Hashable for use as dictionary key."""

    name: str
    source: Path
    version: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Artifact name cannot be empty")

        # Allow alphanumeric characters, dots, underscores, and hyphens
        normalized = self.name.replace("_", "").replace("-", "").replace(".", "")
        if not normalized.isalnum():
            raise ValueError(
                f"Artifact name must be alphanumeric with _, - or .: {self.name}"
            )

    @classmethod
    def from_config(
        cls, config: ArtifactConfig, source: Optional[Path] = None
    ) -> "DeploymentArtifact":
        resolved = source or config.source
        if resolved is None:
            raise ValueError("No artifact source path configured")
        return cls(
            name=config.name,
            source=Path(resolved),
            version=config.version,
        )

    def __str__(self) -> str:
        if self.version:
            return f"{self.name}@{self.version}"
        return self.name


@dataclass(frozen=True)
class ProcessMatcher:
    """Regular expression matched against a process's full command line.

    Behaves like ``pgrep -f``: the command line arguments are joined with
    single spaces and searched, not anchored.
    """

    pattern: str
    _regex: "re.Pattern[str]" = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.pattern or not self.pattern.strip():
            raise ValueError("Process match pattern cannot be empty")
        try:
            compiled = re.compile(self.pattern)
        except re.error as e:
            raise ValueError(f"Invalid process match pattern {self.pattern!r}: {e}") from e
        object.__setattr__(self, "_regex", compiled)

    def matches(self, cmdline: Sequence[str]) -> bool:
        if not cmdline:
            return False
        return self._regex.search(" ".join(cmdline)) is not None

    def __str__(self) -> str:
        return self.pattern
