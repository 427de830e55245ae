"""Replacement of the server's deployed content with a new artifact."""

from pathlib import Path
from typing import List, Optional

from ..core.errors import ArtifactMissingError, DeployError, FilesystemError
from ..core.log import Logger, log_artifact_event
from ..core.protocols import FileSystem


class ArtifactDeployer:
    """Swaps one artifact into the deploy target directory.

    Every entry belonging to the artifact's logical name is removed before
    the new file is copied in, so an exploded directory from the previous
    release never coexists with the new archive.
    """

    def __init__(self, logger: Logger, filesystem: FileSystem) -> None:
        self._logger = logger
        self._fs = filesystem
        self._last_checksum: Optional[str] = None

    @property
    def last_checksum(self) -> Optional[str]:
        """SHA-256 of the artifact placed by the most recent replace()."""
        return self._last_checksum

    @staticmethod
    def deployed_name(artifact_name: str, source_artifact_path: Path) -> str:
        """Canonical deployed file name: logical name plus the source suffix."""
        return f"{artifact_name}{Path(source_artifact_path).suffix}"

    def entries_for(self, deploy_target_dir: Path, artifact_name: str) -> List[Path]:
        """Entries in the deploy target that belong to ``artifact_name``.

        That is the exploded directory named exactly like the artifact and any
        file whose stem is the artifact name (``app`` and ``app.war``).
        """
        if not self._fs.is_dir(deploy_target_dir):
            return []
        return [
            entry
            for entry in self._fs.list_dir(deploy_target_dir)
            if entry.name == artifact_name
            or (not self._fs.is_dir(entry) and entry.stem == artifact_name)
        ]

    def replace(
        self, deploy_target_dir: Path, artifact_name: str, source_artifact_path: Path
    ) -> Path:
        """Remove existing content for ``artifact_name`` and copy the new artifact.

        Returns:
            Path of the placed artifact inside ``deploy_target_dir``

        Raises:
            ArtifactMissingError: Source file does not exist; nothing in the
                deploy target has been touched
            DeployError: Removal or copy failed, or the placed file is
                missing or empty afterwards
        """
        deploy_target_dir = Path(deploy_target_dir)
        source_artifact_path = Path(source_artifact_path)
        self._last_checksum = None

        if not self._fs.is_file(source_artifact_path):
            self._logger.error("Artifact not found at %s", source_artifact_path)
            raise ArtifactMissingError(
                f"Artifact not found at {source_artifact_path}; "
                "check the artifact path configuration",
                details={"source": str(source_artifact_path)},
            )

        destination = deploy_target_dir / self.deployed_name(
            artifact_name, source_artifact_path
        )

        try:
            checksum = self._fs.checksum(source_artifact_path)
            for stale in self.entries_for(deploy_target_dir, artifact_name):
                self._fs.remove(stale)
                log_artifact_event(self._logger, "removed", artifact_name, path=str(stale))
            self._fs.copy_file(source_artifact_path, destination)
        except FilesystemError as e:
            raise DeployError(
                f"Failed to place artifact {artifact_name}: {e.message}",
                details={"source": str(source_artifact_path), "destination": str(destination)},
            ) from e

        self._verify_placed(destination)
        self._last_checksum = checksum
        log_artifact_event(
            self._logger, "deployed", artifact_name, path=str(destination), sha256=checksum
        )
        return destination

    def _verify_placed(self, destination: Path) -> None:
        try:
            size = self._fs.get_size(destination) if self._fs.is_file(destination) else None
        except FilesystemError:
            size = None

        if size is None:
            raise DeployError(
                f"Deployed artifact missing at {destination} after copy",
                details={"destination": str(destination)},
            )
        if size == 0:
            raise DeployError(
                f"Deployed artifact at {destination} is empty",
                details={"destination": str(destination)},
            )
