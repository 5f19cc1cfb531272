# store.py
# Filesystem-backed key -> Artifact mapping.
#
# One pretty-printed JSON file per key. Writes go to a temp file in the
# target directory and are swapped in with os.replace, so a concurrent
# reader sees the old file or the new one, never a partial write.

import os
import tempfile

from pydantic import ValidationError as PydanticValidationError

from prompt_scribe.errors import ArtifactUnavailable, StorageError, ValidationError
from prompt_scribe.models import Artifact, ScopeId
from prompt_scribe.observability import get_logger

logger = get_logger(__name__)

ARTIFACT_SUFFIX = ".json"


def key_for(scope: ScopeId) -> str:
    """Map a ScopeId to its storage key: the integer rendered as a filename."""
    if isinstance(scope, bool) or not isinstance(scope, int) or scope < 0:
        raise ValidationError(f"ScopeId must be a non-negative integer, got {scope!r}")
    return f"{scope}{ARTIFACT_SUFFIX}"


class ArtifactStore:
    """Durable key -> Artifact mapping rooted at a directory."""

    def __init__(self, root: str | os.PathLike) -> None:
        self._root = os.fspath(root)

    @property
    def root(self) -> str:
        return self._root

    def path_for(self, key: str) -> str:
        if not key or os.path.isabs(key) or ".." in key.replace("\\", "/").split("/"):
            raise ValidationError(f"Invalid artifact key {key!r}")
        return os.path.join(self._root, key)

    def put(self, key: str, artifact: Artifact) -> None:
        """Serialize `artifact` under `key`, creating parent directories as needed."""
        path = self.path_for(key)
        directory = os.path.dirname(os.path.abspath(path))
        payload = artifact.model_dump_json(indent=2)

        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=".artifact_", suffix=".tmp", dir=directory
            )
        except OSError as exc:
            raise StorageError(f"Cannot prepare {path}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.write("\n")
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, path)
        except OSError as exc:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f"Cannot write {path}: {exc}") from exc

        logger.debug("artifact_written", key=key, path=path, bytes=len(payload))

    def get(self, key: str) -> Artifact:
        """
        Load the artifact stored under `key`.

        Any I/O, parse or schema failure raises ArtifactUnavailable. Callers
        treat that as "not cached", never as a crash.
        """
        path = self.path_for(key)
        try:
            with open(path, "rb") as fh:
                raw = fh.read()
        except OSError as exc:
            raise ArtifactUnavailable(f"No artifact at {path}: {exc}") from exc

        try:
            return Artifact.model_validate_json(raw)
        except (PydanticValidationError, UnicodeDecodeError) as exc:
            raise ArtifactUnavailable(f"Artifact at {path} is invalid: {exc}") from exc

    def contains(self, key: str) -> bool:
        return os.path.isfile(self.path_for(key))

    def delete(self, key: str) -> bool:
        """Remove the artifact under `key`. Returns False if there was none."""
        path = self.path_for(key)
        try:
            os.unlink(path)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageError(f"Cannot delete {path}: {exc}") from exc
        return True
