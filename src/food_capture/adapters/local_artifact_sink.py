"""Filesystem-backed artifact sink."""

from dataclasses import dataclass
from pathlib import Path

from food_capture.services.frame_store import ArtifactSink


@dataclass
class LocalArtifactSink(ArtifactSink):
    """Stores artifacts as files below a root directory."""

    root: Path

    @classmethod
    def create(cls, root: str | Path) -> "LocalArtifactSink":
        """Create a sink, making sure the root directory exists."""
        path = Path(root).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return cls(root=path)

    def write(self, name: str, data: bytes) -> None:
        """Write through a temporary file so readers never see partial data."""
        path = self._path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.tmp")
        tmp_path.write_bytes(data)
        tmp_path.replace(path)

    def read(self, name: str) -> bytes | None:
        """Return file bytes, or None if the file does not exist."""
        try:
            return self._path(name).read_bytes()
        except FileNotFoundError:
            return None

    def exists(self, name: str) -> bool:
        """Return whether the artifact file exists."""
        return self._path(name).is_file()

    def delete(self, name: str) -> None:
        """Remove the artifact file if present."""
        self._path(name).unlink(missing_ok=True)

    def _path(self, name: str) -> Path:
        path = (self.root / name).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValueError(f"Artifact name escapes the store root: {name}")
        return path
