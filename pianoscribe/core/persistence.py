"""
Project file I/O for .pscribe format.

File format:
- MessagePack binary format (fast, compact, keeps the audio as raw bytes)
- Contains: format version + Project model
"""
from pathlib import Path
from typing import Union

import msgpack

from pianoscribe.core.models import Project, ProjectDecodeError

FORMAT_VERSION = "1.0"
FILE_SUFFIX = ".pscribe"


def encode_project(project: Project) -> bytes:
    """Serialize a project to MessagePack bytes."""
    data = {"version": FORMAT_VERSION}
    data.update(project.to_dict())
    return msgpack.packb(data, use_bin_type=True)


def decode_project(packed: bytes) -> Project:
    """
    Deserialize a project from MessagePack bytes.

    Raises:
        ProjectDecodeError: If the data is not a valid project; the error's
            path names the offending field
    """
    try:
        data = msgpack.unpackb(packed, raw=False)
    except (msgpack.exceptions.ExtraData, msgpack.exceptions.UnpackException, ValueError) as e:
        raise ProjectDecodeError("", f"invalid MessagePack data: {e}") from e

    if not isinstance(data, dict):
        raise ProjectDecodeError("", f"expected a map, got {type(data).__name__}")

    version = data.get("version")
    if not isinstance(version, str) or version.split(".")[0] != FORMAT_VERSION.split(".")[0]:
        raise ProjectDecodeError(
            "version", f"incompatible project version {version!r}, expected {FORMAT_VERSION}"
        )

    return Project.from_dict(data)


class ProjectFile:
    """Handles .pscribe project file I/O."""

    @staticmethod
    def save(project: Project, path: Union[Path, str]) -> Path:
        """
        Save project to .pscribe file.

        Args:
            project: Project to save
            path: Destination file path

        Returns:
            Path actually written (with .pscribe extension)

        Raises:
            IOError: If save fails
        """
        path = Path(path)
        if path.suffix != FILE_SUFFIX:
            path = path.with_suffix(FILE_SUFFIX)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(encode_project(project))
        except OSError as e:
            raise IOError(f"Failed to save project to {path}: {e}") from e
        return path

    @staticmethod
    def load(path: Union[Path, str]) -> Project:
        """
        Load project from .pscribe file.

        Raises:
            IOError: If the file cannot be read
            ProjectDecodeError: If the file contents are invalid
        """
        path = Path(path)
        if not path.exists():
            raise IOError(f"Project file not found: {path}")

        try:
            with open(path, "rb") as f:
                packed = f.read()
        except OSError as e:
            raise IOError(f"Failed to load project from {path}: {e}") from e

        return decode_project(packed)
