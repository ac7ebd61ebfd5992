"""Content keys and source path resolution.

Keys depend only on where an asset lives in the project, never on bake
order, so repeated bakes of one asset always meet the same pak entry.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

__all__ = ["get_filename_key", "get_path", "content_key", "safe_file_path"]


def safe_file_path(base_dir: Path, file_path: str) -> Path:
    """Resolve ``file_path`` under ``base_dir``; ValueError if it escapes."""
    base = Path(base_dir).resolve()
    resolved = (base / file_path).resolve()
    resolved.relative_to(base)
    return resolved


def _project_relative(project_dir: Path, path: Path) -> PurePosixPath:
    project = Path(project_dir).resolve()
    resolved = Path(path)
    if not resolved.is_absolute():
        resolved = project / resolved
    resolved = resolved.resolve()
    return PurePosixPath(resolved.relative_to(project).as_posix())


def get_filename_key(project_dir: str | Path, asset_filename: str | Path) -> str:
    """Project-relative posix path of an asset file without its suffix."""
    rel = _project_relative(Path(project_dir), Path(asset_filename))
    return str(rel.with_suffix(""))


def get_path(
    asset_dir: str | Path, src: str | Path, project_dir: str | Path
) -> Path:
    """Resolve an asset's ``src`` reference.

    A leading ``/`` anchors the reference at the project root; anything else
    is relative to the directory holding the asset file. The result must stay
    inside the project.
    """
    project = Path(project_dir)
    src_str = str(src).replace("\\", "/")
    if src_str.startswith("/"):
        return safe_file_path(project, src_str.lstrip("/"))
    base = Path(asset_dir)
    if not base.is_absolute():
        base = project / base
    resolved = (base / src_str).resolve()
    return safe_file_path(project, str(resolved))


def content_key(
    project_dir: str | Path, asset_filename: str | Path, src: str | Path
) -> str:
    """Pak registration key for a model asset and the scene it references."""
    asset_key = get_filename_key(project_dir, asset_filename)
    src_path = get_path(Path(asset_filename).parent, src, project_dir)
    src_key = _project_relative(Path(project_dir), src_path)
    return f"{asset_key}#{src_key}"
