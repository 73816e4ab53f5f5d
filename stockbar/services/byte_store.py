from __future__ import annotations

from pathlib import Path


class FileByteStore:
    """Raw bytes on disk, one file per key. Used as the logo cache backing store."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def write_all(self, path: Path, data: bytes) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        # atomic replace
        tmp = target.with_name(f".{target.name}.part")
        tmp.write_bytes(data)
        tmp.replace(target)

    def delete(self, path: Path) -> None:
        Path(path).unlink(missing_ok=True)

    def list_entries(self, directory: Path | None = None) -> list[Path]:
        base = self.root if directory is None else Path(directory)
        if not base.is_dir():
            return []
        return sorted(p for p in base.iterdir() if p.is_file())
