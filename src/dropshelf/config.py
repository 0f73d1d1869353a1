"""DropshelfConfig — storage root, data directory and public URL settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dropshelf.fs.local_disk import MAX_UPLOAD_FILES

DEFAULT_DATA_DIR = Path.home() / ".dropshelf"
DEFAULT_PUBLIC_URL = "http://localhost:3000"

ENV_PREFIX = "DROPSHELF_"


@dataclass
class DropshelfConfig:
    """Settings for one Dropshelf instance.

    ``storage_root`` holds one folder per identity; ``data_dir`` holds the
    share registry database unless ``database_url`` points elsewhere.
    """

    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    storage_root: Path | None = None
    public_base_url: str = DEFAULT_PUBLIC_URL
    max_upload_files: int = MAX_UPLOAD_FILES
    database_url: str | None = None

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir).expanduser()
        if self.storage_root is None:
            self.storage_root = self.data_dir / "uploads"
        self.storage_root = Path(self.storage_root).expanduser()
        self.public_base_url = self.public_base_url.rstrip("/")
        self.max_upload_files = max(1, min(int(self.max_upload_files), MAX_UPLOAD_FILES))

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.data_dir / 'shares.db'}"

    @classmethod
    def from_env(cls, **overrides: object) -> DropshelfConfig:
        """Build a config from ``DROPSHELF_*`` variables; *overrides* win."""
        values: dict[str, object] = {}
        env = os.environ
        if data_dir := env.get(f"{ENV_PREFIX}DATA_DIR"):
            values["data_dir"] = Path(data_dir)
        if storage_root := env.get(f"{ENV_PREFIX}STORAGE_ROOT"):
            values["storage_root"] = Path(storage_root)
        if public_url := env.get(f"{ENV_PREFIX}PUBLIC_URL"):
            values["public_base_url"] = public_url
        if max_files := env.get(f"{ENV_PREFIX}MAX_UPLOAD_FILES"):
            values["max_upload_files"] = int(max_files)
        if database_url := env.get(f"{ENV_PREFIX}DATABASE_URL"):
            values["database_url"] = database_url
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]
