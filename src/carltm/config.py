"""
Runtime configuration for carltm.

Values come from the environment the hooks run in; nothing here reads the
CARL settings files.
"""
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from carltm.logs import get_logger

log = get_logger("config")

DEFAULT_CACHE_TTL = 300.0


class CarlConfig(BaseModel):
    """Where the project lives and how long relationship graphs stay fresh."""

    root: Path = Field(description="Repository root; git commands run here")
    project_dir: Optional[Path] = Field(
        default=None,
        description="Directory holding the scope folders, defaults to <root>/.carl/project"
    )
    cache_ttl: float = Field(
        default=DEFAULT_CACHE_TTL,
        ge=0,
        description="Seconds a built relationship graph is reused"
    )

    @model_validator(mode='after')
    def resolve_paths(self):
        self.root = Path(self.root).expanduser().resolve()
        if self.project_dir is None:
            self.project_dir = self.root / ".carl" / "project"
        else:
            self.project_dir = Path(self.project_dir).expanduser().resolve()
        return self

    @property
    def active_work_path(self) -> Path:
        return self.project_dir / "active.work.carl"

    @classmethod
    def from_env(cls, root: Optional[Path] = None) -> 'CarlConfig':
        """Build a config from CARL_ROOT / CARLTM_CACHE_TTL, falling back to the cwd."""
        if root is None:
            root = Path(os.getenv('CARL_ROOT') or Path.cwd())

        ttl = DEFAULT_CACHE_TTL
        env_ttl = os.getenv('CARLTM_CACHE_TTL')
        if env_ttl:
            try:
                ttl = float(env_ttl)
            except ValueError:
                log.warning(f"Ignoring invalid CARLTM_CACHE_TTL value: {env_ttl!r}")

        return cls(root=root, cache_ttl=ttl)
