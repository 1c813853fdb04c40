"""Runtime settings loaded from the environment (and a local .env file)."""

from __future__ import annotations
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUTHY


class LandSettings(BaseModel):
    """Policy switches for the land engine and paths for the console."""
    allow_delegated_management: bool = Field(
        default=False,
        description="Let non-owners holding MANAGE_MEMBERS/MANAGE_ROLES manage the land",
    )
    merge_to_fixed_point: bool = Field(
        default=True,
        description="Repeat the region merge pass until nothing else coalesces",
    )
    save_dir: str = Field(default="saves", description="Directory for JSON save files")
    history_dir: str = Field(
        default_factory=lambda: str(Path.home() / ".voxel_lands"),
        description="Directory for console prompt history",
    )

    @classmethod
    def from_env(
        cls,
        allow_delegated_management: Optional[bool] = None,
        merge_to_fixed_point: Optional[bool] = None,
        save_dir: Optional[str] = None,
        history_dir: Optional[str] = None,
    ) -> "LandSettings":
        """Build settings from LANDS_* variables; explicit arguments win."""
        load_dotenv()

        if allow_delegated_management is None:
            allow_delegated_management = _env_flag("LANDS_ALLOW_DELEGATED_MANAGEMENT", False)
        if merge_to_fixed_point is None:
            merge_to_fixed_point = _env_flag("LANDS_MERGE_TO_FIXED_POINT", True)

        values = {
            "allow_delegated_management": allow_delegated_management,
            "merge_to_fixed_point": merge_to_fixed_point,
            "save_dir": save_dir or os.getenv("LANDS_SAVE_DIR", "saves"),
        }
        history = history_dir or os.getenv("LANDS_HISTORY_DIR")
        if history:
            values["history_dir"] = history
        return cls(**values)
