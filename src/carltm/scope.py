"""
Path classification for carl records.

Every function here is total: unknown locations fall back to the technical
scope directory and the generic ``item`` label.
"""
from pathlib import Path
from typing import Union

from carltm.models import ScopeType

INTENT_SUFFIX = ".intent.carl"
STATE_SUFFIX = ".state.carl"
COMPLETED_DIR = "completed"

# Checked in this order; the first matching path segment wins
SCOPE_DIRECTORIES = ("epics", "features", "stories", "technical")
SCOPE_LABELS = {
    "epics": ScopeType.EPIC,
    "features": ScopeType.FEATURE,
    "stories": ScopeType.STORY,
    "technical": ScopeType.TECHNICAL,
}
DEFAULT_SCOPE_DIRECTORY = "technical"
DEFAULT_SCOPE_LABEL = "item"


def _matching_scope(path: Union[Path, str]):
    parts = Path(path).parts
    for scope_dir in SCOPE_DIRECTORIES:
        if scope_dir in parts:
            return scope_dir
    return None


def get_scope_directory(path: Union[Path, str]) -> str:
    return _matching_scope(path) or DEFAULT_SCOPE_DIRECTORY


def get_scope_type_from_path(path: Union[Path, str]) -> str:
    scope_dir = _matching_scope(path)
    if scope_dir is None:
        return DEFAULT_SCOPE_LABEL
    return SCOPE_LABELS[scope_dir].value


def get_completed_directory(path: Union[Path, str], project_dir: Union[Path, str]) -> Path:
    """The archive directory for the scope the given intent path belongs to."""
    return Path(project_dir) / get_scope_directory(path) / COMPLETED_DIR


def is_intent_file(name: Union[Path, str]) -> bool:
    return str(name).endswith(INTENT_SUFFIX)


def state_path_for(intent_path: Union[Path, str]) -> Path:
    """Swap the intent suffix for the state suffix, keeping the rest of the path."""
    intent_path = Path(intent_path)
    if not is_intent_file(intent_path.name):
        raise ValueError(f"Not an intent record: {intent_path}")
    return intent_path.with_name(intent_path.name[:-len(INTENT_SUFFIX)] + STATE_SUFFIX)


def item_name(intent_path: Union[Path, str]) -> str:
    name = Path(intent_path).name
    if is_intent_file(name):
        return name[:-len(INTENT_SUFFIX)]
    return name


def item_id_from_path(intent_path: Union[Path, str]) -> str:
    """The id active-work queues use: the file name without suffix, dots as underscores."""
    return item_name(intent_path).replace(".", "_")
