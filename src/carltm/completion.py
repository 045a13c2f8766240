"""
Completion evaluation for single work items.

Two readings of a state record exist and they intentionally differ:
get_completion_percentage resolves a percentage from the top level or the
metadata section, while check_intent_completion (the archival trigger) only
looks at top-level fields.
"""
from pathlib import Path
from typing import Iterable, Optional, Union

from carltm.data.io import RecordStore
from carltm.logs import get_logger
from carltm.models import CompletionCheck, StateRecord, is_number
from carltm.recovery import NotFoundError, ParseError
from carltm.scope import state_path_for

log = get_logger("completion")


async def load_state_record(store: RecordStore, state_path: Union[Path, str]) -> StateRecord:
    """
    Read a state record.

    Raises:
        NotFoundError: the file is missing or unreadable.
        ParseError: the file is not YAML or not a mapping.
    """
    state_path = Path(state_path)
    if not await store.exists(state_path):
        raise NotFoundError(f"State file not found: {state_path}")

    document = await store.read_yaml(state_path)
    if document is None:
        raise NotFoundError(f"Could not read state file: {state_path}")
    if not isinstance(document, dict):
        raise ParseError(f"State file is not a mapping: {state_path}")
    return StateRecord.from_document(document)


async def get_completion_percentage(store: RecordStore, state_path: Union[Path, str]) -> Optional[float]:
    """Completion percentage in [0, 100], or None when the state is unavailable."""
    try:
        record = await load_state_record(store, state_path)
    except NotFoundError as e:
        log.debug(str(e))
        return None
    except ParseError as e:
        log.warning(f"Error reading completion percentage: {e}")
        return None
    return record.resolved_percentage()


async def check_intent_completion(store: RecordStore, intent_path: Union[Path, str]) -> CompletionCheck:
    """Decide whether an intent is ready for archival. Never raises."""
    intent_path = Path(intent_path)
    try:
        state_path = state_path_for(intent_path)
    except ValueError as e:
        log.warning(str(e))
        return CompletionCheck(intent_path=intent_path, reason=str(e))

    try:
        record = await load_state_record(store, state_path)
    except NotFoundError as e:
        log.info(str(e))
        return CompletionCheck(intent_path=intent_path, state_path=state_path, reason=str(e))
    except ParseError as e:
        log.warning(f"Error checking completion for {intent_path}: {e}")
        return CompletionCheck(intent_path=intent_path, state_path=state_path, reason=str(e))

    completed = record.is_completed
    if completed:
        log.info(f"Completion detected: {intent_path.name} ({record.completion_percentage}%)")

    return CompletionCheck(
        completed=completed,
        state_data=record.document,
        intent_path=intent_path,
        state_path=state_path,
    )


def calculate_average_completion(percentages: Iterable[Optional[float]]) -> float:
    """Mean of the numeric percentages rounded to 2 places; 0 when there are none."""
    valid = [p for p in (percentages or []) if is_number(p)]
    if not valid:
        return 0
    return round(sum(valid) / len(valid), 2)
