"""
Parent completion aggregation.

A parent's completion percentage is the mean of its children's. Upward
propagation is driven by an explicit queue of parents to recompute rather
than by recursion, so one malformed hierarchy cannot grow the stack.
"""
import asyncio
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Set, Union

from carltm.completion import calculate_average_completion, get_completion_percentage, load_state_record
from carltm.data.io import RecordStore, dump_yaml
from carltm.logs import get_logger
from carltm.models import COMPLETED, ChildrenData, RecalculationResult
from carltm.recovery import CARLError, FileOperationError
from carltm.relationships import RelationshipIndex
from carltm.scope import state_path_for

log = get_logger("aggregation")

# Smallest change worth writing back
SIGNIFICANT_CHANGE = 0.01

CompletionHook = Callable[[Path], Awaitable[object]]


class AggregationEngine:
    """Recomputes parent percentages from their children and writes them back."""

    def __init__(self, index: RelationshipIndex, store: Optional[RecordStore] = None,
                 on_completed: Optional[CompletionHook] = None):
        self.index = index
        self.store = store or index.store
        self.on_completed = on_completed

    async def recalculate_parent_completion(self, parent_intent_path: Union[Path, str]) -> RecalculationResult:
        """
        Recalculate one parent from its children.

        A parent without resolvable children keeps its percentage and is not
        written. Otherwise the children's percentages are read concurrently,
        unreadable ones are dropped, and the average is persisted when it
        differs from the current value by at least 0.01.
        """
        parent_intent_path = Path(parent_intent_path)
        try:
            current = await get_completion_percentage(self.store, state_path_for(parent_intent_path))
            child_paths = await self.index.get_child_intent_paths(parent_intent_path)

            if not child_paths:
                log.info(f"No children found for {parent_intent_path.name}")
                return RecalculationResult(success=True, old_percentage=current, new_percentage=current)

            completions = await asyncio.gather(
                *(get_completion_percentage(self.store, state_path_for(child)) for child in child_paths)
            )
            new_percentage = calculate_average_completion(completions)
            log.info(f"Children completion: {list(completions)} -> average {new_percentage}%")

            if abs((current or 0) - new_percentage) < SIGNIFICANT_CHANGE:
                log.info(f"No significant change in completion percentage ({current}% -> {new_percentage}%)")
                return RecalculationResult(success=True, old_percentage=current, new_percentage=current)

            if not await self.update_parent_completion_percentage(parent_intent_path, new_percentage):
                return RecalculationResult(
                    success=False,
                    old_percentage=current,
                    reason=f"Could not update {parent_intent_path.name}",
                )

            return RecalculationResult(
                success=True,
                old_percentage=current,
                new_percentage=new_percentage,
                changed=True,
                children_data=ChildrenData(count=len(child_paths), completions=list(completions)),
                reached_completion=new_percentage >= 100,
            )

        except (CARLError, ValueError) as e:
            log.error(f"Error recalculating parent completion for {parent_intent_path}: {e}")
            return RecalculationResult(success=False, reason=str(e))

    async def update_parent_completion_percentage(self, parent_intent_path: Union[Path, str],
                                                  new_percentage: float) -> bool:
        """
        Write a new percentage into the parent's state record.

        The value lands in the section the percentage is read from (top level
        or metadata), leaving the rest of the document as it was. At 100% the
        same section is marked completed with a completion date.
        """
        parent_intent_path = Path(parent_intent_path)
        try:
            state_path = state_path_for(parent_intent_path)
            record = await load_state_record(self.store, state_path)

            rounded = round(new_percentage, 2)
            now = datetime.now().isoformat()
            section = record.progress_section
            section['completion_percentage'] = rounded
            section['last_updated'] = now
            if rounded >= 100:
                section['status'] = COMPLETED
                section['completion_date'] = now

            if not await self.store.write_text(state_path, dump_yaml(record.document)):
                raise FileOperationError(f"Could not write {state_path}")

        except (CARLError, ValueError) as e:
            log.error(f"Error updating parent completion percentage: {e}")
            return False

        log.info(f"Updated {parent_intent_path.name} completion: {rounded}%")
        return True

    async def propagate(self, parent_intent_path: Optional[Union[Path, str]]) -> List[RecalculationResult]:
        """
        Recompute a parent and walk up while values keep changing.

        Each recomputed parent that reaches 100% is handed to ``on_completed``
        (the archival trigger) before its own parent is queued. A path seen
        twice means the hierarchy loops; the walk stops there.
        """
        results: List[RecalculationResult] = []
        queue = deque([Path(parent_intent_path)] if parent_intent_path else [])
        visited: Set[Path] = set()

        while queue:
            current = queue.popleft()
            key = current.resolve()
            if key in visited:
                log.warning(f"Relationship cycle detected at {current.name}, stopping propagation")
                break
            visited.add(key)

            result = await self.recalculate_parent_completion(current)
            results.append(result)
            if not result.changed:
                continue

            # Look the next parent up before archival moves this one
            next_parent = await self.index.get_parent_intent_path(current)

            if result.reached_completion and self.on_completed is not None:
                log.info(f"{current.name} reached 100% completion, triggering completion workflow")
                await self.on_completed(current)
                self.index.clear_relationship_cache()

            if next_parent is not None:
                queue.append(next_parent)

        return results
