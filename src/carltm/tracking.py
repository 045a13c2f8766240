from pathlib import Path
from typing import Optional

from carltm.config import CarlConfig
from carltm.data.io import RecordStore, dump_yaml
from carltm.logs import get_logger
from carltm.recovery import CARLError, FileOperationError, ParseError

log = get_logger("tracking")

QUEUE_SECTIONS = ("in_progress", "ready_for_work", "blocked")


class ActiveWorkTracker:
    """Keeps active.work.carl in step with archived items."""

    def __init__(self, config: CarlConfig, store: Optional[RecordStore] = None,
                 path: Optional[Path] = None):
        self.store = store or RecordStore()
        self.path = Path(path) if path else config.active_work_path

    async def remove_from_queues(self, item_id: str) -> bool:
        """
        Drop an item from every work queue and from the suggested next tasks.

        Best effort: a missing tracking file is not an error, anything else
        is logged and reported as False.
        """
        try:
            return await self._remove(item_id)
        except CARLError as e:
            log.error(f"Error updating active work tracking for {item_id}: {e}")
            return False

    async def _remove(self, item_id: str) -> bool:
        if not await self.store.exists(self.path):
            log.info("Active work file not found, skipping tracking update")
            return True

        active_work = await self.store.read_yaml(self.path)
        if active_work is None:
            raise FileOperationError(f"Could not read {self.path}")
        if not isinstance(active_work, dict):
            raise ParseError(f"{self.path} is not a mapping")

        queues = active_work.get('work_queue')
        if isinstance(queues, dict):
            for section in QUEUE_SECTIONS:
                entries = queues.get(section)
                if isinstance(entries, list):
                    queues[section] = [
                        entry for entry in entries
                        if not (isinstance(entry, dict) and entry.get('id') == item_id)
                    ]

        suggestions = active_work.get('intelligent_suggestions')
        if isinstance(suggestions, dict) and isinstance(suggestions.get('next_logical_tasks'), list):
            suggestions['next_logical_tasks'] = [
                task for task in suggestions['next_logical_tasks']
                if not (isinstance(task, dict) and item_id in str(task.get('task', '')))
            ]

        if not await self.store.write_text(self.path, dump_yaml(active_work)):
            raise FileOperationError(f"Could not write {self.path}")

        log.info(f"Removed {item_id} from active work tracking")
        return True
