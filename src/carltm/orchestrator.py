"""
CompletionOrchestrator - drives completion detection, archival and upward
propagation for a batch of intent records.

One failing item never stops a batch: failures are logged and the batch
reports how many items were archived.
"""
from pathlib import Path
from typing import Iterable, List, Optional, Union

from carltm.aggregation import AggregationEngine
from carltm.archive import ArchivalWorkflow
from carltm.completion import check_intent_completion
from carltm.config import CarlConfig
from carltm.data.io import RecordStore
from carltm.git import GitClient
from carltm.logs import get_logger
from carltm.models import ArchiveResult
from carltm.relationships import RelationshipIndex
from carltm.scope import COMPLETED_DIR, SCOPE_DIRECTORIES, item_id_from_path
from carltm.tracking import ActiveWorkTracker

log = get_logger("orchestrator")


class CompletionOrchestrator:
    """Wires the evaluator, archival workflow, tracker and aggregation engine together."""

    def __init__(self, config: CarlConfig, store: Optional[RecordStore] = None,
                 index: Optional[RelationshipIndex] = None,
                 archival: Optional[ArchivalWorkflow] = None,
                 tracker: Optional[ActiveWorkTracker] = None,
                 git: Optional[GitClient] = None,
                 propagate: bool = True):
        self.config = config
        self.store = store or RecordStore()
        self.index = index or RelationshipIndex(config, self.store)
        self.archival = archival or ArchivalWorkflow(config, git)
        self.tracker = tracker or ActiveWorkTracker(config, self.store)
        self.aggregation = AggregationEngine(self.index, self.store, on_completed=self.archive_if_completed)
        self.propagate = propagate

    @classmethod
    def from_env(cls, **kwargs) -> 'CompletionOrchestrator':
        return cls(CarlConfig.from_env(), **kwargs)

    async def archive_if_completed(self, intent_path: Union[Path, str]) -> Optional[ArchiveResult]:
        """Check one item and archive it when its state says it is done."""
        if Path(intent_path).parent.name == COMPLETED_DIR:
            log.debug(f"{Path(intent_path).name} is already archived")
            return None

        check = await check_intent_completion(self.store, intent_path)
        if not check.completed:
            return None

        log.info(f"Processing completion: {Path(intent_path).name}")
        result = await self.archival.commit_and_move_files(check)
        if result:
            await self.tracker.remove_from_queues(item_id_from_path(intent_path))
            self.index.clear_relationship_cache()
        else:
            log.error(f"Archival of {Path(intent_path).name} failed: {result.reason}")
        return result

    async def detect_and_process_completions(self, intent_paths: Iterable[Union[Path, str]]) -> int:
        """
        Archive every completed item among the given intent paths.

        Returns:
            Number of items from intent_paths that were archived.
        """
        intent_paths = [Path(p) for p in intent_paths]
        log.info(f"Checking for completions in {len(intent_paths)} active intents")

        processed = 0
        for intent_path in intent_paths:
            parent = None
            if self.propagate:
                # The graph is keyed by the pre-archival path
                parent = await self.index.get_parent_intent_path(intent_path)

            result = await self.archive_if_completed(intent_path)
            if not result:
                continue
            processed += 1

            if parent is not None:
                await self.aggregation.propagate(parent)

        if processed:
            log.info(f"Processed {processed} completion(s)")
        else:
            log.info("No completions detected")
        return processed

    async def discover_active_intents(self) -> List[Path]:
        """Intent files directly inside the active scope directories."""
        intent_files: List[Path] = []
        for scope_dir in SCOPE_DIRECTORIES:
            directory = self.config.project_dir / scope_dir
            for path in await self.index.list_intent_files(directory):
                if path.is_file():
                    intent_files.append(path)
        return intent_files

    async def full_project_review(self) -> int:
        log.info("Full project review mode - scanning all intents")
        return await self.detect_and_process_completions(await self.discover_active_intents())
