"""
Hierarchical relationship discovery.

Intent records declare their parent by id and their children by a list of
ids. RelationshipIndex scans every scope directory (active and completed),
collects the declared ids into an inventory and resolves them to intent file
paths. The resolved graph is cached for a fixed window; it is not refreshed
when files change, callers that need a fresh view clear the cache.
"""
import asyncio
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from carltm.config import CarlConfig
from carltm.data.io import RecordStore
from carltm.logs import get_logger
from carltm.models import IntentRecord, Relationship, RelationshipCache, RelationshipGraph, WorkItem
from carltm.recovery import ParseError
from carltm.scope import COMPLETED_DIR, SCOPE_DIRECTORIES, get_scope_type_from_path, is_intent_file

log = get_logger("relationships")


class RelationshipIndex:
    """Builds and caches the parent/child graph of a project's intent records."""

    def __init__(self, config: CarlConfig, store: Optional[RecordStore] = None,
                 clock: Callable[[], float] = time.monotonic, ttl: Optional[float] = None):
        self.config = config
        self.store = store or RecordStore()
        self.clock = clock
        self.ttl = config.cache_ttl if ttl is None else ttl
        self._cache: Optional[RelationshipCache] = None

    @property
    def cache(self) -> Optional[RelationshipCache]:
        return self._cache

    def scan_directories(self) -> List[Path]:
        """Every directory that may hold intent records, active before completed."""
        directories = []
        for scope_dir in SCOPE_DIRECTORIES:
            active = self.config.project_dir / scope_dir
            directories.append(active)
            directories.append(active / COMPLETED_DIR)
        return directories

    async def list_intent_files(self, directory: Path) -> List[Path]:
        names = await self.store.list_directory(directory)
        return [directory / name for name in names if is_intent_file(name)]

    async def parse_intent_relationships(self, intent_path: Union[Path, str]) -> Optional[IntentRecord]:
        """
        Parse one intent record.

        Returns None when the file is missing, unreadable or does not hold a
        valid intent record; the reason is logged, never raised.
        """
        intent_path = Path(intent_path)
        try:
            data = await self.store.read_yaml(intent_path)
        except ParseError as e:
            log.warning(f"Skipping unparsable intent record: {e}")
            return None

        if data is None:
            log.debug(f"Intent record missing or empty: {intent_path}")
            return None
        if not isinstance(data, dict):
            log.warning(f"Skipping intent record that is not a mapping: {intent_path}")
            return None

        try:
            return IntentRecord.model_validate(data)
        except ValidationError as e:
            log.warning(f"Skipping invalid intent record {intent_path}: {e.error_count()} error(s)")
            return None

    async def _collect_inventory(self) -> Dict[str, WorkItem]:
        """First pass: every parsable intent record keyed by its declared id."""
        intent_files: List[Path] = []
        for directory in self.scan_directories():
            intent_files.extend(await self.list_intent_files(directory))

        records = await asyncio.gather(*(self.parse_intent_relationships(p) for p in intent_files))

        inventory: Dict[str, WorkItem] = {}
        for path, record in zip(intent_files, records):
            if record is None:
                continue
            if record.id in inventory:
                log.warning(f"Duplicate intent id {record.id!r}: {path} replaces {inventory[record.id].path}")
            inventory[record.id] = WorkItem(
                path=path,
                id=record.id,
                scope_type=get_scope_type_from_path(path),
                parent_id=record.parent_id,
                child_ids=record.child_relationships,
            )
        return inventory

    @staticmethod
    def resolve(inventory: Dict[str, WorkItem]) -> RelationshipGraph:
        """Second pass: turn declared ids into paths, dropping ids nothing declares."""
        graph = RelationshipGraph(ids={item_id: item.path for item_id, item in inventory.items()})
        for item in inventory.values():
            parent = inventory.get(item.parent_id) if item.parent_id else None
            graph.nodes[item.path] = Relationship(
                parent_id=item.parent_id,
                child_ids=list(item.child_ids),
                parent_path=parent.path if parent else None,
                child_paths=[inventory[child].path for child in item.child_ids if child in inventory],
            )
        return graph

    async def build_hierarchical_map(self) -> RelationshipGraph:
        """Return the cached graph while it is fresh, otherwise rescan the project."""
        now = self.clock()
        if self._cache is not None and self._cache.is_fresh(now, self.ttl):
            log.debug(f"Using cached hierarchical relationships ({len(self._cache.graph)} items)")
            return self._cache.graph

        log.info("Building hierarchical relationship map")
        graph = self.resolve(await self._collect_inventory())
        self._cache = RelationshipCache(graph=graph, built_at=now)
        log.info(f"Built hierarchical map with {len(graph)} items")
        return self._cache.graph

    def clear_relationship_cache(self):
        self._cache = None
        log.debug("Cleared hierarchical relationship cache")

    async def get_parent_intent_path(self, intent_path: Union[Path, str]) -> Optional[Path]:
        graph = await self.build_hierarchical_map()
        relationship = graph.get(self._key(intent_path))
        return relationship.parent_path if relationship else None

    async def get_child_intent_paths(self, intent_path: Union[Path, str]) -> List[Path]:
        graph = await self.build_hierarchical_map()
        relationship = graph.get(self._key(intent_path))
        return list(relationship.child_paths) if relationship else []

    async def find_intent_file_by_id(self, intent_id: str) -> Optional[Path]:
        """Locate an intent record by id, archived records included."""
        graph = await self.build_hierarchical_map()
        return graph.ids.get(intent_id)

    async def all_work_items(self) -> List[WorkItem]:
        """Every parsable intent record, rescanned regardless of the cache."""
        return list((await self._collect_inventory()).values())

    @staticmethod
    def _key(intent_path: Union[Path, str]) -> Path:
        return Path(intent_path).resolve()
