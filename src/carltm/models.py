from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml

COMPLETED = "completed"


class ScopeType(Enum):
    EPIC = "epic"
    FEATURE = "feature"
    STORY = "story"
    TECHNICAL = "technical"


def is_number(value: Any) -> bool:
    # YAML booleans load as bool, which is an int subclass
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def clamp_percentage(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


class IntentRecord(BaseModel):
    """The declaration of a work item: who it is and who it is related to."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(description="Unique identifier of the work item across the project")
    parent_id: Optional[str] = Field(default=None, description="Id of the parent work item")
    child_relationships: List[str] = Field(
        default_factory=list,
        description="Ids of the declared child work items"
    )

    @model_validator(mode='before')
    @classmethod
    def lift_child_relationships(cls, data):
        """Children are declared under relationships.child_relationships in the record."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        declared = data.get('child_relationships')
        relationships = data.get('relationships')
        if isinstance(relationships, dict):
            declared = relationships.get('child_relationships')
        data['child_relationships'] = declared if isinstance(declared, list) else []
        return data

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        if is_number(v):
            return str(v)
        return v

    @field_validator('parent_id', mode='before')
    @classmethod
    def coerce_parent_id(cls, v):
        if v is None or v == "":
            return None
        if is_number(v):
            return str(v)
        return v

    @field_validator('child_relationships', mode='before')
    @classmethod
    def coerce_children(cls, v):
        return [str(child) for child in v if child is not None and not isinstance(child, (dict, list))]

    @classmethod
    def from_yaml(cls, text: str) -> 'IntentRecord':
        return cls.model_validate(yaml.safe_load(text))


class StateMetadata(BaseModel):
    """The nested metadata section some state records keep their progress in."""

    completion_percentage: Optional[float] = Field(default=None, description="Raw, unclamped percentage")
    phase: Optional[str] = None
    status: Optional[str] = None

    @field_validator('completion_percentage', mode='before')
    @classmethod
    def only_numbers(cls, v):
        return v if is_number(v) else None

    @field_validator('phase', 'status', mode='before')
    @classmethod
    def only_strings(cls, v):
        return v if isinstance(v, str) else None


class StateRecord(StateMetadata):
    """
    The mutable progress counterpart of an intent record.

    Fields are normalized once at parse time: non-numeric percentages and
    non-string phase/status values become None. The raw mapping is kept in
    ``document`` so writes can preserve the record's shape.
    """

    metadata: Optional[StateMetadata] = Field(default=None, description="Nested metadata section")
    _document: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @field_validator('metadata', mode='before')
    @classmethod
    def only_mappings(cls, v):
        return v if isinstance(v, dict) else None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> 'StateRecord':
        record = cls.model_validate({
            'completion_percentage': document.get('completion_percentage'),
            'phase': document.get('phase'),
            'status': document.get('status'),
            'metadata': document.get('metadata'),
        })
        record._document = document
        return record

    @property
    def document(self) -> Dict[str, Any]:
        return self._document

    def resolved_percentage(self) -> float:
        """Top level, then metadata, then the completed sentinel, then 0; clamped."""
        if self.completion_percentage is not None:
            return clamp_percentage(self.completion_percentage)
        if self.metadata and self.metadata.completion_percentage is not None:
            return clamp_percentage(self.metadata.completion_percentage)
        if COMPLETED in (self.status, self.phase):
            return 100.0
        if self.metadata and COMPLETED in (self.metadata.status, self.metadata.phase):
            return 100.0
        return 0.0

    @property
    def is_completed(self) -> bool:
        """Archival trigger: top-level fields only, metadata is deliberately ignored."""
        return self.completion_percentage == 100 or self.phase == COMPLETED

    @property
    def progress_section(self) -> Dict[str, Any]:
        """The mapping a new percentage should be written into."""
        if is_number(self._document.get('completion_percentage')):
            return self._document
        metadata = self._document.get('metadata')
        if isinstance(metadata, dict):
            return metadata
        return self._document


class WorkItem(BaseModel):
    """An intent record located in the project tree."""

    path: Path = Field(description="Path of the intent file")
    id: str
    scope_type: str = Field(description="epic, feature, story, technical or item")
    parent_id: Optional[str] = None
    child_ids: List[str] = Field(default_factory=list)


class Relationship(BaseModel):
    parent_id: Optional[str] = Field(default=None, description="Declared parent id")
    child_ids: List[str] = Field(default_factory=list, description="Declared child ids")
    parent_path: Optional[Path] = Field(default=None, description="Resolved parent intent path")
    child_paths: List[Path] = Field(default_factory=list, description="Resolved child intent paths")


class RelationshipGraph(BaseModel):
    """Resolved parent/child links for every discovered intent file."""

    nodes: Dict[Path, Relationship] = Field(default_factory=dict)
    ids: Dict[str, Path] = Field(default_factory=dict, description="Inventory of id to intent path")

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, path: Path) -> Optional[Relationship]:
        return self.nodes.get(path)


class RelationshipCache(BaseModel):
    graph: RelationshipGraph
    built_at: float = Field(description="Clock reading when the graph was built")

    def is_fresh(self, now: float, ttl: float) -> bool:
        return (now - self.built_at) < ttl


class CompletionCheck(BaseModel):
    completed: bool = False
    state_data: Optional[Dict[str, Any]] = None
    intent_path: Path
    state_path: Optional[Path] = None
    reason: Optional[str] = Field(default=None, description="Why the check found nothing to archive")

    def __bool__(self) -> bool:
        return self.completed


class ChildrenData(BaseModel):
    count: int
    completions: List[Optional[float]] = Field(default_factory=list)


class RecalculationResult(BaseModel):
    success: bool
    old_percentage: Optional[float] = None
    new_percentage: Optional[float] = None
    children_data: Optional[ChildrenData] = None
    changed: bool = Field(default=False, description="A new percentage was written to the state record")
    reached_completion: bool = Field(default=False, description="The write took the parent to 100%")
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success


class ArchiveResult(BaseModel):
    success: bool
    intent_path: Path
    archived_intent_path: Optional[Path] = None
    archived_state_path: Optional[Path] = None
    commits: int = Field(default=0, description="Commits made by this invocation")
    rolled_back: bool = False
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success
