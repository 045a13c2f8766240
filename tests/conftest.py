"""Shared fixtures: a throwaway CARL project tree and a scripted git client."""

from pathlib import Path
from typing import List, Optional

import pytest
import yaml

from carltm.config import CarlConfig
from carltm.data.io import RecordStore
from carltm.git import GitClient, GitResult


class FakeGit(GitClient):
    """Records git invocations; ``mv`` really renames so archival can be observed."""

    def __init__(self, cwd, fail_on: Optional[str] = None, occurrence: int = 1,
                 fail_reset: bool = False, staged: bool = True):
        super().__init__(cwd)
        self.calls: List[List[str]] = []
        self.fail_on = fail_on
        self.occurrence = occurrence
        self.fail_reset = fail_reset
        self.staged = staged

    @property
    def commands(self) -> List[str]:
        return [call[0] for call in self.calls]

    async def run(self, args):
        args = list(args)
        self.calls.append(args)
        command = args[0]

        if command == self.fail_on and self.commands.count(command) == self.occurrence:
            return GitResult(returncode=1, stdout="", stderr=f"fatal: {command} failed")
        if command == "reset" and self.fail_reset:
            return GitResult(returncode=128, stdout="", stderr="fatal: reset failed")
        if command == "diff":
            return GitResult(returncode=1 if self.staged else 0, stdout="", stderr="")
        if command == "mv":
            Path(args[1]).rename(args[2])
        return GitResult(returncode=0, stdout="", stderr="")


class CountingStore(RecordStore):
    """RecordStore that counts directory listings, i.e. rescans."""

    def __init__(self):
        self.listings = 0

    async def list_directory(self, path):
        self.listings += 1
        return await super().list_directory(path)


class Project:
    """Builds intent/state record pairs under <root>/.carl/project."""

    def __init__(self, root: Path):
        self.config = CarlConfig(root=root)
        self.dir = self.config.project_dir
        self.dir.mkdir(parents=True, exist_ok=True)

    def intent(self, scope: str, name: str, item_id: str, parent_id: Optional[str] = None,
               children: Optional[List[str]] = None, completed: bool = False) -> Path:
        directory = self.dir / scope
        if completed:
            directory = directory / "completed"
        directory.mkdir(parents=True, exist_ok=True)

        data = {'id': item_id, 'type': scope.rstrip('s'), 'name': name}
        if parent_id is not None:
            data['parent_id'] = parent_id
        if children is not None:
            data['relationships'] = {'child_relationships': children}

        path = directory / f"{name}.intent.carl"
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding='utf-8')
        return path

    def state(self, intent_path: Path, **fields) -> Path:
        path = self.state_path(intent_path)
        path.write_text(yaml.safe_dump(fields, sort_keys=False), encoding='utf-8')
        return path

    def item(self, scope: str, name: str, item_id: str, parent_id: Optional[str] = None,
             children: Optional[List[str]] = None, completed: bool = False, **state) -> Path:
        intent_path = self.intent(scope, name, item_id, parent_id, children, completed)
        self.state(intent_path, **state)
        return intent_path

    @staticmethod
    def state_path(intent_path: Path) -> Path:
        return intent_path.with_name(intent_path.name.replace('.intent.carl', '.state.carl'))

    def read_state(self, intent_path: Path) -> dict:
        return yaml.safe_load(self.state_path(intent_path).read_text(encoding='utf-8'))


@pytest.fixture
def project(tmp_path) -> Project:
    return Project(tmp_path)


@pytest.fixture
def store() -> RecordStore:
    return RecordStore()


@pytest.fixture
def make_git(project):
    def factory(**kwargs) -> FakeGit:
        return FakeGit(project.config.root, **kwargs)
    return factory


@pytest.fixture
def counting_store() -> CountingStore:
    return CountingStore()
