"""
Archival of completed work items.

A completed item is committed in its final state and then relocated into its
scope's ``completed/`` directory with ``git mv`` so history follows the
files. The sequence either runs to the end or is rolled back once.
"""
from pathlib import Path
from typing import List, Optional, Tuple

from carltm.config import CarlConfig
from carltm.git import GitClient
from carltm.logs import get_logger
from carltm.models import ArchiveResult, CompletionCheck
from carltm.recovery import ExternalCommandError, FileOperationError, RollbackError
from carltm.scope import COMPLETED_DIR, get_completed_directory, get_scope_type_from_path, item_name

log = get_logger("archive")


def completion_commit_message(scope_type: str, name: str, state_data: Optional[dict]) -> str:
    state_data = state_data or {}
    percentage = state_data.get('completion_percentage') or 100
    phase = state_data.get('phase') or 'completed'
    return (
        f"feat: Complete {scope_type} {name} - move to completed folder\n"
        f"\n"
        f"Automatic completion workflow triggered by carltm.\n"
        f"Completion: {percentage}%\n"
        f"Phase: {phase}\n"
    )


def move_commit_message(scope_type: str, name: str, intent_file: str, state_file: str) -> str:
    return (
        f"feat: Move completed {scope_type} {name} to completed folder\n"
        f"\n"
        f"Files moved:\n"
        f"- {intent_file} -> completed/\n"
        f"- {state_file} -> completed/\n"
        f"\n"
        f"Preserves git history and maintains project organization.\n"
    )


class ArchivalWorkflow:
    """Commit-then-relocate for one completed item at a time."""

    def __init__(self, config: CarlConfig, git: Optional[GitClient] = None):
        self.config = config
        self.git = git or GitClient(config.root)

    async def commit_and_move_files(self, check: CompletionCheck) -> ArchiveResult:
        """
        Archive a completed item.

        Steps: stage both records, commit them, ensure the completed
        directory, git mv both records, commit the move. Any failure stops
        the sequence and undoes what this call did.

        Returns:
            ArchiveResult, truthy when both records ended up in completed/.
        """
        intent_path = Path(check.intent_path)
        if check.state_path is None:
            return ArchiveResult(success=False, intent_path=intent_path, reason="No state record to archive")
        state_path = Path(check.state_path)
        if intent_path.parent.name == COMPLETED_DIR:
            return ArchiveResult(success=False, intent_path=intent_path, reason="Already archived")

        name = item_name(intent_path)
        scope_type = get_scope_type_from_path(intent_path)
        log.info(f"Processing completion for {intent_path.name}")

        commits = 0
        moves: List[Tuple[Path, Path]] = []
        try:
            await self.git.stage(intent_path, state_path)
            if await self.git.has_staged_changes(intent_path, state_path):
                await self.git.commit(completion_commit_message(scope_type, name, check.state_data))
                commits += 1
                log.info(f"Committed completion state of {name}")
            else:
                log.debug(f"Completion state of {name} already committed")

            completed_dir = get_completed_directory(intent_path, self.config.project_dir)
            try:
                completed_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FileOperationError(f"Cannot create {completed_dir}: {e}") from e

            target_intent = completed_dir / intent_path.name
            target_state = completed_dir / state_path.name
            for source, destination in ((intent_path, target_intent), (state_path, target_state)):
                await self.git.move(source, destination)
                moves.append((source, destination))

            await self.git.commit(move_commit_message(scope_type, name, intent_path.name, state_path.name))
            commits += 1
            log.info(f"Moved {name} to {completed_dir} with preserved git history")

        except (ExternalCommandError, FileOperationError) as e:
            log.error(f"Error archiving {intent_path.name}: {e}")
            rolled_back = await self._rollback(commits, moves, intent_path, state_path)
            return ArchiveResult(
                success=False,
                intent_path=intent_path,
                commits=commits,
                rolled_back=rolled_back,
                reason=str(e),
            )

        return ArchiveResult(
            success=True,
            intent_path=intent_path,
            archived_intent_path=target_intent,
            archived_state_path=target_state,
            commits=commits,
        )

    async def _revert(self, commits: int, moves: List[Tuple[Path, Path]], intent_path: Path, state_path: Path):
        try:
            if commits:
                # Resetting past our own commits also discards the staged moves
                await self.git.reset_hard(commits)
            else:
                for source, destination in reversed(moves):
                    await self.git.move(destination, source)
                await self.git.unstage(intent_path, state_path)
        except ExternalCommandError as e:
            raise RollbackError(f"Rollback of {intent_path.name} failed: {e}") from e

    async def _rollback(self, commits: int, moves: List[Tuple[Path, Path]],
                        intent_path: Path, state_path: Path) -> bool:
        """Undo exactly what this invocation did; logged, never raised."""
        try:
            await self._revert(commits, moves, intent_path, state_path)
        except RollbackError as e:
            log.critical(str(e))
            return False

        log.warning(f"Rolled back partial archival of {intent_path.name} ({commits} commit(s) reverted)")
        return True
