import tempfile, yaml, os
from typing import Union, Dict, Any, List, Optional
from pathlib import Path
from carltm.recovery import FileOperationError, FatalError, ParseError
from carltm.logs import get_logger

log = get_logger("io")

def _cleanup(temp_path):
    if temp_path is not None and os.path.exists(temp_path):
        try:
            os.unlink(temp_path)
            log.debug(f"Cleaned up temporary file: {temp_path}")
        except OSError as cleanup_error:
            log.warning(f"Could not clean up temp file {temp_path}: {cleanup_error}")

def _create_dirs(file_path : Path):
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
    except (OSError, PermissionError) as e:
        error_msg = f"Cannot create directory {file_path.parent}: {e}"
        log.error(error_msg)
        raise FileOperationError(error_msg) from e

def atomic_write(file_path : Union[Path, str], content : str, create_dirs : bool = False) -> bool:
    """
    Save text to a file using atomic updates.

    The content is written to a temporary file in the target directory and
    moved into place with os.replace, so readers see either the old or the
    new file, never a partial one.
    """
    file_path = Path(file_path)
    temp_path = None

    try:
        if create_dirs:
            _create_dirs(file_path)

        with tempfile.NamedTemporaryFile(mode='w', encoding='utf-8', dir=file_path.parent, prefix=f".{file_path.name}.", suffix='.tmp', delete=False) as temp_file:
            temp_path = temp_file.name
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())

        os.replace(temp_path, file_path)
        log.debug(f"Successfully saved file: {file_path}")
        return True

    except (IOError, OSError, PermissionError) as e:
        _cleanup(temp_path)
        error_msg = f"I/O error saving file {file_path}: {e}"
        log.error(error_msg)
        raise FileOperationError(error_msg) from e

def load_yaml(text : str, source : Union[Path, str] = "<string>") -> Any:
    """Parse YAML text, raising ParseError on syntax errors."""
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"YAML syntax error in {source}: {e}") from e

def dump_yaml(data : Dict[str, Any]) -> str:
    """Serialize a record the way every carl file is written."""
    try:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, indent=2, allow_unicode=True)
    except (yaml.YAMLError, TypeError) as e:
        # In-memory data is not serializable, nothing sensible to write
        error_msg = f"Data serialization failed, in-memory data may be corrupt: {e}"
        log.critical(error_msg)
        raise FatalError(error_msg) from e


class RecordStore:
    """
    Text access to the carl record files.

    Methods are coroutines so the engines can fan out over many records;
    local file access completes without suspending. None of them raise for
    missing or unreadable files.
    """

    async def exists(self, path : Union[Path, str]) -> bool:
        return Path(path).exists()

    async def read_text(self, path : Union[Path, str]) -> Optional[str]:
        path = Path(path)
        try:
            return path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            log.error(f"Error reading file {path}: {e}")
            return None

    async def write_text(self, path : Union[Path, str], content : str) -> bool:
        try:
            return atomic_write(path, content, create_dirs=True)
        except FileOperationError:
            return False

    async def list_directory(self, path : Union[Path, str]) -> List[str]:
        path = Path(path)
        try:
            return sorted(entry.name for entry in path.iterdir())
        except (FileNotFoundError, NotADirectoryError):
            return []
        except OSError as e:
            log.warning(f"Cannot list directory {path}: {e}")
            return []

    async def read_yaml(self, path : Union[Path, str]) -> Optional[Any]:
        """Read and parse a YAML record; None when it is missing or unreadable."""
        text = await self.read_text(path)
        if text is None:
            return None
        return load_yaml(text, path)
