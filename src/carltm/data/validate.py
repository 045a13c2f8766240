import yaml
from pathlib import Path
from typing import Dict, List, Union

from jsonschema import Draft202012Validator

from carltm.logs import get_logger
from carltm.models import IntentRecord, StateRecord
from carltm.scope import INTENT_SUFFIX, STATE_SUFFIX

# Configure log for clear output
log = get_logger("data.validate")

# Schemas are generated from the models so the two cannot drift apart
SCHEMAS = {
    INTENT_SUFFIX: IntentRecord.model_json_schema(),
    STATE_SUFFIX: StateRecord.model_json_schema(),
}


def schema_for(path: Union[Path, str]) -> Union[dict, None]:
    name = Path(path).name
    for suffix, schema in SCHEMAS.items():
        if name.endswith(suffix):
            return schema
    return None


def validate_record(path: Union[Path, str], text: str) -> List[str]:
    """
    Validates the YAML text of a carl record against the schema for its kind.

    Args:
        path: The record's path; its suffix selects the schema.
        text: The raw file contents.

    Returns:
        A list of human readable problems, empty when the record is valid.
    """
    schema = schema_for(path)
    if schema is None:
        return [f"Not a carl record: {Path(path).name}"]

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        return [f"YAML syntax error: {e}"]

    if not isinstance(data, dict):
        return ["Record is not a mapping"]

    validator = Draft202012Validator(schema)
    errors = []
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.path)):
        location = "/".join(str(p) for p in error.path) or "<root>"
        errors.append(f"{location}: {error.message}")
    return errors


async def validate_project(index) -> Dict[Path, List[str]]:
    """
    Validates every intent and state record the relationship index can see.

    Returns:
        Mapping of record path to its problems; valid records are omitted.
    """
    problems: Dict[Path, List[str]] = {}
    for directory in index.scan_directories():
        for name in await index.store.list_directory(directory):
            if not name.endswith((INTENT_SUFFIX, STATE_SUFFIX)):
                continue
            path = directory / name
            text = await index.store.read_text(path)
            if text is None:
                problems[path] = ["Could not read file"]
                continue
            errors = validate_record(path, text)
            if errors:
                log.warning(f"{path}: {len(errors)} schema error(s)")
                problems[path] = errors
    return problems
