"""
Data access submodule: record file I/O and schema validation.
"""

from .io import RecordStore, atomic_write, load_yaml, dump_yaml
from .validate import validate_record, validate_project

__all__ = [
    'RecordStore',
    'atomic_write',
    'load_yaml',
    'dump_yaml',
    'validate_record',
    'validate_project',
]
