class CARLError(Exception):
    """Base exception for all carltm errors."""
    pass

class RecoverableError(CARLError):
    """An error that leaves the record store untouched; the item is skipped."""
    pass

class FatalError(CARLError):
    """An error that needs an operator to look at the project tree."""
    pass

class CorruptionError(FatalError):
    """Corrupted Data Error - from syntax errors in data formats, to just unknown data"""
    pass

class ParseError(CorruptionError):
    """A record could not be parsed into its model."""
    pass

class FileOperationError(RecoverableError):
    """File operation failed but can be retried."""
    pass

class NotFoundError(RecoverableError):
    """An intent or state record does not exist."""
    pass

class ExternalCommandError(RecoverableError):
    """A version-control command exited non-zero."""

    def __init__(self, args, returncode, stderr=""):
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"git {' '.join(self.command)} failed ({returncode}): {stderr.strip()}")

class RollbackError(FatalError):
    """The rollback after a failed archival could not be applied."""
    pass
