from typing import Optional


class PostierError(Exception):
    """Base exception for postier errors."""
    pass


class FileSystemError(PostierError, OSError):
    """Raised when a filesystem operation fails. Keeps errno/filename of the OS error."""
    def __init__(self, message: str, cause: Optional[OSError] = None):
        if cause is not None:
            OSError.__init__(self, cause.errno, message, cause.filename)
        else:
            OSError.__init__(self, message)
        self.message = message
        self.cause = cause

    def __str__(self):
        return self.message

    @classmethod
    def wrap(cls, action: str, error: OSError) -> "FileSystemError":
        return cls(f"failed to {action}: {error}", error)


class InvalidPostierFile(PostierError, ValueError):
    """Raised when a .postier file cannot be parsed."""
    pass


class NoFolderSelected(PostierError):
    """Raised when the folder dialog is cancelled."""
    pass


class CollectionNotFound(PostierError, KeyError):
    """Raised when a collection id is unknown."""
    def __str__(self):
        return f"collection not found: {self.args[0] if self.args else ''}"
