"""postier - backend of a desktop HTTP client with .postier request collections."""

from .app import App
from .dialogs import FolderDialog, StaticFolderDialog, TkFolderDialog
from .exceptions import (CollectionNotFound, FileSystemError, InvalidPostierFile,
                         NoFolderSelected, PostierError)
from .executor import REQUEST_TIMEOUT, make_request
from .models import (Collection, Cookie, DirectoryTree, FileSystemEntry, PostierRequest,
                     RequestDescriptor, ResponseDescriptor)

__version__ = "0.1.0"
