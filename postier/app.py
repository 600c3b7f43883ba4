import logging
import os
from typing import List, Optional

from . import files, storage
from .dialogs import FolderDialog, TkFolderDialog
from .exceptions import NoFolderSelected, PostierError
from .executor import make_request
from .models import (POSTIER_EXTENSION, Collection, DirectoryTree, FileSystemEntry,
                     PostierRequest, RequestDescriptor, ResponseDescriptor)
from .settings import PathLike, configure_logging
from .workspace import Workspace

logger = logging.getLogger(__name__)


def _is_within(path: str, folder: str) -> bool:
    path, folder = os.path.normpath(path), os.path.normpath(folder)
    return path == folder or path.startswith(folder + os.sep)


class App:
    """Everything the desktop shell calls into.

    The folder picker is passed in so the rest can run without a display.
    """

    def __init__(self, folder_dialog: Optional[FolderDialog] = None,
                 settings_path: Optional[PathLike] = None):
        self.folder_dialog = folder_dialog or TkFolderDialog()
        self.workspace = Workspace(settings_path)

    def startup(self):
        configure_logging(self.workspace.settings.get("log_level"))
        self.workspace.refresh_all()
        logger.info(f"Loaded {len(self.workspace.collections)} collection(s)")

    def shutdown(self):
        self.workspace.save()

    # requests

    def make_request(self, request: RequestDescriptor) -> ResponseDescriptor:
        response = make_request(request)
        if self.workspace.auto_save and self.workspace.current_file.endswith(POSTIER_EXTENSION):
            self._auto_save(request)
        return response

    def _auto_save(self, request: RequestDescriptor):
        path = self.workspace.current_file
        try:
            try:
                saved = storage.load_postier_request(path)
            except PostierError:
                logger.warning(f"Could not reload {path}; writing a fresh request")
                saved = PostierRequest()
            saved.update_from(request)
            storage.save_postier_request(path, saved)
        except PostierError as e:
            logger.error(f"Auto-save to {path} failed: {e}")

    # filesystem

    def get_directory_tree(self, root_path: str) -> DirectoryTree:
        return files.get_directory_tree(root_path)

    def create_directory(self, path: str):
        files.create_directory(path)

    def create_file(self, path: str, content: str):
        files.create_file(path, content)

    def read_file(self, path: str) -> str:
        return files.read_file(path)

    def update_file(self, path: str, content: str):
        files.update_file(path, content)

    def delete_file(self, path: str):
        files.delete_file(path)
        if path == self.workspace.current_file:
            self.workspace.set_current_file("")

    def delete_directory(self, path: str):
        files.delete_directory(path)
        current = self.workspace.current_file
        if current and _is_within(current, path):
            self.workspace.set_current_file("")

    def rename_entry(self, old_path: str, new_name: str) -> str:
        new_path = files.rename_entry(old_path, new_name)
        current = self.workspace.current_file
        if current and _is_within(current, old_path):
            rel = os.path.relpath(current, old_path)
            self.workspace.set_current_file(new_path if rel == os.curdir else os.path.join(new_path, rel))
        return new_path

    # saved requests

    def save_postier_request(self, file_path: str, request: PostierRequest) -> str:
        return storage.save_postier_request(file_path, request)

    def load_postier_request(self, file_path: str) -> PostierRequest:
        request = storage.load_postier_request(file_path)
        self.workspace.set_current_file(file_path)
        return request

    def list_postier_files(self, directory_path: str) -> List[FileSystemEntry]:
        return storage.list_postier_files(directory_path)

    def new_postier_request(self, parent_dir: str, name: str) -> str:
        path = storage.new_postier_request(parent_dir, name)
        expanded = self.workspace.expanded_nodes
        if parent_dir not in expanded:
            self.workspace.set_expanded_nodes(expanded + [parent_dir])
        return path

    # collections

    def open_folder_dialog(self) -> str:
        path = self.folder_dialog.select_directory()
        if not path:
            raise NoFolderSelected("no folder selected")
        return path

    def add_collection(self, path: Optional[str] = None, name: Optional[str] = None) -> Collection:
        return self.workspace.add_collection(path or self.open_folder_dialog(), name)

    def remove_collection(self, collection_id: str) -> Collection:
        return self.workspace.remove_collection(collection_id)

    def refresh_collections(self) -> List[Collection]:
        return self.workspace.refresh_all()
