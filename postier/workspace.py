"""Collections and sidebar state, kept in the settings file."""
import logging
import os
import uuid
from typing import Dict, List, Optional

from .exceptions import CollectionNotFound, FileSystemError
from .files import get_directory_tree
from .models import Collection
from .settings import PathLike, load_settings, save_settings

logger = logging.getLogger(__name__)


class Workspace:
    def __init__(self, settings_path: Optional[PathLike] = None):
        self.settings_path = settings_path
        self.settings = load_settings(settings_path)
        self.collections: List[Collection] = []
        for item in self.settings.get("collections") or []:
            try:
                self.collections.append(Collection.from_dict(item))
            except (KeyError, TypeError):
                logger.warning(f"Dropping malformed collection entry {item!r}")

    @property
    def auto_save(self) -> bool:
        return bool(self.settings.get("auto_save", True))

    @property
    def selected_collection(self) -> str:
        return self.settings.get("selected_collection") or ""

    @property
    def current_file(self) -> str:
        return self.settings.get("current_file") or ""

    @property
    def expanded_nodes(self) -> List[str]:
        return list(self.settings.get("expanded_nodes") or [])

    def get(self, collection_id: str) -> Collection:
        for c in self.collections:
            if c.id == collection_id:
                return c
        raise CollectionNotFound(collection_id)

    def find_by_path(self, path: str) -> Optional[Collection]:
        """Collection whose folder contains path, if any."""
        norm = os.path.normpath(path)
        for c in self.collections:
            root = os.path.normpath(c.path)
            if norm == root or norm.startswith(root + os.sep):
                return c
        return None

    def add_collection(self, path: str, name: Optional[str] = None) -> Collection:
        norm = os.path.normpath(path)
        for c in self.collections:
            if os.path.normpath(c.path) == norm:
                return c
        collection = Collection(id=str(uuid.uuid4()),
                                name=name or os.path.basename(norm) or norm,
                                path=path)
        self._refresh(collection)
        self.collections.append(collection)
        if not self.selected_collection:
            self.settings["selected_collection"] = collection.id
        self.save()
        logger.info(f"Added collection {collection.name} ({collection.path})")
        return collection

    def remove_collection(self, collection_id: str) -> Collection:
        collection = self.get(collection_id)
        self.collections.remove(collection)
        if self.selected_collection == collection_id:
            self.settings["selected_collection"] = ""
        if self.current_file and self.find_by_path(self.current_file) is None:
            self.settings["current_file"] = ""
        self.save()
        return collection

    def _refresh(self, collection: Collection):
        try:
            collection.tree = get_directory_tree(collection.path)
        except FileSystemError as e:
            logger.warning(f"Collection {collection.name} unavailable: {e}")
            collection.tree = None

    def refresh_collection(self, collection_id: str) -> Collection:
        collection = self.get(collection_id)
        self._refresh(collection)
        return collection

    def refresh_all(self) -> List[Collection]:
        for c in self.collections:
            self._refresh(c)
        return self.collections

    def select_collection(self, collection_id: str):
        if collection_id:
            self.get(collection_id)
        self.settings["selected_collection"] = collection_id
        self.save()

    def set_current_file(self, path: str):
        self.settings["current_file"] = path
        if path:
            owner = self.find_by_path(path)
            if owner is not None:
                self.settings["selected_collection"] = owner.id
        self.save()

    def set_expanded_nodes(self, nodes: List[str]):
        self.settings["expanded_nodes"] = list(dict.fromkeys(nodes))
        self.save()

    def set_auto_save(self, enabled: bool):
        self.settings["auto_save"] = bool(enabled)
        self.save()

    def to_dict(self) -> Dict:
        return {
            "collections": [dict(c.to_dict(), tree=c.tree.to_dict() if c.tree else None)
                            for c in self.collections],
            "selectedCollection": self.selected_collection,
            "currentFile": self.current_file,
            "expandedNodes": self.expanded_nodes,
            "autoSave": self.auto_save,
        }

    def save(self):
        self.settings["collections"] = [c.to_dict() for c in self.collections]
        save_settings(self.settings, self.settings_path)
