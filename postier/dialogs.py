import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)

DIALOG_TITLE = "Select Collection Folder"


class FolderDialog(ABC):
    """Host capability for picking a folder. Returns None when the user cancels."""

    @abstractmethod
    def select_directory(self) -> Optional[str]:
        ...


class TkFolderDialog(FolderDialog):
    """Native folder picker through tkinter."""

    def __init__(self, master=None, title: str = DIALOG_TITLE):
        self.master = master
        self.title = title

    def select_directory(self) -> Optional[str]:
        import tkinter as tk
        from tkinter import filedialog

        root = None
        parent = self.master
        if parent is None:
            root = tk.Tk()
            root.withdraw()
            parent = root
        try:
            path = filedialog.askdirectory(parent=parent, title=self.title, mustexist=True)
        finally:
            if root is not None:
                root.destroy()
        return path or None


class StaticFolderDialog(FolderDialog):
    """Returns pre-set answers in order; None once they run out."""

    def __init__(self, *answers: Optional[str]):
        self.answers = list(answers)

    def select_directory(self) -> Optional[str]:
        if not self.answers:
            return None
        return self.answers.pop(0)
