"""An in-memory AWHost used by the console runner and the tests."""
from __future__ import annotations

import asyncio
import collections
from typing import Any, Dict, List, Optional, Iterable

from aw.aw_datatypes import ElementNode
from aw.aw_fs import VirtualFileTree
from aw.aw_runtime import AWHost


class MemoryHost(AWHost):
    """A complete in-process host backed by a VirtualFileTree.

    It records everything a presentation layer would show (output lines,
    toasts, navigations, UI writes) and keeps the input values typed into
    the current screen. Prompts are answered from `answers` in order; when
    none are left the prompt waits until `answer()` is called.
    """

    def __init__(self, files: Optional[VirtualFileTree | Dict[str, Any] | list] = None,
                 answers: Iterable[str] = ()):
        super().__init__()
        if isinstance(files, VirtualFileTree):
            self.files = files
        else:
            self.files = VirtualFileTree.from_project_data(files or {})
        self.answers = collections.deque(answers)
        self.inputs: Dict[str, str] = {}
        self.outputs: List[str] = []
        self.prompts: List[str] = []
        self.toasts: List[Dict[str, Any]] = []
        self.navigations: List[tuple] = []
        self.writes: List[tuple] = []
        self.screen: Optional[ElementNode] = None
        self.screen_path: Optional[str] = None
        self.metadata: Dict[str, str] = {}
        self._pending_prompt: Optional[asyncio.Future] = None

    @property
    def entry_point(self) -> str:
        return self.files.entry_point

    # --- Files and output ---

    def load(self, path: str) -> Optional[str]:
        return self.files.load(path)

    def emit(self, text: str):
        self.outputs.append(text)

    def notify(self, text: str, color: str, duration: float):
        self.toasts.append({"message": text, "color": color, "duration": duration})

    def navigate(self, path: str, args: List[Any]):
        self.navigations.append((path, list(args)))

    # --- Input prompts ---

    async def prompt(self, text: str) -> str:
        self.prompts.append(text)
        if self.answers:
            return self.answers.popleft()
        self._pending_prompt = asyncio.get_running_loop().create_future()
        try:
            return await self._pending_prompt
        finally:
            self._pending_prompt = None

    @property
    def waiting_for_input(self) -> bool:
        return self._pending_prompt is not None and not self._pending_prompt.done()

    def answer(self, text: str):
        """Resolves the prompt the script is currently waiting on."""
        if not self.waiting_for_input:
            raise RuntimeError("no input prompt is pending")
        self._pending_prompt.set_result(text)

    # --- Screen state ---

    def show_screen(self, path: str, root: Optional[ElementNode], metadata: Dict[str, str]):
        self.screen_path = path
        self.screen = root
        self.metadata = dict(metadata)

    def clear_inputs(self):
        self.inputs.clear()

    def set_input(self, element_id: str, value: str):
        """What typing into an EditText does."""
        self.inputs[element_id] = value

    def read(self, element_id: str) -> str:
        return self.inputs.get(element_id, "")

    def write(self, element_id: str, prop: str, value: str):
        self.writes.append((element_id, prop, value))
        node = self.element(element_id)
        if node is None:
            return
        if prop == "text":
            node.attributes["android:text"] = value
            node.text = value
        elif prop == "image":
            node.attributes["android:src"] = value

    def element(self, element_id: str) -> Optional[ElementNode]:
        if self.screen is None:
            return None
        return next((n for n in self.screen.iter() if n.element_id == element_id), None)
