"""
Hosting AW screens: the AWHost interface an application implements, and
the ScriptRunner that loads screens, dispatches presses and carries out
queued navigation, reporting each step as an ExecutionResult.
"""
import os
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional, Literal, Dict, Tuple, Callable

from aw.aw_datatypes import ElementNode
from aw.aw_interpreter import Interpreter, ERROR_TOAST_COLOR
from aw.aw_markup import parse_markup
from aw.aw_printer import Printer
from aw.aw_source import parse_metadata, parse_layout_path
from aw.aw_fs import DEFAULT_ENTRY_POINT

# ===================================================================
# 1. Host interface
# ===================================================================


class AWHost(ABC):
    """The required base class for the application hosting AW screens.

    A host supplies everything the interpreter cannot do itself: reading
    project files, showing output, prompting the user, rendering screens and
    toasts, and reading/writing live UI state.
    """
    # Set to False when no presentation layer is attached; setter-form
    # assignments then fall back to plain expressions.
    has_ui: bool = True

    @property
    def entry_point(self) -> str:
        return DEFAULT_ENTRY_POINT

    @abstractmethod
    def load(self, path: str) -> Optional[str]: raise NotImplementedError
    @abstractmethod
    def emit(self, text: str): raise NotImplementedError

    async def prompt(self, text: str) -> str:
        raise NotImplementedError("this host cannot prompt for input")

    def navigate(self, path: str, args: List[Any]):
        return None

    def notify(self, text: str, color: str, duration: float):
        return None

    def read(self, element_id: str) -> str:
        return ""

    def write(self, element_id: str, prop: str, value: str):
        return None

    def show_screen(self, path: str, root: Optional[ElementNode], metadata: Dict[str, str]):
        return None

    def clear_inputs(self):
        return None


# ===================================================================
# 2. Screen execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of loading a screen or dispatching an event."""
    status: Literal['success', 'error']
    screen: Optional[str] = None
    error_message: Optional[str] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.screen and not msg.endswith(f"(screen {self.screen})"):
            return f"{msg} (screen {self.screen})"
        return msg


class ScriptRunner:
    """Loads screens, runs their scripts and routes events and navigation.

    A navigation requested by a script is queued and carried out once the
    current block has halted, replacing the interpreter and its scope.
    """

    def __init__(self, host: AWHost, *,
                 markup_parser: Callable[[Optional[str]], Optional[ElementNode]] = parse_markup,
                 http_config: Optional[dict] = None):
        self.host = host
        self.markup_parser = markup_parser
        self.http_config = dict(http_config or {})
        self.interpreter: Optional[Interpreter] = None
        self.screen_path: Optional[str] = None
        self.root: Optional[ElementNode] = None
        self.metadata: Dict[str, str] = {}
        self.history: List[str] = []
        self._pending: Optional[Tuple[str, List[Any]]] = None

    def _dbg(self, *parts):
        if os.environ.get("AW_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    async def start(self, entry: Optional[str] = None) -> ExecutionResult:
        """Opens the project's entry screen."""
        return await self.load_screen(entry or self.host.entry_point)

    async def load_screen(self, path: str, intent_data=()) -> ExecutionResult:
        async def action(effects):
            return await self._open_screen(path, intent_data, effects)
        return await self._dispatch(action)

    async def press(self, element_id: str) -> ExecutionResult:
        """Dispatches a click on element_id to the current screen."""
        async def action(effects):
            if self.interpreter is None:
                msg = "Error: no screen is loaded"
                effects.append({'topics': ['stderr'], 'message': msg})
                return 'error', msg
            await self._run(self.interpreter, self.interpreter.trigger_event(element_id), effects)
            return 'success', None
        return await self._dispatch(action)

    def _request_navigation(self, path: str, args: List[Any]):
        self._dbg("navigation requested", path, args)
        self._pending = (path, list(args))
        return self.host.navigate(path, args)

    async def _dispatch(self, action) -> ExecutionResult:
        effects: List[Dict] = []
        try:
            status, message = await action(effects)
            while status == 'success' and self._pending is not None:
                path, args = self._pending
                self._pending = None
                status, message = await self._open_screen(path, args, effects)
        except Exception as e:
            self._pending = None
            msg = f"InternalError: {e}"
            effects.append({'topics': ['stderr'], 'message': msg})
            return ExecutionResult(status='error', screen=self.screen_path, error_message=msg, side_effects=effects)
        self._pending = None
        return ExecutionResult(status=status, screen=self.screen_path, error_message=message, side_effects=effects)

    async def _run(self, interpreter: Interpreter, coro, effects: List[Dict]):
        start = len(interpreter.side_effects)
        try:
            await coro
        finally:
            effects.extend(interpreter.side_effects[start:])

    def _fail(self, message: str, effects: List[Dict]) -> Tuple[str, str]:
        effects.append({'topics': ['stderr'], 'message': message})
        effects.append({'topics': ['toast'], 'message': message, 'color': ERROR_TOAST_COLOR, 'duration': 3})
        self.host.emit(message)
        self.host.notify(message, ERROR_TOAST_COLOR, 3)
        return 'error', message

    async def _open_screen(self, path: str, intent_data, effects: List[Dict]) -> Tuple[str, Optional[str]]:
        source = self.host.load(path)
        if not source:
            return self._fail(f"Error: Script not found {path}", effects)

        self.host.clear_inputs()
        interpreter = Interpreter(
            self.host,
            intent_data,
            markup_parser=self.markup_parser,
            navigate=self._request_navigation,
            http_config=self.http_config,
        )
        self.interpreter = interpreter
        self.screen_path = path
        self.history.append(path)
        self.metadata = parse_metadata(source)

        root = None
        layout_path = parse_layout_path(source)
        if layout_path:
            layout = self.host.load(layout_path)
            if not layout:
                return self._fail(f"Error: Layout file not found: {layout_path}", effects)
            root = self.markup_parser(layout)
            if root is None:
                return self._fail(f"Error: XML Error in {layout_path}", effects)
        self.root = root
        self.host.show_screen(path, root, dict(self.metadata))
        self._dbg("screen", path, "layout", layout_path, "metadata", self.metadata)

        await self._run(interpreter, interpreter.execute(source), effects)
        return 'success', None

    def describe(self) -> str:
        """One-line summary of the current screen for consoles."""
        if self.screen_path is None:
            return "<no screen>"
        title = self.metadata.get("title") or self.screen_path
        root = Printer().summary(self.root) if self.root is not None else "no layout"
        return f"{title} [{root}]"
