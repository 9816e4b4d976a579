"""
The AW execution engine.

`PathResolver` walks `&&path` references through the scope and element trees,
`Evaluator` turns expression text into values (with the literal-text
fallback), and `Interpreter` runs script lines: definitions, click handlers,
conditionals, loops, navigation, toasts, function calls and assignments.
"""
import asyncio
import inspect
import os
import re
import sys
from typing import Any, List, Optional, Tuple, Callable

from aw.aw_datatypes import (
    ElementNode, Scope, FunctionDef, IntentData, Halt, ExpressionError
)
from aw.aw_expr import (
    OBJECT_TOKEN, evaluate_formula, parse_number, to_number, to_string, truthy, quote, is_number
)
from aw.aw_source import prepare_lines, extract_block, extract_condition, split_args
from aw.aw_markup import parse_markup
from aw.aw_printer import Printer
from aw.aw_serialize import deserialize, serialize, json_get
from aw import aw_http

DEFAULT_TOAST_COLOR = "#333333"
DEFAULT_TOAST_SECONDS = 2
ERROR_TOAST_COLOR = "#ef4444"
DEFAULT_MAX_LOOP_ITERS = 1000

_DEREF_RE = re.compile(r"&&([a-zA-Z0-9_.\[\]]+)")
_INTENT_INDEX_RE = re.compile(r"\[(\d+)\]")
_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_LABEL_RE = re.compile(r"^[a-zA-Z0-9_]+:")

_FUNC_RE = re.compile(r"^func\s+([a-zA-Z0-9_]+)\s*\{(.*?)\}")
_PRESS_RE = re.compile(r"^is\.press\.(?:&&)?([a-zA-Z0-9_.]+)")
_IF_RE = re.compile(r"^if\s*\{")
_LOOP_RE = re.compile(r"^(?:for|while)\s*\{")
_INTENT_RE = re.compile(r"^intent\.to\.([a-zA-Z0-9_&.]+)(?:\[(.*)\])?")
_CALL_RE = re.compile(r"^([a-zA-Z0-9_]+)\{(.*)\}\s*$")
_SETTER_RE = re.compile(r"(?:&&)?([a-zA-Z0-9_.]+)\.([a-zA-Z0-9_]+)\[(.*)\]$")
_HELPER_RE = re.compile(r"^(http|json)\.(get|post|parse|str)\[(.*)\]\s*$")


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


def _is_scalar(val) -> bool:
    return isinstance(val, (str, bool)) or is_number(val)


class PathResolver:
    """Resolves `a.b.c` paths against the interpreter's scope and intent data."""

    def __init__(self, interpreter: 'Interpreter'):
        self.interpreter = interpreter

    def resolve(self, path: str) -> Any:
        """
        Returns the value for path. An unknown first segment yields the
        literal `&&path` text; a segment that matches no element yields None.
        """
        interp = self.interpreter
        if path.startswith("ui.intent.data"):
            m = _INTENT_INDEX_RE.search(path)
            if m:
                val = interp.intent_data.get(int(m.group(1)))
                return "null" if val is None else val

        parts = path.split(".")
        current = interp.scope.get(parts[0])
        if current is None:
            return f"&&{path}"

        for key in parts[1:]:
            if not isinstance(current, ElementNode):
                return None
            found = current.find(key)
            if found is None:
                return None
            current = found

        if isinstance(current, ElementNode) and current.is_input:
            element_id = current.element_id
            if element_id and interp.ui_available:
                return interp.host.read(element_id) or ""
        return current

    def substitute(self, text: str, *, for_display: bool) -> str:
        """
        Replaces every `&&path` in text. For formulas, strings are quoted and
        non-scalars become `[Object]`; for display, values are stringified.
        Unresolved paths stay as their literal `&&path` text in both modes.
        """
        def repl(m):
            path = m.group(1)
            val = self.resolve(path)
            if val is None:
                return f"&&{path}"
            if not _is_scalar(val):
                return OBJECT_TOKEN
            if isinstance(val, str) and not for_display:
                return quote(val)
            return to_string(val)
        return _DEREF_RE.sub(repl, text)


class Evaluator:
    """Expression and condition evaluation with the literal-text fallback."""

    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    def display(self, text: str) -> str:
        return self.resolver.substitute(text, for_display=True)

    def evaluate(self, expr: str) -> Any:
        # A lone reference may resolve to an element node or structured data.
        if expr.startswith("&&") and not any(c in expr for c in " +*:"):
            return self.resolver.resolve(expr[2:])

        if _URL_RE.match(expr):
            return expr.strip()

        if not expr:
            return None

        # `name:` would read as a label; keep such text literal (e.g. `Received: &&data`).
        if _LABEL_RE.match(expr):
            return self.display(expr).strip()

        formula = self.resolver.substitute(expr, for_display=False)
        try:
            result = evaluate_formula(formula)
        except ExpressionError:
            return self.display(expr).strip()
        if result is None:
            return self.display(expr).strip()
        return result.strip() if isinstance(result, str) else result

    def condition(self, cond: str) -> bool:
        formula = self.resolver.substitute(cond, for_display=False)
        try:
            return truthy(evaluate_formula(formula))
        except ExpressionError:
            return False


class Interpreter:
    """Runs one screen's script against a host.

    The host provides the collaborators: `load`, `emit`, `prompt`,
    `navigate`, `notify`, `read`, `write` and the `has_ui` flag.
    """

    def __init__(self, host, intent_data=(), *,
                 markup_parser: Callable[[Optional[str]], Optional[ElementNode]] = parse_markup,
                 navigate: Optional[Callable] = None,
                 http_config: Optional[dict] = None):
        self.host = host
        self.intent_data = intent_data if isinstance(intent_data, IntentData) else IntentData(intent_data)
        self.scope = Scope()
        self.markup_parser = markup_parser
        self._navigate = navigate or host.navigate
        self.http_config = dict(http_config or {})
        self.resolver = PathResolver(self)
        self.evaluator = Evaluator(self.resolver)
        self.printer = Printer()
        self.side_effects: List[dict] = []
        try:
            self.max_loop_iters = int(os.environ.get("AW_MAX_LOOP_ITERS", DEFAULT_MAX_LOOP_ITERS))
        except ValueError:
            self.max_loop_iters = DEFAULT_MAX_LOOP_ITERS

    @property
    def ui_available(self) -> bool:
        return bool(getattr(self.host, "has_ui", True))

    def _dbg(self, *parts):
        if os.environ.get("AW_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    # --- Output ---

    def _effect(self, topic: str, message: str, **data):
        event = {"topics": [topic], "message": message}
        event.update(data)
        self.side_effects.append(event)

    def _emit(self, text: str, topic: str = "stdout"):
        self._effect(topic, text)
        self.host.emit(text)

    def _report_failure(self, message: str):
        """Collaborator failures: reported on stderr and shown as a toast."""
        self._emit(message, "stderr")
        self._effect("toast", message, color=ERROR_TOAST_COLOR, duration=3)
        self.host.notify(message, ERROR_TOAST_COLOR, 3)

    # --- Entry points ---

    async def execute(self, code: str) -> Optional[Halt]:
        """Runs a whole script with a fresh scope."""
        self.scope = Scope()
        lines = prepare_lines(code)
        self._dbg("execute", len(lines), "lines")
        return await self.process_block(lines)

    async def trigger_event(self, element_id: str) -> Optional[Halt]:
        """Runs the click handler registered for element_id in the live scope."""
        handler = self.scope.event_handlers.get(element_id)
        if handler is None:
            self._dbg("no handler for", element_id)
            return None
        return await self.process_block(handler)

    # --- Control flow ---

    async def process_block(self, lines: List[str]) -> Optional[Halt]:
        """Runs lines in order; returns a Halt when `intent.to` ended the run."""
        i = 0
        while i < len(lines):
            line = lines[i]

            if line.startswith("//"):
                i += 1
                continue

            m = _FUNC_RE.match(line)
            if m:
                i = self._define_function(lines, i, m)
                continue

            if line.startswith("is.press."):
                m = _PRESS_RE.match(line)
                if m:
                    i = self._register_handler(lines, i, m.group(1))
                    continue

            if _IF_RE.match(line):
                body, next_index, matched = self._select_branch(lines, i)
                i = next_index
                if matched and body:
                    halt = await self.process_block(body)
                    if halt is not None:
                        return halt
                continue

            if _LOOP_RE.match(line):
                cond = extract_condition(line)
                body, next_index = extract_block(lines, i)
                if cond.strip():
                    halt = await self._run_loop(cond, body)
                    if halt is not None:
                        return halt
                i = next_index
                continue

            if line.startswith("intent.to."):
                m = _INTENT_RE.match(line)
                if m:
                    return await self._navigate_to(m.group(1), m.group(2) or "")

            if line.startswith("toast{"):
                self._toast(line)
                i += 1
                continue

            m = _CALL_RE.match(line)
            if m and m.group(1) in self.scope.functions:
                halt = await self._call_function(m.group(1), m.group(2))
                if halt is not None:
                    return halt
                i += 1
                continue

            await self.process_line(line)
            i += 1
        return None

    def _define_function(self, lines: List[str], index: int, m) -> int:
        name = m.group(1)
        params = []
        for p in m.group(2).split(","):
            p = p.strip()
            if p.startswith("&&"):
                p = p[2:]
            if p:
                params.append(p)
        body, next_index = extract_block(lines, index)
        self.scope.functions[name] = FunctionDef(params, body)
        self._emit(f"System: Defined function '{name}'", "system")
        return next_index

    def _register_handler(self, lines: List[str], index: int, ref: str) -> int:
        resolved = self.resolver.resolve(ref)
        target = resolved.element_id if isinstance(resolved, ElementNode) else None
        body, next_index = extract_block(lines, index)
        if target:
            self.scope.event_handlers[target] = body
            self._emit(f"System: Registered click listener for ID '{target}'", "system")
        else:
            self._emit(f"Error: Could not resolve '{ref}' to a UI element ID for event listener.", "stderr")
        return next_index

    def _select_branch(self, lines: List[str], start: int) -> Tuple[List[str], int, bool]:
        """Picks the branch of an `if/.elif/.else` chain to run.

        Returns (body, index after the whole chain, whether a branch matched).
        """
        body, next_index = extract_block(lines, start)
        if self.evaluator.condition(extract_condition(lines[start])):
            return body, self._end_of_chain(lines, next_index), True

        current = next_index
        while current < len(lines) and lines[current].startswith(".elif"):
            body, next_index = extract_block(lines, current)
            if self.evaluator.condition(extract_condition(lines[current])):
                return body, self._end_of_chain(lines, next_index), True
            current = next_index

        if current < len(lines) and lines[current].startswith(".else"):
            body, next_index = extract_block(lines, current)
            return body, next_index, True

        return [], current, False

    def _end_of_chain(self, lines: List[str], index: int) -> int:
        while index < len(lines) and lines[index].startswith((".elif", ".else")):
            _, index = extract_block(lines, index)
        return index

    async def _run_loop(self, cond: str, body: List[str]) -> Optional[Halt]:
        count = 0
        while count < self.max_loop_iters and self.evaluator.condition(cond):
            halt = await self.process_block(body)
            if halt is not None:
                return halt
            count += 1
            # Cooperative yield so UI events and prompts are not starved.
            if count % 100 == 0:
                await asyncio.sleep(0)
        if count >= self.max_loop_iters:
            self._emit("Error: Infinite loop detected.", "stderr")
        return None

    async def _call_function(self, name: str, args_text: str) -> Optional[Halt]:
        func = self.scope.functions[name]
        args = [self.evaluator.evaluate(a) for a in split_args(args_text)]
        for param, value in zip(func.params, args):
            self.scope[param] = value
        return await self.process_block(func.body_lines)

    # --- Effects ---

    async def _navigate_to(self, target_ref: str, args_text: str) -> Halt:
        if target_ref.startswith("&&"):
            target = self.resolver.resolve(target_ref[2:])
        else:
            bound = self.scope.get(target_ref)
            target = bound if bound is not None else target_ref

        args = [self.evaluator.evaluate(a) for a in split_args(args_text)]
        target_text = self.printer.pformat(target)
        self._emit(f"System: Navigating to {target_text} with data: {self.printer.pformat(args)}", "system")
        self._effect("navigate", target_text, args=args)
        await _maybe_await(self._navigate(target_text, args))
        return Halt(target_text, args)

    def _toast(self, line: str):
        start = line.find("{")
        end = line.rfind("}")
        content = line[start + 1:end] if end > start else line[start + 1:]
        args = [self.evaluator.evaluate(a) for a in split_args(content)]

        text = self.printer.pformat(args[0]) if args and args[0] is not None else ""
        color = self.printer.pformat(args[1]) if len(args) > 1 and truthy(args[1]) else DEFAULT_TOAST_COLOR
        duration = DEFAULT_TOAST_SECONDS
        if len(args) > 2 and truthy(args[2]):
            n = to_number(args[2])
            if truthy(n):
                duration = n

        self._effect("toast", text, color=color, duration=duration)
        self.host.notify(text, color, duration)

    # --- Basic commands ---

    async def process_line(self, line: str):
        """Handles `print(...)`/`show(...)` and assignments; anything else is ignored."""
        if line.startswith(("print(", "show(")):
            content = line[line.find("(") + 1:line.rfind(")")]
            value = self.evaluator.evaluate(content)
            self._emit(self.printer.pformat(value))
            return

        if "=" in line:
            lhs, rhs = line.split("=", 1)
            await self._assign(lhs.strip(), rhs.strip())
            return

        self._dbg("ignored line", line)

    async def _assign(self, lhs: str, rhs: str):
        m = _SETTER_RE.search(rhs)
        if m:
            obj_path, prop, value_expr = m.groups()
            target = self.resolver.resolve(obj_path)
            if isinstance(target, ElementNode) and target.element_id and self.ui_available:
                value = self.evaluator.evaluate(value_expr)
                text = self.printer.pformat(value)
                self._effect("ui", text, id=target.element_id, property=prop)
                self.host.write(target.element_id, prop, text)
                self.scope[lhs] = value
                return
            # Not a live element (e.g. `&&ui.intent.data[0]`): read it as an expression.

        if rhs.startswith("inp("):
            close = rhs.rfind(")")
            prompt = rhs[4:close] if close >= 4 else rhs[4:]
            try:
                answer = await _maybe_await(self.host.prompt(prompt))
            except NotImplementedError:
                self._report_failure(f"Error: Input is not available for '{prompt}'")
                self.scope[lhs] = ""
                return
            answer = "" if answer is None else str(answer)
            number = parse_number(answer)
            self.scope[lhs] = answer if number is None else number
            return

        if rhs.startswith("root/"):
            self._load_layout(lhs, rhs)
            return

        m = _HELPER_RE.match(rhs)
        if m:
            self.scope[lhs] = await self._call_helper(m.group(1), m.group(2), m.group(3))
            return

        self.scope[lhs] = self.evaluator.evaluate(rhs)

    def _load_layout(self, lhs: str, path: str):
        content = self.host.load(path)
        node = self.markup_parser(content) if content else None
        if node is not None:
            self.scope[lhs] = node
            self.scope[lhs + "_path"] = path
            self._emit(f"System: Loaded layout into variable '{lhs}'", "system")
        else:
            self._dbg("layout not loaded, keeping literal path", path)
            self.scope[lhs] = path

    async def _call_helper(self, namespace: str, op: str, inner: str) -> Any:
        """`http.get/post[...]` and `json.get/parse/str[...]`."""
        first, _, rest = inner.partition(",")
        first, rest = first.strip(), rest.strip()
        match (namespace, op):
            case ("http", "get") | ("http", "post"):
                url = self.printer.pformat(self.evaluator.evaluate(first))
                try:
                    if op == "get":
                        return await aw_http.http_get(url, self.http_config)
                    body = self.evaluator.evaluate(rest) if rest else None
                    return await aw_http.http_post(url, body, self.http_config)
                except Exception as e:
                    self._report_failure(f"Error: http.{op} failed for {url}: {e}")
                    return None
            case ("json", "get"):
                value = self.evaluator.evaluate(first)
                return json_get(value, self.evaluator.display(rest).strip())
            case ("json", "parse"):
                value = self.evaluator.evaluate(inner.strip())
                return deserialize(value, fmt="json") if isinstance(value, str) else value
            case ("json", "str"):
                value = self.evaluator.evaluate(inner.strip())
                if isinstance(value, (ElementNode, dict, list, IntentData)):
                    return self.printer.pformat(value)
                return serialize(value, fmt="json", pretty=False)
        self._dbg("unknown helper", namespace, op)
        return self.evaluator.evaluate(f"{namespace}.{op}[{inner}]")
