from aw.aw_datatypes import ElementNode, Scope, FunctionDef, IntentData, Halt
from aw.aw_interpreter import Interpreter, PathResolver, Evaluator
from aw.aw_runtime import AWHost, ScriptRunner, ExecutionResult
from aw.aw_host import MemoryHost
from aw.aw_fs import VirtualFileTree
from aw.aw_markup import parse_markup

__all__ = [
    "ElementNode",
    "Scope",
    "FunctionDef",
    "IntentData",
    "Halt",
    "Interpreter",
    "PathResolver",
    "Evaluator",
    "AWHost",
    "ScriptRunner",
    "ExecutionResult",
    "MemoryHost",
    "VirtualFileTree",
    "parse_markup",
]
