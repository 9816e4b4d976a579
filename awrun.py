import asyncio
import os
import sys

from aw.aw_fs import VirtualFileTree
from aw.aw_host import MemoryHost
from aw.aw_printer import Printer
from aw.aw_runtime import ScriptRunner

HELP = "Commands: press ID | type ID TEXT | tree | vars | exit"


# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)


class ConsoleHost(MemoryHost):
    """MemoryHost that also shows output, toasts and prompts on the terminal."""

    def emit(self, text: str):
        super().emit(text)
        print(f"[AW]: {text}")

    def notify(self, text: str, color: str, duration: float):
        super().notify(text, color, duration)
        print(f"[toast {color} {duration}s] {text}")

    async def prompt(self, text: str) -> str:
        self.prompts.append(text)
        raw = await ainput(f"{text} > ")
        return raw.rstrip("\n")

    def show_screen(self, path, root, metadata):
        super().show_screen(path, root, metadata)
        title = metadata.get("title")
        print(f"--- {title or path} ---")


def load_project(locator: str) -> VirtualFileTree:
    if os.path.isdir(locator):
        return VirtualFileTree.from_directory(locator)
    return VirtualFileTree.from_file(locator)


def report(result):
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)


async def main():
    """Run a project, then dispatch console commands to its screens."""
    if len(sys.argv) < 2:
        print("usage: awrun.py PROJECT [ENTRY]", file=sys.stderr)
        raise SystemExit(2)

    try:
        files = load_project(sys.argv[1])
    except (OSError, ValueError) as e:
        print(f"Error: cannot load project {sys.argv[1]}: {e}", file=sys.stderr)
        raise SystemExit(1)

    host = ConsoleHost(files)
    runner = ScriptRunner(host)
    printer = Printer()
    report(await runner.start(sys.argv[2] if len(sys.argv) > 2 else None))
    print(HELP)

    while True:
        try:
            raw = await ainput(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()
            if not line:
                continue
            cmd, _, rest = line.partition(" ")
            match cmd:
                case "exit":
                    break
                case "press":
                    report(await runner.press(rest.strip()))
                case "type":
                    element_id, _, text = rest.strip().partition(" ")
                    host.set_input(element_id, text)
                case "tree":
                    print(printer.pformat_tree(host.screen) if host.screen is not None else "<no layout>")
                case "vars":
                    if runner.interpreter is not None:
                        for name, value in runner.interpreter.scope.vars.items():
                            print(f"{name} = {printer.pformat(value)}")
                case _:
                    print(HELP)
        except EOFError:
            print("\nExiting.")
            break


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")
