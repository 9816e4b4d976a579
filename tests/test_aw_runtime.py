import pytest

from aw.aw_host import MemoryHost
from aw.aw_interpreter import ERROR_TOAST_COLOR
from aw.aw_markup import parse_markup
from aw.aw_runtime import AWHost, ScriptRunner, ExecutionResult

from conftest import MAIN_XML, make_project


def assert_ok(res: ExecutionResult):
    assert res.status == 'success', res.format_error()


def project_with(files: dict, main_screen: str = "root/logic/main/main.aw"):
    data = make_project()
    data[0]["main_screen"] = main_screen
    data[0]["root"]["logic"].update(files)
    return data


@pytest.mark.asyncio
async def test_start_opens_entry_screen(host):
    runner = ScriptRunner(host)
    res = await runner.start()
    assert_ok(res)
    assert res.screen == "root/logic/main/main.aw"
    assert host.screen_path == "root/logic/main/main.aw"
    assert host.screen.tag_name == "LinearLayout"
    assert host.metadata == {"title": "Main", "icon": "https://example.com/icon.png"}
    assert runner.interpreter.scope.event_handlers.keys() == {"save_btn"}
    messages = [e["message"] for e in res.side_effects]
    assert "System: Defined function 'nav'" in messages
    assert "System: Registered click listener for ID 'save_btn'" in messages
    assert runner.describe() == "Main [[Object: LinearLayout id=@+id/main_container]]"


@pytest.mark.asyncio
async def test_press_navigates_with_intent_data(host):
    runner = ScriptRunner(host)
    assert_ok(await runner.start())

    host.set_input("input_field", "Alice")
    res = await runner.press("save_btn")
    assert_ok(res)

    assert res.screen == "root/logic/item/item.aw"
    assert runner.history == ["root/logic/main/main.aw", "root/logic/item/item.aw"]
    assert host.navigations == [("root/logic/item/item.aw", ["Alice"])]
    assert runner.interpreter.intent_data.get(0) == "Alice"
    assert runner.interpreter.scope["data"] == "Alice"
    assert host.writes == [("display_text", "text", "Received: Alice")]
    node = host.element("display_text")
    assert node.text == "Received: Alice"
    assert node.attributes["android:text"] == "Received: Alice"

    topics = [e["topics"][0] for e in res.side_effects]
    assert "navigate" in topics and "ui" in topics
    nav = next(e for e in res.side_effects if e["topics"] == ["navigate"])
    assert nav["message"] == "root/logic/item/item.aw"
    assert nav["args"] == ["Alice"]


@pytest.mark.asyncio
async def test_navigation_clears_inputs_and_replaces_scope(host):
    runner = ScriptRunner(host)
    await runner.start()
    first = runner.interpreter
    host.set_input("input_field", "Bob")
    await runner.press("save_btn")

    assert host.inputs == {}
    assert runner.interpreter is not first
    assert "btn" not in runner.interpreter.scope
    # The old screen's handlers are gone with its scope.
    res = await runner.press("save_btn")
    assert_ok(res)
    assert res.side_effects == []


@pytest.mark.asyncio
async def test_missing_script_reports_error_toast(host):
    runner = ScriptRunner(host)
    res = await runner.load_screen("root/logic/nope.aw")
    assert res.status == 'error'
    assert res.error_message == "Error: Script not found root/logic/nope.aw"
    assert host.toasts[-1] == {"message": res.error_message, "color": ERROR_TOAST_COLOR, "duration": 3}
    assert runner.interpreter is None


@pytest.mark.asyncio
async def test_navigation_to_missing_script(host):
    host.files.write("root/logic/main/main.aw", "intent.to.nowhere[1]")
    runner = ScriptRunner(host)
    res = await runner.start()
    assert res.status == 'error'
    assert res.error_message == "Error: Script not found nowhere"
    assert res.format_error() == "Error: Script not found nowhere (screen root/logic/main/main.aw)"


@pytest.mark.asyncio
async def test_layout_errors_skip_the_script():
    host = MemoryHost(project_with({
        "a": {"a.aw": "THE CODE IS START NOW\nui = root/res/layout/missing.xml\nx = 1\nprint(ran)"},
        "b": {"b.aw": "THE CODE IS START NOW\nui = root/res/layout/bad.xml\nprint(ran)"},
    }))
    host.files.write("root/res/layout/bad.xml", "<LinearLayout><Button></LinearLayout>")
    runner = ScriptRunner(host)

    res = await runner.load_screen("root/logic/a/a.aw")
    assert res.status == 'error'
    assert res.error_message == "Error: Layout file not found: root/res/layout/missing.xml"

    res = await runner.load_screen("root/logic/b/b.aw")
    assert res.error_message == "Error: XML Error in root/res/layout/bad.xml"

    assert "ran" not in host.outputs
    assert host.screen is None


@pytest.mark.asyncio
async def test_script_without_layout_runs():
    host = MemoryHost(project_with({"plain": {"plain.aw": "x = 2 * 21\nprint(&&x)"}}))
    runner = ScriptRunner(host)
    res = await runner.load_screen("root/logic/plain/plain")
    assert_ok(res)
    assert host.outputs == ["42"]
    assert host.screen is None
    assert host.screen_path == "root/logic/plain/plain"
    assert runner.describe() == "root/logic/plain/plain [no layout]"


@pytest.mark.asyncio
async def test_press_without_screen():
    runner = ScriptRunner(MemoryHost({}))
    res = await runner.press("save_btn")
    assert res.status == 'error'
    assert res.error_message == "Error: no screen is loaded"
    assert runner.describe() == "<no screen>"


@pytest.mark.asyncio
async def test_missing_input_capability_is_reported():
    class SilentHost(AWHost):
        def __init__(self):
            self.lines = []

        def load(self, path):
            return "x = inp(Name?)\nprint(after)" if path == "root/logic/main/main.aw" else None

        def emit(self, text):
            self.lines.append(text)

    host = SilentHost()
    runner = ScriptRunner(host)
    res = await runner.start()
    assert_ok(res)
    assert runner.interpreter.scope["x"] == ""
    assert host.lines == ["Error: Input is not available for 'Name?'", "after"]
    assert {"topics": ["stderr"], "message": "Error: Input is not available for 'Name?'"} in res.side_effects


@pytest.mark.asyncio
async def test_host_failures_become_internal_errors():
    class OfflineHost(AWHost):
        def load(self, path):
            return "print(hi)" if path == "root/logic/main/main.aw" else None

        def emit(self, text):
            raise RuntimeError("display offline")

    runner = ScriptRunner(OfflineHost())
    res = await runner.start()
    assert res.status == 'error'
    assert res.error_message == "InternalError: display offline"
    assert res.side_effects[-1] == {"topics": ["stderr"], "message": res.error_message}


@pytest.mark.asyncio
async def test_chained_navigation_runs_until_settled():
    host = MemoryHost(project_with({
        "hop": {"hop.aw": "n = &&ui.intent.data[0]\nnext = root/logic/end/end.aw\nintent.to.&&next[&&n]"},
        "end": {"end.aw": "THE CODE IS START NOW\nprint(done)"},
    }, main_screen="root/logic/start.aw"))
    host.files.write("root/logic/start.aw", "target = root/logic/hop/hop.aw\nintent.to.&&target[1]")
    runner = ScriptRunner(host)
    res = await runner.start()
    assert_ok(res)
    assert runner.history == ["root/logic/start.aw", "root/logic/hop/hop.aw", "root/logic/end/end.aw"]
    assert host.navigations == [("root/logic/hop/hop.aw", [1]), ("root/logic/end/end.aw", [1])]
    assert host.outputs[-1] == "done"


@pytest.mark.asyncio
async def test_memory_host_records_and_applies_writes():
    host = MemoryHost({"root": {"res": {"main.xml": MAIN_XML}}})
    assert host.entry_point == "root/logic/main/main.aw"
    host.emit("hello")
    host.notify("saved", "#333333", 2)
    host.navigate("root/x", ("a",))
    assert host.outputs == ["hello"]
    assert host.toasts == [{"message": "saved", "color": "#333333", "duration": 2}]
    assert host.navigations == [("root/x", ["a"])]

    # Writes without a screen are only recorded.
    host.write("header_text", "text", "Hi")
    assert host.writes == [("header_text", "text", "Hi")]

    host.show_screen("root/x", parse_markup(host.load("root/res/main.xml")), {"title": "X"})
    host.write("header_text", "text", "Hi")
    host.write("save_btn", "image", "https://example.com/p.png")
    assert host.element("header_text").text == "Hi"
    assert host.element("save_btn").attributes["android:src"] == "https://example.com/p.png"
    assert host.element("nope") is None
    assert host.metadata == {"title": "X"}
