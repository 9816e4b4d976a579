import pytest

from aw.aw_host import MemoryHost
from aw.aw_interpreter import Interpreter

MAIN_XML = """<?xml version="1.0" encoding="utf-8"?>
<LinearLayout
    xmlns:android="http://schemas.android.com/apk/res/android"
    android:id="@+id/main_container"
    android:orientation="vertical">

    <TextView
        android:id="@+id/header_text"
        android:text="Main Screen" />

    <EditText
        android:id="@+id/input_field"
        android:hint="Enter name to pass" />

    <Button
        android:id="@+id/save_btn"
        android:text="Next Screen" />

</LinearLayout>"""

CARD_XML = """<?xml version="1.0" encoding="utf-8"?>
<LinearLayout xmlns:android="http://schemas.android.com/apk/res/android"
    android:id="@+id/card_root">
    <ImageView android:id="@+id/card_icon" />
    <TextView android:id="@+id/display_text" android:text="Waiting for data..." />
    <Button android:id="@+id/fetch_btn" android:text="Fetch" />
</LinearLayout>"""

MAIN_AW = """WELCOM IN AW
titel : "Main",
icon: "https://example.com/icon.png"
THE CODE IS START NOW
ui = root/res/layout/activity_main.xml
next_ui_path = root/logic/item/item.aw

**/ Declare UI Elements /**
text = &&ui.header_text
btn = &&ui.save_btn

**/ Event Listener /**
func nav {} {
  is.press.&&btn {
    input = &&ui.input_field
    intent.to.&&next_ui_path[&&input]
  }
}

nav{}"""

ITEM_AW = """WELCOM IN AW
THE CODE IS START NOW
ui = root/res/layout/item_card.xml

**/ Receive Data /**
data = &&ui.intent.data[0]
text = &&ui.display_text.text[Received: &&data]
"""


def make_project():
    return [{
        "main_screen": "root/logic/main/main.aw",
        "root": {
            "res": {"layout": {"activity_main.xml": MAIN_XML, "item_card.xml": CARD_XML}},
            "logic": {
                "main": {"main.aw": MAIN_AW},
                "item": {"item.aw": ITEM_AW},
            },
        },
    }]


@pytest.fixture
def host():
    """A MemoryHost over the sample two-screen project."""
    return MemoryHost(make_project())


@pytest.fixture
def interp(host):
    """A bare interpreter on the sample host, no screen runner."""
    return Interpreter(host)