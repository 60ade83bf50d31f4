"""
Query input widget for the search chat client.
"""
from textual.widgets import Input
from textual.message import Message


class InputArea(Input):
    class Submit(Message, bubble=True):
        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    async def on_key(self, event) -> None:
        if event.key == "enter":
            text = self.value.strip()
            if text:
                self.post_message(self.Submit(text))
            self.value = ""
