"""
Search Chat
"""

from typing import Optional
from textual import work
from textual.app import App, ComposeResult

from search_chat.core.config import ClientConfig, load_config
from search_chat.core.logging_setup import get_logger, setup_logging
from search_chat.core.session import ChatClient
from search_chat.models import Turn
from search_chat.widgets import InputArea, ChatLog

logger = get_logger(__name__)


class ChatApp(App):
    def __init__(self, config: Optional[ClientConfig] = None, client: Optional[ChatClient] = None):
        """Initialize the chat application with its conversation client."""
        super().__init__()
        self.config = config or load_config()
        self.client = client or ChatClient(self.config)
        self.client.store.subscribe(self._render)

    def compose(self) -> ComposeResult:
        """
        Create the main UI layout.
        """
        yield ChatLog(id="chat_log", markup=True, wrap=True)
        yield InputArea(id="input_text", placeholder="Ask anything")

    async def on_mount(self) -> None:
        self._render(self.client.store.snapshot())
        self.set_focus(self.query_one('#input_text', InputArea))

    async def on_input_area_submit(self, message: InputArea.Submit) -> None:
        """
        Send the query unless an answer is still streaming.
        """
        if self.client.busy:
            logger.info("submission_ignored", reason="answer still streaming")
            return
        self.run_query(message.value)

    @work(exclusive=True, group='query')
    async def run_query(self, query: str):
        await self.client.ask(query)

    def _render(self, turns: tuple[Turn, ...]) -> None:
        self.query_one("#chat_log", ChatLog).render_turns(turns)


def main():
    config = load_config()
    setup_logging(config.log_level, config.log_file)
    app = ChatApp(config)
    app.run()


if __name__ == "__main__":
    main()
