"""Error types surfaced by the streaming turn pipeline."""


class IncompleteTurnError(Exception):
    """The event feed ended before the turn reached its terminal frame.

    Raised by the stream parser instead of silently dropping (or fabricating)
    a tool call whose argument fragments never finished arriving. The caller
    decides whether to retry the turn.

    Attributes:
        open_tool_ids: Tool blocks that were opened but never closed
        partial_text: Prose received before the feed stopped
        cause: Upstream exception that interrupted the feed, if any
    """

    def __init__(
        self,
        message: str,
        open_tool_ids: list[str] | None = None,
        partial_text: str = "",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.open_tool_ids = list(open_tool_ids or [])
        self.partial_text = partial_text
        self.cause = cause
