from pydantic import BaseModel


class ChatMessage(BaseModel):
    role: str  # "system", "user", "assistant", or "tool"
    content: str
    tool_calls: list[dict] | None = None
