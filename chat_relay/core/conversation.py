# chat_relay/core/conversation.py

from typing import List
from chat_relay.models.chat_models import ChatMessage

def ensure_system_message(messages: List[ChatMessage], default_prompt: str) -> List[ChatMessage]:
    """Returns the conversation with a system message, prepending the default one if none exists."""
    if any(message.role == "system" for message in messages):
        return messages
    return [ChatMessage(role="system", content=default_prompt), *messages]
