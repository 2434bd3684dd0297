# chat_relay/core/prompts.py

DEFAULT_SYSTEM_PROMPT = "You are a helpful, friendly assistant. Provide concise and accurate responses."
