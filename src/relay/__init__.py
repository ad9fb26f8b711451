"""Bidirectional relay between a caller-facing socket and the Azure OpenAI realtime API.

A session owns two connections. Messages from the caller are rewritten by the
to-server rules before they reach the model; messages from the model are
rewritten by the to-client rules, and function calls are executed locally with
their results injected back into the conversation.
"""
