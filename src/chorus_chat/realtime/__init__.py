"""Realtime transport: connection handles and the WebSocket gateway."""
