"""HTTP and WebSocket API for terminogrid.

Serves the container lifecycle routes, the interactive terminal
WebSocket and the static dashboard.
"""
