"""HTTP and WebSocket transport for the assessment server."""
