"""HTTP and WebSocket API for Chorus Chat."""
