"""Domain layer (pure logic).

- Keep bonus rules, stock accounting and ranking adjustments here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no Redis.
- Prefer deterministic functions (time is passed in as an argument).
"""
