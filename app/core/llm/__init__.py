"""LLM integration layer.

This package is intentionally small:
- No prompt/output logging (user data).
- Configurable via environment variables.
- Treated as a stateless upstream dependency by callers.
"""

