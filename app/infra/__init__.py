"""Infrastructure modules for the records core.

This package contains low-level runtime concerns:
- Env-driven runtime settings
- PHI-safe logging helpers
- Concurrency and retry controls for outbound LLM calls
"""
