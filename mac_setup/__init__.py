"""mac-setup: macOS developer workstation provisioning (Python-first, step-driven).

Core design goals:
- Idempotent steps, safe to re-run after partial failure
- Every step individually toggleable from the command line
- Preview (dry-run) mode that forecasts a real run
- Managed shell fragments instead of line patching
- Centralized logging
"""

__all__ = []
