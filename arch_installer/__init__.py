"""Arch Linux Installer.

Core design goals:
- One step at a time, each isolated in its own process
- Every step ends with an explicit outcome
- Operator cancellation kills the whole step subtree
- A single exit path reports failures and cleans up
- Centralized logging
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
