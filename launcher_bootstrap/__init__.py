"""Launcher Bootstrap - migrate launcher state and start the launcher process.

This package moves a game launcher's state from its legacy SQLite database
into a key-value store (once per installation), then restores provider
credentials, resumes queued downloads and runs the main process loop.

Main entry points:
    - CLI: python -m launcher_bootstrap start --config config.yaml
    - API: from launcher_bootstrap.core.startup import load_state
"""

__version__ = "1.0.0"
__license__ = "AGPL-3.0"
