"""statevault CLI: Typer-based command-line interface.

Provides the ``statevault`` command with ``schematic`` and ``machine``
command groups operating on the configured store.

All output uses Rich for formatted terminal display.
"""
