"""Command implementations registered by ``statevault.cli.app``."""
