"""Tests for the storage key layout."""

from __future__ import annotations

from statevault.core.keys import KeyLayout


class TestKeyLayout:
    def test_default_layout(self):
        keys = KeyLayout()
        assert keys.schematic("Door") == "Schematics/Door"
        assert keys.machine_schematic("h4sh") == "MachineSchematics/h4sh"
        assert keys.machine("m1") == "Machines/m1"
        assert keys.namespace == ""

    def test_namespaced_layout(self):
        keys = KeyLayout("REstate")
        assert keys.schematic("Door") == "REstate/Schematics/Door"
        assert keys.machine_schematic("h4sh") == "REstate/MachineSchematics/h4sh"
        assert keys.machine("m1") == "REstate/Machines/m1"
        assert keys.namespace == "REstate"

    def test_namespace_slashes_trimmed(self):
        assert KeyLayout("/tenant-a/").machine("m1") == "tenant-a/Machines/m1"
        assert KeyLayout("/").machine("m1") == "Machines/m1"
