"""
Tests for the macro registry.

Tests cover:
- Key validation on register/unregister
- Overwrite and missing-key warnings
- Value coercion and sanitization
- Environment population precedence
"""

import logging
from datetime import date, datetime

import pytest
from persona_macros.macros import (
    DynamicMacro,
    InvalidMacroKeyError,
    MacroRegistry,
    StaticMacro,
    as_macro_value,
    sanitize_value,
)


class TestRegister:
    """Test suite for MacroRegistry.register."""

    def test_register_string_value(self):
        """Test a string value is stored as a static macro."""
        registry = MacroRegistry()
        registry.register("weather", "sunny")

        assert registry.get("weather") == StaticMacro("sunny")
        assert "weather" in registry
        assert len(registry) == 1

    def test_register_function_value(self):
        """Test a callable is stored as a dynamic macro."""
        registry = MacroRegistry()
        registry.register("mood", lambda nonce: "cheerful")

        macro = registry.get("mood")
        assert isinstance(macro, DynamicMacro)
        assert macro.invoke("abc") == "cheerful"

    def test_key_is_trimmed(self):
        """Test surrounding whitespace is removed from the key."""
        registry = MacroRegistry()
        registry.register("  padded  ", "x")

        assert registry.names() == ["padded"]

    @pytest.mark.parametrize("key", ["", "   ", "{{name}}", "{{name", "name}}", "a{{b"])
    def test_invalid_keys_rejected(self, key):
        """Test empty keys and keys with braces raise."""
        registry = MacroRegistry()

        with pytest.raises(InvalidMacroKeyError):
            registry.register(key, "value")

    @pytest.mark.parametrize("key", [None, 42, ["name"]])
    def test_non_string_keys_rejected(self, key):
        """Test non-string keys raise."""
        registry = MacroRegistry()

        with pytest.raises(InvalidMacroKeyError):
            registry.register(key, "value")

    def test_invalid_key_error_is_value_error(self):
        """Test callers catching ValueError still see key errors."""
        registry = MacroRegistry()

        with pytest.raises(ValueError):
            registry.register("", "value")

    def test_overwrite_warns(self, caplog):
        """Test re-registering overwrites and logs a warning."""
        registry = MacroRegistry()
        registry.register("weather", "sunny")

        with caplog.at_level(logging.WARNING):
            registry.register("weather", "rainy")

        assert registry.get("weather") == StaticMacro("rainy")
        assert "already registered" in caplog.text

    def test_non_string_value_converted(self, caplog):
        """Test other value types are sanitized into strings with a warning."""
        registry = MacroRegistry()

        with caplog.at_level(logging.WARNING):
            registry.register("count", 5)
            registry.register("stats", {"hp": 10})

        assert registry.get("count") == StaticMacro("5")
        assert registry.get("stats") == StaticMacro('{"hp":10}')
        assert "will be converted to a string" in caplog.text


class TestUnregister:
    """Test suite for MacroRegistry.unregister."""

    def test_unregister_removes(self):
        """Test a registered macro is removed."""
        registry = MacroRegistry()
        registry.register("weather", "sunny")
        registry.unregister("weather")

        assert "weather" not in registry
        assert len(registry) == 0

    def test_unregister_missing_is_noop(self, caplog):
        """Test removing an unknown key warns and leaves the registry unchanged."""
        registry = MacroRegistry()
        registry.register("weather", "sunny")

        with caplog.at_level(logging.WARNING):
            registry.unregister("unknown")

        assert registry.names() == ["weather"]
        assert "was not registered" in caplog.text

    def test_unregister_trims_key(self):
        """Test the key is trimmed before lookup."""
        registry = MacroRegistry()
        registry.register("weather", "sunny")
        registry.unregister(" weather ")

        assert len(registry) == 0

    @pytest.mark.parametrize("key", ["", "  ", 7])
    def test_unregister_invalid_key(self, key):
        """Test invalid keys raise on unregister too."""
        registry = MacroRegistry()

        with pytest.raises(InvalidMacroKeyError):
            registry.unregister(key)


class TestPopulateEnv:
    """Test suite for MacroRegistry.populate_env."""

    def test_registered_macros_overwrite_env(self):
        """Test registry entries win over same-named env entries."""
        registry = MacroRegistry()
        registry.register("foo", "B")
        env = {"foo": "A", "bar": "kept"}

        registry.populate_env(env)

        assert env["foo"] == StaticMacro("B")
        assert env["bar"] == "kept"

    def test_empty_registry_leaves_env(self):
        """Test an empty registry does not touch the env."""
        registry = MacroRegistry()
        env = {"foo": "A"}

        registry.populate_env(env)

        assert env == {"foo": "A"}

    def test_invalid_env_warns(self, caplog):
        """Test a non-mapping env is rejected with a warning."""
        registry = MacroRegistry()
        registry.register("foo", "B")

        with caplog.at_level(logging.WARNING):
            registry.populate_env(None)
            registry.populate_env(["foo"])

        assert "Env object is not provided" in caplog.text

    def test_clear(self):
        """Test clear removes everything."""
        registry = MacroRegistry()
        registry.register("a", "1")
        registry.register("b", "2")
        registry.clear()

        assert registry.names() == []


class TestSanitizeValue:
    """Test suite for sanitize_value."""

    def test_string_passthrough(self):
        assert sanitize_value("hello") == "hello"

    def test_none_is_empty(self):
        assert sanitize_value(None) == ""

    def test_datetime_is_iso(self):
        assert sanitize_value(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05"
        assert sanitize_value(date(2024, 1, 2)) == "2024-01-02"

    def test_mapping_is_json(self):
        assert sanitize_value({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'
        assert sanitize_value([1, "x"]) == '[1,"x"]'

    def test_function_is_empty_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert sanitize_value(lambda: "x") == ""
        assert "Functions are not supported" in caplog.text

    def test_awaitable_is_empty_with_warning(self, caplog):
        async def pending():
            return "x"

        with caplog.at_level(logging.WARNING):
            assert sanitize_value(pending()) == ""
        assert "Awaitables are not supported" in caplog.text

    def test_other_values_use_str(self):
        assert sanitize_value(42) == "42"
        assert sanitize_value(1.5) == "1.5"
        assert sanitize_value(True) == "true"
        assert sanitize_value(False) == "false"


class TestMacroValues:
    """Test suite for the macro value variants."""

    def test_dynamic_without_argument(self):
        """Test zero-argument functions are called without the nonce."""
        macro = DynamicMacro(lambda: "plain")
        assert macro.invoke("nonce") == "plain"

    def test_dynamic_receives_nonce(self):
        """Test one-argument functions receive the nonce."""
        macro = DynamicMacro(lambda nonce: f"got {nonce}")
        assert macro.invoke("abc") == "got abc"

    def test_as_macro_value(self):
        assert as_macro_value("x") == StaticMacro("x")
        assert as_macro_value(None) == StaticMacro("")
        assert isinstance(as_macro_value(lambda: "x"), DynamicMacro)
        static = StaticMacro("kept")
        assert as_macro_value(static) is static


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
