"""Tests for conditional form evaluation."""

from __future__ import annotations

from typing import Any
from unittest.mock import Mock

import pytest

from intctl.exceptions import FormDefinitionError, InvalidValueError, MissingValueError
from intctl.fields import Field, FieldKind
from intctl.form import Form
from intctl.integration_fields import get_fields


def _simple_form() -> Form:
    return Form(
        [
            Field("type", "Type", kind=FieldKind.OPTIONS, options=("a", "b")),
            Field("name", "Name", conditions={"type": ["a"]}),
            Field("enabled", "Enabled", kind=FieldKind.BOOLEAN, conditions={"type": "b"}),
            Field(
                "extra",
                "Extra",
                conditions={"type": "b", "enabled": True},
                default="x",
            ),
            Field("note", "Note", required=False),
        ]
    )


class TestFormDefinition:
    """Tests for form construction."""

    def test_condition_on_later_field_rejected(self) -> None:
        """Test that conditions may only reference earlier fields."""
        with pytest.raises(FormDefinitionError, match="not declared before it"):
            Form(
                [
                    Field("token", "Token", conditions={"type": "github"}),
                    Field("type", "Type"),
                ]
            )

    def test_duplicate_keys_rejected(self) -> None:
        """Test that duplicate keys are rejected."""
        with pytest.raises(FormDefinitionError, match="Duplicate field key"):
            Form([Field("a", "A"), Field("a", "A again")])

    def test_from_fields_keeps_order(self) -> None:
        """Test that from_fields keeps the mapping's order."""
        form = Form.from_fields(get_fields())
        assert list(form.fields)[:4] == ["type", "base_url", "username", "token"]

    def test_unknown_option_rejected(self) -> None:
        """Test that values for unknown fields are a definition error."""
        with pytest.raises(FormDefinitionError, match="Unknown form field"):
            _simple_form().resolve_options({"bogus": "1"}, interactive=False)


class TestResolveOptions:
    """Tests for non-interactive resolution."""

    def test_hidden_fields_skipped(self) -> None:
        """Test that fields whose conditions fail are not collected."""
        result = _simple_form().resolve_options({"type": "a", "name": "n"}, interactive=False)
        assert result.ok
        assert result.values == {"type": "a", "name": "n"}

    def test_chained_conditions(self) -> None:
        """Test that a field depending on an earlier conditional field is evaluated."""
        form = _simple_form()
        assert form.resolve_options(
            {"type": "b", "enabled": "true"}, interactive=False
        ).values == {"type": "b", "enabled": True, "extra": "x"}
        assert form.resolve_options(
            {"type": "b", "enabled": "false"}, interactive=False
        ).values == {"type": "b", "enabled": False}

    def test_missing_required_value(self) -> None:
        """Test that a required value without default raises in non-interactive mode."""
        with pytest.raises(MissingValueError, match="--name"):
            _simple_form().resolve_options({"type": "a"}, interactive=False)

    def test_invalid_value_names_option(self) -> None:
        """Test that invalid supplied values name the option."""
        with pytest.raises(InvalidValueError, match="Invalid value for --enabled"):
            _simple_form().resolve_options({"type": "b", "enabled": "maybe"}, interactive=False)

    def test_conflict_for_hidden_field(self) -> None:
        """Test that a value for a hidden field yields a conflict, not an exception."""
        result = _simple_form().resolve_options({"type": "b", "name": "n"}, interactive=False)

        assert not result.ok
        assert result.conflict is not None
        assert result.conflict.field.key == "name"
        assert result.conflict.conditions == {"type": ["a"]}
        assert result.conflict.previous_values == {"type": "b"}

    def test_conflict_snapshot_contains_earlier_values_only(self) -> None:
        """Test that the conflict snapshot holds values collected before the field."""
        result = _simple_form().resolve_options(
            {"type": "b", "enabled": "false", "extra": "y"}, interactive=False
        )
        assert result.conflict is not None
        assert result.conflict.field.key == "extra"
        assert result.conflict.previous_values == {"type": "b", "enabled": False}


class TestInteractive:
    """Tests for prompting through a prompter."""

    def test_prompts_for_missing_values_only(self) -> None:
        """Test that supplied values are not prompted for."""
        prompter = Mock()
        prompter.ask.side_effect = lambda field: {"name": "prompted", "note": None}[field.key]

        result = _simple_form().resolve_options(
            {"type": "a"}, interactive=True, prompter=prompter
        )

        assert result.values == {"type": "a", "name": "prompted"}
        asked = [call.args[0].key for call in prompter.ask.call_args_list]
        assert asked == ["name", "note"]


class TestEditing:
    """Tests for resolution against existing values."""

    def test_only_supplied_values_collected(self) -> None:
        """Test that editing does not fill in defaults or prompt."""
        prompter = Mock()
        result = _simple_form().resolve_options(
            {"enabled": "true"},
            interactive=True,
            prompter=prompter,
            previous={"type": "b", "enabled": False},
        )

        assert result.values == {"enabled": True}
        prompter.ask.assert_not_called()

    def test_conditions_use_existing_values(self) -> None:
        """Test that conditions are evaluated against the existing values."""
        result = _simple_form().resolve_options(
            {"name": "n"}, interactive=False, previous={"type": "b"}
        )
        assert result.conflict is not None
        assert result.conflict.previous_values["type"] == "b"


class TestPayload:
    """Tests for nesting values by value path."""

    def test_nested_values(self) -> None:
        """Test that values with a value path are nested."""
        form = Form.from_fields(get_fields())
        values: dict[str, Any] = {
            "type": "bitbucket",
            "key": "consumer-key",
            "secret": "consumer-secret",
            "repository": "owner/repo",
        }
        assert form.to_payload(values) == {
            "type": "bitbucket",
            "app_credentials": {"key": "consumer-key", "secret": "consumer-secret"},
            "repository": "owner/repo",
        }

    def test_unknown_keys_kept_at_top_level(self) -> None:
        """Test that post-processed keys not in the form are kept."""
        form = _simple_form()
        assert form.to_payload({"type": "a", "other": 1}) == {"type": "a", "other": 1}
