"""Tests for CLI error message formatting."""

from __future__ import annotations

import pytest
from pydantic import BaseModel
from pydantic import ValidationError

from title_editor_client.exceptions import APIConnectionError
from title_editor_client.exceptions import AuthenticationError
from title_editor_client.exceptions import MissingDataError
from title_editor_client.exceptions import NotFoundError
from title_editor_client.exceptions import ReplaceRollbackError
from title_editor_client.utils.error_format import escape_markup
from title_editor_client.utils.error_format import format_error_message
from title_editor_client.utils.error_format import hint_for


class _Timeout(BaseModel):
    timeout: float


class TestFormatErrorMessage:
    def test_message_with_type(self):
        assert format_error_message(NotFoundError("No title 'x'")) == "NotFoundError: No title 'x'"

    def test_message_without_type(self):
        assert format_error_message(NotFoundError("No title 'x'"), include_type=False) == "No title 'x'"

    def test_empty_message_uses_friendly_text(self):
        assert format_error_message(TimeoutError()).startswith("TimeoutError: Request timed out")

    def test_empty_message_without_friendly_text(self):
        assert format_error_message(MissingDataError()) == "MissingDataError: (no additional details)"

    def test_validation_error_is_flattened(self):
        with pytest.raises(ValidationError) as exc_info:
            _Timeout(timeout="soon")
        message = format_error_message(exc_info.value, include_type=False)
        assert message.startswith("timeout: ")
        assert "\n" not in message


class TestHints:
    """The most specific hint wins."""

    def test_auth_hint_before_connection_hint(self):
        assert "TITLE_EDITOR_PASSWORD" in hint_for(AuthenticationError("bad"))

    def test_connection_hint(self):
        assert "config show" in hint_for(APIConnectionError("down"))

    def test_rollback_error_is_a_connection_error(self):
        error = ReplaceRollbackError("lost", original_error=APIConnectionError("x", 500), victim_fields={})
        assert hint_for(error) == hint_for(APIConnectionError("down"))
        assert error.status_code == 500

    def test_no_hint(self):
        assert hint_for(ValueError("x")) is None


class TestEscapeMarkup:
    def test_brackets_are_escaped(self):
        assert escape_markup("[bold]x[/bold]") != "[bold]x[/bold]"

    def test_plain_text_unchanged(self):
        assert escape_markup("Connection refused") == "Connection refused"

    def test_non_strings(self):
        assert escape_markup(None) == "None"
