"""Tests for argument validation against the catalog."""

import pytest

from voice_inbox.orchestrator.catalog import (
    ParamSpec,
    ParamType,
    ToolDefinition,
    ToolName,
    get_tool,
    list_tools,
)
from voice_inbox.orchestrator.errors import ValidationError
from voice_inbox.orchestrator.validation import validate_arguments


def _tool(name: str) -> ToolDefinition:
    tool = get_tool(name)
    assert tool is not None
    return tool


class TestRequired:
    def test_missing_to_names_the_parameter(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(_tool("send_email"), {"subject": "hi", "body": "there"})
        assert exc_info.value.param == "to"
        assert "'to'" in str(exc_info.value)

    def test_blank_required_string_counts_as_missing(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(_tool("get_email_details"), {"emailId": "   "})
        assert exc_info.value.param == "emailId"

    def test_null_required_counts_as_missing(self) -> None:
        with pytest.raises(ValidationError):
            validate_arguments(_tool("delete_event"), {"eventId": None})

    def test_every_advertised_required_param_is_enforced(self) -> None:
        for tool in list_tools():
            for name in tool.required:
                args = {p: "x" for p in tool.required if p != name}
                with pytest.raises(ValidationError) as exc_info:
                    validate_arguments(tool, args)
                assert exc_info.value.param == name


class TestTypes:
    def test_string_where_number_expected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(_tool("list_emails"), {"maxResults": "five"})
        assert exc_info.value.param == "maxResults"

    def test_bool_is_not_a_number(self) -> None:
        with pytest.raises(ValidationError):
            validate_arguments(_tool("list_emails"), {"maxResults": True})

    def test_integral_float_becomes_int(self) -> None:
        args = validate_arguments(_tool("list_emails"), {"maxResults": 5.0})
        assert args["maxResults"] == 5
        assert isinstance(args["maxResults"], int)

    def test_string_where_boolean_expected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(_tool("mark_email_read"), {"emailId": "m1", "isRead": "yes"})
        assert exc_info.value.param == "isRead"

    def test_cc_must_be_a_list_of_strings(self) -> None:
        base = {"to": "a@x.com", "subject": "s", "body": "b"}
        with pytest.raises(ValidationError):
            validate_arguments(_tool("send_email"), {**base, "cc": "b@x.com"})
        with pytest.raises(ValidationError):
            validate_arguments(_tool("send_email"), {**base, "cc": ["b@x.com", 3]})

    def test_non_object_arguments(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(_tool("list_emails"), ["maxResults", 5])
        assert exc_info.value.param == "arguments"


class TestBounds:
    @pytest.mark.parametrize(
        "tool_name, limit", [("list_emails", 100), ("list_events", 250), ("search_events", 250)]
    )
    def test_max_results_ceiling(self, tool_name: str, limit: int) -> None:
        base = {"query": "standup"} if tool_name == "search_events" else {}
        args = validate_arguments(_tool(tool_name), {**base, "maxResults": limit})
        assert args["maxResults"] == limit
        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(_tool(tool_name), {**base, "maxResults": limit + 1})
        assert exc_info.value.param == "maxResults"
        assert f"at most {limit}" in str(exc_info.value)

    def test_huge_count_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_arguments(_tool("list_emails"), {"maxResults": 10**9})


# A definition outside the catalog, for the enum and integer branches.
_PRIORITY_TOOL = ToolDefinition(
    ToolName.LIST_EMAILS,
    "List emails by priority",
    (
        ParamSpec("priority", ParamType.STRING, "Priority", enum=("low", "high")),
        ParamSpec("page", ParamType.INTEGER, "Page number"),
    ),
)


class TestEnumAndInteger:
    def test_enum_value_accepted(self) -> None:
        assert validate_arguments(_PRIORITY_TOOL, {"priority": "high"}) == {"priority": "high"}

    def test_value_outside_enum_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(_PRIORITY_TOOL, {"priority": "urgent"})
        assert exc_info.value.param == "priority"
        assert "must be one of 'low', 'high'" in str(exc_info.value)

    def test_integral_float_accepted_as_integer(self) -> None:
        args = validate_arguments(_PRIORITY_TOOL, {"page": 5.0})
        assert args["page"] == 5
        assert isinstance(args["page"], int)

    def test_fractional_value_is_not_an_integer(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(_PRIORITY_TOOL, {"page": 5.5})
        assert exc_info.value.param == "page"
        assert "expected an integer" in str(exc_info.value)

    def test_enum_is_advertised(self) -> None:
        schema = _PRIORITY_TOOL.input_schema()["properties"]["priority"]
        assert schema["enum"] == ["low", "high"]


class TestNormalisation:
    def test_defaults_applied(self) -> None:
        assert validate_arguments(_tool("list_emails"), {}) == {"maxResults": 20}
        assert validate_arguments(_tool("mark_email_read"), {"emailId": "m1"}) == {
            "emailId": "m1",
            "isRead": True,
        }

    def test_none_arguments_treated_as_empty(self) -> None:
        assert validate_arguments(_tool("get_user_profile"), None) == {}

    def test_supplied_value_overrides_default(self) -> None:
        args = validate_arguments(_tool("mark_email_read"), {"emailId": "m1", "isRead": False})
        assert args["isRead"] is False

    def test_optional_without_default_is_omitted(self) -> None:
        args = validate_arguments(_tool("list_emails"), {"maxResults": 3})
        assert "query" not in args

    def test_unknown_parameter_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(_tool("list_emails"), {"maxResults": 3, "folder": "spam"})
        assert exc_info.value.param == "folder"

    def test_input_is_not_mutated(self) -> None:
        raw = {"emailId": "m1"}
        validate_arguments(_tool("mark_email_read"), raw)
        assert raw == {"emailId": "m1"}
