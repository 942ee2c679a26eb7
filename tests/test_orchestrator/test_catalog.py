"""Tests for the tool catalog."""

import pytest

from voice_inbox.orchestrator.catalog import (
    CATALOG_VERSION,
    ParamType,
    ToolName,
    get_tool,
    list_tools,
)


class TestListTools:
    def test_every_tool_name_has_exactly_one_definition(self) -> None:
        names = [t.name for t in list_tools()]
        assert sorted(names) == sorted(ToolName)
        assert len(names) == len(set(names))

    def test_order_is_stable(self) -> None:
        assert list_tools() == list_tools()
        assert list_tools()[0].name is ToolName.LIST_EMAILS

    def test_version_is_set(self) -> None:
        assert CATALOG_VERSION


class TestGetTool:
    def test_known_name(self) -> None:
        tool = get_tool("send_email")
        assert tool is not None
        assert tool.name is ToolName.SEND_EMAIL

    def test_unknown_name(self) -> None:
        assert get_tool("format_disk") is None


class TestSchemas:
    def test_send_email_required_fields(self) -> None:
        tool = get_tool("send_email")
        assert tool is not None
        assert tool.required == ["to", "subject", "body"]

    def test_recipient_fields_are_flagged(self) -> None:
        flagged = {
            (t.name.value, p.name) for t in list_tools() for p in t.params if p.recipient
        }
        assert flagged == {
            ("send_email", "to"),
            ("send_email", "cc"),
            ("create_event", "attendees"),
            ("update_event", "attendees"),
        }

    @pytest.mark.parametrize(
        "tool_name, param, default",
        [
            ("list_emails", "maxResults", 20),
            ("list_events", "maxResults", 10),
            ("search_events", "maxResults", 25),
            ("mark_email_read", "isRead", True),
            ("create_event", "create_meet_link", False),
        ],
    )
    def test_declared_defaults(self, tool_name: str, param: str, default: object) -> None:
        tool = get_tool(tool_name)
        assert tool is not None
        spec = tool.param(param)
        assert spec is not None
        assert spec.default == default

    def test_input_schema_shape(self) -> None:
        tool = get_tool("send_email")
        assert tool is not None
        schema = tool.input_schema()
        assert schema["type"] == "object"
        assert schema["required"] == ["to", "subject", "body"]
        assert schema["properties"]["cc"] == {
            "type": "array",
            "description": "Email addresses or contact names to CC",
            "items": {"type": "string"},
        }

    def test_tool_without_params_has_no_required_key(self) -> None:
        tool = get_tool("get_user_profile")
        assert tool is not None
        assert tool.input_schema() == {"type": "object", "properties": {}}

    def test_listing_and_realtime_shapes_share_the_schema(self) -> None:
        for tool in list_tools():
            listed = tool.to_dict()
            realtime = tool.to_realtime_function()
            assert listed["name"] == realtime["name"] == tool.name.value
            assert listed["inputSchema"] == realtime["parameters"]
            assert realtime["type"] == "function"

    def test_array_params_declare_item_type(self) -> None:
        for tool in list_tools():
            for spec in tool.params:
                if spec.type is ParamType.ARRAY:
                    assert spec.item_type is ParamType.STRING

    @pytest.mark.parametrize(
        "tool_name, limit", [("list_emails", 100), ("list_events", 250), ("search_events", 250)]
    )
    def test_max_results_advertises_a_ceiling(self, tool_name: str, limit: int) -> None:
        tool = get_tool(tool_name)
        assert tool is not None
        assert tool.input_schema()["properties"]["maxResults"]["maximum"] == limit
