"""
Toolkit Tests
-------------
End-to-end tests through the Toolkit facade.

Tests cover:
- Group activation scenario (search / lookup)
- Batch cardinality with a failing request
- Preset parameters (caller wins, hidden from schemas)
- Call / session / default context shadowing
- Deletion guard, copies and YAML declarations
"""

from dataclasses import dataclass
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import (
    DuplicateCallError, GroupExistsError, GroupNotFoundError,
    SchemaConflictError, ToolNotFoundError, ERROR_PREFIX,
)
from infra.config import ToolkitConfig
from tools.context import ExecutionContext
from tools.meta import META_TOOL_NAME
from tools.models import ToolCall
from tools.tool import FunctionTool, SchemaOnlyTool
from tools.toolkit import Toolkit


@dataclass
class SessionInfo:
    value: str


@dataclass
class Environment:
    value: str


class TestGroupScenario:
    """Deactivated groups block their tools until reactivated."""

    @pytest.mark.asyncio
    async def test_search_lookup_activation(self, toolkit, search_tools):
        _, lookup = search_tools
        toolkit.create_group("search", "Search tools", active=False)
        toolkit.register(lookup, group="search")

        call = ToolCall(call_id="1", name="lookup", input={"query": "python"})
        blocked = await toolkit.call_tool(call)
        assert blocked.is_error
        assert "unauthorized" in blocked.text.lower()

        toolkit.update_groups(["search"], active=True)
        allowed = await toolkit.call_tool(call)
        assert not allowed.is_error
        assert allowed.text == "lookup:python"

    def test_register_into_unknown_group_raises(self, toolkit, echo_tool):
        with pytest.raises(GroupNotFoundError):
            toolkit.register(echo_tool, group="ghost")
        assert "echo" not in toolkit

    def test_duplicate_group_raises(self, toolkit):
        toolkit.create_group("search")
        with pytest.raises(GroupExistsError):
            toolkit.create_group("search")

    def test_activate_unknown_group_raises(self, toolkit):
        with pytest.raises(GroupNotFoundError):
            toolkit.update_groups(["ghost"], active=True)

    def test_remove_groups_cascades(self, toolkit, search_tools, echo_tool):
        search, lookup = search_tools
        toolkit.create_group("search")
        toolkit.register(search, group="search")
        toolkit.register(lookup, group="search")
        toolkit.register(echo_tool)

        removed = toolkit.remove_groups(["search"])
        assert removed == {"search", "lookup"}
        assert toolkit.tool_names() == ["echo"]

    @pytest.mark.asyncio
    async def test_reregister_keeps_earlier_groups(self, toolkit, echo_tool):
        toolkit.create_group("group_a", active=False)
        toolkit.create_group("group_b", active=False)
        toolkit.register(echo_tool, group="group_a")
        toolkit.register(echo_tool, group="group_b")
        toolkit.update_groups(["group_a"], True)

        assert toolkit.groups.groups_of("echo") == ["group_a", "group_b"]
        result = await toolkit.call_tool(ToolCall(call_id="1", name="echo", input={"text": "hi"}))
        assert not result.is_error
        assert result.text == "hi"

    def test_register_rolls_back_when_group_vanishes(self, toolkit, echo_tool, monkeypatch):
        toolkit.create_group("gated", active=False)
        register_entry = toolkit.registry.register

        def register_then_drop_group(entry):
            register_entry(entry)
            toolkit.groups.remove_groups(["gated"])

        monkeypatch.setattr(toolkit.registry, "register", register_then_drop_group)
        with pytest.raises(GroupNotFoundError):
            toolkit.register(echo_tool, group="gated")
        assert "echo" not in toolkit

    def test_register_rollback_restores_previous_entry(self, toolkit, echo_tool, monkeypatch):
        toolkit.register(echo_tool, preset_parameters={"text": "old"})
        toolkit.create_group("gated", active=False)
        register_entry = toolkit.registry.register

        def register_then_drop_group(entry):
            register_entry(entry)
            if entry.group == "gated":
                toolkit.groups.remove_groups(["gated"])

        monkeypatch.setattr(toolkit.registry, "register", register_then_drop_group)
        with pytest.raises(GroupNotFoundError):
            toolkit.register(echo_tool, group="gated")
        entry = toolkit.get_registered("echo")
        assert entry.group is None
        assert entry.preset_parameters == {"text": "old"}


class TestBatchScenario:
    """A failing request never affects its neighbours."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("parallel", [False, True])
    async def test_three_requests_second_fails(self, toolkit, echo_tool, failing_tool, parallel):
        toolkit.register(echo_tool)
        toolkit.register(failing_tool)

        results = await toolkit.call_tools([
            {"call_id": "1", "name": "echo", "input": {"text": "first"}},
            {"call_id": "2", "name": "explode", "input": {}},
            {"call_id": "3", "name": "echo", "input": {"text": "third"}},
        ], parallel=parallel)

        assert len(results) == 3
        assert [r.call_id for r in results] == ["1", "2", "3"]
        assert not results[0].is_error
        assert results[1].is_error
        assert results[1].text == "Error: Tool execution failed: boom"
        assert not results[2].is_error

    @pytest.mark.asyncio
    async def test_uniform_error_prefix(self, toolkit, echo_tool, failing_tool):
        toolkit.create_group("off", active=False)
        toolkit.register(echo_tool)
        toolkit.register(failing_tool, group="off")

        results = await toolkit.call_tools([
            ToolCall(call_id="unknown", name="missing", input={}),
            ToolCall(call_id="unauthorized", name="explode", input={}),
            ToolCall(call_id="invalid", name="echo", input={"text": 5}),
        ])
        assert all(r.is_error for r in results)
        assert all(r.text.startswith(ERROR_PREFIX) for r in results)

    @pytest.mark.asyncio
    async def test_duplicate_ids_raise(self, toolkit, echo_tool):
        toolkit.register(echo_tool)
        with pytest.raises(DuplicateCallError):
            await toolkit.call_tools([
                ToolCall(call_id="x", name="echo", input={"text": "a"}),
                ToolCall(call_id="x", name="echo", input={"text": "b"}),
            ])


class TestPresets:
    """Preset parameters are injected, overridable, and hidden."""

    @pytest.fixture
    def weather(self):
        return FunctionTool(
            name="weather",
            description="Weather for a city",
            handler=lambda args: f"{args['city']}:{args['units']}",
            parameters={
                "type": "object",
                "properties": {
                    "city": {"type": "string"},
                    "units": {"type": "string", "enum": ["metric", "imperial"]},
                },
                "required": ["city", "units"],
            },
        )

    @pytest.mark.asyncio
    async def test_preset_injected(self, toolkit, weather):
        toolkit.register(weather, preset_parameters={"units": "metric"})
        result = await toolkit.call_tool(ToolCall(call_id="1", name="weather", input={"city": "Oslo"}))
        assert result.text == "Oslo:metric"

    @pytest.mark.asyncio
    async def test_caller_wins(self, toolkit, weather):
        toolkit.register(weather, preset_parameters={"units": "metric"})
        result = await toolkit.call_tool(
            ToolCall(call_id="1", name="weather", input={"city": "Oslo", "units": "imperial"})
        )
        assert result.text == "Oslo:imperial"

    def test_preset_hidden_from_schemas(self, toolkit, weather):
        toolkit.register(weather, preset_parameters={"units": "metric"})
        [schema] = toolkit.tool_schemas()

        assert schema["name"] == "weather"
        assert list(schema["parameters"]["properties"]) == ["city"]
        assert schema["parameters"]["required"] == ["city"]
        # The composed schema keeps it
        assert "units" in toolkit.get_composed_schema("weather")["properties"]

    @pytest.mark.asyncio
    async def test_update_preset_parameters(self, toolkit, weather):
        toolkit.register(weather, preset_parameters={"units": "metric"})
        toolkit.update_preset_parameters("weather", {"units": "imperial"})

        result = await toolkit.call_tool(ToolCall(call_id="1", name="weather", input={"city": "Oslo"}))
        assert result.text == "Oslo:imperial"

    def test_update_unknown_tool_raises(self, toolkit):
        with pytest.raises(ToolNotFoundError):
            toolkit.update_preset_parameters("missing", {})


class TestSchemas:
    """Extensions and advertisement."""

    def test_extension_conflict_raises_at_registration(self, toolkit, echo_tool):
        with pytest.raises(SchemaConflictError):
            toolkit.register(echo_tool, extension={"properties": {"text": {"type": "string"}}})
        assert "echo" not in toolkit

    @pytest.mark.asyncio
    async def test_extension_validated(self, toolkit, echo_tool):
        toolkit.register(
            echo_tool,
            extension={"properties": {"reason": {"type": "string"}}, "required": ["reason"]},
        )
        result = await toolkit.call_tool(ToolCall(call_id="1", name="echo", input={"text": "hi"}))
        assert result.is_error
        assert "reason" in result.text

    def test_tool_schemas_only_callable(self, toolkit, search_tools, echo_tool):
        search, _ = search_tools
        toolkit.create_group("search", active=False)
        toolkit.register(search, group="search")
        toolkit.register(echo_tool)

        assert [s["name"] for s in toolkit.tool_schemas()] == ["echo"]

    def test_get_composed_schema_unknown(self, toolkit):
        assert toolkit.get_composed_schema("missing") is None


class TestContextScenario:
    """call > session > default."""

    @pytest.mark.asyncio
    async def test_context_shadowing(self):
        toolkit = Toolkit(default_context=ExecutionContext.of(Environment("dev")))

        def handler(args, ctx):
            return f"{ctx.get(SessionInfo).value}/{ctx.get(Environment).value}"

        toolkit.register(FunctionTool(name="whoami", description="", handler=handler, pass_context=True))
        result = await toolkit.call_tool(
            ToolCall(call_id="1", name="whoami", input={}),
            context=ExecutionContext.of(SessionInfo("X")),
            session_context=ExecutionContext.of(Environment("prod")),
        )
        assert result.text == "X/prod"


class TestDeletionGuard:
    """allow_tool_deletion=False makes removals no-ops."""

    def test_removals_are_noops(self, echo_tool):
        toolkit = Toolkit(ToolkitConfig(allow_tool_deletion=False))
        toolkit.create_group("g")
        toolkit.register(echo_tool, group="g")

        assert toolkit.remove_tool("echo") is False
        assert toolkit.remove_groups(["g"]) == set()
        toolkit.update_groups(["g"], active=False)

        assert "echo" in toolkit
        assert toolkit.active_groups() == ["g"]

    def test_remove_tool_drops_group_membership(self, toolkit, echo_tool):
        toolkit.create_group("g")
        toolkit.register(echo_tool, group="g")

        assert toolkit.remove_tool("echo")
        assert toolkit.get_group("g").tools == set()


class TestCopyAndDeclarations:
    """copy() and load_declarations()."""

    def test_copy_is_independent(self, toolkit, echo_tool):
        toolkit.create_group("g", active=False)
        toolkit.register(echo_tool, group="g", preset_parameters={"text": "hi"})

        clone = toolkit.copy()
        clone.update_groups(["g"], active=True)
        clone.update_preset_parameters("echo", {"text": "bye"})

        assert toolkit.active_groups() == []
        assert toolkit.get_registered("echo").preset_parameters == {"text": "hi"}
        assert clone.tool_names() == ["echo"]

    @pytest.mark.asyncio
    async def test_copy_rebinds_meta_tool(self, toolkit):
        toolkit.create_group("g", active=False)
        toolkit.register_meta_tool()
        clone = toolkit.copy()

        await clone.call_tool(ToolCall(call_id="1", name=META_TOOL_NAME, input={"to_activate": ["g"]}))
        assert clone.active_groups() == ["g"]
        assert toolkit.active_groups() == []

    def test_load_declarations(self, toolkit, tmp_path):
        path = tmp_path / "tools.yaml"
        path.write_text(
            "groups:\n"
            "  - name: browser\n"
            "    description: Browser automation\n"
            "    active: false\n"
            "tools:\n"
            "  - name: click\n"
            "    description: Click an element\n"
            "    group: browser\n"
            "    parameters:\n"
            "      type: object\n"
            "      properties:\n"
            "        selector: {type: string}\n"
            "      required: [selector]\n"
            "  - name: orphan\n"
            "    group: missing\n"
        )

        assert toolkit.load_declarations(path) == 1
        assert toolkit.is_external_tool("click")
        assert not toolkit.is_external_tool("orphan")
        assert toolkit.get_group("browser").tools == {"click"}
        assert toolkit.active_groups() == []

    def test_is_external_tool(self, toolkit, echo_tool):
        toolkit.register(echo_tool)
        toolkit.register(SchemaOnlyTool(name="ext", description="External"))
        assert toolkit.is_external_tool("ext")
        assert not toolkit.is_external_tool("echo")
        assert not toolkit.is_external_tool("missing")
