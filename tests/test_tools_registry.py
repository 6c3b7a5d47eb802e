import json

from sqlapigate.tools.models import HttpCallParams, SqlExecuteParams, SqlQueryParams
from sqlapigate.tools.registry import ToolRegistry, default_registry


def test_registry_has_exactly_three_tools_in_fixed_order():
    assert default_registry.tool_names == ["http.call", "sql.query", "sql.execute"]
    assert len(default_registry) == 3
    assert "sql.query" in default_registry
    assert "sql.drop" not in default_registry
    assert default_registry.get("nope") is None


def test_tool_param_models():
    assert default_registry.get("http.call").params_model is HttpCallParams
    assert default_registry.get("sql.query").params_model is SqlQueryParams
    assert default_registry.get("sql.execute").params_model is SqlExecuteParams


def test_definitions_shape_and_required_fields():
    defs = {d["name"]: d for d in default_registry.get_definitions()}
    assert set(defs) == {"http.call", "sql.query", "sql.execute"}
    for definition in defs.values():
        assert set(definition) == {"name", "description", "inputSchema"}
        assert definition["inputSchema"]["type"] == "object"
    assert defs["http.call"]["inputSchema"]["required"] == ["url"]
    assert defs["sql.query"]["inputSchema"]["required"] == ["sql"]
    assert defs["sql.execute"]["inputSchema"]["required"] == ["sql"]


def test_definitions_are_byte_identical_across_calls_and_not_shared():
    first = default_registry.get_definitions()
    first[0]["inputSchema"]["properties"].clear()
    second = default_registry.get_definitions()
    third = ToolRegistry().get_definitions()
    assert json.dumps(second) == json.dumps(third)
    assert second[0]["inputSchema"]["properties"]
    assert not hasattr(default_registry, "register")
