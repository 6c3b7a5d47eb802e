import json

import pytest

from sqlapigate.api.rpc.lifecycle_methods import try_handle_lifecycle_method
from sqlapigate.api.rpc.tools_methods import extract_tool_arguments, try_handle_tools_method
from sqlapigate.tools.registry import default_registry


def _rpc_error(code: int, message: str, data=None):
    return {"code": code, "message": message, "data": data}


def _recording_call_tool(calls):
    async def _call_tool(name, arguments):
        calls.append((name, arguments))
        return {"rowsAffected": 1}

    return _call_tool


def test_initialize_ignores_params_and_reports_identity():
    ok, payload, error = try_handle_lifecycle_method(method="initialize", server_name="gw", server_version="9.9")
    assert ok is True and error is None
    assert payload == {
        "protocolVersion": "2024-11-05",
        "capabilities": {"tools": {}},
        "serverInfo": {"name": "gw", "version": "9.9"},
    }
    assert try_handle_lifecycle_method(method="tools/list", server_name="gw", server_version="1") is None


def test_extract_tool_arguments_accepts_params_alias():
    assert extract_tool_arguments({"name": "x", "arguments": {"a": 1}}) == {"a": 1}
    assert extract_tool_arguments({"name": "x", "params": {"b": 2}}) == {"b": 2}
    assert extract_tool_arguments({"name": "x", "arguments": {"a": 1}, "params": {"b": 2}}) == {"a": 1}
    assert extract_tool_arguments({"name": "x"}) is None


@pytest.mark.asyncio
async def test_unrelated_method_returns_none():
    result = await try_handle_tools_method(
        method="resources/list",
        params={},
        registry=default_registry,
        call_tool=_recording_call_tool([]),
        rpc_error=_rpc_error,
    )
    assert result is None


@pytest.mark.asyncio
async def test_tools_list():
    ok, payload, _ = await try_handle_tools_method(
        method="tools/list",
        params=None,
        registry=default_registry,
        call_tool=_recording_call_tool([]),
        rpc_error=_rpc_error,
    )
    assert ok is True
    assert [t["name"] for t in payload["tools"]] == ["http.call", "sql.query", "sql.execute"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params,code,message",
    [
        (None, -32602, "Missing params"),
        ({}, -32602, "Missing tool name"),
        ({"name": "   "}, -32602, "Missing tool name"),
        ({"name": 5}, -32602, "Missing tool name"),
        ({"name": "sql.drop"}, -32601, "Unknown tool: sql.drop"),
        ({"name": "sql.query", "arguments": [1, 2]}, -32602, "Invalid sql.query arguments: expected an object"),
    ],
)
async def test_tools_call_rejections_do_not_invoke(params, code, message):
    calls = []
    ok, payload, error = await try_handle_tools_method(
        method="tools/call",
        params=params,
        registry=default_registry,
        call_tool=_recording_call_tool(calls),
        rpc_error=_rpc_error,
    )
    assert ok is False and payload is None
    assert error["code"] == code
    assert error["message"] == message
    assert calls == []


@pytest.mark.asyncio
async def test_tools_call_wraps_result_as_text_content():
    calls = []
    ok, payload, error = await try_handle_tools_method(
        method="tools/call",
        params={"name": "sql.execute", "arguments": {"sql": "UPDATE t SET x = 1"}},
        registry=default_registry,
        call_tool=_recording_call_tool(calls),
        rpc_error=_rpc_error,
    )
    assert ok is True and error is None
    assert calls == [("sql.execute", {"sql": "UPDATE t SET x = 1"})]
    content = payload["content"]
    assert len(content) == 1 and content[0]["type"] == "text"
    assert json.loads(content[0]["text"]) == {"rowsAffected": 1}


@pytest.mark.asyncio
async def test_tools_call_missing_arguments_become_empty_object():
    calls = []
    await try_handle_tools_method(
        method="tools/call",
        params={"name": "sql.query"},
        registry=default_registry,
        call_tool=_recording_call_tool(calls),
        rpc_error=_rpc_error,
    )
    assert calls == [("sql.query", {})]
