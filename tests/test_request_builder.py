import base64
import logging

import pytest

from errors import ConfigurationError, UploadValidationError
from operation_extractor import extract_tools
from request_builder import (
    BodyKind,
    RequestBuilder,
    decode_data_url,
    read_upload_payload,
    substitute_path,
    to_wire_string,
)
from tool_catalog import ToolDefinition

BASE = "https://api.example.com/v1"


def _builder(**headers):
    return RequestBuilder(BASE, {"Content-Type": "application/json", **headers})


def _get_tool(**kwargs):
    return ToolDefinition(name="search", method="GET", path_template="/search", **kwargs)


def _post_tool(**kwargs):
    return ToolDefinition(name="create", method="POST", path_template="/people", **kwargs)


def test_wire_string_coercion():
    assert to_wire_string("abc") == "abc"
    assert to_wire_string('"quoted"') == '"quoted"'
    assert to_wire_string(5) == "5"
    assert to_wire_string(2.5) == "2.5"
    assert to_wire_string(True) == "true"
    assert to_wire_string(None) == "null"
    assert to_wire_string([1, 2]) == "[1,2]"
    assert to_wire_string({"a": 1}) == '{"a":1}'
    # only one quote is stripped from each end
    assert to_wire_string(['x']) == '["x"]'


def test_end_to_end_get_plan(users_description):
    tool = extract_tools(users_description)[0]
    plan = RequestBuilder("https://api.example.com/v1").build(tool, {"id": "42", "limit": 5})
    assert plan.method == "GET"
    assert plan.url == "https://api.example.com/v1/users/42"
    assert plan.query == [("limit", "5")]
    assert plan.full_url == "https://api.example.com/v1/users/42?limit=5"
    assert plan.body_kind is BodyKind.NONE


def test_query_omits_null_and_reserved_keys():
    plan = _builder().build(_get_tool(), {"a": "x", "b": None, "_internal": "y"})
    assert plan.query == [("a", "x")]


def test_delete_uses_query_string():
    tool = ToolDefinition(name="rm", method="DELETE", path_template="/items/{id}")
    plan = _builder().build(tool, {"id": 7, "force": True})
    assert plan.url == BASE + "/items/7"
    assert plan.query == [("force", "true")]


def test_path_values_are_rendered_and_encoded():
    path, consumed = substitute_path("/a/{x}/b/{y}", {"x": "hello world", "y": 3, "z": 1})
    assert path == "/a/hello%20world/b/3"
    assert consumed == ["x", "y"]

    path, _ = substitute_path("/files/{name}", {"name": "a/b"})
    assert path == "/files/a%2Fb"


def test_unfilled_placeholder_is_a_configuration_error():
    tool = ToolDefinition(name="get", method="GET", path_template="/users/{id}")
    with pytest.raises(ConfigurationError, match="id"):
        _builder().build(tool, {})


def test_bad_base_url_and_method_are_configuration_errors():
    with pytest.raises(ConfigurationError):
        RequestBuilder("not a url").build(_get_tool(), {})
    with pytest.raises(ConfigurationError, match="Invalid HTTP method"):
        _builder().build(ToolDefinition(name="t", method="TRACE", path_template="/"), {})


def test_json_body_strips_reserved_keys():
    plan = _builder().build(_post_tool(body_media_type="application/json"), {"name": "Ada", "_file_upload": "aGk="})
    assert plan.body_kind is BodyKind.JSON
    assert plan.json_body == {"name": "Ada"}
    assert plan.headers["Content-Type"] == "application/json"


def test_json_body_excludes_path_arguments():
    tool = ToolDefinition(name="update", method="PUT", path_template="/people/{id}")
    plan = _builder().build(tool, {"id": "9", "name": "Grace"})
    assert plan.url == BASE + "/people/9"
    assert plan.json_body == {"name": "Grace"}


def test_body_property_is_unwrapped(crud_description):
    tool = next(t for t in extract_tools(crud_description) if t.name == "createUser")
    plan = RequestBuilder("https://api.test.com").build(
        tool, {"X-Tenant": "acme", "body": {"name": "Ada", "email": "ada@example.com"}}
    )
    assert plan.json_body == {"name": "Ada", "email": "ada@example.com"}
    assert plan.headers["X-Tenant"] == "acme"


def test_declared_query_parameters_on_post_go_to_query_string():
    tool = _post_tool(parameter_locations={"dryRun": "query"})
    plan = _builder().build(tool, {"dryRun": False, "name": "Ada"})
    assert plan.query == [("dryRun", "false")]
    assert plan.json_body == {"name": "Ada"}


def test_header_parameters_become_headers_on_get():
    tool = _get_tool(parameter_locations={"X-Trace": "header", "q": "query"})
    plan = _builder(Authorization="Bearer k").build(tool, {"X-Trace": 12, "q": "cats"})
    assert plan.headers["X-Trace"] == "12"
    assert plan.headers["Authorization"] == "Bearer k"
    assert plan.query == [("q", "cats")]


def test_data_url_upload_builds_multipart():
    plan = _builder().build(_post_tool(), {"_file_upload": "data:text/plain;base64,aGVsbG8=", "title": "greeting", "n": 2, "skip": None})
    assert plan.body_kind is BodyKind.MULTIPART
    assert plan.upload.data == b"hello"
    assert plan.upload.field_name == "file"
    assert plan.upload.filename == "upload"
    assert plan.upload.content_type == "application/octet-stream"
    assert plan.form_fields == [("title", "greeting"), ("n", "2")]
    assert "Content-Type" not in plan.headers


def test_upload_is_honoured_for_multipart_tools(crud_description):
    tool = next(t for t in extract_tools(crud_description) if t.name == "uploadFile")
    plan = RequestBuilder("https://api.test.com").build(tool, {"_file_upload": base64.b64encode(b"raw").decode()})
    assert plan.body_kind is BodyKind.MULTIPART
    assert plan.upload.data == b"raw"


def test_data_url_without_base64_flag_is_percent_decoded():
    assert decode_data_url("data:text/plain,hello%20there") == b"hello there"


def test_data_url_without_comma_is_rejected():
    with pytest.raises(UploadValidationError, match="data URL"):
        decode_data_url("data:text/plain;base64")


def test_upload_reads_existing_local_file(tmp_path):
    path = tmp_path / "doc.bin"
    path.write_bytes(b"\x00\x01binary")
    assert read_upload_payload(str(path)) == b"\x00\x01binary"


def test_upload_falls_back_to_base64():
    assert read_upload_payload(base64.b64encode(b"payload").decode()) == b"payload"


@pytest.mark.parametrize("value", ["not base64 at all!", "data:;base64,@@@", 123])
def test_malformed_upload_is_a_validation_error(value):
    with pytest.raises(UploadValidationError):
        read_upload_payload(value)


def test_default_headers_are_copied_per_plan():
    builder = _builder(**{"API-Version": "2025-05-20"})
    first = builder.build(_get_tool(parameter_locations={"X-A": "header"}), {"X-A": "1"})
    second = builder.build(_get_tool(), {})
    assert first.headers["X-A"] == "1"
    assert "X-A" not in second.headers
    assert second.headers["API-Version"] == "2025-05-20"


def test_arguments_beside_body_are_dropped_with_warning(crud_description, caplog):
    tool = next(t for t in extract_tools(crud_description) if t.name == "createUser")
    with caplog.at_level(logging.WARNING, logger="request_builder"):
        plan = RequestBuilder("https://api.test.com").build(
            tool, {"X-Tenant": "acme", "body": {"name": "Ada"}, "extra": 1, "notes": "x"}
        )
    assert plan.json_body == {"name": "Ada"}
    assert "ignoring arguments outside 'body': extra, notes" in caplog.text
