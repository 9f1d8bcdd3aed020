import json
from datetime import datetime, timedelta, timezone

import pytest

from a2akit.schema import (
    TASK_NOT_FOUND_CODE,
    AgentAuthentication,
    AgentCapabilities,
    AgentCard,
    AgentProvider,
    AgentSkill,
    Artifact,
    DataPart,
    FileData,
    FilePart,
    Message,
    PartError,
    Role,
    RPCError,
    RPCRequest,
    RPCResponse,
    Task,
    TaskState,
    TaskStatus,
    TextPart,
    part_from_dict,
    part_to_dict,
)


def test_text_part_carries_type():
    encoded = part_to_dict(TextPart(text="hello"))
    assert encoded == {"text": "hello", "type": "text"}
    assert part_from_dict(encoded) == TextPart(text="hello")


def test_part_without_type_is_text():
    assert part_from_dict({"text": "plain"}) == TextPart(text="plain")
    assert part_from_dict({"type": "", "text": "x"}) == TextPart(text="x")


def test_file_part_bytes_round_trip():
    part = FilePart(file=FileData(content=b"\x00\x01binary"), mime_type="application/octet-stream")
    encoded = part.to_dict()
    assert encoded["type"] == "file"
    assert "uri" not in encoded["file"]
    assert part_from_dict(json.loads(json.dumps(encoded))) == part


def test_file_part_uri_round_trip():
    part = FilePart(file=FileData(uri="http://example.com/doc.txt"))
    assert part_from_dict(part.to_dict()) == part


@pytest.mark.parametrize(
    "file_obj",
    [{}, {"bytes": "aGk=", "uri": "http://example.com/a"}],
)
def test_file_part_needs_exactly_one_source(file_obj):
    with pytest.raises(PartError, match="exactly one"):
        part_from_dict({"type": "file", "file": file_obj})


def test_data_part_round_trip():
    part = DataPart(data={"a": [1, 2]}, mime_type="application/json")
    assert part_from_dict(part.to_dict()) == part


def test_unknown_part_type_rejected():
    with pytest.raises(PartError, match="unknown part type: video"):
        part_from_dict({"type": "video"})


def test_message_round_trip_and_metadata_omitted():
    msg = Message(role=Role.USER, parts=[TextPart("hi"), DataPart(data=3)])
    encoded = msg.to_dict()
    assert "metadata" not in encoded
    assert encoded["role"] == "user"
    assert Message.from_dict(json.loads(json.dumps(encoded))) == msg


def test_message_null_parts_become_empty():
    msg = Message.from_dict({"role": "agent", "parts": None})
    assert msg.parts == []
    assert msg.role is Role.AGENT


def test_message_bad_part_reports_index():
    with pytest.raises(PartError, match="index 1"):
        Message.from_dict({"role": "user", "parts": [{"text": "ok"}, {"type": "nope"}]})


def test_message_rejects_non_object():
    with pytest.raises(ValueError):
        Message.from_dict(["not", "an", "object"])


def test_set_timestamp_whole_seconds():
    status = TaskStatus(TaskState.PENDING)
    status.set_timestamp(datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
    assert status.timestamp == "2024-01-02T03:04:05Z"


def test_set_timestamp_trims_fraction():
    status = TaskStatus(TaskState.PENDING)
    status.set_timestamp(datetime(2024, 1, 2, 3, 4, 5, 500000, tzinfo=timezone.utc))
    assert status.timestamp == "2024-01-02T03:04:05.5Z"


def test_set_timestamp_converts_to_utc():
    moment = datetime(2024, 6, 1, 12, 30, 0, 123000, tzinfo=timezone(timedelta(hours=5)))
    status = TaskStatus(TaskState.PENDING)
    status.set_timestamp(moment)
    assert status.timestamp.endswith("Z")
    parsed = datetime.fromisoformat(status.timestamp[:-1]).replace(tzinfo=timezone.utc)
    assert parsed == moment


@pytest.mark.parametrize(
    "state, final",
    [
        (TaskState.COMPLETED, True),
        (TaskState.CANCELED, True),
        (TaskState.FAILED, True),
        (TaskState.PENDING, False),
        (TaskState.PROCESSING, False),
        (TaskState.UNKNOWN, False),
    ],
)
def test_is_final(state, final):
    assert TaskStatus(state).is_final() is final


def test_task_round_trip():
    task = Task(
        id="task-1",
        session_id="session-1",
        status=TaskStatus(
            TaskState.COMPLETED,
            message=Message(role=Role.AGENT, parts=[TextPart("done")]),
            timestamp="2024-01-02T03:04:05Z",
        ),
        artifacts=[Artifact(name="out", parts=[TextPart("x")], index=2, last_chunk=True)],
        metadata={"k": "v"},
    )
    encoded = json.loads(json.dumps(task.to_dict()))
    assert encoded["sessionId"] == "session-1"
    assert encoded["status"]["state"] == "completed"
    assert encoded["artifacts"][0]["lastChunk"] is True
    assert Task.from_dict(encoded) == task


def test_task_omits_empty_optional_fields():
    encoded = Task(id="t", status=TaskStatus(TaskState.PENDING)).to_dict()
    assert set(encoded) == {"id", "status"}


def test_artifact_omits_defaults():
    encoded = Artifact(name="a").to_dict()
    assert encoded == {"name": "a", "parts": []}


def test_agent_card_serialization():
    card = AgentCard(
        name="Test Agent",
        url="http://test",
        version="1.0",
        capabilities=AgentCapabilities(streaming=True),
        authentication=AgentAuthentication(schemes=["None"]),
        skills=[AgentSkill(id="test_skill", name="Test Skill")],
    )
    encoded = card.to_dict()
    assert "description" not in encoded
    assert encoded["capabilities"] == {"streaming": True}
    assert encoded["authentication"] == {"schemes": ["None"]}
    assert encoded["skills"] == [{"id": "test_skill", "name": "Test Skill"}]


def test_capabilities_omit_false_flags():
    assert AgentCapabilities().to_dict() == {}


def test_agent_authentication_round_trip():
    auth = AgentAuthentication(schemes=["Bearer"])
    assert AgentAuthentication.from_dict(auth.to_dict()) == auth


def test_agent_provider_to_dict():
    provider = AgentProvider(organization="Example Org", url="http://example.com")
    assert provider.to_dict() == {"organization": "Example Org", "url": "http://example.com"}


def test_rpc_error_omits_missing_data():
    err = RPCError(TASK_NOT_FOUND_CODE, "Task not found")
    assert err.to_dict() == {"code": -32001, "message": "Task not found"}


def test_rpc_response_with_error_has_no_result():
    resp = RPCResponse(id=7, error=RPCError(-32601, "Method 'x' not found"))
    encoded = resp.to_dict()
    assert "result" not in encoded
    assert encoded["jsonrpc"] == "2.0"
    assert encoded["id"] == 7
    assert encoded["error"]["code"] == -32601


def test_rpc_response_encodes_task_result():
    task = Task(id="abc", status=TaskStatus(TaskState.PENDING))
    encoded = RPCResponse(id="r1", result=task).to_dict()
    assert encoded["result"] == task.to_dict()
    assert "error" not in encoded


def test_rpc_request_from_dict():
    req = RPCRequest.from_dict(
        {"jsonrpc": "2.0", "method": "tasks/get", "params": {"id": "t"}, "id": 1}
    )
    assert req.method == "tasks/get"
    assert req.params == {"id": "t"}
    assert req.id == 1
    assert req.jsonrpc == "2.0"


def test_rpc_request_rejects_bad_types():
    with pytest.raises(ValueError):
        RPCRequest.from_dict({"jsonrpc": 2, "method": "tasks/get"})
    with pytest.raises(ValueError):
        RPCRequest.from_dict([1, 2])