"""SubtaskExecutor tool-loop tests."""

import json

import pytest

from src.domain.entities.task import SubTask, SubtaskType
from src.domain.ports.llm import ModelReply
from src.infrastructure.agents.executor import MAX_ROUNDS_ERROR, NO_SUBTASK_ERROR, SubtaskExecutor
from src.infrastructure.tools import ToolInvoker, ToolRegistry, ToolSpec, build_default_registry
from src.infrastructure.workflow.cancellation import CancellationToken
from src.infrastructure.workspace import LocalWorkspace, always_decline
from tests.fakes import AlwaysCallsToolClient, ScriptedModelClient, tool_reply


@pytest.fixture
def subtask():
    return SubTask(id="analysis", type=SubtaskType.ANALYSIS, task="Explain add()", context="Look at src/app.py")


def _tool_messages(call: dict) -> list:
    return [m for m in call["messages"] if m.role == "tool"]


@pytest.mark.asyncio
async def test_no_tool_calls_returns_text(subtask, invoker, models):
    llm = ScriptedModelClient(replies=["add() returns the sum."])
    result = await SubtaskExecutor(llm, invoker, models).run(subtask)
    assert result.success
    assert result.result == "add() returns the sum."
    assert result.tools_used == []
    messages = llm.chat_calls[0]["messages"]
    assert [m.role for m in messages] == ["system", "user", "user"]
    assert messages[1].content == "Look at src/app.py"
    assert messages[2].content == "Explain add()"
    assert llm.chat_calls[0]["model"] == "default-model"
    assert {t["function"]["name"] for t in llm.chat_calls[0]["tools"]} == {
        "readFile",
        "writeFile",
        "listFiles",
        "searchCode",
        "runCommand",
    }


@pytest.mark.asyncio
async def test_no_context_message_when_context_missing(invoker, models):
    llm = ScriptedModelClient(replies=["ok"])
    await SubtaskExecutor(llm, invoker, models).run(SubTask(id="t", type=SubtaskType.TEST, task="Run"))
    assert [m.role for m in llm.chat_calls[0]["messages"]] == ["system", "user"]


@pytest.mark.asyncio
async def test_missing_subtask_fails_without_model_call(invoker, models):
    llm = ScriptedModelClient()
    result = await SubtaskExecutor(llm, invoker, models).run(None)
    assert not result.success
    assert result.error == NO_SUBTASK_ERROR
    assert llm.chat_calls == []


@pytest.mark.asyncio
async def test_tool_results_fed_back_with_call_ids(subtask, invoker, models):
    llm = ScriptedModelClient(
        replies=[
            tool_reply(("readFile", {"filePath": "src/app.py"}), ("listFiles", {"directoryPath": "src"})),
            "add() adds two numbers.",
        ]
    )
    result = await SubtaskExecutor(llm, invoker, models).run(subtask)
    assert result.success
    assert result.tools_used == ["readFile", "listFiles"]

    second = llm.chat_calls[1]["messages"]
    assistant = [m for m in second if m.role == "assistant"][0]
    assert [tc.name for tc in assistant.tool_calls] == ["readFile", "listFiles"]
    tool_msgs = _tool_messages(llm.chat_calls[1])
    assert [m.tool_call_id for m in tool_msgs] == ["call_0", "call_1"]
    read = json.loads(tool_msgs[0].content)
    assert read["success"] is True
    assert "return a + b" in read["data"]["content"]


@pytest.mark.asyncio
async def test_unknown_tool_reports_error_and_continues_round(subtask, invoker, models):
    llm = ScriptedModelClient(
        replies=[
            tool_reply(("deleteEverything", {}), ("readFile", {"filePath": "src/app.py"})),
            "done",
        ]
    )
    result = await SubtaskExecutor(llm, invoker, models).run(subtask)
    assert result.success
    tool_msgs = _tool_messages(llm.chat_calls[1])
    assert json.loads(tool_msgs[0].content) == {"error": "Tool deleteEverything not found"}
    assert json.loads(tool_msgs[1].content)["success"] is True
    assert result.tools_used == ["readFile"]


@pytest.mark.asyncio
async def test_round_cap_is_exact(subtask, invoker, models):
    llm = AlwaysCallsToolClient()
    result = await SubtaskExecutor(llm, invoker, models, max_tool_rounds=4).run(subtask)
    assert not result.success
    assert "exceeded" in result.error
    assert result.error == MAX_ROUNDS_ERROR
    assert len(llm.chat_calls) == 4
    assert result.tools_used == ["listFiles"] * 4


@pytest.mark.asyncio
async def test_default_cap_is_ten(subtask, invoker, models):
    llm = AlwaysCallsToolClient()
    result = await SubtaskExecutor(llm, invoker, models).run(subtask)
    assert not result.success
    assert len(llm.chat_calls) == 10


@pytest.mark.asyncio
async def test_failing_tool_does_not_abort_subtask(subtask, models):
    async def explode(args):
        raise RuntimeError("disk on fire")

    registry = ToolRegistry()
    registry.register(ToolSpec(name="readFile", description="read", parameters={}, handler=explode))
    llm = ScriptedModelClient(replies=[tool_reply(("readFile", {"filePath": "x"})), "recovered"])
    result = await SubtaskExecutor(llm, ToolInvoker(registry), models).run(subtask)
    assert result.success
    assert result.result == "recovered"
    body = json.loads(_tool_messages(llm.chat_calls[1])[0].content)
    assert body["success"] is False
    assert "disk on fire" in body["error"]


@pytest.mark.asyncio
async def test_declined_write_is_tool_data(tmp_path, subtask, models):
    workspace = LocalWorkspace(root=str(tmp_path), confirm=always_decline)
    invoker = ToolInvoker(build_default_registry(workspace))
    llm = ScriptedModelClient(
        replies=[tool_reply(("writeFile", {"filePath": "new.py", "content": "x = 1\n"})), "User said no."]
    )
    result = await SubtaskExecutor(llm, invoker, models).run(subtask)
    assert result.success
    body = json.loads(_tool_messages(llm.chat_calls[1])[0].content)
    assert body == {"success": False, "error": "User declined the file write operation"}
    assert not (tmp_path / "new.py").exists()


@pytest.mark.asyncio
async def test_model_error_becomes_failed_result(subtask, invoker, models):
    llm = ScriptedModelClient(replies=[ValueError("bad payload")])
    result = await SubtaskExecutor(llm, invoker, models).run(subtask)
    assert not result.success
    assert result.error == "bad payload"
    assert result.result == ""


@pytest.mark.asyncio
async def test_cancellation_checked_before_tool_call(subtask, invoker, models):
    token = CancellationToken()

    def on_tool(call):
        token.cancel()

    llm = ScriptedModelClient(
        replies=[tool_reply(("listFiles", {"directoryPath": "."}), ("readFile", {"filePath": "src/app.py"}))]
    )
    executor = SubtaskExecutor(llm, invoker, models, cancellation=token, on_tool=on_tool)
    result = await executor.run(subtask)
    assert not result.success
    assert "cancelled" in result.error
    assert result.tools_used == ["listFiles"]
    assert len(llm.chat_calls) == 1


@pytest.mark.asyncio
async def test_cancelled_before_first_model_call(subtask, invoker, models):
    token = CancellationToken()
    token.cancel()
    llm = ScriptedModelClient(replies=[ModelReply(content="never")])
    result = await SubtaskExecutor(llm, invoker, models, cancellation=token).run(subtask)
    assert not result.success
    assert llm.chat_calls == []
