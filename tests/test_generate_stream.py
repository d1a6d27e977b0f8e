import pytest

from helpers.session import GenerationTracker, SessionContext
from routes.generate_ai_stream import generate_code, stream_generate_code
from sandbox.manager import SandboxManager
from tests.conftest import APP_FILES, FakeProvider, text_stream_of

CHUNKS = [
    '<file path="src/App.jsx">',
    "export default App",
    "</file>",
    "<package>axios</package>",
]


@pytest.fixture
def ctx():
    return SessionContext("s1", SandboxManager(provider_factory=lambda name=None: FakeProvider()), GenerationTracker())


async def collect(*args, **kwargs):
    return [e async for e in stream_generate_code(*args, **kwargs)]


@pytest.mark.asyncio
async def test_event_order_for_a_fresh_generation(ctx):
    stream = text_stream_of(CHUNKS)
    events = await collect("build a landing page", model="openai/gpt-4o", ctx=ctx, text_stream=stream)

    assert [e["type"] for e in events] == [
        "status", "stream", "current", "stream", "current", "stream", "file", "stream", "package", "complete",
    ]
    assert [e["data"]["index"] for e in events if e["type"] == "stream"] == [0, 25, 43, 50]
    assert events[2]["data"] == {"path": "src/App.jsx", "content": ""}
    assert events[6]["data"] == {"path": "src/App.jsx", "content": "export default App"}
    assert events[-1]["data"] == {
        "files": [{"path": "src/App.jsx", "content": "export default App"}],
        "packages": ["axios"],
    }
    assert stream.seen["model"] == "openai/gpt-4o"
    assert "USE THIS XML FORMAT" in stream.seen["system_prompt"]


@pytest.mark.asyncio
async def test_stream_failure_reports_partial_files(ctx):
    chunks = ['<file path="src/A.jsx">a</file>', '<file path="src/B.jsx">par', "tial</file>"]
    events = await collect("build", ctx=ctx, text_stream=text_stream_of(chunks, fail_after=2))

    assert events[-1]["type"] == "error"
    assert events[-1]["message"] == "stream dropped"
    assert events[-1]["data"]["files"] == [{"path": "src/A.jsx", "content": "a"}]
    assert not any(e["type"] == "complete" for e in events)
    assert not ctx.generations.is_running("s1")


@pytest.mark.asyncio
async def test_cancelled_generation_stops_without_error(ctx):
    async def cancelling_stream(system_prompt, full_prompt, model):
        yield '<file path="src/A.jsx">'
        ctx.generations.cancel("s1")
        yield "never delivered</file>"

    events = await collect("build", ctx=ctx, text_stream=cancelling_stream)

    assert not any(e["type"] in ("error", "complete", "file") for e in events)
    assert not ctx.generations.is_running("s1")


@pytest.mark.asyncio
async def test_edit_reads_sandbox_and_scopes_the_prompt(ctx):
    await ctx.sandboxes.register("s1", FakeProvider(files=APP_FILES).connect())
    stream = text_stream_of(['<file path="src/components/Header.jsx">new header</file>'])

    events = await collect(
        "change the Header styling",
        is_edit=True,
        ctx=ctx,
        text_stream=stream,
        use_model_intent=False,
    )

    assert events[0] == {"type": "status", "message": "Reading project files from sandbox..."}
    intent = next(e["data"] for e in events if e["type"] == "intent")
    assert intent["type"] == "UPDATE_COMPONENT"
    assert intent["targetFiles"] == ["src/components/Header.jsx"]

    system_prompt = stream.seen["system_prompt"]
    assert "## Files to Edit (ONLY OUTPUT THESE FILES)" in system_prompt
    assert "SURGICAL EDIT INSTRUCTIONS" in system_prompt
    assert "### src/components/Header.jsx" in system_prompt
    assert events[-1]["type"] == "complete"


@pytest.mark.asyncio
async def test_edit_with_supplied_files_uses_them(ctx):
    stream = text_stream_of([])
    events = await collect(
        "add a testimonials section",
        is_edit=True,
        context={"files": APP_FILES, "recentMessages": [{"role": "user", "content": "make a bakery site"}]},
        ctx=ctx,
        text_stream=stream,
        use_model_intent=False,
    )

    assert not any(e.get("message") == "Reading project files from sandbox..." for e in events)
    assert next(e for e in events if e["type"] == "intent")["data"]["type"] == "ADD_FEATURE"
    assert "USER: make a bakery site" in stream.seen["full_prompt"]
    assert stream.seen["full_prompt"].endswith("add a testimonials section")


@pytest.mark.asyncio
async def test_new_generation_cancels_previous_one_for_session(ctx):
    first = ctx.generations.begin("s1")
    await collect("build", ctx=ctx, text_stream=text_stream_of(CHUNKS))
    assert first.is_set()


@pytest.mark.asyncio
async def test_generate_code_collects_result(ctx):
    result = await generate_code("build", ctx=ctx, text_stream=text_stream_of(CHUNKS))
    assert result == {
        "success": True,
        "files": [{"path": "src/App.jsx", "content": "export default App"}],
        "packages": ["axios"],
    }


@pytest.mark.asyncio
async def test_generate_code_reports_failure(ctx):
    result = await generate_code("build", ctx=ctx, text_stream=text_stream_of(CHUNKS, fail_after=0))
    assert result["success"] is False
    assert result["error"] == "stream dropped"
    assert result["files"] == []
