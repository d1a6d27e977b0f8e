import asyncio

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.runnables import RunnableLambda

from helpers.intent_analyzer import EditType, classify_heuristic
from helpers.llm_intent_analyzer import (
    IntentParseError,
    classify_edit_intent,
    format_file_list,
    intent_payload,
    parse_intent_response,
    validate_target_files,
)


def _model(*responses):
    return FakeListChatModel(responses=list(responses))


@pytest.mark.asyncio
async def test_model_answer_is_used_when_valid(manifest):
    llm = _model(
        'Sure, here you go: {"targetFiles": ["Header.jsx"], "editType": "UPDATE_STYLE", '
        '"description": "Restyle the header", "confidence": 1.7}'
    )
    intent = await classify_edit_intent("make the top bar purple", manifest, llm=llm)
    assert intent.type is EditType.UPDATE_STYLE
    assert intent.targetFiles == ["src/components/Header.jsx"]
    assert intent.confidence == 1.0
    assert intent.description == "Restyle the header"


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    "I think you should edit the header.",
    '{"targetFiles": ["src/App.jsx"], "editType": "REWRITE_EVERYTHING"}',
    '{"targetFiles": ["src/components/Navbar.jsx"], "editType": "UPDATE_COMPONENT"}',
    '{"targetFiles": "src/App.jsx", "editType": "UPDATE_COMPONENT"}',
    '{"targetFiles": [}',
])
async def test_malformed_model_answer_falls_back(manifest, reply):
    prompt = "change the Header styling"
    intent = await classify_edit_intent(prompt, manifest, llm=_model(reply))
    assert intent == classify_heuristic(prompt, manifest)


@pytest.mark.asyncio
async def test_raising_model_falls_back(manifest):
    def explode(_messages):
        raise RuntimeError("rate limited")

    intent = await classify_edit_intent("change the Header styling", manifest, llm=RunnableLambda(explode))
    assert intent.type is EditType.UPDATE_COMPONENT
    assert intent.targetFiles == ["src/components/Header.jsx"]


@pytest.mark.asyncio
async def test_slow_model_times_out_and_falls_back(manifest):
    async def stall(_messages):
        await asyncio.sleep(5)
        return '{"targetFiles": ["src/App.jsx"], "editType": "REFACTOR"}'

    intent = await classify_edit_intent(
        "change the Header styling", manifest, llm=RunnableLambda(stall), timeout=0.05
    )
    assert intent.type is EditType.UPDATE_COMPONENT


@pytest.mark.asyncio
async def test_model_skipped_when_disabled(manifest):
    calls = []

    def record(messages):
        calls.append(messages)
        return '{"targetFiles": ["src/App.jsx"], "editType": "REFACTOR"}'

    intent = await classify_edit_intent(
        "change the Header styling", manifest, llm=RunnableLambda(record), use_model=False
    )
    assert calls == []
    assert intent.type is EditType.UPDATE_COMPONENT


@pytest.mark.asyncio
async def test_model_skipped_for_empty_project():
    intent = await classify_edit_intent("add a pricing page", {"files": {}}, llm=_model("{}"))
    assert intent.type is EditType.ADD_FEATURE
    assert intent.targetFiles == []


def test_parse_errors_are_typed(manifest):
    with pytest.raises(IntentParseError):
        parse_intent_response("no json here", manifest)
    with pytest.raises(IntentParseError):
        parse_intent_response('{"targetFiles": [], "editType": "UPDATE_COMPONENT"}', manifest)


def test_parse_defaults_and_clamping(manifest):
    intent = parse_intent_response('{"targetFiles": ["src/App.jsx"], "confidence": -3}', manifest)
    assert intent.type is EditType.UPDATE_COMPONENT
    assert intent.confidence == 0.0
    assert intent.description == "Edit files"
    assert "src/App.jsx" not in intent.suggestedContext


def test_target_validation_strategies():
    files = ["lib/App.jsx", "src/App.jsx", "src/components/Header.jsx", "package.json"]
    assert validate_target_files(["package.json"], files) == ["package.json"]
    assert validate_target_files(["/src/App.jsx"], files) == ["src/App.jsx"]
    assert validate_target_files(["components/Header.jsx"], files) == ["src/components/Header.jsx"]
    assert validate_target_files(["App.jsx"], files) == ["src/App.jsx"]
    assert validate_target_files(["Missing.jsx", 42, "", "Header.jsx", "Header.jsx"], files) == [
        "src/components/Header.jsx"
    ]


def test_file_list_for_prompt():
    paths = ["node_modules/react/index.js", ".git/HEAD", "src/App.jsx", "src/utils.js"]
    paths += [f"src/components/C{i}.jsx" for i in range(40)]
    listing = format_file_list(paths).splitlines()
    assert len(listing) == 30
    assert listing[0] == "- src/App.jsx (component)"
    assert listing[1] == "- src/utils.js"
    assert not any("node_modules" in line or ".git" in line for line in listing)


def test_intent_payload_is_json_ready(manifest):
    payload = intent_payload(classify_heuristic("install axios", manifest))
    assert payload["type"] == "ADD_DEPENDENCY"
    assert payload["targetFiles"] == ["package.json"]
