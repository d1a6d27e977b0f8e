# helpers/llm_intent_analyzer.py - model-assisted intent classification with heuristic fallback
from __future__ import annotations

import asyncio
import json
import re
import time
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.output_parsers import StrOutputParser

from config.app_config import appConfig
from helpers.intent_analyzer import (
    EditIntent,
    EditType,
    Manifest,
    classify_heuristic,
    suggested_context,
)
from helpers.llm_providers import select_model

MAX_LISTED_FILES = 30
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_SCRIPT_SUFFIX_RE = re.compile(r"\.(jsx?|tsx?)$")

INTENT_SYSTEM_PROMPT = """You are an expert at analyzing code edit requests. Given a user's edit prompt and a list of project files, determine which files need to be modified.

RULES:
1. Select ONLY the files that need to be edited - usually 1-3 files max
2. For style changes (colors, fonts, spacing), select the specific component file
3. For "header" edits, look for Header.tsx/jsx, not App.tsx
4. For "footer" edits, look for Footer.tsx/jsx
5. For adding new features, you may need App.tsx to import the new component
6. Be surgical - don't select files that don't need changes

Edit Types:
- UPDATE_COMPONENT: Modifying existing component
- UPDATE_STYLE: Changing colors, fonts, spacing
- ADD_FEATURE: Creating new component/feature
- FIX_ISSUE: Fixing a bug
- REFACTOR: Restructuring without behaviour change
- ADD_DEPENDENCY: Adding a package
- FULL_REBUILD: Complete rebuild (rare)

Return ONLY valid JSON."""


class IntentParseError(ValueError):
    """The model reply could not be turned into an EditIntent."""


def format_file_list(paths: List[str]) -> str:
    lines = []
    for path in [p for p in paths if "node_modules" not in p and ".git" not in p][:MAX_LISTED_FILES]:
        name = _SCRIPT_SUFFIX_RE.sub("", path.rsplit("/", 1)[-1])
        lines.append(f"- {path}{' (component)' if name[:1].isupper() else ''}")
    return "\n".join(lines)


def build_intent_prompt(prompt: str, paths: List[str]) -> str:
    return f"""User wants to: "{prompt}"

Available files:
{format_file_list(paths)}

Which files need to be edited? Return JSON:
{{
  "targetFiles": ["path/to/file1.tsx", "path/to/file2.tsx"],
  "editType": "UPDATE_COMPONENT",
  "description": "Brief description of what will be changed",
  "confidence": 0.9
}}"""


def _normalize(path: str) -> str:
    return path.strip().strip("/")


def validate_target_files(targets: List[Any], file_list: List[str]) -> List[str]:
    """Map model-proposed paths onto real project paths, most specific strategy first."""
    valid: List[str] = []
    for target in targets:
        if not isinstance(target, str) or not target.strip():
            continue
        normalized = _normalize(target)

        match = next((f for f in file_list if f == target), None)
        if match is None:
            match = next((f for f in file_list if _normalize(f) == normalized), None)
        if match is None and "/" in normalized:
            match = next((f for f in file_list if f.endswith(normalized)), None)
        if match is None and "/" not in normalized:
            same_name = [f for f in file_list if f.rsplit("/", 1)[-1] == normalized]
            if len(same_name) > 1:
                print(f"[llm-intent] Multiple files named {normalized}, preferring src/")
            match = next((f for f in same_name if "src/" in f), same_name[0] if same_name else None)

        if match and match not in valid:
            valid.append(match)
    return valid


def parse_intent_response(text: str, manifest: Manifest) -> EditIntent:
    found = _JSON_OBJECT_RE.search(text or "")
    if not found:
        raise IntentParseError("No JSON object in model response")
    try:
        analysis = json.loads(found.group(0))
    except json.JSONDecodeError as e:
        raise IntentParseError(f"Malformed JSON: {e}") from e
    if not isinstance(analysis, dict):
        raise IntentParseError("Model response is not a JSON object")

    try:
        edit_type = EditType(analysis.get("editType") or EditType.UPDATE_COMPONENT.value)
    except ValueError as e:
        raise IntentParseError(f"Unknown editType {analysis.get('editType')!r}") from e

    raw_targets = analysis.get("targetFiles")
    if not isinstance(raw_targets, list):
        raise IntentParseError("targetFiles must be a list")
    targets = validate_target_files(raw_targets, list(manifest.get("files", {})))
    if not targets:
        raise IntentParseError("No proposed file exists in the project")

    try:
        confidence = float(analysis.get("confidence") or 0.8)
    except (TypeError, ValueError):
        confidence = 0.8

    return EditIntent(
        type=edit_type,
        targetFiles=targets,
        confidence=min(max(confidence, 0.0), 1.0),
        description=str(analysis.get("description") or "Edit files"),
        suggestedContext=suggested_context(targets, manifest),
    )


async def classify_with_model(prompt: str, manifest: Manifest, llm: Any) -> EditIntent:
    """Preferred path. Raises on any failure; callers wrap it."""
    chain = llm | StrOutputParser()
    started = time.time()
    text = await chain.ainvoke([
        SystemMessage(content=INTENT_SYSTEM_PROMPT),
        HumanMessage(content=build_intent_prompt(prompt, list(manifest.get("files", {})))),
    ])
    print(f"[llm-intent] Response in {int((time.time() - started) * 1000)}ms ({len(text)} chars)")
    return parse_intent_response(text, manifest)


async def classify_edit_intent(
    prompt: str,
    manifest: Manifest,
    llm: Any = None,
    use_model: Optional[bool] = None,
    timeout: Optional[float] = None,
) -> EditIntent:
    """Two-stage classification: model first when enabled, heuristic otherwise.

    Model failures (exceptions, timeouts, non-JSON output, unknown paths) are
    logged and never reach the caller.
    """
    if use_model is None:
        use_model = appConfig.ai.useModelIntent or llm is not None

    if use_model and manifest.get("files"):
        try:
            model = llm if llm is not None else select_model(appConfig.ai.intentModel, temperature=0.2)
            intent = await asyncio.wait_for(
                classify_with_model(prompt, manifest, model),
                timeout=timeout or appConfig.ai.intentTimeoutSeconds,
            )
            print(f"[llm-intent] {intent.type.value} -> {intent.targetFiles} (confidence {intent.confidence:.2f})")
            return intent
        except asyncio.TimeoutError:
            print("[llm-intent] Model classification timed out, using heuristic")
        except Exception as e:
            print(f"[llm-intent] Model classification failed ({e}), using heuristic")

    return classify_heuristic(prompt, manifest)


def intent_payload(intent: EditIntent) -> Dict[str, Any]:
    return intent.model_dump(mode="json")
