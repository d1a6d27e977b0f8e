# helpers/code_merge.py - surgical merge collaborators (LLM and Morph fast-apply)
from __future__ import annotations

import json
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate

from config.app_config import appConfig
from helpers.llm_providers import select_model

MERGE_INSTRUCTIONS = "Apply the following changes to the file"

MERGE_SYSTEM_PROMPT = """You are an expert software engineer specializing in code merging and refactoring.
Your task is to merge a provided "update snippet" into an "original code" file based on specific "instructions".

RULES:
1. ALWAYS return the COMPLETE merged file content.
2. DO NOT include any markdown code fences, explanations, or commentary.
3. PRESERVE all existing code that is not being modified.
4. ENSURE the merged code is syntactically correct and follows the original coding style.
5. If the update snippet is a whole component, replace the old one. If it's a small change, integrate it carefully.
6. DO NOT remove imports unless they are no longer needed.

Return ONLY the final code."""

MERGE_USER_PROMPT = """FILE: {file_name}

INSTRUCTIONS:
{instructions}

UPDATE SNIPPET:
{update_snippet}

ORIGINAL CODE:
{original_code}

Please merge the update snippet into the original code following the instructions.
Return the full, complete merged file content."""

_FENCE_RE = re.compile(r"^```[\w.+-]*\s*\n([\s\S]*?)\n?```\s*$")


@dataclass
class MergeResult:
    success: bool
    merged_code: Optional[str] = None
    error: Optional[str] = None


def strip_code_fences(text: str) -> str:
    text = (text or "").strip()
    m = _FENCE_RE.match(text)
    return m.group(1).strip() if m else text


def validate_merged_code(text: str, source: str = "merge") -> MergeResult:
    merged = strip_code_fences(text)
    if not merged or len(merged) < appConfig.merge.minLength:
        return MergeResult(False, error=f"{source} returned empty or invalid merged code")
    if merged.startswith(tuple(appConfig.merge.refusalPrefixes)):
        return MergeResult(False, error=f"{source} failed to merge: {merged[:120]}")
    return MergeResult(True, merged_code=merged)


class CodeMerger(ABC):
    """Rewrites one file from its current content, instructions and an update fragment."""

    name = "merger"

    @abstractmethod
    async def _complete(self, original_code: str, instructions: str, update_snippet: str, file_name: str) -> str:
        ...

    async def merge(self, original_code: str, instructions: str, update_snippet: str, file_name: str) -> MergeResult:
        # Never raises: transport and provider errors come back as a failed result
        try:
            text = await self._complete(original_code, instructions, update_snippet, file_name)
        except Exception as e:
            return MergeResult(False, error=f"{self.name}: {e}")
        return validate_merged_code(text, self.name)


class LLMMerger(CodeMerger):
    name = "llm-merge"

    def __init__(self, llm=None):
        self.llm = llm or select_model(appConfig.merge.model, temperature=0.1)
        self.prompt = ChatPromptTemplate.from_messages([
            ("system", MERGE_SYSTEM_PROMPT),
            ("human", MERGE_USER_PROMPT),
        ])

    async def _complete(self, original_code, instructions, update_snippet, file_name):
        chain = self.prompt | self.llm | StrOutputParser()
        return await chain.ainvoke({
            "file_name": file_name,
            "instructions": instructions,
            "update_snippet": update_snippet,
            "original_code": original_code,
        })


class MorphMerger(CodeMerger):
    name = "morph"

    def __init__(self, api_key: str, url: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key
        self.url = url or appConfig.merge.morphUrl
        self.model = model or appConfig.merge.morphModel

    async def _complete(self, original_code, instructions, update_snippet, file_name):
        body = {
            "model": self.model,
            "messages": [{
                "role": "user",
                "content": f"<instruction>{instructions}</instruction>\n<code>{original_code}</code>\n<update>{update_snippet}</update>",
            }],
        }
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}
        async with httpx.AsyncClient(timeout=appConfig.merge.timeoutSeconds) as client:
            resp = await client.post(self.url, headers=headers, content=json.dumps(body))

        if resp.status_code < 200 or resp.status_code >= 300:
            raise RuntimeError(f"Morph API error {resp.status_code}: {resp.text}")

        choices = resp.json().get("choices") or [{}]
        return (choices[0].get("message") or {}).get("content") or ""


def create_merger(provider: Optional[str] = None) -> Optional[CodeMerger]:
    provider = (provider or appConfig.merge.provider or "none").lower()
    if provider == "morph":
        api_key = os.getenv("MORPH_API_KEY")
        if not api_key:
            print("[code-merge] MORPH_API_KEY not set, surgical merge disabled")
            return None
        return MorphMerger(api_key)
    if provider == "llm":
        try:
            return LLMMerger()
        except Exception as e:
            print(f"[code-merge] Could not build merge model ({e}), surgical merge disabled")
            return None
    return None
