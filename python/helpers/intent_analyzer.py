# helpers/intent_analyzer.py - heuristic edit-intent classification
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Pattern, Sequence, Tuple

from pydantic import BaseModel, Field


class EditType(str, Enum):
    UPDATE_COMPONENT = 'UPDATE_COMPONENT'
    ADD_FEATURE = 'ADD_FEATURE'
    FIX_ISSUE = 'FIX_ISSUE'
    UPDATE_STYLE = 'UPDATE_STYLE'
    REFACTOR = 'REFACTOR'
    FULL_REBUILD = 'FULL_REBUILD'
    ADD_DEPENDENCY = 'ADD_DEPENDENCY'


class EditIntent(BaseModel):
    type: EditType = Field(description='The classified kind of edit')
    targetFiles: List[str] = Field(default_factory=list, description='Files to edit, primary first')
    confidence: float = Field(ge=0.0, le=1.0, description='Advisory score, logged only')
    description: str = ''
    suggestedContext: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


Manifest = Dict[str, Any]
Resolver = Callable[[str, Manifest], List[str]]

UI_ELEMENTS = (
    'header', 'footer', 'nav', 'sidebar', 'button', 'card', 'modal', 'hero',
    'banner', 'about', 'services', 'features', 'testimonials', 'gallery',
    'contact', 'team', 'pricing',
)

_STOPWORDS_RE = re.compile(r'\b(the|a|an|in|on|to|from|update|change|modify|edit|fix|make)\b', re.IGNORECASE)
_LOCATION_RE = re.compile(r'\b(?:in|to|on|inside)\s+(?:the\s+)?(\w+)', re.IGNORECASE)
_PROBLEM_RE = re.compile(r'error|bug|issue|problem|broken|not working', re.IGNORECASE)
_QUOTED_RE = re.compile(r'["\']([^"\']+)["\']')
_REMOVAL_TARGET_RE = re.compile(
    r'(?:remove|delete|hide)\s+(?:the\s+)?(.+?)(?:\s+button|\s+link|\s+text|\s+element|\s+section|$)',
    re.IGNORECASE,
)


def _file_name(path: str) -> str:
    return path.rsplit('/', 1)[-1].lower()


def extract_component_names(prompt: str) -> List[str]:
    cleaned = _STOPWORDS_RE.sub('', prompt).lower()
    return [w for w in re.findall(r'\b\w+\b', cleaned) if len(w) > 2]


# --- file resolvers -------------------------------------------------------

def find_component_files(prompt: str, manifest: Manifest) -> List[str]:
    files: List[str] = []
    lowered = prompt.lower()
    words = extract_component_names(prompt)

    for path, info in manifest.get('files', {}).items():
        file_name = _file_name(path)
        component = ((info.get('componentInfo') or {}).get('name') or '').lower()
        if any(w in file_name or (component and w in component) for w in words):
            files.append(path)

    if not files:
        for element in UI_ELEMENTS:
            if element not in lowered:
                continue
            paths = list(manifest.get('files', {}))
            exact = [p for p in paths if f'{element}.' in _file_name(p) or _file_name(p) == element]
            if exact:
                return [exact[0]]
            loose = [p for p in paths if element in _file_name(p)]
            if loose:
                return [loose[0]]

    if files:
        return files[:1]
    entry = manifest.get('entryPoint')
    return [entry] if entry else []


def find_feature_insertion_points(prompt: str, manifest: Manifest) -> List[str]:
    """Parents that must import a new feature.

    Returns an empty list when no parent can be identified; the new files are
    then created from scratch and the entry component is hoisted into context.
    """
    files: List[str] = []
    lowered = prompt.lower()
    entry = manifest.get('entryPoint')

    if 'page' in lowered:
        for path, info in manifest.get('files', {}).items():
            content = info.get('content', '')
            if 'Route' in content or 'createBrowserRouter' in content or 'router' in path or 'routes' in path:
                files.append(path)
        if entry:
            files.append(entry)

    if any(k in lowered for k in ('component', 'section', 'add', 'create')):
        location = _LOCATION_RE.search(prompt)
        if location:
            files.extend(find_component_files(location.group(1), manifest))
        else:
            for word in extract_component_names(prompt):
                related = find_component_files(word, manifest)
                if related and related[0] != entry:
                    files.extend(related)

    return list(dict.fromkeys(files))


def find_problem_files(prompt: str, manifest: Manifest) -> List[str]:
    files: List[str] = []
    if _PROBLEM_RE.search(prompt):
        recent = sorted(
            manifest.get('files', {}).items(),
            key=lambda item: item[1].get('lastModified', 0),
            reverse=True,
        )[:5]
        files.extend(path for path, _ in recent)
    files.extend(find_component_files(prompt, manifest))
    return list(dict.fromkeys(files))


def find_style_files(prompt: str, manifest: Manifest) -> List[str]:
    files = list(manifest.get('styleFiles', []))
    tailwind = next((p for p in manifest.get('files', {}) if 'tailwind.config' in p), None)
    if tailwind:
        files.append(tailwind)
    files.extend(find_component_files(prompt, manifest))
    return list(dict.fromkeys(files))


def find_package_files(_prompt: str, manifest: Manifest) -> List[str]:
    return [
        p for p in manifest.get('files', {})
        if p.endswith(('package.json', 'vite.config.js', 'tsconfig.json'))
    ]


def find_component_by_content(prompt: str, manifest: Manifest) -> List[str]:
    terms = _QUOTED_RE.findall(prompt)
    removal = _REMOVAL_TARGET_RE.search(prompt)
    if removal:
        terms.append(removal.group(1).strip())

    if terms:
        for path, info in manifest.get('files', {}).items():
            if '.jsx' not in path and '.tsx' not in path:
                continue
            content = info.get('content', '').lower()
            if any(t.lower() in content for t in terms if t):
                return [path]

    return find_component_files(prompt, manifest)


def _entry_only(_prompt: str, manifest: Manifest) -> List[str]:
    entry = manifest.get('entryPoint')
    return [entry] if entry else []


# --- rule table -----------------------------------------------------------

@dataclass(frozen=True)
class IntentRule:
    """One (predicate, resolver) pair. Rules are tried in order; first match wins."""
    edit_type: EditType
    patterns: Tuple[Pattern[str], ...]
    resolver: Resolver

    def matches(self, prompt: str) -> bool:
        return any(p.search(prompt) for p in self.patterns)


def _compile(*patterns: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


INTENT_RULES: Tuple[IntentRule, ...] = (
    IntentRule(EditType.UPDATE_COMPONENT, _compile(
        r'update\s+(the\s+)?(\w+)\s+(component|section|page)',
        r'change\s+(the\s+)?(\w+)',
        r'modify\s+(the\s+)?(\w+)',
        r'edit\s+(the\s+)?(\w+)',
        r'fix\s+(the\s+)?(\w+)\s+(styling|style|css|layout)',
        r'remove\s+.*\s+(button|link|text|element|section)',
        r'delete\s+.*\s+(button|link|text|element|section)',
        r'hide\s+.*\s+(button|link|text|element|section)',
    ), find_component_by_content),
    IntentRule(EditType.ADD_FEATURE, _compile(
        r'add\s+(a\s+)?new\s+(\w+)\s+(page|section|feature|component)',
        r'create\s+(a\s+)?(\w+)\s+(page|section|feature|component)',
        r'implement\s+(a\s+)?(\w+)\s+(page|section|feature)',
        r'build\s+(a\s+)?(\w+)\s+(page|section|feature)',
        r'add\s+(\w+)\s+to\s+(?:the\s+)?(\w+)',
        r'add\s+(?:a\s+)?(\w+)\s+(?:component|section)',
        r'include\s+(?:a\s+)?(\w+)',
        r'\badd\s+(?:a|an)\s+\w+',
    ), find_feature_insertion_points),
    IntentRule(EditType.FIX_ISSUE, _compile(
        r'fix\s+(the\s+)?(\w+|\w+\s+\w+)(?!\s+styling|\s+style)',
        r'resolve\s+(the\s+)?error',
        r'debug\s+(the\s+)?(\w+)',
        r'repair\s+(the\s+)?(\w+)',
    ), find_problem_files),
    IntentRule(EditType.UPDATE_STYLE, _compile(
        r'change\s+(the\s+)?(color|theme|style|styling|css)',
        r'update\s+(the\s+)?(color|theme|style|styling|css)',
        r'make\s+it\s+(dark|light|blue|red|green)',
        r'style\s+(the\s+)?(\w+)',
    ), find_style_files),
    IntentRule(EditType.REFACTOR, _compile(
        r'refactor\s+(the\s+)?(\w+)',
        r'clean\s+up\s+(the\s+)?code',
        r'reorganize\s+(the\s+)?(\w+)',
        r'optimize\s+(the\s+)?(\w+)',
    ), find_component_files),
    IntentRule(EditType.FULL_REBUILD, _compile(
        r'start\s+over',
        r'recreate\s+everything',
        r'rebuild\s+(the\s+)?app',
        r'new\s+app',
        r'from\s+scratch',
    ), _entry_only),
    IntentRule(EditType.ADD_DEPENDENCY, _compile(
        r'install\s+(\w+)',
        r'add\s+(\w+)\s+(package|library|dependency)',
        r'use\s+(\w+)\s+(library|framework)',
    ), find_package_files),
)


def calculate_confidence(prompt: str, rule: IntentRule, target_files: List[str]) -> float:
    confidence = 0.5
    if target_files and target_files[0]:
        confidence += 0.2
    if len(prompt.split(' ')) > 5:
        confidence += 0.1
    if rule.matches(prompt):
        confidence += 0.2
    return min(round(confidence, 2), 1.0)


def describe_intent(edit_type: EditType, target_files: List[str]) -> str:
    names = ', '.join(f.rsplit('/', 1)[-1] for f in target_files)
    return {
        EditType.UPDATE_COMPONENT: f'Updating component(s): {names}',
        EditType.ADD_FEATURE: f'Adding new feature to: {names}',
        EditType.FIX_ISSUE: f'Fixing issue in: {names}',
        EditType.UPDATE_STYLE: f'Updating styles in: {names}',
        EditType.REFACTOR: f'Refactoring: {names}',
        EditType.FULL_REBUILD: 'Rebuilding entire application',
        EditType.ADD_DEPENDENCY: 'Adding new dependency',
    }.get(edit_type, f'Editing: {names}')


def suggested_context(target_files: List[str], manifest: Manifest) -> List[str]:
    return [f for f in manifest.get('files', {}) if f not in target_files]


def default_intent(manifest: Manifest) -> EditIntent:
    entry = manifest.get('entryPoint')
    return EditIntent(
        type=EditType.UPDATE_COMPONENT,
        targetFiles=[entry] if entry else [],
        confidence=0.3,
        description='General update to application',
        suggestedContext=[],
    )


def classify_heuristic(
    prompt: str,
    manifest: Manifest,
    rules: Sequence[IntentRule] = INTENT_RULES,
) -> EditIntent:
    lowered = prompt.lower()
    for rule in rules:
        if not rule.matches(lowered):
            continue
        targets = rule.resolver(prompt, manifest)
        intent = EditIntent(
            type=rule.edit_type,
            targetFiles=targets,
            confidence=calculate_confidence(prompt, rule, targets),
            description=describe_intent(rule.edit_type, targets),
            suggestedContext=suggested_context(targets, manifest),
        )
        print(f'[intent] {intent.type.value} -> {targets} (confidence {intent.confidence:.2f})')
        return intent

    print('[intent] No rule matched, defaulting to entry point update')
    return default_intent(manifest)
