# helpers/context_selector.py - minimal file context + edit instructions for a classified request
from __future__ import annotations

from typing import Any, Dict, List

from config.app_config import appConfig
from helpers.intent_analyzer import EditIntent, EditType, Manifest

# -------------------------------------------------------------------
# Static prompt sections
# -------------------------------------------------------------------
EDIT_EXAMPLES_PROMPT = """## Edit Strategy Examples

### Example 1: Update Header Color
USER: "Make the header background black"
CORRECT: edit ONLY src/components/Header.jsx and change the background class
WRONG: regenerate App.jsx, Hero.jsx and Footer.jsx

### Example 2: Add New Section
USER: "Add a testimonials section"
CORRECT: create src/components/Testimonials.jsx, then import and render it in App.jsx
WRONG: rebuild every existing component

### Example 3: Fix Specific Issue
USER: "The button in the hero section is not clickable"
CORRECT: edit ONLY src/components/Hero.jsx and fix the button
WRONG: touch any other file"""

SECTION_ALIASES_NOTE = """### CRITICAL: Component Relationships
**ALWAYS CHECK App.jsx FIRST** to understand what components exist and how they're imported!

Common component overlaps to watch for:
- "nav" or "navigation" -> Often INSIDE Header.jsx, not a separate file
- "menu" -> Usually part of Header/Nav, not separate
- "logo" -> Typically in Header, not standalone

When user says "nav" or "navigation":
1. First check if Header.jsx exists
2. Look inside Header.jsx for navigation elements
3. Only create Nav.jsx if navigation doesn't exist anywhere"""

EDIT_INSTRUCTIONS: Dict[EditType, str] = {
    EditType.UPDATE_COMPONENT: """## SURGICAL EDIT INSTRUCTIONS
- You MUST preserve 99% of the original code
- ONLY edit the specific component(s) mentioned
- Make ONLY the minimal change requested
- DO NOT rewrite or refactor unless explicitly asked
- DO NOT remove any existing code unless explicitly asked
- Preserve all imports and exports
- Return the COMPLETE file with the surgical change applied""",
    EditType.ADD_FEATURE: """## Instructions
- Create new components in appropriate directories
- IMPORTANT: Update parent components to import and use the new component
- Update routing if adding new pages
- Follow existing patterns and conventions
- Example workflow:
  1. Create NewComponent.jsx
  2. Import it in the parent: import NewComponent from './NewComponent'
  3. Use it in the parent's render: <NewComponent />""",
    EditType.FIX_ISSUE: """## Instructions
- Identify and fix the specific issue
- Preserve existing behavior except for the bug
- Add error handling if needed""",
    EditType.UPDATE_STYLE: """## SURGICAL STYLE EDIT INSTRUCTIONS
- Change ONLY the specific style/class mentioned
- If user says "change background to blue", change ONLY the background class
- DO NOT touch any other styles, classes, or attributes
- DO NOT change the component structure
- Return the COMPLETE file with only the specific style change""",
    EditType.REFACTOR: """## Instructions
- Improve code quality without changing functionality
- Follow project conventions
- Maintain all existing features""",
    EditType.FULL_REBUILD: """## Instructions
- You may rebuild the entire application
- Keep the same core functionality
- Improve upon the existing design""",
    EditType.ADD_DEPENDENCY: """## Instructions
- Update package.json with new dependency
- Add necessary import statements
- Configure the dependency if needed""",
}

_FENCE_LANGUAGE = {
    "js": "javascript", "jsx": "javascript",
    "ts": "typescript", "tsx": "typescript",
    "css": "css", "json": "json",
}

# Structural files hoisted to the front of the context list, in this order
_KEY_FILE_SUFFIXES = (
    ("App.jsx", "App.tsx"),
    ("tailwind.config.js", "tailwind.config.ts"),
    ("index.css", "globals.css"),
    ("package.json",),
)


def component_pattern_prompt(file_list: str) -> str:
    return f"""## Component Naming
The project already contains these files:
{file_list}

When the user names a section, map it onto one of the files above before creating anything new.
A new file is only correct when no existing file renders that section."""


# -------------------------------------------------------------------
# Selection
# -------------------------------------------------------------------
def _hoisted_context(primary: List[str], all_files: List[str]) -> List[str]:
    key_files: List[str] = []
    for suffixes in _KEY_FILE_SUFFIXES:
        match = next((f for f in all_files if f.endswith(suffixes)), None)
        if match and match not in primary and match not in key_files:
            key_files.append(match)
    rest = [f for f in all_files if f not in primary and f not in key_files]
    return key_files + rest


def _describe_file(path: str, manifest: Manifest) -> str:
    component = (manifest.get("files", {}).get(path) or {}).get("componentInfo")
    return f"- {path} ({component['name']} component)" if component else f"- {path}"


def _file_structure_section(manifest: Manifest) -> str:
    files = manifest.get("files", {})
    all_files = sorted(p for p in files if "node_modules" not in p)
    components = [
        f"- {(info.get('componentInfo') or {}).get('name') or path.rsplit('/', 1)[-1]} -> {path} ({info['type']})"
        for path, info in files.items() if info.get("type") in ("component", "page")
    ]
    routes = "\n".join(
        f"- {r['path']} -> {r['component'].rsplit('/', 1)[-1]}" for r in manifest.get("routes", [])
    ) or "No routes detected"

    return f"""## EXISTING PROJECT FILES - DO NOT CREATE NEW FILES WITH SIMILAR NAMES

### ALL PROJECT FILES ({len(all_files)} files)
```
{chr(10).join(all_files)}
```

### Component Files (USE THESE EXACT NAMES)
{chr(10).join(components)}

{SECTION_ALIASES_NOTE}

Entry Point: {manifest.get('entryPoint', '')}

### Routes
{routes}"""


def _relationships_section(primary: List[str], manifest: Manifest) -> str:
    lines = ["## Component Relationships"]
    tree = manifest.get("componentTree", {})
    for path in primary:
        component = (manifest.get("files", {}).get(path) or {}).get("componentInfo")
        if not component or component["name"] not in tree:
            continue
        node = tree[component["name"]]
        lines.append(f"\n### {component['name']}")
        if node["imports"]:
            lines.append(f"Imports: {', '.join(node['imports'])}")
        if node["importedBy"]:
            lines.append(f"Used by: {', '.join(node['importedBy'])}")
        if component.get("childComponents"):
            lines.append(f"Renders: {', '.join(component['childComponents'])}")
    return "\n".join(lines)


def build_instructions(
    prompt: str,
    intent: EditIntent,
    primary: List[str],
    context: List[str],
    manifest: Manifest,
) -> str:
    sections: List[str] = []
    if intent.type != EditType.FULL_REBUILD:
        sections.append(EDIT_EXAMPLES_PROMPT)

    sections.append(f"""## Edit Intent
Type: {intent.type.value}
Description: {intent.description}
Confidence: {intent.confidence * 100:.0f}%

User Request: "{prompt}\"""")

    sections.append(_file_structure_section(manifest))
    sections.append(component_pattern_prompt("\n".join(manifest.get("files", {}))))

    if primary:
        sections.append("## Files to Edit\n" + "\n".join(_describe_file(f, manifest) for f in primary))
    if context:
        sections.append("## Context Files (for reference only)\n" + "\n".join(_describe_file(f, manifest) for f in context))

    sections.append(EDIT_INSTRUCTIONS.get(intent.type, EDIT_INSTRUCTIONS[EditType.UPDATE_COMPONENT]))

    if intent.type in (EditType.UPDATE_COMPONENT, EditType.ADD_FEATURE):
        sections.append(_relationships_section(primary, manifest))

    return "\n\n".join(sections)


def select_files_for_edit(prompt: str, intent: EditIntent, manifest: Manifest) -> Dict[str, Any]:
    """Split the project into files to edit and reference-only context.

    Returns ``{primaryFiles, contextFiles, instructions, editIntent}``.
    """
    primary = list(intent.targetFiles)
    all_files = list(manifest.get("files", {}))
    context = _hoisted_context(primary, all_files)
    instructions = build_instructions(prompt, intent, primary, context, manifest)

    print(f"[context-selector] {len(primary)} primary, {len(context)} context files "
          f"(instructions {len(instructions)} chars)")
    return {
        "primaryFiles": primary,
        "contextFiles": context,
        "instructions": instructions,
        "editIntent": intent,
    }


# -------------------------------------------------------------------
# Content formatting for the generation prompt
# -------------------------------------------------------------------
def get_file_contents(files: List[str], manifest: Manifest) -> Dict[str, str]:
    contents: Dict[str, str] = {}
    for path in files:
        info = manifest.get("files", {}).get(path)
        if info:
            contents[path] = info.get("content", "")
    return contents


def _fence(path: str) -> str:
    ext = path.rsplit(".", 1)[-1] if "." in path else ""
    return _FENCE_LANGUAGE.get(ext, ext)


def format_files_for_ai(primary: Dict[str, str], context: Dict[str, str]) -> str:
    limit = appConfig.files.maxContextFileChars
    sections = [
        "## Files to Edit (ONLY OUTPUT THESE FILES)\n",
        "You MUST ONLY generate the files listed below. Do NOT generate any other files!\n",
        'CRITICAL: Return the COMPLETE file - NEVER truncate with "..." or skip any lines!\n\n',
    ]
    for path, content in primary.items():
        sections.append(
            f"### {path}\n"
            "**IMPORTANT: This is the COMPLETE file. Your output must include EVERY line shown below, "
            "modified only where necessary.**\n"
            f"```{_fence(path)}\n{content}\n```\n"
        )

    if context:
        sections.append("\n## Context Files (Reference Only - Do Not Edit)\n")
        for path, content in context.items():
            if len(content) > limit:
                content = content[:limit] + "\n// ... [truncated for context length]"
            sections.append(f"### {path}\n```{_fence(path)}\n{content}\n```\n")

    return "\n".join(sections)
