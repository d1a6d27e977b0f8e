# helpers/prompts.py - system/user prompt assembly for code generation
from typing import Dict, List, Optional

from config.app_config import appConfig

INITIAL_GENERATION_PROMPT = """You are an expert React developer. Generate clean, modern React code for Vite applications.

CRITICAL RULES:
1. Use Tailwind CSS for ALL styling - no inline styles or custom CSS files
2. Create functional components with hooks when needed
3. Use proper JSX syntax and modern ES6+ JavaScript
4. Handle edge cases gracefully

STRING HANDLING (CRITICAL):
- Use double quotes for strings containing apostrophes
- Example: "It's amazing" NOT 'It's amazing'

GENERATION PROCESS:
1. Generate src/index.css FIRST (Tailwind directives)
2. Generate src/App.jsx second
3. Then generate ALL component files you import
4. Do NOT stop until all imports are satisfied

USE THIS XML FORMAT:

<file path="src/index.css">
@tailwind base;
@tailwind components;
@tailwind utilities;
</file>

<file path="src/App.jsx">
// Main App component
</file>

<file path="src/components/Example.jsx">
// Component code with Tailwind classes
</file>

<package>package-name</package>

COMPLETION RULES:
1. Generate ALL components in ONE response
2. NEVER say "I'll continue" or ask to proceed
3. If App.jsx imports 5 components, generate ALL 5"""

EDIT_MODE_PROMPT = """You are an expert React developer modifying an existing application.

SURGICAL EDIT RULES (CRITICAL):
- PREFER TARGETED CHANGES: Don't regenerate entire components for small edits
- For color/style changes: Edit ONLY the specific className
- For text changes: Change ONLY the text content
- For adding elements: INSERT into existing JSX, don't rewrite everything
- PRESERVE EXISTING CODE: Keep all imports and unrelated code exactly as-is

Maximum files to edit:
- Style change = 1 file ONLY
- Text change = 1 file ONLY
- New feature = 2 files MAX

Use the same <file path="..."> and <package> XML format as for new projects.

When files are provided in context:
1. User wants to MODIFY existing app, not create new
2. Find relevant file(s) from provided context
3. Generate ONLY files that need changes"""

FILE_CONTEXT_PROMPT = """
CURRENT FILES IN PROJECT:
The following files exist in the sandbox. Use them as context for edits.
Only regenerate files that NEED changes based on the user's request.

"""


def build_system_prompt(is_edit: bool, file_context: Optional[Dict[str, str]] = None) -> str:
    prompt = EDIT_MODE_PROMPT if is_edit else INITIAL_GENERATION_PROMPT
    if not file_context:
        return prompt

    limit = appConfig.files.maxPromptFileChars
    prompt += FILE_CONTEXT_PROMPT
    for path, content in file_context.items():
        if len(content) < limit:
            prompt += f'\n<file path="{path}">\n{content}\n</file>\n'
        else:
            prompt += f'\n<file path="{path}">[File too large - {len(content)} chars]</file>\n'
    return prompt


def format_conversation_history(messages: Optional[List[Dict[str, str]]]) -> str:
    if not messages:
        return ""
    recent = messages[-appConfig.ui.maxRecentMessagesContext:]
    formatted = "\n\n".join(
        f"{str(m.get('role', 'user')).upper()}: {m.get('content', '')}" for m in recent
    )
    return f"\nRECENT CONVERSATION:\n{formatted}\n"
