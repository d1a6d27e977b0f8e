from helpers.context_selector import (
    EDIT_EXAMPLES_PROMPT,
    format_files_for_ai,
    get_file_contents,
    select_files_for_edit,
)
from helpers.intent_analyzer import EditIntent, EditType, classify_heuristic


def test_new_feature_hoists_app_into_context(small_manifest):
    prompt = "add a dark mode toggle"
    intent = classify_heuristic(prompt, small_manifest)
    selection = select_files_for_edit(prompt, intent, small_manifest)

    assert intent.type is EditType.ADD_FEATURE
    assert selection["primaryFiles"] == []
    assert selection["contextFiles"] == ["src/App.jsx", "src/components/Header.jsx"]
    assert selection["editIntent"] is intent


def test_key_files_lead_context_in_fixed_order(manifest):
    intent = classify_heuristic("change the Header styling", manifest)
    selection = select_files_for_edit("change the Header styling", intent, manifest)

    assert selection["primaryFiles"] == ["src/components/Header.jsx"]
    assert selection["contextFiles"] == [
        "src/App.jsx",
        "tailwind.config.js",
        "src/index.css",
        "package.json",
        "src/main.jsx",
        "src/components/Hero.jsx",
        "src/components/Footer.jsx",
    ]


def test_primary_files_are_never_repeated_as_context(manifest):
    intent = EditIntent(type=EditType.UPDATE_COMPONENT, targetFiles=["src/App.jsx"], confidence=0.9)
    selection = select_files_for_edit("edit the app", intent, manifest)
    assert "src/App.jsx" not in selection["contextFiles"]
    assert selection["contextFiles"][0] == "tailwind.config.js"


def test_instructions_describe_intent_and_files(manifest):
    intent = classify_heuristic("change the Header styling", manifest)
    instructions = select_files_for_edit("change the Header styling", intent, manifest)["instructions"]

    assert instructions.startswith(EDIT_EXAMPLES_PROMPT)
    assert "Type: UPDATE_COMPONENT" in instructions
    assert 'User Request: "change the Header styling"' in instructions
    assert "## Files to Edit\n- src/components/Header.jsx (Header component)" in instructions
    assert "SURGICAL EDIT INSTRUCTIONS" in instructions
    assert "### Header\nUsed by: App" in instructions
    assert "Entry Point: src/main.jsx" in instructions


def test_rebuild_instructions_skip_edit_examples(manifest):
    intent = classify_heuristic("start over", manifest)
    instructions = select_files_for_edit("start over", intent, manifest)["instructions"]
    assert EDIT_EXAMPLES_PROMPT not in instructions
    assert "You may rebuild the entire application" in instructions
    assert "## Component Relationships" not in instructions


def test_context_files_are_truncated_but_primary_files_are_not():
    long_body = "x" * 2500
    text = format_files_for_ai({"src/App.jsx": long_body}, {"src/index.css": long_body})

    assert "### src/App.jsx\n" in text
    assert long_body in text
    assert "```css\n" + "x" * 2000 + "\n// ... [truncated for context length]\n```" in text
    assert "## Context Files (Reference Only - Do Not Edit)" in text


def test_no_context_section_without_context_files():
    text = format_files_for_ai({"src/App.jsx": "export default App"}, {})
    assert "```javascript\nexport default App\n```" in text
    assert "Context Files" not in text


def test_file_contents_skip_unknown_paths(manifest):
    contents = get_file_contents(["src/App.jsx", "src/Missing.jsx"], manifest)
    assert list(contents) == ["src/App.jsx"]
    assert "function App()" in contents["src/App.jsx"]
