import pytest

from helpers.intent_analyzer import (
    INTENT_RULES,
    EditType,
    IntentRule,
    _compile,
    calculate_confidence,
    classify_heuristic,
    extract_component_names,
)


def test_rule_order_is_the_priority_order():
    assert [r.edit_type for r in INTENT_RULES] == [
        EditType.UPDATE_COMPONENT,
        EditType.ADD_FEATURE,
        EditType.FIX_ISSUE,
        EditType.UPDATE_STYLE,
        EditType.REFACTOR,
        EditType.FULL_REBUILD,
        EditType.ADD_DEPENDENCY,
    ]


def test_update_component_wins_over_style(manifest):
    intent = classify_heuristic("change the Header styling", manifest)
    assert intent.type is EditType.UPDATE_COMPONENT
    assert intent.targetFiles == ["src/components/Header.jsx"]
    assert "src/components/Header.jsx" not in intent.suggestedContext


def test_add_feature_without_known_parent(small_manifest):
    intent = classify_heuristic("add a dark mode toggle", small_manifest)
    assert intent.type is EditType.ADD_FEATURE
    assert intent.targetFiles == []


def test_add_feature_with_location(manifest):
    intent = classify_heuristic("add a newsletter section to the footer", manifest)
    assert intent.type is EditType.ADD_FEATURE
    assert intent.targetFiles == ["src/components/Footer.jsx"]


def test_removal_finds_component_by_content(manifest):
    intent = classify_heuristic("remove the Get Started button", manifest)
    assert intent.type is EditType.UPDATE_COMPONENT
    assert intent.targetFiles == ["src/components/Hero.jsx"]


def test_quoted_text_finds_component_by_content(manifest):
    intent = classify_heuristic("edit the text 'Build faster'", manifest)
    assert intent.type is EditType.UPDATE_COMPONENT
    assert intent.targetFiles == ["src/components/Hero.jsx"]


@pytest.mark.parametrize("prompt, expected", [
    ("fix the broken login", EditType.FIX_ISSUE),
    ("make it dark", EditType.UPDATE_STYLE),
    ("refactor the hero", EditType.REFACTOR),
    ("start over please", EditType.FULL_REBUILD),
    ("install axios", EditType.ADD_DEPENDENCY),
])
def test_other_intent_groups(manifest, prompt, expected):
    assert classify_heuristic(prompt, manifest).type is expected


def test_style_targets_include_style_files_and_tailwind(manifest):
    intent = classify_heuristic("make it dark", manifest)
    assert intent.targetFiles[:2] == ["src/index.css", "tailwind.config.js"]


def test_dependency_targets_are_package_files(manifest):
    intent = classify_heuristic("install axios", manifest)
    assert intent.targetFiles == ["package.json"]


def test_rebuild_targets_entry_point(manifest):
    intent = classify_heuristic("rebuild the app from scratch", manifest)
    assert intent.type is EditType.FULL_REBUILD
    assert intent.targetFiles == ["src/main.jsx"]
    assert intent.description == "Rebuilding entire application"


def test_unmatched_prompt_defaults_to_entry_point(manifest):
    intent = classify_heuristic("hello there", manifest)
    assert intent.type is EditType.UPDATE_COMPONENT
    assert intent.targetFiles == ["src/main.jsx"]
    assert intent.confidence == 0.3


def test_rules_are_data(manifest):
    rules = (IntentRule(EditType.REFACTOR, _compile(r"tidy"), lambda p, m: ["src/App.jsx"]),)
    intent = classify_heuristic("tidy everything", manifest, rules=rules)
    assert intent.type is EditType.REFACTOR
    assert intent.targetFiles == ["src/App.jsx"]


def test_confidence_is_bounded():
    rule = INTENT_RULES[0]
    score = calculate_confidence("change the header color to a nice deep blue", rule, ["src/Header.jsx"])
    assert score == 1.0
    assert calculate_confidence("tidy", rule, []) == 0.5


def test_component_names_drop_stopwords():
    assert extract_component_names("update the Hero section") == ["hero", "section"]
