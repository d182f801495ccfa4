from __future__ import annotations

import pytest

from estatehub.utils.message_tree import (
    MessageLeaf,
    MessageNode,
    apply_translation_values,
    build_message_tree,
    find_translation_value,
    flatten_messages,
    format_translation_key,
    key_variations,
    lookup_exact,
)


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("Foo.barBaz", "Foo Bar Baz"),
        ("Projects.form.unitNumber", "Projects Form Unit Number"),
        ("common", "Common"),
        ("a..b", "A B"),
        ("", ""),
    ],
)
def test_format_translation_key(key: str, expected: str) -> None:
    assert format_translation_key(key) == expected


def test_format_translation_key_is_deterministic() -> None:
    key = "Units.import.pendingTitle"
    assert format_translation_key(key) == format_translation_key(key)


def test_build_message_tree_drops_non_string_leaves() -> None:
    tree = build_message_tree({"a": "x", "b": 3, "c": None, "d": ["y"], "e": {"f": "z"}})

    assert isinstance(tree, MessageNode)
    assert set(tree.children) == {"a", "e"}
    assert tree.children["a"] == MessageLeaf("x")
    assert lookup_exact(tree, "e.f") == "z"


def test_key_variations_are_ordered_and_unique() -> None:
    assert key_variations("Projects.form") == [
        "Projects.form",
        "projects.form",
        "PROJECTS.FORM",
        "Projects.Form",
        "PROJECTS.form",
    ]


def test_exact_match_wins_over_variants_and_nested_matches() -> None:
    tree = build_message_tree(
        {
            "title": "Exact",
            "Title": "Variant",
            "nested": {"title": "Nested"},
        }
    )

    assert find_translation_value(tree, "title") == "Exact"


def test_case_variant_search_walks_each_segment() -> None:
    tree = build_message_tree({"user": {"Profile": {"name": "Nick"}}})

    assert find_translation_value(tree, "User.profile.name") == "Nick"


def test_title_case_variant_is_found() -> None:
    tree = build_message_tree({"Projects": {"Form": {"Name": "Project name"}}})

    assert find_translation_value(tree, "projects.form.name") == "Project name"


def test_recursive_search_uses_full_key_at_each_level() -> None:
    tree = build_message_tree({"a": {"b": {"c": {"target": "found"}}}})

    assert find_translation_value(tree, "target") == "found"
    assert find_translation_value(tree, "c.target") == "found"
    assert find_translation_value(tree, "missing") is None


def test_leaf_tree_matches_any_key_and_missing_tree_matches_none() -> None:
    assert find_translation_value(MessageLeaf("hello"), "anything") == "hello"
    assert find_translation_value(None, "anything") is None


def test_apply_translation_values_replaces_every_occurrence() -> None:
    text = "{{count}} units, {{ count }} total for {{name}}"

    assert apply_translation_values(text, {"count": 3, "name": "Tower A"}) == (
        "3 units, 3 total for Tower A"
    )
    assert apply_translation_values(text, None) == text


def test_apply_translation_values_does_not_expand_backreferences() -> None:
    assert apply_translation_values("Price: {{price}}", {"price": r"\1 THB"}) == r"Price: \1 THB"


def test_flatten_messages_lists_dotted_paths() -> None:
    tree = build_message_tree({"common": {"actions": {"save": "Save"}}, "title": "Home"})

    assert flatten_messages(tree) == {"common.actions.save": "Save", "title": "Home"}
    assert flatten_messages(tree, include_variations=True)["COMMON.ACTIONS.SAVE"] == "Save"
