"""Utility helpers for the EstateHub backend."""

from .message_tree import (
    EMPTY_TREE,
    MessageLeaf,
    MessageNode,
    MessageTree,
    apply_translation_values,
    build_message_tree,
    find_translation_value,
    flatten_messages,
    format_translation_key,
    iter_leaves,
    key_variations,
    lookup_exact,
    resolve_node,
)

__all__ = [
    "EMPTY_TREE",
    "MessageLeaf",
    "MessageNode",
    "MessageTree",
    "apply_translation_values",
    "build_message_tree",
    "find_translation_value",
    "flatten_messages",
    "format_translation_key",
    "iter_leaves",
    "key_variations",
    "lookup_exact",
    "resolve_node",
]
