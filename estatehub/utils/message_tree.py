"""Message tree helpers shared by the translator, the validator and the CLI.

Locale documents are nested JSON objects whose leaves are strings. They are
converted once into a small tagged union (:class:`MessageLeaf` /
:class:`MessageNode`) so every walk below only has two cases to handle.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True, slots=True)
class MessageLeaf:
    text: str


@dataclass(frozen=True, slots=True)
class MessageNode:
    children: Mapping[str, "MessageTree"]


MessageTree = Union[MessageLeaf, MessageNode]

EMPTY_TREE = MessageNode(children={})

_KEY_SPLIT_PATTERN = re.compile(r"\.|(?=[A-Z])")


def build_message_tree(raw: Any) -> MessageTree | None:
    """Convert decoded JSON into a message tree.

    Strings become leaves and objects become nodes. Any other value (numbers,
    lists, null) is dropped, so lookups treat it as absent.
    """
    if isinstance(raw, str):
        return MessageLeaf(raw)
    if isinstance(raw, Mapping):
        children: dict[str, MessageTree] = {}
        for key, value in raw.items():
            child = build_message_tree(value)
            if child is not None:
                children[str(key)] = child
        return MessageNode(children)
    return None


def format_translation_key(key: str) -> str:
    """Turn ``Projects.form.unitNumber`` into ``Projects Form Unit Number``."""
    tokens = [token for token in _KEY_SPLIT_PATTERN.split(key or "") if token]
    return " ".join(token[:1].upper() + token[1:].lower() for token in tokens).strip()


def _title_segments(key: str) -> str:
    return ".".join(part[:1].upper() + part[1:].lower() for part in key.split("."))


def _first_segment(transform: Callable[[str], str]) -> Callable[[str], str]:
    def apply(key: str) -> str:
        head, dot, rest = key.partition(".")
        return transform(head) + dot + rest

    return apply


KEY_TRANSFORMS: tuple[tuple[str, Callable[[str], str]], ...] = (
    ("identity", lambda key: key),
    ("lower", str.lower),
    ("upper", str.upper),
    ("title_segments", _title_segments),
    ("first_segment_lower", _first_segment(str.lower)),
    ("first_segment_upper", _first_segment(str.upper)),
)


def key_variations(key: str) -> list[str]:
    """Return the case variants of ``key`` in lookup order, without duplicates."""
    variations: list[str] = []
    for _, transform in KEY_TRANSFORMS:
        candidate = transform(key)
        if candidate not in variations:
            variations.append(candidate)
    return variations


def resolve_node(tree: MessageTree | None, path: str | None) -> MessageTree | None:
    """Walk ``path`` segment by segment; an empty path returns ``tree`` itself."""
    if tree is None or not path:
        return tree
    current: MessageTree | None = tree
    for part in path.split("."):
        if not isinstance(current, MessageNode):
            return None
        current = current.children.get(part)
        if current is None:
            return None
    return current


def lookup_exact(tree: MessageTree | None, key: str) -> str | None:
    """Return the leaf text stored at exactly ``key``, if any."""
    node = resolve_node(tree, key) if key else None
    if isinstance(node, MessageLeaf):
        return node.text
    return None


def _lookup_casefold(tree: MessageTree, key: str) -> str | None:
    current: MessageTree | None = tree
    for part in key.split("."):
        if not isinstance(current, MessageNode):
            return None
        child = current.children.get(part)
        if child is None:
            folded = part.casefold()
            child = next(
                (value for name, value in current.children.items() if name.casefold() == folded),
                None,
            )
        if child is None:
            return None
        current = child
    if isinstance(current, MessageLeaf):
        return current.text
    return None


def find_translation_value(tree: MessageTree | None, key: str) -> str | None:
    """Search ``tree`` for ``key`` using progressively looser matching.

    Order: exact path, each entry of :data:`KEY_TRANSFORMS`, a per-segment
    case-insensitive walk, then the same full key inside every nested node in
    insertion order. A bare leaf matches whatever key is asked for.
    """
    if tree is None:
        return None
    if isinstance(tree, MessageLeaf):
        return tree.text
    if not key:
        return None

    exact = lookup_exact(tree, key)
    if exact is not None:
        return exact

    for variant in key_variations(key):
        match = lookup_exact(tree, variant)
        if match is not None:
            return match

    match = _lookup_casefold(tree, key)
    if match is not None:
        return match

    for child in tree.children.values():
        if isinstance(child, MessageNode):
            found = find_translation_value(child, key)
            if found is not None:
                return found
    return None


def apply_translation_values(text: str, values: Mapping[str, Any] | None) -> str:
    """Replace every ``{{ name }}`` token with ``str(values[name])``."""
    if not values:
        return text
    for name, value in values.items():
        pattern = re.compile(r"\{\{\s*" + re.escape(str(name)) + r"\s*\}\}")
        replacement = str(value)
        text = pattern.sub(lambda _match: replacement, text)
    return text


def iter_leaves(tree: MessageTree | None, prefix: str = "") -> Iterator[tuple[str, str]]:
    """Yield ``(dotted_path, text)`` for every leaf in document order."""
    if tree is None:
        return
    if isinstance(tree, MessageLeaf):
        yield prefix, tree.text
        return
    for name, child in tree.children.items():
        path = f"{prefix}.{name}" if prefix else name
        yield from iter_leaves(child, path)


def flatten_messages(
    tree: MessageTree | None,
    *,
    include_variations: bool = False,
) -> dict[str, str]:
    """Map dotted leaf paths (optionally all their case variants) to texts."""
    flat: dict[str, str] = {}
    for path, text in iter_leaves(tree):
        if include_variations:
            for variant in key_variations(path):
                flat.setdefault(variant, text)
        flat[path] = text
    return flat
