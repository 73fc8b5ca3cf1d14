"""Front-matter extraction for Quire.

Documents start with a YAML block fenced by ``---`` lines, followed by
the markup body. This module splits the two and parses the block with
PyYAML.
"""

from __future__ import annotations

import re
from typing import Any

import yaml

from .schema import FieldError, SchemaError

FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^---[ \t]*\r?$\n?", re.DOTALL | re.MULTILINE
)


def extract_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Extract YAML frontmatter from content.

    Args:
        text: Raw file content.

    Returns:
        Tuple of (frontmatter dict, remaining content). Documents without
        a front-matter block yield an empty dict and the unchanged text.

    Raises:
        SchemaError: If the block is not valid YAML, holds an impossible
            date literal, or is not a mapping.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    block = match.group(1)
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        problem = getattr(exc, "problem", None) or "invalid YAML"
        raise SchemaError(
            [FieldError("frontmatter", "YAML mapping", problem)]
        ) from exc
    except ValueError as exc:
        # PyYAML builds unquoted dates eagerly, so 2024-13-45 fails here.
        raise SchemaError(
            [FieldError(_unconstructable_key(block), "date", str(exc))]
        ) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SchemaError(
            [FieldError("frontmatter", "YAML mapping", type(data).__name__)]
        )
    return data, text[match.end() :]


def _unconstructable_key(block: str) -> str:
    """Name the top-level key whose value PyYAML cannot build."""
    node = yaml.compose(block, Loader=yaml.SafeLoader)
    if isinstance(node, yaml.MappingNode):
        constructor = yaml.SafeLoader("")
        for key_node, value_node in node.value:
            try:
                constructor.construct_object(value_node, deep=True)
            except ValueError:
                return str(key_node.value)
    return "frontmatter"
