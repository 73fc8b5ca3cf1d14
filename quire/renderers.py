"""Markup renderers for Quire.

Each renderer implements the MarkupRenderer protocol for one kind of
document. Renderers are looked up by file suffix through a registry, so
new markup formats can be added without touching the build.

Key classes:
- MarkdownRenderer: Renders Markdown to HTML with Pygments highlighting.
- MdxRenderer: Renders MDX documents, dropping ESM import/export lines.
- RendererRegistry: Maps file suffixes to renderers.
"""

from __future__ import annotations

import re
from pathlib import Path

import mistune
from markupsafe import escape
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

DEFAULT_HIGHLIGHT_THEME = "material"

_MDX_ESM_RE = re.compile(r"^(?:import|export)\s.*$\n?", re.MULTILINE)


def _generate_heading_id(text: str) -> str:
    """Generate a URL-friendly ID from heading text.

    Args:
        text: The heading text.

    Returns:
        URL-friendly slug suitable for anchor links.
    """
    slug = re.sub(r"<[^>]+>", "", text).lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s]+", "-", slug)
    return slug.strip("-")


def _formatter(theme: str) -> HtmlFormatter:
    try:
        return HtmlFormatter(style=theme, cssclass="highlight")
    except ClassNotFound:
        return HtmlFormatter(cssclass="highlight")


def pygments_css(theme: str = DEFAULT_HIGHLIGHT_THEME) -> str:
    """Return Pygments CSS rules for the ``.highlight`` class.

    Unknown themes fall back to the Pygments default style.
    """
    return _formatter(theme).get_style_defs(".highlight")


class _HighlightRenderer(mistune.HTMLRenderer):
    """mistune renderer adding heading anchors and Pygments code blocks."""

    def __init__(self, theme: str):
        super().__init__(escape=False)
        self.theme = theme
        self._heading_id_counts: dict[str, int] = {}

    def heading(self, text: str, level: int, **attrs) -> str:
        base_id = _generate_heading_id(text)
        if base_id in self._heading_id_counts:
            self._heading_id_counts[base_id] += 1
            heading_id = f"{base_id}-{self._heading_id_counts[base_id]}"
        else:
            self._heading_id_counts[base_id] = 0
            heading_id = base_id
        return f'<h{level} id="{heading_id}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        """Render a code block with Pygments syntax highlighting.

        Args:
            code: The code content.
            info: Language identifier (e.g., 'python', 'php').

        Returns:
            HTML string with highlighted code.
        """
        lang = info.split()[0] if info and info.strip() else None
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=True)
            except ClassNotFound:
                lexer = None
            if lexer is not None:
                return highlight(code, lexer, _formatter(self.theme))
        lang_class = f' class="language-{escape(lang)}"' if lang else ""
        return f"<pre><code{lang_class}>{escape(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown content to HTML.

    Attributes:
        highlight_theme: Pygments style name used for fenced code blocks.
    """

    suffixes = (".md", ".markdown")

    def __init__(self, highlight_theme: str = DEFAULT_HIGHLIGHT_THEME):
        self.highlight_theme = highlight_theme

    def render(self, markup: str) -> str:
        renderer = _HighlightRenderer(self.highlight_theme)
        markdown = mistune.create_markdown(
            renderer=renderer, plugins=["strikethrough", "footnotes", "table", "url"]
        )
        return markdown(markup)


class MdxRenderer(MarkdownRenderer):
    """Renders MDX documents as Markdown.

    Top-level ESM ``import``/``export`` statements are removed first; JSX
    components are passed through as raw HTML and not evaluated.
    """

    suffixes = (".mdx",)

    def render(self, markup: str) -> str:
        return super().render(strip_esm(markup))


def strip_esm(markup: str) -> str:
    """Remove top-level ESM import/export lines outside fenced code."""
    lines: list[str] = []
    in_fence = False
    for line in markup.splitlines(keepends=True):
        if line.lstrip().startswith(("```", "~~~")):
            in_fence = not in_fence
        if not in_fence and _MDX_ESM_RE.match(line):
            continue
        lines.append(line)
    return "".join(lines)


class RendererRegistry:
    """Registry mapping file suffixes to markup renderers.

    Later registrations for the same suffix replace earlier ones.
    """

    def __init__(self, highlight_theme: str = DEFAULT_HIGHLIGHT_THEME):
        self._renderers: dict[str, object] = {}
        self.register(MarkdownRenderer(highlight_theme))
        self.register(MdxRenderer(highlight_theme))

    def register(self, renderer, suffixes: tuple[str, ...] | None = None) -> None:
        """Register a renderer for its suffixes.

        Args:
            renderer: A MarkupRenderer implementation.
            suffixes: Suffixes to bind; defaults to ``renderer.suffixes``.
        """
        for suffix in suffixes or getattr(renderer, "suffixes", ()):
            self._renderers[suffix.lower()] = renderer

    def for_path(self, path: Path):
        """Return the renderer for a document, or None if unsupported."""
        return self._renderers.get(path.suffix.lower())
