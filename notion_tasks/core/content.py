"""
Conversion of note bodies to Notion block objects.
"""
from __future__ import annotations

from typing import Any

import frontmatter
from markdown_it import MarkdownIt
from markdown_it.tree import SyntaxTreeNode

from .exceptions import ContentTranslationError

__all__ = [
    "Block",
    "RichText",
    "ContentTranslator",
    "strip_front_matter",
    "markdown_to_blocks",
]

Block = dict[str, Any]
RichText = dict[str, Any]

MAX_TEXT_LENGTH = 2000
"""
Max length of a single rich text segment accepted by Notion.
"""

CODE_LANGUAGES = {
    "bash",
    "c",
    "c#",
    "c++",
    "css",
    "diff",
    "docker",
    "go",
    "graphql",
    "html",
    "java",
    "javascript",
    "json",
    "kotlin",
    "latex",
    "makefile",
    "markdown",
    "mermaid",
    "plain text",
    "powershell",
    "python",
    "ruby",
    "rust",
    "scala",
    "shell",
    "sql",
    "swift",
    "toml",
    "typescript",
    "xml",
    "yaml",
}
"""
Subset of code block languages known to Notion.
"""

LANGUAGE_ALIASES = {
    "cpp": "c++",
    "cs": "c#",
    "csharp": "c#",
    "dockerfile": "docker",
    "js": "javascript",
    "md": "markdown",
    "py": "python",
    "rb": "ruby",
    "rs": "rust",
    "sh": "shell",
    "text": "plain text",
    "ts": "typescript",
    "yml": "yaml",
    "zsh": "shell",
}


def strip_front_matter(text: str) -> str:
    """
    Return note text without its front-matter block.
    """
    try:
        post = frontmatter.loads(text)
    except Exception as e:
        raise ContentTranslationError(
            f"Failed to parse front-matter: {e}"
        ) from e

    return post.content


def markdown_to_blocks(markdown: str) -> list[Block]:
    """
    Convert markdown to a list of Notion blocks, preserving source order.
    """
    return ContentTranslator().translate_markdown(markdown)


class ContentTranslator:
    """
    Converts a note's text to Notion blocks.

    Supports headings, paragraphs, bulleted/numbered/to-do lists (nested),
    code blocks, quotes, dividers, tables and external images. Inline
    bold, italic, strikethrough, code and links are carried as rich text
    annotations.
    """

    _md: MarkdownIt

    def __init__(self):
        self._md = (
            MarkdownIt("commonmark").enable("table").enable("strikethrough")
        )

    def translate(self, text: str) -> list[Block]:
        """
        Strip front-matter from note text and convert the rest.
        """
        return self.translate_markdown(strip_front_matter(text))

    def translate_markdown(self, markdown: str) -> list[Block]:
        try:
            tree = SyntaxTreeNode(self._md.parse(markdown))
            return self._blocks(tree.children)
        except ContentTranslationError:
            raise
        except Exception as e:
            raise ContentTranslationError(
                f"Failed to translate markdown: {e}"
            ) from e

    def _blocks(self, nodes: list[SyntaxTreeNode]) -> list[Block]:
        blocks: list[Block] = []
        for node in nodes:
            blocks += self._block(node)
        return blocks

    def _block(self, node: SyntaxTreeNode) -> list[Block]:
        match node.type:
            case "heading":
                level = min(int(node.tag[1]), 3)
                return [
                    _block(f"heading_{level}", rich_text=self._inline(node))
                ]
            case "paragraph":
                return [self._paragraph(node)]
            case "bullet_list":
                return [
                    self._list_item(item, "bulleted_list_item")
                    for item in node.children
                ]
            case "ordered_list":
                return [
                    self._list_item(item, "numbered_list_item")
                    for item in node.children
                ]
            case "fence" | "code_block":
                return [self._code(node)]
            case "blockquote":
                return [self._container(node.children, "quote")]
            case "hr":
                return [_block("divider")]
            case "table":
                return [self._table(node)]
            case "html_block":
                return [
                    _block("paragraph", rich_text=_text(node.content.strip()))
                ]
            case _:
                raise ContentTranslationError(
                    f"Unsupported markdown element: {node.type}"
                )

    def _paragraph(self, node: SyntaxTreeNode) -> Block:
        inline = node.children[0] if node.children else None

        # paragraph consisting of a single external image
        if inline is not None and len(inline.children) == 1:
            child = inline.children[0]
            src = str(child.attrs.get("src", ""))
            if child.type == "image" and src.startswith(("http://", "https://")):
                return _block(
                    "image", type="external", external={"url": src}
                )

        return _block("paragraph", rich_text=self._inline(node))

    def _list_item(self, node: SyntaxTreeNode, block_type: str) -> Block:
        block = self._container(node.children, block_type)

        # promote "[ ]" / "[x]" items to to-do blocks
        rich_text = block[block_type]["rich_text"]
        if rich_text and rich_text[0]["type"] == "text":
            content: str = rich_text[0]["text"]["content"]
            marker = content[:4]
            if marker in ("[ ] ", "[x] ", "[X] "):
                rich_text[0]["text"]["content"] = content[4:]
                body = block.pop(block_type)
                body["checked"] = marker != "[ ] "
                block["type"] = "to_do"
                block["to_do"] = body

        return block

    def _container(
        self, children: list[SyntaxTreeNode], block_type: str
    ) -> Block:
        """
        Block whose text is its first paragraph, with any further content
        nested as children.
        """
        rich_text: list[RichText] = []
        rest = children

        if children and children[0].type == "paragraph":
            rich_text = self._inline(children[0])
            rest = children[1:]

        block = _block(block_type, rich_text=rich_text)
        nested = self._blocks(rest)
        if nested:
            block[block_type]["children"] = nested

        return block

    def _code(self, node: SyntaxTreeNode) -> Block:
        info = (node.info or "").strip().split(" ")[0].lower()
        language = LANGUAGE_ALIASES.get(info, info)
        if language not in CODE_LANGUAGES:
            language = "plain text"

        return _block(
            "code",
            rich_text=_text(node.content.rstrip("\n")),
            language=language,
        )

    def _table(self, node: SyntaxTreeNode) -> Block:
        rows: list[Block] = []
        for section in node.children:
            for row in section.children:
                cells = [self._inline(cell) for cell in row.children]
                rows.append(_block("table_row", cells=cells))

        width = max((len(r["table_row"]["cells"]) for r in rows), default=0)

        return _block(
            "table",
            table_width=width,
            has_column_header=True,
            has_row_header=False,
            children=rows,
        )

    def _inline(self, node: SyntaxTreeNode) -> list[RichText]:
        """
        Get rich text of a block-level node containing inline content.
        """
        rich_text: list[RichText] = []
        for child in node.children:
            if child.type == "inline":
                _walk_inline(child.children, _Style(), rich_text)
        return rich_text


class _Style:
    """
    Inline annotations in effect at a point in the inline tree.
    """

    def __init__(
        self,
        bold: bool = False,
        italic: bool = False,
        strikethrough: bool = False,
        link: str | None = None,
    ):
        self.bold = bold
        self.italic = italic
        self.strikethrough = strikethrough
        self.link = link

    def with_(self, **kwargs: Any) -> _Style:
        style = _Style(self.bold, self.italic, self.strikethrough, self.link)
        for key, value in kwargs.items():
            setattr(style, key, value)
        return style


def _walk_inline(
    nodes: list[SyntaxTreeNode], style: _Style, out: list[RichText]
):
    for node in nodes:
        match node.type:
            case "text":
                out += _text(node.content, style)
            case "code_inline":
                out += _text(node.content, style, code=True)
            case "softbreak":
                out += _text(" ", style)
            case "hardbreak":
                out += _text("\n", style)
            case "strong":
                _walk_inline(node.children, style.with_(bold=True), out)
            case "em":
                _walk_inline(node.children, style.with_(italic=True), out)
            case "s":
                _walk_inline(
                    node.children, style.with_(strikethrough=True), out
                )
            case "link":
                href = str(node.attrs.get("href", ""))
                _walk_inline(node.children, style.with_(link=href), out)
            case "image":
                # image within text: keep alt text only
                _walk_inline(node.children, style, out)
            case "html_inline":
                out += _text(node.content, style)
            case _:
                raise ContentTranslationError(
                    f"Unsupported inline element: {node.type}"
                )


def _text(
    content: str, style: _Style | None = None, *, code: bool = False
) -> list[RichText]:
    """
    Create rich text segments, splitting content exceeding Notion's limit.
    """
    style = style or _Style()

    # notion only accepts absolute links
    link = (
        {"url": style.link}
        if style.link and style.link.startswith(("http://", "https://"))
        else None
    )

    segments: list[RichText] = []
    for start in range(0, len(content), MAX_TEXT_LENGTH):
        segments.append(
            {
                "type": "text",
                "text": {
                    "content": content[start : start + MAX_TEXT_LENGTH],
                    "link": link,
                },
                "annotations": {
                    "bold": style.bold,
                    "italic": style.italic,
                    "strikethrough": style.strikethrough,
                    "underline": False,
                    "code": code,
                    "color": "default",
                },
            }
        )

    return segments


def _block(block_type: str, **body: Any) -> Block:
    return {"object": "block", "type": block_type, block_type: body}
