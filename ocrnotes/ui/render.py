"""Light markdown-to-HTML rendering for displaying extracted text.

Supports ``#``/``##``/``###`` headers, ``**bold**``, ``*italic*``, ``- ``
bullet lists, ``1. `` numbered lists, and paragraphs. The input is escaped
before any markup is added, so user text can never inject tags or scripts.
"""

import re

_UNESCAPED_AMP = re.compile(r"&(?!(?:[A-Za-z][A-Za-z0-9]*|#[0-9]+|#[xX][0-9A-Fa-f]+);)")
_HEADER = re.compile(r"^(#{1,3}) (.*)$")
_BULLET = re.compile(r"^\s*- (.*)$")
_NUMBERED = re.compile(r"^\s*\d+\. (.*)$")
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_ITALIC = re.compile(r"\*(.+?)\*")


def escape_html(text: str) -> str:
    """Escape HTML special characters, leaving existing entities intact.

    Idempotent: escaping already-escaped text returns it unchanged.
    """
    text = _UNESCAPED_AMP.sub("&amp;", text)
    return (
        text.replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#x27;")
    )


def _inline(text: str) -> str:
    text = _BOLD.sub(r"<strong>\1</strong>", text)
    return _ITALIC.sub(r"<em>\1</em>", text)


def markdown_to_html(text: str) -> str:
    """Render extracted markdown as a small, safe HTML fragment.

    Args:
        text: Markdown text as returned by OCR.

    Returns:
        HTML fragment; empty string for empty input.
    """
    if not text:
        return ""

    html: list[str] = []
    paragraph: list[str] = []
    list_tag: str | None = None

    def close_paragraph() -> None:
        if paragraph:
            html.append(f"<p>{'<br />'.join(paragraph)}</p>")
            paragraph.clear()

    def close_list() -> None:
        nonlocal list_tag
        if list_tag:
            html.append(f"</{list_tag}>")
            list_tag = None

    def open_list(tag: str) -> None:
        nonlocal list_tag
        if list_tag != tag:
            close_list()
            html.append(f"<{tag}>")
            list_tag = tag

    for line in escape_html(text).splitlines():
        header = _HEADER.match(line)
        bullet = _BULLET.match(line)
        numbered = _NUMBERED.match(line)

        if header:
            close_paragraph()
            close_list()
            level = len(header.group(1))
            html.append(f"<h{level}>{_inline(header.group(2))}</h{level}>")
        elif bullet:
            close_paragraph()
            open_list("ul")
            html.append(f"<li>{_inline(bullet.group(1))}</li>")
        elif numbered:
            close_paragraph()
            open_list("ol")
            html.append(f"<li>{_inline(numbered.group(1))}</li>")
        elif not line.strip():
            close_paragraph()
            close_list()
        else:
            close_list()
            paragraph.append(_inline(line))

    close_paragraph()
    close_list()
    return "\n".join(html)
