"""Render Notion API block trees as Markdown, plus excerpt extraction."""

from __future__ import annotations

import re
from typing import Any

LIST_TYPES = ("bulleted_list_item", "numbered_list_item", "to_do")
HEADINGS = {"heading_1": "#", "heading_2": "##", "heading_3": "###"}


def rich_text_to_markdown(parts: list[dict[str, Any]] | None) -> str:
    out = []
    for part in parts or []:
        text = part.get("plain_text", "")
        if not text:
            continue
        annotations = part.get("annotations") or {}
        if annotations.get("code"):
            text = f"`{text}`"
        if annotations.get("bold"):
            text = f"**{text}**"
        if annotations.get("italic"):
            text = f"*{text}*"
        if annotations.get("strikethrough"):
            text = f"~~{text}~~"
        if part.get("href"):
            text = f"[{text}]({part['href']})"
        out.append(text)
    return "".join(out)


def _plain(parts: list[dict[str, Any]] | None) -> str:
    return "".join(p.get("plain_text", "") for p in parts or [])


def _file_url(value: dict[str, Any]) -> str:
    kind = value.get("type")
    if kind in ("external", "file"):
        return (value.get(kind) or {}).get("url", "")
    return ""


def _indent(markdown: str) -> str:
    return "\n".join(f"  {line}" if line else line for line in markdown.split("\n"))


def block_to_markdown(block: dict[str, Any], number: int = 1) -> str:
    """One block and its ``children``. ``number`` is the position within a numbered list."""
    kind = block.get("type", "")
    value = block.get(kind) or {}
    text = rich_text_to_markdown(value.get("rich_text"))

    if kind == "paragraph":
        markdown = f"{text}\n\n" if text else ""
    elif kind in HEADINGS:
        markdown = f"{HEADINGS[kind]} {text}\n\n"
    elif kind == "bulleted_list_item":
        markdown = f"- {text}\n"
    elif kind == "numbered_list_item":
        markdown = f"{number}. {text}\n"
    elif kind == "to_do":
        markdown = f"- [{'x' if value.get('checked') else ' '}] {text}\n"
    elif kind == "quote":
        markdown = f"> {text}\n\n"
    elif kind == "code":
        markdown = f"```{value.get('language', '')}\n{_plain(value.get('rich_text'))}\n```\n\n"
    elif kind == "image":
        markdown = f"![{_plain(value.get('caption'))}]({_file_url(value)})\n\n"
    elif kind == "divider":
        markdown = "---\n\n"
    elif kind == "callout":
        icon = (value.get("icon") or {}).get("emoji") or "💡"
        markdown = f"> {icon} {text}\n\n"
    elif kind == "bookmark":
        url = value.get("url", "")
        markdown = f"[{_plain(value.get('caption')) or url}]({url})\n\n"
    else:
        markdown = f"{text}\n\n" if text else ""

    children = blocks_to_markdown(block.get("children") or [], strip=False)
    if kind in LIST_TYPES:
        return markdown + _indent(children)
    return markdown + children


def blocks_to_markdown(blocks: list[dict[str, Any]], strip: bool = True) -> str:
    """Join sibling blocks, numbering consecutive numbered items and closing list runs."""
    out = []
    number = 0
    previous = ""
    for block in blocks:
        kind = block.get("type", "")
        number = number + 1 if kind == "numbered_list_item" else 0
        if previous in LIST_TYPES and kind not in LIST_TYPES:
            out.append("\n")
        out.append(block_to_markdown(block, number or 1))
        previous = kind
    markdown = "".join(out)
    return markdown.strip() if strip else markdown


_HEADER = re.compile(r"#+\s")
_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]+\)")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_CODE = re.compile(r"`{1,3}[^`]*`{1,3}")
_QUOTE = re.compile(r">\s")
_LIST_MARKER = re.compile(r"[-*+]\s")


def extract_excerpt(markdown: str, max_length: int = 200) -> str:
    """First paragraph of the text with formatting removed, cut at a word boundary."""
    text = _HEADER.sub("", markdown)
    text = text.replace("**", "").replace("*", "")
    text = _IMAGE.sub("", text)
    text = _LINK.sub(r"\1", text)
    text = _CODE.sub("", text)
    text = _QUOTE.sub("", text)
    text = _LIST_MARKER.sub("", text).strip()

    first = text.split("\n\n")[0]
    if len(first) <= max_length:
        return first
    truncated = first[:max_length]
    last_space = truncated.rfind(" ")
    return (truncated[:last_space] if last_space > 0 else truncated) + "..."
