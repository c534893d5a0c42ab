"""Markdown rendering of a document: YAML frontmatter followed by the block tree"""

from datetime import datetime, timezone

import yaml

from docvault.core.models import Block, DocumentFile, InlineRun
from docvault.core.parse import plain_text


LIST_PREFIXES = {"bulletListItem": "- ", "numberedListItem": "1. "}
# bold -> italic -> code -> strike, innermost first
STYLE_MARKERS = (("bold", "**"), ("italic", "*"), ("code", "`"), ("strike", "~~"))


def rfc3339(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_frontmatter(doc: DocumentFile) -> str:
    """Return the --- delimited YAML header for a document's metadata."""
    meta = doc.meta
    fm = {"title": meta.title, "project": meta.project, "tags": list(meta.tags)}
    if meta.aliases:
        fm["aliases"] = list(meta.aliases)
    fm["created"] = rfc3339(meta.created)
    fm["updated"] = rfc3339(meta.updated)
    header = yaml.safe_dump(fm, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return f"---\n{header}---\n"


def format_runs(runs: list[InlineRun]) -> str:
    parts = []
    for run in runs:
        if run.type == "text" and run.text:
            parts.append(format_styled(run))
        elif run.type == "link" and run.content:
            if inner := format_runs(run.content):
                parts.append(f"[{inner}]({run.href})")
    return "".join(parts)


def format_styled(run: InlineRun) -> str:
    text = run.text
    for style, marker in STYLE_MARKERS:
        if run.has_style(style):
            text = f"{marker}{text}{marker}"
    return text


class MarkdownConverter:

    def to_markdown(self, doc: DocumentFile) -> str:
        lines: list[str] = []
        stack = [(block, 0) for block in reversed(doc.blocks or [])]
        while stack:
            block, depth = stack.pop()
            self._convert_block(block, depth, lines)
            stack.extend((child, depth + 1) for child in reversed(block.children))
        return build_frontmatter(doc) + "\n".join(lines)

    def _convert_block(self, block: Block, depth: int, lines: list[str]) -> None:
        kind = block.type
        if kind == "table":
            self._convert_table(block, lines)
            return
        if kind in ("image", "file"):
            self._convert_asset(block, lines)
            return

        runs = block.inline_content()
        if kind == "codeBlock":
            if text := plain_text(runs):
                lines.extend(["", f"```{block.prop_str('language')}", text, "```"])
            return

        text = format_runs(runs)
        if not text:
            return
        indent = "  " * depth
        if kind == "heading":
            level = min(max(block.prop_int("level", 1), 1), 6)
            lines.extend(["", f"{'#' * level} {text}"])
        elif kind in LIST_PREFIXES:
            lines.append(f"{indent}{LIST_PREFIXES[kind]}{text}")
        elif kind == "checkListItem":
            box = "[x]" if block.prop_bool("checked") else "[ ]"
            lines.append(f"{indent}- {box} {text}")
        elif kind == "quote":
            lines.extend(["", f"> {text}"])
        elif kind == "paragraph":
            lines.extend(["", text])
        else:
            lines.append(text)

    @staticmethod
    def _convert_asset(block: Block, lines: list[str]) -> None:
        url = block.prop_str("url")
        if not url:
            return
        if block.type == "image":
            lines.extend(["", f"![{block.prop_str('caption')}]({url})"])
        else:
            lines.extend(["", f"[{block.prop_str('name') or 'file'}]({url})"])

    @staticmethod
    def _convert_table(block: Block, lines: list[str]) -> None:
        table = block.table_content()
        if table is None or not table.rows:
            return
        lines.append("")
        for i, row in enumerate(table.rows):
            cells = [format_runs(cell.content) for cell in row.cells]
            lines.append("| " + " | ".join(cells) + " |")
            if i == 0:
                lines.append("| " + " | ".join("---" for _ in cells) + " |")


def to_markdown(doc: DocumentFile) -> str:
    return MarkdownConverter().to_markdown(doc)
