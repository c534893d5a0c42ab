"""Vault document models: block tree, inline runs, table content, metadata, and their invariants"""

import json
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_serializer

from docvault.core.utils.paths import validate_alias
from docvault.exceptions import DocumentValidationError


MAX_BLOCK_DEPTH = 20
MAX_TITLE_LENGTH = 512
MAX_TAG_LENGTH = 64
CLOCK_SKEW = timedelta(minutes=1)

TAG_RE = re.compile(r'^[a-z0-9_-]+$')
ALIAS_RE = re.compile(r'^[A-Za-z0-9_-]{2,128}$')
STYLE_KEYS = ("bold", "italic", "code", "strike")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _omit_empty(data: dict, keys: tuple[str, ...]) -> dict:
    return {k: v for k, v in data.items() if k not in keys or v not in (None, "", [], {})}


class InlineRun(BaseModel):
    """A styled span of text, or a link wrapping nested runs."""
    model_config = ConfigDict(extra="allow")

    type: str = ""
    text: str = ""
    styles: Optional[dict[str, Any]] = None     # required (may be empty) for text runs
    href: str = ""
    content: list["InlineRun"] = Field(default_factory=list)

    @model_serializer(mode="wrap")
    def _serialize(self, handler):
        data = _omit_empty(handler(self), ("text", "href", "content"))
        if self.styles is None:
            data.pop("styles", None)
        return data

    def has_style(self, name: str) -> bool:
        return bool(self.styles) and self.styles.get(name) is True


class TableCell(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = "tableCell"
    content: list[InlineRun] = Field(default_factory=list)
    props: dict[str, Any] = Field(default_factory=dict)


class TableRow(BaseModel):
    model_config = ConfigDict(extra="allow")

    cells: list[TableCell] = Field(default_factory=list)

    @field_validator("cells", mode="before")
    @classmethod
    def _wrap_bare_cells(cls, v):
        # older editor versions stored each cell as a bare list of runs
        if isinstance(v, list):
            return [{"type": "tableCell", "content": c} if isinstance(c, list) else c for c in v]
        return v


class TableContent(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str = "tableContent"
    column_widths: Optional[list[Any]] = Field(default=None, alias="columnWidths")
    rows: list[TableRow] = Field(default_factory=list)

    @model_serializer(mode="wrap")
    def _serialize(self, handler):
        data = handler(self)
        widths = data.pop("column_widths", data.pop("columnWidths", None))
        if widths is not None:
            data["columnWidths"] = widths
        return data


class Block(BaseModel):
    """One node of the document tree. Props and content shape depend on type."""
    model_config = ConfigDict(extra="allow")

    id: str = ""
    type: str = ""
    props: dict[str, Any] = Field(default_factory=dict)
    content: Union[list[InlineRun], TableContent, None] = None
    children: list["Block"] = Field(default_factory=list)

    @field_validator("content", mode="before")
    @classmethod
    def _empty_content(cls, v):
        return None if v == [] else v

    @field_validator("props", "children", mode="before")
    @classmethod
    def _null_collections(cls, v, info):
        if v is None:
            return {} if info.field_name == "props" else []
        return v

    @model_serializer(mode="wrap")
    def _serialize(self, handler):
        return _omit_empty(handler(self), ("props", "content", "children"))

    def inline_content(self) -> list[InlineRun]:
        """Inline runs of a text-bearing block; empty for tables and empty blocks."""
        return self.content if isinstance(self.content, list) else []

    def table_content(self) -> Optional[TableContent]:
        return self.content if isinstance(self.content, TableContent) else None

    def prop_str(self, key: str, default: str = "") -> str:
        val = self.props.get(key)
        return val if isinstance(val, str) else default

    def prop_bool(self, key: str, default: bool = False) -> bool:
        val = self.props.get(key)
        return val if isinstance(val, bool) else default

    def prop_int(self, key: str, default: int = 0) -> int:
        val = self.props.get(key)
        if isinstance(val, bool):
            return default
        if isinstance(val, (int, float)):
            return int(val)
        if isinstance(val, str) and val.strip().isdigit():
            return int(val)
        return default


class DocumentMeta(BaseModel):
    project: str
    title: str
    tags: list[str] = Field(default_factory=list)
    aliases: list[str] = Field(default_factory=list)
    created: datetime
    updated: datetime

    @field_validator("tags", "aliases", mode="before")
    @classmethod
    def _null_list(cls, v):
        return [] if v is None else v

    @field_validator("created", "updated")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v

    @model_serializer(mode="wrap")
    def _serialize(self, handler):
        return _omit_empty(handler(self), ("aliases",))

    def normalize_tags(self) -> None:
        """Lower-case, trim and de-duplicate tags in place, keeping first-seen order."""
        seen = dict.fromkeys(t.strip().lower() for t in self.tags)
        self.tags = [t for t in seen if t]

    def validate_meta(self) -> None:
        try:
            validate_alias(self.project)
        except DocumentValidationError as e:
            raise DocumentValidationError(f"invalid project: {e}", field="project") from e
        _validate_title(self.title)
        _validate_tags(self.tags)
        _validate_aliases(self.aliases)
        _validate_timestamps(self.created, self.updated)


class DocumentFile(BaseModel):
    """The unit of persistence: one vault JSON file."""
    meta: DocumentMeta
    blocks: Optional[list[Block]] = None

    @classmethod
    def new(cls, project: str, title: str, tags: Optional[list[str]] = None) -> "DocumentFile":
        """An empty document stamped with the current time."""
        now = utc_now()
        return cls(
            meta=DocumentMeta(
                project=project.strip().lower(),
                title=title.strip(),
                tags=list(tags or []),
                aliases=[],
                created=now,
                updated=now,
            ),
            blocks=[],
        )

    def touch(self) -> None:
        self.meta.updated = utc_now()

    def validate_document(self) -> None:
        """Raise DocumentValidationError for the first violated invariant."""
        try:
            self.meta.validate_meta()
        except DocumentValidationError as e:
            raise DocumentValidationError(f"meta validation failed: {e}", field=e.field) from e
        if self.blocks is None:
            raise DocumentValidationError("blocks cannot be null (use an empty list for an empty document)",
                                          field="blocks")
        _validate_blocks(self.blocks)

    def to_json(self) -> bytes:
        """Serialize with normalized tags; the document itself is left unchanged."""
        doc = self.model_copy(deep=True)
        doc.meta.normalize_tags()
        return doc.model_dump_json(indent=2).encode("utf-8")

    @classmethod
    def from_json(cls, data: Union[bytes, str]) -> "DocumentFile":
        """Decode, normalize tags and validate. On-disk content is never returned unchecked."""
        try:
            doc = cls.model_validate_json(data)
        except (ValidationError, json.JSONDecodeError, ValueError) as e:
            raise DocumentValidationError(f"unmarshaling JSON: {e}") from e
        doc.meta.normalize_tags()
        doc.validate_document()
        return doc


def _validate_title(title: str) -> None:
    if not title:
        raise DocumentValidationError("invalid title: title cannot be empty", field="title")
    if len(title) > MAX_TITLE_LENGTH:
        raise DocumentValidationError(
            f"invalid title: title cannot exceed {MAX_TITLE_LENGTH} characters, got {len(title)}", field="title")
    if "\n" in title or "\r" in title:
        raise DocumentValidationError("invalid title: title cannot contain newlines", field="title")


def _validate_tags(tags: list[str]) -> None:
    seen: set[str] = set()
    for tag in tags:
        normalized = tag.strip().lower()
        if not normalized:
            raise DocumentValidationError("invalid tags: empty tag not allowed", field="tags")
        if len(normalized) > MAX_TAG_LENGTH:
            raise DocumentValidationError(f"invalid tags: tag exceeds {MAX_TAG_LENGTH} characters: {tag}", field="tags")
        if normalized in seen:
            raise DocumentValidationError(f"invalid tags: duplicate tag: {tag}", field="tags")
        seen.add(normalized)
        if not TAG_RE.match(normalized):
            raise DocumentValidationError(
                f"invalid tags: invalid tag format (must be lowercase alphanumeric + underscore/hyphen): {tag}",
                field="tags")


def _validate_aliases(aliases: list[str]) -> None:
    for alias in aliases:
        if not 2 <= len(alias) <= 128:
            raise DocumentValidationError(f"invalid aliases: alias must be 2-128 characters: {alias}", field="aliases")
        if not ALIAS_RE.match(alias):
            raise DocumentValidationError(f"invalid aliases: invalid alias format: {alias}", field="aliases")


def _validate_timestamps(created: datetime, updated: datetime) -> None:
    if updated < created:
        raise DocumentValidationError(
            f"invalid timestamps: updated timestamp ({updated.isoformat()}) "
            f"cannot be before created timestamp ({created.isoformat()})", field="updated")
    limit = utc_now() + CLOCK_SKEW
    if created > limit:
        raise DocumentValidationError("invalid timestamps: created timestamp cannot be in the future", field="created")
    if updated > limit:
        raise DocumentValidationError("invalid timestamps: updated timestamp cannot be in the future", field="updated")


def _validate_runs(runs: list[InlineRun]) -> None:
    # link nesting is bounded by the JSON itself; runs are shallow in practice
    for i, run in enumerate(runs):
        if not run.type:
            raise DocumentValidationError(f"content[{i}]: type is required", field="content")
        if run.type == "link":
            if not run.href:
                raise DocumentValidationError(f"content[{i}]: link must have href", field="content")
            if not run.content:
                raise DocumentValidationError(f"content[{i}]: link must have nested content", field="content")
            try:
                _validate_runs(run.content)
            except DocumentValidationError as e:
                raise DocumentValidationError(f"content[{i}] nested: {e}", field="content") from e
        elif run.type == "text" and run.styles is None:
            raise DocumentValidationError(f"content[{i}]: text must have styles map (can be empty)", field="content")


def _validate_block(block: Block) -> None:
    if not block.id:
        raise DocumentValidationError("block ID cannot be empty", field="blocks")
    if not block.type:
        raise DocumentValidationError("block type cannot be empty", field="blocks")
    _validate_runs(block.inline_content())
    table = block.table_content()
    if table is not None:
        for r, row in enumerate(table.rows):
            for c, cell in enumerate(row.cells):
                try:
                    _validate_runs(cell.content)
                except DocumentValidationError as e:
                    raise DocumentValidationError(f"row {r} cell {c}: {e}", field="content") from e


def _validate_blocks(blocks: list[Block]) -> None:
    """Pre-order walk with an explicit stack; depth is counted, never inferred from recursion."""
    stack = [(block, 0, f"block {i}") for i, block in reversed(list(enumerate(blocks)))]
    while stack:
        block, depth, where = stack.pop()
        if depth > MAX_BLOCK_DEPTH:
            raise DocumentValidationError(
                f"{where} validation failed: block nesting exceeds maximum depth of {MAX_BLOCK_DEPTH}", field="blocks")
        try:
            _validate_block(block)
        except DocumentValidationError as e:
            raise DocumentValidationError(f"{where} validation failed: {e}", field=e.field) from e
        for j, child in reversed(list(enumerate(block.children))):
            stack.append((child, depth + 1, f"{where}: child block {j}"))
