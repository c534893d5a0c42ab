"""Database table definitions for the document index, tags and search content"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlmodel import Field, Relationship, SQLModel


def utc_now() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo on the way back anyway."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DocumentTag(SQLModel, table=True):
    """Tag attached to an indexed document"""
    __tablename__ = "doc_tag"
    path: str = Field(sa_column=Column(String, ForeignKey("doc.path", ondelete="CASCADE"), primary_key=True))
    tag: str = Field(primary_key=True)


class Document(SQLModel, table=True):
    """Index row mirroring one vault file; the only carrier of soft-delete state"""
    __tablename__ = "doc"
    path: str = Field(primary_key=True)
    project_alias: str = Field(..., index=True, nullable=False)
    title: str = Field(default="", sa_column=Column(Text, nullable=False))
    mtime_ns: int = Field(default=0, nullable=False)
    size_bytes: int = Field(default=0, nullable=False)
    has_code: bool = Field(default=False, nullable=False)
    has_images: bool = Field(default=False, nullable=False)
    has_links: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=False), nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=False), nullable=False))
    deleted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False), nullable=True))
    tag_rows: List[DocumentTag] = Relationship(
        sa_relationship_kwargs={"lazy": "selectin", "viewonly": True, "order_by": "DocumentTag.tag"})

    @property
    def tags(self) -> list[str]:
        return [t.tag for t in self.tag_rows]

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

    def belongs_to_project(self, alias: str) -> bool:
        return self.project_alias == alias


class DocumentContent(SQLModel, table=True):
    """Flattened search text for one document, as produced by the parser"""
    __tablename__ = "doc_content"
    path: str = Field(sa_column=Column(String, ForeignKey("doc.path", ondelete="CASCADE"), primary_key=True))
    title: str = Field(default="", sa_column=Column(Text, nullable=False))
    headings: str = Field(default="", sa_column=Column(Text, nullable=False))
    body: str = Field(default="", sa_column=Column(Text, nullable=False))
    code: str = Field(default="", sa_column=Column(Text, nullable=False))
