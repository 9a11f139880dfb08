from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Mapping, Optional

from slugify import slugify


DATE_FMT = "%Y-%m-%dT%H:%M:%S"


def parse_date(date_str: Optional[str]) -> Optional[datetime]:
    if not date_str:
        return None
    for fmt in (DATE_FMT, "%Y-%m-%d %H:%M:%S"):
        try:
            return datetime.strptime(date_str, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(date_str)
    except ValueError:
        return None


def format_date(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%b %d, %Y")


def parse_id(raw) -> int:
    try:
        return int(raw or 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class Post:
    """A blog post. ``id`` of 0 (or less) means it has not been stored yet."""

    id: int = 0
    title: str = ""
    body: str = ""
    image: Optional[str] = None
    created: Optional[datetime] = field(default=None)

    @property
    def is_new(self) -> bool:
        return self.id <= 0

    @property
    def slug(self) -> str:
        return slugify(self.title or "")

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "image": self.image,
            "created": self.created.replace(microsecond=0).strftime(DATE_FMT)
            if self.created
            else None,
        }

    @classmethod
    def from_dict(cls, raw: Mapping) -> "Post":
        return cls(
            id=parse_id(raw.get("id")),
            title=raw.get("title") or "",
            body=raw.get("body") or "",
            image=raw.get("image") or None,
            created=parse_date(raw.get("created")),
        )

    @classmethod
    def from_form(cls, form: Mapping) -> "Post":
        # Values are kept as submitted so a rejected form can be shown again.
        return cls(
            id=parse_id(form.get("id")),
            title=form.get("title", ""),
            body=form.get("body", ""),
            image=form.get("image") or None,
            created=parse_date(form.get("created")),
        )
