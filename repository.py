"""Post persistence.

Mutations are staged on a :class:`Repository` and only reach the data file
when :meth:`Repository.save_changes` runs. A failed commit writes nothing and
reports ``False`` so the panel can show the submitted form again.
"""

from __future__ import annotations

import abc
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from errors import StorageError, ValidationError
from models import DATE_FMT, Post
from storage import JsonStorage


logger = logging.getLogger(__name__)


class Repository(abc.ABC):
    @abc.abstractmethod
    def get_post(self, post_id: int) -> Optional[Post]:
        ...

    @abc.abstractmethod
    def get_all_posts(self) -> List[Post]:
        ...

    @abc.abstractmethod
    def add_post(self, post: Post) -> None:
        ...

    @abc.abstractmethod
    def update_post(self, post: Post) -> None:
        ...

    @abc.abstractmethod
    def remove_post(self, post_id: int) -> None:
        ...

    @abc.abstractmethod
    def save_changes(self) -> bool:
        ...


def next_id(posts: List[Dict], last_issued: int = 0) -> int:
    ids = [p.get("id", 0) for p in posts]
    return max(ids + [last_issued]) + 1


def sort_key(post: Post) -> Tuple[datetime, int]:
    return (post.created or datetime.min, post.id)


class JsonRepository(Repository):
    """Unit of work over a :class:`JsonStorage`.

    Create one per request; the staged operations live on the instance.
    Posts are listed newest first (by ``created``, then by id).
    """

    def __init__(self, storage: JsonStorage, clock: Callable[[], datetime] = datetime.now):
        self.storage = storage
        self.clock = clock
        self._pending: List[Tuple[str, object]] = []

    @property
    def has_changes(self) -> bool:
        return bool(self._pending)

    def get_post(self, post_id: int) -> Optional[Post]:
        for raw in self.storage.load()["posts"]:
            if raw.get("id") == post_id:
                return Post.from_dict(raw)
        return None

    def get_all_posts(self) -> List[Post]:
        posts = [Post.from_dict(raw) for raw in self.storage.load()["posts"]]
        return sorted(posts, key=sort_key, reverse=True)

    def add_post(self, post: Post) -> None:
        self._pending.append(("add", post))

    def update_post(self, post: Post) -> None:
        self._pending.append(("update", post))

    def remove_post(self, post_id: int) -> None:
        self._pending.append(("remove", post_id))

    def save_changes(self) -> bool:
        if not self._pending:
            return True
        try:
            with self.storage.transaction() as data:
                assigned = self._apply(data)
        except ValidationError as exc:
            logger.info("Rejected changes: %s", exc)
            return False
        except StorageError:
            logger.exception("Could not save changes to %s", self.storage.path)
            return False

        for post, (post_id, created) in assigned:
            post.id = post_id
            post.created = created
        logger.info("Saved %d change(s)", len(self._pending))
        self._pending = []
        return True

    def _apply(self, data: Dict) -> List[Tuple[Post, Tuple[int, datetime]]]:
        """Apply staged operations to ``data``; raise before anything is written."""
        posts: List[Dict] = data["posts"]
        sequences: Dict = data["sequences"]
        assigned = []
        now = self.clock().replace(microsecond=0)

        for action, target in self._pending:
            if action == "remove":
                posts[:] = [p for p in posts if p.get("id") != target]
                continue

            post: Post = target
            if not (post.title or "").strip():
                raise ValidationError("Title is required")

            if action == "add":
                post_id = next_id(posts, sequences.get("posts", 0))
                sequences["posts"] = post_id
                created = post.created or now
                payload = post.to_dict()
                payload.update(id=post_id, created=created.strftime(DATE_FMT))
                posts.append(payload)
                assigned.append((post, (post_id, created)))
            else:
                for idx, existing in enumerate(posts):
                    if existing.get("id") == post.id:
                        payload = post.to_dict()
                        if payload["created"] is None:
                            payload["created"] = existing.get("created")
                        posts[idx] = payload
                        break
                else:
                    raise ValidationError(f"Post {post.id} does not exist")

        return assigned
