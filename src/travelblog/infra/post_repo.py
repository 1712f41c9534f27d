# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Blog posts kept as YAML documents in a single file.

Layout:

    version: 1
    posts:
      <id>: {title, content, author, created_at}
"""

from __future__ import annotations

import os
import tempfile
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from travelblog.infra.db import utcnow


@dataclass(frozen=True)
class Post:
    id: str
    title: str
    content: str
    author: str
    created_at: datetime


def _parse_ts(v) -> datetime:
    if isinstance(v, datetime):
        return v
    try:
        return datetime.fromisoformat(str(v))
    except (TypeError, ValueError):
        return datetime.min


class PostRepository:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Post]:
        if not self.path.exists():
            return {}
        raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        posts = (raw.get("posts") or {}) if isinstance(raw, dict) else {}
        out: Dict[str, Post] = {}
        for pid, pdata in posts.items():
            if not isinstance(pdata, dict):
                continue
            pid = str(pid).strip()
            if not pid:
                continue
            out[pid] = Post(
                id=pid,
                title=str(pdata.get("title") or ""),
                content=str(pdata.get("content") or ""),
                author=str(pdata.get("author") or ""),
                created_at=_parse_ts(pdata.get("created_at")),
            )
        return out

    def _save(self, posts: Dict[str, Post]) -> None:
        raw = {
            "version": 1,
            "posts": {
                p.id: {
                    "title": p.title,
                    "content": p.content,
                    "author": p.author,
                    "created_at": p.created_at.isoformat(),
                }
                for p in posts.values()
            },
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".posts-", suffix=".yml")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(raw, f, sort_keys=False, allow_unicode=True)
            os.replace(tmp, self.path)
        except Exception:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def find_all(self) -> List[Post]:
        return sorted(self._load().values(), key=lambda p: p.created_at)

    def find_by_id(self, post_id: str) -> Optional[Post]:
        pid = (post_id or "").strip()
        if not pid:
            return None
        return self._load().get(pid)

    def find_by_title(self, title: str) -> Optional[Post]:
        for p in self._load().values():
            if p.title == title:
                return p
        return None

    def insert(self, *, title: str, content: str, author: str) -> Post:
        post = Post(id=uuid.uuid4().hex, title=title, content=content, author=author, created_at=utcnow())
        with self._lock:
            posts = self._load()
            posts[post.id] = post
            self._save(posts)
        return post
