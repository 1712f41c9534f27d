# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import List

import structlog

from travelblog.infra.post_repo import Post, PostRepository

logger = structlog.get_logger()

DEFAULT_POSTS = [
    {
        "title": "The Rise of Decentralized Finance",
        "content": (
            "Decentralized Finance (DeFi) is an emerging and rapidly evolving field in the blockchain "
            "industry. It refers to the shift from traditional, centralized financial systems to "
            "peer-to-peer finance enabled by decentralized technologies built on Ethereum and other "
            "blockchains. With the promise of reduced dependency on the traditional banking sector, DeFi "
            "platforms offer a wide range of services, from lending and borrowing to insurance and trading."
        ),
        "author": "Alex Thompson",
    },
    {
        "title": "The Impact of Artificial Intelligence on Modern Businesses",
        "content": (
            "Artificial Intelligence (AI) is no longer a concept of the future. It's very much a part of "
            "our present, reshaping industries and enhancing the capabilities of existing systems. From "
            "automating routine tasks to offering intelligent insights, AI is proving to be a boon for "
            "businesses. With advancements in machine learning and deep learning, businesses can now "
            "address previously insurmountable problems and tap into new opportunities."
        ),
        "author": "Mia Williams",
    },
]


def seed_default_posts(repo: PostRepository) -> List[Post]:
    """Insert the default posts that are not there yet (matched by title)."""
    created: List[Post] = []
    for data in DEFAULT_POSTS:
        if repo.find_by_title(data["title"]) is None:
            created.append(repo.insert(**data))
    if created:
        logger.info("Default posts saved", count=len(created))
    return created


def compose_post(repo: PostRepository, *, title: str, content: str, author: str) -> Post:
    t = (title or "").strip()
    c = (content or "").strip()
    if not t:
        raise ValueError("Title is required")
    if not c:
        raise ValueError("Content is required")
    post = repo.insert(title=t, content=c, author=(author or "").strip() or "Anonymous")
    logger.info("Post saved", post_id=post.id)
    return post
