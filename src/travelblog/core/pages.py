# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Route table for the informational pages (path -> page).

Only paths listed here are served; anything else is a 404.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Page:
    template: str
    title: str
    section: str = ""
    slug: str = ""


# --- Detail pages (slug -> title) ---
SITES: Dict[str, str] = {
    "pasir_padi": "Pasir Padi Beach",
    "parai": "Parai Beach",
    "batudinding": "Batu Dinding",
    "matras": "Matras Beach",
    "tongaci": "Tongaci Beach",
    "koalin": "Kaolin Lake",
    "puritriagung": "Puri Tri Agung",
    "penyusukbeach": "Penyusuk Beach",
    "tanjungkalian": "Tanjung Kalian Lighthouse",
    "tanjungkelayang": "Tanjung Kelayang",
    "lengkuas": "Lengkuas Island",
    "batuberlayar": "Batu Berlayar",
    "tanjungtinggi": "Tanjung Tinggi",
    "burong": "Burong Island",
    "diving": "Diving",
}

DISHES: Dict[str, str] = {
    "bakmi": "Bakmi",
    "otak_otak": "Otak-otak",
    "seafood": "Seafood",
    "uniquefood": "Unique Food",
    "others": "Others",
    "snacks": "Snacks",
}


def _build_table() -> Dict[str, Page]:
    table: Dict[str, Page] = {
        "/": Page("pages/home.html", "Home"),
        "/destinations": Page("pages/section.html", "Destinations", section="destinations"),
        "/culinary": Page("pages/section.html", "Culinary", section="culinary"),
        "/about": Page("pages/about.html", "About"),
        "/hotel": Page("pages/hotel.html", "Hotel"),
        "/transport": Page("pages/transport.html", "Transport"),
    }
    for slug, title in SITES.items():
        table[f"/destinations/{slug}"] = Page("pages/detail.html", title, section="destinations", slug=slug)
    for slug, title in DISHES.items():
        table[f"/culinary/{slug}"] = Page("pages/detail.html", title, section="culinary", slug=slug)
    return table


PAGES: Dict[str, Page] = _build_table()


def section_links(section: str) -> list:
    """(href, title) pairs for the index of a section."""
    source = {"destinations": SITES, "culinary": DISHES}.get(section, {})
    return [(f"/{section}/{slug}", title) for slug, title in source.items()]
