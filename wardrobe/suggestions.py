"""
Prompts for the AI stylist and best-effort parsing of its free-text answers.

The model is asked to answer ``Top: [URL], Bottom: [URL]``. Nothing forces it
to, so every URL pulled out of the answer is checked against the items that
were offered before it is trusted.
"""

import re
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .errors import UpstreamError
from .items import snapshot

URL_RE = re.compile(r"https?://[^\s,]+")
COMBINATION_RE = re.compile(r"Combination \d+:", re.IGNORECASE)
TRAILING_PUNCT = ".;:)]}>\"'`*"

MAX_COMBINATIONS = 3


def outfit_prompt(occasion: str, purpose: str, image_urls: Sequence[str]) -> str:
    return (
        f"Given the following clothing items for a {occasion} occasion with a {purpose} purpose, "
        "select one top and one bottom to create an outfit. Return only the image URLs of the "
        'selected items in the format: "Top: [URL], Bottom: [URL]". '
        f"Available items: {', '.join(image_urls)}"
    )


def combinations_prompt(image_urls: Sequence[str]) -> List[Dict[str, Any]]:
    parts: List[Dict[str, Any]] = [
        {
            "type": "text",
            "text": (
                "Analyze these clothing items and suggest 3 best outfit combinations. For each "
                "combination, provide a style description and recommend the best order of layering "
                "the items. Only return the outfit combinations generated by you. "
                f"Image URLs: {', '.join(image_urls)}"
            ),
        }
    ]
    parts.extend({"type": "image_url", "image_url": {"url": url}} for url in image_urls)
    return parts


def restyle_prompt(titles: Sequence[str]) -> str:
    return (
        f"I have the following underused items in my wardrobe: {', '.join(titles)}. "
        "Please suggest creative ways to style and reuse these items, focusing on sustainable "
        "fashion practices. Provide specific outfit ideas and styling tips for each item. "
        "Give me in 2 or 3 lines"
    )


def extract_urls(text: str) -> List[str]:
    """URL-shaped substrings in order of appearance, de-duplicated."""
    seen: List[str] = []
    for match in URL_RE.findall(text or ""):
        url = match.rstrip(TRAILING_PUNCT)
        if url and url not in seen:
            seen.append(url)
    return seen


def pick_top_and_bottom(text: str, items: Sequence[Mapping[str, Any]]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    The two item URLs in the answer, taken as (top, bottom).

    Raises UpstreamError unless the answer names exactly two URLs and both
    belong to offered items.
    """
    by_url = {it.get("image_url"): it for it in items if it.get("image_url")}
    urls = extract_urls(text)
    if len(urls) != 2 or any(url not in by_url for url in urls):
        raise UpstreamError("Failed to generate a valid outfit", details=text)
    top, bottom = urls
    return snapshot(by_url[top]), snapshot(by_url[bottom])


def split_combinations(text: str, items: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Split a ``Combination N:`` answer into at most three combinations."""
    chunks = [c.strip() for c in COMBINATION_RE.split(text or "") if c.strip()]
    snapshots = [snapshot(it) for it in items]
    return [
        {"description": chunk.split("\n")[0].strip(), "details": chunk, "items": snapshots}
        for chunk in chunks[:MAX_COMBINATIONS]
    ]
