"""Display-only ratings and reviews derived from the product id.

Pure functions: the same id always yields the same rating and reviews.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List

_MOD = 2147483647

NAMES = [
    "John Doe", "Jane Smith", "Robert Johnson", "Emily Davis", "Michael Brown",
    "Sarah Wilson", "David Miller", "Lisa Anderson", "James Taylor", "Jennifer Thomas",
]

COMMENTS = [
    "Great product, highly recommend!",
    "Excellent quality and fast delivery.",
    "Value for money, satisfied with purchase.",
    "Good product, met my expectations.",
    "Amazing quality, will buy again.",
    "Perfect as described, great service.",
    "Impressed with the quality.",
    "Nice product, worth the price.",
    "Exceeded my expectations.",
    "Very happy with this purchase.",
]


@dataclass(frozen=True)
class Review:
    id: str
    name: str
    comment: str
    rating: int
    days_ago: int


def seed_from_id(product_id: str) -> int:
    seed = 0
    for ch in product_id:
        seed = (ord(ch) + (seed << 6) - seed) % _MOD
    return seed


def lcg(seed: int) -> Callable[[], float]:
    state = seed

    def _next() -> float:
        nonlocal state
        state = (state * 1103515245 + 12345) % _MOD
        return state / _MOD

    return _next


def product_rating(product_id: str) -> float:
    """4.0 .. 5.0 in steps of 0.1."""
    h = 0
    for ch in product_id:
        h = (ord(ch) + ((h << 5) - h)) & 0xFFFFFFFF
    return round(4.0 + (h % 11) / 10, 1)


def product_reviews(product_id: str) -> List[Review]:
    rand = lcg(seed_from_id(product_id))
    count = int(rand() * 4) + 3  # 3..6

    out = []
    for i in range(count):
        name = NAMES[int(rand() * len(NAMES))]
        comment = COMMENTS[int(rand() * len(COMMENTS))]
        rating = int(rand() * 2) + 4  # 4..5
        out.append(
            Review(
                id=f"{product_id}-review-{i}",
                name=name,
                comment=comment,
                rating=rating,
                days_ago=int(rand() * 30),
            )
        )
    return out
