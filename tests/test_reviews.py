"""
Tests for the seeded rating/review generator.
"""

from __future__ import annotations

from shopfront.services.reviews import lcg, product_rating, product_reviews, seed_from_id


def test_rating_is_stable_and_in_range() -> None:
    for pid in ["prod-a", "prod-b", "0f9e", "x" * 40, ""]:
        r = product_rating(pid)
        assert r == product_rating(pid)
        assert 4.0 <= r <= 5.0
        assert round(r, 1) == r


def test_reviews_deterministic() -> None:
    assert product_reviews("prod-a") == product_reviews("prod-a")


def test_reviews_shape() -> None:
    reviews = product_reviews("prod-a")
    assert 3 <= len(reviews) <= 6
    for i, rv in enumerate(reviews):
        assert rv.id == f"prod-a-review-{i}"
        assert rv.rating in (4, 5)
        assert 0 <= rv.days_ago < 30


def test_lcg_sequence_depends_on_seed() -> None:
    a, b = lcg(seed_from_id("a")), lcg(seed_from_id("b"))
    seq_a = [a() for _ in range(5)]
    seq_b = [b() for _ in range(5)]
    assert seq_a != seq_b
    assert all(0 <= v < 1 for v in seq_a + seq_b)
