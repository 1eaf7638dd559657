"""
Tests for N+1 query detection.
"""

from __future__ import annotations

import logging
from types import SimpleNamespace
from typing import Any

import pytest

from rivet_orm.runtime.n_plus_one import NPlusOneDetector


class _KeylessOwner:
    primary_key_value = None


class TestDetector:
    """Tests for the detector in isolation."""

    def test_flags_at_threshold(self) -> None:
        detector = NPlusOneDetector(enabled=True)
        owners = [SimpleNamespace(primary_key_value=i) for i in range(3)]

        assert detector.record_access(owners[0], "posts") is False
        assert detector.record_access(owners[1], "posts") is True
        assert detector.record_access(owners[2], "posts") is False

        assert len(detector.warnings) == 1
        assert detector.warnings[0].relation == "posts"
        assert detector.warnings[0].distinct_owners == 3

    def test_same_owner_is_not_a_pattern(self) -> None:
        detector = NPlusOneDetector(enabled=True)
        owner = SimpleNamespace(primary_key_value=1)

        for _ in range(5):
            detector.record_access(owner, "posts")

        assert detector.warnings == []
        assert detector.summary()[0]["access_count"] == 5

    def test_keyless_owners_are_distinct(self) -> None:
        detector = NPlusOneDetector(enabled=True)

        detector.record_access(SimpleNamespace(primary_key_value=None), "posts")
        detector.record_access(SimpleNamespace(primary_key_value=None), "posts")

        assert len(detector.warnings) == 1

    def test_collected_keyless_owners_stay_distinct(self) -> None:
        detector = NPlusOneDetector(enabled=True)

        for _ in range(2):
            detector.record_access(_KeylessOwner(), "posts")

        assert len(detector.warnings) == 1
        assert detector.warnings[0].distinct_owners == 2

    def test_keyless_owner_counted_once(self) -> None:
        detector = NPlusOneDetector(enabled=True)
        owner = _KeylessOwner()

        detector.record_access(owner, "posts")
        detector.record_access(owner, "posts")

        assert detector.warnings == []

    def test_disabled_records_nothing(self) -> None:
        detector = NPlusOneDetector()

        for i in range(5):
            assert detector.record_access(SimpleNamespace(primary_key_value=i), "posts") is False

        assert detector.summary() == []

    def test_threshold(self) -> None:
        detector = NPlusOneDetector(enabled=True, threshold=3)

        detector.record_access(SimpleNamespace(primary_key_value=1), "posts")
        detector.record_access(SimpleNamespace(primary_key_value=2), "posts")
        assert detector.warnings == []

        detector.record_access(SimpleNamespace(primary_key_value=3), "posts")
        assert len(detector.warnings) == 1

    def test_threshold_floor(self) -> None:
        assert NPlusOneDetector(threshold=0).threshold == 2

    def test_reset(self) -> None:
        detector = NPlusOneDetector(enabled=True)
        detector.record_access(SimpleNamespace(primary_key_value=1), "posts")
        detector.record_access(SimpleNamespace(primary_key_value=2), "posts")

        detector.reset()

        assert detector.warnings == []
        assert detector.summary() == []


class TestLazyAccessDetection:
    """Tests for detection wired through relationship queries."""

    def test_loop_is_flagged(
        self,
        seeded: SimpleNamespace,
        models: SimpleNamespace,
        registry: Any,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        caplog.set_level(logging.WARNING, logger="rivet")

        for user in models.User.all():
            user.posts.get()

        (pattern,) = registry.detector.warnings
        assert pattern.model == "User"
        assert pattern.relation == "posts"
        assert "Possible N+1 query: User.posts" in caplog.text
        assert "includes('posts')" in caplog.text

    def test_first_counts_as_access(self, seeded: SimpleNamespace, registry: Any) -> None:
        seeded.intro.user.first()
        seeded.draft.user.first()

        assert [p.relation for p in registry.detector.warnings] == ["user"]

    def test_count_and_exists_count_as_access(self, seeded: SimpleNamespace, registry: Any) -> None:
        assert seeded.ada.posts.count() == 2
        assert not seeded.cy.posts.exists()

        (pattern,) = registry.detector.warnings
        assert pattern.relation == "posts"
        assert pattern.access_count == 2

    def test_building_a_query_is_not_access(self, seeded: SimpleNamespace, registry: Any) -> None:
        seeded.ada.posts  # noqa: B018
        seeded.bob.posts  # noqa: B018

        assert registry.detector.summary() == []

    def test_detection_does_not_change_results(self, seeded: SimpleNamespace, models: SimpleNamespace) -> None:
        counts = [len(user.posts.get()) for user in models.User.query().order_by("id").get()]

        assert counts == [2, 1, 0]
