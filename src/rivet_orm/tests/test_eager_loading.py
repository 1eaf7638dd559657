"""
Tests for eager loading.

Tests path validation, strategy selection, query counts and nested paths.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from rivet_orm.core.errors import ExecutionError, InvalidRelationshipError
from rivet_orm.runtime.relation_loader import parse_paths
from rivet_orm.specs.relation import LoadStrategy

# =============================================================================
# Path Parsing
# =============================================================================


class TestParsePaths:
    """Tests for merging include paths into a tree."""

    def test_shared_prefix_merges(self) -> None:
        roots = parse_paths(["posts", "posts.comments", "team"])

        assert list(roots) == ["posts", "team"]
        assert list(roots["posts"].children) == ["comments"]

    def test_strategy_attached(self) -> None:
        roots = parse_paths([("posts.comments", LoadStrategy.JOIN)])

        assert roots["posts"].strategy == LoadStrategy.JOIN
        assert roots["posts"].children["comments"].strategy == LoadStrategy.JOIN

    def test_auto_means_unset(self) -> None:
        roots = parse_paths([("posts", LoadStrategy.AUTO)])

        assert roots["posts"].strategy is None

    @pytest.mark.parametrize("path", ["", "posts.", ".posts", "posts..comments"])
    def test_empty_segments_rejected(self, path: str) -> None:
        with pytest.raises(InvalidRelationshipError):
            parse_paths([path])


# =============================================================================
# Validation
# =============================================================================


class TestIncludesValidation:
    """Paths are checked when includes() is called, before any query."""

    def test_unknown_top_level(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        with pytest.raises(InvalidRelationshipError, match="likes"):
            models.User.query().includes("likes")

        assert query_log.count == 0

    def test_unknown_nested_segment(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        with pytest.raises(InvalidRelationshipError) as exc_info:
            models.User.includes("posts.likes")

        assert "Post" in str(exc_info.value)
        assert "posts.likes" in str(exc_info.value)
        assert query_log.count == 0

    def test_load_validates(self, seeded: SimpleNamespace) -> None:
        with pytest.raises(InvalidRelationshipError):
            seeded.ada.load("friends")


# =============================================================================
# Strategies and Query Counts
# =============================================================================


class TestSeparateStrategy:
    """has_many loads with one IN query per segment."""

    def test_one_extra_query_for_all_owners(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        users = models.User.query().includes("posts").order_by("id").get()

        assert len(users) == 3
        assert query_log.count == 2
        assert query_log.statements[1] == (
            "SELECT * FROM posts WHERE user_id IN (?, ?, ?)",
            [seeded.ada.id, seeded.bob.id, seeded.cy.id],
        )

    def test_loaded_values_partitioned(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        ada, bob, cy = models.User.query().includes("posts").order_by("id").get()
        query_log.clear()

        assert sorted(post.title for post in ada.posts) == ["Intro", "Notes"]
        assert [post.title for post in bob.posts] == ["Draft"]
        assert cy.posts == []
        assert query_log.count == 0

    def test_forced_separate_for_belongs_to(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        users = models.User.query().includes("team", strategy=LoadStrategy.SEPARATE).order_by("id").get()

        assert query_log.statements[1] == (
            "SELECT * FROM teams WHERE id IN (?, ?)",
            [seeded.core.id, seeded.ops.id],
        )
        assert [user.team.name for user in users] == ["core", "core", "ops"]


class TestJoinStrategy:
    """belongs_to / has_one load with one JOIN query per segment."""

    def test_belongs_to_join_sql(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        models.User.query().includes("team").order_by("id").get()

        assert query_log.count == 2
        sql, bindings = query_log.statements[1]
        assert sql == (
            "SELECT _owner.id AS __rivet_owner_key, _related.* FROM users AS _owner "
            "INNER JOIN teams AS _related ON _owner.team_id = _related.id "
            "WHERE _owner.id IN (?, ?, ?)"
        )
        assert bindings == [seeded.ada.id, seeded.bob.id, seeded.cy.id]

    def test_belongs_to_values(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        ada, bob, cy = models.User.query().includes("team").order_by("id").get()
        query_log.clear()

        assert ada.team.name == "core"
        assert cy.team.name == "ops"
        assert ada.team is bob.team
        assert "__rivet_owner_key" not in ada.team.attributes
        assert query_log.count == 0

    def test_has_one(self, seeded: SimpleNamespace, models: SimpleNamespace) -> None:
        ada, bob, _ = models.User.query().includes("profile").order_by("id").get()

        assert ada.profile.bio == "Analyst"
        assert bob.profile is None
        assert bob.relation_loaded("profile")

    def test_belongs_to_with_null_key(self, seeded: SimpleNamespace, models: SimpleNamespace) -> None:
        models.Post.create(title="Orphan")

        posts = models.Post.query().includes("user").order_by("id").get()

        assert [post.user.name if post.user else None for post in posts] == ["ada", "ada", "bob", None]

    def test_unsaved_owner_uses_in_memory_key(self, seeded: SimpleNamespace, models: SimpleNamespace) -> None:
        post = models.Post(title="Fresh", user_id=seeded.ada.id)
        post.load("user")

        assert post.user.name == "ada"

    def test_changed_foreign_key_is_followed(
        self, seeded: SimpleNamespace, models: SimpleNamespace, registry: Any, query_log: Any
    ) -> None:
        posts = models.Post.query().order_by("id").get()
        draft = posts[2]
        draft.user_id = seeded.ada.id
        query_log.clear()

        registry.eager_loader.load(posts, ["user"])

        assert [post.user.name for post in posts] == ["ada", "ada", "ada"]
        assert query_log.count == 2
        assert "INNER JOIN" in query_log.statements[0][0]
        assert query_log.statements[1] == ("SELECT * FROM users WHERE id IN (?)", [seeded.ada.id])

    def test_forced_join_for_has_many(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        users = models.User.query().includes("posts", strategy="join").order_by("id").get()

        assert "INNER JOIN posts AS _related ON _related.user_id = _owner.id" in query_log.statements[1][0]
        assert [len(user.posts) for user in users] == [2, 1, 0]


class TestNestedPaths:
    """Nested segments recurse with the loaded related records as owners."""

    def test_nested_query_count(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        users = models.User.query().includes("posts.comments").order_by("id").get()

        assert query_log.count == 3
        assert query_log.statements[2][0].startswith("SELECT * FROM comments WHERE post_id IN")

        query_log.clear()
        intro = next(post for post in users[0].posts if post.title == "Intro")
        assert sorted(comment.body for comment in intro.comments) == ["first", "second"]
        assert users[1].posts[0].comments == []
        assert query_log.count == 0

    def test_shared_prefix_loads_once(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        models.User.query().includes("posts", "posts.comments").get()

        assert query_log.count == 3

    def test_mixed_strategies(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        comments = models.Comment.query().includes("post.user.team").order_by("id").get()

        assert query_log.count == 4
        assert [comment.post.user.team.name for comment in comments] == ["core", "core"]

    def test_no_owners_no_extra_queries(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        users = models.User.query().where({"age": {"gt": 100}}).includes("posts.comments").get()

        assert users == []
        assert query_log.count == 1

    def test_first_eager_loads(self, seeded: SimpleNamespace, models: SimpleNamespace, query_log: Any) -> None:
        user = models.User.includes("posts").where({"name": "bob"}).first()

        assert user.relation_loaded("posts")
        assert query_log.statements[1][1] == [seeded.bob.id]


class TestLoadOnInstance:
    """load() eager-loads onto already-fetched records."""

    def test_load(self, seeded: SimpleNamespace, query_log: Any) -> None:
        seeded.ada.load("posts.comments")
        loaded = query_log.count

        assert loaded == 2
        assert len(seeded.ada.posts) == 2
        assert query_log.count == loaded

    def test_already_loaded_not_refetched(self, seeded: SimpleNamespace, query_log: Any) -> None:
        seeded.ada.load("posts")
        seeded.ada.load("posts")

        assert query_log.count == 1

    def test_eager_access_not_reported(self, seeded: SimpleNamespace, models: SimpleNamespace, registry: Any) -> None:
        for user in models.User.includes("posts").get():
            list(user.posts)

        assert registry.detector.warnings == []
        assert registry.detector.summary() == []

    def test_failed_load_leaves_relationship_unloaded(self, seeded: SimpleNamespace, db: Any) -> None:
        db.execute("DROP TABLE comments")

        with pytest.raises(ExecutionError):
            seeded.ada.load("posts.comments")

        assert seeded.ada.relation_loaded("posts")
        assert not any(post.relation_loaded("comments") for post in seeded.ada.posts)
