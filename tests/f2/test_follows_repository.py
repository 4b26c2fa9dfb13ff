"""Tests for the follow graph (F2)."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from skillforge.core.errors import InvalidArgumentError, NotFoundError
from skillforge.db.follows_repository import (
    follow,
    is_following,
    list_followers,
    list_following,
    toggle_follow,
    unfollow,
)
from skillforge.db.users_repository import delete_profile, require_profile


@pytest.fixture
def users(make_user):
    make_user("ana", "Ana")
    make_user("bruno", "Bruno")
    make_user("carla", "Carla")


def counts(uid: str) -> tuple[int, int]:
    profile = require_profile(uid)
    return profile.followers_count, profile.following_count


class TestFollow:
    def test_creates_both_edges(self, users):
        assert follow("ana", "bruno") is True

        following = list_following("ana")
        followers = list_followers("bruno")
        assert [e.other_uid for e in following] == ["bruno"]
        assert following[0].full_name == "Bruno"
        assert [e.other_uid for e in followers] == ["ana"]
        assert followers[0].full_name == "Ana"
        assert following[0].followed_at == followers[0].followed_at

    def test_updates_counters(self, users):
        follow("ana", "bruno")
        assert counts("ana") == (0, 1)
        assert counts("bruno") == (1, 0)

    def test_idempotent(self, users):
        """Following twice changes nothing."""
        follow("ana", "bruno")
        assert follow("ana", "bruno") is False
        assert counts("bruno") == (1, 0)
        assert len(list_followers("bruno")) == 1

    def test_cannot_follow_self(self, users):
        with pytest.raises(InvalidArgumentError):
            follow("ana", "ana")
        assert counts("ana") == (0, 0)

    def test_missing_target(self, users):
        with pytest.raises(NotFoundError):
            follow("ana", "ghost")
        assert counts("ana") == (0, 0)
        assert list_following("ana") == []


class TestUnfollow:
    def test_removes_both_edges(self, users):
        follow("ana", "bruno")
        assert unfollow("ana", "bruno") is True

        assert list_following("ana") == []
        assert list_followers("bruno") == []
        assert counts("ana") == (0, 0)
        assert counts("bruno") == (0, 0)

    def test_not_following(self, users):
        assert unfollow("ana", "bruno") is False
        assert counts("bruno") == (0, 0)


class TestToggleFollow:
    def test_toggle(self, users):
        assert toggle_follow("ana", "carla") is True
        assert is_following("ana", "carla")
        assert toggle_follow("ana", "carla") is False
        assert not is_following("ana", "carla")


class TestDeleteKeepsCountersConsistent:
    def test_deleting_user_updates_others(self, users):
        follow("ana", "bruno")
        follow("carla", "ana")

        delete_profile("ana")

        assert counts("bruno") == (0, 0)
        assert counts("carla") == (0, 0)
        assert list_followers("bruno") == []
        assert list_following("carla") == []


class TestConcurrentFollows:
    def test_counters_match_edges(self, make_user):
        """Follows from many threads at once keep counters equal to edge counts."""
        make_user("ana", "Ana")
        fans = [f"fan{i}" for i in range(10)]
        for uid in fans:
            make_user(uid)
        start = threading.Barrier(len(fans))

        def befriend(uid: str) -> None:
            start.wait()
            follow(uid, "ana")
            follow("ana", uid)

        with ThreadPoolExecutor(max_workers=len(fans)) as pool:
            for future in [pool.submit(befriend, uid) for uid in fans]:
                future.result()

        assert counts("ana") == (10, 10)
        assert sorted(e.other_uid for e in list_followers("ana")) == sorted(fans)
        assert sorted(e.other_uid for e in list_following("ana")) == sorted(fans)
        for uid in fans:
            assert counts(uid) == (1, 1)
