from pathlib import Path

import pytest

from scenestore.core.config import Settings
from scenestore.core.errors import Conflict, InvalidArgument, NotFound
from scenestore.services.media import MediaLibrary, normalize_relative_path
from scenestore.services.store import open_store

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def _open(tmp_path: Path):
    return open_store(tmp_path / "scenes.db", settings=Settings(), hash_rounds=4)


def _scene_with_layer(store, user):
    project = store.projects.create_project(user)
    scene = store.projects.create_scene(project, "Main", 640, 480)
    store.scene_graph.upsert_layer(scene, 0, "Base", 0)
    return scene


def test_register_media(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        asset = store.media.register_media(user, "sprites/hero.png", "Hero", "A" * 64)

        assert len(asset.media_key) == 16
        assert asset.user == user.id
        assert asset.relative_path == "sprites/hero.png"
        assert asset.hashed_value == "a" * 64
        assert store.media.get_by_key(asset.media_key) == asset


def test_register_same_content_is_idempotent(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        first = store.media.register_media(user, "a.png", "A", "1" * 64)
        second = store.media.register_media(user, "copy-of-a.png", "Other", "1" * 64)

        assert second == first
        assert store.media.list_media(user) == [first]
        assert store.media.find_by_hash(user, "1" * 64) == first


def test_same_content_for_two_users(tmp_path):
    with _open(tmp_path) as store:
        alice = store.accounts.create_user("alice", "pw")
        bob = store.accounts.create_user("bob", "pw")
        a = store.media.register_media(alice, "alice/x.png", "X", "2" * 64)
        b = store.media.register_media(bob, "bob/x.png", "X", "2" * 64)
        assert a.media_key != b.media_key
        assert store.media.find_by_hash(bob, "3" * 64) is None


def test_relative_path_is_globally_unique(tmp_path):
    with _open(tmp_path) as store:
        alice = store.accounts.create_user("alice", "pw")
        bob = store.accounts.create_user("bob", "pw")
        store.media.register_media(alice, "shared/x.png", "X", "4" * 64)
        with pytest.raises(Conflict):
            store.media.register_media(bob, "shared/x.png", "X", "5" * 64)
        with pytest.raises(Conflict):
            store.media.register_media(alice, "shared\\x.png", "X", "6" * 64)
        assert store.media.list_media(bob) == []


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("art\\trees\\oak.png", "art/trees/oak.png"),
        ("  ./art/oak.png ", "art/oak.png"),
        ("art//oak.png", "art/oak.png"),
    ],
)
def test_normalize_relative_path(raw, expected):
    assert normalize_relative_path(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "/etc/passwd", "C:\\art\\oak.png", "../oak.png", "a/../../b"])
def test_normalize_relative_path_rejects(raw):
    with pytest.raises(InvalidArgument):
        normalize_relative_path(raw)


def test_register_media_validates_input(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        with pytest.raises(InvalidArgument):
            store.media.register_media(user, "a.png", "A", "xyz")
        with pytest.raises(InvalidArgument):
            store.media.register_media(user, "a.png", "A", "g" * 64)
        with pytest.raises(InvalidArgument):
            store.media.register_media(user, "a.png", "  ", "7" * 64)
        with pytest.raises(InvalidArgument):
            store.media.register_media(user, "../a.png", "A", "7" * 64)
        assert store.media.list_media(user) == []


def test_delete_media_clears_sprite_references(tmp_path):
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        asset = store.media.register_media(user, "a.png", "A", "8" * 64)
        scene = _scene_with_layer(store, user)
        for sprite_id in range(3):
            store.scene_graph.upsert_sprite(
                scene, sprite_id, 0, asset.media_key, None, 0, 0, 10, 10, sprite_id
            )

        assert store.media.delete_media(asset.media_key) == 3

        sprites = store.scene_graph.list_sprites(scene)
        assert [s.id for s in sprites] == [0, 1, 2]
        assert all(s.media_key is None for s in sprites)
        with pytest.raises(NotFound):
            store.media.get_by_key(asset.media_key)
        with pytest.raises(NotFound):
            store.media.delete_media(asset.media_key)


def test_delete_media_is_owner_scoped(tmp_path):
    with _open(tmp_path) as store:
        alice = store.accounts.create_user("alice", "pw")
        bob = store.accounts.create_user("bob", "pw")
        asset = store.media.register_media(alice, "a.png", "A", "9" * 64)
        with pytest.raises(NotFound):
            store.media.delete_media(asset.media_key, user=bob)
        assert store.media.get_by_key(asset.media_key) == asset
        assert store.media.delete_media(asset.media_key, user=alice) == 0


def test_register_file_hashes_content(tmp_path):
    root = tmp_path / "assets"
    (root / "bg").mkdir(parents=True)
    (root / "bg" / "sky.png").write_bytes(b"")
    with _open(tmp_path) as store:
        user = store.accounts.create_user("alice", "pw")
        asset = store.media.register_file(user, root, "bg/sky.png")
        assert asset.hashed_value == EMPTY_SHA256
        assert asset.title == "sky"
        with pytest.raises(NotFound):
            store.media.register_file(user, root, "bg/missing.png")


def test_hash_helpers():
    assert MediaLibrary.hash_bytes(b"") == EMPTY_SHA256
