"""Tests for the collection manager.

Tests save toggling, one-time sharing, one-vote-per-user upvoting, loading
with missing or corrupt state, and rollback on failed writes.

Author:
    Jake Meador <jameador13@gmail.com>
"""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from costumestudio.collection import CollectionManager
from costumestudio.errors import (
    AlreadySharedError,
    AlreadyVotedError,
    NotFoundError,
    PersistenceError,
)
from costumestudio.models import Image, SharedImage
from costumestudio.store import (
    SAVED_IMAGES_KEY,
    SHARED_IMAGES_KEY,
    UPVOTED_IDS_KEY,
    USERNAME_KEY,
    JsonFileStore,
    MemoryStore,
)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def store():
    """Empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def manager(store):
    """Collection manager over an empty store."""
    m = CollectionManager(store)
    m.load_all()
    return m


@pytest.fixture
def temp_store_path():
    """Path for a file-backed store in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / 'state.json'


# ============================================================================
# Load Tests
# ============================================================================

def test_load_all_empty_store(store):
    """Test loading with no prior history yields empty collections."""
    state = CollectionManager(store).load_all()

    assert state.saved == []
    assert state.shared == []
    assert state.upvoted == set()


def test_load_all_reads_existing_state():
    """Test loading well-formed stored collections."""
    store = MemoryStore({
        SAVED_IMAGES_KEY: [{'id': 2, 'url': 'u2', 'prompt': 'p2'}],
        SHARED_IMAGES_KEY: [{'id': 2, 'url': 'u2', 'prompt': 'p2', 'username': 'Luna', 'votes': 3}],
        UPVOTED_IDS_KEY: [2],
        USERNAME_KEY: 'Luna',
    })
    manager = CollectionManager(store)
    state = manager.load_all()

    assert state.saved == [Image(2, 'u2', 'p2')]
    assert state.shared == [SharedImage(2, 'u2', 'p2', 'Luna', 3)]
    assert state.upvoted == {2}
    assert manager.display_username() == 'Luna'


@pytest.mark.parametrize('key,value', [
    (SAVED_IMAGES_KEY, 'not a list'),
    (SAVED_IMAGES_KEY, [{'id': 'one', 'url': 'u', 'prompt': 'p'}]),
    (SAVED_IMAGES_KEY, [{'id': 1, 'url': 'u', 'prompt': 'p'}, {'id': 1, 'url': 'v', 'prompt': 'q'}]),
    (SHARED_IMAGES_KEY, [{'id': 1, 'url': 'u', 'prompt': 'p', 'username': 'x', 'votes': -1}]),
    (SHARED_IMAGES_KEY, [{'id': 1, 'url': 'u', 'prompt': 'p'}]),
    (UPVOTED_IDS_KEY, {'1': True}),
    (UPVOTED_IDS_KEY, [1, 'two']),
])
def test_load_all_corrupt_key_defaults_to_empty(key, value):
    """Test that a malformed stored value loads as an empty collection."""
    manager = CollectionManager(MemoryStore({key: value}))
    state = manager.load_all()

    assert state.saved == []
    assert state.shared == []
    assert state.upvoted == set()


def test_load_all_corrupt_key_keeps_other_keys():
    """Test that one corrupt key does not discard the others."""
    store = MemoryStore({
        SAVED_IMAGES_KEY: [{'id': 1, 'url': 'u', 'prompt': 'p'}],
        SHARED_IMAGES_KEY: 42,
    })
    state = CollectionManager(store).load_all()

    assert state.saved == [Image(1, 'u', 'p')]
    assert state.shared == []


def test_load_all_ignores_non_string_username():
    """Test that a non-string stored username is ignored."""
    manager = CollectionManager(MemoryStore({USERNAME_KEY: 12}))
    manager.load_all()
    assert manager.display_username() == ''


# ============================================================================
# Save Toggle Tests
# ============================================================================

def test_toggle_save_adds_then_removes(manager, store):
    """Test that toggling twice saves then unsaves."""
    assert manager.toggle_save(1, 'u1', 'p1').saved is True
    assert manager.is_saved(1)
    assert store.get(SAVED_IMAGES_KEY) == [{'id': 1, 'url': 'u1', 'prompt': 'p1'}]

    assert manager.toggle_save(1, 'u1', 'p1').saved is False
    assert not manager.is_saved(1)
    assert store.get(SAVED_IMAGES_KEY) == []


@pytest.mark.parametrize('calls', [1, 2, 3, 4, 7])
def test_toggle_save_parity(manager, calls):
    """Test that the image is present iff the toggle count is odd."""
    for _ in range(calls):
        manager.toggle_save(5, 'u5', 'p5')

    assert manager.is_saved(5) == (calls % 2 == 1)


def test_toggle_save_leaves_other_images(manager):
    """Test that unsaving one image keeps the rest."""
    manager.toggle_save(1, 'u1', 'p1')
    manager.toggle_save(2, 'u2', 'p2')
    manager.toggle_save(1, 'u1', 'p1')

    assert [image.id for image in manager.state.saved] == [2]


def test_toggle_save_independent_of_share(manager):
    """Test that saved and shared collections do not affect each other."""
    manager.share(3, 'u3', 'p3', 'Luna')
    assert not manager.is_saved(3)

    manager.toggle_save(3, 'u3', 'p3')
    manager.toggle_save(3, 'u3', 'p3')
    assert manager.get_shared(3) is not None


# ============================================================================
# Share Tests
# ============================================================================

def test_share_creates_entry_with_zero_votes(manager, store):
    """Test sharing a new image."""
    assert manager.can_share(1)
    shared = manager.share(1, 'u1', 'p1', '  Luna  ')

    assert shared == SharedImage(1, 'u1', 'p1', 'Luna', 0)
    assert not manager.can_share(1)
    assert store.get(SHARED_IMAGES_KEY) == [shared.to_dict()]
    assert store.get(USERNAME_KEY) == 'Luna'
    assert manager.display_username() == 'Luna'


@pytest.mark.parametrize('username', ['', '   ', None])
def test_share_blank_username_is_anonymous(manager, username):
    """Test that blank names become Anonymous."""
    assert manager.share(1, 'u1', 'p1', username).username == 'Anonymous'


def test_share_twice_fails(manager):
    """Test that a second share of the same id is refused."""
    manager.share(1, 'u1', 'p1', 'Luna')

    with pytest.raises(AlreadySharedError):
        manager.share(1, 'other-url', 'other prompt', 'Someone')

    assert len(manager.state.shared) == 1
    assert manager.state.shared[0].username == 'Luna'
    assert manager.display_username() == 'Luna'


def test_share_rolls_back_when_username_write_fails(manager, store):
    """Test that a failed username write leaves board and memory unchanged."""
    original_set = store.set

    def failing_set(key, value):
        if key == USERNAME_KEY:
            raise PersistenceError('disk full')
        original_set(key, value)

    with patch.object(store, 'set', side_effect=failing_set):
        with pytest.raises(PersistenceError):
            manager.share(1, 'u1', 'p1', 'Luna')

    assert manager.state.shared == []
    assert manager.can_share(1)
    assert store.get(SHARED_IMAGES_KEY) == []


def test_share_restore_failure_still_raises(manager, store, caplog):
    """Test that a failed restore is logged and the write error still surfaces."""
    original_set = store.set
    shared_writes = []

    def failing_set(key, value):
        if key == SHARED_IMAGES_KEY:
            shared_writes.append(value)
            if len(shared_writes) > 1:
                raise PersistenceError('restore failed')
        elif key == USERNAME_KEY:
            raise PersistenceError('disk full')
        original_set(key, value)

    with patch.object(store, 'set', side_effect=failing_set):
        with pytest.raises(PersistenceError, match='disk full'):
            manager.share(1, 'u1', 'p1', 'Luna')

    assert shared_writes[1] == []
    assert manager.state.shared == []
    assert manager.can_share(1)
    assert manager.display_username() == ''
    assert 'Could not restore' in caplog.text


# ============================================================================
# Upvote Tests
# ============================================================================

def test_upvote_increments_once(manager, store):
    """Test one vote per user per image."""
    manager.share(1, 'u1', 'p1', 'Luna')

    assert manager.upvote(1).votes == 1
    assert manager.has_upvoted(1)
    assert store.get(UPVOTED_IDS_KEY) == [1]
    assert store.get(SHARED_IMAGES_KEY)[0]['votes'] == 1

    with pytest.raises(AlreadyVotedError):
        manager.upvote(1)

    assert manager.get_shared(1).votes == 1


def test_upvote_unknown_id(manager, store):
    """Test that upvoting an unshared id mutates nothing."""
    manager.share(1, 'u1', 'p1', 'Luna')

    with pytest.raises(NotFoundError):
        manager.upvote(99)

    assert manager.state.upvoted == set()
    assert manager.get_shared(1).votes == 0
    assert store.get(UPVOTED_IDS_KEY) is None


def test_upvote_rolls_back_on_write_failure(manager, store):
    """Test that a failed ledger write restores the vote count."""
    manager.share(1, 'u1', 'p1', 'Luna')
    original_set = store.set

    def failing_set(key, value):
        if key == UPVOTED_IDS_KEY:
            raise PersistenceError('disk full')
        original_set(key, value)

    with patch.object(store, 'set', side_effect=failing_set):
        with pytest.raises(PersistenceError):
            manager.upvote(1)

    assert manager.get_shared(1).votes == 0
    assert not manager.has_upvoted(1)
    assert store.get(SHARED_IMAGES_KEY)[0]['votes'] == 0


def test_toggle_save_write_failure_keeps_memory(manager, store):
    """Test that a failed gallery write leaves the gallery unchanged."""
    with patch.object(store, 'set', side_effect=PersistenceError('read-only')):
        with pytest.raises(PersistenceError):
            manager.toggle_save(1, 'u1', 'p1')

    assert manager.state.saved == []


# ============================================================================
# Persistence Round-Trip Tests
# ============================================================================

def test_round_trip_through_file_store(temp_store_path):
    """Test that state written by one manager reloads identically."""
    manager = CollectionManager(JsonFileStore(temp_store_path))
    manager.load_all()
    manager.toggle_save(3, 'u3', 'p3')
    manager.toggle_save(1, 'u1', 'p1')
    manager.share(1, 'u1', 'p1', 'Luna')
    manager.share(2, 'u2', 'p2', '')
    manager.upvote(2)

    reloaded = CollectionManager(JsonFileStore(temp_store_path))
    state = reloaded.load_all()

    assert state == manager.state
    assert reloaded.display_username() == 'Anonymous'
