"""Collection manager for saved, shared and upvoted images.

Owns the three persisted collections and every mutation on them. Each
mutation builds the new collection, writes it through to the durable store,
and only then swaps it into memory, so a failed write leaves memory and
storage in agreement.

Usage:
    manager = CollectionManager(JsonFileStore(path))
    manager.load_all()
    manager.toggle_save(7, url, prompt)
    shared = manager.share(7, url, prompt, 'Luna')
    manager.upvote(7)

Author:
    Jake Meador <jameador13@gmail.com>
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable

from .errors import (
    AlreadySharedError,
    AlreadyVotedError,
    CorruptStateError,
    NotFoundError,
    PersistenceError,
)
from .models import CollectionState, Image, SharedImage, image_from_dict, shared_image_from_dict
from .store import (
    SAVED_IMAGES_KEY,
    SHARED_IMAGES_KEY,
    UPVOTED_IDS_KEY,
    USERNAME_KEY,
    DurableStore,
)

__author__ = 'Jake Meador <jameador13@gmail.com>'
__all__ = ['CollectionManager', 'SaveResult', 'VoteResult', 'DEFAULT_USERNAME']

logger = logging.getLogger('costumestudio.collection')

DEFAULT_USERNAME = 'Anonymous'


@dataclass(frozen=True)
class SaveResult:
    """Outcome of a save toggle: whether the image is now saved."""
    saved: bool


@dataclass(frozen=True)
class VoteResult:
    """Outcome of an upvote: the new vote count."""
    votes: int


# ============================================================================
# Loading
# ============================================================================

def _parse_image_list(raw: Any, key: str, parse: Callable[[Any, str], Image]) -> list:
    if not isinstance(raw, list):
        raise CorruptStateError(key, f'expected list, got {type(raw).__name__}')

    items = [parse(item, key) for item in raw]

    ids = [item.id for item in items]
    if len(ids) != len(set(ids)):
        raise CorruptStateError(key, 'duplicate image ids')
    return items


def _parse_upvoted(raw: Any) -> set[int]:
    if not isinstance(raw, list):
        raise CorruptStateError(UPVOTED_IDS_KEY, f'expected list, got {type(raw).__name__}')
    if not all(isinstance(i, int) and not isinstance(i, bool) for i in raw):
        raise CorruptStateError(UPVOTED_IDS_KEY, 'ids must be integers')
    return set(raw)


def _load_or_default(store: DurableStore, key: str, parse: Callable[[Any], Any], default: Any) -> Any:
    raw = store.get(key)
    if raw is None:
        return default
    try:
        return parse(raw)
    except CorruptStateError as e:
        logger.warning(f'{e}; using empty default')
        return default


# ============================================================================
# Collection Manager
# ============================================================================

class CollectionManager:
    """Owns the saved, shared and upvoted collections for one profile.

    Args:
        store: Durable store the collections are written through to.
    """

    def __init__(self, store: DurableStore):
        self.store = store
        self.state = CollectionState()
        self._username = ''

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_all(self) -> CollectionState:
        """Read all collections from the store.

        Missing or corrupt keys become empty collections, so a fresh profile
        loads without error.
        """
        saved = _load_or_default(
            self.store, SAVED_IMAGES_KEY,
            lambda raw: _parse_image_list(raw, SAVED_IMAGES_KEY, image_from_dict), [])
        shared = _load_or_default(
            self.store, SHARED_IMAGES_KEY,
            lambda raw: _parse_image_list(raw, SHARED_IMAGES_KEY, shared_image_from_dict), [])
        upvoted = _load_or_default(self.store, UPVOTED_IDS_KEY, _parse_upvoted, set())

        username = self.store.get(USERNAME_KEY, '')
        if not isinstance(username, str):
            logger.warning(f'Ignoring non-string "{USERNAME_KEY}" value')
            username = ''

        self.state = CollectionState(saved=saved, shared=shared, upvoted=upvoted)
        self._username = username

        logger.info(
            f'Loaded {len(saved)} saved, {len(shared)} shared, {len(upvoted)} upvoted images'
        )
        return self.state

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_saved(self, image_id: int) -> bool:
        return any(image.id == image_id for image in self.state.saved)

    def can_share(self, image_id: int) -> bool:
        """True if the image has not been shared yet."""
        return self.get_shared(image_id) is None

    def get_shared(self, image_id: int) -> SharedImage | None:
        for image in self.state.shared:
            if image.id == image_id:
                return image
        return None

    def has_upvoted(self, image_id: int) -> bool:
        return image_id in self.state.upvoted

    def display_username(self) -> str:
        """Last name used to share, or an empty string."""
        return self._username

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def toggle_save(self, image_id: int, url: str, prompt: str) -> SaveResult:
        """Save the image if it is not in the gallery, otherwise remove it.

        Raises:
            PersistenceError: If the gallery cannot be written.
        """
        if self.is_saved(image_id):
            saved = [image for image in self.state.saved if image.id != image_id]
            now_saved = False
        else:
            saved = self.state.saved + [Image(id=image_id, url=url, prompt=prompt)]
            now_saved = True

        self.store.set(SAVED_IMAGES_KEY, [image.to_dict() for image in saved])
        self.state.saved = saved

        logger.info(f'{"Saved" if now_saved else "Unsaved"} image {image_id}')
        return SaveResult(saved=now_saved)

    def share(self, image_id: int, url: str, prompt: str, username: str = '') -> SharedImage:
        """Publish an image to the community board.

        Args:
            image_id: Id of the image to share.
            url: Image URL.
            prompt: Prompt that produced the image.
            username: Display name; blank names become "Anonymous".

        Returns:
            The new shared image with zero votes.

        Raises:
            AlreadySharedError: If the image was shared before.
            PersistenceError: If the board or username cannot be written.
        """
        if not self.can_share(image_id):
            raise AlreadySharedError(image_id)

        name = (username or '').strip() or DEFAULT_USERNAME
        entry = SharedImage(id=image_id, url=url, prompt=prompt, username=name, votes=0)
        shared = self.state.shared + [entry]

        self._write_pair(
            (SHARED_IMAGES_KEY, [image.to_dict() for image in shared],
             [image.to_dict() for image in self.state.shared]),
            (USERNAME_KEY, name),
        )
        self.state.shared = shared
        self._username = name

        logger.info(f'Shared image {image_id} as "{name}"')
        return entry

    def upvote(self, image_id: int) -> VoteResult:
        """Add this user's single vote to a shared image.

        Raises:
            NotFoundError: If no shared image has this id.
            AlreadyVotedError: If this user already voted for it.
            PersistenceError: If the board or ledger cannot be written.
        """
        current = self.get_shared(image_id)
        if current is None:
            raise NotFoundError(image_id)
        if self.has_upvoted(image_id):
            raise AlreadyVotedError(image_id)

        updated = replace(current, votes=current.votes + 1)
        shared = [updated if image.id == image_id else image for image in self.state.shared]
        upvoted = self.state.upvoted | {image_id}

        self._write_pair(
            (SHARED_IMAGES_KEY, [image.to_dict() for image in shared],
             [image.to_dict() for image in self.state.shared]),
            (UPVOTED_IDS_KEY, sorted(upvoted)),
        )
        self.state.shared = shared
        self.state.upvoted = upvoted

        logger.info(f'Upvoted image {image_id} ({updated.votes} votes)')
        return VoteResult(votes=updated.votes)

    def _write_pair(self, first: tuple[str, Any, Any], second: tuple[str, Any]) -> None:
        """Write two keys, restoring the first if the second fails.

        Args:
            first: (key, new value, previous value).
            second: (key, new value).
        """
        first_key, first_value, first_previous = first
        second_key, second_value = second

        self.store.set(first_key, first_value)
        try:
            self.store.set(second_key, second_value)
        except PersistenceError:
            try:
                self.store.set(first_key, first_previous)
            except PersistenceError as restore_error:
                logger.error(f'Could not restore "{first_key}" after failed write: {restore_error}')
            raise
