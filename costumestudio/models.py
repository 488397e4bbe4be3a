"""Data records for generated costume images.

Images are immutable once created. A shared image carries the display name
it was published under and its vote count; votes change by replacing the
record, never by mutating it in place.

Author:
    Jake Meador <jameador13@gmail.com>
"""

from dataclasses import asdict, dataclass, field
from typing import Any

from .errors import CorruptStateError

__author__ = 'Jake Meador <jameador13@gmail.com>'
__all__ = [
    'Image',
    'SharedImage',
    'CollectionState',
    'image_from_dict',
    'shared_image_from_dict',
]


@dataclass(frozen=True)
class Image:
    """A generated costume image.

    Attributes:
        id: Allocator-issued identifier, unique within a profile.
        url: Opaque reference to the generated artwork.
        prompt: Refined prompt that produced the image.
    """
    id: int
    url: str
    prompt: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SharedImage(Image):
    """An image published to the community board.

    Attributes:
        username: Display name the image was shared under.
        votes: Upvote count, never negative.
    """
    username: str = 'Anonymous'
    votes: int = 0


@dataclass
class CollectionState:
    """Snapshot of the three persisted collections."""
    saved: list[Image] = field(default_factory=list)
    shared: list[SharedImage] = field(default_factory=list)
    upvoted: set[int] = field(default_factory=set)


def _is_int(value: Any) -> bool:
    # bool is an int subclass but never a valid id or count
    return isinstance(value, int) and not isinstance(value, bool)


def _check_image_fields(item: Any, key: str) -> None:
    if not isinstance(item, dict):
        raise CorruptStateError(key, f'expected object, got {type(item).__name__}')
    if not _is_int(item.get('id')):
        raise CorruptStateError(key, f'invalid id: {item.get("id")!r}')
    for name in ('url', 'prompt'):
        if not isinstance(item.get(name), str):
            raise CorruptStateError(key, f'invalid {name} for image {item["id"]}')


def image_from_dict(item: Any, key: str = 'image') -> Image:
    """Build an Image from stored JSON, validating its shape.

    Args:
        item: Decoded JSON value.
        key: Store key the value came from (for error messages).

    Raises:
        CorruptStateError: If the value is not a well-formed image.
    """
    _check_image_fields(item, key)
    return Image(id=item['id'], url=item['url'], prompt=item['prompt'])


def shared_image_from_dict(item: Any, key: str = 'shared image') -> SharedImage:
    """Build a SharedImage from stored JSON, validating its shape.

    Raises:
        CorruptStateError: If the value is not a well-formed shared image.
    """
    _check_image_fields(item, key)
    username = item.get('username')
    votes = item.get('votes')
    if not isinstance(username, str):
        raise CorruptStateError(key, f'invalid username for image {item["id"]}')
    if not _is_int(votes) or votes < 0:
        raise CorruptStateError(key, f'invalid votes for image {item["id"]}: {votes!r}')
    return SharedImage(
        id=item['id'],
        url=item['url'],
        prompt=item['prompt'],
        username=username,
        votes=votes,
    )
