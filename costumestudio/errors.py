"""Exception types for CostumeStudio.

Every error raised by the core derives from CostumeStudioError so callers
(the CLI included) can report them uniformly.

Author:
    Jake Meador <jameador13@gmail.com>
"""

__author__ = 'Jake Meador <jameador13@gmail.com>'
__all__ = [
    'CostumeStudioError',
    'AlreadySharedError',
    'AlreadyVotedError',
    'NotFoundError',
    'CorruptStateError',
    'GenerationError',
    'PersistenceError',
    'SessionBusyError',
    'ProfileLockedError',
]


class CostumeStudioError(Exception):
    """Base class for all CostumeStudio errors."""


class AlreadySharedError(CostumeStudioError):
    """Image id already has an entry on the community board."""

    def __init__(self, image_id: int):
        super().__init__(f'Image {image_id} has already been shared')
        self.image_id = image_id


class AlreadyVotedError(CostumeStudioError):
    """This user already upvoted the image."""

    def __init__(self, image_id: int):
        super().__init__(f'You already upvoted image {image_id}')
        self.image_id = image_id


class NotFoundError(CostumeStudioError):
    """No image of the requested kind carries the id."""

    def __init__(self, image_id: int, kind: str = 'shared image'):
        super().__init__(f'No {kind} with id {image_id}')
        self.image_id = image_id


class CorruptStateError(CostumeStudioError):
    """A stored value does not match the expected shape."""

    def __init__(self, key: str, reason: str):
        super().__init__(f'Corrupt value for "{key}": {reason}')
        self.key = key
        self.reason = reason


class GenerationError(CostumeStudioError):
    """The chat or image API failed."""


class PersistenceError(CostumeStudioError):
    """Writing to the durable store failed; the mutation was rolled back."""


class SessionBusyError(CostumeStudioError):
    """A generation request is already in flight."""


class ProfileLockedError(CostumeStudioError):
    """Another live process holds the profile lock."""

    def __init__(self, pid: int):
        super().__init__(f'Profile is in use by another process (PID: {pid})')
        self.pid = pid
