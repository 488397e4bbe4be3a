"""Persistent image id allocation."""

import logging

from .errors import CorruptStateError
from .store import ID_COUNTER_KEY, DurableStore

__author__ = 'Jake Meador <jameador13@gmail.com>'
__all__ = ['IdAllocator', 'parse_counter']

logger = logging.getLogger('costumestudio.ids')


def parse_counter(raw) -> int:
    """Parse the stored counter (a stringified integer).

    Raises:
        CorruptStateError: If the value is not a non-negative integer.
    """
    if raw is None:
        return 0
    if isinstance(raw, bool):
        raise CorruptStateError(ID_COUNTER_KEY, f'not a number: {raw!r}')
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise CorruptStateError(ID_COUNTER_KEY, f'not a number: {raw!r}') from None
    if value < 0:
        raise CorruptStateError(ID_COUNTER_KEY, f'negative counter: {value}')
    return value


class IdAllocator:
    """Issues monotonically increasing image ids.

    The allocator is the only writer of the counter key. A corrupt counter is
    reset to zero rather than blocking generation.
    """

    def __init__(self, store: DurableStore):
        self.store = store

    def peek(self) -> int:
        """Return the last issued id (0 when nothing has been issued)."""
        try:
            return parse_counter(self.store.get(ID_COUNTER_KEY))
        except CorruptStateError as e:
            logger.warning(f'{e}; resetting image id counter to 0')
            return 0

    def is_issued(self, image_id: int) -> bool:
        """True if the id was handed out by a previous allocation."""
        return 1 <= image_id <= self.peek()

    def allocate(self, count: int) -> list[int]:
        """Reserve `count` fresh ids.

        Args:
            count: Number of ids to issue, at least 1.

        Returns:
            Ids in ascending order, contiguous with the previous allocation.

        Raises:
            ValueError: If count is less than 1.
            PersistenceError: If the advanced counter cannot be written; no
                ids are issued in that case.
        """
        if count < 1:
            raise ValueError(f'count must be positive, got {count}')

        current = self.peek()
        self.store.set(ID_COUNTER_KEY, str(current + count))

        ids = list(range(current + 1, current + count + 1))
        logger.debug(f'Allocated ids {ids[0]}..{ids[-1]}')
        return ids
