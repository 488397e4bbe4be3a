"""Render-ready projections of the image collections.

All functions here are pure: they never mutate their input and never touch
the store. Projections hold tuples of frozen records so a renderer cannot
change them; state changes go back through the CollectionManager.

Author:
    Jake Meador <jameador13@gmail.com>
"""

from dataclasses import dataclass
from typing import Generic, Iterable, Optional, TypeVar

from .models import Image, SharedImage

__author__ = 'Jake Meador <jameador13@gmail.com>'
__all__ = [
    'Projection',
    'project_gallery',
    'project_world_favorites',
    'welcome_message',
    'format_gallery',
    'format_world_favorites',
]

T = TypeVar('T', bound=Image)


@dataclass(frozen=True)
class Projection(Generic[T]):
    """Ordered items for one view.

    Attributes:
        items: Items in display order.
    """
    items: tuple[T, ...]

    @property
    def empty(self) -> bool:
        """True when the view should show its placeholder instead of a grid."""
        return not self.items

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


def project_gallery(saved: Iterable[Image]) -> Projection[Image]:
    """Saved images in ascending id order."""
    return Projection(tuple(sorted(saved, key=lambda image: image.id)))


def project_world_favorites(shared: Iterable[SharedImage]) -> Projection[SharedImage]:
    """Shared images by votes, highest first.

    sorted() is stable, so images with equal votes keep the order they were
    shared in.
    """
    return Projection(tuple(sorted(shared, key=lambda image: image.votes, reverse=True)))


def welcome_message(username: Optional[str]) -> str:
    """Header greeting for the current user."""
    if username:
        return f"Welcome, {username}! Let's design a costume."
    return 'Welcome, Guest! Chat with the AI to create your costume.'


# ============================================================================
# Text Rendering
# ============================================================================

def format_gallery(projection: Projection[Image]) -> str:
    """Render the gallery projection as terminal text."""
    if projection.empty:
        return 'Your gallery is empty. Save some designs to see them here!'

    lines = [f'Your gallery ({len(projection)} images):', '']
    for image in projection:
        lines.append(f'  #{image.id}  {image.url}')
        lines.append(f'      {image.prompt}')
    return '\n'.join(lines)


def format_world_favorites(
    projection: Projection[SharedImage],
    upvoted: Optional[set[int]] = None,
) -> str:
    """Render the community board as terminal text.

    Args:
        projection: World favorites projection.
        upvoted: Ids this user already voted for; marked with a check.
    """
    if projection.empty:
        return 'No designs have been shared yet. Be the first!'

    upvoted = upvoted or set()
    lines = [f'World favorites ({len(projection)} designs):', '']
    for rank, image in enumerate(projection, start=1):
        mark = ' ✓' if image.id in upvoted else ''
        lines.append(f'  {rank:>3}. #{image.id}  ▲ {image.votes}{mark}  by {image.username}')
        lines.append(f'       {image.url}')
    return '\n'.join(lines)
