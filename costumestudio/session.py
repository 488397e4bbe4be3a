"""Design session: one generation request at a time.

Wraps a generation engine with the rules the rest of the tool relies on:
a busy flag that rejects overlapping requests, clamping of the requested
image count, and mapping of returned URLs onto freshly allocated ids.

Usage:
    session = DesignSession(create_engine('openai', cfg['generation']), IdAllocator(store))
    result = await session.request_images('pirate queen', count=2)
    for image in result.images:
        print(image.id, image.url)

Author:
    Jake Meador <jameador13@gmail.com>
"""

import logging
import shutil
import urllib.request
from urllib.parse import urlparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import GenerationError, SessionBusyError
from .ids import IdAllocator
from .models import Image

__author__ = 'Jake Meador <jameador13@gmail.com>'
__all__ = [
    'DesignSession',
    'GenerationResult',
    'clamp_count',
    'download_image',
    'MIN_IMAGES',
    'MAX_IMAGES',
]

logger = logging.getLogger('costumestudio.session')

MIN_IMAGES = 1
MAX_IMAGES = 4


@dataclass(frozen=True)
class GenerationResult:
    """Images produced by one request, in generation order."""
    refined_prompt: str
    images: tuple[Image, ...] = field(default_factory=tuple)


def clamp_count(count: Any) -> int:
    """Clamp a requested image count to [1, 4]; unparseable input means 4."""
    try:
        value = int(count)
    except (TypeError, ValueError):
        return MAX_IMAGES
    if value == 0:
        # Zero reads as "not set", same as an empty field
        return MAX_IMAGES
    return max(MIN_IMAGES, min(MAX_IMAGES, value))


class DesignSession:
    """Issues generation requests and assigns ids to their results.

    Args:
        engine: Object providing async refine_prompt() and generate_images().
        allocator: Id allocator for new images.
        top_color: Default top color used when a request gives none.
        bottom_color: Default bottom color used when a request gives none.
    """

    def __init__(
        self,
        engine,
        allocator: IdAllocator,
        top_color: str = '#ff0000',
        bottom_color: str = '#0000ff',
    ):
        self.engine = engine
        self.allocator = allocator
        self.top_color = top_color
        self.bottom_color = bottom_color
        self.busy = False

    async def request_images(
        self,
        prompt: str,
        count: Any = MAX_IMAGES,
        top_color: str | None = None,
        bottom_color: str | None = None,
    ) -> GenerationResult:
        """Refine a prompt and generate costume images for it.

        Args:
            prompt: User's instruction.
            count: Requested number of images, clamped to [1, 4].
            top_color: Top color for this request.
            bottom_color: Bottom color for this request.

        Returns:
            GenerationResult with one Image per returned URL.

        Raises:
            SessionBusyError: If another request is still running.
            ValueError: If the prompt is blank.
            GenerationError: If the engine fails. Not retried.
        """
        if self.busy:
            raise SessionBusyError('A generation request is already in progress')

        text = (prompt or '').strip()
        if not text:
            raise ValueError('Prompt is empty')

        n = clamp_count(count)
        self.busy = True
        try:
            refined = await self.engine.refine_prompt(
                text, top_color or self.top_color, bottom_color or self.bottom_color
            )
            urls = await self.engine.generate_images(refined, n)
        except GenerationError:
            logger.error(f'Generation failed for prompt: {text[:60]}')
            raise
        finally:
            self.busy = False

        urls = list(urls)[:n]
        if not urls:
            logger.info('No images were generated')
            return GenerationResult(refined_prompt=refined)

        ids = self.allocator.allocate(len(urls))
        images = tuple(Image(id=i, url=url, prompt=refined) for i, url in zip(ids, urls))

        logger.info(f'Generated {len(images)} images (ids {ids[0]}..{ids[-1]})')
        return GenerationResult(refined_prompt=refined, images=images)


def download_image(url: str, destination: Path) -> Path:
    """Download an image to a local file.

    Args:
        url: Image URL.
        destination: Target file, or a directory to place `costume-<name>` in.

    Returns:
        Path the image was written to.
    """
    destination = Path(destination).expanduser()
    if destination.is_dir():
        name = Path(urlparse(url).path).name or 'image.png'
        destination = destination / f'costume-{name}'

    destination.parent.mkdir(parents=True, exist_ok=True)
    with urllib.request.urlopen(url) as response, open(destination, 'wb') as f:
        shutil.copyfileobj(response, f)

    logger.info(f'Downloaded {url} -> {destination}')
    return destination
