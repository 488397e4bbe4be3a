"""OpenAI chat + image generation engine."""

import logging

from openai import AsyncOpenAI, OpenAIError

from ..errors import GenerationError

logger = logging.getLogger('costumestudio.engines')


def build_chat_prompt(text: str, top_color: str, bottom_color: str) -> str:
    """Wrap the user's instruction with the chosen outfit colors."""
    return (
        f'My latest instruction is: "{text}". Refine the costume idea incorporating '
        f'a top color of {top_color} and a bottom color of {bottom_color}.'
    )


class OpenAIImageEngine:
    """Refines prompts with a chat model and renders them with an image model."""

    def __init__(self, config: dict, client: AsyncOpenAI | None = None):
        """Initialize engine with the `generation` config section."""
        self.config = config
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        # Created on first use so a missing OPENAI_API_KEY only matters when generating
        if self._client is None:
            try:
                self._client = AsyncOpenAI()
            except OpenAIError as e:
                raise GenerationError(f'OpenAI client unavailable: {e}') from e
        return self._client

    async def refine_prompt(self, text: str, top_color: str, bottom_color: str) -> str:
        """Ask the chat model for a refined costume description.

        Returns:
            The refined prompt, or the wrapped instruction if the model
            returned nothing.
        """
        chat_prompt = build_chat_prompt(text, top_color, bottom_color)
        model = self.config.get('chat_model', 'gpt-4')

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=[{'role': 'user', 'content': chat_prompt}],
            )
        except OpenAIError as e:
            raise GenerationError(f'Prompt refinement failed: {e}') from e

        content = ''
        if response.choices:
            content = (response.choices[0].message.content or '').strip()

        logger.debug(f'Refined prompt ({model}): {content[:80]}')
        return content or chat_prompt

    async def generate_images(self, prompt: str, count: int) -> list[str]:
        """Generate up to `count` images for a refined prompt.

        Returns:
            Image URLs in generation order. Entries without a URL are dropped.
        """
        model = self.config.get('image_model', 'dall-e-2')

        try:
            response = await self.client.images.generate(
                model=model,
                prompt=prompt,
                n=count,
                size=self.config.get('size', '1024x1024'),
                response_format='url',
            )
        except OpenAIError as e:
            raise GenerationError(f'Image generation failed: {e}') from e

        urls = []
        for item in response.data or []:
            if item.url:
                urls.append(item.url)
            else:
                logger.warning('Dropping generated image without a URL')

        logger.debug(f'Generated {len(urls)}/{count} images with {model}')
        return urls[:count]
