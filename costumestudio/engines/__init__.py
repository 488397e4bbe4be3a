"""Image generation engine factory."""

from .dalle import OpenAIImageEngine


def create_engine(engine_type: str, config: dict, client=None):
    """Create generation engine instance."""
    if engine_type == 'openai':
        return OpenAIImageEngine(config, client=client)
    else:
        raise ValueError(f'Unknown generation engine: {engine_type}')
