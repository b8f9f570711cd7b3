import logging

logger = logging.getLogger(__name__)


class Transformer:
    """A single pipeline stage. Takes script text and returns script text."""

    def transform(self, source: str) -> str:
        raise NotImplementedError


class Pipeline:

    def __init__(self, *transformers):
        self.transformers = transformers

    def transform(self, source: str) -> str:
        for transformer in self.transformers:
            source = transformer.transform(source)
            logger.debug('%s: %d bytes', type(transformer).__name__, len(source))
        return source
