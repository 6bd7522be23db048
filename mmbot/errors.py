class BotError(RuntimeError):
    pass


class PreconditionError(BotError):
    """Raised when trend processing runs before a seed snapshot exists."""


class TransportError(BotError):
    """Raised by a snapshot source when the order book cannot be fetched or decoded."""
