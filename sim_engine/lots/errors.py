"""TAILDRAW - Draw engine errors."""


class DrawError(Exception):
    """Base class for every failure raised by the draw engine."""


class InvalidInput(DrawError, ValueError):
    """Quantities or salt outside their allowed range."""


class ExhaustedCandidateSpace(DrawError, RuntimeError):
    """No free, in-range tail was found within the allowed number of draws."""

    def __init__(self, length: int, attempts: int, total_quantity: int):
        self.length = length
        self.attempts = attempts
        self.total_quantity = total_quantity
        super().__init__(
            f"No free tail of length {length} for {total_quantity} lots "
            f"after {attempts} draws"
        )


class RandomSourceError(DrawError, RuntimeError):
    """The random source could not supply a value."""
