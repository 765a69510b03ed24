"""Exceptions surfaced to callers of the training engine."""


class CheckpointError(IOError):
    """A checkpoint could not be written, read, or does not fit the network."""
