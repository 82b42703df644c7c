"""Operation kind domain entity."""

from enum import Enum


class OperationKind(str, Enum):
    """The three operations the gateway can dispatch upstream.

    Values match the ``type`` discriminator of the inbound JSON body.
    """

    ANALYZE = "analyze"
    FLASHCARDS = "generate-batch"
    MCQS = "generate-mcq-batch"
