"""
defndr/classifier/base.py
Abstract base class for the opaque spam model.
To plug in a runtime: subclass SpamModelAdapter and implement predict().
The core never trains or updates a model; it only consumes a probability.
"""

from abc import ABC, abstractmethod
from typing import Optional

from defndr.models.record import ProcessedMessage


class SpamModelAdapter(ABC):
    """
    The MessageScorer calls predict() once per message and feeds the
    result to the mlSpamVote signal. The scorer never knows which
    runtime is behind it.
    """

    name: str = 'unknown'

    def is_available(self) -> bool:
        """
        Returns True if the model is loaded and ready. Checked before each
        vote so scoring can continue on heuristics alone.
        """
        return True

    @abstractmethod
    def predict(self, message: ProcessedMessage) -> Optional[float]:
        """
        Spam probability in [0, 1] for one preprocessed message.
        Returns None when no vote can be given. Must not perform network
        I/O. Should not raise; the scorer treats an exception as no vote.
        """
        ...
