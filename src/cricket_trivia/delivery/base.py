"""
Module to contain base class for Delivery channels
"""
from abc import ABC, abstractmethod

from cricket_trivia.core.entities import PipelineResult


class DeliveryChannel(ABC):
    """
    Base interface for all delivery channels.
    """

    name: str

    @abstractmethod
    async def deliver(
        self,
        *,
        category: str,
        quiz_date: str,
        result: PipelineResult,
    ) -> None:
        """
        Deliver the quiz.
        Must raise exceptions on failure (handled upstream).
        """
        raise NotImplementedError
