"""Business logic services."""

from .grading import GradingService
from .persistence import PersistenceGateway
from .test_bank import TestBankService

__all__ = [
    "GradingService",
    "PersistenceGateway",
    "TestBankService",
]
