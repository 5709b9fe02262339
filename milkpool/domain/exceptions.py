"""Domain-specific exception classes."""

from decimal import Decimal
from typing import Mapping


class MilkPoolError(Exception):
    """Base exception for milk pool ledger errors."""

    pass


class ValidationError(MilkPoolError):
    """Raised when input is malformed or missing, before any storage access."""

    pass


class CollectionNotFoundError(MilkPoolError):
    """Raised when a collection entry cannot be found."""

    def __init__(self, collection_id: int):
        self.collection_id = collection_id
        super().__init__(f"Collection with ID {collection_id} not found")


class PoolNotFoundError(MilkPoolError):
    """Raised when a milk pool cannot be found."""

    def __init__(self, pool_id: int):
        self.pool_id = pool_id
        super().__init__(f"Milk pool with ID {pool_id} not found")


class BatchNotFoundError(MilkPoolError):
    """Raised when a production batch cannot be found."""

    def __init__(self, batch_id: int):
        self.batch_id = batch_id
        super().__init__(f"Batch with ID {batch_id} not found")


class InvalidCollectionState(MilkPoolError):
    """
    Raised when referenced collections are not in the required state.

    ``problems`` maps each offending collection id to a short reason.
    """

    def __init__(self, problems: Mapping[int, str]):
        self.problems = dict(problems)
        self.collection_ids = sorted(self.problems)
        details = ", ".join(
            f"{collection_id} ({self.problems[collection_id]})"
            for collection_id in self.collection_ids
        )
        super().__init__(f"Invalid collection state: {details}")


class InsufficientPool(MilkPoolError):
    """Raised when a withdrawal exceeds the pool's remaining balance."""

    def __init__(self, pool_id: int, available: Decimal, requested: Decimal):
        self.pool_id = pool_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient milk in pool {pool_id}: "
            f"available={available}L, requested={requested}L"
        )


class NoActivePool(MilkPoolError):
    """Raised when there is not exactly one active pool to operate on."""

    def __init__(self, message: str = "No active milk pool", pool_id: int | None = None):
        self.pool_id = pool_id
        super().__init__(message)


class DuplicateBatchCodeError(MilkPoolError):
    """Raised when batch_code already exists."""

    def __init__(self, batch_code: str):
        self.batch_code = batch_code
        super().__init__(f"Batch code '{batch_code}' already exists")


class ConcurrencyConflict(MilkPoolError):
    """Raised when a conditional write lost a race. Safe to retry."""

    pass


class StorageUnavailable(MilkPoolError):
    """Raised when the underlying store cannot be reached."""

    pass
