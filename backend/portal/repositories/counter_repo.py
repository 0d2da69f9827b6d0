"""Counter Repository - Atomic numeric id sequences"""
from pymongo.collection import Collection
from pymongo import ReturnDocument

from .mongo_client import get_collection
from ..utils.logger import get_logger

logger = get_logger(__name__)

PROJECT_SEQUENCE = "project_id"
TASK_SEQUENCE = "task_id"


class CounterRepository:
    """Repository for named monotonic sequences"""

    def __init__(self):
        self._counters: Collection = get_collection("counters")

    def reserve(self, name: str, count: int = 1) -> int:
        """
        Reserve a contiguous block of ids from a sequence.

        Returns the first id of the block; the block is [first, first + count).
        A single $inc makes the reservation atomic across concurrent callers.
        """
        if count < 1:
            raise ValueError("count must be at least 1")

        doc = self._counters.find_one_and_update(
            {"_id": name},
            {"$inc": {"seq": count}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        first = doc["seq"] - count + 1
        logger.debug(f"Reserved {count} id(s) from {name} starting at {first}")
        return first

    def next_project_id(self) -> int:
        return self.reserve(PROJECT_SEQUENCE)

    def reserve_task_ids(self, count: int) -> int:
        """First id of a block of task ids for one conversion"""
        return self.reserve(TASK_SEQUENCE, count)
