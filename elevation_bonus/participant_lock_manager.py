import asyncio
import logging
from asyncio import Lock
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Dict

from elevation_bonus.domain.errors import Busy


class ParticipantLockManager:
    """Serialises stock and usage mutations per participant."""

    def __init__(self, timeout: float = 5.0):
        self.locks: Dict[str, Lock] = {}  # one Lock per participant_id
        self.waiters: Dict[str, int] = {}  # coroutines holding or waiting for each lock
        self.lock = Lock()  # protects locks and waiters
        self.timeout = timeout

    async def get_lock(self, participant_id: str) -> Lock:
        """Get the Lock of the specified participant and register a waiter

        Args:
            participant_id (str): ID to identify the participant

        Returns:
            Lock: Lock of the specified participant
        """
        async with self.lock:
            if participant_id not in self.locks:
                self.locks[participant_id] = Lock()
                self.waiters[participant_id] = 0
            self.waiters[participant_id] += 1
            return self.locks[participant_id]

    async def release_waiter(self, participant_id: str):
        async with self.lock:
            if participant_id in self.waiters:
                self.waiters[participant_id] -= 1

    @asynccontextmanager
    async def hold(self, *participant_ids: str) -> AsyncIterator[None]:
        """Hold the locks of the given participants, acquired in sorted order

        Raises:
            Busy: a lock could not be acquired within the timeout
        """
        async with AsyncExitStack() as stack:
            for participant_id in sorted(set(participant_ids)):
                lock = await self.get_lock(participant_id)
                stack.push_async_callback(self.release_waiter, participant_id)
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
                except asyncio.TimeoutError:
                    logging.warning(f"Timed out waiting for the lock of participant {participant_id}")
                    raise Busy(
                        f"Participant {participant_id} is busy, retry later",
                        participant_id=participant_id,
                    )
                stack.callback(lock.release)
            yield

    async def cleanup(self) -> int:
        """Delete the Locks nobody holds or waits for

        Returns:
            int: Number of deleted Locks
        """
        async with self.lock:
            idle = [
                participant_id
                for participant_id, lock in self.locks.items()
                if not lock.locked() and self.waiters.get(participant_id, 0) == 0
            ]
            for participant_id in idle:
                del self.locks[participant_id]
                del self.waiters[participant_id]
        if idle:
            logging.info(f"Pruned {len(idle)} idle participant locks")
        return len(idle)
