"""Registry of tasks that are suspended until the next data or close event
of a tube.
"""

from trio.lowlevel import ParkingLot

__all__ = ("WaiterQueue",)


class WaiterQueue:
    """Queue of suspended tasks that are woken up together.

    Tasks call `wait()` to suspend themselves until the next `broadcast()`.
    A broadcast wakes up every task that is waiting at that moment and empties
    the queue; tasks that start waiting afterwards are woken up by the next
    broadcast only. Being woken up carries no information; waiting tasks
    must re-check whatever condition they were waiting for.
    """

    def __init__(self):
        self._lot = ParkingLot()

    def __len__(self) -> int:
        return len(self._lot)

    async def wait(self) -> None:
        """Suspends the current task until the next broadcast.

        Cancelling the task while it is waiting removes it from the queue.
        """
        await self._lot.park()

    def broadcast(self) -> int:
        """Wakes up all the tasks that are currently waiting.

        Returns:
            the number of tasks that were woken up
        """
        return len(self._lot.unpark_all())
