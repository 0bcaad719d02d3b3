import asyncio
from typing import Any, Awaitable, Callable, Dict, Set

from surveybot.observability.logging import log

TimerCallback = Callable[..., Awaitable[Any]]


class TimerScheduler:
    """
    Fire-and-forget delayed callbacks keyed by contact.

    Timers are never cancelled on a transition: the callback re-reads the contact's
    state under its lock and stands down if the conversation has moved on.
    """

    def __init__(self) -> None:
        self._by_contact: Dict[str, Set[asyncio.Task]] = {}
        self._background: Set[asyncio.Task] = set()

    def schedule(self, contact_id: str, delay: float, callback: TimerCallback, *args: Any) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self._fire(contact_id, float(delay), callback, args),
            name=f"timer:{contact_id}:{getattr(callback, '__name__', 'callback')}",
        )
        self._by_contact.setdefault(contact_id, set()).add(task)
        task.add_done_callback(lambda t, cid=contact_id: self._forget(cid, t))
        return task

    async def _fire(self, contact_id: str, delay: float, callback: TimerCallback, args: tuple) -> None:
        await asyncio.sleep(max(0.0, delay))
        try:
            await callback(*args)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log("timer_callback_failed", contactId=contact_id,
                callback=getattr(callback, "__name__", "callback"),
                errorType=type(e).__name__, error=str(e)[:300])

    def _forget(self, contact_id: str, task: asyncio.Task) -> None:
        tasks = self._by_contact.get(contact_id)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            del self._by_contact[contact_id]

    def spawn(self, coro: Awaitable[Any], *, name: str = None) -> asyncio.Task:
        """Run work in the background, keeping a reference until it finishes."""
        task = asyncio.get_running_loop().create_task(self._guard(coro, name), name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _guard(self, coro: Awaitable[Any], name: str) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log("background_task_failed", task=name or "task", errorType=type(e).__name__, error=str(e)[:300])

    def pending(self, contact_id: str) -> int:
        return len(self._by_contact.get(contact_id, ()))

    async def shutdown(self) -> None:
        tasks = [t for ts in self._by_contact.values() for t in ts] + list(self._background)
        for t in tasks:
            t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._by_contact.clear()
        self._background.clear()
        log("scheduler_shutdown", cancelled=len(tasks))
