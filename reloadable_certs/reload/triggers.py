"""
External trigger sources that cause a registered component to reload.

A trigger delivers into ``Channel`` objects subscribed to it. Delivery is
fire-and-forget; nothing is reported back to the trigger source.
"""

import queue
import signal
import threading
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

logger = logging.getLogger("reloadable_certs.reload")

_CLOSED = object()


class Channel:
    """
    Delivery channel between a trigger and one listener.

    Deliveries arriving while one is already pending are merged, so a burst
    of triggers during a slow reload results in at most one further reload.
    ``deliver`` only sets a flag and puts onto a ``queue.SimpleQueue``, which
    is reentrant, so it may be called from a signal handler.
    """

    def __init__(self):
        self._queue = queue.SimpleQueue()
        self._closed = threading.Event()
        self._pending = False

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def deliver(self) -> None:
        if self._closed.is_set() or self._pending:
            return
        self._pending = True
        self._queue.put(True)

    def close(self) -> None:
        self._closed.set()
        self._queue.put(_CLOSED)

    def receive(self) -> bool:
        """
        Block until the next delivery.

        Returns:
            True for a delivery, False once the channel has been closed.
            Deliveries still queued at close time are discarded.
        """
        item = self._queue.get()
        if item is _CLOSED or self._closed.is_set():
            return False
        # Cleared before the caller acts, so a trigger during the reload queues one more
        self._pending = False
        return True


class Trigger(ABC):
    """Source of reload requests."""

    @abstractmethod
    def subscribe(self, channel: Channel) -> None:
        """Start delivering trigger events into the channel."""
        pass

    @abstractmethod
    def unsubscribe(self, channel: Channel) -> None:
        """Stop delivering into the channel; unknown channels are ignored."""
        pass


class ManualTrigger(Trigger):
    """
    Trigger fired explicitly by application code.

    Suitable for administrative commands or for bridging a pub/sub event
    onto reloads.
    """

    def __init__(self, name: str = "manual"):
        self.name = name
        self._lock = threading.Lock()
        self._channels: Tuple[Channel, ...] = ()

    def subscribe(self, channel: Channel) -> None:
        with self._lock:
            if channel not in self._channels:
                self._channels = self._channels + (channel,)

    def unsubscribe(self, channel: Channel) -> None:
        with self._lock:
            self._channels = tuple(c for c in self._channels if c is not channel)

    def fire(self) -> int:
        """
        Deliver one event to every subscriber.

        Returns:
            Number of channels the event was delivered to
        """
        channels = self._channels
        for channel in channels:
            channel.deliver()
        return len(channels)

    def __repr__(self):
        return f"ManualTrigger({self.name!r})"


class _SignalDispatcher:
    """
    Fans a process signal out to every subscribed channel.

    One Python handler is installed per signal number while it has
    subscribers. The handler runs on the main thread between bytecodes and
    must not take locks, so subscriber lists are replaced, never mutated.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._channels: Dict[int, Tuple[Channel, ...]] = {}
        self._previous: Dict[int, object] = {}

    def add(self, signum: int, channel: Channel) -> None:
        with self._lock:
            if signum not in self._previous:
                # Raises ValueError when called off the main thread
                previous = signal.signal(signum, self._handle)
                self._previous[signum] = signal.SIG_DFL if previous is None else previous
                logger.debug(f"Installed handler for {signal.Signals(signum).name}")
            self._channels[signum] = self._channels.get(signum, ()) + (channel,)

    def remove(self, signum: int, channel: Channel) -> None:
        with self._lock:
            channels = tuple(c for c in self._channels.get(signum, ()) if c is not channel)
            self._channels[signum] = channels
            if channels or signum not in self._previous:
                return

            try:
                signal.signal(signum, self._previous[signum])
            except ValueError:
                # Off the main thread the handler stays installed with no
                # subscribers and forwards to the previous disposition; a
                # later add reuses it and a remove on the main thread
                # restores the previous handler.
                logger.debug(f"Left idle handler for {signal.Signals(signum).name} installed")
                return

            del self._previous[signum]
            del self._channels[signum]
            logger.debug(f"Restored previous handler for {signal.Signals(signum).name}")

    def _handle(self, signum, frame):
        channels = self._channels.get(signum, ())
        for channel in channels:
            channel.deliver()
        if channels:
            return

        # Idle handler: behave as the handler it replaced would have
        previous = self._previous.get(signum, signal.SIG_DFL)
        if callable(previous):
            previous(signum, frame)
        elif previous == signal.SIG_DFL:
            signal.signal(signum, signal.SIG_DFL)
            signal.raise_signal(signum)
            # Only reached for signals whose default action is to ignore them
            signal.signal(signum, self._handle)


_dispatcher = _SignalDispatcher()


class SignalTrigger(Trigger):
    """
    Trigger fired by an operating-system signal, typically SIGHUP.

    Subscribing installs a signal handler, which Python only permits on the
    main thread. When the last subscriber for a signal unsubscribes, the
    handler that was in place before is restored.
    """

    def __init__(self, signum: Optional[int] = None):
        self.signum = signal.Signals(signal.SIGHUP if signum is None else signum)

    def subscribe(self, channel: Channel) -> None:
        _dispatcher.add(self.signum, channel)

    def unsubscribe(self, channel: Channel) -> None:
        _dispatcher.remove(self.signum, channel)

    def __repr__(self):
        return f"SignalTrigger({self.signum.name})"
