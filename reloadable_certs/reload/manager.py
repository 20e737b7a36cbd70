"""
Registry binding reloadable components to external reload triggers.
"""

import threading
import logging
from typing import Dict, Optional

from ..store.base import Reloadable
from .triggers import Channel, Trigger

logger = logging.getLogger("reloadable_certs.reload")


class _Registration:
    """Active binding of one reloadable to one trigger and its listener thread."""

    def __init__(self, reloadable: Reloadable, trigger: Trigger):
        self.reloadable = reloadable
        self.trigger = trigger
        self.channel = Channel()
        self.last_error: Optional[Exception] = None
        self.thread = threading.Thread(
            target=self._listen,
            name=f"cert-reload-{type(reloadable).__name__}-{id(reloadable):x}",
            daemon=True
        )

    def _listen(self):
        logger.info(f"Listening for {self.trigger!r} to reload {self.reloadable!r}")
        while self.channel.receive():
            logger.info(f"Received {self.trigger!r}, reloading {self.reloadable!r}")
            try:
                self.reloadable.reload()
            except Exception as e:
                self.last_error = e
                logger.warning(f"Keeping old TLS certificate because the new one could not be loaded: {e}")
            else:
                self.last_error = None
        logger.info(f"Stopped listening for {self.trigger!r} on {self.reloadable!r}")


class ReloadManager:
    """
    Maps reloadable components to trigger listeners.

    Each registered component gets exactly one background listener that calls
    its ``reload`` whenever the trigger fires. Registration is keyed on object
    identity and is idempotent; stopping an unregistered component does
    nothing.

    Create one manager per process (or per test) and use it as a context
    manager, or call ``stop_all``, to release every registration.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._registrations: Dict[int, _Registration] = {}

    def notify(self, reloadable: Reloadable, trigger: Trigger) -> bool:
        """
        Reload ``reloadable`` every time ``trigger`` fires.

        Args:
            reloadable: Component to reload
            trigger: Source of reload requests

        Returns:
            True if a new registration was created, False if the component
            was already registered

        Raises:
            ValueError: If a signal trigger is subscribed off the main thread
        """
        key = id(reloadable)
        with self._lock:
            if key in self._registrations:
                logger.debug(f"{reloadable!r} already registered for reload")
                return False

            registration = _Registration(reloadable, trigger)
            trigger.subscribe(registration.channel)
            registration.thread.start()
            self._registrations[key] = registration

        logger.info(f"Registered {reloadable!r} for reload on {trigger!r}")
        return True

    def stop(self, reloadable: Reloadable) -> bool:
        """
        Stop reloading ``reloadable`` on its trigger.

        Returns once the registration is removed; the listener thread exits
        on its own shortly after.

        Returns:
            True if a registration was removed, False if there was none
        """
        with self._lock:
            registration = self._registrations.pop(id(reloadable), None)
            if registration is None:
                return False

            registration.trigger.unsubscribe(registration.channel)
            registration.channel.close()

        logger.info(f"Unregistered {reloadable!r} from {registration.trigger!r}")
        return True

    def stop_all(self) -> None:
        with self._lock:
            reloadables = [r.reloadable for r in self._registrations.values()]
        for reloadable in reloadables:
            self.stop(reloadable)

    def is_registered(self, reloadable: Reloadable) -> bool:
        with self._lock:
            return id(reloadable) in self._registrations

    def last_error(self, reloadable: Reloadable) -> Optional[Exception]:
        """Error raised by the most recent triggered reload, if it failed."""
        with self._lock:
            registration = self._registrations.get(id(reloadable))
        if registration is None:
            return None
        return registration.last_error

    def __len__(self):
        with self._lock:
            return len(self._registrations)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop_all()
