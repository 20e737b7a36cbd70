"""
Store composed of an ordered list of member stores.
"""

import logging
from typing import List, Optional, Sequence

from ..certificate import Certificate
from ..exceptions import AggregateError, ConfigurationError
from ..handshake import HandshakeInfo
from .base import Store

logger = logging.getLogger("reloadable_certs.store")


class MultiStore(Store):
    """
    Presents several stores as one.

    Members are consulted in order, so earlier stores take priority when more
    than one certificate is compatible with a client.
    """

    def __init__(self, stores: Sequence[Store] = ()):
        self.stores = tuple(stores)

    def reload(self) -> None:
        """
        Reload every member store in order.

        A failing member does not stop the remaining ones from reloading.

        Raises:
            AggregateError: If at least one member failed; members that
                succeeded keep their new certificates
        """
        errors: List[Exception] = []
        for store in self.stores:
            try:
                store.reload()
            except Exception as e:
                logger.error(f"Failed to reload {store!r}: {e}")
                errors.append(e)

        if errors:
            raise AggregateError(errors)

    def get_certificate_no_default(self, info: HandshakeInfo) -> Optional[Certificate]:
        for store in self.stores:
            certificate = store.get_certificate_no_default(info)
            if certificate is not None:
                return certificate
        return None

    def get_certificate(self, info: HandshakeInfo) -> Certificate:
        """
        Select the first compatible certificate across all members.

        When no member has a compatible certificate, the first member's
        default is served even though the client may reject it.
        TODO: offer a strict mode that raises SelectionError instead of
        serving a possibly incompatible default.

        Raises:
            ConfigurationError: If the store has no members
        """
        certificate = self.get_certificate_no_default(info)
        if certificate is not None:
            return certificate

        if not self.stores:
            raise ConfigurationError("no certificate stores configured")

        logger.debug(f"No compatible certificate for {info.server_name!r}, using default")
        return self.stores[0].get_certificate(info)

    def __len__(self):
        return len(self.stores)

    def __repr__(self):
        return f"MultiStore({list(self.stores)!r})"
