"""Test fixtures for certificate store tests."""

import pytest

from reloadable_certs import LoadError, SelectionError, Store


class DummyStore(Store):
    """Store recording how it was used, with configurable outcomes."""

    def __init__(self, certificate=None, compatible=True, fail_on_reload=False, fail_on_select=False):
        self.certificate = certificate
        self.compatible = compatible
        self.fail_on_reload = fail_on_reload
        self.fail_on_select = fail_on_select
        self.reload_calls = 0
        self.lookups = 0

    def reload(self):
        self.reload_calls += 1
        if self.fail_on_reload:
            raise LoadError("failed reload")

    def get_certificate_no_default(self, info):
        self.lookups += 1
        if self.fail_on_select:
            raise SelectionError("failed selection")
        return self.certificate if self.compatible else None

    def get_certificate(self, info):
        return self.certificate


@pytest.fixture
def dummy_store():
    """Return the DummyStore class."""
    return DummyStore
