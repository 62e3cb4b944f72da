# Ensure project root is on sys.path for test imports
import sys
import pathlib
from contextlib import contextmanager

import pytest

root = pathlib.Path(__file__).resolve().parent.parent
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from wavepanel.debounce import ManualLoop  # noqa: E402
from wavepanel.errors import DeviceCommunicationError  # noqa: E402
from wavepanel.presentation import MemoryPresentation  # noqa: E402


class FakeDevice:
    """Records commands; answers queries from a dict (exact text match).

    Commands sent inside ``transaction()`` are also grouped in ``transactions``.
    """

    def __init__(self, responses=None, connected=True):
        self.commands = []
        self.queries = []
        self.responses = dict(responses or {})
        self.connected = connected
        self.fail_on = set()
        self.transactions = []
        self._open = None

    def send_command(self, text):
        if not self.connected:
            raise DeviceCommunicationError("Not connected to instrument")
        if any(text.startswith(prefix) for prefix in self.fail_on):
            raise DeviceCommunicationError(f"SCPI write failed [{text}]: timeout")
        self.commands.append(text)
        if self._open is not None:
            self._open.append(text)

    def send_query(self, text):
        if not self.connected:
            raise DeviceCommunicationError("Not connected to instrument")
        self.queries.append(text)
        if any(text.startswith(prefix) for prefix in self.fail_on):
            raise DeviceCommunicationError(f"SCPI query failed [{text}]: timeout")
        try:
            return self.responses[text]
        except KeyError:
            raise DeviceCommunicationError(f"SCPI query failed [{text}]: no answer") from None

    def is_connected(self):
        return self.connected

    @contextmanager
    def transaction(self):
        outer = self._open is None
        if outer:
            self._open = []
        try:
            yield self
        finally:
            if outer:
                self.transactions.append(self._open)
                self._open = None


@pytest.fixture
def device():
    return FakeDevice()


@pytest.fixture
def loop():
    return ManualLoop()


@pytest.fixture
def presentation():
    return MemoryPresentation()


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    from wavepanel import config as cfgmod

    monkeypatch.setattr(cfgmod, "CONFIG_PATH", tmp_path / "config.json")
    cfgmod.reset_cache()
    yield
    cfgmod.reset_cache()
