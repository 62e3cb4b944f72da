"""Device proxy: the synchronous command/query channel to the generator.

Controllers depend only on the ``DeviceProxy`` protocol. ``VisaDeviceProxy``
is the concrete USB-TMC transport; one instance is shared by every feature
controller and serializes access with a re-entrant lock so multi-step
sequences are never interleaved.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, ContextManager, Iterator, Optional, Protocol

from .deps import HAVE_PYVISA, INSTALL_HINTS, _pyvisa, find_generator_resource
from .errors import DeviceCommunicationError
from .logging import get_logger

__all__ = ["DeviceProxy", "VisaDeviceProxy"]

log = get_logger()


class DeviceProxy(Protocol):
    def send_command(self, text: str) -> None: ...

    def send_query(self, text: str) -> str: ...

    def is_connected(self) -> bool: ...

    def transaction(self) -> ContextManager[Any]: ...


class VisaDeviceProxy:
    """pyvisa-backed proxy.

    ``resource_manager`` may be injected (e.g. ``pyvisa.ResourceManager('@py')``
    or a test double); otherwise the default VISA backend is used.
    """

    def __init__(self, resource: Optional[str] = None, *, timeout_ms: int = 5000,
                 resource_manager: Any = None) -> None:
        self.resource = resource
        self.timeout_ms = timeout_ms
        self._rm = resource_manager
        self._inst: Any = None
        self._lock = threading.RLock()

    def __enter__(self) -> "VisaDeviceProxy":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def _resource_manager(self) -> Any:
        if self._rm is None:
            if not HAVE_PYVISA:
                raise DeviceCommunicationError(
                    f"pyvisa not available. {INSTALL_HINTS['pyvisa']}")
            self._rm = _pyvisa.ResourceManager()
        return self._rm

    def connect(self, resource: Optional[str] = None) -> str:
        """Open the VISA resource and return the identification string.

        A resource of ``"auto"`` picks the first attached generator.
        """
        resource = resource or self.resource
        if resource == "auto":
            resource = find_generator_resource()
        if not resource:
            raise DeviceCommunicationError("No VISA resource configured")
        with self._lock:
            self.disconnect()
            try:
                inst = self._resource_manager().open_resource(resource)
                inst.timeout = self.timeout_ms
                inst.read_termination = "\n"
                inst.write_termination = "\n"
            except DeviceCommunicationError:
                raise
            except Exception as e:
                raise DeviceCommunicationError(
                    f"Failed to open {resource}: {e}", visa_error=e) from e
            self._inst = inst
            self.resource = resource
            idn = self.identify()
            log.info("Connected: %s", idn)
            return idn

    def disconnect(self) -> None:
        with self._lock:
            inst, self._inst = self._inst, None
            if inst is not None:
                try:
                    inst.close()
                except Exception as e:  # pragma: no cover - close failures are not actionable
                    log.debug("VISA close error: %s", e)

    def is_connected(self) -> bool:
        return self._inst is not None

    def identify(self) -> str:
        return self.send_query("*IDN?")

    def _require(self) -> Any:
        if self._inst is None:
            raise DeviceCommunicationError("Not connected to instrument")
        return self._inst

    def send_command(self, text: str) -> None:
        with self._lock:
            inst = self._require()
            try:
                inst.write(text)
            except Exception as e:
                raise DeviceCommunicationError(
                    f"SCPI write failed [{text}]: {e}", visa_error=e) from e
        log.debug("-> %s", text)

    def send_query(self, text: str) -> str:
        with self._lock:
            inst = self._require()
            try:
                response = inst.query(text)
            except Exception as e:
                raise DeviceCommunicationError(
                    f"SCPI query failed [{text}]: {e}", visa_error=e) from e
        response = response.strip() if isinstance(response, str) else str(response)
        log.debug("<- %s = %s", text, response)
        return response

    @contextmanager
    def transaction(self) -> Iterator["VisaDeviceProxy"]:
        """Hold the transport lock across a multi-command sequence."""
        with self._lock:
            yield self
