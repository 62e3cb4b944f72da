import pytest

from wavepanel.device import VisaDeviceProxy
from wavepanel.errors import DeviceCommunicationError


class FakeInstrument:
    def __init__(self):
        self.written = []
        self.closed = False
        self.fail = False

    def write(self, text):
        if self.fail:
            raise OSError("VI_ERROR_TMO")
        self.written.append(text)

    def query(self, text):
        if self.fail:
            raise OSError("VI_ERROR_TMO")
        if text == "*IDN?":
            return "RIGOL TECHNOLOGIES,DG2102,DG2P000000,00.01.14\n"
        return "ON\n"

    def close(self):
        self.closed = True


class FakeResourceManager:
    def __init__(self):
        self.opened = []
        self.inst = FakeInstrument()

    def open_resource(self, name):
        if name == "missing":
            raise OSError("VI_ERROR_RSRC_NFOUND")
        self.opened.append(name)
        return self.inst


def test_connect_query_disconnect():
    rm = FakeResourceManager()
    proxy = VisaDeviceProxy("USB0::FAKE::INSTR", resource_manager=rm)
    assert not proxy.is_connected()
    idn = proxy.connect()
    assert idn.startswith("RIGOL")
    assert rm.inst.timeout == 5000
    proxy.send_command(":SOUR1:BURS:STAT ON")
    assert rm.inst.written == [":SOUR1:BURS:STAT ON"]
    assert proxy.send_query(":SOUR1:BURS:STAT?") == "ON"
    proxy.disconnect()
    assert rm.inst.closed
    assert not proxy.is_connected()


def test_not_connected_raises():
    proxy = VisaDeviceProxy(resource_manager=FakeResourceManager())
    with pytest.raises(DeviceCommunicationError):
        proxy.send_command("*RST")
    with pytest.raises(DeviceCommunicationError):
        proxy.connect()


def test_open_failure_wrapped():
    proxy = VisaDeviceProxy("missing", resource_manager=FakeResourceManager())
    with pytest.raises(DeviceCommunicationError) as ei:
        proxy.connect()
    assert "missing" in str(ei.value)


def test_io_failure_wrapped():
    rm = FakeResourceManager()
    with VisaDeviceProxy("USB0::FAKE::INSTR", resource_manager=rm) as proxy:
        rm.inst.fail = True
        with pytest.raises(DeviceCommunicationError) as ei:
            proxy.send_command(":SOUR1:FREQ 1000")
        assert ":SOUR1:FREQ 1000" in str(ei.value)
        with pytest.raises(DeviceCommunicationError):
            proxy.send_query("*IDN?")
    assert not proxy.is_connected()


def test_auto_resource_picks_attached_generator(monkeypatch):
    from wavepanel import device as devmod

    monkeypatch.setattr(devmod, "find_generator_resource",
                        lambda: "USB0::0x1AB1::0x0644::DG2P000000::INSTR")
    rm = FakeResourceManager()
    proxy = VisaDeviceProxy("auto", resource_manager=rm)
    proxy.connect()
    assert rm.opened == ["USB0::0x1AB1::0x0644::DG2P000000::INSTR"]
    assert proxy.resource == "USB0::0x1AB1::0x0644::DG2P000000::INSTR"


def test_auto_resource_with_nothing_attached(monkeypatch):
    from wavepanel import device as devmod

    monkeypatch.setattr(devmod, "find_generator_resource", lambda: None)
    proxy = VisaDeviceProxy("auto", resource_manager=FakeResourceManager())
    with pytest.raises(DeviceCommunicationError):
        proxy.connect()


def test_transaction_holds_lock():
    rm = FakeResourceManager()
    with VisaDeviceProxy("USB0::FAKE::INSTR", resource_manager=rm) as proxy:
        with proxy.transaction() as held:
            held.send_command(":SOUR1:APPL:SIN 1000,1,0,0")
            held.send_command(":SOUR1:OUTP ON")
        assert rm.inst.written == [":SOUR1:APPL:SIN 1000,1,0,0", ":SOUR1:OUTP ON"]
