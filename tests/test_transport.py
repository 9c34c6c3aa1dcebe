"""Tests for the serial transport with pyserial mocked out."""

from unittest.mock import MagicMock, patch

import pytest
import serial

from bluefly_vario.protocol.transport import (
    DEFAULT_BAUDRATE,
    VarioTransport,
    VarioTransportError,
)


def make_serial_mock() -> MagicMock:
    """Serial mock whose write reports every byte as sent."""
    ser = MagicMock()
    ser.is_open = True
    ser.write.side_effect = lambda data: len(data)
    return ser


@pytest.fixture
def serial_mock():
    ser = make_serial_mock()
    with patch("bluefly_vario.protocol.transport.serial.Serial", return_value=ser) as factory:
        yield factory, ser


class TestOpenClose:
    def test_open_configures_port(self, serial_mock):
        factory, ser = serial_mock
        transport = VarioTransport("/dev/rfcomm0")
        transport.open()

        kwargs = factory.call_args.kwargs
        assert kwargs["port"] == "/dev/rfcomm0"
        assert kwargs["baudrate"] == DEFAULT_BAUDRATE == 57600
        assert kwargs["timeout"] == 1.0
        ser.reset_input_buffer.assert_called_once()
        assert transport.is_open

    def test_open_failure_raises_transport_error(self):
        with patch(
            "bluefly_vario.protocol.transport.serial.Serial",
            side_effect=serial.SerialException("no such port"),
        ):
            with pytest.raises(VarioTransportError, match="no such port"):
                VarioTransport("/dev/missing").open()

    def test_context_manager_closes(self, serial_mock):
        _, ser = serial_mock
        with VarioTransport("/dev/rfcomm0") as transport:
            assert transport.is_open
        ser.close.assert_called_once()

    def test_not_open_before_open(self):
        assert not VarioTransport("/dev/rfcomm0").is_open


class TestSend:
    def test_plain_frame_gets_line_terminator(self, serial_mock):
        _, ser = serial_mock
        with VarioTransport("/dev/rfcomm0") as transport:
            transport.send("$BST*")
        ser.write.assert_called_once_with(b"$BST*\r\n")
        ser.flush.assert_called_once()

    def test_pmtk_frame_sent_as_is(self, serial_mock):
        _, ser = serial_mock
        with VarioTransport("/dev/rfcomm0") as transport:
            transport.send("$PMTK183*38\r\n")
        ser.write.assert_called_once_with(b"$PMTK183*38\r\n")

    def test_explicit_terminator(self, serial_mock):
        _, ser = serial_mock
        with VarioTransport("/dev/rfcomm0") as transport:
            transport.send("$BST*", terminator="")
        ser.write.assert_called_once_with(b"$BST*")

    def test_short_write_raises(self, serial_mock):
        _, ser = serial_mock
        ser.write.side_effect = lambda data: len(data) - 1
        with VarioTransport("/dev/rfcomm0") as transport:
            with pytest.raises(VarioTransportError, match="Incomplete write"):
                transport.send("$BST*")

    def test_write_failure_raises(self, serial_mock):
        _, ser = serial_mock
        ser.write.side_effect = serial.SerialException("gone")
        with VarioTransport("/dev/rfcomm0") as transport:
            with pytest.raises(VarioTransportError):
                transport.send("$BST*")

    def test_send_when_closed_raises(self):
        with pytest.raises(VarioTransportError):
            VarioTransport("/dev/rfcomm0").send("$BST*")


class TestRead:
    def test_read_line_strips_terminator(self, serial_mock):
        _, ser = serial_mock
        ser.readline.return_value = b"PRS 18BCD\r\n"
        with VarioTransport("/dev/rfcomm0") as transport:
            assert transport.read_line() == "PRS 18BCD"

    def test_timeout_returns_none(self, serial_mock):
        _, ser = serial_mock
        ser.readline.return_value = b""
        with VarioTransport("/dev/rfcomm0") as transport:
            assert transport.read_line() is None

    def test_iter_lines_skips_timeouts(self, serial_mock):
        _, ser = serial_mock
        ser.readline.side_effect = [b"", b"TMP 215\r\n", b"", b"BAT 1004\r\n", b"PRS 0\r\n"]
        with VarioTransport("/dev/rfcomm0") as transport:
            assert list(transport.iter_lines(max_lines=2)) == ["TMP 215", "BAT 1004"]

    def test_read_failure_raises(self, serial_mock):
        _, ser = serial_mock
        ser.readline.side_effect = serial.SerialException("gone")
        with VarioTransport("/dev/rfcomm0") as transport:
            with pytest.raises(VarioTransportError):
                transport.read_line()


class TestPartialLines:
    """A read timeout in the middle of a line never yields a fragment."""

    def test_fragment_joined_with_next_read(self, serial_mock):
        _, ser = serial_mock
        ser.readline.side_effect = [b"PRS 18B", b"CD\r\n"]
        with VarioTransport("/dev/rfcomm0") as transport:
            assert transport.read_line() is None
            assert transport.read_line() == "PRS 18BCD"

    def test_iter_lines_waits_for_complete_line(self, serial_mock):
        _, ser = serial_mock
        ser.readline.side_effect = [b"TMP 2", b"", b"15\r\n", b"BAT 3E8\n"]
        with VarioTransport("/dev/rfcomm0") as transport:
            assert list(transport.iter_lines(max_lines=2)) == ["TMP 215", "BAT 3E8"]

    def test_reopen_discards_fragment(self, serial_mock):
        _, ser = serial_mock
        ser.readline.side_effect = [b"PRS 18B", b"TMP 215\r\n"]
        transport = VarioTransport("/dev/rfcomm0")
        transport.open()
        assert transport.read_line() is None
        transport.open()
        assert transport.read_line() == "TMP 215"
