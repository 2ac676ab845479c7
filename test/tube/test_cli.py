import socket
import struct
import trio

from click.testing import CliRunner
from functools import partial

from flockwave.tube.cli import tube_remote


def find_unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def receive_line(stream) -> bytes:
    data = b""
    while not data.endswith(b"\n"):
        chunk = await stream.receive_some()
        if not chunk:
            break
        data += chunk
    return data


def invoke_against_server(handler, args, input=None):
    """Starts a loopback server with the given connection handler and runs
    the command line tool against it in a worker thread.

    Waits for the handler to finish before shutting down the server so the
    handler can record what it received.
    """

    async def main():
        handled = trio.Event()

        async def handle(stream) -> None:
            try:
                await handler(stream)
            finally:
                handled.set()

        async with trio.open_nursery() as nursery:
            listeners = await nursery.start(
                partial(trio.serve_tcp, handle, 0, host="127.0.0.1")
            )
            port = listeners[0].socket.getsockname()[1]

            runner = CliRunner()
            result = await trio.to_thread.run_sync(
                partial(
                    runner.invoke,
                    tube_remote,
                    ["127.0.0.1", str(port), "--timeout", "5", *args],
                    input=input,
                )
            )

            with trio.move_on_after(5):
                await handled.wait()
            nursery.cancel_scope.cancel()

        return result

    return trio.run(main)


def test_invalid_address():
    runner = CliRunner()

    result = runner.invoke(tube_remote, ["http://example.com:80"])
    assert result.exit_code == 2
    assert "Unsupported URI scheme" in result.output

    result = runner.invoke(tube_remote, ["example.com"])
    assert result.exit_code == 2
    assert "No port" in result.output


def test_invalid_format():
    runner = CliRunner()
    result = runner.invoke(tube_remote, ["localhost:1", "--format", "json"])
    assert result.exit_code == 2


def test_connection_failure():
    runner = CliRunner()
    port = find_unused_port()

    result = runner.invoke(tube_remote, ["127.0.0.1", str(port), "--timeout", "5"])

    assert result.exit_code == 1
    assert "Failed to connect" in result.output


def test_raw_relay():
    received = []

    async def echo(stream) -> None:
        await stream.send_all(b"Hello, who are you?\n")
        line = await receive_line(stream)
        received.append(line)
        await stream.send_all(b"You said: " + line)
        await stream.aclose()

    result = invoke_against_server(echo, [], input="Alice\n")

    assert result.exit_code == 0, result.output
    assert received == [b"Alice\n"]
    assert "Connected to 127.0.0.1:" in result.output
    assert "Hello, who are you?\nYou said: Alice\n" in result.output
    assert "Connection closed." in result.output


def test_hex_relay_keeps_running_offset():
    received = []

    async def counter(stream) -> None:
        await stream.send_all(b"0123456789abcdef")
        received.append(await receive_line(stream))
        await stream.send_all(b"ghij")
        await stream.aclose()

    result = invoke_against_server(counter, ["--format", "hex"], input="next\n")

    assert result.exit_code == 0, result.output
    assert received == [b"next\n"]
    assert "00000000  30 31 32 33 34 35 36 37  38 39 61 62 63 64 65 66" in (
        result.output
    )
    assert "|0123456789abcdef|" in result.output
    assert "00000010  67 68 69 6a" in result.output
    assert "|ghij|" in result.output
    assert "Connection closed." in result.output


def test_connection_reset_is_reported():
    async def reset(stream) -> None:
        stream.socket.setsockopt(
            socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0)
        )
        await stream.aclose()

    result = invoke_against_server(reset, [], input="")

    assert result.exit_code == 0, result.output
    assert "Connection lost" in result.output


def test_close_on_eof():
    received = []

    async def collector(stream) -> None:
        data = b""
        while True:
            chunk = await stream.receive_some()
            if not chunk:
                break
            data += chunk
        received.append(data)

    result = invoke_against_server(
        collector, ["--close-on-eof"], input="first\nsecond\n"
    )

    assert result.exit_code == 0, result.output
    assert received == [b"first\nsecond\n"]
    assert "Connection closed." in result.output
