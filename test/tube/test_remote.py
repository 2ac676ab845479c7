import socket
import trio

from functools import partial
from pytest import mark, raises

from flockwave.tube import (
    ConnectionFailedError,
    ReadTimeoutError,
    RemoteConnectionInfo,
    open_remote,
    remote,
)


def find_unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


async def start_server(nursery, handler) -> int:
    listeners = await nursery.start(
        partial(trio.serve_tcp, handler, 0, host="127.0.0.1")
    )
    return listeners[0].socket.getsockname()[1]


async def greeter(stream) -> None:
    await stream.send_all(b"Hello, who are you?\n")
    name = await stream.receive_some(1024)
    await stream.send_all(b"Nice to meet you, " + name)
    await stream.aclose()


async def silent(stream) -> None:
    await trio.sleep_forever()


async def plaintext(stream) -> None:
    await stream.send_all(b"SSH-2.0-OpenSSH_9.6\r\n")
    await trio.sleep_forever()


@mark.parametrize(
    ("uri", "port", "expected"),
    [
        ("localhost:1337", None, RemoteConnectionInfo("localhost", 1337)),
        ("tcp://example.com:80", None, RemoteConnectionInfo("example.com", 80)),
        ("tls://example.com:443", None, RemoteConnectionInfo("example.com", 443, True)),
        ("ssl://example.com", 8443, RemoteConnectionInfo("example.com", 8443, True)),
        ("10.0.0.1", 23, RemoteConnectionInfo("10.0.0.1", 23)),
        ("10.0.0.1:2323", 23, RemoteConnectionInfo("10.0.0.1", 2323)),
    ],
)
def test_connection_info_from_uri(uri, port, expected):
    assert RemoteConnectionInfo.create_from_uri(uri, port) == expected


@mark.parametrize("uri", ["http://example.com:80", "example.com", "tcp://:80"])
def test_connection_info_from_invalid_uri(uri):
    with raises(ValueError):
        RemoteConnectionInfo.create_from_uri(uri)


def test_open_remote():
    async def main():
        async with trio.open_nursery() as nursery:
            port = await start_server(nursery, greeter)

            async with open_remote("127.0.0.1", port) as tube:
                assert await tube.recvline(timeout=5) == b"Hello, who are you?\n"
                tube.sendline(b"Alice")
                assert await tube.recvall(timeout=5) == b"Nice to meet you, Alice\n"
                assert tube.error is None

            nursery.cancel_scope.cancel()

    trio.run(main)


def test_remote_in_existing_nursery():
    async def main():
        async with trio.open_nursery() as nursery:
            port = await start_server(nursery, greeter)

            tube = await remote(nursery, "127.0.0.1", port)
            assert await tube.recvuntil(b"?", timeout=5) == b"Hello, who are you?"
            assert await tube.recvn(1, timeout=5) == b"\n"
            tube.sendline(b"Bob")
            assert await tube.recvline(timeout=5) == b"Nice to meet you, Bob\n"

            tube.close()
            assert await tube.recvall(timeout=5) == b""

            nursery.cancel_scope.cancel()

    trio.run(main)


def test_exceptions_in_context_are_not_wrapped():
    async def main():
        async with trio.open_nursery() as nursery:
            port = await start_server(nursery, silent)

            with raises(ReadTimeoutError):
                async with open_remote("127.0.0.1", port) as tube:
                    await tube.recvline(timeout=0.1)

            nursery.cancel_scope.cancel()

    trio.run(main)


def test_connection_refused():
    async def main():
        port = find_unused_port()
        with raises(ConnectionFailedError):
            async with open_remote("127.0.0.1", port, timeout=5):
                pass

    trio.run(main)


def test_tls_handshake_failure():
    async def main():
        async with trio.open_nursery() as nursery:
            port = await start_server(nursery, plaintext)

            with raises(ConnectionFailedError):
                async with open_remote("127.0.0.1", port, tls=True, timeout=5):
                    pass

            nursery.cancel_scope.cancel()

    trio.run(main)
