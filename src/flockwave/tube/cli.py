"""Command line tool that connects to a remote endpoint and relays data
between the connection and the standard input and output.
"""

from __future__ import annotations

import click
import logging
import sys

from dataclasses import replace
from trio import open_nursery, run, to_thread
from typing import Optional

from .constants import DEFAULT_CONNECT_TIMEOUT
from .errors import ConnectionFailedError, StreamClosedError
from .formatting import format_hexdump
from .remote import RemoteConnectionInfo, open_remote
from .tube import Tube


@click.command()
@click.argument("address")
@click.argument("port", type=int, required=False)
@click.option(
    "--tls/--no-tls",
    default=None,
    help=(
        "whether to encrypt the connection with TLS. Overrides the scheme of "
        "the address."
    ),
)
@click.option(
    "--format",
    default="raw",
    type=click.Choice(["raw", "hex"]),
    help=(
        "the output format. 'raw' prints the raw bytes received from the "
        "remote side. 'hex' prints a hex dump of the received bytes."
    ),
)
@click.option(
    "--timeout",
    default=DEFAULT_CONNECT_TIMEOUT,
    type=float,
    help="timeout of the connection attempt, in seconds",
)
@click.option(
    "--close-on-eof",
    is_flag=True,
    help="close the connection when the standard input is exhausted",
)
@click.option("-v", "--verbose", is_flag=True, help="print debug messages")
def tube_remote(
    address: str,
    port: Optional[int] = None,
    tls: Optional[bool] = None,
    format: str = "raw",
    timeout: float = DEFAULT_CONNECT_TIMEOUT,
    close_on_eof: bool = False,
    verbose: bool = False,
):
    """Connects to a remote TCP endpoint, sends the lines of the standard
    input to it and copies everything received from it to the standard
    output.

    The address must adhere to the following format:

        [protocol://]hostname[:port]

    where 'protocol' is either 'tcp', 'tls' or 'ssl', and it defaults to
    'tcp'. The port may also be given as a separate argument.

    The command runs until the remote side closes the connection, even if
    the standard input was exhausted earlier. Use --close-on-eof to close
    the connection as soon as all the lines of the standard input were sent.
    """
    try:
        conn = RemoteConnectionInfo.create_from_uri(address, port)
    except ValueError as ex:
        raise click.BadParameter(str(ex), param_hint="address") from None

    if tls is not None:
        conn = replace(conn, tls=tls)

    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    async def copy_to_stdout(tube: Tube) -> None:
        offset = 0
        while True:
            data = await tube.recv()
            if not data:
                if tube.error is not None:
                    print(f"Connection lost: {tube.error}", file=sys.stderr)
                else:
                    print("Connection closed.", file=sys.stderr)
                break

            if format == "hex":
                for line in format_hexdump(data, offset):
                    sys.stdout.write(line + "\n")
                sys.stdout.flush()
                offset += len(data)
            else:
                sys.stdout.buffer.write(data)
                sys.stdout.flush()

    async def copy_from_stdin(tube: Tube) -> None:
        while True:
            line = await to_thread.run_sync(
                sys.stdin.buffer.readline, abandon_on_cancel=True
            )
            if not line:
                break

            try:
                tube.write(line)
            except StreamClosedError:
                return

        if close_on_eof:
            tube.close()

    async def main() -> Optional[str]:
        try:
            async with open_remote(
                conn.host, conn.port, tls=conn.tls, timeout=timeout
            ) as tube:
                print(f"Connected to {conn.host}:{conn.port}.", file=sys.stderr)
                async with open_nursery() as nursery:
                    nursery.start_soon(copy_from_stdin, tube)
                    await copy_to_stdout(tube)
                    nursery.cancel_scope.cancel()
        except ConnectionFailedError as ex:
            return str(ex)

    error = run(main)
    if error:
        raise click.ClickException(error)


if __name__ == "__main__":
    tube_remote()  # type: ignore
