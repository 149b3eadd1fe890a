# fastws

A small WebSocket (RFC 6455) implementation built on `asyncio` streams, with
no dependencies outside the standard library. You can use it as a raw frame
parser and handle the protocol rules yourself, or as a complete endpoint for
servers and clients.

## Installation

```
pip install fastws
```

The test suite needs the `test` extra:

```
pip install "fastws[test]"
pytest
```

## Overview

- `fastws.frame` holds `Frame` and `OpCode`. You build frames with
  `Frame.text`, `Frame.binary`, `Frame.close(code, reason)`,
  `Frame.close_raw` and `Frame.pong`, and encode them with
  `Frame.to_bytes`. `is_control(opcode)` tells control frames apart from
  data frames.
- `fastws.mask.unmask(payload, mask)` applies or removes a 4-byte
  WebSocket mask and returns the result. `random_mask()` gives a fresh key.
- `fastws.close.CloseCode` and `classify(code)` sort close status codes
  into `CloseKind` categories. `CloseCode.is_allowed()` tells whether a
  code may appear on the wire.
- `fastws.websocket.WebSocket` runs the protocol over a stream
  reader/writer pair that has already finished its handshake. It has these
  settable properties: `auto_pong`, `auto_close`, `max_message_size`,
  `auto_apply_mask`, `writev` and `writev_threshold`. The defaults are as
  follows:
  - Pings are answered with pongs.
  - A close frame is answered by sending its payload back.
  - A server unmasks incoming frames, and a client masks outgoing frames.
  - Frames whose payload is 64 MiB or more are rejected.
  - Final text frames must be valid UTF-8.

  After a close frame has been written, writing any other frame raises
  `ConnectionClosedError`.
- `WebSocket.split()` returns a `WebSocketRead` and a `WebSocketWrite`, so
  that reading and writing can live in separate tasks.
  `WebSocketRead.read_frame(send_fn)` takes an async callable that writes the
  pongs and close replies. A failure inside that callable is raised as
  `SendError`. `after_handshake_split(reader, writer, role)` builds the two
  halves directly.
- `fastws.fragment.FragmentCollector` joins fragmented messages and returns
  only whole ones. `FragmentCollectorRead` does the same for a split read
  half. Text messages are checked as UTF-8 while they arrive.
  `FragmentAccumulator` is the reassembly logic on its own.
- `fastws.upgrade` handles the server side of the HTTP/1.1 upgrade:
  - `read_request` reads the request.
  - `is_upgrade_request` checks whether a request asks for an upgrade.
  - `upgrade(request)` builds the `101 Switching Protocols` response.
  - `sec_websocket_accept` computes the accept value.
  - `accept(reader, writer)` reads the request, answers it and returns
    `(WebSocket, HttpRequest)`. If the request has no `Sec-WebSocket-Key`,
    or its `Sec-WebSocket-Version` is not `13`, `accept` answers with
    `400 Bad Request` and raises the error.
- `fastws.handshake` handles the client side:
  - `generate_key` makes a key.
  - `build_request` builds the request, and `read_response` reads the reply.
  - `verify` checks for status 101 and the `Upgrade: websocket` and
    `Connection: Upgrade` headers.
  - `client(reader, writer, host, path, headers)` performs the handshake
    over existing streams.
  - `connect(host, port, path, headers)` opens the TCP connection itself.

  Both `client` and `connect` return `(WebSocket, HttpResponse)`.

Protocol violations are raised as subclasses of
`fastws.errors.WebSocketError`. Examples are `InvalidUTF8Error`,
`FrameTooLargeError`, `InvalidCloseCodeError`, `UnexpectedEOFError` and
`ConnectionClosedError`.

## A server

```python
import asyncio

from fastws.fragment import FragmentCollector
from fastws.frame import OpCode
from fastws.upgrade import accept


async def handle(reader, writer):
    ws, request = await accept(reader, writer)
    ws = FragmentCollector(ws)
    while True:
        frame = await ws.read_frame()
        if frame.opcode == OpCode.CLOSE:
            break
        if frame.opcode in (OpCode.TEXT, OpCode.BINARY):
            await ws.write_frame(frame)
    writer.close()


async def main():
    server = await asyncio.start_server(handle, "127.0.0.1", 8080)
    async with server:
        await server.serve_forever()


asyncio.run(main())
```

## A client

```python
import asyncio

from fastws.frame import Frame
from fastws.handshake import connect


async def main():
    ws, response = await connect("localhost", 8080, "/")
    await ws.write_frame(Frame.text(b"Hello!"))
    reply = await ws.read_frame()
    print(reply.payload)
    await ws.write_frame(Frame.close(1000, b""))
    reader, writer = ws.into_inner()
    writer.close()


asyncio.run(main())
```

## Commands

`fastws-echo` starts an echo server. It upgrades each incoming connection,
sends every text and binary message back to its sender, and ends the
connection on a close frame. It listens on `127.0.0.1:8080` unless you give
other values:

```
fastws-echo --host 127.0.0.1 --port 8080
```

`fastws-autobahn` is a client for an Autobahn fuzzing server. It runs these
steps in order:

1. It asks `/getCaseCount` for the number of cases.
2. For each case it connects to `/runCase?case=N&agent=AGENT` and echoes
   every message back.
3. It asks `/updateReports?agent=AGENT` to write the reports.

It uses `localhost:9001` and the agent name `fastws` unless you give other
values:

```
fastws-autobahn --host localhost --port 9001 --agent fastws
```

## Limits

- permessage-deflate and other extensions are not supported.
- There is no TLS support of its own. To use TLS, pass streams that already
  carry it.
- `fastws.upgrade` only deals with the WebSocket upgrade. It is not a
  general HTTP server: it does no routing and serves no other requests.
  `accept` does not check the `Connection` or `Upgrade` headers. It does not
  look at `Origin`, `Sec-WebSocket-Protocol` or `Sec-WebSocket-Extensions`.