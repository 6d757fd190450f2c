"""Scripted language server used by the integration tests.

Speaks LSP framing on stdin/stdout. Behavior is selected with
``FAKE_LSP_MODE`` (comma separated flags); every received message is
appended as a JSON line to ``FAKE_LSP_RECORD``.

Flags:
    reject_initialize   answer initialize with an error
    hang_initialize     never answer initialize
    exit_on_initialize  exit with status 3 when initialize arrives
    chatty              after initialized, send log/diagnostics/server requests
    diagnostics         publish one diagnostic per opened document
    ignore_shutdown     never answer shutdown
    stubborn            ignore exit, SIGINT and SIGTERM; only SIGKILL works
    crash_after_init    exit with status 7 right after initialized
"""

import json
import os
import signal
import sys
import time

MODE = set(filter(None, os.environ.get("FAKE_LSP_MODE", "").split(",")))
RECORD = os.environ.get("FAKE_LSP_RECORD")

stdin = sys.stdin.buffer
stdout = sys.stdout.buffer


def record(entry):
    if not RECORD:
        return
    with open(RECORD, "a", encoding="utf-8") as f:
        f.write(json.dumps(entry) + "\n")


def send(message):
    message = dict(message, jsonrpc="2.0")
    body = json.dumps(message).encode("utf-8")
    stdout.write(b"Content-Length: %d\r\n\r\n" % len(body) + body)
    stdout.flush()


def read():
    length = None
    while True:
        line = stdin.readline()
        if not line:
            return None
        line = line.strip()
        if not line:
            break
        name, _, value = line.decode("ascii").partition(":")
        if name.strip().lower() == "content-length":
            length = int(value.strip())
    if length is None:
        return None
    return json.loads(stdin.read(length).decode("utf-8"))


def linger():
    while True:
        time.sleep(0.1)


def main():
    if "stubborn" in MODE:
        signal.signal(signal.SIGINT, signal.SIG_IGN)
        signal.signal(signal.SIGTERM, signal.SIG_IGN)

    record({"event": "start", "pid": os.getpid(), "argv": sys.argv[1:],
            "log_verbosity": os.environ.get("LOG_VERBOSITY")})

    while True:
        message = read()
        if message is None:
            record({"event": "eof"})
            if "stubborn" in MODE:
                linger()
            return 0
        record(message)
        method = message.get("method")

        if method == "initialize":
            if "exit_on_initialize" in MODE:
                return 3
            if "hang_initialize" in MODE:
                continue
            if "reject_initialize" in MODE:
                send({"id": message["id"], "error": {"code": -32603, "message": "no thanks"}})
                continue
            send({
                "id": message["id"],
                "result": {
                    "capabilities": {"textDocumentSync": 1},
                    "serverInfo": {"name": "fake-lsp", "version": "0.0.1"},
                },
            })
        elif method == "initialized":
            if "crash_after_init" in MODE:
                return 7
            if "chatty" in MODE:
                send({"method": "window/logMessage",
                      "params": {"type": 3, "message": "hello from fake-lsp"}})
                send({"method": "window/showMessage",
                      "params": {"type": 1, "message": "fake-lsp is grumpy"}})
                send({"id": "srv-1", "method": "client/registerCapability",
                      "params": {"registrations": []}})
                send({"id": "srv-2", "method": "workspace/configuration",
                      "params": {"items": [{"section": "a"}, {"section": "b"}]}})
                send({"id": "srv-3", "method": "custom/unknown", "params": {}})
        elif method == "textDocument/didOpen" and "diagnostics" in MODE:
            uri = message["params"]["textDocument"]["uri"]
            send({"method": "textDocument/publishDiagnostics", "params": {
                "uri": uri,
                "diagnostics": [{
                    "range": {"start": {"line": 0, "character": 0},
                              "end": {"line": 0, "character": 1}},
                    "message": "fake problem",
                    "severity": 2,
                }],
            }})
        elif method == "shutdown":
            if "ignore_shutdown" not in MODE:
                send({"id": message["id"], "result": None})
        elif method == "exit":
            if "stubborn" in MODE:
                linger()
            return 0


if __name__ == "__main__":
    sys.exit(main())
