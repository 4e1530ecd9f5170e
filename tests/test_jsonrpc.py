import pytest

from uagent.jsonrpc import METHOD_NOT_FOUND, JsonRpcPeer
from uagent.transport import Transport


class _RecordingTransport(Transport):
    def __init__(self):
        super().__init__()
        self.sent = []

    def start(self, command, args, working_dir):
        return True

    def shutdown(self):
        pass

    def is_running(self):
        return True

    def send(self, message):
        self.sent.append(message)
        return True


@pytest.fixture
def wired():
    transport = _RecordingTransport()
    peer = JsonRpcPeer()
    peer.bind_transport(transport)
    return peer, transport


def test_bind_hooks_on_message(wired):
    peer, transport = wired
    assert transport.on_message == peer.handle_incoming


def test_send_request_without_transport_is_dropped():
    peer = JsonRpcPeer()
    assert peer.send_request("initialize", {}) is None
    assert peer.pending_count == 0


def test_send_request_allocates_sequential_ids(wired):
    peer, transport = wired
    first = peer.send_request("initialize", {"protocolVersion": 1})
    second = peer.send_request("session/new", {})
    assert second == first + 1
    assert transport.sent[0] == {
        "jsonrpc": "2.0",
        "id": first,
        "method": "initialize",
        "params": {"protocolVersion": 1},
    }


def test_response_invokes_continuation_once(wired):
    peer, transport = wired
    got = []
    rid = peer.send_request("initialize", {}, lambda r, e: got.append((r, e)))
    assert peer.pending_count == 1
    transport.on_message({"jsonrpc": "2.0", "id": rid, "result": {"ok": True}})
    transport.on_message({"jsonrpc": "2.0", "id": rid, "result": {"ok": False}})
    assert got == [({"ok": True}, None)]
    assert peer.pending_count == 0


def test_error_response_passes_error(wired):
    peer, transport = wired
    got = []
    rid = peer.send_request("session/new", {}, lambda r, e: got.append((r, e)))
    err = {"code": -32000, "message": "boom"}
    transport.on_message({"jsonrpc": "2.0", "id": rid, "error": err})
    assert got == [(None, err)]


def test_request_without_continuation_not_pending(wired):
    peer, _ = wired
    peer.send_request("session/cancel", {})
    assert peer.pending_count == 0


def test_reset_clears_pending_and_ids(wired):
    peer, _ = wired
    first = peer.send_request("a", {}, lambda r, e: None)
    peer.send_request("b", {}, lambda r, e: None)
    peer.reset()
    assert peer.pending_count == 0
    assert peer.send_request("c", {}) == first


def test_notification_wire_form(wired):
    peer, transport = wired
    peer.send_notification("session/cancel", {"sessionId": "s1"})
    assert transport.sent == [
        {"jsonrpc": "2.0", "method": "session/cancel", "params": {"sessionId": "s1"}}
    ]


def test_send_response_passes_id_through(wired):
    peer, transport = wired
    peer.send_response("abc", {"content": "x"})
    peer.send_response(None, {})
    assert transport.sent == [{"jsonrpc": "2.0", "id": "abc", "result": {"content": "x"}}]


def test_send_error_response_wire_form(wired):
    peer, transport = wired
    peer.send_error_response(7, -32602, "missing params")
    assert transport.sent == [
        {"jsonrpc": "2.0", "id": 7, "error": {"code": -32602, "message": "missing params"}}
    ]


def test_incoming_request_dispatched(wired):
    peer, transport = wired
    seen = []
    peer.on_request = lambda m, p, i: seen.append((m, p, i))
    transport.on_message(
        {"jsonrpc": "2.0", "id": "r1", "method": "fs/read_text_file", "params": {"path": "a"}}
    )
    assert seen == [("fs/read_text_file", {"path": "a"}, "r1")]


def test_incoming_request_without_handler_gets_error(wired):
    peer, transport = wired
    transport.on_message({"jsonrpc": "2.0", "id": 4, "method": "fs/x"})
    assert transport.sent == [
        {
            "jsonrpc": "2.0",
            "id": 4,
            "error": {"code": METHOD_NOT_FOUND, "message": "no handler for method 'fs/x'"},
        }
    ]


def test_incoming_notification_dispatched(wired):
    peer, transport = wired
    seen = []
    peer.on_notification = lambda m, p: seen.append((m, p))
    transport.on_message({"jsonrpc": "2.0", "method": "session/update", "params": [1]})
    assert seen == [("session/update", None)]


def test_malformed_message_dropped(wired):
    peer, transport = wired
    seen = []
    peer.on_request = lambda *a: seen.append(a)
    peer.on_notification = lambda *a: seen.append(a)
    transport.on_message({"jsonrpc": "2.0", "result": {}})
    assert seen == [] and transport.sent == []


def test_unbind_stops_sending(wired):
    peer, transport = wired
    peer.bind_transport(None)
    peer.send_notification("x", {})
    assert transport.sent == []