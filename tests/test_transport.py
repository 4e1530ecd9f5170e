import pytest

from uagent.transport import (
    MAX_STDERR_CHARS,
    LineBuffer,
    StderrLog,
    Transport,
    decode_message,
    encode_message,
)


class _LoopbackTransport(Transport):
    def __init__(self):
        super().__init__()
        self.running = False
        self.sent = []

    def start(self, command, args, working_dir):
        self.running = bool(command)
        return self.running

    def shutdown(self):
        self.running = False

    def is_running(self):
        return self.running

    def send(self, message):
        self.sent.append(encode_message(message))
        return True


def test_transport_is_abstract():
    with pytest.raises(TypeError):
        Transport()


def test_concrete_transport_lifecycle():
    t = _LoopbackTransport()
    assert t.on_message is None and t.on_exit is None
    assert t.start("", [], "") is False
    assert t.start("agent", ["--acp"], "") is True
    assert t.is_running() is True
    message = {"jsonrpc": "2.0", "method": "session/cancel"}
    assert t.send(message) is True
    assert decode_message(t.sent[0].decode("utf-8")) == message
    t.shutdown()
    t.shutdown()
    assert t.is_running() is False


def test_encode_message_single_trailing_newline():
    data = encode_message({"jsonrpc": "2.0", "id": 1})
    assert data == b'{"jsonrpc":"2.0","id":1}\n'
    assert data.count(b"\n") == 1


def test_encode_decode_round_trip_unicode():
    msg = {"method": "session/prompt", "params": {"text": "héllo ✓"}}
    data = encode_message(msg)
    assert decode_message(data.decode("utf-8")) == msg


def test_decode_message_rejects_garbage():
    with pytest.raises(ValueError):
        decode_message("{not json")


def test_decode_message_rejects_non_object():
    with pytest.raises(ValueError):
        decode_message("[1, 2]")


def test_line_buffer_keeps_partial_line():
    buf = LineBuffer()
    assert buf.feed(b'{"a":') == []
    assert buf.pending == b'{"a":'
    assert buf.feed(b"1}\n") == ['{"a":1}']
    assert buf.pending == b""


def test_line_buffer_strips_crlf_and_skips_blank():
    buf = LineBuffer()
    lines = buf.feed(b"first\r\n\r\n   \n  second  \n")
    assert lines == ["first", "second"]


def test_line_buffer_multibyte_split_across_chunks():
    encoded = "é✓".encode("utf-8")
    buf = LineBuffer()
    assert buf.feed(encoded[:1]) == []
    assert buf.feed(encoded[1:4]) == []
    assert buf.feed(encoded[4:] + b"\n") == ["é✓"]


def test_line_buffer_round_trips_encoded_messages():
    msgs = [{"id": 1, "x": "ü"}, {"method": "m"}]
    stream = b"".join(encode_message(m) for m in msgs)
    buf = LineBuffer()
    out = []
    for i in range(len(stream)):
        out.extend(buf.feed(stream[i:i + 1]))
    assert [decode_message(line) for line in out] == msgs


def test_stderr_log_joins_lines():
    log = StderrLog()
    log.append("one")
    log.append("two")
    assert log.text() == "one\ntwo"


def test_stderr_log_caps_to_tail():
    log = StderrLog(max_chars=10)
    for word in ["alpha", "bravo", "charlie"]:
        log.append(word)
    assert len(log.text()) == 10
    assert log.text().endswith("charlie")


def test_stderr_log_default_cap():
    log = StderrLog()
    log.append("x" * (MAX_STDERR_CHARS + 100))
    assert len(log.text()) == MAX_STDERR_CHARS


def test_stderr_log_rejects_nonpositive_cap():
    with pytest.raises(ValueError):
        StderrLog(max_chars=0)