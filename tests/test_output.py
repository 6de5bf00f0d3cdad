import io
import os

from tend.core.output import attach, log_output


class BrokenStream:
    def readline(self):
        raise OSError("read failed")


def test_log_output_forwards_lines_in_order():
    lines = []
    log_output(io.BytesIO(b"a\nb\r\nlast without newline"), lines.append)
    assert lines == ["a", "b", "last without newline"]


def test_log_output_replaces_undecodable_bytes():
    lines = []
    log_output(io.BytesIO(b"caf\xe9\n"), lines.append)
    assert lines == ["caf�"]


def test_log_output_stops_quietly_on_closed_stream():
    stream = io.BytesIO(b"never read\n")
    stream.close()
    lines = []
    log_output(stream, lines.append)
    assert lines == []


def test_log_output_stops_quietly_on_read_error():
    lines = []
    log_output(BrokenStream(), lines.append)
    assert lines == []


def test_attach_routes_stdout_to_say_and_stderr_to_warn(stream):
    out_r, out_w = os.pipe()
    err_r, err_w = os.pipe()
    with open(out_r, "rb") as stdout, open(err_r, "rb") as stderr:
        readers = attach(stdout, stderr, stream)
        os.write(out_w, b"one\ntwo\n")
        os.write(err_w, b"warned\n")
        os.close(out_w)
        os.close(err_w)
        for reader in readers:
            reader.join(5)
            assert not reader.is_alive()

    assert stream.lines("say") == ["one", "two"]
    assert stream.lines("warn") == ["warned"]


def test_log_output_strips_a_single_line_ending():
    lines = []
    log_output(io.BytesIO(b"progress\r\r\nkept\r\n\ndone\n"), lines.append)
    assert lines == ["progress\r", "kept", "", "done"]
