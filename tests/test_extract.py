import io
import struct
import threading
from datetime import timedelta
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
from PIL import Image

from gifgrep.extract import (
    fetch_url,
    read_input,
    resolve_extract_out_path,
    run_extract,
    write_output,
)
from gifgrep.model import Options

PNG_MAGIC = b"\x89PNG"


def _lzw_bytes(pixels):
    codes = []
    for p in pixels:
        codes += [4, p]
    codes.append(5)
    acc = 0
    nbits = 0
    out = bytearray()
    for code in codes:
        acc |= code << nbits
        nbits += 3
        while nbits >= 8:
            out.append(acc & 0xFF)
            acc >>= 8
            nbits -= 8
    if nbits:
        out.append(acc & 0xFF)
    blocks = bytearray()
    for start in range(0, len(out), 255):
        chunk = out[start : start + 255]
        blocks.append(len(chunk))
        blocks += chunk
    blocks.append(0)
    return bytes(blocks)


def make_test_gif(count=2):
    data = bytearray(b"GIF89a")
    data += struct.pack("<HHBBB", 2, 2, 0x80, 0, 0)
    data += b"\x00\x00\x00\xff\xff\xff"
    for i in range(count):
        pixels = [0, 0, 0, 0]
        pixels[(i % 2) * 2 + (i % 2)] = 1
        data += b"\x21\xf9\x04" + bytes([0x04]) + struct.pack("<H", 5 + 2 * i) + b"\x00\x00"
        data += b"\x2c" + struct.pack("<HHHHB", 0, 0, 2, 2, 0)
        data += b"\x02" + _lzw_bytes(pixels)
    data += b"\x3b"
    return bytes(data)


@pytest.fixture
def server():
    state = {"status": 200, "body": make_test_gif(), "agents": []}

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            state["agents"].append(self.headers.get("User-Agent"))
            body = state["body"]
            self.send_response(state["status"])
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, *args):
            pass

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield state, f"http://127.0.0.1:{httpd.server_address[1]}"
    httpd.shutdown()
    httpd.server_close()


def test_read_input_file_and_file_url(tmp_path):
    data = make_test_gif()
    path = tmp_path / "sample.gif"
    path.write_bytes(data)
    assert read_input(str(path)) == data
    assert read_input("file://" + str(path)) == data


def test_read_input_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_input(str(tmp_path / "nope.gif"))


def test_read_input_http(server):
    state, base = server
    got = read_input(base + "/preview.gif")
    assert got == state["body"]
    assert state["agents"] == ["gifgrep"]


def test_fetch_url_status_error(server):
    state, base = server
    state["status"] = 404
    state["body"] = b"missing"
    with pytest.raises(OSError, match="http 404"):
        fetch_url(base + "/missing.gif")


def test_run_extract_contact_sheet(tmp_path):
    in_path = tmp_path / "in.gif"
    in_path.write_bytes(make_test_gif())
    out_path = tmp_path / "out.png"
    run_extract(
        Options(
            gif_input=str(in_path),
            stills_count=2,
            stills_cols=2,
            stills_padding=1,
            out_path=str(out_path),
        )
    )
    with Image.open(out_path) as img:
        assert img.size == (5, 2)


def test_run_extract_still(tmp_path):
    in_path = tmp_path / "in.gif"
    in_path.write_bytes(make_test_gif())
    out_path = tmp_path / "still.png"
    run_extract(
        Options(
            gif_input=str(in_path),
            still_set=True,
            still_at=timedelta(milliseconds=60),
            out_path=str(out_path),
        )
    )
    out = out_path.read_bytes()
    assert out.startswith(PNG_MAGIC)
    with Image.open(io.BytesIO(out)) as img:
        assert img.convert("RGBA").getpixel((1, 1)) == (255, 255, 255, 255)


def test_run_extract_still_to_stdout(tmp_path, capsysbinary):
    in_path = tmp_path / "in.gif"
    in_path.write_bytes(make_test_gif())
    run_extract(Options(gif_input=str(in_path), still_set=True, out_path="-"))
    captured = capsysbinary.readouterr()
    assert captured.out.startswith(PNG_MAGIC)


@pytest.mark.parametrize(
    ("opts", "message"),
    [
        (Options(), "missing GIF input"),
        (Options(gif_input="x.gif", still_set=True, stills_count=2), "use still or sheet, not both"),
        (Options(gif_input="x.gif", stills_count=0), "--frames must be >= 1"),
        (Options(gif_input="x.gif", stills_count=1, stills_cols=-1), "--cols must be >= 0"),
        (Options(gif_input="x.gif", stills_count=1, stills_padding=-1), "--padding must be >= 0"),
    ],
)
def test_run_extract_bad_args(opts, message):
    with pytest.raises(ValueError, match=message):
        run_extract(opts)


def test_resolve_extract_out_path():
    assert resolve_extract_out_path(Options(still_set=True)) == "still.png"
    assert resolve_extract_out_path(Options()) == "sheet.png"
    assert resolve_extract_out_path(Options(out_path="x.png")) == "x.png"


def test_write_output_file(tmp_path):
    path = tmp_path / "a.bin"
    write_output(str(path), b"abc")
    assert path.read_bytes() == b"abc"


def test_write_output_stdout(capsysbinary):
    write_output("-", b"xyz")
    assert capsysbinary.readouterr().out == b"xyz"