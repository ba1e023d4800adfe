"""Buffered, seekable reading of local files and HTTP(S)/S3 URLs."""

from __future__ import annotations

import base64
import getopt
import hashlib
import hmac
import os
import ssl
import sys
import time
import urllib.request
from dataclasses import dataclass
from typing import Optional

_DEF_BUFLEN = 0x8000
_MAX_SKIP = _DEF_BUFLEN << 1  # forward jumps up to this size are read through
_REMOTE_CHUNK = 16384
_MASK32 = 0xFFFFFFFF


class KurlError(Exception):
    """Failure while opening, seeking or authorising a stream."""

    NULL = 1
    INV_WHENCE = 2
    SEEK_OUT = 3
    NO_AUTH = 4

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class S3Request:
    """An S3 object URL rewritten for HTTPS, with its signed header lines."""

    url: str
    date: str
    auth: str


def _roundup32(x: int) -> int:
    x = (x - 1) & _MASK32
    for shift in (1, 2, 4, 8, 16):
        x |= x >> shift
    return (x + 1) & _MASK32


def s3_sign(key: str, data: str) -> str:
    """Return the base64-encoded HMAC-SHA1 of ``data`` under ``key``."""
    digest = hmac.new(key.encode(), data.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def _read_aws_secret(key_file: Optional[str]) -> tuple[str, str]:
    if key_file is None:
        home = os.environ.get("HOME")
        if home is None:
            raise KurlError(KurlError.NO_AUTH, "HOME is not set; no credential file")
        key_file = home + "/.awssecret"
    try:
        with open(key_file, "rb") as fp:
            raw = fp.read(127)
    except OSError as exc:
        raise KurlError(KurlError.NO_AUTH, f"cannot read credentials: {exc}") from exc
    text = raw.decode("latin-1")
    newline = text.find("\n")
    if newline < 0:
        raise KurlError(KurlError.NO_AUTH, "credential file needs an id line and a secret line")
    key_id = text[:newline]
    following_lines = text[newline + 1 :].split("\n", 1)
    return key_id, following_lines[0]


def s3_parse(
    url: str,
    key_id: Optional[str] = None,
    secret: Optional[str] = None,
    key_file: Optional[str] = None,
) -> S3Request:
    """Turn an ``s3://bucket/object`` URL into a signed HTTPS request.

    Without both ``key_id`` and ``secret`` the credentials are read from
    ``key_file`` (default ``$HOME/.awssecret``): id on the first line,
    secret on the second.
    """
    if not url.startswith("s3://"):
        raise KurlError(KurlError.NO_AUTH, f"not an S3 URL: {url!r}")
    rest = url[5:]
    slash = rest.find("/")
    if slash < 0:
        raise KurlError(KurlError.NO_AUTH, f"no object in S3 URL: {url!r}")
    bucket, obj = rest[:slash], rest[slash:]
    if key_id is None or secret is None:
        key_id, secret = _read_aws_secret(key_file)
    https_url = f"https://{bucket}.s3.amazonaws.com{obj}"
    date = time.strftime("%a, %d %b %Y %H:%M:%S +0000", time.gmtime())
    signature = s3_sign(secret, f"GET\n\n\n{date}\n{url[4:]}")
    return S3Request(https_url, f"Date: {date}", f"Authorization: AWS {key_id}:{signature}")


def _is_remote(url: str) -> bool:
    sep = url.find("://")
    if sep < 0:
        return False
    return all(c.isascii() and c.isalnum() for c in url[:sep])


class Kurl:
    """A read-only stream over a file descriptor or a remote URL."""

    def __init__(self, fd: int = -1, *, url: Optional[str] = None,
                 headers: Optional[dict[str, str]] = None) -> None:
        self._fd = fd
        self._url = url
        self._headers = dict(headers or {})
        self._response = None
        self._buf = b""
        self._p_buf = 0
        self._off0 = 0
        self._m_buf = _DEF_BUFLEN
        self._done_reading = False
        self._closed = False

    @property
    def _is_file(self) -> bool:
        return self._fd >= 0

    @classmethod
    def open(
        cls,
        url: str,
        s3_key_id: Optional[str] = None,
        s3_secret: Optional[str] = None,
        s3_key_file: Optional[str] = None,
    ) -> "Kurl":
        """Open a local path or a ``scheme://`` URL for reading."""
        if not _is_remote(url):
            ku = cls(os.open(url, os.O_RDONLY))
        else:
            headers: dict[str, str] = {}
            target = url
            if url.startswith("s3://"):
                request = s3_parse(url, s3_key_id, s3_secret, s3_key_file)
                target = request.url
                for line in (request.date, request.auth):
                    name, value = line.split(": ", 1)
                    headers[name] = value
            ku = cls(-1, url=target, headers=headers)
            ku._m_buf = max(_DEF_BUFLEN, 2 * _REMOTE_CHUNK)
        ku._start()
        return ku

    @classmethod
    def from_fd(cls, fd: int) -> "Kurl":
        """Wrap an open file descriptor; it is closed with the stream."""
        ku = cls(fd)
        ku._start()
        return ku

    def _start(self) -> None:
        try:
            self._prepare(False)
            filled = self._fill_buffer()
        except BaseException:
            self.close()
            raise
        if filled <= 0:
            self.close()
            raise KurlError(KurlError.SEEK_OUT, "nothing to read")

    def _open_response(self) -> None:
        if self._response is not None:
            self._response.close()
            self._response = None
        headers = dict(self._headers)
        if self._off0 > 0:
            headers["Range"] = f"bytes={self._off0}-"
        request = urllib.request.Request(self._url, headers=headers)
        context = ssl.create_default_context()
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        response = urllib.request.urlopen(request, context=context)
        if self._off0 > 0 and response.status != 206:
            remaining = self._off0
            while remaining:
                chunk = response.read(min(remaining, _REMOTE_CHUNK))
                if not chunk:
                    break
                remaining -= len(chunk)
        self._response = response

    def _prepare(self, do_seek: bool) -> None:
        if self._is_file:
            if do_seek and os.lseek(self._fd, self._off0, os.SEEK_SET) != self._off0:
                raise OSError("lseek did not reach the requested offset")
        else:
            self._open_response()
        self._buf = b""
        self._p_buf = 0

    def _fill_buffer(self) -> int:
        self._off0 += len(self._buf)
        self._buf = b""
        self._p_buf = 0
        if self._done_reading:
            return 0
        parts: list[bytes] = []
        total = 0
        while total < self._m_buf:
            if self._is_file:
                chunk = os.read(self._fd, self._m_buf - total)
            else:
                chunk = self._response.read(min(_REMOTE_CHUNK, self._m_buf - total))
            if not chunk:
                break
            parts.append(chunk)
            total += len(chunk)
        self._buf = b"".join(parts)
        if total < self._m_buf:
            self._done_reading = True
        return total

    def _consume(self, nbytes: int, keep: bool) -> tuple[int, list[bytes]]:
        parts: list[bytes] = []
        if not self._buf:
            return 0, parts
        rest = nbytes
        while rest:
            avail = len(self._buf) - self._p_buf
            if avail >= rest:
                if keep:
                    parts.append(self._buf[self._p_buf : self._p_buf + rest])
                self._p_buf += rest
                rest = 0
            else:
                if keep and avail > 0:
                    parts.append(self._buf[self._p_buf :])
                rest -= avail
                self._p_buf = len(self._buf)
                if self._fill_buffer() <= 0:
                    break
        return nbytes - rest, parts

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on a closed stream")

    def read(self, nbytes: int) -> bytes:
        """Read up to ``nbytes`` bytes; an empty result means end of stream."""
        self._check_open()
        if nbytes < 0:
            raise ValueError("nbytes must not be negative")
        _, parts = self._consume(nbytes, True)
        return b"".join(parts)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move to a new offset and return it; SEEK_END works on files only."""
        self._check_open()
        cur = self.tell()
        seek_end = False
        if whence == os.SEEK_SET:
            new_off = offset
        elif whence == os.SEEK_CUR:
            new_off = cur + offset
        elif whence == os.SEEK_END and self._is_file:
            try:
                new_off = os.lseek(self._fd, offset, os.SEEK_END)
            except OSError as exc:
                raise KurlError(KurlError.SEEK_OUT, "offset out of range") from exc
            seek_end = True
        else:
            raise KurlError(KurlError.INV_WHENCE, f"unsupported whence: {whence}")
        if new_off < 0:
            raise KurlError(KurlError.SEEK_OUT, "negative offset")
        if not seek_end and new_off >= cur and new_off - cur + self._p_buf < len(self._buf):
            self._p_buf += new_off - cur
            return self.tell()
        try:
            if seek_end or new_off < cur or new_off - cur > _MAX_SKIP:
                self._off0 = new_off
                self._done_reading = False
                self._prepare(True)
                failed = self._fill_buffer() <= 0
            else:
                skipped, _ = self._consume(new_off - cur, False)
                failed = skipped + cur != new_off
        except OSError:
            failed = True
        if failed:
            self._buf = b""
            self._p_buf = 0
            raise KurlError(KurlError.SEEK_OUT, "offset out of range")
        return new_off

    def tell(self) -> int:
        return self._off0 + self._p_buf

    def eof(self) -> bool:
        return not self._buf

    def fileno(self) -> int:
        """The underlying descriptor, or -1 for a remote stream."""
        return self._fd

    def set_buffer_length(self, length: int) -> int:
        """Request a buffer of at least ``length`` bytes; return the size in use."""
        if length <= 0 or length < len(self._buf):
            return self._m_buf
        if not self._is_file and length < 2 * _REMOTE_CHUNK:
            return self._m_buf
        self._m_buf = _roundup32(length)
        return self._m_buf

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._response is not None:
            self._response.close()
            self._response = None
        if self._fd >= 0:
            os.close(self._fd)
        self._buf = b""
        self._p_buf = 0

    def __enter__(self) -> "Kurl":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


_USAGE = "Usage: kurl [-c start] [-l length] <url>\n"


def main(argv: Optional[list[str]] = None) -> int:
    """Copy a file or URL, optionally a slice of it, to standard output."""
    args = sys.argv[1:] if argv is None else list(argv)
    start, rest = 0, -1
    key_file: Optional[str] = None
    try:
        opts, positional = getopt.getopt(args, "c:l:a:")
        for opt, value in opts:
            if opt == "-c":
                start = int(value, 0)
            elif opt == "-l":
                rest = int(value, 0)
            elif opt == "-a":
                key_file = value
    except (getopt.GetoptError, ValueError):
        sys.stderr.write(_USAGE)
        return 1
    if not positional:
        sys.stderr.write(_USAGE)
        return 1
    try:
        stream = Kurl.open(positional[0], s3_key_file=key_file)
    except (OSError, KurlError):
        sys.stderr.write("ERROR: fail to open URL\n")
        return 2
    block = 0x10000
    with stream:
        if start > 0:
            try:
                stream.seek(start, os.SEEK_SET)
            except KurlError:
                sys.stderr.write("ERROR: fail to seek\n")
                return 3
        out = sys.stdout.buffer
        while rest != 0:
            to_read = rest if 0 < rest < block else block
            data = stream.read(to_read)
            if not data:
                break
            out.write(data)
            rest -= len(data)
        out.flush()
    return 0