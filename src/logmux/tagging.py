"""Line tagger: attach a stream's tag to one raw log line.

JSON-looking lines (first byte ``{``, last byte ``}``) get a ``"tag"``
member spliced in before the closing brace. Everything else gets a
``<tag>: `` prefix. This is a shape check, not a parse: brace-bounded
garbage is spliced exactly like a real object.
"""

from __future__ import annotations

import json

# Trimmed from both ends of a line: ASCII white space, NEL, NBSP and the
# Unicode space separators (Zs, Zl, Zp).
WHITESPACE = (
    "\t\n\v\f\r \x85\xa0\u1680"
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000"
)

# Only these count when deciding whether ``{...}`` is empty.
_SPACE = b" \t\r\n"


def _has_non_space(buf: bytes) -> bool:
    return any(b not in _SPACE for b in buf)


def _encode(text: str) -> bytes:
    return text.encode("utf-8", "surrogateescape")


def trim(raw: bytes) -> bytes:
    """Strip WHITESPACE from both ends. Invalid UTF-8 is kept byte for byte."""
    return _encode(raw.decode("utf-8", "surrogateescape").strip(WHITESPACE))


def tag_line(raw: bytes, tag: str) -> bytes:
    """Return the forward-ready frame for ``raw``, newline terminated.

    Returns ``b""`` when the line is blank; callers must not write it.

        >>> tag_line(b'{"msg":"boom"}\\n', "app.error")
        b'{"msg":"boom","tag":"app.error"}\\n'
        >>> tag_line(b"GET / 200\\n", "nginx.access")
        b'nginx.access: GET / 200\\n'
    """
    buf = trim(raw)
    if not buf:
        return b""
    quoted = _encode(json.dumps(tag, ensure_ascii=False))
    if buf[:1] == b"{" and buf[-1:] == b"}":
        if _has_non_space(buf[1:-1]):
            buf = buf[:-1] + b',"tag":' + quoted + b"}"
        else:
            buf = b'{"tag":' + quoted + b"}"
    else:
        buf = _encode(tag) + b": " + buf
    return buf + b"\n"
