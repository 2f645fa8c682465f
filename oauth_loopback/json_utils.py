"""
JSON helpers backed by orjson, mirroring the stdlib json call signatures used
in this package.
"""

import orjson

from .utils import OAuthLoopbackException


def dumps(obj, *, indent=None, sort_keys=False):
    option = 0

    if indent is not None:
        option |= orjson.OPT_INDENT_2

    if sort_keys:
        option |= orjson.OPT_SORT_KEYS

    return orjson.dumps(obj, option=option).decode('utf-8')

def loads(s):
    # Accept either str or bytes
    if isinstance(s, str):
        s = s.encode('utf-8')
    try:
        return orjson.loads(s)
    except orjson.JSONDecodeError as e:
        raise OAuthLoopbackException(f"Invalid JSON: {e}")

def load(fp):
    return loads(fp.read())
