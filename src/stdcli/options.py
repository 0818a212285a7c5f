"""Flat option parser for pass-through command-line tokens.

Some commands accept arbitrary ``--key value`` pairs that are forwarded to
the remote side rather than declared as Click options. :func:`parse_opts`
turns such a token list into a ``{name: value}`` mapping without any
validation or type coercion.

Rules:

* A token starting with ``--`` is a flag. Text after the first ``=`` is its
  value, otherwise the value is ``""``.
* Any other token (single-dash tokens included) is appended, space
  separated, to the value of the most recent flag. The result is stripped
  after every append.
* Tokens seen before any flag collect under the empty key ``""``.

Example::

    >>> parse_opts(["--app", "web", "--memory=512", "extra", "words"])
    {'app': 'web', 'memory': '512 extra words'}
"""

from __future__ import annotations

from typing import Sequence

_FLAG_PREFIX = "--"


def parse_opts(args: Sequence[str]) -> dict[str, str]:
    """Parse *args* into a mapping of option name to option value.

    Args:
        args: Raw tokens, typically everything after the sub-command name.

    Returns:
        A new dict. Keys never include the ``--`` prefix. An empty input
        yields an empty dict.
    """
    options: dict[str, str] = {}
    key = ""

    for token in args:
        if token.startswith(_FLAG_PREFIX):
            key, _, value = token[len(_FLAG_PREFIX):].partition("=")
            options[key] = value
        else:
            options[key] = (options.get(key, "") + " " + token).strip()

    return options
