#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import re


TRUE_WORDS = frozenset(('1', 'true', 'yes', 'on', 'tls', 'ssl'))
FALSE_WORDS = frozenset(('0', 'false', 'no', 'off', 'notls', 'plain'))

EMOJI_ALIAS = re.compile(r':([A-Za-z0-9_+\-]+):')


def parse_bool(value):
    """Parse a yes/no word.

    Parameters
    ----------
    value : `str` or `bool`

    Returns
    -------
    `bool`

    Raises
    ------
    ValueError

    Examples
    --------
    >>> parse_bool('TLS'), parse_bool('no')
    (True, False)
    """
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word in TRUE_WORDS:
        return True
    if word in FALSE_WORDS:
        return False
    raise ValueError('not a boolean: %r' % value)


def expand_emoji_aliases(text, aliases):
    """Replace ``:alias:`` tokens with their configured text.

    Parameters
    ----------
    text : `str`
    aliases : `None` or `dict` of (`str`, `str`)
        Alias names, with or without surrounding colons.

    Returns
    -------
    `str`

    Examples
    --------
    >>> expand_emoji_aliases('hi :cat: :dog:', {'cat': 'C'})
    'hi C :dog:'
    """
    if not aliases:
        return text
    table = {name.strip(':'): value for name, value in aliases.items()}

    def replace(match):
        return table.get(match.group(1), match.group(0))

    return EMOJI_ALIAS.sub(replace, text)
