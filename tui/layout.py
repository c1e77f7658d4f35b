#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Terminal text layout: escape-aware width measurement and wrapping.

Widths are measured per grapheme cluster. Escape sequences (CSI, OSC, APC)
are kept in the output and count as zero columns.
"""
import re
import unicodedata

import grapheme
import wcwidth


ESCAPE_RE = re.compile(
    r'\x1b\[[0-?]*[ -/]*[@-~]'              # CSI
    r'|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)'   # OSC
    r'|\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)'    # APC
)
SPLIT_RE = re.compile('(%s)' % ESCAPE_RE.pattern)

TAB = '   '


def strip_escapes(text):
    return ESCAPE_RE.sub('', text)


def grapheme_width(cluster):
    """Display width of one grapheme cluster.

    Examples
    --------
    >>> grapheme_width('a'), grapheme_width('中'), grapheme_width('\x07')
    (1, 2, 0)
    """
    if not cluster:
        return 0
    if len(cluster) == 1:
        width = wcwidth.wcwidth(cluster)
        return max(width, 0)
    for ch in cluster:
        cp = ord(ch)
        # emoji presentation, ZWJ sequence, skin tone or flag
        if cp in (0xfe0f, 0x200d) or 0x1f3fb <= cp <= 0x1f3ff \
                or 0x1f1e6 <= cp <= 0x1f1ff:
            return 2
    first = cluster[0]
    if unicodedata.category(first) in ('Mn', 'Me', 'Cf'):
        return 0
    return max(wcwidth.wcwidth(first), 0)


def visible_width(text):
    """Display width of `text`, ignoring escape sequences.

    Examples
    --------
    >>> visible_width('\x1b[1mbold\x1b[0m')
    4
    """
    text = strip_escapes(text).replace('\t', TAB)
    return sum(grapheme_width(g) for g in grapheme.graphemes(text))


def _tokens(text):
    """Yield ``(token, width)`` pairs; escape sequences have width `None`."""
    for i, part in enumerate(SPLIT_RE.split(text)):
        if i % 2:
            yield part, None
        elif part:
            for cluster in grapheme.graphemes(part.replace('\t', TAB)):
                yield cluster, grapheme_width(cluster)


def wrap_text(text, available):
    """Greedily break `text` into lines of at most `available` columns.

    Lines are filled cluster by cluster with no regard for word
    boundaries. Escape sequences stay attached to the line they were
    found on. A cluster wider than `available` is put on a line of its
    own. Wrapping a line that came out of this function returns it
    unchanged.

    Parameters
    ----------
    text : `str`
    available : `int`
        Columns per line, at least 1.

    Returns
    -------
    `list` of `str`
        At least one (possibly empty) line.

    Examples
    --------
    >>> wrap_text('abcdefg', 3)
    ['abc', 'def', 'g']
    >>> wrap_text('', 3)
    ['']
    """
    if available < 1:
        raise ValueError('available width must be >= 1, got %r' % available)
    lines = []
    current = []
    used = 0
    for token, width in _tokens(text):
        if width is None:
            current.append(token)
            continue
        if used and used + width > available:
            lines.append(''.join(current))
            current = []
            used = 0
        current.append(token)
        used += width
    if current or not lines:
        lines.append(''.join(current))
    return lines


def format_message(text, width=80, padding=2):
    """Wrap `text` and lay each line out as a full row.

    Each row starts with `padding` spaces and is right-padded with spaces
    to `width` visible columns.

    Examples
    --------
    >>> format_message('hello world', width=8, padding=2)
    ['  hello ', '  world ']
    """
    rows = []
    for line in wrap_text(text, width - padding):
        fill = max(width - padding - visible_width(line), 0)
        rows.append(' ' * padding + line + ' ' * fill)
    return rows
