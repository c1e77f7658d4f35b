#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
from collections import deque

from .layout import format_message


class Scrollback:
    """Bounded history of wrapped messages.

    Every appended message is wrapped once and kept as a group of rows.
    When `capacity` groups are held the oldest one is dropped.

    Attributes
    ----------
    width : `int`
    padding : `int`
    groups : `collections.deque` of `list` of `str`
    scroll_offset : `int`
        Rows between the bottom of the view and the newest row.
    """
    logger = logging.getLogger(__name__)

    CAPACITY = 100
    SCROLL_STEP = 5

    def __init__(self, width=80, padding=2, capacity=CAPACITY):
        self.width = width
        self.padding = padding
        self.groups = deque(maxlen=capacity)
        self.scroll_offset = 0

    def __len__(self):
        return len(self.groups)

    @property
    def capacity(self):
        return self.groups.maxlen

    def append(self, text):
        if len(self.groups) == self.capacity:
            self.logger.debug('evict %r', self.groups[0])
        self.groups.append(format_message(text, self.width, self.padding))

    def extend(self, texts):
        for text in texts:
            self.append(text)

    def lines(self):
        """All rows, oldest first."""
        return [line for group in self.groups for line in group]

    def visible(self, max_height):
        """Rows in the view window.

        The window holds up to `max_height` rows and ends `scroll_offset`
        rows before the newest one.
        """
        lines = self.lines()
        end = max(len(lines) - self.scroll_offset, 0)
        start = max(end - max_height, 0)
        return lines[start:end]

    def page_up(self):
        total = len(self.lines())
        self.scroll_offset = min(
            self.scroll_offset + self.SCROLL_STEP, max(total - 1, 0)
        )

    def page_down(self):
        self.scroll_offset = max(self.scroll_offset - self.SCROLL_STEP, 0)

    def reset_scroll(self):
        self.scroll_offset = 0
