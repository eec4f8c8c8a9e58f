import random

import pytest

from solver import VigenereSolver

ENGLISH_PASSAGE = """
It is a truth universally acknowledged, that a single man in possession of a good
fortune, must be in want of a wife. However little known the feelings or views of
such a man may be on his first entering a neighbourhood, this truth is so well fixed
in the minds of the surrounding families, that he is considered the rightful property
of some one or other of their daughters. My dear Mr. Bennet, said his lady to him one
day, have you heard that Netherfield Park is let at last? Mr. Bennet replied that he
had not. But it is, returned she; for Mrs. Long has just been here, and she told me
all about it. Mr. Bennet made no answer. Do you not want to know who has taken it?
cried his wife impatiently. You want to tell me, and I have no objection to hearing
it. This was invitation enough. Why, my dear, you must know, Mrs. Long says that
Netherfield is taken by a young man of large fortune from the north of England; that
he came down on Monday in a chaise and four to see the place, and was so much
delighted with it, that he agreed with Mr. Morris immediately; that he is to take
possession before Michaelmas, and some of his servants are to be in the house by the
end of next week. It was the best of times, it was the worst of times, it was the
age of wisdom, it was the age of foolishness, it was the epoch of belief, it was the
epoch of incredulity, it was the season of Light, it was the season of Darkness, it
was the spring of hope, it was the winter of despair, we had everything before us,
we had nothing before us, we were all going direct to Heaven, we were all going
direct the other way. In short, the period was so far like the present period, that
some of its noisiest authorities insisted on its being received, for good or for
evil, in the superlative degree of comparison only. There were a king with a large
jaw and a queen with a plain face, on the throne of England; there were a king with
a large jaw and a queen with a fair face, on the throne of France. In both countries
it was clearer than crystal to the lords of the State preserves of loaves and fishes,
that things in general were settled for ever. Call me Ishmael. Some years ago, never
mind how long precisely, having little or no money in my purse, and nothing
particular to interest me on shore, I thought I would sail about a little and see
the watery part of the world. It is a way I have of driving off the spleen and
regulating the circulation. Whenever I find myself growing grim about the mouth;
whenever it is a damp, drizzly November in my soul; whenever I find myself
involuntarily pausing before coffin warehouses, and bringing up the rear of every
funeral I meet; then, I account it high time to get to sea as soon as I can.
"""


class ScriptedSource:
    """Sampling source that replays fixed draws and records the bounds it was asked for."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = []

    def randrange(self, n):
        self.calls.append(n)
        return self.values.pop(0)


@pytest.fixture
def english_passage():
    return ENGLISH_PASSAGE


@pytest.fixture
def seeded_solver():
    return VigenereSolver(rng=random.Random(1337))
