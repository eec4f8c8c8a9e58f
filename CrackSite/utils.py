#!/usr/bin/env python3
# utils.py (alphabet + English reference table + normalizer + codec + column statistics)
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
from pathlib import Path
import json, math, random, re, sys, time

A, Z = ord('A'), ord('Z')
ALPH = ''.join(chr(A+i) for i in range(26))
N_LETTERS = len(ALPH)

# Relative letter frequencies of English text, indexed A..Z.
ENGLISH_FREQS: Tuple[float, ...] = (
    0.082,   0.015,  0.028,  0.043,  0.127,  0.022,  0.020,  0.061,  0.070,
    0.0015,  0.0077, 0.040,  0.024,  0.067,  0.075,  0.019,  0.0095, 0.060,
    0.063,   0.091,  0.028,  0.0098, 0.024,  0.0015, 0.020,  0.00074,
)

DEFAULT_SAMPLES = 2048
DEFAULT_THRESHOLD = 1.6

# Process-wide sampling source, seeded once from the wall clock.
_RNG = random.Random(time.time())

Key = Tuple[int, ...]

# -------------------------------
# Data models
# -------------------------------
@dataclass(frozen=True)
class StrideEstimate:
    stride: int
    score: float

@dataclass
class CrackResult:
    key_length: int
    key: str
    shifts: Key
    score: float
    ioc: float
    decrypted: str
    formatted: str

@dataclass
class Token:
    ch: str
    is_letter: bool
    was_upper: bool
    letter_index: Optional[int] = None

def default_rng() -> random.Random:
    return _RNG

def load_reference_distribution(path: Path | str) -> Tuple[float, ...]:
    """Read the `english_monograms` table of a language_data.json file as a 26-vector summing to 1."""
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        data = json.load(f)
    table: Dict[str, float] = {k.upper(): float(v) for k, v in data["english_monograms"].items()}
    vec = [table.get(ch, 0.0) for ch in ALPH]
    total = sum(vec)
    if total <= 0:
        raise ValueError(f"{path}: english_monograms has no positive weights")
    return tuple(x / total for x in vec)

# -------------------------------
# Normalizer / layout
# -------------------------------
def normalize_text(raw: Union[bytes, str]) -> str:
    """Uppercase and keep only ASCII letters, preserving order."""
    if isinstance(raw, bytes):
        raw = raw.decode("latin-1")
    return ''.join(ch.upper() for ch in raw if ch.isascii() and ch.isalpha())

def read_input(path: Optional[str] = None) -> bytes:
    if path is None or path == "-":
        return sys.stdin.buffer.read()
    return Path(path).read_bytes()

def tokenize_text(text: str) -> Tuple[List[Token], str]:
    tokens: List[Token] = []
    letters: List[str] = []
    for ch in text:
        if ch.isascii() and ch.isalpha():
            tokens.append(Token(ch=ch, is_letter=True, was_upper=ch.isupper(), letter_index=len(letters)))
            letters.append(ch.upper())
        else:
            tokens.append(Token(ch=ch, is_letter=False, was_upper=False))
    return tokens, ''.join(letters)

def format_from_tokens(tokens: List[Token], letters_clean: str) -> str:
    out: List[str] = []
    for t in tokens:
        if t.is_letter and t.letter_index is not None:
            ch = letters_clean[t.letter_index]
            out.append(ch if t.was_upper else ch.lower())
        else:
            out.append(t.ch)
    return ''.join(out)

class CiphertextParser:
    """
    Extract ciphertext blocks surrounded by triple quotes:
    """
    QUOTE_RX = re.compile(r'"""(.*?)"""', re.DOTALL)

    @staticmethod
    def parse_text(data: str) -> List[str]:
        blocks = CiphertextParser.QUOTE_RX.findall(data or "")
        return [blk.strip() for blk in blocks if blk.strip()]

    @staticmethod
    def parse_string(data: str) -> List[str]:
        blocks = CiphertextParser.parse_text(data)
        if not blocks:
            # No triple-quoted blocks: the entire text is one block
            return [data.strip()] if data and data.strip() else []
        return blocks

# -------------------------------
# Alphabet / key helpers
# -------------------------------
def letter_index(ch: str) -> int:
    o = ord(ch)
    if not A <= o <= Z:
        raise ValueError(f"invalid char {ch!r}")
    return o - A

def key_to_letters(key: Sequence[int]) -> str:
    return ''.join(ALPH[s % N_LETTERS] for s in key)

def key_from_letters(key: str) -> Key:
    shifts = tuple(letter_index(ch) for ch in normalize_text(key))
    if not shifts:
        raise ValueError("key must contain at least one letter A-Z")
    return shifts

def _as_shifts(key: Union[str, Sequence[int]]) -> Key:
    if isinstance(key, str):
        return key_from_letters(key)
    shifts = tuple(int(s) % N_LETTERS for s in key)
    if not shifts:
        raise ValueError("key must not be empty")
    return shifts

# -------------------------------
# Vigenère codec
# -------------------------------
def _apply_shifts(text: str, shifts: Key, sign: int) -> str:
    k = len(shifts)
    out: List[str] = []
    for i, ch in enumerate(text):
        o = ord(ch)
        if A <= o <= Z:
            out.append(ALPH[(o - A + sign * shifts[i % k]) % N_LETTERS])
        else:
            out.append(ch)
    return ''.join(out)

def encrypt_vigenere(text: str, key: Union[str, Sequence[int]]) -> str:
    return _apply_shifts(text, _as_shifts(key), +1)

def decrypt_vigenere(text: str, key: Union[str, Sequence[int]]) -> str:
    return _apply_shifts(text, _as_shifts(key), -1)

# -------------------------------
# Column statistics
# -------------------------------
def counts26(text: str) -> Tuple[List[int], int]:
    c = [0]*26
    n = 0
    for ch in text:
        o = ord(ch)
        if A <= o <= Z:
            c[o - A] += 1
            n += 1
    return c, n

def column_frequencies(text: str, stride: int, column: int) -> List[int]:
    """Letter counts over the positions of `text` congruent to `column` mod `stride`."""
    if not 0 <= column < stride:
        raise ValueError(f"column {column} out of range for stride {stride}")
    counts, _ = counts26(text[column::stride])
    return counts

def frequency_correlation(observed: Sequence[float], reference: Sequence[float], rotation: int) -> float:
    return sum(observed[i] * reference[(i + rotation) % N_LETTERS] for i in range(N_LETTERS))

def format_frequencies(freq: Sequence[float]) -> str:
    return ', '.join(f"[{ALPH[i]}] = {freq[i]:.0f}" for i in range(N_LETTERS))

def calculate_ioc(text: str) -> float:
    """Exact index of coincidence of the letters in `text` (0.0 below two letters)."""
    counts, n = counts26(text)
    if n <= 1:
        return 0.0
    return sum(f*(f-1) for f in counts) / (n*(n-1))


class VigenereStatsMixin:
    reference: Tuple[float, ...]
    samples: int
    rng: random.Random

    def estimate_coincidence(self, text: str, stride: int, offset: int,
                             transform: Optional[Callable[[str], str]] = None) -> float:
        """
        Sampled probability that two distinct positions of `text` sharing
        residue `offset` mod `stride` hold equal symbols after `transform`.
        NaN means the residue class is too small to draw a pair from.
        """
        if not 0 <= offset < stride:
            raise ValueError(f"offset {offset} out of range for stride {stride}")
        n = len(text)
        if n < 1 or stride > n:
            return math.nan
        slots = len(range(offset, n, stride))
        if slots < 2:
            return math.nan
        if transform is None:
            transform = _identity

        rng = self.rng
        matches = 0
        for _ in range(self.samples):
            a = rng.randrange(slots)
            b = rng.randrange(slots)
            while b == a:
                b = rng.randrange(slots)
            if transform(text[a*stride + offset]) == transform(text[b*stride + offset]):
                matches += 1
        return matches / self.samples

    def stride_score(self, text: str, stride: int) -> float:
        # mean coincidence over all columns, scaled so uniform text sits near 1.0
        total = 0.0
        for j in range(stride):
            total += self.estimate_coincidence(text, stride, j)
        return total / stride * N_LETTERS

    def find_shift(self, observed: Sequence[float]) -> int:
        best_rot, best = 0, -math.inf
        for r in range(N_LETTERS):
            corr = frequency_correlation(observed, self.reference, r)
            if corr > best:
                best_rot, best = r, corr
        return (N_LETTERS - best_rot) % N_LETTERS


def _identity(ch: str) -> str:
    return ch
