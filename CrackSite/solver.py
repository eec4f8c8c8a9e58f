#!/usr/bin/env python3
# solver.py (IoC key-length sweep + frequency-correlation key recovery + CLI)
from __future__ import annotations
import argparse, random, sys, time
from typing import List, Optional, Sequence

from utils import (
    ENGLISH_FREQS, DEFAULT_SAMPLES, DEFAULT_THRESHOLD, N_LETTERS,
    CrackResult, Key, StrideEstimate, VigenereStatsMixin, CiphertextParser,
    calculate_ioc, column_frequencies, decrypt_vigenere, default_rng,
    encrypt_vigenere, format_frequencies, format_from_tokens, key_to_letters,
    load_reference_distribution, normalize_text, read_input, tokenize_text,
)

class Term:
    RED = '\033[91m'; GREEN = '\033[92m'; YELLOW = '\033[93m'
    BLUE = '\033[94m'; MAGENTA = '\033[95m'; CYAN = '\033[96m'
    BOLD = '\033[1m'; END = '\033[0m'

def _diag(msg: str) -> None:
    print(msg, file=sys.stderr)

# ---------------------------
# Solver
# ---------------------------
class VigenereSolver(VigenereStatsMixin):
    SCORE_FLOOR = -1.0

    def __init__(self, samples: int = DEFAULT_SAMPLES,
                 threshold: float = DEFAULT_THRESHOLD,
                 reference: Optional[Sequence[float]] = None,
                 rng: Optional[random.Random] = None,
                 verbose: bool = False):
        if samples < 1:
            raise ValueError("samples must be positive")
        self.samples = int(samples)
        self.threshold = float(threshold)
        self.reference = tuple(reference) if reference is not None else ENGLISH_FREQS
        if len(self.reference) != N_LETTERS:
            raise ValueError(f"reference distribution needs {N_LETTERS} entries")
        self.rng = rng if rng is not None else default_rng()
        self.verbose = verbose

    # --- key length ---
    def select_key_length(self, text: str) -> StrideEstimate:
        """
        Sweep strides 1..len/2 and keep the first one with the strictly highest
        score, stopping as soon as the best score clears the threshold.
        Falls back to stride 1 when no stride produces a usable score.
        """
        best = StrideEstimate(stride=1, score=self.SCORE_FLOOR)
        for stride in range(1, len(text) // 2):
            score = self.stride_score(text, stride)
            if self.verbose:
                _diag(f"{Term.MAGENTA}  stride {stride:3d}: {score:.3f}{Term.END}")
            # NaN compares false, so unviable strides never win
            if score > best.score:
                best = StrideEstimate(stride=stride, score=score)
                if score > self.threshold:
                    break
        return best

    # --- per-column Caesar shifts ---
    def recover_key(self, text: str, stride: int) -> Key:
        shifts: List[int] = []
        for col in range(stride):
            freqs = column_frequencies(text, stride, col)
            if self.verbose:
                _diag(f"{Term.CYAN}  column {col}: {format_frequencies(freqs)}{Term.END}")
            shifts.append(self.find_shift(freqs))
        return tuple(shifts)

    def solve_text(self, ciphertext: str) -> CrackResult:
        tokens, cleaned = tokenize_text(ciphertext)
        estimate = self.select_key_length(cleaned)
        _diag(f"best stride: {estimate.stride} (IOC {estimate.score:.2f})")

        shifts = self.recover_key(cleaned, estimate.stride)
        dec = decrypt_vigenere(cleaned, shifts)
        return CrackResult(
            key_length=estimate.stride, key=key_to_letters(shifts), shifts=shifts,
            score=estimate.score, ioc=calculate_ioc(dec), decrypted=dec,
            formatted=format_from_tokens(tokens, dec),
        )


def format_key_line(result: CrackResult) -> str:
    return f"key: {result.key} ({', '.join(str(s) for s in result.shifts)})"

# ---------------------------
# CLI
# ---------------------------
def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Vigenère cracker (IoC key length + frequency correlation)")
    ap.add_argument("input", nargs="?", default=None, help="Ciphertext file (default: stdin)")
    ap.add_argument("--blocks", action="store_true", help="Input holds triple-quoted ciphertext blocks")
    ap.add_argument("--samples", type=int, default=DEFAULT_SAMPLES, help="Sample pairs per coincidence estimate")
    ap.add_argument("--threshold", type=float, default=DEFAULT_THRESHOLD, help="Early-exit score for the stride sweep")
    ap.add_argument("--seed", type=int, default=None, help="Seed the sampling source for reproducible runs")
    ap.add_argument("--lang", default=None, help="language_data.json with an english_monograms table")
    ap.add_argument("--print-plaintext", action="store_true", help="Print the decrypted letters")
    ap.add_argument("--formatted", action="store_true", help="Print the plaintext in the input's layout")
    ap.add_argument("--verbose", "-v", action="store_true", help="Per-stride scores and column frequencies")

    mode = ap.add_mutually_exclusive_group()
    mode.add_argument("--encrypt", metavar="KEY", help="Encrypt the normalized input with KEY")
    mode.add_argument("--decrypt", metavar="KEY", help="Decrypt the normalized input with KEY")
    return ap

def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    if args.samples < 1:
        ap.error("--samples must be positive")
    if args.encrypt is not None and not normalize_text(args.encrypt):
        ap.error("--encrypt KEY needs at least one letter")
    if args.decrypt is not None and not normalize_text(args.decrypt):
        ap.error("--decrypt KEY needs at least one letter")

    try:
        raw = read_input(args.input)
    except OSError as e:
        _diag(f"{Term.RED}couldn't open file {args.input}: {e.strerror or e}{Term.END}")
        return 1

    # Mode 1: direct codec use
    if args.encrypt is not None:
        print(encrypt_vigenere(normalize_text(raw), args.encrypt))
        return 0
    if args.decrypt is not None:
        print(decrypt_vigenere(normalize_text(raw), args.decrypt))
        return 0

    # Mode 2: crack
    reference = load_reference_distribution(args.lang) if args.lang else None
    rng = random.Random(args.seed) if args.seed is not None else None
    solver = VigenereSolver(samples=args.samples, threshold=args.threshold,
                            reference=reference, rng=rng, verbose=args.verbose)

    text = raw.decode("latin-1")
    blocks = CiphertextParser.parse_string(text) if args.blocks else [text]
    if args.blocks:
        if not blocks:
            _diag(f"{Term.RED}[!] No ciphertext blocks found in {args.input or 'stdin'}{Term.END}")
            return 0
        _diag(f"{Term.BLUE}Found {len(blocks)} ciphertext blocks.{Term.END}")

    for idx, ct in enumerate(blocks, 1):
        if args.blocks:
            _diag(f"\n{Term.BOLD}=== Block {idx}/{len(blocks)} ==={Term.END}")
        t0 = time.time()
        res = solver.solve_text(ct)
        if args.verbose:
            _diag(f"{Term.GREEN}[+] Done in {time.time()-t0:.2f}s | IoC of plaintext={res.ioc:.4f}{Term.END}")
        print(format_key_line(res))
        if args.print_plaintext:
            print(res.decrypted)
        if args.formatted:
            print(res.formatted)
    return 0

if __name__ == "__main__":
    sys.exit(main())
