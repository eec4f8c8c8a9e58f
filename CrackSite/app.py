#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

import os
import random
import time
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request

from solver import VigenereSolver
from utils import (
    DEFAULT_SAMPLES, DEFAULT_THRESHOLD, CiphertextParser,
    decrypt_vigenere, encrypt_vigenere, load_reference_distribution, normalize_text,
)


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config["SAMPLES"] = _int(os.environ.get("CRACK_SAMPLES"), default=DEFAULT_SAMPLES)
    app.config["THRESHOLD"] = _float(os.environ.get("CRACK_THRESHOLD"), default=DEFAULT_THRESHOLD)
    app.config["LANG_PATH"] = os.environ.get("LANG_PATH") or None
    if config:
        app.config.update(config)

    reference = None
    if app.config["LANG_PATH"]:
        reference = load_reference_distribution(app.config["LANG_PATH"])

    @app.post("/api/crack")
    def api_crack():
        data = request.get_json(silent=True) or {}
        text = (data.get("ciphertext") or "").strip()
        if not text:
            return jsonify({"error": "ciphertext required"}), 400

        params = {
            "samples": _int(data.get("samples"), default=app.config["SAMPLES"]),
            "threshold": _float(data.get("threshold"), default=app.config["THRESHOLD"]),
            "seed": _int_opt(data.get("seed")),
        }
        if params["samples"] < 1:
            return jsonify({"error": "samples must be positive"}), 400

        blocks = CiphertextParser.parse_string(text)
        if not blocks:
            return jsonify({"error": "no ciphertext found"}), 400

        rng = random.Random(params["seed"]) if params["seed"] is not None else None
        solver = VigenereSolver(
            samples=params["samples"], threshold=params["threshold"],
            reference=reference, rng=rng,
        )

        t0 = time.time()
        out: List[Dict[str, Any]] = []
        for ct in blocks:
            res = solver.solve_text(ct)
            out.append({
                "key_length": res.key_length,
                "key": res.key,
                "shifts": list(res.shifts),
                "score": res.score,
                "ioc": res.ioc,
                "plaintext": res.formatted,
            })
        return jsonify({
            "params": {**params, "blocks_count": len(blocks), "total_elapsed": time.time() - t0},
            "results": out,
        }), 200

    @app.post("/api/encrypt")
    def api_encrypt():
        return _codec_request(encrypt_vigenere)

    @app.post("/api/decrypt")
    def api_decrypt():
        return _codec_request(decrypt_vigenere)

    return app


def _codec_request(codec):
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    key = data.get("key") or ""
    if not isinstance(text, str):
        return jsonify({"error": "text required"}), 400
    if not isinstance(key, str) or not normalize_text(key):
        return jsonify({"error": "key must contain at least one letter"}), 400
    return jsonify({"result": codec(normalize_text(text), key)}), 200


def _int(s: Any, default: int) -> int:
    try:
        return int(s) if s is not None and s != "" else default
    except (TypeError, ValueError):
        return default


def _float(s: Any, default: float) -> float:
    try:
        return float(s) if s is not None and s != "" else default
    except (TypeError, ValueError):
        return default


def _int_opt(s: Any) -> Optional[int]:
    try:
        s = str(s if s is not None else "").strip()
        return int(s) if s else None
    except ValueError:
        return None


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "5000")), debug=True)
