#!/usr/bin/env python3
"""
Benchmark MetricsExtractor.extract() + EmotionClassifier.classify().

Usage: python bench.py [N]
  N = number of frames (default 1000).

Run from project root. Records total time and per-frame time so you can
compare before/after changes to the extractor or the classifier rules.
"""
import os
import sys
import time

# Project root on path (script lives at project root)
_root = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, _root)

from utils.emotion_classifier import EmotionClassifier
from utils.metrics_extractor import MetricsExtractor
from tests.fixtures.synthetic_landmarks import make_face_landmarks


def main():
    n = 1000
    if len(sys.argv) > 1:
        try:
            n = int(sys.argv[1])
        except ValueError:
            pass
    extractor = MetricsExtractor()
    classifier = EmotionClassifier(now_ms=0.0)
    lm = make_face_landmarks()
    # Warmup run
    classifier.classify(extractor.extract(lm), 0.0)
    start = time.perf_counter()
    for i in range(n):
        classifier.classify(extractor.extract(lm), i * 33.0)
    elapsed = time.perf_counter() - start
    per_frame_ms = (elapsed / n) * 1000
    print(f"extract+classify x{n}: {elapsed:.3f}s total, {per_frame_ms:.3f} ms/frame")


if __name__ == "__main__":
    main()
